import logging
from collections import defaultdict
from typing import Sequence, Mapping, Any, DefaultDict, Callable

from docopt import docopt

from rtprune.command.command import CommandFactory, CommandFactoryResult
from rtprune.command.list import ListCommand
from rtprune.command.other import InvalidCommand
from rtprune.command.prune import PruneCommand
from rtprune.external.filesystem import Filesystem, DryRunFilesystem
from rtprune.service.torrent import PruneService, DEFAULT_VIEW

logger = logging.getLogger(__name__)


def parse_delay(raw_delay: str) -> float:
    try:
        delay = float(raw_delay)
    except (TypeError, ValueError):
        raise ValueError(f"--delay must be a number of seconds, got {raw_delay!r}")
    if delay < 0:
        raise ValueError(f"--delay must not be negative, got {raw_delay!r}")
    return delay


def prune_factory(argv: Sequence[str], dependencies: Mapping) -> CommandFactoryResult:
    api = dependencies["api"]
    fs: Filesystem = dependencies["fs"]
    view = dependencies.get("view") or DEFAULT_VIEW
    # parse arguments
    from rtprune.spec import prune as prune_command

    args = docopt(doc=prune_command.__doc__, argv=argv)
    if args["--dry-run"]:
        fs = DryRunFilesystem()
    delay = parse_delay(args["--delay"])
    logger.debug(f"prune factory view={view} delay={delay}")

    service = PruneService(api, fs, view)
    return PruneCommand(service, delay), args


def list_factory(argv: Sequence[str], dependencies: Mapping) -> CommandFactoryResult:
    api = dependencies["api"]
    fs: Filesystem = dependencies["fs"]
    view = dependencies.get("view") or DEFAULT_VIEW
    from rtprune.spec import list as list_command

    args = docopt(doc=list_command.__doc__, argv=argv)
    return ListCommand(PruneService(api, fs, view)), args


class InvalidCommandFactory(CommandFactory):
    def __call__(
        self, argv: Sequence[str], dependencies: Mapping[str, Any]
    ) -> CommandFactoryResult:
        return InvalidCommand(), dict()


invalid_factory: Callable[[], CommandFactory] = InvalidCommandFactory

command_factories: DefaultDict[Any, CommandFactory] = defaultdict(
    invalid_factory,
    {
        "prune": prune_factory,
        "list": list_factory,
    },
)


class CommandCreator:
    def __init__(
        self,
        dependencies: Mapping[str, Any],
        factories: Mapping[str, CommandFactory],
    ):
        self.dependencies = dependencies
        self.factories = factories

    def get_command(self, args: Mapping) -> CommandFactoryResult:
        # here we join together the command & its args without the top-level options
        command = args.get("<command>")
        factory = self.factories[command]
        argv = [args["<command>"]] + args["<args>"]
        return factory(argv, self.dependencies)
