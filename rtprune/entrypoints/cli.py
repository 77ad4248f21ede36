"""A tool for removing torrents, and their data, that rTorrent reports as unregistered by their tracker.

Usage:
    rtprune [options] [-v ...] <command> [<args> ...]

Options:
    -a <address>, --address <address>   XML-RPC address for rTorrent (default is http://localhost/RPC2).
    --view <view>   rTorrent view to look for torrents in (default is "default").
    -h, --help  Show this screen.
    -v, --verbose   Verbose terminal output (multiple -v increase verbosity).

The available rtprune commands are:
    list        Show torrents that their tracker reports as unregistered.
    prune       Remove unregistered torrents: their .torrent files, session files and data.

See 'rtprune <command> --help' for more information on a specific command.

"""
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Any

from colorama import init, deinit
from docopt import docopt

from rtprune.command.command import CommandOutput
from rtprune.configuration import CommandCreator, command_factories
from rtprune.external.filesystem import DefaultFilesystem
from rtprune.external.rtorrent import rtorrent_factory, XmlRpcApi, RTorrentError

logger = logging.getLogger(__name__)


class Application:
    def __init__(self, args: Mapping, dependencies: Mapping):
        self.args = args
        self.dependencies = dependencies

    def run(self):
        creator = CommandCreator(self.dependencies, command_factories)
        try:
            command, subcommand_args = creator.get_command(self.args)
        except ValueError as e:
            logger.warning(e, exc_info=True)
            print(e)
            return
        is_dry_run = subcommand_args.get("--dry-run")
        try:
            if is_dry_run is not None and is_dry_run:
                try:
                    result: CommandOutput = command.dry_run()
                    result.dry_run_display()
                except NotImplementedError:
                    print("This command does not have a dry-run mode")
                    return
            else:
                result: CommandOutput = command.run()
                result.display()
        except RTorrentError as e:
            logger.warning(e, exc_info=True)
            print(f"rTorrent error: {e.message}")
            return


def parse_logging_level(args: Mapping) -> int:
    return int(args.get("--verbose", 0))


def get_logging_level(verbosity) -> int:
    base_loglevel = 30
    verbosity = min(verbosity, 2)
    return base_loglevel - (verbosity * 10)


def get_file_handler() -> logging.FileHandler:
    cwd_path = Path(os.getcwd())
    log_path_str = str(cwd_path / "rtprune.log")

    file_handler = logging.FileHandler(log_path_str, "w")

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    file_handler.setFormatter(formatter)
    return file_handler


def get_dependencies(args: Mapping) -> Mapping[str, Any]:
    server = rtorrent_factory(args)
    return {
        "api": XmlRpcApi(server),
        "fs": DefaultFilesystem(),
        "view": args.get("--view"),
    }


def main():
    try:
        args = docopt(__doc__, options_first=True)

        verbosity = parse_logging_level(args)
        level = get_logging_level(verbosity)
        logging.basicConfig(level=level)
        app_logger = logging.getLogger()
        app_logger.handlers = []

        if verbosity > 0:
            handler = get_file_handler()
            app_logger.addHandler(handler)

        dependencies = get_dependencies(args)
        application = Application(args, dependencies)
        init(autoreset=True)
        application.run()
        deinit()
    except Exception as e:
        logging.exception(str(e))
        logging.debug("", exc_info=True)
        try:
            sys.exit(e.errno or 1)
        except AttributeError:
            sys.exit(1)


if __name__ == "__main__":
    main()
