import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence, Optional, Callable, MutableSequence

from colorama import Fore

from rtprune.command.command import Command, CommandOutput
from rtprune.domain.torrent import Candidate
from rtprune.external.rtorrent import RTorrentError
from rtprune.service.remove import RemovalPlan
from rtprune.service.torrent import PruneService, RemovalOutcome

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.5


@dataclass
class PruneEntry:
    candidate: Candidate
    tracker: Optional[str] = None
    plan: Optional[RemovalPlan] = None
    errors: Sequence[str] = field(default_factory=list)
    descriptors: Sequence[Path] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def heading(self) -> str:
        return f"Unregistered[{self.tracker or 'unknown'}]:\t{self.candidate.name}"


@dataclass
class PruneOutput(CommandOutput):
    entries: Sequence[PruneEntry] = field(default_factory=list)

    @property
    def failures(self) -> Sequence[PruneEntry]:
        return [entry for entry in self.entries if not entry.success]

    def display(self):
        if len(self.entries) == 0:
            print("No unregistered torrents found.")
            return
        for entry in self.entries:
            print(entry.heading)
            if entry.success:
                print(Fore.GREEN + "Ok.")
            else:
                for error in entry.errors:
                    print(Fore.RED + f"Got an error when deleting: {error}")
        failure_count = len(self.failures)
        print(
            f"Pruned {len(self.entries) - failure_count} torrents, {failure_count} failed."
        )

    def dry_run_display(self):
        if len(self.entries) == 0:
            print("No unregistered torrents found.")
            return
        print("These are dry-run results.")
        for entry in self.entries:
            print(entry.heading)
            if not entry.success:
                for error in entry.errors:
                    print(Fore.RED + f"Would fail: {error}")
            elif entry.plan is not None:
                paths = [*entry.descriptors, *entry.plan.paths]
                if len(paths) == 0:
                    print("Nothing to remove.")
                for path in paths:
                    print(f"\N{hyphen bullet} {path}")


def _describe(outcome: RemovalOutcome) -> Sequence[str]:
    return [str(error) for error in outcome.errors]


class PruneCommand(Command):
    def __init__(
        self,
        service: PruneService,
        delay: float = DEFAULT_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.service = service
        self.delay = delay
        self.sleep = sleep

    def _process(
        self, candidate: Candidate, action: Callable[..., RemovalOutcome]
    ) -> PruneEntry:
        entry = PruneEntry(candidate)
        try:
            entry.tracker = self.service.get_tracker_host(candidate)
            paths = self.service.get_paths(candidate)
        except RTorrentError as e:
            logger.warning(f"skipping {candidate.info_hash}: {e.message}")
            entry.errors = [e.message]
            return entry
        outcome = action(paths)
        entry.plan = outcome.plan
        entry.descriptors = outcome.descriptors
        entry.errors = _describe(outcome)
        return entry

    def run(self) -> PruneOutput:
        entries: MutableSequence[PruneEntry] = []
        for (index, candidate) in enumerate(self.service.get_unregistered()):
            if index > 0:
                # rTorrent can be brittle under a burst of calls
                self.sleep(self.delay)
            logger.info(f"pruning {candidate.info_hash} {candidate.name}")
            entries.append(self._process(candidate, self.service.remove))
        return PruneOutput(entries)

    def dry_run(self) -> PruneOutput:
        entries = [
            self._process(candidate, self.service.plan)
            for candidate in self.service.get_unregistered()
        ]
        return PruneOutput(entries)
