from dataclasses import dataclass, field
from typing import Sequence, Tuple, Optional

from texttable import Texttable

from rtprune.command.command import Command, CommandOutput
from rtprune.domain.torrent import Candidate
from rtprune.service.torrent import PruneService


@dataclass
class ListOutput(CommandOutput):
    rows: Sequence[Tuple[Optional[str], Candidate]] = field(default_factory=list)

    def display(self):
        if len(self.rows) > 0:
            table = Texttable()
            table.add_row(["Tracker", "Name", "Message"])
            for (tracker, candidate) in self.rows:
                table.add_row([tracker or "unknown", candidate.name, candidate.message])
            print(table.draw())
        else:
            print("No unregistered torrents found.")

    def dry_run_display(self):
        self.display()


class ListCommand(Command):
    def __init__(self, service: PruneService):
        self.service = service

    def run(self) -> ListOutput:
        rows = [
            (self.service.get_tracker_host(candidate), candidate)
            for candidate in self.service.get_unregistered()
        ]
        return ListOutput(rows)

    def dry_run(self) -> ListOutput:
        return self.run()
