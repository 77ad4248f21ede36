from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Optional, Tuple
from urllib.parse import urlparse

UNREGISTERED_MARKER = 'Tracker: [Failure reason "Unregistered torrent'


@dataclass(frozen=True)
class Candidate:
    info_hash: str
    name: str
    message: str

    @property
    def is_unregistered(self) -> bool:
        return self.message.lower().startswith(UNREGISTERED_MARKER.lower())


@dataclass(frozen=True)
class TorrentPaths:
    content_root: Path
    watch_file: Optional[Path]
    session_file: Optional[Path]
    # relative to content_root, in the order rTorrent reports them
    files: Tuple[PurePath, ...] = ()


class AnnounceUrl:
    def __init__(self, announce_url: str):
        self.announce_url = announce_url

    @property
    def short_host(self) -> Optional[str]:
        try:
            return urlparse(self.announce_url).hostname
        except ValueError:
            return None
