import logging
import os
import stat
from enum import Enum
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class EntryKind(Enum):
    MISSING = "missing"
    SYMLINK = "symlink"
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"


class Filesystem(Protocol):
    def kind(self, path: Path) -> EntryKind:
        """Classifies path without following a final symlink (lstat)."""
        raise NotImplementedError

    def canonical(self, path: Path) -> Path:
        raise NotImplementedError

    def expand(self, raw_path: str) -> Path:
        raise NotImplementedError

    def remove_file(self, path: Path):
        raise NotImplementedError

    def remove_directory(self, path: Path):
        raise NotImplementedError


class DefaultFilesystem(Filesystem):
    def kind(self, path: Path) -> EntryKind:
        try:
            mode = os.lstat(path).st_mode
        except FileNotFoundError:
            return EntryKind.MISSING
        if stat.S_ISLNK(mode):
            return EntryKind.SYMLINK
        elif stat.S_ISREG(mode):
            return EntryKind.FILE
        elif stat.S_ISDIR(mode):
            return EntryKind.DIRECTORY
        return EntryKind.OTHER

    def canonical(self, path: Path) -> Path:
        return path.resolve(strict=False)

    def expand(self, raw_path: str) -> Path:
        return Path(raw_path).expanduser()

    def remove_file(self, path: Path):
        path.unlink()

    def remove_directory(self, path: Path):
        path.rmdir()


class DryRunFilesystem(DefaultFilesystem):
    def remove_file(self, path: Path):
        logger.debug(f"dry-run: would unlink {path}")

    def remove_directory(self, path: Path):
        logger.debug(f"dry-run: would rmdir {path}")
