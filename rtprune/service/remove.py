"""Removal of a torrent's on-disk footprint.

Two pieces work together per torrent: the DescriptorRemover deletes the
watch and session files that rTorrent uses to track a download, and the
ContentRemover deletes the payload itself. Content removal never recurses
blindly: only the files enumerated by the torrent, and the directories
implied by their paths, are removed, and every path is checked to stay
inside the content root before anything is deleted.

Missing files and directories are treated as already removed, so a removal
that failed halfway can simply be run again.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath
from typing import Optional, Sequence, Set, Tuple, Iterable, List

from rtprune.external.filesystem import Filesystem, EntryKind

logger = logging.getLogger(__name__)


class RemovalError(Exception):
    def __init__(self, message: str, path: Path, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause

    def __str__(self):
        if self.cause is not None:
            return f"{self.message}: {self.path} ({self.cause})"
        return f"{self.message}: {self.path}"


class IntegrityFault(RemovalError):
    """Torrent metadata contradicts what is on disk, or a path escapes its root."""


class FilesystemError(RemovalError):
    """A removal failed for a reason other than the entry being absent."""


class Strategy(Enum):
    NOTHING = "nothing"
    SYMLINK = "symlink"
    SINGLE_FILE = "single file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class RemovalPlan:
    root: Path
    strategy: Strategy
    files: Tuple[Path, ...] = field(default_factory=tuple)
    directories: Tuple[Path, ...] = field(default_factory=tuple)

    @property
    def paths(self) -> Sequence[Path]:
        """Every path the plan removes, in removal order."""
        if self.strategy is Strategy.NOTHING:
            return []
        if self.strategy is Strategy.DIRECTORY:
            return [*self.files, *self.directories, self.root]
        return [self.root]


def _is_within(path: Path, root: Path) -> bool:
    return root in path.parents


def _implied_directories(files: Iterable[PurePath]) -> Set[PurePath]:
    directories: Set[PurePath] = set()
    for file in files:
        directories.update(parent for parent in file.parents if parent != PurePath())
    return directories


def _by_depth(directories: Iterable[PurePath]) -> Sequence[PurePath]:
    # deepest first, so children are emptied before their parents
    return sorted(directories, key=lambda d: (-len(str(d)), str(d)))


def _inspect(fs: Filesystem, path: Path) -> EntryKind:
    try:
        return fs.kind(path)
    except OSError as e:
        raise FilesystemError("failed to inspect", path, e) from e


class DescriptorRemover:
    def __init__(self, fs: Filesystem):
        self.fs = fs

    def remove(self, watch_file: Optional[Path], session_file: Optional[Path]):
        """Tries both descriptors, then raises the first failure."""
        errors: List[FilesystemError] = []
        for path in (watch_file, session_file):
            if path is None:
                continue
            try:
                self._remove(path)
            except FilesystemError as e:
                errors.append(e)
        for error in errors[1:]:
            logger.warning(f"descriptor removal failed: {error}")
        if errors:
            raise errors[0]

    def plan(
        self, watch_file: Optional[Path], session_file: Optional[Path]
    ) -> Sequence[Path]:
        return [
            path
            for path in (watch_file, session_file)
            if path is not None and _inspect(self.fs, path) is not EntryKind.MISSING
        ]

    def _remove(self, path: Path):
        try:
            self.fs.remove_file(path)
            logger.info(f"removed descriptor {path}")
        except FileNotFoundError:
            logger.debug(f"descriptor already absent {path}")
        except OSError as e:
            raise FilesystemError("failed to remove descriptor", path, e) from e


class ContentRemover:
    def __init__(self, fs: Filesystem):
        self.fs = fs

    def remove(self, root: Path, files: Sequence[PurePath]) -> RemovalPlan:
        plan = self.plan(root, files)
        if plan.strategy is Strategy.NOTHING:
            logger.info(f"content already absent {root}")
        elif plan.strategy is Strategy.DIRECTORY:
            for path in plan.files:
                self._remove_file(path)
            for path in plan.directories:
                self._remove_directory(path)
            self._remove_directory(plan.root)
        else:
            self._remove_file(plan.root)
        return plan

    def plan(self, root: Path, files: Sequence[PurePath]) -> RemovalPlan:
        """Validates root and files against the filesystem and returns what removal would do.

        Raises IntegrityFault without touching anything when a precondition fails,
        and FilesystemError when the root cannot be inspected.
        """
        self._validate_root(root)
        files = [PurePath(file) for file in files]
        for file in files:
            if file.is_absolute():
                raise IntegrityFault("declared file is not relative", Path(file))

        kind = _inspect(self.fs, root)
        if kind is EntryKind.MISSING:
            return RemovalPlan(root, Strategy.NOTHING)
        elif kind is EntryKind.SYMLINK:
            return RemovalPlan(root, Strategy.SYMLINK)
        elif kind is EntryKind.FILE:
            self._validate_single_file(root, files)
            return RemovalPlan(root, Strategy.SINGLE_FILE)
        elif kind is EntryKind.DIRECTORY:
            return self._plan_directory(root, files)
        raise IntegrityFault("content is neither file, directory nor symlink", root)

    @staticmethod
    def _validate_root(root: Path):
        if not root.is_absolute():
            raise IntegrityFault("content root is not absolute", root)
        if root == Path(root.anchor) or len(str(root)) <= 1:
            raise IntegrityFault("refusing to remove filesystem root", root)

    @staticmethod
    def _validate_single_file(root: Path, files: Sequence[PurePath]):
        if len(files) != 1:
            raise IntegrityFault(
                f"single-file content declares {len(files)} files", root
            )
        file = files[0]
        if len(file.parts) == 0 or root.parts[-len(file.parts):] != file.parts:
            raise IntegrityFault(f"single-file content does not match {file}", root)

    def _plan_directory(self, root: Path, files: Sequence[PurePath]) -> RemovalPlan:
        if len(files) == 0:
            raise IntegrityFault("directory content declares no files", root)
        canonical_root = self._canonical(root)
        absolute_files = tuple(
            self._contained(canonical_root, root / file) for file in files
        )
        directories = tuple(
            self._contained(canonical_root, root / directory)
            for directory in _by_depth(_implied_directories(files))
        )
        return RemovalPlan(
            canonical_root, Strategy.DIRECTORY, absolute_files, directories
        )

    def _canonical(self, path: Path) -> Path:
        # symlink loops raise RuntimeError before Python 3.13
        try:
            return self.fs.canonical(path)
        except (OSError, RuntimeError) as e:
            raise IntegrityFault("failed to resolve", path, e) from e

    def _contained(self, canonical_root: Path, path: Path) -> Path:
        canonical = self._canonical(path)
        if not _is_within(canonical, canonical_root):
            raise IntegrityFault(f"path escapes content root {canonical_root}", path)
        return canonical

    def _remove_file(self, path: Path):
        try:
            self.fs.remove_file(path)
            logger.debug(f"removed file {path}")
        except FileNotFoundError:
            logger.debug(f"file already absent {path}")
        except OSError as e:
            raise FilesystemError("failed to remove file", path, e) from e

    def _remove_directory(self, path: Path):
        try:
            self.fs.remove_directory(path)
            logger.debug(f"removed directory {path}")
        except FileNotFoundError:
            logger.debug(f"directory already absent {path}")
        except OSError as e:
            raise FilesystemError("failed to remove directory", path, e) from e
