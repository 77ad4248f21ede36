import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Sequence, MutableSequence, Optional

from rtprune.domain.torrent import Candidate, TorrentPaths, AnnounceUrl
from rtprune.external.filesystem import Filesystem
from rtprune.external.result import QueryResult
from rtprune.external.rtorrent import RTorrentApi, RTorrentError
from rtprune.service.remove import (
    DescriptorRemover,
    ContentRemover,
    RemovalError,
    RemovalPlan,
)

logger = logging.getLogger(__name__)

DEFAULT_VIEW = "default"


@dataclass
class RemovalOutcome:
    paths: TorrentPaths
    plan: Optional[RemovalPlan] = None
    errors: MutableSequence[RemovalError] = field(default_factory=list)
    # descriptors found on disk, filled in by a plan
    descriptors: Sequence[Path] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0


def _unwrap(query: QueryResult, description: str):
    if not query.success:
        raise RTorrentError(f"{description} query failed: {query.error}")
    return query.value


class PruneService:
    def __init__(self, api: RTorrentApi, fs: Filesystem, view: str = DEFAULT_VIEW):
        self.api = api
        self.fs = fs
        self.view = view
        self.descriptor_remover = DescriptorRemover(fs)
        self.content_remover = ContentRemover(fs)

    def get_unregistered(self) -> Sequence[Candidate]:
        candidates = _unwrap(self.api.get_candidates(self.view), "d.multicall2") or []
        return [candidate for candidate in candidates if candidate.is_unregistered]

    def get_tracker_host(self, candidate: Candidate) -> Optional[str]:
        urls = _unwrap(self.api.get_tracker_urls(candidate.info_hash), "t.multicall")
        if not urls:
            return None
        return AnnounceUrl(urls[0]).short_host

    def get_paths(self, candidate: Candidate) -> TorrentPaths:
        info_hash = candidate.info_hash
        content_root = _unwrap(self.api.get_content_root(info_hash), "d.base_path")
        watch_file, session_file = _unwrap(
            self.api.get_descriptor_paths(info_hash), "descriptor"
        )
        files = _unwrap(self.api.get_content_files(info_hash), "f.multicall") or []
        return TorrentPaths(
            content_root=self.fs.expand(content_root),
            watch_file=self._expand_descriptor(watch_file),
            session_file=self._expand_descriptor(session_file),
            files=tuple(PurePath(file) for file in files),
        )

    def _expand_descriptor(self, raw_path: str) -> Optional[Path]:
        # rTorrent reports an empty string when a torrent wasn't loaded from a file
        if not raw_path:
            return None
        return self.fs.expand(raw_path)

    def remove(self, paths: TorrentPaths) -> RemovalOutcome:
        """Removes descriptors, then content; errors from either are collected, not raised."""
        outcome = RemovalOutcome(paths)
        try:
            self.descriptor_remover.remove(paths.watch_file, paths.session_file)
        except RemovalError as e:
            logger.warning(f"descriptor removal failed: {e}")
            outcome.errors.append(e)
        try:
            outcome.plan = self.content_remover.remove(paths.content_root, paths.files)
        except RemovalError as e:
            logger.warning(f"content removal failed: {e}")
            outcome.errors.append(e)
        return outcome

    def plan(self, paths: TorrentPaths) -> RemovalOutcome:
        outcome = RemovalOutcome(paths)
        try:
            outcome.descriptors = self.descriptor_remover.plan(
                paths.watch_file, paths.session_file
            )
            outcome.plan = self.content_remover.plan(paths.content_root, paths.files)
        except RemovalError as e:
            outcome.errors.append(e)
        return outcome
