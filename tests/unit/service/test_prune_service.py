import errno
from pathlib import Path, PurePath

import pytest
from pytest_mock import MockerFixture

from rtprune.domain.torrent import Candidate, TorrentPaths
from rtprune.external.result import QueryResult
from rtprune.external.rtorrent import RTorrentApi, RTorrentError
from rtprune.service.remove import IntegrityFault, FilesystemError, Strategy
from rtprune.service.torrent import PruneService
from tests.mock_fs import MockFilesystem

UNREGISTERED = 'Tracker: [Failure reason "Unregistered torrent"]'


def make_api(mocker: MockerFixture) -> RTorrentApi:
    api = mocker.Mock(spec=RTorrentApi)
    api.get_content_root.return_value = QueryResult(value="~/downloads/show")
    api.get_descriptor_paths.return_value = QueryResult(
        value=("~/watch/show.torrent", "~/.session/AAA.torrent")
    )
    api.get_content_files.return_value = QueryResult(value=["S01/e1.mkv"])
    api.get_tracker_urls.return_value = QueryResult(
        value=["https://tracker.example.org:443/announce", "udp://backup.org:80"]
    )
    return api


def test_get_unregistered(mocker: MockerFixture):
    api = make_api(mocker)
    api.get_candidates.return_value = QueryResult(
        value=[
            Candidate("AAA", "unregistered", UNREGISTERED),
            Candidate("BBB", "fine", ""),
            Candidate("CCC", "timeout", "Tracker: [Timeout was reached]"),
            Candidate("DDD", "shouting", UNREGISTERED.upper()),
        ]
    )
    service = PruneService(api, MockFilesystem({}), "seeding")

    result = service.get_unregistered()

    api.get_candidates.assert_called_once_with("seeding")
    assert [candidate.info_hash for candidate in result] == ["AAA", "DDD"]


def test_get_unregistered_query_failure(mocker: MockerFixture):
    api = make_api(mocker)
    api.get_candidates.return_value = QueryResult(success=False, error="boom")
    service = PruneService(api, MockFilesystem({}))

    with pytest.raises(RTorrentError):
        service.get_unregistered()


def test_get_paths_expands_home(mocker: MockerFixture):
    api = make_api(mocker)
    service = PruneService(api, MockFilesystem({}))

    paths = service.get_paths(Candidate("AAA", "show", UNREGISTERED))

    assert paths == TorrentPaths(
        content_root=Path("/home/user/downloads/show"),
        watch_file=Path("/home/user/watch/show.torrent"),
        session_file=Path("/home/user/.session/AAA.torrent"),
        files=(PurePath("S01/e1.mkv"),),
    )


def test_get_paths_without_watch_file(mocker: MockerFixture):
    api = make_api(mocker)
    api.get_descriptor_paths.return_value = QueryResult(value=("", "/session/AAA.torrent"))
    service = PruneService(api, MockFilesystem({}))

    paths = service.get_paths(Candidate("AAA", "show", UNREGISTERED))

    assert paths.watch_file is None
    assert paths.session_file == Path("/session/AAA.torrent")


def test_get_tracker_host(mocker: MockerFixture):
    api = make_api(mocker)
    service = PruneService(api, MockFilesystem({}))

    host = service.get_tracker_host(Candidate("AAA", "show", UNREGISTERED))

    assert host == "tracker.example.org"


def test_get_tracker_host_without_trackers(mocker: MockerFixture):
    api = make_api(mocker)
    api.get_tracker_urls.return_value = QueryResult(value=[])
    service = PruneService(api, MockFilesystem({}))

    assert service.get_tracker_host(Candidate("AAA", "show", UNREGISTERED)) is None


def test_remove_descriptors_then_content(mocker: MockerFixture):
    fs = MockFilesystem(
        {
            "watch": "show.torrent",
            "session": "AAA.torrent",
            "data": {"show": {"S01": "e1.mkv"}},
        }
    )
    service = PruneService(make_api(mocker), fs)
    paths = TorrentPaths(
        Path("/data/show"),
        Path("/watch/show.torrent"),
        Path("/session/AAA.torrent"),
        (PurePath("S01/e1.mkv"),),
    )

    outcome = service.remove(paths)

    assert outcome.success
    assert outcome.plan.strategy == Strategy.DIRECTORY
    assert fs.removed == [
        Path("/watch/show.torrent"),
        Path("/session/AAA.torrent"),
        Path("/data/show/S01/e1.mkv"),
        Path("/data/show/S01"),
        Path("/data/show"),
    ]


def test_remove_with_descriptors_already_gone(mocker: MockerFixture):
    fs = MockFilesystem({"data": ["movie.mkv"]})
    service = PruneService(make_api(mocker), fs)
    paths = TorrentPaths(
        Path("/data/movie.mkv"),
        Path("/watch/movie.torrent"),
        Path("/session/AAA.torrent"),
        (PurePath("movie.mkv"),),
    )

    outcome = service.remove(paths)

    assert outcome.success
    assert fs.removed == [Path("/data/movie.mkv")]


def test_remove_continues_after_descriptor_failure(mocker: MockerFixture):
    fs = MockFilesystem({"watch": {"show.torrent": []}, "data": ["movie.mkv"]})
    service = PruneService(make_api(mocker), fs)
    # a directory where the watch file should be cannot be unlinked
    paths = TorrentPaths(
        Path("/data/movie.mkv"),
        Path("/watch/show.torrent"),
        None,
        (PurePath("movie.mkv"),),
    )

    outcome = service.remove(paths)

    assert not outcome.success
    assert len(outcome.errors) == 1
    assert isinstance(outcome.errors[0], FilesystemError)
    assert fs.removed == [Path("/data/movie.mkv")]


def test_remove_collects_integrity_fault(mocker: MockerFixture):
    fs = MockFilesystem({"data": {"show": "e1.mkv"}, "escape.mkv": []})
    service = PruneService(make_api(mocker), fs)
    paths = TorrentPaths(
        Path("/data/show"), None, None, (PurePath("../../escape.mkv"),)
    )

    outcome = service.remove(paths)

    assert isinstance(outcome.errors[0], IntegrityFault)
    assert fs.removed == []


def test_plan_does_not_touch_descriptors(mocker: MockerFixture):
    fs = MockFilesystem({"watch": "show.torrent", "data": ["movie.mkv"]})
    service = PruneService(make_api(mocker), fs)
    paths = TorrentPaths(
        Path("/data/movie.mkv"), Path("/watch/show.torrent"), None, (PurePath("movie.mkv"),)
    )

    outcome = service.plan(paths)

    assert outcome.success
    assert outcome.plan.paths == [Path("/data/movie.mkv")]
    assert fs.removed == []


def test_plan_lists_descriptors_present(mocker: MockerFixture):
    fs = MockFilesystem({"watch": "show.torrent", "data": ["movie.mkv"]})
    service = PruneService(make_api(mocker), fs)
    paths = TorrentPaths(
        Path("/data/movie.mkv"),
        Path("/watch/show.torrent"),
        Path("/session/AAA.torrent"),
        (PurePath("movie.mkv"),),
    )

    outcome = service.plan(paths)

    assert outcome.descriptors == [Path("/watch/show.torrent")]
    assert fs.removed == []


def test_remove_collects_inspection_error(mocker: MockerFixture):
    fs = MockFilesystem({"data": {"show": "e1.mkv"}})
    mocker.patch.object(
        fs, "kind", side_effect=PermissionError(errno.EACCES, "Permission denied", "/data/show")
    )
    service = PruneService(make_api(mocker), fs)
    paths = TorrentPaths(Path("/data/show"), None, None, (PurePath("e1.mkv"),))

    outcome = service.remove(paths)

    assert isinstance(outcome.errors[0], FilesystemError)
    assert fs.removed == []
