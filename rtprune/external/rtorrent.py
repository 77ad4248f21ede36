import http.client
import logging
import xmlrpc.client
from typing import Mapping, Protocol, Sequence, Tuple, Any

from rtprune.domain.torrent import Candidate
from rtprune.external.result import QueryResult

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "http://localhost/RPC2"


def rtorrent_factory(args: Mapping) -> xmlrpc.client.ServerProxy:
    address = args.get("--address") or DEFAULT_ADDRESS
    # rtprune --address http://rtorrent:8000/RPC2 prune --dry-run
    return xmlrpc.client.ServerProxy(address)


class RTorrentError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


class RTorrentApi(Protocol):
    def get_candidates(self, view: str) -> QueryResult[Sequence[Candidate]]:
        raise NotImplementedError

    def get_content_root(self, info_hash: str) -> QueryResult[str]:
        raise NotImplementedError

    def get_descriptor_paths(self, info_hash: str) -> QueryResult[Tuple[str, str]]:
        """Returns (watch file, session file)."""
        raise NotImplementedError

    def get_content_files(self, info_hash: str) -> QueryResult[Sequence[str]]:
        raise NotImplementedError

    def get_tracker_urls(self, info_hash: str) -> QueryResult[Sequence[str]]:
        raise NotImplementedError


class XmlRpcApi(RTorrentApi):
    def __init__(self, server: xmlrpc.client.ServerProxy):
        self.server = server

    def _call(self, method: str, *args) -> QueryResult[Any]:
        rpc_method = self.server
        for part in method.split("."):
            rpc_method = getattr(rpc_method, part)
        try:
            return QueryResult(value=rpc_method(*args))
        except xmlrpc.client.Fault as e:
            logger.warning(f"{method} fault {e.faultCode}: {e.faultString}")
            return QueryResult(error=e.faultString, success=False)
        except xmlrpc.client.ProtocolError as e:
            logger.warning(f"{method} protocol error {e.errcode}: {e.errmsg}")
            return QueryResult(error=f"HTTP {e.errcode}: {e.errmsg}", success=False)
        except (OSError, http.client.HTTPException) as e:
            logger.warning(f"{method} connection failed: {e!r}")
            return QueryResult(error=f"connection failed ({e!r})", success=False)

    def get_candidates(self, view: str) -> QueryResult[Sequence[Candidate]]:
        # the empty string is the (unused) target argument rTorrent requires
        result = self._call("d.multicall2", "", view, "d.hash=", "d.name=", "d.message=")
        if not result.success:
            return QueryResult(error=result.error, success=False)
        rows = result.value or []
        return QueryResult(
            value=[
                Candidate(info_hash=info_hash, name=name, message=message)
                for (info_hash, name, message) in rows
            ]
        )

    def get_content_root(self, info_hash: str) -> QueryResult[str]:
        return self._call("d.base_path", info_hash)

    def get_descriptor_paths(self, info_hash: str) -> QueryResult[Tuple[str, str]]:
        watch = self._call("d.tied_to_file", info_hash)
        if not watch.success:
            return QueryResult(error=watch.error, success=False)
        session = self._call("d.loaded_file", info_hash)
        if not session.success:
            return QueryResult(error=session.error, success=False)
        return QueryResult(value=(watch.value, session.value))

    def get_content_files(self, info_hash: str) -> QueryResult[Sequence[str]]:
        result = self._call("f.multicall", info_hash, "", "f.path=")
        if not result.success:
            return QueryResult(error=result.error, success=False)
        return QueryResult(value=[path for (path,) in result.value or []])

    def get_tracker_urls(self, info_hash: str) -> QueryResult[Sequence[str]]:
        result = self._call("t.multicall", info_hash, "", "t.url=")
        if not result.success:
            return QueryResult(error=result.error, success=False)
        return QueryResult(value=[url for (url,) in result.value or []])
