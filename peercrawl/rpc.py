"""HTTP JSON-RPC client for a node's status and peer-list endpoints."""

import json
import logging

import requests

from peercrawl.models import NodeStatus, PeerRecord

logger = logging.getLogger(__name__)

DEFAULT_STATUS_PATH = "/status"
DEFAULT_NET_INFO_PATH = "/net_info"


class RpcError(Exception):
    """Base class for node-local RPC failures.

    Attributes:
        endpoint: Base URL of the node that failed.
    """

    def __init__(self, endpoint: str, message: str) -> None:
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint


class TransportError(RpcError):
    """Connection failure, timeout, non-2xx HTTP status, or unparseable URL."""


class DecodeError(RpcError):
    """Response body is not JSON or lacks an expected field."""


class RpcClient:
    """Thin wrapper around a ``requests.Session`` for node RPC queries.

    Every request uses the same per-request *timeout*.  Nothing is
    retried here; retry policy belongs to callers.

    Args:
        timeout: Per-request timeout in seconds.
        session: Session to issue requests with.  A new one is created
            when omitted.
        status_path: Path of the status endpoint.
        net_info_path: Path of the peer-list endpoint.
        user_agent: ``User-Agent`` header value.
    """

    def __init__(
        self,
        timeout: float,
        *,
        session: requests.Session | None = None,
        status_path: str = DEFAULT_STATUS_PATH,
        net_info_path: str = DEFAULT_NET_INFO_PATH,
        user_agent: str | None = None,
    ) -> None:
        self.timeout = timeout
        self.status_path = status_path
        self.net_info_path = net_info_path
        self._session = session if session is not None else requests.Session()
        if user_agent:
            self._session.headers["User-Agent"] = user_agent

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def fetch(self, endpoint: str, path: str) -> bytes:
        """GET ``endpoint + path`` and return the raw response body.

        Raises:
            TransportError: On connection failure, timeout, a non-2xx
                status code, or a URL that cannot be parsed.
        """
        url = endpoint + path
        logger.debug("GET %s (timeout=%ss)", url, self.timeout)
        try:
            resp = self._session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except (requests.RequestException, ValueError) as exc:
            # urllib3 raises LocationParseError (a ValueError) for bad hosts.
            raise TransportError(endpoint, f"GET {path} failed: {exc}") from exc
        return resp.content

    def fetch_json(self, endpoint: str, path: str) -> dict:
        """GET ``endpoint + path`` and decode the body as a JSON object.

        Raises:
            TransportError: See ``fetch``.
            DecodeError: If the body is not a JSON object.
        """
        body = self.fetch(endpoint, path)
        try:
            payload = json.loads(body)
        except (ValueError, RecursionError) as exc:
            raise DecodeError(endpoint, f"invalid JSON from {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise DecodeError(
                endpoint,
                f"expected a JSON object from {path}, got {type(payload).__name__}",
            )
        return payload

    def get_status(self, endpoint: str) -> NodeStatus:
        """Query the status endpoint and decode the node's identity.

        Raises:
            TransportError: See ``fetch``.
            DecodeError: If ``result.node_info.network`` is missing.
        """
        payload = self.fetch_json(endpoint, self.status_path)
        return parse_status(endpoint, payload)

    def get_peers(self, endpoint: str) -> list[PeerRecord]:
        """Query the peer-list endpoint and decode its peer entries.

        Raises:
            TransportError: See ``fetch``.
            DecodeError: If ``result.peers`` is missing or not a list.
        """
        payload = self.fetch_json(endpoint, self.net_info_path)
        return parse_peers(endpoint, payload)


def parse_status(endpoint: str, payload: dict) -> NodeStatus:
    """Build a ``NodeStatus`` from a decoded status response.

    Only ``result.node_info.network`` is read.
    """
    result = _mapping(payload.get("result"))
    node_info = _mapping(result.get("node_info"))
    network = node_info.get("network")
    if not isinstance(network, str):
        raise DecodeError(endpoint, "status response lacks result.node_info.network")

    return NodeStatus(network=network)


def parse_peers(endpoint: str, payload: dict) -> list[PeerRecord]:
    """Build ``PeerRecord`` objects from a decoded peer-list response.

    Missing string fields of a single entry default to ``""`` so one
    sloppy entry never hides its siblings.
    """
    result = _mapping(payload.get("result"))
    raw_peers = result.get("peers")
    if not isinstance(raw_peers, list):
        raise DecodeError(endpoint, "peer-list response lacks result.peers")

    peers: list[PeerRecord] = []
    for entry in raw_peers:
        if not isinstance(entry, dict):
            raise DecodeError(
                endpoint, f"unexpected peer entry type {type(entry).__name__}"
            )
        node_info = _mapping(entry.get("node_info"))
        other = _mapping(node_info.get("other"))
        peers.append(
            PeerRecord(
                remote_ip=_text(entry.get("remote_ip")),
                moniker=_text(node_info.get("moniker")),
                version=_text(node_info.get("version")),
                rpc_address=_text(other.get("rpc_address")),
                node_id=node_info.get("id"),
            )
        )
    return peers


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mapping(value: object) -> dict:
    """Return *value* if it is a dict, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def _text(value: object) -> str:
    """Coerce a JSON scalar to ``str``; ``None`` becomes ``""``."""
    if value is None:
        return ""
    return str(value)
