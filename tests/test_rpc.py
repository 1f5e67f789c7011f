"""Tests for peercrawl.rpc — HTTP fetching and response decoding."""

import json
from unittest.mock import MagicMock

import pytest
import requests
from http.client import InvalidURL
from urllib3.exceptions import LocationParseError

from peercrawl.rpc import (
    DecodeError,
    RpcClient,
    RpcError,
    TransportError,
    parse_peers,
    parse_status,
)

ENDPOINT = "http://203.0.113.5:26657"


def _response(body: bytes | dict | list) -> MagicMock:
    """Build a fake ``requests.Response`` returning *body*."""
    if not isinstance(body, bytes):
        body = json.dumps(body).encode()
    resp = MagicMock()
    resp.content = body
    resp.raise_for_status.return_value = None
    return resp


def _client(resp: MagicMock | None = None, **kwargs: object) -> RpcClient:
    session = MagicMock()
    session.headers = {}
    if resp is not None:
        session.get.return_value = resp
    return RpcClient(5.0, session=session, **kwargs)


def _status_payload(network: str = "test-chain-1") -> dict:
    return {
        "jsonrpc": "2.0",
        "result": {
            "node_info": {
                "id": "abc123",
                "network": network,
                "moniker": "seed-0",
                "version": "0.38.0",
            },
            "sync_info": {"latest_block_height": "1234"},
        },
    }


def _net_info_payload(*peers: dict) -> dict:
    return {"jsonrpc": "2.0", "result": {"n_peers": str(len(peers)), "peers": list(peers)}}


def _peer_entry(
    ip: str = "198.51.100.7",
    moniker: str = "validator-1",
    version: str = "0.38.0",
    rpc_address: str = "tcp://0.0.0.0:26657",
) -> dict:
    return {
        "node_info": {
            "id": "def456",
            "moniker": moniker,
            "version": version,
            "other": {"tx_index": "on", "rpc_address": rpc_address},
        },
        "is_outbound": True,
        "remote_ip": ip,
    }


# ------------------------------------------------------------------
# fetch
# ------------------------------------------------------------------


class TestFetch:
    """fetch() issues one GET and maps failures to TransportError."""

    def test_returns_raw_body(self) -> None:
        client = _client(_response(b"hello"))
        assert client.fetch(ENDPOINT, "/status") == b"hello"

    def test_uses_endpoint_plus_path_and_timeout(self) -> None:
        client = _client(_response(b"{}"))
        client.fetch(ENDPOINT, "/net_info")
        client._session.get.assert_called_once_with(
            "http://203.0.113.5:26657/net_info", timeout=5.0
        )

    @pytest.mark.parametrize(
        "exc",
        [
            requests.ConnectionError("connection refused"),
            requests.Timeout("read timed out"),
        ],
    )
    def test_request_failure_raises_transport_error(self, exc: Exception) -> None:
        client = _client()
        client._session.get.side_effect = exc
        with pytest.raises(TransportError, match="GET /status failed") as exc_info:
            client.fetch(ENDPOINT, "/status")
        assert exc_info.value.endpoint == ENDPOINT
        assert exc_info.value.__cause__ is exc

    def test_non_2xx_raises_transport_error(self) -> None:
        resp = _response(b"oops")
        resp.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        client = _client(resp)
        with pytest.raises(TransportError, match="500"):
            client.fetch(ENDPOINT, "/status")

    def test_unparseable_host_raises_transport_error(self) -> None:
        client = _client()
        client._session.get.side_effect = LocationParseError("x" * 70 + ".example")
        with pytest.raises(TransportError, match="GET /status failed") as exc_info:
            client.fetch(ENDPOINT, "/status")
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_invalid_url_raises_transport_error(self) -> None:
        client = _client()
        client._session.get.side_effect = InvalidURL("bad port")
        with pytest.raises(TransportError):
            client.get_status(ENDPOINT)

    def test_no_retry(self) -> None:
        client = _client()
        client._session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransportError):
            client.fetch(ENDPOINT, "/status")
        assert client._session.get.call_count == 1


class TestFetchJson:
    """fetch_json() decodes bodies into dicts."""

    def test_decodes_object(self) -> None:
        client = _client(_response({"result": {}}))
        assert client.fetch_json(ENDPOINT, "/status") == {"result": {}}

    def test_invalid_json_raises_decode_error(self) -> None:
        client = _client(_response(b"<html>bad gateway</html>"))
        with pytest.raises(DecodeError, match="invalid JSON"):
            client.fetch_json(ENDPOINT, "/status")

    def test_deeply_nested_json_raises_decode_error(self) -> None:
        depth = 200_000
        client = _client(_response(b"[" * depth + b"]" * depth))
        with pytest.raises(DecodeError, match="invalid JSON"):
            client.fetch_json(ENDPOINT, "/status")

    def test_non_object_raises_decode_error(self) -> None:
        client = _client(_response([1, 2, 3]))
        with pytest.raises(DecodeError, match="expected a JSON object"):
            client.fetch_json(ENDPOINT, "/status")

    def test_decode_error_is_rpc_error_not_transport_error(self) -> None:
        client = _client(_response(b"not json"))
        with pytest.raises(RpcError) as exc_info:
            client.fetch_json(ENDPOINT, "/status")
        assert not isinstance(exc_info.value, TransportError)


# ------------------------------------------------------------------
# get_status / get_peers
# ------------------------------------------------------------------


class TestGetStatus:
    """get_status() reads result.node_info.network."""

    def test_parses_network(self) -> None:
        client = _client(_response(_status_payload("cosmoshub-4")))
        assert client.get_status(ENDPOINT).network == "cosmoshub-4"

    def test_queries_status_path(self) -> None:
        client = _client(_response(_status_payload()), status_path="/rpc/status")
        client.get_status(ENDPOINT)
        url = client._session.get.call_args.args[0]
        assert url == ENDPOINT + "/rpc/status"

    def test_missing_network_raises_decode_error(self) -> None:
        client = _client(_response({"result": {"node_info": {}}}))
        with pytest.raises(DecodeError, match="node_info.network"):
            client.get_status(ENDPOINT)

    def test_missing_result_raises_decode_error(self) -> None:
        client = _client(_response({"error": "method not found"}))
        with pytest.raises(DecodeError):
            client.get_status(ENDPOINT)


class TestGetPeers:
    """get_peers() reads result.peers[]."""

    def test_parses_peer_fields(self) -> None:
        client = _client(_response(_net_info_payload(_peer_entry())))
        peers = client.get_peers(ENDPOINT)
        assert len(peers) == 1
        peer = peers[0]
        assert peer.remote_ip == "198.51.100.7"
        assert peer.moniker == "validator-1"
        assert peer.version == "0.38.0"
        assert peer.rpc_address == "tcp://0.0.0.0:26657"
        assert peer.node_id == "def456"

    def test_preserves_order(self) -> None:
        payload = _net_info_payload(
            _peer_entry(ip="10.0.0.3"), _peer_entry(ip="10.0.0.1")
        )
        peers = _client(_response(payload)).get_peers(ENDPOINT)
        assert [p.remote_ip for p in peers] == ["10.0.0.3", "10.0.0.1"]

    def test_queries_net_info_path(self) -> None:
        client = _client(_response(_net_info_payload()))
        client.get_peers(ENDPOINT)
        client._session.get.assert_called_once_with(
            ENDPOINT + "/net_info", timeout=5.0
        )

    def test_empty_peer_list(self) -> None:
        assert _client(_response(_net_info_payload())).get_peers(ENDPOINT) == []

    def test_missing_peers_raises_decode_error(self) -> None:
        client = _client(_response({"result": {}}))
        with pytest.raises(DecodeError, match="result.peers"):
            client.get_peers(ENDPOINT)


# ------------------------------------------------------------------
# parse helpers and session handling
# ------------------------------------------------------------------


class TestParsers:
    """Pure decoding helpers."""

    def test_peer_missing_fields_default_to_empty(self) -> None:
        peers = parse_peers(ENDPOINT, _net_info_payload({"remote_ip": "10.0.0.1"}))
        assert peers[0].moniker == ""
        assert peers[0].version == ""
        assert peers[0].rpc_address == ""

    def test_non_dict_peer_entry_raises(self) -> None:
        with pytest.raises(DecodeError, match="unexpected peer entry"):
            parse_peers(ENDPOINT, _net_info_payload("10.0.0.1"))  # type: ignore[arg-type]


class TestSession:
    """Session configuration and lifecycle."""

    def test_sets_user_agent(self) -> None:
        client = _client(user_agent="peercrawl/test")
        assert client._session.headers["User-Agent"] == "peercrawl/test"

    def test_context_manager_closes_session(self) -> None:
        client = _client()
        with client as entered:
            assert entered is client
        client._session.close.assert_called_once()

    def test_creates_session_when_omitted(self) -> None:
        client = RpcClient(3.0)
        assert isinstance(client._session, requests.Session)
        client.close()
