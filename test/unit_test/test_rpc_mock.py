"""
Test RPC Client with Mocks

Tests for RPC client behavior with mocked HTTP responses.
"""

import sys
import json
from pathlib import Path
from unittest.mock import patch

import httpx

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from near_client.infra.rpc import RpcClient, RpcClientConfig
from near_client.errors import ConfigurationError, ErrorCode, RpcError, TransportError

ENDPOINT = "https://rpc.testnet.near.org"


def _client(handler, max_retries: int = 0) -> RpcClient:
    """RpcClient whose HTTP client answers through ``handler``"""
    rpc = RpcClient(ENDPOINT, config=RpcClientConfig(
        timeout_seconds=5.0,
        max_retries=max_retries,
        retry_delay_seconds=0.0,
    ))
    rpc._client = httpx.Client(transport=httpx.MockTransport(handler))
    return rpc


def test_rpc_config_defaults():
    """Test RpcClientConfig default values from global config"""
    print("Testing RpcClientConfig defaults...")

    config = RpcClientConfig()

    assert config.timeout_seconds > 0, "Should have positive timeout"
    assert config.max_retries >= 0, "Should have non-negative retries"
    assert config.retry_delay_seconds >= 0

    print("  RpcClientConfig defaults: PASSED")


def test_rpc_config_override():
    """Test RpcClientConfig with overrides"""
    config = RpcClientConfig(timeout_seconds=60.0, max_retries=5)

    assert config.timeout_seconds == 60.0, "Should use override timeout"
    assert config.max_retries == 5, "Should use override retries"

    print("  RpcClientConfig override: PASSED")


@patch("near_client.infra.rpc.global_config")
def test_rpc_client_requires_endpoint(mock_config):
    """Empty endpoint with no configured default raises ConfigurationError"""
    mock_config.rpc.url = ""
    try:
        RpcClient("", config=RpcClientConfig(timeout_seconds=1.0, max_retries=0, retry_delay_seconds=0.0))
        assert False, "Should raise for missing endpoint"
    except ConfigurationError as e:
        assert e.code == ErrorCode.CONFIG_MISSING

    print("  RpcClient endpoint required: PASSED")


def test_request_envelope():
    """Requests use the JSON-RPC 2.0 envelope with id 'dontcare'"""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": "dontcare", "result": {"ok": True}})

    rpc = _client(handler)
    result = rpc.query({"request_type": "view_account", "finality": "final", "account_id": "alice.testnet"})

    assert result == {"ok": True}
    assert seen == [{
        "jsonrpc": "2.0",
        "id": "dontcare",
        "method": "query",
        "params": {"request_type": "view_account", "finality": "final", "account_id": "alice.testnet"},
    }]

    print("  Request envelope: PASSED")


def test_tx_status_params():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": "dontcare", "result": {}})

    _client(handler).tx_status("9FtHUFBQ", "alice.testnet")

    assert seen[0]["method"] == "EXPERIMENTAL_tx_status"
    assert seen[0]["params"] == ["9FtHUFBQ", "alice.testnet"]


def test_rpc_error_preserved():
    """JSON-RPC errors become RpcError with the envelope intact"""
    error = {
        "name": "HANDLER_ERROR",
        "cause": {"name": "INVALID_TRANSACTION", "info": {"TxExecutionError": {}}},
        "code": -32000,
        "message": "Server error",
        "data": {"TxExecutionError": {}},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": "dontcare", "error": error})

    try:
        _client(handler).broadcast_tx_commit("AAAA")
        assert False, "Should raise RpcError"
    except RpcError as e:
        assert e.name == "HANDLER_ERROR"
        assert e.cause_name == "INVALID_TRANSACTION"
        assert e.rpc_code == -32000
        assert e.data == {"TxExecutionError": {}}

    print("  RPC error preserved: PASSED")


def test_rpc_error_with_http_error_status():
    """Some node errors arrive with a non-2xx status and a JSON-RPC body"""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(408, json={
            "jsonrpc": "2.0",
            "id": "dontcare",
            "error": {"name": "HANDLER_ERROR", "cause": {"name": "TIMEOUT_ERROR"}, "code": -32000},
        })

    try:
        _client(handler).broadcast_tx_commit("AAAA")
        assert False, "Should raise RpcError"
    except RpcError as e:
        assert e.cause_name == "TIMEOUT_ERROR"


def test_string_error_member_is_rpc_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": "dontcare", "error": "Too many requests"})

    try:
        _client(handler).status()
        assert False, "Should raise RpcError"
    except RpcError as e:
        assert e.message == "Too many requests"


def test_http_error_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    try:
        _client(handler).status()
        assert False, "Should raise TransportError"
    except TransportError as e:
        assert e.code == ErrorCode.TRANSPORT_HTTP_ERROR
        assert e.status_code == 502

    print("  HTTP error mapping: PASSED")


def test_invalid_json_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    try:
        _client(handler).status()
        assert False, "Should raise TransportError"
    except TransportError as e:
        assert e.code == ErrorCode.TRANSPORT_INVALID_RESPONSE


def test_timeout_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    try:
        _client(handler).status()
        assert False, "Should raise TransportError"
    except TransportError as e:
        assert e.code == ErrorCode.TRANSPORT_TIMEOUT
        assert e.recoverable

    print("  Timeout mapping: PASSED")


def test_connection_error_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    try:
        _client(handler).status()
        assert False, "Should raise TransportError"
    except TransportError as e:
        assert e.code == ErrorCode.TRANSPORT_CONNECTION_FAILED


@patch("near_client.infra.rpc.time.sleep")
def test_read_calls_retried_on_transport_error(mock_sleep):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        if len(calls) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": "dontcare", "result": {"chain_id": "testnet"}})

    result = _client(handler, max_retries=2).status()

    assert result == {"chain_id": "testnet"}
    assert len(calls) == 3
    assert mock_sleep.call_count == 2

    print("  Read retry: PASSED")


@patch("near_client.infra.rpc.time.sleep")
def test_broadcast_never_retried(mock_sleep):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        raise httpx.ReadTimeout("timed out", request=request)

    try:
        _client(handler, max_retries=5).broadcast_tx_commit("AAAA")
        assert False, "Should raise TransportError"
    except TransportError:
        pass

    assert len(calls) == 1
    mock_sleep.assert_not_called()

    print("  Broadcast not retried: PASSED")


@patch("near_client.infra.rpc.time.sleep")
def test_rpc_error_not_retried(mock_sleep):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": "dontcare", "error": {"name": "HANDLER_ERROR"}})

    try:
        _client(handler, max_retries=5).status()
        assert False, "Should raise RpcError"
    except RpcError:
        pass

    assert len(calls) == 1


def test_context_manager_closes_client():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": "dontcare", "result": {}})

    with _client(handler) as rpc:
        rpc.status()
        assert rpc._client is not None
    assert rpc._client is None


if __name__ == "__main__":
    print("=" * 60)
    print("RPC Client Mock Tests")
    print("=" * 60)

    test_rpc_config_defaults()
    test_rpc_config_override()
    test_request_envelope()
    test_rpc_error_preserved()
    test_http_error_is_transport_error()
    test_timeout_is_transport_error()
    test_broadcast_never_retried()

    print("=" * 60)
    print("All RPC mock tests completed!")
    print("=" * 60)
