"""
JSON-RPC client for NEAR nodes

Provides:
- JSON-RPC 2.0 envelope over HTTP (httpx)
- Structured node errors (RpcError) kept separate from transport failures
- Retry of read-only calls on transport failures
- Request timeout management

Broadcast calls are never retried here: a timeout does not tell whether the
node accepted the transaction.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from ..errors import RpcError, TransportError, ConfigurationError
from ..config import config as global_config

logger = logging.getLogger(__name__)

REQUEST_ID = "dontcare"

BROADCAST_METHODS = frozenset({
    "broadcast_tx_commit",
    "broadcast_tx_async",
    "send_tx",
})


@dataclass
class RpcClientConfig:
    """
    RPC client runtime configuration

    Allows per-client overrides while pulling defaults from the global
    config (near_client.config.RpcConfig).

    Usage:
        # Use all defaults from environment
        client = RpcClient(endpoint)

        # Override specific settings
        config = RpcClientConfig(timeout_seconds=60, max_retries=5)
        client = RpcClient(endpoint, config=config)
    """
    timeout_seconds: float = None
    max_retries: int = None
    retry_delay_seconds: float = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.timeout_seconds is None:
            self.timeout_seconds = global_config.rpc.timeout_seconds
        if self.max_retries is None:
            self.max_retries = global_config.rpc.max_retries
        if self.retry_delay_seconds is None:
            self.retry_delay_seconds = global_config.rpc.retry_delay_seconds


class RpcClient:
    """
    NEAR JSON-RPC client

    Usage:
        rpc = RpcClient("https://rpc.testnet.near.org")

        status = rpc.status()
        key = rpc.query({
            "request_type": "view_access_key",
            "finality": "final",
            "account_id": "alice.testnet",
            "public_key": "ed25519:...",
        })

        # Custom RPC call
        result = rpc.call("gas_price", [None])
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        config: Optional[RpcClientConfig] = None,
    ):
        """
        Initialize RPC client

        Args:
            endpoint: RPC endpoint URL (defaults to NEAR_RPC_URL)
            config: RPC configuration options
        """
        self._endpoint = endpoint or global_config.rpc.url
        if not self._endpoint:
            raise ConfigurationError.missing("RPC endpoint")

        self._config = config or RpcClientConfig()
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def config(self) -> RpcClientConfig:
        return self._config

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (thread-safe)"""
        if self._client is None:
            with self._client_lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._config.timeout_seconds,
                        headers={"Content-Type": "application/json"},
                    )
        return self._client

    def _post(self, body: Dict[str, Any], timeout: float) -> Any:
        """Single round trip; maps httpx failures to TransportError"""
        client = self._get_client()
        try:
            response = client.post(self._endpoint, json=body, timeout=timeout)
        except httpx.TimeoutException as e:
            raise TransportError.timeout(self._endpoint, timeout) from e
        except httpx.RequestError as e:
            raise TransportError.connection_failed(self._endpoint, e) from e

        try:
            payload = response.json()
        except ValueError as e:
            if not response.is_success:
                raise TransportError.http_error(self._endpoint, response.status_code) from e
            raise TransportError.invalid_response(self._endpoint, e) from e

        # Nodes answer some handler errors with a non-2xx status and a JSON-RPC body
        if isinstance(payload, dict) and payload.get("error") is not None:
            raise RpcError.from_response(payload["error"])

        if not response.is_success:
            raise TransportError.http_error(self._endpoint, response.status_code)

        if not isinstance(payload, dict) or "result" not in payload:
            raise TransportError.invalid_response(self._endpoint)

        return payload["result"]

    def call(
        self,
        method: str,
        params: Union[List[Any], Dict[str, Any]],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make JSON-RPC call

        Read-only methods are retried on TransportError up to
        ``config.max_retries`` times; broadcast methods are sent once.

        Args:
            method: RPC method name
            params: RPC parameters (list or object)
            timeout: Optional timeout override

        Returns:
            The ``result`` member of the response

        Raises:
            RpcError: Node returned a JSON-RPC error
            TransportError: Network, timeout or HTTP failure
        """
        body = {
            "jsonrpc": "2.0",
            "id": REQUEST_ID,
            "method": method,
            "params": params,
        }
        timeout_val = timeout or self._config.timeout_seconds
        attempts = 1 if method in BROADCAST_METHODS else max(1, self._config.max_retries + 1)

        last_error: Optional[TransportError] = None
        for attempt in range(attempts):
            try:
                logger.debug(f"RPC {method} -> {self._endpoint} (attempt {attempt + 1}/{attempts})")
                return self._post(body, timeout_val)
            except TransportError as e:
                last_error = e
                if attempt < attempts - 1:
                    logger.warning(f"RPC {method} failed (attempt {attempt + 1}/{attempts}): {e}")
                    time.sleep(self._config.retry_delay_seconds * (attempt + 1))

        raise last_error

    def query(self, request: Dict[str, Any]) -> Any:
        """``query`` method with an object parameter (view_access_key, call_function, ...)"""
        return self.call("query", request)

    def status(self) -> Dict[str, Any]:
        """Node status (chain id, latest block, version)"""
        return self.call("status", [])

    def block(self, finality: str = "final") -> Dict[str, Any]:
        return self.call("block", {"finality": finality})

    def tx_status(self, tx_hash: str, sender_id: str) -> Dict[str, Any]:
        """Final execution outcome of a known transaction, with receipts"""
        return self.call("EXPERIMENTAL_tx_status", [tx_hash, sender_id])

    def broadcast_tx_commit(self, signed_tx_base64: str) -> Dict[str, Any]:
        """Submit and wait for the final execution outcome"""
        return self.call("broadcast_tx_commit", [signed_tx_base64])

    def broadcast_tx_async(self, signed_tx_base64: str) -> str:
        """Submit without waiting; returns the transaction hash"""
        return self.call("broadcast_tx_async", [signed_tx_base64])

    def close(self):
        """Close HTTP client"""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"RpcClient(endpoint={self._endpoint})"
