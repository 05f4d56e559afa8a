"""
View Module

Stateless read path: contract view calls, access keys, accounts, contract
state, node status, blocks and transaction outcomes. Nothing here mutates
signer state and nothing is retried beyond the transport's own read retries.
"""

import base64
import binascii
import dataclasses
import json
import logging
from typing import Any, Dict, List, Optional, Union, TYPE_CHECKING

import base58

from ..errors import DeserializationError, RpcError, ViewCallError
from ..types import AccountId, ExecutionOutcome, Finality, ViewOutput
from ..infra.tx_builder import encode_args

if TYPE_CHECKING:
    from ..infra.keys import PublicKey
    from ..infra.rpc import RpcClient

logger = logging.getLogger(__name__)

CONTRACT_EXECUTION_ERROR = "CONTRACT_EXECUTION_ERROR"

# Builtins checked by isinstance instead of being called as converters
_STRICT_TYPES = (dict, list, str, int, float, bool)


def convert_result(value: Any, result_type: Any = None) -> Any:
    """
    Convert a decoded JSON value to ``result_type``

    - None: value returned unchanged
    - dataclass: built from a JSON object by field name (unknown keys ignored)
    - dict/list/str/int/float/bool: value must already have that type
    - any other callable: called with the value

    Raises:
        DeserializationError: On shape mismatch
    """
    if result_type is None:
        return value

    if dataclasses.is_dataclass(result_type) and isinstance(result_type, type):
        if not isinstance(value, dict):
            raise DeserializationError(
                f"Expected a JSON object for {result_type.__name__}, got {type(value).__name__}",
                payload=value,
            )
        names = {f.name for f in dataclasses.fields(result_type) if f.init}
        kwargs = {key: item for key, item in value.items() if key in names}
        try:
            return result_type(**kwargs)
        except TypeError as e:
            raise DeserializationError(
                f"Couldn't build {result_type.__name__}: {e}",
                original_error=e,
                payload=value,
            ) from e

    if result_type in _STRICT_TYPES:
        # bool is an int subclass but not a valid int result
        is_bool = isinstance(value, bool)
        if isinstance(value, result_type) and (result_type is bool or not is_bool):
            return value
        if result_type is float and isinstance(value, int) and not is_bool:
            return float(value)
        raise DeserializationError(
            f"Expected {result_type.__name__}, got {type(value).__name__}",
            payload=value,
        )

    try:
        return result_type(value)
    except (TypeError, ValueError, KeyError) as e:
        raise DeserializationError(
            f"Couldn't convert result with {getattr(result_type, '__name__', result_type)!r}: {e}",
            original_error=e,
            payload=value,
        ) from e


def _finality_value(finality: Union[str, Finality]) -> str:
    return Finality.parse(finality).value


def _result_bytes(result: Dict[str, Any], what: str) -> bytes:
    """The ``result`` member of a call_function response: a list of byte values"""
    values = result["result"]
    if not isinstance(values, list) or not all(
        isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255 for b in values
    ):
        raise DeserializationError(f"Couldn't deserialize {what}: expected a list of bytes", payload=result)
    return bytes(values)


def _decode_base64(value: Any, what: str, payload: Any = None) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        raise DeserializationError(
            f"Couldn't decode {what} from base64: {e}",
            original_error=e,
            payload=payload,
        ) from e



class ViewQuery:
    """
    Read-only queries against a node

    Usage:
        view = ViewQuery(rpc)

        # Contract view call
        out = view.query("counter.testnet", "get_num")
        print(out.data, out.logs)

        # Access key (nonce + permission + block hash)
        key = view.view_access_key("alice.testnet", public_key)
    """

    def __init__(self, rpc: "RpcClient"):
        """
        Initialize view module

        Args:
            rpc: RPC client
        """
        self._rpc = rpc

    def _query(self, request: Dict[str, Any], what: str) -> Dict[str, Any]:
        try:
            result = self._rpc.query(request)
        except RpcError as e:
            if e.cause_name == CONTRACT_EXECUTION_ERROR:
                raise ViewCallError(f"{what} failed: {e.message}", original_error=e) from e
            raise

        if not isinstance(result, dict):
            raise DeserializationError(f"Couldn't deserialize {what} response", payload=result)
        if "error" in result:
            raise ViewCallError(f"{what} failed: {result['error']}", logs=result.get("logs"))
        return result

    def query(
        self,
        contract_id: Union[str, AccountId],
        method: str,
        args: Any = None,
        finality: Union[str, Finality] = Finality.FINAL,
        result_type: Any = None,
    ) -> ViewOutput:
        """
        Call a contract view method

        Args:
            contract_id: Contract account
            method: View method name
            args: bytes, None or a JSON-serializable value
            finality: Block finality to query at
            result_type: Optional dataclass, type or callable for the result

        Returns:
            ViewOutput with decoded data and logs

        Raises:
            ViewCallError: Contract or node reported an error
            DeserializationError: Result is not JSON or has the wrong shape
        """
        request = {
            "request_type": "call_function",
            "finality": _finality_value(finality),
            "account_id": str(AccountId(contract_id)),
            "method_name": method,
            "args_base64": base64.b64encode(encode_args(args)).decode("ascii"),
        }
        result = self._query(request, f"View call {contract_id}.{method}")

        if "result" not in result:
            raise DeserializationError.missing_field("view call result", "result", result)
        raw = _result_bytes(result, f"view call result of {contract_id}.{method}")
        if raw:
            try:
                decoded = json.loads(raw)
            except ValueError as e:
                raise DeserializationError(
                    f"Couldn't deserialize view call result of {contract_id}.{method}: {e}",
                    original_error=e,
                    payload=raw,
                ) from e
        else:
            decoded = None

        logger.debug(f"View {contract_id}.{method} at block {result.get('block_height')}")

        return ViewOutput(
            data=convert_result(decoded, result_type),
            logs=list(result.get("logs") or []),
            block_hash=result.get("block_hash"),
            block_height=result.get("block_height"),
        )

    def view_access_key(
        self,
        account_id: Union[str, AccountId],
        public_key: Union[str, "PublicKey"],
        finality: Union[str, Finality] = Finality.FINAL,
    ) -> Dict[str, Any]:
        """
        Access key of an account

        Returns:
            {"nonce", "permission", "block_hash", "block_height"}
        """
        request = {
            "request_type": "view_access_key",
            "finality": _finality_value(finality),
            "account_id": str(AccountId(account_id)),
            "public_key": str(public_key),
        }
        result = self._query(request, f"Access key query for {account_id}")
        for field_name in ("nonce", "block_hash"):
            if field_name not in result:
                raise DeserializationError.missing_field("access key", field_name, result)
        return result

    def view_access_key_list(
        self,
        account_id: Union[str, AccountId],
        finality: Union[str, Finality] = Finality.FINAL,
    ) -> List[Dict[str, Any]]:
        """All access keys of an account as [{"public_key", "access_key"}]"""
        request = {
            "request_type": "view_access_key_list",
            "finality": _finality_value(finality),
            "account_id": str(AccountId(account_id)),
        }
        result = self._query(request, f"Access key list query for {account_id}")
        if "keys" not in result:
            raise DeserializationError.missing_field("access key list", "keys", result)
        return result["keys"]

    def view_account(
        self,
        account_id: Union[str, AccountId],
        finality: Union[str, Finality] = Finality.FINAL,
    ) -> Dict[str, Any]:
        """Account summary: amount, locked, code_hash, storage_usage, ..."""
        request = {
            "request_type": "view_account",
            "finality": _finality_value(finality),
            "account_id": str(AccountId(account_id)),
        }
        return self._query(request, f"Account query for {account_id}")

    def view_state(
        self,
        account_id: Union[str, AccountId],
        prefix: bytes = b"",
        finality: Union[str, Finality] = Finality.FINAL,
    ) -> Dict[bytes, bytes]:
        """Raw contract storage under ``prefix`` as {key: value}"""
        request = {
            "request_type": "view_state",
            "finality": _finality_value(finality),
            "account_id": str(AccountId(account_id)),
            "prefix_base64": base64.b64encode(bytes(prefix)).decode("ascii"),
        }
        result = self._query(request, f"State query for {account_id}")
        if "values" not in result:
            raise DeserializationError.missing_field("contract state", "values", result)
        state = {}
        for item in result["values"]:
            if not isinstance(item, dict) or "key" not in item or "value" not in item:
                raise DeserializationError("Couldn't deserialize contract state entry", payload=item)
            key = _decode_base64(item["key"], "state key", item)
            state[key] = _decode_base64(item["value"], "state value", item)
        return state

    def network_status(self) -> Dict[str, Any]:
        """Node status: chain_id, sync_info, version, ..."""
        return self._rpc.status()

    def block_hash(self, finality: Union[str, Finality] = Finality.FINAL) -> bytes:
        """Hash of the latest block at ``finality`` (32 bytes)"""
        block = self._rpc.block(_finality_value(finality))
        try:
            encoded = block["header"]["hash"]
        except (KeyError, TypeError) as e:
            raise DeserializationError.missing_field("block", "header.hash", block) from e
        return base58.b58decode(encoded)

    def view_transaction(
        self,
        tx_hash: str,
        sender_id: Union[str, AccountId],
    ) -> ExecutionOutcome:
        """Final outcome of a previously submitted transaction"""
        response = self._rpc.tx_status(tx_hash, str(AccountId(sender_id)))
        return ExecutionOutcome.from_rpc(response)
