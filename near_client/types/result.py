"""
Result type definitions for transactions and view calls
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from ..errors import DeserializationError


class TxStatus(Enum):
    """Final execution status of a transaction"""
    SUCCESS = "success"
    FAILED = "failed"
    NOT_STARTED = "not_started"
    STARTED = "started"


def extract_logs(receipts_outcome: List[dict]) -> List[str]:
    """Logs of the first receipt outcome that produced any"""
    for receipt in receipts_outcome or []:
        logs = (receipt.get("outcome") or {}).get("logs") or []
        if logs:
            return list(logs)
    return []


@dataclass
class ExecutionOutcome:
    """
    Parsed final execution outcome of a committed transaction

    Attributes:
        transaction_id: Transaction hash (base58)
        status: Final execution status
        value: Raw return value of the call (empty if none)
        logs: Logs emitted by the first receipt that logged anything
        gas_burnt: Gas burnt converting the transaction to a receipt
        nonce: Nonce the transaction was signed with
        failure: Ledger error payload when status is FAILED
    """
    transaction_id: Optional[str]
    status: TxStatus
    value: bytes = b""
    logs: List[str] = field(default_factory=list)
    gas_burnt: int = 0
    nonce: Optional[int] = None
    failure: Any = None

    @property
    def is_success(self) -> bool:
        return self.status == TxStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status == TxStatus.FAILED

    def output(self, result_type: Any = None) -> Any:
        """
        Decode the return value as JSON

        Args:
            result_type: Optional dataclass, type or callable applied to the
                decoded value

        Raises:
            DeserializationError: If the value is empty or not valid JSON
        """
        from ..modules.view import convert_result

        try:
            decoded = json.loads(self.value)
        except (ValueError, TypeError) as e:
            raise DeserializationError(
                f"Couldn't deserialize transaction output: {e}",
                original_error=e,
                payload=self.value,
            ) from e
        return convert_result(decoded, result_type)

    @classmethod
    def from_rpc(cls, payload: dict) -> "ExecutionOutcome":
        """
        Parse a FinalExecutionOutcome returned by broadcast_tx_commit
        or EXPERIMENTAL_tx_status

        Raises:
            DeserializationError: If required fields are missing
        """
        if not isinstance(payload, dict):
            raise DeserializationError("Couldn't deserialize execution outcome", payload=payload)
        if "status" not in payload:
            raise DeserializationError.missing_field("execution outcome", "status", payload)

        transaction = payload.get("transaction") or {}
        tx_outcome = payload.get("transaction_outcome") or {}
        logs = extract_logs(payload.get("receipts_outcome") or [])

        status_raw = payload["status"]
        value = b""
        failure = None
        if isinstance(status_raw, dict) and "SuccessValue" in status_raw:
            status = TxStatus.SUCCESS
            try:
                value = base64.b64decode(status_raw["SuccessValue"] or "", validate=True)
            except (binascii.Error, TypeError, ValueError) as e:
                raise DeserializationError(
                    f"Couldn't decode SuccessValue: {e}",
                    original_error=e,
                    payload=payload,
                ) from e
        elif isinstance(status_raw, dict) and "SuccessReceiptId" in status_raw:
            status = TxStatus.SUCCESS
        elif isinstance(status_raw, dict) and "Failure" in status_raw:
            status = TxStatus.FAILED
            failure = status_raw["Failure"]
        elif status_raw == "NotStarted":
            status = TxStatus.NOT_STARTED
        elif status_raw == "Started":
            status = TxStatus.STARTED
        else:
            raise DeserializationError(f"Unknown execution status: {status_raw!r}", payload=payload)

        return cls(
            transaction_id=tx_outcome.get("id") or transaction.get("hash"),
            status=status,
            value=value,
            logs=logs,
            gas_burnt=int((tx_outcome.get("outcome") or {}).get("gas_burnt") or 0),
            nonce=transaction.get("nonce"),
            failure=failure,
        )

    def __str__(self) -> str:
        tx_display = f"{self.transaction_id[:16]}..." if self.transaction_id else "no id"
        if self.is_failed:
            return f"ExecutionOutcome(FAILED, {tx_display}, failure={self.failure})"
        return f"ExecutionOutcome({self.status.value}, {tx_display})"


@dataclass
class ViewOutput:
    """
    Result of a read-only query

    Attributes:
        data: Decoded result (converted to the requested type if any)
        logs: Logs emitted by the view call
        block_hash: Hash of the block the query ran against
        block_height: Height of that block
    """
    data: Any
    logs: List[str] = field(default_factory=list)
    block_hash: Optional[str] = None
    block_height: Optional[int] = None
