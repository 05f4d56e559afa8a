"""
Exception definitions for NEAR Client
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """
    Unified error codes for client operations

    1xxx - Transport / RPC errors
    2xxx - Transaction submission errors
    3xxx - Transaction construction / encoding errors
    4xxx - View / response errors
    6xxx - Key and signer errors
    9xxx - Configuration errors
    """
    # Transport errors (caller decides on retry)
    TRANSPORT_CONNECTION_FAILED = "1001"
    TRANSPORT_TIMEOUT = "1002"
    TRANSPORT_HTTP_ERROR = "1003"
    TRANSPORT_INVALID_RESPONSE = "1004"
    RPC_ERROR = "1005"

    # Submission errors
    INVALID_NONCE = "2001"
    TX_REJECTED = "2002"
    TX_EXECUTION_FAILED = "2003"
    TX_NOT_STARTED = "2004"

    # Construction errors
    EMPTY_TRANSACTION = "3001"
    SERIALIZATION_FAILED = "3002"

    # View errors
    DESERIALIZATION_FAILED = "4001"
    VIEW_CALL_FAILED = "4002"

    # Key errors
    INVALID_KEY_ENCODING = "6001"
    SIGNER_NOT_CONFIGURED = "6002"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"
    INVALID_ACCOUNT_ID = "9003"


class NearClientError(Exception):
    """
    Base exception for all client errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class TransportError(NearClientError):
    """
    Network / transport level failure

    Raised when:
    - Connection to the RPC endpoint fails
    - Request times out
    - Endpoint answers with a non-2xx status or a non JSON body

    A timeout on a broadcast may mean the transaction was accepted anyway,
    so these errors are surfaced as-is and the caller decides on retry.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TRANSPORT_CONNECTION_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=True,
            original_error=original_error,
            details={"endpoint": endpoint, "status_code": status_code},
        )
        self.endpoint = endpoint
        self.status_code = status_code

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "TransportError":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.TRANSPORT_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float) -> "TransportError":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.TRANSPORT_TIMEOUT,
            endpoint=endpoint,
        )

    @classmethod
    def http_error(cls, endpoint: str, status_code: int) -> "TransportError":
        return cls(
            f"HTTP error {status_code}",
            ErrorCode.TRANSPORT_HTTP_ERROR,
            endpoint=endpoint,
            status_code=status_code,
        )

    @classmethod
    def invalid_response(cls, endpoint: str, error: Exception = None) -> "TransportError":
        return cls(
            f"Invalid JSON-RPC response from {endpoint}",
            ErrorCode.TRANSPORT_INVALID_RESPONSE,
            original_error=error,
            endpoint=endpoint,
        )


class RpcError(NearClientError):
    """
    Structured JSON-RPC error returned by the node

    Keeps the node's error envelope intact so callers can apply their own
    policy:

        {"name": "HANDLER_ERROR",
         "cause": {"name": "INVALID_TRANSACTION", "info": {...}},
         "code": -32000, "message": "Server error", "data": {...}}
    """

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        cause: Optional[dict] = None,
        rpc_code: Optional[int] = None,
        data: Any = None,
    ):
        super().__init__(
            message,
            ErrorCode.RPC_ERROR,
            recoverable=False,
            details={"name": name, "cause": cause, "rpc_code": rpc_code, "data": data},
        )
        self.name = name
        self.cause = cause or {}
        self.rpc_code = rpc_code
        self.data = data

    @property
    def cause_name(self) -> Optional[str]:
        return self.cause.get("name") if isinstance(self.cause, dict) else None

    @property
    def cause_info(self) -> Any:
        return self.cause.get("info") if isinstance(self.cause, dict) else None

    @classmethod
    def from_response(cls, error: Any) -> "RpcError":
        """Build from the ``error`` member of a JSON-RPC response"""
        if not isinstance(error, dict):
            # Some proxies answer with a bare error string
            return cls(str(error) or "RPC error", data=error)

        cause = error.get("cause")
        message = error.get("message") or "RPC error"
        if isinstance(cause, dict) and cause.get("name"):
            message = f"{message}: {cause['name']}"
        data = error.get("data")
        if isinstance(data, str):
            message = f"{message} ({data})"
        return cls(
            message,
            name=error.get("name"),
            cause=cause if isinstance(cause, dict) else None,
            rpc_code=error.get("code"),
            data=data,
        )


class InvalidNonce(NearClientError):
    """
    Transaction nonce was not larger than the access key nonce

    Recoverable: the submission pipeline resyncs the signer to ``ak_nonce``
    and retries while the retry budget allows.
    """

    def __init__(
        self,
        ak_nonce: int,
        tx_nonce: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            f"Transaction nonce {tx_nonce} must be larger than nonce of the used access key {ak_nonce}",
            ErrorCode.INVALID_NONCE,
            recoverable=True,
            original_error=original_error,
            details={"ak_nonce": ak_nonce, "tx_nonce": tx_nonce},
        )
        self.ak_nonce = ak_nonce
        self.tx_nonce = tx_nonce


class SubmissionFailed(NearClientError):
    """
    Terminal submission failure

    Raised when:
    - Nonce conflicts outlasted the retry budget (reason INVALID_NONCE)
    - The node rejected the transaction for any other reason (TX_REJECTED)
    - The transaction was included but its execution failed (TX_EXECUTION_FAILED)
    """

    def __init__(
        self,
        message: str,
        reason: ErrorCode,
        original_error: Optional[Exception] = None,
        logs: Optional[list] = None,
        attempts: Optional[int] = None,
        transaction_id: Optional[str] = None,
    ):
        super().__init__(
            message,
            reason,
            recoverable=False,
            original_error=original_error,
            details={"logs": logs, "attempts": attempts, "transaction_id": transaction_id},
        )
        self.reason = reason
        self.logs = logs or []
        self.attempts = attempts
        self.transaction_id = transaction_id

    @classmethod
    def nonce_exhausted(cls, error: InvalidNonce, attempts: int) -> "SubmissionFailed":
        return cls(
            f"Nonce conflict persisted after {attempts} attempts: {error.message}",
            ErrorCode.INVALID_NONCE,
            original_error=error,
            attempts=attempts,
        )

    @classmethod
    def rejected(cls, error: Exception, attempts: int) -> "SubmissionFailed":
        message = error.message if isinstance(error, NearClientError) else str(error)
        return cls(
            f"Transaction rejected: {message}",
            ErrorCode.TX_REJECTED,
            original_error=error,
            attempts=attempts,
        )

    @classmethod
    def execution_failed(cls, failure: Any, logs: list, transaction_id: str = None) -> "SubmissionFailed":
        return cls(
            f"Transaction failed during execution: {failure}",
            ErrorCode.TX_EXECUTION_FAILED,
            logs=logs,
            transaction_id=transaction_id,
        )

    @classmethod
    def not_started(cls, logs: list, transaction_id: str = None) -> "SubmissionFailed":
        return cls(
            "Transaction not started",
            ErrorCode.TX_NOT_STARTED,
            logs=logs,
            transaction_id=transaction_id,
        )


class EmptyTransaction(NearClientError):
    """Builder misuse: a transaction needs at least one action"""

    def __init__(self, receiver_id: Optional[str] = None):
        super().__init__(
            f"Transaction to {receiver_id} has no actions",
            ErrorCode.EMPTY_TRANSACTION,
            recoverable=False,
            details={"receiver_id": receiver_id},
        )


class SerializationError(NearClientError):
    """Value cannot be represented in the binary wire encoding"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            ErrorCode.SERIALIZATION_FAILED,
            recoverable=False,
            original_error=original_error,
        )

    @classmethod
    def out_of_range(cls, kind: str, value: int) -> "SerializationError":
        return cls(f"Value {value} does not fit into {kind}")


class DeserializationError(NearClientError):
    """Response did not have the expected shape"""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        payload: Any = None,
    ):
        super().__init__(
            message,
            ErrorCode.DESERIALIZATION_FAILED,
            recoverable=False,
            original_error=original_error,
            details={"payload": payload},
        )

    @classmethod
    def missing_field(cls, what: str, field_name: str, payload: Any = None) -> "DeserializationError":
        return cls(f"Couldn't deserialize {what}: missing field '{field_name}'", payload=payload)


class ViewCallError(NearClientError):
    """Contract or node reported an error for a read-only query"""

    def __init__(self, message: str, logs: Optional[list] = None, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            ErrorCode.VIEW_CALL_FAILED,
            recoverable=False,
            original_error=original_error,
            details={"logs": logs},
        )
        self.logs = logs or []


class InvalidKeyEncoding(NearClientError):
    """
    Malformed key string

    Expected ``"<algorithm-tag>:<base58 bytes>"``, e.g. ``ed25519:...``.
    Deterministic, never retried.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_KEY_ENCODING,
            recoverable=False,
            original_error=original_error,
        )

    @classmethod
    def unknown_key_type(cls, key_type: str, expected: str = "ed25519") -> "InvalidKeyEncoding":
        return cls(f"The key type \"{key_type}\" is not supported, expected \"{expected}\"")

    @classmethod
    def wrong_length(cls, what: str, length: int, expected: str) -> "InvalidKeyEncoding":
        return cls(f"Couldn't decode {what}: got {length} bytes, expected {expected}")


class SignerError(NearClientError):
    """Signer could not be created from configuration"""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.SIGNER_NOT_CONFIGURED):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def not_configured(cls) -> "SignerError":
        return cls("No signer configured. Provide a secret key and account id or set NEAR_PRIVATE_KEY / NEAR_ACCOUNT_ID.")


class ConfigurationError(NearClientError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing
    - Configuration values are invalid
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)


class InvalidAccountId(ConfigurationError):
    """Account id does not satisfy the account naming rules"""

    def __init__(self, account_id: str, reason: str):
        super().__init__(
            f"Invalid account id {account_id!r}: {reason}",
            ErrorCode.INVALID_ACCOUNT_ID,
        )
        self.account_id = account_id
