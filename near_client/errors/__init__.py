"""
Error definitions for NEAR Client
"""

from .exceptions import (
    ErrorCode,
    NearClientError,
    TransportError,
    RpcError,
    InvalidNonce,
    SubmissionFailed,
    EmptyTransaction,
    SerializationError,
    DeserializationError,
    ViewCallError,
    InvalidKeyEncoding,
    SignerError,
    ConfigurationError,
    InvalidAccountId,
)

__all__ = [
    "ErrorCode",
    "NearClientError",
    "TransportError",
    "RpcError",
    "InvalidNonce",
    "SubmissionFailed",
    "EmptyTransaction",
    "SerializationError",
    "DeserializationError",
    "ViewCallError",
    "InvalidKeyEncoding",
    "SignerError",
    "ConfigurationError",
    "InvalidAccountId",
]
