"""
NEAR Client - synchronous client for NEAR JSON-RPC nodes

Provides:
- Read-only queries: contract view calls, access keys, accounts, state
- Transaction construction, signing and submission
- Automatic resubmission on access key nonce conflicts
"""

__version__ = "0.1.0"

from .client import NearClient, PendingTransaction
from .infra import (
    KeyMaterial,
    PublicKey,
    Signature,
    DhSecretKey,
    DhPublicKey,
    Signer,
    create_signer,
    TransactionBuilder,
    TxBuilderConfig,
    RpcClient,
    RpcClientConfig,
    SubmissionPipeline,
    PipelineConfig,
)
from .modules import ViewQuery
from .types import (
    AccountId,
    Finality,
    ExecutionOutcome,
    ViewOutput,
    TxStatus,
    gas,
    near,
    gas_to_human,
    near_to_human,
)
from .errors import (
    ErrorCode,
    NearClientError,
    TransportError,
    RpcError,
    InvalidNonce,
    SubmissionFailed,
    EmptyTransaction,
    InvalidKeyEncoding,
    ViewCallError,
    DeserializationError,
)

__all__ = [
    "__version__",
    # Client
    "NearClient",
    "PendingTransaction",
    # Infrastructure
    "KeyMaterial",
    "PublicKey",
    "Signature",
    "DhSecretKey",
    "DhPublicKey",
    "Signer",
    "create_signer",
    "TransactionBuilder",
    "TxBuilderConfig",
    "RpcClient",
    "RpcClientConfig",
    "SubmissionPipeline",
    "PipelineConfig",
    "ViewQuery",
    # Types
    "AccountId",
    "Finality",
    "ExecutionOutcome",
    "ViewOutput",
    "TxStatus",
    "gas",
    "near",
    "gas_to_human",
    "near_to_human",
    # Errors
    "ErrorCode",
    "NearClientError",
    "TransportError",
    "RpcError",
    "InvalidNonce",
    "SubmissionFailed",
    "EmptyTransaction",
    "InvalidKeyEncoding",
    "ViewCallError",
    "DeserializationError",
]
