"""
Infrastructure layer for NEAR Client

Provides:
- KeyMaterial: ed25519 keys
- DhSecretKey / DhPublicKey: x25519 key exchange
- Signer: key + account + cached nonce
- TransactionBuilder: action accumulation
- RpcClient: JSON-RPC transport
- SubmissionPipeline: sign, submit and nonce-conflict retry
"""

from .keys import KeyMaterial, PublicKey, Signature
from .dhx import DhSecretKey, DhPublicKey
from .borsh import encode_transaction, encode_signed_transaction, encode_action
from .signer import Signer, create_signer
from .tx_builder import TransactionBuilder, TxBuilderConfig, encode_args
from .rpc import RpcClient, RpcClientConfig
from .correlation import CorrelationContext, get_correlation_id
from .pipeline import SubmissionPipeline, PipelineConfig, parse_invalid_nonce

__all__ = [
    # Keys
    "KeyMaterial",
    "PublicKey",
    "Signature",
    "DhSecretKey",
    "DhPublicKey",
    # Encoding
    "encode_transaction",
    "encode_signed_transaction",
    "encode_action",
    # Signer
    "Signer",
    "create_signer",
    # Builder
    "TransactionBuilder",
    "TxBuilderConfig",
    "encode_args",
    # RPC
    "RpcClient",
    "RpcClientConfig",
    # Pipeline
    "CorrelationContext",
    "get_correlation_id",
    "SubmissionPipeline",
    "PipelineConfig",
    "parse_invalid_nonce",
]
