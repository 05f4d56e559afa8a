"""
Transaction type definitions
"""

import base64
import hashlib
from dataclasses import dataclass
from typing import Tuple, TYPE_CHECKING

import base58

from .common import AccountId
from .actions import Action

if TYPE_CHECKING:
    from ..infra.keys import PublicKey, Signature


@dataclass(frozen=True)
class UnsignedTransaction:
    """
    Transaction ready to be signed

    Attributes:
        signer_id: Account paying for and signing the transaction
        public_key: Access key used to sign
        nonce: Access key nonce, strictly larger than the last accepted one
        receiver_id: Account the actions apply to
        block_hash: Recent block hash (32 bytes) anchoring the transaction
        actions: Ordered actions
    """
    signer_id: AccountId
    public_key: "PublicKey"
    nonce: int
    receiver_id: AccountId
    block_hash: bytes
    actions: Tuple[Action, ...]

    def encode(self) -> bytes:
        """Binary wire encoding"""
        from ..infra.borsh import encode_transaction
        return encode_transaction(self)

    def digest(self) -> bytes:
        """sha256 of the wire encoding, the bytes that get signed"""
        return hashlib.sha256(self.encode()).digest()


@dataclass(frozen=True)
class SignedTransaction:
    """Transaction with the signer's signature over its digest"""
    transaction: UnsignedTransaction
    signature: "Signature"

    @property
    def hash(self) -> bytes:
        """Transaction hash (sha256 of the unsigned encoding)"""
        return self.transaction.digest()

    @property
    def transaction_id(self) -> str:
        """Transaction hash as base58, as reported by the node"""
        return base58.b58encode(self.hash).decode("ascii")

    @property
    def nonce(self) -> int:
        return self.transaction.nonce

    def encode(self) -> bytes:
        from ..infra.borsh import encode_signed_transaction
        return encode_signed_transaction(self)

    def to_base64(self) -> str:
        """Encoding used as the broadcast_tx_* parameter"""
        return base64.b64encode(self.encode()).decode("ascii")
