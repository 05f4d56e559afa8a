"""
Transaction signer

Owns the key material of one access key together with the cached nonce of that
key. All nonce mutation goes through the signer's lock so that concurrent
submissions through the same signer are serialized.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Union

from .keys import KeyMaterial, PublicKey, Signature
from ..errors import SignerError
from ..types import AccountId, UnsignedTransaction, SignedTransaction
from ..config import config as global_config

logger = logging.getLogger(__name__)


class Signer:
    """
    Signs transactions for one (account, access key) pair

    The cached ``nonce`` is the last nonce the ledger accepted for the key.
    The next transaction must be signed with ``next_nonce`` (``nonce + 1``).

    Usage:
        signer = Signer.from_secret_str("ed25519:...", "alice.testnet")

        with signer.lock:
            signer.reconcile(fetched_nonce)
            tx = builder.build(signer.account_id, signer.public_key, signer.next_nonce, block_hash)
            signed = signer.sign_transaction(tx)
            ...
            signer.advance()
    """

    def __init__(
        self,
        key: KeyMaterial,
        account_id: Union[str, AccountId],
        nonce: int = 0,
    ):
        """
        Initialize signer

        Args:
            key: ed25519 key material
            account_id: Account that owns the key
            nonce: Initial access key nonce (reconciled before first use)
        """
        if nonce < 0:
            raise ValueError(f"nonce must be non-negative, got {nonce}")
        self._key = key
        self._account_id = AccountId(account_id)
        self._nonce = nonce
        # Re-entrant so the pipeline can hold it across a whole submission
        self._lock = threading.RLock()

    @property
    def account_id(self) -> AccountId:
        return self._account_id

    @property
    def public_key(self) -> PublicKey:
        return self._key.public_key()

    @property
    def lock(self) -> threading.RLock:
        """Lock serializing nonce use; hold it for a whole submission"""
        return self._lock

    @property
    def nonce(self) -> int:
        """Last accepted access key nonce as known locally"""
        with self._lock:
            return self._nonce

    @property
    def next_nonce(self) -> int:
        """Nonce to sign the next transaction with"""
        with self._lock:
            return self._nonce + 1

    def advance(self):
        """Record that a transaction signed with ``next_nonce`` was accepted"""
        with self._lock:
            self._nonce += 1
            logger.debug(f"Signer {self._account_id} nonce advanced to {self._nonce}")

    def resync(self, remote_nonce: int):
        """
        Replace the cached nonce with the one reported by the ledger

        The local value is discarded, so the next transaction is signed
        with ``remote_nonce + 1``.
        """
        with self._lock:
            logger.info(
                f"Signer {self._account_id} nonce resynced: {self._nonce} -> {remote_nonce}"
            )
            self._nonce = remote_nonce

    def reconcile(self, fetched_nonce: int):
        """Take the freshly fetched nonce unless the local one is ahead"""
        with self._lock:
            if fetched_nonce > self._nonce:
                logger.debug(
                    f"Signer {self._account_id} nonce reconciled: {self._nonce} -> {fetched_nonce}"
                )
                self._nonce = fetched_nonce

    def sign(self, message: bytes) -> Signature:
        """Sign raw bytes with the access key"""
        return self._key.sign(message)

    def sign_transaction(self, unsigned_tx: UnsignedTransaction) -> SignedTransaction:
        """
        Sign a transaction

        The signature covers sha256 of the encoded transaction. The cached
        nonce is not touched.
        """
        signature = self._key.sign(unsigned_tx.digest())
        return SignedTransaction(transaction=unsigned_tx, signature=signature)

    @classmethod
    def from_secret_str(
        cls,
        secret: str,
        account_id: Union[str, AccountId],
        nonce: int = 0,
    ) -> "Signer":
        """Create signer from an "ed25519:<base58>" secret key"""
        return cls(KeyMaterial.from_string(secret), account_id, nonce=nonce)

    @classmethod
    def from_bytes(
        cls,
        secret: bytes,
        account_id: Union[str, AccountId],
        nonce: int = 0,
    ) -> "Signer":
        """Create signer from raw secret key bytes (64 or 32 bytes)"""
        return cls(KeyMaterial.from_bytes(secret), account_id, nonce=nonce)

    def __repr__(self) -> str:
        return f"Signer(account_id={self._account_id}, public_key={self.public_key})"


def create_signer(
    key: Optional[KeyMaterial] = None,
    secret: Optional[str] = None,
    account_id: Optional[str] = None,
) -> Optional[Signer]:
    """
    Factory function to create a signer

    Priority:
    1. Explicit key material
    2. Secret key string
    3. NEAR_PRIVATE_KEY / NEAR_ACCOUNT_ID from config

    Args:
        key: Key material
        secret: "ed25519:<base58>" secret key
        account_id: Account owning the key (falls back to NEAR_ACCOUNT_ID)

    Returns:
        Signer, or None if no key is configured anywhere

    Raises:
        SignerError: If a key is available but no account id
    """
    account_id = account_id or global_config.signer.account_id

    if key is None:
        secret = secret or global_config.signer.private_key
        if not secret:
            return None
        key = KeyMaterial.from_string(secret)

    if not account_id:
        raise SignerError.not_configured()

    return Signer(key, account_id)
