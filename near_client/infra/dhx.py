"""
x25519 Diffie-Hellman keys

Keys travel as "x25519:<base58 bytes>" strings (32 bytes each). ed25519 keys
convert to their Montgomery form so an account key can take part in a key
exchange:

    alice = DhSecretKey.from_ed25519(alice_key_material)
    bob_public = DhPublicKey.from_ed25519(bob_public_key)
    shared = alice.exchange(bob_public)
"""

from __future__ import annotations

from nacl import bindings
from nacl.exceptions import CryptoError
from nacl.utils import random as random_bytes

from .keys import KeyMaterial, PublicKey, _key_string, _split_key_string
from ..errors import InvalidKeyEncoding


X25519 = "x25519"

DH_PUBLIC_KEY_LENGTH = 32
DH_SECRET_KEY_LENGTH = 32


def _check_length(raw: bytes, what: str, expected: int) -> bytes:
    raw = bytes(raw)
    if len(raw) != expected:
        raise InvalidKeyEncoding.wrong_length(what, len(raw), str(expected))
    return raw


class DhPublicKey:
    """32-byte x25519 public key (Montgomery u-coordinate)"""

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        self._raw = _check_length(raw, "x25519 public key", DH_PUBLIC_KEY_LENGTH)

    @classmethod
    def from_string(cls, value: str) -> "DhPublicKey":
        _, raw = _split_key_string(value, "x25519 public key", X25519)
        return cls(raw)

    @classmethod
    def from_ed25519(cls, public_key: PublicKey) -> "DhPublicKey":
        """Montgomery form of an ed25519 public key"""
        try:
            return cls(bindings.crypto_sign_ed25519_pk_to_curve25519(bytes(public_key)))
        except CryptoError as e:
            raise InvalidKeyEncoding(
                f"Couldn't convert {public_key} to x25519: not a valid curve point",
                original_error=e,
            ) from e

    def to_bytes(self) -> bytes:
        return self._raw

    def __bytes__(self) -> bytes:
        return self._raw

    def __str__(self) -> str:
        return _key_string(self._raw, X25519)

    def __repr__(self) -> str:
        return f"DhPublicKey({self})"

    def __eq__(self, other) -> bool:
        return isinstance(other, DhPublicKey) and other._raw == self._raw

    def __hash__(self) -> int:
        return hash(self._raw)


class DhSecretKey:
    """
    32-byte x25519 secret scalar

    The scalar is clamped by the x25519 function itself, so any 32 bytes are
    a usable secret.
    """

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        self._raw = _check_length(raw, "x25519 secret key", DH_SECRET_KEY_LENGTH)

    @classmethod
    def generate(cls) -> "DhSecretKey":
        return cls(random_bytes(DH_SECRET_KEY_LENGTH))

    @classmethod
    def from_string(cls, value: str) -> "DhSecretKey":
        _, raw = _split_key_string(value, "x25519 secret key", X25519)
        return cls(raw)

    @classmethod
    def from_ed25519(cls, key: KeyMaterial) -> "DhSecretKey":
        """x25519 secret matching ``DhPublicKey.from_ed25519(key.public_key())``"""
        return cls(bindings.crypto_sign_ed25519_sk_to_curve25519(key.to_bytes()))

    def public_key(self) -> DhPublicKey:
        return DhPublicKey(bindings.crypto_scalarmult_base(self._raw))

    def exchange(self, other: DhPublicKey) -> bytes:
        """
        Shared secret with the holder of ``other``

        Raises:
            InvalidKeyEncoding: If ``other`` is a low-order point
        """
        try:
            return bindings.crypto_scalarmult(self._raw, bytes(other))
        except CryptoError as e:
            raise InvalidKeyEncoding(
                f"Couldn't exchange keys with {other}: low order public key",
                original_error=e,
            ) from e

    def to_bytes(self) -> bytes:
        return self._raw

    def to_string(self) -> str:
        return _key_string(self._raw, X25519)

    def __repr__(self) -> str:
        return f"DhSecretKey(public_key={self.public_key()})"
