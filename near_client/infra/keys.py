"""
ed25519 key material

Keys travel as "<algorithm-tag>:<base58 bytes>" strings, e.g.

    ed25519:5nYRq...   (public key, 32 bytes)
    ed25519:3D4YK...   (secret key, 64 bytes seed || public, or 32 bytes seed)
"""

from __future__ import annotations

from typing import Tuple, Union

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature as SoldersSignature

from ..errors import InvalidKeyEncoding


ED25519 = "ed25519"
# Borsh enum tag of the ed25519 key type
ED25519_KEY_TYPE = 0

PUBLIC_KEY_LENGTH = 32
SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64
SIGNATURE_LENGTH = 64


def _split_key_string(value: str, what: str, expected_type: str = ED25519) -> Tuple[str, bytes]:
    """Split "<tag>:<base58>" and decode the payload"""
    if not isinstance(value, str):
        raise InvalidKeyEncoding(f"Couldn't decode {what}: expected a string, got {type(value).__name__}")
    key_type, sep, payload = value.partition(":")
    if not sep:
        raise InvalidKeyEncoding(f"Couldn't decode {what}: expected \"{expected_type}:<base58>\"")
    if key_type != expected_type:
        raise InvalidKeyEncoding.unknown_key_type(key_type, expected_type)
    try:
        raw = base58.b58decode(payload)
    except ValueError as e:
        raise InvalidKeyEncoding(f"Couldn't decode {what}: invalid base58", original_error=e) from e
    return key_type, raw


def _key_string(raw: bytes, key_type: str = ED25519) -> str:
    return f"{key_type}:{base58.b58encode(raw).decode('ascii')}"


class PublicKey:
    """32-byte ed25519 public key"""

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        raw = bytes(raw)
        if len(raw) != PUBLIC_KEY_LENGTH:
            raise InvalidKeyEncoding.wrong_length("public key", len(raw), str(PUBLIC_KEY_LENGTH))
        self._raw = raw

    @classmethod
    def from_string(cls, value: str) -> "PublicKey":
        _, raw = _split_key_string(value, "public key")
        return cls(raw)

    def to_bytes(self) -> bytes:
        return self._raw

    def verify(self, message: bytes, signature: Union["Signature", bytes]) -> bool:
        """Check an ed25519 signature over ``message``"""
        sig_bytes = bytes(signature)
        if len(sig_bytes) != SIGNATURE_LENGTH:
            return False
        return SoldersSignature.from_bytes(sig_bytes).verify(Pubkey.from_bytes(self._raw), message)

    def __bytes__(self) -> bytes:
        return self._raw

    def __str__(self) -> str:
        return _key_string(self._raw)

    def __repr__(self) -> str:
        return f"PublicKey({self})"

    def __eq__(self, other) -> bool:
        return isinstance(other, PublicKey) and other._raw == self._raw

    def __hash__(self) -> int:
        return hash(self._raw)


class Signature:
    """64-byte ed25519 signature"""

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        raw = bytes(raw)
        if len(raw) != SIGNATURE_LENGTH:
            raise InvalidKeyEncoding.wrong_length("signature", len(raw), str(SIGNATURE_LENGTH))
        self._raw = raw

    @classmethod
    def from_string(cls, value: str) -> "Signature":
        _, raw = _split_key_string(value, "signature")
        return cls(raw)

    def to_bytes(self) -> bytes:
        return self._raw

    def __bytes__(self) -> bytes:
        return self._raw

    def __str__(self) -> str:
        return _key_string(self._raw)

    def __repr__(self) -> str:
        return f"Signature({str(self)[:24]}...)"

    def __eq__(self, other) -> bool:
        return isinstance(other, Signature) and other._raw == self._raw

    def __hash__(self) -> int:
        return hash(self._raw)


class KeyMaterial:
    """
    ed25519 keypair backed by solders

    The secret half never appears in repr or logs.

    Usage:
        key = KeyMaterial.from_string("ed25519:...")
        sig = key.sign(b"message")
        assert key.public_key().verify(b"message", sig)
    """

    def __init__(self, keypair: Keypair):
        self._keypair = keypair
        self._public_key = PublicKey(bytes(keypair.pubkey()))

    @classmethod
    def generate(cls) -> "KeyMaterial":
        """Random keypair"""
        return cls(Keypair())

    @classmethod
    def from_seed(cls, seed: bytes) -> "KeyMaterial":
        """Keypair from a 32-byte secret seed"""
        seed = bytes(seed)
        if len(seed) != SEED_LENGTH:
            raise InvalidKeyEncoding.wrong_length("secret seed", len(seed), str(SEED_LENGTH))
        return cls(Keypair.from_seed(seed))

    @classmethod
    def from_bytes(cls, secret: bytes) -> "KeyMaterial":
        """
        Keypair from raw secret bytes

        Accepts 64 bytes (seed || public key) or 32 bytes (seed only). With 64
        bytes the public half must match the key derived from the seed.
        """
        secret = bytes(secret)
        if len(secret) == SEED_LENGTH:
            return cls.from_seed(secret)
        if len(secret) != SECRET_KEY_LENGTH:
            raise InvalidKeyEncoding.wrong_length(
                "secret key", len(secret), f"{SEED_LENGTH} or {SECRET_KEY_LENGTH}"
            )
        key = cls.from_seed(secret[:SEED_LENGTH])
        if bytes(key.public_key()) != secret[SEED_LENGTH:]:
            raise InvalidKeyEncoding("Couldn't decode secret key: public half does not match the seed")
        return key

    @classmethod
    def from_string(cls, value: str) -> "KeyMaterial":
        """Keypair from an "ed25519:<base58>" secret key string"""
        _, raw = _split_key_string(value, "secret key")
        return cls.from_bytes(raw)

    def public_key(self) -> PublicKey:
        return self._public_key

    def sign(self, message: bytes) -> Signature:
        return Signature(bytes(self._keypair.sign_message(message)))

    def to_bytes(self) -> bytes:
        """Expanded 64-byte secret (seed || public key)"""
        return bytes(self._keypair)

    def to_string(self) -> str:
        return _key_string(self.to_bytes())

    def __repr__(self) -> str:
        return f"KeyMaterial(public_key={self._public_key})"
