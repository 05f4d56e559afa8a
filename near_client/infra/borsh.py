"""
Binary wire encoding (Borsh) for transactions

Layout rules:
- fixed width little-endian integers (u8, u32, u64, u128)
- strings, byte blobs and vectors prefixed with their u32 length
- enums as a u8 variant tag followed by the variant fields
- Option as a 0/1 u8 tag followed by the value when present
- public keys as key type tag (0 = ed25519) + 32 bytes
- signatures as key type tag (0 = ed25519) + 64 bytes

Encoding is deterministic: the same transaction always yields the same bytes.
"""

import struct
from typing import Callable, Iterable, Optional, TypeVar

from ..errors import SerializationError
from ..types.actions import (
    ACTION_TAGS,
    AccessKey,
    AddKey,
    CreateAccount,
    DeleteAccount,
    DeleteKey,
    DeployContract,
    FullAccess,
    FunctionCall,
    FunctionCallPermission,
    Stake,
    Transfer,
)
from .keys import ED25519_KEY_TYPE, PUBLIC_KEY_LENGTH, SIGNATURE_LENGTH

T = TypeVar("T")

U32_MAX = 2 ** 32 - 1
U64_MAX = 2 ** 64 - 1
U128_MAX = 2 ** 128 - 1
BLOCK_HASH_LENGTH = 32


def _check_int(kind: str, value: int, maximum: int):
    if isinstance(value, bool) or not isinstance(value, int):
        raise SerializationError(f"Expected an integer for {kind}, got {type(value).__name__}")
    if value < 0 or value > maximum:
        raise SerializationError.out_of_range(kind, value)


def encode_u8(value: int) -> bytes:
    _check_int("u8", value, 0xFF)
    return struct.pack("<B", value)


def encode_u32(value: int) -> bytes:
    _check_int("u32", value, U32_MAX)
    return struct.pack("<I", value)


def encode_u64(value: int) -> bytes:
    _check_int("u64", value, U64_MAX)
    return struct.pack("<Q", value)


def encode_u128(value: int) -> bytes:
    _check_int("u128", value, U128_MAX)
    # struct has no 128-bit format: low word first
    return struct.pack("<QQ", value & U64_MAX, value >> 64)


def encode_bytes(value: bytes) -> bytes:
    """u32 length prefix + raw bytes"""
    value = bytes(value)
    return encode_u32(len(value)) + value


def encode_string(value: str) -> bytes:
    return encode_bytes(str(value).encode("utf-8"))


def encode_fixed(value: bytes, length: int, what: str) -> bytes:
    """Fixed size array, no length prefix"""
    value = bytes(value)
    if len(value) != length:
        raise SerializationError(f"{what} must be {length} bytes, got {len(value)}")
    return value


def encode_vec(items: Iterable[T], encode_item: Callable[[T], bytes]) -> bytes:
    items = list(items)
    return encode_u32(len(items)) + b"".join(encode_item(item) for item in items)


def encode_option(value: Optional[T], encode_item: Callable[[T], bytes]) -> bytes:
    if value is None:
        return encode_u8(0)
    return encode_u8(1) + encode_item(value)


def encode_public_key(public_key) -> bytes:
    return encode_u8(ED25519_KEY_TYPE) + encode_fixed(bytes(public_key), PUBLIC_KEY_LENGTH, "public key")


def encode_signature(signature) -> bytes:
    return encode_u8(ED25519_KEY_TYPE) + encode_fixed(bytes(signature), SIGNATURE_LENGTH, "signature")


def encode_access_key(access_key: AccessKey) -> bytes:
    permission = access_key.permission
    if isinstance(permission, FunctionCallPermission):
        encoded_permission = (
            encode_u8(0)
            + encode_option(permission.allowance, encode_u128)
            + encode_string(permission.receiver_id)
            + encode_vec(permission.method_names, encode_string)
        )
    elif isinstance(permission, FullAccess):
        encoded_permission = encode_u8(1)
    else:
        raise SerializationError(f"Unknown access key permission: {type(permission).__name__}")
    return encode_u64(access_key.nonce) + encoded_permission


def encode_action(action) -> bytes:
    """u8 variant tag + variant fields"""
    tag = ACTION_TAGS.get(type(action))
    if tag is None:
        raise SerializationError(f"Unknown action: {type(action).__name__}")

    if isinstance(action, CreateAccount):
        body = b""
    elif isinstance(action, DeployContract):
        body = encode_bytes(action.code)
    elif isinstance(action, FunctionCall):
        body = (
            encode_string(action.method_name)
            + encode_bytes(action.args)
            + encode_u64(action.gas)
            + encode_u128(action.deposit)
        )
    elif isinstance(action, Transfer):
        body = encode_u128(action.deposit)
    elif isinstance(action, Stake):
        body = encode_u128(action.stake) + encode_public_key(action.public_key)
    elif isinstance(action, AddKey):
        body = encode_public_key(action.public_key) + encode_access_key(action.access_key)
    elif isinstance(action, DeleteKey):
        body = encode_public_key(action.public_key)
    elif isinstance(action, DeleteAccount):
        body = encode_string(action.beneficiary_id)
    else:
        raise SerializationError(f"Unknown action: {type(action).__name__}")

    return encode_u8(tag) + body


def encode_transaction(tx) -> bytes:
    """
    Encode an UnsignedTransaction

    Field order: signer_id, public_key, nonce, receiver_id, block_hash, actions
    """
    return b"".join((
        encode_string(tx.signer_id),
        encode_public_key(tx.public_key),
        encode_u64(tx.nonce),
        encode_string(tx.receiver_id),
        encode_fixed(tx.block_hash, BLOCK_HASH_LENGTH, "block hash"),
        encode_vec(tx.actions, encode_action),
    ))


def encode_signed_transaction(signed_tx) -> bytes:
    """Transaction encoding followed by the signature"""
    return encode_transaction(signed_tx.transaction) + encode_signature(signed_tx.signature)
