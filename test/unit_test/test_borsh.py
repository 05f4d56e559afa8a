"""
Unit tests for the binary transaction encoding
"""

import struct
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from near_client.infra import borsh
from near_client.infra.keys import KeyMaterial
from near_client.errors import SerializationError
from near_client.types import (
    AccountId,
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
    UnsignedTransaction,
    SignedTransaction,
)

KEY = KeyMaterial.from_seed(b"\x07" * 32)
PK = KEY.public_key()
BLOCK_HASH = bytes(range(32))


def _transaction(nonce=42, actions=None) -> UnsignedTransaction:
    return UnsignedTransaction(
        signer_id=AccountId("alice.testnet"),
        public_key=PK,
        nonce=nonce,
        receiver_id=AccountId("counter.testnet"),
        block_hash=BLOCK_HASH,
        actions=tuple(actions or [FunctionCall("add_value", b'{"value":1}', 30 * 10 ** 12, 0)]),
    )


class TestPrimitives(unittest.TestCase):
    """Tests for fixed-width integers, strings and containers"""

    def test_u64_little_endian(self):
        self.assertEqual(borsh.encode_u64(1), b"\x01" + b"\x00" * 7)

    def test_u128_little_endian(self):
        self.assertEqual(borsh.encode_u128(1), b"\x01" + b"\x00" * 15)
        self.assertEqual(borsh.encode_u128(2 ** 64), b"\x00" * 8 + b"\x01" + b"\x00" * 7)
        self.assertEqual(borsh.encode_u128(2 ** 128 - 1), b"\xff" * 16)

    def test_string_length_prefixed(self):
        self.assertEqual(borsh.encode_string("ab"), b"\x02\x00\x00\x00ab")

    def test_option(self):
        self.assertEqual(borsh.encode_option(None, borsh.encode_u128), b"\x00")
        self.assertEqual(borsh.encode_option(5, borsh.encode_u8), b"\x01\x05")

    def test_vec(self):
        encoded = borsh.encode_vec(["a", "b"], borsh.encode_string)
        self.assertEqual(encoded, b"\x02\x00\x00\x00" + b"\x01\x00\x00\x00a" + b"\x01\x00\x00\x00b")

    def test_out_of_range_rejected(self):
        with self.assertRaises(SerializationError):
            borsh.encode_u64(2 ** 64)
        with self.assertRaises(SerializationError):
            borsh.encode_u128(2 ** 128)
        with self.assertRaises(SerializationError):
            borsh.encode_u64(-1)

    def test_bool_rejected_as_integer(self):
        with self.assertRaises(SerializationError):
            borsh.encode_u64(True)


class TestActions(unittest.TestCase):
    """Tests for action variant tags and layouts"""

    def test_variant_tags(self):
        cases = [
            (CreateAccount(), 0),
            (DeployContract(b"\x00asm"), 1),
            (FunctionCall("m"), 2),
            (Transfer(1), 3),
            (Stake(1, PK), 4),
            (AddKey(PK), 5),
            (DeleteKey(PK), 6),
            (DeleteAccount(AccountId("bob.testnet")), 7),
        ]
        for action, tag in cases:
            self.assertEqual(borsh.encode_action(action)[0], tag, type(action).__name__)

    def test_transfer_layout(self):
        self.assertEqual(borsh.encode_action(Transfer(10)), b"\x03" + struct.pack("<QQ", 10, 0))

    def test_function_call_layout(self):
        encoded = borsh.encode_action(FunctionCall("add", b"{}", gas=5, deposit=7))
        expected = (
            b"\x02"
            + b"\x03\x00\x00\x00add"
            + b"\x02\x00\x00\x00{}"
            + struct.pack("<Q", 5)
            + struct.pack("<QQ", 7, 0)
        )
        self.assertEqual(encoded, expected)

    def test_add_full_access_key_layout(self):
        encoded = borsh.encode_action(AddKey(PK, AccessKey(nonce=0, permission=FullAccess())))
        expected = b"\x05" + b"\x00" + bytes(PK) + struct.pack("<Q", 0) + b"\x01"
        self.assertEqual(encoded, expected)

    def test_add_function_call_key_layout(self):
        permission = FunctionCallPermission(
            receiver_id=AccountId("counter.testnet"),
            method_names=("add_value",),
            allowance=None,
        )
        encoded = borsh.encode_action(AddKey(PK, AccessKey(nonce=3, permission=permission)))
        expected = (
            b"\x05" + b"\x00" + bytes(PK)
            + struct.pack("<Q", 3)
            + b"\x00"  # FunctionCall permission
            + b"\x00"  # no allowance
            + borsh.encode_string("counter.testnet")
            + b"\x01\x00\x00\x00" + borsh.encode_string("add_value")
        )
        self.assertEqual(encoded, expected)

    def test_unknown_action_rejected(self):
        with self.assertRaises(SerializationError):
            borsh.encode_action(object())


class TestTransactionEncoding(unittest.TestCase):
    """Tests for whole transaction encoding"""

    def test_field_order(self):
        encoded = borsh.encode_transaction(_transaction(nonce=42))
        offset = 0
        self.assertEqual(encoded[offset:offset + 4], struct.pack("<I", 13))
        offset += 4
        self.assertEqual(encoded[offset:offset + 13], b"alice.testnet")
        offset += 13
        self.assertEqual(encoded[offset:offset + 33], b"\x00" + bytes(PK))
        offset += 33
        self.assertEqual(struct.unpack_from("<Q", encoded, offset)[0], 42)
        offset += 8
        self.assertEqual(encoded[offset:offset + 4], struct.pack("<I", 15))
        offset += 4 + 15
        self.assertEqual(encoded[offset:offset + 32], BLOCK_HASH)
        offset += 32
        self.assertEqual(struct.unpack_from("<I", encoded, offset)[0], 1)

    def test_deterministic(self):
        first = _transaction().encode()
        second = _transaction().encode()
        self.assertEqual(first, second)
        self.assertEqual(_transaction().digest(), _transaction().digest())

    def test_nonce_changes_encoding(self):
        self.assertNotEqual(_transaction(nonce=42).encode(), _transaction(nonce=43).encode())

    def test_action_order_preserved(self):
        forward = _transaction(actions=[CreateAccount(), Transfer(1)]).encode()
        backward = _transaction(actions=[Transfer(1), CreateAccount()]).encode()
        self.assertNotEqual(forward, backward)
        self.assertEqual(forward[-17:], borsh.encode_action(Transfer(1)))

    def test_block_hash_must_be_32_bytes(self):
        tx = UnsignedTransaction(
            signer_id=AccountId("alice.testnet"),
            public_key=PK,
            nonce=1,
            receiver_id=AccountId("counter.testnet"),
            block_hash=b"\x00" * 31,
            actions=(Transfer(1),),
        )
        with self.assertRaises(SerializationError):
            tx.encode()

    def test_signed_transaction_appends_signature(self):
        unsigned = _transaction()
        signed = SignedTransaction(unsigned, KEY.sign(unsigned.digest()))
        encoded = signed.encode()
        self.assertEqual(encoded[:-65], unsigned.encode())
        self.assertEqual(encoded[-65:], b"\x00" + bytes(signed.signature))


if __name__ == "__main__":
    unittest.main()
