"""
Unit tests for the submission pipeline and nonce-conflict retry
"""

import base64
import hashlib
import struct
import sys
import threading
import unittest
from pathlib import Path

import base58

sys.path.insert(0, str(Path(__file__).parent.parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fake_rpc import FakeRpc, BLOCK_HASH, invalid_nonce_error, outcome_payload

from near_client.infra.keys import KeyMaterial, Signature
from near_client.infra.signer import Signer
from near_client.infra.tx_builder import TransactionBuilder
from near_client.infra.pipeline import SubmissionPipeline, PipelineConfig, parse_invalid_nonce
from near_client.errors import (
    DeserializationError,
    EmptyTransaction,
    ErrorCode,
    InvalidNonce,
    RpcError,
    SubmissionFailed,
    TransportError,
)
from near_client.types import ExecutionOutcome, Finality, TxStatus, gas

SEED = b"\x33" * 32


def _signer(nonce: int = 0) -> Signer:
    return Signer(KeyMaterial.from_seed(SEED), "alice.testnet", nonce=nonce)


def _builder() -> TransactionBuilder:
    return TransactionBuilder("counter.testnet").function_call("add_value", {"value": 1}, gas=30 * 10 ** 12)


def _pipeline(rpc: FakeRpc, signer: Signer, max_retries: int = 0) -> SubmissionPipeline:
    return SubmissionPipeline(rpc, signer, PipelineConfig(max_retries=max_retries, finality=Finality.FINAL))


class TestParseInvalidNonce(unittest.TestCase):
    """Tests for nonce conflict detection in node errors"""

    def test_found_in_cause_info(self):
        error = parse_invalid_nonce(invalid_nonce_error(ak_nonce=45, tx_nonce=42))
        self.assertIsInstance(error, InvalidNonce)
        self.assertEqual(error.ak_nonce, 45)
        self.assertEqual(error.tx_nonce, 42)

    def test_found_in_data(self):
        error = parse_invalid_nonce(invalid_nonce_error(ak_nonce=7, tx_nonce=3, in_data=True))
        self.assertEqual(error.ak_nonce, 7)

    def test_other_error_not_matched(self):
        error = RpcError.from_response({
            "name": "HANDLER_ERROR",
            "cause": {"name": "INVALID_TRANSACTION", "info": {
                "TxExecutionError": {"InvalidTxError": {"NotEnoughBalance": {"cost": "1"}}}
            }},
        })
        self.assertIsNone(parse_invalid_nonce(error))


class TestSubmission(unittest.TestCase):
    """Tests for the happy path"""

    def test_first_submission_uses_fetched_nonce_plus_one(self):
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[outcome_payload(nonce=42)])
        signer = _signer()

        outcome = _pipeline(rpc, signer).submit(_builder())

        self.assertIsInstance(outcome, ExecutionOutcome)
        self.assertEqual(outcome.status, TxStatus.SUCCESS)
        self.assertEqual(outcome.output(), 43)
        self.assertEqual(rpc.broadcast_nonces(), [42])
        self.assertEqual(signer.nonce, 42)

    def test_access_key_query(self):
        rpc = FakeRpc(broadcast_results=[outcome_payload()])
        signer = _signer()

        _pipeline(rpc, signer).submit(_builder(), finality=Finality.DOOM_SLUG)

        request = rpc.queries[0]
        self.assertEqual(request["request_type"], "view_access_key")
        self.assertEqual(request["account_id"], "alice.testnet")
        self.assertEqual(request["public_key"], str(signer.public_key))
        self.assertEqual(request["finality"], "near-final")

    def test_broadcast_payload_is_signed_transaction(self):
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[outcome_payload()])
        signer = _signer()

        _pipeline(rpc, signer).submit(_builder())

        method, encoded = rpc.broadcasts[0]
        raw = base64.b64decode(encoded)
        self.assertEqual(method, "broadcast_tx_commit")
        self.assertEqual(raw[-65], 0)
        unsigned, signature = raw[:-65], Signature(raw[-64:])
        self.assertIn(BLOCK_HASH, unsigned)
        self.assertTrue(signer.public_key.verify(hashlib.sha256(unsigned).digest(), signature))

    def test_async_returns_hash_and_advances(self):
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=["6zgh2u9DqHHiXzdy9ouTP7oGky2T4nugqzqt9wJZwNFm"])
        signer = _signer()

        result = _pipeline(rpc, signer).submit(_builder(), wait=False)

        self.assertEqual(result, "6zgh2u9DqHHiXzdy9ouTP7oGky2T4nugqzqt9wJZwNFm")
        self.assertEqual(rpc.broadcasts[0][0], "broadcast_tx_async")
        self.assertEqual(signer.nonce, 42)

    def test_local_nonce_ahead_of_fetched(self):
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[outcome_payload()])
        signer = _signer(nonce=50)

        _pipeline(rpc, signer).submit(_builder())

        self.assertEqual(rpc.broadcast_nonces(), [51])
        self.assertEqual(signer.nonce, 51)

    def test_consecutive_submissions_strictly_increase(self):
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[outcome_payload(), outcome_payload()])
        signer = _signer()
        pipeline = _pipeline(rpc, signer)

        pipeline.submit(_builder())
        pipeline.submit(_builder())

        self.assertEqual(rpc.broadcast_nonces(), [42, 43])

    def test_empty_builder_rejected_before_any_call(self):
        rpc = FakeRpc()
        with self.assertRaises(EmptyTransaction):
            _pipeline(rpc, _signer()).submit(TransactionBuilder("counter.testnet"))
        self.assertEqual(rpc.queries, [])
        self.assertEqual(rpc.broadcasts, [])


class TestNonceRetry(unittest.TestCase):
    """Tests for resync and retry on nonce conflicts"""

    def test_resync_to_reported_nonce_plus_one(self):
        rpc = FakeRpc(
            access_key_nonce=41,
            broadcast_results=[invalid_nonce_error(ak_nonce=45, tx_nonce=42), outcome_payload(nonce=46)],
        )
        signer = _signer()

        outcome = _pipeline(rpc, signer, max_retries=1).submit(_builder())

        self.assertTrue(outcome.is_success)
        self.assertEqual(rpc.broadcast_nonces(), [42, 46])
        self.assertEqual(signer.nonce, 46)

    def test_retry_reuses_block_hash(self):
        rpc = FakeRpc(
            access_key_nonce=41,
            broadcast_results=[invalid_nonce_error(45, 42), outcome_payload()],
        )

        _pipeline(rpc, _signer(), max_retries=1).submit(_builder())

        access_key_queries = [q for q in rpc.queries if q.get("request_type") == "view_access_key"]
        self.assertEqual(len(access_key_queries), 1)
        for _, encoded in rpc.broadcasts:
            self.assertIn(BLOCK_HASH, base64.b64decode(encoded))

    def test_no_retry_by_default(self):
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[invalid_nonce_error(45, 42)])
        signer = _signer()

        with self.assertRaises(SubmissionFailed) as ctx:
            _pipeline(rpc, signer).submit(_builder())

        self.assertEqual(ctx.exception.reason, ErrorCode.INVALID_NONCE)
        self.assertEqual(len(rpc.broadcasts), 1)

    def test_exactly_max_retries_plus_one_attempts(self):
        rpc = FakeRpc(
            access_key_nonce=41,
            broadcast_results=[invalid_nonce_error(45 + i, 42) for i in range(5)],
        )
        signer = _signer()

        with self.assertRaises(SubmissionFailed) as ctx:
            _pipeline(rpc, signer, max_retries=2).submit(_builder())

        self.assertEqual(len(rpc.broadcasts), 3)
        self.assertEqual(rpc.broadcast_nonces(), [42, 46, 47])
        self.assertEqual(ctx.exception.reason, ErrorCode.INVALID_NONCE)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIsInstance(ctx.exception.__cause__, InvalidNonce)
        self.assertEqual(ctx.exception.__cause__.ak_nonce, 47)

    def test_per_call_retry_override(self):
        rpc = FakeRpc(
            access_key_nonce=41,
            broadcast_results=[invalid_nonce_error(45, 42), outcome_payload()],
        )

        _pipeline(rpc, _signer(), max_retries=0).submit(_builder(), max_retries=1)

        self.assertEqual(len(rpc.broadcasts), 2)

    def test_negative_retries_rejected(self):
        with self.assertRaises(ValueError):
            _pipeline(FakeRpc(), _signer()).submit(_builder(), max_retries=-1)


class TestFailureClassification(unittest.TestCase):
    """Tests for non-nonce errors"""

    def test_other_rpc_error_not_retried(self):
        error = RpcError.from_response({
            "name": "HANDLER_ERROR",
            "cause": {"name": "INVALID_TRANSACTION", "info": {
                "TxExecutionError": {"InvalidTxError": {"NotEnoughBalance": {"cost": "1"}}}
            }},
        })
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[error, outcome_payload()])
        signer = _signer()

        with self.assertRaises(SubmissionFailed) as ctx:
            _pipeline(rpc, signer, max_retries=3).submit(_builder())

        self.assertEqual(ctx.exception.reason, ErrorCode.TX_REJECTED)
        self.assertIs(ctx.exception.__cause__, error)
        self.assertEqual(len(rpc.broadcasts), 1)
        self.assertEqual(signer.nonce, 41)

    def test_transport_error_propagates_unchanged(self):
        error = TransportError.timeout("https://rpc.testnet.near.org", 30)
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[error, outcome_payload()])
        signer = _signer()

        with self.assertRaises(TransportError) as ctx:
            _pipeline(rpc, signer, max_retries=3).submit(_builder())

        self.assertIs(ctx.exception, error)
        self.assertEqual(len(rpc.broadcasts), 1)
        self.assertEqual(signer.nonce, 41)

    def test_execution_failure_consumes_nonce(self):
        failure = {"ActionError": {"index": 0, "kind": {"FunctionCallError": {"ExecutionError": "panic"}}}}
        rpc = FakeRpc(
            access_key_nonce=41,
            broadcast_results=[outcome_payload(status={"Failure": failure}, logs=["before panic"])],
        )
        signer = _signer()

        with self.assertRaises(SubmissionFailed) as ctx:
            _pipeline(rpc, signer).submit(_builder())

        self.assertEqual(ctx.exception.reason, ErrorCode.TX_EXECUTION_FAILED)
        self.assertEqual(ctx.exception.logs, ["before panic"])
        self.assertEqual(signer.nonce, 42)

    def test_not_started(self):
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[outcome_payload(status="NotStarted")])

        with self.assertRaises(SubmissionFailed) as ctx:
            _pipeline(rpc, _signer()).submit(_builder())

        self.assertEqual(ctx.exception.reason, ErrorCode.TX_NOT_STARTED)


class TestConcurrency(unittest.TestCase):

    def test_concurrent_submissions_never_reuse_nonce(self):
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[outcome_payload() for _ in range(8)])
        signer = _signer()
        pipeline = _pipeline(rpc, signer)
        errors = []

        def worker():
            try:
                pipeline.submit(_builder())
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(sorted(rpc.broadcast_nonces()), list(range(42, 50)))
        self.assertEqual(signer.nonce, 49)


class TestAccountScenario(unittest.TestCase):
    """alice.testnet calling add_value with a key loaded from its string form"""

    def setUp(self):
        secret = KeyMaterial.from_seed(SEED).to_string()
        self.assertEqual(len(base58.b58decode(secret.split(":", 1)[1])), 64)
        self.signer = Signer.from_secret_str(secret, "alice.testnet")

    def _builder(self) -> TransactionBuilder:
        return TransactionBuilder("counter.testnet").function_call(
            "add_value", {"superb_value": "5"}, gas=gas("300 T"),
        )

    def test_fetched_41_signs_42_then_conflict_45_signs_46(self):
        rpc = FakeRpc(
            access_key_nonce=41,
            broadcast_results=[outcome_payload(nonce=42), invalid_nonce_error(45, 43), outcome_payload(nonce=46)],
        )
        pipeline = _pipeline(rpc, self.signer, max_retries=1)

        first = pipeline.submit(self._builder())
        second = pipeline.submit(self._builder())

        self.assertTrue(first.is_success)
        self.assertTrue(second.is_success)
        self.assertEqual(rpc.broadcast_nonces(), [42, 43, 46])
        self.assertEqual(self.signer.nonce, 46)

    def test_function_call_payload(self):
        rpc = FakeRpc(access_key_nonce=41, broadcast_results=[outcome_payload()])

        _pipeline(rpc, self.signer).submit(self._builder())

        raw = base64.b64decode(rpc.broadcasts[0][1])
        self.assertIn(b'{"superb_value":"5"}', raw)
        self.assertIn(struct.pack("<Q", 300 * 10 ** 12), raw)


class TestUnreadableOutcome(unittest.TestCase):

    def test_bad_success_value_raises_deserialization_error_and_consumes_nonce(self):
        rpc = FakeRpc(
            access_key_nonce=41,
            broadcast_results=[outcome_payload(status={"SuccessValue": "abc"})],
        )
        signer = _signer()

        with self.assertRaises(DeserializationError):
            _pipeline(rpc, signer).submit(_builder())

        self.assertEqual(signer.nonce, 42)


if __name__ == "__main__":
    unittest.main()
