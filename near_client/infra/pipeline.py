"""
Transaction submission pipeline

fetch access key -> reconcile nonce -> build -> sign -> broadcast -> classify

Only nonce conflicts are retried. Each retry re-signs the same actions with
the nonce reported by the node plus one and reuses the fetched block hash.
Transport failures are never retried here since a timed out broadcast may
still have been accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import base58

from .correlation import CorrelationContext, log_with_correlation
from .rpc import RpcClient
from .signer import Signer
from .tx_builder import TransactionBuilder
from ..errors import (
    DeserializationError,
    EmptyTransaction,
    InvalidNonce,
    RpcError,
    SubmissionFailed,
)
from ..modules.view import ViewQuery
from ..types import ExecutionOutcome, Finality, FunctionCall, SignedTransaction, TxStatus
from ..config import config as global_config

logger = logging.getLogger(__name__)

INVALID_NONCE_KEY = "InvalidNonce"


@dataclass
class PipelineConfig:
    """
    Submission pipeline runtime configuration

    Attributes:
        max_retries: Extra attempts allowed after a nonce conflict (0 = single attempt)
        finality: Finality used to fetch nonce and block hash
    """
    max_retries: int = None
    finality: Finality = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.max_retries is None:
            self.max_retries = global_config.tx.max_retries
        if self.finality is None:
            self.finality = global_config.tx.finality
        self.finality = Finality.parse(self.finality)
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")


def _find_invalid_nonce(payload: Any) -> Optional[dict]:
    """Depth-first search for {"InvalidNonce": {"ak_nonce": ..., ...}}"""
    if isinstance(payload, dict):
        candidate = payload.get(INVALID_NONCE_KEY)
        if isinstance(candidate, dict) and "ak_nonce" in candidate:
            return candidate
        for value in payload.values():
            found = _find_invalid_nonce(value)
            if found is not None:
                return found
    elif isinstance(payload, list):
        for value in payload:
            found = _find_invalid_nonce(value)
            if found is not None:
                return found
    return None


def parse_invalid_nonce(error: RpcError) -> Optional[InvalidNonce]:
    """
    Extract a nonce conflict from a node error

    The discriminator is TxExecutionError.InvalidTxError.InvalidNonce, found
    either in the cause info or in the error data.
    """
    for source in (error.cause_info, error.data):
        details = _find_invalid_nonce(source)
        if details is not None:
            return InvalidNonce(
                ak_nonce=int(details["ak_nonce"]),
                tx_nonce=details.get("tx_nonce"),
                original_error=error,
            )
    return None


def _operation_name(builder: TransactionBuilder) -> str:
    for action in builder.actions:
        if isinstance(action, FunctionCall):
            return action.method_name
    if builder.actions:
        return type(builder.actions[0]).__name__.lower()
    return "transaction"


class SubmissionPipeline:
    """
    Builds, signs and submits transactions for one signer

    The signer's lock is held for the whole submission, so concurrent
    submissions through the same signer never reuse a nonce.

    Usage:
        pipeline = SubmissionPipeline(rpc, signer, PipelineConfig(max_retries=2))

        builder = TransactionBuilder("counter.testnet").function_call("add_value", {"value": 1})
        outcome = pipeline.submit(builder)
        tx_hash = pipeline.submit(builder, wait=False)
    """

    def __init__(
        self,
        rpc: RpcClient,
        signer: Signer,
        config: Optional[PipelineConfig] = None,
    ):
        """
        Initialize submission pipeline

        Args:
            rpc: RPC client
            signer: Transaction signer
            config: Retry and finality configuration
        """
        self._rpc = rpc
        self._signer = signer
        self._config = config or PipelineConfig()
        self._view = ViewQuery(rpc)

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def submit(
        self,
        builder: TransactionBuilder,
        wait: bool = True,
        max_retries: Optional[int] = None,
        finality: Optional[Union[str, Finality]] = None,
    ) -> Union[ExecutionOutcome, str]:
        """
        Submit a transaction

        Args:
            builder: Actions and receiver of the transaction
            wait: True waits for the final outcome (broadcast_tx_commit),
                False returns as soon as the node accepted it (broadcast_tx_async)
            max_retries: Override of config.max_retries
            finality: Override of the finality used to fetch nonce and block hash

        Returns:
            ExecutionOutcome when waiting, otherwise the transaction hash

        Raises:
            EmptyTransaction: Builder has no actions
            SubmissionFailed: Node rejected the transaction, nonce conflicts
                outlasted the retries, or execution failed
            TransportError: Network failure, propagated unchanged
        """
        if not builder.actions:
            raise EmptyTransaction(builder.receiver_id)

        max_retries = self._config.max_retries if max_retries is None else max_retries
        if max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {max_retries}")
        finality = Finality.parse(finality or builder.config.finality or self._config.finality)
        max_attempts = max_retries + 1
        operation = _operation_name(builder)

        with CorrelationContext(operation), self._signer.lock:
            access_key = self._view.view_access_key(
                self._signer.account_id,
                self._signer.public_key,
                finality=finality,
            )
            block_hash = self._decode_block_hash(access_key)
            self._signer.reconcile(int(access_key["nonce"]))

            attempt = 0
            while True:
                attempt += 1
                signed = self._sign(builder, block_hash)
                log_with_correlation(
                    logger, logging.INFO,
                    f"Submitting {signed.transaction_id} to {builder.receiver_id} with nonce {signed.nonce}",
                    operation, attempt, max_attempts,
                    nonce=signed.nonce,
                )

                try:
                    response = self._broadcast(signed, wait)
                except RpcError as e:
                    nonce_error = parse_invalid_nonce(e)
                    if nonce_error is None:
                        log_with_correlation(
                            logger, logging.ERROR,
                            f"Transaction rejected: {e.message}",
                            operation, attempt, max_attempts,
                        )
                        raise SubmissionFailed.rejected(e, attempt) from e

                    if attempt >= max_attempts:
                        log_with_correlation(
                            logger, logging.ERROR,
                            f"Nonce conflict, no retries left (ak_nonce={nonce_error.ak_nonce})",
                            operation, attempt, max_attempts,
                        )
                        raise SubmissionFailed.nonce_exhausted(nonce_error, attempt) from nonce_error

                    log_with_correlation(
                        logger, logging.WARNING,
                        f"Nonce conflict: tx_nonce={nonce_error.tx_nonce} ak_nonce={nonce_error.ak_nonce}, retrying",
                        operation, attempt, max_attempts,
                        ak_nonce=nonce_error.ak_nonce,
                    )
                    self._signer.resync(nonce_error.ak_nonce)
                    continue

                return self._classify(signed, response, wait, operation)

    def _sign(self, builder: TransactionBuilder, block_hash: bytes) -> SignedTransaction:
        unsigned = builder.build(
            self._signer.account_id,
            self._signer.public_key,
            self._signer.next_nonce,
            block_hash,
        )
        return self._signer.sign_transaction(unsigned)

    def _broadcast(self, signed: SignedTransaction, wait: bool) -> Any:
        encoded = signed.to_base64()
        if wait:
            return self._rpc.broadcast_tx_commit(encoded)
        return self._rpc.broadcast_tx_async(encoded)

    def _classify(
        self,
        signed: SignedTransaction,
        response: Any,
        wait: bool,
        operation: str,
    ) -> Union[ExecutionOutcome, str]:
        """Turn an accepted broadcast into a result, advancing the nonce when consumed"""
        if not wait:
            self._signer.advance()
            log_with_correlation(logger, logging.INFO, f"Accepted {response}", operation)
            return response

        try:
            outcome = ExecutionOutcome.from_rpc(response)
        except DeserializationError:
            # The node answered with an outcome, so the nonce was consumed
            self._signer.advance()
            log_with_correlation(
                logger, logging.ERROR,
                f"Unreadable outcome for {signed.transaction_id}",
                operation,
            )
            raise

        transaction_id = outcome.transaction_id or signed.transaction_id

        if outcome.status == TxStatus.NOT_STARTED:
            log_with_correlation(logger, logging.ERROR, f"Not started {transaction_id}", operation)
            raise SubmissionFailed.not_started(outcome.logs, transaction_id)

        # Included in a block: the nonce is consumed whatever the execution result
        self._signer.advance()

        if outcome.status == TxStatus.FAILED:
            log_with_correlation(
                logger, logging.ERROR,
                f"Execution failed {transaction_id}: {outcome.failure}",
                operation,
            )
            raise SubmissionFailed.execution_failed(outcome.failure, outcome.logs, transaction_id)

        log_with_correlation(
            logger, logging.INFO,
            f"Confirmed {transaction_id} ({outcome.status.value}, gas_burnt={outcome.gas_burnt})",
            operation,
        )
        return outcome

    @staticmethod
    def _decode_block_hash(access_key: dict) -> bytes:
        encoded = access_key.get("block_hash")
        if not encoded:
            raise DeserializationError.missing_field("access key", "block_hash", access_key)
        try:
            return base58.b58decode(encoded)
        except ValueError as e:
            raise DeserializationError(
                f"Couldn't decode block hash {encoded!r}",
                original_error=e,
                payload=access_key,
            ) from e
