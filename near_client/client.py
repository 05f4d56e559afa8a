"""
NearClient - Unified entry point for NEAR RPC operations

Provides high-level interface for read-only queries (through the view module)
and for building, signing and submitting transactions.
"""

from __future__ import annotations

import secrets
from typing import Any, Dict, List, Optional, Union

from .infra import (
    RpcClient,
    RpcClientConfig,
    Signer,
    create_signer,
    PublicKey,
    TransactionBuilder,
    TxBuilderConfig,
    SubmissionPipeline,
    PipelineConfig,
)
from .modules.view import ViewQuery
from .errors import SignerError
from .types import (
    AccountId,
    AccessKeyPermission,
    ExecutionOutcome,
    Finality,
    FullAccess,
    ViewOutput,
)


class PendingTransaction:
    """
    Transaction that is built but not yet submitted

    Usage:
        outcome = client.function_call("counter.testnet", "add_value", {"value": 1}).retry(2).commit()
        tx_hash = client.send("bob.testnet", near("1 N")).commit_async()
    """

    def __init__(
        self,
        builder: TransactionBuilder,
        rpc: RpcClient,
        signer: Signer,
        pipeline_config: Optional[PipelineConfig] = None,
    ):
        self._builder = builder
        self._rpc = rpc
        self._signer = signer
        self._pipeline_config = pipeline_config
        self._max_retries: Optional[int] = None

    @property
    def builder(self) -> TransactionBuilder:
        return self._builder

    def retry(self, max_retries: int) -> "PendingTransaction":
        """Allow up to ``max_retries`` resubmissions after nonce conflicts"""
        if max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {max_retries}")
        self._max_retries = max_retries
        return self

    def _pipeline(self) -> SubmissionPipeline:
        return SubmissionPipeline(self._rpc, self._signer, config=self._pipeline_config)

    def commit(self, finality: Optional[Union[str, Finality]] = None) -> ExecutionOutcome:
        """Submit and wait for the final execution outcome"""
        return self._pipeline().submit(
            self._builder,
            wait=True,
            max_retries=self._max_retries,
            finality=finality,
        )

    def commit_async(self, finality: Optional[Union[str, Finality]] = None) -> str:
        """Submit without waiting; returns the transaction hash"""
        return self._pipeline().submit(
            self._builder,
            wait=False,
            max_retries=self._max_retries,
            finality=finality,
        )

    def __repr__(self) -> str:
        return f"PendingTransaction({self._builder!r}, signer={self._signer.account_id})"


class NearClient:
    """
    Unified NEAR client

    Provides:
    - view: read-only contract calls, keys, accounts, state, blocks
    - transaction factories returning PendingTransaction

    Usage:
        signer = Signer.from_secret_str("ed25519:...", "alice.testnet")
        client = NearClient("https://rpc.testnet.near.org", signer=signer)

        # Read
        num = client.view("counter.testnet", "get_num").data

        # Write
        outcome = client.function_call("counter.testnet", "add_value", {"value": 1}).commit()
        print(outcome.transaction_id, outcome.logs)
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        signer: Optional[Signer] = None,
        rpc_config: Optional[RpcClientConfig] = None,
        pipeline_config: Optional[PipelineConfig] = None,
        tx_config: Optional[TxBuilderConfig] = None,
    ):
        """
        Initialize NearClient

        Args:
            rpc_url: RPC endpoint URL (defaults to NEAR_RPC_URL)
            signer: Default signer for transactions (defaults to NEAR_PRIVATE_KEY / NEAR_ACCOUNT_ID)
            rpc_config: Optional RPC configuration
            pipeline_config: Optional submission configuration
            tx_config: Optional default gas / deposit for built transactions
        """
        self._rpc = RpcClient(rpc_url, config=rpc_config)
        self._signer = signer if signer is not None else create_signer()
        self._pipeline_config = pipeline_config
        self._tx_config = tx_config
        self._view = ViewQuery(self._rpc)

    @property
    def rpc(self) -> RpcClient:
        """Access to RPC client"""
        return self._rpc

    @property
    def signer(self) -> Optional[Signer]:
        """Default signer, None for a read-only client"""
        return self._signer

    @property
    def views(self) -> ViewQuery:
        """Access to the view module"""
        return self._view

    def _resolve_signer(self, signer: Optional[Signer]) -> Signer:
        signer = signer or self._signer
        if signer is None:
            raise SignerError.not_configured()
        return signer

    def _pending(self, builder: TransactionBuilder, signer: Optional[Signer]) -> PendingTransaction:
        return PendingTransaction(
            builder,
            self._rpc,
            self._resolve_signer(signer),
            pipeline_config=self._pipeline_config,
        )

    def _builder(self, receiver_id: Union[str, AccountId]) -> TransactionBuilder:
        return TransactionBuilder(receiver_id, config=self._tx_config)

    # ------------------------------------------------------------------
    # Read path

    def view(
        self,
        contract_id: Union[str, AccountId],
        method: str,
        args: Any = None,
        finality: Union[str, Finality] = Finality.FINAL,
        result_type: Any = None,
    ) -> ViewOutput:
        """Call a contract view method (see ViewQuery.query)"""
        return self._view.query(contract_id, method, args, finality=finality, result_type=result_type)

    def view_access_key(
        self,
        account_id: Union[str, AccountId],
        public_key: Union[str, PublicKey],
        finality: Union[str, Finality] = Finality.FINAL,
    ) -> Dict[str, Any]:
        return self._view.view_access_key(account_id, public_key, finality=finality)

    def view_access_key_list(
        self,
        account_id: Union[str, AccountId],
        finality: Union[str, Finality] = Finality.FINAL,
    ) -> List[Dict[str, Any]]:
        return self._view.view_access_key_list(account_id, finality=finality)

    def view_account(
        self,
        account_id: Union[str, AccountId],
        finality: Union[str, Finality] = Finality.FINAL,
    ) -> Dict[str, Any]:
        return self._view.view_account(account_id, finality=finality)

    def view_state(
        self,
        account_id: Union[str, AccountId],
        prefix: bytes = b"",
        finality: Union[str, Finality] = Finality.FINAL,
    ) -> Dict[bytes, bytes]:
        return self._view.view_state(account_id, prefix=prefix, finality=finality)

    def network_status(self) -> Dict[str, Any]:
        return self._view.network_status()

    def block_hash(self, finality: Union[str, Finality] = Finality.FINAL) -> bytes:
        return self._view.block_hash(finality)

    def view_transaction(self, tx_hash: str, sender_id: Union[str, AccountId]) -> ExecutionOutcome:
        return self._view.view_transaction(tx_hash, sender_id)

    # ------------------------------------------------------------------
    # Transactions

    def function_call(
        self,
        contract_id: Union[str, AccountId],
        method: str,
        args: Any = None,
        gas: Optional[int] = None,
        deposit: Optional[int] = None,
        signer: Optional[Signer] = None,
    ) -> PendingTransaction:
        """Call a contract method that changes state"""
        builder = self._builder(contract_id).function_call(method, args, gas=gas, deposit=deposit)
        return self._pending(builder, signer)

    def deploy_contract(
        self,
        contract_id: Union[str, AccountId],
        wasm: bytes,
        signer: Optional[Signer] = None,
    ) -> PendingTransaction:
        """Deploy compiled wasm code to ``contract_id``"""
        return self._pending(self._builder(contract_id).deploy_contract(wasm), signer)

    def create_account(
        self,
        new_account_id: Union[str, AccountId],
        new_account_pk: PublicKey,
        amount: int,
        signer: Optional[Signer] = None,
    ) -> PendingTransaction:
        """Create an account with a full access key and an initial balance (may be zero)"""
        builder = (
            self._builder(new_account_id)
            .create_account()
            .add_key(new_account_pk, FullAccess(), nonce=0)
            .transfer(amount)
        )
        return self._pending(builder, signer)

    def delete_account(
        self,
        account_id: Union[str, AccountId],
        beneficiary_id: Union[str, AccountId],
        signer: Optional[Signer] = None,
    ) -> PendingTransaction:
        """Delete ``account_id``, sending its remaining balance to ``beneficiary_id``"""
        return self._pending(self._builder(account_id).delete_account(beneficiary_id), signer)

    def add_access_key(
        self,
        account_id: Union[str, AccountId],
        new_account_pk: PublicKey,
        permission: Optional[AccessKeyPermission] = None,
        signer: Optional[Signer] = None,
    ) -> PendingTransaction:
        """Add an access key (full access unless a function call permission is given)"""
        builder = self._builder(account_id).add_key(
            new_account_pk,
            permission or FullAccess(),
            nonce=secrets.randbits(64),
        )
        return self._pending(builder, signer)

    def delete_access_key(
        self,
        account_id: Union[str, AccountId],
        public_key: PublicKey,
        signer: Optional[Signer] = None,
    ) -> PendingTransaction:
        return self._pending(self._builder(account_id).delete_key(public_key), signer)

    def send(
        self,
        receiver_id: Union[str, AccountId],
        deposit: int,
        signer: Optional[Signer] = None,
    ) -> PendingTransaction:
        """Transfer ``deposit`` yocto to ``receiver_id``"""
        return self._pending(self._builder(receiver_id).transfer(deposit), signer)

    def close(self):
        self._rpc.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
