"""
Transaction builder

Accumulates the actions of one transaction for a single receiver and turns
them into an UnsignedTransaction once nonce and block hash are known.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Sequence, Tuple, Union

from .keys import PublicKey
from ..errors import EmptyTransaction
from ..types import (
    AccountId,
    Finality,
    Action,
    AccessKey,
    AccessKeyPermission,
    FullAccess,
    CreateAccount,
    DeployContract,
    FunctionCall,
    Transfer,
    Stake,
    AddKey,
    DeleteKey,
    DeleteAccount,
    UnsignedTransaction,
)
from ..config import config as global_config

logger = logging.getLogger(__name__)


@dataclass
class TxBuilderConfig:
    """
    Transaction builder runtime configuration

    Allows per-builder overrides while pulling defaults from the global
    config (near_client.config.TxConfig).

    Usage:
        # Use all defaults from environment
        builder = TransactionBuilder("contract.testnet")

        # Override specific settings
        config = TxBuilderConfig(gas=100_000_000_000_000, deposit=1)
        builder = TransactionBuilder("contract.testnet", config=config)
    """
    gas: int = None
    deposit: int = None
    finality: Optional[Finality] = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.gas is None:
            self.gas = global_config.tx.default_gas
        if self.deposit is None:
            self.deposit = 0
        # None defers to the submission pipeline's finality
        if self.finality is not None:
            self.finality = Finality.parse(self.finality)
        _check_amount("gas", self.gas)
        _check_amount("deposit", self.deposit)


def _check_amount(name: str, value: Any):
    """Gas and deposit must be non-negative ints"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def encode_args(args: Any) -> bytes:
    """
    Encode function call arguments

    bytes are used as is, None means no arguments, anything else is
    serialized as compact UTF-8 JSON.
    """
    if args is None:
        return b""
    if isinstance(args, (bytes, bytearray)):
        return bytes(args)
    return json.dumps(args, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class TransactionBuilder:
    """
    Transaction builder

    Chaining methods only append to the ordered action list; order is kept
    on the wire.

    Usage:
        builder = (
            TransactionBuilder("counter.testnet")
            .function_call("add_value", {"value": 1}, gas=gas("30 T"))
            .transfer(near("1 N"))
        )
        unsigned = builder.build(signer.account_id, signer.public_key, nonce, block_hash)
    """

    def __init__(
        self,
        receiver_id: Union[str, AccountId],
        config: Optional[TxBuilderConfig] = None,
    ):
        """
        Initialize transaction builder

        Args:
            receiver_id: Account the actions apply to
            config: Default gas, deposit and finality
        """
        self._receiver_id = AccountId(receiver_id)
        # Copied so finality() on one builder does not leak into a shared config
        self._config = replace(config) if config is not None else TxBuilderConfig()
        self._actions: List[Action] = []

    @property
    def receiver_id(self) -> AccountId:
        return self._receiver_id

    @property
    def config(self) -> TxBuilderConfig:
        return self._config

    @property
    def actions(self) -> Tuple[Action, ...]:
        return tuple(self._actions)

    def add_action(self, action: Action) -> "TransactionBuilder":
        self._actions.append(action)
        return self

    def function_call(
        self,
        method: str,
        args: Any = None,
        gas: Optional[int] = None,
        deposit: Optional[int] = None,
    ) -> "TransactionBuilder":
        """
        Append a contract call

        Args:
            method: Contract method name
            args: bytes, None or a JSON-serializable value
            gas: Prepaid gas (defaults to config gas)
            deposit: Attached yocto (defaults to config deposit)
        """
        gas = self._config.gas if gas is None else gas
        deposit = self._config.deposit if deposit is None else deposit
        _check_amount("gas", gas)
        _check_amount("deposit", deposit)
        return self.add_action(FunctionCall(
            method_name=method,
            args=encode_args(args),
            gas=gas,
            deposit=deposit,
        ))

    def transfer(self, deposit: int) -> "TransactionBuilder":
        _check_amount("deposit", deposit)
        return self.add_action(Transfer(deposit=deposit))

    def deploy_contract(self, code: bytes) -> "TransactionBuilder":
        return self.add_action(DeployContract(code=bytes(code)))

    def create_account(self) -> "TransactionBuilder":
        return self.add_action(CreateAccount())

    def add_key(
        self,
        public_key: PublicKey,
        permission: Optional[AccessKeyPermission] = None,
        nonce: int = 0,
    ) -> "TransactionBuilder":
        """Append AddKey; full access unless a function call permission is given"""
        access_key = AccessKey(nonce=nonce, permission=permission or FullAccess())
        return self.add_action(AddKey(public_key=public_key, access_key=access_key))

    def delete_key(self, public_key: PublicKey) -> "TransactionBuilder":
        return self.add_action(DeleteKey(public_key=public_key))

    def delete_account(self, beneficiary_id: Union[str, AccountId]) -> "TransactionBuilder":
        return self.add_action(DeleteAccount(beneficiary_id=AccountId(beneficiary_id)))

    def stake(self, amount: int, public_key: PublicKey) -> "TransactionBuilder":
        _check_amount("stake", amount)
        return self.add_action(Stake(stake=amount, public_key=public_key))

    def finality(self, finality: Union[str, Finality]) -> "TransactionBuilder":
        """Finality used when fetching nonce and block hash for this transaction"""
        self._config.finality = Finality.parse(finality)
        return self

    def build(
        self,
        signer_id: Union[str, AccountId],
        public_key: PublicKey,
        nonce: int,
        block_hash: bytes,
    ) -> UnsignedTransaction:
        """
        Build unsigned transaction

        Args:
            signer_id: Signing account
            public_key: Signing access key
            nonce: Nonce to sign with
            block_hash: Recent block hash (32 bytes)

        Raises:
            EmptyTransaction: If no actions were added
        """
        if not self._actions:
            raise EmptyTransaction(self._receiver_id)

        return UnsignedTransaction(
            signer_id=AccountId(signer_id),
            public_key=public_key,
            nonce=nonce,
            receiver_id=self._receiver_id,
            block_hash=bytes(block_hash),
            actions=tuple(self._actions),
        )

    def __repr__(self) -> str:
        names: Sequence[str] = [type(action).__name__ for action in self._actions]
        return f"TransactionBuilder(receiver_id={self._receiver_id}, actions={names})"
