"""
Type definitions for NEAR Client
"""

from .common import AccountId, Finality
from .actions import (
    Action,
    ACTION_TAGS,
    AccessKey,
    AccessKeyPermission,
    FullAccess,
    FunctionCallPermission,
    CreateAccount,
    DeployContract,
    FunctionCall,
    Transfer,
    Stake,
    AddKey,
    DeleteKey,
    DeleteAccount,
)
from .transaction import UnsignedTransaction, SignedTransaction
from .result import ExecutionOutcome, ViewOutput, TxStatus, extract_logs
from .units import gas, near, gas_to_human, near_to_human, ONE_NEAR, ONE_TGAS

__all__ = [
    "AccountId",
    "Finality",
    # Actions
    "Action",
    "ACTION_TAGS",
    "AccessKey",
    "AccessKeyPermission",
    "FullAccess",
    "FunctionCallPermission",
    "CreateAccount",
    "DeployContract",
    "FunctionCall",
    "Transfer",
    "Stake",
    "AddKey",
    "DeleteKey",
    "DeleteAccount",
    # Transactions
    "UnsignedTransaction",
    "SignedTransaction",
    # Results
    "ExecutionOutcome",
    "ViewOutput",
    "TxStatus",
    "extract_logs",
    # Units
    "gas",
    "near",
    "gas_to_human",
    "near_to_human",
    "ONE_NEAR",
    "ONE_TGAS",
]
