"""
Transaction action definitions

Actions form a closed union; the variant order below is the wire tag order
and must not change.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union, TYPE_CHECKING

from .common import AccountId

if TYPE_CHECKING:
    from ..infra.keys import PublicKey


@dataclass(frozen=True)
class FullAccess:
    """Access key permission allowing any action"""


@dataclass(frozen=True)
class FunctionCallPermission:
    """
    Access key permission restricted to function calls

    Attributes:
        receiver_id: Contract the key may call
        method_names: Allowed methods (empty means any method)
        allowance: Yocto budget for gas fees (None means unlimited)
    """
    receiver_id: AccountId
    method_names: Tuple[str, ...] = ()
    allowance: Optional[int] = None


AccessKeyPermission = Union[FunctionCallPermission, FullAccess]


@dataclass(frozen=True)
class AccessKey:
    """Access key as stored on chain: nonce plus permission"""
    nonce: int = 0
    permission: AccessKeyPermission = field(default_factory=FullAccess)


@dataclass(frozen=True)
class CreateAccount:
    """Create the receiver account"""


@dataclass(frozen=True)
class DeployContract:
    """Deploy wasm code to the receiver account"""
    code: bytes


@dataclass(frozen=True)
class FunctionCall:
    """
    Call a contract method

    Attributes:
        method_name: Contract method
        args: Raw argument bytes (usually compact JSON)
        gas: Prepaid gas
        deposit: Attached yocto amount
    """
    method_name: str
    args: bytes = b""
    gas: int = 0
    deposit: int = 0


@dataclass(frozen=True)
class Transfer:
    """Transfer yocto to the receiver account"""
    deposit: int


@dataclass(frozen=True)
class Stake:
    stake: int
    public_key: "PublicKey"


@dataclass(frozen=True)
class AddKey:
    public_key: "PublicKey"
    access_key: AccessKey = field(default_factory=AccessKey)


@dataclass(frozen=True)
class DeleteKey:
    public_key: "PublicKey"


@dataclass(frozen=True)
class DeleteAccount:
    """Delete the receiver account, sending the remaining balance to beneficiary_id"""
    beneficiary_id: AccountId


Action = Union[
    CreateAccount,
    DeployContract,
    FunctionCall,
    Transfer,
    Stake,
    AddKey,
    DeleteKey,
    DeleteAccount,
]

# Wire tag for each action variant
ACTION_TAGS = {
    CreateAccount: 0,
    DeployContract: 1,
    FunctionCall: 2,
    Transfer: 3,
    Stake: 4,
    AddKey: 5,
    DeleteKey: 6,
    DeleteAccount: 7,
}
