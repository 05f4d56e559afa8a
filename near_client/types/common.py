"""
Common type definitions
"""

import re
from enum import Enum
from typing import Union

from ..errors import InvalidAccountId


MIN_ACCOUNT_ID_LEN = 2
MAX_ACCOUNT_ID_LEN = 64

# Lowercase alphanumeric parts joined by a single '-', '_' or '.'
_ACCOUNT_ID_RE = re.compile(r"^[a-z0-9]+(?:[-_.][a-z0-9]+)*$")


class AccountId(str):
    """
    Validated account identifier

    Immutable; compares and hashes like the plain string it wraps, so it can be
    used directly as a dict key or JSON value.

    Rules:
        - 2..64 characters
        - lowercase letters and digits
        - parts separated by a single '-', '_' or '.'
        - no leading, trailing or doubled separators

    Usage:
        alice = AccountId("alice.testnet")
        AccountId("Alice")  # raises InvalidAccountId
    """

    __slots__ = ()

    def __new__(cls, value: Union[str, "AccountId"]) -> "AccountId":
        if isinstance(value, AccountId):
            return value
        if not isinstance(value, str):
            raise InvalidAccountId(repr(value), "account id must be a string")
        if len(value) < MIN_ACCOUNT_ID_LEN:
            raise InvalidAccountId(value, f"shorter than {MIN_ACCOUNT_ID_LEN} characters")
        if len(value) > MAX_ACCOUNT_ID_LEN:
            raise InvalidAccountId(value, f"longer than {MAX_ACCOUNT_ID_LEN} characters")
        if not _ACCOUNT_ID_RE.match(value):
            raise InvalidAccountId(
                value,
                "expected lowercase alphanumeric parts separated by '-', '_' or '.'",
            )
        return super().__new__(cls, value)

    @property
    def is_top_level(self) -> bool:
        """True for accounts without a parent (no '.')"""
        return "." not in self

    @property
    def is_implicit(self) -> bool:
        """True for 64-char hex accounts derived from a public key"""
        return len(self) == 64 and all(c in "0123456789abcdef" for c in self)

    def is_sub_account_of(self, parent: Union[str, "AccountId"]) -> bool:
        """Check whether this account is a direct sub-account of ``parent``"""
        prefix, _, rest = self.partition(".")
        return bool(prefix) and rest == str(parent)

    def __repr__(self) -> str:
        return f"AccountId({str.__repr__(self)})"


class Finality(Enum):
    """
    Block finality level passed through to RPC queries

    NONE: optimistic, latest block seen by the node
    DOOM_SLUG: near-final, can only be reverted in exceptional cases
    FINAL: final, irreversible
    """
    NONE = "optimistic"
    DOOM_SLUG = "near-final"
    FINAL = "final"

    @classmethod
    def parse(cls, value: Union[str, "Finality"]) -> "Finality":
        """Accept either an enum member or its RPC string value"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f"Unknown finality: {value!r}") from None
