"""
Human readable gas and token amounts

    gas("300 T")          -> 300_000_000_000_000
    near("1.5 N")         -> 1_500_000_000_000_000_000_000_000
    near_to_human(amount) -> "123,456.789 N"
    gas_to_human(gas)     -> "123.456789 Mgas"
"""

import re
from decimal import Decimal, InvalidOperation

ONE_NEAR = 10 ** 24
ONE_MILLINEAR = 10 ** 21
ONE_TGAS = 10 ** 12

_GAS_PREFIXES = {
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
}

# Exponent of one unit relative to yocto
_NEAR_UNITS = {
    "": 0,
    "yN": 0,
    "yocto": 0,
    "mN": 21,
    "N": 24,
    "NEAR": 24,
}

_AMOUNT_RE = re.compile(r"^\s*([0-9][0-9_,]*(?:\.[0-9_]*)?)\s*([A-Za-z]*)\s*$")


def _split_amount(input_str: str, what: str):
    match = _AMOUNT_RE.match(input_str)
    if not match:
        raise ValueError(f"Couldn't parse {what} amount: {input_str!r}")
    number, unit = match.groups()
    try:
        return Decimal(number.replace("_", "").replace(",", "")), unit
    except InvalidOperation as e:
        raise ValueError(f"Couldn't parse {what} amount: {input_str!r}") from e


def _to_integer(value: Decimal, input_str: str, what: str) -> int:
    if value != value.to_integral_value():
        raise ValueError(f"{what.capitalize()} amount {input_str!r} has more precision than the smallest unit")
    return int(value)


def gas(input_str: str) -> int:
    """
    Parse a gas amount like "300 T", "30 Tgas" or "5000000"

    Raises:
        ValueError: On unknown unit or fractional gas units
    """
    number, unit = _split_amount(input_str, "gas")
    if unit.lower().endswith("gas"):
        unit = unit[:-3]
    if unit not in _GAS_PREFIXES:
        raise ValueError(f"Unknown gas unit {unit!r} in {input_str!r}")
    return _to_integer(number.scaleb(_GAS_PREFIXES[unit]), input_str, "gas")


def near(input_str: str) -> int:
    """
    Parse a token amount like "1.5 N", "10 NEAR", "250 mN" into yocto

    A bare number is read as yocto.

    Raises:
        ValueError: On unknown unit or sub-yocto precision
    """
    number, unit = _split_amount(input_str, "near")
    if unit not in _NEAR_UNITS:
        raise ValueError(f"Unknown near unit {unit!r} in {input_str!r}")
    return _to_integer(number.scaleb(_NEAR_UNITS[unit]), input_str, "near")


def _format_decimal(value: Decimal) -> str:
    """Thousands separators, no trailing zeros"""
    text = f"{value:,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def near_to_human(amount: int) -> str:
    """Format a yocto amount in whole tokens, e.g. "123,456.789 N" """
    return f"{_format_decimal(Decimal(amount).scaleb(-24))} N"


def gas_to_human(gas_amount: int) -> str:
    """Format gas with the largest fitting prefix, e.g. "123.456789 Mgas" """
    value = Decimal(gas_amount)
    prefix = ""
    for candidate, exponent in sorted(_GAS_PREFIXES.items(), key=lambda item: item[1]):
        if value >= Decimal(10) ** exponent:
            prefix = candidate
    return f"{_format_decimal(value.scaleb(-_GAS_PREFIXES[prefix]))} {prefix}gas"
