"""
Token amount and handle helpers.

Amounts typed by users are decimal strings; the contract works in base units
(PYUSD has 6 decimals). Conversion is exact in both directions: a string with
more fractional digits than the token supports is rejected, never rounded.
"""

from __future__ import annotations

import re
from decimal import Decimal

from socialpay.core.exceptions import ValidationError
from socialpay.core.types import UINT256_MAX

DEFAULT_DECIMALS = 6

_AMOUNT_RE = re.compile(r"^([0-9]+)(?:\.([0-9]+))?$")


def parse_units(amount: str | int | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Scale a decimal amount to integer base units.

    Args:
        amount: Decimal amount, e.g. "12.5"
        decimals: Token decimals

    Returns:
        Base units, e.g. 12500000 for "12.5" with 6 decimals

    Raises:
        ValidationError: If the amount is malformed, negative, has more than
            ``decimals`` fractional digits, or overflows uint256
    """
    text = str(amount).strip()
    match = _AMOUNT_RE.match(text)
    if not match:
        raise ValidationError(f"Invalid amount: {amount!r}", field="amount")

    whole, fraction = match.group(1), match.group(2) or ""
    if len(fraction) > decimals:
        raise ValidationError(
            f"Amount {text} has more than {decimals} decimal places",
            field="amount",
            details={"decimals": decimals},
        )

    value = int(whole) * 10**decimals + int(fraction.ljust(decimals, "0") or "0")
    if value > UINT256_MAX:
        raise ValidationError(f"Amount {text} is too large", field="amount")
    return value


def parse_positive_units(amount: str | int | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """Like parse_units, but zero is rejected."""
    value = parse_units(amount, decimals)
    if value <= 0:
        raise ValidationError("Amount must be a positive number", field="amount")
    return value


def format_units(value: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """
    Format base units as a decimal string.

    Keeps at least one fractional digit ("10.0"), like ethers' formatUnits.
    """
    if value < 0:
        raise ValidationError("Value must not be negative", field="value")
    whole, fraction = divmod(value, 10**decimals)
    if decimals == 0:
        return f"{whole}.0"
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{whole}.{fraction_str}"


def normalize_handle(handle: str | None) -> str:
    """
    Strip surrounding whitespace and a single leading '@'.

    No case folding or unicode normalization is applied: the contract hashes
    the handle bytes as given.

    Raises:
        ValidationError: If nothing is left, or the rest still starts with '@'
    """
    text = (handle or "").strip()
    if text.startswith("@"):
        text = text[1:]
    if not text:
        raise ValidationError("Handle is required", field="handle")
    if text.startswith("@"):
        raise ValidationError(f"Invalid handle: {handle.strip()!r}", field="handle")
    return text
