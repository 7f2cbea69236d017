"""
Fixed-point helpers for USDC amounts.

USDC carries 6 decimals on both supported ledgers. Amounts travel as decimal
strings at the edges and as integers scaled by 10**6 everywhere else. Parsing
truncates extra fractional digits instead of rounding, and formatting strips
trailing zeros, so ``parse_amount(format_amount(x)) == x`` for every valid
integer ``x``.
"""

import re
from typing import Union

from .exceptions import InvalidAmountError

USDC_DECIMALS = 6
USDC_UNIT = 10 ** USDC_DECIMALS
MAX_AMOUNT = 1_000_000 * USDC_UNIT

TOLERANCE_NUMERATOR = 99
TOLERANCE_DENOMINATOR = 100

_DIGITS = re.compile(r"[0-9]+", re.ASCII)


def parse_amount(text: str) -> int:
    if not isinstance(text, str):
        raise InvalidAmountError(f"Amount must be a decimal string, got {type(text).__name__}")

    value = text.strip()
    if not value:
        raise InvalidAmountError("Amount is empty.")

    parts = value.split(".")
    if len(parts) > 2 or value == ".":
        raise InvalidAmountError(f"Invalid amount: {text!r}")

    whole = parts[0] or "0"
    fraction = parts[1] if len(parts) == 2 else ""

    if not _DIGITS.fullmatch(whole):
        raise InvalidAmountError(f"Invalid amount: {text!r}")
    if fraction and not _DIGITS.fullmatch(fraction):
        raise InvalidAmountError(f"Invalid amount: {text!r}")

    fraction = fraction[:USDC_DECIMALS].ljust(USDC_DECIMALS, "0")
    return int(whole) * USDC_UNIT + int(fraction)


def format_amount(raw: Union[int, str]) -> str:
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidAmountError(f"Invalid raw amount: {raw!r}") from exc
    if value < 0:
        raise InvalidAmountError(f"Raw amount must not be negative: {value}")

    whole, fraction = divmod(value, USDC_UNIT)
    fraction_text = str(fraction).rjust(USDC_DECIMALS, "0").rstrip("0") or "0"
    return f"{whole}.{fraction_text}"


def validate_amount(text: str, maximum: int = MAX_AMOUNT) -> int:
    """Parse ``text`` and require a positive amount no larger than ``maximum``."""
    raw = parse_amount(text)
    if raw <= 0:
        raise InvalidAmountError('Amount must be a positive number, e.g. "5.00".')
    if raw > maximum:
        raise InvalidAmountError(
            f"Amount exceeds the maximum allowed limit of {format_amount(maximum)} USDC."
        )
    return raw


def meets_tolerance(received_raw: int, expected_raw: int) -> bool:
    # received >= 99% of expected, kept in integers
    return received_raw * TOLERANCE_DENOMINATOR >= expected_raw * TOLERANCE_NUMERATOR
