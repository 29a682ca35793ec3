"""Currency codec for masked, digit-entry money inputs.

``format_amount`` renders an amount with exactly two fractional digits and
locale separators (``1.234,56`` by default). ``parse_amount`` is the inverse
used while typing: every non-digit is dropped and the remaining digits are read
as cents, so typing shifts the decimal point like a calculator tape
(``"1234"`` -> ``12.34``). The parse half is locale-independent.

For any cent-aligned, non-negative value ``x``,
``parse_amount(format_amount(x)) == x``.

``to_number`` is the lenient numeric coercion shared by the aggregator and the
summary reducer: malformed values become ``0.0`` instead of raising.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_NON_DIGITS = re.compile(r"[^0-9]")
_CENT = Decimal("0.01")


def to_number(value: Any) -> float:
    """Coerce ``value`` to a finite float, falling back to ``0.0``."""

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        try:
            result = float(value)
        except OverflowError:
            # ints beyond the float range
            return 0.0
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return result if math.isfinite(result) else 0.0


def _to_decimal(amount: Any) -> Decimal:
    # str() keeps the shortest round-tripping repr so 12.34 stays 12.34.
    try:
        d = Decimal(str(to_number(amount)))
    except InvalidOperation:
        return Decimal(0)
    return d.quantize(_CENT, rounding=ROUND_HALF_UP)


def format_amount(
    amount: Any,
    *,
    decimal_separator: str = ",",
    group_separator: str = ".",
) -> str:
    """Format ``amount`` with two decimals and the given separators.

    ``None`` (and anything non-numeric) formats as the zero value.
    """

    q = _to_decimal(amount)
    # Python emits "-0.00" for negative zero; normalize it away.
    if q == 0:
        q = abs(q)
    text = f"{q:,.2f}"
    return text.translate({ord(","): "\x00", ord("."): decimal_separator}).replace(
        "\x00", group_separator
    )


def parse_amount(text: str | None) -> float:
    """Read the digits of ``text`` as integer cents and return the amount.

    A digit run too long to be a float amount reads as ``0.0``.
    """

    return parse_digits(text) / 100


def parse_digits(text: str | None) -> int:
    """Integer made of the digits in ``text``; ``0`` when there are none.

    Digit runs that cannot be represented as a finite float (or exceed the
    interpreter's int-from-string limit) are treated as malformed and give ``0``.
    """

    digits = strip_non_digits(text)
    if not digits:
        return 0
    try:
        n = int(digits)
        float(n)
    except (ValueError, OverflowError):
        return 0
    return n


def strip_non_digits(text: str | None) -> str:
    return _NON_DIGITS.sub("", text or "")


__all__ = ["format_amount", "parse_amount", "parse_digits", "strip_non_digits", "to_number"]
