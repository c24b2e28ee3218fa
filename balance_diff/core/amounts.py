"""Fixed-point helpers for raw on-chain amounts.

Raw balances are unbounded Python ints. Nothing here goes through ``float``:
formatting is integer long division and conversions use ``Decimal`` with a
precision sized to the operand.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

DISPLAY_PLACES = 6


def format_amount(raw: int, decimals: int) -> str:
    """Render ``raw`` smallest units as an exact decimal string.

    Trailing fractional zeros are trimmed; the output never uses exponent
    notation. Negative amounts keep a leading ``-``.
    """

    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    sign = "-" if raw < 0 else ""
    whole, fraction = divmod(abs(raw), 10 ** decimals)
    if fraction == 0:
        return f"{sign}{whole}"
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{fraction_str}"


def format_display(raw: int, decimals: int, places: int = DISPLAY_PLACES) -> str:
    """Render ``raw`` rounded half-up to ``places`` fractional digits."""

    if decimals <= places:
        return format_amount(raw, decimals)
    scale = 10 ** (decimals - places)
    rounded = (abs(raw) + scale // 2) // scale
    text = format_amount(rounded, places)
    return f"-{text}" if raw < 0 and rounded else text


def parse_amount(text: str, decimals: int) -> int:
    """Inverse of :func:`format_amount`; rejects values with excess precision."""

    value = text.strip()
    negative = value.startswith("-")
    if negative or value.startswith("+"):
        value = value[1:]
    whole, _, fraction = value.partition(".")
    if not whole.isdigit() or (fraction and not fraction.isdigit()):
        raise ValueError(f"Not a fixed-point amount: {text!r}")
    if len(fraction) > decimals:
        raise ValueError(f"{text!r} has more than {decimals} fractional digits")
    raw = int(whole) * 10 ** decimals + int(fraction.ljust(decimals, "0") or "0")
    return -raw if negative else raw


def to_decimal(raw: int, decimals: int) -> Decimal:
    """Exact ``Decimal`` value of ``raw`` scaled by ``10**-decimals``."""

    digits = len(str(abs(raw))) + decimals + 2
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, digits)
        return Decimal(raw).scaleb(-decimals)


def safe_decimal(text: str) -> Decimal | None:
    try:
        value = Decimal(text)
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() else None


__all__ = [
    "DISPLAY_PLACES",
    "format_amount",
    "format_display",
    "parse_amount",
    "to_decimal",
    "safe_decimal",
]
