"""
Decimal helpers for ledger arithmetic.

Money and rates are always ``Decimal``; floats never enter ledger math.
Amounts are quantized to 18 fractional digits, rounding down, so a
user is never credited more than the exact product. One quantum is the
epsilon used when comparing computed amounts.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

AMOUNT_QUANTUM = Decimal("1e-18")
RATE_QUANTUM = Decimal("1e-18")
ZERO = Decimal("0")
ONE = Decimal("1")

# Enough digits for 18 integer + 18 fractional places without rounding.
PRECISION = 40


def to_decimal(value: object) -> Decimal:
    """Convert a stored or user-supplied value to ``Decimal``.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")``.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Not a decimal value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite decimal value: {value!r}")
    return result


def quantize_amount(value: Decimal) -> Decimal:
    """Round an amount down to ``AMOUNT_QUANTUM``, without trailing zeros."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return Decimal(format_decimal(value.quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)))


def quantize_rate(value: Decimal) -> Decimal:
    """Round a rate down to ``RATE_QUANTUM``, without trailing zeros."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return Decimal(format_decimal(value.quantize(RATE_QUANTUM, rounding=ROUND_DOWN)))


def multiply(*factors: Decimal) -> Decimal:
    """Exact product of decimals under the ledger precision."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        result = ONE
        for factor in factors:
            result = result * factor
        return result


def divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Quotient under the ledger precision."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return numerator / denominator


def add(left: Decimal, right: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return left + right


def subtract(left: Decimal, right: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return left - right


def format_decimal(value: Decimal) -> str:
    """Canonical string form used for storage (no exponent, no trailing zeros)."""
    if value == ZERO:
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
