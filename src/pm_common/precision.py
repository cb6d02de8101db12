"""Fixed decimal precision policy shared by every authoritative computation.

Decimal exp/ln are evaluated by libmpdec under LMSR_CONTEXT, so any two
authoritative nodes produce identical digits. Floats are only ever accepted at
the edge and converted through repr().
"""

from decimal import ROUND_HALF_EVEN, Context, Decimal

LMSR_CONTEXT = Context(
    prec=40,
    rounding=ROUND_HALF_EVEN,
    Emin=-999_999_999,
    Emax=999_999_999,
)

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)
PERCENT_QUANTUM = Decimal("0.01")
# Noise floor applied before flooring values that should be integral.
SETTLE_QUANTUM = Decimal("1e-9")


def to_decimal(value: int | float | str | Decimal) -> Decimal:
    """Convert snapshot values reproducibly (floats via their shortest repr)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a numeric quantity")
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def quantize_percent(value: Decimal) -> Decimal:
    """Round to 0.01 with the shared rounding rule."""
    return value.quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_EVEN, context=LMSR_CONTEXT)
