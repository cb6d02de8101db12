"""Minor-unit (cents) helpers at the boundary between the LMSR math and callers.

Amounts, payouts and balances are int minor units. The cost function itself is
denominated in payout units: one share redeems for SHARE_PAYOUT_MINOR_UNITS.
"""

from decimal import ROUND_FLOOR, Decimal

from src.pm_common.errors import InvalidAmountError
from src.pm_common.precision import LMSR_CONTEXT

SHARE_PAYOUT_MINOR_UNITS = 100


def validate_amount(amount_minor_units: int) -> None:
    """Trade amounts must be positive ints (bool is rejected too)."""
    if isinstance(amount_minor_units, bool) or not isinstance(amount_minor_units, int):
        raise InvalidAmountError(f"amount must be an int, got {type(amount_minor_units).__name__}")
    if amount_minor_units <= 0:
        raise InvalidAmountError(f"amount must be positive, got {amount_minor_units}")


def minor_to_payout_units(amount_minor_units: int) -> Decimal:
    """5000 cents -> Decimal('50')."""
    return LMSR_CONTEXT.divide(Decimal(amount_minor_units), Decimal(SHARE_PAYOUT_MINOR_UNITS))


def payout_units_to_minor(value: Decimal) -> Decimal:
    """Exact scale up; the caller decides how to round."""
    return LMSR_CONTEXT.multiply(value, Decimal(SHARE_PAYOUT_MINOR_UNITS))


def floor_minor_units(value: Decimal) -> int:
    """Floor a minor-unit Decimal to int (trader never receives more than earned)."""
    return int(value.to_integral_value(rounding=ROUND_FLOOR))
