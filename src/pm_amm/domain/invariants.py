"""Net-invested accounting and market invariant verification.

INV-1: 0 < prob_yes, prob_no < 1 and prob_yes + prob_no == 1 (within 1e-9)
INV-2: q_yes, q_no >= 0 and liquidity_b > 0
INV-3: C(after) == C(before) + cost_paid (within COST_EPSILON payout units)
INV-4: net_invested == trade debits - settlement payouts (exact, minor units)
"""

import logging
from decimal import Decimal

from src.pm_amm.domain import lmsr
from src.pm_amm.domain.models import MarketState
from src.pm_common.cents import floor_minor_units, payout_units_to_minor
from src.pm_common.errors import ConfigurationError, InvariantViolationError
from src.pm_common.precision import LMSR_CONTEXT, ONE, SETTLE_QUANTUM, ZERO

logger = logging.getLogger(__name__)

PROBABILITY_EPSILON = Decimal("1e-9")
COST_EPSILON = Decimal("1e-9")


def net_invested(state: MarketState) -> int:
    """Collateral collected beyond the operator subsidy, in minor units.

    max(0, floor(100 * (C(q_yes, q_no, b) - b * ln 2)))
    """
    current = lmsr.cost(state.q_yes, state.q_no, state.liquidity_b)
    collected = LMSR_CONTEXT.subtract(current, lmsr.initial_subsidy(state.liquidity_b))
    in_minor = payout_units_to_minor(collected).quantize(SETTLE_QUANTUM, context=LMSR_CONTEXT)
    return max(0, floor_minor_units(in_minor))


def reconcile_net_invested(state: MarketState, total_debits: int, total_payouts: int) -> list[str]:
    """Check INV-4. Returns violation strings; empty means the books agree."""
    violations: list[str] = []
    expected = total_debits - total_payouts
    actual = net_invested(state)
    if actual != expected:
        msg = (
            f"INV-4 violated: market={state.market_id} net_invested({actual}) "
            f"!= debits({total_debits}) - payouts({total_payouts}) = {expected}"
        )
        violations.append(msg)
        logger.error(msg)
    return violations


def verify_trade_invariants(before: MarketState, after: MarketState, cost_paid: Decimal) -> None:
    """Verify INV-1..INV-3 across one trade. Raises InvariantViolationError.

    `cost_paid` is in payout units (negative for a sell).
    """
    try:
        lmsr.validate_state(after)
    except ConfigurationError as exc:
        raise InvariantViolationError(f"INV-2: {exc.message}") from exc

    p_yes, p_no = lmsr.probabilities(after)
    if not (ZERO < p_yes < ONE and ZERO < p_no < ONE):
        raise InvariantViolationError(f"INV-1: probabilities out of (0, 1): {p_yes}, {p_no}")
    if abs(p_yes + p_no - ONE) > PROBABILITY_EPSILON:
        raise InvariantViolationError(f"INV-1: prob_yes + prob_no = {p_yes + p_no}")

    c_before = lmsr.cost(before.q_yes, before.q_no, before.liquidity_b)
    c_after = lmsr.cost(after.q_yes, after.q_no, after.liquidity_b)
    drift = abs(LMSR_CONTEXT.subtract(c_after, LMSR_CONTEXT.add(c_before, cost_paid)))
    if drift > COST_EPSILON:
        raise InvariantViolationError(
            f"INV-3: C(after)={c_after} != C(before)={c_before} + {cost_paid} (drift {drift})"
        )

    logger.debug(
        "Invariants OK: market=%s, q_yes=%s, q_no=%s", after.market_id, after.q_yes, after.q_no
    )
