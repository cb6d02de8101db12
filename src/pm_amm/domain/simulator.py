"""Trade simulation — invert the LMSR cost function to size a purchase.

Buy of A (payout units) on the target side:
    c_new       = C(q_t, q_o, b) + A
    X, Y        = c_new / b, q_o / b          (feasible only when X > Y)
    q_t_new     = b * (X + ln(1 - e^(Y - X)))
    shares      = q_t_new - q_t               (must be > 0)

Every entry point validates the snapshot first, so a bad b surfaces as
ConfigurationError rather than NaN.
"""

from decimal import ROUND_HALF_EVEN, Decimal, localcontext

from src.pm_amm.domain import lmsr
from src.pm_amm.domain.models import (
    MarketState,
    PayoutEstimate,
    PriceSnapshot,
    SellEstimate,
    TradeEstimate,
)
from src.pm_common.cents import (
    floor_minor_units,
    minor_to_payout_units,
    payout_units_to_minor,
    validate_amount,
)
from src.pm_common.enums import Side
from src.pm_common.errors import InfeasibleTradeError, InvalidAmountError
from src.pm_common.precision import (
    HUNDRED,
    LMSR_CONTEXT,
    ONE,
    ZERO,
    quantize_percent,
    to_decimal,
)

SLIPPAGE_WARNING_THRESHOLD_PCT = Decimal("1.0")


def percent_pair(p_yes: Decimal, p_no: Decimal) -> tuple[Decimal, Decimal]:
    """Round the probability pair together so it always sums to exactly 100."""
    if p_yes <= p_no:
        prob_yes = quantize_percent(LMSR_CONTEXT.multiply(p_yes, HUNDRED))
        return prob_yes, HUNDRED - prob_yes
    prob_no = quantize_percent(LMSR_CONTEXT.multiply(p_no, HUNDRED))
    return HUNDRED - prob_no, prob_no


def calculate_current_prices(state: MarketState) -> PriceSnapshot:
    lmsr.validate_state(state)
    p_yes, p_no = lmsr.probabilities(state)
    prob_yes, prob_no = percent_pair(p_yes, p_no)
    price_yes = int(
        LMSR_CONTEXT.multiply(p_yes, HUNDRED).to_integral_value(rounding=ROUND_HALF_EVEN)
    )
    return PriceSnapshot(
        price_yes_minor_units=price_yes,
        price_no_minor_units=100 - price_yes,
        prob_yes=prob_yes,
        prob_no=prob_no,
    )


def buy_shares(amount: Decimal, q_target: Decimal, q_other: Decimal, b: Decimal) -> Decimal:
    """Shares obtained for `amount` payout units. Raises InfeasibleTradeError."""
    c_old = lmsr.cost(q_target, q_other, b)
    with localcontext(LMSR_CONTEXT):
        c_new = c_old + amount
        x = c_new / b
        y = q_other / b
        if x <= y:
            raise InfeasibleTradeError(f"post-trade cost {c_new} does not clear q_other={q_other}")
        remainder = ONE - (y - x).exp()
        if remainder <= ZERO:
            raise InfeasibleTradeError("cost curve is flat at this state")
        q_target_new = b * (x + remainder.ln())
        shares = q_target_new - q_target
    if shares <= ZERO:
        raise InfeasibleTradeError(f"amount {amount} yields no shares (got {shares})")
    return shares


def _price_impact(initial: Decimal, final: Decimal) -> Decimal:
    with localcontext(LMSR_CONTEXT):
        return abs(final - initial) / initial * HUNDRED


def simulate_buy(
    amount_minor_units: int,
    state: MarketState,
    side: Side,
    slippage_threshold_pct: Decimal = SLIPPAGE_WARNING_THRESHOLD_PCT,
) -> TradeEstimate:
    validate_amount(amount_minor_units)
    lmsr.validate_state(state)
    side = Side(side)
    b = state.liquidity_b
    q_target = state.quantity(side)
    q_other = state.quantity(side.other)

    shares = buy_shares(minor_to_payout_units(amount_minor_units), q_target, q_other, b)

    initial = lmsr.spot_price(q_target, q_other, b)
    after = state.with_quantity(side, LMSR_CONTEXT.add(q_target, shares))
    final = lmsr.spot_price(after.quantity(side), q_other, b)
    impact = _price_impact(initial, final)
    prob_yes, prob_no = percent_pair(*lmsr.probabilities(after))

    return TradeEstimate(
        side=side,
        shares=shares,
        avg_price_minor_units=LMSR_CONTEXT.divide(Decimal(amount_minor_units), shares),
        total_cost=amount_minor_units,
        payout=floor_minor_units(payout_units_to_minor(shares)),
        price_impact_pct=quantize_percent(impact),
        new_prob_yes=prob_yes,
        new_prob_no=prob_no,
        slippage_warning=impact > to_decimal(slippage_threshold_pct),
    )


def calculate_payout(amount_minor_units: int, state: MarketState, side: Side) -> PayoutEstimate:
    """Payout view of a buy: what the position returns if `side` wins."""
    estimate = simulate_buy(amount_minor_units, state, side)
    odds = LMSR_CONTEXT.divide(HUNDRED, estimate.avg_price_minor_units)
    return PayoutEstimate(
        payout=estimate.payout,
        odds=quantize_percent(odds),
        shares=estimate.shares,
        avg_price_minor_units=estimate.avg_price_minor_units,
        price_impact_pct=estimate.price_impact_pct,
    )


def simulate_sell(shares: Decimal | int | str, state: MarketState, side: Side) -> SellEstimate:
    """Proceeds of selling `shares` back to the market maker (quote only)."""
    shares = to_decimal(shares)
    if not shares.is_finite() or shares <= ZERO:
        raise InvalidAmountError(f"shares to sell must be positive, got {shares}")
    lmsr.validate_state(state)
    side = Side(side)
    b = state.liquidity_b
    q_target = state.quantity(side)
    q_other = state.quantity(side.other)
    if shares > q_target:
        raise InfeasibleTradeError(
            f"cannot sell {shares} {side.value} shares, only {q_target} outstanding"
        )

    remaining = LMSR_CONTEXT.subtract(q_target, shares)
    refund = LMSR_CONTEXT.subtract(
        lmsr.cost(q_target, q_other, b), lmsr.cost(remaining, q_other, b)
    )
    proceeds = payout_units_to_minor(refund)

    initial = lmsr.spot_price(q_target, q_other, b)
    after = state.with_quantity(side, remaining)
    final = lmsr.spot_price(remaining, q_other, b)
    prob_yes, prob_no = percent_pair(*lmsr.probabilities(after))

    return SellEstimate(
        side=side,
        shares=shares,
        proceeds_minor_units=floor_minor_units(proceeds),
        avg_price_minor_units=LMSR_CONTEXT.divide(proceeds, shares),
        price_impact_pct=quantize_percent(_price_impact(initial, final)),
        new_prob_yes=prob_yes,
        new_prob_no=prob_no,
    )


def apply_buy(state: MarketState, estimate: TradeEstimate) -> MarketState:
    """Post-trade snapshot; the caller owns version bookkeeping."""
    side = estimate.side
    return state.with_quantity(side, LMSR_CONTEXT.add(state.quantity(side), estimate.shares))
