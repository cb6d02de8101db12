"""LMSR cost and spot price for binary markets — pure functions, no state.

    C(q_yes, q_no, b) = b * ln(e^(q_yes/b) + e^(q_no/b))
    P_target          = e^(x_t) / (e^(x_t) + e^(x_o))

Both are evaluated with the log-sum-exp shift (subtract max(x)) under
LMSR_CONTEXT. Values are in payout units (1 share pays 1 unit if it wins).
"""

from decimal import Decimal, localcontext

from src.pm_amm.domain.models import MarketState
from src.pm_common.errors import ConfigurationError
from src.pm_common.precision import LMSR_CONTEXT, ONE, ZERO, to_decimal

LN2: Decimal = LMSR_CONTEXT.ln(Decimal(2))


def validate_parameters(q_target: Decimal, q_other: Decimal, b: Decimal) -> None:
    """b must be positive and finite; quantities finite and non-negative."""
    if not b.is_finite() or b <= ZERO:
        raise ConfigurationError(f"liquidity_b must be positive, got {b}")
    for name, q in (("q_target", q_target), ("q_other", q_other)):
        if not q.is_finite() or q < ZERO:
            raise ConfigurationError(f"{name} must be a non-negative quantity, got {q}")


def validate_state(state: MarketState) -> None:
    validate_parameters(state.q_yes, state.q_no, state.liquidity_b)


def cost(q_yes: Decimal | int, q_no: Decimal | int, b: Decimal | int) -> Decimal:
    """C = b * (m + ln(e^(x1-m) + e^(x2-m))), m = max(x1, x2)."""
    q_yes, q_no, b = to_decimal(q_yes), to_decimal(q_no), to_decimal(b)
    validate_parameters(q_yes, q_no, b)
    with localcontext(LMSR_CONTEXT):
        x1 = q_yes / b
        x2 = q_no / b
        m = max(x1, x2)
        return b * (m + ((x1 - m).exp() + (x2 - m).exp()).ln())


def spot_price_pair(
    q_target: Decimal | int, q_other: Decimal | int, b: Decimal | int
) -> tuple[Decimal, Decimal]:
    """Return (P_target, P_other) from one shared denominator.

    The smaller price is computed directly and clamped to the smallest positive
    value if the exponential underflows; the larger is its complement, nudged
    below 1 if rounding reaches it.
    """
    q_target, q_other, b = to_decimal(q_target), to_decimal(q_other), to_decimal(b)
    validate_parameters(q_target, q_other, b)
    with localcontext(LMSR_CONTEXT) as ctx:
        xt = q_target / b
        xo = q_other / b
        if xt == xo:
            half = ONE / 2
            return half, half
        # e^(-|xt - xo|) is the smaller term once both are shifted by max(xt, xo)
        small_term = (-abs(xt - xo)).exp()
        p_small = small_term / (ONE + small_term)
        if p_small <= ZERO:
            # e^(-|dx|) underflowed; keep the price strictly positive
            p_small = ctx.next_plus(ZERO)
        p_large = ONE - p_small
        if p_large >= ONE:
            p_large = ctx.next_minus(ONE)
        if xt > xo:
            return p_large, p_small
        return p_small, p_large


def spot_price(q_target: Decimal | int, q_other: Decimal | int, b: Decimal | int) -> Decimal:
    """Instantaneous price of the target outcome, 0 < P < 1."""
    return spot_price_pair(q_target, q_other, b)[0]


def probabilities(state: MarketState) -> tuple[Decimal, Decimal]:
    """(prob_yes, prob_no) as fractions."""
    return spot_price_pair(state.q_yes, state.q_no, state.liquidity_b)


def initial_subsidy(b: Decimal | int) -> Decimal:
    """C(0, 0, b) = b * ln 2, the operator's worst-case loss."""
    b = to_decimal(b)
    validate_parameters(ZERO, ZERO, b)
    return LMSR_CONTEXT.multiply(b, LN2)
