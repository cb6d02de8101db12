"""Advisory float mirror and precision-drift detection.

The mirror reproduces what a client preview computes with IEEE-754 doubles.
It is never authoritative: drift against the Decimal engine is reported,
not raised, and the trade proceeds on the authoritative numbers.
"""

import logging
import math
from dataclasses import dataclass

from src.pm_amm.domain.models import TradeEstimate
from src.pm_common.cents import SHARE_PAYOUT_MINOR_UNITS
from src.pm_common.enums import Side
from src.pm_common.errors import ConfigurationError, InfeasibleTradeError, PrecisionDriftError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MirrorEstimate:
    shares: float
    avg_price_minor_units: float
    price_impact_pct: float
    new_prob_target: float
    new_prob_other: float


def _cost(q_yes: float, q_no: float, b: float) -> float:
    x1, x2 = q_yes / b, q_no / b
    m = max(x1, x2)
    return b * (m + math.log(math.exp(x1 - m) + math.exp(x2 - m)))


def _spot(q_target: float, q_other: float, b: float) -> float:
    xt, xo = q_target / b, q_other / b
    m = max(xt, xo)
    num = math.exp(xt - m)
    return num / (num + math.exp(xo - m))


def mirror_buy(amount_minor_units: int, q_target: float, q_other: float, b: float) -> MirrorEstimate:
    """Float rendition of simulate_buy for the target side."""
    if b <= 0:
        raise ConfigurationError(f"liquidity_b must be positive, got {b}")
    amount = amount_minor_units / SHARE_PAYOUT_MINOR_UNITS
    x = (_cost(q_target, q_other, b) + amount) / b
    y = q_other / b
    if x <= y:
        raise InfeasibleTradeError("mirror: post-trade cost does not clear q_other")
    shares = b * (x + math.log(1 - math.exp(y - x))) - q_target
    if shares <= 0:
        raise InfeasibleTradeError("mirror: amount yields no shares")
    initial = _spot(q_target, q_other, b)
    final = _spot(q_target + shares, q_other, b)
    return MirrorEstimate(
        shares=shares,
        avg_price_minor_units=amount_minor_units / shares,
        price_impact_pct=abs(final - initial) / initial * 100,
        new_prob_target=final * 100,
        new_prob_other=(1 - final) * 100,
    )


def detect_precision_drift(
    mirror: MirrorEstimate,
    authoritative: TradeEstimate,
    epsilon: float,
) -> list[PrecisionDriftError]:
    """Compare mirror vs authoritative field by field. Returns the drifts found.

    Mirror probabilities are per target side; they are mapped back
    to YES/NO using the authoritative estimate's side.
    """
    if authoritative.side is Side.YES:
        mirror_yes, mirror_no = mirror.new_prob_target, mirror.new_prob_other
    else:
        mirror_yes, mirror_no = mirror.new_prob_other, mirror.new_prob_target

    pairs = (
        ("shares", mirror.shares, float(authoritative.shares)),
        ("avg_price_minor_units", mirror.avg_price_minor_units,
         float(authoritative.avg_price_minor_units)),
        ("price_impact_pct", mirror.price_impact_pct, float(authoritative.price_impact_pct)),
        ("new_prob_yes", mirror_yes, float(authoritative.new_prob_yes)),
        ("new_prob_no", mirror_no, float(authoritative.new_prob_no)),
    )
    drifts: list[PrecisionDriftError] = []
    for field_name, mirror_value, auth_value in pairs:
        if abs(mirror_value - auth_value) > epsilon:
            drift = PrecisionDriftError(field_name, mirror_value, auth_value, epsilon)
            logger.warning(drift.message)
            drifts.append(drift)
    return drifts
