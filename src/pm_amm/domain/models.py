"""Domain models for pm_amm — dataclasses plus the quote/market state machines.

Quantities are Decimal under the LMSR precision policy; cash is int minor units.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from decimal import Decimal

from src.pm_common.enums import MarketStatus, QuoteStatus, Side
from src.pm_common.errors import (
    AppError,
    ConfigurationError,
    InvalidQuoteTransitionError,
    InvalidStatusTransitionError,
)
from src.pm_common.precision import ZERO, to_decimal

_ALLOWED_TRANSITIONS: dict[MarketStatus, frozenset[MarketStatus]] = {
    MarketStatus.DRAFT: frozenset({MarketStatus.OPEN, MarketStatus.CANCELED}),
    MarketStatus.OPEN: frozenset({MarketStatus.CLOSED, MarketStatus.CANCELED}),
    MarketStatus.CLOSED: frozenset({MarketStatus.SETTLED, MarketStatus.CANCELED}),
    MarketStatus.SETTLED: frozenset(),
    MarketStatus.CANCELED: frozenset(),
}


@dataclass(frozen=True)
class MarketState:
    """Snapshot of one market's LMSR triple. Mutation means a new snapshot."""

    q_yes: Decimal
    q_no: Decimal
    liquidity_b: Decimal
    market_id: str = ""
    status: MarketStatus = MarketStatus.OPEN
    version: int = 0

    def __post_init__(self) -> None:
        # Accept ints/floats/strings from callers; store Decimal.
        object.__setattr__(self, "q_yes", to_decimal(self.q_yes))
        object.__setattr__(self, "q_no", to_decimal(self.q_no))
        object.__setattr__(self, "liquidity_b", to_decimal(self.liquidity_b))
        object.__setattr__(self, "status", MarketStatus(self.status))

    @property
    def is_tradable(self) -> bool:
        return self.status is MarketStatus.OPEN

    def quantity(self, side: Side) -> Decimal:
        return self.q_yes if side is Side.YES else self.q_no

    def with_quantity(self, side: Side, new_quantity: Decimal) -> "MarketState":
        if side is Side.YES:
            return replace(self, q_yes=new_quantity)
        return replace(self, q_no=new_quantity)

    def transition_to(self, target: MarketStatus) -> "MarketState":
        """Return a copy in `target` status; SETTLED and CANCELED are frozen."""
        target = MarketStatus(target)
        if target not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(self.status.value, target.value)
        return replace(self, status=target)


def open_market(market_id: str, liquidity_b: int | str | Decimal) -> MarketState:
    """A freshly opened market: no shares outstanding, operator-chosen b."""
    b = to_decimal(liquidity_b)
    if not b.is_finite() or b <= ZERO:
        raise ConfigurationError(f"liquidity_b must be positive, got {liquidity_b}")
    return MarketState(q_yes=ZERO, q_no=ZERO, liquidity_b=b, market_id=market_id)


@dataclass(frozen=True)
class TradeRequest:
    market_id: str
    side: Side
    amount_minor_units: int


@dataclass(frozen=True)
class TradeEstimate:
    """Result of simulating a buy. Probabilities are percentages summing to 100."""

    side: Side
    shares: Decimal
    avg_price_minor_units: Decimal
    total_cost: int
    payout: int
    price_impact_pct: Decimal
    new_prob_yes: Decimal
    new_prob_no: Decimal
    slippage_warning: bool


@dataclass(frozen=True)
class PayoutEstimate:
    payout: int
    odds: Decimal
    shares: Decimal
    avg_price_minor_units: Decimal
    price_impact_pct: Decimal


@dataclass(frozen=True)
class SellEstimate:
    side: Side
    shares: Decimal
    proceeds_minor_units: int
    avg_price_minor_units: Decimal
    price_impact_pct: Decimal
    new_prob_yes: Decimal
    new_prob_no: Decimal


@dataclass(frozen=True)
class PriceSnapshot:
    price_yes_minor_units: int
    price_no_minor_units: int
    prob_yes: Decimal
    prob_no: Decimal


@dataclass
class Quote:
    """QUOTED -> COMMITTED | REJECTED. A QUOTED quote never authorizes a mutation."""

    market_id: str
    side: Side
    amount_minor_units: int
    estimate: TradeEstimate
    snapshot_version: int
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: QuoteStatus = QuoteStatus.QUOTED
    reject_reason: str | None = None
    reject_code: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    resolved_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status is QuoteStatus.QUOTED

    def mark_committed(self, live_estimate: TradeEstimate) -> None:
        self._ensure_open()
        self.estimate = live_estimate
        self.status = QuoteStatus.COMMITTED
        self.resolved_at = datetime.now(UTC)

    def mark_rejected(self, error: AppError) -> None:
        self._ensure_open()
        self.status = QuoteStatus.REJECTED
        self.reject_code = error.code
        self.reject_reason = error.message
        self.resolved_at = datetime.now(UTC)

    def _ensure_open(self) -> None:
        if self.status is not QuoteStatus.QUOTED:
            raise InvalidQuoteTransitionError(self.id, self.status.value)


@dataclass(frozen=True)
class CommitResult:
    quote: Quote
    estimate: TradeEstimate
    market: MarketState
    balance_after: int
