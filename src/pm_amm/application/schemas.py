"""Pydantic schemas for the AMM pricing engine boundary.

Decimal fields serialize as strings so no float rounding sneaks in between
the authoritative engine and its consumers. The MARKET_UPDATE event uses
camelCase on the wire to match the real-time transport's consumers.
"""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.pm_amm.domain import lmsr
from src.pm_amm.domain.models import (
    CommitResult,
    MarketState,
    PriceSnapshot,
    Quote,
    SellEstimate,
    TradeRequest,
)
from src.pm_amm.domain.simulator import percent_pair
from src.pm_common.enums import MarketStatus, QuoteStatus, Side

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class QuoteRequest(BaseModel):
    market_id: str = Field(min_length=1, max_length=64)
    side: Side
    amount_minor_units: int = Field(gt=0, description="Cash to spend, in cents")

    def to_domain(self) -> TradeRequest:
        return TradeRequest(
            market_id=self.market_id,
            side=self.side,
            amount_minor_units=self.amount_minor_units,
        )


class SellQuoteRequest(BaseModel):
    market_id: str = Field(min_length=1, max_length=64)
    side: Side
    shares: Decimal = Field(gt=0)


class OpenMarketRequest(BaseModel):
    market_id: str = Field(min_length=1, max_length=64)
    liquidity_b: Decimal | None = Field(
        None, description="Curve depth; the configured default applies when omitted"
    )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PriceSnapshotResponse(BaseModel):
    market_id: str
    price_yes_minor_units: int
    price_no_minor_units: int
    prob_yes: Decimal
    prob_no: Decimal

    @classmethod
    def from_domain(cls, market_id: str, snapshot: PriceSnapshot) -> "PriceSnapshotResponse":
        return cls(
            market_id=market_id,
            price_yes_minor_units=snapshot.price_yes_minor_units,
            price_no_minor_units=snapshot.price_no_minor_units,
            prob_yes=snapshot.prob_yes,
            prob_no=snapshot.prob_no,
        )


class QuoteResponse(BaseModel):
    quote_id: str
    market_id: str
    side: Side
    status: QuoteStatus
    snapshot_version: int
    shares: Decimal
    avg_price_minor_units: Decimal
    total_cost: int
    payout: int
    price_impact_pct: Decimal
    new_prob_yes: Decimal
    new_prob_no: Decimal
    slippage_warning: bool

    @classmethod
    def from_domain(cls, quote: Quote) -> "QuoteResponse":
        est = quote.estimate
        return cls(
            quote_id=quote.id,
            market_id=quote.market_id,
            side=quote.side,
            status=quote.status,
            snapshot_version=quote.snapshot_version,
            shares=est.shares,
            avg_price_minor_units=est.avg_price_minor_units,
            total_cost=est.total_cost,
            payout=est.payout,
            price_impact_pct=est.price_impact_pct,
            new_prob_yes=est.new_prob_yes,
            new_prob_no=est.new_prob_no,
            slippage_warning=est.slippage_warning,
        )


class SellQuoteResponse(BaseModel):
    market_id: str
    side: Side
    shares: Decimal
    proceeds_minor_units: int
    avg_price_minor_units: Decimal
    price_impact_pct: Decimal
    new_prob_yes: Decimal
    new_prob_no: Decimal

    @classmethod
    def from_domain(cls, market_id: str, est: SellEstimate) -> "SellQuoteResponse":
        return cls(
            market_id=market_id,
            side=est.side,
            shares=est.shares,
            proceeds_minor_units=est.proceeds_minor_units,
            avg_price_minor_units=est.avg_price_minor_units,
            price_impact_pct=est.price_impact_pct,
            new_prob_yes=est.new_prob_yes,
            new_prob_no=est.new_prob_no,
        )


class CommitResponse(BaseModel):
    quote_id: str
    market_id: str
    status: QuoteStatus
    side: Side
    shares: Decimal
    avg_price_minor_units: Decimal
    total_cost: int
    payout: int
    new_prob_yes: Decimal
    new_prob_no: Decimal
    market_version: int
    remaining_balance_cents: int

    @classmethod
    def from_domain(cls, result: CommitResult) -> "CommitResponse":
        est = result.estimate
        return cls(
            quote_id=result.quote.id,
            market_id=result.market.market_id,
            status=result.quote.status,
            side=est.side,
            shares=est.shares,
            avg_price_minor_units=est.avg_price_minor_units,
            total_cost=est.total_cost,
            payout=est.payout,
            new_prob_yes=est.new_prob_yes,
            new_prob_no=est.new_prob_no,
            market_version=result.market.version,
            remaining_balance_cents=result.balance_after,
        )


class NetInvestedResponse(BaseModel):
    market_id: str
    liquidity_b: Decimal
    net_invested_minor_units: int


class MarketDetail(BaseModel):
    market_id: str
    status: MarketStatus
    q_yes: Decimal
    q_no: Decimal
    liquidity_b: Decimal
    version: int

    @classmethod
    def from_domain(cls, market: MarketState) -> "MarketDetail":
        return cls(
            market_id=market.market_id,
            status=market.status,
            q_yes=market.q_yes,
            q_no=market.q_no,
            liquidity_b=market.liquidity_b,
            version=market.version,
        )


# ---------------------------------------------------------------------------
# Broadcast event
# ---------------------------------------------------------------------------


class MarketUpdateEvent(BaseModel):
    """MARKET_UPDATE pushed after every committed trade.

    `version` is the market row version after the commit; consumers drop any
    event whose version is not newer than what they already hold.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Literal["MARKET_UPDATE"] = "MARKET_UPDATE"
    market_id: str
    prob_yes: Decimal
    prob_no: Decimal
    q_yes: Decimal
    q_no: Decimal
    liquidity_b: Decimal
    status: MarketStatus
    version: int

    @classmethod
    def from_market(cls, market: MarketState) -> "MarketUpdateEvent":
        prob_yes, prob_no = percent_pair(*lmsr.probabilities(market))
        return cls(
            market_id=market.market_id,
            prob_yes=prob_yes,
            prob_no=prob_no,
            q_yes=market.q_yes,
            q_no=market.q_no,
            liquidity_b=market.liquidity_b,
            status=market.status,
            version=market.version,
        )
