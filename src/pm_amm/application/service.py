"""AmmApplicationService — thin composition layer consumed by the trading service.

Read paths (prices, quotes, net invested) never lock. When handed an idle
session they read inside their own short transaction, so the session is idle
again before a commit; the TradingEngine refuses a session that still has a
transaction open. Open quotes are held here until committed, keyed by id.
"""

import logging
from collections import OrderedDict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_amm.application.schemas import (
    CommitResponse,
    MarketDetail,
    NetInvestedResponse,
    OpenMarketRequest,
    PriceSnapshotResponse,
    QuoteRequest,
    QuoteResponse,
    SellQuoteRequest,
    SellQuoteResponse,
)
from src.pm_amm.domain.invariants import net_invested, reconcile_net_invested
from src.pm_amm.domain.mirror import detect_precision_drift, mirror_buy
from src.pm_amm.domain.models import MarketState, Quote, open_market
from src.pm_amm.domain.repository import MarketStateRepositoryProtocol
from src.pm_amm.domain.simulator import calculate_current_prices, simulate_sell
from src.pm_amm.engine.engine import TradingEngine
from src.pm_common.enums import MarketStatus
from src.pm_common.errors import MarketNotFoundError, PrecisionDriftError, QuoteNotFoundError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _read_scope(db: AsyncSession) -> AsyncIterator[None]:
    """Reuse the caller's transaction if there is one, else open and close our own."""
    if db.in_transaction():
        yield
        return
    async with db.begin():
        yield


class AmmApplicationService:
    def __init__(
        self,
        engine: TradingEngine,
        repo: MarketStateRepositoryProtocol,
        max_open_quotes: int | None = None,
    ) -> None:
        self._engine = engine
        self._repo = repo
        self._max_open_quotes = max_open_quotes or settings.MAX_OPEN_QUOTES
        self._open_quotes: OrderedDict[str, Quote] = OrderedDict()

    async def _load(self, db: AsyncSession, market_id: str) -> MarketState:
        async with _read_scope(db):
            market = await self._repo.get_market(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    async def open_market(self, db: AsyncSession, request: OpenMarketRequest) -> MarketDetail:
        b = request.liquidity_b if request.liquidity_b is not None else settings.DEFAULT_LIQUIDITY_B
        market = open_market(request.market_id, b)
        await self._repo.create_market(db, market)
        return MarketDetail.from_domain(market)

    async def change_status(
        self, db: AsyncSession, market_id: str, status: MarketStatus
    ) -> MarketDetail:
        """Lifecycle move (close, settle, cancel). SETTLED/CANCELED markets are frozen."""
        market = await self._load(db, market_id)
        target = market.transition_to(status)
        updated = await self._repo.update_status(
            db, market_id, target.status, expected_version=market.version
        )
        logger.info("Market status: id=%s %s -> %s", market_id, market.status.value, status.value)
        return MarketDetail.from_domain(updated)

    async def get_prices(self, db: AsyncSession, market_id: str) -> PriceSnapshotResponse:
        market = await self._load(db, market_id)
        return PriceSnapshotResponse.from_domain(market_id, calculate_current_prices(market))

    async def create_quote(self, db: AsyncSession, request: QuoteRequest) -> QuoteResponse:
        """Advisory quote on the current snapshot; commit it by id with commit_quote()."""
        market = await self._load(db, request.market_id)
        quote = self._engine.quote(request.to_domain(), market)
        self._open_quotes[quote.id] = quote
        while len(self._open_quotes) > self._max_open_quotes:
            evicted, _ = self._open_quotes.popitem(last=False)
            logger.debug("Open quote evicted: quote=%s", evicted)
        return QuoteResponse.from_domain(quote)

    async def quote_sell(self, db: AsyncSession, request: SellQuoteRequest) -> SellQuoteResponse:
        market = await self._load(db, request.market_id)
        return SellQuoteResponse.from_domain(
            request.market_id, simulate_sell(request.shares, market, request.side)
        )

    async def commit_quote(self, db: AsyncSession, quote_id: str, user_id: str) -> CommitResponse:
        """Commit an open quote. `db` must be idle; the engine owns the transaction."""
        quote = self._open_quotes.get(quote_id)
        if quote is None:
            raise QuoteNotFoundError(quote_id)
        try:
            result = await self._engine.commit(quote, user_id, db)
        finally:
            if not quote.is_open:
                self._open_quotes.pop(quote_id, None)
        return CommitResponse.from_domain(result)

    async def get_net_invested(self, db: AsyncSession, market_id: str) -> NetInvestedResponse:
        market = await self._load(db, market_id)
        return NetInvestedResponse(
            market_id=market_id,
            liquidity_b=market.liquidity_b,
            net_invested_minor_units=net_invested(market),
        )

    async def reconcile(self, db: AsyncSession, market_id: str) -> list[str]:
        """Net invested vs ledger (debits - payouts). Empty list means consistent."""
        async with _read_scope(db):
            market = await self._load(db, market_id)
            debits, payouts = await self._repo.get_ledger_totals(db, market_id)
        return reconcile_net_invested(market, debits, payouts)

    async def audit_mirror(
        self, db: AsyncSession, request: QuoteRequest
    ) -> list[PrecisionDriftError]:
        """Re-run a quote through the float mirror and report any drift beyond epsilon."""
        market = await self._load(db, request.market_id)
        quote = self._engine.quote(request.to_domain(), market)
        mirror = mirror_buy(
            request.amount_minor_units,
            float(market.quantity(request.side)),
            float(market.quantity(request.side.other)),
            float(market.liquidity_b),
        )
        return detect_precision_drift(mirror, quote.estimate, settings.MIRROR_DRIFT_EPSILON)
