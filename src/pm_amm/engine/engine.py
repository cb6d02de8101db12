"""TradingEngine — authoritative quote/commit orchestrator for LMSR markets.

Quotes are pure and lock-free. Commits are serialized per market: an
in-process asyncio.Lock keyed by market id, plus SELECT ... FOR UPDATE on the
market row for multi-process deployments. Each commit re-simulates against
live state, runs inside one transaction the engine opens and commits itself
(the session must be idle), and is bounded by a timeout; any failure rolls
the whole unit back. The quote is marked COMMITTED and the broadcast is
scheduled only after that transaction has committed.
"""
import asyncio
import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_amm.domain.invariants import verify_trade_invariants
from src.pm_amm.domain.models import CommitResult, MarketState, Quote, TradeRequest
from src.pm_amm.domain.repository import (
    MarketBroadcasterProtocol,
    MarketStateRepositoryProtocol,
    WalletRepositoryProtocol,
)
from src.pm_amm.domain.simulator import apply_buy, simulate_buy
from src.pm_common.cents import minor_to_payout_units
from src.pm_common.errors import (
    AppError,
    CommitTimeoutError,
    InsufficientFundsError,
    InternalError,
    InvalidQuoteTransitionError,
    MarketClosedError,
    MarketNotFoundError,
    SessionInTransactionError,
)
from src.pm_common.precision import to_decimal

logger = logging.getLogger(__name__)


class TradingEngine:
    def __init__(
        self,
        market_repo: MarketStateRepositoryProtocol,
        wallet_repo: WalletRepositoryProtocol,
        broadcaster: MarketBroadcasterProtocol | None = None,
        commit_timeout_seconds: float | None = None,
        slippage_threshold_pct: float | Decimal | None = None,
    ) -> None:
        self._market_repo = market_repo
        self._wallet_repo = wallet_repo
        self._broadcaster = broadcaster
        self._commit_timeout = (
            commit_timeout_seconds
            if commit_timeout_seconds is not None
            else settings.COMMIT_TIMEOUT_SECONDS
        )
        self._slippage_threshold = to_decimal(
            slippage_threshold_pct
            if slippage_threshold_pct is not None
            else settings.SLIPPAGE_WARNING_THRESHOLD_PCT
        )
        self._market_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._pending_broadcasts: set[asyncio.Task[None]] = set()

    def _get_or_create_lock(self, market_id: str) -> asyncio.Lock:
        return self._market_locks[market_id]

    def quote(self, request: TradeRequest, snapshot: MarketState) -> Quote:
        """Advisory quote against a possibly stale snapshot. Never mutates anything."""
        estimate = simulate_buy(
            request.amount_minor_units, snapshot, request.side, self._slippage_threshold
        )
        return Quote(
            market_id=request.market_id,
            side=estimate.side,
            amount_minor_units=request.amount_minor_units,
            estimate=estimate,
            snapshot_version=snapshot.version,
        )

    async def commit(self, quote: Quote, user_id: str, db: AsyncSession) -> CommitResult:
        """Main entry point. Re-prices `quote` on live state and applies it atomically.

        The quote ends COMMITTED or REJECTED; on rejection the error is re-raised.
        A session with an open transaction is refused up front and the quote
        stays QUOTED.
        """
        if not quote.is_open:
            raise InvalidQuoteTransitionError(quote.id, quote.status.value)
        if db.in_transaction():
            raise SessionInTransactionError()

        lock = self._get_or_create_lock(quote.market_id)
        try:
            async with asyncio.timeout(self._commit_timeout):
                async with lock:
                    async with db.begin():
                        result = await self._commit_inner(quote, user_id, db)
        except TimeoutError as exc:
            err = CommitTimeoutError(quote.market_id, self._commit_timeout)
            _reject(quote, err)
            logger.warning("Commit rejected: quote=%s %s", quote.id, err.message)
            raise err from exc
        except AppError as exc:
            _reject(quote, exc)
            logger.warning("Commit rejected: quote=%s code=%d %s", quote.id, exc.code, exc.message)
            raise
        except Exception as exc:
            _reject(quote, InternalError(f"commit failed: {type(exc).__name__}"))
            raise

        quote.mark_committed(result.estimate)
        self._schedule_broadcast(result.market)
        return CommitResult(
            quote=quote,
            estimate=result.estimate,
            market=result.market,
            balance_after=result.balance_after,
        )

    async def _commit_inner(self, quote: Quote, user_id: str, db: AsyncSession) -> CommitResult:
        if not quote.is_open:
            raise InvalidQuoteTransitionError(quote.id, quote.status.value)
        amount = quote.amount_minor_units

        market = await self._market_repo.get_market_for_update(db, quote.market_id)
        if market is None:
            raise MarketNotFoundError(quote.market_id)
        if not market.is_tradable:
            raise MarketClosedError(market.market_id, market.status.value)

        available = await self._wallet_repo.get_available_balance_for_update(db, user_id)
        if available is None or available < amount:
            raise InsufficientFundsError(amount, available or 0)

        # Live re-simulation: concurrent buys change each other's slippage.
        live = simulate_buy(amount, market, quote.side, self._slippage_threshold)
        if live.shares != quote.estimate.shares:
            logger.info(
                "Quote re-priced on live state: quote=%s version %d->%d shares %s->%s",
                quote.id,
                quote.snapshot_version,
                market.version,
                quote.estimate.shares,
                live.shares,
            )

        after = apply_buy(market, live)
        verify_trade_invariants(market, after, minor_to_payout_units(amount))

        saved = await self._market_repo.save_quantities(db, after, expected_version=market.version)
        balance_after = await self._wallet_repo.debit(
            db, user_id, market.market_id, amount, quote.id
        )

        logger.info(
            "Trade committed: market=%s side=%s amount=%d shares=%s version=%d",
            saved.market_id,
            live.side.value,
            amount,
            live.shares,
            saved.version,
        )
        return CommitResult(quote=quote, estimate=live, market=saved, balance_after=balance_after)

    def _schedule_broadcast(self, market: MarketState) -> None:
        """Fire-and-forget fan-out; runs outside the lock and the transaction."""
        if self._broadcaster is None:
            return
        task = asyncio.create_task(self._broadcast(market))
        self._pending_broadcasts.add(task)
        task.add_done_callback(self._pending_broadcasts.discard)

    async def _broadcast(self, market: MarketState) -> None:
        assert self._broadcaster is not None
        try:
            await self._broadcaster.publish_market_update(market)
        except Exception:
            logger.exception(
                "MARKET_UPDATE broadcast failed: market=%s version=%d",
                market.market_id,
                market.version,
            )

    async def drain_broadcasts(self) -> None:
        """Wait for in-flight broadcasts (shutdown hook)."""
        if self._pending_broadcasts:
            await asyncio.gather(*self._pending_broadcasts, return_exceptions=True)


def _reject(quote: Quote, error: AppError) -> None:
    # A quote committed by a concurrent caller keeps its terminal state.
    if quote.is_open:
        quote.mark_rejected(error)
