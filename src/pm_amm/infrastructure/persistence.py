"""Raw-SQL repositories for LMSR market state and wallet debits.

All queries use text() SQL (no ORM). q_yes/q_no/liquidity_b are NUMERIC
without scale so the full Decimal precision round-trips. Every write is
guarded by the row version read under FOR UPDATE.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain.models import MarketState
from src.pm_common.enums import LedgerEntryType, MarketStatus
from src.pm_common.errors import InsufficientFundsError, StaleMarketVersionError
from src.pm_common.precision import to_decimal

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_GET_MARKET_SQL = text("""
    SELECT id, status, q_yes, q_no, liquidity_b, version
    FROM amm_markets
    WHERE id = :market_id
""")

_GET_MARKET_FOR_UPDATE_SQL = text("""
    SELECT id, status, q_yes, q_no, liquidity_b, version
    FROM amm_markets
    WHERE id = :market_id
    FOR UPDATE
""")

_INSERT_MARKET_SQL = text("""
    INSERT INTO amm_markets (id, status, q_yes, q_no, liquidity_b, version)
    VALUES (:id, :status, :q_yes, :q_no, :liquidity_b, :version)
""")

_SAVE_QUANTITIES_SQL = text("""
    UPDATE amm_markets
    SET q_yes = :q_yes,
        q_no = :q_no,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id AND version = :expected_version AND status = 'OPEN'
    RETURNING version
""")

_UPDATE_STATUS_SQL = text("""
    UPDATE amm_markets
    SET status = :status,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id AND version = :expected_version
    RETURNING version
""")

_LEDGER_TOTALS_SQL = text("""
    SELECT
        COALESCE(SUM(CASE WHEN entry_type = 'TRADE_DEBIT' THEN -amount_cents END), 0)
            AS total_debits,
        COALESCE(SUM(CASE WHEN entry_type = 'SETTLEMENT_PAYOUT' THEN amount_cents END), 0)
            AS total_payouts
    FROM ledger_entries
    WHERE market_id = :market_id
""")

_GET_BALANCE_FOR_UPDATE_SQL = text("""
    SELECT available_balance FROM accounts
    WHERE user_id = :user_id
    FOR UPDATE
""")

_DEBIT_SQL = text("""
    UPDATE accounts
    SET available_balance = available_balance - :amount,
        version = version + 1, updated_at = NOW()
    WHERE user_id = :user_id AND available_balance >= :amount
    RETURNING available_balance
""")

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (id, user_id, market_id, entry_type, amount_cents, balance_after, reference_id)
    VALUES
        (:id, :user_id, :market_id, :entry_type, :amount_cents, :balance_after, :reference_id)
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_market(row: Any) -> MarketState:
    return MarketState(
        market_id=row.id,
        status=MarketStatus(row.status),
        q_yes=to_decimal(row.q_yes),
        q_no=to_decimal(row.q_no),
        liquidity_b=to_decimal(row.liquidity_b),
        version=row.version,
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class MarketStateRepository:
    async def get_market(self, db: AsyncSession, market_id: str) -> MarketState | None:
        row = (await db.execute(_GET_MARKET_SQL, {"market_id": market_id})).fetchone()
        return _row_to_market(row) if row is not None else None

    async def get_market_for_update(self, db: AsyncSession, market_id: str) -> MarketState | None:
        row = (
            await db.execute(_GET_MARKET_FOR_UPDATE_SQL, {"market_id": market_id})
        ).fetchone()
        return _row_to_market(row) if row is not None else None

    async def create_market(self, db: AsyncSession, market: MarketState) -> None:
        await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": market.market_id,
                "status": market.status.value,
                "q_yes": market.q_yes,
                "q_no": market.q_no,
                "liquidity_b": market.liquidity_b,
                "version": market.version,
            },
        )
        logger.info("Market opened: id=%s b=%s", market.market_id, market.liquidity_b)

    async def save_quantities(
        self, db: AsyncSession, market: MarketState, expected_version: int
    ) -> MarketState:
        """Persist new q_yes/q_no; bumps version. Raises StaleMarketVersionError."""
        row = (
            await db.execute(
                _SAVE_QUANTITIES_SQL,
                {
                    "id": market.market_id,
                    "q_yes": market.q_yes,
                    "q_no": market.q_no,
                    "expected_version": expected_version,
                },
            )
        ).fetchone()
        if row is None:
            raise StaleMarketVersionError(market.market_id, expected_version)
        return MarketState(
            q_yes=market.q_yes,
            q_no=market.q_no,
            liquidity_b=market.liquidity_b,
            market_id=market.market_id,
            status=market.status,
            version=row.version,
        )

    async def update_status(
        self,
        db: AsyncSession,
        market_id: str,
        status: MarketStatus,
        expected_version: int,
    ) -> MarketState:
        row = (
            await db.execute(
                _UPDATE_STATUS_SQL,
                {"id": market_id, "status": status.value, "expected_version": expected_version},
            )
        ).fetchone()
        if row is None:
            raise StaleMarketVersionError(market_id, expected_version)
        market = await self.get_market(db, market_id)
        assert market is not None
        return market

    async def get_ledger_totals(self, db: AsyncSession, market_id: str) -> tuple[int, int]:
        """(sum of trade debits, sum of settlement payouts), both positive cents."""
        row = (await db.execute(_LEDGER_TOTALS_SQL, {"market_id": market_id})).fetchone()
        if row is None:
            return 0, 0
        return int(row.total_debits), int(row.total_payouts)


class WalletRepository:
    async def get_available_balance_for_update(
        self, db: AsyncSession, user_id: str
    ) -> int | None:
        result = await db.execute(_GET_BALANCE_FOR_UPDATE_SQL, {"user_id": user_id})
        return result.scalar_one_or_none()

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        amount: int,
        reference_id: str,
    ) -> int:
        """Atomic debit + TRADE_DEBIT ledger row. Returns the balance after."""
        row = (
            await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": amount})
        ).fetchone()
        if row is None:
            raise InsufficientFundsError(amount, 0)
        balance_after: int = row.available_balance
        await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "market_id": market_id,
                "entry_type": LedgerEntryType.TRADE_DEBIT.value,
                "amount_cents": -amount,
                "balance_after": balance_after,
                "reference_id": reference_id,
            },
        )
        return balance_after
