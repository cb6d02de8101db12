# src/pm_amm/domain/repository.py
"""Repository Protocols — dependency inversion for testability.

Unit tests inject fakes or mocks that conform to these Protocols.
Infrastructure layer provides the real implementations.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_amm.domain.models import MarketState
from src.pm_common.enums import MarketStatus


class MarketStateRepositoryProtocol(Protocol):
    async def get_market(
        self,
        db: AsyncSession,
        market_id: str,
    ) -> MarketState | None: ...

    async def get_market_for_update(
        self,
        db: AsyncSession,
        market_id: str,
    ) -> MarketState | None: ...

    async def create_market(
        self,
        db: AsyncSession,
        market: MarketState,
    ) -> None: ...

    async def save_quantities(
        self,
        db: AsyncSession,
        market: MarketState,
        expected_version: int,
    ) -> MarketState: ...

    async def update_status(
        self,
        db: AsyncSession,
        market_id: str,
        status: MarketStatus,
        expected_version: int,
    ) -> MarketState: ...

    async def get_ledger_totals(
        self,
        db: AsyncSession,
        market_id: str,
    ) -> tuple[int, int]: ...


class WalletRepositoryProtocol(Protocol):
    async def get_available_balance_for_update(
        self,
        db: AsyncSession,
        user_id: str,
    ) -> int | None: ...

    async def debit(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str,
        amount: int,
        reference_id: str,
    ) -> int: ...


class MarketBroadcasterProtocol(Protocol):
    async def publish_market_update(self, market: MarketState) -> None: ...
