"""Shared test fixtures for the LMSR pricing engine."""

from decimal import Decimal

import pytest

from src.pm_amm.domain.models import MarketState, open_market
from src.pm_amm.engine.engine import TradingEngine
from tests.fakes import FakeMarketRepo, FakeSession, FakeWalletRepo, RecordingBroadcaster


@pytest.fixture
def fresh_market() -> MarketState:
    return open_market("mkt-1", 1000)


@pytest.fixture
def skewed_market() -> MarketState:
    return MarketState(
        q_yes=Decimal(3000), q_no=Decimal(500), liquidity_b=Decimal(1000), market_id="mkt-skew"
    )


@pytest.fixture
def market_repo(fresh_market: MarketState) -> FakeMarketRepo:
    return FakeMarketRepo(fresh_market, open_market("mkt-2", 1000))


@pytest.fixture
def wallet_repo(market_repo: FakeMarketRepo) -> FakeWalletRepo:
    return FakeWalletRepo({"user-1": 1_000_000, "user-2": 1_000_000}, market_repo)


@pytest.fixture
def session(market_repo: FakeMarketRepo, wallet_repo: FakeWalletRepo) -> FakeSession:
    return FakeSession(market_repo, wallet_repo)


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def engine(
    market_repo: FakeMarketRepo, wallet_repo: FakeWalletRepo, broadcaster: RecordingBroadcaster
) -> TradingEngine:
    return TradingEngine(market_repo, wallet_repo, broadcaster, commit_timeout_seconds=1.0)
