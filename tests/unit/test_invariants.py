import logging
from decimal import Decimal

import pytest

from src.pm_amm.domain.invariants import (
    net_invested,
    reconcile_net_invested,
    verify_trade_invariants,
)
from src.pm_amm.domain.models import MarketState, open_market
from src.pm_amm.domain.simulator import apply_buy, simulate_buy
from src.pm_common.enums import Side
from src.pm_common.errors import ConfigurationError, InvariantViolationError


def _buy(state: MarketState, amount: int, side: Side = Side.YES) -> MarketState:
    return apply_buy(state, simulate_buy(amount, state, side))


class TestNetInvested:
    @pytest.mark.parametrize("b", [1, 100, 1000, 123_456])
    def test_zero_for_fresh_market(self, b: int) -> None:
        assert net_invested(open_market("m", b)) == 0

    def test_equals_cash_collected(self, fresh_market: MarketState) -> None:
        assert net_invested(_buy(fresh_market, 5000)) == 5000

    def test_accumulates_across_sides(self, fresh_market: MarketState) -> None:
        state = _buy(_buy(_buy(fresh_market, 1234), 777, Side.NO), 98_765)
        assert net_invested(state) == 1234 + 777 + 98_765

    def test_zero_liquidity_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            net_invested(MarketState(q_yes=0, q_no=0, liquidity_b=0))


class TestReconcile:
    def test_books_agree(self, fresh_market: MarketState) -> None:
        state = _buy(_buy(fresh_market, 3000), 2000)
        assert reconcile_net_invested(state, total_debits=5000, total_payouts=0) == []

    def test_drift_is_reported(self, fresh_market: MarketState, caplog) -> None:
        state = _buy(fresh_market, 5000)
        with caplog.at_level(logging.ERROR):
            violations = reconcile_net_invested(state, total_debits=5001, total_payouts=0)
        assert len(violations) == 1
        assert "INV-4" in violations[0]
        assert "INV-4" in caplog.text


class TestVerifyTradeInvariants:
    def test_passes_for_real_trade(self, skewed_market: MarketState) -> None:
        after = _buy(skewed_market, 5000, Side.NO)
        verify_trade_invariants(skewed_market, after, Decimal(50))  # no exception

    def test_wrong_cost_raises_inv3(self, skewed_market: MarketState) -> None:
        after = _buy(skewed_market, 5000)
        with pytest.raises(InvariantViolationError, match=r"INV-3"):
            verify_trade_invariants(skewed_market, after, Decimal(51))

    def test_negative_quantity_raises_inv2(self, skewed_market: MarketState) -> None:
        broken = MarketState(q_yes=-1, q_no=500, liquidity_b=1000)
        with pytest.raises(InvariantViolationError, match=r"INV-2"):
            verify_trade_invariants(skewed_market, broken, Decimal(0))
