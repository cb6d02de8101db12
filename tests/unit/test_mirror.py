"""Float mirror vs authoritative Decimal engine."""
import logging

import pytest

from src.pm_amm.domain.mirror import MirrorEstimate, detect_precision_drift, mirror_buy
from src.pm_amm.domain.models import MarketState
from src.pm_amm.domain.simulator import simulate_buy
from src.pm_common.enums import Side
from src.pm_common.errors import ConfigurationError


class TestMirrorAgreement:
    @pytest.mark.parametrize(
        "q_yes,q_no,b",
        [(0, 0, 1000), (3000, 500, 1000), (500, 3000, 1000), (12_345, 12_000, 50_000)],
    )
    @pytest.mark.parametrize("side", [Side.YES, Side.NO])
    @pytest.mark.parametrize("amount", [1, 5000, 250_000])
    def test_within_epsilon(self, q_yes, q_no, b, side: Side, amount: int) -> None:
        state = MarketState(q_yes=q_yes, q_no=q_no, liquidity_b=b)
        authoritative = simulate_buy(amount, state, side)
        mirror = mirror_buy(
            amount, float(state.quantity(side)), float(state.quantity(side.other)), float(b)
        )
        assert detect_precision_drift(mirror, authoritative, epsilon=0.01) == []

    def test_mirror_rejects_zero_b(self) -> None:
        with pytest.raises(ConfigurationError):
            mirror_buy(5000, 0.0, 0.0, 0.0)


class TestDriftDetection:
    def test_reports_each_drifting_field(self, fresh_market: MarketState, caplog) -> None:
        authoritative = simulate_buy(5000, fresh_market, Side.YES)
        skewed_mirror = MirrorEstimate(
            shares=float(authoritative.shares) + 1.0,
            avg_price_minor_units=float(authoritative.avg_price_minor_units),
            price_impact_pct=float(authoritative.price_impact_pct),
            new_prob_target=float(authoritative.new_prob_yes) + 0.5,
            new_prob_other=float(authoritative.new_prob_no) - 0.5,
        )
        with caplog.at_level(logging.WARNING):
            drifts = detect_precision_drift(skewed_mirror, authoritative, epsilon=0.01)
        assert [d.field for d in drifts] == ["shares", "new_prob_yes", "new_prob_no"]
        assert all(d.code == 9101 for d in drifts)
        assert "Precision drift on shares" in caplog.text

    def test_no_side_maps_probabilities_back(self, fresh_market: MarketState) -> None:
        authoritative = simulate_buy(5000, fresh_market, Side.NO)
        mirror = mirror_buy(5000, 0.0, 0.0, 1000.0)
        # target probability of the mirror is the NO probability
        assert abs(mirror.new_prob_target - float(authoritative.new_prob_no)) < 0.01
        assert detect_precision_drift(mirror, authoritative, epsilon=0.01) == []
