"""Unit tests for MARKET_UPDATE publishing and consumer-side merging."""
import json
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_amm.application.schemas import MarketUpdateEvent
from src.pm_amm.domain.models import MarketState
from src.pm_amm.infrastructure.broadcaster import MarketUpdateMerger, RedisMarketBroadcaster


def _market(version: int, q_yes: int = 0) -> MarketState:
    return MarketState(q_yes=q_yes, q_no=0, liquidity_b=1000, market_id="mkt-1", version=version)


class TestPublish:
    @pytest.mark.asyncio
    async def test_publishes_camel_case_json(self) -> None:
        client = MagicMock()
        client.publish = AsyncMock(return_value=2)
        broadcaster = RedisMarketBroadcaster(client, channel="updates")

        await broadcaster.publish_market_update(_market(version=7))

        channel, payload = client.publish.call_args[0]
        assert channel == "updates"
        body = json.loads(payload)
        assert body["type"] == "MARKET_UPDATE"
        assert body["marketId"] == "mkt-1"
        assert body["version"] == 7
        assert Decimal(body["probYes"]) == Decimal("50.00")
        assert "liquidityB" in body

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        client = MagicMock()
        client.aclose = AsyncMock()
        await RedisMarketBroadcaster(client, channel="updates").close()
        client.aclose.assert_awaited_once()


class TestMarketUpdateEvent:
    def test_probabilities_sum_to_hundred(self) -> None:
        event = MarketUpdateEvent.from_market(_market(version=1, q_yes=777))
        assert event.prob_yes + event.prob_no == Decimal(100)
        assert event.prob_yes > event.prob_no


class TestMerger:
    def _payload(self, version: int, q_yes: int = 0) -> str:
        return MarketUpdateEvent.from_market(_market(version, q_yes)).model_dump_json(by_alias=True)

    def test_applies_newer_versions(self) -> None:
        merger = MarketUpdateMerger()
        assert merger.merge(self._payload(1))
        assert merger.merge(self._payload(2, q_yes=100))
        latest = merger.get("mkt-1")
        assert latest is not None
        assert latest.version == 2

    def test_duplicate_is_idempotent(self) -> None:
        merger = MarketUpdateMerger()
        merger.merge(self._payload(3))
        assert not merger.merge(self._payload(3))

    def test_stale_reordered_event_is_dropped(self) -> None:
        merger = MarketUpdateMerger()
        merger.merge(self._payload(5, q_yes=500))
        assert not merger.merge(self._payload(4, q_yes=400))
        assert merger.get("mkt-1").q_yes == Decimal(500)  # type: ignore[union-attr]

    def test_accepts_dict_and_bytes(self) -> None:
        merger = MarketUpdateMerger()
        assert merger.merge(json.loads(self._payload(1)))
        assert merger.merge(self._payload(2).encode())

    def test_malformed_payload_is_dropped(self) -> None:
        merger = MarketUpdateMerger()
        assert not merger.merge('{"type": "MARKET_UPDATE"}')
        assert merger.get("mkt-1") is None
