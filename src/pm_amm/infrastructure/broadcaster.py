"""MARKET_UPDATE fan-out over Redis Pub/Sub, plus the consumer-side merge.

Publishing is fire-and-forget from the engine's point of view: it runs after
the commit, outside the per-market lock. Delivery may duplicate or reorder,
so consumers merge through MarketUpdateMerger keyed by market id and version.
"""

import logging
from typing import Any

import redis.asyncio as aioredis
from pydantic import ValidationError

from config.settings import settings
from src.pm_amm.application.schemas import MarketUpdateEvent
from src.pm_amm.domain.models import MarketState

logger = logging.getLogger(__name__)


class RedisMarketBroadcaster:
    def __init__(self, client: aioredis.Redis, channel: str | None = None) -> None:
        self._client = client
        self._channel = channel or settings.MARKET_UPDATE_CHANNEL

    @classmethod
    def from_settings(cls) -> "RedisMarketBroadcaster":
        client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        return cls(client, settings.MARKET_UPDATE_CHANNEL)

    async def publish_market_update(self, market: MarketState) -> None:
        event = MarketUpdateEvent.from_market(market)
        payload = event.model_dump_json(by_alias=True)
        receivers = await self._client.publish(self._channel, payload)
        logger.debug(
            "MARKET_UPDATE published: market=%s version=%d receivers=%s",
            market.market_id,
            market.version,
            receivers,
        )

    async def close(self) -> None:
        await self._client.aclose()


class MarketUpdateMerger:
    """Latest-wins view of MARKET_UPDATE events, idempotent per market."""

    def __init__(self) -> None:
        self._latest: dict[str, MarketUpdateEvent] = {}

    def merge(self, message: str | bytes | dict[str, Any]) -> bool:
        """Apply one delivered message. Returns True if it advanced the view."""
        try:
            if isinstance(message, dict):
                event = MarketUpdateEvent.model_validate(message)
            else:
                event = MarketUpdateEvent.model_validate_json(message)
        except ValidationError:
            logger.warning("Dropping malformed MARKET_UPDATE payload")
            return False

        current = self._latest.get(event.market_id)
        if current is not None and event.version <= current.version:
            logger.debug(
                "Stale MARKET_UPDATE ignored: market=%s version=%d <= %d",
                event.market_id,
                event.version,
                current.version,
            )
            return False
        self._latest[event.market_id] = event
        return True

    def get(self, market_id: str) -> MarketUpdateEvent | None:
        return self._latest.get(market_id)
