"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class Side(str, Enum):
    YES = "YES"
    NO = "NO"

    @property
    def other(self) -> "Side":
        return Side.NO if self is Side.YES else Side.YES


class MarketStatus(str, Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    SETTLED = "SETTLED"
    CANCELED = "CANCELED"


class QuoteStatus(str, Enum):
    """Quote lifecycle: QUOTED is advisory, the other two are terminal."""
    QUOTED = "QUOTED"
    COMMITTED = "COMMITTED"
    REJECTED = "REJECTED"


class LedgerEntryType(str, Enum):
    TRADE_DEBIT = "TRADE_DEBIT"
    SETTLEMENT_PAYOUT = "SETTLEMENT_PAYOUT"
