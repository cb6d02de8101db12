"""Tests for pm_common.enums — all enum values must match DB CHECK constraints."""

from src.pm_common.enums import LedgerEntryType, MarketStatus, QuoteStatus, Side


class TestAllEnumsAreStr:
    """All enums inherit from (str, Enum) for JSON serialization."""

    def test_side_is_str(self) -> None:
        assert isinstance(Side.YES, str)
        assert Side.YES == "YES"

    def test_market_status_is_str(self) -> None:
        assert MarketStatus.OPEN == "OPEN"

    def test_quote_status_is_str(self) -> None:
        assert QuoteStatus.QUOTED == "QUOTED"


class TestSide:
    def test_other(self) -> None:
        assert Side.YES.other is Side.NO
        assert Side.NO.other is Side.YES

    def test_from_string(self) -> None:
        assert Side("NO") is Side.NO


class TestEnumValues:
    def test_market_status_values(self) -> None:
        assert {s.value for s in MarketStatus} == {
            "DRAFT", "OPEN", "CLOSED", "SETTLED", "CANCELED"
        }

    def test_quote_status_values(self) -> None:
        assert {s.value for s in QuoteStatus} == {"QUOTED", "COMMITTED", "REJECTED"}

    def test_ledger_entry_types(self) -> None:
        assert {e.value for e in LedgerEntryType} == {"TRADE_DEBIT", "SETTLEMENT_PAYOUT"}
