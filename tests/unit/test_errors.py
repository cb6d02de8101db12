"""Tests for pm_common.errors."""

from src.pm_common.errors import (
    AppError,
    CommitTimeoutError,
    ConfigurationError,
    InfeasibleTradeError,
    InsufficientFundsError,
    InvalidQuoteTransitionError,
    MarketClosedError,
    MarketNotFoundError,
    PrecisionDriftError,
    QuoteNotFoundError,
    SessionInTransactionError,
    StaleMarketVersionError,
)


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_custom_http_status(self) -> None:
        err = AppError(code=3101, message="bad b", http_status=422)
        assert err.http_status == 422

    def test_is_exception(self) -> None:
        err = AppError(code=3101, message="test")
        assert isinstance(err, Exception)


class TestSpecificErrors:
    def test_insufficient_funds(self) -> None:
        err = InsufficientFundsError(required=6500, available=3000)
        assert err.code == 2001
        assert err.http_status == 422
        assert "6500" in err.message
        assert "3000" in err.message

    def test_market_not_found(self) -> None:
        err = MarketNotFoundError("MKT-123")
        assert err.code == 3001
        assert err.http_status == 404

    def test_market_closed_mentions_status(self) -> None:
        err = MarketClosedError("MKT-123", "CLOSED")
        assert err.code == 3002
        assert "CLOSED" in err.message

    def test_configuration_error(self) -> None:
        err = ConfigurationError("liquidity_b must be positive, got 0")
        assert err.code == 3101
        assert "liquidity_b" in err.message

    def test_infeasible_trade(self) -> None:
        err = InfeasibleTradeError("no shares")
        assert err.code == 4102
        assert err.http_status == 422

    def test_quote_transition(self) -> None:
        err = InvalidQuoteTransitionError("q-1", "COMMITTED")
        assert err.code == 4103
        assert err.http_status == 409

    def test_stale_version(self) -> None:
        err = StaleMarketVersionError("MKT-1", 7)
        assert err.code == 4104
        assert "7" in err.message

    def test_quote_not_found(self) -> None:
        err = QuoteNotFoundError("q-9")
        assert err.code == 4105
        assert err.http_status == 404
        assert "q-9" in err.message

    def test_session_in_transaction(self) -> None:
        assert SessionInTransactionError().code == 9004

    def test_commit_timeout(self) -> None:
        err = CommitTimeoutError("MKT-1", 5.0)
        assert err.code == 9003
        assert err.http_status == 503

    def test_precision_drift_keeps_values(self) -> None:
        err = PrecisionDriftError("shares", 97.6, 97.7, 0.01)
        assert err.code == 9101
        assert err.field == "shares"
        assert err.mirror == 97.6
        assert err.authoritative == 97.7
