"""Unified error codes and custom exceptions.

Error code ranges:
  2xxx: Wallet
  3xxx: Market
  4xxx: Trade / Quote
  9xxx: System

Every AMM failure is recoverable per request: the offending trade is rejected,
the engine keeps running.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 2xxx: Wallet ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient funds: required {required} cents, available {available} cents",
            422,
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketClosedError(AppError):
    def __init__(self, market_id: str, status: str) -> None:
        super().__init__(3002, f"Market {market_id} is not open for trading (status={status})", 422)


class InvalidStatusTransitionError(AppError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(3003, f"Market status cannot move from {current} to {target}", 422)


class ConfigurationError(AppError):
    """Market parameters are unusable until an operator corrects them."""

    def __init__(self, detail: str) -> None:
        super().__init__(3101, f"Invalid market configuration: {detail}", 422)


# --- 4xxx: Trade / Quote ---

class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4101, f"Invalid trade amount: {detail}", 422)


class InfeasibleTradeError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4102, f"Infeasible trade: {detail}", 422)


class InvalidQuoteTransitionError(AppError):
    def __init__(self, quote_id: str, status: str) -> None:
        super().__init__(4103, f"Quote {quote_id} in status {status} cannot change state", 409)


class StaleMarketVersionError(AppError):
    def __init__(self, market_id: str, expected_version: int) -> None:
        super().__init__(
            4104,
            f"Market {market_id} changed underneath commit (expected version {expected_version})",
            409,
        )


class QuoteNotFoundError(AppError):
    def __init__(self, quote_id: str) -> None:
        super().__init__(4105, f"Quote not found or already resolved: {quote_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class CommitTimeoutError(AppError):
    def __init__(self, market_id: str, timeout_seconds: float) -> None:
        super().__init__(
            9003, f"Commit on market {market_id} timed out after {timeout_seconds}s", 503
        )


class SessionInTransactionError(AppError):
    """Commits own their transaction; the session handed in must be idle."""

    def __init__(self) -> None:
        super().__init__(
            9004, "Commit needs an idle session; end the open transaction first", 500
        )


class PrecisionDriftError(AppError):
    """Mirror and authoritative results diverged. Reported, never raised on the trade path."""

    def __init__(self, field: str, mirror: float, authoritative: float, epsilon: float) -> None:
        self.field = field
        self.mirror = mirror
        self.authoritative = authoritative
        super().__init__(
            9101,
            f"Precision drift on {field}: mirror={mirror} authoritative={authoritative} "
            f"(epsilon={epsilon})",
            500,
        )


class InvariantViolationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9102, f"Invariant violated: {detail}", 500)
