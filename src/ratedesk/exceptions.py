"""Exception taxonomy for rate acquisition and trade execution.

Every exception carries a stable machine-readable ``kind`` alongside its
human-readable message. The HTTP layer maps kinds to status codes; see
ratedesk.api.errors.

Single-provider failures are not exceptions: they travel as ProviderFailure
values (ratedesk.rates.source) and are absorbed by the cascade.
"""

from decimal import Decimal


class RateDeskError(Exception):
    """Base exception for all rejections raised by the core."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AllProvidersUnavailableError(RateDeskError):
    """Raised when every configured rate source failed in one cascade pass."""

    kind = "all_providers_unavailable"

    def __init__(self, message: str = "All rate sources are currently unavailable", attempts: list | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts or []


class RateUnavailableError(RateDeskError):
    """Raised when no rate can be served: nothing cached and no live source answered."""

    kind = "rate_unavailable"


class InvalidAmountError(RateDeskError):
    """Raised for non-positive trade amounts, out-of-limit notionals or negative balances."""

    kind = "invalid_amount"


class InsufficientBalanceError(RateDeskError):
    """Raised when a trade or adjustment would drive a balance below zero."""

    kind = "insufficient_balance"

    def __init__(self, message: str, *, account_id: str, required: Decimal, available: Decimal) -> None:
        super().__init__(message)
        self.account_id = account_id
        self.required = required
        self.available = available


class AccountNotFoundError(RateDeskError):
    """Raised when an account id is unknown to the ledger."""

    kind = "not_found"

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class UnauthorizedError(RateDeskError):
    """Raised when the caller is unidentified or lacks the admin capability."""

    kind = "unauthorized"

    def __init__(self, message: str = "Unauthorized", *, authenticated: bool = False) -> None:
        super().__init__(message)
        self.authenticated = authenticated
