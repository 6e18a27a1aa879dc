"""Request-scoped dependencies: services from app.state and the caller's identity.

Authentication itself lives outside this service. An upstream gateway resolves
the session and forwards the account id in the ``X-Account-Id`` header; the
admin capability is read from the ledger account.
"""

from fastapi import Depends, Header, Request

from ratedesk.exceptions import AccountNotFoundError, UnauthorizedError
from ratedesk.execution.trade_executor import TradeExecutor
from ratedesk.ledger.ledger import AccountLedger
from ratedesk.models import Account
from ratedesk.rates.cache import RateCache


def get_rate_cache(request: Request) -> RateCache:
    return request.app.state.rate_cache


def get_ledger(request: Request) -> AccountLedger:
    return request.app.state.ledger


def get_executor(request: Request) -> TradeExecutor:
    return request.app.state.executor


async def current_account(
    x_account_id: str | None = Header(default=None),
    ledger: AccountLedger = Depends(get_ledger),
) -> Account:
    """The authenticated caller. Missing or unknown ids are rejected with 401."""
    if not x_account_id:
        raise UnauthorizedError("Not authenticated")
    try:
        return await ledger.get_account(x_account_id)
    except AccountNotFoundError:
        raise UnauthorizedError("Not authenticated") from None


async def require_admin(account: Account = Depends(current_account)) -> Account:
    """The caller, if it holds the admin capability; 403 otherwise."""
    if not account.is_admin:
        raise UnauthorizedError("Admin access required", authenticated=True)
    return account
