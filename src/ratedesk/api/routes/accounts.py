"""Account registration, self lookup and admin balance management."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ratedesk.api.deps import current_account, get_ledger, require_admin
from ratedesk.api.schemas import BalanceBody, RegisterBody, account_to_dict
from ratedesk.ledger.ledger import AccountLedger
from ratedesk.logging import get_logger
from ratedesk.models import Account

logger = get_logger(__name__)

router = APIRouter()


@router.post("/accounts", status_code=201)
async def register_account(
    body: RegisterBody,
    ledger: AccountLedger = Depends(get_ledger),
) -> JSONResponse:
    """Create a zero-balance account. Credentials are handled upstream."""
    account = await ledger.create_account(username=body.username)
    return JSONResponse(status_code=201, content=account_to_dict(account))


@router.get("/account")
async def get_own_account(account: Account = Depends(current_account)) -> JSONResponse:
    return JSONResponse(content=account_to_dict(account))


@router.get("/admin/accounts")
async def list_accounts(
    _admin: Account = Depends(require_admin),
    ledger: AccountLedger = Depends(get_ledger),
) -> JSONResponse:
    accounts = await ledger.list_accounts()
    return JSONResponse(content=[account_to_dict(a) for a in accounts])


@router.post("/admin/accounts/balance")
async def set_account_balance(
    body: BalanceBody,
    admin: Account = Depends(require_admin),
    ledger: AccountLedger = Depends(get_ledger),
) -> JSONResponse:
    """Absolute overwrite of either or both balances."""
    account = await ledger.set_balances(
        body.account_id,
        primary=body.primary_balance,
        secondary=body.secondary_balance,
    )
    logger.info("balance_set_by_admin", admin_id=admin.id, account_id=body.account_id)
    return JSONResponse(content=account_to_dict(account))
