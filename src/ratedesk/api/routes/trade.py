"""Simulated BUY/SELL endpoints for the authenticated account."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ratedesk.api.deps import current_account, get_executor
from ratedesk.api.schemas import BuyBody, SellBody, trade_to_dict
from ratedesk.execution.trade_executor import TradeExecutor
from ratedesk.models import Account

router = APIRouter(prefix="/trade")


@router.post("/buy")
async def buy(
    body: BuyBody,
    account: Account = Depends(current_account),
    executor: TradeExecutor = Depends(get_executor),
) -> JSONResponse:
    result = await executor.buy(account.id, body.primary_amount)
    return JSONResponse(content=trade_to_dict(result))


@router.post("/sell")
async def sell(
    body: SellBody,
    account: Account = Depends(current_account),
    executor: TradeExecutor = Depends(get_executor),
) -> JSONResponse:
    result = await executor.sell(account.id, body.secondary_amount)
    return JSONResponse(content=trade_to_dict(result))
