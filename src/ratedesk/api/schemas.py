"""Request bodies and JSON serializers for the HTTP surface.

Decimal values are always serialized as strings so clients never see float
rounding artifacts.
"""

from dataclasses import asdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from ratedesk.models import Account, RateRecord, TradeResult


class RateOverrideBody(BaseModel):
    price: Decimal
    change_24h: Decimal | None = None
    high_24h: Decimal | None = None
    low_24h: Decimal | None = None
    volume_24h: Decimal | None = None


class BuyBody(BaseModel):
    primary_amount: Decimal


class SellBody(BaseModel):
    secondary_amount: Decimal


class BalanceBody(BaseModel):
    account_id: str
    primary_balance: Decimal | None = None
    secondary_balance: Decimal | None = None


class RegisterBody(BaseModel):
    username: str | None = None


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _jsonable(data: dict[str, Any]) -> dict[str, Any]:
    return {k: str(v) if isinstance(v, Decimal) else v for k, v in data.items()}


def rate_to_dict(record: RateRecord) -> dict[str, Any]:
    data = _jsonable(asdict(record))
    data["last_updated"] = _iso(record.last_updated)
    return data


def account_to_dict(account: Account) -> dict[str, Any]:
    data = _jsonable(asdict(account))
    data["created_at"] = _iso(account.created_at)
    return data


def trade_to_dict(result: TradeResult) -> dict[str, Any]:
    data = _jsonable(asdict(result))
    data["direction"] = result.direction.value
    data["executed_at"] = _iso(result.executed_at)
    return data
