"""Shared data models for rates, accounts and trades.

All monetary values use Decimal. Never use float for prices, balances or fees.
Timestamps are Unix seconds.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class TradeDirection(str, Enum):
    """Trade direction, seen from the asset side."""

    BUY = "buy"  # spend primary, receive secondary
    SELL = "sell"  # spend secondary, receive primary


@dataclass(frozen=True)
class RateRecord:
    """One canonical quote: quote currency per unit of the asset.

    Records are immutable; the cache replaces them wholesale on every refresh
    or override, so a reader can never observe a half-updated quote.
    """

    price: Decimal
    change_24h: Decimal | None = None
    high_24h: Decimal | None = None
    low_24h: Decimal | None = None
    volume_24h: Decimal | None = None
    last_updated: float = field(default_factory=time.time)
    is_manual_override: bool = False
    source: str = ""
    is_derived_range: bool = False  # high/low synthesized from price, not observed
    is_synthetic: bool = False  # configured last-resort value, not a market quote

    def __post_init__(self) -> None:
        if not self.price.is_finite() or self.price <= 0:
            raise ValueError(f"Rate price must be positive, got {self.price}")


@dataclass
class Account:
    """A principal holding a primary (fiat) and a secondary (asset) balance."""

    id: str
    primary_balance: Decimal = Decimal("0")
    secondary_balance: Decimal = Decimal("0")
    is_admin: bool = False
    username: str | None = None
    created_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class TradeRequest:
    """Amount is primary for BUY and secondary for SELL."""

    account_id: str
    direction: TradeDirection
    amount: Decimal


@dataclass(frozen=True)
class TradeResult:
    """Outcome of one executed trade. ``fee`` is in the receiving denomination."""

    direction: TradeDirection
    amount_primary: Decimal
    amount_secondary: Decimal
    rate_used: Decimal
    fee: Decimal
    resulting_primary_balance: Decimal
    resulting_secondary_balance: Decimal
    executed_at: float = field(default_factory=time.time)
