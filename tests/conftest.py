"""Shared test fixtures: scripted rate sources, a manual clock and wired services."""

import asyncio
from collections.abc import Callable
from decimal import Decimal

import pytest

from ratedesk.config import AppSettings, RateSettings, TradingSettings
from ratedesk.execution.fees import FeeCalculator
from ratedesk.execution.trade_executor import TradeExecutor
from ratedesk.ledger.ledger import AccountLedger
from ratedesk.models import RateRecord
from ratedesk.rates.cache import RateCache
from ratedesk.rates.cascade import RateCascade
from ratedesk.rates.source import ProviderResult, RateSource


class ManualClock:
    """Wall clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource(RateSource):
    """RateSource returning a fixed price, or failing, and counting calls.

    Args:
        name: Provider name.
        price: Price to return; None makes every call fail.
        delay: Seconds to sleep before answering (to exercise timeouts/coalescing).
        clock: Timestamp source for produced records.
    """

    def __init__(
        self,
        name: str,
        price: Decimal | str | None = None,
        delay: float = 0.0,
        clock: ManualClock | None = None,
    ) -> None:
        self._name = name
        self.price = Decimal(price) if price is not None else None
        self.delay = delay
        self.clock = clock
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    async def fetch(self) -> ProviderResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.price is None:
            return ProviderResult.failed(self._name, "network", "forced failure")
        record = RateRecord(
            price=self.price,
            last_updated=self.clock() if self.clock else 0.0,
            source=self._name,
        )
        return ProviderResult.success(self._name, record)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def make_source(clock: ManualClock) -> Callable[..., FakeSource]:
    """Factory for FakeSource instances stamped by the shared manual clock."""

    def _make(name: str, price: Decimal | str | None = None, delay: float = 0.0) -> FakeSource:
        return FakeSource(name, price=price, delay=delay, clock=clock)

    return _make


@pytest.fixture
def mock_settings() -> AppSettings:
    """AppSettings with test defaults (no fee, no limits, memory ledger)."""
    return AppSettings(
        log_level="DEBUG",
        rates=RateSettings(providers=["coingecko"], refresh_interval_seconds=30.0),
        trading=TradingSettings(),
    )


@pytest.fixture
def ledger() -> AccountLedger:
    return AccountLedger()


@pytest.fixture
def live_source(make_source: Callable[..., FakeSource]) -> FakeSource:
    return make_source("primary", price="50000")


@pytest.fixture
def rate_cache(live_source: FakeSource, clock: ManualClock) -> RateCache:
    return RateCache(RateCascade([live_source], timeout_seconds=1.0), refresh_interval_seconds=30.0, clock=clock)


@pytest.fixture
def executor(rate_cache: RateCache, ledger: AccountLedger) -> TradeExecutor:
    settings = TradingSettings()
    return TradeExecutor(rate_cache, ledger, FeeCalculator(settings), settings)
