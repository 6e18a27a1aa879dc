"""Exchange ticker rate source via ccxt async.

Unlike the HTTP aggregators, an exchange ticker publishes observed 24h high,
low, change and volume, so no band is derived unless the exchange omits them.
The ccxt instance holds an aiohttp session: close() must be awaited on
shutdown.
"""

import time
from collections.abc import Callable
from typing import Any

import ccxt.async_support as ccxt_async

from ratedesk.logging import get_logger
from ratedesk.models import RateRecord
from ratedesk.rates.source import (
    FailureReason,
    PayloadError,
    ProviderResult,
    RateSource,
    derived_range,
    optional_decimal,
    to_decimal,
)

logger = get_logger(__name__)


class ExchangeTickerSource(RateSource):
    """Last trade price for ``ASSET/QUOTE`` on one ccxt exchange.

    Args:
        exchange_id: ccxt exchange id, e.g. "kraken".
        quote_currency: Fiat currency code.
        asset: Asset ticker.
        timeout_seconds: ccxt request timeout.
        exchange: Pre-built ccxt exchange (tests inject a fake here).
        clock: Timestamp source for produced records.
    """

    def __init__(
        self,
        exchange_id: str = "kraken",
        quote_currency: str = "CAD",
        asset: str = "BTC",
        timeout_seconds: float = 5.0,
        exchange: Any = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._exchange_id = exchange_id
        self._symbol = f"{asset.upper()}/{quote_currency.upper()}"
        if exchange is None:
            exchange_cls = getattr(ccxt_async, exchange_id)
            exchange = exchange_cls({"enableRateLimit": True, "timeout": int(timeout_seconds * 1000)})
        self._exchange = exchange
        self._clock = clock

    @property
    def name(self) -> str:
        return f"exchange:{self._exchange_id}"

    async def fetch(self) -> ProviderResult:
        try:
            ticker = await self._exchange.fetch_ticker(self._symbol)
        except ccxt_async.RequestTimeout as exc:
            return self._fail("timeout", str(exc))
        except ccxt_async.NetworkError as exc:
            return self._fail("network", str(exc))
        except ccxt_async.ExchangeError as exc:
            return self._fail("bad_status", str(exc))
        except ccxt_async.BaseError as exc:
            return self._fail("error", str(exc))

        try:
            record = self.decode(ticker)
        except ValueError as exc:
            return self._fail("bad_payload", str(exc))
        return ProviderResult.success(self.name, record)

    def decode(self, ticker: Any) -> RateRecord:
        """Map a unified ccxt ticker to a RateRecord. ``last`` is required."""
        if not isinstance(ticker, dict):
            raise PayloadError("ticker is not a mapping")
        price = to_decimal(ticker.get("last"))
        high = optional_decimal(ticker, "high")
        low = optional_decimal(ticker, "low")
        derived = high is None or low is None
        if derived:
            high, low = derived_range(price)
        return RateRecord(
            price=price,
            change_24h=optional_decimal(ticker, "percentage"),
            high_24h=high,
            low_24h=low,
            volume_24h=optional_decimal(ticker, "quoteVolume"),
            last_updated=self._clock(),
            source=self.name,
            is_derived_range=derived,
        )

    async def close(self) -> None:
        """Release the ccxt session."""
        await self._exchange.close()
        logger.info("exchange_source_closed", exchange=self._exchange_id)

    def _fail(self, reason: FailureReason, detail: str) -> ProviderResult:
        logger.warning("rate_source_failed", provider=self.name, reason=reason, detail=detail)
        return ProviderResult.failed(self.name, reason, detail)
