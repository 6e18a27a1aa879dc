"""HTTP/JSON rate sources (CoinGecko, CoinDesk, CryptoCompare).

Each source issues a single GET through a shared httpx.AsyncClient with a
fixed per-call timeout and decodes its provider-specific JSON into a
RateRecord. Only the price field is required; optional fields that are absent
or malformed decode to None. None of these providers publish a 24h high/low
on the endpoints used, so the band is derived (see DERIVED_RANGE_PCT).
"""

import time
from abc import abstractmethod
from collections.abc import Callable
from decimal import Decimal
from typing import Any

import httpx

from ratedesk.logging import get_logger
from ratedesk.models import RateRecord
from ratedesk.rates.source import (
    FailureReason,
    PayloadError,
    ProviderResult,
    RateSource,
    derived_range,
    dig,
    optional_decimal,
    to_decimal,
)

logger = get_logger(__name__)


class HttpRateSource(RateSource):
    """Base class for sources that answer a single JSON GET.

    Args:
        client: Shared async HTTP client (owned and closed by the caller).
        quote_currency: Fiat currency code, e.g. "CAD".
        asset: Asset ticker, e.g. "BTC".
        timeout_seconds: Hard limit for the whole request.
        user_agent: Sent on every request.
        clock: Timestamp source for produced records.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        quote_currency: str = "CAD",
        asset: str = "BTC",
        timeout_seconds: float = 5.0,
        user_agent: str = "ratedesk/0.1",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._quote = quote_currency.upper()
        self._asset = asset.upper()
        self._timeout = httpx.Timeout(timeout_seconds)
        self._headers = {"Accept": "application/json", "User-Agent": user_agent}
        self._clock = clock

    @property
    @abstractmethod
    def url(self) -> str:
        """Fully-qualified endpoint for this pair."""
        ...

    @abstractmethod
    def decode(self, payload: Any) -> RateRecord:
        """Map the provider payload to a RateRecord.

        Raises:
            PayloadError: If the price field is missing or not a number.
        """
        ...

    async def fetch(self) -> ProviderResult:
        try:
            response = await self._client.get(self.url, headers=self._headers, timeout=self._timeout)
        except httpx.TimeoutException as exc:
            return self._fail("timeout", repr(exc))
        except httpx.HTTPError as exc:
            return self._fail("network", repr(exc))

        if not response.is_success:
            return self._fail("bad_status", f"HTTP {response.status_code}")

        try:
            record = self.decode(response.json())
        except ValueError as exc:  # PayloadError and JSON decode errors
            return self._fail("bad_payload", str(exc))

        logger.debug("rate_source_fetched", provider=self.name, price=str(record.price))
        return ProviderResult.success(self.name, record)

    def _fail(self, reason: FailureReason, detail: str) -> ProviderResult:
        logger.warning("rate_source_failed", provider=self.name, reason=reason, detail=detail)
        return ProviderResult.failed(self.name, reason, detail)

    def _record(
        self,
        price: Decimal,
        change_24h: Decimal | None = None,
        volume_24h: Decimal | None = None,
    ) -> RateRecord:
        high, low = derived_range(price)
        return RateRecord(
            price=price,
            change_24h=change_24h,
            high_24h=high,
            low_24h=low,
            volume_24h=volume_24h,
            last_updated=self._clock(),
            source=self.name,
            is_derived_range=True,
        )


class CoinGeckoSource(HttpRateSource):
    """CoinGecko simple/price endpoint; also carries 24h change and volume."""

    def __init__(self, client: httpx.AsyncClient, asset_id: str = "bitcoin", **kwargs: Any) -> None:
        super().__init__(client, **kwargs)
        self._asset_id = asset_id

    @property
    def name(self) -> str:
        return "coingecko"

    @property
    def url(self) -> str:
        vs = self._quote.lower()
        return (
            "https://api.coingecko.com/api/v3/simple/price"
            f"?ids={self._asset_id}&vs_currencies={vs}"
            "&include_24hr_change=true&include_24hr_vol=true"
        )

    def decode(self, payload: Any) -> RateRecord:
        vs = self._quote.lower()
        quote = dig(payload, self._asset_id)
        price = to_decimal(dig(quote, vs))
        return self._record(
            price,
            change_24h=optional_decimal(quote, f"{vs}_24h_change"),
            volume_24h=optional_decimal(quote, f"{vs}_24h_vol"),
        )


class CoinDeskSource(HttpRateSource):
    """CoinDesk BPI current price. Bitcoin only, price only."""

    @property
    def name(self) -> str:
        return "coindesk"

    @property
    def url(self) -> str:
        return f"https://api.coindesk.com/v1/bpi/currentprice/{self._quote}.json"

    def decode(self, payload: Any) -> RateRecord:
        return self._record(to_decimal(dig(payload, "bpi", self._quote, "rate_float")))


class CryptoCompareSource(HttpRateSource):
    """CryptoCompare single-pair price endpoint."""

    @property
    def name(self) -> str:
        return "cryptocompare"

    @property
    def url(self) -> str:
        return f"https://min-api.cryptocompare.com/data/price?fsym={self._asset}&tsyms={self._quote}"

    def decode(self, payload: Any) -> RateRecord:
        # Errors arrive as HTTP 200 with {"Response": "Error", "Message": ...}
        if isinstance(payload, dict) and payload.get("Response") == "Error":
            raise PayloadError(str(payload.get("Message", "provider error")))
        return self._record(to_decimal(dig(payload, self._quote)))
