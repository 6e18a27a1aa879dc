"""Tests for the HTTP rate sources.

All upstream traffic goes through httpx.MockTransport; no network access.
Verifies payload decoding, the derived 24h range, tolerance of absent optional
fields, and that each failure mode becomes a typed ProviderResult.
"""

import asyncio
from decimal import Decimal

import httpx
import pytest

from ratedesk.rates.http_sources import CoinDeskSource, CoinGeckoSource, CryptoCompareSource
from ratedesk.rates.source import DERIVED_RANGE_PCT


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _json(payload, status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return handler


@pytest.mark.asyncio
async def test_coingecko_decodes_price_change_and_volume() -> None:
    payload = {"bitcoin": {"cad": 91234.5, "cad_24h_change": -1.25, "cad_24h_vol": 1500000000.0}}
    async with _client(_json(payload)) as client:
        result = await CoinGeckoSource(client, clock=lambda: 123.0).fetch()

    assert result.ok
    record = result.record
    assert record.price == Decimal("91234.5")
    assert record.change_24h == Decimal("-1.25")
    assert record.volume_24h == Decimal("1500000000.0")
    assert record.source == "coingecko"
    assert record.last_updated == 123.0
    assert record.is_manual_override is False


@pytest.mark.asyncio
async def test_coingecko_missing_optional_fields_are_none() -> None:
    async with _client(_json({"bitcoin": {"cad": 90000}})) as client:
        result = await CoinGeckoSource(client).fetch()

    assert result.ok
    assert result.record.change_24h is None
    assert result.record.volume_24h is None


@pytest.mark.asyncio
async def test_derived_range_uses_named_percentage() -> None:
    async with _client(_json({"bitcoin": {"cad": 100000}})) as client:
        record = (await CoinGeckoSource(client).fetch()).record

    assert record.is_derived_range is True
    assert record.high_24h == Decimal("100000") * (1 + DERIVED_RANGE_PCT)
    assert record.low_24h == Decimal("100000") * (1 - DERIVED_RANGE_PCT)


@pytest.mark.asyncio
async def test_coingecko_requests_configured_pair() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ethereum": {"eur": 3000}})

    async with _client(handler) as client:
        source = CoinGeckoSource(client, asset_id="ethereum", quote_currency="EUR", asset="ETH")
        result = await source.fetch()

    assert result.record.price == Decimal("3000")
    assert seen[0].url.params["ids"] == "ethereum"
    assert seen[0].url.params["vs_currencies"] == "eur"
    assert seen[0].headers["User-Agent"] == "ratedesk/0.1"


@pytest.mark.asyncio
async def test_coindesk_decodes_rate_float() -> None:
    payload = {"bpi": {"CAD": {"code": "CAD", "rate": "88,000.10", "rate_float": 88000.1}}}
    async with _client(_json(payload)) as client:
        result = await CoinDeskSource(client).fetch()

    assert result.ok
    assert result.record.price == Decimal("88000.1")
    assert result.record.change_24h is None
    assert result.record.source == "coindesk"


@pytest.mark.asyncio
async def test_cryptocompare_decodes_price() -> None:
    async with _client(_json({"CAD": 87500.25})) as client:
        result = await CryptoCompareSource(client).fetch()

    assert result.record.price == Decimal("87500.25")


@pytest.mark.asyncio
async def test_cryptocompare_error_envelope_is_bad_payload() -> None:
    payload = {"Response": "Error", "Message": "market does not exist for this coin pair"}
    async with _client(_json(payload)) as client:
        result = await CryptoCompareSource(client).fetch()

    assert not result.ok
    assert result.failure.reason == "bad_payload"
    assert "market does not exist" in result.failure.detail


@pytest.mark.asyncio
async def test_missing_price_is_bad_payload() -> None:
    async with _client(_json({"bitcoin": {"usd": 1}})) as client:
        result = await CoinGeckoSource(client).fetch()

    assert not result.ok
    assert result.failure.provider == "coingecko"
    assert result.failure.reason == "bad_payload"


@pytest.mark.asyncio
async def test_non_positive_price_is_bad_payload() -> None:
    async with _client(_json({"CAD": 0})) as client:
        result = await CryptoCompareSource(client).fetch()

    assert result.failure.reason == "bad_payload"


@pytest.mark.asyncio
async def test_non_json_body_is_bad_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    async with _client(handler) as client:
        result = await CoinDeskSource(client).fetch()

    assert result.failure.reason == "bad_payload"


@pytest.mark.asyncio
async def test_http_error_status_is_bad_status() -> None:
    async with _client(_json({"error": "rate limited"}, status=429)) as client:
        result = await CoinGeckoSource(client).fetch()

    assert result.failure.reason == "bad_status"
    assert "429" in result.failure.detail


@pytest.mark.asyncio
async def test_connect_error_is_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        result = await CoinDeskSource(client).fetch()

    assert result.failure.reason == "network"


@pytest.mark.asyncio
async def test_timeout_is_timeout_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with _client(handler) as client:
        result = await CryptoCompareSource(client).fetch()

    assert result.failure.reason == "timeout"


@pytest.mark.asyncio
async def test_caller_cancellation_propagates() -> None:
    started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(10)
        return httpx.Response(200, json={"CAD": 1})

    async with _client(handler) as client:
        task = asyncio.create_task(CryptoCompareSource(client).fetch())
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
