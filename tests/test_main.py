"""Tests for component wiring."""

import pytest
from fastapi.testclient import TestClient

from ratedesk.api.app import create_app
from ratedesk.config import AppSettings, LedgerSettings, RateSettings
from ratedesk.ledger.store import MemoryAccountStore, SqliteAccountStore
from ratedesk.main import build_components, lifespan
from ratedesk.rates.exchange_source import ExchangeTickerSource
from ratedesk.rates.http_sources import CoinDeskSource, CoinGeckoSource, CryptoCompareSource


@pytest.mark.asyncio
async def test_sources_follow_configured_order() -> None:
    settings = AppSettings(
        _env_file=None,
        rates=RateSettings(providers=["cryptocompare", "coingecko", "coindesk"]),
    )

    components = build_components(settings)
    try:
        assert [type(s) for s in components.sources] == [CryptoCompareSource, CoinGeckoSource, CoinDeskSource]
        assert [s.name for s in components.sources] == ["cryptocompare", "coingecko", "coindesk"]
        assert components.database is None
    finally:
        await components.http_client.aclose()


@pytest.mark.asyncio
async def test_exchange_source_is_built_from_settings() -> None:
    settings = AppSettings(_env_file=None, rates=RateSettings(providers=["exchange"]))

    components = build_components(settings)
    (source,) = components.sources
    try:
        assert isinstance(source, ExchangeTickerSource)
        assert source.name == "exchange:kraken"
    finally:
        await source.close()
        await components.http_client.aclose()


@pytest.mark.asyncio
async def test_sqlite_ledger_when_db_path_set(tmp_path) -> None:
    settings = AppSettings(_env_file=None, ledger=LedgerSettings(db_path=str(tmp_path / "ledger.db")))

    components = build_components(settings)
    try:
        assert components.database is not None
        assert isinstance(components.ledger._store, SqliteAccountStore)
        await components.database.connect()
        admin = await components.ledger.bootstrap_admin(settings.ledger)
        assert admin.is_admin
    finally:
        if components.database is not None:
            await components.database.close()
        await components.http_client.aclose()


@pytest.mark.asyncio
async def test_memory_ledger_by_default() -> None:
    components = build_components(AppSettings(_env_file=None))
    try:
        assert isinstance(components.ledger._store, MemoryAccountStore)
    finally:
        await components.http_client.aclose()


def test_lifespan_seeds_admin_and_releases_resources() -> None:
    settings = AppSettings(_env_file=None)
    components = build_components(settings)
    app = create_app(lifespan=lifespan)
    app.state.settings = settings
    app.state.components = components

    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok", "rate_state": "empty"}
        account = client.get("/api/account", headers={"X-Account-Id": "admin"})
        assert account.status_code == 200
        assert account.json()["is_admin"] is True

    assert components.http_client.is_closed
