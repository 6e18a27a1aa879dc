"""Entry point: wires the rate engine, ledger and executor behind the FastAPI app.

Component wiring order (in build_components):
1. Rate sources (in configured priority order) on a shared httpx client
2. RateCascade (failover with per-attempt timeout)
3. RateCache (staleness/override policy)
4. AccountLedger (memory or aiosqlite store)
5. FeeCalculator + TradeExecutor

Resources that need async cleanup (httpx client, ccxt session, SQLite
connection) are opened and closed by the FastAPI lifespan.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx
import uvicorn
from fastapi import FastAPI

from ratedesk.api.app import create_app
from ratedesk.config import AppSettings
from ratedesk.execution.fees import FeeCalculator
from ratedesk.execution.trade_executor import TradeExecutor
from ratedesk.ledger.database import LedgerDatabase
from ratedesk.ledger.ledger import AccountLedger
from ratedesk.ledger.store import AccountStore, MemoryAccountStore, SqliteAccountStore
from ratedesk.logging import get_logger, setup_logging
from ratedesk.rates.cache import RateCache
from ratedesk.rates.cascade import RateCascade
from ratedesk.rates.exchange_source import ExchangeTickerSource
from ratedesk.rates.http_sources import CoinDeskSource, CoinGeckoSource, CryptoCompareSource
from ratedesk.rates.source import RateSource


@dataclass
class Components:
    """Everything the API needs, plus the resources that must be closed."""

    rate_cache: RateCache
    ledger: AccountLedger
    executor: TradeExecutor
    http_client: httpx.AsyncClient
    sources: list[RateSource] = field(default_factory=list)
    database: LedgerDatabase | None = None


def build_sources(settings: AppSettings, client: httpx.AsyncClient) -> list[RateSource]:
    """Instantiate the configured rate sources in priority order."""
    rates, providers = settings.rates, settings.providers
    common: dict[str, Any] = {
        "quote_currency": rates.quote_currency,
        "asset": rates.asset,
        "timeout_seconds": providers.timeout_seconds,
        "user_agent": providers.user_agent,
    }
    sources: list[RateSource] = []
    for name in rates.providers:
        if name == "coingecko":
            sources.append(CoinGeckoSource(client, asset_id=providers.coingecko_asset_id, **common))
        elif name == "coindesk":
            sources.append(CoinDeskSource(client, **common))
        elif name == "cryptocompare":
            sources.append(CryptoCompareSource(client, **common))
        elif name == "exchange":
            sources.append(
                ExchangeTickerSource(
                    exchange_id=providers.exchange_id,
                    quote_currency=rates.quote_currency,
                    asset=rates.asset,
                    timeout_seconds=providers.timeout_seconds,
                )
            )
    return sources


def build_components(settings: AppSettings, store: AccountStore | None = None) -> Components:
    """Build the full dependency graph from settings. Does not open the database."""
    http_client = httpx.AsyncClient()
    sources = build_sources(settings, http_client)

    cascade = RateCascade(sources, timeout_seconds=settings.providers.timeout_seconds)
    rate_cache = RateCache(
        cascade,
        refresh_interval_seconds=settings.rates.refresh_interval_seconds,
        fallback_price=settings.rates.fallback_price,
    )

    database = None
    if store is None:
        if settings.ledger.db_path:
            database = LedgerDatabase(settings.ledger.db_path)
            store = SqliteAccountStore(database)
        else:
            store = MemoryAccountStore()
    ledger = AccountLedger(store)

    executor = TradeExecutor(rate_cache, ledger, FeeCalculator(settings.trading), settings.trading)

    return Components(
        rate_cache=rate_cache,
        ledger=ledger,
        executor=executor,
        http_client=http_client,
        sources=sources,
        database=database,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open storage and seed the admin account on startup; release resources on shutdown."""
    logger = get_logger("ratedesk.main")
    settings: AppSettings = app.state.settings
    components: Components = app.state.components

    if components.database is not None:
        await components.database.connect()
    await components.ledger.bootstrap_admin(settings.ledger)

    app.state.rate_cache = components.rate_cache
    app.state.ledger = components.ledger
    app.state.executor = components.executor

    logger.info(
        "ratedesk_started",
        pair=f"{settings.rates.asset}/{settings.rates.quote_currency}",
        providers=[s.name for s in components.sources],
        refresh_interval=settings.rates.refresh_interval_seconds,
    )

    yield

    for source in components.sources:
        if isinstance(source, ExchangeTickerSource):
            await source.close()
    await components.http_client.aclose()
    if components.database is not None:
        await components.database.close()
    logger.info("ratedesk_stopped")


async def run() -> None:
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("ratedesk.main")

    app = create_app(lifespan=lifespan)
    app.state.settings = settings
    app.state.components = build_components(settings)

    logger.info("starting_server", host=settings.server.host, port=settings.server.port)
    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level="warning",
    )
    await uvicorn.Server(config).serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
