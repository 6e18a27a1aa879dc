"""FastAPI application factory for the rate and trading API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ratedesk.api.errors import register_error_handlers
from ratedesk.api.routes import accounts, rates, trade
from ratedesk.execution.trade_executor import TradeExecutor
from ratedesk.ledger.ledger import AccountLedger
from ratedesk.rates.cache import RateCache


def create_app(
    rate_cache: RateCache | None = None,
    ledger: AccountLedger | None = None,
    executor: TradeExecutor | None = None,
    lifespan: Any = None,
) -> FastAPI:
    """Create the API application.

    Services are either passed in directly (tests) or attached to app.state by
    ``lifespan`` at startup (see ratedesk.main).
    """
    app = FastAPI(title="ratedesk", lifespan=lifespan)

    app.state.rate_cache = rate_cache
    app.state.ledger = ledger
    app.state.executor = executor

    register_error_handlers(app)

    app.include_router(rates.router, prefix="/api")
    app.include_router(trade.router, prefix="/api")
    app.include_router(accounts.router, prefix="/api")

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        cache: RateCache | None = request.app.state.rate_cache
        return JSONResponse(
            content={
                "status": "ok",
                "rate_state": cache.state.value if cache is not None else None,
            }
        )

    return app
