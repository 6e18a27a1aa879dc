"""Process-wide current-rate cache with staleness and manual override policy.

States:
    EMPTY   no record yet
    FRESH   record younger than the refresh interval, not overridden
    STALE   record at or past the refresh interval, not overridden
    PINNED  manual override active; exempt from age-based expiry

Readers on EMPTY or STALE trigger a cascade pass. Concurrent readers share a
single in-flight refresh task, so N simultaneous requests cost one upstream
pass. When the pass fails a STALE record keeps being served; an EMPTY cache
raises RateUnavailableError unless a synthetic fallback price is configured.
Only clear_override() leaves PINNED.
"""

import asyncio
import time
from collections.abc import Callable
from decimal import Decimal
from enum import Enum

from ratedesk.exceptions import RateUnavailableError
from ratedesk.logging import get_logger
from ratedesk.models import RateRecord
from ratedesk.rates.cascade import RateCascade

logger = get_logger(__name__)


class CacheState(str, Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"
    PINNED = "pinned"


class RateCache:
    """Holds the single current RateRecord and decides when to refetch it.

    Args:
        cascade: Provider failover used for every refresh.
        refresh_interval_seconds: Age at which a live record becomes STALE.
        fallback_price: Optional last-resort price for an EMPTY cache whose
            refresh failed. The record it yields is flagged ``is_synthetic``
            and is never stored.
        clock: Wall-clock source, injectable for tests.
    """

    def __init__(
        self,
        cascade: RateCascade,
        refresh_interval_seconds: float = 30.0,
        fallback_price: Decimal | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cascade = cascade
        self._refresh_interval = refresh_interval_seconds
        self._fallback_price = fallback_price
        self._clock = clock
        self._record: RateRecord | None = None
        self._inflight: asyncio.Task[RateRecord | None] | None = None
        self._override_generation = 0

    @property
    def state(self) -> CacheState:
        record = self._record
        if record is None:
            return CacheState.EMPTY
        if record.is_manual_override:
            return CacheState.PINNED
        if self._clock() - record.last_updated >= self._refresh_interval:
            return CacheState.STALE
        return CacheState.FRESH

    def peek(self) -> RateRecord | None:
        """Return the cached record without triggering a refresh."""
        return self._record

    async def get_current_rate(self) -> RateRecord:
        """Return the current rate, refreshing first when EMPTY or STALE.

        Raises:
            RateUnavailableError: Nothing cached, every source failed and no
                fallback price is configured.
        """
        if self.state in (CacheState.FRESH, CacheState.PINNED):
            return self._record  # type: ignore[return-value]

        refreshed = await self._refresh_coalesced()
        if refreshed is not None:
            return refreshed

        current = self._record
        if current is not None:
            logger.warning(
                "rate_refresh_failed_serving_stale",
                price=str(current.price),
                age_seconds=round(self._clock() - current.last_updated, 1),
            )
            return current

        if self._fallback_price is not None:
            logger.error("rate_unavailable_serving_fallback", price=str(self._fallback_price))
            return RateRecord(
                price=self._fallback_price,
                last_updated=self._clock(),
                source="fallback",
                is_synthetic=True,
            )
        raise RateUnavailableError("Exchange rate unavailable: no cached rate and all sources failed")

    async def set_override(
        self,
        price: Decimal,
        change_24h: Decimal | None = None,
        high_24h: Decimal | None = None,
        low_24h: Decimal | None = None,
        volume_24h: Decimal | None = None,
    ) -> RateRecord:
        """Pin an administratively chosen rate. It never expires on its own.

        Raises:
            ValueError: If price is not positive.
        """
        record = RateRecord(
            price=price,
            change_24h=change_24h,
            high_24h=high_24h,
            low_24h=low_24h,
            volume_24h=volume_24h,
            last_updated=self._clock(),
            is_manual_override=True,
            source="manual",
        )
        self._record = record
        self._override_generation += 1
        logger.info("rate_override_set", price=str(price))
        return record

    async def clear_override(self) -> RateRecord:
        """Drop any override and replace it with a live rate fetched right now.

        On total failure the current record (pinned or not) is left untouched.
        An override set while the fetch is in flight is newer than this reset
        and stays pinned; it is returned instead of the live record.

        Raises:
            AllProvidersUnavailableError: If every source failed.
        """
        generation = self._override_generation
        record = await self._cascade.require()
        if self._override_generation != generation:
            logger.info("rate_reset_discarded_for_override", provider=record.source)
            return self._record  # type: ignore[return-value]
        self._record = record
        logger.info("rate_override_cleared", price=str(record.price), provider=record.source)
        return record

    async def _refresh_coalesced(self) -> RateRecord | None:
        if self._inflight is None:
            self._inflight = asyncio.create_task(self._refresh())
        # shield: a cancelled reader must not cancel the pass other readers await
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> RateRecord | None:
        try:
            outcome = await self._cascade.acquire()
            if outcome.record is None:
                return None
            current = self._record
            if current is not None and current.is_manual_override:
                # An override landed while this pass was in flight; it wins.
                logger.info("rate_refresh_discarded_for_override", provider=outcome.provider)
                return current
            self._record = outcome.record
            logger.info("rate_refreshed", price=str(outcome.record.price), provider=outcome.provider)
            return outcome.record
        finally:
            self._inflight = None
