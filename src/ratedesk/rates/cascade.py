"""Priority-ordered failover across rate sources.

Sources are tried strictly in the configured order and the first success wins;
results are never averaged or merged. Every attempt is bounded by
``asyncio.wait_for`` so one pass takes at most N x timeout even when a source
ignores its own deadline. acquire() never raises except on caller
cancellation; callers inspect the returned CascadeOutcome.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

from ratedesk.exceptions import AllProvidersUnavailableError
from ratedesk.logging import get_logger
from ratedesk.models import RateRecord
from ratedesk.rates.source import ProviderResult, RateSource

logger = get_logger(__name__)


@dataclass(frozen=True)
class CascadeOutcome:
    """Result of one cascade pass: the winning record (if any) plus every attempt made."""

    record: RateRecord | None
    attempts: list[ProviderResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record is not None

    @property
    def provider(self) -> str | None:
        """Name of the source that produced the record."""
        if self.attempts and self.attempts[-1].ok:
            return self.attempts[-1].provider
        return None


class RateCascade:
    """Tries each RateSource in order until one returns a record.

    Args:
        sources: Sources in priority order.
        timeout_seconds: Upper bound for a single attempt.
    """

    def __init__(self, sources: Sequence[RateSource], timeout_seconds: float = 5.0) -> None:
        self._sources = list(sources)
        self._timeout = timeout_seconds

    @property
    def sources(self) -> list[RateSource]:
        return list(self._sources)

    async def acquire(self) -> CascadeOutcome:
        """Run one pass over the sources and report the outcome."""
        attempts: list[ProviderResult] = []
        for source in self._sources:
            result = await self._attempt(source)
            attempts.append(result)
            if result.ok:
                logger.info(
                    "rate_provider_succeeded",
                    provider=source.name,
                    price=str(result.record.price),  # type: ignore[union-attr]
                    attempt=len(attempts),
                )
                return CascadeOutcome(record=result.record, attempts=attempts)

        logger.error(
            "rate_providers_exhausted",
            attempts=[
                f"{a.provider}:{a.failure.reason if a.failure else 'unknown'}" for a in attempts
            ],
        )
        return CascadeOutcome(record=None, attempts=attempts)

    async def require(self) -> RateRecord:
        """Run one pass and return the record.

        Raises:
            AllProvidersUnavailableError: If every source failed.
        """
        outcome = await self.acquire()
        if outcome.record is None:
            raise AllProvidersUnavailableError(attempts=outcome.attempts)
        return outcome.record

    async def _attempt(self, source: RateSource) -> ProviderResult:
        try:
            return await asyncio.wait_for(source.fetch(), timeout=self._timeout)
        except TimeoutError:
            logger.warning("rate_source_timed_out", provider=source.name, timeout=self._timeout)
            return ProviderResult.failed(source.name, "timeout", f"no answer within {self._timeout}s")
        except Exception as exc:
            # A source broke its contract by raising; keep the cascade alive.
            logger.warning("rate_source_raised", provider=source.name, error=repr(exc), exc_info=True)
            return ProviderResult.failed(source.name, "error", repr(exc))
