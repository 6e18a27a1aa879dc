"""Abstract rate source interface and the values one fetch attempt produces.

A RateSource performs exactly one upstream query per fetch() call and never
retries; failover is the cascade's job. Failures come back as values so the
cascade can move on without exception plumbing. The one exception that does
escape is asyncio.CancelledError: a cancelled caller is not a provider fault.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from ratedesk.models import RateRecord

FailureReason = Literal["network", "timeout", "bad_status", "bad_payload", "error"]

# Half-width of the synthesized 24h band for sources that publish no high/low:
# high = price * (1 + pct), low = price * (1 - pct).
DERIVED_RANGE_PCT = Decimal("0.05")


class PayloadError(ValueError):
    """Raised while decoding an upstream payload that lacks a required field."""


@dataclass(frozen=True)
class ProviderFailure:
    """Why one source failed one attempt."""

    provider: str
    reason: FailureReason
    detail: str = ""


@dataclass(frozen=True)
class ProviderResult:
    """Either a decoded record or a failure, never both."""

    provider: str
    record: RateRecord | None = None
    failure: ProviderFailure | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    @classmethod
    def success(cls, provider: str, record: RateRecord) -> "ProviderResult":
        return cls(provider=provider, record=record)

    @classmethod
    def failed(cls, provider: str, reason: FailureReason, detail: str = "") -> "ProviderResult":
        return cls(provider=provider, failure=ProviderFailure(provider, reason, detail))


class RateSource(ABC):
    """One upstream price source with its own endpoint and payload shape."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provider name used in logs and on produced records."""
        ...

    @abstractmethod
    async def fetch(self) -> ProviderResult:
        """Query the source once and return a success or failure result.

        Raises:
            asyncio.CancelledError: Only when the caller cancelled the call.
        """
        ...


def dig(payload: Any, *path: str) -> Any:
    """Walk nested mappings, raising PayloadError on the first missing key."""
    node = payload
    for key in path:
        if not isinstance(node, dict) or key not in node:
            raise PayloadError(f"missing field {'.'.join(path)}")
        node = node[key]
    return node


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number or numeric string to Decimal via str()."""
    if isinstance(value, bool) or value is None:
        raise PayloadError(f"not a number: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise PayloadError(f"not a number: {value!r}") from exc
    if not result.is_finite():
        raise PayloadError(f"not a finite number: {value!r}")
    return result


def optional_decimal(payload: Any, *path: str) -> Decimal | None:
    """Like ``to_decimal(dig(...))`` but absent or malformed optional fields yield None."""
    try:
        return to_decimal(dig(payload, *path))
    except PayloadError:
        return None


def derived_range(price: Decimal) -> tuple[Decimal, Decimal]:
    """Return the synthesized (high, low) band around price."""
    return price * (Decimal("1") + DERIVED_RANGE_PCT), price * (Decimal("1") - DERIVED_RANGE_PCT)
