"""Rate layer -- provider sources, failover cascade and the current-rate cache."""

from ratedesk.rates.cache import CacheState, RateCache
from ratedesk.rates.cascade import CascadeOutcome, RateCascade
from ratedesk.rates.exchange_source import ExchangeTickerSource
from ratedesk.rates.http_sources import CoinDeskSource, CoinGeckoSource, CryptoCompareSource
from ratedesk.rates.source import DERIVED_RANGE_PCT, ProviderFailure, ProviderResult, RateSource

__all__ = [
    "DERIVED_RANGE_PCT",
    "CacheState",
    "CascadeOutcome",
    "CoinDeskSource",
    "CoinGeckoSource",
    "CryptoCompareSource",
    "ExchangeTickerSource",
    "ProviderFailure",
    "ProviderResult",
    "RateCache",
    "RateCascade",
    "RateSource",
]
