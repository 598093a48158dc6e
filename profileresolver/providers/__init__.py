"""Upstream profile provider adapters."""

import httpx

from profileresolver.config import ResolverConfig
from profileresolver.providers.base import ProviderAdapter
from profileresolver.providers.ensembledata import EnsembleDataAdapter
from profileresolver.providers.nanoinfluencer import NanoInfluencerAdapter


def build_adapters(
    config: ResolverConfig,
    client: httpx.AsyncClient | None = None,
) -> list[ProviderAdapter]:
    """
    Create the default adapters from configuration, in priority order.

    Adapters without credentials are still built; they report themselves
    unavailable instead of failing here.
    """
    adapters: list[ProviderAdapter] = [
        NanoInfluencerAdapter(
            config.nanoinfluencer,
            client=client,
            timeout_ms=config.request_timeout_ms,
            max_retry_delay_ms=config.max_retry_delay_ms,
        ),
        EnsembleDataAdapter(
            config.ensembledata,
            client=client,
            timeout_ms=config.request_timeout_ms,
            max_retry_delay_ms=config.max_retry_delay_ms,
        ),
    ]
    return sorted(adapters, key=lambda adapter: adapter.priority)


__all__ = [
    "EnsembleDataAdapter",
    "NanoInfluencerAdapter",
    "ProviderAdapter",
    "build_adapters",
]
