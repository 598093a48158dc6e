"""Profile resolution manager - orders providers and falls back between them."""

import httpx

from profileresolver.config import ResolverConfig
from profileresolver.exceptions import ConfigError, ErrorCode, ProviderError, ResolutionError
from profileresolver.logging import configure_logging, get_logger, lookup_context
from profileresolver.models.profile import Platform, ProviderName, StandardizedProfile
from profileresolver.models.status import ProviderStatus
from profileresolver.providers import ProviderAdapter, build_adapters


class ProfileResolutionManager:
    """
    Single entry point for resolving creator profiles.

    Candidates are tried one at a time in priority order; the first success
    wins. Every provider failure, whatever its code, moves on to the next
    candidate. Nothing is remembered between calls.

    Example:
        async with ProfileResolutionManager() as manager:
            profile = await manager.resolve("jdoe", "instagram")
            print(profile.follower_count, profile.provider_source)
    """

    def __init__(
        self,
        config: ResolverConfig | None = None,
        adapters: list[ProviderAdapter] | None = None,
    ):
        """
        Initialize manager.

        Args:
            config: ResolverConfig instance, uses defaults if None
            adapters: Provider adapters, built from config if None
        """
        self.config = config or ResolverConfig()
        if adapters is None:
            adapters = build_adapters(self.config)
        names = [adapter.name for adapter in adapters]
        duplicates = sorted({name.value for name in names if names.count(name) > 1})
        if duplicates:
            raise ConfigError(f"Duplicate provider adapters: {', '.join(duplicates)}")
        self.adapters = sorted(adapters, key=lambda adapter: adapter.priority)
        self._client: httpx.AsyncClient | None = None
        self._log = get_logger("manager")

    async def __aenter__(self) -> "ProfileResolutionManager":
        """Async context manager entry - share one HTTP client across adapters."""
        configure_logging(self.config)

        self._client = httpx.AsyncClient(timeout=self.config.request_timeout_ms / 1000)
        for adapter in self.adapters:
            if adapter.client is None:
                adapter.client = self._client

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - close the shared client."""
        if self._client:
            for adapter in self.adapters:
                if adapter.client is self._client:
                    adapter.client = None
            await self._client.aclose()
            self._client = None

    def candidates(
        self,
        platform: Platform | str,
        preferred_provider: ProviderName | str | None = None,
    ) -> list[ProviderAdapter]:
        """
        Available adapters for a platform, preferred provider first.

        An unknown or unqualified preference is ignored.
        """
        available = [
            adapter for adapter in self.adapters
            if adapter.is_available and adapter.supports(platform)
        ]

        preferred = ProviderName.parse(preferred_provider) if preferred_provider else None
        if preferred_provider and preferred is None:
            self._log.warning("unknown_preferred_provider", preferred_provider=str(preferred_provider))

        if preferred is None:
            return available

        first = [adapter for adapter in available if adapter.name == preferred]
        if not first:
            self._log.info("preferred_provider_unavailable", preferred_provider=preferred.value)
            return available

        return first + [adapter for adapter in available if adapter.name != preferred]

    async def resolve(
        self,
        username: str,
        platform: Platform | str,
        preferred_provider: ProviderName | str | None = None,
    ) -> StandardizedProfile:
        """
        Resolve a profile, falling back across providers.

        Args:
            username: Creator handle, with or without leading @
            platform: instagram, tiktok or youtube
            preferred_provider: Provider to try first, if it can serve the platform

        Returns:
            StandardizedProfile from the first provider that succeeds

        Raises:
            ResolutionError: NO_PROVIDERS_AVAILABLE or ALL_PROVIDERS_FAILED
        """
        platform_name = str(getattr(platform, "value", platform))
        with lookup_context(username, platform_name):
            return await self._resolve(username, platform, platform_name, preferred_provider)

    async def _resolve(
        self,
        username: str,
        platform: Platform | str,
        platform_name: str,
        preferred_provider: ProviderName | str | None,
    ) -> StandardizedProfile:
        self._log.info("resolve_start")

        ordered = self.candidates(platform, preferred_provider)
        if not ordered:
            self._log.error("no_providers_available", platform=platform_name)
            raise ResolutionError(
                ErrorCode.NO_PROVIDERS_AVAILABLE,
                f"No providers available for platform {platform_name}",
            )

        self._log.info("resolve_candidates", order=[adapter.name.value for adapter in ordered])

        errors: list[ProviderError] = []
        for adapter in ordered:
            try:
                profile = await adapter.fetch_profile(username, platform)
            except ProviderError as e:
                errors.append(e)
                self._log.warning(
                    "provider_failed",
                    provider=adapter.name.value,
                    code=e.code.value,
                    error=e.message,
                )
                continue
            except Exception as e:
                # Adapters should only raise ProviderError; keep going regardless
                self._log.exception("provider_crashed", provider=adapter.name.value)
                errors.append(ProviderError(
                    ErrorCode.FETCH_ERROR,
                    str(e) or type(e).__name__,
                    adapter.name.value,
                ))
                continue

            self._log.info(
                "resolve_complete",
                username=profile.username,
                provider=profile.provider_source.value,
                attempted=len(errors) + 1,
            )
            return profile

        summary = "; ".join(f"{e.provider}: {e.code.value} ({e.message})" for e in errors)
        self._log.error("all_providers_failed", platform=platform_name, errors=summary)
        raise ResolutionError(
            ErrorCode.ALL_PROVIDERS_FAILED,
            f"All providers failed. {summary}",
            errors,
        )

    def providers_status(self) -> list[ProviderStatus]:
        """Availability and capabilities of every configured adapter."""
        return [
            ProviderStatus(
                name=adapter.name,
                available=adapter.is_available,
                supported_platforms=sorted(adapter.supported_platforms, key=lambda p: p.value),
                priority=adapter.priority,
            )
            for adapter in self.adapters
        ]

    async def health_check(self) -> dict[str, bool]:
        """Configuration-level health of each provider, no network calls."""
        results = {}
        for adapter in self.adapters:
            try:
                results[adapter.name.value] = adapter.is_available
            except Exception:
                self._log.exception("health_check_failed", provider=adapter.name.value)
                results[adapter.name.value] = False
        return results


_managers: dict[str, ProfileResolutionManager] = {}


def get_default_manager(config: ResolverConfig | None = None) -> ProfileResolutionManager:
    """
    Process-wide manager for a configuration.

    Equal configurations get the same manager, so their lookups share one set
    of adapters and rate limiters. None means the environment-derived config.
    """
    config = config or ResolverConfig()
    key = config.model_dump_json()
    manager = _managers.get(key)
    if manager is None:
        manager = _managers[key] = ProfileResolutionManager(config)
    return manager


def reset_default_manager() -> None:
    """Drop every process-wide manager so the next call builds fresh ones."""
    _managers.clear()


async def resolve_profile(
    username: str,
    platform: Platform | str,
    preferred_provider: ProviderName | str | None = None,
    config: ResolverConfig | None = None,
) -> StandardizedProfile:
    """Resolve a profile with the process-wide manager for ``config``."""
    manager = get_default_manager(config)
    return await manager.resolve(username, platform, preferred_provider)
