"""Tests for provider ordering and fallback in the resolution manager."""

from datetime import datetime, timezone
from unittest.mock import patch

import httpx
import pytest

from profileresolver.config import ResolverConfig
from profileresolver.core.executor import RateLimiter
from profileresolver.core.manager import (
    ProfileResolutionManager,
    get_default_manager,
    reset_default_manager,
    resolve_profile,
)
from profileresolver.exceptions import ConfigError, ErrorCode, ProviderError, ResolutionError
from profileresolver.models.profile import Platform, ProviderName
from profileresolver.providers import EnsembleDataAdapter, NanoInfluencerAdapter

from conftest import FakeAdapter, Upstream, load_payload, sample_profile


def not_found(provider: str) -> ProviderError:
    return ProviderError(ErrorCode.USER_NOT_FOUND, "User not found", provider)


class TestCandidateOrdering:
    """Test which providers are tried, and in what order."""

    def test_priority_order(self):
        second = FakeAdapter(ProviderName.ENSEMBLEDATA, 2)
        first = FakeAdapter(ProviderName.NANOINFLUENCER, 1)
        manager = ProfileResolutionManager(adapters=[second, first])

        assert manager.candidates("instagram") == [first, second]

    def test_preferred_first(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1)
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2)
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        assert manager.candidates("instagram", "ensembledata") == [ensemble, nano]

    def test_unavailable_excluded(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1, available=False)
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2)
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        assert manager.candidates("instagram", "nanoinfluencer") == [ensemble]

    def test_platform_filter(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1, platforms=list(Platform))
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2)
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        # EnsembleData cannot serve TikTok, so the preference is ignored
        assert manager.candidates(Platform.TIKTOK, ProviderName.ENSEMBLEDATA) == [nano]

    def test_unknown_preference_ignored(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1)
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2)
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        assert manager.candidates("instagram", "hypeauditor") == [nano, ensemble]


class TestResolve:
    """Test sequential fallback."""

    @pytest.mark.asyncio
    async def test_first_success_wins(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1, result=sample_profile())
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2, result=sample_profile(ProviderName.ENSEMBLEDATA))
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        profile = await manager.resolve("jdoe", "instagram")

        assert profile.provider_source == ProviderName.NANOINFLUENCER
        assert ensemble.calls == []

    @pytest.mark.asyncio
    async def test_falls_back_after_not_found(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1, result=sample_profile())
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2, error=not_found("ensembledata"))
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        profile = await manager.resolve("jdoe", "instagram", preferred_provider="ensembledata")

        assert profile.provider_source == ProviderName.NANOINFLUENCER
        assert len(ensemble.calls) == 1
        assert len(nano.calls) == 1

    @pytest.mark.asyncio
    async def test_no_providers_available(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1, available=False)
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2, available=False)
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        with pytest.raises(ResolutionError) as exc_info:
            await manager.resolve("jdoe", "instagram")

        assert exc_info.value.code == ErrorCode.NO_PROVIDERS_AVAILABLE
        assert exc_info.value.errors == []
        assert nano.calls == [] and ensemble.calls == []

    @pytest.mark.asyncio
    async def test_unknown_platform_has_no_providers(self):
        manager = ProfileResolutionManager(adapters=[FakeAdapter(ProviderName.NANOINFLUENCER, 1)])

        with pytest.raises(ResolutionError) as exc_info:
            await manager.resolve("jdoe", "myspace")

        assert exc_info.value.code == ErrorCode.NO_PROVIDERS_AVAILABLE

    @pytest.mark.asyncio
    async def test_all_failed_collects_errors_in_order(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1, error=not_found("nanoinfluencer"))
        ensemble = FakeAdapter(
            ProviderName.ENSEMBLEDATA, 2,
            error=ProviderError(ErrorCode.RATE_LIMITED, "quota", "ensembledata"),
        )
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        with pytest.raises(ResolutionError) as exc_info:
            await manager.resolve("jdoe", "instagram")

        error = exc_info.value
        assert error.code == ErrorCode.ALL_PROVIDERS_FAILED
        assert [e.provider for e in error.errors] == ["nanoinfluencer", "ensembledata"]
        assert error.common_code is None
        assert "nanoinfluencer: USER_NOT_FOUND" in error.message

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_fetch_error(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1, error=RuntimeError("kaboom"))
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2, result=sample_profile(ProviderName.ENSEMBLEDATA))
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        profile = await manager.resolve("jdoe", "instagram")

        assert profile.provider_source == ProviderName.ENSEMBLEDATA


class TestResolveOverHTTP:
    """End-to-end fallback through real adapters against mocked upstreams."""

    @pytest.mark.asyncio
    async def test_preferred_not_found_falls_back(self, nano_settings, ensemble_settings):
        nano_upstream = Upstream(httpx.Response(200, json=load_payload("nanoinfluencer_instagram")))
        ensemble_upstream = Upstream(httpx.Response(463, json={"detail": "User not found"}))
        manager = ProfileResolutionManager(adapters=[
            NanoInfluencerAdapter(nano_settings, client=nano_upstream.client()),
            EnsembleDataAdapter(ensemble_settings, client=ensemble_upstream.client()),
        ])

        before = datetime.now(timezone.utc)
        profile = await manager.resolve("@jdoe", "instagram", preferred_provider="ensembledata")

        assert profile.provider_source == ProviderName.NANOINFLUENCER
        assert profile.username == "jdoe"
        assert before <= profile.fetched_at <= datetime.now(timezone.utc)
        assert ensemble_upstream.calls == 1
        assert nano_upstream.calls == 1

    @pytest.mark.asyncio
    async def test_both_providers_down(self, nano_settings, ensemble_settings):
        nano_upstream = Upstream(httpx.Response(500, text="down"))
        ensemble_upstream = Upstream(httpx.Response(500, json={"detail": "down"}))
        manager = ProfileResolutionManager(adapters=[
            NanoInfluencerAdapter(nano_settings, client=nano_upstream.client()),
            EnsembleDataAdapter(ensemble_settings, client=ensemble_upstream.client()),
        ])

        with pytest.raises(ResolutionError) as exc_info:
            await manager.resolve("jdoe", "instagram")

        error = exc_info.value
        assert error.code == ErrorCode.ALL_PROVIDERS_FAILED
        assert [e.code for e in error.errors] == [ErrorCode.PROVIDER_ERROR, ErrorCode.PROVIDER_ERROR]
        assert error.common_code == ErrorCode.PROVIDER_ERROR
        # Initial attempt plus three retries each
        assert nano_upstream.calls == 4
        assert ensemble_upstream.calls == 4


class TestManagerLifecycle:
    """Test status reporting and client sharing."""

    def test_providers_status(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1, platforms=list(Platform))
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2, available=False)
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        statuses = manager.providers_status()

        assert [s.name for s in statuses] == [ProviderName.NANOINFLUENCER, ProviderName.ENSEMBLEDATA]
        assert statuses[0].available is True
        assert statuses[0].supported_platforms == [Platform.INSTAGRAM, Platform.TIKTOK, Platform.YOUTUBE]
        assert statuses[1].available is False
        assert statuses[1].priority == 2

    @pytest.mark.asyncio
    async def test_health_check(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1)
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2, available=False)
        manager = ProfileResolutionManager(adapters=[nano, ensemble])

        assert await manager.health_check() == {"nanoinfluencer": True, "ensembledata": False}

    @pytest.mark.asyncio
    async def test_context_manager_shares_client(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1)
        ensemble = FakeAdapter(ProviderName.ENSEMBLEDATA, 2)

        async with ProfileResolutionManager(adapters=[nano, ensemble]) as manager:
            shared = nano.client
            assert shared is not None
            assert ensemble.client is shared
            assert manager is not None

        assert shared.is_closed
        assert nano.client is None
        assert ensemble.client is None

    @pytest.mark.asyncio
    async def test_context_manager_keeps_injected_client(self):
        own = httpx.AsyncClient()
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1)
        nano.client = own

        async with ProfileResolutionManager(adapters=[nano]):
            assert nano.client is own

        assert nano.client is own
        assert not own.is_closed
        await own.aclose()

    def test_duplicate_adapters_rejected(self):
        with pytest.raises(ConfigError):
            ProfileResolutionManager(adapters=[
                FakeAdapter(ProviderName.NANOINFLUENCER, 1),
                FakeAdapter(ProviderName.NANOINFLUENCER, 2),
            ])

    def test_builds_adapters_from_config(self):
        config = ResolverConfig(
            nanoinfluencer={"api_key": "k"},
            ensembledata={"auth_token": ""},
        )
        manager = ProfileResolutionManager(config)

        assert [a.name for a in manager.adapters] == [ProviderName.NANOINFLUENCER, ProviderName.ENSEMBLEDATA]
        assert [a.is_available for a in manager.adapters] == [True, False]


class TestDefaultManager:
    """Test the process-wide convenience entry point."""

    def setup_method(self):
        reset_default_manager()

    def teardown_method(self):
        reset_default_manager()

    def test_default_manager_reused(self):
        assert get_default_manager() is get_default_manager()

    def test_reset_builds_fresh(self):
        first = get_default_manager()
        reset_default_manager()
        assert get_default_manager() is not first

    @pytest.mark.asyncio
    async def test_resolve_profile_uses_default(self):
        nano = FakeAdapter(ProviderName.NANOINFLUENCER, 1, result=sample_profile())
        manager = ProfileResolutionManager(adapters=[nano])

        with patch("profileresolver.core.manager.get_default_manager", return_value=manager):
            profile = await resolve_profile("jdoe", Platform.INSTAGRAM)

        assert profile.username == "jdoe"
        assert nano.calls == [("jdoe", "instagram")]

    def test_equal_configs_share_manager(self):
        first = get_default_manager(ResolverConfig(nanoinfluencer={"api_key": "k"}))
        again = get_default_manager(ResolverConfig(nanoinfluencer={"api_key": "k"}))
        other = get_default_manager(ResolverConfig(nanoinfluencer={"api_key": "other"}))

        assert first is again
        assert other is not first

    @pytest.mark.asyncio
    async def test_resolve_profile_with_config_shares_rate_limit(self, clock):
        """Repeated calls with the same config draw on one request budget."""
        def make_config() -> ResolverConfig:
            return ResolverConfig(
                nanoinfluencer={
                    "api_key": "k",
                    "base_url": "https://nano.test",
                    "requests_per_minute": 1,
                    "min_spacing_ms": 0,
                },
                ensembledata={"auth_token": ""},
            )

        upstream = Upstream(httpx.Response(200, json=load_payload("nanoinfluencer_instagram")))
        adapter = get_default_manager(make_config()).adapters[0]
        adapter.client = upstream.client()
        adapter.executor.limiter = RateLimiter(clock=clock, sleep=clock.sleep)

        await resolve_profile("jdoe", "instagram", config=make_config())
        await resolve_profile("jdoe", "instagram", config=make_config())

        assert upstream.calls == 2
        assert clock.sleeps == [pytest.approx(60.0)]
        await adapter.client.aclose()
