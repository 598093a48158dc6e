"""Shared test helpers - fixture payloads, fake clock, mocked upstreams."""

import json
from pathlib import Path

import httpx
import pytest

from profileresolver.config import EnsembleDataSettings, NanoInfluencerSettings
from profileresolver.core.executor import RetryPolicy
from profileresolver.exceptions import ErrorCode
from profileresolver.models.profile import Platform, ProviderName, StandardizedProfile
from profileresolver.providers import ProviderAdapter
from profileresolver.providers.nanoinfluencer import transform_profile

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_payload(name: str) -> dict:
    """Load a JSON fixture payload."""
    return json.loads((FIXTURES_DIR / f"{name}.json").read_text(encoding="utf-8"))


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class Upstream:
    """Scripted upstream: replays responses in order, repeating the last one."""

    def __init__(self, *responses: httpx.Response | Exception):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def calls(self) -> int:
        return len(self.requests)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def nano_settings() -> NanoInfluencerSettings:
    return NanoInfluencerSettings(
        api_key="nano-test-key",
        base_url="https://nano.test",
        min_spacing_ms=0,
        retry_delay_ms=1,
    )


@pytest.fixture
def ensemble_settings() -> EnsembleDataSettings:
    return EnsembleDataSettings(
        auth_token="ensemble-test-token",
        base_url="https://ensemble.test/apis",
        min_spacing_ms=0,
        retry_delay_ms=1,
    )


def sample_profile(provider: ProviderName = ProviderName.NANOINFLUENCER) -> StandardizedProfile:
    profile = transform_profile(
        load_payload("nanoinfluencer_instagram")["data"], Platform.INSTAGRAM, "jdoe"
    )
    return profile.model_copy(update={"provider_source": provider})


class FakeAdapter(ProviderAdapter):
    """Adapter with a scripted outcome that records its calls."""

    def __init__(
        self,
        name: ProviderName,
        priority: int,
        platforms=(Platform.INSTAGRAM,),
        result: StandardizedProfile | None = None,
        error: Exception | None = None,
        available: bool = True,
    ):
        self.name = name
        self.priority = priority
        self.supported_platforms = frozenset(platforms)
        self.result = result
        self.error = error
        self.available = available
        self.calls: list[tuple[str, str]] = []
        super().__init__()

    @property
    def credential(self) -> str:
        return "token" if self.available else ""

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy()

    def map_status(self, status_code: int) -> ErrorCode:
        return ErrorCode.PROVIDER_ERROR

    async def _request(self, username, platform):
        raise NotImplementedError

    def transform(self, data, platform, username):
        raise NotImplementedError

    async def fetch_profile(self, username, platform):
        self.calls.append((username, getattr(platform, "value", platform)))
        if self.error is not None:
            raise self.error
        return self.result
