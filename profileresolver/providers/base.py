"""Shared provider adapter flow."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import httpx

from profileresolver.core.executor import RateLimitedExecutor, RetryPolicy
from profileresolver.core.transformer import normalize_username
from profileresolver.exceptions import ErrorCode, ProviderError, UpstreamHTTPError
from profileresolver.logging import get_logger
from profileresolver.models.profile import Platform, ProviderName, StandardizedProfile

DEFAULT_TIMEOUT_MS = 30000


class ProviderAdapter(ABC):
    """
    Base class for upstream profile providers.

    Subclasses build the provider request, map its error vocabulary and
    transform its payload. Everything leaving fetch_profile is either a
    StandardizedProfile or a ProviderError.
    """

    name: ProviderName
    priority: int
    supported_platforms: frozenset[Platform]
    retryable_statuses: frozenset[int] = frozenset({429, 500, 502, 503, 504})

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        executor: RateLimitedExecutor | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_retry_delay_ms: int = 30000,
    ):
        """
        Initialize adapter.

        Args:
            client: Shared HTTP client, a one-off client per request if None
            executor: Rate-limited executor, one per adapter if None
            timeout_ms: Per-request timeout
            max_retry_delay_ms: Ceiling for backoff waits
        """
        self.client = client
        self.executor = executor or RateLimitedExecutor(self.name.value)
        self.timeout_ms = timeout_ms
        self.max_retry_delay_ms = max_retry_delay_ms
        self._log = get_logger(self.name.value)

    @property
    @abstractmethod
    def credential(self) -> str:
        """API key or token, empty when not configured."""

    @property
    def is_available(self) -> bool:
        return bool(self.credential)

    def supports(self, platform: Platform | str) -> bool:
        return Platform.parse(platform) in self.supported_platforms

    @abstractmethod
    def retry_policy(self) -> RetryPolicy:
        """Request budget and retry timings for this provider."""

    def should_retry(self, error: BaseException) -> bool:
        """Retry transient upstream statuses, timeouts and transport failures."""
        if isinstance(error, UpstreamHTTPError):
            return error.status_code in self.retryable_statuses
        return isinstance(error, (httpx.TransportError, asyncio.TimeoutError))

    @abstractmethod
    async def _request(self, username: str, platform: Platform) -> dict:
        """Perform one upstream call and return the raw profile data."""

    @abstractmethod
    def map_status(self, status_code: int) -> ErrorCode:
        """Translate an upstream status to the shared error taxonomy."""

    def error_message(self, error: UpstreamHTTPError) -> str:
        payload = error.payload if isinstance(error.payload, dict) else {}
        return payload.get("message") or payload.get("detail") or str(error)

    @abstractmethod
    def transform(self, data: dict, platform: Platform, username: str) -> StandardizedProfile:
        """Map a raw payload to a StandardizedProfile."""

    async def fetch_profile(self, username: str, platform: Platform | str) -> StandardizedProfile:
        """
        Fetch and normalize one profile.

        Raises:
            ProviderError: For every failure, classified by code
        """
        provider = self.name.value

        try:
            if not self.is_available:
                raise ProviderError(
                    ErrorCode.API_CONFIG_ERROR,
                    f"{provider} credentials not configured",
                    provider,
                )

            resolved_platform = Platform.parse(platform)
            if resolved_platform is None or not self.supports(resolved_platform):
                raise ProviderError(
                    ErrorCode.UNSUPPORTED_PLATFORM,
                    f"Platform {getattr(platform, 'value', platform)} not supported by {provider}",
                    provider,
                )

            clean_username = normalize_username(username)
            if not clean_username:
                raise ProviderError(ErrorCode.INVALID_INPUT, "Username is empty", provider)

            self._log.info("fetch_start", username=clean_username, platform=resolved_platform.value)

            data = await self.executor.execute(
                lambda: self._request(clean_username, resolved_platform),
                self.retry_policy(),
            )
            profile = self.transform(data, resolved_platform, clean_username)

        except ProviderError as e:
            self._log.warning("fetch_failed", code=e.code.value, error=e.message)
            raise
        except UpstreamHTTPError as e:
            error = ProviderError(
                self.map_status(e.status_code),
                self.error_message(e),
                provider,
                should_retry=e.status_code in self.retryable_statuses,
                status_code=e.status_code,
                attempts=getattr(e, "attempts", None),
            )
            self._log.warning(
                "fetch_failed",
                code=error.code.value,
                status_code=e.status_code,
                attempts=error.attempts,
            )
            raise error from e
        except Exception as e:
            self._log.error("fetch_error", error=str(e), error_type=type(e).__name__)
            raise ProviderError(
                ErrorCode.FETCH_ERROR,
                str(e) or type(e).__name__,
                provider,
                should_retry=False,
                attempts=getattr(e, "attempts", None),
            ) from e

        self._log.info("fetch_complete", username=profile.username, followers=profile.follower_count)
        return profile

    async def _get_json(
        self,
        url: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        GET a JSON document.

        Raises:
            UpstreamHTTPError: On a non-2xx response
        """
        timeout = self.timeout_ms / 1000

        if self.client is not None:
            response = await self.client.get(url, params=params, headers=headers, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.get(url, params=params, headers=headers)

        if not response.is_success:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            raise UpstreamHTTPError(response.status_code, response.text, payload)

        return response.json()
