"""Error taxonomy and exception hierarchy for profileresolver."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Provider-independent error codes."""
    INVALID_INPUT = "INVALID_INPUT"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PRIVATE_PROFILE = "PRIVATE_PROFILE"
    RATE_LIMITED = "RATE_LIMITED"
    API_CONFIG_ERROR = "API_CONFIG_ERROR"
    UNSUPPORTED_PLATFORM = "UNSUPPORTED_PLATFORM"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    FETCH_ERROR = "FETCH_ERROR"
    # Raised by the resolution manager only
    NO_PROVIDERS_AVAILABLE = "NO_PROVIDERS_AVAILABLE"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"


class ProfileResolverError(Exception):
    """Base exception for all profileresolver errors."""


class ConfigError(ProfileResolverError):
    """Invalid configuration."""


class UpstreamHTTPError(ProfileResolverError):
    """
    Upstream answered with an error status.

    Raised inside executor operations so retry predicates can inspect the
    status. Adapters translate it to a ProviderError before returning.
    """

    def __init__(self, status_code: int, body: str = "", payload: Any = None):
        super().__init__(f"HTTP {status_code}: {body[:200]}" if body else f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body
        self.payload = payload


class ProviderError(ProfileResolverError):
    """Classified failure from a single provider adapter."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        provider: str,
        should_retry: bool = False,
        status_code: int | None = None,
        attempts: int | None = None,
    ):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message
        self.provider = provider
        self.should_retry = should_retry
        self.status_code = status_code
        self.attempts = attempts

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "provider": self.provider,
            "should_retry": self.should_retry,
            "status_code": self.status_code,
            "attempts": self.attempts,
        }

    def __repr__(self) -> str:
        return f"ProviderError({self.provider}, {self.code.value}, {self.message!r})"


class ResolutionError(ProfileResolverError):
    """Terminal failure of a resolve call, with every per-provider error seen."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        errors: list[ProviderError] | None = None,
    ):
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message
        self.errors = list(errors or [])

    @property
    def common_code(self) -> ErrorCode | None:
        """Code shared by every underlying provider error, if there is one."""
        codes = {error.code for error in self.errors}
        if len(codes) == 1:
            return codes.pop()
        return None

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "errors": [error.to_dict() for error in self.errors],
        }
