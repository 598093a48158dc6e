"""profileresolver - creator profile lookup across third-party data providers."""

from profileresolver.models.profile import (
    AccountType,
    ContactPoint,
    Platform,
    ProviderName,
    StandardizedProfile,
)
from profileresolver.config import ResolverConfig
from profileresolver.exceptions import ErrorCode, ProviderError, ResolutionError
from profileresolver.core.executor import RateLimitedExecutor, RateLimiter, RetryPolicy
from profileresolver.core.manager import ProfileResolutionManager, resolve_profile
from profileresolver.core.exporter import to_json, to_dict, save_json, load_json

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "ProfileResolutionManager",
    "ResolverConfig",
    "resolve_profile",
    # Models
    "AccountType",
    "ContactPoint",
    "Platform",
    "ProviderName",
    "StandardizedProfile",
    # Errors
    "ErrorCode",
    "ProviderError",
    "ResolutionError",
    # Execution
    "RateLimitedExecutor",
    "RateLimiter",
    "RetryPolicy",
    # Export utilities
    "to_json",
    "to_dict",
    "save_json",
    "load_json",
    "__version__",
]
