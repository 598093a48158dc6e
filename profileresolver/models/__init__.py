"""Pydantic models for profileresolver."""

from profileresolver.models.profile import (
    AccountType,
    ContactPoint,
    Platform,
    ProviderName,
    StandardizedProfile,
)
from profileresolver.models.status import ProviderStatus

__all__ = [
    "AccountType",
    "ContactPoint",
    "Platform",
    "ProviderName",
    "ProviderStatus",
    "StandardizedProfile",
]
