"""Standardized profile data model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Platform(str, Enum):
    """Creator platforms a profile can be resolved on."""
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"

    @classmethod
    def parse(cls, value: "str | Platform") -> "Platform | None":
        """Case-insensitive lookup, None for unknown platforms."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class ProviderName(str, Enum):
    """Upstream data providers."""
    NANOINFLUENCER = "nanoinfluencer"
    ENSEMBLEDATA = "ensembledata"

    @classmethod
    def parse(cls, value: "str | ProviderName | None") -> "ProviderName | None":
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class AccountType(str, Enum):
    """Kind of account as reported upstream."""
    PERSONAL = "personal"
    BUSINESS = "business"
    UNKNOWN = "unknown"


class ContactPoint(BaseModel):
    """A public way to reach the creator."""

    model_config = ConfigDict(frozen=True)

    type: str
    value: str
    subtype: str | None = None
    is_primary: bool = False


class StandardizedProfile(BaseModel):
    """Provider-agnostic creator profile."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    display_name: str
    profile_image_url: str
    follower_count: int = Field(ge=0)
    following_count: int | None = Field(default=None, ge=0)
    engagement_rate_percent: float = Field(default=0.0, ge=0, le=100)
    is_verified: bool = False
    average_likes: int | None = Field(default=None, ge=0)
    average_views: int | None = Field(default=None, ge=0)
    content_count: int | None = Field(default=None, ge=0)
    contact_points: tuple[ContactPoint, ...] = ()
    biography: str = ""
    detected_language: str = "en"
    account_type: AccountType = AccountType.UNKNOWN
    profile_url: str
    platform: Platform
    provider_source: ProviderName
    fetched_at: datetime

    # Extra details, None when the provider has no equivalent
    country: str | None = None
    gender: str | None = None
    is_private: bool | None = None
    topics: tuple[str, ...] = ()
    links: tuple[str, ...] = ()
    posts_per_month: float | None = None
    last_post_date: str | None = None
