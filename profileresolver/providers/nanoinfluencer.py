"""NanoInfluencer profile adapter (Instagram, TikTok, YouTube)."""

from datetime import datetime, timezone

import httpx

from profileresolver.config import NanoInfluencerSettings
from profileresolver.core.executor import RateLimitedExecutor, RetryPolicy
from profileresolver.core.transformer import (
    as_count,
    as_optional_count,
    as_text,
    build_profile_url,
    clamp_percent,
    detect_language,
    normalize_username,
    parse_account_type,
    sanitize_image_url,
)
from profileresolver.exceptions import ErrorCode, ProviderError, UpstreamHTTPError
from profileresolver.models.profile import (
    ContactPoint,
    Platform,
    ProviderName,
    StandardizedProfile,
)
from profileresolver.providers.base import DEFAULT_TIMEOUT_MS, ProviderAdapter

STATUS_CODES = {
    400: ErrorCode.INVALID_INPUT,
    401: ErrorCode.API_CONFIG_ERROR,
    403: ErrorCode.PRIVATE_PROFILE,
    404: ErrorCode.USER_NOT_FOUND,
    429: ErrorCode.RATE_LIMITED,
}


class NanoInfluencerAdapter(ProviderAdapter):
    """Looks profiles up by canonical profile URL."""

    name = ProviderName.NANOINFLUENCER
    priority = 1
    supported_platforms = frozenset({Platform.INSTAGRAM, Platform.TIKTOK, Platform.YOUTUBE})
    retryable_statuses = frozenset({429, 500, 502, 503, 504})

    def __init__(
        self,
        settings: NanoInfluencerSettings | None = None,
        client: httpx.AsyncClient | None = None,
        executor: RateLimitedExecutor | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_retry_delay_ms: int = 30000,
    ):
        self.settings = settings or NanoInfluencerSettings()
        super().__init__(client, executor, timeout_ms, max_retry_delay_ms)

    @property
    def credential(self) -> str:
        return self.settings.api_key

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            requests_per_window=self.settings.requests_per_minute,
            window_ms=60_000,
            min_spacing_ms=self.settings.min_spacing_ms,
            max_retries=self.settings.max_retries,
            base_retry_delay_ms=self.settings.retry_delay_ms,
            max_retry_delay_ms=self.max_retry_delay_ms,
            should_retry=self.should_retry,
        )

    def map_status(self, status_code: int) -> ErrorCode:
        return STATUS_CODES.get(status_code, ErrorCode.PROVIDER_ERROR)

    async def _request(self, username: str, platform: Platform) -> dict:
        url = f"{self.settings.base_url.rstrip('/')}/get_data_by_url"
        payload = await self._get_json(
            url,
            params={"url": build_profile_url(username, platform)},
            headers={"Authorization": f"Bearer {self.settings.api_key}"},
        )

        # Errors may also arrive as HTTP 200 with a failing body code
        code = as_count(payload.get("code", 200))
        if code != 200:
            raise UpstreamHTTPError(
                code or 500,
                payload.get("message") or "NanoInfluencer API error",
                payload,
            )

        data = payload.get("data")
        if not data:
            raise ProviderError(
                ErrorCode.PROVIDER_ERROR,
                "No profile data received from NanoInfluencer",
                self.name.value,
            )
        return data

    def transform(self, data: dict, platform: Platform, username: str) -> StandardizedProfile:
        return transform_profile(data, platform, username)


def _contact_points(emails: list | None) -> tuple[ContactPoint, ...]:
    points = []
    for entry in emails or []:
        if not isinstance(entry, dict):
            continue
        value = as_text(entry.get("value"))
        if not value:
            continue
        kind = as_text(entry.get("type"))
        points.append(ContactPoint(
            type="email",
            value=value,
            subtype=kind.lower() if kind else "unknown",
            is_primary=kind == "PUBLIC",
        ))
    return tuple(points)


def _engagement_percent(data: dict, followers: int) -> float:
    # erMedian is a fraction; fall back to median interactions per follower
    er_median = data.get("erMedian")
    if isinstance(er_median, (int, float)) and not isinstance(er_median, bool):
        return clamp_percent(er_median * 100)

    interactions = as_count(data.get("likesMedian")) + as_count(data.get("commentsMedian"))
    if followers <= 0 or interactions <= 0:
        return 0.0
    return clamp_percent(interactions / followers * 100)


def transform_profile(data: dict, platform: Platform, username: str) -> StandardizedProfile:
    """
    Transform a NanoInfluencer ``data`` object to a StandardizedProfile.

    Args:
        data: The ``data`` member of a get_data_by_url response
        platform: Platform the profile was requested for
        username: Requested handle, used when upstream omits one

    Returns:
        Validated StandardizedProfile
    """
    handle = normalize_username(as_text(data.get("username")) or username)
    followers = as_count(data.get("subsCount"))
    external_id = str(data.get("uid") or data.get("id") or f"{platform.value}_{handle}")
    posts_per_month = data.get("postPerMonth")

    return StandardizedProfile(
        id=external_id,
        username=handle,
        display_name=as_text(data.get("name")) or handle,
        profile_image_url=sanitize_image_url(data.get("avatar")),
        follower_count=followers,
        following_count=as_optional_count(data.get("followingCount")),
        engagement_rate_percent=_engagement_percent(data, followers),
        is_verified=bool(data.get("isVerified")),
        average_likes=as_optional_count(data.get("likesMedian")),
        average_views=as_optional_count(data.get("viewsMedian")),
        content_count=as_optional_count(data.get("postCount")),
        contact_points=_contact_points(data.get("email")),
        biography=as_text(data.get("title")) or as_text(data.get("desc")) or "",
        detected_language=detect_language(as_text(data.get("title")), as_text(data.get("desc"))),
        account_type=parse_account_type(data.get("accountType")),
        profile_url=build_profile_url(handle, platform),
        platform=platform,
        provider_source=ProviderName.NANOINFLUENCER,
        fetched_at=datetime.now(timezone.utc),
        country=as_text(data.get("country")),
        gender=as_text(data.get("gender")),
        is_private=data.get("isPrivate") if isinstance(data.get("isPrivate"), bool) else None,
        topics=tuple(t for t in data.get("topics") or [] if isinstance(t, str)),
        links=tuple(link for link in data.get("links") or [] if isinstance(link, str)),
        posts_per_month=float(posts_per_month) if isinstance(posts_per_month, (int, float)) else None,
        last_post_date=as_text(data.get("lastPostDate")),
    )
