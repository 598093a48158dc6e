"""EnsembleData profile adapter (Instagram only)."""

from datetime import datetime, timezone

import httpx

from profileresolver.config import EnsembleDataSettings
from profileresolver.core.executor import RateLimitedExecutor, RetryPolicy
from profileresolver.core.transformer import (
    as_count,
    as_optional_count,
    as_text,
    average_of_recent,
    build_profile_url,
    detect_language,
    engagement_rate,
    normalize_username,
    sanitize_image_url,
    RECENT_POSTS_SAMPLE,
)
from profileresolver.exceptions import ErrorCode, UpstreamHTTPError
from profileresolver.models.profile import (
    AccountType,
    ContactPoint,
    Platform,
    ProviderName,
    StandardizedProfile,
)
from profileresolver.providers.base import DEFAULT_TIMEOUT_MS, ProviderAdapter

STATUS_CODES = {
    403: ErrorCode.PRIVATE_PROFILE,
    422: ErrorCode.INVALID_INPUT,
    429: ErrorCode.RATE_LIMITED,
    463: ErrorCode.USER_NOT_FOUND,
    491: ErrorCode.PROVIDER_ERROR,  # token not found
    492: ErrorCode.PROVIDER_ERROR,  # email not verified
    493: ErrorCode.PROVIDER_ERROR,  # subscription expired
    495: ErrorCode.RATE_LIMITED,  # daily units used up
}

STATUS_MESSAGES = {
    422: "Invalid username format",
    463: "Username not found or account may be private",
    491: "Service configuration error",
    492: "Service account verification required",
    493: "Service subscription has expired",
    495: "Daily API limit exceeded, please try again tomorrow",
    500: "Service temporarily unavailable",
}


class EnsembleDataAdapter(ProviderAdapter):
    """Reads Instagram's detailed user info through EnsembleData."""

    name = ProviderName.ENSEMBLEDATA
    priority = 2
    supported_platforms = frozenset({Platform.INSTAGRAM})
    # Quota exhaustion (495) resets daily, so only server errors are retried
    retryable_statuses = frozenset({500, 502, 503, 504})

    def __init__(
        self,
        settings: EnsembleDataSettings | None = None,
        client: httpx.AsyncClient | None = None,
        executor: RateLimitedExecutor | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_retry_delay_ms: int = 30000,
    ):
        self.settings = settings or EnsembleDataSettings()
        super().__init__(client, executor, timeout_ms, max_retry_delay_ms)

    @property
    def credential(self) -> str:
        return self.settings.auth_token

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

    def error_message(self, error: UpstreamHTTPError) -> str:
        if error.status_code in STATUS_MESSAGES:
            return STATUS_MESSAGES[error.status_code]
        return super().error_message(error)

    async def _request(self, username: str, platform: Platform) -> dict:
        url = f"{self.settings.base_url.rstrip('/')}/instagram/user/detailed-info"
        payload = await self._get_json(
            url,
            params={"username": username, "token": self.settings.auth_token},
        )

        data = payload.get("data")
        if not data:
            status = as_count(payload.get("status")) or 500
            raise UpstreamHTTPError(status, str(payload.get("detail") or ""), payload)
        return data

    def transform(self, data: dict, platform: Platform, username: str) -> StandardizedProfile:
        return transform_profile(data, username)


def _edge_value(data: dict, key: str) -> int | None:
    edge = data.get(key)
    return as_optional_count(edge.get("count")) if isinstance(edge, dict) else None


def _edge_count(data: dict, key: str) -> int:
    count = _edge_value(data, key)
    return 0 if count is None else count


def _recent_posts(data: dict) -> list[dict]:
    timeline = data.get("edge_owner_to_timeline_media")
    if not isinstance(timeline, dict):
        return []
    edges = timeline.get("edges") or []
    nodes = [edge.get("node") for edge in edges if isinstance(edge, dict)]
    return [node for node in nodes if isinstance(node, dict)][:RECENT_POSTS_SAMPLE]


def _contact_points(data: dict) -> tuple[ContactPoint, ...]:
    points = []

    email = as_text(data.get("business_email")) or as_text(data.get("public_email"))
    if email:
        points.append(ContactPoint(type="email", value=email, subtype="business", is_primary=True))

    phone = as_text(data.get("business_phone_number")) or as_text(data.get("public_phone_number"))
    if phone:
        points.append(ContactPoint(type="phone", value=phone, subtype="business", is_primary=not points))

    return tuple(points)


def _account_type(data: dict) -> AccountType:
    flag = data.get("is_business_account")
    if flag is None:
        return AccountType.UNKNOWN
    return AccountType.BUSINESS if flag else AccountType.PERSONAL


def transform_profile(data: dict, username: str) -> StandardizedProfile:
    """
    Transform an EnsembleData detailed-info ``data`` object.

    Engagement is derived from the most recent posts since EnsembleData does
    not report it directly.
    """
    handle = normalize_username(as_text(data.get("username")) or username)
    followers = _edge_count(data, "edge_followed_by")
    posts = _recent_posts(data)

    likes = [_edge_count(post, "edge_liked_by") for post in posts]
    comments = [_edge_count(post, "edge_media_to_comment") for post in posts]
    views = [
        as_count(post.get("video_view_count"))
        for post in posts
        if post.get("is_video") and post.get("video_view_count") is not None
    ]
    biography = as_text(data.get("biography")) or ""
    external_url = as_text(data.get("external_url"))

    return StandardizedProfile(
        id=str(data.get("id") or f"instagram_{handle}"),
        username=handle,
        display_name=as_text(data.get("full_name")) or handle,
        profile_image_url=sanitize_image_url(data.get("profile_pic_url_hd") or data.get("profile_pic_url")),
        follower_count=followers,
        following_count=_edge_value(data, "edge_follow"),
        engagement_rate_percent=engagement_rate(
            [like + comment for like, comment in zip(likes, comments)],
            followers,
        ),
        is_verified=bool(data.get("is_verified")),
        average_likes=average_of_recent(likes),
        average_views=average_of_recent(views),
        content_count=_edge_value(data, "edge_owner_to_timeline_media"),
        contact_points=_contact_points(data),
        biography=biography,
        detected_language=detect_language(biography),
        account_type=_account_type(data),
        profile_url=build_profile_url(handle, Platform.INSTAGRAM),
        platform=Platform.INSTAGRAM,
        provider_source=ProviderName.ENSEMBLEDATA,
        fetched_at=datetime.now(timezone.utc),
        country=None,
        gender=None,
        is_private=data.get("is_private") if isinstance(data.get("is_private"), bool) else None,
        links=(external_url,) if external_url else (),
    )
