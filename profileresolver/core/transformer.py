"""Normalization helpers shared by provider transforms."""

import re
from typing import Any, Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from profileresolver.models.profile import AccountType, Platform

# Recent posts considered for engagement averages
RECENT_POSTS_SAMPLE = 12

# Signed/volatile query parameters on Instagram CDN image URLs
VOLATILE_IMAGE_PARAMS = frozenset({"efg", "_nc_gid", "_nc_oc", "_nc_ohc", "oh", "edm"})
INSTAGRAM_CDN_MARKERS = ("fbcdn.net", "instagram.")
MAX_UNPARSED_URL_LENGTH = 255

PROFILE_URL_TEMPLATES = {
    Platform.INSTAGRAM: "https://www.instagram.com/{username}/",
    Platform.TIKTOK: "https://www.tiktok.com/@{username}",
    Platform.YOUTUBE: "https://www.youtube.com/@{username}",
}

# Checked in order. Kana must come before Han: Japanese mixes kanji with kana,
# so a Han-first check would label nearly all Japanese text as zh
LANGUAGE_SCRIPTS = [
    ("ar", re.compile(r"[\u0600-\u06FF]")),
    ("ja", re.compile(r"[\u3040-\u309F\u30A0-\u30FF]")),
    ("zh", re.compile(r"[\u4E00-\u9FFF]")),
    ("ru", re.compile(r"[\u0400-\u04FF]")),
]
DEFAULT_LANGUAGE = "en"

BUSINESS_ACCOUNT_TYPES = {"business", "brand", "company", "organization"}
PERSONAL_ACCOUNT_TYPES = {"personal", "creator", "individual", "person"}


def normalize_username(username: str | None) -> str:
    """Strip whitespace and leading @ from a handle."""
    if not username:
        return ""
    return username.strip().lstrip("@")


def build_profile_url(username: str, platform: Platform) -> str:
    """Canonical profile URL for a handle, never taken from upstream."""
    return PROFILE_URL_TEMPLATES[Platform(platform)].format(username=normalize_username(username))


def sanitize_image_url(url: str | None) -> str:
    """
    Drop volatile query parameters from a profile image URL.

    Instagram CDN URLs keep their remaining parameters since the image does
    not load without them; other hosts lose the whole query string.
    """
    if not url:
        return ""

    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        return url[:MAX_UNPARSED_URL_LENGTH]

    if any(marker in parts.netloc for marker in INSTAGRAM_CDN_MARKERS):
        params = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key not in VOLATILE_IMAGE_PARAMS
        ]
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), ""))

    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def as_count(value: Any) -> int:
    """
    Coerce an upstream count to a non-negative int.

    Examples:
        "1,234" -> 1234
        12.7 -> 12
        None -> 0
        "N/A" -> 0
    """
    count = as_optional_count(value)
    return 0 if count is None else count


def as_optional_count(value: Any) -> int | None:
    """Like as_count, but missing or unparseable values become None. A real 0 stays 0."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
    try:
        return max(int(float(value)), 0)
    except (TypeError, ValueError, OverflowError):
        return None


def as_text(value: Any) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def engagement_rate(interactions: Iterable[int], followers: int) -> float:
    """
    Average interactions per post as a percentage of followers.

    Only the most recent RECENT_POSTS_SAMPLE posts count. Returns 0 with no
    posts or no followers, and never more than 100.
    """
    sample = list(interactions)[:RECENT_POSTS_SAMPLE]
    if not sample or followers <= 0:
        return 0.0

    average = sum(sample) / len(sample)
    return clamp_percent(average / followers * 100)


def average_of_recent(values: Iterable[int]) -> int | None:
    """Rounded mean of the most recent posts' values, None if there are none."""
    sample = list(values)[:RECENT_POSTS_SAMPLE]
    if not sample:
        return None
    return round(sum(sample) / len(sample))


def clamp_percent(value: float) -> float:
    return round(min(max(value, 0.0), 100.0), 4)


def detect_language(*texts: str | None) -> str:
    """Best-effort ISO-639-1 guess from the scripts used in the text."""
    content = " ".join(text for text in texts if text)
    if not content:
        return DEFAULT_LANGUAGE

    for code, pattern in LANGUAGE_SCRIPTS:
        if pattern.search(content):
            return code
    return DEFAULT_LANGUAGE


def parse_account_type(value: Any) -> AccountType:
    text = (as_text(value) or "").lower()
    if text in BUSINESS_ACCOUNT_TYPES:
        return AccountType.BUSINESS
    if text in PERSONAL_ACCOUNT_TYPES:
        return AccountType.PERSONAL
    return AccountType.UNKNOWN
