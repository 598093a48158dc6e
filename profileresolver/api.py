"""FastAPI web server for profile lookups."""

import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from profileresolver import ProfileResolutionManager, ResolverConfig, __version__
from profileresolver.core.exporter import to_dict
from profileresolver.core.transformer import normalize_username
from profileresolver.exceptions import ErrorCode, ResolutionError
from profileresolver.models.profile import Platform
from profileresolver.models.status import ProviderStatus

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9._]+$")

USER_MESSAGES = {
    ErrorCode.INVALID_INPUT: "Invalid username format. Please check and try again.",
    ErrorCode.USER_NOT_FOUND: "Username not found. Please check the username and try again.",
    ErrorCode.PRIVATE_PROFILE: "This profile is private and cannot be accessed.",
    ErrorCode.RATE_LIMITED: "Service is temporarily busy. Please try again in a few minutes.",
    ErrorCode.API_CONFIG_ERROR: "Profile service is misconfigured. Please contact support.",
    ErrorCode.NO_PROVIDERS_AVAILABLE: "Service temporarily unavailable for this platform. Please try again later.",
    ErrorCode.ALL_PROVIDERS_FAILED: "Unable to fetch profile data. Please try again later.",
}

STATUS_CODES = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.PRIVATE_PROFILE: 403,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.NO_PROVIDERS_AVAILABLE: 503,
}


# Request/Response models
class LookupRequest(BaseModel):
    """Request body for a profile lookup."""

    username: str = Field(default="", description="Creator handle, leading @ allowed")
    platform: str = Field(default="", description="instagram, tiktok or youtube")
    preferred_provider: str | None = Field(
        default=None,
        description="Provider to try first: nanoinfluencer or ensembledata",
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    providers: dict[str, bool]


def validate_lookup(username: str, platform: str) -> str | None:
    """Return an error message for invalid input, None when the input is usable."""
    if not username:
        return "Username is required"
    if not platform:
        return "Platform is required"
    if Platform.parse(platform) is None:
        return "Platform must be instagram, tiktok, or youtube"

    clean = normalize_username(username)
    if not clean:
        return "Invalid username format"
    if not USERNAME_PATTERN.match(clean):
        return "Username contains invalid characters"
    return None


def error_response(error: ResolutionError) -> JSONResponse:
    """
    Map a resolution failure to an HTTP response.

    When every provider failed the same way (e.g. all not found), that shared
    reason decides the status; mixed failures are a 502.
    """
    reason = error.common_code if error.code == ErrorCode.ALL_PROVIDERS_FAILED else error.code
    status_code = STATUS_CODES.get(reason, 502)
    message = USER_MESSAGES.get(reason) or USER_MESSAGES[ErrorCode.ALL_PROVIDERS_FAILED]

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "error_code": error.code.value,
            "reason": reason.value if reason else None,
            "provider_errors": [e.to_dict() for e in error.errors],
        },
    )


def invalid_input(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": message,
            "error_code": ErrorCode.INVALID_INPUT.value,
            "reason": ErrorCode.INVALID_INPUT.value,
            "provider_errors": [],
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage resolver lifecycle."""
    manager = ProfileResolutionManager(ResolverConfig())
    async with manager:
        app.state.manager = manager
        yield


# Create FastAPI app
app = FastAPI(
    title="profileresolver API",
    description="Creator profile lookup with provider fallback",
    version=__version__,
    lifespan=lifespan,
)


def get_manager(request: Request) -> ProfileResolutionManager:
    return request.app.state.manager


async def _lookup(
    manager: ProfileResolutionManager,
    username: str,
    platform: str,
    preferred_provider: str | None,
) -> JSONResponse:
    problem = validate_lookup(username, platform)
    if problem:
        return invalid_input(problem)

    try:
        profile = await manager.resolve(username, platform.lower(), preferred_provider)
    except ResolutionError as e:
        return error_response(e)

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "profile": to_dict(profile),
            "provider_used": profile.provider_source.value,
            "message": f"Successfully retrieved profile for @{profile.username}",
        },
    )


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check(manager: ProfileResolutionManager = Depends(get_manager)):
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        providers=await manager.health_check(),
    )


@app.get("/api/v0/providers", response_model=list[ProviderStatus], tags=["System"])
async def list_providers(manager: ProfileResolutionManager = Depends(get_manager)):
    """List providers in default priority order with their availability."""
    return manager.providers_status()


@app.post("/api/v0/profiles/lookup", tags=["Profiles"])
async def lookup_post(
    request: LookupRequest,
    manager: ProfileResolutionManager = Depends(get_manager),
):
    """
    Resolve a creator profile without storing it.

    Providers are tried in priority order (preferred provider first) until
    one returns the profile.
    """
    return await _lookup(manager, request.username, request.platform, request.preferred_provider)


@app.get("/api/v0/profiles/{platform}/{username}", tags=["Profiles"])
async def lookup_get(
    platform: str,
    username: str,
    preferred_provider: str | None = Query(None, description="Provider to try first"),
    manager: ProfileResolutionManager = Depends(get_manager),
):
    """Simple GET variant of the lookup endpoint."""
    return await _lookup(manager, username, platform, preferred_provider)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
