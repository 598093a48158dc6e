"""Provider status model."""

from pydantic import BaseModel

from profileresolver.models.profile import Platform, ProviderName


class ProviderStatus(BaseModel):
    """Availability snapshot of one provider adapter."""

    name: ProviderName
    available: bool
    supported_platforms: list[Platform]
    priority: int
