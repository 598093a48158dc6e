"""Configuration management using Pydantic Settings."""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


class NanoInfluencerSettings(BaseSettings):
    """Credentials and request budget for the NanoInfluencer API."""

    api_key: str = ""
    base_url: str = "https://api.nanoinfluencer.com"

    # Limits are undocumented upstream, so stay conservative
    requests_per_minute: int = 30
    min_spacing_ms: int = 5000
    max_retries: int = 3
    retry_delay_ms: int = 10000

    model_config = {
        "env_prefix": "NANOINFLUENCER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


class EnsembleDataSettings(BaseSettings):
    """Credentials and request budget for the EnsembleData API."""

    auth_token: str = ""
    base_url: str = "https://ensembledata.com/apis"

    requests_per_minute: int = 60
    min_spacing_ms: int = 1000
    max_retries: int = 3
    retry_delay_ms: int = 5000

    model_config = {
        "env_prefix": "ENSEMBLEDATA_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


class ResolverConfig(BaseSettings):
    """Configuration for the profile resolver."""

    # HTTP settings
    request_timeout_ms: int = 30000
    max_retry_delay_ms: int = 30000

    # Providers
    nanoinfluencer: NanoInfluencerSettings = Field(default_factory=NanoInfluencerSettings)
    ensembledata: EnsembleDataSettings = Field(default_factory=EnsembleDataSettings)

    # Logging
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.CONSOLE

    model_config = {
        "env_prefix": "PROFILERESOLVER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }
