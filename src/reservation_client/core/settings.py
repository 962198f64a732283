from __future__ import annotations

import re
import urllib.parse
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from reservation_client import __version__
from reservation_client.core.errors import ConfigurationError


PLACEHOLDER_URL = "PLACEHOLDER_SCRIPT_URL"

# /macros/s/<deployment id>/exec
_SCRIPT_PATH_RE = re.compile(r"/macros/s/[^/]+/exec/?$")


class Settings(BaseSettings):
    """Description: Client settings loaded from .env and environment variables.
    Layer: L0
    Input: environment
    Output: typed settings
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Endpoints
    RESERVATION_API_URL: str = PLACEHOLDER_URL
    RESERVATION_ADMIN_API_URL: Optional[str] = None
    APPROVED_HOST: str = "script.google.com"

    # Transport
    REQUEST_TIMEOUT_SECONDS: float = 15.0
    # Read and validated, never used to repeat a request.
    MAX_RETRIES: int = 3
    DIRECT_TRANSPORT_ENABLED: bool = True
    MAX_CALLBACK_URL_LENGTH: int = 8000

    # Origin
    ORIGIN: str = "http://localhost"
    ALLOWED_ORIGINS: List[str] = []
    USER_AGENT: str = f"reservation-client/{__version__}"

    # Runtime
    IS_PRODUCTION: bool = False
    LOG_LEVEL: str = "INFO"


def is_valid_endpoint(url: Optional[str], approved_host: str = "script.google.com") -> bool:
    """Description: Structural check for a script endpoint URL.
    Layer: L0
    Input: url + approved host
    Output: True for https://<approved_host>/macros/s/<id>/exec URLs
    """
    if not url:
        return False
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return False
    return parts.scheme == "https" and parts.hostname == approved_host and bool(_SCRIPT_PATH_RE.search(parts.path))


def collect_config_issues(s: Settings) -> List[str]:
    """Description: List every structural problem in the settings.
    Layer: L0
    Input: Settings
    Output: issues (empty when the configuration is usable)
    """
    issues: List[str] = []

    if not s.RESERVATION_API_URL or s.RESERVATION_API_URL == PLACEHOLDER_URL:
        issues.append("API URL not configured")
    elif not is_valid_endpoint(s.RESERVATION_API_URL, s.APPROVED_HOST):
        issues.append(f"API URL must be an https://{s.APPROVED_HOST}/macros/s/<id>/exec endpoint")

    if s.RESERVATION_ADMIN_API_URL is not None and not is_valid_endpoint(s.RESERVATION_ADMIN_API_URL, s.APPROVED_HOST):
        issues.append(f"Admin API URL must be an https://{s.APPROVED_HOST}/macros/s/<id>/exec endpoint")

    if s.REQUEST_TIMEOUT_SECONDS <= 0:
        issues.append("Request timeout must be positive")
    if s.MAX_RETRIES < 0:
        issues.append("Retry count must not be negative")
    if s.MAX_CALLBACK_URL_LENGTH < 256:
        issues.append("Callback URL length limit is too small")

    if s.ALLOWED_ORIGINS and s.ORIGIN not in s.ALLOWED_ORIGINS:
        issues.append(f"Origin {s.ORIGIN!r} is not in the allowed origin list")
    if s.IS_PRODUCTION and not s.ORIGIN.startswith("https://"):
        issues.append("Insecure context detected")

    return issues


def validate_settings(s: Settings) -> Settings:
    """Raise ConfigurationError unless the settings pass every structural check."""
    issues = collect_config_issues(s)
    if issues:
        raise ConfigurationError(issues)
    return s


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Description: Cached settings accessor.
    Layer: L0
    Input: None
    Output: Settings
    """
    return Settings()
