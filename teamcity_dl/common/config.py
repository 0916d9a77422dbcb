"""Environment-derived settings for teamcity-dl.

Settings are read once at startup:
* ``TEAMCITY_TOKEN`` (or ``TOKEN``) - bearer token, required
* ``TEAMCITY_URL`` (or ``BASE_URL``) - server base URL, trailing slashes trimmed
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from .constants import (
    BASE_URL_ENV_VARS,
    DEFAULT_BASE_URL,
    DOWNLOAD_TIMEOUT_SECONDS,
    TOKEN_ENV_VARS,
)
from .errors import ConfigurationError


def env_first(keys: Iterable[str], environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the first non-blank value among ``keys``."""
    source = os.environ if environ is None else environ
    for key in keys:
        value = (source.get(key) or "").strip()
        if value:
            return value
    return None


def normalize_base_url(base_url: str) -> str:
    return base_url.strip().rstrip("/")


@dataclass
class Settings:
    """Typed settings sourced from the environment."""

    token: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DOWNLOAD_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        token = env_first(TOKEN_ENV_VARS, environ)
        if not token:
            raise ConfigurationError(
                f"{TOKEN_ENV_VARS[0]} environment variable not set"
            )
        base_url = env_first(BASE_URL_ENV_VARS, environ) or DEFAULT_BASE_URL
        return cls(token=token, base_url=normalize_base_url(base_url))
