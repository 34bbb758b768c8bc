"""Process-wide settings for the client cache.

Values come from the environment, optionally seeded from a `.env` file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from authcache.models.errors import ConfigurationError
from authcache.services.authentication import region_from_pool_id

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_ID = "1bpd19lcr33qvg5cr3oi79rdap"
DEFAULT_POOL_ID = "us-west-2_iLmIggsiy"
DEFAULT_AUTH_TIMEOUT = 30.0

ENV_PREFIX = "AUTHCACHE_"


@dataclass(frozen=True)
class ClientCacheSettings:
    """Identity constants and tuning for the client cache."""

    client_id: str = DEFAULT_CLIENT_ID
    pool_id: str = DEFAULT_POOL_ID
    auth_timeout: float = DEFAULT_AUTH_TIMEOUT
    base_url: str | None = None
    max_entries: int | None = None  # None means unbounded

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ConfigurationError("Client id must not be empty")
        region_from_pool_id(self.pool_id)
        if self.auth_timeout <= 0:
            raise ConfigurationError(
                f"Authentication timeout must be positive: {self.auth_timeout}"
            )
        if self.max_entries is not None and self.max_entries < 1:
            raise ConfigurationError(
                f"Max entries must be at least 1: {self.max_entries}"
            )

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> ClientCacheSettings:
        """Load settings from AUTHCACHE_* environment variables.

        Args:
            dotenv_path: Optional .env file to load first. Variables already
                set in the environment take precedence.

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        load_dotenv(dotenv_path)

        settings = cls(
            client_id=_env("CLIENT_ID") or DEFAULT_CLIENT_ID,
            pool_id=_env("POOL_ID") or DEFAULT_POOL_ID,
            auth_timeout=_parse_float("AUTH_TIMEOUT", DEFAULT_AUTH_TIMEOUT),
            base_url=_env("BASE_URL"),
            max_entries=_parse_int("MAX_ENTRIES"),
        )
        logger.debug(f"Loaded settings: {settings}")
        return settings


def _env(name: str) -> str | None:
    value = os.getenv(ENV_PREFIX + name, "").strip()
    return value or None


def _parse_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number: {raw!r}") from e


def _parse_int(name: str) -> int | None:
    raw = _env(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{ENV_PREFIX}{name} must be an integer: {raw!r}"
        ) from e
