"""Default header construction and HTTP client factories."""

from __future__ import annotations

import logging
import re
from typing import Protocol

import httpx

from authcache.models.errors import (
    ClientConstructionError,
    InvalidCredentialEncodingError,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"

# Visible ASCII plus space and horizontal tab.
_HEADER_VALUE_PATTERN = re.compile(r"[\t\x20-\x7e]*")


def _header_value(name: str, value: str) -> str:
    if not _HEADER_VALUE_PATTERN.fullmatch(value):
        raise InvalidCredentialEncodingError(
            f"Invalid header value for {name}: contains characters not allowed "
            "in an HTTP header"
        )
    return value


def build_default_headers(access_token: str, api_key: str) -> httpx.Headers:
    """Build the headers every request from a cached client carries.

    httpx redacts the Authorization value in reprs, so the token never ends
    up in logs through the headers object.

    Raises:
        InvalidCredentialEncodingError: If the token or key contains
            characters that cannot appear in a header value
    """
    return httpx.Headers(
        {
            "Authorization": _header_value("Authorization", f"Bearer {access_token}"),
            API_KEY_HEADER: _header_value(API_KEY_HEADER, api_key),
        }
    )


class ClientFactory(Protocol):
    """Builds a reusable client that sends `headers` on every request."""

    def __call__(self, headers: httpx.Headers) -> httpx.AsyncClient: ...


class HttpxClientFactory:
    """Creates `httpx.AsyncClient` instances with fixed default headers."""

    def __init__(self, base_url: str | None = None, timeout: float = 30.0):
        """Initialize the factory.

        Args:
            base_url: Base URL applied to relative request paths
            timeout: HTTP request timeout in seconds
        """
        self.base_url = base_url
        self.timeout = timeout

    def __call__(self, headers: httpx.Headers) -> httpx.AsyncClient:
        """Build a client.

        Raises:
            ClientConstructionError: If httpx rejects the configuration
        """
        logger.debug(f"Building client with headers {sorted(headers.keys())}")
        try:
            return httpx.AsyncClient(
                base_url=self.base_url or "",
                headers=headers,
                timeout=self.timeout,
            )
        except Exception as e:
            raise ClientConstructionError(f"Failed to build client: {e}") from e
