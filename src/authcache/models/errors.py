"""Exception hierarchy for the authenticated client cache.

Every failure of a refresh maps to one of these types so callers can tell a
rejected credential apart from a credential that cannot be sent over HTTP or
a client that could not be built.
"""

from __future__ import annotations


class ClientCacheError(Exception):
    """Base exception for all client cache errors."""

    pass


class AuthenticationFailedError(ClientCacheError):
    """Raised when exchanging a credential pair for an access token fails."""

    pass


class InvalidCredentialEncodingError(ClientCacheError):
    """Raised when a token or API key cannot be used as an HTTP header value."""

    pass


class ClientConstructionError(ClientCacheError):
    """Raised when the client factory cannot build a client from the headers."""

    pass


class ConfigurationError(ClientCacheError):
    """Raised when settings loaded from the environment are invalid."""

    pass


class CacheClosedError(ClientCacheError):
    """Raised when a client is requested from a cache that has been closed."""

    pass
