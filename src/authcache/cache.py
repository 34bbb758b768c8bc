"""Cache of authenticated HTTP clients keyed by API key.

A cached client is served until its access token expires. After that, the
next request for the key re-authenticates and replaces the entry. Concurrent
requests for the same key share a single refresh; refreshes for different
keys do not wait on each other.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Callable

import httpx

from authcache.config import ClientCacheSettings
from authcache.models.auth import AuthenticationResult
from authcache.models.entry import ExpiringClient
from authcache.models.errors import (
    AuthenticationFailedError,
    CacheClosedError,
    ClientCacheError,
    ClientConstructionError,
)
from authcache.services.authentication import Authenticator, CognitoAuthenticator
from authcache.services.client_factory import (
    ClientFactory,
    HttpxClientFactory,
    build_default_headers,
)
from authcache.utils import key_fingerprint

logger = logging.getLogger(__name__)


class ClientCache:
    """Owns every cached client and its expiration.

    Bound to the event loop it is first used on. Callers get the client
    object itself; it is shared, so callers must not close it.
    """

    def __init__(
        self,
        authenticator: Authenticator,
        client_factory: ClientFactory | None = None,
        *,
        client_id: str,
        pool_id: str,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize an empty cache.

        Args:
            authenticator: Exchanges credential pairs for access tokens
            client_factory: Builds a client from default headers
            client_id: Client identity passed on every authentication
            pool_id: Pool identity passed on every authentication
            max_entries: Evict least recently used entries beyond this many.
                None keeps every key ever seen.
            clock: Source of the current Unix time
        """
        self._authenticator = authenticator
        self._client_factory = client_factory or HttpxClientFactory()
        self.client_id = client_id
        self.pool_id = pool_id
        self.max_entries = max_entries
        self._clock = clock

        self._lock = asyncio.Lock()
        self._entries: OrderedDict[str, ExpiringClient] = OrderedDict()
        self._refreshes: dict[str, asyncio.Task[httpx.AsyncClient]] = {}
        self._closed = False
        # Set when the cache created the authenticator and must close it.
        self._owns_authenticator = False

    @classmethod
    def from_settings(
        cls,
        settings: ClientCacheSettings,
        authenticator: Authenticator | None = None,
        client_factory: ClientFactory | None = None,
    ) -> ClientCache:
        """Create a cache wired to Cognito and httpx unless overridden.

        A Cognito authenticator created here is closed by `aclose()`.
        """
        cache = cls(
            authenticator or CognitoAuthenticator(timeout=settings.auth_timeout),
            client_factory or HttpxClientFactory(base_url=settings.base_url),
            client_id=settings.client_id,
            pool_id=settings.pool_id,
            max_entries=settings.max_entries,
        )
        cache._owns_authenticator = authenticator is None
        return cache

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, api_key: object) -> bool:
        return api_key in self._entries

    async def get_or_refresh(self, api_key: str, api_secret: str) -> httpx.AsyncClient:
        """Return a client whose access token is valid right now.

        Serves the cached client for `api_key` while it is unexpired.
        Otherwise authenticates with `api_secret`, builds a new client and
        caches it. The secret is never stored.

        Raises:
            AuthenticationFailedError: If authentication fails
            InvalidCredentialEncodingError: If the token or key cannot be sent
                as a header value
            ClientConstructionError: If the client factory fails
            CacheClosedError: If the cache has been closed

        On any error the cache is left as it was.
        """
        async with self._lock:
            if self._closed:
                raise CacheClosedError("Client cache is closed")

            now = self._clock()
            entry = self._entries.get(api_key)
            if entry is not None and entry.is_valid(now):
                self._entries.move_to_end(api_key)
                logger.debug(f"Serving cached client for {key_fingerprint(api_key)}")
                return entry.client

            refresh = self._refreshes.get(api_key)
            if refresh is None:
                reason = "expired" if entry is not None else "missing"
                logger.info(
                    f"Refreshing client for {key_fingerprint(api_key)} ({reason})"
                )
                refresh = asyncio.create_task(
                    self._refresh(api_key, api_secret, refreshed_at=now)
                )
                refresh.add_done_callback(self._refresh_done)
                self._refreshes[api_key] = refresh
            else:
                logger.debug(
                    f"Joining in-flight refresh for {key_fingerprint(api_key)}"
                )

        # Shielded so a cancelled caller does not cancel the shared refresh.
        return await asyncio.shield(refresh)

    async def _refresh(
        self, api_key: str, api_secret: str, refreshed_at: float
    ) -> httpx.AsyncClient:
        try:
            result = await self._authenticate(api_key, api_secret)
            headers = build_default_headers(result.access_token, api_key)
            client = self._build_client(headers)

            entry = ExpiringClient.from_ttl(client, refreshed_at, result.expires_in)
            async with self._lock:
                closed = self._closed
                if not closed:
                    self._store(api_key, entry)
            if closed:
                await client.aclose()
                raise CacheClosedError("Client cache closed during refresh")

            logger.info(
                f"Cached client for {key_fingerprint(api_key)}, "
                f"expires in {result.expires_in}s"
            )
            return client
        finally:
            self._refreshes.pop(api_key, None)

    async def _authenticate(
        self, api_key: str, api_secret: str
    ) -> AuthenticationResult:
        try:
            return await self._authenticator.authenticate(
                self.client_id, self.pool_id, api_key, api_secret
            )
        except AuthenticationFailedError:
            raise
        except Exception as e:
            raise AuthenticationFailedError(f"Authentication failed: {e}") from e

    def _build_client(self, headers: httpx.Headers) -> httpx.AsyncClient:
        try:
            return self._client_factory(headers)
        except ClientCacheError:
            raise
        except Exception as e:
            raise ClientConstructionError(f"Failed to build client: {e}") from e

    def _store(self, api_key: str, entry: ExpiringClient) -> None:
        self._entries[api_key] = entry
        self._entries.move_to_end(api_key)

        if self.max_entries is None:
            return
        while len(self._entries) > self.max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted client for {key_fingerprint(evicted_key)}")

    def _refresh_done(self, task: asyncio.Task[httpx.AsyncClient]) -> None:
        # Marks the exception retrieved even if every waiter was cancelled.
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Client refresh failed: {task.exception()}")

    async def aclose(self) -> None:
        """Close every cached client and any authenticator the cache created.

        Waits for in-flight refreshes; those finishing after this point close
        their new client instead of caching it. Clients replaced by an earlier
        refresh or evicted are left open since callers may still be using
        them.
        """
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            refreshes = list(self._refreshes.values())

        if refreshes:
            logger.debug(f"Waiting for {len(refreshes)} in-flight refreshes")
            await asyncio.gather(*refreshes, return_exceptions=True)

        async with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()

        for entry in entries:
            await entry.client.aclose()
        logger.debug(f"Closed {len(entries)} cached clients")

        if self._owns_authenticator:
            await self._authenticator.close()
