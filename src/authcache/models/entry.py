"""Cached client paired with the instant its access token stops being valid."""

from __future__ import annotations

from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class ExpiringClient:
    """Immutable cache entry.

    Replaced wholesale on refresh. The client is shared with every caller that
    receives it, so all of them use the same connection pool.
    """

    client: httpx.AsyncClient
    expiration_time: float  # Unix timestamp

    @classmethod
    def from_ttl(
        cls, client: httpx.AsyncClient, refreshed_at: float, ttl_seconds: float
    ) -> ExpiringClient:
        """Create an entry that expires ttl_seconds after refreshed_at.

        A zero or negative TTL yields an entry that is already expired.
        """
        return cls(client=client, expiration_time=refreshed_at + ttl_seconds)

    def is_valid(self, now: float) -> bool:
        """Check whether the entry may still be handed out at `now`."""
        return now < self.expiration_time
