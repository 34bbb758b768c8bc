from unittest.mock import AsyncMock, MagicMock

import pytest


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client_factory() -> MagicMock:
    """Factory that returns a distinct mock client carrying the given headers.

    Every client it builds is appended to `factory.built`.
    """
    built = []

    def build(headers):
        client = MagicMock()
        client.headers = headers
        client.aclose = AsyncMock()
        built.append(client)
        return client

    factory = MagicMock(side_effect=build)
    factory.built = built
    return factory
