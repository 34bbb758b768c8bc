from unittest.mock import MagicMock

import httpx
import pytest

from authcache.models.errors import (
    ClientConstructionError,
    InvalidCredentialEncodingError,
)
from authcache.services import client_factory
from authcache.services.client_factory import HttpxClientFactory, build_default_headers


class TestBuildDefaultHeaders:
    def test_bearer_token_and_api_key(self):
        # Act
        headers = build_default_headers("tok1", "ABC")

        # Assert
        assert headers["Authorization"] == "Bearer tok1"
        assert headers["X-Api-Key"] == "ABC"

    def test_repr_redacts_authorization(self):
        # Act
        headers = build_default_headers("tok1", "ABC")

        # Assert
        assert "tok1" not in repr(headers)
        assert "[secure]" in repr(headers)

    @pytest.mark.parametrize(
        "access_token,api_key",
        [
            ("tok\r\nX-Injected: 1", "ABC"),
            ("tök", "ABC"),
            ("tok1", "AB\nC"),
            ("tok1", "AB\x7fC"),
            ("tok1", "ключ"),
        ],
    )
    def test_rejects_illegal_characters(self, access_token, api_key):
        # Act & Assert
        with pytest.raises(InvalidCredentialEncodingError):
            build_default_headers(access_token, api_key)

    def test_error_message_does_not_echo_token(self):
        # Act & Assert
        with pytest.raises(InvalidCredentialEncodingError) as exc_info:
            build_default_headers("secret\ntoken", "ABC")
        assert "secret" not in str(exc_info.value)


class TestHttpxClientFactory:
    async def test_builds_client_with_default_headers(self):
        # Arrange
        factory = HttpxClientFactory(
            base_url="https://api.example.com/v1", timeout=5.0
        )
        headers = build_default_headers("tok1", "ABC")

        # Act
        client = factory(headers)

        # Assert
        try:
            assert isinstance(client, httpx.AsyncClient)
            assert client.headers["Authorization"] == "Bearer tok1"
            assert client.headers["X-Api-Key"] == "ABC"
            assert str(client.base_url) == "https://api.example.com/v1/"
            assert client.timeout == httpx.Timeout(5.0)
        finally:
            await client.aclose()

    def test_construction_failure(self, monkeypatch):
        # Arrange
        monkeypatch.setattr(
            client_factory.httpx,
            "AsyncClient",
            MagicMock(side_effect=TypeError("bad transport")),
        )
        factory = HttpxClientFactory()

        # Act & Assert
        with pytest.raises(ClientConstructionError, match="bad transport"):
            factory(build_default_headers("tok1", "ABC"))
