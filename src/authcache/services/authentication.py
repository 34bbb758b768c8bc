"""Credential pair to access token exchange.

The cache only depends on the `Authenticator` protocol. `CognitoAuthenticator`
is the production implementation: it runs the Amazon Cognito
`USER_PASSWORD_AUTH` flow, treating the API key as the username and the API
secret as the password.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from authcache.models.auth import AuthenticationResult
from authcache.models.errors import AuthenticationFailedError, ConfigurationError
from authcache.utils import key_fingerprint

logger = logging.getLogger(__name__)

INITIATE_AUTH_TARGET = "AWSCognitoIdentityProviderService.InitiateAuth"
COGNITO_CONTENT_TYPE = "application/x-amz-json-1.1"


class Authenticator(Protocol):
    """Exchanges a credential pair for an access token.

    Implementations may be slow and network bound. The cache never retries a
    failed call.
    """

    async def authenticate(
        self, client_id: str, pool_id: str, api_key: str, api_secret: str
    ) -> AuthenticationResult:
        """Authenticate and return the issued token with its lifetime.

        Raises:
            AuthenticationFailedError: If the credentials are rejected or the
                identity provider cannot be reached
        """
        ...


def region_from_pool_id(pool_id: str) -> str:
    """Extract the AWS region from a user pool id like `us-west-2_AbC123`."""
    region, sep, suffix = pool_id.partition("_")
    if not sep or not region or not suffix:
        raise ConfigurationError(f"Pool id has no region prefix: {pool_id!r}")
    return region


class CognitoAuthenticator:
    """Authenticates API credentials against an Amazon Cognito user pool."""

    def __init__(self, timeout: float = 30.0, endpoint: str | None = None):
        """Initialize the Cognito authenticator.

        Args:
            timeout: HTTP request timeout in seconds
            endpoint: Override for the identity provider URL. Derived from
                the pool's region when not given.
        """
        self.timeout = timeout
        self.endpoint = endpoint
        self._http_client = httpx.AsyncClient(timeout=timeout)

    def endpoint_for(self, pool_id: str) -> str:
        if self.endpoint:
            return self.endpoint
        return f"https://cognito-idp.{region_from_pool_id(pool_id)}.amazonaws.com/"

    async def authenticate(
        self, client_id: str, pool_id: str, api_key: str, api_secret: str
    ) -> AuthenticationResult:
        """Run the USER_PASSWORD_AUTH flow for one credential pair.

        Args:
            client_id: Cognito app client id
            pool_id: Cognito user pool id, used to locate the regional endpoint
            api_key: Username presented to the user pool
            api_secret: Password presented to the user pool

        Returns:
            AuthenticationResult: Issued access token and its lifetime

        Raises:
            AuthenticationFailedError: If authentication fails for any reason
        """
        try:
            endpoint = self.endpoint_for(pool_id)
        except ConfigurationError as e:
            raise AuthenticationFailedError(str(e)) from e

        logger.debug(f"Authenticating {key_fingerprint(api_key)} against {endpoint}")

        headers = {
            "Content-Type": COGNITO_CONTENT_TYPE,
            "X-Amz-Target": INITIATE_AUTH_TARGET,
        }
        body = {
            "AuthFlow": "USER_PASSWORD_AUTH",
            "ClientId": client_id,
            "AuthParameters": {"USERNAME": api_key, "PASSWORD": api_secret},
        }

        try:
            response = await self._http_client.post(
                endpoint, json=body, headers=headers
            )
        except httpx.HTTPError as e:
            raise AuthenticationFailedError(
                f"HTTP error during authentication: {e}"
            ) from e

        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> AuthenticationResult:
        """Parse an InitiateAuth response.

        Raises:
            AuthenticationFailedError: On error responses, pending challenges,
                or malformed payloads
        """
        try:
            response_data: dict[str, Any] = response.json()
        except ValueError as e:
            raise AuthenticationFailedError(
                f"Invalid authentication response format: {e}"
            ) from e

        if not isinstance(response_data, dict):
            raise AuthenticationFailedError(
                "Invalid authentication response format: expected a JSON object"
            )

        if response.status_code != 200:
            error_type = response_data.get("__type", "UnknownError")
            message = response_data.get("message", "No description provided")
            logger.warning(
                f"Authentication failed with {response.status_code}: "
                f"{error_type} - {message}"
            )
            raise AuthenticationFailedError(f"{error_type}: {message}")

        if "ChallengeName" in response_data:
            raise AuthenticationFailedError(
                "Unsupported authentication challenge: "
                f"{response_data['ChallengeName']}"
            )

        payload = response_data.get("AuthenticationResult")
        if not isinstance(payload, dict):
            raise AuthenticationFailedError(
                "Authentication response missing AuthenticationResult"
            )

        try:
            result = AuthenticationResult.model_validate(payload)
        except ValidationError as e:
            # Field names only; the error text would echo the token.
            fields = ", ".join(".".join(map(str, err["loc"])) for err in e.errors())
            raise AuthenticationFailedError(
                f"Invalid authentication result: {fields}"
            ) from e

        logger.info("Authentication successful")
        return result

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()
