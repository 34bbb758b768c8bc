"""Authentication result model.

Normalizes what an authenticator hands back to the cache. Cognito returns
PascalCase field names inside `AuthenticationResult`; both those and the
snake_case names are accepted.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AuthenticationResult(BaseModel):
    """Access token issued for a credential pair and its lifetime."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    access_token: str = Field(alias="AccessToken", min_length=1)
    expires_in: int = Field(alias="ExpiresIn")  # Seconds until expiry
    token_type: str = Field(default="Bearer", alias="TokenType")
    id_token: str | None = Field(default=None, alias="IdToken")
    refresh_token: str | None = Field(default=None, alias="RefreshToken")

    def __repr__(self) -> str:
        return (
            f"AuthenticationResult(token_type={self.token_type!r}, "
            f"expires_in={self.expires_in})"
        )

    __str__ = __repr__
