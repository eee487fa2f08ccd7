"""Common OAuth2 provider client.

Each provider (Twitch, Discord) exposes the same four HTTP operations:
authorization-code exchange, refresh-token exchange, token introspection
and client-credentials. Subclasses only supply endpoints, scopes and the
shape of the identity response.
"""

import logging
from typing import ClassVar
from urllib.parse import quote, urlencode

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class TokenGrant(BaseModel):
    """Access/refresh pair returned by the token endpoint."""

    access_token: str
    refresh_token: str
    expires_in: int


class AppTokenGrant(BaseModel):
    """Client-credentials token (no refresh token)."""

    access_token: str
    expires_in: int


class UserInfo(BaseModel):
    id: str
    login: str


class ExchangeError(Exception):
    """The provider rejected a request or answered with an unusable payload."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EntityNotFoundError(LookupError):
    """No channel/guild is registered under the requested id."""


class OAuthProviderClient:
    """Shared httpx client plus the provider-agnostic OAuth2 calls."""

    name: ClassVar[str]
    AUTHORIZE_URL: ClassVar[str]
    TOKEN_URL: ClassVar[str]
    VALIDATE_URL: ClassVar[str]
    SCOPES: ClassVar[list[str]] = []

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        api_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not client_id or not client_secret:
            raise ValueError(f"{self.name} client_id and client_secret are required")

        self.client_id = client_id
        self.client_secret = client_secret
        self.api_url = api_url.rstrip("/")

        # Shared HTTP client, reused across requests; every call is time-boxed
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        """Close the shared HTTP client. Call on app shutdown."""
        await self._http.aclose()

    @property
    def redirect_uri(self) -> str:
        return f"{self.api_url}/{self.name}/callback"

    # ------------------------------------------------------------------
    # Authorization redirect
    # ------------------------------------------------------------------

    def _extra_authorize_params(self) -> dict[str, str]:
        return {}

    def authorize_url(
        self,
        state: str,
        *,
        redirect_uri: str | None = None,
        scopes: list[str] | None = None,
        **extra: str,
    ) -> str:
        """Build the provider authorize URL for *state*."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri or self.redirect_uri,
            "response_type": "code",
        }
        scopes = self.SCOPES if scopes is None else scopes
        if scopes:
            params["scope"] = " ".join(scopes)
        params.update(self._extra_authorize_params())
        params.update(extra)
        params["state"] = state
        return f"{self.AUTHORIZE_URL}?{urlencode(params, quote_via=quote)}"

    # ------------------------------------------------------------------
    # Token endpoint
    # ------------------------------------------------------------------

    async def _post_token(self, data: dict[str, str]) -> dict:
        """POST a form-encoded grant and return the decoded JSON body."""
        response = await self._http.post(
            self.TOKEN_URL,
            data={"client_id": self.client_id, "client_secret": self.client_secret, **data},
        )

        if response.is_error:
            logger.error(
                f"[{self.name}] Token endpoint returned {response.status_code} "
                f"for grant '{data.get('grant_type')}'"
            )
            logger.debug(f"[{self.name}] Response: {response.text}")
            raise ExchangeError(
                f"{self.name} token endpoint returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ExchangeError(f"{self.name} token endpoint returned invalid JSON") from e

    async def exchange_code(self, code: str, redirect_uri: str | None = None) -> TokenGrant:
        """Exchange an authorization code for an access/refresh pair.

        Raises:
            ExchangeError: non-2xx response
            pydantic.ValidationError: token fields missing from the body
        """
        data = await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri or self.redirect_uri,
            }
        )
        return TokenGrant.model_validate(data)

    async def refresh(self, refresh_token: str) -> TokenGrant:
        """Mint a new access/refresh pair. Both tokens may rotate."""
        data = await self._post_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        return TokenGrant.model_validate(data)

    def _client_credentials_params(self) -> dict[str, str]:
        return {}

    async def client_credentials(self) -> AppTokenGrant:
        """Fetch the platform-level bot token."""
        data = await self._post_token(
            {"grant_type": "client_credentials", **self._client_credentials_params()}
        )
        return AppTokenGrant.model_validate(data)

    # ------------------------------------------------------------------
    # Introspection / identity
    # ------------------------------------------------------------------

    def _introspection_headers(self, access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def validate_token(self, access_token: str) -> bool:
        """True when the provider accepts *access_token*, False on 401.

        Any other status raises ExchangeError.
        """
        response = await self._http.get(
            self.VALIDATE_URL, headers=self._introspection_headers(access_token)
        )
        if response.is_success:
            return True
        if response.status_code == 401:
            return False
        raise ExchangeError(
            f"{self.name} introspection returned {response.status_code}",
            status_code=response.status_code,
        )

    async def get_user_info(self, access_token: str) -> UserInfo:
        raise NotImplementedError
