"""Keycloak access token lifecycle.

Acquires, tracks and refreshes the bearer token used for admin API calls:
- CredentialClient talks to the realm token endpoint (password,
  client_credentials and refresh_token grants)
- TokenStore holds at most one Token
- TokenManager hands out a currently valid access token, refreshing or
  re-authenticating as needed under a lock

Expiry instants are stored with TIME_BUFFER_SECONDS already subtracted,
so validity checks compare directly against the clock.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from nss_keycloak.config import KeycloakSettings
from nss_keycloak.infra.keycloak.exceptions import AuthError, KeycloakError, KeycloakProtocolError
from nss_keycloak.infra.keycloak.rest_client import decode_json, send_request

logger = logging.getLogger(__name__)

# Margin between checking a token and using it
TIME_BUFFER_SECONDS = 3

Clock = Callable[[], float]


@dataclass(frozen=True)
class Token:
    """Access token and refresh token with their expiry instants (epoch seconds).

    An empty refresh_token means refresh is not available.
    """

    access_token: str
    access_token_expiration: float
    refresh_token: str
    refresh_token_expiration: float

    def access_token_is_valid(self, now: float) -> bool:
        return self.access_token_expiration > now

    def refresh_token_is_valid(self, now: float) -> bool:
        return bool(self.refresh_token) and self.refresh_token_expiration > now


def format_token(token_response: Any, request_time: float) -> Token:
    """Parse a token endpoint response into a Token.

    Args:
        token_response: Decoded JSON body of the token endpoint
        request_time: Clock value sampled right before the request was sent

    Returns:
        Token with buffered expiry instants

    Raises:
        KeycloakProtocolError: If required fields are missing or malformed
    """
    try:
        access_token = token_response["access_token"]
        expires_in = int(token_response["expires_in"])
        # Keycloak omits the refresh token when its lifetime would be zero
        refresh_token = token_response.get("refresh_token") or ""
        refresh_expires_in = int(token_response.get("refresh_expires_in") or 0)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise KeycloakProtocolError(f"Malformed token response: {e!r}") from e

    if not isinstance(access_token, str) or not access_token:
        raise KeycloakProtocolError("Malformed token response: empty access_token")

    return Token(
        access_token=access_token,
        access_token_expiration=request_time + expires_in - TIME_BUFFER_SECONDS,
        refresh_token=refresh_token,
        refresh_token_expiration=request_time + refresh_expires_in - TIME_BUFFER_SECONDS,
    )


class CredentialClient:
    """Client for the realm's OpenID Connect token endpoint.

    Example:
        client = CredentialClient(settings.keycloak)
        token = client.get_token()
        token = client.refresh_token(token)
    """

    def __init__(
        self,
        config: KeycloakSettings,
        http_client: httpx.Client | None = None,
        clock: Clock = time.time,
    ) -> None:
        """Initialize credential client.

        Args:
            config: Keycloak connection settings
            http_client: Optional HTTP client for testing (not closed by this client)
            clock: Time source returning epoch seconds
        """
        self.config = config
        self.token_endpoint = f"{config.url}/realms/{config.realm}/protocol/openid-connect/token"
        self.clock = clock
        self._http_client = http_client
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        if self._http_client is not None:
            return self._http_client

        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.config.request_timeout_seconds),
                verify=self.config.verify_ssl,
                follow_redirects=False,
            )

        return self._client

    def close(self) -> None:
        """Close HTTP client and cleanup connections."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def grant_data(self) -> dict[str, str]:
        """Build the form body for the initial grant.

        Uses the password grant if username and password are configured,
        the client credentials grant otherwise.
        """
        data = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        if self.config.uses_password_grant:
            data["grant_type"] = "password"
            data["username"] = self.config.username  # type: ignore[assignment]
            data["password"] = self.config.password  # type: ignore[assignment]
        else:
            data["grant_type"] = "client_credentials"
        return data

    def _request_token(self, data: dict[str, str]) -> Token:
        request_time = self.clock()
        try:
            response = send_request(
                self._get_client(),
                "POST",
                self.token_endpoint,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            token = format_token(decode_json(response), request_time)
        except KeycloakError as e:
            logger.error(
                "Token request failed",
                extra={
                    "realm": self.config.realm,
                    "grant_type": data["grant_type"],
                    "status_code": getattr(e, "status_code", None),
                },
            )
            raise AuthError(f"{data['grant_type']} grant failed: {e}") from e

        logger.info(
            "Token acquired",
            extra={
                "realm": self.config.realm,
                "grant_type": data["grant_type"],
                "has_refresh_token": bool(token.refresh_token),
            },
        )
        return token

    def get_token(self) -> Token:
        """Fetch a new token with the configured grant.

        Raises:
            AuthError: If the request fails or the response is malformed
        """
        return self._request_token(self.grant_data())

    def refresh_token(self, token: Token) -> Token:
        """Fetch a new token using the refresh token of ``token``.

        Raises:
            AuthError: If the request fails or the response is malformed
        """
        return self._request_token(
            {
                "grant_type": "refresh_token",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "refresh_token": token.refresh_token,
            }
        )


class TokenStore:
    """Holds at most one token. Pure state, no I/O, no locking."""

    def __init__(self) -> None:
        self._token: Token | None = None

    @property
    def token(self) -> Token | None:
        return self._token

    def replace(self, token: Token) -> None:
        self._token = token


class TokenManager:
    """Hands out a currently valid access token.

    States:
    - Empty: no token fetched yet -> full grant
    - Valid: access token unexpired -> returned as is
    - Refreshable: access token expired, refresh token unexpired -> refresh grant
    - Stale: both expired -> full grant

    A failed refresh raises AuthError; it does not fall back to a full grant
    within the same call.

    The whole check/refresh/read sequence runs under one lock so that
    concurrent callers never race to refresh the same token.

    Example:
        manager = TokenManager(CredentialClient(settings.keycloak))
        access_token = manager.get_access_token()
    """

    def __init__(
        self,
        credential_client: CredentialClient,
        store: TokenStore | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize token manager.

        Args:
            credential_client: Client for the token endpoint
            store: Token store (a new empty one by default)
            clock: Time source, defaults to the credential client's clock
        """
        self.credential_client = credential_client
        self.store = store or TokenStore()
        self.clock = clock or credential_client.clock
        self._lock = threading.Lock()

    def get_access_token(self) -> str:
        """Return a currently valid access token.

        Raises:
            AuthError: If a grant or refresh request fails
        """
        with self._lock:
            now = self.clock()
            token = self.store.token

            if token is not None and token.access_token_is_valid(now):
                return token.access_token

            if token is not None and token.refresh_token_is_valid(now):
                logger.debug("Access token expired, refreshing")
                new_token = self.credential_client.refresh_token(token)
            else:
                logger.debug("No usable token, requesting a new one")
                new_token = self.credential_client.get_token()

            self.store.replace(new_token)
            return new_token.access_token

    def has_valid_token(self) -> bool:
        """Check whether the access token or the refresh token is still valid."""
        token = self.store.token
        if token is None:
            return False
        now = self.clock()
        return token.access_token_is_valid(now) or token.refresh_token_is_valid(now)

    def access_token_expires_in(self) -> float | None:
        """Seconds until the access token expires, None if absent or expired."""
        token = self.store.token
        if token is None:
            return None
        remaining = token.access_token_expiration - self.clock()
        return remaining if remaining > 0 else None

    def refresh_token_expires_in(self) -> float | None:
        """Seconds until the refresh token expires, None if absent or expired."""
        token = self.store.token
        if token is None or not token.refresh_token:
            return None
        remaining = token.refresh_token_expiration - self.clock()
        return remaining if remaining > 0 else None

    def close(self) -> None:
        self.credential_client.close()
