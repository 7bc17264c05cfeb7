"""Keycloak admin REST API client.

Provides a blocking HTTP client for the Keycloak admin API with:
- Connection pooling and keep-alive
- Timeout enforcement
- Bearer token authentication per request
- Error mapping to strongly-typed exceptions

Design principles:
- Use httpx for HTTP
- Map HTTP errors to domain exceptions
- Never log credentials or tokens
- No retries: retry policy belongs to the caller
"""

import logging
from typing import Any

import httpx

from nss_keycloak.config import KeycloakSettings
from nss_keycloak.infra.keycloak.exceptions import (
    KeycloakNetworkError,
    KeycloakProtocolError,
    KeycloakTimeoutError,
)

logger = logging.getLogger(__name__)


def send_request(
    client: httpx.Client,
    method: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request and map transport failures and error statuses.

    Args:
        client: HTTP client to send with
        method: HTTP method
        url: Absolute URL
        **kwargs: Passed through to ``httpx.Client.request``

    Returns:
        The successful (2xx) response

    Raises:
        KeycloakTimeoutError: On timeout
        KeycloakNetworkError: On any other transport or request failure
        KeycloakProtocolError: On non-2xx status or an undecodable body
    """
    try:
        response = client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        raise KeycloakTimeoutError(f"Request timeout: {method} {url}") from e
    except httpx.TransportError as e:
        raise KeycloakNetworkError(f"Network error: {method} {url}: {type(e).__name__}") from e
    except httpx.DecodingError as e:
        raise KeycloakProtocolError(f"Undecodable response body: {method} {url}") from e
    except httpx.RequestError as e:
        # e.g. TooManyRedirects
        raise KeycloakNetworkError(f"Request failed: {method} {url}: {type(e).__name__}") from e

    if not response.is_success:
        handle_error_response(response)

    return response


def decode_json(response: httpx.Response) -> Any:
    """Decode a JSON body.

    Raises:
        KeycloakProtocolError: If the body is not valid JSON
    """
    try:
        return response.json()
    except ValueError as e:
        raise KeycloakProtocolError(
            f"Invalid JSON response from {response.request.url.path}",
            response.status_code,
            response.text,
        ) from e


def handle_error_response(response: httpx.Response) -> None:
    """Map HTTP error response to KeycloakProtocolError.

    Args:
        response: HTTP response with error status

    Raises:
        KeycloakProtocolError: Always
    """
    status_code = response.status_code
    response_body = response.text

    # Keycloak reports errors as {"error": ..., "error_description": ...}
    try:
        error_data = response.json()
        error_message = error_data.get(
            "error_description", error_data.get("error", error_data.get("errorMessage"))
        )
    except Exception:
        error_message = None

    raise KeycloakProtocolError(
        f"HTTP {status_code} from {response.request.url.path}: {error_message or response_body}",
        status_code,
        response_body,
    )


class KeycloakAdminClient:
    """Blocking HTTP client for the Keycloak admin REST API.

    Every call takes the bearer access token explicitly, so the client
    holds no credential state and can be shared between threads.

    Example:
        with KeycloakAdminClient(settings.keycloak) as client:
            count = client.get_json("/users/count", access_token)
    """

    def __init__(
        self,
        config: KeycloakSettings,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize admin client.

        Args:
            config: Keycloak connection settings
            http_client: Optional HTTP client for testing (not closed by this client)
        """
        self.config = config
        self.base_url = f"{config.url}/admin/realms/{config.realm}"
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

    def __enter__(self) -> "KeycloakAdminClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def url(self, path: str) -> str:
        """Build the absolute admin API URL for ``path`` (e.g. "/users")."""
        return f"{self.base_url}{path}"

    def get_json(
        self,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute an authenticated GET request and decode the JSON body.

        Args:
            path: Admin API path relative to the realm (e.g. "/groups")
            access_token: Bearer access token
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            KeycloakTransportError: On timeout or network failure
            KeycloakProtocolError: On non-2xx status or invalid JSON
        """
        url = self.url(path)
        logger.debug("Keycloak admin request", extra={"realm": self.config.realm})
        response = send_request(
            self._get_client(),
            "GET",
            url,
            params=params,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        return decode_json(response)
