"""Security module for the Keycloak NSS resolver.

Provides the access token lifecycle (grant, refresh, validity tracking)
used to authenticate admin API calls.
"""

from nss_keycloak.security.token import (
    TIME_BUFFER_SECONDS,
    CredentialClient,
    Token,
    TokenManager,
    TokenStore,
    format_token,
)

__all__ = [
    "TIME_BUFFER_SECONDS",
    "CredentialClient",
    "Token",
    "TokenManager",
    "TokenStore",
    "format_token",
]
