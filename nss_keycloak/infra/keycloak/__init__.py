"""Keycloak integration module.

Provides the blocking admin REST client and the strongly-typed
exceptions shared by the token and resolver layers.
"""

from nss_keycloak.infra.keycloak.exceptions import (
    AmbiguousAttributeError,
    AuthError,
    InvalidAttributeError,
    KeycloakError,
    KeycloakNetworkError,
    KeycloakProtocolError,
    KeycloakTimeoutError,
    KeycloakTransportError,
    MappingError,
    MissingAttributeError,
)
from nss_keycloak.infra.keycloak.rest_client import KeycloakAdminClient

__all__ = [
    # Clients
    "KeycloakAdminClient",
    # Exceptions
    "KeycloakError",
    "KeycloakTransportError",
    "KeycloakTimeoutError",
    "KeycloakNetworkError",
    "KeycloakProtocolError",
    "AuthError",
    "MappingError",
    "MissingAttributeError",
    "AmbiguousAttributeError",
    "InvalidAttributeError",
]
