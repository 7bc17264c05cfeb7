"""NSS hook adapter.

Exposes passwd and group lookups with NSS-style outcome codes on top of
the host-agnostic resolvers.
"""

from nss_keycloak.nss.hooks import (
    Group,
    GroupHooks,
    KeycloakNss,
    LookupResult,
    Passwd,
    PasswdHooks,
    Response,
)

__all__ = [
    "Group",
    "GroupHooks",
    "KeycloakNss",
    "LookupResult",
    "Passwd",
    "PasswdHooks",
    "Response",
]
