"""Domain services for the Keycloak NSS resolver.

Services in this package:
- UserResolver: user count, paginated listing, lookup by name/uid
- GroupResolver: group listing with member expansion, lookup by name/gid
"""

from nss_keycloak.domain.services.group import GroupResolver
from nss_keycloak.domain.services.user import UserResolver

__all__ = [
    "GroupResolver",
    "UserResolver",
]
