"""User resolver for POSIX passwd lookups.

Lists and looks up Keycloak users and maps them to KeycloakUser records
according to the attribute mapping configuration.

Mapping failure policy:
- Listing: a user that cannot be mapped is dropped and logged; the rest of
  the listing continues.
- Single lookup: candidates with a missing or invalid uid/gid do not
  resolve (not found if none resolve); an ambiguous attribute on a matching
  candidate is raised to the caller.
"""

import logging
from collections.abc import Iterator

from nss_keycloak.config import MappingSettings
from nss_keycloak.domain.mapping import get_required_id, map_user
from nss_keycloak.domain.models import KeycloakUser, KeycloakUserResponse, parse_users
from nss_keycloak.infra.keycloak.exceptions import (
    AmbiguousAttributeError,
    KeycloakProtocolError,
    MappingError,
)
from nss_keycloak.infra.keycloak.rest_client import KeycloakAdminClient

logger = logging.getLogger(__name__)

# Page size for the Keycloak user list API
BATCH_SIZE = 100


class UserResolver:
    """Resolves POSIX users from the Keycloak admin API.

    Example:
        resolver = UserResolver(admin_client, settings.mapping)
        users = resolver.list_users(access_token)
        user = resolver.get_user_by_name(access_token, "user01")
    """

    def __init__(
        self,
        client: KeycloakAdminClient,
        mapping: MappingSettings,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        """Initialize UserResolver.

        Args:
            client: Keycloak admin API client
            mapping: Attribute mapping configuration
            batch_size: Number of users requested per page
        """
        self.client = client
        self.mapping = mapping
        self.batch_size = batch_size

    def count_users(self, access_token: str) -> int:
        """Get the number of users in the realm.

        Raises:
            KeycloakProtocolError: If the count is not an integer
        """
        count = self.client.get_json("/users/count", access_token)
        if isinstance(count, bool) or not isinstance(count, int):
            raise KeycloakProtocolError(f"Unexpected user count payload: {count!r}")
        return count

    def _users_request(
        self, access_token: str, params: dict[str, str]
    ) -> list[KeycloakUserResponse]:
        return parse_users(self.client.get_json("/users", access_token, params=params))

    def iter_user_pages(self, access_token: str) -> Iterator[list[KeycloakUserResponse]]:
        """Yield raw user pages covering all users in the realm."""
        nusers = self.count_users(access_token)
        for first in range(0, nusers, self.batch_size):
            yield self._users_request(
                access_token,
                {
                    "briefRepresentation": "false",
                    "first": str(first),
                    "max": str(self.batch_size),
                },
            )

    def list_users(self, access_token: str) -> list[KeycloakUser]:
        """List all users that map to a POSIX user.

        Users failing the mapping are logged and skipped.

        Raises:
            KeycloakTransportError: On network failure
            KeycloakProtocolError: On unexpected responses
        """
        users: list[KeycloakUser] = []
        for page in self.iter_user_pages(access_token):
            for response in page:
                try:
                    users.append(map_user(response, self.mapping))
                except MappingError as e:
                    logger.warning(
                        "Dropping user that cannot be mapped",
                        extra={"username": response.username, "attribute": e.attribute},
                    )
        logger.debug("Listed users", extra={"count": len(users)})
        return users

    def _resolve_candidate(self, response: KeycloakUserResponse) -> KeycloakUser | None:
        try:
            return map_user(response, self.mapping)
        except AmbiguousAttributeError:
            raise
        except MappingError as e:
            logger.info(
                "User does not resolve",
                extra={"username": response.username, "attribute": e.attribute},
            )
            return None

    def get_user_by_name(self, access_token: str, name: str) -> KeycloakUser | None:
        """Look up a user by username.

        Returns:
            The user, or None if no user with that name resolves

        Raises:
            AmbiguousAttributeError: If the user has a multi-valued mapped attribute
        """
        candidates = self._users_request(
            access_token,
            {"briefRepresentation": "false", "username": name, "exact": "true"},
        )
        for response in candidates:
            # "exact" is ignored by older Keycloak versions
            if response.username != name:
                continue
            user = self._resolve_candidate(response)
            if user is not None:
                return user
        return None

    def get_user_by_uid(self, access_token: str, uid: int) -> KeycloakUser | None:
        """Look up a user by numeric uid.

        Walks the user listing page by page, filtering on the mapped uid,
        and stops at the first match.

        Returns:
            The first user with that uid, or None

        Raises:
            AmbiguousAttributeError: If the matching user has a multi-valued mapped attribute
        """
        for page in self.iter_user_pages(access_token):
            for response in page:
                try:
                    candidate_uid = get_required_id(response.attributes, self.mapping.user_uid)
                except MappingError:
                    continue
                if candidate_uid != uid:
                    continue
                user = self._resolve_candidate(response)
                if user is not None:
                    return user
        return None
