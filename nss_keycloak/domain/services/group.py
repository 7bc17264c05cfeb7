"""Group resolver for POSIX group lookups.

Lists and looks up Keycloak groups, maps their gid attribute and expands
membership with one members request (or more, for large groups) per group.
Member usernames are taken verbatim from Keycloak.

Groups whose gid cannot be mapped are dropped from listings, mirroring
the user listing policy.
"""

import logging

from nss_keycloak.config import MappingSettings
from nss_keycloak.domain.mapping import map_group_gid
from nss_keycloak.domain.models import (
    KeycloakGroup,
    KeycloakGroupResponse,
    parse_groups,
    parse_users,
)
from nss_keycloak.infra.keycloak.exceptions import AmbiguousAttributeError, MappingError
from nss_keycloak.infra.keycloak.rest_client import KeycloakAdminClient

logger = logging.getLogger(__name__)

# Page size for the group members API
MEMBERS_BATCH_SIZE = 100


class GroupResolver:
    """Resolves POSIX groups from the Keycloak admin API.

    Example:
        resolver = GroupResolver(admin_client, settings.mapping)
        groups = resolver.list_groups(access_token)
        group = resolver.get_group_by_gid(access_token, 500)
    """

    def __init__(
        self,
        client: KeycloakAdminClient,
        mapping: MappingSettings,
        members_batch_size: int = MEMBERS_BATCH_SIZE,
    ) -> None:
        self.client = client
        self.mapping = mapping
        self.members_batch_size = members_batch_size

    def _groups_request(
        self, access_token: str, params: dict[str, str]
    ) -> list[KeycloakGroupResponse]:
        return parse_groups(self.client.get_json("/groups", access_token, params=params))

    def get_group_members(self, access_token: str, group_id: str) -> list[str]:
        """Get the usernames of a group's members, in Keycloak order."""
        members: list[str] = []
        first = 0
        while True:
            page = parse_users(
                self.client.get_json(
                    f"/groups/{group_id}/members",
                    access_token,
                    params={
                        "briefRepresentation": "true",
                        "first": str(first),
                        "max": str(self.members_batch_size),
                    },
                )
            )
            members.extend(member.username for member in page)
            if len(page) < self.members_batch_size:
                return members
            first += self.members_batch_size

    def _mapped_gid(self, group: KeycloakGroupResponse, strict: bool) -> int | None:
        try:
            return map_group_gid(group, self.mapping)
        except AmbiguousAttributeError:
            if strict:
                raise
            logger.warning(
                "Dropping group with ambiguous gid",
                extra={"group": group.name, "attribute": self.mapping.group_gid},
            )
            return None
        except MappingError as e:
            logger.warning(
                "Dropping group that cannot be mapped",
                extra={"group": group.name, "attribute": e.attribute},
            )
            return None

    def _expand(self, access_token: str, group: KeycloakGroupResponse, gid: int) -> KeycloakGroup:
        return KeycloakGroup(
            name=group.name,
            gid=gid,
            members=self.get_group_members(access_token, group.id),
        )

    def list_groups(self, access_token: str) -> list[KeycloakGroup]:
        """List all groups that map to a POSIX group, with their members.

        Raises:
            KeycloakTransportError: On network failure
            KeycloakProtocolError: On unexpected responses
        """
        groups: list[KeycloakGroup] = []
        for response in self._groups_request(access_token, {"briefRepresentation": "false"}):
            gid = self._mapped_gid(response, strict=False)
            if gid is not None:
                groups.append(self._expand(access_token, response, gid))
        logger.debug("Listed groups", extra={"count": len(groups)})
        return groups

    def get_group_by_name(self, access_token: str, name: str) -> KeycloakGroup | None:
        """Look up a group by name.

        Returns:
            The group, or None if no group with that name resolves

        Raises:
            AmbiguousAttributeError: If the group has several gid values
        """
        candidates = self._groups_request(
            access_token, {"briefRepresentation": "false", "search": name}
        )
        for response in candidates:
            # search matches substrings
            if response.name != name:
                continue
            gid = self._mapped_gid(response, strict=True)
            if gid is not None:
                return self._expand(access_token, response, gid)
        return None

    def get_group_by_gid(self, access_token: str, gid: int) -> KeycloakGroup | None:
        """Look up a group by gid.

        Members are only fetched for the matching group.

        Returns:
            The first group with that gid, or None
        """
        for response in self._groups_request(access_token, {"briefRepresentation": "false"}):
            if self._mapped_gid(response, strict=False) == gid:
                return self._expand(access_token, response, gid)
        return None
