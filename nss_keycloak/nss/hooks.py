"""NSS passwd/group hooks.

Adapter between the resolvers and the host's name service dispatcher.
This is the only place where NSS vocabulary (status codes, passwd and
group entries) appears; the token manager and resolvers stay host-agnostic.

Error mapping:
- AuthError, KeycloakTransportError -> TRY_AGAIN
- KeycloakProtocolError, MappingError (ambiguous attribute) -> UNAVAIL
- no resolving entity -> NOT_FOUND
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

import httpx

from nss_keycloak.config import Settings
from nss_keycloak.domain.models import KeycloakGroup, KeycloakUser
from nss_keycloak.domain.services import GroupResolver, UserResolver
from nss_keycloak.infra.keycloak.exceptions import (
    AuthError,
    KeycloakError,
    KeycloakTransportError,
)
from nss_keycloak.infra.keycloak.rest_client import KeycloakAdminClient
from nss_keycloak.infra.observability.logging import lookup_scope
from nss_keycloak.security.token import Clock, CredentialClient, TokenManager

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Placeholder password field, shadow entries are not served
PASSWORD_PLACEHOLDER = "x"


class Response(str, Enum):
    """NSS lookup outcome."""

    SUCCESS = "success"
    NOT_FOUND = "notfound"
    UNAVAIL = "unavail"
    TRY_AGAIN = "tryagain"


@dataclass
class LookupResult(Generic[T]):
    """Outcome of a hook call; value is set only on SUCCESS."""

    status: Response
    value: T | None = None

    @property
    def ok(self) -> bool:
        return self.status is Response.SUCCESS


@dataclass(frozen=True)
class Passwd:
    """passwd(5) entry."""

    name: str
    passwd: str
    uid: int
    gid: int
    gecos: str
    dir: str
    shell: str

    @classmethod
    def from_user(cls, user: KeycloakUser) -> "Passwd":
        return cls(
            name=user.username,
            passwd=PASSWORD_PLACEHOLDER,
            uid=user.uid,
            gid=user.gid,
            gecos=user.gecos,
            dir=user.homedir,
            shell=user.loginshell,
        )

    def to_line(self) -> str:
        return ":".join(
            [self.name, self.passwd, str(self.uid), str(self.gid), self.gecos, self.dir, self.shell]
        )


@dataclass(frozen=True)
class Group:
    """group(5) entry."""

    name: str
    passwd: str
    gid: int
    members: list[str] = field(default_factory=list)

    @classmethod
    def from_group(cls, group: KeycloakGroup) -> "Group":
        return cls(
            name=group.name,
            passwd=PASSWORD_PLACEHOLDER,
            gid=group.gid,
            members=list(group.members),
        )

    def to_line(self) -> str:
        return ":".join([self.name, self.passwd, str(self.gid), ",".join(self.members)])


class KeycloakNss:
    """Wiring of settings, token manager and resolvers.

    Built once at startup and shared by the hooks. The token manager is the
    only mutable shared state and guards itself with a lock.

    Example:
        nss = KeycloakNss.from_settings(load_settings())
        result = PasswdHooks(nss).get_entry_by_name("user01")
    """

    def __init__(
        self,
        settings: Settings,
        token_manager: TokenManager,
        users: UserResolver,
        groups: GroupResolver,
        admin_client: KeycloakAdminClient,
    ) -> None:
        self.settings = settings
        self.token_manager = token_manager
        self.users = users
        self.groups = groups
        self.admin_client = admin_client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.Client | None = None,
        clock: Clock | None = None,
    ) -> "KeycloakNss":
        """Build the resolver stack from settings.

        Args:
            settings: Loaded settings
            http_client: Optional HTTP client shared by all components (testing)
            clock: Optional time source for the token manager (testing)
        """
        credential_client = CredentialClient(
            settings.keycloak, http_client, clock=clock or time.time
        )
        admin_client = KeycloakAdminClient(settings.keycloak, http_client)
        return cls(
            settings=settings,
            token_manager=TokenManager(credential_client),
            users=UserResolver(admin_client, settings.mapping),
            groups=GroupResolver(admin_client, settings.mapping),
            admin_client=admin_client,
        )

    def close(self) -> None:
        self.token_manager.close()
        self.admin_client.close()

    def run(self, lookup: str, query: Callable[[str], R]) -> LookupResult[R]:
        """Acquire a token and run ``query`` with it, mapping errors to a status.

        A ``None`` result from ``query`` means NOT_FOUND.
        """
        with lookup_scope(lookup):
            try:
                access_token = self.token_manager.get_access_token()
            except AuthError as e:
                logger.error("Failed to get access token", exc_info=e)
                return LookupResult(Response.TRY_AGAIN)

            try:
                value = query(access_token)
            except KeycloakTransportError as e:
                logger.error("Keycloak unreachable", exc_info=e)
                return LookupResult(Response.TRY_AGAIN)
            except KeycloakError as e:
                logger.error("Lookup failed", exc_info=e)
                return LookupResult(Response.UNAVAIL)

        if value is None:
            return LookupResult(Response.NOT_FOUND)
        return LookupResult(Response.SUCCESS, value)


class PasswdHooks:
    """passwd database hooks backed by Keycloak users."""

    def __init__(self, nss: KeycloakNss) -> None:
        self.nss = nss

    def get_all_entries(self) -> LookupResult[list[Passwd]]:
        return self.nss.run(
            "passwd.all",
            lambda token: [Passwd.from_user(u) for u in self.nss.users.list_users(token)],
        )

    def get_entry_by_uid(self, uid: int) -> LookupResult[Passwd]:
        def query(token: str) -> Passwd | None:
            user = self.nss.users.get_user_by_uid(token, uid)
            return Passwd.from_user(user) if user is not None else None

        return self.nss.run("passwd.uid", query)

    def get_entry_by_name(self, name: str) -> LookupResult[Passwd]:
        def query(token: str) -> Passwd | None:
            user = self.nss.users.get_user_by_name(token, name)
            return Passwd.from_user(user) if user is not None else None

        return self.nss.run("passwd.name", query)


class GroupHooks:
    """group database hooks backed by Keycloak groups."""

    def __init__(self, nss: KeycloakNss) -> None:
        self.nss = nss

    def get_all_entries(self) -> LookupResult[list[Group]]:
        return self.nss.run(
            "group.all",
            lambda token: [Group.from_group(g) for g in self.nss.groups.list_groups(token)],
        )

    def get_entry_by_gid(self, gid: int) -> LookupResult[Group]:
        def query(token: str) -> Group | None:
            group = self.nss.groups.get_group_by_gid(token, gid)
            return Group.from_group(group) if group is not None else None

        return self.nss.run("group.gid", query)

    def get_entry_by_name(self, name: str) -> LookupResult[Group]:
        def query(token: str) -> Group | None:
            group = self.nss.groups.get_group_by_name(token, name)
            return Group.from_group(group) if group is not None else None

        return self.nss.run("group.name", query)
