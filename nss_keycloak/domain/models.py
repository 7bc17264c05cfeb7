"""Domain models for the Keycloak NSS resolver.

Pydantic models for the Keycloak admin API representations we consume
and for the resolved POSIX identity records we produce.
"""

from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from nss_keycloak.infra.keycloak.exceptions import KeycloakProtocolError

# Keycloak returns every attribute as a list of strings
AttributeBag: TypeAlias = Mapping[str, Sequence[str]]

# uid_t and gid_t are unsigned 32-bit
POSIX_ID_MAX = 2**32 - 1


class KeycloakUserResponse(BaseModel):
    """User representation returned by /users and /groups/{id}/members."""

    model_config = ConfigDict(extra="ignore")

    username: str
    attributes: dict[str, list[str]] | None = None


class KeycloakGroupResponse(BaseModel):
    """Group representation returned by /groups."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    attributes: dict[str, list[str]] | None = None


class KeycloakUser(BaseModel):
    """Resolved POSIX user."""

    model_config = ConfigDict(frozen=True)

    username: str
    uid: int = Field(ge=0, le=POSIX_ID_MAX)
    gid: int = Field(ge=0, le=POSIX_ID_MAX)
    homedir: str
    loginshell: str
    gecos: str


class KeycloakGroup(BaseModel):
    """Resolved POSIX group. Members keep the order Keycloak returned them in."""

    model_config = ConfigDict(frozen=True)

    name: str
    gid: int = Field(ge=0, le=POSIX_ID_MAX)
    members: list[str] = Field(default_factory=list)


_user_list_adapter = TypeAdapter(list[KeycloakUserResponse])
_group_list_adapter = TypeAdapter(list[KeycloakGroupResponse])


def parse_users(data: Any) -> list[KeycloakUserResponse]:
    """Validate a JSON array of user representations.

    Raises:
        KeycloakProtocolError: If the payload does not have the expected shape
    """
    try:
        return _user_list_adapter.validate_python(data)
    except ValidationError as e:
        raise KeycloakProtocolError(f"Unexpected user list payload: {e}") from e


def parse_groups(data: Any) -> list[KeycloakGroupResponse]:
    """Validate a JSON array of group representations.

    Raises:
        KeycloakProtocolError: If the payload does not have the expected shape
    """
    try:
        return _group_list_adapter.validate_python(data)
    except ValidationError as e:
        raise KeycloakProtocolError(f"Unexpected group list payload: {e}") from e
