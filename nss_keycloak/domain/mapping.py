"""Attribute mapping from Keycloak representations to POSIX records.

Keycloak stores custom attributes as lists of strings even for logically
single-valued fields. Every mapped field goes through get_single_attribute,
which accepts zero or one value and rejects more: an ambiguous value is an
error, never silently resolved by picking the first.
"""

from nss_keycloak.config import MappingSettings
from nss_keycloak.domain.models import (
    AttributeBag,
    POSIX_ID_MAX,
    KeycloakGroupResponse,
    KeycloakUser,
    KeycloakUserResponse,
)
from nss_keycloak.infra.keycloak.exceptions import (
    AmbiguousAttributeError,
    InvalidAttributeError,
    MissingAttributeError,
)

DEFAULT_HOMEDIR = "/"
DEFAULT_LOGINSHELL = "/sbin/nologin"
DEFAULT_GECOS = ",,,"


def get_single_attribute(attributes: AttributeBag | None, name: str) -> str | None:
    """Get a single attribute value.

    Args:
        attributes: Attribute bag (None when the representation has no attributes)
        name: Attribute name

    Returns:
        The sole value, or None if the attribute is absent or empty

    Raises:
        AmbiguousAttributeError: If the attribute has two or more values
    """
    if not attributes:
        return None
    values = attributes.get(name)
    if not values:
        return None
    if len(values) > 1:
        raise AmbiguousAttributeError(name, len(values))
    return values[0]


def get_required_id(attributes: AttributeBag | None, name: str) -> int:
    """Get a required numeric id (uid/gid) attribute.

    Raises:
        MissingAttributeError: If the attribute is absent
        AmbiguousAttributeError: If it has several values
        InvalidAttributeError: If the value is not a decimal number fitting uid_t/gid_t
    """
    value = get_single_attribute(attributes, name)
    if value is None:
        raise MissingAttributeError(name)
    # ASCII decimal digits only, no sign, separators or whitespace
    if not (value.isascii() and value.isdigit()):
        raise InvalidAttributeError(name, value)
    number = int(value)
    if number > POSIX_ID_MAX:
        raise InvalidAttributeError(name, value)
    return number


def map_user(user: KeycloakUserResponse, mapping: MappingSettings) -> KeycloakUser:
    """Map a Keycloak user representation to a KeycloakUser.

    Home directory, login shell and gecos fall back to defaults when absent;
    uid and gid are required.

    Raises:
        MappingError: If a field cannot be mapped
    """
    attributes = user.attributes
    uid = get_required_id(attributes, mapping.user_uid)
    gid = get_required_id(attributes, mapping.user_gid)
    homedir = get_single_attribute(attributes, mapping.user_home)
    loginshell = get_single_attribute(attributes, mapping.user_shell)
    gecos = get_single_attribute(attributes, mapping.user_gecos)
    return KeycloakUser(
        username=user.username,
        uid=uid,
        gid=gid,
        homedir=homedir if homedir is not None else DEFAULT_HOMEDIR,
        loginshell=loginshell if loginshell is not None else DEFAULT_LOGINSHELL,
        gecos=gecos if gecos is not None else DEFAULT_GECOS,
    )


def map_group_gid(group: KeycloakGroupResponse, mapping: MappingSettings) -> int:
    """Get the gid of a Keycloak group representation.

    Raises:
        MappingError: If the gid attribute is missing, ambiguous or invalid
    """
    return get_required_id(group.attributes, mapping.group_gid)
