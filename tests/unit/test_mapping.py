"""Tests for attribute mapping."""

import pytest

from nss_keycloak.config import MappingSettings
from nss_keycloak.domain.mapping import (
    DEFAULT_GECOS,
    DEFAULT_HOMEDIR,
    DEFAULT_LOGINSHELL,
    get_required_id,
    get_single_attribute,
    map_group_gid,
    map_user,
)
from nss_keycloak.domain.models import KeycloakGroupResponse, KeycloakUserResponse
from nss_keycloak.infra.keycloak.exceptions import (
    AmbiguousAttributeError,
    InvalidAttributeError,
    MappingError,
    MissingAttributeError,
)
from tests.keycloak_fakes import MAPPING


@pytest.fixture
def mapping() -> MappingSettings:
    return MappingSettings(**MAPPING)


class TestGetSingleAttribute:
    """Tests for the zero-or-one attribute contract."""

    @pytest.mark.parametrize(
        "attributes",
        [None, {}, {"other": ["x"]}, {"shell": []}],
    )
    def test_absent(self, attributes) -> None:
        assert get_single_attribute(attributes, "shell") is None

    def test_single_value(self) -> None:
        assert get_single_attribute({"shell": ["/bin/zsh"]}, "shell") == "/bin/zsh"

    def test_multiple_values_raise(self) -> None:
        with pytest.raises(AmbiguousAttributeError, match="Multiple values") as exc_info:
            get_single_attribute({"shell": ["/bin/sh", "/bin/bash"]}, "shell")

        assert exc_info.value.attribute == "shell"
        assert exc_info.value.count == 2
        assert isinstance(exc_info.value, MappingError)


class TestGetRequiredId:
    def test_parses_integer(self) -> None:
        assert get_required_id({"uidnumber": ["1000"]}, "uidnumber") == 1000

    def test_missing(self) -> None:
        with pytest.raises(MissingAttributeError):
            get_required_id({}, "uidnumber")

    @pytest.mark.parametrize(
        "value",
        [
            "abc",
            "-1",
            "+1",
            "1.5",
            " ",
            "",
            "1_000",
            "\u0661\u0660\u0660\u0660",
            " 7 ",
            "4294967296",
        ],
    )
    def test_invalid(self, value) -> None:
        with pytest.raises(InvalidAttributeError) as exc_info:
            get_required_id({"uidnumber": [value]}, "uidnumber")

        assert exc_info.value.value == value

    def test_largest_id(self) -> None:
        assert get_required_id({"uidnumber": ["4294967295"]}, "uidnumber") == 2**32 - 1

    def test_leading_zeros(self) -> None:
        assert get_required_id({"gidnumber": ["0500"]}, "gidnumber") == 500


class TestMapUser:
    def test_full_mapping(self, mapping) -> None:
        response = KeycloakUserResponse(
            username="user01",
            attributes={
                "uidnumber": ["1000"],
                "gidnumber": ["500"],
                "homedirectory": ["/home/user01"],
                "defaultshell": ["/bin/bash"],
                "gecos": ["User One,,,"],
            },
        )

        user = map_user(response, mapping)

        assert user.username == "user01"
        assert user.uid == 1000
        assert user.gid == 500
        assert user.homedir == "/home/user01"
        assert user.loginshell == "/bin/bash"
        assert user.gecos == "User One,,,"

    def test_defaults(self, mapping) -> None:
        response = KeycloakUserResponse(
            username="user01", attributes={"uidnumber": ["1000"], "gidnumber": ["500"]}
        )

        user = map_user(response, mapping)

        assert user.homedir == DEFAULT_HOMEDIR == "/"
        assert user.loginshell == DEFAULT_LOGINSHELL == "/sbin/nologin"
        assert user.gecos == DEFAULT_GECOS == ",,,"

    def test_missing_uid(self, mapping) -> None:
        response = KeycloakUserResponse(username="user01", attributes={"gidnumber": ["500"]})

        with pytest.raises(MissingAttributeError) as exc_info:
            map_user(response, mapping)

        assert exc_info.value.attribute == "uidnumber"

    def test_missing_gid(self, mapping) -> None:
        response = KeycloakUserResponse(username="user01", attributes={"uidnumber": ["1000"]})

        with pytest.raises(MissingAttributeError):
            map_user(response, mapping)

    def test_no_attributes(self, mapping) -> None:
        with pytest.raises(MissingAttributeError):
            map_user(KeycloakUserResponse(username="user01"), mapping)

    def test_ambiguous_optional_attribute(self, mapping) -> None:
        response = KeycloakUserResponse(
            username="user01",
            attributes={
                "uidnumber": ["1000"],
                "gidnumber": ["500"],
                "homedirectory": ["/home/a", "/home/b"],
            },
        )

        with pytest.raises(AmbiguousAttributeError):
            map_user(response, mapping)


class TestMapGroupGid:
    def test_gid(self, mapping) -> None:
        group = KeycloakGroupResponse(id="g", name="group01", attributes={"gidnumber": ["500"]})
        assert map_group_gid(group, mapping) == 500

    def test_missing(self, mapping) -> None:
        group = KeycloakGroupResponse(id="g", name="group01")
        with pytest.raises(MissingAttributeError):
            map_group_gid(group, mapping)

    def test_ambiguous(self, mapping) -> None:
        group = KeycloakGroupResponse(
            id="g", name="group01", attributes={"gidnumber": ["500", "501"]}
        )
        with pytest.raises(AmbiguousAttributeError):
            map_group_gid(group, mapping)
