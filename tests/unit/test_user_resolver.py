"""Tests for UserResolver."""

import httpx
import pytest

from nss_keycloak.domain.services.user import BATCH_SIZE, UserResolver
from nss_keycloak.infra.keycloak.exceptions import AmbiguousAttributeError, KeycloakProtocolError
from nss_keycloak.infra.keycloak.rest_client import KeycloakAdminClient
from tests.keycloak_fakes import make_user

TOKEN = "access-test"


@pytest.fixture
def resolver(admin_client, settings) -> UserResolver:
    return UserResolver(admin_client, settings.mapping)


class TestListUsers:
    def test_two_users(self, resolver) -> None:
        users = resolver.list_users(TOKEN)

        assert [u.username for u in users] == ["user01", "user02"]
        assert users[0].uid == 1000
        assert users[0].gid == 500
        assert users[0].homedir == "/home/user01"
        assert users[0].loginshell == "/bin/bash"
        assert users[0].gecos == ",,,"
        assert users[1].uid == 1001
        assert users[1].gid == 501

    def test_requests_carry_bearer_token(self, resolver, fake_keycloak) -> None:
        resolver.list_users(TOKEN)

        assert fake_keycloak.admin_requests
        for request in fake_keycloak.admin_requests:
            assert request.headers["Authorization"] == f"Bearer {TOKEN}"

    def test_pagination(self, resolver, fake_keycloak) -> None:
        fake_keycloak.users = [make_user(f"user{i:03d}", 2000 + i, 100) for i in range(250)]

        users = resolver.list_users(TOKEN)

        pages = fake_keycloak.requests_to("/users")
        assert BATCH_SIZE == 100
        assert len(pages) == 3
        assert [p.url.params["first"] for p in pages] == ["0", "100", "200"]
        assert all(p.url.params["max"] == "100" for p in pages)
        assert all(p.url.params["briefRepresentation"] == "false" for p in pages)
        assert len(users) == 250
        assert users[-1].username == "user249"
        assert len(fake_keycloak.requests_to("/users/count")) == 1

    def test_empty_realm(self, resolver, fake_keycloak) -> None:
        fake_keycloak.users = []

        assert resolver.list_users(TOKEN) == []
        assert fake_keycloak.requests_to("/users") == []

    def test_unmappable_user_is_dropped(self, resolver, fake_keycloak, caplog) -> None:
        fake_keycloak.users = [
            make_user("nouid", None, 500),
            make_user("user01", 1000, 500),
            make_user("twoshells", 1002, 500, defaultshell=["/bin/sh", "/bin/bash"]),
            make_user("user02", 1001, 501),
        ]

        with caplog.at_level("WARNING"):
            users = resolver.list_users(TOKEN)

        assert [u.username for u in users] == ["user01", "user02"]
        dropped = [r.username for r in caplog.records if r.getMessage().startswith("Dropping")]
        assert dropped == ["nouid", "twoshells"]

    def test_invalid_count_payload(self, settings) -> None:
        http_client = httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"count": 2}))
        )
        client = KeycloakAdminClient(settings.keycloak, http_client)
        resolver = UserResolver(client, settings.mapping)

        with pytest.raises(KeycloakProtocolError, match="Unexpected user count"):
            resolver.list_users(TOKEN)

    def test_server_error_propagates(self, resolver, fake_keycloak) -> None:
        fake_keycloak.admin_status = 500

        with pytest.raises(KeycloakProtocolError) as exc_info:
            resolver.list_users(TOKEN)

        assert exc_info.value.status_code == 500


class TestGetUserByName:
    def test_found(self, resolver, fake_keycloak) -> None:
        user = resolver.get_user_by_name(TOKEN, "user02")

        assert user is not None
        assert user.uid == 1001
        request = fake_keycloak.requests_to("/users")[-1]
        assert request.url.params["username"] == "user02"
        assert request.url.params["exact"] == "true"

    def test_not_found(self, resolver) -> None:
        assert resolver.get_user_by_name(TOKEN, "user03") is None

    def test_unmappable_user_is_not_found(self, resolver, fake_keycloak) -> None:
        fake_keycloak.users = [make_user("nouid", None, 500)]

        assert resolver.get_user_by_name(TOKEN, "nouid") is None

    def test_out_of_range_uid_is_not_found(self, resolver, fake_keycloak) -> None:
        fake_keycloak.users = [make_user("bigid", "4294967296", 500)]

        assert resolver.get_user_by_name(TOKEN, "bigid") is None

    def test_ambiguous_attribute_raises(self, resolver, fake_keycloak) -> None:
        fake_keycloak.users = [make_user("twouids", ["1000", "1001"], 500)]

        with pytest.raises(AmbiguousAttributeError):
            resolver.get_user_by_name(TOKEN, "twouids")


class TestGetUserByUid:
    def test_found(self, resolver) -> None:
        user = resolver.get_user_by_uid(TOKEN, 1000)

        assert user is not None
        assert user.username == "user01"

    def test_not_found(self, resolver) -> None:
        assert resolver.get_user_by_uid(TOKEN, 4242) is None

    def test_stops_at_first_matching_page(self, resolver, fake_keycloak) -> None:
        fake_keycloak.users = [make_user(f"user{i:03d}", 2000 + i, 100) for i in range(250)]

        user = resolver.get_user_by_uid(TOKEN, 2050)

        assert user is not None
        assert user.username == "user050"
        assert len(fake_keycloak.requests_to("/users")) == 1

    def test_skips_users_without_uid(self, resolver, fake_keycloak) -> None:
        fake_keycloak.users = [
            make_user("nouid", None, 500),
            make_user("twouids", ["1000", "1001"], 500),
            make_user("user01", 1000, 500),
        ]

        user = resolver.get_user_by_uid(TOKEN, 1000)

        assert user is not None
        assert user.username == "user01"

    def test_ambiguous_match_raises(self, resolver, fake_keycloak) -> None:
        fake_keycloak.users = [make_user("user01", 1000, ["500", "501"])]

        with pytest.raises(AmbiguousAttributeError):
            resolver.get_user_by_uid(TOKEN, 1000)
