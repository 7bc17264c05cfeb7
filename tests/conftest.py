"""Shared pytest fixtures.

These fixtures live at `tests/` scope and wire the resolver stack to
FakeKeycloak (see tests/keycloak_fakes.py) through httpx.MockTransport,
so unit tests never touch the network.
"""

from __future__ import annotations

import httpx
import pytest

from nss_keycloak.config import Settings
from nss_keycloak.infra.keycloak.rest_client import KeycloakAdminClient
from nss_keycloak.nss.hooks import KeycloakNss
from nss_keycloak.security.token import CredentialClient, TokenManager
from tests.keycloak_fakes import FakeKeycloak, VirtualClock, build_settings, make_group, make_user


@pytest.fixture
def settings() -> Settings:
    """Settings using the password grant."""
    return build_settings()


@pytest.fixture
def client_credentials_settings() -> Settings:
    """Settings without user credentials (client credentials grant)."""
    return build_settings(username=None, password=None)


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def fake_keycloak() -> FakeKeycloak:
    """Realm with two users and two groups.

    group01 (gid 500) contains user01, group02 (gid 501) contains user02.
    """
    fake = FakeKeycloak()
    user01 = make_user(
        "user01", 1000, 500, homedirectory="/home/user01", defaultshell="/bin/bash"
    )
    user02 = make_user(
        "user02", 1001, 501, homedirectory="/home/user02", defaultshell="/bin/bash"
    )
    fake.users = [user01, user02]
    fake.groups = [make_group("g-01", "group01", 500), make_group("g-02", "group02", 501)]
    fake.members = {"g-01": [user01], "g-02": [user02]}
    return fake


@pytest.fixture
def http_client(fake_keycloak: FakeKeycloak) -> httpx.Client:
    client = httpx.Client(transport=httpx.MockTransport(fake_keycloak.handler))
    yield client
    client.close()


@pytest.fixture
def admin_client(settings: Settings, http_client: httpx.Client) -> KeycloakAdminClient:
    return KeycloakAdminClient(settings.keycloak, http_client)


@pytest.fixture
def token_manager(
    settings: Settings, http_client: httpx.Client, clock: VirtualClock
) -> TokenManager:
    return TokenManager(CredentialClient(settings.keycloak, http_client, clock=clock))


@pytest.fixture
def nss(settings: Settings, http_client: httpx.Client, clock: VirtualClock) -> KeycloakNss:
    return KeycloakNss.from_settings(settings, http_client=http_client, clock=clock)
