"""Keycloak NSS resolver.

Resolves POSIX users and groups from a Keycloak realm through the admin
REST API, mapping Keycloak attributes to passwd/group fields.
"""

__version__ = "0.1.0"

from nss_keycloak.config import Settings, get_config_path, load_settings, load_settings_from_file

__all__ = [
    "Settings",
    "__version__",
    "get_config_path",
    "load_settings",
    "load_settings_from_file",
]
