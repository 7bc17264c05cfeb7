"""Command-line interface for the Keycloak NSS resolver.

A getent-style front end for checking a configuration against a live
Keycloak realm:

    nss-keycloak passwd            # enumerate users
    nss-keycloak passwd user01     # lookup by name
    nss-keycloak group 500         # lookup by gid
    nss-keycloak token             # check that a token can be acquired

Exit codes: 0 success, 1 unavailable/try again or configuration error,
2 not found.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import TextIO

from nss_keycloak import __version__
from nss_keycloak.config import Settings, load_settings, load_settings_from_file
from nss_keycloak.infra.keycloak.exceptions import AuthError
from nss_keycloak.nss.hooks import GroupHooks, KeycloakNss, LookupResult, PasswdHooks, Response

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_UNAVAILABLE = 1
EXIT_NOT_FOUND = 2


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="nss-keycloak",
        description="Resolve POSIX users and groups from Keycloak",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Path to configuration file (TOML or YAML). "
        "Defaults to $NSSKEYCLOAK_CONFIG_FILE or /etc/nss-keycloak/config.toml",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )

    parser.add_argument(
        "--log-format",
        choices=["json", "text"],
        help="Log output format",
    )

    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="database", required=True)

    passwd_parser = subparsers.add_parser("passwd", help="Query the passwd database")
    passwd_parser.add_argument("key", nargs="?", help="User name or uid")

    group_parser = subparsers.add_parser("group", help="Query the group database")
    group_parser.add_argument("key", nargs="?", help="Group name or gid")

    subparsers.add_parser("token", help="Acquire an access token and report its lifetime")

    return parser


def load_config_from_args(parsed_args: argparse.Namespace) -> Settings:
    """Load settings from the config file and apply CLI overrides.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file is invalid
    """
    if parsed_args.config:
        settings = load_settings_from_file(parsed_args.config)
    else:
        settings = load_settings()

    cli_overrides = {}

    if parsed_args.log_level is not None:
        cli_overrides["log_level"] = parsed_args.log_level

    if parsed_args.log_format is not None:
        cli_overrides["log_format"] = parsed_args.log_format

    if cli_overrides:
        settings = Settings(**{**settings.model_dump(), **cli_overrides})

    return settings


def _exit_code(result: LookupResult) -> int:
    if result.status is Response.SUCCESS:
        return EXIT_SUCCESS
    if result.status is Response.NOT_FOUND:
        return EXIT_NOT_FOUND
    return EXIT_UNAVAILABLE


def _print_result(result: LookupResult, out: TextIO) -> int:
    if result.ok:
        entries = result.value if isinstance(result.value, list) else [result.value]
        for entry in entries:
            print(entry.to_line(), file=out)
    else:
        logger.info("Lookup returned %s", result.status.value)
    return _exit_code(result)


def run_passwd(nss: KeycloakNss, key: str | None, out: TextIO) -> int:
    hooks = PasswdHooks(nss)
    if key is None:
        result = hooks.get_all_entries()
    elif key.isascii() and key.isdigit():
        result = hooks.get_entry_by_uid(int(key))
    else:
        result = hooks.get_entry_by_name(key)
    return _print_result(result, out)


def run_group(nss: KeycloakNss, key: str | None, out: TextIO) -> int:
    hooks = GroupHooks(nss)
    if key is None:
        result = hooks.get_all_entries()
    elif key.isascii() and key.isdigit():
        result = hooks.get_entry_by_gid(int(key))
    else:
        result = hooks.get_entry_by_name(key)
    return _print_result(result, out)


def run_token(nss: KeycloakNss, out: TextIO) -> int:
    """Acquire a token and print its remaining lifetimes (never the token itself)."""
    try:
        nss.token_manager.get_access_token()
    except AuthError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_UNAVAILABLE

    grant = "password" if nss.settings.keycloak.uses_password_grant else "client_credentials"
    access_expires_in = nss.token_manager.access_token_expires_in()
    refresh_expires_in = nss.token_manager.refresh_token_expires_in()
    print(f"grant_type: {grant}", file=out)
    print(f"access_token_expires_in: {access_expires_in or 0:.0f}s", file=out)
    if refresh_expires_in is None:
        print("refresh_token: unavailable", file=out)
    else:
        print(f"refresh_token_expires_in: {refresh_expires_in:.0f}s", file=out)
    return EXIT_SUCCESS


def dispatch(nss: KeycloakNss, parsed_args: argparse.Namespace, out: TextIO) -> int:
    """Run the selected subcommand."""
    if parsed_args.database == "passwd":
        return run_passwd(nss, parsed_args.key, out)
    if parsed_args.database == "group":
        return run_group(nss, parsed_args.key, out)
    return run_token(nss, out)
