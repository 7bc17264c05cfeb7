"""Main entry point for the nss-keycloak command.

This module:
1. Parses arguments and loads configuration
2. Sets up logging
3. Builds the resolver stack and runs the requested lookup
"""

import logging
import sys

from pydantic import ValidationError

from nss_keycloak.cli import (
    EXIT_UNAVAILABLE,
    create_argument_parser,
    dispatch,
    load_config_from_args,
)
from nss_keycloak.infra.observability.logging import setup_logging
from nss_keycloak.nss.hooks import KeycloakNss


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    parser = create_argument_parser()
    parsed_args = parser.parse_args(argv)

    try:
        settings = load_config_from_args(parsed_args)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_UNAVAILABLE

    setup_logging(level=settings.log_level, json_format=settings.log_format == "json")
    logger = logging.getLogger(__name__)
    logger.debug(
        "Loaded configuration",
        extra={"realm": settings.keycloak.realm, "config": settings.to_dict()},
    )

    nss = KeycloakNss.from_settings(settings)
    try:
        return dispatch(nss, parsed_args, sys.stdout)
    finally:
        nss.close()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
