"""Observability infrastructure for the Keycloak NSS resolver.

Provides structured logging with per-lookup correlation IDs.
"""

from nss_keycloak.infra.observability.logging import lookup_scope, setup_logging

__all__ = [
    "lookup_scope",
    "setup_logging",
]
