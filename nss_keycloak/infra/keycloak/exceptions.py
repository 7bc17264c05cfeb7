"""Keycloak client exceptions.

Strongly-typed exceptions for the Keycloak admin and token clients.
Maps low-level network/HTTP errors and attribute mapping failures to
domain-level exceptions.

Exception hierarchy:
- KeycloakError (base)
  - KeycloakTransportError (network/timeout)
    - KeycloakTimeoutError
    - KeycloakNetworkError
  - KeycloakProtocolError (non-2xx responses, unparsable JSON)
  - AuthError (token acquisition or refresh failed)
  - MappingError (attribute mapping failures)
    - MissingAttributeError
    - AmbiguousAttributeError
    - InvalidAttributeError
"""


class KeycloakError(Exception):
    """Base exception for all Keycloak client errors."""

    pass


# Transport errors
class KeycloakTransportError(KeycloakError):
    """Base exception for connection/network failures."""

    pass


class KeycloakTimeoutError(KeycloakTransportError):
    """Raised when a request times out."""

    pass


class KeycloakNetworkError(KeycloakTransportError):
    """Raised for network connectivity issues (DNS, TCP connection, etc)."""

    pass


# Protocol errors
class KeycloakProtocolError(KeycloakError):
    """Raised for non-success HTTP responses or bodies that are not valid JSON.

    Attributes:
        status_code: HTTP status code (None when the status was fine but the body was not)
        response_body: Raw response body (if available)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class AuthError(KeycloakError):
    """Raised when a token could not be obtained or refreshed.

    The underlying transport or protocol error is chained as ``__cause__``.
    """

    pass


# Mapping errors
class MappingError(KeycloakError):
    """Base exception for attribute mapping failures.

    Attributes:
        attribute: Name of the provider attribute that failed to map
    """

    def __init__(self, message: str, attribute: str):
        super().__init__(message)
        self.attribute = attribute


class MissingAttributeError(MappingError):
    """Raised when a required attribute is absent."""

    def __init__(self, attribute: str):
        super().__init__(f"Missing required attribute {attribute}", attribute)


class AmbiguousAttributeError(MappingError):
    """Raised when an attribute carries more than one value."""

    def __init__(self, attribute: str, count: int):
        super().__init__(f"Multiple values ({count}) for attribute {attribute}", attribute)
        self.count = count


class InvalidAttributeError(MappingError):
    """Raised when an attribute value cannot be converted (e.g. non-numeric uid)."""

    def __init__(self, attribute: str, value: str):
        super().__init__(f"Invalid value {value!r} for attribute {attribute}", attribute)
        self.value = value
