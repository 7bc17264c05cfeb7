"""Configuration module for the Keycloak NSS resolver.

Implements Pydantic v2 Settings for configuration management with support for:
- TOML (or YAML) configuration files with [keycloak] and [mapping] tables
- Environment variables (NSSKEYCLOAK_* prefix, "__" for nested fields)
- Fail-fast validation at startup

The configuration file path is taken from NSSKEYCLOAK_CONFIG_FILE and
defaults to /etc/nss-keycloak/config.toml.
"""

import os
import warnings
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_ENV = "NSSKEYCLOAK_CONFIG_FILE"
CONFIG_DEFAULT_FILE = "/etc/nss-keycloak/config.toml"


class KeycloakSettings(BaseModel):
    """Connection settings for the Keycloak server.

    If both username and password are set, the password grant is used to
    obtain tokens. Otherwise the client credentials grant is used.
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Keycloak base URL (e.g. http://localhost:8080/auth)")
    realm: str = Field(min_length=1, description="Realm holding users and groups")
    client_id: str = Field(min_length=1, description="OAuth client ID")
    client_secret: str = Field(description="OAuth client secret")

    username: str | None = Field(default=None, description="Optional service user name")
    password: str | None = Field(default=None, description="Optional service user password")

    request_timeout_seconds: float = Field(
        default=10.0, ge=1.0, le=120.0, description="Timeout for every HTTP request"
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL scheme and strip trailing slashes."""
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("url must start with http:// or https://")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_user_credentials(self) -> "KeycloakSettings":
        """Warn when only half of the user credentials are configured."""
        if bool(self.username) != bool(self.password):
            warnings.warn(
                "Only one of username/password is set, falling back to client credentials grant",
                UserWarning,
                stacklevel=2,
            )
        return self

    @property
    def uses_password_grant(self) -> bool:
        """Check if the password grant applies."""
        return bool(self.username) and bool(self.password)


class MappingSettings(BaseModel):
    """Names of the Keycloak attributes backing the POSIX fields."""

    model_config = ConfigDict(frozen=True)

    user_home: str = Field(description="Attribute holding the home directory")
    user_shell: str = Field(description="Attribute holding the login shell")
    user_gecos: str = Field(description="Attribute holding the gecos field")
    user_uid: str = Field(description="Attribute holding the numeric uid")
    user_gid: str = Field(description="Attribute holding the primary numeric gid")
    group_gid: str = Field(description="Group attribute holding the numeric gid")


class Settings(BaseSettings):
    """Application configuration.

    Configuration priority (later overrides earlier):
    1. Built-in defaults
    2. Environment variables (NSSKEYCLOAK_* prefix)
    3. Config file / explicit keyword arguments

    Example:
        settings = load_settings_from_file("/etc/nss-keycloak/config.toml")
        print(settings.keycloak.realm)
    """

    model_config = SettingsConfigDict(
        env_prefix="NSSKEYCLOAK_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    keycloak: KeycloakSettings
    mapping: MappingSettings

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )

    log_format: Literal["json", "text"] = Field(default="text", description="Log output format")

    def to_dict(self) -> dict:
        """Convert settings to dictionary, masking secrets."""
        data = self.model_dump()
        if data["keycloak"].get("client_secret"):
            data["keycloak"]["client_secret"] = "***REDACTED***"
        if data["keycloak"].get("password"):
            data["keycloak"]["password"] = "***REDACTED***"
        return data


def get_config_path() -> str:
    """Get the configuration file path.

    Returns:
        Value of NSSKEYCLOAK_CONFIG_FILE, or /etc/nss-keycloak/config.toml if unset
    """
    return os.environ.get(CONFIG_ENV, CONFIG_DEFAULT_FILE)


def load_settings_from_file(config_file: Path | str) -> Settings:
    """Load settings from a TOML or YAML configuration file.

    Args:
        config_file: Path to configuration file

    Returns:
        Settings instance loaded from file

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file format is invalid

    Example:
        settings = load_settings_from_file("tests/files/config.toml")
    """
    config_path = Path(config_file)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    if suffix in [".yaml", ".yml"]:
        import yaml

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}
    elif suffix == ".toml":
        import tomllib

        with open(config_path, "rb") as f:
            config_data = tomllib.load(f)
    else:
        raise ValueError(f"Unsupported config file format: {suffix}. Use .toml, .yaml or .yml")

    return Settings(**config_data)


def load_settings() -> Settings:
    """Load settings from the file named by NSSKEYCLOAK_CONFIG_FILE (or the default path)."""
    return load_settings_from_file(get_config_path())
