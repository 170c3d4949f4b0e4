"""
Core Configuration Module
=========================

Centralized configuration management using Pydantic Settings.

Two layers:
- ``Settings``: process environment / ``.env`` values (mutable, loaded once).
- ``ClientConfig``: the immutable value a client is built from. It is
  validated exactly once, at construction, and raises ``InvalidConfig``
  instead of deferring failures to the first request.

Environment Variables:
- TSDB_URL: Server base URL (e.g. http://localhost:8086)
- TSDB_USERNAME / TSDB_PASSWORD: Optional basic auth credentials
- TSDB_TOKEN: Optional token auth (mutually exclusive with basic auth)
- TSDB_DATABASE: Default database for scripts
- TSDB_PRECISION: Default write precision (s, ms, us, ns)
- TSDB_TIMEOUT: Request timeout in seconds
"""

import logging
import os
from pathlib import Path
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tsdb_client.core.exceptions import InvalidConfig

logger = logging.getLogger(__name__)

CLIENT_VERSION = "0.1.0"
DEFAULT_USER_AGENT = f"tsdb-client/{CLIENT_VERSION}"


def get_secret(secret_name: str, env_var_name: Optional[str] = None) -> Optional[str]:
    """
    Read a secret from Docker Secrets or environment variable.

    Order of precedence:
    1. Docker Secret file at /run/secrets/{secret_name}
    2. Environment variable {ENV_VAR_NAME}_FILE pointing to a file
    3. Environment variable {ENV_VAR_NAME} directly

    Args:
        secret_name: Name of the secret file (without path)
        env_var_name: Environment variable name (if different from secret_name)

    Returns:
        Secret value or None if not found
    """
    if env_var_name is None:
        env_var_name = secret_name.upper()

    secret_path = Path(f"/run/secrets/{secret_name}")
    if secret_path.exists():
        try:
            return secret_path.read_text().strip()
        except OSError as e:
            logger.warning(f"⚠️ Failed to read secret from {secret_path}: {e}")

    file_env_var = f"{env_var_name}_FILE"
    if file_env_var in os.environ:
        file_path = Path(os.environ[file_env_var])
        if file_path.exists():
            try:
                return file_path.read_text().strip()
            except OSError as e:
                logger.warning(f"⚠️ Failed to read secret from {file_path}: {e}")

    return os.environ.get(env_var_name)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=False
    )

    # =================================================================
    # APPLICATION SETTINGS
    # =================================================================
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # =================================================================
    # SERVER SETTINGS
    # =================================================================
    TSDB_URL: str = "http://localhost:8086"
    TSDB_USERNAME: Optional[str] = None
    TSDB_PASSWORD: Optional[str] = None  # Will be loaded from secret
    TSDB_TOKEN: Optional[str] = None  # Will be loaded from secret
    TSDB_DATABASE: str = "telegraf"
    TSDB_PRECISION: str = "ns"

    # Connection settings
    TSDB_TIMEOUT: float = 10.0  # seconds
    TSDB_VERIFY_SSL: bool = True
    TSDB_USER_AGENT: str = DEFAULT_USER_AGENT

    def model_post_init(self, __context) -> None:
        """Load secrets from Docker secrets or environment after initialization."""
        password = get_secret("tsdb_password", "TSDB_PASSWORD")
        if password:
            self.TSDB_PASSWORD = password

        token = get_secret("tsdb_token", "TSDB_TOKEN")
        if token:
            self.TSDB_TOKEN = token

    def __repr__(self):
        return (
            f"Settings(environment={self.ENVIRONMENT}, "
            f"url={self.TSDB_URL}, "
            f"database={self.TSDB_DATABASE})"
        )


settings = Settings()


class ClientConfig(BaseModel):
    """
    Immutable connection configuration for a client.

    Example:
        >>> config = ClientConfig(url="http://localhost:8086", timeout=5)
        >>> client = TSDBClient(config)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    token: Optional[str] = Field(default=None, repr=False)
    timeout: float = Field(default=10.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    verify_ssl: bool = True

    def __init__(self, **data):
        try:
            super().__init__(**data)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "config"
            raise InvalidConfig(field, error["msg"]) from e

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        try:
            parsed = httpx.URL(value)
        except (httpx.InvalidURL, TypeError) as e:
            raise ValueError(f"unparseable URL: {e}") from e

        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"unsupported scheme '{parsed.scheme}'")
        if not parsed.host:
            raise ValueError("URL has no host")

        return value.rstrip("/")

    @model_validator(mode="after")
    def _validate_auth(self) -> "ClientConfig":
        if self.token and (self.username or self.password):
            raise ValueError("basic auth and token auth are mutually exclusive")
        if self.password and not self.username:
            raise ValueError("password given without username")
        return self

    @property
    def auth(self) -> Optional[httpx.BasicAuth]:
        """Basic auth object, or None when no username is configured."""
        if self.username:
            return httpx.BasicAuth(self.username, self.password or "")
        return None

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "ClientConfig":
        """Build a config from environment-backed ``Settings``."""
        source = source or settings
        return cls(
            url=source.TSDB_URL,
            username=source.TSDB_USERNAME or None,
            password=source.TSDB_PASSWORD or None,
            token=source.TSDB_TOKEN or None,
            timeout=source.TSDB_TIMEOUT,
            user_agent=source.TSDB_USER_AGENT,
            verify_ssl=source.TSDB_VERIFY_SSL,
        )
