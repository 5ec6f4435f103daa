"""Configuration management for sqlift."""

import os
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.sqlift/.env
    """
    # Current directory
    if os.path.exists(".env"):
        return ".env"

    # User config directory
    user_env = Path.home() / ".sqlift" / ".env"
    if user_env.exists():
        return str(user_env)

    return None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file_encoding="utf-8", extra="ignore")

    # Database connection
    db_host: str = Field(
        default="localhost",
        description="Database server host"
    )
    db_port: int = Field(
        default=5432,
        description="Database server port"
    )
    db_name: Optional[str] = Field(
        default=None,
        description="Database name to connect to"
    )
    db_user: Optional[str] = Field(
        default=None,
        description="Database user"
    )
    db_password: Optional[str] = Field(
        default=None,
        description="Database password"
    )

    # Generation defaults
    sqlift_schema: str = Field(
        default="public",
        description="Database schema to introspect when --schema is not given"
    )

    def connection_fields(self) -> Dict[str, Optional[str]]:
        return {
            "DB_NAME": self.db_name,
            "DB_USER": self.db_user,
            "DB_PASSWORD": self.db_password,
        }

    def require_connection(self):
        """Check that everything needed to connect is set.

        Raises:
            ConfigError: one or more connection variables are missing
        """
        missing = [name for name, value in self.connection_fields().items() if not value]
        if missing:
            raise ConfigError(
                f"Missing database connection settings: {', '.join(missing)}",
                details={"missing": missing},
            )

    def _dsn(self, password: str) -> str:
        user = quote(self.db_user or "", safe="")
        name = quote(self.db_name or "", safe="")
        return f"postgresql://{user}:{password}@{self.db_host}:{self.db_port}/{name}"

    def postgres_dsn(self) -> str:
        """Connection URL for psycopg2."""
        self.require_connection()
        return self._dsn(quote(self.db_password or "", safe=""))

    def redacted_dsn(self) -> str:
        """Connection URL with the password masked, for display."""
        return self._dsn("****" if self.db_password else "")


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Load settings from the environment and a .env file.

    Args:
        env_file: Explicit .env path; otherwise ./.env then ~/.sqlift/.env

    Raises:
        ConfigError: the env file does not exist or a value fails validation
    """
    if env_file is not None and not os.path.exists(env_file):
        raise ConfigError(f"Env file not found: {env_file}", details={"env_file": env_file})
    try:
        return Settings(_env_file=env_file or _find_env_file())
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigError(
            f"Invalid configuration: {'; '.join(errors)}",
            details={"errors": errors},
        ) from e
