"""
Configuration management for tablewright.

Process configuration comes from the environment (and an optional .env file)
through Pydantic BaseSettings. Connection credentials are then resolved into
an explicit DatabaseSettings value that the caller hands to QueryEngine; the
engine itself never consults process-wide state unless it is given nothing.

Environment variables use the TW_ prefix (TW_DATABASE_HOST,
TW_DATABASE_NAME, ...). LOG_LEVEL, LOG_TO_FILE and LOG_FILE_DIR are read
without a prefix so they can be shared with the host application.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tablewright.exceptions import MissingConnectionSettingError

# .env is resolved relative to the project root unless TW_ENV_FILE points elsewhere
PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"


def _resolve_env_file() -> Path:
    override = os.getenv("TW_ENV_FILE")
    if not override:
        return DEFAULT_ENV_FILE
    candidate = Path(override).expanduser()
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


SETTINGS_ENV_FILE = _resolve_env_file()


class DatabaseSettings:
    """
    Connection parameters for one engine instance.

    Either the individual components (host, port, user, password, db) or a
    full SQLAlchemy ``uri`` may be given; a ``uri`` wins when both are set.
    ``db`` is also the catalog schema the engine validates against.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        user: str = "",
        password: str = "",
        db: str = "",
        driver: str = "mysql+pymysql",
        uri: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.db = db
        self.driver = driver
        self.uri = uri

    def validate(self) -> "DatabaseSettings":
        """
        Check that enough is set to open a connection.

        Raises:
            MissingConnectionSettingError: If host, user or db is empty and
                no uri was supplied
        """
        if self.uri:
            return self
        for setting in ("host", "user", "db"):
            if not getattr(self, setting):
                raise MissingConnectionSettingError(setting)
        return self

    def get_connection_string(self) -> str:
        """SQLAlchemy URL for these settings."""
        if self.uri:
            return self.uri
        credentials = f"{self.user}:{self.password}" if self.password else self.user
        return f"{self.driver}://{credentials}@{self.host}:{self.port}/{self.db}"

    def __repr__(self) -> str:
        return (
            f"DatabaseSettings(host={self.host!r}, port={self.port!r}, "
            f"user={self.user!r}, db={self.db!r}, driver={self.driver!r})"
        )


class Settings(BaseSettings):
    """
    Environment-backed settings for tablewright.

    Fields map onto TW_-prefixed variables, e.g. TW_DATABASE_NAME sets
    ``database_name``. Logging fields use unprefixed aliases.
    """

    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level (uppercase)",
    )
    log_to_file: bool = Field(
        default=False,
        validation_alias="LOG_TO_FILE",
        description="Also write JSON logs to a daily rotating file",
    )
    log_file_dir: str = Field(
        default="logs",
        validation_alias="LOG_FILE_DIR",
        description="Directory for rotating log files",
    )
    log_statement_max_length: int = Field(
        default=200,
        description="SQL text longer than this is truncated in log events",
    )

    database_url: Optional[str] = Field(
        default=None,
        description="Complete SQLAlchemy URL; overrides the component fields",
    )
    database_host: str = Field(default="localhost", description="Database host")
    database_port: int = Field(default=3306, description="Database port")
    database_user: str = Field(default="root", description="Database user")
    database_password: str = Field(default="", description="Database password")
    database_name: str = Field(
        default="", description="Database whose catalog backs schema validation"
    )
    database_driver: str = Field(
        default="mysql+pymysql", description="SQLAlchemy dialect+driver prefix"
    )
    pool_pre_ping: bool = Field(
        default=True, description="Test pooled connections before use"
    )

    screen_implicit_commits: bool = Field(
        default=True,
        description="Reject batch statements that would implicitly commit",
    )
    upsert_on_duplicate: bool = Field(
        default=True,
        description="Append ON DUPLICATE KEY UPDATE to inserts by default",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    def database_settings(self) -> DatabaseSettings:
        """Build the explicit connection struct handed to QueryEngine."""
        return DatabaseSettings(
            host=self.database_host,
            port=self.database_port,
            user=self.database_user,
            password=self.database_password,
            db=self.database_name,
            driver=self.database_driver,
            uri=self.database_url,
        )

    model_config = SettingsConfigDict(
        env_prefix="TW_",
        env_file=str(SETTINGS_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Settings from the environment, built once per process (tests clear the cache)."""
    return Settings()
