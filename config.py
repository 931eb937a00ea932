"""
Configuration for the identity reconciliation service.

Values come from environment variables (or a local ``.env`` file) and are
passed explicitly into the store and the service; no connection parameter is
hardcoded anywhere else.
"""
import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Contact store connection options (``IDENTITY_DB_*``)."""

    model_config = SettingsConfigDict(env_prefix="IDENTITY_DB_", env_file=".env", extra="ignore")

    backend: Literal["sqlite", "postgres"] = Field(default="sqlite", description="Store engine")
    sqlite_path: str = Field(default="contacts.db", description="SQLite database file")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: Optional[str] = Field(default=None, description="PostgreSQL user")
    password: Optional[str] = Field(default=None, description="PostgreSQL password")
    dbname: Optional[str] = Field(default=None, description="PostgreSQL database name")
    ssl_mode: str = Field(default="require", description="libpq sslmode")

    def connection_kwargs(self) -> dict:
        kwargs = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "dbname": self.dbname,
            "sslmode": self.ssl_mode,
        }
        return {key: value for key, value in kwargs.items() if value is not None}


class Settings(BaseSettings):
    """Service settings (``IDENTITY_*``)."""

    model_config = SettingsConfigDict(env_prefix="IDENTITY_", env_file=".env", extra="ignore")

    api_host: str = Field(default="0.0.0.0", description="Bind address for uvicorn")
    api_port: int = Field(default=8000, description="Bind port for uvicorn")
    log_level: str = Field(default="INFO", description="Root log level")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO", force: bool = False) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=force,
    )
