from __future__ import annotations

import math
from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


def parse_port(raw: str | None) -> float | None:
    """
    Parse a port string into a finite number, or None if it is not one.
    """
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    No prefix; the variable names are shared with the deployment manifests.

    Examples:
      PORT=8080
      NODE_ENV=staging
      DB_HOST=db.internal DB_USER=app DB_PASSWORD=... DB_NAME=presenca

    Missing or invalid database settings never fail validation: they only
    switch `db_enabled` off so the service starts in degraded mode.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # General
    env: str = Field(
        "production",
        validation_alias=AliasChoices("NODE_ENV", "APP_ENV"),
        description="Deployment environment label.",
    )
    app_name: str = Field(
        "checkin-service",
        description="Human-friendly app name, added to every log line.",
    )
    log_level: str = Field(
        "INFO",
        description="Base log level (DEBUG, INFO, WARNING, ERROR).",
    )

    # HTTP
    host: str = Field(
        "0.0.0.0",
        description="Bind host.",
    )
    port: int = Field(
        8080,
        description="Bind port.",
    )

    # Metrics
    metrics_prefix: str = Field(
        "svc",
        description="Namespace for the service and default process metrics.",
    )

    # Database (optional)
    db_support: bool = Field(
        True,
        description="Whether database support is switched on for this deployment.",
    )
    db_host: str | None = Field(
        default=None,
        description="Postgres host. If not set, database routes answer 503.",
    )
    db_port: str = Field(
        "5432",
        description="Postgres port; must parse to a finite number.",
    )
    db_user: str | None = Field(default=None, description="Postgres user.")
    db_password: str | None = Field(default=None, description="Postgres password.")
    db_name: str | None = Field(default=None, description="Postgres database name.")

    # Pool tuning
    db_pool_size: int = Field(
        10,
        description="Maximum number of pooled connections.",
    )
    db_pool_timeout: float = Field(
        5.0,
        description="Seconds to wait for a free pooled connection.",
    )
    db_connect_timeout: float = Field(
        5.0,
        description="Seconds to wait when opening a new connection.",
    )
    db_pool_recycle: int = Field(
        30,
        description="Seconds after which an idle pooled connection is replaced.",
    )

    def db_disabled_reasons(self) -> List[str]:
        """
        Why the database is disabled; empty when it is enabled.
        """
        reasons: List[str] = []
        if not self.db_support:
            reasons.append("db_support_off")
        for name in ("db_host", "db_user", "db_password", "db_name"):
            if not getattr(self, name):
                reasons.append(f"{name}_missing")
        if parse_port(self.db_port) is None:
            reasons.append("db_port_invalid")
        return reasons

    @property
    def db_enabled(self) -> bool:
        return not self.db_disabled_reasons()

    @property
    def database_url(self) -> URL:
        """
        Async SQLAlchemy URL for the configured database.

        Only meaningful when `db_enabled` is true.
        """
        port = parse_port(self.db_port)
        return URL.create(
            "postgresql+asyncpg",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=int(port) if port is not None else None,
            database=self.db_name,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Cached singleton settings object.

    Usage:
        from checkin_service.config import get_settings
        settings = get_settings()
    """
    return Settings()
