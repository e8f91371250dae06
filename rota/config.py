from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"

STORE_BACKENDS = ("redis", "memory", "offline")


@dataclass(frozen=True, slots=True)
class RotaConfig:
    """
    Explicit runtime configuration for the rota core.

    Built once at startup from Settings and passed to the store, the claim
    service and the calendar callers. Nothing below the app layer reads
    environment variables.
    """

    app_id: str
    collection_key: str
    tasks: tuple[str, ...]
    weeks_to_display: int
    timezone: str
    store_backend: str
    redis_url: str | None = None

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def offline(self) -> bool:
        """True when no live store can ever be reached with this config."""
        if self.store_backend == "offline":
            return True
        return self.store_backend == "redis" and not self.redis_url


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Rota settings
    ROTA_APP_ID: str = "NETLIFY_HOSTED_APP"
    ROTA_COLLECTION_NAME: str = "family_care_rota_v2"
    ROTA_TASKS: list[str] = ["Breakfast", "Lunch", "Dinner"]
    ROTA_WEEKS_TO_DISPLAY: int = 8
    ROTA_TIMEZONE: str = "Europe/London"
    ROTA_STORE_BACKEND: str = "redis"

    # Auth settings (HS256 shared secret; unset means anonymous bearer sessions)
    ROTA_JWT_SECRET: str | None = None

    # Redis settings
    REDIS_URL: str | None = None

    # =================================================================
    # REDIS POOL SETTINGS
    # =================================================================
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_SOCKET_TIMEOUT: float = 10.0
    REDIS_HEALTH_CHECK_INTERVAL: int = 30

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("ROTA_STORE_BACKEND")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        backend = value.strip().lower()
        if backend not in STORE_BACKENDS:
            raise ValueError(f"ROTA_STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}")
        return backend

    @field_validator("ROTA_WEEKS_TO_DISPLAY")
    @classmethod
    def _check_weeks(cls, value: int) -> int:
        if value < 1:
            raise ValueError("ROTA_WEEKS_TO_DISPLAY must be at least 1")
        return value

    def collection_path(self) -> str:
        """Shared collection path, stable for the lifetime of a deployment."""
        return f"artifacts/{self.ROTA_APP_ID}/public/data/{self.ROTA_COLLECTION_NAME}"

    def get_redis_pool_config(self) -> dict:
        """
        Get Redis pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "max_connections": self.REDIS_MAX_CONNECTIONS,
            "socket_connect_timeout": self.REDIS_SOCKET_TIMEOUT,
            "socket_timeout": self.REDIS_SOCKET_TIMEOUT,
            "health_check_interval": self.REDIS_HEALTH_CHECK_INTERVAL,
        }

        if self.environment == "development":
            # Smaller pool for local development
            config.update({"max_connections": min(self.REDIS_MAX_CONNECTIONS, 8)})

        return config

    def to_rota_config(self) -> RotaConfig:
        tasks = tuple(task.strip() for task in self.ROTA_TASKS if task.strip())
        if not tasks:
            raise ValueError("ROTA_TASKS must name at least one task")
        return RotaConfig(
            app_id=self.ROTA_APP_ID,
            collection_key=self.collection_path(),
            tasks=tasks,
            weeks_to_display=self.ROTA_WEEKS_TO_DISPLAY,
            timezone=self.ROTA_TIMEZONE,
            store_backend=self.ROTA_STORE_BACKEND,
            redis_url=self.REDIS_URL,
        )
