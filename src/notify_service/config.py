from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300
    DB_APPLICATION_NAME: str = "notify-service"

    REDIS_URL: str = "redis://localhost:6379/0"

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "info"

    CORS_ORIGINS: list[str] = ["*"]

    FANOUT_STREAM: str = "outbox.fanout"
    FANOUT_GROUP: str = "fanout-workers"
    FANOUT_DEAD_LETTER_STREAM: str = "outbox.fanout.dead"
    FANOUT_DEAD_LETTER_MAXLEN: int = 10_000
    FANOUT_DELAYED_KEY: str = "outbox.fanout.delayed"
    FANOUT_JOB_KEY_PREFIX: str = "outbox.fanout.job:"
    FANOUT_JOB_ID_TTL_SECONDS: int = 3600
    FANOUT_MAX_ATTEMPTS: int = 3
    FANOUT_BACKOFF_BASE_MS: int = 2000
    FANOUT_BACKOFF_MAX_MS: int = 60_000
    FANOUT_LEASE_MS: int = 60_000
    FANOUT_BLOCK_MS: int = 5000

    WORKER_CONCURRENCY: int = 5
    RECIPIENT_WRITE_CONCURRENCY: int = 10

    SWEEP_INTERVAL_SECONDS: float = 30.0
    SWEEP_MIN_AGE_SECONDS: int = 300
    SWEEP_BATCH_SIZE: int = 100

    NOTIFICATIONS_MAX_PAGE_SIZE: int = 50

    WS_HEARTBEAT_SECONDS: int = 30

    REDIS_PUBSUB_CHANNEL: str = "notifications.relay"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
