from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PLACEHOLDER_JWT_SECRET = "change-this-to-a-secure-random-string"


class Settings(BaseSettings):
    """Runtime configuration, read from the environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "NetPad Workflows API"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True
    shutdown_grace_period: int = 30

    # PostgreSQL
    database_url: str
    database_migrations_url: str | None = None  # Direct (non-pooled) URL for Alembic
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full
    database_statement_cache_size: int = 100  # 0 behind pgbouncer
    database_lock_timeout_ms: int = 5000

    # Redis is optional: rate limit buckets fall back to process memory
    redis_url: str | None = None
    redis_pool_size: int = 10
    redis_connect_timeout_seconds: float = 2.0
    redis_retry_interval_seconds: int = 30

    # Temporal runs queue maintenance only
    temporal_host: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_queue_prefix: str = "netpad"
    maintenance_schedule: str | None = None  # Cron, e.g. "*/15 * * * *"; unset disables it

    # Dashboard users present bearer tokens minted by the identity service
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    log_user_emails: bool = False

    # Executors authenticate with X-Worker-Secret; internal endpoints answer 503 when unset
    worker_secret: str | None = None

    # Admission and the job queue
    queue_max_pending: int = Field(default=100, gt=0)  # pending + processing jobs per organization
    job_lock_timeout_seconds: int = Field(default=300, gt=0)

    # Retention for queue maintenance
    job_retention_days: int = 7
    log_retention_days: int = 7
    execution_retention_days: int = 30

    # Log lines returned by execution reads
    execution_log_limit: int = 500
    listing_log_limit: int = 100

    # HTTP edge
    cors_origins: list[str] = ["http://localhost:3000"]
    csp_production: str = "default-src 'self'; frame-ancestors 'none'"  # Used when docs are off
    metrics_api_key: str | None = None  # /metrics requires X-Metrics-Key when set
    global_rate_limit_per_second: int = 10
    global_rate_limit_burst: int = 20
    public_rate_limit: str = "30/minute"

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if v == _PLACEHOLDER_JWT_SECRET:
            raise ValueError(
                "JWT_SECRET_KEY still has the example value. "
                "Generate one with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Credentials are allowed cross-origin, so origins must be explicit."""
        if "*" in v:
            raise ValueError("CORS_ORIGINS cannot contain '*'; list the dashboard origins instead")
        return v

    @field_validator("worker_secret")
    @classmethod
    def validate_worker_secret(cls, v: str | None) -> str | None:
        if v is not None and len(v) < 16:
            raise ValueError("WORKER_SECRET must be at least 16 characters")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
