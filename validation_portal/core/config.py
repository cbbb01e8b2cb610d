from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """App settings loaded from environment variables (.env)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Survey Validation Portal"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # SECURITY (tokens are issued by the auth service, we only verify them)
    SECRET_KEY: str = "CHANGE_ME"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 12  # 12h

    # CORS
    CORS_ALLOW_ORIGINS: str = "*"  # "*" or "https://a.com,https://b.com"
    CORS_ALLOW_CREDENTIALS: bool = False

    # DATABASE / CACHE
    DATABASE_DSN: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    REDIS_URL: str = "redis://127.0.0.1:6379/0"
    CACHE_TTL_SECONDS: int = 300
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 2.0
    REDIS_RETRY_SECONDS: float = 30.0

    # PARTITION FAN-OUT
    PARTITION_READ_TIMEOUT_SECONDS: float = 10.0
    FANOUT_MAX_WORKERS: int = 16

    # PAGINATION
    SUBMISSIONS_DEFAULT_LIMIT: int = 1000
    STATS_DEFAULT_LIMIT: int = 10000
    MAX_PAGE_LIMIT: int = 50000

    # ACCESS POLICY
    # True: an admin with no survey assignments sees every active survey.
    # False: an empty assignment list means no surveys for every role.
    ADMIN_EMPTY_SCOPE_IS_UNRESTRICTED: bool = True

    # ANALYTICS
    BEST_PERFORMER_STRATEGY: str = "threshold"  # threshold | log_weighted
    BEST_PERFORMER_MIN_SUBMISSIONS: int = 10

    def cors_origins(self) -> list[str]:
        s = (self.CORS_ALLOW_ORIGINS or "").strip()
        if not s or s == "*":
            return ["*"]
        return [x.strip() for x in s.split(",") if x.strip()]


settings = Settings()
