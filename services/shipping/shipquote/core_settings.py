from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "shipping"
    POSTGRES_USER: str = "shipping"
    POSTGRES_PASSWORD: str = "shipping"
    # Overrides the composed Postgres URL (sqlite in tests)
    DATABASE_URL: Optional[str] = None
    DB_TIMEOUT_SECONDS: int = 5

    REDIS_URL: Optional[str] = None
    REDIS_TIMEOUT_SECONDS: float = 1.0

    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 15
    # An unreachable revocation store lets credentials through when true
    TOKEN_REVOCATION_FAIL_OPEN: bool = True
    PASSWORD_MIN_LENGTH: int = 6
    BCRYPT_ROUNDS: int = 10

    VOLUME_WEIGHT_DIVISOR: int = 2500
    TRACKING_PREFIX: str = "ENV"
    TRACKING_MAX_ATTEMPTS: int = 5

    CACHE_TTL_USER_SHIPMENTS: int = 300
    CACHE_TTL_SHIPMENT: int = 600
    CACHE_TTL_QUOTATION: int = 1800

    LOOKUP_RETRY_ATTEMPTS: int = 3
    LOOKUP_RETRY_BACKOFF_SECONDS: float = 0.1

    RATE_LIMIT_WINDOW_SECONDS: int = 900
    RATE_LIMIT_DEFAULT: int = 300
    RATE_LIMIT_AUTH: int = 10

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
