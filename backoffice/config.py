"""Application configuration management."""
from pydantic import model_validator, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from decimal import Decimal
from functools import lru_cache
from sqlalchemy.engine.url import make_url
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./backoffice.db"
DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Redis (optional, falls back to in-memory)
    redis_url: str = ""

    # Application
    frontend_url: str = "http://localhost:3000"
    environment: str = "development"
    secret_key: str = DEFAULT_SECRET_KEY
    jwt_algorithm: str = "HS256"
    access_token_exp_minutes: int = 12 * 60  # One staff shift

    # Players
    inactivity_window_minutes: int = 5  # No ledger activity for this long flips Active -> Inactive
    inactivity_sweep_enabled: bool = True
    inactivity_sweep_interval_seconds: int = 60
    new_player_window_minutes: int = 2  # Dashboard "new players" window

    # Games
    low_balance_threshold: Decimal = Decimal("1000.00")

    # Dashboard
    dashboard_cache_ttl_seconds: float = 15.0

    # Staff credentials
    min_password_length: int = 6
    password_change_rate_limit: int = 5
    password_change_rate_window_seconds: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, value: str) -> str:
        """Force async drivers so hosted Postgres URLs work with the async engine."""
        if not value:
            return SQLITE_LOCAL_URL

        url = make_url(value)
        if url.drivername in ("postgres", "postgresql", "postgresql+psycopg2"):
            url = url.set(drivername="postgresql+asyncpg")
        elif url.drivername == "sqlite":
            url = url.set(drivername="sqlite+aiosqlite")
        return url.render_as_string(hide_password=False)

    @field_validator("environment")
    @classmethod
    def normalize_environment(cls, value: str) -> str:
        return (value or "development").strip().lower()

    @model_validator(mode="after")
    def validate_secret_key(self):
        if self.environment == "production" and self.secret_key == DEFAULT_SECRET_KEY:
            raise ValueError("SECRET_KEY must be set in production")
        if self.secret_key == DEFAULT_SECRET_KEY:
            logging.getLogger(__name__).warning("Using default SECRET_KEY; set SECRET_KEY outside local development")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
