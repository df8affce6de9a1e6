from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or a `.env` file.

    Database settings come in two flavours: the plain `DB_*` keys used by the
    running service and the `TEST_DB_*` keys used for isolated test runs.
    """
    APP_NAME: str = "Product Catalog API"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Database
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "products"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "password"
    DATABASE_URL: Optional[str] = None

    # Test database
    TEST_DB_HOST: str = "localhost"
    TEST_DB_PORT: int = 5432
    TEST_DB_NAME: str = "products_test"
    TEST_DB_USER: str = "postgres"
    TEST_DB_PASSWORD: str = "password"
    TEST_DATABASE_URL: Optional[str] = None

    # Connection pool
    DB_POOL_SIZE: int = 20
    DB_POOL_TIMEOUT: float = 2.0  # seconds to wait for a free connection
    DB_POOL_RECYCLE: int = 30  # seconds before an idle connection is replaced

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    def database_url(self, is_test: bool = False) -> str:
        """
        Build the database URL for the service or for the test database.

        An explicit `DATABASE_URL` / `TEST_DATABASE_URL` wins over the
        individual host/port/name/credential keys.
        """
        prefix = "TEST_" if is_test else ""
        explicit = getattr(self, f"{prefix}DATABASE_URL")
        if explicit:
            return explicit

        url = URL.create(
            "postgresql+asyncpg",
            username=getattr(self, f"{prefix}DB_USER"),
            password=getattr(self, f"{prefix}DB_PASSWORD"),
            host=getattr(self, f"{prefix}DB_HOST"),
            port=getattr(self, f"{prefix}DB_PORT"),
            database=getattr(self, f"{prefix}DB_NAME"),
        )
        return url.render_as_string(hide_password=False)


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings."""
    return Settings()
