"""Application settings loaded from the environment (and an optional .env file)."""

from typing import Optional

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from genledger.core.config.enums import Environment


class Settings(BaseSettings):
    """Pydantic settings class.

    Every value can be overridden through an environment variable of the same name.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    PROJECT_NAME: str = "genledger"
    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    RUN_ALEMBIC_MIGRATIONS: bool = False

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "genledger"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "genledger"
    db_pool_size: int = 20
    db_pool_max_overflow: int = 40

    # Stripe
    STRIPE_ENABLED: bool = False
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    # Provider price IDs keyed "<plan>_<region>", e.g. {"monthly_us": "price_1P..."}
    STRIPE_PRICE_IDS: dict[str, str] = {}
    FRONTEND_URL: str = "http://localhost:5173"

    # Ledger
    SIGNUP_CREDIT_GRANT: int = 100
    SIGNUP_VALIDITY_DAYS: int = 180
    DEFAULT_DAILY_LIMIT: int = 100
    CREDIT_UNIT_PRICE_CENTS: int = 100

    # Reservation timeout reconciliation
    RESERVATION_TIMEOUT_SECONDS: int = 600
    RESERVATION_SWEEP_INTERVAL_SECONDS: float = 60.0
    RESERVATION_SWEEP_ENABLED: bool = True

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:  # noqa: N802
        """Async (asyncpg) connection string built from the POSTGRES_* values."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_local(self) -> bool:
        """Whether the app runs on a developer machine."""
        return self.ENVIRONMENT in (Environment.LOCAL, Environment.TEST)
