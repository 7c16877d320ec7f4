from pydantic_settings import BaseSettings
from typing import List
from pydantic import model_validator


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./replenishops.db"
    ENVIRONMENT: str = "development"
    AUTO_CREATE_TABLES: bool = True
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"
    DEBUG: bool = True
    APP_NAME: str = "ReplenishOps"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    ENABLE_REQUEST_ID: bool = True
    ENABLE_REQUEST_LOGGING: bool = True
    ENABLE_SECURITY_HEADERS: bool = True
    STRICT_TRANSPORT_SECURITY_SECONDS: int = 31536000
    READINESS_CHECK_DATABASE: bool = True

    # Plan run orchestration
    PLAN_MAX_WORKERS: int = 4
    PAIR_TIMEOUT_SECONDS: float = 30.0
    PLAN_RUN_CADENCE_DAYS: int = 7
    PLAN_RUN_RETENTION_DAYS: int = 30
    STALE_RUN_MINUTES: int = 60

    # Recommendation / exception policy
    APPROVAL_THRESHOLD: float = 10000.0
    EXCESS_TRIGGER_MULTIPLIER: float = 3.0
    EXCESS_BASELINE_MULTIPLIER: float = 2.0
    PAST_DUE_RAISES_EXCEPTION: bool = False

    # Item policy defaults for pairs without a stored policy
    DEFAULT_SAFETY_STOCK_METHOD: str = "fixed"
    DEFAULT_SAFETY_STOCK_VALUE: float = 0.0
    DEFAULT_SERVICE_LEVEL: float = 0.95
    DEFAULT_LOT_SIZING_RULE: str = "lot_for_lot"
    DEFAULT_LEAD_TIME_DAYS: int = 14
    DEFAULT_ORDER_MULTIPLE: float = 1.0

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in {"prod", "production"}

    @model_validator(mode="after")
    def validate_production_safety(self):
        if self.PLAN_MAX_WORKERS < 1:
            raise ValueError("PLAN_MAX_WORKERS must be at least 1.")

        if not self.is_production:
            return self

        if "sqlite" in self.DATABASE_URL.lower():
            raise ValueError("SQLite is not allowed when ENVIRONMENT is production.")

        if self.AUTO_CREATE_TABLES:
            raise ValueError("AUTO_CREATE_TABLES must be false in production; use Alembic migrations.")

        return self


settings = Settings()
