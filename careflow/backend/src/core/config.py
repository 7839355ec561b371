"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    database_url: str = Field(
        default="sqlite:///./careflow.db", alias="DATABASE_URL"
    )
    financial_isolation_level: str = Field(
        default="SERIALIZABLE", alias="FINANCIAL_ISOLATION_LEVEL"
    )
    invoice_number_max_attempts: int = Field(
        default=3, alias="INVOICE_NUMBER_MAX_ATTEMPTS", ge=1
    )
    invoice_payment_terms_days: int = Field(
        default=30, alias="INVOICE_PAYMENT_TERMS_DAYS", ge=0
    )
    compliance_window_days: int = Field(
        default=90, alias="COMPLIANCE_WINDOW_DAYS", ge=1
    )
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    redis_ca_cert_path: str = Field(
        default="certs/redis_ca.pem", alias="REDIS_CA_CERT_PATH"
    )
    celery_broker_url: str | None = Field(
        default=None, alias="CELERY_BROKER_URL"
    )
    celery_result_backend: str | None = Field(
        default=None, alias="CELERY_RESULT_BACKEND"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    def get(self, key: str, default: object | None = None) -> object | None:
        """Dictionary-style access to configuration values."""

        return self.model_dump(by_alias=True).get(key, default)

    @property
    def broker_url(self) -> str:
        """Return the Celery broker URL, defaulting to Redis."""

        return self.celery_broker_url or self.redis_url

    @property
    def result_backend(self) -> str:
        """Return the Celery result backend, defaulting to the Redis URL."""

        if self.celery_result_backend:
            return self.celery_result_backend
        return self.redis_url


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
