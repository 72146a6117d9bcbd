"""Processing function settings.

Resolved once at the Lambda entry point and passed explicitly to every
component that needs a value. Nothing below the entry point reads the
process environment.
"""

from datetime import timedelta
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"


class PipelineSettings(BaseSettings):
    """Settings loaded from environment or .env."""

    # AI provider
    OPENAI_API_KEY: str
    OPENAI_MODEL: str = DEFAULT_OPENAI_MODEL

    # Ingestion service (base URL + shared signing secret)
    APP_URL: str
    HMAC_SECRET: str

    # Used when event metadata lacks X-Shopify-Shop-Domain
    SHOPIFY_SHOP_DOMAIN: Optional[str] = None

    # Prompt privacy: customer first name is only sent to the AI when enabled
    INCLUDE_CUSTOMER_NAME: bool = False

    # Heuristic classification: customer created this close to the order => first-time
    FIRST_ORDER_WINDOW_SECONDS: int = 60

    HTTP_TIMEOUT_SECONDS: float = 10.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("APP_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("OPENAI_MODEL", mode="before")
    @classmethod
    def _default_model(cls, value: Optional[str]) -> str:
        return value or DEFAULT_OPENAI_MODEL

    @property
    def first_order_window(self) -> timedelta:
        return timedelta(seconds=self.FIRST_ORDER_WINDOW_SECONDS)


def load_pipeline_settings() -> PipelineSettings:
    """Build settings from the environment.

    Raises:
        pydantic.ValidationError: If a required setting is missing
    """
    return PipelineSettings()  # type: ignore[call-arg]
