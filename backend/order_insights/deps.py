"""Dependency providers and settings management."""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, Request, status
from pydantic_settings import BaseSettings, SettingsConfigDict

from .security import SIGNATURE_HEADER, verify_signature

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    # Shared with the processing function; signs every cross-service request
    HMAC_SECRET: Optional[str] = None

    # Admin GraphQL version used by the customer-data route
    SHOPIFY_API_VERSION: str = "2024-10"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


@dataclass
class SignedBody:
    """Raw request body plus the outcome of its signature check.

    Routers return `status_code`/`error` in their own response shape when
    `error` is set, and only parse `raw` otherwise.
    """

    raw: bytes
    status_code: int = status.HTTP_200_OK
    error: Optional[str] = None

    @property
    def verified(self) -> bool:
        return self.error is None


async def get_signed_body(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> SignedBody:
    """Read the raw body and verify its X-Shopify-Hmac-SHA256 signature.

    The digest is computed over the exact received bytes, before any parsing.
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    route = request.url.path

    if not signature:
        logger.error(f"[SIGNATURE] Missing signature header on {route}")
        return SignedBody(body, status.HTTP_401_UNAUTHORIZED, "Missing signature")

    if not settings.HMAC_SECRET:
        logger.error("[SIGNATURE] HMAC_SECRET environment variable not set")
        return SignedBody(body, status.HTTP_500_INTERNAL_SERVER_ERROR, "Server configuration error")

    if not verify_signature(body, signature, settings.HMAC_SECRET):
        return SignedBody(body, status.HTTP_401_UNAUTHORIZED, "Invalid signature")

    return SignedBody(body)
