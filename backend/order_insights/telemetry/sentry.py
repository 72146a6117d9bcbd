"""
Sentry Error Tracking
=====================

Centralized error tracking for both runtimes: the ingestion service
(FastAPI) and the order-event processing function (AWS Lambda).

Related files:
- order_insights/main.py: Initializes Sentry on app startup
- order_insights/pipeline/handler.py: Initializes Sentry once per cold start
- order_insights/routers/*.py: Unexpected errors captured with shop context

Environment Variables:
- SENTRY_DSN: Sentry project DSN (Sentry stays off when unset)
- ENVIRONMENT: Environment name (production, staging, development)
- RELEASE_VERSION: Release identifier (set via CI/CD)
"""

from __future__ import annotations

import os
import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.aws_lambda import AwsLambdaIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = logging.getLogger(__name__)

_initialized = False


def get_sentry_dsn() -> Optional[str]:
    """Get Sentry DSN from environment variable."""
    return os.environ.get("SENTRY_DSN")


def _integrations(runtime: str) -> list:
    logging_integration = LoggingIntegration(
        level=logging.INFO,         # Capture INFO+ as breadcrumbs
        event_level=logging.ERROR,  # Send ERROR+ as events
    )
    if runtime == "lambda":
        return [AwsLambdaIntegration(timeout_warning=True), logging_integration]
    return [
        FastApiIntegration(transaction_style="endpoint"),
        SqlalchemyIntegration(),
        logging_integration,
    ]


def init_sentry(runtime: str = "api") -> bool:
    """
    Initialize Sentry SDK.

    Safe to call more than once; only the first call configures the SDK.

    Args:
        runtime: "api" for the FastAPI service, "lambda" for the processing function

    Returns:
        True if Sentry is active, False otherwise.
    """
    global _initialized

    if _initialized:
        return True

    dsn = get_sentry_dsn()
    if not dsn:
        return False

    environment = os.environ.get("ENVIRONMENT", "development")

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            integrations=_integrations(runtime),
            traces_sample_rate=0.1,
            # Order payloads contain customer PII
            send_default_pii=False,
            release=os.environ.get("RELEASE_VERSION"),
        )
        _initialized = True
        logger.debug(f"[SENTRY] Initialized for {environment} environment ({runtime})")
        return True

    except Exception as e:
        logger.error(f"[SENTRY] Failed to initialize: {e}")
        return False


def set_shop_context(shop: str, order_id: Optional[str] = None) -> None:
    """Tag subsequent events with the shop (and order) being processed."""
    if not _initialized:
        return

    try:
        sentry_sdk.set_tag("shop", shop)
        if order_id:
            sentry_sdk.set_tag("order_id", order_id)
    except Exception as e:
        logger.debug(f"[SENTRY] Failed to set shop context: {e}")


def capture_exception(exception: Exception, extra: Optional[dict] = None) -> None:
    """
    Manually capture an exception to Sentry.

    Use this for exceptions that are caught and turned into an error
    response but should still be tracked.

    Args:
        exception: The exception to capture
        extra: Additional context to attach to the event
    """
    if not _initialized:
        return

    try:
        with sentry_sdk.push_scope() as scope:
            if extra:
                for key, value in extra.items():
                    scope.set_extra(key, value)
            sentry_sdk.capture_exception(exception)
    except Exception as e:
        logger.error(f"[SENTRY] Failed to capture exception: {e}")


def flush(timeout: float = 2.0) -> None:
    """Send pending events before a Lambda invocation freezes."""
    if not _initialized:
        return
    sentry_sdk.flush(timeout=timeout)
