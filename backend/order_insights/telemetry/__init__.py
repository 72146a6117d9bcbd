"""
Telemetry Module
================

Observability stack shared by the ingestion service and the processing
function.

Components:
- sentry.py: Error tracking
- llm_trace.py: LLM observability (Langfuse)

Environment Variables:
- SENTRY_DSN: Sentry project DSN
- LANGFUSE_PUBLIC_KEY: Langfuse project public key
- LANGFUSE_SECRET_KEY: Langfuse project secret key
- LANGFUSE_HOST: Langfuse host (optional, defaults to cloud.langfuse.com)

Every tool is optional: with its variables unset it stays off and the
helpers below become no-ops.

Usage:
    from order_insights.telemetry import init_observability, shutdown_observability

    init_observability()          # service startup / Lambda cold start
    shutdown_observability()      # service shutdown
"""

from order_insights.telemetry.sentry import (
    init_sentry,
    set_shop_context,
    capture_exception,
    flush as flush_sentry,
)
from order_insights.telemetry.llm_trace import (
    init_langfuse,
    log_generation,
    flush as flush_langfuse,
    shutdown as shutdown_langfuse,
)


def init_observability(runtime: str = "api") -> dict:
    """
    Initialize all observability tools.

    Args:
        runtime: "api" or "lambda", selects the Sentry integrations

    Returns:
        Dict with status of each tool initialization:
        {"sentry": True/False, "langfuse": True/False}
    """
    return {
        "sentry": init_sentry(runtime),
        "langfuse": init_langfuse(),
    }


def flush_observability() -> None:
    """Push pending events without tearing clients down (end of a Lambda invocation)."""
    flush_langfuse()
    flush_sentry()


def shutdown_observability() -> None:
    """Clean shutdown of all observability tools."""
    flush_sentry()
    shutdown_langfuse()


__all__ = [
    "init_observability",
    "flush_observability",
    "shutdown_observability",
    "init_sentry",
    "set_shop_context",
    "capture_exception",
    "flush_sentry",
    "init_langfuse",
    "log_generation",
    "flush_langfuse",
    "shutdown_langfuse",
]
