"""
Langfuse LLM Observability
==========================

Tracing for the insight generation call.

Related files:
- order_insights/pipeline/ai_service.py: The traced OpenAI call
- order_insights/pipeline/handler.py: Flushes traces at the end of an invocation

Environment Variables:
- LANGFUSE_PUBLIC_KEY: Project public key (tracing stays off when unset)
- LANGFUSE_SECRET_KEY: Project secret key
- LANGFUSE_HOST: Langfuse host (default: https://cloud.langfuse.com)

Metrics Captured:
- Prompt messages and raw model response
- Latency
- Token usage (input/output/total)
- Order id and customer type
"""

from __future__ import annotations

import os
import logging
from typing import Optional, Dict, Any, Tuple

from langfuse import Langfuse

logger = logging.getLogger(__name__)


# Global Langfuse client
_langfuse_client: Optional[Langfuse] = None


def get_langfuse_config() -> Tuple[Optional[str], Optional[str], str]:
    """Get Langfuse configuration from environment.

    Returns:
        Tuple of (public_key, secret_key, host).
    """
    public_key = os.environ.get("LANGFUSE_PUBLIC_KEY")
    secret_key = os.environ.get("LANGFUSE_SECRET_KEY")
    host = os.environ.get("LANGFUSE_HOST", "https://cloud.langfuse.com")
    return public_key, secret_key, host


def init_langfuse() -> bool:
    """
    Initialize Langfuse client for LLM observability.

    Returns:
        True if initialized successfully, False otherwise.
    """
    global _langfuse_client

    if _langfuse_client is not None:
        return True

    public_key, secret_key, host = get_langfuse_config()

    if not public_key or not secret_key:
        return False

    try:
        _langfuse_client = Langfuse(
            public_key=public_key,
            secret_key=secret_key,
            host=host,
        )
        logger.debug(f"[LANGFUSE] Initialized (host: {host})")
        return True

    except Exception as e:
        logger.error(f"[LANGFUSE] Failed to initialize: {e}")
        _langfuse_client = None
        return False


def log_generation(
    name: str,
    model: str,
    input_messages: Any,
    output: Any,
    usage: Optional[Dict[str, int]] = None,
    latency_ms: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Record one LLM generation.

    Never raises: tracing failures must not fail the insight.

    Args:
        name: Generation name (e.g., "order_insight")
        model: Model used (e.g., "gpt-3.5-turbo")
        input_messages: Input messages sent to LLM
        output: Output received from LLM
        usage: Token usage dict with "input", "output", "total" keys
        latency_ms: Response latency in milliseconds
        metadata: Additional metadata
    """
    if not _langfuse_client:
        return

    try:
        gen_metadata = dict(metadata or {})
        if latency_ms:
            gen_metadata["latency_ms"] = latency_ms

        generation = _langfuse_client.start_generation(
            name=name,
            model=model,
            input=input_messages,
            metadata=gen_metadata,
        )
        generation.update(
            output=output,
            usage_details=usage,
        )
        generation.end()

    except Exception as e:
        logger.error(f"[LANGFUSE] Failed to log generation: {e}")


def flush() -> None:
    """
    Flush any pending Langfuse events.

    The processing function calls this before returning, since a frozen
    Lambda container cannot send in the background.
    """
    if _langfuse_client:
        try:
            _langfuse_client.flush()
        except Exception as e:
            logger.error(f"[LANGFUSE] Failed to flush: {e}")


def shutdown() -> None:
    """Shutdown Langfuse client cleanly."""
    global _langfuse_client

    if _langfuse_client:
        try:
            _langfuse_client.flush()
            _langfuse_client.shutdown()
            logger.info("[LANGFUSE] Shutdown complete")
        except Exception as e:
            logger.error(f"[LANGFUSE] Shutdown error: {e}")
        finally:
            _langfuse_client = None
