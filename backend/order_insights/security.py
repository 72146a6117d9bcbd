"""Request signing shared by the processing function and the ingestion service.

WHAT:
    HMAC-SHA256 signing and verification of raw request bodies. The hex
    digest travels in the `X-Shopify-Hmac-SHA256` header on every
    cross-service call, in both directions.

WHY:
    The ingestion routes are public URLs. The shared secret is the only thing
    proving a request came from the processing function.

NOTE:
    Always sign the exact bytes that go on the wire. Re-serializing a dict
    on the receiving side (key order, whitespace) produces different bytes
    and a different digest.

REFERENCES:
    - order_insights/pipeline/http_client.py (outbound signing)
    - order_insights/routers/ai_insights.py, customer_data.py (inbound verification)
"""

import hashlib
import hmac
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Shopify-Hmac-SHA256"


def _to_bytes(value: Union[bytes, str]) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def sign_payload(body: Union[bytes, str], secret: str) -> str:
    """Compute the hex HMAC-SHA256 of a request body.

    Args:
        body: Raw request body (str bodies are UTF-8 encoded)
        secret: Shared signing secret

    Returns:
        Lowercase hex digest
    """
    return hmac.new(_to_bytes(secret), _to_bytes(body), hashlib.sha256).hexdigest()


def verify_signature(
    body: Union[bytes, str],
    signature: Optional[str],
    secret: Optional[str],
) -> bool:
    """Verify that a body was signed with the shared secret.

    WHAT: Recomputes the digest and compares in constant time
    WHY: Rejects forged or tampered requests at the ingestion boundary

    Args:
        body: Raw request body bytes, exactly as received
        signature: Value of the X-Shopify-Hmac-SHA256 header
        secret: Shared signing secret

    Returns:
        True if signature is valid, False otherwise
    """
    if not secret:
        logger.error("[SIGNATURE] Signing secret not configured")
        return False

    if not signature:
        logger.warning("[SIGNATURE] Missing signature")
        return False

    expected = sign_payload(body, secret)

    # Constant-time comparison to prevent timing attacks
    is_valid = hmac.compare_digest(
        expected.encode("utf-8"),
        signature.strip().lower().encode("utf-8"),
    )

    if not is_valid:
        logger.warning("[SIGNATURE] Invalid HMAC signature")

    return is_valid
