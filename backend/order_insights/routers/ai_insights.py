"""
AI insight ingestion API.

WHY:
- Receives the output of the order-event processing function
- Signed requests only: the route is a public URL
- UPSERT on (shop, orderId) makes re-delivery harmless

WHAT:
- POST /api/ai-insights/ingest
- Verifies X-Shopify-Hmac-SHA256 over the raw body, validates the JSON,
  stores the insight

REFERENCES:
- order_insights/schemas.py:InsightPayload (request schema)
- order_insights/services/insight_store.py (upsert)
- order_insights/pipeline/http_client.py (sender)
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import SignedBody, get_signed_body
from ..schemas import IngestResponse, validate_insight_payload
from ..services.insight_store import upsert_insight
from ..telemetry import capture_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai-insights", tags=["AI Insights"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post(
    "/ingest",
    response_model=IngestResponse,
    summary="Ingest an AI order insight",
    description="""
    Stores the insight for one order. Called by the order-event processing
    function, never by browsers.

    - Requires a valid X-Shopify-Hmac-SHA256 signature of the raw body
    - Upserts by (shop, orderId)
    - status defaults to completed; status=error requires errorMessage
    """,
)
def ingest_insight(
    signed: SignedBody = Depends(get_signed_body),
    db: Session = Depends(get_db),
):
    if not signed.verified:
        logger.error(f"[INGEST] Rejected request: {signed.error}")
        return _error(signed.status_code, signed.error)

    result = validate_insight_payload(signed.raw)
    if not result.valid:
        logger.warning(f"[INGEST] Invalid payload: {result.error}")
        return _error(status.HTTP_400_BAD_REQUEST, result.error)

    payload = result.payload

    try:
        insight = upsert_insight(db, payload)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"[INGEST] Database error for order {payload.order_id}: {e}")
        capture_exception(e, extra={"shop": payload.shop, "order_id": payload.order_id})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save insight")

    logger.info(
        f"[INGEST] Upserted insight for order {payload.order_name} ({payload.order_id}) "
        f"in shop {payload.shop}"
    )
    return IngestResponse(id=insight.id)
