"""Persistence for AI order insights.

WHAT:
    upsert_insight: write one insight keyed by (shop, order_id)

WHY:
    EventBridge delivers at least once, and the processing function may
    deliver an error record and later a success for the same order. The
    (shop, order_id) unique key makes every delivery overwrite the previous
    one instead of adding rows.

REFERENCES:
    - order_insights/models.py:AIOrderInsight
    - order_insights/routers/ai_insights.py (caller)
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from order_insights.models import AIOrderInsight, InsightStatusEnum, utcnow
from order_insights.schemas import InsightPayload

logger = logging.getLogger(__name__)


def _find(db: Session, shop: str, order_id: str) -> Optional[AIOrderInsight]:
    return (
        db.query(AIOrderInsight)
        .filter(AIOrderInsight.shop == shop, AIOrderInsight.order_id == order_id)
        .first()
    )


def _apply(insight: AIOrderInsight, payload: InsightPayload) -> None:
    """Copy every mutable field; absent optionals clear the stored value."""
    insight.order_name = payload.order_name
    insight.insight_text = payload.insight_text
    insight.followup_subject = payload.followup_subject
    insight.followup_body = payload.followup_body
    insight.customer_type = payload.customer_type
    insight.order_value = Decimal(str(payload.order_value)) if payload.order_value is not None else None
    insight.status = payload.status
    # Only error records carry a message
    insight.error_message = payload.error_message if payload.status == InsightStatusEnum.error else None
    insight.updated_at = utcnow()


def upsert_insight(db: Session, payload: InsightPayload) -> AIOrderInsight:
    """Insert or update the insight for (payload.shop, payload.order_id).

    A concurrent insert of the same key loses the race with an
    IntegrityError; it is retried once as an update.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: On storage failure
    """
    existing = _find(db, payload.shop, payload.order_id)
    if existing:
        _apply(existing, payload)
        db.commit()
        db.refresh(existing)
        logger.info(f"[INGEST] Updated insight {existing.id} for order {payload.order_id}")
        return existing

    insight = AIOrderInsight(shop=payload.shop, order_id=payload.order_id)
    _apply(insight, payload)
    db.add(insight)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"[INGEST] Concurrent insert for order {payload.order_id}, retrying as update")
        existing = _find(db, payload.shop, payload.order_id)
        if existing is None:
            raise
        _apply(existing, payload)
        db.commit()
        insight = existing

    db.refresh(insight)
    logger.info(f"[INGEST] Created insight {insight.id} for order {payload.order_id}")
    return insight
