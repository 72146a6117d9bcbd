"""SQLAlchemy ORM models and enums.

This module defines the persisted schema of the ingestion service: one row
per (shop, order) AI insight, plus the Shopify sessions whose access tokens
back the customer-data lookup. The enums are shared with the processing
function so both sides agree on the wire values.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Enum, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base


# Single Base used by the entire application
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns below."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Enums ---------------------------------------------------------

class CustomerTypeEnum(str, enum.Enum):
    first_time = "first-time"
    repeat = "repeat"
    vip = "vip"


class InsightStatusEnum(str, enum.Enum):
    pending = "pending"
    completed = "completed"
    error = "error"


# Models --------------------------------------------------------

class AIOrderInsight(Base):
    """AI-generated insight and follow-up draft for one order.

    WHAT: Output of one pipeline run, written by the ingestion route
    WHY: (shop, order_id) is the idempotency key. Re-delivered events for the
         same order overwrite the row instead of adding a new one.
    """
    __tablename__ = "ai_order_insights"
    __table_args__ = (
        UniqueConstraint("shop", "order_id", name="uq_ai_order_insight_shop_order"),
        Index("ix_ai_order_insights_shop_created_at", "shop", "created_at"),
        Index("ix_ai_order_insights_order_id", "order_id"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    shop = Column(String, nullable=False)  # e.g. store1.myshopify.com
    order_id = Column(String, nullable=False)
    order_name = Column(String, nullable=False)  # e.g. "#1001"

    insight_text = Column(Text, nullable=False)
    followup_subject = Column(String, nullable=True)
    followup_body = Column(Text, nullable=True)
    customer_type = Column(
        Enum(CustomerTypeEnum, values_callable=lambda obj: [e.value for e in obj]),
        nullable=True,
    )
    order_value = Column(Numeric(18, 4), nullable=True)

    status = Column(
        Enum(InsightStatusEnum, values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=InsightStatusEnum.completed,
    )
    error_message = Column(Text, nullable=True)  # Only set when status == error

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __str__(self):
        return f"{self.order_name} ({self.shop}) - {self.status.value if self.status else 'unknown'}"


class ShopSession(Base):
    """Shopify app session for an installed shop.

    WHAT: Access token used to call the Shopify Admin API on behalf of a shop
    WHY: The customer-data route needs an authenticated Admin API call to get
         accurate order counts and lifetime spend
    NOTE: Offline tokens (shpat_ prefix) are preferred over online ones
    """
    __tablename__ = "shop_sessions"

    id = Column(String, primary_key=True)
    shop = Column(String, nullable=False, index=True)
    access_token = Column(String, nullable=True)
    is_online = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __str__(self):
        return f"{self.shop} ({'online' if self.is_online else 'offline'})"
