"""Inbound EventBridge envelope and Shopify order payload schemas.

WHAT:
    Pydantic models for the partner event bus envelope and the
    `orders/create` webhook body it wraps in `detail.payload`.

WHY:
    The envelope is checked first and loosely, so unrelated or broken events
    can be dropped or rejected at the boundary. The order itself is
    validated strictly later, inside the handler's error-reporting block,
    so a malformed order still produces an error record downstream.

REFERENCES:
    - https://shopify.dev/docs/apps/build/webhooks/subscribe/get-started?deliveryMethod=eventBridge
    - https://shopify.dev/docs/api/admin-rest/latest/resources/webhook (orders/create)
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SHOPIFY_EVENT_SOURCE = "shopify.com"
SHOP_DOMAIN_HEADER = "X-Shopify-Shop-Domain"
TOPIC_HEADER = "X-Shopify-Topic"


class ShopifyCustomer(BaseModel):
    """Customer block embedded in the order webhook."""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    # Usually absent from orders/create payloads; kept for completeness.
    orders_count: Optional[int] = None
    total_spent: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    tags: Optional[str] = None


class ShopifyLineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
    title: str
    quantity: int = Field(ge=1)
    price: Decimal
    sku: Optional[str] = None
    variant_title: Optional[str] = None
    product_id: Optional[Union[int, str]] = None


class ShopifyDiscountCode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: str
    amount: Optional[Decimal] = None
    type: Optional[str] = None


class ShopifyOrder(BaseModel):
    """`orders/create` webhook body."""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    order_number: Optional[int] = None
    name: str  # e.g. "#1234"
    total_price: Decimal = Field(ge=0)
    subtotal_price: Optional[Decimal] = None
    total_tax: Optional[Decimal] = None
    currency: str
    financial_status: Optional[str] = None
    created_at: Optional[datetime] = None
    line_items: List[ShopifyLineItem] = Field(default_factory=list)
    customer: Optional[ShopifyCustomer] = None
    discount_codes: List[ShopifyDiscountCode] = Field(default_factory=list)
    note: Optional[str] = None


class EventDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    metadata: Dict[str, Any] = Field(default_factory=dict)
    payload: Optional[Dict[str, Any]] = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("payload", mode="before")
    @classmethod
    def _payload_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


def is_shopify_source(source: Any) -> bool:
    return isinstance(source, str) and SHOPIFY_EVENT_SOURCE in source


class EventEnvelope(BaseModel):
    """EventBridge event as delivered to the function.

    Shopify events carry detail-type "shopifyWebhook"; the actual topic
    (e.g. orders/create) is in `detail.metadata`.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    source: Optional[str] = None
    detail_type: Optional[str] = Field(default=None, alias="detail-type")
    time: Optional[str] = None
    detail: EventDetail = Field(default_factory=EventDetail)

    @field_validator("source", "detail_type", "time", "id", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @field_validator("detail", mode="before")
    @classmethod
    def _detail_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @property
    def is_from_shopify(self) -> bool:
        return is_shopify_source(self.source)

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.detail.metadata

    @property
    def topic(self) -> Optional[str]:
        return self.detail.metadata.get(TOPIC_HEADER)

    @property
    def order_id(self) -> Optional[str]:
        """Order identifier from the payload, or None when unresolvable."""
        payload = self.detail.payload
        if not payload:
            return None
        order_id = payload.get("id")
        if order_id is None or order_id == "":
            return None
        return str(order_id)


def parse_order(raw: Dict[str, Any]) -> ShopifyOrder:
    """Validate a raw order payload.

    Raises:
        pydantic.ValidationError: On malformed fields (e.g. non-numeric prices)
    """
    return ShopifyOrder.model_validate(raw)
