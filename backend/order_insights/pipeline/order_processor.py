"""Order normalization and customer classification.

WHAT:
    - process_order_data: webhook order -> prompt-ready ProcessedOrder
    - determine_customer_type: three-tier first-time / repeat / vip rule
    - customer_from_snapshot: authoritative path (customer-data route)
    - customer_from_webhook: heuristic path when the lookup failed
    - guest_customer: orders without a customer
    - extract_shop_domain: shop from event metadata or configured fallback

WHY:
    Everything here is pure so the classification rules can be tested
    without network access. The handler decides which path applies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from order_insights.models import CustomerTypeEnum
from order_insights.pipeline.events import SHOP_DOMAIN_HEADER, ShopifyCustomer, ShopifyOrder
from order_insights.pipeline.exceptions import ShopDomainNotFoundError
from order_insights.schemas import CustomerSnapshot

# Classification thresholds. Order of checks matters: first-time, then vip, then repeat.
FIRST_TIME_MAX_ORDERS = 1
VIP_MIN_ORDERS = 5
VIP_MIN_SPEND = Decimal("500")

DEFAULT_FIRST_ORDER_WINDOW = timedelta(seconds=60)

# Heuristic path only: order history is not in the webhook
ASSUMED_RETURNING_ORDER_COUNT = 2


@dataclass
class ProcessedLineItem:
    title: str
    quantity: int
    price: Decimal


@dataclass
class ProcessedOrder:
    """Order data reduced to what the prompt needs."""

    order_id: str
    order_name: str
    total_price: Decimal
    currency: str
    line_items: List[ProcessedLineItem] = field(default_factory=list)
    discount_codes: List[str] = field(default_factory=list)
    has_discount: bool = False
    item_count: int = 0


@dataclass
class ProcessedCustomer:
    """Customer context for the prompt.

    `authoritative` is False on the heuristic and guest paths, where
    `orders_count` and `total_spent` are assumptions rather than data.
    """

    first_name: Optional[str]
    last_name: Optional[str]
    orders_count: int
    total_spent: Decimal
    is_first_order: bool
    customer_type: CustomerTypeEnum
    days_since_first_order: Optional[int]
    authoritative: bool = False


def process_order_data(order: ShopifyOrder) -> ProcessedOrder:
    """Process a validated Shopify order into a clean format for AI prompts."""
    line_items = [
        ProcessedLineItem(title=item.title, quantity=item.quantity, price=Decimal(item.price))
        for item in order.line_items
    ]
    discount_codes = [dc.code for dc in order.discount_codes]

    return ProcessedOrder(
        order_id=str(order.id),
        order_name=order.name,
        total_price=Decimal(order.total_price),
        currency=order.currency,
        line_items=line_items,
        discount_codes=discount_codes,
        has_discount=len(discount_codes) > 0,
        item_count=sum(item.quantity for item in line_items),
    )


def determine_customer_type(orders_count: int, total_spent: Decimal) -> CustomerTypeEnum:
    """Three-tier classification from order count and lifetime spend."""
    if orders_count <= FIRST_TIME_MAX_ORDERS:
        return CustomerTypeEnum.first_time
    if orders_count >= VIP_MIN_ORDERS or Decimal(total_spent) >= VIP_MIN_SPEND:
        return CustomerTypeEnum.vip
    return CustomerTypeEnum.repeat


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are treated as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _days_between(earlier: Optional[datetime], now: datetime) -> Optional[int]:
    if earlier is None:
        return None
    return (_as_utc(now) - _as_utc(earlier)).days


def guest_customer() -> ProcessedCustomer:
    """Guest checkout: no history to go on, treat as first-time."""
    return ProcessedCustomer(
        first_name=None,
        last_name=None,
        orders_count=1,
        total_spent=Decimal("0"),
        is_first_order=True,
        customer_type=CustomerTypeEnum.first_time,
        days_since_first_order=None,
    )


def customer_from_snapshot(
    snapshot: Optional[CustomerSnapshot],
    now: Optional[datetime] = None,
) -> ProcessedCustomer:
    """Classify using the authoritative record from the customer-data route."""
    if snapshot is None:
        return guest_customer()

    now = now or datetime.now(timezone.utc)
    orders_count = snapshot.number_of_orders
    total_spent = Decimal(snapshot.amount_spent)

    return ProcessedCustomer(
        first_name=snapshot.first_name,
        last_name=snapshot.last_name,
        orders_count=orders_count,
        total_spent=total_spent,
        is_first_order=orders_count <= FIRST_TIME_MAX_ORDERS,
        customer_type=determine_customer_type(orders_count, total_spent),
        days_since_first_order=_days_between(snapshot.created_at, now),
        authoritative=True,
    )


def customer_from_webhook(
    customer: Optional[ShopifyCustomer],
    order_created_at: Optional[datetime] = None,
    *,
    first_order_window: timedelta = DEFAULT_FIRST_ORDER_WINDOW,
    now: Optional[datetime] = None,
) -> ProcessedCustomer:
    """Classify from the webhook's embedded customer when the lookup failed.

    orders/create payloads carry no order count, so a customer account created
    within `first_order_window` of the order is taken as a first-time buyer.
    Anyone else is assumed to be a repeat customer with unknown spend.
    """
    if customer is None:
        return guest_customer()

    now = now or datetime.now(timezone.utc)
    order_time = _as_utc(order_created_at or now)

    if customer.created_at is not None:
        gap = abs(order_time - _as_utc(customer.created_at))
    else:
        gap = timedelta(0)
    is_first_order = gap < first_order_window

    return ProcessedCustomer(
        first_name=customer.first_name or None,
        last_name=customer.last_name or None,
        orders_count=1 if is_first_order else ASSUMED_RETURNING_ORDER_COUNT,
        total_spent=Decimal("0"),
        is_first_order=is_first_order,
        customer_type=CustomerTypeEnum.first_time if is_first_order else CustomerTypeEnum.repeat,
        days_since_first_order=_days_between(customer.created_at, now),
        authoritative=False,
    )


def extract_shop_domain(
    metadata: Optional[Mapping[str, Any]],
    fallback: Optional[str] = None,
) -> str:
    """Shop domain from event metadata, else the configured fallback.

    Raises:
        ShopDomainNotFoundError: If neither is available
    """
    if metadata:
        shop = metadata.get(SHOP_DOMAIN_HEADER)
        if shop:
            return str(shop)

    if fallback:
        return fallback

    raise ShopDomainNotFoundError()
