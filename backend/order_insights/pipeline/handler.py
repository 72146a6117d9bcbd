"""
Order Event Handler
===================

AWS Lambda entry point: one EventBridge `orders/create` event in, one
insight record delivered to the ingestion service.

Flow:
    1. Drop events that are not from Shopify (200, ignored)
    2. Reject events without an order payload or shop domain (400)
    3. Normalize the order, classify the customer, build the prompt
    4. Generate the insight and deliver it
    5. Any failure in 3-4: deliver an error record, return 500

Related files:
- order_insights/pipeline/order_processor.py: Normalization + classification
- order_insights/pipeline/prompts.py: Prompt text
- order_insights/pipeline/ai_service.py: OpenAI call
- order_insights/pipeline/http_client.py: Signed calls to the ingestion service
- order_insights/pipeline/config.py: PipelineSettings
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import httpx
from openai import OpenAI

from order_insights.pipeline.ai_service import InsightGenerator
from order_insights.pipeline.config import PipelineSettings, load_pipeline_settings
from order_insights.pipeline.events import EventEnvelope, ShopifyOrder, is_shopify_source, parse_order
from order_insights.pipeline.exceptions import BoundaryRejectError, DeliveryError
from order_insights.pipeline.http_client import DeliveryClient
from order_insights.pipeline.order_processor import (
    ProcessedCustomer,
    customer_from_snapshot,
    customer_from_webhook,
    extract_shop_domain,
    guest_customer,
    process_order_data,
)
from order_insights.pipeline.prompts import PromptSettings, build_prompt
from order_insights.schemas import InsightPayload
from order_insights.models import InsightStatusEnum
from order_insights.telemetry import (
    capture_exception,
    flush_observability,
    init_observability,
    set_shop_context,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class HandlerResult:
    """Status code and JSON body of one invocation."""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    def to_lambda_response(self) -> Dict[str, Any]:
        return {"statusCode": self.status_code, "body": json.dumps(self.body)}


def _error_message(exc: Exception) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message or type(exc).__name__


class OrderEventHandler:
    """
    Processes one order event end to end.

    All collaborators are injected so tests can swap the OpenAI client and
    the HTTP transport without touching the environment.

    Usage:
        handler = OrderEventHandler(delivery, generator, settings)
        result = handler.handle(event, request_id="abc")
    """

    def __init__(
        self,
        delivery: DeliveryClient,
        generator: InsightGenerator,
        settings: PipelineSettings,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.delivery = delivery
        self.generator = generator
        self.settings = settings
        self.prompt_settings = PromptSettings(include_customer_name=settings.INCLUDE_CUSTOMER_NAME)
        self.clock = clock

    def handle(self, event: Dict[str, Any], request_id: Optional[str] = None) -> HandlerResult:
        logger.info(f"[LAMBDA] Invoked with request ID: {request_id}")

        if not isinstance(event, dict):
            event = {}
        source = event.get("source")
        logger.info(f"[LAMBDA] Event detail-type: {event.get('detail-type')}, source: {source}")

        if not is_shopify_source(source):
            logger.info(f"[LAMBDA] Ignoring non-Shopify event: {source}")
            return HandlerResult(200, {"message": "Event ignored - not from Shopify", "ignored": True})

        envelope = EventEnvelope.model_validate(event)

        order_id = envelope.order_id
        if order_id is None:
            logger.error("[LAMBDA] Missing order payload in event")
            return HandlerResult(400, {"error": "Missing order payload"})

        try:
            shop = extract_shop_domain(envelope.metadata, self.settings.SHOPIFY_SHOP_DOMAIN)
        except BoundaryRejectError as e:
            logger.error(f"[LAMBDA] {e.message}")
            return HandlerResult(e.status_code, {"error": e.public_message})

        raw_order = envelope.detail.payload or {}
        order_name = str(raw_order.get("name") or order_id)
        set_shop_context(shop, order_id)

        logger.info(f"[LAMBDA] Processing order {order_name} ({order_id}) for shop {shop}, topic {envelope.topic}")

        try:
            insight_id = self._process(shop, order_id, order_name, raw_order)
        except Exception as e:
            message = _error_message(e)
            logger.error(f"[LAMBDA] Error processing order {order_name}: {message}")
            capture_exception(e, extra={"shop": shop, "order_id": order_id})
            self._report_failure(shop, order_id, order_name, message)
            return HandlerResult(500, {"error": message})

        logger.info(f"[LAMBDA] Successfully processed order {order_name}, insight ID: {insight_id}")
        return HandlerResult(
            200,
            {"success": True, "orderId": order_id, "orderName": order_name, "insightId": insight_id},
        )

    def _process(self, shop: str, order_id: str, order_name: str, raw_order: Dict[str, Any]) -> Optional[str]:
        order = parse_order(raw_order)
        processed = process_order_data(order)
        customer = self._classify_customer(shop, order)

        logger.info(
            f"[LAMBDA] Order: {processed.currency} {processed.total_price}, {processed.item_count} items, "
            f"customer type: {customer.customer_type.value}"
        )

        prompt = build_prompt(processed, customer, self.prompt_settings)
        insight = self.generator.generate(
            prompt,
            trace_metadata={"shop": shop, "order_id": order_id, "customer_type": customer.customer_type.value},
        )

        payload = InsightPayload(
            shop=shop,
            order_id=order_id,
            order_name=order_name,
            insight_text=insight.insight,
            followup_subject=insight.followup_subject,
            followup_body=insight.followup_body,
            customer_type=customer.customer_type,
            order_value=float(processed.total_price),
            status=InsightStatusEnum.completed,
        )
        result = self.delivery.post_insight(payload)
        if not result.success:
            raise DeliveryError(result.error or "Failed to post insight")
        return result.id

    def _classify_customer(self, shop: str, order: ShopifyOrder) -> ProcessedCustomer:
        if order.customer is None:
            return guest_customer()

        now = self.clock()
        response = self.delivery.fetch_customer_data(shop, str(order.customer.id))
        if response.success and response.customer:
            customer = customer_from_snapshot(response.customer, now=now)
            logger.info(
                f"[LAMBDA] Customer API data: {customer.orders_count} orders, "
                f"{customer.total_spent} spent, type: {customer.customer_type.value}"
            )
            return customer

        logger.warning(f"[LAMBDA] Customer API failed, using fallback: {response.error}")
        return customer_from_webhook(
            order.customer,
            order.created_at,
            first_order_window=self.settings.first_order_window,
            now=now,
        )

    def _report_failure(self, shop: str, order_id: str, order_name: str, message: str) -> None:
        try:
            result = self.delivery.post_error(shop, order_id, order_name, message)
        except Exception as e:
            logger.error(f"[LAMBDA] Failed to post error status: {e}")
            return
        if not result.success:
            logger.error(f"[LAMBDA] Failed to post error status: {result.error}")


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """AWS Lambda entry point."""
    settings = load_pipeline_settings()
    init_observability(runtime="lambda")

    request_id = getattr(context, "aws_request_id", None)

    with httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS) as http:
        order_handler = OrderEventHandler(
            delivery=DeliveryClient(http, base_url=settings.APP_URL, secret=settings.HMAC_SECRET),
            generator=InsightGenerator(OpenAI(api_key=settings.OPENAI_API_KEY), model=settings.OPENAI_MODEL),
            settings=settings,
        )
        try:
            result = order_handler.handle(event, request_id=request_id)
        finally:
            flush_observability()

    return result.to_lambda_response()
