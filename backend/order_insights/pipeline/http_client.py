"""Signed HTTP calls from the processing function to the ingestion service.

WHAT:
    DeliveryClient wraps one httpx.Client and the shared secret:
    - fetch_customer_data: POST /api/customer-data (authoritative history)
    - post_insight: POST /api/ai-insights/ingest
    - post_error: post_insight with an error record

WHY:
    Every request body is serialized once, signed, and those exact bytes are
    sent, so the receiving side's HMAC check sees what was signed.

    None of these methods raise for network, parse or non-2xx failures.
    The handler decides what a failed call means.

REFERENCES:
    - order_insights/security.py (signing)
    - order_insights/routers/ai_insights.py, customer_data.py (receivers)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from order_insights.models import InsightStatusEnum
from order_insights.schemas import CustomerDataRequest, CustomerDataResponse, InsightPayload
from order_insights.security import SIGNATURE_HEADER, sign_payload

logger = logging.getLogger(__name__)

CUSTOMER_DATA_PATH = "/api/customer-data"
INGEST_PATH = "/api/ai-insights/ingest"

ERROR_INSIGHT_TEXT = "Error generating insight"


@dataclass
class DeliveryResult:
    """Outcome of an insight POST."""

    success: bool
    id: Optional[str] = None
    error: Optional[str] = None


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class DeliveryClient:
    """Client for the ingestion service's signed routes.

    Usage:
        with httpx.Client(timeout=10.0) as http:
            client = DeliveryClient(http, base_url="https://app.example.com", secret="...")
            result = client.post_insight(payload)
    """

    def __init__(self, http: httpx.Client, base_url: str, secret: str):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.secret = secret

    def _post_signed(self, path: str, body: bytes) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            SIGNATURE_HEADER: sign_payload(body, self.secret),
        }
        return self.http.post(f"{self.base_url}{path}", content=body, headers=headers)

    def fetch_customer_data(self, shop: str, customer_id: str) -> CustomerDataResponse:
        """Fetch a customer's order count and lifetime spend.

        Returns:
            CustomerDataResponse; success=False with an error string on any failure
        """
        body = CustomerDataRequest(shop=shop, customer_id=customer_id).to_wire()
        logger.info(f"[HTTP] Fetching customer data for {customer_id} from {shop}")

        try:
            response = self._post_signed(CUSTOMER_DATA_PATH, body)
        except httpx.HTTPError as e:
            logger.error(f"[HTTP] Failed to fetch customer data: {e}")
            return CustomerDataResponse(success=False, error=str(e) or type(e).__name__)

        data = _json_or_empty(response)

        if not response.is_success:
            error = data.get("error") or f"HTTP {response.status_code}"
            logger.error(f"[HTTP] Error fetching customer data: {response.status_code} ({error})")
            return CustomerDataResponse(success=False, error=error)

        try:
            result = CustomerDataResponse.model_validate(data)
        except ValidationError as e:
            logger.error(f"[HTTP] Unexpected customer data response: {e.error_count()} validation errors")
            return CustomerDataResponse(success=False, error="Invalid customer data response")

        if result.customer:
            logger.info(
                f"[HTTP] Customer data: {result.customer.number_of_orders} orders, "
                f"{result.customer.amount_spent} spent"
            )
        return result

    def post_insight(self, payload: InsightPayload) -> DeliveryResult:
        """Deliver an insight record to the ingestion route."""
        body = payload.to_wire()
        logger.info(f"[HTTP] Posting insight for order {payload.order_id} ({payload.status.value})")

        try:
            response = self._post_signed(INGEST_PATH, body)
        except httpx.HTTPError as e:
            logger.error(f"[HTTP] Failed to post insight: {e}")
            return DeliveryResult(success=False, error=str(e) or type(e).__name__)

        data = _json_or_empty(response)

        if not response.is_success:
            error = data.get("error") or f"HTTP {response.status_code}"
            logger.error(f"[HTTP] Error response from app: {response.status_code} ({error})")
            return DeliveryResult(success=False, error=error)

        insight_id = data.get("id")
        logger.info(f"[HTTP] Successfully posted insight, id: {insight_id}")
        return DeliveryResult(success=True, id=insight_id)

    def post_error(self, shop: str, order_id: str, order_name: str, error_message: str) -> DeliveryResult:
        """Record a failed generation so the merchant sees it."""
        payload = InsightPayload(
            shop=shop,
            order_id=order_id,
            order_name=order_name,
            insight_text=ERROR_INSIGHT_TEXT,
            status=InsightStatusEnum.error,
            error_message=error_message,
        )
        return self.post_insight(payload)
