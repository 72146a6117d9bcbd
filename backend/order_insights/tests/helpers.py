"""Builders and fakes shared by the test modules."""

import json
from typing import Any, Dict, List, Optional

import httpx

TEST_SECRET = "test-hmac-secret"
TEST_SHOP = "store1.myshopify.com"
APP_URL = "https://insights.example.com"


def sign(body: bytes, secret: str = TEST_SECRET) -> str:
    from order_insights.security import sign_payload
    return sign_payload(body, secret)


def signed_headers(body: bytes, secret: str = TEST_SECRET) -> Dict[str, str]:
    from order_insights.security import SIGNATURE_HEADER
    return {"Content-Type": "application/json", SIGNATURE_HEADER: sign(body, secret)}


VALID_AI_CONTENT = json.dumps({
    "insight": "First purchase of two best sellers. Tag as new-customer and follow up in a week.",
    "followupSubject": "Thanks for your first order!",
    "followupBody": "Hi {{customer_first_name}}, thanks for ordering {{product_name}}.",
})


class FakeIngestionService:
    """In-process stand-in for the ingestion service's signed routes.

    Serves /api/customer-data and /api/ai-insights/ingest over
    httpx.MockTransport and records every request it receives.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.customer_status = 200
        self.customer_body: Dict[str, Any] = {"success": False, "error": "Customer not found"}
        self.ingest_status = 200
        self.ingest_error: Optional[str] = None
        self.raise_on: Optional[str] = None

    def set_customer(self, number_of_orders: int, amount_spent: float, created_at: Optional[str] = None):
        self.customer_status = 200
        self.customer_body = {
            "success": True,
            "customer": {
                "id": "gid://shopify/Customer/555",
                "numberOfOrders": number_of_orders,
                "amountSpent": amount_spent,
                "currency": "USD",
                "createdAt": created_at,
            },
        }

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def ingested(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests_to("/api/ai-insights/ingest")]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if self.raise_on == path:
            raise httpx.ConnectError("connection refused", request=request)

        if path == "/api/customer-data":
            return httpx.Response(self.customer_status, json=self.customer_body)

        if path == "/api/ai-insights/ingest":
            if self.ingest_status >= 400:
                return httpx.Response(self.ingest_status, json={"error": self.ingest_error or "Failed to save insight"})
            return httpx.Response(200, json={"success": True, "id": f"insight-{len(self.ingested())}", "message": "Insight saved successfully"})

        return httpx.Response(404, json={"error": "Not found"})


def make_order(
    order_id: int = 820982911946154508,
    total_price: str = "85.00",
    line_items: Optional[List[Dict[str, Any]]] = None,
    customer: Optional[Dict[str, Any]] = None,
    discount_codes: Optional[List[Dict[str, Any]]] = None,
    created_at: str = "2024-03-10T12:00:30Z",
) -> Dict[str, Any]:
    """orders/create webhook body with realistic Shopify field names."""
    return {
        "id": order_id,
        "name": "#1001",
        "order_number": 1001,
        "total_price": total_price,
        "currency": "USD",
        "created_at": created_at,
        "financial_status": "paid",
        "line_items": line_items if line_items is not None else [
            {"id": 1, "title": "Organic Coffee Beans", "quantity": 1, "price": "45.00"},
            {"id": 2, "title": "Ceramic Mug", "quantity": 1, "price": "40.00"},
        ],
        "customer": customer,
        "discount_codes": discount_codes or [],
    }


def make_event(
    order: Optional[Dict[str, Any]] = None,
    source: str = "aws.partner/shopify.com/123456/order-insights",
    shop: Optional[str] = TEST_SHOP,
) -> Dict[str, Any]:
    """EventBridge envelope as delivered by Shopify's partner event source."""
    metadata = {"X-Shopify-Topic": "orders/create"}
    if shop:
        metadata["X-Shopify-Shop-Domain"] = shop
    return {
        "version": "0",
        "id": "5e8b7c9a-1b2c-4d3e-8f9a-0b1c2d3e4f5a",
        "detail-type": "shopifyWebhook",
        "source": source,
        "account": "123456789012",
        "time": "2024-03-10T12:00:31Z",
        "region": "us-east-1",
        "resources": [],
        "detail": {"metadata": metadata, "payload": order},
    }
