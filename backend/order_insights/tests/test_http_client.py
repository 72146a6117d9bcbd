"""
Tests for the delivery client.

WHAT:
    Signed POSTs to the ingestion service and failure handling.

WHY:
    The signature must match the exact transmitted bytes, and no network or
    HTTP failure may escape as an exception.

REFERENCES:
    - order_insights/pipeline/http_client.py
    - order_insights/tests/helpers.py:FakeIngestionService
"""

import json

from order_insights.models import CustomerTypeEnum, InsightStatusEnum
from order_insights.schemas import InsightPayload
from order_insights.security import SIGNATURE_HEADER, verify_signature
from order_insights.tests.helpers import TEST_SECRET, TEST_SHOP


def _payload(**overrides):
    data = dict(
        shop=TEST_SHOP,
        order_id="1001",
        order_name="#1001",
        insight_text="New customer buying two best sellers.",
        followup_subject="Thanks!",
        followup_body="Hi {{customer_first_name}}",
        customer_type=CustomerTypeEnum.first_time,
        order_value=85.0,
    )
    data.update(overrides)
    return InsightPayload(**data)


def test_post_insight_signs_exact_bytes(delivery, ingestion):
    result = delivery.post_insight(_payload())

    assert result.success is True
    assert result.id == "insight-1"

    request = ingestion.requests_to("/api/ai-insights/ingest")[0]
    assert str(request.url) == "https://insights.example.com/api/ai-insights/ingest"
    assert request.headers["Content-Type"] == "application/json"
    assert verify_signature(request.content, request.headers[SIGNATURE_HEADER], TEST_SECRET)


def test_post_insight_wire_format(delivery, ingestion):
    delivery.post_insight(_payload())
    body = ingestion.ingested()[0]

    assert body == {
        "shop": TEST_SHOP,
        "orderId": "1001",
        "orderName": "#1001",
        "insightText": "New customer buying two best sellers.",
        "followupSubject": "Thanks!",
        "followupBody": "Hi {{customer_first_name}}",
        "customerType": "first-time",
        "orderValue": 85.0,
        "status": "completed",
    }


def test_post_insight_non_2xx(delivery, ingestion):
    ingestion.ingest_status = 500
    ingestion.ingest_error = "Failed to save insight"

    result = delivery.post_insight(_payload())

    assert result.success is False
    assert result.error == "Failed to save insight"


def test_post_insight_network_error(delivery, ingestion):
    ingestion.raise_on = "/api/ai-insights/ingest"

    result = delivery.post_insight(_payload())

    assert result.success is False
    assert "connection refused" in result.error


def test_post_error_builds_error_record(delivery, ingestion):
    delivery.post_error(TEST_SHOP, "1001", "#1001", "AI response was not valid JSON")
    body = ingestion.ingested()[0]

    assert body["status"] == InsightStatusEnum.error.value
    assert body["insightText"] == "Error generating insight"
    assert body["errorMessage"] == "AI response was not valid JSON"
    assert "customerType" not in body


def test_fetch_customer_data_success(delivery, ingestion):
    ingestion.set_customer(number_of_orders=4, amount_spent=523.5, created_at="2023-01-01T00:00:00Z")

    response = delivery.fetch_customer_data(TEST_SHOP, "555")

    assert response.success is True
    assert response.customer.number_of_orders == 4
    request = ingestion.requests_to("/api/customer-data")[0]
    assert json.loads(request.content) == {"shop": TEST_SHOP, "customerId": "555"}
    assert verify_signature(request.content, request.headers[SIGNATURE_HEADER], TEST_SECRET)


def test_fetch_customer_data_http_error(delivery, ingestion):
    ingestion.customer_status = 404
    ingestion.customer_body = {"success": False, "error": "Shop not found or not authenticated"}

    response = delivery.fetch_customer_data(TEST_SHOP, "555")

    assert response.success is False
    assert response.error == "Shop not found or not authenticated"


def test_fetch_customer_data_network_error(delivery, ingestion):
    ingestion.raise_on = "/api/customer-data"

    response = delivery.fetch_customer_data(TEST_SHOP, "555")

    assert response.success is False
    assert response.error


def test_fetch_customer_data_unexpected_body(delivery, ingestion):
    ingestion.customer_body = {"success": True, "customer": {"numberOfOrders": "lots"}}

    response = delivery.fetch_customer_data(TEST_SHOP, "555")

    assert response.success is False
    assert response.error == "Invalid customer data response"
