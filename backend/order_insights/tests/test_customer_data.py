"""
Tests for the customer data route.

WHAT:
    POST /api/customer-data with the Shopify client replaced by a fake.

WHY:
    The processing function relies on this route for authoritative order
    counts; every failure must come back as {success: false, error}.

REFERENCES:
    - order_insights/routers/customer_data.py
    - order_insights/services/shopify_client.py
"""

import json
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from order_insights.models import ShopSession
from order_insights.routers import customer_data
from order_insights.services.shopify_client import ShopifyAPIError
from order_insights.tests.helpers import TEST_SHOP, signed_headers

URL = "/api/customer-data"


class _FakeShopifyClient:
    """Records constructor args and the requested customer id."""

    instances: List["_FakeShopifyClient"] = []
    customer: Optional[Dict[str, Any]] = None
    error: Optional[Exception] = None

    def __init__(self, shop_domain: str, access_token: str, api_version: str = "2024-10", **kwargs):
        self.shop_domain = shop_domain
        self.access_token = access_token
        self.api_version = api_version
        self.requested: Optional[str] = None
        _FakeShopifyClient.instances.append(self)

    async def get_customer(self, customer_id: str):
        self.requested = customer_id
        if self.error is not None:
            raise self.error
        return self.customer


@pytest.fixture
def shopify(monkeypatch):
    _FakeShopifyClient.instances = []
    _FakeShopifyClient.customer = {
        "id": "gid://shopify/Customer/555",
        "number_of_orders": 4,
        "amount_spent": Decimal("523.50"),
        "currency": "USD",
        "created_at": "2023-06-01T09:00:00Z",
    }
    _FakeShopifyClient.error = None
    monkeypatch.setattr(customer_data, "ShopifyClient", _FakeShopifyClient)
    return _FakeShopifyClient


@pytest.fixture
def shop_session(test_db_session):
    session = ShopSession(id="offline_store1", shop=TEST_SHOP, access_token="shpat_offline", is_online=False)
    test_db_session.add(session)
    test_db_session.commit()
    return session


def _post(client, shop: str = TEST_SHOP, customer_id: Any = "555"):
    body = json.dumps({"shop": shop, "customerId": customer_id}).encode()
    return client.post(URL, content=body, headers=signed_headers(body))


def test_returns_customer(client, shopify, shop_session):
    response = _post(client)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "customer": {
            "id": "gid://shopify/Customer/555",
            "numberOfOrders": 4,
            "amountSpent": 523.5,
            "currency": "USD",
            "createdAt": "2023-06-01T09:00:00Z",
        },
    }
    client_used = shopify.instances[0]
    assert client_used.access_token == "shpat_offline"
    assert client_used.api_version == "2024-10"


def test_numeric_id_expanded_to_gid(client, shopify, shop_session):
    _post(client, customer_id="555")
    assert shopify.instances[0].requested == "gid://shopify/Customer/555"


def test_gid_passed_through(client, shopify, shop_session):
    _post(client, customer_id="gid://shopify/Customer/777")
    assert shopify.instances[0].requested == "gid://shopify/Customer/777"


def test_prefers_offline_token(client, shopify, test_db_session):
    test_db_session.add_all([
        ShopSession(id="online_1", shop=TEST_SHOP, access_token="online-token", is_online=True),
        ShopSession(id="offline_1", shop=TEST_SHOP, access_token="shpat_abc", is_online=False),
    ])
    test_db_session.commit()

    _post(client)

    assert shopify.instances[0].access_token == "shpat_abc"


def test_online_token_used_when_no_offline(client, shopify, test_db_session):
    test_db_session.add(ShopSession(id="online_1", shop=TEST_SHOP, access_token="online-token", is_online=True))
    test_db_session.commit()

    assert _post(client).status_code == 200
    assert shopify.instances[0].access_token == "online-token"


def test_unknown_shop(client, shopify):
    response = _post(client, shop="unknown.myshopify.com")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Shop not found or not authenticated"}
    assert shopify.instances == []


def test_customer_not_found(client, shopify, shop_session):
    shopify.customer = None

    response = _post(client)

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Customer not found"}


def test_shopify_http_failure(client, shopify, shop_session):
    shopify.error = ShopifyAPIError("Shopify API error: 503", status_code=503)

    response = _post(client)

    assert response.status_code == 502
    assert response.json() == {"success": False, "error": "Shopify API error: 503"}


def test_graphql_errors(client, shopify, shop_session):
    shopify.error = ShopifyAPIError("Invalid global id 'gid://shopify/Customer/abc'", errors=[{"message": "Invalid global id"}])

    response = _post(client)

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_unexpected_failure(client, shopify, shop_session):
    shopify.error = ValueError("boom")

    response = _post(client)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to fetch customer data"}


def test_missing_signature(client, shopify, shop_session):
    response = client.post(URL, json={"shop": TEST_SHOP, "customerId": "555"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Missing signature"}
    assert shopify.instances == []


def test_invalid_fields(client, shopify, shop_session):
    response = _post(client, customer_id=555)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Missing or invalid 'customerId' field"}
