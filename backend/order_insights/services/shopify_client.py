"""Shopify GraphQL Admin API client.

WHAT:
    Minimal wrapper for the Shopify Admin GraphQL API:
    - Authentication handling
    - Retry on throttling and transient errors
    - Customer lookup (order count, lifetime spend, signup date)

WHY:
    orders/create webhooks do not carry a customer's order history. The
    customer-data route asks Shopify for it on behalf of the processing
    function, which has no shop access token of its own.

REFERENCES:
    - Shopify GraphQL Admin API: https://shopify.dev/docs/api/admin-graphql
    - Customer object: https://shopify.dev/docs/api/admin-graphql/latest/objects/Customer
    - Rate limits: https://shopify.dev/docs/api/usage/rate-limits
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

# Default API version
DEFAULT_API_VERSION = "2024-10"

CUSTOMER_GID_PREFIX = "gid://shopify/Customer/"

CUSTOMER_QUERY = """
query GetCustomerData($id: ID!) {
  customer(id: $id) {
    id
    numberOfOrders
    amountSpent {
      amount
      currencyCode
    }
    createdAt
  }
}
"""


class ShopifyAPIError(Exception):
    """Custom exception for Shopify API errors.

    `status_code` is set for HTTP failures; `errors` holds GraphQL error
    objects when Shopify answered 200 with an `errors` array.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[List] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []

    @property
    def is_graphql_error(self) -> bool:
        return bool(self.errors) and self.status_code is None


def to_customer_gid(customer_id: str) -> str:
    """Expand a numeric customer id to its GraphQL global id."""
    if customer_id.startswith("gid://"):
        return customer_id
    return f"{CUSTOMER_GID_PREFIX}{customer_id}"


class ShopifyClient:
    """GraphQL client for Shopify Admin API.

    WHAT: Handles communication with Shopify's GraphQL Admin API
    WHY: Centralized API access with retry and error handling

    Usage:
        client = ShopifyClient(shop_domain="mystore.myshopify.com", access_token="shpat_xxx")
        customer = await client.get_customer("1234567890")
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        """Initialize Shopify client.

        Args:
            shop_domain: Shopify store domain (e.g., "mystore.myshopify.com")
            access_token: Shopify Admin API access token
            api_version: API version to use (default: 2024-10)
            transport: Optional httpx transport (tests)
            timeout: Request timeout in seconds
        """
        self.shop_domain = shop_domain
        self.access_token = access_token
        self.api_version = api_version
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}/graphql.json"
        self._transport = transport
        self._timeout = timeout

        logger.info(f"[SHOPIFY_CLIENT] Initialized for {shop_domain} (API version: {api_version})")

    async def execute(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        retries: int = 3,
    ) -> Dict[str, Any]:
        """Execute a GraphQL query against Shopify Admin API.

        WHAT: Send GraphQL request with retry logic
        WHY: All Shopify data fetching goes through this method

        Args:
            query: GraphQL query string
            variables: Query variables (optional)
            retries: Number of attempts for throttling and transient errors

        Returns:
            The `data` object of the GraphQL response

        Raises:
            ShopifyAPIError: On 4xx responses, GraphQL errors, or when retries run out
        """
        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        last_error: Optional[ShopifyAPIError] = None

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for attempt in range(retries):
                try:
                    response = await client.post(self.base_url, json=payload, headers=headers)
                except httpx.RequestError as e:
                    logger.warning(f"[SHOPIFY_CLIENT] Request error: {e} (attempt {attempt + 1}/{retries})")
                    last_error = ShopifyAPIError(f"Request error: {e}")
                    await self._backoff(attempt, retries)
                    continue

                # Handle rate limiting (429)
                if response.status_code == 429:
                    retry_after = float(response.headers.get("Retry-After", 2))
                    logger.warning(
                        f"[SHOPIFY_CLIENT] Rate limited, waiting {retry_after}s (attempt {attempt + 1}/{retries})"
                    )
                    last_error = ShopifyAPIError("Shopify API error: 429", status_code=429)
                    if attempt < retries - 1:
                        await asyncio.sleep(retry_after)
                    continue

                if response.status_code >= 500:
                    logger.warning(
                        f"[SHOPIFY_CLIENT] HTTP error {response.status_code} (attempt {attempt + 1}/{retries})"
                    )
                    last_error = ShopifyAPIError(
                        f"Shopify API error: {response.status_code}", status_code=response.status_code
                    )
                    await self._backoff(attempt, retries)
                    continue

                if response.is_error:
                    logger.error(f"[SHOPIFY_CLIENT] HTTP error {response.status_code}: {response.text[:200]}")
                    raise ShopifyAPIError(
                        f"Shopify API error: {response.status_code}", status_code=response.status_code
                    )

                data = response.json()

                # Check for GraphQL errors
                if data.get("errors"):
                    errors = data["errors"]
                    error_messages = [e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors]
                    logger.error(f"[SHOPIFY_CLIENT] GraphQL errors: {error_messages}")

                    if any("throttled" in msg.lower() for msg in error_messages) and attempt < retries - 1:
                        logger.warning("[SHOPIFY_CLIENT] Throttled, waiting 2s")
                        await asyncio.sleep(2)
                        continue

                    raise ShopifyAPIError(error_messages[0] if error_messages else "GraphQL error", errors=errors)

                return data.get("data") or {}

        raise last_error or ShopifyAPIError(f"Failed after {retries} attempts")

    @staticmethod
    async def _backoff(attempt: int, retries: int) -> None:
        if attempt < retries - 1:
            await asyncio.sleep(1 * (attempt + 1))

    # =========================================================================
    # CUSTOMER QUERIES
    # =========================================================================

    async def get_customer(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a customer's order count, lifetime spend and signup date.

        Args:
            customer_id: Numeric id or gid://shopify/Customer/<id>

        Returns:
            Dict with id, number_of_orders (int), amount_spent (Decimal),
            currency and created_at (ISO string or None); None if Shopify
            has no such customer.
        """
        gid = to_customer_gid(customer_id)
        data = await self.execute(CUSTOMER_QUERY, {"id": gid})

        customer = data.get("customer")
        if not customer:
            logger.info(f"[SHOPIFY_CLIENT] Customer not found: {gid}")
            return None

        amount_spent = customer.get("amountSpent") or {}
        result = {
            "id": customer.get("id", gid),
            # numberOfOrders is an UnsignedInt64, serialized as a string
            "number_of_orders": int(customer.get("numberOfOrders") or 0),
            "amount_spent": Decimal(str(amount_spent.get("amount") or "0")),
            "currency": amount_spent.get("currencyCode"),
            "created_at": customer.get("createdAt"),
        }

        logger.info(
            f"[SHOPIFY_CLIENT] Found customer {result['id']}: {result['number_of_orders']} orders, "
            f"{result['amount_spent']} {result['currency']}"
        )
        return result
