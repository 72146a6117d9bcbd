"""
Customer data lookup API.

WHY:
- orders/create webhooks carry no order history
- The processing function has no Shopify token; this service holds the
  shop sessions and asks the Admin API on its behalf

WHAT:
- POST /api/customer-data with {"shop", "customerId"}
- Verifies X-Shopify-Hmac-SHA256, finds the shop's session (offline token
  preferred), queries the customer's order count and lifetime spend

REFERENCES:
- order_insights/services/shopify_client.py:ShopifyClient.get_customer
- order_insights/schemas.py:CustomerDataRequest, CustomerDataResponse
- order_insights/pipeline/http_client.py (caller)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import Settings, SignedBody, get_settings, get_signed_body
from ..models import ShopSession
from ..schemas import CustomerDataRequest, CustomerDataResponse, CustomerSnapshot, validate_json_body
from ..services.shopify_client import ShopifyAPIError, ShopifyClient, to_customer_gid
from ..telemetry import capture_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Customer Data"])

OFFLINE_TOKEN_PREFIX = "shpat_"


def _respond(status_code: int, error: Optional[str] = None, customer: Optional[CustomerSnapshot] = None) -> JSONResponse:
    body = CustomerDataResponse(success=error is None, customer=customer, error=error)
    return JSONResponse(status_code=status_code, content=body.to_content())


def find_shop_session(db: Session, shop: str) -> Optional[ShopSession]:
    """Session with a usable access token, offline (shpat_) tokens first."""
    sessions = db.query(ShopSession).filter(ShopSession.shop == shop).all()
    logger.info(f"[CUSTOMER_DATA] Found {len(sessions)} sessions for {shop}")

    with_token = [s for s in sessions if s.access_token]
    for session in with_token:
        if session.access_token.startswith(OFFLINE_TOKEN_PREFIX):
            return session
    return with_token[0] if with_token else None


@router.post(
    "/customer-data",
    response_model=CustomerDataResponse,
    response_model_exclude_none=True,
    summary="Look up a customer's order history",
    description="""
    Returns numberOfOrders, amountSpent and createdAt for one customer.
    Called by the order-event processing function.

    - Requires a valid X-Shopify-Hmac-SHA256 signature of the raw body
    - Numeric customer ids are expanded to gid://shopify/Customer/<id>
    """,
)
async def get_customer_data(
    signed: SignedBody = Depends(get_signed_body),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if not signed.verified:
        logger.error(f"[CUSTOMER_DATA] Rejected request: {signed.error}")
        return _respond(signed.status_code, signed.error)

    result = validate_json_body(signed.raw, CustomerDataRequest)
    if not result.valid:
        logger.warning(f"[CUSTOMER_DATA] Invalid payload: {result.error}")
        return _respond(status.HTTP_400_BAD_REQUEST, result.error)

    request: CustomerDataRequest = result.payload

    session = find_shop_session(db, request.shop)
    if session is None:
        logger.error(f"[CUSTOMER_DATA] No session found for shop: {request.shop}")
        return _respond(status.HTTP_404_NOT_FOUND, "Shop not found or not authenticated")

    logger.info(f"[CUSTOMER_DATA] Using session {session.id} for shop {request.shop}")
    customer_gid = to_customer_gid(request.customer_id)

    try:
        client = ShopifyClient(
            shop_domain=request.shop,
            access_token=session.access_token,
            api_version=settings.SHOPIFY_API_VERSION,
        )
        customer = await client.get_customer(customer_gid)
    except ShopifyAPIError as e:
        if e.is_graphql_error:
            return _respond(status.HTTP_400_BAD_REQUEST, e.message or "GraphQL error")
        logger.error(f"[CUSTOMER_DATA] Shopify API error for {request.shop}: {e.message}")
        return _respond(status.HTTP_502_BAD_GATEWAY, e.message)
    except Exception as e:
        logger.exception(f"[CUSTOMER_DATA] Error calling Shopify API: {e}")
        capture_exception(e, extra={"shop": request.shop, "customer_id": customer_gid})
        return _respond(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch customer data")

    if customer is None:
        return _respond(status.HTTP_404_NOT_FOUND, "Customer not found")

    snapshot = CustomerSnapshot(
        id=customer["id"],
        number_of_orders=customer["number_of_orders"],
        amount_spent=customer["amount_spent"],
        currency=customer["currency"],
        created_at=customer["created_at"],
    )
    return _respond(status.HTTP_200_OK, customer=snapshot)
