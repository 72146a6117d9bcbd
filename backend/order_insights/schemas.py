"""Pydantic schemas for request/response payloads.

Shared by both sides of the signed protocol: the processing function builds
and serializes these models, the ingestion service validates them. Wire
names are camelCase (aliases); Python attributes are snake_case.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictStr, ValidationError, field_serializer, field_validator

from .models import CustomerTypeEnum, InsightStatusEnum


class InsightPayload(BaseModel):
    """Insight Record as delivered to `POST /api/ai-insights/ingest`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    shop: StrictStr = Field(min_length=1, description="Shopify store domain")
    order_id: StrictStr = Field(alias="orderId", min_length=1, description="Shopify order id")
    order_name: StrictStr = Field(alias="orderName", min_length=1, description="Human-readable order name, e.g. #1001")
    insight_text: StrictStr = Field(alias="insightText", min_length=1, description="AI-generated insight")
    followup_subject: Optional[StrictStr] = Field(default=None, alias="followupSubject")
    followup_body: Optional[StrictStr] = Field(default=None, alias="followupBody")
    customer_type: Optional[CustomerTypeEnum] = Field(default=None, alias="customerType")
    order_value: Optional[StrictFloat] = Field(default=None, alias="orderValue", allow_inf_nan=False)
    status: InsightStatusEnum = Field(default=InsightStatusEnum.completed)
    error_message: Optional[StrictStr] = Field(default=None, alias="errorMessage")

    @field_validator("customer_type", mode="before")
    @classmethod
    def _blank_customer_type(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        return InsightStatusEnum.completed if value in (None, "") else value

    def to_wire(self) -> bytes:
        """Serialize once for signing and sending."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


class IngestResponse(BaseModel):
    """Successful ingestion response."""

    success: bool = True
    id: str
    message: str = "Insight saved successfully"


class CustomerDataRequest(BaseModel):
    """Body of `POST /api/customer-data`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    shop: StrictStr = Field(min_length=1)
    customer_id: StrictStr = Field(alias="customerId", min_length=1)

    def to_wire(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


class CustomerSnapshot(BaseModel):
    """Authoritative customer record returned by the customer-data route."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    number_of_orders: int = Field(alias="numberOfOrders", ge=0)
    amount_spent: Decimal = Field(alias="amountSpent", ge=0)
    currency: Optional[str] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @field_serializer("amount_spent")
    def _serialize_amount(self, value: Decimal) -> float:
        return float(value)


class CustomerDataResponse(BaseModel):
    """Response of `POST /api/customer-data`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    success: bool
    customer: Optional[CustomerSnapshot] = None
    error: Optional[str] = None

    def to_content(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status")


# =============================================================================
# BODY VALIDATION
# =============================================================================

VALID_STATUSES = [status.value for status in InsightStatusEnum]
VALID_CUSTOMER_TYPES = [customer_type.value for customer_type in CustomerTypeEnum]


@dataclass
class PayloadValidation:
    """Outcome of validating a request body.

    Exactly one of `payload` / `error` is set. Routers branch on `valid`
    and turn `error` into a 400 response.
    """

    payload: Optional[BaseModel] = None
    error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.payload is not None and self.error is None


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = first.get("loc") or ()
    if not loc:
        return "Request body must be a JSON object"

    field = loc[0]
    if field == "status":
        return f"Invalid 'status' field. Must be one of: {', '.join(VALID_STATUSES)}"
    if field == "customerType":
        return f"Invalid 'customerType' field. Must be one of: {', '.join(VALID_CUSTOMER_TYPES)}"
    return f"Missing or invalid '{field}' field"


def validate_json_body(body: bytes, model: Type[BaseModel]) -> PayloadValidation:
    """Parse raw JSON bytes into `model`, returning a tagged result."""
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return PayloadValidation(error="Invalid JSON body")

    try:
        return PayloadValidation(payload=model.model_validate(data))
    except ValidationError as e:
        return PayloadValidation(error=_describe_validation_error(e))


def validate_insight_payload(body: bytes) -> PayloadValidation:
    """Validate an ingestion body, including the error-status rule."""
    result = validate_json_body(body, InsightPayload)
    if not result.valid:
        return result

    payload = result.payload
    if payload.status == InsightStatusEnum.error and not payload.error_message:
        return PayloadValidation(error="'errorMessage' is required when status is 'error'")
    return result
