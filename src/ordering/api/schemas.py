"""Pydantic request/response schemas for the Ordering API.

These are external contracts, kept separate from the Protean commands.
Money crosses the wire as decimal strings.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    name: str | None = None
    line1: str
    line2: str | None = None
    city: str
    state: str | None = None
    postal_code: str
    country: str
    phone: str | None = None


class OrderItemSchema(BaseModel):
    product_id: str
    sku: str
    name: str | None = None
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    customer_id: str
    items: list[OrderItemSchema] = Field(min_length=1)
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    discount: Decimal = Field(ge=0, default=Decimal("0"))
    currency: str | None = Field(default=None, max_length=3)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [
                        {
                            "product_id": "prod-001",
                            "sku": "TSHIRT-BLK-M",
                            "name": "Black T-Shirt (M)",
                            "quantity": 2,
                            "unit_price": "19.99",
                        }
                    ],
                    "shipping_address": {
                        "line1": "123 Main St",
                        "city": "Springfield",
                        "state": "IL",
                        "postal_code": "62701",
                        "country": "US",
                    },
                }
            ]
        }
    }


class TransitionRequest(BaseModel):
    status: str
    actor: str = "api"
    reason: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class LineItemResponse(BaseModel):
    product_id: str
    sku: str
    name: str | None = None
    quantity: int
    unit_price: str
    subtotal: str
    tax: str
    total: str


class TotalsResponse(BaseModel):
    subtotal: str
    tax: str
    shipping: str
    discount: str
    grand_total: str


class HistoryEntryResponse(BaseModel):
    from_status: str | None = None
    to_status: str
    actor: str
    reason: str | None = None
    occurred_at: datetime


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    currency: str
    items: list[LineItemResponse]
    totals: TotalsResponse
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    failure_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    paid_at: datetime | None = None
    confirmed_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    refunded_at: datetime | None = None
    failed_at: datetime | None = None


class OrderSummaryResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    item_count: int
    grand_total: str | None = None
    currency: str
    created_at: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderSummaryResponse]
    total: int
    page: int
    limit: int


class TransitionResponse(BaseModel):
    order_id: str
    status: str
    event: str | None = None


class ValidTransitionsResponse(BaseModel):
    order_id: str
    status: str
    valid_transitions: list[str]
