"""Pydantic request/response schemas for the Inventory API.

These are external contracts, kept separate from the Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Stock Request Schemas
# ---------------------------------------------------------------------------
class RegisterStockRequest(BaseModel):
    product_id: str
    sku: str
    initial_quantity: int = Field(ge=0, default=0)
    low_stock_threshold: int | None = Field(default=None, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "sku": "TSHIRT-BLK-M",
                    "initial_quantity": 100,
                    "low_stock_threshold": 10,
                }
            ]
        }
    }


class AdjustStockRequest(BaseModel):
    delta: int
    reason: str


class ReserveStockRequest(BaseModel):
    quantity: int = Field(ge=1)
    order_id: str | None = None
    expires_in_minutes: int | None = Field(default=None, ge=1)


class ReleaseReservationRequest(BaseModel):
    reason: str = "released"


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class InventoryItemIdResponse(BaseModel):
    inventory_item_id: str


class PendingReservationResponse(BaseModel):
    reservation_id: str
    order_id: str | None = None
    quantity: int
    expires_at: datetime | None = None


class InventoryResponse(BaseModel):
    inventory_item_id: str
    product_id: str
    sku: str
    available: int
    reserved: int
    total: int
    low_stock_threshold: int
    pending_reservations: list[PendingReservationResponse] = []


class ReservationResponse(BaseModel):
    reservation_id: str
    inventory_item_id: str
    product_id: str
    sku: str | None = None
    order_id: str | None = None
    quantity: int
    status: str
    reason: str | None = None
    reserved_at: datetime | None = None
    expires_at: datetime | None = None
    confirmed_at: datetime | None = None
    released_at: datetime | None = None


class LowStockItemResponse(BaseModel):
    product_id: str
    sku: str
    current_stock: int
    threshold: int


class MovementResponse(BaseModel):
    movement_type: str
    quantity: int
    reason: str | None = None
    reference: str | None = None
    available_after: int
    reserved_after: int
    total_after: int
    occurred_at: datetime
