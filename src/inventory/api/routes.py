"""FastAPI routes for the Inventory domain — stock levels and reservations."""

from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Request

from inventory.api.schemas import (
    AdjustStockRequest,
    InventoryItemIdResponse,
    InventoryResponse,
    LowStockItemResponse,
    MovementResponse,
    RegisterStockRequest,
    ReleaseReservationRequest,
    ReservationResponse,
    ReserveStockRequest,
)

inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


def _engine(request: Request):
    return request.app.state.services.engine


# ---------------------------------------------------------------------------
# Low stock
# ---------------------------------------------------------------------------
@inventory_router.get("/low-stock", response_model=list[LowStockItemResponse])
async def list_low_stock(request: Request, threshold: int | None = None) -> list[LowStockItemResponse]:
    return [
        LowStockItemResponse(
            product_id=str(level.product_id),
            sku=level.sku,
            current_stock=level.available,
            threshold=level.low_stock_threshold if threshold is None else threshold,
        )
        for level in _engine(request).low_stock_items(threshold)
    ]


@inventory_router.post("/low-stock/check", response_model=list[LowStockItemResponse])
async def check_low_stock(request: Request, threshold: int | None = None) -> list[LowStockItemResponse]:
    return [LowStockItemResponse(**alert) for alert in _engine(request).check_low_stock(threshold)]


# ---------------------------------------------------------------------------
# Reservations
# ---------------------------------------------------------------------------
@inventory_router.get("/reservations/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(reservation_id: str, request: Request) -> ReservationResponse:
    view = _engine(request).reservation(reservation_id)
    return ReservationResponse(
        reservation_id=str(view.reservation_id),
        inventory_item_id=str(view.inventory_item_id),
        product_id=str(view.product_id),
        order_id=str(view.order_id) if view.order_id else None,
        quantity=view.quantity,
        status=view.status,
        reason=view.reason,
        reserved_at=view.reserved_at,
        expires_at=view.expires_at,
    )


@inventory_router.post("/reservations/{reservation_id}/confirm", response_model=ReservationResponse)
async def confirm_reservation(reservation_id: str, request: Request) -> ReservationResponse:
    return ReservationResponse(**_engine(request).confirm(reservation_id))


@inventory_router.post("/reservations/{reservation_id}/release", response_model=ReservationResponse)
async def release_reservation(
    reservation_id: str, request: Request, body: ReleaseReservationRequest | None = None
) -> ReservationResponse:
    reason = body.reason if body else "released"
    return ReservationResponse(**_engine(request).release(reservation_id, reason=reason))


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------
@inventory_router.post("", status_code=201, response_model=InventoryItemIdResponse)
async def register_stock(body: RegisterStockRequest, request: Request) -> InventoryItemIdResponse:
    item_id = _engine(request).get_or_create_item(
        body.product_id,
        body.sku,
        initial_quantity=body.initial_quantity,
        low_stock_threshold=body.low_stock_threshold,
    )
    return InventoryItemIdResponse(inventory_item_id=item_id)


@inventory_router.get("/{product_id}", response_model=InventoryResponse)
async def get_inventory(product_id: str, request: Request) -> InventoryResponse:
    return InventoryResponse(**_engine(request).get_inventory(product_id))


@inventory_router.post("/{product_id}/adjustments", response_model=InventoryResponse)
async def adjust_stock(product_id: str, body: AdjustStockRequest, request: Request) -> InventoryResponse:
    return InventoryResponse(**_engine(request).adjust_stock(product_id, body.delta, reason=body.reason))


@inventory_router.post("/{product_id}/reservations", status_code=201, response_model=ReservationResponse)
async def reserve_stock(product_id: str, body: ReserveStockRequest, request: Request) -> ReservationResponse:
    expires_at = None
    if body.expires_in_minutes:
        expires_at = datetime.now(UTC) + timedelta(minutes=body.expires_in_minutes)
    reservation = _engine(request).reserve(product_id, body.quantity, order_id=body.order_id, expires_at=expires_at)
    return ReservationResponse(**reservation)


@inventory_router.get("/{product_id}/movements", response_model=list[MovementResponse])
async def list_movements(product_id: str, request: Request) -> list[MovementResponse]:
    return [
        MovementResponse(
            movement_type=entry.movement_type,
            quantity=entry.quantity,
            reason=entry.reason,
            reference=entry.reference,
            available_after=entry.available_after,
            reserved_after=entry.reserved_after,
            total_after=entry.total_after,
            occurred_at=entry.occurred_at,
        )
        for entry in _engine(request).movements(product_id)
    ]
