"""FastAPI routes for the Ordering domain — orders and their lifecycle."""

from fastapi import APIRouter, Query, Request

from ordering.api.schemas import (
    CreateOrderRequest,
    HistoryEntryResponse,
    OrderListResponse,
    OrderResponse,
    OrderSummaryResponse,
    TransitionRequest,
    TransitionResponse,
    ValidTransitionsResponse,
)
from ordering.order.order import Order

order_router = APIRouter(prefix="/orders", tags=["orders"])


def _lifecycle(request: Request):
    return request.app.state.services.lifecycle


def _address(value):
    return value.to_dict() if value is not None else None


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        status=order.status,
        currency=order.currency,
        items=[
            {
                "product_id": str(item.product_id),
                "sku": item.sku,
                "name": item.name,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "subtotal": item.subtotal,
                "tax": item.tax,
                "total": item.total,
            }
            for item in order.items
        ],
        totals=order.totals.to_dict(),
        shipping_address=_address(order.shipping_address),
        billing_address=_address(order.billing_address),
        failure_reason=order.failure_reason,
        created_at=order.created_at,
        updated_at=order.updated_at,
        paid_at=order.paid_at,
        confirmed_at=order.confirmed_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        completed_at=order.completed_at,
        cancelled_at=order.cancelled_at,
        refunded_at=order.refunded_at,
        failed_at=order.failed_at,
    )


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(body: CreateOrderRequest, request: Request) -> OrderResponse:
    order = _lifecycle(request).create_order(
        customer_id=body.customer_id,
        items=[item.model_dump(mode="json") for item in body.items],
        shipping_address=body.shipping_address.model_dump(exclude_none=True),
        billing_address=body.billing_address.model_dump(exclude_none=True) if body.billing_address else None,
        discount=str(body.discount),
        currency=body.currency,
        actor=body.customer_id,
    )
    # Reload: the coordinator may already have moved it on.
    return _order_response(_lifecycle(request).get_order(order.id))


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    request: Request,
    status: str | None = None,
    customer_id: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> OrderListResponse:
    result = _lifecycle(request).list_orders(status=status, customer_id=customer_id, page=page, limit=limit)
    return OrderListResponse(
        orders=[
            OrderSummaryResponse(
                order_id=str(summary.order_id),
                order_number=summary.order_number,
                customer_id=str(summary.customer_id),
                status=summary.status,
                item_count=summary.item_count,
                grand_total=summary.grand_total,
                currency=summary.currency,
                created_at=summary.created_at,
            )
            for summary in result["orders"]
        ],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
    )


@order_router.get("/by-number/{order_number}", response_model=OrderResponse)
async def get_order_by_number(order_number: str, request: Request) -> OrderResponse:
    return _order_response(_lifecycle(request).get_order_by_number(order_number))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, request: Request) -> OrderResponse:
    return _order_response(_lifecycle(request).get_order(order_id))


@order_router.get("/{order_id}/transitions", response_model=ValidTransitionsResponse)
async def get_valid_transitions(order_id: str, request: Request) -> ValidTransitionsResponse:
    order = _lifecycle(request).get_order(order_id)
    return ValidTransitionsResponse(
        order_id=order_id,
        status=order.status,
        valid_transitions=order.valid_transitions(),
    )


@order_router.post("/{order_id}/transitions", response_model=TransitionResponse)
async def transition_order(order_id: str, body: TransitionRequest, request: Request) -> TransitionResponse:
    lifecycle = _lifecycle(request)
    event = lifecycle.transition(order_id, body.status, actor=body.actor, reason=body.reason)
    return TransitionResponse(order_id=order_id, status=lifecycle.status_of(order_id), event=event)


@order_router.get("/{order_id}/history", response_model=list[HistoryEntryResponse])
async def get_order_history(order_id: str, request: Request) -> list[HistoryEntryResponse]:
    return [
        HistoryEntryResponse(
            from_status=entry.from_status,
            to_status=entry.to_status,
            actor=entry.actor,
            reason=entry.reason,
            occurred_at=entry.occurred_at,
        )
        for entry in sorted(_lifecycle(request).history(order_id), key=lambda e: e.occurred_at)
    ]
