"""Inbound event webhook — lets payment and shipping systems drive the coordinator over HTTP."""

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

router = APIRouter(prefix="/events", tags=["events"])


class InboundEvent(BaseModel):
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "type": "payment.succeeded",
                    "payload": {"orderId": "5b7a9c1e-0000-4000-8000-000000000001", "paymentId": "pay-001"},
                }
            ]
        }
    }


@router.post("", status_code=202)
async def receive_event(body: InboundEvent, request: Request):
    coordinator = request.app.state.services.coordinator
    result = coordinator.handle(body.type, body.payload)
    if result is None:
        return {"type": body.type, "handled": False}
    return {"type": body.type, "handled": True, **result}
