"""Inventory rule violations.

All of them are ValidationErrors so the HTTP layer reports them as client
errors, and none of them is ever retried.
"""

from protean.exceptions import ValidationError


class InsufficientStock(ValidationError):
    def __init__(self, sku, available, requested):
        self.sku = sku
        self.available = available
        self.requested = requested
        super().__init__(
            {"quantity": [f"Insufficient stock for {sku}: {available} available, {requested} requested"]}
        )


class InvalidReservationState(ValidationError):
    def __init__(self, reservation_id, status, action):
        self.reservation_id = str(reservation_id)
        self.status = status
        super().__init__({"reservation_id": [f"Cannot {action} reservation in {status} state"]})


class InvalidAdjustment(ValidationError):
    def __init__(self, message):
        super().__init__({"delta": [message]})
