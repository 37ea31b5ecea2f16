from protean.exceptions import ValidationError


class InvalidTransition(ValidationError):
    """The requested status is not reachable from the order's current status."""

    def __init__(self, current, target, detail=None):
        self.current = current
        self.target = target
        message = detail or f"Cannot transition from {current} to {target}"
        super().__init__({"status": [message]})
