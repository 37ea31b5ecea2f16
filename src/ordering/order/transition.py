"""Order status transitions — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    to_status = String(required=True, max_length=20)
    actor = String(required=True, max_length=100)
    reason = String(max_length=1000)


@ordering.command_handler(part_of=Order)
class TransitionOrderHandler:
    @handle(TransitionOrder)
    def transition_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous_status = order.status
        event_name = order.transition(command.to_status, actor=command.actor, reason=command.reason)
        repo.add(order)
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "previous_status": previous_status,
            "status": order.status,
            "event": event_name,
        }
