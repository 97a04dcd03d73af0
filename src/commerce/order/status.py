"""Order status updates and cancellation — commands and handler.

Cancellation flips the status and restores stock for every item inside one
unit of work, so either both land or neither does. Use `cancel_order` /
`update_order_status` from application code: they hold the order's product
locks across the commit.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.access import Actor, Capability, Role, authorize
from commerce.domain import commerce
from commerce.errors import NotFound
from commerce.inventory.ledger import inventory_ledger
from commerce.order.order import Order, OrderStatus
from commerce.utils.lookup import load

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class UpdateOrderStatus:
    """Move an order along its lifecycle (administrators)."""

    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    comment = String(max_length=500)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.ADMIN.value)


@commerce.command(part_of="Order")
class CancelOrder:
    """Cancel an order and return its items to stock (owner or administrator)."""

    order_id = Identifier(required=True)
    reason = String(max_length=500)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)


def _cancel(order: Order, reason, actor: Actor) -> None:
    lines = order.cancel(reason=reason, cancelled_by=actor.user_id)
    inventory_ledger.restore_all(lines, reference=str(order.id))
    logger.info(
        "Order cancelled, stock restored",
        order_id=str(order.id),
        cancelled_by=actor.user_id,
        lines=len(lines),
    )


@commerce.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        actor = Actor.from_command(command)
        authorize(actor, Capability.UPDATE_ORDER_STATUS)

        order = load(Order, command.order_id)
        target = OrderStatus.parse(command.status)
        if target == OrderStatus.CANCELLED and order.current_status != OrderStatus.CANCELLED:
            _cancel(order, command.comment or "Cancelled by admin", actor)
        else:
            changed = order.advance_status(target, changed_by=actor.user_id, comment=command.comment)
            if not changed:
                logger.info("Order already in requested status", order_id=str(order.id), status=target.value)

        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @handle(CancelOrder)
    def cancel_order(self, command):
        actor = Actor.from_command(command)
        order = load(Order, command.order_id)
        authorize(actor, Capability.CANCEL_ORDER, owner_id=order.owner_id)

        _cancel(order, command.reason or "Cancelled by user", actor)
        current_domain.repository_for(Order).add(order)
        return str(order.id)


def _product_ids(order_id) -> list[str]:
    try:
        return [pid for pid, _ in load(Order, order_id).item_lines()]
    except NotFound:
        # The handler reports the missing order
        return []


def update_order_status(order_id: str, status: str, actor: Actor, comment: str | None = None) -> str:
    with inventory_ledger.hold(_product_ids(order_id)):
        return current_domain.process(
            UpdateOrderStatus(
                order_id=order_id,
                status=status,
                comment=comment,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
            ),
            asynchronous=False,
        )


def cancel_order(order_id: str, actor: Actor, reason: str | None = None) -> str:
    with inventory_ledger.hold(_product_ids(order_id)):
        return current_domain.process(
            CancelOrder(
                order_id=order_id,
                reason=reason,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
            ),
            asynchronous=False,
        )
