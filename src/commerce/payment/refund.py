"""Refund processing — refund a completed payment through the gateway.

The gateway call happens outside any unit of work; only once it has
succeeded is the outcome recorded locally. Recording the refund updates the
payment and the order, and (for orders that never left the warehouse) puts
the items back in stock, all in one unit of work.

A failed gateway call leaves every local record untouched. A local failure
after the gateway refunded the money cannot be rolled back and is raised as
`ReconciliationFailure`, with the gateway refund id logged for the operator.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.access import Actor, Capability, Role, authorize
from commerce.domain import commerce
from commerce.errors import GatewayError, ReconciliationFailure
from commerce.gateway import get_gateway
from commerce.inventory.ledger import inventory_ledger
from commerce.order.order import Order, OrderStatus
from commerce.payment.payment import Payment
from commerce.utils.locks import payment_locks
from commerce.utils.lookup import load

logger = structlog.get_logger(__name__)

DEFAULT_REFUND_REASON = "Requested by admin"

# Orders refunded before they shipped still have their goods on the shelf
RESTOCK_ON_REFUND_STATES = {OrderStatus.PROCESSING, OrderStatus.PACKED}


@commerce.command(part_of="Payment")
class RecordRefund:
    """Record a refund the gateway has already processed."""

    payment_id = Identifier(required=True)
    refund_id = String(required=True, max_length=255)
    reason = String(max_length=500)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.ADMIN.value)


@commerce.command_handler(part_of=Payment)
class RefundHandler:
    @handle(RecordRefund)
    def record_refund(self, command):
        actor = Actor.from_command(command)
        authorize(actor, Capability.REFUND_PAYMENT)

        payment = load(Payment, command.payment_id)
        order = load(Order, payment.order_id)

        payment.mark_refunded(command.refund_id, reason=command.reason)

        restock = order.current_status in RESTOCK_ON_REFUND_STATES
        order.mark_refunded(command.refund_id, refunded_by=actor.user_id)
        if restock:
            inventory_ledger.restore_all(order.item_lines(), reference=str(order.id))

        current_domain.repository_for(Payment).add(payment)
        current_domain.repository_for(Order).add(order)

        return {
            "payment_id": str(payment.id),
            "order_id": str(order.id),
            "refund_id": command.refund_id,
            "status": payment.status,
            "order_status": order.status,
            "refunded_at": payment.refunded_at,
            "restocked": restock,
        }


def refund_payment(payment_id: str, actor: Actor, reason: str | None = None) -> dict:
    """Refund `payment_id` through the gateway and record the outcome."""
    authorize(actor, Capability.REFUND_PAYMENT)
    reason = reason or DEFAULT_REFUND_REASON

    payment = load(Payment, payment_id)
    order_id = str(payment.order_id)
    order = load(Order, order_id)

    with payment_locks.hold([order_id]), inventory_ledger.hold(pid for pid, _ in order.item_lines()):
        # Re-read under the lock so two concurrent refunds cannot both pass
        payment = load(Payment, payment_id)
        payment.assert_refundable()

        gateway = get_gateway()
        result = gateway.refund(
            transaction_id=payment.transaction_id,
            amount=payment.amount_minor,
            notes={"order_id": order_id, "reason": reason},
            receipt=str(payment.id),
        )
        if not result.success:
            logger.warning(
                "Gateway refused refund",
                payment_id=str(payment.id),
                order_id=order_id,
                gateway=gateway.name,
                reason=result.failure_reason,
            )
            raise GatewayError(
                f"Refund failed: {result.failure_reason}",
                payment_id=str(payment.id),
            )

        try:
            recorded = current_domain.process(
                RecordRefund(
                    payment_id=str(payment.id),
                    refund_id=result.gateway_refund_id,
                    reason=reason,
                    actor_id=actor.user_id,
                    actor_role=actor.role.value,
                ),
                asynchronous=False,
            )
        except Exception as exc:
            logger.critical(
                "Gateway refund succeeded but could not be recorded",
                payment_id=str(payment.id),
                order_id=order_id,
                gateway_refund_id=result.gateway_refund_id,
                error=str(exc),
            )
            raise ReconciliationFailure(
                "Refund was processed by the gateway but could not be recorded",
                payment_id=str(payment.id),
                gateway_refund_id=result.gateway_refund_id,
            ) from exc

    logger.info(
        "Payment refunded",
        payment_id=str(payment.id),
        order_id=order_id,
        refund_id=result.gateway_refund_id,
        amount_minor=payment.amount_minor,
    )
    return recorded
