"""Payment verification — settle an order from the client's signed confirmation.

The gateway signs `<gateway order id>|<gateway payment id>` with the merchant
secret. A confirmation whose signature does not match changes nothing.
A matching one completes the payment and marks the order paid in the same
unit of work.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.access import Actor, Capability, Role, authorize
from commerce.domain import commerce
from commerce.errors import (
    AlreadyPaid,
    CommerceError,
    InvalidSignature,
    NotFound,
    ReconciliationFailure,
    StateConflict,
)
from commerce.gateway import get_gateway
from commerce.order.order import Order
from commerce.order.queries import order_summary
from commerce.payment.payment import Payment, to_minor_units
from commerce.utils.locks import payment_locks
from commerce.utils.lookup import find_one, load

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Payment")
class VerifyPayment:
    """Client-submitted payment confirmation."""

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=255)
    gateway_payment_id = String(required=True, max_length=255)
    signature = String(required=True, max_length=255)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)


@commerce.command_handler(part_of=Payment)
class PaymentVerificationHandler:
    @handle(VerifyPayment)
    def verify_payment(self, command):
        actor = Actor.from_command(command)
        order = load(Order, command.order_id)
        payment = find_one(Payment, gateway_order_id=command.gateway_order_id, order_id=str(order.id))
        if payment is None:
            raise NotFound("Payment not found", gateway_order_id=command.gateway_order_id)

        authorize(actor, Capability.PAY_ORDER, owner_id=order.owner_id)

        if order.is_paid or not payment.is_pending:
            raise AlreadyPaid(order_id=str(order.id), payment_id=str(payment.id))

        gateway = get_gateway()
        if not gateway.verify_payment_signature(
            command.gateway_order_id,
            command.gateway_payment_id,
            command.signature,
        ):
            logger.warning(
                "Payment signature mismatch",
                order_id=str(order.id),
                payment_id=str(payment.id),
                gateway_order_id=command.gateway_order_id,
            )
            raise InvalidSignature(order_id=str(order.id))

        # Compare in minor units so float noise never blocks a valid payment
        if payment.amount_minor != to_minor_units(order.total_amount, order.currency):
            logger.error(
                "Payment amount does not match order total",
                order_id=str(order.id),
                payment_id=str(payment.id),
                payment_amount=payment.amount,
                order_total=order.total_amount,
            )
            raise StateConflict(
                "Payment amount does not match the order total",
                order_id=str(order.id),
                payment_id=str(payment.id),
            )

        payment.mark_completed(transaction_id=command.gateway_payment_id)
        order.mark_paid(
            payment_id=payment.id,
            transaction_id=command.gateway_payment_id,
            amount=payment.amount,
            paid_at=payment.paid_at,
        )
        current_domain.repository_for(Payment).add(payment)
        current_domain.repository_for(Order).add(order)

        return {
            "order_id": str(order.id),
            "payment_id": str(payment.id),
            "transaction_id": payment.transaction_id,
            "status": payment.status,
            "paid_at": payment.paid_at,
            "payment": payment.summary(),
            "order": order_summary(order),
        }


def verify_payment(
    order_id: str,
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: str,
    actor: Actor,
) -> dict:
    """Verify a signed payment confirmation and settle the order.

    Domain refusals (bad signature, already paid, not found, forbidden)
    propagate unchanged. Anything else means the gateway captured money we
    could not record, and is raised as `ReconciliationFailure`.
    """
    with payment_locks.hold([order_id]):
        try:
            result = current_domain.process(
                VerifyPayment(
                    order_id=order_id,
                    gateway_order_id=gateway_order_id,
                    gateway_payment_id=gateway_payment_id,
                    signature=signature,
                    actor_id=actor.user_id,
                    actor_role=actor.role.value,
                ),
                asynchronous=False,
            )
        except (CommerceError, ValidationError, ObjectNotFoundError):
            raise
        except Exception as exc:
            logger.exception(
                "Verified payment could not be recorded",
                order_id=order_id,
                gateway_order_id=gateway_order_id,
                gateway_payment_id=gateway_payment_id,
            )
            raise ReconciliationFailure(
                "Payment was verified but could not be recorded",
                order_id=order_id,
                gateway_payment_id=gateway_payment_id,
            ) from exc

    logger.info(
        "Payment verified",
        order_id=order_id,
        payment_id=result["payment_id"],
        transaction_id=gateway_payment_id,
    )
    return result
