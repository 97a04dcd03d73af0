"""Payment intent — open a gateway order for an unpaid order.

The client SDK needs the gateway order id and the public key id to open the
checkout; the merchant secret never leaves the gateway adapter. A pending
payment already opened for the same order is handed back instead of opening
a second gateway order.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.access import Actor, Capability, Role, authorize
from commerce.domain import commerce
from commerce.errors import AlreadyFinalized, AlreadyPaid, GatewayError
from commerce.gateway import get_gateway
from commerce.order.order import Order, OrderStatus
from commerce.payment.payment import Payment, PaymentStatus, to_minor_units
from commerce.utils.locks import payment_locks
from commerce.utils.lookup import find_one, load

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Payment")
class CreatePaymentIntent:
    """Open a gateway order for the order's grand total."""

    order_id = Identifier(required=True)
    payment_method = String(max_length=50)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)


def _intent(payment: Payment, key_id: str) -> dict:
    intent = {
        "gateway_order_id": payment.gateway_order_id,
        "key_id": key_id,
        "amount": payment.amount_minor,
        "currency": payment.currency,
        "payment_id": str(payment.id),
        "order_id": str(payment.order_id),
    }
    # The checkout client reads the camelCase names
    intent.update(
        gatewayOrderId=intent["gateway_order_id"],
        keyId=key_id,
        paymentId=intent["payment_id"],
        orderId=intent["order_id"],
    )
    return intent


@commerce.command_handler(part_of=Payment)
class PaymentIntentHandler:
    @handle(CreatePaymentIntent)
    def create_payment_intent(self, command):
        actor = Actor.from_command(command)
        order = load(Order, command.order_id)
        authorize(actor, Capability.PAY_ORDER, owner_id=order.owner_id)

        if order.is_paid:
            raise AlreadyPaid(order_id=str(order.id))
        if order.current_status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise AlreadyFinalized(
                f"Cannot pay for a {order.current_status.value.lower()} order",
                order_id=str(order.id),
            )

        gateway = get_gateway()
        amount_minor = to_minor_units(order.total_amount, order.currency)

        existing = find_one(Payment, order_id=str(order.id), status=PaymentStatus.PENDING.value)
        if existing is not None and existing.amount_minor == amount_minor:
            logger.info(
                "Reusing pending payment intent",
                order_id=str(order.id),
                payment_id=str(existing.id),
                gateway_order_id=existing.gateway_order_id,
            )
            return _intent(existing, gateway.key_id)

        result = gateway.create_order(
            amount=amount_minor,
            currency=order.currency,
            receipt=str(order.id),
            notes={"order_id": str(order.id), "user_id": str(order.owner_id)},
        )
        if not result.success:
            logger.warning(
                "Gateway refused payment intent",
                order_id=str(order.id),
                gateway=gateway.name,
                reason=result.failure_reason,
            )
            raise GatewayError(
                f"Could not create payment intent: {result.failure_reason}",
                order_id=str(order.id),
            )

        payment = Payment.create(
            order_id=order.id,
            owner_id=order.owner_id,
            gateway_order_id=result.gateway_order_id,
            amount=order.total_amount,
            amount_minor=amount_minor,
            currency=order.currency,
            payment_method=command.payment_method or (order.payment_info.method if order.payment_info else None),
            gateway_name=gateway.name,
            key_id=gateway.key_id,
        )
        current_domain.repository_for(Payment).add(payment)

        logger.info(
            "Payment intent created",
            order_id=str(order.id),
            payment_id=str(payment.id),
            gateway_order_id=payment.gateway_order_id,
            amount_minor=amount_minor,
            currency=order.currency,
        )
        return _intent(payment, gateway.key_id)


def create_payment_intent(order_id: str, actor: Actor, payment_method: str | None = None) -> dict:
    """Open (or reuse) the gateway order for `order_id` and return what the client needs to pay."""
    with payment_locks.hold([order_id]):
        return current_domain.process(
            CreatePaymentIntent(
                order_id=order_id,
                payment_method=payment_method,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
            ),
            asynchronous=False,
        )
