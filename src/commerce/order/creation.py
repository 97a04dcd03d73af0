"""Order Factory — place orders from a cart or from an explicit item list.

Placing an order reserves stock for every line, persists the order and (for
cart checkouts) empties the cart, all in one unit of work. Stock is checked
for every line before any product is decremented, so a short line leaves
every product and the cart exactly as they were.

Application code calls `place_order_from_cart` / `place_order`, which hold
the per-product ledger locks until the unit of work has committed.
"""

import json
import os

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.access import Actor, Capability, Role, authorize
from commerce.cart.cart import Cart
from commerce.cart.items import find_cart
from commerce.domain import commerce
from commerce.errors import EmptyCart, Validation
from commerce.inventory.ledger import aggregate_lines, inventory_ledger
from commerce.order.order import Order

logger = structlog.get_logger(__name__)


def default_currency() -> str:
    return os.environ.get("DEFAULT_CURRENCY", "INR").upper()


@commerce.command(part_of="Order")
class PlaceOrderFromCart:
    """Convert the owner's cart into an order."""

    owner_id = Identifier(required=True)
    shipping_address = Text(required=True)  # JSON: ShippingAddress dict
    payment_method = String(required=True, max_length=50)
    tax_amount = Float(default=0.0, min_value=0.0)
    shipping_amount = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)


@commerce.command(part_of="Order")
class PlaceOrder:
    """Create an order from an explicit list of products and quantities."""

    owner_id = Identifier(required=True)
    items = Text(required=True)  # JSON: [{"product_id": ..., "quantity": ...}]
    shipping_address = Text(required=True)
    payment_method = String(required=True, max_length=50)
    tax_amount = Float(default=0.0, min_value=0.0)
    shipping_amount = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)


def _parse_lines(items_json: str) -> list[tuple[str, int]]:
    try:
        raw = json.loads(items_json)
    except (TypeError, ValueError) as exc:
        raise Validation("Items must be a JSON list") from exc

    lines = []
    for entry in raw or []:
        product_id = entry.get("product_id")
        quantity = entry.get("quantity")
        if not product_id or not isinstance(quantity, int) or quantity < 1:
            raise Validation("Each item needs a product_id and a quantity of at least 1")
        lines.append((str(product_id), quantity))
    return lines


@commerce.command_handler(part_of=Order)
class OrderCreationHandler:
    @handle(PlaceOrderFromCart)
    def place_order_from_cart(self, command):
        actor = Actor.from_command(command)
        authorize(actor, Capability.PLACE_ORDER)
        authorize(actor, Capability.MANAGE_CART, owner_id=command.owner_id)

        cart = find_cart(command.owner_id)
        if cart is None or not cart.items:
            raise EmptyCart()

        inventory_ledger.reserve_all(cart.lines())

        # Cart lines carry the price snapshot taken when they were added
        items_data = [
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "unit_price": item.final_price,
                "quantity": item.quantity,
                "image": item.image,
                "shop_id": item.shop_id,
            }
            for item in cart.items
        ]
        order = Order.create(
            owner_id=command.owner_id,
            items_data=items_data,
            shipping_address=json.loads(command.shipping_address),
            payment_method=command.payment_method,
            tax_amount=command.tax_amount,
            shipping_amount=command.shipping_amount,
            currency=command.currency or default_currency(),
        )

        cart.clear()
        current_domain.repository_for(Order).add(order)
        current_domain.repository_for(Cart).add(cart)

        logger.info(
            "Order placed from cart",
            order_id=str(order.id),
            order_number=order.order_number,
            owner_id=str(command.owner_id),
            total_amount=order.total_amount,
        )
        return str(order.id)

    @handle(PlaceOrder)
    def place_order(self, command):
        authorize(Actor.from_command(command), Capability.PLACE_ORDER)

        lines = _parse_lines(command.items)
        if not lines:
            raise EmptyCart("No items to order")

        products = inventory_ledger.reserve_all(lines)
        totals = aggregate_lines(lines)
        items_data = [
            {
                "product_id": product_id,
                "name": products[product_id].name,
                "unit_price": products[product_id].selling_price,
                "quantity": quantity,
                "image": products[product_id].image,
                "shop_id": products[product_id].shop_id,
            }
            for product_id, quantity in totals.items()
        ]
        order = Order.create(
            owner_id=command.owner_id,
            items_data=items_data,
            shipping_address=json.loads(command.shipping_address),
            payment_method=command.payment_method,
            tax_amount=command.tax_amount,
            shipping_amount=command.shipping_amount,
            currency=command.currency or default_currency(),
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            owner_id=str(command.owner_id),
            total_amount=order.total_amount,
        )
        return str(order.id)


def place_order_from_cart(
    owner_id: str,
    shipping_address: dict,
    payment_method: str,
    actor: Actor,
    tax_amount: float = 0.0,
    shipping_amount: float = 0.0,
) -> str:
    """Place an order from the owner's cart and return its id."""
    cart = find_cart(owner_id)
    product_ids = [pid for pid, _ in cart.lines()] if cart else []

    with inventory_ledger.hold(product_ids):
        return current_domain.process(
            PlaceOrderFromCart(
                owner_id=owner_id,
                shipping_address=json.dumps(shipping_address),
                payment_method=payment_method,
                tax_amount=tax_amount or 0.0,
                shipping_amount=shipping_amount or 0.0,
                currency=default_currency(),
                actor_id=actor.user_id,
                actor_role=actor.role.value,
            ),
            asynchronous=False,
        )


def place_order(
    owner_id: str,
    items: list[dict],
    shipping_address: dict,
    payment_method: str,
    actor: Actor,
    tax_amount: float = 0.0,
    shipping_amount: float = 0.0,
) -> str:
    """Place an order for an explicit item list and return its id."""
    with inventory_ledger.hold(str(item["product_id"]) for item in items):
        return current_domain.process(
            PlaceOrder(
                owner_id=owner_id,
                items=json.dumps(items),
                shipping_address=json.dumps(shipping_address),
                payment_method=payment_method,
                tax_amount=tax_amount or 0.0,
                shipping_amount=shipping_amount or 0.0,
                currency=default_currency(),
                actor_id=actor.user_id,
                actor_role=actor.role.value,
            ),
            asynchronous=False,
        )
