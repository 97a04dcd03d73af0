"""Cart item management — commands and handler.

Every command addresses the caller's own cart; the cart is created on the
first add. Adds and quantity changes are checked against current stock, but
nothing is reserved until an order is placed.
"""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.access import Actor, Capability, Role, authorize
from commerce.cart.cart import Cart
from commerce.domain import commerce
from commerce.inventory.product import Product
from commerce.utils.lookup import find_one, load


@commerce.command(part_of="Cart")
class AddToCart:
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)


@commerce.command(part_of="Cart")
class UpdateCartItem:
    owner_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)


@commerce.command(part_of="Cart")
class RemoveCartItem:
    owner_id = Identifier(required=True)
    item_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)


@commerce.command(part_of="Cart")
class ClearCart:
    owner_id = Identifier(required=True)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.CUSTOMER.value)


def find_cart(owner_id) -> Cart | None:
    return find_one(Cart, owner_id=str(owner_id))


def cart_for(owner_id) -> Cart:
    """Return the owner's cart, creating an unsaved empty one if they have none."""
    return find_cart(owner_id) or Cart.create(owner_id=str(owner_id))


@commerce.command_handler(part_of=Cart)
class CartItemsHandler:
    def _authorized_cart(self, command) -> Cart:
        authorize(Actor.from_command(command), Capability.MANAGE_CART, owner_id=command.owner_id)
        return cart_for(command.owner_id)

    @handle(AddToCart)
    def add_to_cart(self, command):
        cart = self._authorized_cart(command)
        product = load(Product, command.product_id)
        product.assert_stock_for(command.quantity)

        cart.add_item(product, command.quantity)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        cart = self._authorized_cart(command)
        item = next((i for i in cart.items if str(i.id) == str(command.item_id)), None)
        if item is not None:
            load(Product, item.product_id).assert_stock_for(command.quantity)

        cart.update_item_quantity(command.item_id, command.quantity)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        cart = self._authorized_cart(command)
        cart.remove_item(command.item_id)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = self._authorized_cart(command)
        cart.clear()
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)


def cart_summary(cart: Cart) -> dict:
    return {
        "id": str(cart.id),
        "owner_id": str(cart.owner_id),
        "items": [
            {
                "id": str(item.id),
                "product_id": str(item.product_id),
                "name": item.name,
                "price": item.price,
                "final_price": item.final_price,
                "quantity": item.quantity,
                "image": item.image,
                "shop_id": str(item.shop_id) if item.shop_id else None,
                "line_total": round(item.line_total, 2),
            }
            for item in cart.items
        ],
        "total_items": cart.total_items,
        "total_amount": cart.total_amount,
    }


def get_cart(owner_id: str, actor: Actor) -> dict:
    """The owner's cart, empty if they have never added anything."""
    authorize(actor, Capability.MANAGE_CART, owner_id=owner_id)
    return cart_summary(cart_for(owner_id))
