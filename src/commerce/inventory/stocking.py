"""Stock management — commands and handler.

Catalogue management registers products here and books in new stock.
Restocking goes through the Inventory Ledger like every other stock change.
"""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.access import Actor, Capability, Role, authorize
from commerce.domain import commerce
from commerce.inventory.ledger import inventory_ledger
from commerce.inventory.product import Product


@commerce.command(part_of="Product")
class AddProduct:
    """Register a catalogue product with its opening stock."""

    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    final_price = Float(min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image = String(max_length=1000)
    shop_id = Identifier()
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.ADMIN.value)


@commerce.command(part_of="Product")
class RestockProduct:
    """Add received units to a product's stock."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    actor_id = Identifier(required=True)
    actor_role = String(choices=Role, default=Role.ADMIN.value)


@commerce.command_handler(part_of=Product)
class StockHandler:
    @handle(AddProduct)
    def add_product(self, command):
        authorize(Actor.from_command(command), Capability.MANAGE_STOCK)

        product = Product.create(
            name=command.name,
            price=command.price,
            final_price=command.final_price,
            stock=command.stock or 0,
            image=command.image,
            shop_id=command.shop_id,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(RestockProduct)
    def restock_product(self, command):
        authorize(Actor.from_command(command), Capability.MANAGE_STOCK)

        product = inventory_ledger.replenish(command.product_id, command.quantity)
        return product.stock


def restock_product(product_id: str, quantity: int, actor: Actor) -> int:
    """Restock a product while holding its ledger lock through the commit."""
    with inventory_ledger.hold([product_id]):
        return current_domain.process(
            RestockProduct(
                product_id=product_id,
                quantity=quantity,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
            ),
            asynchronous=False,
        )
