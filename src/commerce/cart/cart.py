"""Cart aggregate — one pending item list per user.

The cart is created lazily on the first add and is emptied, never deleted,
when an order is placed from it. Each line keeps a snapshot of the product's
name, prices and image taken when it was added; `total_items` and
`total_amount` are recomputed from the lines on every mutation.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from commerce.domain import commerce
from commerce.errors import NotFound, Validation


@commerce.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    final_price = Float(required=True, min_value=0.0)
    image = String(max_length=1000)
    shop_id = Identifier()
    added_at = DateTime()

    @property
    def line_total(self) -> float:
        return self.final_price * self.quantity


@commerce.aggregate
class Cart:
    owner_id = Identifier(required=True)
    items = HasMany(CartItem)
    total_items = Integer(default=0)
    total_amount = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, owner_id):
        now = datetime.now(UTC)
        return cls(owner_id=owner_id, total_items=0, total_amount=0.0, created_at=now, updated_at=now)

    def _recalculate_totals(self) -> None:
        self.total_items = sum(item.quantity for item in self.items)
        self.total_amount = round(sum(item.line_total for item in self.items), 2)
        self.updated_at = datetime.now(UTC)

    def _find_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise NotFound("Item not found in cart", item_id=str(item_id))
        return item

    def add_item(self, product, quantity: int) -> CartItem:
        """Put `quantity` of `product` in the cart.

        Adding a product that is already in the cart replaces that line's
        quantity and refreshes its price snapshot.
        """
        if quantity < 1:
            raise Validation("Quantity must be at least 1")

        existing = next((i for i in self.items if str(i.product_id) == str(product.id)), None)
        if existing:
            existing.quantity = quantity
            existing.price = product.price
            existing.final_price = product.selling_price
            item = existing
        else:
            item = CartItem(
                product_id=str(product.id),
                quantity=quantity,
                name=product.name,
                price=product.price,
                final_price=product.selling_price,
                image=product.image,
                shop_id=product.shop_id,
                added_at=datetime.now(UTC),
            )
            self.add_items(item)

        self._recalculate_totals()
        return item

    def update_item_quantity(self, item_id, quantity: int) -> CartItem:
        if quantity < 1:
            raise Validation("Quantity must be at least 1")

        item = self._find_item(item_id)
        item.quantity = quantity
        self._recalculate_totals()
        return item

    def remove_item(self, item_id) -> None:
        item = self._find_item(item_id)
        self.remove_items(item)
        self._recalculate_totals()

    def clear(self) -> None:
        """Empty the cart, keeping the cart itself."""
        for item in list(self.items):
            self.remove_items(item)
        self._recalculate_totals()

    def lines(self) -> list[tuple[str, int]]:
        return [(str(item.product_id), item.quantity) for item in self.items]
