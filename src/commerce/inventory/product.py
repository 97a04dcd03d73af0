"""Product aggregate — the stock-bearing view of a catalogue product.

Catalogue management owns names, prices and images; this context keeps the
copy it needs to price carts and orders, and it is the only writer of
`stock`. Stock changes go through the Inventory Ledger so that they are
serialized per product.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce
from commerce.errors import InsufficientStock, Validation
from commerce.inventory.events import StockDecremented, StockReplenished, StockRestored


@commerce.aggregate
class Product:
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    final_price = Float(min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image = String(max_length=1000)
    shop_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, name, price, final_price=None, stock=0, image=None, shop_id=None):
        now = datetime.now(UTC)
        return cls(
            name=name,
            price=price,
            final_price=price if final_price is None else final_price,
            stock=stock,
            image=image,
            shop_id=shop_id,
            created_at=now,
            updated_at=now,
        )

    @property
    def selling_price(self) -> float:
        return self.final_price if self.final_price is not None else self.price

    def has_stock_for(self, quantity: int) -> bool:
        return self.stock >= quantity

    def assert_stock_for(self, quantity: int) -> None:
        if not self.has_stock_for(quantity):
            raise InsufficientStock(
                f"Not enough stock for {self.name}: requested {quantity}, available {self.stock}",
                product_id=str(self.id),
                requested=quantity,
                available=self.stock,
            )

    def decrement_stock(self, quantity: int, reference: str | None = None) -> None:
        if quantity < 1:
            raise Validation("Quantity must be at least 1")
        self.assert_stock_for(quantity)

        self.stock -= quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockDecremented(
                product_id=str(self.id),
                quantity=quantity,
                remaining=self.stock,
                reference=reference,
                occurred_at=self.updated_at,
            )
        )

    def restore_stock(self, quantity: int, reference: str | None = None) -> None:
        if quantity < 1:
            raise Validation("Quantity must be at least 1")

        self.stock += quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockRestored(
                product_id=str(self.id),
                quantity=quantity,
                remaining=self.stock,
                reference=reference,
                occurred_at=self.updated_at,
            )
        )

    def replenish(self, quantity: int) -> None:
        if quantity < 1:
            raise Validation("Quantity must be at least 1")

        self.stock += quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockReplenished(
                product_id=str(self.id),
                quantity=quantity,
                remaining=self.stock,
                occurred_at=self.updated_at,
            )
        )
