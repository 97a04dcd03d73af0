"""Inventory Ledger — the only code path that changes product stock.

Concurrency model: pessimistic per-product locking. Callers that read stock,
check it and write it back (checkout, cancellation, refund, restock) wrap the
whole unit of work in `inventory_ledger.hold(product_ids)`, so the commit
happens while the locks are still held and no two requests can race past the
same stock check. The ledger's own operations take the same locks
re-entrantly, so they are safe to call on their own as well.

Multi-product reservations are all-or-nothing: every line is checked before
anything is decremented, and a failure after the first decrement restores
the products already touched before `PartialReservationFailure` is raised.
"""

from collections import OrderedDict
from collections.abc import Iterable

import structlog
from protean.utils.globals import current_domain

from commerce.errors import CommerceError, NotFound, PartialReservationFailure
from commerce.inventory.product import Product
from commerce.utils.locks import KeyedLocks
from commerce.utils.lookup import load

logger = structlog.get_logger(__name__)


def aggregate_lines(lines: Iterable) -> "OrderedDict[str, int]":
    """Sum quantities per product, keeping first-seen order.

    `lines` is an iterable of `(product_id, quantity)` pairs.
    """
    totals: OrderedDict[str, int] = OrderedDict()
    for product_id, quantity in lines:
        totals[str(product_id)] = totals.get(str(product_id), 0) + int(quantity)
    return totals


class InventoryLedger:
    def __init__(self, lock_timeout: float = 5.0) -> None:
        self._locks = KeyedLocks("product", timeout=lock_timeout)

    def hold(self, product_ids: Iterable):
        """Serialize stock mutations of `product_ids` for the duration of the block."""
        return self._locks.hold(product_ids)

    def _load_product(self, product_id) -> Product:
        return load(Product, product_id, label=f"Product {product_id}")

    def check_availability(self, lines: Iterable) -> "OrderedDict[str, Product]":
        """Verify every line can be served, without changing anything.

        Returns the loaded products keyed by id. Raises `NotFound` for a
        missing product and `InsufficientStock` for the first short line.
        """
        products: OrderedDict[str, Product] = OrderedDict()
        for product_id, quantity in aggregate_lines(lines).items():
            product = self._load_product(product_id)
            product.assert_stock_for(quantity)
            products[product_id] = product
        return products

    def reserve_and_decrement(self, product_id, quantity: int, reference: str | None = None) -> Product:
        with self.hold([product_id]):
            product = self._load_product(product_id)
            product.decrement_stock(quantity, reference=reference)
            current_domain.repository_for(Product).add(product)
            return product

    def restore(self, product_id, quantity: int, reference: str | None = None) -> Product:
        """Put `quantity` back on the shelf. Callers guarantee a single restore per cancellation."""
        with self.hold([product_id]):
            product = self._load_product(product_id)
            product.restore_stock(quantity, reference=reference)
            current_domain.repository_for(Product).add(product)
            return product

    def restore_all(self, lines: Iterable, reference: str | None = None) -> None:
        totals = aggregate_lines(lines)
        with self.hold(totals.keys()):
            for product_id, quantity in totals.items():
                try:
                    self.restore(product_id, quantity, reference=reference)
                except NotFound:
                    # A product removed from the catalogue has no shelf to return to
                    logger.warning(
                        "Skipping stock restore for missing product",
                        product_id=product_id,
                        quantity=quantity,
                        reference=reference,
                    )

    def replenish(self, product_id, quantity: int) -> Product:
        with self.hold([product_id]):
            product = self._load_product(product_id)
            product.replenish(quantity)
            current_domain.repository_for(Product).add(product)
            return product

    def reserve_all(self, lines: Iterable, reference: str | None = None) -> "OrderedDict[str, Product]":
        """Decrement stock for every line, or for none of them.

        Returns the products keyed by id, with their stock already reduced.
        """
        totals = aggregate_lines(lines)
        repo = current_domain.repository_for(Product)

        with self.hold(totals.keys()):
            products = self.check_availability(totals.items())

            decremented: list[tuple[Product, int]] = []
            for product_id, quantity in totals.items():
                product = products[product_id]
                try:
                    product.decrement_stock(quantity, reference=reference)
                    repo.add(product)
                except CommerceError as exc:
                    self._compensate(decremented, reference)
                    if not decremented:
                        raise
                    logger.error(
                        "Stock reservation failed part-way, decrements compensated",
                        product_id=product_id,
                        compensated=[str(p.id) for p, _ in decremented],
                        reference=reference,
                    )
                    raise PartialReservationFailure(
                        f"Could not reserve product {product_id}: {exc.message}",
                        product_id=product_id,
                    ) from exc
                decremented.append((product, quantity))

            logger.info(
                "Stock reserved",
                reference=reference,
                lines=dict(totals),
            )
            return products

    def _compensate(self, decremented: list, reference: str | None) -> None:
        repo = current_domain.repository_for(Product)
        for product, quantity in reversed(decremented):
            product.restore_stock(quantity, reference=reference)
            repo.add(product)


inventory_ledger = InventoryLedger()
