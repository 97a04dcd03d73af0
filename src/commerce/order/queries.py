"""Read-side access to orders."""

from commerce.access import Actor, Capability, authorize
from commerce.errors import Validation
from commerce.order.order import Order, OrderStatus
from commerce.projections.shop_orders import ShopOrder
from commerce.utils.lookup import find_page, iter_all, load


def order_summary(order: Order) -> dict:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "owner_id": str(order.owner_id),
        "status": order.status,
        "items": [
            {
                "id": str(item.id),
                "product_id": str(item.product_id),
                "name": item.name,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "image": item.image,
                "shop_id": str(item.shop_id) if item.shop_id else None,
            }
            for item in order.items
        ],
        "shipping_address": order.shipping_address.to_dict() if order.shipping_address else None,
        "payment_info": order.payment_info.to_dict() if order.payment_info else None,
        "payment_result": order.payment_result.to_dict() if order.payment_result else None,
        "items_amount": order.items_amount,
        "tax_amount": order.tax_amount,
        "shipping_amount": order.shipping_amount,
        "total_amount": order.total_amount,
        "currency": order.currency,
        "is_paid": order.is_paid,
        "paid_at": order.paid_at,
        "delivered_at": order.delivered_at,
        "cancelled_at": order.cancelled_at,
        "cancellation_reason": order.cancellation_reason,
        "refunded_at": order.refunded_at,
        "status_history": [
            {
                "status": change.status,
                "changed_at": change.changed_at,
                "changed_by": change.changed_by,
                "comment": change.comment,
            }
            for change in sorted(order.status_history or [], key=lambda c: c.sequence)
        ],
        "created_at": order.created_at,
    }


def my_orders(actor: Actor, page: int = 1, limit: int = 10) -> tuple[list[dict], dict]:
    items, pagination = find_page(Order, page, limit, order_by="-created_at", owner_id=actor.user_id)
    return [order_summary(order) for order in items], pagination


def order_detail(order_id: str, actor: Actor) -> dict:
    order = load(Order, order_id)
    authorize(actor, Capability.VIEW_ORDER, owner_id=order.owner_id)
    return order_summary(order)


def list_orders(
    actor: Actor,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    shop_id: str | None = None,
) -> dict:
    """Orders newest first, with sales totals over the whole filtered set.

    Administrators see every order and may narrow it to one shop. Vendors
    must name the shop whose orders they want; for a shop the totals cover
    only that shop's lines.
    """
    authorize(actor, Capability.LIST_ORDERS)
    if not actor.is_admin and not shop_id:
        raise Validation("A shop id is required to list vendor orders")

    filters = {"status": OrderStatus.parse(status).value} if status else {}

    if shop_id:
        filters["shop_id"] = str(shop_id)
        entries, pagination = find_page(ShopOrder, page, limit, order_by="-created_at", **filters)
        orders = [order_summary(load(Order, entry.order_id)) for entry in entries]
        amounts = [entry.shop_amount or 0.0 for entry in iter_all(ShopOrder, **filters)]
    else:
        records, pagination = find_page(Order, page, limit, order_by="-created_at", **filters)
        orders = [order_summary(order) for order in records]
        amounts = [order.total_amount or 0.0 for order in iter_all(Order, **filters)]

    return {
        "orders": orders,
        "pagination": pagination,
        "stats": {
            "totalSales": round(sum(amounts), 2),
            "totalOrders": len(amounts),
        },
    }
