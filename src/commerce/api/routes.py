"""FastAPI routes for the commerce API — products, cart, orders, payments and tracking.

Every successful response is `{"success": true, "data": ...}`; failures are
rendered by the handlers in `commerce.api.errors`.

Routes that take stock or payment locks, or call the payment gateway, are
plain `def` so FastAPI runs them in its worker threadpool: the gateway
client blocks, and the locks serialize threads.
"""

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from commerce.access import Actor
from commerce.api.auth import current_actor
from commerce.api.schemas import (
    AddProductRequest,
    AddToCartRequest,
    CancelOrderRequest,
    CreatePaymentIntentRequest,
    PlaceOrderFromCartRequest,
    PlaceOrderRequest,
    RecordLocationRequest,
    RefundRequest,
    RestockRequest,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    VerifyPaymentRequest,
)
from commerce.cart.items import AddToCart, ClearCart, RemoveCartItem, UpdateCartItem, get_cart
from commerce.inventory.stocking import AddProduct, restock_product
from commerce.order.creation import place_order, place_order_from_cart
from commerce.order.queries import list_orders, my_orders, order_detail
from commerce.order.status import cancel_order, update_order_status
from commerce.payment.intent import create_payment_intent
from commerce.payment.queries import list_payments, my_payments, payment_detail
from commerce.payment.refund import refund_payment
from commerce.payment.verification import verify_payment
from commerce.tracking.tracking import DEFAULT_NEARBY_RADIUS_M, find_nearby, record_location, tracking_summary


def _ok(data=None, **extra) -> dict:
    return {"success": True, "data": data, **extra}


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201)
async def add_product(body: AddProductRequest, actor: Actor = Depends(current_actor)) -> dict:
    """Register a product with its opening stock (vendors and administrators)."""
    product_id = current_domain.process(
        AddProduct(
            name=body.name,
            price=body.price,
            final_price=body.final_price,
            stock=body.stock,
            image=body.image,
            shop_id=body.shop_id,
            actor_id=actor.user_id,
            actor_role=actor.role.value,
        ),
        asynchronous=False,
    )
    return _ok({"product_id": product_id})


@product_router.put("/{product_id}/restock")
def restock(product_id: str, body: RestockRequest, actor: Actor = Depends(current_actor)) -> dict:
    stock = restock_product(product_id, body.quantity, actor)
    return _ok({"product_id": product_id, "stock": stock})


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


def _actor_fields(actor: Actor) -> dict:
    return {"owner_id": actor.user_id, "actor_id": actor.user_id, "actor_role": actor.role.value}


@cart_router.get("")
async def view_cart(actor: Actor = Depends(current_actor)) -> dict:
    return _ok(get_cart(actor.user_id, actor))


@cart_router.post("")
async def add_to_cart(body: AddToCartRequest, actor: Actor = Depends(current_actor)) -> dict:
    current_domain.process(
        AddToCart(product_id=body.product_id, quantity=body.quantity, **_actor_fields(actor)),
        asynchronous=False,
    )
    return _ok(get_cart(actor.user_id, actor))


@cart_router.put("/{item_id}")
async def update_cart_item(item_id: str, body: UpdateCartItemRequest, actor: Actor = Depends(current_actor)) -> dict:
    current_domain.process(
        UpdateCartItem(item_id=item_id, quantity=body.quantity, **_actor_fields(actor)),
        asynchronous=False,
    )
    return _ok(get_cart(actor.user_id, actor))


@cart_router.delete("/{item_id}")
async def remove_cart_item(item_id: str, actor: Actor = Depends(current_actor)) -> dict:
    current_domain.process(RemoveCartItem(item_id=item_id, **_actor_fields(actor)), asynchronous=False)
    return _ok(get_cart(actor.user_id, actor))


@cart_router.delete("")
async def clear_cart(actor: Actor = Depends(current_actor)) -> dict:
    current_domain.process(ClearCart(**_actor_fields(actor)), asynchronous=False)
    return _ok(get_cart(actor.user_id, actor))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/from-cart", status_code=201)
def create_order_from_cart(body: PlaceOrderFromCartRequest, actor: Actor = Depends(current_actor)) -> dict:
    """Convert the caller's cart into an order."""
    order_id = place_order_from_cart(
        owner_id=actor.user_id,
        shipping_address=body.shipping_address.model_dump(),
        payment_method=body.payment_method,
        actor=actor,
        tax_amount=body.tax_amount,
        shipping_amount=body.shipping_amount,
    )
    return _ok(order_detail(order_id, actor))


@order_router.post("", status_code=201)
def create_order(body: PlaceOrderRequest, actor: Actor = Depends(current_actor)) -> dict:
    """Order an explicit list of products."""
    order_id = place_order(
        owner_id=actor.user_id,
        items=[{"product_id": line.product_id, "quantity": line.quantity} for line in body.items],
        shipping_address=body.shipping_address.model_dump(),
        payment_method=body.payment_method,
        actor=actor,
        tax_amount=body.tax_amount,
        shipping_amount=body.shipping_amount,
    )
    return _ok(order_detail(order_id, actor))


@order_router.get("/my-orders")
async def list_my_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> dict:
    orders, pagination = my_orders(actor, page, limit)
    return _ok(orders, pagination=pagination)


@order_router.get("")
async def list_all_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: str | None = None,
    shop_id: str | None = Query(default=None, alias="shopId"),
    actor: Actor = Depends(current_actor),
) -> dict:
    """Every order (administrators), or one shop's orders (vendors and administrators)."""
    result = list_orders(actor, page, limit, status=status, shop_id=shop_id)
    return _ok(result["orders"], pagination=result["pagination"], stats=result["stats"])


@order_router.get("/{order_id}")
async def get_order(order_id: str, actor: Actor = Depends(current_actor)) -> dict:
    return _ok(order_detail(order_id, actor))


@order_router.put("/{order_id}")
def change_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    actor: Actor = Depends(current_actor),
) -> dict:
    """Move an order along its lifecycle (administrators)."""
    update_order_status(order_id, body.order_status, actor, comment=body.comment)
    return _ok(order_detail(order_id, actor))


@order_router.put("/{order_id}/cancel")
def cancel(order_id: str, body: CancelOrderRequest | None = None, actor: Actor = Depends(current_actor)) -> dict:
    cancel_order(order_id, actor, reason=body.reason if body else None)
    return _ok(order_detail(order_id, actor))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/create-payment-intent")
def create_intent(body: CreatePaymentIntentRequest, actor: Actor = Depends(current_actor)) -> dict:
    """Open a gateway order; the response carries everything the checkout SDK needs."""
    return _ok(create_payment_intent(body.order_id, actor, payment_method=body.payment_method))


@payment_router.post("/verify-payment")
def verify(body: VerifyPaymentRequest, actor: Actor = Depends(current_actor)) -> dict:
    """Verify the gateway's signed payment confirmation."""
    result = verify_payment(
        order_id=body.order_id,
        gateway_order_id=body.gateway_order_id,
        gateway_payment_id=body.gateway_payment_id,
        signature=body.signature,
        actor=actor,
    )
    return _ok(result, message="Payment verified successfully")


@payment_router.get("/my-payments")
async def list_my_payments(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    actor: Actor = Depends(current_actor),
) -> dict:
    payments, pagination = my_payments(actor, page, limit)
    return _ok(payments, pagination=pagination)


@payment_router.get("")
async def list_all_payments(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: str | None = None,
    actor: Actor = Depends(current_actor),
) -> dict:
    result = list_payments(actor, page, limit, status=status)
    return _ok(result["payments"], pagination=result["pagination"], summary=result["summary"])


@payment_router.get("/{payment_id}")
async def get_payment(payment_id: str, actor: Actor = Depends(current_actor)) -> dict:
    return _ok(payment_detail(payment_id, actor))


@payment_router.put("/{payment_id}/refund")
def refund(payment_id: str, body: RefundRequest | None = None, actor: Actor = Depends(current_actor)) -> dict:
    result = refund_payment(payment_id, actor, reason=body.reason if body else None)
    return _ok(result, message="Payment refunded successfully")


# ---------------------------------------------------------------------------
# Tracking Router
# ---------------------------------------------------------------------------
tracking_router = APIRouter(prefix="/tracking", tags=["tracking"])


@tracking_router.put("/{order_id}/location")
async def update_location(order_id: str, body: RecordLocationRequest, actor: Actor = Depends(current_actor)) -> dict:
    result = record_location(
        order_id=order_id,
        latitude=body.latitude,
        longitude=body.longitude,
        actor=actor,
        status=body.status,
        description=body.description,
        estimated_delivery_time=body.estimated_delivery_time,
    )
    return _ok(result)


# Declared before /{order_id} so "nearby" is not taken for an order id
@tracking_router.get("/nearby")
async def nearby(
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    max_distance: float = Query(default=DEFAULT_NEARBY_RADIUS_M, gt=0, alias="maxDistance"),
    actor: Actor = Depends(current_actor),
) -> dict:
    orders = find_nearby(latitude, longitude, actor, max_distance_m=max_distance)
    return _ok(orders, count=len(orders))


@tracking_router.get("/{order_id}")
async def get_tracking(order_id: str, actor: Actor = Depends(current_actor)) -> dict:
    return _ok(tracking_summary(order_id, actor))
