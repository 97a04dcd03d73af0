"""Pydantic request schemas for the commerce API.

These are external contracts (anti-corruption layer) — separate from the
internal Protean commands. Field names follow the client's camelCase where
the mobile app already sends it.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    name: str
    address: str
    city: str
    state: str | None = None
    postal_code: str = Field(alias="postalCode")
    country: str
    phone: str | None = None

    model_config = {"populate_by_name": True}


class OrderLineSchema(BaseModel):
    product_id: str = Field(alias="productId")
    quantity: int = Field(ge=1)

    model_config = {"populate_by_name": True}


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
class AddProductRequest(BaseModel):
    name: str
    price: float = Field(ge=0)
    final_price: float | None = Field(default=None, ge=0, alias="finalPrice")
    stock: int = Field(default=0, ge=0)
    image: str | None = None
    shop_id: str | None = Field(default=None, alias="shopId")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [{"name": "Compost bin", "price": 12.0, "finalPrice": 10.0, "stock": 25, "shopId": "shop-001"}]
        },
    }


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str = Field(alias="productId")
    quantity: int = Field(default=1, ge=1)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {"examples": [{"productId": "prod-001", "quantity": 2}]},
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderFromCartRequest(BaseModel):
    shipping_address: ShippingAddressSchema = Field(alias="shippingAddress")
    payment_method: str = Field(alias="paymentMethod")
    tax_amount: float = Field(default=0.0, ge=0, alias="taxAmount")
    shipping_amount: float = Field(default=0.0, ge=0, alias="shippingAmount")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "shippingAddress": {
                        "name": "Asha Rao",
                        "address": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "KA",
                        "postalCode": "560001",
                        "country": "India",
                        "phone": "+91-9000000000",
                    },
                    "paymentMethod": "upi",
                    "taxAmount": 3.0,
                    "shippingAmount": 0.0,
                }
            ]
        },
    }


class PlaceOrderRequest(PlaceOrderFromCartRequest):
    items: list[OrderLineSchema] = Field(min_length=1)


class UpdateOrderStatusRequest(BaseModel):
    order_status: str = Field(alias="orderStatus")
    comment: str | None = None

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {"examples": [{"orderStatus": "Shipped"}]},
    }


class CancelOrderRequest(BaseModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class CreatePaymentIntentRequest(BaseModel):
    order_id: str = Field(alias="orderId")
    payment_method: str | None = Field(default=None, alias="paymentMethod")

    model_config = {"populate_by_name": True}


class VerifyPaymentRequest(BaseModel):
    """Signed payment confirmation.

    Accepts the gateway-neutral camelCase names as well as the field names
    the Razorpay checkout SDK hands back to the client.
    """

    order_id: str = Field(alias="orderId")
    gateway_order_id: str = Field(
        validation_alias=AliasChoices("gatewayOrderId", "razorpay_order_id", "gateway_order_id"),
    )
    gateway_payment_id: str = Field(
        validation_alias=AliasChoices("gatewayPaymentId", "razorpay_payment_id", "gateway_payment_id"),
    )
    signature: str = Field(
        validation_alias=AliasChoices("gatewaySignature", "razorpay_signature", "signature"),
    )

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "orderId": "6f1c...",
                    "gatewayOrderId": "order_abc123",
                    "gatewayPaymentId": "pay_xyz789",
                    "gatewaySignature": "hex-hmac-sha256",
                }
            ]
        },
    }


class RefundRequest(BaseModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------
class RecordLocationRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    status: str | None = None
    description: str | None = None
    estimated_delivery_time: datetime | None = Field(default=None, alias="estimatedDeliveryTime")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [{"latitude": 12.9716, "longitude": 77.5946, "status": "Out for Delivery"}]
        },
    }
