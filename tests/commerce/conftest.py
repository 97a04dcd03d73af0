import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    with commerce_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Shared builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer():
    from commerce.access import Actor, Role

    return Actor(user_id="cust-001", role=Role.CUSTOMER)


@pytest.fixture()
def other_customer():
    from commerce.access import Actor, Role

    return Actor(user_id="cust-002", role=Role.CUSTOMER)


@pytest.fixture()
def admin():
    from commerce.access import Actor, Role

    return Actor(user_id="admin-001", role=Role.ADMIN)


@pytest.fixture()
def vendor():
    from commerce.access import Actor, Role

    return Actor(user_id="vendor-001", role=Role.VENDOR)


@pytest.fixture()
def address():
    return {
        "name": "Asha Rao",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "postal_code": "560001",
        "country": "India",
        "phone": "+91-9000000000",
    }


@pytest.fixture()
def make_product():
    """Persist a product and return it."""
    from commerce.inventory.product import Product
    from protean import current_domain

    def _make(name="Compost bin", price=10.0, final_price=None, stock=10):
        product = Product.create(name=name, price=price, final_price=final_price, stock=stock, shop_id="shop-001")
        current_domain.repository_for(Product).add(product)
        return current_domain.repository_for(Product).get(product.id)

    return _make


@pytest.fixture()
def stock_of():
    from commerce.inventory.product import Product
    from protean import current_domain

    def _stock(product_id):
        return current_domain.repository_for(Product).get(str(product_id)).stock

    return _stock


@pytest.fixture()
def fill_cart():
    """Put (product, quantity) lines in a customer's cart through the cart commands."""
    from commerce.cart.items import AddToCart
    from protean import current_domain

    def _fill(actor, *lines):
        for product, quantity in lines:
            current_domain.process(
                AddToCart(
                    owner_id=actor.user_id,
                    product_id=str(product.id),
                    quantity=quantity,
                    actor_id=actor.user_id,
                    actor_role=actor.role.value,
                ),
                asynchronous=False,
            )

    return _fill


@pytest.fixture()
def fake_gateway():
    from commerce.gateway import set_gateway
    from commerce.gateway.fake_adapter import FakeGateway

    gateway = FakeGateway()
    set_gateway(gateway)
    return gateway


@pytest.fixture()
def fake_notifier():
    from commerce.notifications import set_notifier
    from commerce.notifications.fake_adapter import FakeNotifier

    notifier = FakeNotifier()
    set_notifier(notifier)
    return notifier


@pytest.fixture()
def placed_order(customer, address, make_product, fill_cart):
    """A 33.00 order: 2 x 10.00 + 1 x 5.00 with 3.00 tax and 5.00 shipping."""
    from commerce.order.creation import place_order_from_cart
    from commerce.order.order import Order
    from protean import current_domain

    first = make_product(name="Compost bin", price=10.0, stock=5)
    second = make_product(name="Jute bag", price=5.0, stock=5)
    fill_cart(customer, (first, 2), (second, 1))

    order_id = place_order_from_cart(
        owner_id=customer.user_id,
        shipping_address=address,
        payment_method="upi",
        actor=customer,
        tax_amount=3.0,
        shipping_amount=5.0,
    )
    return current_domain.repository_for(Order).get(order_id)


@pytest.fixture()
def paid_order(placed_order, customer, fake_gateway):
    """The placed order, paid through the fake gateway. Returns (order, payment_id)."""
    from commerce.order.order import Order
    from commerce.payment.intent import create_payment_intent
    from commerce.payment.verification import verify_payment
    from protean import current_domain

    intent = create_payment_intent(str(placed_order.id), customer)
    verify_payment(
        order_id=str(placed_order.id),
        gateway_order_id=intent["gateway_order_id"],
        gateway_payment_id="pay_test_001",
        signature=fake_gateway.sign(intent["gateway_order_id"], "pay_test_001"),
        actor=customer,
    )
    return current_domain.repository_for(Order).get(placed_order.id), intent["payment_id"]
