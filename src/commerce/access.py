"""Capability checks shared by every command handler and query.

A single policy table decides who may do what. Each capability lists the
roles that always hold it and whether the owner of the target resource holds
it regardless of role. Handlers call `authorize(actor, capability, owner_id)`
instead of comparing roles or user ids inline.
"""

from dataclasses import dataclass
from enum import Enum

from commerce.errors import Forbidden


class Role(Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"


class Capability(Enum):
    MANAGE_CART = "manage_cart"
    PLACE_ORDER = "place_order"
    VIEW_ORDER = "view_order"
    UPDATE_ORDER_STATUS = "update_order_status"
    CANCEL_ORDER = "cancel_order"
    PAY_ORDER = "pay_order"
    VIEW_PAYMENT = "view_payment"
    LIST_PAYMENTS = "list_payments"
    LIST_ORDERS = "list_orders"
    REFUND_PAYMENT = "refund_payment"
    RECORD_LOCATION = "record_location"
    VIEW_TRACKING = "view_tracking"
    FIND_NEARBY = "find_nearby"
    MANAGE_STOCK = "manage_stock"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation."""

    user_id: str
    role: Role = Role.CUSTOMER

    @classmethod
    def of(cls, user_id, role) -> "Actor":
        return cls(user_id=str(user_id), role=Role(role) if role else Role.CUSTOMER)

    @classmethod
    def from_command(cls, command) -> "Actor":
        """Build the actor from the `actor_id` / `actor_role` fields every command carries."""
        return cls.of(command.actor_id, command.actor_role)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class _Rule:
    roles: frozenset
    owner: bool = False


_ALL_ROLES = frozenset(Role)
_ADMIN = frozenset({Role.ADMIN})
_STAFF = frozenset({Role.ADMIN, Role.VENDOR})

_POLICY = {
    Capability.MANAGE_CART: _Rule(roles=frozenset(), owner=True),
    Capability.PLACE_ORDER: _Rule(roles=_ALL_ROLES),
    Capability.VIEW_ORDER: _Rule(roles=_ADMIN, owner=True),
    Capability.UPDATE_ORDER_STATUS: _Rule(roles=_ADMIN),
    Capability.CANCEL_ORDER: _Rule(roles=_ADMIN, owner=True),
    Capability.LIST_ORDERS: _Rule(roles=_STAFF),
    Capability.PAY_ORDER: _Rule(roles=frozenset(), owner=True),
    Capability.VIEW_PAYMENT: _Rule(roles=_ADMIN),
    Capability.LIST_PAYMENTS: _Rule(roles=_ADMIN),
    Capability.REFUND_PAYMENT: _Rule(roles=_ADMIN),
    Capability.RECORD_LOCATION: _Rule(roles=_STAFF),
    Capability.VIEW_TRACKING: _Rule(roles=_ADMIN, owner=True),
    Capability.FIND_NEARBY: _Rule(roles=_STAFF),
    Capability.MANAGE_STOCK: _Rule(roles=_STAFF),
}


def is_allowed(actor: Actor, capability: Capability, owner_id=None) -> bool:
    rule = _POLICY[capability]
    if actor.role in rule.roles:
        return True
    return rule.owner and owner_id is not None and str(owner_id) == actor.user_id


def authorize(actor: Actor, capability: Capability, owner_id=None) -> None:
    """Raise `Forbidden` unless `actor` holds `capability` on the resource owned by `owner_id`."""
    if not is_allowed(actor, capability, owner_id):
        raise Forbidden(
            f"Role '{actor.role.value}' is not allowed to {capability.value.replace('_', ' ')}",
            capability=capability.value,
            actor_id=actor.user_id,
        )
