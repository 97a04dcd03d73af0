"""Error taxonomy for the commerce domain.

Every failure a caller can act on is a `CommerceError` subclass carrying an
`error_kind` (the stable name clients switch on) and the HTTP status the API
layer renders it with. Protean's own `ValidationError` and
`ObjectNotFoundError` are mapped onto the same envelope in `commerce.api.errors`.
"""


class CommerceError(Exception):
    error_kind = "Error"
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None, **details) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "errorKind": self.error_kind}


class Validation(CommerceError):
    error_kind = "Validation"
    status_code = 400
    default_message = "Invalid request"


class EmptyCart(Validation):
    default_message = "Cart is empty"


class Unauthenticated(CommerceError):
    error_kind = "Unauthenticated"
    status_code = 401
    default_message = "Not authorized to access this route"


class Forbidden(CommerceError):
    error_kind = "Forbidden"
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFound(CommerceError):
    error_kind = "NotFound"
    status_code = 404
    default_message = "Resource not found"


class StateConflict(CommerceError):
    error_kind = "StateConflict"
    status_code = 400
    default_message = "Operation not allowed in the current state"


class AlreadyPaid(StateConflict):
    default_message = "Order is already paid"


class AlreadyRefunded(StateConflict):
    default_message = "Payment is already refunded"


class NotRefundable(StateConflict):
    default_message = "Only completed payments can be refunded"


class AlreadyFinalized(StateConflict):
    default_message = "Order is already finalized"


class InvalidTransition(StateConflict):
    default_message = "Invalid order status transition"


class ConcurrentModification(StateConflict):
    default_message = "Resource is being modified by another request, retry shortly"


class InsufficientStock(CommerceError):
    error_kind = "InsufficientStock"
    status_code = 400
    default_message = "Not enough stock available"


class PartialReservationFailure(CommerceError):
    """Stock reservation failed after some products were already decremented.

    The decrements made before the failure are compensated before this is
    raised, so it never leaves a half-reserved order behind.
    """

    error_kind = "PartialReservationFailure"
    status_code = 409
    default_message = "Stock reservation failed part-way through the order"


class InvalidSignature(CommerceError):
    error_kind = "InvalidSignature"
    status_code = 400
    default_message = "Invalid payment signature"


class GatewayError(CommerceError):
    error_kind = "GatewayError"
    status_code = 502
    default_message = "Payment gateway request failed"


class ReconciliationFailure(CommerceError):
    """Local records could not be brought in line with the gateway's view.

    Raised when the gateway has already moved money (capture or refund) but
    persisting that outcome failed. Needs operator attention.
    """

    error_kind = "ReconciliationFailure"
    status_code = 500
    default_message = "Payment records could not be reconciled"
