"""Domain exceptions for the Barter Exchange.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware
and to error payloads by the MCP tools.
"""

from barter_exchange.domain.enums import OfferAction


class BarterError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "BARTER_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Structured payload returned to callers."""
        return {"error": self.code, "message": self.message}


# --- Validation Errors ---


class OfferValidationError(BarterError):
    """Raised when offer input is malformed.

    ``errors`` is a list of ``{"field": ..., "message": ...}`` entries so the
    caller can point at the offending field.
    """

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message=message, code="OFFER_VALIDATION_ERROR")
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "OfferValidationError":
        return cls(message, errors=[{"field": field, "message": message}])

    def to_dict(self) -> dict:
        return {**super().to_dict(), "errors": self.errors}


# --- Authorization Errors ---


class NotAuthorizedError(BarterError):
    """Raised when a vendor attempts an action reserved for another party."""

    def __init__(self, offer_id: str, actor: str, action: str, reason: str) -> None:
        super().__init__(message=reason, code="NOT_AUTHORIZED")
        self.offer_id = offer_id
        self.actor = actor
        self.action = action


# --- Precondition / State Errors ---


class OfferPreconditionError(BarterError):
    """Base for errors caused by the offer's current state.

    Always surfaces ``current_state`` so the caller can resynchronize.
    """

    def __init__(self, message: str, code: str, current_state: str) -> None:
        super().__init__(message=message, code=code)
        self.current_state = current_state

    def to_dict(self) -> dict:
        return {**super().to_dict(), "current_state": self.current_state}


class InvalidStateTransitionError(OfferPreconditionError):
    """Raised when an action is not allowed from the offer's current state.

    Example: accepting a DRAFT, fulfilling a SENT offer.
    """

    def __init__(self, current_state: str, action: str) -> None:
        try:
            verb = OfferAction(action).past_tense
        except ValueError:
            verb = action
        super().__init__(
            message=f"This offer cannot be {verb} in its current state ({current_state})",
            code="INVALID_STATE_TRANSITION",
            current_state=current_state,
        )
        self.action = action


class StaleOfferError(InvalidStateTransitionError):
    """Raised when a guarded write lost a race against a concurrent transition.

    The service retries on this error; if retries run out the caller sees the
    same shape as any other illegal transition.
    """


class AlreadyFulfilledError(OfferPreconditionError):
    """Raised when a party marks its side fulfilled a second time."""

    def __init__(self, party: str, current_state: str) -> None:
        super().__init__(
            message="You have already marked your side as fulfilled",
            code="ALREADY_FULFILLED",
            current_state=current_state,
        )
        self.party = party


# --- Referential Errors ---


class OfferNotFoundError(BarterError):
    """Raised when an offer ID does not exist."""

    def __init__(self, offer_id: str) -> None:
        super().__init__(
            message=f"Offer not found: {offer_id}",
            code="OFFER_NOT_FOUND",
        )
        self.offer_id = offer_id


class ProductNotFoundError(BarterError):
    """Raised when an offer line references an unknown product."""

    def __init__(self, product_id: str) -> None:
        super().__init__(
            message=f"Product {product_id} not found",
            code="PRODUCT_NOT_FOUND",
        )
        self.product_id = product_id


class ProductUnavailableError(BarterError):
    """Raised when a product is soft-deleted or marked unavailable."""

    def __init__(self, product_id: str) -> None:
        super().__init__(
            message=f"Product {product_id} is not available",
            code="PRODUCT_UNAVAILABLE",
        )
        self.product_id = product_id


class VendorNotEligibleError(BarterError):
    """Raised when the recipient vendor is unknown, unapproved or inactive."""

    def __init__(self, vendor_id: str) -> None:
        super().__init__(
            message="Recipient vendor not found or not active",
            code="VENDOR_NOT_ELIGIBLE",
        )
        self.vendor_id = vendor_id


# --- Idempotency Errors ---


class DuplicateOperationError(BarterError):
    """Raised when a duplicate idempotency key is detected."""

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(
            message=f"Duplicate operation detected for key: {idempotency_key}",
            code="DUPLICATE_OPERATION",
        )


class IdempotencyUnavailableError(BarterError):
    """Raised when a request carries an idempotency key but the key store is down.

    The action is refused rather than run unguarded; requests without a key
    are unaffected.
    """

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(
            message=f"Idempotency keys are temporarily unavailable (key: {idempotency_key})",
            code="IDEMPOTENCY_UNAVAILABLE",
        )
        self.idempotency_key = idempotency_key
