"""Domain layer — pure negotiation rules with zero framework dependencies."""

from barter_exchange.domain.collaborators import (
    PriceOracle,
    ProductQuote,
    VendorDirectory,
    VendorRecord,
)
from barter_exchange.domain.enums import (
    CashGapDirection,
    EventType,
    OfferAction,
    OfferDirection,
    OfferStatus,
    Party,
    VendorStatus,
)
from barter_exchange.domain.exceptions import (
    AlreadyFulfilledError,
    BarterError,
    InvalidStateTransitionError,
    NotAuthorizedError,
    OfferNotFoundError,
    OfferValidationError,
)
from barter_exchange.domain.state_machine import (
    BarterStateMachine,
    decide_fulfillment,
    swap_roles,
    validate_transition,
)
from barter_exchange.domain.validation import ItemSpec, PricedItem

__all__ = [
    "PriceOracle",
    "ProductQuote",
    "VendorDirectory",
    "VendorRecord",
    "CashGapDirection",
    "EventType",
    "OfferAction",
    "OfferDirection",
    "OfferStatus",
    "Party",
    "VendorStatus",
    "AlreadyFulfilledError",
    "BarterError",
    "InvalidStateTransitionError",
    "NotAuthorizedError",
    "OfferNotFoundError",
    "OfferValidationError",
    "BarterStateMachine",
    "decide_fulfillment",
    "swap_roles",
    "validate_transition",
    "ItemSpec",
    "PricedItem",
]
