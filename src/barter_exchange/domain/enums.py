"""Domain enumerations for the Barter Exchange.

These enums define the canonical states and vocabularies used throughout the
engine. They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class OfferStatus(enum.StrEnum):
    """Lifecycle states of a barter offer.

    State transitions are enforced by the BarterStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    DRAFT = "DRAFT"
    SENT = "SENT"
    COUNTERED = "COUNTERED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DISPUTED = "DISPUTED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {OfferStatus.REJECTED, OfferStatus.CANCELLED, OfferStatus.COMPLETED}
)


class CashGapDirection(enum.StrEnum):
    """Which party owes the cash adjustment on an unequal trade."""

    INITIATOR_PAYS = "INITIATOR_PAYS"
    RECIPIENT_PAYS = "RECIPIENT_PAYS"


class Party(enum.StrEnum):
    """The side of an offer a vendor is acting on."""

    INITIATOR = "INITIATOR"
    RECIPIENT = "RECIPIENT"

    @property
    def other(self) -> "Party":
        return Party.RECIPIENT if self is Party.INITIATOR else Party.INITIATOR


class OfferAction(enum.StrEnum):
    """Actions a caller can attempt against an offer.

    ``past_tense`` is used to build the "cannot be <action>ed" error text.
    """

    UPDATE = "update"
    SEND = "send"
    ACCEPT = "accept"
    REJECT = "reject"
    COUNTER = "counter"
    CANCEL = "cancel"
    FULFILL = "fulfill"
    DISPUTE = "dispute"
    RESOLVE = "resolve"

    @property
    def past_tense(self) -> str:
        return _PAST_TENSE[self]


_PAST_TENSE = {
    OfferAction.UPDATE: "updated",
    OfferAction.SEND: "sent",
    OfferAction.ACCEPT: "accepted",
    OfferAction.REJECT: "rejected",
    OfferAction.COUNTER: "countered",
    OfferAction.CANCEL: "cancelled",
    OfferAction.FULFILL: "fulfilled",
    OfferAction.DISPUTE: "disputed",
    OfferAction.RESOLVE: "resolved",
}


class OfferDirection(enum.StrEnum):
    """Listing filter relative to the viewing vendor."""

    SENT = "sent"
    RECEIVED = "received"


class VendorStatus(enum.StrEnum):
    """Approval status reported by the Vendor Directory."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    SUSPENDED = "SUSPENDED"


class EventType(enum.StrEnum):
    """Types of audit events recorded in the offer_events table.

    Every state change of an offer MUST produce exactly one event.
    This is the append-only trail the arbiter reads during disputes.
    """

    # Negotiation events
    OFFER_CREATED = "OFFER_CREATED"
    OFFER_UPDATED = "OFFER_UPDATED"
    OFFER_SENT = "OFFER_SENT"
    OFFER_COUNTERED = "OFFER_COUNTERED"
    COUNTER_OFFER_CREATED = "COUNTER_OFFER_CREATED"
    OFFER_ACCEPTED = "OFFER_ACCEPTED"
    OFFER_REJECTED = "OFFER_REJECTED"
    OFFER_CANCELLED = "OFFER_CANCELLED"

    # Fulfillment events
    FULFILLMENT_RECORDED = "FULFILLMENT_RECORDED"
    OFFER_COMPLETED = "OFFER_COMPLETED"

    # Dispute events
    DISPUTE_RAISED = "DISPUTE_RAISED"
    DISPUTE_RESOLVED_COMPLETED = "DISPUTE_RESOLVED_COMPLETED"
    DISPUTE_RESOLVED_CANCELLED = "DISPUTE_RESOLVED_CANCELLED"
