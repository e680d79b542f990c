"""Barter Offer State Machine Guard.

Uses python-statemachine to enforce legal state transitions at the domain level.
No matter what the API or an MCP tool asks for, an illegal transition
(e.g., DRAFT -> ACCEPTED) is refused before any row is written.

The state machine is instantiated per-action from the offer's stored status
and validates the transition before the ORM row is updated.

Transition table:
    DRAFT        -> SENT          (initiator_sends)
    DRAFT        -> CANCELLED     (initiator_cancels)
    SENT         -> CANCELLED     (initiator_cancels)
    SENT         -> ACCEPTED      (recipient_accepts)
    COUNTERED    -> ACCEPTED      (recipient_accepts)
    SENT         -> REJECTED      (recipient_rejects)
    COUNTERED    -> REJECTED      (recipient_rejects)
    SENT         -> COUNTERED     (recipient_counters)
    COUNTERED    -> COUNTERED     (recipient_counters)
    ACCEPTED     -> IN_PROGRESS   (first_party_fulfills)
    ACCEPTED     -> COMPLETED     (second_party_fulfills)
    IN_PROGRESS  -> COMPLETED     (second_party_fulfills)
    ACCEPTED     -> DISPUTED      (party_disputes)
    IN_PROGRESS  -> DISPUTED      (party_disputes)
    DISPUTED     -> COMPLETED     (arbiter_resolves_completed)
    DISPUTED     -> CANCELLED     (arbiter_resolves_cancelled)

Two pure helpers live beside the table: ``decide_fulfillment`` (the
dual-flag rendezvous) and ``swap_roles`` (party inversion on counter).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from barter_exchange.domain.enums import OfferAction, OfferStatus, Party
from barter_exchange.domain.exceptions import (
    AlreadyFulfilledError,
    InvalidStateTransitionError,
)


class BarterStateMachine(StateMachine):
    """State machine that guards barter offer lifecycle transitions.

    Usage:
        sm = BarterStateMachine(current_status="SENT")
        sm.recipient_accepts()  # transitions to ACCEPTED
        sm.status               # "ACCEPTED"
    """

    # --- States ---
    DRAFT = State("DRAFT", initial=True)
    SENT = State("SENT")
    COUNTERED = State("COUNTERED")
    ACCEPTED = State("ACCEPTED")
    REJECTED = State("REJECTED", final=True)
    CANCELLED = State("CANCELLED", final=True)
    IN_PROGRESS = State("IN_PROGRESS")
    COMPLETED = State("COMPLETED", final=True)
    DISPUTED = State("DISPUTED")

    # --- Events / Transitions ---

    # Initiator actions
    initiator_sends = DRAFT.to(SENT)
    initiator_cancels = DRAFT.to(CANCELLED) | SENT.to(CANCELLED)

    # Recipient responses. A COUNTERED offer stays open: it can still be
    # accepted, rejected or countered again, so one offer may head several
    # live branches. Lineage records every branch.
    recipient_accepts = SENT.to(ACCEPTED) | COUNTERED.to(ACCEPTED)
    recipient_rejects = SENT.to(REJECTED) | COUNTERED.to(REJECTED)
    recipient_counters = SENT.to(COUNTERED) | COUNTERED.to.itself()

    # Fulfillment rendezvous
    first_party_fulfills = ACCEPTED.to(IN_PROGRESS)
    second_party_fulfills = ACCEPTED.to(COMPLETED) | IN_PROGRESS.to(COMPLETED)

    # Disputes
    party_disputes = ACCEPTED.to(DISPUTED) | IN_PROGRESS.to(DISPUTED)
    arbiter_resolves_completed = DISPUTED.to(COMPLETED)
    arbiter_resolves_cancelled = DISPUTED.to(CANCELLED)

    def __init__(self, current_status: str = "DRAFT") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current OfferStatus value (e.g., "SENT").
                           Must match one of the State value strings exactly.
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=str(current_status))

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches OfferStatus enum)."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return the event ids that can fire from the current state."""
        return [event.id for event in self.allowed_events]


# Party actions that map onto exactly one event. Fulfill and resolve pick
# their event from the offer's data, see decide_fulfillment / resolution_event.
ACTION_EVENTS: dict[OfferAction, str] = {
    OfferAction.SEND: "initiator_sends",
    OfferAction.CANCEL: "initiator_cancels",
    OfferAction.ACCEPT: "recipient_accepts",
    OfferAction.REJECT: "recipient_rejects",
    OfferAction.COUNTER: "recipient_counters",
    OfferAction.DISPUTE: "party_disputes",
}

RESOLUTION_EVENTS: dict[OfferStatus, str] = {
    OfferStatus.COMPLETED: "arbiter_resolves_completed",
    OfferStatus.CANCELLED: "arbiter_resolves_cancelled",
}


def validate_transition(current_status: str, event_name: str) -> str:
    """Validate a state transition and return the new status.

    Creates a temporary state machine, fires the named event, and returns the
    resulting status string.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = BarterStateMachine(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status


def fire(current_status: str, event_name: str, action: OfferAction) -> OfferStatus:
    """Fire ``event_name`` from ``current_status`` on behalf of ``action``.

    Translates the library's TransitionNotAllowed into the domain error the
    API reports ("This offer cannot be <action>ed in its current state").
    """
    try:
        return OfferStatus(validate_transition(current_status, event_name))
    except TransitionNotAllowed as err:
        raise InvalidStateTransitionError(str(current_status), action.value) from err


def next_status(current_status: str, action: OfferAction) -> OfferStatus:
    """Return the status a single-event party action leads to."""
    return fire(current_status, ACTION_EVENTS[action], action)


def resolution_event(new_status: OfferStatus) -> str:
    """Event the arbiter fires to close a dispute with ``new_status``."""
    try:
        return RESOLUTION_EVENTS[OfferStatus(new_status)]
    except (KeyError, ValueError) as err:
        raise ValueError(
            f"Disputes resolve to COMPLETED or CANCELLED, not {new_status}"
        ) from err


# ---------------------------------------------------------------------------
# Fulfillment rendezvous
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FulfillmentDecision:
    """Outcome of one party's fulfill action, computed without storage."""

    old_status: OfferStatus
    new_status: OfferStatus
    fulfilled_by_initiator: bool
    fulfilled_by_recipient: bool

    @property
    def completes(self) -> bool:
        return self.new_status is OfferStatus.COMPLETED


def decide_fulfillment(
    current_status: str,
    acting_party: Party,
    fulfilled_by_initiator: bool,
    fulfilled_by_recipient: bool,
) -> FulfillmentDecision:
    """Decide the next state when ``acting_party`` attests its side is done.

    Own flag already set -> AlreadyFulfilledError. Otherwise the flag is set;
    if the other flag is already true the offer completes, if this is the
    first flag on an ACCEPTED offer it moves to IN_PROGRESS, else the status
    is unchanged. The result does not depend on which party arrives first.
    """
    status = OfferStatus(current_status)
    if status not in (OfferStatus.ACCEPTED, OfferStatus.IN_PROGRESS):
        raise InvalidStateTransitionError(status.value, OfferAction.FULFILL.value)

    if acting_party is Party.INITIATOR:
        own_flag, other_flag = fulfilled_by_initiator, fulfilled_by_recipient
    else:
        own_flag, other_flag = fulfilled_by_recipient, fulfilled_by_initiator

    if own_flag:
        raise AlreadyFulfilledError(party=acting_party.value, current_state=status.value)

    if other_flag:
        new_status = fire(status, "second_party_fulfills", OfferAction.FULFILL)
    elif status is OfferStatus.ACCEPTED:
        new_status = fire(status, "first_party_fulfills", OfferAction.FULFILL)
    else:
        new_status = status

    return FulfillmentDecision(
        old_status=status,
        new_status=new_status,
        fulfilled_by_initiator=fulfilled_by_initiator or acting_party is Party.INITIATOR,
        fulfilled_by_recipient=fulfilled_by_recipient or acting_party is Party.RECIPIENT,
    )


# ---------------------------------------------------------------------------
# Counter-offer role inversion
# ---------------------------------------------------------------------------


class HasParties(Protocol):
    initiator_vendor_id: str
    recipient_vendor_id: str


def swap_roles(offer: HasParties) -> tuple[str, str]:
    """Return ``(new_initiator, new_recipient)`` for a counter to ``offer``."""
    return offer.recipient_vendor_id, offer.initiator_vendor_id
