"""Tests for the barter offer state machine.

Verifies that:
- Valid transitions succeed and produce the correct new state
- Invalid transitions raise TransitionNotAllowed (or the domain error)
- Final states (REJECTED, CANCELLED, COMPLETED) accept no events
"""

import pytest
from statemachine.exceptions import TransitionNotAllowed

from barter_exchange.domain.enums import OfferAction, OfferStatus
from barter_exchange.domain.exceptions import InvalidStateTransitionError
from barter_exchange.domain.state_machine import (
    BarterStateMachine,
    next_status,
    resolution_event,
    swap_roles,
    validate_transition,
)


class TestNegotiationPath:
    """Test the DRAFT -> SENT -> ACCEPTED/REJECTED/COUNTERED path."""

    def test_draft_to_sent(self) -> None:
        sm = BarterStateMachine("DRAFT")
        sm.initiator_sends()
        assert sm.status == "SENT"

    def test_sent_to_accepted(self) -> None:
        sm = BarterStateMachine("SENT")
        sm.recipient_accepts()
        assert sm.status == "ACCEPTED"

    def test_sent_to_rejected(self) -> None:
        sm = BarterStateMachine("SENT")
        sm.recipient_rejects()
        assert sm.status == "REJECTED"

    def test_sent_to_countered(self) -> None:
        sm = BarterStateMachine("SENT")
        sm.recipient_counters()
        assert sm.status == "COUNTERED"

    def test_countered_can_be_countered_again(self) -> None:
        sm = BarterStateMachine("COUNTERED")
        sm.recipient_counters()
        assert sm.status == "COUNTERED"

    def test_countered_to_accepted(self) -> None:
        sm = BarterStateMachine("COUNTERED")
        sm.recipient_accepts()
        assert sm.status == "ACCEPTED"


class TestCancelPath:
    def test_cancel_draft(self) -> None:
        sm = BarterStateMachine("DRAFT")
        sm.initiator_cancels()
        assert sm.status == "CANCELLED"

    def test_cancel_sent(self) -> None:
        sm = BarterStateMachine("SENT")
        sm.initiator_cancels()
        assert sm.status == "CANCELLED"

    def test_cannot_cancel_accepted(self) -> None:
        sm = BarterStateMachine("ACCEPTED")
        with pytest.raises(TransitionNotAllowed):
            sm.initiator_cancels()


class TestFulfillmentPath:
    def test_first_fulfillment_moves_to_in_progress(self) -> None:
        sm = BarterStateMachine("ACCEPTED")
        sm.first_party_fulfills()
        assert sm.status == "IN_PROGRESS"

    def test_second_fulfillment_completes(self) -> None:
        sm = BarterStateMachine("IN_PROGRESS")
        sm.second_party_fulfills()
        assert sm.status == "COMPLETED"


class TestDisputePath:
    """Test dispute transitions."""

    def test_dispute_from_accepted(self) -> None:
        sm = BarterStateMachine("ACCEPTED")
        sm.party_disputes()
        assert sm.status == "DISPUTED"

    def test_dispute_from_in_progress(self) -> None:
        sm = BarterStateMachine("IN_PROGRESS")
        sm.party_disputes()
        assert sm.status == "DISPUTED"

    def test_cannot_dispute_sent_offer(self) -> None:
        sm = BarterStateMachine("SENT")
        with pytest.raises(TransitionNotAllowed):
            sm.party_disputes()

    def test_resolved_completed(self) -> None:
        sm = BarterStateMachine("DISPUTED")
        sm.arbiter_resolves_completed()
        assert sm.status == "COMPLETED"

    def test_resolved_cancelled(self) -> None:
        sm = BarterStateMachine("DISPUTED")
        sm.arbiter_resolves_cancelled()
        assert sm.status == "CANCELLED"


class TestIllegalTransitions:
    """Verify that illegal transitions raise TransitionNotAllowed."""

    def test_draft_to_accepted(self) -> None:
        sm = BarterStateMachine("DRAFT")
        with pytest.raises(TransitionNotAllowed):
            sm.recipient_accepts()

    def test_draft_cannot_be_countered(self) -> None:
        sm = BarterStateMachine("DRAFT")
        with pytest.raises(TransitionNotAllowed):
            sm.recipient_counters()

    def test_sent_cannot_be_fulfilled(self) -> None:
        sm = BarterStateMachine("SENT")
        with pytest.raises(TransitionNotAllowed):
            sm.first_party_fulfills()

    @pytest.mark.parametrize("status", ["REJECTED", "CANCELLED", "COMPLETED"])
    def test_terminal_states_are_final(self, status: str) -> None:
        sm = BarterStateMachine(status)
        assert sm.get_allowed_events() == []


class TestAllowedEvents:
    def test_draft_allowed(self) -> None:
        allowed = BarterStateMachine("DRAFT").get_allowed_events()
        assert set(allowed) == {"initiator_sends", "initiator_cancels"}

    def test_sent_allowed(self) -> None:
        allowed = BarterStateMachine("SENT").get_allowed_events()
        assert set(allowed) == {
            "initiator_cancels",
            "recipient_accepts",
            "recipient_rejects",
            "recipient_counters",
        }

    def test_disputed_allowed(self) -> None:
        allowed = BarterStateMachine("DISPUTED").get_allowed_events()
        assert set(allowed) == {"arbiter_resolves_completed", "arbiter_resolves_cancelled"}


class TestValidateTransitionFunction:
    def test_valid_transition(self) -> None:
        assert validate_transition("SENT", "recipient_accepts") == "ACCEPTED"

    def test_invalid_event_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown event"):
            validate_transition("SENT", "nonexistent_event")

    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            BarterStateMachine("INVALID_STATUS")


class TestNextStatus:
    def test_maps_action_to_status(self) -> None:
        assert next_status("SENT", OfferAction.ACCEPT) is OfferStatus.ACCEPTED
        assert next_status("DRAFT", OfferAction.SEND) is OfferStatus.SENT

    def test_illegal_action_raises_domain_error(self) -> None:
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            next_status("DRAFT", OfferAction.ACCEPT)
        assert exc_info.value.current_state == "DRAFT"
        assert exc_info.value.message == (
            "This offer cannot be accepted in its current state (DRAFT)"
        )

    def test_rejected_offer_cannot_be_cancelled(self) -> None:
        with pytest.raises(InvalidStateTransitionError, match="cannot be cancelled"):
            next_status("REJECTED", OfferAction.CANCEL)


class TestResolutionEvent:
    def test_known_outcomes(self) -> None:
        assert resolution_event(OfferStatus.COMPLETED) == "arbiter_resolves_completed"
        assert resolution_event(OfferStatus.CANCELLED) == "arbiter_resolves_cancelled"

    @pytest.mark.parametrize("status", ["IN_PROGRESS", "ACCEPTED", "BOGUS"])
    def test_other_outcomes_rejected(self, status: str) -> None:
        with pytest.raises(ValueError, match="COMPLETED or CANCELLED"):
            resolution_event(status)


class TestSwapRoles:
    def test_counter_inverts_parties(self) -> None:
        class Offer:
            initiator_vendor_id = "vendor-alpha"
            recipient_vendor_id = "vendor-beta"

        assert swap_roles(Offer()) == ("vendor-beta", "vendor-alpha")
