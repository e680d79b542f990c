"""Tests for the DisputeArbiter: inspection and resolution."""

import uuid

import pytest
from conftest import ALPHA, ARBITER, BETA, offered, requested

from barter_exchange.domain.enums import EventType, OfferStatus
from barter_exchange.domain.exceptions import (
    InvalidStateTransitionError,
    NotAuthorizedError,
    OfferNotFoundError,
    OfferValidationError,
)


class TestInspect:
    @pytest.mark.asyncio
    async def test_arbiter_sees_both_parties_and_trail(self, exchange) -> None:
        offer = await exchange.disputed(reason="eggs arrived broken")

        case = await exchange.arbiter("inspect_offer", offer.id)

        assert case.offer.status == "DISPUTED"
        assert case.offer.counterparty is None
        assert case.offer.initiator.business_name == "Alpha Farms"
        assert case.offer.recipient.business_name == "Beta Bakery"
        assert case.offer.dispute_reason == "eggs arrived broken"
        assert case.offer.fulfilled_by_initiator is True
        assert [e.event_type for e in case.events] == [
            "OFFER_CREATED",
            "OFFER_SENT",
            "OFFER_ACCEPTED",
            "FULFILLMENT_RECORDED",
            "DISPUTE_RAISED",
        ]
        assert case.events[-1].metadata_json == {"reason": "eggs arrived broken"}

    @pytest.mark.asyncio
    async def test_inspect_any_state(self, exchange) -> None:
        offer = await exchange.draft()
        case = await exchange.arbiter("inspect_offer", offer.id)
        assert case.offer.status == "DRAFT"

    @pytest.mark.asyncio
    async def test_inspect_shows_lineage(self, exchange) -> None:
        parent = await exchange.sent()
        counter = await exchange.vendor(
            "counter_offer",
            parent.id,
            BETA,
            items=[offered("beta-croissant"), requested("alpha-honey")],
        )
        case = await exchange.arbiter("inspect_offer", parent.id)
        assert [c.offer_id for c in case.offer.counter_offers] == [str(counter.id)]

    @pytest.mark.asyncio
    async def test_inspect_unknown(self, exchange) -> None:
        with pytest.raises(OfferNotFoundError):
            await exchange.arbiter("inspect_offer", uuid.uuid4())


class TestResolve:
    @pytest.mark.asyncio
    async def test_resolve_completed(self, exchange) -> None:
        offer = await exchange.disputed()
        resolved = await exchange.arbiter(
            "resolve_dispute", offer.id, ARBITER, "COMPLETED", "Delivery confirmed by courier"
        )
        assert resolved.status == OfferStatus.COMPLETED
        assert resolved.dispute_resolved_by == ARBITER
        assert (await exchange.event_types(offer.id))[-1] == EventType.DISPUTE_RESOLVED_COMPLETED

    @pytest.mark.asyncio
    async def test_resolve_cancelled_records_event(self, exchange) -> None:
        offer = await exchange.disputed()
        await exchange.arbiter(
            "resolve_dispute", offer.id, ARBITER, OfferStatus.CANCELLED, "Refund agreed"
        )
        assert (await exchange.event_types(offer.id))[-1] == EventType.DISPUTE_RESOLVED_CANCELLED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", ["IN_PROGRESS", "ACCEPTED", "DISPUTED", "nonsense"])
    async def test_only_terminal_outcomes(self, exchange, target: str) -> None:
        offer = await exchange.disputed()
        with pytest.raises(OfferValidationError) as exc_info:
            await exchange.arbiter("resolve_dispute", offer.id, ARBITER, target, "because")
        assert exc_info.value.errors[0]["field"] == "status"
        assert (await exchange.load(offer.id)).status == OfferStatus.DISPUTED

    @pytest.mark.asyncio
    async def test_resolution_text_required(self, exchange) -> None:
        offer = await exchange.disputed()
        with pytest.raises(OfferValidationError, match="Resolution is required"):
            await exchange.arbiter("resolve_dispute", offer.id, ARBITER, "COMPLETED", "")

    @pytest.mark.asyncio
    async def test_only_disputed_offers(self, exchange) -> None:
        offer = await exchange.accepted()
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await exchange.arbiter("resolve_dispute", offer.id, ARBITER, "COMPLETED", "done")
        assert exc_info.value.current_state == "ACCEPTED"
        assert "cannot be resolved" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_resolution_is_final(self, exchange) -> None:
        offer = await exchange.disputed()
        await exchange.arbiter("resolve_dispute", offer.id, ARBITER, "CANCELLED", "refund")
        with pytest.raises(InvalidStateTransitionError):
            await exchange.arbiter("resolve_dispute", offer.id, ARBITER, "COMPLETED", "changed mind")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("party", [ALPHA, BETA])
    async def test_party_cannot_arbitrate_own_offer(self, exchange, party: str) -> None:
        offer = await exchange.disputed()
        with pytest.raises(NotAuthorizedError, match="their own offer"):
            await exchange.arbiter("resolve_dispute", offer.id, party, "COMPLETED", "I win")
