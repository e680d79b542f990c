"""Barter Offer Service — negotiation and fulfillment for the two parties.

This is the application layer that coordinates between:
    - Offer Validator (domain/validation.py)
    - Value Snapshot Resolver (services/value_snapshot.py)
    - State machine guard (domain/state_machine.py)
    - Repositories (data access) and the event log (audit trail)
    - Offer Projection for every read (domain/projection.py)

Both REST routes and MCP tools call into this service, ensuring a single
source of truth for all business rules. The service never commits: one
request is one transaction, owned by the caller's session.

The arbiter's privileged path lives in services/arbiter_service.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from barter_exchange.config import get_settings
from barter_exchange.domain.enums import (
    CashGapDirection,
    EventType,
    OfferAction,
    OfferStatus,
)
from barter_exchange.domain.exceptions import (
    InvalidStateTransitionError,
    NotAuthorizedError,
    VendorNotEligibleError,
)
from barter_exchange.domain.projection import project_offer, summarize_offer
from barter_exchange.domain.state_machine import (
    BarterStateMachine,
    decide_fulfillment,
    next_status,
    swap_roles,
)
from barter_exchange.domain.validation import (
    authorize,
    check_counterparty,
    check_item_ownership,
    check_item_specs,
    check_sendable,
    check_text,
    normalize_cash_gap,
    party_of,
)
from barter_exchange.infrastructure.database.orm_models import BarterOffer
from barter_exchange.infrastructure.database.repositories import (
    EventRepository,
    OfferRepository,
)
from barter_exchange.logging_config import get_logger
from barter_exchange.services.transitions import (
    apply_guarded,
    load_lineage,
    load_offer,
    transition_retrying,
)
from barter_exchange.services.value_snapshot import ValueSnapshotResolver

if TYPE_CHECKING:
    import uuid
    from collections.abc import Callable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from barter_exchange.domain.collaborators import (
        PriceOracle,
        ProductQuote,
        VendorDirectory,
        VendorRecord,
    )
    from barter_exchange.domain.enums import OfferDirection
    from barter_exchange.domain.projection import OfferProjection, OfferSummary
    from barter_exchange.domain.validation import ItemSpec
    from barter_exchange.infrastructure.database.orm_models import OfferEvent

logger = get_logger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks an optional update field the caller did not send, as opposed to null.
UNSET: Any = _Unset()


def counter_of_message(parent_offer_id: uuid.UUID) -> str:
    return f"Counter-offer to offer {parent_offer_id}"


class BarterOfferService:
    """Manages the offer lifecycle on behalf of the two vendors."""

    def __init__(
        self,
        session: AsyncSession,
        oracle: PriceOracle,
        directory: VendorDirectory,
    ) -> None:
        settings = get_settings()
        self._session = session
        self._offer_repo = OfferRepository(session)
        self._event_repo = EventRepository(session)
        self._oracle = oracle
        self._directory = directory
        self._resolver = ValueSnapshotResolver(oracle)
        self._max_items = settings.barter_max_items_per_offer
        self._max_attempts = settings.barter_transition_max_attempts

    # ------------------------------------------------------------------
    # Creation and DRAFT edits
    # ------------------------------------------------------------------

    async def create_offer(
        self,
        initiator_vendor_id: str,
        recipient_vendor_id: str,
        items: Sequence[ItemSpec],
        cash_gap_cents: int = 0,
        cash_gap_direction: CashGapDirection | str | None = None,
        message: str | None = None,
    ) -> BarterOffer:
        """Create a new offer in DRAFT with freshly priced items."""
        check_item_specs(items, self._max_items)
        cents, direction = normalize_cash_gap(cash_gap_cents, cash_gap_direction)

        recipient = await self._directory.get_vendor(recipient_vendor_id)
        check_counterparty(initiator_vendor_id, recipient_vendor_id, recipient)

        snapshot = await self._resolver.resolve(items)
        check_item_ownership(items, snapshot.quotes, initiator_vendor_id, recipient_vendor_id)

        offer = BarterOffer(
            initiator_vendor_id=initiator_vendor_id,
            recipient_vendor_id=recipient_vendor_id,
            status=OfferStatus.DRAFT.value,
            cash_gap_cents=cents,
            cash_gap_direction=direction.value if direction else None,
            message=message,
        )
        offer = await self._offer_repo.create(offer, snapshot.items)

        await self._event_repo.record(
            offer_id=offer.id,
            event_type=EventType.OFFER_CREATED,
            old_status=None,
            new_status=OfferStatus.DRAFT,
            actor=initiator_vendor_id,
            metadata={
                "recipient_vendor_id": recipient_vendor_id,
                "offered_total_cents": snapshot.offered_total_cents,
                "requested_total_cents": snapshot.requested_total_cents,
                "cash_gap_cents": cents,
            },
        )

        logger.info(
            "offer.created",
            offer_id=str(offer.id),
            initiator=initiator_vendor_id,
            recipient=recipient_vendor_id,
            items=len(snapshot.items),
        )
        return offer

    async def update_offer(
        self,
        offer_id: uuid.UUID,
        vendor_id: str,
        items: Sequence[ItemSpec] | None = None,
        cash_gap_cents: int | None = None,
        cash_gap_direction: CashGapDirection | str | None = UNSET,
        message: str | None = UNSET,
    ) -> BarterOffer:
        """Edit a DRAFT offer. Items, if given, replace the whole set.

        ``cash_gap_direction`` and ``message`` default to UNSET so that an
        explicit None clears the field while an omitted one keeps it.
        """
        if items is not None:
            check_item_specs(items, self._max_items)
            snapshot = await self._resolver.resolve(items)
        else:
            snapshot = None

        async for attempt in transition_retrying(self._max_attempts):
            with attempt:
                offer = await load_offer(self._offer_repo, offer_id)
                authorize(offer, vendor_id, OfferAction.UPDATE)
                if offer.status != OfferStatus.DRAFT:
                    raise InvalidStateTransitionError(offer.status, OfferAction.UPDATE.value)

                if snapshot is not None:
                    check_item_ownership(
                        items,
                        snapshot.quotes,
                        offer.initiator_vendor_id,
                        offer.recipient_vendor_id,
                    )

                cents = offer.cash_gap_cents if cash_gap_cents is None else cash_gap_cents
                direction = (
                    offer.cash_gap_direction
                    if cash_gap_direction is UNSET
                    else cash_gap_direction
                )
                cents, direction = normalize_cash_gap(cents, direction)

                values: dict[str, object] = {
                    "cash_gap_cents": cents,
                    "cash_gap_direction": direction.value if direction else None,
                }
                if message is not UNSET:
                    values["message"] = message

                offer = await apply_guarded(
                    self._offer_repo,
                    offer,
                    OfferStatus.DRAFT,
                    OfferAction.UPDATE,
                    status=OfferStatus.DRAFT.value,
                    **values,
                )

        if snapshot is not None:
            offer = await self._offer_repo.replace_items(offer, snapshot.items)

        await self._event_repo.record(
            offer_id=offer.id,
            event_type=EventType.OFFER_UPDATED,
            old_status=OfferStatus.DRAFT,
            new_status=OfferStatus.DRAFT,
            actor=vendor_id,
            metadata={
                "items_replaced": snapshot is not None,
                "cash_gap_cents": offer.cash_gap_cents,
            },
        )

        logger.info("offer.updated", offer_id=str(offer_id), items_replaced=snapshot is not None)
        return offer

    # ------------------------------------------------------------------
    # Single-event party actions
    # ------------------------------------------------------------------

    async def send_offer(self, offer_id: uuid.UUID, vendor_id: str) -> BarterOffer:
        """Initiator sends a DRAFT offer to the recipient."""
        return await self._party_transition(
            offer_id,
            vendor_id,
            OfferAction.SEND,
            EventType.OFFER_SENT,
            precheck=lambda offer: check_sendable(len(offer.items)),
        )

    async def accept_offer(self, offer_id: uuid.UUID, vendor_id: str) -> BarterOffer:
        """Recipient accepts the terms as they stand."""
        return await self._party_transition(
            offer_id, vendor_id, OfferAction.ACCEPT, EventType.OFFER_ACCEPTED
        )

    async def reject_offer(self, offer_id: uuid.UUID, vendor_id: str) -> BarterOffer:
        return await self._party_transition(
            offer_id, vendor_id, OfferAction.REJECT, EventType.OFFER_REJECTED
        )

    async def cancel_offer(self, offer_id: uuid.UUID, vendor_id: str) -> BarterOffer:
        """Initiator withdraws a DRAFT or SENT offer."""
        return await self._party_transition(
            offer_id, vendor_id, OfferAction.CANCEL, EventType.OFFER_CANCELLED
        )

    async def raise_dispute(
        self,
        offer_id: uuid.UUID,
        vendor_id: str,
        reason: str,
    ) -> BarterOffer:
        """Either party escalates an ACCEPTED or IN_PROGRESS offer to the arbiter."""
        reason = check_text(reason, "reason")
        return await self._party_transition(
            offer_id,
            vendor_id,
            OfferAction.DISPUTE,
            EventType.DISPUTE_RAISED,
            values={"dispute_reason": reason},
            metadata={"reason": reason},
        )

    # ------------------------------------------------------------------
    # Counter-offers
    # ------------------------------------------------------------------

    async def counter_offer(
        self,
        offer_id: uuid.UUID,
        vendor_id: str,
        items: Sequence[ItemSpec],
        cash_gap_cents: int = 0,
        cash_gap_direction: CashGapDirection | str | None = None,
        message: str | None = None,
    ) -> BarterOffer:
        """Recipient answers with new terms.

        The predecessor moves to COUNTERED and a new offer is created in SENT
        with the roles swapped, so the counter's ``is_offered`` lines belong
        to the vendor making the counter.
        """
        check_item_specs(items, self._max_items)
        cents, direction = normalize_cash_gap(cash_gap_cents, cash_gap_direction)
        snapshot = await self._resolver.resolve(items)

        async for attempt in transition_retrying(self._max_attempts):
            with attempt:
                parent = await load_offer(self._offer_repo, offer_id)
                authorize(parent, vendor_id, OfferAction.COUNTER)
                old_status = OfferStatus(parent.status)
                new_parent_status = next_status(old_status, OfferAction.COUNTER)

                new_initiator, new_recipient = swap_roles(parent)
                check_item_ownership(items, snapshot.quotes, new_initiator, new_recipient)

                parent = await apply_guarded(
                    self._offer_repo,
                    parent,
                    old_status,
                    OfferAction.COUNTER,
                    status=new_parent_status.value,
                )

        counter = BarterOffer(
            initiator_vendor_id=new_initiator,
            recipient_vendor_id=new_recipient,
            status=OfferStatus.SENT.value,
            cash_gap_cents=cents,
            cash_gap_direction=direction.value if direction else None,
            message=message,
            parent_offer_id=parent.id,
            counter_of_message=counter_of_message(parent.id),
        )
        counter = await self._offer_repo.create(counter, snapshot.items)

        await self._event_repo.record(
            offer_id=parent.id,
            event_type=EventType.OFFER_COUNTERED,
            old_status=old_status,
            new_status=new_parent_status,
            actor=vendor_id,
            metadata={"counter_offer_id": str(counter.id)},
        )
        await self._event_repo.record(
            offer_id=counter.id,
            event_type=EventType.COUNTER_OFFER_CREATED,
            old_status=None,
            new_status=OfferStatus.SENT,
            actor=vendor_id,
            metadata={
                "parent_offer_id": str(parent.id),
                "offered_total_cents": snapshot.offered_total_cents,
                "requested_total_cents": snapshot.requested_total_cents,
                "cash_gap_cents": cents,
            },
        )

        logger.info(
            "offer.counter_created",
            offer_id=str(counter.id),
            parent_offer_id=str(parent.id),
            initiator=new_initiator,
            recipient=new_recipient,
        )
        return counter

    # ------------------------------------------------------------------
    # Fulfillment
    # ------------------------------------------------------------------

    async def fulfill_offer(self, offer_id: uuid.UUID, vendor_id: str) -> BarterOffer:
        """Record that the acting party has delivered its side.

        The first party moves ACCEPTED -> IN_PROGRESS, the second completes
        the trade. The write is guarded on both observed flags so two
        concurrent fulfills by different parties cannot both see "first".
        """
        async for attempt in transition_retrying(self._max_attempts):
            with attempt:
                offer = await load_offer(self._offer_repo, offer_id)
                party = authorize(offer, vendor_id, OfferAction.FULFILL)
                decision = decide_fulfillment(
                    offer.status,
                    party,
                    offer.fulfilled_by_initiator,
                    offer.fulfilled_by_recipient,
                )
                offer = await apply_guarded(
                    self._offer_repo,
                    offer,
                    decision.old_status,
                    OfferAction.FULFILL,
                    expected_flags=(offer.fulfilled_by_initiator, offer.fulfilled_by_recipient),
                    status=decision.new_status.value,
                    fulfilled_by_initiator=decision.fulfilled_by_initiator,
                    fulfilled_by_recipient=decision.fulfilled_by_recipient,
                )

        await self._event_repo.record(
            offer_id=offer.id,
            event_type=(
                EventType.OFFER_COMPLETED if decision.completes else EventType.FULFILLMENT_RECORDED
            ),
            old_status=decision.old_status,
            new_status=decision.new_status,
            actor=vendor_id,
            metadata={"party": party.value},
        )

        logger.info(
            "offer.fulfillment_recorded",
            offer_id=str(offer_id),
            party=party.value,
            status=decision.new_status.value,
        )
        return offer

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def list_offers(
        self,
        vendor_id: str,
        status: OfferStatus | None = None,
        direction: OfferDirection | None = None,
    ) -> list[OfferSummary]:
        """The vendor's offers, most recently updated first."""
        offers = await self._offer_repo.list_for_vendor(vendor_id, status, direction)
        vendor_ids = {o.initiator_vendor_id for o in offers} | {
            o.recipient_vendor_id for o in offers
        }
        vendors = await self._directory.get_vendors(vendor_ids)
        return [summarize_offer(offer, vendor_id, vendors) for offer in offers]

    async def get_offer(self, offer_id: uuid.UUID, vendor_id: str) -> BarterOffer:
        """The raw offer row, for a party only."""
        offer = await load_offer(self._offer_repo, offer_id, refresh=False)
        self._require_party(offer, vendor_id)
        return offer

    async def get_offer_detail(self, offer_id: uuid.UUID, vendor_id: str) -> OfferProjection:
        offer = await self.get_offer(offer_id, vendor_id)
        return await self.project(offer, vendor_id)

    async def project(self, offer: BarterOffer, vendor_id: str) -> OfferProjection:
        """Detail projection of ``offer`` from ``vendor_id``'s side, with lineage."""
        parent, children = await load_lineage(self._offer_repo, offer)
        vendors = await self._directory.get_vendors(
            [offer.initiator_vendor_id, offer.recipient_vendor_id]
        )
        return project_offer(offer, vendor_id, vendors, parent=parent, children=children)

    async def get_status(self, offer_id: uuid.UUID, vendor_id: str) -> dict:
        """Current status, fulfillment flags and the events allowed from here."""
        offer = await self.get_offer(offer_id, vendor_id)
        sm = BarterStateMachine(current_status=offer.status)
        return {
            "offer_id": str(offer.id),
            "status": offer.status,
            "is_initiator": offer.initiator_vendor_id == vendor_id,
            "fulfilled_by_initiator": offer.fulfilled_by_initiator,
            "fulfilled_by_recipient": offer.fulfilled_by_recipient,
            "allowed_events": sm.get_allowed_events(),
        }

    async def get_events(self, offer_id: uuid.UUID, vendor_id: str) -> list[OfferEvent]:
        """Audit trail of an offer, oldest first."""
        offer = await self.get_offer(offer_id, vendor_id)
        return await self._event_repo.get_by_offer(offer.id)

    async def list_counterparties(self, vendor_id: str) -> list[VendorRecord]:
        """Vendors the caller could open an offer with."""
        return await self._directory.list_counterparties(vendor_id)

    async def list_vendor_products(self, vendor_id: str) -> list[ProductQuote]:
        """Tradeable products of an eligible vendor."""
        record = await self._directory.get_vendor(vendor_id)
        if record is None or not record.is_eligible_counterparty:
            raise VendorNotEligibleError(vendor_id)
        return await self._oracle.list_available(vendor_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _party_transition(
        self,
        offer_id: uuid.UUID,
        vendor_id: str,
        action: OfferAction,
        event_type: EventType,
        precheck: Callable[[BarterOffer], None] | None = None,
        values: dict[str, object] | None = None,
        metadata: dict | None = None,
    ) -> BarterOffer:
        """Authorize, pick the next status, write it guarded, log the event."""
        async for attempt in transition_retrying(self._max_attempts):
            with attempt:
                offer = await load_offer(self._offer_repo, offer_id)
                authorize(offer, vendor_id, action)
                old_status = OfferStatus(offer.status)
                new_status = next_status(old_status, action)
                if precheck is not None:
                    precheck(offer)
                offer = await apply_guarded(
                    self._offer_repo,
                    offer,
                    old_status,
                    action,
                    status=new_status.value,
                    **(values or {}),
                )

        await self._event_repo.record(
            offer_id=offer.id,
            event_type=event_type,
            old_status=old_status,
            new_status=new_status,
            actor=vendor_id,
            metadata=metadata,
        )

        logger.info(
            f"offer.{action.past_tense}",
            offer_id=str(offer_id),
            actor=vendor_id,
            old_status=old_status.value,
            new_status=new_status.value,
        )
        return offer

    @staticmethod
    def _require_party(offer: BarterOffer, vendor_id: str) -> None:
        if party_of(offer, vendor_id) is None:
            raise NotAuthorizedError(
                str(offer.id), vendor_id, "view", "You are not part of this offer"
            )
