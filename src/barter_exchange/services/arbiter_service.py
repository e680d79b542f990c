"""Dispute Arbiter — the privileged path for a neutral authority.

Exactly two operations: inspect any offer, and resolve a DISPUTED offer
to COMPLETED or CANCELLED. Nothing else in the engine can move an offer
out of DISPUTED, and the arbiter can do nothing else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from barter_exchange.config import get_settings
from barter_exchange.domain.enums import EventType, OfferAction, OfferStatus
from barter_exchange.domain.exceptions import (
    InvalidStateTransitionError,
    NotAuthorizedError,
    OfferValidationError,
)
from barter_exchange.domain.projection import project_offer
from barter_exchange.domain.state_machine import fire, resolution_event
from barter_exchange.domain.validation import check_text, party_of
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

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from barter_exchange.domain.collaborators import VendorDirectory
    from barter_exchange.domain.projection import OfferProjection
    from barter_exchange.infrastructure.database.orm_models import BarterOffer, OfferEvent

logger = get_logger(__name__)

_RESOLUTION_EVENT_TYPES = {
    OfferStatus.COMPLETED: EventType.DISPUTE_RESOLVED_COMPLETED,
    OfferStatus.CANCELLED: EventType.DISPUTE_RESOLVED_CANCELLED,
}


@dataclass(frozen=True)
class DisputeCase:
    """Everything the arbiter sees about one offer."""

    offer: OfferProjection
    events: list[OfferEvent]


class DisputeArbiter:
    def __init__(self, session: AsyncSession, directory: VendorDirectory) -> None:
        self._offer_repo = OfferRepository(session)
        self._event_repo = EventRepository(session)
        self._directory = directory
        self._max_attempts = get_settings().barter_transition_max_attempts

    async def inspect_offer(self, offer_id: uuid.UUID) -> DisputeCase:
        """Full offer, both parties, items, lineage and audit trail."""
        offer = await load_offer(self._offer_repo, offer_id, refresh=False)
        parent, children = await load_lineage(self._offer_repo, offer)
        vendors = await self._directory.get_vendors(
            [offer.initiator_vendor_id, offer.recipient_vendor_id]
        )
        return DisputeCase(
            offer=project_offer(offer, None, vendors, parent=parent, children=children),
            events=await self._event_repo.get_by_offer(offer.id),
        )

    async def resolve_dispute(
        self,
        offer_id: uuid.UUID,
        arbiter_id: str,
        new_status: OfferStatus | str,
        resolution: str,
    ) -> BarterOffer:
        """Close a DISPUTED offer as COMPLETED or CANCELLED.

        Raises:
            OfferValidationError: Bad target status or blank resolution.
            NotAuthorizedError: The arbiter is a party to the offer.
            InvalidStateTransitionError: The offer is not DISPUTED.
        """
        try:
            event_name = resolution_event(new_status)
        except ValueError as err:
            raise OfferValidationError.for_field("status", str(err)) from err
        target = OfferStatus(new_status)
        resolution = check_text(resolution, "resolution")

        async for attempt in transition_retrying(self._max_attempts):
            with attempt:
                offer = await load_offer(self._offer_repo, offer_id)
                if party_of(offer, arbiter_id) is not None:
                    raise NotAuthorizedError(
                        str(offer.id),
                        arbiter_id,
                        OfferAction.RESOLVE.value,
                        "An arbiter cannot resolve a dispute on their own offer",
                    )
                old_status = OfferStatus(offer.status)
                if old_status is not OfferStatus.DISPUTED:
                    raise InvalidStateTransitionError(old_status.value, OfferAction.RESOLVE.value)
                fire(old_status, event_name, OfferAction.RESOLVE)

                offer = await apply_guarded(
                    self._offer_repo,
                    offer,
                    old_status,
                    OfferAction.RESOLVE,
                    status=target.value,
                    dispute_resolved_by=arbiter_id,
                    dispute_resolution=resolution,
                )

        await self._event_repo.record(
            offer_id=offer.id,
            event_type=_RESOLUTION_EVENT_TYPES[target],
            old_status=OfferStatus.DISPUTED,
            new_status=target,
            actor=arbiter_id,
            metadata={"resolution": resolution},
        )

        logger.info(
            "arbiter.dispute_resolved",
            offer_id=str(offer_id),
            arbiter=arbiter_id,
            status=target.value,
        )
        return offer
