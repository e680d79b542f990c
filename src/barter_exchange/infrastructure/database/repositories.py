"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import or_, select, update

from barter_exchange.domain.enums import OfferDirection
from barter_exchange.infrastructure.database.orm_models import (
    BarterItem,
    BarterOffer,
    OfferEvent,
)

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from barter_exchange.domain.enums import EventType, OfferStatus
    from barter_exchange.domain.validation import PricedItem


def build_items(priced_items: Sequence[PricedItem]) -> list[BarterItem]:
    """Turn priced lines into ORM rows, keeping the submitted order."""
    return [
        BarterItem(
            product_id=item.product_id,
            quantity=item.quantity,
            value_cents=item.value_cents,
            product_name=item.product_name,
            is_offered=item.is_offered,
            position=position,
        )
        for position, item in enumerate(priced_items)
    ]


class OfferRepository:
    """Data access for barter offers and their items."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        offer: BarterOffer,
        priced_items: Sequence[PricedItem] = (),
    ) -> BarterOffer:
        """Insert a new offer together with its item lines."""
        offer.items = build_items(priced_items)
        self._session.add(offer)
        await self._session.flush()
        return offer

    async def get_by_id(
        self,
        offer_id: uuid.UUID,
        refresh: bool = False,
    ) -> BarterOffer | None:
        """Fetch an offer by its UUID.

        ``refresh=True`` overwrites any copy already in the identity map,
        which is needed after a Core UPDATE or when re-deciding a transition.
        """
        stmt = select(BarterOffer).where(BarterOffer.id == offer_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_vendor(
        self,
        vendor_id: str,
        status: OfferStatus | None = None,
        direction: OfferDirection | None = None,
    ) -> list[BarterOffer]:
        """Offers the vendor is a party to, most recently updated first."""
        if direction is OfferDirection.SENT:
            party_filter = BarterOffer.initiator_vendor_id == vendor_id
        elif direction is OfferDirection.RECEIVED:
            party_filter = BarterOffer.recipient_vendor_id == vendor_id
        else:
            party_filter = or_(
                BarterOffer.initiator_vendor_id == vendor_id,
                BarterOffer.recipient_vendor_id == vendor_id,
            )

        stmt = select(BarterOffer).where(party_filter)
        if status is not None:
            stmt = stmt.where(BarterOffer.status == status.value)
        stmt = stmt.order_by(BarterOffer.updated_at.desc(), BarterOffer.created_at.desc())

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_children(self, parent_offer_id: uuid.UUID) -> list[BarterOffer]:
        """Counter-offers made against ``parent_offer_id``, oldest first."""
        result = await self._session.execute(
            select(BarterOffer)
            .where(BarterOffer.parent_offer_id == parent_offer_id)
            .order_by(BarterOffer.created_at.asc())
        )
        return list(result.scalars().all())

    async def replace_items(
        self,
        offer: BarterOffer,
        priced_items: Sequence[PricedItem],
    ) -> BarterOffer:
        """Delete every line of a DRAFT offer and insert the new set."""
        offer.items.clear()
        await self._session.flush()
        offer.items.extend(build_items(priced_items))
        await self._session.flush()
        return offer

    async def compare_and_set(
        self,
        offer_id: uuid.UUID,
        expected_status: OfferStatus,
        expected_flags: tuple[bool, bool] | None = None,
        **values: object,
    ) -> bool:
        """Apply ``values`` only if the row still looks the way we saw it.

        The UPDATE is guarded by the observed status and, when given, the
        observed ``(fulfilled_by_initiator, fulfilled_by_recipient)`` pair.
        Returns False when no row matched, i.e. a concurrent transition won.
        """
        stmt = update(BarterOffer).where(
            BarterOffer.id == offer_id,
            BarterOffer.status == expected_status.value,
        )
        if expected_flags is not None:
            by_initiator, by_recipient = expected_flags
            stmt = stmt.where(
                BarterOffer.fulfilled_by_initiator == by_initiator,
                BarterOffer.fulfilled_by_recipient == by_recipient,
            )
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        result = await self._session.execute(stmt)
        return result.rowcount == 1


class EventRepository:
    """Data access for the append-only audit event log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        offer_id: uuid.UUID,
        event_type: EventType,
        old_status: OfferStatus | None,
        new_status: OfferStatus,
        actor: str,
        metadata: dict | None = None,
    ) -> OfferEvent:
        """Append a new audit event. This is the ONLY write operation allowed."""
        evt = OfferEvent(
            offer_id=offer_id,
            event_type=event_type.value,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value,
            actor=actor,
            metadata_json=metadata,
        )
        self._session.add(evt)
        await self._session.flush()
        return evt

    async def get_by_offer(self, offer_id: uuid.UUID) -> list[OfferEvent]:
        """Fetch all events for an offer in chronological order."""
        result = await self._session.execute(
            select(OfferEvent)
            .where(OfferEvent.offer_id == offer_id)
            .order_by(OfferEvent.created_at.asc())
        )
        return list(result.scalars().all())
