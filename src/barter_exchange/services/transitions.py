"""Compare-and-transition helpers shared by the party and arbiter services.

Every status change is written as a guarded UPDATE (see
OfferRepository.compare_and_set). If the guard misses, another request
changed the offer first: ``apply_guarded`` raises StaleOfferError and the
caller's ``transition_retrying`` loop re-reads the row and re-decides.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from barter_exchange.domain.exceptions import OfferNotFoundError, StaleOfferError
from barter_exchange.domain.projection import LineageLink
from barter_exchange.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from barter_exchange.domain.enums import OfferAction, OfferStatus
    from barter_exchange.infrastructure.database.orm_models import BarterOffer
    from barter_exchange.infrastructure.database.repositories import OfferRepository

logger = get_logger(__name__)


def transition_retrying(max_attempts: int) -> AsyncRetrying:
    """Retry a read-decide-write step while it keeps losing races.

    Only StaleOfferError is retried; domain errors from the re-decision
    (e.g. the offer is no longer SENT) propagate immediately.
    """
    return AsyncRetrying(
        retry=retry_if_exception_type(StaleOfferError),
        stop=stop_after_attempt(max_attempts),
        reraise=True,
    )


async def load_offer(
    repo: OfferRepository,
    offer_id: uuid.UUID,
    refresh: bool = True,
) -> BarterOffer:
    offer = await repo.get_by_id(offer_id, refresh=refresh)
    if offer is None:
        raise OfferNotFoundError(str(offer_id))
    return offer


async def apply_guarded(
    repo: OfferRepository,
    offer: BarterOffer,
    expected_status: OfferStatus,
    action: OfferAction,
    expected_flags: tuple[bool, bool] | None = None,
    **values: object,
) -> BarterOffer:
    """Write ``values`` if the offer is still as observed, then reload it."""
    applied = await repo.compare_and_set(
        offer.id,
        expected_status,
        expected_flags=expected_flags,
        **values,
    )
    if not applied:
        logger.info(
            "offer.transition_conflict",
            offer_id=str(offer.id),
            action=action.value,
            expected_status=expected_status.value,
        )
        raise StaleOfferError(expected_status.value, action.value)
    return await load_offer(repo, offer.id, refresh=True)


async def load_lineage(
    repo: OfferRepository,
    offer: BarterOffer,
) -> tuple[LineageLink | None, list[LineageLink]]:
    """The offer this one counters, and the counters made against it."""
    parent = None
    if offer.parent_offer_id is not None:
        parent_row = await repo.get_by_id(offer.parent_offer_id)
        if parent_row is not None:
            parent = LineageLink(
                offer_id=str(parent_row.id),
                status=parent_row.status,
                created_at=parent_row.created_at,
            )

    children = [
        LineageLink(offer_id=str(child.id), status=child.status, created_at=child.created_at)
        for child in await repo.list_children(offer.id)
    ]
    return parent, children
