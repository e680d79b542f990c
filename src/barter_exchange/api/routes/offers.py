"""Vendor-facing barter REST API routes.

These endpoints are the HTTP interface for the two trading parties. The
MCP tools in mcp_server/tools.py call the same service layer, ensuring
consistency. Every offer in a response is projected from the caller's side.

Routes:
    GET    /api/v1/barter/vendors                 — Vendors you can trade with
    GET    /api/v1/barter/vendors/{id}/products   — A vendor's tradeable products
    POST   /api/v1/barter/offers                  — Create an offer (DRAFT)
    GET    /api/v1/barter/offers                  — List your offers
    GET    /api/v1/barter/offers/{id}             — Offer detail with lineage
    PATCH  /api/v1/barter/offers/{id}             — Edit a DRAFT offer
    GET    /api/v1/barter/offers/{id}/status      — Status + allowed events
    GET    /api/v1/barter/offers/{id}/events      — Audit trail
    POST   /api/v1/barter/offers/{id}/send        — Initiator sends
    POST   /api/v1/barter/offers/{id}/cancel      — Initiator cancels
    POST   /api/v1/barter/offers/{id}/accept      — Recipient accepts
    POST   /api/v1/barter/offers/{id}/reject      — Recipient rejects
    POST   /api/v1/barter/offers/{id}/counter     — Recipient counters
    POST   /api/v1/barter/offers/{id}/fulfill     — Either party fulfills
    POST   /api/v1/barter/offers/{id}/dispute     — Either party disputes
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from barter_exchange.api.deps import get_db_session, get_offer_service, get_vendor_id
from barter_exchange.domain.enums import OfferDirection, OfferStatus
from barter_exchange.infrastructure.redis_client import idempotency_guard
from barter_exchange.logging_config import get_logger
from barter_exchange.schemas.offers import (
    CounterOfferRequest,
    CreateOfferRequest,
    OfferDetailResponse,
    OfferEventResponse,
    OfferStatusResponse,
    OfferSummaryResponse,
    ProductResponse,
    RaiseDisputeRequest,
    UpdateOfferRequest,
    VendorResponse,
)
from barter_exchange.services.offer_service import UNSET, BarterOfferService

router = APIRouter(prefix="/api/v1/barter", tags=["Barter"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Browsing
# ---------------------------------------------------------------------------


@router.get(
    "/vendors",
    response_model=list[VendorResponse],
    summary="List vendors you can trade with",
)
async def list_counterparties(
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> list[VendorResponse]:
    records = await svc.list_counterparties(vendor_id)
    return [VendorResponse.model_validate(r) for r in records]


@router.get(
    "/vendors/{target_vendor_id}/products",
    response_model=list[ProductResponse],
    summary="List a vendor's tradeable products",
)
async def list_vendor_products(
    target_vendor_id: str,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> list[ProductResponse]:
    quotes = await svc.list_vendor_products(target_vendor_id)
    return [ProductResponse.model_validate(q) for q in quotes]


# ---------------------------------------------------------------------------
# Create / list / read
# ---------------------------------------------------------------------------


@router.post(
    "/offers",
    response_model=OfferDetailResponse,
    status_code=201,
    summary="Create a barter offer",
)
async def create_offer(
    request: CreateOfferRequest,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
    session: AsyncSession = Depends(get_db_session),
) -> OfferDetailResponse:
    """Create a new offer in DRAFT. Item values are frozen now."""
    async with idempotency_guard(f"create:{vendor_id}", request.idempotency_key):
        offer = await svc.create_offer(
            initiator_vendor_id=vendor_id,
            recipient_vendor_id=request.recipient_vendor_id,
            items=request.item_specs(),
            cash_gap_cents=request.cash_gap_cents,
            cash_gap_direction=request.cash_gap_direction,
            message=request.message,
        )
        await session.commit()
    return OfferDetailResponse.model_validate(await svc.project(offer, vendor_id))


@router.get(
    "/offers",
    response_model=list[OfferSummaryResponse],
    summary="List your offers",
)
async def list_offers(
    status: OfferStatus | None = Query(default=None),
    direction: OfferDirection | None = Query(
        default=None,
        description="sent = offers you initiated, received = offers sent to you",
    ),
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> list[OfferSummaryResponse]:
    summaries = await svc.list_offers(vendor_id, status=status, direction=direction)
    return [OfferSummaryResponse.model_validate(s) for s in summaries]


@router.get(
    "/offers/{offer_id}",
    response_model=OfferDetailResponse,
    summary="Get offer details",
)
async def get_offer(
    offer_id: uuid.UUID,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> OfferDetailResponse:
    return OfferDetailResponse.model_validate(await svc.get_offer_detail(offer_id, vendor_id))


@router.get(
    "/offers/{offer_id}/status",
    response_model=OfferStatusResponse,
    summary="Get offer status and allowed events",
)
async def get_offer_status(
    offer_id: uuid.UUID,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> OfferStatusResponse:
    return OfferStatusResponse(**await svc.get_status(offer_id, vendor_id))


@router.get(
    "/offers/{offer_id}/events",
    response_model=list[OfferEventResponse],
    summary="Get the offer's audit trail",
)
async def get_offer_events(
    offer_id: uuid.UUID,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> list[OfferEventResponse]:
    events = await svc.get_events(offer_id, vendor_id)
    return [OfferEventResponse.model_validate(e) for e in events]


# ---------------------------------------------------------------------------
# Initiator actions
# ---------------------------------------------------------------------------


@router.patch(
    "/offers/{offer_id}",
    response_model=OfferDetailResponse,
    summary="Edit a DRAFT offer",
)
async def update_offer(
    offer_id: uuid.UUID,
    request: UpdateOfferRequest,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> OfferDetailResponse:
    """Only fields present in the body are changed; null clears a field."""
    sent = request.model_fields_set
    offer = await svc.update_offer(
        offer_id,
        vendor_id,
        items=request.item_specs(),
        cash_gap_cents=request.cash_gap_cents,
        cash_gap_direction=(
            request.cash_gap_direction if "cash_gap_direction" in sent else UNSET
        ),
        message=request.message if "message" in sent else UNSET,
    )
    return OfferDetailResponse.model_validate(await svc.project(offer, vendor_id))


@router.post(
    "/offers/{offer_id}/send",
    response_model=OfferDetailResponse,
    summary="Send a DRAFT offer to the recipient",
)
async def send_offer(
    offer_id: uuid.UUID,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> OfferDetailResponse:
    offer = await svc.send_offer(offer_id, vendor_id)
    return OfferDetailResponse.model_validate(await svc.project(offer, vendor_id))


@router.post(
    "/offers/{offer_id}/cancel",
    response_model=OfferDetailResponse,
    summary="Cancel a DRAFT or SENT offer",
)
async def cancel_offer(
    offer_id: uuid.UUID,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> OfferDetailResponse:
    offer = await svc.cancel_offer(offer_id, vendor_id)
    return OfferDetailResponse.model_validate(await svc.project(offer, vendor_id))


# ---------------------------------------------------------------------------
# Recipient responses
# ---------------------------------------------------------------------------


@router.post(
    "/offers/{offer_id}/accept",
    response_model=OfferDetailResponse,
    summary="Accept an offer",
)
async def accept_offer(
    offer_id: uuid.UUID,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> OfferDetailResponse:
    offer = await svc.accept_offer(offer_id, vendor_id)
    return OfferDetailResponse.model_validate(await svc.project(offer, vendor_id))


@router.post(
    "/offers/{offer_id}/reject",
    response_model=OfferDetailResponse,
    summary="Reject an offer",
)
async def reject_offer(
    offer_id: uuid.UUID,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> OfferDetailResponse:
    offer = await svc.reject_offer(offer_id, vendor_id)
    return OfferDetailResponse.model_validate(await svc.project(offer, vendor_id))


@router.post(
    "/offers/{offer_id}/counter",
    response_model=OfferDetailResponse,
    status_code=201,
    summary="Counter an offer with new terms",
)
async def counter_offer(
    offer_id: uuid.UUID,
    request: CounterOfferRequest,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
    session: AsyncSession = Depends(get_db_session),
) -> OfferDetailResponse:
    """Returns the new counter-offer; the original moves to COUNTERED."""
    async with idempotency_guard(f"counter:{vendor_id}:{offer_id}", request.idempotency_key):
        counter = await svc.counter_offer(
            offer_id,
            vendor_id,
            items=request.item_specs(),
            cash_gap_cents=request.cash_gap_cents,
            cash_gap_direction=request.cash_gap_direction,
            message=request.message,
        )
        await session.commit()
    return OfferDetailResponse.model_validate(await svc.project(counter, vendor_id))


# ---------------------------------------------------------------------------
# Fulfillment and disputes
# ---------------------------------------------------------------------------


@router.post(
    "/offers/{offer_id}/fulfill",
    response_model=OfferDetailResponse,
    summary="Mark your side of the trade as fulfilled",
)
async def fulfill_offer(
    offer_id: uuid.UUID,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> OfferDetailResponse:
    offer = await svc.fulfill_offer(offer_id, vendor_id)
    return OfferDetailResponse.model_validate(await svc.project(offer, vendor_id))


@router.post(
    "/offers/{offer_id}/dispute",
    response_model=OfferDetailResponse,
    summary="Escalate an accepted offer to the arbiter",
)
async def raise_dispute(
    offer_id: uuid.UUID,
    request: RaiseDisputeRequest,
    vendor_id: str = Depends(get_vendor_id),
    svc: BarterOfferService = Depends(get_offer_service),
) -> OfferDetailResponse:
    offer = await svc.raise_dispute(offer_id, vendor_id, reason=request.reason)
    return OfferDetailResponse.model_validate(await svc.project(offer, vendor_id))
