"""Dispute arbiter REST API routes.

A separate router with its own identity header (X-Admin-ID). Vendor
identity is never consulted here, and the vendor routes cannot reach the
arbiter service.

Routes:
    GET    /api/v1/arbiter/offers/{id}          — Inspect any offer
    POST   /api/v1/arbiter/offers/{id}/resolve  — Resolve a DISPUTED offer
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from barter_exchange.api.deps import get_admin_id, get_dispute_arbiter
from barter_exchange.schemas.offers import DisputeCaseResponse, ResolveDisputeRequest
from barter_exchange.services.arbiter_service import DisputeArbiter

router = APIRouter(prefix="/api/v1/arbiter", tags=["Arbiter"])


@router.get(
    "/offers/{offer_id}",
    response_model=DisputeCaseResponse,
    summary="Inspect an offer with its lineage and audit trail",
)
async def inspect_offer(
    offer_id: uuid.UUID,
    admin_id: str = Depends(get_admin_id),
    arbiter: DisputeArbiter = Depends(get_dispute_arbiter),
) -> DisputeCaseResponse:
    return DisputeCaseResponse.model_validate(await arbiter.inspect_offer(offer_id))


@router.post(
    "/offers/{offer_id}/resolve",
    response_model=DisputeCaseResponse,
    summary="Resolve a disputed offer as COMPLETED or CANCELLED",
)
async def resolve_dispute(
    offer_id: uuid.UUID,
    request: ResolveDisputeRequest,
    admin_id: str = Depends(get_admin_id),
    arbiter: DisputeArbiter = Depends(get_dispute_arbiter),
) -> DisputeCaseResponse:
    """Record who resolved the dispute and why; the offer becomes terminal."""
    await arbiter.resolve_dispute(
        offer_id,
        arbiter_id=admin_id,
        new_status=request.status,
        resolution=request.resolution,
    )
    return DisputeCaseResponse.model_validate(await arbiter.inspect_offer(offer_id))
