"""Pydantic API schemas."""

from barter_exchange.schemas.offers import (
    CounterOfferRequest,
    CreateOfferRequest,
    DisputeCaseResponse,
    HealthResponse,
    OfferDetailResponse,
    OfferEventResponse,
    OfferItemRequest,
    OfferStatusResponse,
    OfferSummaryResponse,
    ProductResponse,
    RaiseDisputeRequest,
    ResolveDisputeRequest,
    UpdateOfferRequest,
    VendorResponse,
)

__all__ = [
    "CounterOfferRequest",
    "CreateOfferRequest",
    "DisputeCaseResponse",
    "HealthResponse",
    "OfferDetailResponse",
    "OfferEventResponse",
    "OfferItemRequest",
    "OfferStatusResponse",
    "OfferSummaryResponse",
    "ProductResponse",
    "RaiseDisputeRequest",
    "ResolveDisputeRequest",
    "UpdateOfferRequest",
    "VendorResponse",
]
