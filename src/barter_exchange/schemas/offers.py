"""Pydantic schemas for the Barter API.

These schemas define the request/response shapes for the REST API and
MCP tools. They are separate from the ORM models and from the domain
projections; responses are built from either with ``from_attributes``.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from barter_exchange.domain.enums import CashGapDirection
from barter_exchange.domain.validation import ItemSpec

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class OfferItemRequest(BaseModel):
    """One line of an offer: a product, how many, and which side gives it."""

    product_id: str = Field(..., min_length=1, max_length=64)
    quantity: int = Field(default=1, ge=1, description="Units of the product")
    is_offered: bool = Field(
        ...,
        description="True if the initiator gives this item, False if it is requested",
    )

    def to_spec(self) -> ItemSpec:
        return ItemSpec(
            product_id=self.product_id,
            quantity=self.quantity,
            is_offered=self.is_offered,
        )


class CreateOfferRequest(BaseModel):
    """Request body for opening a new offer (created in DRAFT)."""

    recipient_vendor_id: str = Field(..., min_length=1, max_length=64)
    items: list[OfferItemRequest] = Field(
        ...,
        description="Offered and requested lines; ownership is checked per side",
    )
    cash_gap_cents: int = Field(
        default=0,
        ge=0,
        description="Cash added to balance the trade, in cents",
    )
    cash_gap_direction: CashGapDirection | None = Field(
        default=None,
        description="Who pays the cash gap; required when cash_gap_cents > 0",
    )
    message: str | None = Field(default=None, max_length=2000)
    idempotency_key: str | None = Field(
        default=None,
        max_length=128,
        description="Optional idempotency key to prevent duplicate offer creation",
    )

    def item_specs(self) -> list[ItemSpec]:
        return [item.to_spec() for item in self.items]


class UpdateOfferRequest(BaseModel):
    """Partial edit of a DRAFT offer. Omitted fields are left unchanged."""

    items: list[OfferItemRequest] | None = Field(
        default=None,
        description="If present, replaces every line of the offer",
    )
    cash_gap_cents: int | None = Field(default=None, ge=0)
    cash_gap_direction: CashGapDirection | None = None
    message: str | None = Field(default=None, max_length=2000)

    def item_specs(self) -> list[ItemSpec] | None:
        if self.items is None:
            return None
        return [item.to_spec() for item in self.items]


class CounterOfferRequest(BaseModel):
    """New terms from the recipient. ``is_offered`` lines are the counter-party's own."""

    items: list[OfferItemRequest]
    cash_gap_cents: int = Field(default=0, ge=0)
    cash_gap_direction: CashGapDirection | None = None
    message: str | None = Field(default=None, max_length=2000)
    idempotency_key: str | None = Field(default=None, max_length=128)

    def item_specs(self) -> list[ItemSpec]:
        return [item.to_spec() for item in self.items]


class RaiseDisputeRequest(BaseModel):
    """Request body for escalating an accepted offer to the arbiter."""

    reason: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="What went wrong with the exchange",
        examples=["goods not received"],
    )


class ResolveDisputeRequest(BaseModel):
    """Arbiter decision on a DISPUTED offer."""

    status: str = Field(
        ...,
        description="COMPLETED or CANCELLED",
        examples=["CANCELLED"],
    )
    resolution: str = Field(..., min_length=1, max_length=5000)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class VendorViewResponse(BaseModel):
    """Public identity of a vendor."""

    model_config = ConfigDict(from_attributes=True)

    vendor_id: str
    business_name: str | None = None


class OfferItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    product_name: str
    quantity: int
    value_cents: int
    total_cents: int


class LineageLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    offer_id: str
    status: str
    created_at: datetime | None = None


class OfferDetailResponse(BaseModel):
    """An offer as seen by one of its parties (or by the arbiter)."""

    model_config = ConfigDict(from_attributes=True)

    offer_id: str
    status: str
    is_initiator: bool
    initiator: VendorViewResponse
    recipient: VendorViewResponse
    counterparty: VendorViewResponse | None
    offered_items: list[OfferItemResponse]
    requested_items: list[OfferItemResponse]
    offered_total_cents: int
    requested_total_cents: int
    cash_gap_cents: int
    cash_gap_direction: str | None
    message: str | None
    counter_of_message: str | None
    fulfilled_by_initiator: bool
    fulfilled_by_recipient: bool
    dispute_reason: str | None
    dispute_resolved_by: str | None
    dispute_resolution: str | None
    parent_offer: LineageLinkResponse | None
    counter_offers: list[LineageLinkResponse]
    created_at: datetime | None
    updated_at: datetime | None


class OfferSummaryResponse(BaseModel):
    """List row of the viewing vendor's offers."""

    model_config = ConfigDict(from_attributes=True)

    offer_id: str
    status: str
    is_initiator: bool
    counterparty: VendorViewResponse
    item_count: int
    offered_count: int
    requested_count: int
    offered_total_cents: int
    requested_total_cents: int
    cash_gap_cents: int
    cash_gap_direction: str | None
    created_at: datetime
    updated_at: datetime


class OfferStatusResponse(BaseModel):
    """Lightweight status check response."""

    offer_id: str
    status: str
    is_initiator: bool
    fulfilled_by_initiator: bool
    fulfilled_by_recipient: bool
    allowed_events: list[str] = Field(
        description="State machine events that can fire from the current status"
    )


class OfferEventResponse(BaseModel):
    """Response schema for an audit event."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    offer_id: uuid.UUID
    event_type: str
    old_status: str | None
    new_status: str
    actor: str
    metadata: dict | None = Field(default=None, validation_alias="metadata_json")
    created_at: datetime


class DisputeCaseResponse(BaseModel):
    """Arbiter inspection view: the offer plus its audit trail."""

    model_config = ConfigDict(from_attributes=True)

    offer: OfferDetailResponse
    events: list[OfferEventResponse]


class VendorResponse(BaseModel):
    """A vendor the caller can trade with."""

    model_config = ConfigDict(from_attributes=True)

    vendor_id: str
    business_name: str
    status: str


class ProductResponse(BaseModel):
    """A tradeable product with its current unit price."""

    model_config = ConfigDict(from_attributes=True)

    product_id: str
    owner_vendor_id: str
    name: str
    unit_price_cents: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
    redis: str = "unknown"
