"""Offer Projection — vendor-relative read models.

Turns a stored offer into what a dashboard shows: the offered / requested
split, per-line subtotals, bundle totals, whether the viewer initiated it,
and who the counterparty is. Totals are always computed from the frozen
``value_cents`` on each line, never from live catalog prices.

Pure functions; the offer is only read.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from barter_exchange.domain.collaborators import VendorRecord


class ItemRow(Protocol):
    id: object
    product_id: str
    product_name: str
    quantity: int
    value_cents: int
    is_offered: bool


class OfferRow(Protocol):
    id: object
    status: str
    initiator_vendor_id: str
    recipient_vendor_id: str
    cash_gap_cents: int
    cash_gap_direction: str | None
    message: str | None
    counter_of_message: str | None
    parent_offer_id: object | None
    fulfilled_by_initiator: bool
    fulfilled_by_recipient: bool
    dispute_reason: str | None
    dispute_resolved_by: str | None
    dispute_resolution: str | None
    created_at: datetime
    updated_at: datetime
    items: Sequence[ItemRow]


@dataclass(frozen=True)
class VendorView:
    """Public identity of a vendor."""

    vendor_id: str
    business_name: str | None = None


@dataclass(frozen=True)
class ProjectedItem:
    id: str
    product_id: str
    product_name: str
    quantity: int
    value_cents: int
    total_cents: int


@dataclass(frozen=True)
class LineageLink:
    """A neighbouring offer in the counter chain."""

    offer_id: str
    status: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class OfferSummary:
    """List-row view of an offer for the viewing vendor."""

    offer_id: str
    status: str
    is_initiator: bool
    counterparty: VendorView
    item_count: int
    offered_count: int
    requested_count: int
    offered_total_cents: int
    requested_total_cents: int
    cash_gap_cents: int
    cash_gap_direction: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class OfferProjection:
    """Full detail view of an offer for the viewing vendor (or the arbiter)."""

    offer_id: str
    status: str
    is_initiator: bool
    initiator: VendorView
    recipient: VendorView
    counterparty: VendorView | None
    offered_items: list[ProjectedItem]
    requested_items: list[ProjectedItem]
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
    parent_offer: LineageLink | None
    counter_offers: list[LineageLink] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


def bundle_total(items: Iterable[ItemRow]) -> int:
    """sum(value_cents * quantity) over a bundle."""
    return sum(item.value_cents * item.quantity for item in items)


def split_bundles(items: Iterable[ItemRow]) -> tuple[list[ItemRow], list[ItemRow]]:
    """Return (offered, requested) preserving line order."""
    offered: list[ItemRow] = []
    requested: list[ItemRow] = []
    for item in items:
        (offered if item.is_offered else requested).append(item)
    return offered, requested


def vendor_view(vendor_id: str, vendors: Mapping[str, VendorRecord]) -> VendorView:
    record = vendors.get(vendor_id)
    return VendorView(
        vendor_id=vendor_id,
        business_name=record.business_name if record else None,
    )


def _project_item(item: ItemRow) -> ProjectedItem:
    return ProjectedItem(
        id=str(item.id),
        product_id=item.product_id,
        product_name=item.product_name,
        quantity=item.quantity,
        value_cents=item.value_cents,
        total_cents=item.value_cents * item.quantity,
    )


def summarize_offer(
    offer: OfferRow,
    viewing_vendor_id: str,
    vendors: Mapping[str, VendorRecord],
) -> OfferSummary:
    """Project an offer into a list row from ``viewing_vendor_id``'s side."""
    is_initiator = offer.initiator_vendor_id == viewing_vendor_id
    other_id = offer.recipient_vendor_id if is_initiator else offer.initiator_vendor_id
    offered, requested = split_bundles(offer.items)
    return OfferSummary(
        offer_id=str(offer.id),
        status=str(offer.status),
        is_initiator=is_initiator,
        counterparty=vendor_view(other_id, vendors),
        item_count=len(offer.items),
        offered_count=len(offered),
        requested_count=len(requested),
        offered_total_cents=bundle_total(offered),
        requested_total_cents=bundle_total(requested),
        cash_gap_cents=offer.cash_gap_cents,
        cash_gap_direction=offer.cash_gap_direction,
        created_at=offer.created_at,
        updated_at=offer.updated_at,
    )


def project_offer(
    offer: OfferRow,
    viewing_vendor_id: str | None,
    vendors: Mapping[str, VendorRecord],
    parent: LineageLink | None = None,
    children: Sequence[LineageLink] = (),
) -> OfferProjection:
    """Project an offer into the detail view.

    ``viewing_vendor_id`` is None for the arbiter, who has no side: the
    projection then reports ``is_initiator=False`` and no counterparty.
    """
    is_initiator = viewing_vendor_id is not None and (
        offer.initiator_vendor_id == viewing_vendor_id
    )
    if viewing_vendor_id is None:
        counterparty = None
    elif is_initiator:
        counterparty = vendor_view(offer.recipient_vendor_id, vendors)
    else:
        counterparty = vendor_view(offer.initiator_vendor_id, vendors)

    offered, requested = split_bundles(offer.items)
    return OfferProjection(
        offer_id=str(offer.id),
        status=str(offer.status),
        is_initiator=is_initiator,
        initiator=vendor_view(offer.initiator_vendor_id, vendors),
        recipient=vendor_view(offer.recipient_vendor_id, vendors),
        counterparty=counterparty,
        offered_items=[_project_item(i) for i in offered],
        requested_items=[_project_item(i) for i in requested],
        offered_total_cents=bundle_total(offered),
        requested_total_cents=bundle_total(requested),
        cash_gap_cents=offer.cash_gap_cents,
        cash_gap_direction=offer.cash_gap_direction,
        message=offer.message,
        counter_of_message=offer.counter_of_message,
        fulfilled_by_initiator=offer.fulfilled_by_initiator,
        fulfilled_by_recipient=offer.fulfilled_by_recipient,
        dispute_reason=offer.dispute_reason,
        dispute_resolved_by=offer.dispute_resolved_by,
        dispute_resolution=offer.dispute_resolution,
        parent_offer=parent,
        counter_offers=list(children),
        created_at=offer.created_at,
        updated_at=offer.updated_at,
    )
