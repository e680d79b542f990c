"""Offer Validator — structural, ownership and actor checks.

Every mutating action runs these checks before the state machine is asked
for a transition. All functions are pure: they take what was loaded (the
offer row, catalog quotes, directory records) and either return or raise a
domain error. Nothing here touches storage.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from barter_exchange.domain.collaborators import ProductQuote, VendorRecord
from barter_exchange.domain.enums import CashGapDirection, OfferAction, Party
from barter_exchange.domain.exceptions import (
    NotAuthorizedError,
    OfferValidationError,
    VendorNotEligibleError,
)


@dataclass(frozen=True)
class ItemSpec:
    """One requested offer line, as submitted by the acting vendor."""

    product_id: str
    quantity: int
    is_offered: bool


@dataclass(frozen=True)
class PricedItem:
    """An offer line with its unit value frozen from the Price Oracle."""

    product_id: str
    quantity: int
    is_offered: bool
    value_cents: int
    product_name: str = ""

    @property
    def total_cents(self) -> int:
        return self.value_cents * self.quantity


class OfferParties(Protocol):
    id: object
    initiator_vendor_id: str
    recipient_vendor_id: str


# ---------------------------------------------------------------------------
# Structural checks
# ---------------------------------------------------------------------------


def check_item_specs(items: Sequence[ItemSpec], max_items: int) -> None:
    """Reject empty, oversized, non-positive or duplicated item sets."""
    if not items:
        raise OfferValidationError.for_field("items", "An offer needs at least one item")
    if len(items) > max_items:
        raise OfferValidationError.for_field(
            "items", f"An offer can hold at most {max_items} items"
        )

    errors: list[dict] = []
    seen: set[tuple[str, bool]] = set()
    for index, item in enumerate(items):
        if not item.product_id:
            errors.append(
                {"field": f"items.{index}.product_id", "message": "Product ID is required"}
            )
        if item.quantity < 1:
            errors.append(
                {"field": f"items.{index}.quantity", "message": "Quantity must be at least 1"}
            )
        key = (item.product_id, item.is_offered)
        if key in seen:
            errors.append(
                {
                    "field": f"items.{index}.product_id",
                    "message": f"Product {item.product_id} is listed twice on the same side",
                }
            )
        seen.add(key)

    if errors:
        raise OfferValidationError("Invalid offer items", errors=errors)


def normalize_cash_gap(
    cash_gap_cents: int,
    cash_gap_direction: CashGapDirection | str | None,
) -> tuple[int, CashGapDirection | None]:
    """Return a (cents, direction) pair where direction is set iff cents > 0."""
    if cash_gap_cents < 0:
        raise OfferValidationError.for_field(
            "cash_gap_cents", "Cash gap cannot be negative"
        )
    if cash_gap_cents == 0:
        return 0, None
    if cash_gap_direction is None:
        raise OfferValidationError.for_field(
            "cash_gap_direction", "A direction is required when the cash gap is positive"
        )
    return cash_gap_cents, CashGapDirection(cash_gap_direction)


def check_text(value: str | None, field: str) -> str:
    """Require a non-blank free-text value (dispute reason, resolution)."""
    if value is None or not value.strip():
        label = field.replace("_", " ").capitalize()
        raise OfferValidationError.for_field(field, f"{label} is required")
    return value.strip()


def check_sendable(item_count: int) -> None:
    if item_count == 0:
        raise OfferValidationError.for_field("items", "Cannot send an empty offer")


# ---------------------------------------------------------------------------
# Counterparty and ownership
# ---------------------------------------------------------------------------


def check_counterparty(
    initiator_vendor_id: str,
    recipient_vendor_id: str,
    recipient: VendorRecord | None,
) -> None:
    """Recipient must be someone else, exist, be APPROVED and active."""
    if initiator_vendor_id == recipient_vendor_id:
        raise OfferValidationError.for_field(
            "recipient_vendor_id", "Cannot create offer to yourself"
        )
    if recipient is None or not recipient.is_eligible_counterparty:
        raise VendorNotEligibleError(recipient_vendor_id)


def check_item_ownership(
    items: Sequence[ItemSpec],
    quotes: Mapping[str, ProductQuote],
    initiator_vendor_id: str,
    recipient_vendor_id: str,
) -> None:
    """Offered lines must be the initiator's products, requested the recipient's.

    ``quotes`` must already contain every referenced product (the Value
    Snapshot Resolver rejects unknown ones first). One bad line rejects the
    whole item set.
    """
    errors: list[dict] = []
    for index, item in enumerate(items):
        owner = quotes[item.product_id].owner_vendor_id
        if item.is_offered and owner != initiator_vendor_id:
            errors.append(
                {
                    "field": f"items.{index}.product_id",
                    "message": "You can only offer your own products",
                }
            )
        elif not item.is_offered and owner != recipient_vendor_id:
            errors.append(
                {
                    "field": f"items.{index}.product_id",
                    "message": "You can only request products from the recipient vendor",
                }
            )
    if errors:
        raise OfferValidationError("Item ownership check failed", errors=errors)


# ---------------------------------------------------------------------------
# Actor authorization
# ---------------------------------------------------------------------------

_INITIATOR_ACTIONS = frozenset({OfferAction.UPDATE, OfferAction.SEND, OfferAction.CANCEL})
_RECIPIENT_ACTIONS = frozenset({OfferAction.ACCEPT, OfferAction.REJECT, OfferAction.COUNTER})
_EITHER_PARTY_ACTIONS = frozenset({OfferAction.FULFILL, OfferAction.DISPUTE})


def party_of(offer: OfferParties, vendor_id: str) -> Party | None:
    """Which side of ``offer`` the vendor is on, or None for outsiders."""
    if vendor_id == offer.initiator_vendor_id:
        return Party.INITIATOR
    if vendor_id == offer.recipient_vendor_id:
        return Party.RECIPIENT
    return None


def authorize(offer: OfferParties, vendor_id: str, action: OfferAction) -> Party:
    """Return the acting party, or raise NotAuthorizedError.

    Resolution is not a party action; it belongs to the DisputeArbiter.
    """
    party = party_of(offer, vendor_id)
    offer_id = str(offer.id)

    if party is None:
        raise NotAuthorizedError(
            offer_id, vendor_id, action.value, "You are not part of this offer"
        )
    if action in _INITIATOR_ACTIONS and party is not Party.INITIATOR:
        raise NotAuthorizedError(
            offer_id, vendor_id, action.value, f"Only the initiator can {action.value} the offer"
        )
    if action in _RECIPIENT_ACTIONS and party is not Party.RECIPIENT:
        raise NotAuthorizedError(
            offer_id, vendor_id, action.value, f"Only the recipient can {action.value} the offer"
        )
    if action not in _INITIATOR_ACTIONS | _RECIPIENT_ACTIONS | _EITHER_PARTY_ACTIONS:
        raise NotAuthorizedError(
            offer_id, vendor_id, action.value, f"Vendors cannot {action.value} offers"
        )
    return party
