"""Tests for the pure offer validation functions."""

import uuid
from dataclasses import dataclass, field

import pytest

from barter_exchange.domain.collaborators import ProductQuote, VendorRecord
from barter_exchange.domain.enums import CashGapDirection, OfferAction, Party, VendorStatus
from barter_exchange.domain.exceptions import (
    NotAuthorizedError,
    OfferValidationError,
    VendorNotEligibleError,
)
from barter_exchange.domain.validation import (
    ItemSpec,
    authorize,
    check_counterparty,
    check_item_ownership,
    check_item_specs,
    check_sendable,
    check_text,
    normalize_cash_gap,
    party_of,
)


@dataclass
class Offer:
    initiator_vendor_id: str = "vendor-alpha"
    recipient_vendor_id: str = "vendor-beta"
    id: uuid.UUID = field(default_factory=uuid.uuid4)


def spec(product_id: str, quantity: int = 1, is_offered: bool = True) -> ItemSpec:
    return ItemSpec(product_id=product_id, quantity=quantity, is_offered=is_offered)


class TestCheckItemSpecs:
    def test_valid_items_pass(self) -> None:
        check_item_specs([spec("a"), spec("b", 3, is_offered=False)], max_items=50)

    def test_empty_items_rejected(self) -> None:
        with pytest.raises(OfferValidationError) as exc_info:
            check_item_specs([], max_items=50)
        assert exc_info.value.errors == [
            {"field": "items", "message": "An offer needs at least one item"}
        ]

    def test_too_many_items_rejected(self) -> None:
        items = [spec(f"p{i}") for i in range(4)]
        with pytest.raises(OfferValidationError, match="at most 3"):
            check_item_specs(items, max_items=3)

    def test_exactly_max_items_allowed(self) -> None:
        check_item_specs([spec(f"p{i}") for i in range(3)], max_items=3)

    def test_non_positive_quantity_rejected(self) -> None:
        with pytest.raises(OfferValidationError) as exc_info:
            check_item_specs([spec("a", 0), spec("b", -2)], max_items=50)
        fields = [e["field"] for e in exc_info.value.errors]
        assert fields == ["items.0.quantity", "items.1.quantity"]

    def test_blank_product_rejected(self) -> None:
        with pytest.raises(OfferValidationError) as exc_info:
            check_item_specs([spec("")], max_items=50)
        assert exc_info.value.errors[0]["field"] == "items.0.product_id"

    def test_duplicate_product_on_same_side_rejected(self) -> None:
        with pytest.raises(OfferValidationError, match="Invalid offer items") as exc_info:
            check_item_specs([spec("a"), spec("a", 2)], max_items=50)
        assert "listed twice" in exc_info.value.errors[0]["message"]

    def test_same_product_on_both_sides_is_not_a_duplicate(self) -> None:
        check_item_specs([spec("a"), spec("a", is_offered=False)], max_items=50)


class TestNormalizeCashGap:
    def test_zero_gap_drops_direction(self) -> None:
        assert normalize_cash_gap(0, CashGapDirection.INITIATOR_PAYS) == (0, None)
        assert normalize_cash_gap(0, None) == (0, None)

    def test_positive_gap_keeps_direction(self) -> None:
        cents, direction = normalize_cash_gap(250, "RECIPIENT_PAYS")
        assert cents == 250
        assert direction is CashGapDirection.RECIPIENT_PAYS

    def test_positive_gap_needs_direction(self) -> None:
        with pytest.raises(OfferValidationError) as exc_info:
            normalize_cash_gap(250, None)
        assert exc_info.value.errors[0]["field"] == "cash_gap_direction"

    def test_negative_gap_rejected(self) -> None:
        with pytest.raises(OfferValidationError) as exc_info:
            normalize_cash_gap(-1, CashGapDirection.INITIATOR_PAYS)
        assert exc_info.value.errors[0]["field"] == "cash_gap_cents"


class TestCheckText:
    def test_strips_whitespace(self) -> None:
        assert check_text("  late delivery  ", "reason") == "late delivery"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_rejected(self, value: str | None) -> None:
        with pytest.raises(OfferValidationError, match="Dispute reason is required"):
            check_text(value, "dispute_reason")


class TestCheckSendable:
    def test_empty_offer_cannot_be_sent(self) -> None:
        with pytest.raises(OfferValidationError, match="Cannot send an empty offer"):
            check_sendable(0)

    def test_non_empty_offer_passes(self) -> None:
        check_sendable(2)


class TestCheckCounterparty:
    def test_eligible_recipient(self) -> None:
        check_counterparty(
            "vendor-alpha",
            "vendor-beta",
            VendorRecord("vendor-beta", VendorStatus.APPROVED, True),
        )

    def test_self_offer_rejected(self) -> None:
        with pytest.raises(OfferValidationError, match="Cannot create offer to yourself"):
            check_counterparty(
                "vendor-alpha",
                "vendor-alpha",
                VendorRecord("vendor-alpha", VendorStatus.APPROVED, True),
            )

    @pytest.mark.parametrize(
        "record",
        [
            None,
            VendorRecord("vendor-beta", VendorStatus.PENDING, True),
            VendorRecord("vendor-beta", VendorStatus.SUSPENDED, True),
            VendorRecord("vendor-beta", VendorStatus.APPROVED, False),
        ],
    )
    def test_ineligible_recipient(self, record: VendorRecord | None) -> None:
        with pytest.raises(VendorNotEligibleError):
            check_counterparty("vendor-alpha", "vendor-beta", record)


class TestCheckItemOwnership:
    QUOTES = {
        "honey": ProductQuote("honey", "vendor-alpha", 1000),
        "bread": ProductQuote("bread", "vendor-beta", 1500),
        "cheese": ProductQuote("cheese", "vendor-gamma", 2000),
    }

    def test_correct_ownership_passes(self) -> None:
        check_item_ownership(
            [spec("honey"), spec("bread", is_offered=False)],
            self.QUOTES,
            "vendor-alpha",
            "vendor-beta",
        )

    def test_offering_someone_elses_product(self) -> None:
        with pytest.raises(OfferValidationError) as exc_info:
            check_item_ownership([spec("bread")], self.QUOTES, "vendor-alpha", "vendor-beta")
        assert exc_info.value.errors[0]["message"] == "You can only offer your own products"

    def test_requesting_third_party_product(self) -> None:
        with pytest.raises(OfferValidationError) as exc_info:
            check_item_ownership(
                [spec("honey"), spec("cheese", is_offered=False)],
                self.QUOTES,
                "vendor-alpha",
                "vendor-beta",
            )
        assert exc_info.value.errors == [
            {
                "field": "items.1.product_id",
                "message": "You can only request products from the recipient vendor",
            }
        ]


class TestAuthorize:
    def test_party_of(self) -> None:
        offer = Offer()
        assert party_of(offer, "vendor-alpha") is Party.INITIATOR
        assert party_of(offer, "vendor-beta") is Party.RECIPIENT
        assert party_of(offer, "vendor-gamma") is None

    @pytest.mark.parametrize("action", [OfferAction.UPDATE, OfferAction.SEND, OfferAction.CANCEL])
    def test_initiator_only_actions(self, action: OfferAction) -> None:
        offer = Offer()
        assert authorize(offer, "vendor-alpha", action) is Party.INITIATOR
        with pytest.raises(NotAuthorizedError, match="Only the initiator"):
            authorize(offer, "vendor-beta", action)

    @pytest.mark.parametrize(
        "action", [OfferAction.ACCEPT, OfferAction.REJECT, OfferAction.COUNTER]
    )
    def test_recipient_only_actions(self, action: OfferAction) -> None:
        offer = Offer()
        assert authorize(offer, "vendor-beta", action) is Party.RECIPIENT
        with pytest.raises(NotAuthorizedError, match="Only the recipient"):
            authorize(offer, "vendor-alpha", action)

    @pytest.mark.parametrize("action", [OfferAction.FULFILL, OfferAction.DISPUTE])
    def test_either_party_actions(self, action: OfferAction) -> None:
        offer = Offer()
        assert authorize(offer, "vendor-alpha", action) is Party.INITIATOR
        assert authorize(offer, "vendor-beta", action) is Party.RECIPIENT

    def test_outsider_rejected(self) -> None:
        offer = Offer()
        with pytest.raises(NotAuthorizedError) as exc_info:
            authorize(offer, "vendor-gamma", OfferAction.FULFILL)
        assert exc_info.value.message == "You are not part of this offer"
        assert exc_info.value.offer_id == str(offer.id)
        assert exc_info.value.code == "NOT_AUTHORIZED"

    def test_parties_cannot_resolve(self) -> None:
        with pytest.raises(NotAuthorizedError, match="Vendors cannot resolve"):
            authorize(Offer(), "vendor-beta", OfferAction.RESOLVE)
