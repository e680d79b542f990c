"""SQLAlchemy 2.0 ORM models for the Barter Exchange.

Tables owned by the engine:
    1. barter_offers  — One row per offer; counters are new rows linked by parent_offer_id.
    2. barter_items   — Offer lines with their frozen unit value.
    3. offer_events   — Append-only audit log of every state change.

Catalog mirror (read-only, owned by the catalog service):
    4. vendors        — Vendor Directory source.
    5. products       — Price Oracle source.

Design decisions:
    - UUIDs as primary keys for offers, items and events.
    - Integer cents for every amount (no floating point).
    - CHECK constraints mirror the domain invariants (status set, parties
      differ, cash gap direction present iff the gap is positive).
    - barter_items.position keeps the submitted line order.
    - offer_events is append-only: no UPDATE or DELETE at the application level.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from barter_exchange.domain.enums import OfferStatus

JSONVariant = JSON().with_variant(JSONB(), "postgresql")

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in OfferStatus)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# 1. barter_offers
# ---------------------------------------------------------------------------
class BarterOffer(Base):
    """A proposed or in-progress barter trade between two vendors."""

    __tablename__ = "barter_offers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Parties ---
    initiator_vendor_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Vendor that proposed these terms (owns the offered bundle)",
    )
    recipient_vendor_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Vendor asked to respond (owns the requested bundle)",
    )

    # --- Status (guarded by BarterStateMachine) ---
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OfferStatus.DRAFT.value,
    )

    # --- Economic terms ---
    cash_gap_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Extra cash owed to balance the trade",
    )
    cash_gap_direction: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        default=None,
        comment="INITIATOR_PAYS or RECIPIENT_PAYS; null iff cash_gap_cents = 0",
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Negotiation lineage ---
    parent_offer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("barter_offers.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
        comment="The offer this one counters",
    )
    counter_of_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Fulfillment attestations (monotonic) ---
    fulfilled_by_initiator: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    fulfilled_by_recipient: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # --- Dispute ---
    dispute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    dispute_resolved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    dispute_resolution: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    # --- Relationships ---
    items: Mapped[list[BarterItem]] = relationship(
        "BarterItem",
        back_populates="offer",
        cascade="all, delete-orphan",
        order_by="BarterItem.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_offer_valid_status",
        ),
        CheckConstraint(
            "initiator_vendor_id <> recipient_vendor_id",
            name="ck_offer_distinct_parties",
        ),
        CheckConstraint(
            "cash_gap_cents >= 0",
            name="ck_offer_cash_gap_non_negative",
        ),
        CheckConstraint(
            "(cash_gap_cents = 0 AND cash_gap_direction IS NULL) OR "
            "(cash_gap_cents > 0 AND cash_gap_direction IN ('INITIATOR_PAYS', 'RECIPIENT_PAYS'))",
            name="ck_offer_cash_gap_direction",
        ),
        Index("idx_offer_initiator", "initiator_vendor_id"),
        Index("idx_offer_recipient", "recipient_vendor_id"),
        Index("idx_offer_status", "status"),
        Index("idx_offer_parent", "parent_offer_id"),
        Index("idx_offer_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<BarterOffer id={self.id} status={self.status} "
            f"{self.initiator_vendor_id}->{self.recipient_vendor_id}>"
        )


# ---------------------------------------------------------------------------
# 2. barter_items
# ---------------------------------------------------------------------------
class BarterItem(Base):
    """A line of an offer. ``value_cents`` is a snapshot, never re-read."""

    __tablename__ = "barter_items"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    offer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("barter_offers.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    value_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Unit price frozen from the Price Oracle when the line was created",
    )
    product_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        comment="Display name captured alongside value_cents",
    )
    is_offered: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        comment="True = given by the initiator, False = requested from the recipient",
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    offer: Mapped[BarterOffer] = relationship("BarterOffer", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_item_positive_quantity"),
        CheckConstraint("value_cents >= 0", name="ck_item_non_negative_value"),
        Index("idx_item_offer", "offer_id"),
        Index("idx_item_product", "product_id"),
    )

    def __repr__(self) -> str:
        side = "offered" if self.is_offered else "requested"
        return f"<BarterItem product={self.product_id} x{self.quantity} {side}>"


# ---------------------------------------------------------------------------
# 3. offer_events (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class OfferEvent(Base):
    """Immutable audit record of one state change of an offer."""

    __tablename__ = "offer_events"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    offer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("barter_offers.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    old_status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="Offer status before this event (null for creation)",
    )
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Vendor or arbiter that triggered this event",
    )
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JSONVariant,
        nullable=True,
        default=None,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_event_offer", "offer_id"),
        Index("idx_event_type", "event_type"),
        Index("idx_event_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<OfferEvent id={self.id} type={self.event_type} "
            f"{self.old_status}->{self.new_status}>"
        )


# ---------------------------------------------------------------------------
# 4-5. Catalog mirror (read-only for this engine)
# ---------------------------------------------------------------------------
class CatalogVendor(Base):
    """Vendor registry row. Written by the vendor service, read here."""

    __tablename__ = "vendors"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<CatalogVendor id={self.id} status={self.status} active={self.is_active}>"


class CatalogProduct(Base):
    """Product catalog row. Written by the catalog service, read here."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    vendor_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price_usd_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("idx_product_vendor", "vendor_id"),)

    def __repr__(self) -> str:
        return f"<CatalogProduct id={self.id} vendor={self.vendor_id} price={self.price_usd_cents}>"
