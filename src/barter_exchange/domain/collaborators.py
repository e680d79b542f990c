"""External collaborator protocols: Product Price Oracle and Vendor Directory.

The engine reads the catalog and the vendor registry but never writes to
them. These are Protocols (structural subtyping) so the SQL adapters in
infrastructure/catalog.py and the in-memory fakes used by tests only need
to match the shape.

The domain layer has ZERO imports from SQLAlchemy or any transport.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from barter_exchange.domain.enums import VendorStatus


@dataclass(frozen=True)
class ProductQuote:
    """What the Price Oracle knows about a product at lookup time.

    Attributes:
        product_id: Catalog product ID.
        owner_vendor_id: Vendor that owns (and can trade) the product.
        unit_price_cents: Current unit price; copied into the offer line.
        is_available: False when the vendor paused the listing.
        is_deleted: True when the product was soft-deleted.
        name: Display name, for browsing only.
    """

    product_id: str
    owner_vendor_id: str
    unit_price_cents: int
    is_available: bool = True
    is_deleted: bool = False
    name: str = ""

    @property
    def is_tradeable(self) -> bool:
        return self.is_available and not self.is_deleted


@dataclass(frozen=True)
class VendorRecord:
    """A vendor as reported by the Vendor Directory."""

    vendor_id: str
    status: VendorStatus
    is_active: bool
    business_name: str = ""

    @property
    def is_eligible_counterparty(self) -> bool:
        return self.status is VendorStatus.APPROVED and self.is_active


@runtime_checkable
class PriceOracle(Protocol):
    """Read-only view of the product catalog's prices and ownership."""

    async def lookup(self, product_id: str) -> ProductQuote | None:
        """Return the product's current quote, or None if it does not exist."""
        ...

    async def lookup_many(self, product_ids: Iterable[str]) -> Mapping[str, ProductQuote]:
        """Batch lookup; unknown IDs are simply absent from the result."""
        ...

    async def list_available(self, vendor_id: str) -> list[ProductQuote]:
        """Tradeable products of one vendor, for building an offer."""
        ...


@runtime_checkable
class VendorDirectory(Protocol):
    """Read-only view of vendor approval and activity status."""

    async def get_vendor(self, vendor_id: str) -> VendorRecord | None:
        ...

    async def get_vendors(self, vendor_ids: Iterable[str]) -> Mapping[str, VendorRecord]:
        ...

    async def list_counterparties(self, excluding_vendor_id: str) -> list[VendorRecord]:
        """APPROVED and active vendors other than the caller."""
        ...
