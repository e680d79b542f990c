"""SQL adapters for the Price Oracle and Vendor Directory.

Both read the catalog service's ``vendors`` / ``products`` tables through
the request's session and never write to them. They satisfy the Protocols
in domain/collaborators.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from barter_exchange.domain.collaborators import ProductQuote, VendorRecord
from barter_exchange.domain.enums import VendorStatus
from barter_exchange.infrastructure.database.orm_models import (
    CatalogProduct,
    CatalogVendor,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession


def _to_quote(row: CatalogProduct) -> ProductQuote:
    return ProductQuote(
        product_id=row.id,
        owner_vendor_id=row.vendor_id,
        unit_price_cents=row.price_usd_cents,
        is_available=row.is_available,
        is_deleted=row.is_deleted,
        name=row.name,
    )


def _to_record(row: CatalogVendor) -> VendorRecord:
    return VendorRecord(
        vendor_id=row.id,
        status=VendorStatus(row.status),
        is_active=row.is_active,
        business_name=row.business_name,
    )


class SqlPriceOracle:
    """Price Oracle backed by the ``products`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def lookup(self, product_id: str) -> ProductQuote | None:
        row = await self._session.get(CatalogProduct, product_id)
        return _to_quote(row) if row is not None else None

    async def lookup_many(self, product_ids: Iterable[str]) -> dict[str, ProductQuote]:
        ids = set(product_ids)
        if not ids:
            return {}
        result = await self._session.execute(
            select(CatalogProduct).where(CatalogProduct.id.in_(ids))
        )
        return {row.id: _to_quote(row) for row in result.scalars()}

    async def list_available(self, vendor_id: str) -> list[ProductQuote]:
        result = await self._session.execute(
            select(CatalogProduct)
            .where(
                CatalogProduct.vendor_id == vendor_id,
                CatalogProduct.is_available.is_(True),
                CatalogProduct.is_deleted.is_(False),
            )
            .order_by(CatalogProduct.name)
        )
        return [_to_quote(row) for row in result.scalars()]


class SqlVendorDirectory:
    """Vendor Directory backed by the ``vendors`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_vendor(self, vendor_id: str) -> VendorRecord | None:
        row = await self._session.get(CatalogVendor, vendor_id)
        return _to_record(row) if row is not None else None

    async def get_vendors(self, vendor_ids: Iterable[str]) -> dict[str, VendorRecord]:
        ids = set(vendor_ids)
        if not ids:
            return {}
        result = await self._session.execute(
            select(CatalogVendor).where(CatalogVendor.id.in_(ids))
        )
        return {row.id: _to_record(row) for row in result.scalars()}

    async def list_counterparties(self, excluding_vendor_id: str) -> list[VendorRecord]:
        result = await self._session.execute(
            select(CatalogVendor)
            .where(
                CatalogVendor.id != excluding_vendor_id,
                CatalogVendor.status == VendorStatus.APPROVED.value,
                CatalogVendor.is_active.is_(True),
            )
            .order_by(CatalogVendor.business_name)
        )
        return [_to_record(row) for row in result.scalars()]
