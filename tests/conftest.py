"""Shared test fixtures for the Barter Exchange test suite.

Provides:
    - In-memory Price Oracle / Vendor Directory fakes for pure service tests
    - A file-backed SQLite database per test with a seeded catalog
    - An ``exchange`` harness that runs each call in its own session and
      transaction, the way one HTTP request would
    - An httpx client wired to the FastAPI app with the test database
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from barter_exchange.api.deps import get_db_session
from barter_exchange.domain.collaborators import ProductQuote, VendorRecord
from barter_exchange.domain.enums import CashGapDirection, VendorStatus
from barter_exchange.domain.validation import ItemSpec
from barter_exchange.infrastructure.catalog import SqlPriceOracle, SqlVendorDirectory
from barter_exchange.infrastructure.database.engine import build_engine
from barter_exchange.infrastructure.database.orm_models import (
    Base,
    BarterOffer,
    CatalogProduct,
    CatalogVendor,
)
from barter_exchange.infrastructure.database.repositories import (
    EventRepository,
    OfferRepository,
)
from barter_exchange.services.arbiter_service import DisputeArbiter
from barter_exchange.services.offer_service import BarterOfferService

ALPHA = "vendor-alpha"
BETA = "vendor-beta"
GAMMA = "vendor-gamma"
PENDING = "vendor-pending"
SUSPENDED = "vendor-suspended"
DORMANT = "vendor-dormant"
ARBITER = "admin-ops"

VENDORS = [
    VendorRecord(ALPHA, VendorStatus.APPROVED, True, "Alpha Farms"),
    VendorRecord(BETA, VendorStatus.APPROVED, True, "Beta Bakery"),
    VendorRecord(GAMMA, VendorStatus.APPROVED, True, "Gamma Dairy"),
    VendorRecord(PENDING, VendorStatus.PENDING, True, "Pending Pottery"),
    VendorRecord(SUSPENDED, VendorStatus.SUSPENDED, True, "Suspended Soaps"),
    VendorRecord(DORMANT, VendorStatus.APPROVED, False, "Dormant Deli"),
]

PRODUCTS = [
    ProductQuote("alpha-honey", ALPHA, 1000, name="Wildflower Honey"),
    ProductQuote("alpha-eggs", ALPHA, 600, name="Free-range Eggs"),
    ProductQuote("alpha-paused", ALPHA, 800, is_available=False, name="Paused Jam"),
    ProductQuote("alpha-retired", ALPHA, 900, is_deleted=True, name="Retired Syrup"),
    ProductQuote("beta-bread", BETA, 1500, name="Sourdough Loaf"),
    ProductQuote("beta-croissant", BETA, 350, name="Butter Croissant"),
    ProductQuote("gamma-cheese", GAMMA, 2000, name="Aged Cheddar"),
]


def offered(product_id: str, quantity: int = 1) -> ItemSpec:
    return ItemSpec(product_id=product_id, quantity=quantity, is_offered=True)


def requested(product_id: str, quantity: int = 1) -> ItemSpec:
    return ItemSpec(product_id=product_id, quantity=quantity, is_offered=False)


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakePriceOracle:
    """Dict-backed Price Oracle. ``prices`` can be edited mid-test."""

    def __init__(self, quotes: Iterable[ProductQuote] = PRODUCTS) -> None:
        self.quotes = {q.product_id: q for q in quotes}
        self.lookups = 0

    async def lookup(self, product_id: str) -> ProductQuote | None:
        self.lookups += 1
        return self.quotes.get(product_id)

    async def lookup_many(self, product_ids: Iterable[str]) -> dict[str, ProductQuote]:
        self.lookups += 1
        return {pid: self.quotes[pid] for pid in product_ids if pid in self.quotes}

    async def list_available(self, vendor_id: str) -> list[ProductQuote]:
        return [
            q for q in self.quotes.values() if q.owner_vendor_id == vendor_id and q.is_tradeable
        ]


class FakeVendorDirectory:
    def __init__(self, records: Iterable[VendorRecord] = VENDORS) -> None:
        self.records = {r.vendor_id: r for r in records}

    async def get_vendor(self, vendor_id: str) -> VendorRecord | None:
        return self.records.get(vendor_id)

    async def get_vendors(self, vendor_ids: Iterable[str]) -> dict[str, VendorRecord]:
        return {vid: self.records[vid] for vid in vendor_ids if vid in self.records}

    async def list_counterparties(self, excluding_vendor_id: str) -> list[VendorRecord]:
        return [
            r
            for r in self.records.values()
            if r.vendor_id != excluding_vendor_id and r.is_eligible_counterparty
        ]


@pytest.fixture
def price_oracle() -> FakePriceOracle:
    return FakePriceOracle()


@pytest.fixture
def vendor_directory() -> FakeVendorDirectory:
    return FakeVendorDirectory()


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


async def seed_catalog(session: AsyncSession) -> None:
    for record in VENDORS:
        session.add(
            CatalogVendor(
                id=record.vendor_id,
                business_name=record.business_name,
                status=record.status.value,
                is_active=record.is_active,
            )
        )
    await session.flush()
    for quote in PRODUCTS:
        session.add(
            CatalogProduct(
                id=quote.product_id,
                vendor_id=quote.owner_vendor_id,
                name=quote.name,
                price_usd_cents=quote.unit_price_cents,
                is_available=quote.is_available,
                is_deleted=quote.is_deleted,
            )
        )
    await session.commit()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite file per test, schema created and catalog seeded."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'barter.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        await seed_catalog(session)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class Exchange:
    """Runs service calls one transaction at a time, like separate requests."""

    def __init__(self, factory: async_sessionmaker[AsyncSession]) -> None:
        self.factory = factory

    async def _in_session(self, build, method: str, *args, **kwargs):
        async with self.factory() as session:
            try:
                result = await getattr(build(session), method)(*args, **kwargs)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            return result

    async def vendor(self, method: str, *args, **kwargs):
        """Call a BarterOfferService method."""
        return await self._in_session(
            lambda s: BarterOfferService(
                s, oracle=SqlPriceOracle(s), directory=SqlVendorDirectory(s)
            ),
            method,
            *args,
            **kwargs,
        )

    async def arbiter(self, method: str, *args, **kwargs):
        """Call a DisputeArbiter method."""
        return await self._in_session(
            lambda s: DisputeArbiter(s, directory=SqlVendorDirectory(s)),
            method,
            *args,
            **kwargs,
        )

    async def load(self, offer_id: uuid.UUID) -> BarterOffer:
        async with self.factory() as session:
            offer = await OfferRepository(session).get_by_id(offer_id)
            assert offer is not None
            return offer

    async def event_types(self, offer_id: uuid.UUID) -> list[str]:
        async with self.factory() as session:
            return [e.event_type for e in await EventRepository(session).get_by_offer(offer_id)]

    # --- Shortcuts for the common paths ---

    async def draft(
        self,
        initiator: str = ALPHA,
        recipient: str = BETA,
        items: list[ItemSpec] | None = None,
        cash_gap_cents: int = 0,
        cash_gap_direction: CashGapDirection | None = None,
    ) -> BarterOffer:
        return await self.vendor(
            "create_offer",
            initiator_vendor_id=initiator,
            recipient_vendor_id=recipient,
            items=items or [offered("alpha-honey"), requested("beta-bread")],
            cash_gap_cents=cash_gap_cents,
            cash_gap_direction=cash_gap_direction,
        )

    async def sent(self, **kwargs) -> BarterOffer:
        offer = await self.draft(**kwargs)
        return await self.vendor("send_offer", offer.id, offer.initiator_vendor_id)

    async def accepted(self, **kwargs) -> BarterOffer:
        offer = await self.sent(**kwargs)
        return await self.vendor("accept_offer", offer.id, offer.recipient_vendor_id)

    async def disputed(self, reason: str = "goods not received") -> BarterOffer:
        offer = await self.accepted()
        await self.vendor("fulfill_offer", offer.id, ALPHA)
        return await self.vendor("raise_dispute", offer.id, BETA, reason=reason)


@pytest.fixture
def exchange(session_factory) -> Exchange:
    return Exchange(session_factory)


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def api_client(session_factory):
    """httpx client for the REST API, one committed session per request."""
    from barter_exchange.main import create_app

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db_session] = override_db_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def vendor_headers(vendor_id: str) -> dict[str, str]:
    return {"X-Vendor-ID": vendor_id}


def admin_headers(admin_id: str = ARBITER) -> dict[str, str]:
    return {"X-Admin-ID": admin_id}
