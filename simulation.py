#!/usr/bin/env python3
"""Barter Exchange — End-to-End Simulation.

Two vendor bots, Alpha Farms and Beta Bakery, trade through the engine:

    Scenario A: Accept As Sent
        - Alpha offers honey (1000) for bread (1500) + 500 cents from Beta
        - Alpha sends, Beta accepts -> ACCEPTED

    Scenario B: Counter-Offer
        - Beta counters with different items, no cash gap
        - Original offer -> COUNTERED, counter (Beta -> Alpha) -> SENT
        - Alpha accepts the counter

    Scenario C: Dual Fulfillment
        - Alpha fulfills -> IN_PROGRESS, Beta fulfills -> COMPLETED

    Scenario D: Dispute
        - Alpha fulfills, Beta disputes "goods not received"
        - Arbiter resolves CANCELLED; further actions are refused

Usage:
    # Option A: Against the configured DATABASE_URL (PostgreSQL):
    python simulation.py

    # Option B: Without a database server (SQLite in-memory):
    python simulation.py --sqlite

    # Run a specific scenario:
    python simulation.py --sqlite --scenario B
"""

from __future__ import annotations

import argparse
import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

# ---------------------------------------------------------------------------
# Configure structured logging BEFORE importing app modules
# ---------------------------------------------------------------------------
from barter_exchange.logging_config import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False)
logger = get_logger("simulation")

from barter_exchange.domain.enums import CashGapDirection, OfferStatus  # noqa: E402
from barter_exchange.domain.exceptions import BarterError  # noqa: E402
from barter_exchange.domain.validation import ItemSpec  # noqa: E402
from barter_exchange.infrastructure.catalog import (  # noqa: E402
    SqlPriceOracle,
    SqlVendorDirectory,
)
from barter_exchange.infrastructure.database.orm_models import (  # noqa: E402
    Base,
    CatalogProduct,
    CatalogVendor,
)
from barter_exchange.services.arbiter_service import DisputeArbiter  # noqa: E402
from barter_exchange.services.offer_service import BarterOfferService  # noqa: E402

# Module-level state
_sqlite_engine = None
_sqlite_session_factory = None

ALPHA = "vendor-alpha"
BETA = "vendor-beta"
ARBITER = "admin-ops"

CATALOG_VENDORS = [
    (ALPHA, "Alpha Farms"),
    (BETA, "Beta Bakery"),
]
CATALOG_PRODUCTS = [
    ("alpha-honey", ALPHA, "Wildflower Honey", 1000),
    ("alpha-eggs", ALPHA, "Free-range Eggs (dozen)", 600),
    ("beta-bread", BETA, "Sourdough Loaf", 1500),
    ("beta-croissant", BETA, "Butter Croissant", 350),
]


# ---------------------------------------------------------------------------
# Database lifecycle helpers
# ---------------------------------------------------------------------------
async def init_database(use_sqlite: bool = False) -> None:
    """Initialize database engine, create tables and seed the catalog."""
    global _sqlite_engine, _sqlite_session_factory

    if use_sqlite:
        from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

        from barter_exchange.infrastructure.database.engine import build_engine

        _sqlite_engine = build_engine("sqlite+aiosqlite:///:memory:")
        _sqlite_session_factory = async_sessionmaker(
            bind=_sqlite_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        async with _sqlite_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database.sqlite_initialized")
    else:
        from barter_exchange.infrastructure.database.engine import init_db

        await init_db()

    async with get_session() as session:
        for vendor_id, name in CATALOG_VENDORS:
            await session.merge(
                CatalogVendor(id=vendor_id, business_name=name, status="APPROVED", is_active=True)
            )
        await session.flush()
        for product_id, vendor_id, name, price in CATALOG_PRODUCTS:
            await session.merge(
                CatalogProduct(
                    id=product_id,
                    vendor_id=vendor_id,
                    name=name,
                    price_usd_cents=price,
                    is_available=True,
                    is_deleted=False,
                )
            )
        await session.commit()
    logger.info("catalog.seeded", vendors=len(CATALOG_VENDORS), products=len(CATALOG_PRODUCTS))


def get_session() -> Any:
    """Get a fresh database session."""
    if _sqlite_session_factory is not None:
        return _sqlite_session_factory()

    from barter_exchange.infrastructure.database.engine import get_session_factory

    return get_session_factory()()


async def shutdown_database() -> None:
    """Close database connections."""
    global _sqlite_engine, _sqlite_session_factory

    if _sqlite_engine is not None:
        await _sqlite_engine.dispose()
        _sqlite_engine = None
        _sqlite_session_factory = None
    else:
        from barter_exchange.infrastructure.database.engine import close_db

        await close_db()


async def in_transaction(action: Callable[[Any], Awaitable[Any]]) -> Any:
    """Run one vendor action as one request: own session, one commit."""
    async with get_session() as session:
        result = await action(session)
        await session.commit()
        return result


def offer_service(session: Any) -> BarterOfferService:
    return BarterOfferService(
        session,
        oracle=SqlPriceOracle(session),
        directory=SqlVendorDirectory(session),
    )


# ---------------------------------------------------------------------------
# Bot Agents
# ---------------------------------------------------------------------------
@dataclass
class VendorBot:
    """Simulated vendor that negotiates through the offer service."""

    vendor_id: str
    name: str

    async def propose(
        self,
        recipient: VendorBot,
        offered: dict[str, int],
        requested: dict[str, int],
        cash_gap_cents: int = 0,
        cash_gap_direction: CashGapDirection | None = None,
    ) -> str:
        items = [ItemSpec(pid, qty, is_offered=True) for pid, qty in offered.items()]
        items += [ItemSpec(pid, qty, is_offered=False) for pid, qty in requested.items()]

        async def action(session: Any) -> str:
            offer = await offer_service(session).create_offer(
                initiator_vendor_id=self.vendor_id,
                recipient_vendor_id=recipient.vendor_id,
                items=items,
                cash_gap_cents=cash_gap_cents,
                cash_gap_direction=cash_gap_direction,
                message=f"{self.name} would like to trade",
            )
            return str(offer.id)

        offer_id = await in_transaction(action)
        print(f"  📝 {self.name} drafted offer {offer_id[:8]}… to {recipient.name}")
        return offer_id

    async def act(self, verb: str, offer_id: str, **kwargs: Any) -> str:
        """Call ``<verb>_offer`` on the service and return the new status."""

        async def action(session: Any) -> str:
            method = getattr(offer_service(session), f"{verb}_offer")
            offer = await method(uuid.UUID(offer_id), self.vendor_id, **kwargs)
            return offer.status

        status = await in_transaction(action)
        print(f"  ➡️  {self.name} {verb}s {offer_id[:8]}… -> {status}")
        return status

    async def counter(self, offer_id: str, offered: dict[str, int], requested: dict[str, int]) -> str:

        items = [ItemSpec(pid, qty, is_offered=True) for pid, qty in offered.items()]
        items += [ItemSpec(pid, qty, is_offered=False) for pid, qty in requested.items()]

        async def action(session: Any) -> str:
            counter = await offer_service(session).counter_offer(
                uuid.UUID(offer_id), self.vendor_id, items=items
            )
            return str(counter.id)

        counter_id = await in_transaction(action)
        print(f"  🔁 {self.name} countered {offer_id[:8]}… with {counter_id[:8]}…")
        return counter_id

    async def dispute(self, offer_id: str, reason: str) -> str:

        async def action(session: Any) -> str:
            offer = await offer_service(session).raise_dispute(
                uuid.UUID(offer_id), self.vendor_id, reason=reason
            )
            return offer.status

        status = await in_transaction(action)
        print(f"  ⚠️  {self.name} disputes {offer_id[:8]}…: {reason!r} -> {status}")
        return status

    async def show(self, offer_id: str) -> None:

        async def action(session: Any) -> Any:
            return await offer_service(session).get_offer_detail(uuid.UUID(offer_id), self.vendor_id)

        view = await in_transaction(action)
        role = "initiator" if view.is_initiator else "recipient"
        print(f"  👀 {self.name} sees {view.offer_id[:8]}… as {role}: {view.status}")
        print(
            f"     offered={view.offered_total_cents}¢ requested={view.requested_total_cents}¢ "
            f"cash_gap={view.cash_gap_cents}¢ {view.cash_gap_direction or ''}"
        )
        print(
            f"     fulfilled: initiator={view.fulfilled_by_initiator} "
            f"recipient={view.fulfilled_by_recipient}"
        )


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


async def print_audit_trail(offer_id: str) -> None:
    """Print the full audit trail for an offer, as the arbiter sees it."""

    async def action(session: Any) -> Any:
        arbiter = DisputeArbiter(session, directory=SqlVendorDirectory(session))
        return await arbiter.inspect_offer(uuid.UUID(offer_id))

    case = await in_transaction(action)
    print("\n  📜 Audit Trail:")
    for i, evt in enumerate(case.events, 1):
        old = evt.old_status or "—"
        print(f"    {i}. [{evt.event_type}] {old} → {evt.new_status} (by {evt.actor})")
    print()


async def accepted_offer(alpha: VendorBot, beta: VendorBot) -> str:
    offer_id = await alpha.propose(
        beta,
        offered={"alpha-honey": 1},
        requested={"beta-bread": 1},
        cash_gap_cents=500,
        cash_gap_direction=CashGapDirection.RECIPIENT_PAYS,
    )
    await alpha.act("send", offer_id)
    await beta.act("accept", offer_id)
    return offer_id


# ===========================================================================
# Scenarios
# ===========================================================================
async def scenario_a_accept() -> None:
    banner("SCENARIO A: Offer, Send, Accept")
    alpha, beta = VendorBot(ALPHA, "Alpha Farms"), VendorBot(BETA, "Beta Bakery")

    offer_id = await accepted_offer(alpha, beta)
    await alpha.show(offer_id)
    await print_audit_trail(offer_id)


async def scenario_b_counter() -> None:
    banner("SCENARIO B: Counter-Offer With Swapped Roles")
    alpha, beta = VendorBot(ALPHA, "Alpha Farms"), VendorBot(BETA, "Beta Bakery")

    offer_id = await alpha.propose(beta, offered={"alpha-honey": 1}, requested={"beta-bread": 1})
    await alpha.act("send", offer_id)

    section("Beta counters: croissants for eggs, no cash")
    counter_id = await beta.counter(
        offer_id, offered={"beta-croissant": 2}, requested={"alpha-eggs": 1}
    )
    await alpha.show(offer_id)
    await alpha.show(counter_id)

    section("Alpha accepts the counter")
    await alpha.act("accept", counter_id)
    await print_audit_trail(counter_id)


async def scenario_c_fulfillment() -> None:
    banner("SCENARIO C: Dual Fulfillment")
    alpha, beta = VendorBot(ALPHA, "Alpha Farms"), VendorBot(BETA, "Beta Bakery")

    offer_id = await accepted_offer(alpha, beta)
    await alpha.act("fulfill", offer_id)
    await beta.act("fulfill", offer_id)
    await beta.show(offer_id)
    await print_audit_trail(offer_id)


async def scenario_d_dispute() -> None:
    banner("SCENARIO D: Dispute and Arbitration")

    alpha, beta = VendorBot(ALPHA, "Alpha Farms"), VendorBot(BETA, "Beta Bakery")

    offer_id = await accepted_offer(alpha, beta)
    await alpha.act("fulfill", offer_id)
    await beta.dispute(offer_id, "goods not received")

    section("Arbiter resolves CANCELLED")

    async def resolve(session: Any) -> str:
        arbiter = DisputeArbiter(session, directory=SqlVendorDirectory(session))
        offer = await arbiter.resolve_dispute(
            uuid.UUID(offer_id),
            arbiter_id=ARBITER,
            new_status=OfferStatus.CANCELLED,
            resolution="No proof of delivery; trade unwound",
        )
        return offer.status

    print(f"  ⚖️  Arbiter {ARBITER} -> {await in_transaction(resolve)}")

    section("Further actions are refused")
    try:
        await beta.act("fulfill", offer_id)
    except BarterError as exc:
        print(f"  🛡️  Refused: {exc.message}")

    await print_audit_trail(offer_id)


SCENARIOS: dict[str, Callable[[], Awaitable[None]]] = {
    "A": scenario_a_accept,
    "B": scenario_b_counter,
    "C": scenario_c_fulfillment,
    "D": scenario_d_dispute,
}


# ===========================================================================
# Main
# ===========================================================================
async def run(scenarios: list[str], use_sqlite: bool = False) -> None:
    await init_database(use_sqlite=use_sqlite)
    try:
        print("\n" + "🤝" * 35)
        print("  BARTER EXCHANGE — SIMULATION")
        print(f"  Database: {'SQLite (in-memory)' if use_sqlite else 'configured DATABASE_URL'}")
        print("🤝" * 35 + "\n")

        for name in scenarios:
            await SCENARIOS[name]()

        print("\n" + "=" * 70)
        print("  ✅ ALL SCENARIOS COMPLETED SUCCESSFULLY")
        print("=" * 70 + "\n")
    finally:
        await shutdown_database()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Barter Exchange Simulation")
    parser.add_argument(
        "--scenario",
        choices=sorted(SCENARIOS),
        default=None,
        help="Run a specific scenario (A-D). Default: run all.",
    )
    parser.add_argument(
        "--sqlite",
        action="store_true",
        help="Use SQLite in-memory instead of the configured database.",
    )
    args = parser.parse_args()

    selected = [args.scenario] if args.scenario else list(SCENARIOS)
    asyncio.run(run(selected, use_sqlite=args.sqlite))
