"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
the caller's identity, and the services bound to the request's session.

Identity is taken from headers set by the upstream gateway and is trusted
as-is: ``X-Vendor-ID`` for the two trading parties, ``X-Admin-ID`` for the
dispute arbiter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from barter_exchange.infrastructure.catalog import SqlPriceOracle, SqlVendorDirectory
from barter_exchange.infrastructure.database.engine import get_async_session
from barter_exchange.logging_config import bind_actor
from barter_exchange.services.arbiter_service import DisputeArbiter
from barter_exchange.services.offer_service import BarterOfferService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_vendor_id(
    x_vendor_id: str | None = Header(default=None, alias="X-Vendor-ID"),
) -> str:
    """Identity of the vendor acting on its own offers."""
    if not x_vendor_id:
        raise HTTPException(status_code=401, detail="X-Vendor-ID header is required")
    bind_actor(x_vendor_id)
    return x_vendor_id


def get_admin_id(
    x_admin_id: str | None = Header(default=None, alias="X-Admin-ID"),
) -> str:
    """Identity of the arbiter. Only the arbiter routes ask for it."""
    if not x_admin_id:
        raise HTTPException(status_code=401, detail="X-Admin-ID header is required")
    bind_actor(x_admin_id)
    return x_admin_id


async def get_offer_service(
    session: AsyncSession = Depends(get_db_session),
) -> BarterOfferService:
    """Provide a BarterOfferService bound to the current session."""
    return BarterOfferService(
        session,
        oracle=SqlPriceOracle(session),
        directory=SqlVendorDirectory(session),
    )


async def get_dispute_arbiter(
    session: AsyncSession = Depends(get_db_session),
) -> DisputeArbiter:
    """Provide a DisputeArbiter bound to the current session."""
    return DisputeArbiter(session, directory=SqlVendorDirectory(session))
