"""Database infrastructure — engine, ORM models, and repositories."""

from barter_exchange.infrastructure.database.engine import (
    build_engine,
    close_db,
    get_async_session,
    get_session_factory,
    init_db,
)
from barter_exchange.infrastructure.database.orm_models import (
    Base,
    BarterItem,
    BarterOffer,
    CatalogProduct,
    CatalogVendor,
    OfferEvent,
)
from barter_exchange.infrastructure.database.repositories import (
    EventRepository,
    OfferRepository,
)

__all__ = [
    "Base",
    "BarterItem",
    "BarterOffer",
    "CatalogProduct",
    "CatalogVendor",
    "OfferEvent",
    "EventRepository",
    "OfferRepository",
    "build_engine",
    "get_async_session",
    "get_session_factory",
    "init_db",
    "close_db",
]
