"""Application services — use case orchestration."""

from barter_exchange.services.arbiter_service import DisputeArbiter, DisputeCase
from barter_exchange.services.offer_service import UNSET, BarterOfferService
from barter_exchange.services.value_snapshot import ValueSnapshot, ValueSnapshotResolver

__all__ = [
    "BarterOfferService",
    "DisputeArbiter",
    "DisputeCase",
    "UNSET",
    "ValueSnapshot",
    "ValueSnapshotResolver",
]
