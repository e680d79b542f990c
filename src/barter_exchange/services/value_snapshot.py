"""Value Snapshot Resolver.

Prices every line of a new item set from the Price Oracle and freezes the
unit price into the line. Runs for the initial offer, for DRAFT item
replacement and for counters; an existing line is never re-priced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from barter_exchange.domain.exceptions import (
    ProductNotFoundError,
    ProductUnavailableError,
)
from barter_exchange.domain.validation import PricedItem
from barter_exchange.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from barter_exchange.domain.collaborators import PriceOracle, ProductQuote
    from barter_exchange.domain.validation import ItemSpec

logger = get_logger(__name__)


@dataclass(frozen=True)
class ValueSnapshot:
    """Priced lines plus the quotes they were priced from."""

    items: list[PricedItem]
    quotes: Mapping[str, ProductQuote]

    @property
    def offered_total_cents(self) -> int:
        return sum(i.total_cents for i in self.items if i.is_offered)

    @property
    def requested_total_cents(self) -> int:
        return sum(i.total_cents for i in self.items if not i.is_offered)


class ValueSnapshotResolver:
    def __init__(self, oracle: PriceOracle) -> None:
        self._oracle = oracle

    async def resolve(self, items: Sequence[ItemSpec]) -> ValueSnapshot:
        """Look up every product once and copy its current unit price.

        Raises:
            ProductNotFoundError: A product does not exist.
            ProductUnavailableError: A product is soft-deleted or paused.
        """
        quotes = await self._oracle.lookup_many(item.product_id for item in items)

        priced: list[PricedItem] = []
        for item in items:
            quote = quotes.get(item.product_id)
            if quote is None:
                raise ProductNotFoundError(item.product_id)
            if not quote.is_tradeable:
                raise ProductUnavailableError(item.product_id)
            priced.append(
                PricedItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    is_offered=item.is_offered,
                    value_cents=quote.unit_price_cents,
                    product_name=quote.name,
                )
            )

        logger.debug("value_snapshot.resolved", lines=len(priced))
        return ValueSnapshot(items=priced, quotes=quotes)
