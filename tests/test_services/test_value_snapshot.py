"""Tests for the Value Snapshot Resolver against an in-memory Price Oracle."""

from dataclasses import replace

import pytest
from conftest import offered, requested

from barter_exchange.domain.exceptions import ProductNotFoundError, ProductUnavailableError
from barter_exchange.services.value_snapshot import ValueSnapshotResolver


class TestResolve:
    @pytest.mark.asyncio
    async def test_freezes_current_unit_price(self, price_oracle) -> None:
        resolver = ValueSnapshotResolver(price_oracle)
        snapshot = await resolver.resolve(
            [offered("alpha-honey", 2), requested("beta-bread")]
        )

        assert [(i.product_id, i.value_cents, i.quantity) for i in snapshot.items] == [
            ("alpha-honey", 1000, 2),
            ("beta-bread", 1500, 1),
        ]
        assert snapshot.offered_total_cents == 2000
        assert snapshot.requested_total_cents == 1500

    @pytest.mark.asyncio
    async def test_captures_product_name_with_value(self, price_oracle) -> None:
        snapshot = await ValueSnapshotResolver(price_oracle).resolve([offered("alpha-eggs")])
        assert snapshot.items[0].product_name == "Free-range Eggs"

    @pytest.mark.asyncio
    async def test_one_batch_lookup_per_item_set(self, price_oracle) -> None:
        resolver = ValueSnapshotResolver(price_oracle)
        await resolver.resolve([offered("alpha-honey"), offered("alpha-eggs"), requested("beta-bread")])
        assert price_oracle.lookups == 1

    @pytest.mark.asyncio
    async def test_quotes_returned_for_ownership_checks(self, price_oracle) -> None:
        snapshot = await ValueSnapshotResolver(price_oracle).resolve([requested("beta-bread")])
        assert snapshot.quotes["beta-bread"].owner_vendor_id == "vendor-beta"

    @pytest.mark.asyncio
    async def test_snapshot_does_not_follow_later_price_changes(self, price_oracle) -> None:
        snapshot = await ValueSnapshotResolver(price_oracle).resolve([offered("alpha-honey")])
        price_oracle.quotes["alpha-honey"] = replace(
            price_oracle.quotes["alpha-honey"], unit_price_cents=9999
        )
        assert snapshot.items[0].value_cents == 1000


class TestResolveErrors:
    @pytest.mark.asyncio
    async def test_unknown_product(self, price_oracle) -> None:
        with pytest.raises(ProductNotFoundError) as exc_info:
            await ValueSnapshotResolver(price_oracle).resolve(
                [offered("alpha-honey"), requested("no-such-thing")]
            )
        assert exc_info.value.product_id == "no-such-thing"
        assert exc_info.value.message == "Product no-such-thing not found"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("product_id", ["alpha-paused", "alpha-retired"])
    async def test_untradeable_product(self, price_oracle, product_id: str) -> None:
        with pytest.raises(ProductUnavailableError, match="is not available"):
            await ValueSnapshotResolver(price_oracle).resolve([offered(product_id)])
