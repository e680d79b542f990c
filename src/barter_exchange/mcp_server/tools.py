"""MCP Tool definitions for the Barter Exchange.

These tools expose the vendor side of the negotiation via the Model Context
Protocol, so an AI agent trading on behalf of a vendor can discover and call
them programmatically. The arbiter operations are deliberately not exposed.

Tools:
    - list_trading_partners: Vendors the agent's vendor can trade with
    - list_partner_products: A partner's tradeable products and prices
    - create_barter_offer: Open an offer (DRAFT)
    - send_barter_offer: Send a DRAFT offer
    - respond_to_offer: Accept or reject a received offer
    - counter_barter_offer: Answer a received offer with new terms
    - cancel_barter_offer: Withdraw a DRAFT or SENT offer
    - fulfill_barter_offer: Mark the vendor's side delivered
    - dispute_barter_offer: Escalate an accepted offer to the arbiter
    - get_barter_offer: Offer detail from the vendor's side
    - list_barter_offers: The vendor's offers
    - check_offer_status: Status plus the events allowed from it

The MCP server is mounted into FastAPI at /mcp via app.mount().
Each tool manages its own database session (no FastAPI Depends available).
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from barter_exchange.domain.enums import OfferDirection, OfferStatus
from barter_exchange.domain.exceptions import BarterError, OfferValidationError
from barter_exchange.domain.validation import ItemSpec
from barter_exchange.infrastructure.catalog import SqlPriceOracle, SqlVendorDirectory
from barter_exchange.infrastructure.database.engine import get_session_factory
from barter_exchange.infrastructure.redis_client import idempotency_guard
from barter_exchange.logging_config import bind_actor, get_logger
from barter_exchange.schemas.offers import (
    OfferDetailResponse,
    OfferSummaryResponse,
    ProductResponse,
    VendorResponse,
)
from barter_exchange.services.offer_service import BarterOfferService

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from barter_exchange.infrastructure.database.orm_models import BarterOffer

logger = get_logger(__name__)

# Initialize the MCP server
# This will be mounted into the FastAPI app in main.py
mcp = FastMCP(
    "Barter Exchange",
    json_response=True,
)


async def _run(
    tool: str,
    vendor_id: str,
    action: Callable[[BarterOfferService], Awaitable[dict | list]],
    idempotency_scope: str = "",
    idempotency_key: str | None = None,
) -> dict:
    """Run ``action`` in its own transaction and shape the result for the agent.

    With an ``idempotency_key`` the key stays claimed only if the commit lands.
    """
    bind_actor(vendor_id)
    try:
        async with get_session_factory()() as session:
            svc = BarterOfferService(
                session,
                oracle=SqlPriceOracle(session),
                directory=SqlVendorDirectory(session),
            )
            try:
                async with idempotency_guard(idempotency_scope, idempotency_key):
                    result = await action(svc)
                    await session.commit()
            except Exception:
                await session.rollback()
                raise
    except BarterError as exc:
        logger.warning(f"mcp.{tool}.rejected", code=exc.code, error=exc.message)
        return exc.to_dict()
    except Exception as exc:
        logger.exception(f"mcp.{tool}.error")
        return {"error": "INTERNAL_ERROR", "message": str(exc)}
    return result if isinstance(result, dict) else {"results": result}


async def _detail(svc: BarterOfferService, offer: BarterOffer, vendor_id: str) -> dict:
    projection = await svc.project(offer, vendor_id)
    return OfferDetailResponse.model_validate(projection).model_dump(mode="json")


def _parse_offer_id(offer_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(offer_id)
    except (AttributeError, TypeError, ValueError):
        raise OfferValidationError.for_field(
            "offer_id", f"Not a valid offer ID: {offer_id!r}"
        ) from None


def _item_specs(offered_items: list[dict], requested_items: list[dict]) -> list[ItemSpec]:
    """Turn the agent's item dicts into specs, naming the bad entry on failure."""
    specs: list[ItemSpec] = []
    for side, entries, is_offered in (
        ("offered_items", offered_items, True),
        ("requested_items", requested_items, False),
    ):
        for index, entry in enumerate(entries):
            field = f"{side}[{index}]"
            product_id = entry.get("product_id") if isinstance(entry, dict) else None
            if not product_id:
                raise OfferValidationError.for_field(
                    f"{field}.product_id", "product_id is required"
                )
            try:
                quantity = int(entry.get("quantity", 1))
            except (TypeError, ValueError):
                raise OfferValidationError.for_field(
                    f"{field}.quantity", "quantity must be a whole number"
                ) from None
            specs.append(ItemSpec(str(product_id), quantity, is_offered=is_offered))
    return specs


# ---------------------------------------------------------------------------
# Browsing
# ---------------------------------------------------------------------------


@mcp.tool()
async def list_trading_partners(vendor_id: str) -> dict:
    """List approved, active vendors you can send barter offers to.

    Args:
        vendor_id: The vendor you are acting for.
    """

    async def action(svc: BarterOfferService) -> list:
        records = await svc.list_counterparties(vendor_id)
        return [VendorResponse.model_validate(r).model_dump(mode="json") for r in records]

    return await _run("list_trading_partners", vendor_id, action)


@mcp.tool()
async def list_partner_products(vendor_id: str, partner_vendor_id: str) -> dict:
    """List a partner's tradeable products with their current unit prices (cents).

    Args:
        vendor_id: The vendor you are acting for.
        partner_vendor_id: The vendor whose catalog you want to browse.
    """

    async def action(svc: BarterOfferService) -> list:
        quotes = await svc.list_vendor_products(partner_vendor_id)
        return [ProductResponse.model_validate(q).model_dump(mode="json") for q in quotes]

    return await _run("list_partner_products", vendor_id, action)


# ---------------------------------------------------------------------------
# Negotiation
# ---------------------------------------------------------------------------


@mcp.tool()
async def create_barter_offer(
    vendor_id: str,
    recipient_vendor_id: str,
    offered_items: list[dict],
    requested_items: list[dict],
    cash_gap_cents: int = 0,
    cash_gap_direction: str | None = None,
    message: str | None = None,
    idempotency_key: str | None = None,
) -> dict:
    """Create a barter offer in DRAFT. Call send_barter_offer to deliver it.

    Args:
        vendor_id: The vendor you are acting for (becomes the initiator).
        recipient_vendor_id: The vendor you want to trade with.
        offered_items: Your own products, e.g. [{"product_id": "p1", "quantity": 2}].
        requested_items: The recipient's products you want in exchange.
        cash_gap_cents: Cash added to balance the trade, in cents.
        cash_gap_direction: 'INITIATOR_PAYS' or 'RECIPIENT_PAYS' (required if cash_gap_cents > 0).
        message: Optional note to the recipient.
        idempotency_key: Optional key; a repeated key is refused.

    Returns:
        Offer details including the offer_id you'll need for future calls.
    """

    async def action(svc: BarterOfferService) -> dict:
        offer = await svc.create_offer(
            initiator_vendor_id=vendor_id,
            recipient_vendor_id=recipient_vendor_id,
            items=_item_specs(offered_items, requested_items),
            cash_gap_cents=cash_gap_cents,
            cash_gap_direction=cash_gap_direction,
            message=message,
        )
        return await _detail(svc, offer, vendor_id)

    return await _run(
        "create_barter_offer",
        vendor_id,
        action,
        idempotency_scope=f"create:{vendor_id}",
        idempotency_key=idempotency_key,
    )


@mcp.tool()
async def send_barter_offer(vendor_id: str, offer_id: str) -> dict:
    """Send one of your DRAFT offers to its recipient.

    Args:
        vendor_id: The vendor you are acting for (must be the initiator).
        offer_id: UUID of the offer.
    """

    async def action(svc: BarterOfferService) -> dict:
        offer = await svc.send_offer(_parse_offer_id(offer_id), vendor_id)
        return await _detail(svc, offer, vendor_id)

    return await _run("send_barter_offer", vendor_id, action)


@mcp.tool()
async def respond_to_offer(vendor_id: str, offer_id: str, decision: str) -> dict:
    """Accept or reject an offer you received.

    Args:
        vendor_id: The vendor you are acting for (must be the recipient).
        offer_id: UUID of the offer.
        decision: 'accept' or 'reject'.
    """

    async def action(svc: BarterOfferService) -> dict:
        if decision == "accept":
            offer = await svc.accept_offer(_parse_offer_id(offer_id), vendor_id)
        elif decision == "reject":
            offer = await svc.reject_offer(_parse_offer_id(offer_id), vendor_id)
        else:
            return {"error": "INVALID_DECISION", "message": "decision must be 'accept' or 'reject'"}
        return await _detail(svc, offer, vendor_id)

    return await _run("respond_to_offer", vendor_id, action)


@mcp.tool()
async def counter_barter_offer(
    vendor_id: str,
    offer_id: str,
    offered_items: list[dict],
    requested_items: list[dict],
    cash_gap_cents: int = 0,
    cash_gap_direction: str | None = None,
    message: str | None = None,
    idempotency_key: str | None = None,
) -> dict:
    """Answer an offer you received with your own terms.

    The original offer becomes COUNTERED and a new offer is sent back with
    you as its initiator: offered_items are now YOUR products and
    requested_items the other vendor's.

    Args:
        vendor_id: The vendor you are acting for (recipient of offer_id).
        offer_id: UUID of the offer you are countering.
        offered_items: Your products, e.g. [{"product_id": "p1", "quantity": 1}].
        requested_items: The other vendor's products you want.
        cash_gap_cents: Cash added to balance the trade, in cents.
        cash_gap_direction: 'INITIATOR_PAYS' or 'RECIPIENT_PAYS'.
        message: Optional note.
        idempotency_key: Optional key; a repeated key is refused.
    """

    async def action(svc: BarterOfferService) -> dict:
        counter = await svc.counter_offer(
            _parse_offer_id(offer_id),
            vendor_id,
            items=_item_specs(offered_items, requested_items),
            cash_gap_cents=cash_gap_cents,
            cash_gap_direction=cash_gap_direction,
            message=message,
        )
        return await _detail(svc, counter, vendor_id)

    return await _run(
        "counter_barter_offer",
        vendor_id,
        action,
        idempotency_scope=f"counter:{vendor_id}:{offer_id}",
        idempotency_key=idempotency_key,
    )


@mcp.tool()
async def cancel_barter_offer(vendor_id: str, offer_id: str) -> dict:
    """Withdraw one of your offers while it is still DRAFT or SENT.

    Args:
        vendor_id: The vendor you are acting for (must be the initiator).
        offer_id: UUID of the offer.
    """

    async def action(svc: BarterOfferService) -> dict:
        offer = await svc.cancel_offer(_parse_offer_id(offer_id), vendor_id)
        return await _detail(svc, offer, vendor_id)

    return await _run("cancel_barter_offer", vendor_id, action)


# ---------------------------------------------------------------------------
# Fulfillment and disputes
# ---------------------------------------------------------------------------


@mcp.tool()
async def fulfill_barter_offer(vendor_id: str, offer_id: str) -> dict:
    """Confirm you have delivered your side of an accepted trade.

    When both vendors have confirmed, the offer is COMPLETED.

    Args:
        vendor_id: The vendor you are acting for.
        offer_id: UUID of the offer.
    """

    async def action(svc: BarterOfferService) -> dict:
        offer = await svc.fulfill_offer(_parse_offer_id(offer_id), vendor_id)
        return await _detail(svc, offer, vendor_id)

    return await _run("fulfill_barter_offer", vendor_id, action)


@mcp.tool()
async def dispute_barter_offer(vendor_id: str, offer_id: str, reason: str) -> dict:
    """Escalate an accepted or in-progress trade to the arbiter.

    Args:
        vendor_id: The vendor you are acting for.
        offer_id: UUID of the offer.
        reason: What went wrong, e.g. "goods not received".
    """

    async def action(svc: BarterOfferService) -> dict:
        offer = await svc.raise_dispute(_parse_offer_id(offer_id), vendor_id, reason=reason)
        return await _detail(svc, offer, vendor_id)

    return await _run("dispute_barter_offer", vendor_id, action)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@mcp.tool()
async def get_barter_offer(vendor_id: str, offer_id: str) -> dict:
    """Get an offer's items, totals, counterparty and counter-offer chain.

    Args:
        vendor_id: The vendor you are acting for (must be a party).
        offer_id: UUID of the offer.
    """

    async def action(svc: BarterOfferService) -> dict:
        projection = await svc.get_offer_detail(_parse_offer_id(offer_id), vendor_id)
        return OfferDetailResponse.model_validate(projection).model_dump(mode="json")

    return await _run("get_barter_offer", vendor_id, action)


@mcp.tool()
async def list_barter_offers(
    vendor_id: str,
    status: str | None = None,
    direction: str | None = None,
) -> dict:
    """List your offers, most recently updated first.

    Args:
        vendor_id: The vendor you are acting for.
        status: Optional status filter, e.g. 'SENT'.
        direction: 'sent' (you initiated) or 'received' (sent to you).
    """

    async def action(svc: BarterOfferService) -> list:
        summaries = await svc.list_offers(
            vendor_id,
            status=OfferStatus(status) if status else None,
            direction=OfferDirection(direction) if direction else None,
        )
        return [OfferSummaryResponse.model_validate(s).model_dump(mode="json") for s in summaries]

    return await _run("list_barter_offers", vendor_id, action)


@mcp.tool()
async def check_offer_status(vendor_id: str, offer_id: str) -> dict:
    """Check an offer's status, fulfillment flags and what can happen next.

    Args:
        vendor_id: The vendor you are acting for (must be a party).
        offer_id: UUID of the offer.
    """

    async def action(svc: BarterOfferService) -> dict:
        return await svc.get_status(_parse_offer_id(offer_id), vendor_id)

    return await _run("check_offer_status", vendor_id, action)
