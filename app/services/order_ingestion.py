"""
orders/create ingestion: keep only line items for variants registered with the
shop's fulfillment service, record the order once, then ask the fulfillment
backend to take it.

Shopify delivers webhooks at least once. The order is upserted by its Shopify id
and line items are inserted with ON CONFLICT DO NOTHING, so redelivery never
duplicates rows. The order is committed before the backend is called; a backend
outage does not undo ingestion.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.http.requests.schemas import OrderEvent, OrderEventLineItem
from app.models import Order, OrderLineItem, OrderStatus, RegisteredProduct
from app.services.errors import ExternalServiceError
from app.services.fulfillment_gate import FulfillmentDecision
from app.services.order_status import advance_order_status
from app.services.shop_setup import get_shop_setup
from app.services.shopify_graphql import shop_gid
from app.services.upsert import dialect_insert

logger = logging.getLogger(__name__)

INGESTED = "ingested"
SKIPPED = "skipped"


@dataclass
class IngestResult:
    status: str
    order_id: Optional[str] = None
    reason: Optional[str] = None
    owned_line_items: list = field(default_factory=list)
    fulfillment: Optional[FulfillmentDecision] = None
    fulfillment_error: Optional[str] = None

    @property
    def fulfillment_requested(self) -> bool:
        return bool(self.fulfillment and self.fulfillment.accepted)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "orderId": self.order_id,
            "reason": self.reason,
            "ownedLineItems": len(self.owned_line_items),
            "fulfillment": self.fulfillment.to_dict() if self.fulfillment else None,
            "fulfillmentError": self.fulfillment_error,
        }


def owned_variant_ids(db: Session, shop: str, fulfillment_service_id: str) -> set[str]:
    """Variant GIDs the shop registered with its fulfillment service."""
    rows = (
        db.query(RegisteredProduct.variant_id)
        .filter(
            RegisteredProduct.shop == shop,
            RegisteredProduct.fulfillment_service_id == fulfillment_service_id,
        )
        .all()
    )
    return {r[0] for r in rows}


def filter_owned_line_items(line_items: list[OrderEventLineItem], owned: set[str]) -> list[OrderEventLineItem]:
    # Webhook payloads carry numeric variant ids; registrations store GIDs.
    return [
        li for li in line_items
        if li.variant_id is not None and shop_gid("ProductVariant", li.variant_id) in owned
    ]


def _upsert_order(db: Session, shop: str, order_id: str, order_number: Optional[str], count: int) -> None:
    stmt = dialect_insert(db, Order).values(
        id=order_id,
        shop=shop,
        order_number=order_number,
        line_item_count=count,
        status=OrderStatus.CREATED,
    )
    # Status is not part of the update: a redelivered event must not move an order backwards.
    stmt = stmt.on_conflict_do_update(
        index_elements=["id"],
        set_={"order_number": order_number, "line_item_count": count, "updated_at": func.now()},
    )
    db.execute(stmt)


def _insert_line_items(db: Session, order_id: str, line_items: list[OrderEventLineItem]) -> None:
    rows = [
        {"id": str(li.id), "order_id": order_id, "sku": li.sku, "quantity": li.quantity}
        for li in line_items
    ]
    stmt = dialect_insert(db, OrderLineItem).values(rows).on_conflict_do_nothing(index_elements=["id"])
    db.execute(stmt)


async def ingest_order_event(db: Session, shop: str, payload: dict, backend) -> IngestResult:
    """
    Process one orders/create payload for shop.

    Returns a skipped result (no writes) when setup is incomplete or no line item
    is owned. Otherwise the order and its owned line items are committed and the
    fulfillment request is forwarded; an accepted request moves the order to
    REQUESTED. Database errors propagate so the webhook answers non-200.
    """
    event = OrderEvent.model_validate(payload)
    order_id = str(event.id)

    setup = get_shop_setup(db, shop)
    if not setup or not setup.fulfillment_service_id:
        logger.info("Order %s for %s: fulfillment service not configured; skipping", order_id, shop)
        return IngestResult(status=SKIPPED, order_id=order_id, reason="Fulfillment service not configured")

    owned = filter_owned_line_items(event.line_items, owned_variant_ids(db, shop, setup.fulfillment_service_id))
    if not owned:
        logger.info("Order %s for %s: no owned items; skipping", order_id, shop)
        return IngestResult(status=SKIPPED, order_id=order_id, reason="No owned items in order")

    _upsert_order(db, shop, order_id, event.name, len(owned))
    _insert_line_items(db, order_id, owned)
    db.commit()
    logger.info("Order %s (%s) recorded with %s owned line item(s)", order_id, event.name, len(owned))

    result = IngestResult(status=INGESTED, order_id=order_id, owned_line_items=owned)
    order = db.query(Order).filter(Order.id == order_id).populate_existing().first()
    if order.status != OrderStatus.CREATED:
        logger.info("Order %s already %s; not re-requesting fulfillment", order_id, order.status.value)
        return result

    line_items = [{"id": str(li.id), "sku": li.sku, "quantity": li.quantity} for li in owned]
    try:
        decision = await backend.request_fulfillment(order_id, line_items)
    except ExternalServiceError as e:
        logger.warning("Fulfillment request for order %s failed: %s", order_id, e.message)
        result.fulfillment_error = e.message
        return result

    result.fulfillment = decision
    if decision.accepted:
        advance_order_status(order, OrderStatus.REQUESTED)
        db.commit()
    else:
        logger.info("Fulfillment request for order %s rejected: %s", order_id, decision.reason)
    return result
