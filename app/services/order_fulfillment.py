"""
Order fulfillment completion: get tracking from the tracking service, create the
Shopify fulfillment for the order's fulfillment order, then mark it FULFILLED.
"""
import logging

from sqlalchemy.orm import Session

from app.models import Order, OrderStatus
from app.services import shopify_queries as q
from app.services.errors import NotFoundError, RemoteValidationError, ResolutionInconsistencyError
from app.services.fulfillment_gate import TrackingInfo
from app.services.order_status import advance_order_status
from app.services.shopify_graphql import shop_gid, user_error_messages

logger = logging.getLogger(__name__)

FULFILLMENT_MESSAGE = "Fulfilled by custom app"
FULFILLABLE_STATUSES = ("OPEN", "IN_PROGRESS")


def list_orders(db: Session, shop: str) -> list[Order]:
    return (
        db.query(Order)
        .filter(Order.shop == shop)
        .order_by(Order.created_at.desc())
        .all()
    )


async def get_fulfillment_order_id(client, order_id: str):
    data = await client.query(q.ORDER_FULFILLMENT_ORDERS, {"id": shop_gid("Order", order_id)})
    """First fulfillment order that can still take a fulfillment; closed or cancelled ones are passed over."""
    edges = (((data.get("order") or {}).get("fulfillmentOrders") or {}).get("edges")) or []
    for edge in edges:
        node = edge.get("node") or {}
        if node.get("status") in FULFILLABLE_STATUSES:
            return node.get("id")
    return None


async def create_shopify_fulfillment(client, fulfillment_order_id: str, tracking: TrackingInfo) -> None:
    data = await client.mutate(q.FULFILLMENT_CREATE, {
        "fulfillment": {
            "notifyCustomer": False,
            "trackingInfo": {
                "company": tracking.carrier,
                "number": tracking.tracking_number,
                "url": tracking.tracking_url,
            },
            "lineItemsByFulfillmentOrder": [{"fulfillmentOrderId": fulfillment_order_id}],
        },
        "message": FULFILLMENT_MESSAGE,
    })
    messages = user_error_messages(data.get("fulfillmentCreate"))
    if messages:
        raise RemoteValidationError("fulfillment", messages, action="create")


async def fulfill_order(db: Session, shop: str, order_id: str, client, backend) -> Order:
    """Fulfill one of the shop's orders. Raises on every failure; the order is only updated at the end."""
    order = db.query(Order).filter(Order.id == str(order_id), Order.shop == shop).first()
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    if order.status == OrderStatus.FULFILLED:
        logger.info("Order %s already fulfilled", order_id)
        return order

    tracking = await backend.issue_tracking(order.id)
    fulfillment_order_id = await get_fulfillment_order_id(client, order.id)
    if not fulfillment_order_id:
        raise ResolutionInconsistencyError("No fulfillment order found in Shopify")

    await create_shopify_fulfillment(client, fulfillment_order_id, tracking)

    order.tracking_number = tracking.tracking_number
    order.tracking_url = tracking.tracking_url
    order.tracking_company = tracking.carrier
    advance_order_status(order, OrderStatus.FULFILLED)
    db.commit()
    logger.info("Order %s fulfilled with tracking %s", order.id, tracking.tracking_number)
    return order
