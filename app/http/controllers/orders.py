"""
Order routes: orders accepted for this app's fulfillment service.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth import get_current_shop
from app.database import get_db
from app.http.dependencies import get_fulfillment_backend, get_shopify_client
from app.models import Order
from app.services.order_fulfillment import fulfill_order, list_orders

logger = logging.getLogger(__name__)
router = APIRouter()


def _order_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "lineItemCount": order.line_item_count,
        "status": order.status.value if order.status else None,
        "trackingNumber": order.tracking_number,
        "trackingUrl": order.tracking_url,
        "trackingCompany": order.tracking_company,
        "lineItems": [
            {"id": li.id, "sku": li.sku, "quantity": li.quantity}
            for li in order.line_items
        ],
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
    }


@router.get("")
async def get_orders(
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
):
    """List the shop's orders, newest first"""
    return {"orders": [_order_dict(o) for o in list_orders(db, shop)]}


@router.post("/{order_id}/fulfill")
async def fulfill(
    order_id: str,
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
    client=Depends(get_shopify_client),
    backend=Depends(get_fulfillment_backend),
):
    """Get tracking from the tracking service and create the Shopify fulfillment"""
    order = await fulfill_order(db, shop, order_id, client, backend)
    return {"success": True, "message": "Order fulfilled", "order": _order_dict(order)}
