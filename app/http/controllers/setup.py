"""
Setup routes: stage 1 provisioning (carrier service, fulfillment service, order webhook).
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth import get_current_shop
from app.database import get_db
from app.http.dependencies import get_shopify_client
from app.services.shop_setup import ensure_provisioned, get_setup_status

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def setup_status(
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
):
    """Which setup stages are complete, plus the stored resource ids."""
    return get_setup_status(db, shop)


@router.post("")
async def run_setup(
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
    client=Depends(get_shopify_client),
):
    """
    Create (or discover) the shop's carrier service, fulfillment service and
    ORDERS_CREATE webhook. Safe to call again; a finished setup is returned as-is.
    """
    ids = await ensure_provisioned(db, shop, client)
    return {"success": True, "message": "created successfully", **ids}
