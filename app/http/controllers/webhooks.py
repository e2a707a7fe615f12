"""
Shopify webhook receiver. Public (no session token); HMAC verified.
"""
import json
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.http.dependencies import get_fulfillment_backend
from app.services.shopify_graphql import normalize_shop_domain
from app.services.shopify_webhook_handler import process_order_created, verify_webhook_hmac

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/orders/create")
async def orders_create(
    request: Request,
    db: Session = Depends(get_db),
    backend=Depends(get_fulfillment_backend),
):
    """
    ORDERS_CREATE delivery. Any 200 tells Shopify to stop redelivering, so
    orders that are not ours (or already ingested) still get a 200.
    """
    raw_body = await request.body()
    hmac_header = request.headers.get("X-Shopify-Hmac-Sha256")
    shop_domain = (request.headers.get("X-Shopify-Shop-Domain") or "").strip()
    if not shop_domain:
        logger.warning("Shopify webhook: missing X-Shopify-Shop-Domain")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing shop domain")
    shop = normalize_shop_domain(shop_domain)

    if not settings.SHOPIFY_API_SECRET:
        logger.warning("Shopify webhook: SHOPIFY_API_SECRET not set; rejecting delivery for %s", shop)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="App secret not configured")
    if not verify_webhook_hmac(raw_body, hmac_header, settings.SHOPIFY_API_SECRET):
        logger.warning("Shopify webhook: HMAC verification failed for shop=%s", shop)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")

    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Shopify webhook: invalid JSON %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON")

    try:
        result = await process_order_created(db, shop, payload, backend)
    except ValidationError as e:
        # Redelivery cannot fix a malformed order; acknowledge it.
        logger.warning("Shopify webhook: unusable order payload for %s: %s", shop, e)
        return {"ok": False, "error": "Invalid order payload"}
    return {"ok": True, **result.to_dict()}
