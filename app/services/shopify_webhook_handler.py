"""
Shopify webhook: HMAC verification and event bookkeeping.
Persist event, then hand the payload to order ingestion.
"""
import base64
import hmac
import hashlib
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.models import WebhookEvent
from app.services.order_ingestion import IngestResult, ingest_order_event

logger = logging.getLogger(__name__)

ORDERS_CREATE = "orders/create"


def verify_webhook_hmac(body: bytes, hmac_header: Optional[str], secret: Optional[str]) -> bool:
    """
    Verify X-Shopify-Hmac-Sha256: HMAC-SHA256(raw_body, secret) base64 == header.
    """
    if not secret or not hmac_header or not body:
        return False
    computed = hmac.new(
        secret.encode("utf-8"),
        body,
        hashlib.sha256,
    ).digest()
    computed_b64 = base64.b64encode(computed).decode("utf-8")
    return hmac.compare_digest(computed_b64, hmac_header.strip())


def record_webhook_event(db: Session, shop_domain: str, topic: str, payload: dict) -> WebhookEvent:
    summary = None
    if isinstance(payload, dict) and payload.get("id") is not None:
        summary = f"id={payload.get('id')} name={payload.get('name')}"
    event = WebhookEvent(
        id=str(uuid.uuid4()),
        source="shopify",
        shop_domain=shop_domain,
        topic=topic,
        payload_summary=summary,
    )
    db.add(event)
    db.commit()
    return event


def _finish_event(db: Session, event_id: str, error: Optional[str] = None) -> None:
    event = db.query(WebhookEvent).filter(WebhookEvent.id == event_id).first()
    if not event:
        return
    if error:
        event.error = error[:500]
    else:
        event.processed_at = datetime.now(timezone.utc)
    db.commit()


async def process_order_created(db: Session, shop_domain: str, payload: dict, backend) -> IngestResult:
    """Record the event, run ingestion, and mark the event processed or failed. Errors propagate."""
    event = record_webhook_event(db, shop_domain, ORDERS_CREATE, payload)
    try:
        result = await ingest_order_event(db, shop_domain, payload, backend)
    except Exception as e:
        logger.exception("Webhook %s for %s failed: %s", ORDERS_CREATE, shop_domain, e)
        db.rollback()
        _finish_event(db, event.id, error=str(e))
        raise
    _finish_event(db, event.id)
    logger.info("Webhook %s for %s: %s", ORDERS_CREATE, shop_domain, result.to_dict())
    return result
