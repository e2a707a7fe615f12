"""
Stage 1 setup: provision carrier service, fulfillment service and orders/create
webhook for a shop and record their ids on the shop's ShopSetup row.

upsert_shop_setup is the only way ShopSetup is written. Two concurrent setup runs
for the same shop may both create remotely; the resolver's conflict lookup makes
the second one converge on the same ids, and the last upsert wins.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.models import ShopSetup
from app.services.resource_resolver import DEFAULT_CONFIGS, ResourceKind, resolve
from app.services.upsert import dialect_insert

logger = logging.getLogger(__name__)

# Fixed resolution order; the three resources are independent of each other.
RESOLUTION_ORDER = (
    (ResourceKind.WEBHOOK, "order_webhook_id"),
    (ResourceKind.FULFILLMENT_SERVICE, "fulfillment_service_id"),
    (ResourceKind.CARRIER_SERVICE, "carrier_service_id"),
)


def get_shop_setup(db: Session, shop: str) -> Optional[ShopSetup]:
    return db.query(ShopSetup).filter(ShopSetup.shop == shop).populate_existing().first()


def upsert_shop_setup(db: Session, shop: str, **fields) -> ShopSetup:
    """Insert or update the shop's setup row with fields, commit, and return the fresh row."""
    stmt = dialect_insert(db, ShopSetup).values(id=str(uuid.uuid4()), shop=shop, **fields)
    stmt = stmt.on_conflict_do_update(
        index_elements=["shop"],
        set_={**fields, "updated_at": func.now()},
    )
    db.execute(stmt)
    db.commit()
    return get_shop_setup(db, shop)


def provisioned_ids(setup: Optional[ShopSetup]) -> dict:
    return {
        "carrierServiceId": setup.carrier_service_id if setup else None,
        "fulfillmentServiceId": setup.fulfillment_service_id if setup else None,
        "orderWebhookId": setup.order_webhook_id if setup else None,
    }


async def ensure_provisioned(
    db: Session,
    shop: str,
    client,
    configs: Optional[dict[ResourceKind, dict]] = None,
) -> dict:
    """
    Make sure the shop's three remote resources exist and are recorded.

    Already-complete setups return without any network call. Ids resolved by an
    earlier, interrupted run are reused. Each newly resolved id is checkpointed
    immediately; step1_completed is only set once all three are known. Resolver
    errors propagate unchanged.
    """
    setup = get_shop_setup(db, shop)
    if setup and setup.is_provisioned:
        logger.debug("Setup for %s already complete", shop)
        return provisioned_ids(setup)

    ids = {field: getattr(setup, field, None) for _, field in RESOLUTION_ORDER}
    for kind, field in RESOLUTION_ORDER:
        if ids[field]:
            continue
        config = (configs or {}).get(kind) or DEFAULT_CONFIGS[kind]()
        ids[field] = await resolve(client, kind, config)
        upsert_shop_setup(db, shop, **{field: ids[field]})

    setup = upsert_shop_setup(db, shop, step1_completed=True, **ids)
    logger.info("Setup complete for %s: %s", shop, provisioned_ids(setup))
    return provisioned_ids(setup)


def mark_products_registered(db: Session, shop: str) -> ShopSetup:
    return upsert_shop_setup(db, shop, step2_completed=True)


def get_setup_status(db: Session, shop: str) -> dict:
    setup = get_shop_setup(db, shop)
    return {
        "shop": shop,
        "step1Completed": bool(setup and setup.step1_completed),
        "step2Completed": bool(setup and setup.step2_completed),
        **provisioned_ids(setup),
    }
