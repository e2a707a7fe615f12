"""
Inventory placement for registered variants across the shop's locations.

Stock for a registered variant must live only at the fulfillment service's
location. For each variant the non-fulfilling locations are zeroed first and the
fulfilling location is activated (or set) last, so stock is never sellable from
the wrong location in between.

synchronize() takes the failure policy as a flag:
- best_effort=True (after product registration): errors are logged and collected
  on the result, never raised. Registration has already committed.
- best_effort=False (dashboard "update inventory"): the first error is raised.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from app.services import shopify_queries as q
from app.services.errors import (
    MissingConfigurationError,
    RemoteValidationError,
    ResolutionInconsistencyError,
)
from app.services.shop_setup import get_shop_setup
from app.services.shopify_graphql import shop_gid, user_error_messages

logger = logging.getLogger(__name__)

LOCATIONS_PAGE_SIZE = 50


@dataclass
class InventorySyncResult:
    location_id: Optional[str] = None
    skipped: bool = False
    reason: Optional[str] = None
    zeroed: list = field(default_factory=list)
    activated: list = field(default_factory=list)
    quantities_set: list = field(default_factory=list)
    missing_inventory_items: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "locationId": self.location_id,
            "skipped": self.skipped,
            "reason": self.reason,
            "zeroed": len(self.zeroed),
            "activated": len(self.activated),
            "quantitiesSet": len(self.quantities_set),
            "missingInventoryItems": self.missing_inventory_items,
            "errors": self.errors,
        }


async def get_fulfillment_location(client, fulfillment_service_id: str) -> Optional[str]:
    data = await client.query(q.FULFILLMENT_SERVICE_LOCATION, {"id": fulfillment_service_id})
    return ((data.get("fulfillmentService") or {}).get("location") or {}).get("id")


async def get_inventory_items(client, variant_ids: list[str]) -> dict[str, str]:
    """Variant GID -> inventory item GID, in one nodes() lookup."""
    if not variant_ids:
        return {}
    data = await client.query(q.VARIANT_INVENTORY_ITEMS, {"ids": variant_ids})
    items = {}
    for node in data.get("nodes") or []:
        if node and (node.get("inventoryItem") or {}).get("id"):
            items[node["id"]] = node["inventoryItem"]["id"]
    return items


async def get_locations(client) -> list[dict]:
    """Every location of the shop, following pagination."""
    locations = []
    after = None
    while True:
        variables = {"first": LOCATIONS_PAGE_SIZE}
        if after:
            variables["after"] = after
        data = await client.query(q.LOCATIONS, variables)
        page = data.get("locations") or {}
        locations.extend(page.get("nodes") or [])
        page_info = page.get("pageInfo") or {}
        after = page_info.get("endCursor")
        if not page_info.get("hasNextPage") or not after:
            return locations


async def set_available_quantity(client, inventory_item_id: str, location_id: str, quantity: int, reason: str) -> None:
    data = await client.mutate(q.INVENTORY_SET_QUANTITIES, {
        "input": {
            "name": "available",
            "reason": reason,
            "ignoreCompareQuantity": True,
            "quantities": [{
                "inventoryItemId": inventory_item_id,
                "locationId": location_id,
                "quantity": quantity,
            }],
        },
    })
    messages = user_error_messages(data.get("inventorySetQuantities"))
    if messages:
        raise RemoteValidationError("inventory quantity", messages, action="set")


async def activate_inventory(client, inventory_item_id: str, location_id: str) -> None:
    data = await client.mutate(q.INVENTORY_ACTIVATE, {
        "inventoryItemId": inventory_item_id,
        "locationId": location_id,
    })
    messages = user_error_messages(data.get("inventoryActivate"))
    if messages:
        raise RemoteValidationError("inventory level", messages, action="activate")


async def _place_variant(client, result, inventory_item_id, fulfilling_location, other_locations, quantity):
    for location_id in other_locations:
        await set_available_quantity(client, inventory_item_id, location_id, 0, reason="restock")
        result.zeroed.append((inventory_item_id, location_id))
    if quantity is None:
        await activate_inventory(client, inventory_item_id, fulfilling_location)
        result.activated.append(inventory_item_id)
    else:
        await set_available_quantity(client, inventory_item_id, fulfilling_location, quantity, reason="correction")
        result.quantities_set.append((inventory_item_id, quantity))


async def synchronize(
    client,
    db: Session,
    shop: str,
    variant_ids: list[str],
    *,
    best_effort: bool,
    quantities: Optional[dict[str, int]] = None,
    zero_other_locations: bool = True,
) -> InventorySyncResult:
    """
    Place inventory for variant_ids at the shop's fulfillment service location.

    Variants listed in quantities get that available quantity set at the
    fulfilling location; the others are activated there. With best_effort a
    missing location or inventory item skips quietly and errors are collected
    instead of raised.
    """
    result = InventorySyncResult()
    variant_ids = [shop_gid("ProductVariant", v) for v in variant_ids]
    quantities = {shop_gid("ProductVariant", k): v for k, v in (quantities or {}).items()}
    try:
        setup = get_shop_setup(db, shop)
        if not setup or not setup.fulfillment_service_id:
            raise MissingConfigurationError("Fulfillment service not configured")

        location_id = await get_fulfillment_location(client, setup.fulfillment_service_id)
        if not location_id:
            if best_effort:
                logger.info("Inventory sync for %s deferred: fulfillment service has no location yet", shop)
                result.skipped = True
                result.reason = "Fulfillment location not found"
                return result
            raise ResolutionInconsistencyError("Fulfillment service location not found")
        result.location_id = location_id

        inventory_items = await get_inventory_items(client, variant_ids)
        other_locations = []
        if zero_other_locations:
            other_locations = [loc["id"] for loc in await get_locations(client) if loc.get("id") != location_id]
    except Exception as e:
        if not best_effort:
            raise
        logger.exception("Inventory sync for %s failed before placement: %s", shop, e)
        result.errors.append(str(e))
        return result

    for variant_id in variant_ids:
        inventory_item_id = inventory_items.get(variant_id)
        if not inventory_item_id:
            if not best_effort:
                raise ResolutionInconsistencyError(f"No inventory item found for variant {variant_id}")
            logger.warning("Variant %s has no inventory item; skipping", variant_id)
            result.missing_inventory_items.append(variant_id)
            continue
        try:
            await _place_variant(
                client, result, inventory_item_id, location_id, other_locations, quantities.get(variant_id)
            )
        except Exception as e:
            if not best_effort:
                raise
            # The fulfilling location is never activated for a variant whose zero-out failed.
            logger.exception("Inventory placement failed for variant %s: %s", variant_id, e)
            result.errors.append(f"{variant_id}: {e}")

    logger.info("Inventory sync for %s: %s", shop, result.to_dict())
    return result


async def sync_variant_inventory(client, db: Session, shop: str, variant_id: str, sku: str, calculator) -> InventorySyncResult:
    """
    Dashboard action: set one variant's available quantity at the fulfilling
    location from the calculation service. Every failure is raised.
    """
    setup = get_shop_setup(db, shop)
    if not setup or not setup.fulfillment_service_id:
        raise MissingConfigurationError("Fulfillment service not configured")
    if not sku:
        raise MissingConfigurationError("Variant has no SKU; cannot calculate inventory")
    quantity = await calculator.calculate_inventory(sku)
    logger.info("Calculated inventory for %s (%s): %s", variant_id, sku, quantity)
    return await synchronize(
        client,
        db,
        shop,
        [variant_id],
        best_effort=False,
        quantities={variant_id: quantity},
        zero_other_locations=False,
    )

