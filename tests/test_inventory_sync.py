"""
Inventory placement: zero the other locations first, then activate or set at the
fulfillment service's location.
"""
import asyncio

import pytest

from conftest import SHOP, FULFILLMENT_SERVICE_ID, FakeBackend, FakeShopifyClient
from app.services.errors import MissingConfigurationError, RemoteValidationError, ResolutionInconsistencyError
from app.services.inventory_sync import get_locations, sync_variant_inventory, synchronize

L1, L2, L3 = ("gid://shopify/Location/1", "gid://shopify/Location/2", "gid://shopify/Location/3")
VARIANT = "gid://shopify/ProductVariant/1"
ITEM = "gid://shopify/InventoryItem/100"


def _responses(location=L2, items=None, set_errors=None):
    return {
        "GetFulfillmentServiceLocation": {"fulfillmentService": {"location": {"id": location} if location else None}},
        "VariantInventoryItems": {"nodes": items if items is not None else [{"id": VARIANT, "inventoryItem": {"id": ITEM}}]},
        "Locations": {"locations": {"nodes": [{"id": L1}, {"id": L2}, {"id": L3}]}},
        "InventorySetQuantities": set_errors or {"inventorySetQuantities": {"userErrors": []}},
        "InventoryActivate": {"inventoryActivate": {"userErrors": []}},
    }


def _location_pages(count, per_page):
    """Locations response pages as Shopify returns them, `per_page` nodes each."""
    ids = [f"gid://shopify/Location/{n}" for n in range(1, count + 1)]
    pages = []
    for start in range(0, count, per_page):
        more = start + per_page < count
        pages.append({"locations": {
            "nodes": [{"id": gid} for gid in ids[start:start + per_page]],
            "pageInfo": {"hasNextPage": more, "endCursor": f"cursor-{start + per_page}" if more else None},
        }})
    return ids, pages


def _placements(client):
    """(operation, location) for every inventory mutation, in call order."""
    placements = []
    for name, variables in client.calls:
        if name == "InventorySetQuantities":
            q = variables["input"]["quantities"][0]
            placements.append(("set", q["locationId"], q["quantity"]))
        elif name == "InventoryActivate":
            placements.append(("activate", variables["locationId"], None))
    return placements


class TestBulkInventorySync:
    """Test inventory placement after product registration"""

    def test_bulk_zeroes_other_locations_before_activating(self, db_session, provisioned_shop):
        """Test other locations are zeroed before the fulfillment location is activated"""
        client = FakeShopifyClient(_responses())
        result = asyncio.run(synchronize(client, db_session, SHOP, [VARIANT], best_effort=True))

        assert _placements(client) == [("set", L1, 0), ("set", L3, 0), ("activate", L2, None)]
        assert result.location_id == L2
        assert result.errors == []
        assert client.calls_to("GetFulfillmentServiceLocation")[0] == {"id": FULFILLMENT_SERVICE_ID}

    def test_zeroes_locations_beyond_the_first_page(self, db_session, provisioned_shop):
        """Test every location of a shop with more than one page of locations is zeroed"""
        ids, pages = _location_pages(12, per_page=5)
        responses = _responses(location=ids[0])
        responses["Locations"] = pages
        client = FakeShopifyClient(responses)

        asyncio.run(synchronize(client, db_session, SHOP, [VARIANT], best_effort=True))

        zeroed = [loc for op, loc, _ in _placements(client) if op == "set"]
        assert zeroed == ids[1:]
        assert len(zeroed) == 11
        assert _placements(client)[-1] == ("activate", ids[0], None)
        cursors = [variables.get("after") for variables in client.calls_to("Locations")]
        assert cursors == [None, "cursor-5", "cursor-10"]

    def test_zeroing_uses_available_quantity_and_restock_reason(self, db_session, provisioned_shop):
        """Test zeroing writes the available quantity with the restock reason"""
        client = FakeShopifyClient(_responses())
        asyncio.run(synchronize(client, db_session, SHOP, [VARIANT], best_effort=True))
        first = client.calls_to("InventorySetQuantities")[0]["input"]
        assert first["name"] == "available"
        assert first["reason"] == "restock"
        assert first["quantities"][0]["inventoryItemId"] == ITEM

    def test_numeric_variant_ids_are_converted_to_gids(self, db_session, provisioned_shop):
        """Test numeric variant ids are sent as ProductVariant GIDs"""
        client = FakeShopifyClient(_responses())
        asyncio.run(synchronize(client, db_session, SHOP, ["1"], best_effort=True))
        assert client.calls_to("VariantInventoryItems")[0] == {"ids": [VARIANT]}

    def test_bulk_without_location_is_skipped_quietly(self, db_session, provisioned_shop):
        """Test a fulfillment service without a location skips placement"""
        client = FakeShopifyClient(_responses(location=None))
        result = asyncio.run(synchronize(client, db_session, SHOP, [VARIANT], best_effort=True))
        assert result.skipped is True
        assert _placements(client) == []

    def test_bulk_skips_variants_without_inventory_item(self, db_session, provisioned_shop):
        """Test variants without an inventory item are reported and not placed"""
        client = FakeShopifyClient(_responses(items=[None]))
        result = asyncio.run(synchronize(client, db_session, SHOP, [VARIANT], best_effort=True))
        assert result.missing_inventory_items == [VARIANT]
        assert _placements(client) == []

    def test_bulk_collects_errors_and_never_activates_after_failed_zeroing(self, db_session, provisioned_shop):
        """Test a failed zeroing is collected and blocks activation"""
        errors = {"inventorySetQuantities": {"userErrors": [{"message": "Inventory item is not stocked at location"}]}}
        client = FakeShopifyClient(_responses(set_errors=errors))
        result = asyncio.run(synchronize(client, db_session, SHOP, [VARIANT], best_effort=True))

        assert len(result.errors) == 1
        assert "activate" not in [p[0] for p in _placements(client)]

    def test_bulk_without_setup_reports_error(self, db_session):
        """Test bulk sync before setup reports instead of raising"""
        client = FakeShopifyClient(_responses())
        result = asyncio.run(synchronize(client, db_session, SHOP, [VARIANT], best_effort=True))
        assert result.errors == ["Fulfillment service not configured"]
        assert client.calls == []


class TestStrictInventorySync:
    """Test inventory placement that raises on the first failure"""

    def test_strict_raises_on_missing_location(self, db_session, provisioned_shop):
        """Test a missing fulfillment location raises"""
        client = FakeShopifyClient(_responses(location=None))
        with pytest.raises(ResolutionInconsistencyError):
            asyncio.run(synchronize(client, db_session, SHOP, [VARIANT], best_effort=False))

    def test_strict_raises_on_user_errors(self, db_session, provisioned_shop):
        """Test userErrors raise RemoteValidationError"""
        errors = {"inventorySetQuantities": {"userErrors": [{"message": "Quantity is invalid"}]}}
        client = FakeShopifyClient(_responses(set_errors=errors))
        with pytest.raises(RemoteValidationError):
            asyncio.run(synchronize(client, db_session, SHOP, [VARIANT], best_effort=False))


class TestVariantInventorySync:
    """Test per-variant quantity updates from the calculation service"""

    def test_per_variant_sets_calculated_quantity_at_fulfilling_location(self, db_session, provisioned_shop):
        """Test the calculated quantity is set at the fulfillment location only"""
        client = FakeShopifyClient(_responses())
        backend = FakeBackend(inventory=12)
        result = asyncio.run(sync_variant_inventory(client, db_session, SHOP, VARIANT, "SKU-123", backend))

        assert backend.inventory_requests == ["SKU-123"]
        assert _placements(client) == [("set", L2, 12)]
        assert client.calls_to("InventorySetQuantities")[0]["input"]["reason"] == "correction"
        assert result.quantities_set == [(ITEM, 12)]

    def test_per_variant_requires_setup_before_calculation(self, db_session):
        """Test the calculation service is not called before setup"""
        backend = FakeBackend()
        with pytest.raises(MissingConfigurationError):
            asyncio.run(sync_variant_inventory(FakeShopifyClient(), db_session, SHOP, VARIANT, "SKU-1", backend))
        assert backend.inventory_requests == []

    def test_per_variant_requires_sku(self, db_session, provisioned_shop):
        """Test a variant without SKU cannot be calculated"""
        with pytest.raises(MissingConfigurationError):
            asyncio.run(sync_variant_inventory(FakeShopifyClient(), db_session, SHOP, VARIANT, None, FakeBackend()))


class TestLocations:
    """Test location enumeration"""

    def test_follows_cursor_until_last_page(self):
        """Test all pages are fetched in order"""
        ids, pages = _location_pages(25, per_page=10)
        client = FakeShopifyClient({"Locations": pages})
        locations = asyncio.run(get_locations(client))
        assert [loc["id"] for loc in locations] == ids
        assert len(client.calls_to("Locations")) == 3

    def test_missing_page_info_is_last_page(self):
        """Test a response without pageInfo ends enumeration"""
        client = FakeShopifyClient({"Locations": {"locations": {"nodes": [{"id": L1}]}}})
        assert asyncio.run(get_locations(client)) == [{"id": L1}]
        assert len(client.calls) == 1
