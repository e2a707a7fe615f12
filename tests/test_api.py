"""
Dashboard API: session-token auth, setup, products and orders.
"""
from conftest import SHOP, auth_headers, register_variant, session_token
from app.models import Order, OrderLineItem, OrderStatus, RegisteredProduct
from app.services.errors import ShopifyAPIError


class TestSessionAuth:
    """Test health check and session-token protection of the dashboard routes"""

    def test_health(self, client):
        """Test health endpoint answers without auth"""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] in ("ok", "degraded")

    def test_dashboard_requires_session_token(self, client):
        """Test dashboard routes reject requests without a bearer token"""
        assert client.get("/api/setup").status_code == 401

    def test_rejects_token_signed_with_other_secret(self, client):
        """Test token signed with a foreign secret is rejected"""
        headers = {"Authorization": f"Bearer {session_token(secret='not-the-app-secret')}"}
        assert client.get("/api/setup", headers=headers).status_code == 401

    def test_rejects_token_for_other_app(self, client):
        """Test token issued for another app's audience is rejected"""
        headers = {"Authorization": f"Bearer {session_token(audience='another-app')}"}
        assert client.get("/api/setup", headers=headers).status_code == 401


class TestSetupApi:
    """Test stage 1 setup routes"""

    def test_setup_status_for_new_shop(self, client):
        """Test a shop with no setup row reports step 1 incomplete"""
        response = client.get("/api/setup", headers=auth_headers())
        assert response.status_code == 200
        assert response.json()["shop"] == SHOP
        assert response.json()["step1Completed"] is False

    def test_run_setup(self, client, shopify):
        """Test running setup returns all three resource ids"""
        shopify.responses.update({
            "WebhookSubscriptionCreate": {"webhookSubscriptionCreate": {"webhookSubscription": {"id": "W1"}, "userErrors": []}},
            "FulfillmentServiceCreate": {"fulfillmentServiceCreate": {"fulfillmentService": {"id": "F1"}, "userErrors": []}},
            "CarrierServiceCreate": {"carrierServiceCreate": {"carrierService": {"id": "C1"}, "userErrors": []}},
        })
        response = client.post("/api/setup", headers=auth_headers())
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "created successfully",
            "carrierServiceId": "C1",
            "fulfillmentServiceId": "F1",
            "orderWebhookId": "W1",
        }
        assert client.get("/api/setup", headers=auth_headers()).json()["step1Completed"] is True

    def test_run_setup_failure_is_structured(self, client, shopify):
        """Test setup failures come back as a success/error body"""
        shopify.responses["WebhookSubscriptionCreate"] = {
            "webhookSubscriptionCreate": {"userErrors": [{"message": "Address is invalid"}]}
        }
        response = client.post("/api/setup", headers=auth_headers())
        assert response.status_code == 422
        assert response.json() == {"success": False, "error": "Failed to create order webhook: Address is invalid"}


class TestProductsApi:
    """Test product registration and inventory routes"""

    def test_register_products_then_sync_inventory(self, client, shopify, provisioned_shop, db_session):
        """Test registering a product places its inventory and rejects a second registration"""
        shopify.responses.update({
            "GetFulfillmentServiceLocation": {"fulfillmentService": {"location": {"id": "gid://shopify/Location/2"}}},
            "VariantInventoryItems": {"nodes": [{"id": "gid://shopify/ProductVariant/1", "inventoryItem": {"id": "gid://shopify/InventoryItem/1"}}]},
            "Locations": {"locations": {"nodes": [{"id": "gid://shopify/Location/1"}, {"id": "gid://shopify/Location/2"}]}},
            "InventorySetQuantities": {"inventorySetQuantities": {"userErrors": []}},
            "InventoryActivate": {"inventoryActivate": {"userErrors": []}},
        })
        body = {"products": [{
            "productId": "gid://shopify/Product/1",
            "variantId": "gid://shopify/ProductVariant/1",
            "productTitle": "Shirt",
            "variantTitle": "Small",
            "sku": "SHIRT-S",
        }]}

        response = client.post("/api/products", json=body, headers=auth_headers())

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["inventory"]["activated"] == 1
        assert data["inventory"]["zeroed"] == 1
        assert db_session.query(RegisteredProduct).count() == 1

        again = client.post("/api/products", json=body, headers=auth_headers())
        assert again.status_code == 409
        assert again.json()["error"] == "This product is already added: Shirt - Small"

    def test_registration_stands_when_inventory_sync_fails(self, client, shopify, provisioned_shop, db_session):
        """Test inventory failures are reported without undoing the registration"""
        shopify.responses["GetFulfillmentServiceLocation"] = ShopifyAPIError("Shopify API GetFulfillmentServiceLocation failed with HTTP 500")
        body = {"products": [{"productId": "gid://shopify/Product/1", "variantId": "gid://shopify/ProductVariant/1"}]}

        response = client.post("/api/products", json=body, headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["inventory"]["errors"]
        assert db_session.query(RegisteredProduct).count() == 1

    def test_list_registered_products(self, client, provisioned_shop, db_session):
        """Test only the calling shop's products are listed"""
        register_variant(db_session, 1, sku="SKU-1")
        register_variant(db_session, 2, shop="other.myshopify.com")
        response = client.get("/api/products", headers=auth_headers())
        assert [p["sku"] for p in response.json()["products"]] == ["SKU-1"]

    def test_update_inventory_for_registered_product(self, client, shopify, backend, provisioned_shop, db_session):
        """Test per-product inventory update uses the calculated quantity"""
        product = register_variant(db_session, 1, sku="ABC")
        shopify.responses.update({
            "GetFulfillmentServiceLocation": {"fulfillmentService": {"location": {"id": "gid://shopify/Location/2"}}},
            "VariantInventoryItems": {"nodes": [{"id": "gid://shopify/ProductVariant/1", "inventoryItem": {"id": "gid://shopify/InventoryItem/1"}}]},
            "InventorySetQuantities": {"inventorySetQuantities": {"userErrors": []}},
        })

        response = client.post(f"/api/products/{product.id}/inventory", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["inventory"]["quantitiesSet"] == 1
        assert backend.inventory_requests == ["ABC"]

    def test_update_inventory_unknown_product(self, client, provisioned_shop):
        """Test unknown product is a 404 with the structured error body"""
        response = client.post("/api/products/does-not-exist/inventory", headers=auth_headers())
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Product not found"}


class TestOrdersApi:
    """Test order listing and fulfillment routes"""

    def test_list_orders_and_fulfill(self, client, shopify, backend, db_session):
        """Test listing orders and fulfilling one end to end"""
        order = Order(id="7001", shop=SHOP, order_number="#7001", line_item_count=2, status=OrderStatus.REQUESTED)
        order.line_items = [
            OrderLineItem(id="1", sku="SKU-1", quantity=1),
            OrderLineItem(id="2", sku="SKU-2", quantity=1),
        ]
        db_session.add(order)
        db_session.commit()
        shopify.responses.update({
            "OrderFulfillmentOrders": {"order": {"fulfillmentOrders": {"edges": [
                {"node": {"id": "gid://shopify/FulfillmentOrder/1", "status": "OPEN"}},
            ]}}},
            "FulfillmentCreate": {"fulfillmentCreate": {"fulfillment": {"id": "gid://shopify/Fulfillment/1"}, "userErrors": []}},
        })

        listed = client.get("/api/orders", headers=auth_headers()).json()["orders"]
        assert [o["id"] for o in listed] == ["7001"]
        assert len(listed[0]["lineItems"]) == 2

        response = client.post("/api/orders/7001/fulfill", headers=auth_headers())
        assert response.status_code == 200
        assert response.json()["order"]["status"] == "FULFILLED"
        assert backend.tracking_requests == ["7001"]

    def test_fulfill_unknown_order_is_404(self, client):
        """Test fulfilling an order the shop does not have is a structured 404"""
        response = client.post("/api/orders/404/fulfill", headers=auth_headers())
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Order 404 not found"}
