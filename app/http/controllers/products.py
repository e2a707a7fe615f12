"""
Product routes: register variants with the fulfillment service and place their inventory.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth import get_current_shop
from app.database import get_db
from app.http.dependencies import get_fulfillment_backend, get_shopify_client
from app.http.requests import RegisterProductsRequest
from app.models import RegisteredProduct
from app.services.errors import NotFoundError
from app.services.inventory_sync import sync_variant_inventory, synchronize
from app.services.product_registry import (
    list_available_products,
    list_registered_products,
    register_products,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _product_dict(p: RegisteredProduct) -> dict:
    return {
        "id": p.id,
        "productId": p.product_id,
        "variantId": p.variant_id,
        "productTitle": p.product_title,
        "variantTitle": p.variant_title,
        "title": p.title,
        "sku": p.sku,
        "fulfillmentServiceId": p.fulfillment_service_id,
        "createdAt": p.created_at.isoformat() if p.created_at else None,
    }


@router.get("")
async def registered_products(
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
):
    """Variants registered with the fulfillment service"""
    return {"products": [_product_dict(p) for p in list_registered_products(db, shop)]}


@router.get("/available")
async def available_products(
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
    client=Depends(get_shopify_client),
):
    """Shop variants that can still be registered"""
    return {"products": await list_available_products(client, db, shop)}


@router.post("")
async def add_products(
    request: RegisterProductsRequest,
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
    client=Depends(get_shopify_client),
):
    """
    Register the selected variants, then move their stock to the fulfillment
    location. Registration stands even if the inventory placement fails.
    """
    records = register_products(db, shop, request.products)
    inventory = await synchronize(
        client,
        db,
        shop,
        [r.variant_id for r in records],
        best_effort=True,
    )
    return {
        "success": True,
        "message": f"{len(records)} product(s) added",
        "products": [_product_dict(r) for r in records],
        "inventory": inventory.to_dict(),
    }


@router.post("/{product_id}/inventory")
async def update_inventory(
    product_id: str,
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
    client=Depends(get_shopify_client),
    backend=Depends(get_fulfillment_backend),
):
    """Recalculate one registered variant's stock and set it at the fulfillment location"""
    product = db.query(RegisteredProduct).filter(
        RegisteredProduct.id == product_id,
        RegisteredProduct.shop == shop,
    ).first()
    if not product:
        raise NotFoundError("Product not found")
    result = await sync_variant_inventory(client, db, shop, product.variant_id, product.sku, backend)
    return {
        "success": True,
        "message": "Inventory updated",
        "variantId": product.variant_id,
        "inventory": result.to_dict(),
    }
