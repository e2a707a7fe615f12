"""
Stage 2: products (variants) the merchant hands over to the fulfillment service.
"""
import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.http.requests.schemas import ProductSelection
from app.models import RegisteredProduct
from app.services import shopify_queries as q
from app.services.errors import DuplicateRegistrationError, MissingConfigurationError
from app.services.shop_setup import get_shop_setup, mark_products_registered

logger = logging.getLogger(__name__)


def flatten_products(data: dict) -> list[dict]:
    """One entry per variant: {productId, variantId, productTitle, variantTitle, title, sku}."""
    flattened = []
    for product in (data.get("products") or {}).get("nodes") or []:
        for variant in (product.get("variants") or {}).get("nodes") or []:
            flattened.append({
                "productId": product.get("id"),
                "variantId": variant.get("id"),
                "productTitle": product.get("title"),
                "variantTitle": variant.get("title"),
                "title": f"{product.get('title')} - {variant.get('title')}",
                "sku": variant.get("sku"),
            })
    return flattened


def list_registered_products(db: Session, shop: str) -> list[RegisteredProduct]:
    return (
        db.query(RegisteredProduct)
        .filter(RegisteredProduct.shop == shop)
        .order_by(RegisteredProduct.created_at)
        .all()
    )


async def list_available_products(client, db: Session, shop: str) -> list[dict]:
    """Shop variants not yet registered."""
    data = await client.query(q.PRODUCTS_WITH_VARIANTS)
    registered = {(p.product_id, p.variant_id) for p in list_registered_products(db, shop)}
    return [p for p in flatten_products(data) if (p["productId"], p["variantId"]) not in registered]


def _find_duplicates(db: Session, shop: str, pairs: list[tuple[str, str]]) -> list[RegisteredProduct]:
    if not pairs:
        return []
    return (
        db.query(RegisteredProduct)
        .filter(
            RegisteredProduct.shop == shop,
            or_(*[
                and_(RegisteredProduct.product_id == product_id, RegisteredProduct.variant_id == variant_id)
                for product_id, variant_id in pairs
            ]),
        )
        .all()
    )


def _display_title(product: RegisteredProduct) -> str:
    return product.title or product.product_title or product.variant_id


def register_products(db: Session, shop: str, selections: list[ProductSelection]) -> list[RegisteredProduct]:
    """
    Register selected variants under the shop's current fulfillment service and
    mark stage 2 complete. Nothing is written if any pair is already registered.
    """
    setup = get_shop_setup(db, shop)
    if not setup or not setup.fulfillment_service_id:
        raise MissingConfigurationError("Please complete Step 1 first.")
    if not selections:
        raise MissingConfigurationError("Please select at least one product.")

    unique: dict[tuple[str, str], ProductSelection] = {}
    for selection in selections:
        unique.setdefault((selection.productId, selection.variantId), selection)

    duplicates = _find_duplicates(db, shop, list(unique))
    if duplicates:
        raise DuplicateRegistrationError([_display_title(d) for d in duplicates])

    records = [
        RegisteredProduct(
            shop=shop,
            product_id=s.productId,
            variant_id=s.variantId,
            product_title=s.productTitle,
            variant_title=s.variantTitle,
            title=s.title or " - ".join(t for t in (s.productTitle, s.variantTitle) if t) or None,
            sku=s.sku,
            fulfillment_service_id=setup.fulfillment_service_id,
        )
        for s in unique.values()
    ]
    db.add_all(records)
    try:
        db.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same pair.
        db.rollback()
        duplicates = _find_duplicates(db, shop, list(unique))
        raise DuplicateRegistrationError([_display_title(d) for d in duplicates] or [s.variantId for s in unique.values()])

    mark_products_registered(db, shop)
    logger.info("Registered %s product variant(s) for %s", len(records), shop)
    return records
