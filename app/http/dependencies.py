"""
Shared route dependencies: the current shop's Admin API client and the
fulfillment backend client. Tests swap these through app.dependency_overrides.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from app.auth import get_current_shop
from app.database import get_db
from app.services.fulfillment_gate import FulfillmentBackendClient
from app.services.shopify_graphql import ShopifyAdminClient, get_shop_client


def get_shopify_client(
    shop: str = Depends(get_current_shop),
    db: Session = Depends(get_db),
) -> ShopifyAdminClient:
    return get_shop_client(db, shop)


def get_fulfillment_backend() -> FulfillmentBackendClient:
    return FulfillmentBackendClient()
