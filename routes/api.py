"""
Central route registration. Dashboard controllers are mounted under /api;
the Shopify webhook receiver under /webhooks (the address registered with Shopify).
"""
import logging
from fastapi import FastAPI

from app.http.controllers import (
    orders,
    products,
    setup,
    webhooks,
)

logger = logging.getLogger(__name__)


def register_routes(app: FastAPI, settings) -> None:
    """Register all routers. Call from main.py after creating the FastAPI app."""
    app.include_router(setup.router, prefix="/api/setup", tags=["setup"])
    app.include_router(products.router, prefix="/api/products", tags=["products"])
    app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
    logger.info("Routes registered; order webhook address %s", settings.ORDER_WEBHOOK_URL)
