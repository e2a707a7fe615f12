"""
Fulfillment backend - FastAPI app serving the external collaborators the bridge calls:
fulfillment decisions, inventory calculation, carrier rates and tracking numbers.
Stateless; order status is kept by the bridge.
"""
import logging
import time
from datetime import datetime, timedelta, timezone

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.http.requests import (
    CarrierServiceRequest,
    FulfillmentRequestPayload,
    FulfillOrderPayload,
    InventoryCalculationPayload,
)
from app.services.fulfillment_gate import decide_fulfillment

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

TRACKING_BASE_URL = "https://tracking.example.com/track"
TRACKING_CARRIER = "Custom Fulfillment Carrier"
TRACKING_SERVICE = "Standard Delivery"

# (minimum total quantity, rate); every tier the cart reaches is offered
RATE_TIERS = [
    (1, {"service_name": "Standard Delivery", "service_code": "STANDARD", "description": "Standard delivery",
         "total_price": "0", "min_days": 4, "max_days": 4}),
    (2, {"service_name": "Moderate Delivery", "service_code": "MODERATE", "description": "Moderately fast shipping",
         "total_price": "500", "min_days": 2, "max_days": 3}),
    (3, {"service_name": "Fast Delivery", "service_code": "FAST", "description": "Fastest available shipping",
         "total_price": "1000", "min_days": 1, "max_days": 1}),
]

app = FastAPI(
    title="Fulfillment Backend",
    description="Fulfillment decision, inventory, carrier rate and tracking services",
    version="1.0.0",
)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def calculate_inventory(sku: str) -> int:
    return len(str(sku)) * 2


def build_rates(total_quantity: int, currency: str, now: datetime) -> list[dict]:
    rates = []
    for minimum, tier in RATE_TIERS:
        if total_quantity < minimum:
            break
        rates.append({
            "service_name": tier["service_name"],
            "service_code": tier["service_code"],
            "description": tier["description"],
            "total_price": tier["total_price"],
            "currency": currency,
            "min_delivery_date": (now + timedelta(days=tier["min_days"])).isoformat(),
            "max_delivery_date": (now + timedelta(days=tier["max_days"])).isoformat(),
        })
    return rates


def issue_tracking_number(order_id) -> dict:
    number = f"TRK-{order_id}-{int(time.time() * 1000)}"
    return {
        "tracking_number": number,
        "tracking_url": f"{TRACKING_BASE_URL}/{number}",
        "carrier": TRACKING_CARRIER,
        "service": TRACKING_SERVICE,
    }


@app.get("/")
async def root():
    return {"status": "ok", "service": "fulfillment-backend"}


@app.post("/inventory")
async def inventory(payload: InventoryCalculationPayload):
    """Available quantity for a SKU"""
    if not payload.sku:
        return _error(400, "Missing sku")
    quantity = calculate_inventory(payload.sku)
    logger.info("Inventory for %s: %s", payload.sku, quantity)
    return {"sku": payload.sku, "inventory": quantity}


@app.post("/carrier-service")
async def carrier_service(payload: CarrierServiceRequest):
    """Shopify rate callback: more items unlock faster (paid) services."""
    if not payload.rate or payload.rate.items is None:
        return _error(400, "Invalid payload: missing rate.items")
    total_quantity = sum(item.quantity or 0 for item in payload.rate.items)
    rates = build_rates(total_quantity, payload.rate.currency or "USD", datetime.now(timezone.utc))
    logger.info("Carrier rates for %s item(s): %s", total_quantity, [r["service_code"] for r in rates])
    return {"rates": rates}


@app.post("/request-fulfillment")
async def request_fulfillment(payload: FulfillmentRequestPayload):
    if not payload.orderId or payload.lineItems is None:
        return _error(400, "Missing orderId or lineItems")
    decision = decide_fulfillment(payload.lineItems)
    logger.info("Fulfillment request for order %s: %s", payload.orderId, decision.to_dict())
    return decision.to_dict()


@app.post("/fulfill-order")
async def fulfill_order(payload: FulfillOrderPayload):
    if not payload.orderId:
        return _error(400, "Missing orderId")
    tracking = issue_tracking_number(payload.orderId)
    logger.info("Tracking issued for order %s: %s", payload.orderId, tracking["tracking_number"])
    return tracking


if __name__ == "__main__":
    uvicorn.run(
        "fulfillment_server:app",
        host=settings.HOST,
        port=settings.FULFILLMENT_BACKEND_PORT,
        reload=settings.IS_DEVELOPMENT,
        log_level=settings.LOG_LEVEL.lower(),
    )
