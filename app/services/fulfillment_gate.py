"""
Fulfillment backend: the decision rule for fulfillment requests and the HTTP client
for the external decision, inventory-calculation and tracking services.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.config import settings
from app.services.errors import CalculationServiceError, ExternalServiceError
from app.services.http_client import post_no_retry

logger = logging.getLogger(__name__)

MIN_LINE_ITEMS_EXCLUSIVE = 1
REJECTION_REASON = "Fulfillment requires more than one line item"


@dataclass
class FulfillmentDecision:
    accepted: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"accepted": self.accepted}
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class TrackingInfo:
    tracking_number: str
    tracking_url: Optional[str]
    carrier: str
    service: Optional[str] = None


def decide_fulfillment(line_items: list) -> FulfillmentDecision:
    """A request is accepted only when it carries more than one line item."""
    if len(line_items or []) <= MIN_LINE_ITEMS_EXCLUSIVE:
        return FulfillmentDecision(accepted=False, reason=REJECTION_REASON)
    return FulfillmentDecision(accepted=True)


class FulfillmentBackendClient:
    """Calls the fulfillment backend (request-fulfillment, inventory, fulfill-order)."""

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.FULFILLMENT_BACKEND_URL).rstrip("/")
        self.transport = transport

    async def _post(self, path: str, payload: dict) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = await post_no_retry(url, json=payload, transport=self.transport)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"{path} unreachable: {e}") from e
        if response.status_code >= 400:
            logger.warning("Fulfillment backend %s -> %s %s", path, response.status_code, response.text[:200])
            raise ExternalServiceError(f"{path} failed with HTTP {response.status_code}", status=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(f"{path} returned invalid JSON") from e

    async def request_fulfillment(self, order_id: str, line_items: list[dict[str, Any]]) -> FulfillmentDecision:
        data = await self._post("/request-fulfillment", {"orderId": order_id, "lineItems": line_items})
        return FulfillmentDecision(accepted=bool(data.get("accepted")), reason=data.get("reason"))

    async def calculate_inventory(self, sku: str) -> int:
        try:
            data = await self._post("/inventory", {"sku": sku})
        except ExternalServiceError as e:
            raise CalculationServiceError(f"Inventory API failed: {e.message}", status=e.status) from e
        quantity = data.get("inventory")
        if quantity is None:
            raise CalculationServiceError("Inventory API failed: no inventory in response")
        return int(quantity)

    async def issue_tracking(self, order_id: str) -> TrackingInfo:
        data = await self._post("/fulfill-order", {"orderId": order_id})
        number = data.get("tracking_number")
        if not number:
            raise ExternalServiceError("Tracking service returned no tracking number")
        return TrackingInfo(
            tracking_number=number,
            tracking_url=data.get("tracking_url"),
            carrier=data.get("carrier") or "",
            service=data.get("service"),
        )
