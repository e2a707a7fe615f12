"""
Pydantic schemas for request/response validation (Http/Requests).
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Union

# Webhook payloads (Shopify REST shape)
class OrderEventLineItem(BaseModel):
    id: Union[int, str]
    variant_id: Optional[Union[int, str]] = None
    sku: Optional[str] = None
    quantity: int = 0

class OrderEvent(BaseModel):
    """orders/create payload; only the fields the pipeline reads."""
    id: Union[int, str]
    name: Optional[str] = None
    line_items: List[OrderEventLineItem] = Field(default_factory=list)

# Product registration
class ProductSelection(BaseModel):
    productId: str
    variantId: str
    productTitle: Optional[str] = None
    variantTitle: Optional[str] = None
    title: Optional[str] = None
    sku: Optional[str] = None

class RegisterProductsRequest(BaseModel):
    products: List[ProductSelection] = Field(default_factory=list)

# Fulfillment backend (external services) payloads
class FulfillmentRequestLineItem(BaseModel):
    id: Union[int, str]
    sku: Optional[str] = None
    quantity: int = 0

class FulfillmentRequestPayload(BaseModel):
    orderId: Optional[Union[int, str]] = None
    lineItems: Optional[List[FulfillmentRequestLineItem]] = None

class InventoryCalculationPayload(BaseModel):
    sku: Optional[str] = None

class FulfillOrderPayload(BaseModel):
    orderId: Optional[Union[int, str]] = None

class CarrierRateItem(BaseModel):
    sku: Optional[str] = None
    quantity: Optional[int] = 0

class CarrierRate(BaseModel):
    currency: Optional[str] = None
    items: Optional[List[CarrierRateItem]] = None

class CarrierServiceRequest(BaseModel):
    """Shopify carrier-service rate callback; unused fields are ignored."""
    rate: Optional[CarrierRate] = None
