"""
SQLAlchemy models for shop setup, registered products and fulfillment orders.
All model and enum definitions live here for simplicity and to avoid circular imports.
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum
import uuid

# Enums
class OrderStatus(str, enum.Enum):
    CREATED = "CREATED"
    REQUESTED = "REQUESTED"
    FULFILLED = "FULFILLED"

# Position in the forward-only lifecycle CREATED -> REQUESTED -> FULFILLED
ORDER_STATUS_RANK = {
    OrderStatus.CREATED: 0,
    OrderStatus.REQUESTED: 1,
    OrderStatus.FULFILLED: 2,
}

# Models
class ShopSetup(Base):
    __tablename__ = "shop_setups"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop = Column("shop", String, unique=True, nullable=False, index=True)
    carrier_service_id = Column("carrier_service_id", String, nullable=True)
    fulfillment_service_id = Column("fulfillment_service_id", String, nullable=True)
    order_webhook_id = Column("order_webhook_id", String, nullable=True)
    step1_completed = Column("step1_completed", Boolean, nullable=False, default=False)
    step2_completed = Column("step2_completed", Boolean, nullable=False, default=False)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def is_provisioned(self) -> bool:
        return bool(
            self.step1_completed
            and self.carrier_service_id
            and self.fulfillment_service_id
            and self.order_webhook_id
        )

class RegisteredProduct(Base):
    __tablename__ = "registered_products"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop = Column("shop", String, nullable=False, index=True)
    product_id = Column("product_id", String, nullable=False)
    variant_id = Column("variant_id", String, nullable=False, index=True)
    product_title = Column("product_title", String, nullable=True)
    variant_title = Column("variant_title", String, nullable=True)
    title = Column("title", String, nullable=True)
    sku = Column("sku", String, nullable=True)
    fulfillment_service_id = Column("fulfillment_service_id", String, nullable=False, index=True)
    created_at = Column("created_at", DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("shop", "product_id", "variant_id", name="registered_products_shop_variant_unique"),
    )

class Order(Base):
    __tablename__ = "orders"

    # Remote (Shopify) order id
    id = Column(String, primary_key=True)
    shop = Column("shop", String, nullable=False, index=True)
    order_number = Column("order_number", String, nullable=True)
    line_item_count = Column("line_item_count", Integer, nullable=False, default=0)
    status = Column(SQLEnum(OrderStatus), nullable=False, default=OrderStatus.CREATED)
    tracking_number = Column("tracking_number", String, nullable=True)
    tracking_url = Column("tracking_url", String, nullable=True)
    tracking_company = Column("tracking_company", String, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    line_items = relationship("OrderLineItem", back_populates="order", cascade="all, delete-orphan")

class OrderLineItem(Base):
    __tablename__ = "order_line_items"

    # Remote (Shopify) line item id
    id = Column(String, primary_key=True)
    order_id = Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="line_items")

class ShopifyIntegration(Base):
    __tablename__ = "shopify_integrations"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    shop_domain = Column("shop_domain", String, unique=True, nullable=False, index=True)
    access_token_encrypted = Column("access_token_encrypted", String, nullable=False)
    scopes = Column("scopes", String, nullable=True)
    installed_at = Column("installed_at", DateTime, server_default=func.now())

class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    source = Column("source", String, nullable=False, index=True)
    shop_domain = Column("shop_domain", String, nullable=True, index=True)
    topic = Column("topic", String, nullable=False, index=True)
    payload_summary = Column("payload_summary", String, nullable=True)
    processed_at = Column("processed_at", DateTime, nullable=True)
    error = Column("error", String, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())
