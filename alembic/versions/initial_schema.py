"""Initial schema: shop setup, registered products, orders, integrations, webhook events.

Revision ID: initial_schema
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa


revision = "initial_schema"
down_revision = None
branch_labels = None
depends_on = None

order_status = sa.Enum("CREATED", "REQUESTED", "FULFILLED", name="orderstatus")


def upgrade() -> None:
    op.create_table(
        "shop_setups",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("shop", sa.String(), nullable=False),
        sa.Column("carrier_service_id", sa.String(), nullable=True),
        sa.Column("fulfillment_service_id", sa.String(), nullable=True),
        sa.Column("order_webhook_id", sa.String(), nullable=True),
        sa.Column("step1_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("step2_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shop_setups_shop", "shop_setups", ["shop"], unique=True)

    op.create_table(
        "registered_products",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("shop", sa.String(), nullable=False),
        sa.Column("product_id", sa.String(), nullable=False),
        sa.Column("variant_id", sa.String(), nullable=False),
        sa.Column("product_title", sa.String(), nullable=True),
        sa.Column("variant_title", sa.String(), nullable=True),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("sku", sa.String(), nullable=True),
        sa.Column("fulfillment_service_id", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shop", "product_id", "variant_id", name="registered_products_shop_variant_unique"),
    )
    op.create_index("ix_registered_products_shop", "registered_products", ["shop"])
    op.create_index("ix_registered_products_variant_id", "registered_products", ["variant_id"])
    op.create_index("ix_registered_products_fulfillment_service_id", "registered_products", ["fulfillment_service_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("shop", sa.String(), nullable=False),
        sa.Column("order_number", sa.String(), nullable=True),
        sa.Column("line_item_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", order_status, nullable=False, server_default="CREATED"),
        sa.Column("tracking_number", sa.String(), nullable=True),
        sa.Column("tracking_url", sa.String(), nullable=True),
        sa.Column("tracking_company", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_shop", "orders", ["shop"])

    op.create_table(
        "order_line_items",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("order_id", sa.String(), nullable=False),
        sa.Column("sku", sa.String(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_order_line_items_order_id", "order_line_items", ["order_id"])

    op.create_table(
        "shopify_integrations",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("shop_domain", sa.String(), nullable=False),
        sa.Column("access_token_encrypted", sa.String(), nullable=False),
        sa.Column("scopes", sa.String(), nullable=True),
        sa.Column("installed_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shopify_integrations_shop_domain", "shopify_integrations", ["shop_domain"], unique=True)

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("shop_domain", sa.String(), nullable=True),
        sa.Column("topic", sa.String(), nullable=False),
        sa.Column("payload_summary", sa.String(), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("error", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_webhook_events_source", "webhook_events", ["source"])
    op.create_index("ix_webhook_events_shop_domain", "webhook_events", ["shop_domain"])
    op.create_index("ix_webhook_events_topic", "webhook_events", ["topic"])


def downgrade() -> None:
    op.drop_table("webhook_events")
    op.drop_table("shopify_integrations")
    op.drop_table("order_line_items")
    op.drop_table("orders")
    op.drop_table("registered_products")
    op.drop_table("shop_setups")
    order_status.drop(op.get_bind(), checkfirst=True)
