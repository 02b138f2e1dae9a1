"""create coupons, orders and coupon_usages tables

Revision ID: b2d5f8a1c3e6
Revises: a1c4e7f0b2d5
Create Date: 2026-10-19 09:10:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "b2d5f8a1c3e6"
down_revision = "a1c4e7f0b2d5"
branch_labels = None
depends_on = None

ORDER_STATUS_TIMESTAMPS = [
    "confirmed_at",
    "preparing_at",
    "ready_at",
    "out_for_delivery_at",
    "delivered_at",
    "completed_at",
    "cancelled_at",
]

ORDER_AMOUNTS = [
    "loyalty_discount_amount",
    "discount_amount",
    "tax_amount",
    "service_fee",
    "delivery_fee",
    "tip_amount",
]


def _timestamps() -> list[sa.Column]:  # type: ignore[type-arg]
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "coupons",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("merchant_id", sa.String(length=36), nullable=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("discount_type", sa.String(length=20), nullable=False),
        sa.Column("discount_value", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("max_discount_amount", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("min_order_amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("max_uses_per_user", sa.Integer(), nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("times_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "total_discount_given",
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            server_default="0",
        ),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("valid_from <= valid_until", name="ck_coupons_validity_window"),
        sa.CheckConstraint(
            "max_uses IS NULL OR times_used <= max_uses", name="ck_coupons_times_used_cap"
        ),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_coupons_code", "coupons", ["code"], unique=True)
    op.create_index("ix_coupons_merchant_id", "coupons", ["merchant_id"])
    op.create_index("ix_coupons_valid_until", "coupons", ["valid_until"])
    op.create_index("ix_coupons_is_active", "coupons", ["is_active"])

    op.create_table(
        "orders",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("order_number", sa.String(length=50), nullable=False),
        sa.Column("merchant_id", sa.String(length=36), nullable=False),
        sa.Column("customer_id", sa.String(length=255), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("customer_notes", sa.Text(), nullable=True),
        sa.Column("order_type", sa.String(length=20), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("subtotal", sa.Numeric(precision=12, scale=2), nullable=False),
        *[
            sa.Column(name, sa.Numeric(precision=12, scale=2), nullable=False, server_default="0")
            for name in ORDER_AMOUNTS
        ],
        sa.Column("total", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("coupon_id", sa.String(length=36), nullable=True),
        sa.Column("coupon_code", sa.String(length=50), nullable=True),
        sa.Column("commission_rate", sa.Numeric(precision=5, scale=4), nullable=False),
        sa.Column("commission_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("merchant_payout", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("payment_status", sa.String(length=30), nullable=False),
        sa.Column("payment_reference", sa.String(length=255), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "refunded_amount",
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            server_default="0",
        ),
        sa.Column("order_status", sa.String(length=30), nullable=False),
        *[
            sa.Column(name, sa.DateTime(timezone=True), nullable=True)
            for name in ORDER_STATUS_TIMESTAMPS
        ],
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["coupon_id"], ["coupons.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_order_number", "orders", ["order_number"], unique=True)
    for column in (
        "merchant_id",
        "customer_id",
        "order_type",
        "coupon_id",
        "payment_status",
        "order_status",
        "created_at",
    ):
        op.create_index(f"ix_orders_{column}", "orders", [column])

    op.create_table(
        "coupon_usages",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("coupon_id", sa.String(length=36), nullable=False),
        sa.Column("order_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("discount_amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=True,
        ),
        sa.ForeignKeyConstraint(["coupon_id"], ["coupons.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("coupon_id", "order_id", name="uq_coupon_usages_coupon_order"),
    )
    op.create_index("ix_coupon_usages_coupon_id", "coupon_usages", ["coupon_id"])
    op.create_index("ix_coupon_usages_order_id", "coupon_usages", ["order_id"])
    op.create_index("ix_coupon_usages_user_id", "coupon_usages", ["user_id"])


def downgrade() -> None:
    for column in ("user_id", "order_id", "coupon_id"):
        op.drop_index(f"ix_coupon_usages_{column}", table_name="coupon_usages")
    op.drop_table("coupon_usages")

    for column in (
        "created_at",
        "order_status",
        "payment_status",
        "coupon_id",
        "order_type",
        "customer_id",
        "merchant_id",
        "order_number",
    ):
        op.drop_index(f"ix_orders_{column}", table_name="orders")
    op.drop_table("orders")

    for column in ("is_active", "valid_until", "merchant_id", "code"):
        op.drop_index(f"ix_coupons_{column}", table_name="coupons")
    op.drop_table("coupons")
