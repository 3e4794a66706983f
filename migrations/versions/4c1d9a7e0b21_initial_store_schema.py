"""initial store schema

Revision ID: 4c1d9a7e0b21
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1d9a7e0b21'
down_revision = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("role IN ('user', 'admin')", name="ck_user_role"),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)

    op.create_table(
        "store_product",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("provider", sa.String(120), nullable=False),
        sa.Column("duration", sa.String(60), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("original_price", sa.Float(), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("logo", sa.String(500), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("price >= 0", name="ck_product_price"),
        sa.CheckConstraint("stock >= 0", name="ck_product_stock"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_rating"),
    )
    op.create_index("ix_store_product_is_active", "store_product", ["is_active"])

    op.create_table(
        "store_order",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("total", sa.Float(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("payment_id", sa.Integer(), nullable=True, unique=True),
        sa.Column("order_date", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("vpn_username", sa.String(255)),
        sa.Column("vpn_password", sa.String(255)),
        sa.Column("vpn_server_info", sa.Text()),
        sa.Column("vpn_expiry_date", sa.DateTime()),
        sa.Column("vpn_delivered_at", sa.DateTime()),
        sa.Column("vpn_delivered_by", sa.String(64)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending_payment', 'payment_submitted', 'verified', 'completed', 'cancelled')",
            name="ck_order_status",
        ),
    )
    op.create_index("ix_store_order_user_id", "store_order", ["user_id"])
    op.create_index("ix_store_order_status", "store_order", ["status"])
    op.create_index("ix_store_order_created_at", "store_order", ["created_at"])

    op.create_table(
        "store_payment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("store_order.id"), nullable=False, unique=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(60), nullable=False),
        sa.Column("transaction_id", sa.String(120), nullable=False, unique=True),
        sa.Column("sender_name", sa.String(120), nullable=False),
        sa.Column("sender_phone", sa.String(40), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("payment_screenshot", sa.String(500)),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("verified_at", sa.DateTime()),
        sa.Column("verified_by", sa.String(64)),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("verification_notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending_verification', 'verified', 'rejected')",
            name="ck_payment_status",
        ),
    )
    op.create_index("ix_store_payment_user_id", "store_payment", ["user_id"])
    op.create_index("ix_store_payment_status", "store_payment", ["status"])
    op.create_index("ix_store_payment_submitted_at", "store_payment", ["submitted_at"])

    op.create_table(
        "store_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("payment_methods", sa.JSON(), nullable=False),
        sa.Column("site_name", sa.String(200)),
        sa.Column("site_description", sa.String(500)),
        sa.Column("contact_email", sa.String(320)),
        sa.Column("contact_phone", sa.String(40)),
        sa.Column("promo_banner_text", sa.Text()),
        sa.Column("promo_banner_enabled", sa.Boolean(), nullable=False),
        sa.Column("maintenance_mode", sa.Boolean(), nullable=False),
        sa.Column("hero_title", sa.String(300)),
        sa.Column("hero_subtitle", sa.String(500)),
        sa.Column("features_title", sa.String(300)),
        sa.Column("features_subtitle", sa.String(500)),
        sa.Column("products_title", sa.String(300)),
        sa.Column("products_subtitle", sa.String(500)),
        sa.Column("testimonials_title", sa.String(300)),
        sa.Column("testimonials_subtitle", sa.String(500)),
        sa.Column("about_us_text", sa.Text()),
        sa.Column("terms_of_service_text", sa.Text()),
        sa.Column("privacy_policy_text", sa.Text()),
        sa.Column("refund_policy_text", sa.Text()),
        sa.Column("faq_content", sa.Text()),
        sa.Column("footer_text", sa.Text()),
        sa.Column("social_links", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )


def downgrade():
    op.drop_table("store_settings")
    op.drop_index("ix_store_payment_submitted_at", table_name="store_payment")
    op.drop_index("ix_store_payment_status", table_name="store_payment")
    op.drop_index("ix_store_payment_user_id", table_name="store_payment")
    op.drop_table("store_payment")
    op.drop_index("ix_store_order_created_at", table_name="store_order")
    op.drop_index("ix_store_order_status", table_name="store_order")
    op.drop_index("ix_store_order_user_id", table_name="store_order")
    op.drop_table("store_order")
    op.drop_index("ix_store_product_is_active", table_name="store_product")
    op.drop_table("store_product")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
