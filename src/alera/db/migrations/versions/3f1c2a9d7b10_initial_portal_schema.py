"""initial portal schema

Accounts, billing, wallet, fans, landing pages and the assistant inbox.

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:12:44.120511
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONB = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
MONEY = sa.Numeric(12, 2)


def _ts(name: str, nullable: bool = True, default: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=sa.func.now() if default else None,
    )


def upgrade() -> None:
    # ─── Accounts ────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("artist_name", sa.String(255)),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verification_token", sa.String(255), index=True),
        sa.Column("phone_number", sa.String(50)),
        sa.Column("country", sa.String(100)),
        sa.Column("address_line_1", sa.String(255)),
        sa.Column("address_line_2", sa.String(255)),
        sa.Column("city", sa.String(100)),
        sa.Column("state_province", sa.String(100)),
        sa.Column("postal_code", sa.String(20)),
        sa.Column("company_name", sa.String(255)),
        sa.Column("tax_id", sa.String(100)),
        sa.Column("business_email", sa.String(255)),
        sa.Column("business_phone", sa.String(50)),
        sa.Column("business_address_line_1", sa.String(255)),
        sa.Column("business_address_line_2", sa.String(255)),
        sa.Column("business_city", sa.String(100)),
        sa.Column("business_state_province", sa.String(100)),
        sa.Column("business_postal_code", sa.String(20)),
        sa.Column("business_country", sa.String(100)),
        _ts("created_at", default=True),
        _ts("updated_at", default=True),
        _ts("last_active_at"),
    )

    op.create_table(
        "login_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        _ts("login_time", default=True),
        sa.Column("ip_address", sa.String(64)),
        sa.Column("user_agent", sa.Text()),
        sa.Column("device_type", sa.String(20)),
        sa.Column("browser", sa.String(50)),
        sa.Column("location", sa.String(255)),
        sa.Column("status", sa.String(20), nullable=False),
    )
    op.create_index("idx_login_history_user_time", "login_history", ["user_id", "login_time"])

    # ─── Billing ─────────────────────────────────────────
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False, unique=True,
        ),
        sa.Column("tier", sa.String(20), nullable=False, server_default="trial"),
        sa.Column("status", sa.String(30), nullable=False, server_default="active"),
        _ts("trial_expires_at"),
        _ts("subscription_expires_at"),
        sa.Column("stripe_customer_id", sa.String(255), index=True),
        sa.Column("stripe_subscription_id", sa.String(255), index=True),
        sa.Column("free_release_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at", default=True),
        _ts("updated_at", default=True),
    )

    op.create_table(
        "subscription_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("event_data", JSONB, nullable=False),
        _ts("created_at", default=True),
    )

    op.create_table(
        "billing_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _ts("transaction_date", default=True),
        sa.Column("amount", MONEY, nullable=False, server_default="0"),
        sa.Column("transaction_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("reference_id", sa.String(255)),
        sa.Column("payment_method", sa.String(50)),
    )
    op.create_index("idx_billing_history_user_date", "billing_history", ["user_id", "transaction_date"])

    # ─── Wallet ──────────────────────────────────────────
    op.create_table(
        "streaming_earnings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("artist_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _ts("reporting_month"),
        _ts("sale_month", nullable=False),
        sa.Column("platform", sa.String(100), nullable=False),
        sa.Column("artist_name", sa.String(255)),
        sa.Column("title", sa.String(500)),
        sa.Column("isrc", sa.String(20)),
        sa.Column("upc", sa.String(20)),
        sa.Column("quantity", sa.Integer()),
        sa.Column("song_album", sa.String(20)),
        sa.Column("country_of_sale", sa.String(10)),
        sa.Column("amount_usd", MONEY, nullable=False, server_default="0"),
        _ts("created_at", default=True),
    )
    op.create_index(
        "idx_streaming_earnings_artist_month", "streaming_earnings", ["artist_id", "reporting_month"]
    )

    op.create_table(
        "withdrawal_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("artist_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount_requested", MONEY, nullable=False),
        sa.Column("method", sa.String(100), nullable=False),
        sa.Column("account_details", sa.Text()),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _ts("created_at", default=True),
        _ts("updated_at", default=True),
        _ts("processed_at"),
        sa.Column("processed_by", sa.Integer(), sa.ForeignKey("users.id")),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'completed')",
            name="ck_withdrawal_requests_status",
        ),
    )
    op.create_index("idx_withdrawals_artist_status", "withdrawal_requests", ["artist_id", "status"])

    op.create_table(
        "payout_methods",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "artist_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False, unique=True,
        ),
        sa.Column("method", sa.String(100), nullable=False),
        sa.Column("account_info", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _ts("created_at", default=True),
        _ts("updated_at", default=True),
    )

    op.create_table(
        "admin_action_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("admin_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("details", JSONB, nullable=False),
        _ts("created_at", default=True),
    )

    # ─── Fans and landing pages ──────────────────────────
    op.create_table(
        "landing_pages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "artist_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False, unique=True,
        ),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("page_config", JSONB, nullable=False),
        _ts("created_at", default=True),
    )

    op.create_table(
        "fans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("artist_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone_number", sa.String(50)),
        sa.Column("country", sa.String(100)),
        sa.Column("gender", sa.String(20)),
        sa.Column("age", sa.Integer()),
        sa.Column("birth_year", sa.Integer()),
        sa.Column("subscribed_status", sa.String(20), nullable=False, server_default="free"),
        sa.Column("source", sa.String(50), nullable=False, server_default="manual"),
        _ts("created_at", default=True),
        _ts("updated_at", default=True),
    )
    op.create_index("idx_fans_artist_email", "fans", ["artist_id", "email"])

    op.create_table(
        "email_campaigns",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("artist_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("link", sa.Text()),
        sa.Column("audience_filter", JSONB, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        _ts("sent_at"),
        _ts("created_at", default=True),
    )

    op.create_table(
        "campaign_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "campaign_id", sa.Integer(),
            sa.ForeignKey("email_campaigns.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("fan_id", sa.Integer(), sa.ForeignKey("fans.id", ondelete="SET NULL")),
        sa.Column("email", sa.String(255), nullable=False),
        _ts("sent_at", default=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="sent"),
    )

    # ─── Assistant inbox ─────────────────────────────────
    op.create_table(
        "ai_chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_user_message", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_unread", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at", default=True),
    )
    op.create_index("idx_ai_chat_messages_user_unread", "ai_chat_messages", ["user_id", "is_unread"])


def downgrade() -> None:
    op.drop_table("ai_chat_messages")
    op.drop_table("campaign_logs")
    op.drop_table("email_campaigns")
    op.drop_table("fans")
    op.drop_table("landing_pages")
    op.drop_table("admin_action_logs")
    op.drop_table("payout_methods")
    op.drop_table("withdrawal_requests")
    op.drop_table("streaming_earnings")
    op.drop_table("billing_history")
    op.drop_table("subscription_events")
    op.drop_table("subscriptions")
    op.drop_table("login_history")
    op.drop_table("users")
