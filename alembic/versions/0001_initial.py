"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ("user", "admin", "support")
BID_STATUSES = ("pending", "won", "lost", "outbid")
TRANSACTION_TYPES = (
    "deposit",
    "withdrawal",
    "bid_lock",
    "bid_unlock",
    "bid_forfeit",
    "payment",
    "signup_fee",
    "refund",
)
TRANSACTION_STATUSES = ("pending", "completed", "failed", "reversed")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum(*USER_ROLES, name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("signup_fee_paid", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("signup_fee_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role_active", "users", ["role", "is_active"], unique=False)

    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("total_balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("available_balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("locked_balance", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("total_balance >= 0", name="ck_wallets_total_non_negative"),
        sa.CheckConstraint("available_balance >= 0", name="ck_wallets_available_non_negative"),
        sa.CheckConstraint("locked_balance >= 0", name="ck_wallets_locked_non_negative"),
    )

    op.create_table(
        "bids",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("vehicle_id", sa.String(64), nullable=False),
        sa.Column("max_bid_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.Enum(*BID_STATUSES, name="bidstatus"), nullable=False),
        sa.Column("won_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("deposit_locked", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("deposit_forfeited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_bids_user_status", "bids", ["user_id", "status"], unique=False)
    op.create_index("ix_bids_user_vehicle", "bids", ["user_id", "vehicle_id"], unique=False)

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("wallet_id", sa.Integer, sa.ForeignKey("wallets.id"), nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "type",
            sa.Enum(*TRANSACTION_TYPES, name="wallettransactiontype"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("usd_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(10, 4), nullable=True),
        sa.Column("balance_before", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("bid_id", sa.Integer, sa.ForeignKey("bids.id"), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*TRANSACTION_STATUSES, name="wallettransactionstatus"),
            nullable=False,
        ),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("reference", sa.String(64), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_wallet_transactions_reference", "wallet_transactions", ["reference"], unique=True)
    op.create_index(
        "ix_wallet_transactions_wallet_id_type", "wallet_transactions", ["wallet_id", "type"], unique=False
    )
    op.create_index(
        "ix_wallet_transactions_user_created", "wallet_transactions", ["user_id", "created_at"], unique=False
    )


def downgrade():
    op.drop_index("ix_wallet_transactions_user_created", table_name="wallet_transactions")
    op.drop_index("ix_wallet_transactions_wallet_id_type", table_name="wallet_transactions")
    op.drop_index("ix_wallet_transactions_reference", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")
    op.drop_index("ix_bids_user_vehicle", table_name="bids")
    op.drop_index("ix_bids_user_status", table_name="bids")
    op.drop_table("bids")
    op.drop_table("wallets")
    op.drop_index("ix_users_role_active", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    sa.Enum(name="wallettransactionstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="wallettransactiontype").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="bidstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
