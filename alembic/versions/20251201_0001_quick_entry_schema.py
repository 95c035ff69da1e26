"""quick entry schema

Revision ID: 20251201_0001
Revises:
Create Date: 2025-12-01 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "20251201_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


wallet_type_enum = postgresql.ENUM("cash", "bank", "credit", "mobile", name="wallettype", create_type=False)
transaction_type_enum = postgresql.ENUM("expense", "income", name="transactiontype", create_type=False)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("timezone('utc', now())"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("timezone('utc', now())"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    wallet_type_enum.create(bind, checkfirst=True)
    transaction_type_enum.create(bind, checkfirst=True)

    op.create_table(
        "categories",
        *_base_columns(),
        sa.Column("ledger", sa.String(length=64), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("parent_code", sa.String(length=32), nullable=True),
        sa.Column("synonyms", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("is_income", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.UniqueConstraint("ledger", "code", name="uq_categories_ledger_code"),
    )
    op.create_index("ix_categories_ledger", "categories", ["ledger"])

    op.create_table(
        "wallets",
        *_base_columns(),
        sa.Column("ledger", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("type", wallet_type_enum, nullable=False),
        sa.Column("synonyms", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("is_default", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
    )
    op.create_index("ix_wallets_ledger", "wallets", ["ledger"])

    op.create_table(
        "transactions",
        *_base_columns(),
        sa.Column("ledger", sa.String(length=64), nullable=False),
        sa.Column("record_id", sa.String(length=40), nullable=False),
        sa.Column("idempotency_key", sa.String(length=191), nullable=False),
        sa.Column("occurred_at", sa.Date(), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("type", transaction_type_enum, nullable=False),
        sa.Column("category_code", sa.String(length=32), nullable=False),
        sa.Column("category_name", sa.String(length=64), nullable=False),
        sa.Column(
            "wallet_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("wallets.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("wallet_name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("original_text", sa.String(length=512), nullable=False),
        sa.Column("source", sa.String(length=32), server_default=sa.text("'quick_entry'"), nullable=False),
        sa.Column("status", sa.String(length=16), server_default=sa.text("'committed'"), nullable=False),
        sa.UniqueConstraint("ledger", "record_id", name="uq_transactions_ledger_record_id"),
        sa.UniqueConstraint(
            "ledger", "idempotency_key", name="uq_transactions_ledger_idempotency_key"
        ),
    )
    op.create_index("ix_transactions_ledger", "transactions", ["ledger"])

    op.create_table(
        "pending_entries",
        *_base_columns(),
        sa.Column("key", sa.String(length=32), nullable=False, unique=True),
        sa.Column("ledger", sa.String(length=64), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_pending_entries_ledger", "pending_entries", ["ledger"])
    op.create_index("ix_pending_entries_expires_at", "pending_entries", ["expires_at"])

    op.create_table(
        "processed_events",
        *_base_columns(),
        sa.Column("key", sa.String(length=191), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_processed_events_expires_at", "processed_events", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_processed_events_expires_at", table_name="processed_events")
    op.drop_table("processed_events")
    op.drop_index("ix_pending_entries_expires_at", table_name="pending_entries")
    op.drop_index("ix_pending_entries_ledger", table_name="pending_entries")
    op.drop_table("pending_entries")
    op.drop_index("ix_transactions_ledger", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_wallets_ledger", table_name="wallets")
    op.drop_table("wallets")
    op.drop_index("ix_categories_ledger", table_name="categories")
    op.drop_table("categories")
    bind = op.get_bind()
    transaction_type_enum.drop(bind, checkfirst=True)
    wallet_type_enum.drop(bind, checkfirst=True)
