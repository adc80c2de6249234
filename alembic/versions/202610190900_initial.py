"""initial ledger schema with global categories

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from datetime import datetime, timezone

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


GLOBAL_CATEGORIES = [
    (1, "Salary", "income", "💰"),
    (2, "Freelance", "income", "💼"),
    (3, "Investments", "income", "📈"),
    (4, "Food & Dining", "expense", "🍔"),
    (5, "Rent", "expense", "🏠"),
    (6, "Utilities", "expense", "💡"),
    (7, "Transportation", "expense", "🚗"),
    (8, "Entertainment", "expense", "🎮"),
    (9, "Healthcare", "expense", "🏥"),
    (10, "Shopping", "expense", "🛍️"),
]


def upgrade():
    categories = op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64)),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column("icon", sa.String(length=50)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "user_id", "type", "name", name="uq_category_user_type_name"
        ),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False
        ),
        sa.Column("description", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount >= 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("ix_transactions_user_date", "transactions", ["user_id", "date"])
    op.create_index(
        "ix_transactions_user_type_date",
        "transactions",
        ["user_id", "type", "date"],
    )

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    op.bulk_insert(
        categories,
        [
            {
                "id": category_id,
                "user_id": None,
                "name": name,
                "type": txn_type,
                "icon": icon,
                "created_at": now,
                "updated_at": now,
            }
            for category_id, name, txn_type, icon in GLOBAL_CATEGORIES
        ],
    )


def downgrade():
    op.drop_index("ix_transactions_user_type_date", table_name="transactions")
    op.drop_index("ix_transactions_user_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("categories")
