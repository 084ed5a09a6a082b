"""Create categories and costs tables.

Revision ID: 20250202_000001
Revises:
Create Date: 2025-02-02 00:00:01.000000
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20250202_000001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("alias", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("account_id", "alias", name="uq_categories_account_alias"),
    )
    op.create_index("ix_categories_account_id", "categories", ["account_id"])

    op.create_table(
        "costs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("amount_minor", sa.BigInteger(), nullable=False),
    )
    op.create_index("ix_costs_category_id", "costs", ["category_id"])
    op.create_index("ix_costs_occurred_at", "costs", ["occurred_at"])


def downgrade() -> None:
    op.drop_index("ix_costs_occurred_at", table_name="costs")
    op.drop_index("ix_costs_category_id", table_name="costs")
    op.drop_table("costs")
    op.drop_index("ix_categories_account_id", table_name="categories")
    op.drop_table("categories")
