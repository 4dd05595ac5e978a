"""initial sales schema

Revision ID: 0001_sales
Revises:
Create Date: 2026-09-28
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_sales"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("paper_ids", sa.JSON(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="completed"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_status", "sales", ["status"])

    op.create_table(
        "user_purchases",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("paper_id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("purchased_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_purchases_user_id", "user_purchases", ["user_id"])
    op.create_index("ix_user_purchases_sale_id", "user_purchases", ["sale_id"])


def downgrade() -> None:
    op.drop_index("ix_user_purchases_sale_id", table_name="user_purchases")
    op.drop_index("ix_user_purchases_user_id", table_name="user_purchases")
    op.drop_table("user_purchases")
    op.drop_index("ix_sales_status", table_name="sales")
    op.drop_table("sales")
