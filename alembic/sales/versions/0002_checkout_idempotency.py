"""one sale per checkout and one purchase per (sale, paper)

Revision ID: 0002_checkout_idempotency
Revises: 0001_sales
Create Date: 2026-10-02
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_checkout_idempotency"
down_revision = "0001_sales"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("sales", sa.Column("checkout_request_id", sa.String(length=255), nullable=True))
    op.create_unique_constraint("uq_sales_checkout_request_id", "sales", ["checkout_request_id"])
    op.create_unique_constraint("uq_user_purchase_sale_paper", "user_purchases", ["sale_id", "paper_id"])


def downgrade() -> None:
    op.drop_constraint("uq_user_purchase_sale_paper", "user_purchases", type_="unique")
    op.drop_constraint("uq_sales_checkout_request_id", "sales", type_="unique")
    op.drop_column("sales", "checkout_request_id")
