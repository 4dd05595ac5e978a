"""sales rows are immutable apart from the pending status transition

Revision ID: 0003_sale_immutability
Revises: 0002_checkout_idempotency
Create Date: 2026-10-05
"""

from alembic import op


revision = "0003_sale_immutability"
down_revision = "0002_checkout_idempotency"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION prevent_sale_mutation()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            IF TG_OP = 'DELETE' THEN
                RAISE EXCEPTION 'sales rows cannot be deleted';
            END IF;
            IF OLD.status <> 'pending'
               OR NEW.status NOT IN ('completed', 'failed')
               OR (NEW.customer_email, NEW.paper_ids::text, NEW.total_amount, NEW.payment_method)
                  IS DISTINCT FROM
                  (OLD.customer_email, OLD.paper_ids::text, OLD.total_amount, OLD.payment_method) THEN
                RAISE EXCEPTION 'sale % is immutable; only pending -> completed/failed is allowed', OLD.id;
            END IF;
            RETURN NEW;
        END;
        $$;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_sales_immutable
        BEFORE UPDATE OR DELETE ON sales
        FOR EACH ROW
        EXECUTE FUNCTION prevent_sale_mutation();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_sales_immutable ON sales;")
    op.execute("DROP FUNCTION IF EXISTS prevent_sale_mutation();")
