"""Initial database schema for the boarding-house backend."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20240101_0001"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _attribution() -> list[sa.Column]:
    return [
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("updated_by", sa.String(100), nullable=True),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        uuid_type = postgresql.UUID(as_uuid=True)
    else:
        uuid_type = sa.CHAR(36)

    cost_status_enum = _enum("cost_status_enum", "active", "inactive")
    room_size_enum = _enum("room_size_enum", "Small", "Standard", "Big")
    room_status_enum = _enum(
        "room_status_enum", "Available", "Occupied", "Reserved", "Maintenance", "Damaged"
    )
    tenancy_status_enum = _enum("tenancy_status_enum", "Waiting", "Active", "Inactive")
    invoice_status_enum = _enum(
        "invoice_status_enum",
        "Draft",
        "Issued",
        "Unpaid",
        "PartiallyPaid",
        "Paid",
        "Void",
        "Cancelled",
    )
    charge_type_enum = _enum("charge_type_enum", "debit", "credit")
    payment_method_enum = _enum(
        "payment_method_enum", "Cash", "Bank Transfer", "Online Payment", "Other"
    )

    op.create_table(
        "boarding_houses",
        sa.Column("boarding_house_id", uuid_type, primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "prices",
        sa.Column("price_id", uuid_type, primary_key=True),
        sa.Column(
            "boarding_house_id",
            uuid_type,
            sa.ForeignKey("boarding_houses.boarding_house_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("room_size", room_size_enum, nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", cost_status_enum, nullable=False, server_default="active"),
        *_attribution(),
        *_timestamps(),
        sa.CheckConstraint("amount >= 0", name="ck_prices_amount_non_negative"),
    )

    op.create_table(
        "rooms",
        sa.Column("room_id", uuid_type, primary_key=True),
        sa.Column(
            "boarding_house_id",
            uuid_type,
            sa.ForeignKey("boarding_houses.boarding_house_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "price_id",
            uuid_type,
            sa.ForeignKey("prices.price_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("room_number", sa.String(50), nullable=False),
        sa.Column("room_status", room_status_enum, nullable=False, server_default="Available"),
        sa.Column("room_size", room_size_enum, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_attribution(),
        *_timestamps(),
        sa.UniqueConstraint(
            "boarding_house_id", "room_number", name="rooms_boarding_house_number_key"
        ),
    )

    for table_name, key_name in (
        ("additional_prices", "additional_price_id"),
        ("other_costs", "other_cost_id"),
    ):
        op.create_table(
            table_name,
            sa.Column(key_name, uuid_type, primary_key=True),
            sa.Column(
                "room_id",
                uuid_type,
                sa.ForeignKey("rooms.room_id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("name", sa.String(150), nullable=True),
            sa.Column("amount", sa.Numeric(14, 2), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", cost_status_enum, nullable=False, server_default="active"),
            *_attribution(),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            ),
            sa.CheckConstraint("amount >= 0", name=f"ck_{table_name}_amount_non_negative"),
        )
        op.create_index(f"{table_name}_room_status_idx", table_name, ["room_id", "status"])

    op.create_table(
        "tenants",
        sa.Column("tenant_id", uuid_type, primary_key=True),
        sa.Column(
            "room_id",
            uuid_type,
            sa.ForeignKey("rooms.room_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False, unique=True),
        sa.Column("id_number", sa.String(50), nullable=False, unique=True),
        sa.Column("id_image_path", sa.String(), nullable=True),
        sa.Column("is_id_copy_done", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tenancy_status", tenancy_status_enum, nullable=False, server_default="Waiting"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("banish_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        *_attribution(),
        *_timestamps(),
    )
    op.create_index("tenants_room_status_idx", "tenants", ["room_id", "tenancy_status"])

    op.create_table(
        "invoices",
        sa.Column("invoice_id", uuid_type, primary_key=True),
        sa.Column(
            "tenant_id",
            uuid_type,
            sa.ForeignKey("tenants.tenant_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "room_id",
            uuid_type,
            sa.ForeignKey("rooms.room_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("banish_date", sa.Date(), nullable=True),
        sa.Column("total_amount_due", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total_amount_paid", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("status", invoice_status_enum, nullable=False, server_default="Issued"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("payment_proof_path", sa.String(), nullable=True),
        *_attribution(),
        *_timestamps(),
        sa.CheckConstraint("period_end >= period_start", name="ck_invoices_valid_period"),
        sa.CheckConstraint("total_amount_due >= 0", name="ck_invoices_amount_due_non_negative"),
        sa.CheckConstraint(
            "total_amount_paid >= 0", name="ck_invoices_amount_paid_non_negative"
        ),
    )
    op.create_index("invoices_tenant_period_end_idx", "invoices", ["tenant_id", "period_end"])
    op.create_index("invoices_issue_date_idx", "invoices", ["issue_date"])
    op.create_index(
        "invoices_tenant_period_start_live_key",
        "invoices",
        ["tenant_id", "period_start"],
        unique=True,
        sqlite_where=sa.text("status <> 'Void'"),
        postgresql_where=sa.text("status <> 'Void'"),
    )

    op.create_table(
        "charges",
        sa.Column("charge_id", uuid_type, primary_key=True),
        sa.Column(
            "invoice_id",
            uuid_type,
            sa.ForeignKey("invoices.invoice_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("transaction_type", charge_type_enum, nullable=False, server_default="debit"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        *_attribution(),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("amount >= 0", name="ck_charges_amount_non_negative"),
    )
    op.create_index("charges_invoice_idx", "charges", ["invoice_id"])

    op.create_table(
        "transactions",
        sa.Column("transaction_id", uuid_type, primary_key=True),
        sa.Column(
            "invoice_id",
            uuid_type,
            sa.ForeignKey("invoices.invoice_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("method", payment_method_enum, nullable=False),
        sa.Column("proof_path", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_attribution(),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("transactions_invoice_idx", "transactions", ["invoice_id"])
    op.create_index("transactions_date_idx", "transactions", ["transaction_date"])

    op.create_table(
        "expenses",
        sa.Column("expense_id", uuid_type, primary_key=True),
        sa.Column(
            "boarding_house_id",
            uuid_type,
            sa.ForeignKey("boarding_houses.boarding_house_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("payment_method", payment_method_enum, nullable=False),
        sa.Column("proof_path", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_attribution(),
        *_timestamps(),
        sa.CheckConstraint("amount >= 0", name="ck_expenses_amount_non_negative"),
    )
    op.create_index(
        "expenses_boarding_house_date_idx", "expenses", ["boarding_house_id", "expense_date"]
    )


def downgrade() -> None:
    op.drop_index("expenses_boarding_house_date_idx", table_name="expenses")
    op.drop_table("expenses")
    op.drop_index("transactions_date_idx", table_name="transactions")
    op.drop_index("transactions_invoice_idx", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("charges_invoice_idx", table_name="charges")
    op.drop_table("charges")
    op.drop_index("invoices_tenant_period_start_live_key", table_name="invoices")
    op.drop_index("invoices_issue_date_idx", table_name="invoices")
    op.drop_index("invoices_tenant_period_end_idx", table_name="invoices")
    op.drop_table("invoices")
    op.drop_index("tenants_room_status_idx", table_name="tenants")
    op.drop_table("tenants")
    for table_name in ("other_costs", "additional_prices"):
        op.drop_index(f"{table_name}_room_status_idx", table_name=table_name)
        op.drop_table(table_name)
    op.drop_table("rooms")
    op.drop_table("prices")
    op.drop_table("boarding_houses")
