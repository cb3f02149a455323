"""create catalog, sales, goals and notifications tables

Revision ID: 202610170002
Revises: 202610170001
Create Date: 2026-10-17 09:30:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610170002"
down_revision: str | None = "202610170001"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _reference_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "companies",
        *_reference_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_companies_deleted_at"), "companies", ["deleted_at"])

    op.create_table(
        "technologies",
        *_reference_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_technologies_deleted_at"), "technologies", ["deleted_at"])

    op.create_table(
        "sale_statuses",
        *_reference_columns(),
        sa.Column("color", sa.String(length=16), nullable=True),
        sa.Column("is_final", sa.Boolean(), nullable=False, server_default="false"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_sale_statuses_deleted_at"), "sale_statuses", ["deleted_at"])

    op.create_table(
        "sales",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("client_dni", sa.String(length=32), nullable=False),
        sa.Column("client_phone", sa.String(length=32), nullable=True),
        sa.Column("client_address", sa.String(length=512), nullable=True),
        sa.Column("extra_info", sa.Text(), nullable=True),
        sa.Column("products", sa.JSON(), nullable=False),
        sa.Column("asesor_id", sa.Uuid(), nullable=False),
        sa.Column("company_id", sa.Uuid(), nullable=False),
        sa.Column("company_sold_id", sa.Uuid(), nullable=True),
        sa.Column("technology_id", sa.Uuid(), nullable=True),
        sa.Column("sale_status_id", sa.Uuid(), nullable=True),
        sa.Column("cerrador_id", sa.Uuid(), nullable=True),
        sa.Column("fidelizador_id", sa.Uuid(), nullable=True),
        sa.Column("sale_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["asesor_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["company_sold_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["technology_id"], ["technologies.id"]),
        sa.ForeignKeyConstraint(["sale_status_id"], ["sale_statuses.id"]),
        sa.ForeignKeyConstraint(["cerrador_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["fidelizador_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_asesor_date", "sales", ["asesor_id", "sale_date"])
    op.create_index("ix_sales_company", "sales", ["company_id"])
    op.create_index("ix_sales_status", "sales", ["sale_status_id"])
    op.create_index(op.f("ix_sales_deleted_at"), "sales", ["deleted_at"])

    op.create_table(
        "goals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("goal_type", sa.String(length=16), nullable=False),
        sa.Column("target_user_id", sa.Uuid(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("target_sales", sa.Integer(), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["target_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("goal_type", "target_user_id", "year", "month", name="uq_goals_scope_period"),
    )
    op.create_index("ix_goals_period", "goals", ["year", "month"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("related_entity_type", sa.String(length=64), nullable=True),
        sa.Column("related_entity_id", sa.String(length=64), nullable=True),
        sa.Column("action_url", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_read", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_goals_period", table_name="goals")
    op.drop_table("goals")
    op.drop_index(op.f("ix_sales_deleted_at"), table_name="sales")
    op.drop_index("ix_sales_status", table_name="sales")
    op.drop_index("ix_sales_company", table_name="sales")
    op.drop_index("ix_sales_asesor_date", table_name="sales")
    op.drop_table("sales")
    for table in ("sale_statuses", "technologies", "companies"):
        op.drop_index(op.f(f"ix_{table}_deleted_at"), table_name=table)
        op.drop_table(table)
