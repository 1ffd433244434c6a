"""Initial till schema: agencies, tills, sessions, alerts, tickets, settings

Revision ID: 20261019_till_schema
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_till_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "agencies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("code", sa.String(32), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_agencies_is_active", "agencies", ["is_active"])

    op.create_table(
        "tills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("agency_id", sa.Integer(), sa.ForeignKey("agencies.id"), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("agency_id", "name", name="uq_tills_agency_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_tills_agency_id", "tills", ["agency_id"])
    op.create_index("ix_tills_is_active", "tills", ["is_active"])

    op.create_table(
        "till_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("till_id", sa.Integer(), sa.ForeignKey("tills.id"), nullable=False),
        sa.Column("operator_id", sa.String(64), nullable=False),
        sa.Column("agency_id", sa.Integer(), sa.ForeignKey("agencies.id"), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="OPEN"),
        sa.Column("opening_cash", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("declared_cash", sa.Integer(), nullable=True),
        sa.Column("expected_cash", sa.Integer(), nullable=True),
        sa.Column("difference", sa.Integer(), nullable=True),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint("opening_cash >= 0", name="ck_till_sessions_opening_cash"),
        sa.CheckConstraint(
            "status = 'OPEN' OR (closed_at IS NOT NULL AND declared_cash IS NOT NULL "
            "AND expected_cash IS NOT NULL AND difference IS NOT NULL)",
            name="ck_till_sessions_closed_fields",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_till_sessions_till_id", "till_sessions", ["till_id"])
    op.create_index("ix_till_sessions_operator_id", "till_sessions", ["operator_id"])
    op.create_index("ix_till_sessions_agency_id", "till_sessions", ["agency_id"])
    op.create_index("ix_till_sessions_status", "till_sessions", ["status"])
    op.create_index("ix_till_sessions_opened_at", "till_sessions", ["opened_at"])
    op.create_index("ix_till_sessions_agency_closed_at", "till_sessions", ["agency_id", "closed_at"])

    # Partial unique index: at most one OPEN session per operator
    op.create_index(
        "uq_till_sessions_one_open_per_operator",
        "till_sessions",
        ["operator_id"],
        unique=True,
        sqlite_where=sa.text("status = 'OPEN'"),
        postgresql_where=sa.text("status = 'OPEN'"),
    )

    op.create_table(
        "cash_discrepancy_alerts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("till_sessions.id"), nullable=False, unique=True),
        sa.Column("operator_id", sa.String(64), nullable=False),
        sa.Column("agency_id", sa.Integer(), sa.ForeignKey("agencies.id"), nullable=False),
        sa.Column("difference", sa.Integer(), nullable=False),
        sa.Column("threshold", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("acknowledged_by", sa.String(64), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_cash_discrepancy_alerts_operator_id", "cash_discrepancy_alerts", ["operator_id"])
    op.create_index("ix_cash_discrepancy_alerts_created_at", "cash_discrepancy_alerts", ["created_at"])
    op.create_index("ix_discrepancy_alerts_agency_ack", "cash_discrepancy_alerts", ["agency_id", "acknowledged_at"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("reference", sa.String(64), nullable=True),
        sa.Column("agency_id", sa.Integer(), sa.ForeignKey("agencies.id"), nullable=True),
        sa.Column("seller_id", sa.String(64), nullable=True),
        sa.Column("total_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="paid"),
        sa.Column("sold_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_tickets_agency_id", "tickets", ["agency_id"])
    op.create_index("ix_tickets_status", "tickets", ["status"])
    op.create_index("ix_tickets_seller_sold_at", "tickets", ["seller_id", "sold_at"])

    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(128), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("updated_by", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_app_settings_key", "app_settings", ["key"], unique=True)


def downgrade():
    op.drop_index("ix_app_settings_key", table_name="app_settings")
    op.drop_table("app_settings")

    op.drop_index("ix_tickets_seller_sold_at", table_name="tickets")
    op.drop_index("ix_tickets_status", table_name="tickets")
    op.drop_index("ix_tickets_agency_id", table_name="tickets")
    op.drop_table("tickets")

    op.drop_index("ix_discrepancy_alerts_agency_ack", table_name="cash_discrepancy_alerts")
    op.drop_index("ix_cash_discrepancy_alerts_created_at", table_name="cash_discrepancy_alerts")
    op.drop_index("ix_cash_discrepancy_alerts_operator_id", table_name="cash_discrepancy_alerts")
    op.drop_table("cash_discrepancy_alerts")

    op.drop_index("uq_till_sessions_one_open_per_operator", table_name="till_sessions")
    op.drop_index("ix_till_sessions_agency_closed_at", table_name="till_sessions")
    op.drop_index("ix_till_sessions_opened_at", table_name="till_sessions")
    op.drop_index("ix_till_sessions_status", table_name="till_sessions")
    op.drop_index("ix_till_sessions_agency_id", table_name="till_sessions")
    op.drop_index("ix_till_sessions_operator_id", table_name="till_sessions")
    op.drop_index("ix_till_sessions_till_id", table_name="till_sessions")
    op.drop_table("till_sessions")

    op.drop_index("ix_tills_is_active", table_name="tills")
    op.drop_index("ix_tills_agency_id", table_name="tills")
    op.drop_table("tills")

    op.drop_index("ix_agencies_is_active", table_name="agencies")
    op.drop_table("agencies")
