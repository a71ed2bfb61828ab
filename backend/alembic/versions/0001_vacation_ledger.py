"""vacation ledger and approval workflow

Revision ID: 0001
Revises: None
Create Date: 2026-10-18
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "entitlement_account",
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("employee_id"),
    )

    op.create_table(
        "entitlement_period",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("year_index", sa.Integer(), nullable=False),
        sa.Column("days_assigned", sa.Integer(), nullable=False),
        sa.Column("days_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("expiration_date", sa.Date(), nullable=True),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", "year_index", name="uq_period_employee_year"),
        sa.CheckConstraint("days_used >= 0 AND days_used <= days_assigned", name="ck_period_usage_bounds"),
    )
    op.create_index(op.f("ix_entitlement_period_employee_id"), "entitlement_period", ["employee_id"])
    op.create_index(op.f("ix_entitlement_period_expiration_date"), "entitlement_period", ["expiration_date"])

    op.create_table(
        "vacation_request",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("manager_id", sa.Uuid(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("requested_days", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="PENDING"),
        sa.Column("manager_token", sa.String(length=128), nullable=False),
        sa.Column("manager_token_expiry", sa.DateTime(timezone=True), nullable=False),
        sa.Column("manager_token_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manager_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hr_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hr_decided_by", sa.Uuid(), nullable=True),
        sa.Column("decision_note", sa.String(), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_vacation_request_employee_id"), "vacation_request", ["employee_id"])
    op.create_index(op.f("ix_vacation_request_status"), "vacation_request", ["status"])
    op.create_index(op.f("ix_vacation_request_requested_at"), "vacation_request", ["requested_at"])
    op.create_index(op.f("ix_vacation_request_manager_token"), "vacation_request", ["manager_token"], unique=True)
    op.create_index("ix_vacation_request_employee_status", "vacation_request", ["employee_id", "status"])

    op.create_table(
        "entitlement_debit",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("period_id", sa.Uuid(), nullable=False),
        sa.Column("request_id", sa.Uuid(), nullable=False),
        sa.Column("days", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["period_id"], ["entitlement_period.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["request_id"], ["vacation_request.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("request_id", "period_id", name="uq_debit_request_period"),
    )
    op.create_index(op.f("ix_entitlement_debit_employee_id"), "entitlement_debit", ["employee_id"])
    op.create_index(op.f("ix_entitlement_debit_period_id"), "entitlement_debit", ["period_id"])
    op.create_index(op.f("ix_entitlement_debit_request_id"), "entitlement_debit", ["request_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_actor_id", "audit_log", ["actor_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])

    op.create_table(
        "job_lease",
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("owner", sa.String(length=255), nullable=True),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("name"),
    )


def downgrade() -> None:
    op.drop_table("job_lease")
    op.drop_index("ix_audit_log_created_at", table_name="audit_log")
    op.drop_index("ix_audit_log_actor_id", table_name="audit_log")
    op.drop_index("ix_audit_entity", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("entitlement_debit")
    op.drop_table("vacation_request")
    op.drop_table("entitlement_period")
    op.drop_table("entitlement_account")
