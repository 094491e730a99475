"""initial

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

# Enum columns store member names, matching sqlalchemy.Enum(<PyEnum>) in the models.
SENIORITY = ("INTERN", "JR", "MIDDLE", "SR", "DIRECTOR")
WORK_MODE = ("REMOTE", "HYBRID", "ON_SITE")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.Enum("COMPANY", "VENDOR", "ADMIN", name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role_active", "users", ["role", "is_active"], unique=False)

    op.create_table(
        "credit_accounts",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("balance", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("balance >= 0", name="ck_credit_accounts_balance_non_negative"),
    )
    op.create_index("ix_credit_accounts_user_id", "credit_accounts", ["user_id"], unique=True)

    op.create_table(
        "rate_entries",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("profile", sa.String(100), nullable=False),
        sa.Column("seniority", sa.Enum(*SENIORITY, name="seniority"), nullable=False),
        sa.Column("work_mode", sa.Enum(*WORK_MODE, name="workmode"), nullable=False),
        sa.Column("location", sa.String(120), nullable=True),
        sa.Column("credits", sa.Integer, nullable=False),
        sa.Column("min_salary", sa.Integer, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("credits >= 0", name="ck_rate_entries_credits_non_negative"),
    )
    op.create_index(
        "ix_rate_entries_lookup",
        "rate_entries",
        ["profile", "seniority", "work_mode", "is_active"],
        unique=False,
    )
    op.create_index(
        "uq_rate_entries_active_tuple",
        "rate_entries",
        ["profile", "seniority", "work_mode", sa.text("coalesce(location, '')")],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "job_postings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("owner_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("location", sa.String(120), nullable=True),
        sa.Column("profile", sa.String(100), nullable=False),
        sa.Column("seniority", postgresql.ENUM(*SENIORITY, name="seniority", create_type=False), nullable=False),
        sa.Column("work_mode", postgresql.ENUM(*WORK_MODE, name="workmode", create_type=False), nullable=False),
        sa.Column("salary_min", sa.Integer, nullable=True),
        sa.Column("salary_max", sa.Integer, nullable=True),
        sa.Column(
            "status",
            sa.Enum("DRAFT", "ACTIVE", "PAUSED", "CLOSED", name="jobstatus"),
            nullable=False,
            server_default="DRAFT",
        ),
        sa.Column("credit_cost", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rate_entry_id", sa.Integer, sa.ForeignKey("rate_entries.id"), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("editable_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_reason", sa.Enum("SUCCESS", "CANCELLED", name="closedreason"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_job_postings_owner_status", "job_postings", ["owner_id", "status"], unique=False)
    op.create_index("ix_job_postings_pricing", "job_postings", ["profile", "seniority", "work_mode"], unique=False)

    op.create_table(
        "credit_packages",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(64), nullable=False, unique=True),
        sa.Column("credits", sa.Integer, nullable=False),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("credits > 0", name="ck_credit_packages_credits_positive"),
        sa.CheckConstraint("price >= 0", name="ck_credit_packages_price_non_negative"),
    )

    op.create_table(
        "discount_codes",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("owner_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("discount_percent", sa.Integer, nullable=False, server_default="10"),
        sa.Column("commission_percent", sa.Integer, nullable=False, server_default="10"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("discount_percent BETWEEN 0 AND 100", name="ck_discount_codes_discount_percent"),
        sa.CheckConstraint("commission_percent BETWEEN 0 AND 100", name="ck_discount_codes_commission_percent"),
    )
    op.create_index("ix_discount_codes_code", "discount_codes", ["code"], unique=True)

    op.create_table(
        "credit_purchases",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("package_id", sa.Integer, sa.ForeignKey("credit_packages.id"), nullable=False),
        sa.Column("credits", sa.Integer, nullable=False),
        sa.Column("original_price", sa.Integer, nullable=False),
        sa.Column("discount_amount", sa.Integer, nullable=False, server_default="0"),
        sa.Column("final_price", sa.Integer, nullable=False),
        sa.Column("discount_code_id", sa.Integer, sa.ForeignKey("discount_codes.id"), nullable=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "PAID", "FAILED", name="purchasestatus"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("payment_reference", sa.String(64), nullable=True),
        sa.Column("failure_reason", sa.String(255), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_credit_purchases_user_status", "credit_purchases", ["user_id", "status"], unique=False)
    op.create_index("ix_credit_purchases_payment_reference", "credit_purchases", ["payment_reference"], unique=False)

    op.create_table(
        "credit_transactions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("account_id", sa.Integer, sa.ForeignKey("credit_accounts.id"), nullable=False),
        sa.Column("kind", sa.Enum("PURCHASE", "SPEND", "REFUND", name="credittransactionkind"), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("balance_before", sa.Integer, nullable=False),
        sa.Column("balance_after", sa.Integer, nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("job_id", sa.Integer, sa.ForeignKey("job_postings.id"), nullable=True),
        sa.Column("purchase_id", sa.Integer, sa.ForeignKey("credit_purchases.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("balance_after = balance_before + amount", name="ck_credit_transactions_running_balance"),
        sa.CheckConstraint("balance_after >= 0", name="ck_credit_transactions_balance_after_non_negative"),
    )
    op.create_index("ix_credit_transactions_account_id_id", "credit_transactions", ["account_id", "id"], unique=False)
    op.create_index("ix_credit_transactions_job_id", "credit_transactions", ["job_id"], unique=False)
    op.create_index("ix_credit_transactions_purchase_id", "credit_transactions", ["purchase_id"], unique=False)

    op.create_table(
        "discount_code_uses",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("code_id", sa.Integer, sa.ForeignKey("discount_codes.id"), nullable=False),
        sa.Column("purchase_id", sa.Integer, sa.ForeignKey("credit_purchases.id"), nullable=False, unique=True),
        sa.Column("original_price", sa.Integer, nullable=False),
        sa.Column("discount_amount", sa.Integer, nullable=False),
        sa.Column("final_price", sa.Integer, nullable=False),
        sa.Column("commission_amount", sa.Integer, nullable=False),
        sa.Column(
            "commission_status",
            sa.Enum("PENDING", "PAID", name="commissionstatus"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("payment_due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("proof_url", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_discount_code_uses_code_status",
        "discount_code_uses",
        ["code_id", "commission_status"],
        unique=False,
    )


def downgrade():
    op.drop_index("ix_discount_code_uses_code_status", table_name="discount_code_uses")
    op.drop_table("discount_code_uses")
    op.drop_index("ix_credit_transactions_purchase_id", table_name="credit_transactions")
    op.drop_index("ix_credit_transactions_job_id", table_name="credit_transactions")
    op.drop_index("ix_credit_transactions_account_id_id", table_name="credit_transactions")
    op.drop_table("credit_transactions")
    op.drop_index("ix_credit_purchases_payment_reference", table_name="credit_purchases")
    op.drop_index("ix_credit_purchases_user_status", table_name="credit_purchases")
    op.drop_table("credit_purchases")
    op.drop_index("ix_discount_codes_code", table_name="discount_codes")
    op.drop_table("discount_codes")
    op.drop_table("credit_packages")
    op.drop_index("ix_job_postings_pricing", table_name="job_postings")
    op.drop_index("ix_job_postings_owner_status", table_name="job_postings")
    op.drop_table("job_postings")
    op.drop_index("uq_rate_entries_active_tuple", table_name="rate_entries")
    op.drop_index("ix_rate_entries_lookup", table_name="rate_entries")
    op.drop_table("rate_entries")
    op.drop_index("ix_credit_accounts_user_id", table_name="credit_accounts")
    op.drop_table("credit_accounts")
    op.drop_index("ix_users_role_active", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    for enum_name in (
        "commissionstatus",
        "credittransactionkind",
        "purchasestatus",
        "closedreason",
        "jobstatus",
        "workmode",
        "seniority",
        "userrole",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
