from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("society_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("join_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_members_society_id", "members", ["society_id"], unique=False)

    op.create_table(
        "loans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("principal_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("interest_rate_percent_per_month", sa.Numeric(8, 4), nullable=False, server_default="1.0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("remaining_balance", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("disbursed_date", sa.Date(), nullable=True),
        sa.Column("next_due_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_loans_member_id", "loans", ["member_id"], unique=False)
    op.create_index("ix_loans_status", "loans", ["status"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("deposit_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("loan_installment_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("interest_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("fine_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("mode", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("loan_reference_id", sa.Integer(), sa.ForeignKey("loans.id", ondelete="SET NULL"), nullable=True),
        sa.Column("kind", sa.String(length=24), nullable=True),
        sa.Column("needs_review", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_transactions_member_id", "transactions", ["member_id"], unique=False)
    op.create_index("ix_transactions_transaction_date", "transactions", ["transaction_date"], unique=False)
    op.create_index("ix_transactions_loan_reference_id", "transactions", ["loan_reference_id"], unique=False)

    op.create_table(
        "maturity_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("total_deposit", sa.Numeric(14, 2), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("maturity_date", sa.Date(), nullable=False),
        sa.Column("months_completed", sa.Integer(), nullable=False),
        sa.Column("remaining_months", sa.Integer(), nullable=False),
        sa.Column("monthly_interest_rate", sa.Numeric(12, 10), nullable=False),
        sa.Column("current_interest", sa.Numeric(14, 2), nullable=False),
        sa.Column("full_interest", sa.Numeric(14, 2), nullable=False),
        sa.Column("adjusted_interest", sa.Numeric(14, 2), nullable=False),
        sa.Column("loan_adjustment", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("manual_override", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_maturity_records_member_id", "maturity_records", ["member_id"], unique=True)
    op.create_index("ix_maturity_records_maturity_date", "maturity_records", ["maturity_date"], unique=False)
    op.create_index("ix_maturity_records_status", "maturity_records", ["status"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.Column("society_id", sa.Integer(), nullable=True),
        sa.Column("actor", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)
    op.create_index("ix_audit_logs_society_id", "audit_logs", ["society_id"], unique=False)
    op.create_index("ix_audit_logs_actor", "audit_logs", ["actor"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"], unique=False)
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"], unique=False)
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], unique=False)

def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("maturity_records")
    op.drop_table("transactions")
    op.drop_table("loans")
    op.drop_table("members")
