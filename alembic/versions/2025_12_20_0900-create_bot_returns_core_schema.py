"""create_bot_returns_core_schema

Revision ID: create_bot_returns_core_20251220
Revises:
Create Date: 2025-12-20 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_bot_returns_core_20251220'
down_revision = None
branch_labels = None
depends_on = None

AUDIT_KINDS = ('deposit', 'withdrawal', 'bot_allocation', 'bot_return', 'bot_return_credit')


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # users
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'SUSPENDED', name='user_status'), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('other_names', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    # wallets (one row per user, three buckets)
    op.create_table(
        'wallets',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('available_balance', sa.Numeric(24, 8), nullable=False, server_default='0'),
        sa.Column('locked_balance', sa.Numeric(24, 8), nullable=False, server_default='0'),
        sa.Column('returns_balance', sa.Numeric(24, 8), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_wallets_user_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('available_balance >= 0', name='ck_wallets_available_non_negative'),
        sa.CheckConstraint('locked_balance >= 0', name='ck_wallets_locked_non_negative'),
        sa.CheckConstraint('returns_balance >= 0', name='ck_wallets_returns_non_negative'),
    )
    op.create_index(op.f('ix_wallets_id'), 'wallets', ['id'], unique=False)
    op.create_index(op.f('ix_wallets_user_id'), 'wallets', ['user_id'], unique=True)

    # investment_plans ("bots")
    op.create_table(
        'investment_plans',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('strategy', sa.String(length=255), nullable=True),
        sa.Column('risk_level', sa.String(length=20), nullable=True),
        sa.Column('daily_return_rate', sa.Numeric(10, 4), nullable=False),
        sa.Column('minimum_investment', sa.Numeric(24, 8), nullable=False, server_default='0'),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_investment_plans_name'),
        sa.CheckConstraint('daily_return_rate >= 0', name='ck_investment_plans_rate_non_negative'),
        sa.CheckConstraint('minimum_investment >= 0', name='ck_investment_plans_minimum_non_negative'),
        sa.CheckConstraint('duration_days > 0', name='ck_investment_plans_duration_positive'),
    )
    op.create_index(op.f('ix_investment_plans_id'), 'investment_plans', ['id'], unique=False)

    # investments (allocations)
    op.create_table(
        'investments',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('plan_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('initial_amount', sa.Numeric(24, 8), nullable=False),
        sa.Column('locked_amount', sa.Numeric(24, 8), nullable=False),
        sa.Column('accumulated_returns', sa.Numeric(24, 8), nullable=False, server_default='0'),
        sa.Column('daily_return_rate', sa.Numeric(10, 4), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_investments_user_id'),
        sa.ForeignKeyConstraint(['plan_id'], ['investment_plans.id'], name='fk_investments_plan_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('initial_amount > 0', name='ck_investments_initial_amount_positive'),
        sa.CheckConstraint('locked_amount >= 0', name='ck_investments_locked_amount_non_negative'),
        sa.CheckConstraint('accumulated_returns >= 0', name='ck_investments_accumulated_returns_non_negative'),
        sa.CheckConstraint('daily_return_rate >= 0', name='ck_investments_rate_non_negative'),
        sa.CheckConstraint(
            "(status = 'completed' AND completed_at IS NOT NULL) OR (status != 'completed')",
            name='ck_investments_completed_at_set',
        ),
    )
    op.create_index(op.f('ix_investments_id'), 'investments', ['id'], unique=False)
    op.create_index(op.f('ix_investments_user_id'), 'investments', ['user_id'], unique=False)
    op.create_index(op.f('ix_investments_plan_id'), 'investments', ['plan_id'], unique=False)
    op.create_index(op.f('ix_investments_status'), 'investments', ['status'], unique=False)
    op.create_index('ix_investments_status_end_date', 'investments', ['status', 'end_date'], unique=False)
    op.create_index('ix_investments_user_status', 'investments', ['user_id', 'status'], unique=False)

    # daily_returns (idempotency key: investment_id + date)
    op.create_table(
        'daily_returns',
        *_base_columns(),
        sa.Column('investment_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('plan_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('daily_return', sa.Numeric(24, 8), nullable=False),
        sa.Column('cumulative_return', sa.Numeric(24, 8), nullable=False),
        sa.ForeignKeyConstraint(['investment_id'], ['investments.id'], name='fk_daily_returns_investment_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_daily_returns_user_id'),
        sa.ForeignKeyConstraint(['plan_id'], ['investment_plans.id'], name='fk_daily_returns_plan_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('daily_return >= 0', name='ck_daily_returns_daily_return_non_negative'),
        sa.UniqueConstraint('investment_id', 'date', name='uq_daily_returns_investment_date'),
    )
    op.create_index(op.f('ix_daily_returns_id'), 'daily_returns', ['id'], unique=False)
    op.create_index(op.f('ix_daily_returns_investment_id'), 'daily_returns', ['investment_id'], unique=False)
    op.create_index(op.f('ix_daily_returns_user_id'), 'daily_returns', ['user_id'], unique=False)
    op.create_index(op.f('ix_daily_returns_plan_id'), 'daily_returns', ['plan_id'], unique=False)
    op.create_index('ix_daily_returns_user_date', 'daily_returns', ['user_id', 'date'], unique=False)

    # audit_entries (append-only)
    op.create_table(
        'audit_entries',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('investment_id', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('kind', sa.Enum(*AUDIT_KINDS, name='audit_kind', create_constraint=True), nullable=False),
        sa.Column('amount', sa.Numeric(24, 8), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='completed'),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_audit_entries_user_id'),
        sa.ForeignKeyConstraint(['investment_id'], ['investments.id'], name='fk_audit_entries_investment_id'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_entries_id'), 'audit_entries', ['id'], unique=False)
    op.create_index(op.f('ix_audit_entries_user_id'), 'audit_entries', ['user_id'], unique=False)
    op.create_index(op.f('ix_audit_entries_investment_id'), 'audit_entries', ['investment_id'], unique=False)
    op.create_index(op.f('ix_audit_entries_kind'), 'audit_entries', ['kind'], unique=False)


def downgrade() -> None:
    op.drop_table('audit_entries')
    op.drop_table('daily_returns')
    op.drop_table('investments')
    op.drop_table('investment_plans')
    op.drop_table('wallets')
    op.drop_table('users')
    sa.Enum(name='audit_kind').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='user_status').drop(op.get_bind(), checkfirst=True)
