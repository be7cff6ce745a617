"""Create referral engine tables

Revision ID: 20250901_000001
Revises: 
Create Date: 2025-09-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20250901_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MONEY = sa.DECIMAL(18, 8)


def upgrade() -> None:
    # Users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('external_id', sa.String(32), nullable=False),
        sa.Column('parent_ref', sa.String(32), nullable=True),
        sa.Column('deposit_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('gain_profit', MONEY, nullable=False, server_default='0'),
        sa.Column('capital_profit', MONEY, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('deposit_balance >= 0', name='check_user_deposit_balance_non_negative'),
        sa.CheckConstraint('gain_profit >= 0', name='check_user_gain_profit_non_negative'),
        sa.CheckConstraint('capital_profit >= 0', name='check_user_capital_profit_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_external_id', 'users', ['external_id'], unique=True)
    op.create_index('ix_users_parent_ref', 'users', ['parent_ref'])

    # Hierarchy edges (append-only)
    op.create_table(
        'hierarchy_edges',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('child_id', sa.Integer(), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('left_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['child_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['parent_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_hierarchy_edges_child_id', 'hierarchy_edges', ['child_id'])
    op.create_index('ix_hierarchy_edges_parent_id', 'hierarchy_edges', ['parent_id'])
    op.create_index('idx_hierarchy_edges_parent_open', 'hierarchy_edges', ['parent_id', 'left_at'])
    op.create_index(
        'uq_hierarchy_edges_open_child', 'hierarchy_edges', ['child_id'],
        unique=True,
        postgresql_where=sa.text('left_at IS NULL'),
    )

    # Deposits
    op.create_table(
        'deposits',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('amount > 0', name='check_deposit_amount_positive'),
        sa.CheckConstraint("status IN ('pending', 'completed', 'failed')", name='check_deposit_status'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_deposits_user_id', 'deposits', ['user_id'])
    op.create_index('ix_deposits_status', 'deposits', ['status'])

    # Reward buckets (standard and legacy)
    op.create_table(
        'reward_buckets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('bucket_type', sa.String(20), nullable=False),
        sa.Column('leg_a_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('leg_b_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('leg_c_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('reward_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('is_rewarded', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('leg_a_balance >= 0', name='check_bucket_leg_a_non_negative'),
        sa.CheckConstraint('leg_b_balance >= 0', name='check_bucket_leg_b_non_negative'),
        sa.CheckConstraint('leg_c_balance >= 0', name='check_bucket_leg_c_non_negative'),
        sa.CheckConstraint('reward_amount >= 0', name='check_bucket_reward_non_negative'),
        sa.CheckConstraint("bucket_type IN ('standard', 'legacy')", name='check_bucket_type'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reward_buckets_owner_user_id', 'reward_buckets', ['owner_user_id'])
    op.create_index(
        'idx_reward_buckets_owner_type', 'reward_buckets',
        ['owner_user_id', 'bucket_type', 'is_rewarded'],
    )

    # Durable (parent, deposit, bucket type) markers
    op.create_table(
        'reward_processing',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=False),
        sa.Column('deposit_id', sa.Integer(), nullable=False),
        sa.Column('bucket_type', sa.String(20), nullable=False),
        sa.Column('leg_index', sa.Integer(), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['parent_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['deposit_id'], ['deposits.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'parent_id', 'deposit_id', 'bucket_type',
            name='uq_reward_processing_parent_deposit_type',
        )
    )
    op.create_index('ix_reward_processing_parent_id', 'reward_processing', ['parent_id'])
    op.create_index('ix_reward_processing_deposit_id', 'reward_processing', ['deposit_id'])

    # Daily bonus history
    op.create_table(
        'capital_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('calculation_date', sa.Date(), nullable=False),
        sa.Column('bonus_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('total_sub_capital', MONEY, nullable=False, server_default='0'),
        sa.Column('total_subs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('active_subs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('new_subs_last_24h', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_generation', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'calculation_date', name='uq_capital_history_user_date')
    )
    op.create_index('ix_capital_history_user_id', 'capital_history', ['user_id'])
    op.create_index('ix_capital_history_calculation_date', 'capital_history', ['calculation_date'])

    # Cached trade reports
    op.create_table(
        'trade_reports',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('payload', postgresql.JSONB(), nullable=True),
        sa.Column('refreshed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('last_processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_trade_reports_user_id', 'trade_reports', ['user_id'], unique=True)
    op.create_index('ix_trade_reports_expires_at', 'trade_reports', ['expires_at'])
    op.create_index('ix_trade_reports_is_active', 'trade_reports', ['is_active'])

    # Daily profit settlements
    op.create_table(
        'profit_settlements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('settlement_date', sa.Date(), nullable=False),
        sa.Column('percent', sa.DECIMAL(10, 4), nullable=False),
        sa.Column('base_balance', MONEY, nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'settlement_date', name='uq_profit_settlement_user_date')
    )
    op.create_index('ix_profit_settlements_user_id', 'profit_settlements', ['user_id'])

    # Ledger audit trail
    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('account', sa.String(32), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('reason', sa.String(32), nullable=False),
        sa.Column('idempotency_key', sa.String(128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('amount > 0', name='check_ledger_amount_positive'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key')
    )
    op.create_index('ix_ledger_entries_user_id', 'ledger_entries', ['user_id'])
    op.create_index('ix_ledger_entries_reason', 'ledger_entries', ['reason'])


def downgrade() -> None:
    op.drop_table('ledger_entries')
    op.drop_table('profit_settlements')
    op.drop_table('trade_reports')
    op.drop_table('capital_history')
    op.drop_table('reward_processing')
    op.drop_table('reward_buckets')
    op.drop_table('deposits')
    op.drop_index('uq_hierarchy_edges_open_child', 'hierarchy_edges')
    op.drop_table('hierarchy_edges')
    op.drop_table('users')
