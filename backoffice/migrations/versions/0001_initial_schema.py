"""Initial back-office schema.

Revision ID: initial_0001
Revises:
Create Date: 2025-06-01

Players with their gaming accounts, games with recharge history, the
transaction ledger with withdraw settlements, payment tags and staff.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from backoffice.migrations.util import get_uuid_type


# revision identifiers, used by Alembic.
revision: str = "initial_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create every back-office table."""
    uuid_type = get_uuid_type()

    op.create_table(
        'players',
        sa.Column('player_id', uuid_type, nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('facebook_url', sa.String(500), nullable=False),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        sa.Column('referred_by_id', uuid_type, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='Active'),
        sa.Column('join_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_activity', sa.DateTime(timezone=True), nullable=False),
        sa.Column('referral_bonus_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('total_freeplay', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_deposit', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_withdraw', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_bonusplay', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_referral_bonus', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total_deposit_bonus', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('p_and_l', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('player_id'),
        sa.ForeignKeyConstraint(['referred_by_id'], ['players.player_id'], ondelete='SET NULL'),
    )
    op.create_index('ix_players_name', 'players', ['name'])
    op.create_index('ix_players_referred_by_id', 'players', ['referred_by_id'])
    op.create_index('ix_players_status', 'players', ['status'])

    op.create_table(
        'games',
        sa.Column('game_id', uuid_type, nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('balance', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='Active'),
        sa.Column('download_url', sa.String(500), nullable=True),
        sa.Column('panel_url', sa.String(500), nullable=True),
        sa.Column('panel_username', sa.String(120), nullable=True),
        sa.Column('panel_password', sa.String(255), nullable=True),
        sa.Column('last_recharge_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('game_id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'gaming_accounts',
        sa.Column('account_id', uuid_type, nullable=False),
        sa.Column('player_id', uuid_type, nullable=False),
        sa.Column('game_name', sa.String(120), nullable=False),
        sa.Column('gamer_id', sa.String(120), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('account_id'),
        sa.ForeignKeyConstraint(['player_id'], ['players.player_id'], ondelete='CASCADE'),
        sa.UniqueConstraint('player_id', 'game_name', name='uq_gaming_accounts_player_game'),
    )
    op.create_index('ix_gaming_accounts_player_id', 'gaming_accounts', ['player_id'])
    op.create_index('ix_gaming_accounts_game_name', 'gaming_accounts', ['game_name'])

    op.create_table(
        'game_recharges',
        sa.Column('recharge_id', uuid_type, nullable=False),
        sa.Column('game_id', uuid_type, nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('staff_name', sa.String(120), nullable=False),
        sa.Column('balance_before', sa.Numeric(12, 2), nullable=False),
        sa.Column('balance_after', sa.Numeric(12, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('recharge_id'),
        sa.ForeignKeyConstraint(['game_id'], ['games.game_id'], ondelete='CASCADE'),
    )
    op.create_index('ix_game_recharges_game_id', 'game_recharges', ['game_id'])
    op.create_index('ix_game_recharges_created_at', 'game_recharges', ['created_at'])

    op.create_table(
        'transactions',
        sa.Column('transaction_id', uuid_type, nullable=False),
        sa.Column('player_id', uuid_type, nullable=False),
        sa.Column('game_id', uuid_type, nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Approved'),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('tip', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('deposit_bonus', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('bonus_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('points', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_method', sa.String(30), nullable=True),
        sa.Column('payment_tag', sa.String(120), nullable=True),
        sa.Column('player_tag', sa.String(120), nullable=True),
        sa.Column('staff_name', sa.String(120), nullable=False),
        sa.Column('game_balance_before', sa.Numeric(12, 2), nullable=True),
        sa.Column('game_balance_after', sa.Numeric(12, 2), nullable=True),
        sa.Column('referred_player_id', uuid_type, nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('paid_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('deposit_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('pending_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('amended_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('transaction_id'),
        sa.ForeignKeyConstraint(['player_id'], ['players.player_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['game_id'], ['games.game_id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['referred_player_id'], ['players.player_id'], ondelete='SET NULL'),
    )
    op.create_index('ix_transactions_player_id', 'transactions', ['player_id'])
    op.create_index('ix_transactions_game_id', 'transactions', ['game_id'])
    op.create_index('ix_transactions_type', 'transactions', ['type'])
    op.create_index('ix_transactions_status', 'transactions', ['status'])
    op.create_index('ix_transactions_referred_player_id', 'transactions', ['referred_player_id'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])

    op.create_table(
        'withdraw_payments',
        sa.Column('payment_id', uuid_type, nullable=False),
        sa.Column('transaction_id', uuid_type, nullable=False),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('method', sa.String(60), nullable=False),
        sa.Column('tag', sa.String(160), nullable=True),
        sa.Column('staff_name', sa.String(120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('payment_id'),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.transaction_id'], ondelete='CASCADE'),
    )
    op.create_index('ix_withdraw_payments_transaction_id', 'withdraw_payments', ['transaction_id'])

    op.create_table(
        'payment_tags',
        sa.Column('tag_id', uuid_type, nullable=False),
        sa.Column('method', sa.String(30), nullable=False),
        sa.Column('tag', sa.String(120), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Active'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('tag_id'),
    )
    op.create_index('ix_payment_tags_method', 'payment_tags', ['method'])

    op.create_table(
        'staff',
        sa.Column('staff_id', uuid_type, nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='Cashier'),
        sa.Column('status', sa.String(20), nullable=False, server_default='Active'),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('staff_id'),
        sa.UniqueConstraint('email'),
    )


def downgrade() -> None:
    """Drop every back-office table."""
    op.drop_table('staff')
    op.drop_index('ix_payment_tags_method', table_name='payment_tags')
    op.drop_table('payment_tags')
    op.drop_index('ix_withdraw_payments_transaction_id', table_name='withdraw_payments')
    op.drop_table('withdraw_payments')
    for index in ('created_at', 'referred_player_id', 'status', 'type', 'game_id', 'player_id'):
        op.drop_index(f'ix_transactions_{index}', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_game_recharges_created_at', table_name='game_recharges')
    op.drop_index('ix_game_recharges_game_id', table_name='game_recharges')
    op.drop_table('game_recharges')
    op.drop_index('ix_gaming_accounts_game_name', table_name='gaming_accounts')
    op.drop_index('ix_gaming_accounts_player_id', table_name='gaming_accounts')
    op.drop_table('gaming_accounts')
    op.drop_table('games')
    op.drop_index('ix_players_status', table_name='players')
    op.drop_index('ix_players_referred_by_id', table_name='players')
    op.drop_index('ix_players_name', table_name='players')
    op.drop_table('players')
