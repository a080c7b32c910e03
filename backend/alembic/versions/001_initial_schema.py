"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-01 00:00:00.000000

Initial database schema for Walletfolio: token overrides, wallet settings,
cached token holdings and user sessions.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""

    # Create token_overrides table
    op.create_table(
        'token_overrides',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('contract_address', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('symbol', sa.String(length=50), nullable=True),
        sa.Column('chain', sa.String(length=20), nullable=False, server_default='eth'),
        sa.Column('override_type', sa.String(length=20), nullable=False),
        sa.Column('override_value', sa.String(length=128), nullable=True),
        sa.Column('wallet_address', sa.String(length=128), nullable=True),
        sa.Column('wallet_id', sa.String(length=64), nullable=True),
        sa.Column('override_key', sa.String(length=160), nullable=False),
        sa.Column('wallet_scope', sa.String(length=128), nullable=False, server_default='global'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('action', sa.String(length=20), nullable=False, server_default='create'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_token_overrides_wallet_address', 'token_overrides', ['wallet_address'])
    op.create_index('idx_token_overrides_user_active', 'token_overrides', ['user_id', 'is_active'])
    # At most one active override per (user, type, key, chain, scope)
    op.create_index(
        'uq_token_overrides_active_key',
        'token_overrides',
        ['user_id', 'override_type', 'override_key', 'chain', 'wallet_scope'],
        unique=True,
        postgresql_where=sa.text('is_active')
    )

    # Create wallet_settings table
    op.create_table(
        'wallet_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('settings_type', sa.String(length=20), nullable=False),
        sa.Column('settings_data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'settings_type', name='uq_wallet_settings_user_type')
    )
    op.create_index('ix_wallet_settings_user_id', 'wallet_settings', ['user_id'])

    # Create token_holdings table
    op.create_table(
        'token_holdings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('wallet_address', sa.String(length=128), nullable=False),
        sa.Column('contract_address', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('chain', sa.String(length=20), nullable=False, server_default='eth'),
        sa.Column('symbol', sa.String(length=50), nullable=False),
        sa.Column('balance', sa.Numeric(precision=38, scale=18), nullable=False, server_default='0'),
        sa.Column('price_usd', sa.Numeric(precision=28, scale=10), nullable=True),
        sa.Column('value_usd', sa.Numeric(precision=28, scale=2), nullable=True),
        sa.Column('needs_refresh', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'user_id', 'wallet_address', 'contract_address', 'chain', 'symbol',
            name='uq_token_holdings_token'
        )
    )
    op.create_index('idx_token_holdings_wallet', 'token_holdings', ['user_id', 'wallet_address'])

    # Create user_sessions table
    op.create_table(
        'user_sessions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_user_sessions_token_hash', 'user_sessions', ['token_hash'], unique=True)
    op.create_index('ix_user_sessions_user_id', 'user_sessions', ['user_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('user_sessions')
    op.drop_table('token_holdings')
    op.drop_table('wallet_settings')
    op.drop_table('token_overrides')
