"""create portfolio tables

Revision ID: 3c1e9a7d52b4
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1e9a7d52b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    from sqlalchemy import inspect as sa_inspect
    conn = op.get_bind()
    existing = set(sa_inspect(conn).get_table_names())

    # init_db() may already have created some tables on a fresh install
    if 'asset_snapshots' not in existing:
        op.create_table(
            'asset_snapshots',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('user_id', sa.String(), nullable=False),
            sa.Column('snapshot_time', sa.DateTime(), nullable=False),
            sa.Column('total_value_usd', sa.Numeric(18, 2), nullable=False),
            sa.Column('cex_value_usd', sa.Numeric(18, 2), nullable=False),
            sa.Column('blockchain_value_usd', sa.Numeric(18, 2), nullable=False),
            sa.Column('manual_value_usd', sa.Numeric(18, 2), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_asset_snapshots_user_time', 'asset_snapshots', ['user_id', 'snapshot_time'])

    if 'asset_details' not in existing:
        op.create_table(
            'asset_details',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('user_id', sa.String(), nullable=False),
            sa.Column('asset_symbol', sa.String(), nullable=False),
            sa.Column('asset_name', sa.String(), nullable=True),
            sa.Column('balance', sa.Numeric(28, 10), nullable=False),
            sa.Column('price_usd', sa.Numeric(18, 8), nullable=False),
            sa.Column('value_usd', sa.Numeric(18, 2), nullable=False),
            sa.Column('source', sa.String(), nullable=False),
            sa.Column('source_type', sa.String(), nullable=False),
            sa.Column('last_updated', sa.DateTime(), nullable=True),
            sa.UniqueConstraint('user_id', 'asset_symbol', 'source', name='uix_asset_detail_source'),
        )
        op.create_index('ix_asset_details_user_id', 'asset_details', ['user_id'])

    if 'wallet_addresses' not in existing:
        op.create_table(
            'wallet_addresses',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('user_id', sa.String(), nullable=False),
            sa.Column('address', sa.String(), nullable=False),
            sa.Column('chain', sa.String(), nullable=False),
            sa.Column('label', sa.String(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.UniqueConstraint('user_id', 'address', 'chain', name='uix_wallet_address_chain'),
        )
        op.create_index('ix_wallet_addresses_user_id', 'wallet_addresses', ['user_id'])

    if 'exchange_accounts' not in existing:
        op.create_table(
            'exchange_accounts',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('user_id', sa.String(), nullable=False),
            sa.Column('exchange', sa.String(), nullable=False),
            sa.Column('label', sa.String(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_exchange_accounts_user_id', 'exchange_accounts', ['user_id'])

    if 'strategies' not in existing:
        op.create_table(
            'strategies',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('user_id', sa.String(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('type', sa.String(), nullable=False),
            sa.Column('config', sa.Text(), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_strategies_user_id', 'strategies', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_strategies_user_id', table_name='strategies')
    op.drop_table('strategies')
    op.drop_index('ix_exchange_accounts_user_id', table_name='exchange_accounts')
    op.drop_table('exchange_accounts')
    op.drop_index('ix_wallet_addresses_user_id', table_name='wallet_addresses')
    op.drop_table('wallet_addresses')
    op.drop_index('ix_asset_details_user_id', table_name='asset_details')
    op.drop_table('asset_details')
    op.drop_index('ix_asset_snapshots_user_time', table_name='asset_snapshots')
    op.drop_table('asset_snapshots')
