"""daily bet rollup table

Revision ID: 0001_bets_rollup
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = '0001_bets_rollup'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'bets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account', sa.String(length=128), nullable=False),
        sa.Column('master', sa.String(length=16), nullable=False),
        sa.Column('channel', sa.String(length=32), nullable=False),
        sa.Column('trandate', sa.Date(), nullable=False),
        sa.Column('min', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max', sa.Float(), nullable=False, server_default='0'),
        sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('turnover', sa.Float(), nullable=False, server_default='0'),
        sa.Column('winlose', sa.Float(), nullable=False, server_default='0'),
        sa.Column('lp', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bets_id', 'bets', ['id'])
    op.create_index('ix_bets_trandate', 'bets', ['trandate'])
    op.create_index('uq_bets_acc_chan_trandate', 'bets', ['account', 'channel', 'trandate'], unique=True)
    op.create_index('ix_bets_master_trandate', 'bets', ['master', 'trandate'])


def downgrade() -> None:
    op.drop_index('ix_bets_master_trandate', table_name='bets')
    op.drop_index('uq_bets_acc_chan_trandate', table_name='bets')
    op.drop_index('ix_bets_trandate', table_name='bets')
    op.drop_index('ix_bets_id', table_name='bets')
    op.drop_table('bets')
