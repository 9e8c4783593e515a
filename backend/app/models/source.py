"""
Table definitions for the upstream wagering database.

These tables are owned by the transactional system and are only ever read.
They live on their own MetaData so ``Base.metadata.create_all`` never tries
to create them on the destination.
"""
from sqlalchemy import Column, DateTime, Float, Integer, MetaData, SmallInteger, String, Table

source_metadata = MetaData()

source_bets = Table(
    'bets',
    source_metadata,
    Column('id', Integer, primary_key=True),
    Column('created_by', Integer, nullable=False, index=True),
    Column('channel_id', Integer, nullable=False, index=True),
    Column('bet_amount', Float, nullable=False),
    # 0 = house wins, 1 = house loses, anything else (void, pending) = no effect
    Column('win_lose', SmallInteger, nullable=True),
    Column('payout', Float, nullable=True),
    Column('created_at', DateTime, nullable=False, index=True),
)

source_users = Table(
    'v_user',
    source_metadata,
    Column('id', Integer, primary_key=True),
    Column('fullusername', String(128), nullable=False),
)

source_channels = Table(
    'channels',
    source_metadata,
    Column('id', Integer, primary_key=True),
    Column('channel_name', String(32), nullable=False, unique=True),
)
