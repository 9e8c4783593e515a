from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Float, Index, Integer, String, Text

from app.db.base import Base


class Bet(Base):
    """Daily rollup of wagering activity per (account, channel, trandate)."""

    __tablename__ = 'bets'

    id = Column(Integer, primary_key=True, index=True)
    account = Column(String(128), nullable=False)
    master = Column(String(16), nullable=False)
    channel = Column(String(32), nullable=False)
    trandate = Column(Date, nullable=False, index=True)
    min = Column(Float, nullable=False, default=0.0)
    max = Column(Float, nullable=False, default=0.0)
    count = Column(Integer, nullable=False, default=0)
    turnover = Column(Float, nullable=False, default=0.0)
    winlose = Column(Float, nullable=False, default=0.0)
    lp = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class SyncJob(Base):
    __tablename__ = 'sync_jobs'

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(String(64), nullable=False, unique=True, index=True)
    status = Column(String(16), nullable=False, default='pending', index=True)
    source = Column(String(16), nullable=False, default='manual', index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    channel = Column(String(32), nullable=True)
    estimated_records = Column(Integer, nullable=False, default=0)
    processed_records = Column(Integer, nullable=False, default=0)
    skipped_records = Column(Integer, nullable=False, default=0)
    execution_time_seconds = Column(Float, nullable=True)
    actor = Column(String(128), nullable=False, default='system')
    max_retries = Column(Integer, nullable=False, default=3)
    retries = Column(Integer, nullable=False, default=0)
    priority = Column(Integer, nullable=False, default=100, index=True)
    locked_by = Column(String(128), nullable=True)
    locked_at = Column(DateTime, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)


Index('uq_bets_acc_chan_trandate', Bet.account, Bet.channel, Bet.trandate, unique=True)
Index('ix_bets_master_trandate', Bet.master, Bet.trandate)
Index('ix_sync_jobs_status_priority_created', SyncJob.status, SyncJob.priority, SyncJob.created_at)
Index('ix_sync_jobs_source_status', SyncJob.source, SyncJob.status)
