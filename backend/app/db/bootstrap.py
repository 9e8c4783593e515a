from __future__ import annotations

import logging
from datetime import date

from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.bets import SyncJob

logger = logging.getLogger(__name__)

PROBE_JOB_ID = 'bootstrap_write_probe'


def bootstrap_database() -> None:
    """
    Ensure schema exists and run a short insert/delete probe on sync_jobs to
    validate the write path. The probe leaves no row behind.
    """
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        today = date.today()
        probe = SyncJob(
            job_id=PROBE_JOB_ID, status='completed', source='manual', actor='bootstrap',
            start_date=today, end_date=today,
        )
        db.add(probe)
        db.flush()
        db.delete(probe)
        db.commit()
        logger.info('DB bootstrap completed (schema ensured + write probe)')
    except Exception:
        db.rollback()
        logger.exception('DB bootstrap failed')
        raise
    finally:
        db.close()
