"""
Periodic bet sync trigger.

Runs ``SyncService.run_scheduled`` every BET_SYNC_SCHEDULE_MINUTES inside the
worker process. APScheduler keeps one instance of the job at a time in this
process; ``run_scheduled`` itself skips when an earlier scheduled run is still
queued or processing anywhere.
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.services.sync_service import SyncService

logger = logging.getLogger(__name__)

JOB_ID = 'bet_sync_interval'


def scheduled_sync_job() -> None:
    try:
        result = SyncService.run_scheduled()
    except Exception:
        logger.exception('scheduled bet sync failed')
        return
    if result.get('skipped'):
        logger.info('scheduled bet sync skipped: %s', result.get('reason'))
    else:
        logger.info('scheduled bet sync dispatched: mode=%s job_id=%s', result.get('mode'), result.get('job_id'))


def build_scheduler(interval_minutes: int | None = None) -> BackgroundScheduler | None:
    minutes = int(settings.bet_sync_schedule_minutes if interval_minutes is None else interval_minutes)
    if minutes <= 0:
        logger.info('bet sync schedule disabled')
        return None
    scheduler = BackgroundScheduler(
        timezone='UTC',
        job_defaults={
            'coalesce': True,
            'max_instances': 1,
            'misfire_grace_time': 60,
        },
    )
    scheduler.add_job(
        scheduled_sync_job,
        trigger=IntervalTrigger(minutes=minutes),
        id=JOB_ID,
        name='Bet rollup sync',
        replace_existing=True,
    )
    return scheduler
