import logging
import math
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logging_config import log_sync_event
from app.core.request_metrics import observe_sync_run
from app.db.session import SessionLocal, get_source_engine
from app.models.bets import SyncJob
from app.schemas.sync import JobStatus, job_status_adapter
from app.services.aggregation_query import AggregationQueryBuilder, SyncRange
from app.services.batch_upserter import BatchUpserter
from app.services.job_status import JobStatusTracker, new_job_id, progress_percentage
from app.services.sync_errors import ConnectivityError, EstimationError, SyncAlreadyRunningError
from app.services.sync_executor import ChunkedSyncExecutor, SyncResult

logger = logging.getLogger(__name__)

SOURCE_API = 'api'
SOURCE_MANUAL = 'manual'
SOURCE_SCHEDULE = 'schedule'
SCHEDULER_LOCK_OWNER = 'scheduler'
IN_FLIGHT_QUEUE_STATUSES = ('pending', 'running')
QUEUE_STATUS_PHASES = {'pending': 'queued', 'running': 'processing', 'completed': 'completed', 'failed': 'failed'}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _naive_utcnow() -> datetime:
    return _utcnow().replace(tzinfo=None)


def _query_builder() -> AggregationQueryBuilder:
    return AggregationQueryBuilder(get_source_engine())


def _build_executor(
    *,
    chunk_size: int,
    batch_size: int,
    progress_interval: int,
    job_id: str | None = None,
    on_progress=None,
) -> ChunkedSyncExecutor:
    return ChunkedSyncExecutor(
        _query_builder(),
        BatchUpserter(session_factory=SessionLocal, batch_size=batch_size),
        chunk_size=chunk_size,
        progress_interval=progress_interval,
        on_progress=on_progress,
        job_id=job_id,
    )


def _summary(sync_range: SyncRange, result: SyncResult, chunk_size: int, batch_size: int, job_id: str | None = None) -> dict:
    return {
        'mode': 'inline',
        'job_id': job_id,
        'start_date': sync_range.start_date,
        'end_date': sync_range.end_date,
        'channel': sync_range.channel,
        'processed_records': result.processed_records,
        'skipped_records': result.skipped_records,
        'batches_committed': result.batches_committed,
        'execution_time_seconds': result.elapsed_seconds,
        'performance': {
            'records_per_second': result.records_per_second,
            'chunk_size': chunk_size,
            'batch_size': batch_size,
        },
    }


def _warn_if_slow(job_id: str | None, result: SyncResult) -> None:
    threshold = int(settings.bet_sync_slow_threshold or 0)
    if threshold > 0 and result.elapsed_seconds > threshold:
        log_sync_event(
            'sync_slow', job_id, level='warning',
            execution_time_seconds=result.elapsed_seconds, threshold_seconds=threshold,
        )


def _queue_job(
    db: Session,
    *,
    job_id: str,
    sync_range: SyncRange,
    estimated_records: int,
    actor: str,
    source: str,
    status: str = 'pending',
    locked_by: str | None = None,
) -> SyncJob:
    now = _naive_utcnow()
    row = SyncJob(
        job_id=job_id,
        status=status,
        source=source,
        start_date=sync_range.start_date,
        end_date=sync_range.end_date,
        channel=sync_range.channel,
        estimated_records=int(estimated_records),
        actor=actor,
        max_retries=max(1, int(settings.bet_sync_job_tries or 1)),
        retries=0,
        priority=100,
        locked_by=locked_by,
        locked_at=now if locked_by else None,
        started_at=now if status == 'running' else None,
    )
    db.add(row)
    db.commit()
    return row


def _claim_next_job(worker_name: str) -> dict[str, Any] | None:
    db = SessionLocal()
    try:
        row = (
            db.query(SyncJob)
            .filter(SyncJob.status == 'pending')
            .order_by(SyncJob.priority.asc(), SyncJob.created_at.asc(), SyncJob.id.asc())
            .first()
        )
        if row is None:
            return None
        row.status = 'running'
        row.locked_by = worker_name
        row.locked_at = _naive_utcnow()
        row.started_at = row.started_at or row.locked_at
        row.processed_records = 0
        row.skipped_records = 0
        db.commit()
        return {
            'job_id': row.job_id,
            'actor': row.actor,
            'source': row.source,
            'start_date': row.start_date,
            'end_date': row.end_date,
            'channel': row.channel,
            'estimated_records': int(row.estimated_records or 0),
            'retries': int(row.retries or 0),
            'max_retries': int(row.max_retries or 1),
        }
    finally:
        db.close()


def _mark_queue_job_done(
    job_id: str,
    status: str,
    error: str | None = None,
    processed_records: int | None = None,
    skipped_records: int = 0,
    execution_time_seconds: float | None = None,
) -> None:
    db = SessionLocal()
    try:
        row = db.query(SyncJob).filter(SyncJob.job_id == job_id).first()
        if row is None:
            return
        row.status = status
        row.error = error
        row.finished_at = _naive_utcnow()
        if processed_records is not None:
            row.processed_records = int(processed_records)
            row.skipped_records = int(skipped_records)
            row.execution_time_seconds = execution_time_seconds
        db.commit()
    finally:
        db.close()


def _record_queue_progress(job_id: str, processed_records: int) -> None:
    db = SessionLocal()
    try:
        db.query(SyncJob).filter(SyncJob.job_id == job_id).update(
            {SyncJob.processed_records: int(processed_records)}, synchronize_session=False,
        )
        db.commit()
    finally:
        db.close()


def _record_failed_attempt(job_id: str, error: str, processed_records: int = 0) -> tuple[bool, int]:
    """Count a failed attempt; requeue while attempts remain. Returns (requeued, attempts so far)."""
    db = SessionLocal()
    try:
        row = db.query(SyncJob).filter(SyncJob.job_id == job_id).first()
        if row is None:
            return False, 1
        row.retries = int(row.retries or 0) + 1
        row.error = error
        row.processed_records = int(processed_records)
        row.locked_by = None
        row.locked_at = None
        if row.retries < int(row.max_retries or 1):
            row.status = 'pending'
            db.commit()
            return True, row.retries
        row.status = 'failed'
        row.finished_at = _naive_utcnow()
        db.commit()
        return False, row.retries
    finally:
        db.close()


def _status_fields(row: SyncJob) -> dict[str, Any]:
    return {
        'start_date': row.start_date,
        'end_date': row.end_date,
        'channel': row.channel,
        'estimated_records': int(row.estimated_records or 0),
    }


def _reclaim_expired_jobs(
    tracker: JobStatusTracker | None = None,
    older_than: timedelta | None = None,
    include_scheduler: bool = False,
) -> int:
    """
    Jobs left running past the hard timeout (crashed worker, hung query) are
    requeued while attempts remain, otherwise failed. Inline scheduled runs
    are left to the process that owns them unless ``include_scheduler`` is set.
    """
    ttl = older_than if older_than is not None else timedelta(seconds=max(1, int(settings.bet_sync_job_timeout or 3600)))
    cutoff = _naive_utcnow() - ttl
    db = SessionLocal()
    try:
        query = db.query(SyncJob).filter(
            SyncJob.status == 'running', SyncJob.locked_at.isnot(None), SyncJob.locked_at < cutoff,
        )
        if not include_scheduler:
            query = query.filter(or_(SyncJob.locked_by.is_(None), SyncJob.locked_by != SCHEDULER_LOCK_OWNER))
        stale = [(row.job_id, _status_fields(row), row.started_at) for row in query.all()]
    finally:
        db.close()
    for job_id, fields, started_at in stale:
        _handle_failed_attempt(
            job_id, 'job_interrupted', tracker or JobStatusTracker(), fields,
            started_at=_aware(started_at),
        )
    return len(stale)


def _handle_failed_attempt(
    job_id: str,
    error: str,
    tracker: JobStatusTracker,
    fields: dict[str, Any],
    processed_records: int = 0,
    started_at: datetime | None = None,
) -> bool:
    requeued, attempts = _record_failed_attempt(job_id, error, processed_records)
    if requeued:
        tracker.set_status(
            job_id,
            'queued',
            **fields,
            queued_at=_utcnow(),
            attempt=attempts + 1,
            last_error=error,
            processed_records=processed_records,
        )
    else:
        tracker.set_status(
            job_id,
            'failed',
            **fields,
            started_at=started_at,
            failed_at=_utcnow(),
            attempt=attempts,
            error=error,
            will_retry=False,
            processed_records=processed_records,
        )
    return requeued


def _aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _status_from_queue_row(row: SyncJob) -> JobStatus:
    """Status rebuilt from the queue row, for readers that cannot see the writer's status store."""
    phase = QUEUE_STATUS_PHASES.get(row.status, 'queued')
    processed = int(row.processed_records or 0)
    created_at = _aware(row.created_at) or _utcnow()
    started_at = _aware(row.started_at) or _aware(row.locked_at)
    finished_at = _aware(row.finished_at)
    retries = int(row.retries or 0)
    payload: dict[str, Any] = {
        'job_id': row.job_id,
        'status': phase,
        **_status_fields(row),
        'processed_records': processed,
        'updated_at': finished_at or _aware(row.locked_at) or created_at,
    }
    if phase == 'queued':
        payload.update(queued_at=created_at, attempt=retries + 1, last_error=row.error)
    elif phase == 'processing':
        payload.update(
            started_at=started_at or created_at,
            attempt=retries + 1,
            progress_percentage=progress_percentage(processed, payload['estimated_records']),
        )
    elif phase == 'completed':
        elapsed = float(row.execution_time_seconds or 0.0)
        payload.update(
            started_at=started_at or created_at,
            completed_at=finished_at or created_at,
            skipped_records=int(row.skipped_records or 0),
            execution_time_seconds=elapsed,
            records_per_second=round(processed / elapsed, 2) if elapsed > 0 else 0.0,
        )
    else:
        payload.update(
            started_at=started_at,
            failed_at=finished_at or created_at,
            attempt=max(1, retries),
            will_retry=False,
            error=row.error or 'unknown error',
        )
    return job_status_adapter.validate_python(payload)


def _find_in_flight_job(db: Session, sync_range: SyncRange) -> str | None:
    query = db.query(SyncJob.job_id).filter(
        SyncJob.status.in_(IN_FLIGHT_QUEUE_STATUSES),
        SyncJob.start_date == sync_range.start_date,
        SyncJob.end_date == sync_range.end_date,
    )
    if sync_range.channel is None:
        query = query.filter(SyncJob.channel.is_(None))
    else:
        query = query.filter(SyncJob.channel == sync_range.channel)
    row = query.first()
    return row[0] if row else None


def _schedule_run_in_flight(db: Session, tracker: JobStatusTracker) -> str | None:
    rows = (
        db.query(SyncJob)
        .filter(SyncJob.source == SOURCE_SCHEDULE, SyncJob.status.in_(IN_FLIGHT_QUEUE_STATUSES))
        .order_by(SyncJob.created_at.desc())
        .all()
    )
    for row in rows:
        status = tracker.get_status(row.job_id)
        # A queue row whose status expired is still in flight as far as the queue knows.
        if status is None or status.status in ('queued', 'processing'):
            return row.job_id
    return None


def _execute_job(claimed: dict[str, Any], tracker: JobStatusTracker) -> bool:
    job_id = str(claimed['job_id'])
    sync_range = SyncRange.for_dates(claimed['start_date'], claimed['end_date'], claimed.get('channel'))
    attempt = int(claimed.get('retries') or 0) + 1
    started_at = _utcnow()
    estimated = int(claimed.get('estimated_records') or 0)
    if estimated <= 0:
        try:
            estimated = SyncService.estimate(sync_range)['estimated_records']
        except (ConnectivityError, EstimationError):
            logger.warning('[bet-sync:%s] estimate unavailable, progress percentage disabled', job_id)
            estimated = 0
    fields = {
        'start_date': sync_range.start_date,
        'end_date': sync_range.end_date,
        'channel': sync_range.channel,
        'estimated_records': estimated,
    }
    tracker.set_status(job_id, 'processing', **fields, started_at=started_at, processed_records=0, attempt=attempt)
    log_sync_event('sync_started', job_id, mode='background', attempt=attempt, estimated_records=estimated,
                   start=sync_range.start.isoformat(), end=sync_range.end.isoformat(), channel=sync_range.channel)

    def _on_progress(processed: int) -> None:
        status = tracker.update_progress(job_id, processed)
        _record_queue_progress(job_id, processed)
        log_sync_event('sync_progress', job_id, processed_records=processed,
                       progress_percentage=getattr(status, 'progress_percentage', None))

    chunk_size = int(settings.bet_sync_job_chunk_size or 2000)
    batch_size = int(settings.bet_sync_job_batch_size or 1000)
    executor = _build_executor(
        chunk_size=chunk_size,
        batch_size=batch_size,
        progress_interval=int(settings.bet_sync_job_progress_interval or 0),
        job_id=job_id,
        on_progress=_on_progress,
    )
    deadline = time.monotonic() + max(1, int(settings.bet_sync_job_timeout or 3600))
    try:
        result = executor.run(sync_range, deadline=deadline)
    except Exception as exc:
        error = str(exc) or exc.__class__.__name__
        logger.exception('[bet-sync:%s] background sync failed on attempt %s', job_id, attempt)
        requeued = _handle_failed_attempt(
            job_id, error, tracker, fields, processed_records=executor.processed_records, started_at=started_at,
        )
        log_sync_event('sync_failed', job_id, level='error', error=error, attempt=attempt,
                       processed_records=executor.processed_records, will_retry=requeued)
        return False

    tracker.set_status(
        job_id,
        'completed',
        **fields,
        started_at=started_at,
        completed_at=_utcnow(),
        processed_records=result.processed_records,
        skipped_records=result.skipped_records,
        execution_time_seconds=result.elapsed_seconds,
        records_per_second=result.records_per_second,
    )
    _mark_queue_job_done(
        job_id, 'completed',
        processed_records=result.processed_records,
        skipped_records=result.skipped_records,
        execution_time_seconds=result.elapsed_seconds,
    )
    observe_sync_run('background', result.elapsed_seconds, result.processed_records)
    _warn_if_slow(job_id, result)
    log_sync_event('sync_completed', job_id, mode='background', processed_records=result.processed_records,
                   execution_time_seconds=result.elapsed_seconds, records_per_second=result.records_per_second)
    return True


class SyncService:
    @staticmethod
    def resolve_range(
        start_date: date | None = None,
        end_date: date | None = None,
        channel: str | None = None,
        days_back: int | None = None,
        today: date | None = None,
    ) -> SyncRange:
        if start_date is None and end_date is not None:
            start_date = end_date
        if start_date is None:
            back = settings.bet_sync_default_days_back if days_back is None else days_back
            start_date = (today or date.today()) - timedelta(days=max(0, int(back or 0)))
        return SyncRange.for_dates(start_date, end_date or start_date, channel)

    @staticmethod
    def estimate(sync_range: SyncRange) -> dict:
        """
        Group count for routing and progress. Exact mode counts the grouped
        query (optionally capped); on failure, or in approximate mode, the raw
        event count is divided by the expected events per group.
        """
        builder = _query_builder()
        if str(settings.bet_sync_estimate_mode or 'exact').strip().lower() != 'approximate':
            cap = max(0, int(settings.bet_sync_estimate_cap or 0))
            try:
                count = builder.count_groups(sync_range, cap=cap)
                return {'estimated_records': count, 'estimate_method': 'exact', 'capped': bool(cap and count >= cap)}
            except (SQLAlchemyError, ConnectivityError) as exc:
                logger.warning('[bet-sync] exact estimate failed, using approximate count: %s', exc)
        try:
            events = builder.count_events(sync_range)
        except ConnectivityError:
            raise
        except SQLAlchemyError as exc:
            raise EstimationError(f'could not estimate record count: {exc}') from exc
        per_group = max(float(settings.bet_sync_events_per_group or 1.0), 1e-9)
        return {'estimated_records': int(math.ceil(events / per_group)), 'estimate_method': 'approximate', 'capped': False}

    @staticmethod
    def estimate_record_count(start_date: date, end_date: date | None = None, channel: str | None = None) -> int:
        return SyncService.estimate(SyncRange.for_dates(start_date, end_date, channel))['estimated_records']

    @staticmethod
    def should_run_in_background(estimated_records: int, threshold: int | None = None) -> bool:
        limit = int(settings.bet_sync_background_threshold if threshold is None else threshold)
        return int(estimated_records) > limit

    @staticmethod
    def run_sync(
        start_date: date,
        end_date: date | None = None,
        channel: str | None = None,
        chunk_size: int | None = None,
        batch_size: int | None = None,
        on_progress=None,
        job_id: str | None = None,
        deadline: float | None = None,
    ) -> dict:
        """Synchronous path: blocks the caller until the whole range is written."""
        sync_range = SyncRange.for_dates(start_date, end_date, channel)
        chunk = int(chunk_size or settings.bet_sync_chunk_size or 1000)
        batch = int(batch_size or settings.bet_sync_batch_size or 500)
        executor = _build_executor(
            chunk_size=chunk,
            batch_size=batch,
            progress_interval=int(settings.bet_sync_progress_log_interval or 0),
            job_id=job_id,
            on_progress=on_progress,
        )
        log_sync_event('sync_started', job_id, mode='inline', start=sync_range.start.isoformat(),
                       end=sync_range.end.isoformat(), channel=sync_range.channel)
        try:
            result = executor.run(sync_range, deadline=deadline)
        except Exception as exc:
            log_sync_event('sync_failed', job_id, level='error', mode='inline', error=str(exc),
                           processed_records=executor.processed_records)
            raise
        observe_sync_run('inline', result.elapsed_seconds, result.processed_records)
        _warn_if_slow(job_id, result)
        log_sync_event('sync_completed', job_id, mode='inline', processed_records=result.processed_records,
                       execution_time_seconds=result.elapsed_seconds, records_per_second=result.records_per_second)
        return _summary(sync_range, result, chunk, batch, job_id=job_id)

    @staticmethod
    def start_background_sync(
        start_date: date,
        end_date: date | None = None,
        channel: str | None = None,
        actor: str = 'system',
        source: str = SOURCE_API,
        estimated_records: int | None = None,
    ) -> dict:
        """Async path: enqueue for the worker and return immediately."""
        sync_range = SyncRange.for_dates(start_date, end_date, channel)
        if estimated_records is None:
            try:
                estimated_records = SyncService.estimate(sync_range)['estimated_records']
            except EstimationError:
                logger.warning('[bet-sync] estimate unavailable for background job, progress will report 0%%')
                estimated_records = 0
        job_id = new_job_id()
        db = SessionLocal()
        try:
            existing = _find_in_flight_job(db, sync_range)
            if existing is not None:
                raise SyncAlreadyRunningError(f'a sync for this range is already queued or running: {existing}')
            _queue_job(
                db,
                job_id=job_id,
                sync_range=sync_range,
                estimated_records=estimated_records,
                actor=actor,
                source=source,
            )
        finally:
            db.close()
        JobStatusTracker().set_status(
            job_id,
            'queued',
            start_date=sync_range.start_date,
            end_date=sync_range.end_date,
            channel=sync_range.channel,
            queued_at=_utcnow(),
            estimated_records=int(estimated_records),
            processed_records=0,
        )
        logger.info(
            '[bet-sync:%s] background job queued (estimated=%s, %s)',
            job_id, estimated_records, sync_range.describe(),
        )
        return {
            'mode': 'background',
            'job_id': job_id,
            'estimated_records': int(estimated_records),
            'start_date': sync_range.start_date,
            'end_date': sync_range.end_date,
            'channel': sync_range.channel,
            'status': 'accepted',
        }

    @staticmethod
    def dispatch(
        start_date: date,
        end_date: date | None = None,
        channel: str | None = None,
        actor: str = 'system',
        source: str = SOURCE_API,
    ) -> dict:
        """Route by estimated volume: inline at or below the threshold, background above it."""
        sync_range = SyncRange.for_dates(start_date, end_date, channel)
        estimated = SyncService.estimate(sync_range)['estimated_records']
        if SyncService.should_run_in_background(estimated):
            return SyncService.start_background_sync(
                sync_range.start_date, sync_range.end_date, sync_range.channel,
                actor=actor, source=source, estimated_records=estimated,
            )
        return SyncService.run_sync(sync_range.start_date, sync_range.end_date, sync_range.channel)

    @staticmethod
    def preview(start_date: date, end_date: date | None = None, channel: str | None = None) -> dict:
        sync_range = SyncRange.for_dates(start_date, end_date, channel)
        estimate = SyncService.estimate(sync_range)
        threshold = int(settings.bet_sync_background_threshold)
        return {
            'start_date': sync_range.start_date,
            'end_date': sync_range.end_date,
            'channel': sync_range.channel,
            **estimate,
            'background_threshold': threshold,
            'would_run_in_background': SyncService.should_run_in_background(estimate['estimated_records'], threshold),
        }

    @staticmethod
    def get_sync_status(job_id: str) -> JobStatus | None:
        """
        Status from the status store. When that store is private to this process,
        the sync_jobs row decides the phase, since the worker may have moved on.
        """
        tracker = JobStatusTracker()
        status = tracker.get_status(job_id)
        if status is not None and tracker.shared:
            return status
        db = SessionLocal()
        try:
            row = db.query(SyncJob).filter(SyncJob.job_id == job_id).first()
            if row is None:
                return status
            if status is not None and status.status == QUEUE_STATUS_PHASES.get(row.status):
                return status
            return _status_from_queue_row(row)
        finally:
            db.close()

    @staticmethod
    def run_scheduled(days_back: int = 0, channel: str | None = None, today: date | None = None) -> dict:
        """
        Periodic trigger. A schedule-sourced run still queued or processing
        turns this invocation into a no-op.
        """
        tracker = JobStatusTracker()
        _reclaim_expired_jobs(tracker)
        sync_range = SyncService.resolve_range(channel=channel, days_back=days_back, today=today)
        db = SessionLocal()
        try:
            in_flight = _schedule_run_in_flight(db, tracker)
        finally:
            db.close()
        if in_flight is not None:
            logger.info('[bet-sync:%s] scheduled sync still in flight, skipping trigger', in_flight)
            return {'skipped': True, 'reason': 'previous_run_in_flight', 'job_id': in_flight}

        estimated = SyncService.estimate(sync_range)['estimated_records']
        if SyncService.should_run_in_background(estimated):
            queued = SyncService.start_background_sync(
                sync_range.start_date, sync_range.end_date, sync_range.channel,
                actor=SCHEDULER_LOCK_OWNER, source=SOURCE_SCHEDULE, estimated_records=estimated,
            )
            return {'skipped': False, **queued}

        job_id = new_job_id()
        db = SessionLocal()
        try:
            _queue_job(
                db,
                job_id=job_id,
                sync_range=sync_range,
                estimated_records=estimated,
                actor=SCHEDULER_LOCK_OWNER,
                source=SOURCE_SCHEDULE,
                status='running',
                locked_by=SCHEDULER_LOCK_OWNER,
            )
        finally:
            db.close()

        started_at = _utcnow()
        fields = {
            'start_date': sync_range.start_date,
            'end_date': sync_range.end_date,
            'channel': sync_range.channel,
            'estimated_records': estimated,
        }
        tracker.set_status(job_id, 'processing', **fields, started_at=started_at, processed_records=0)

        def _on_progress(processed: int) -> None:
            tracker.update_progress(job_id, processed)
            _record_queue_progress(job_id, processed)

        try:
            summary = SyncService.run_sync(
                sync_range.start_date, sync_range.end_date, sync_range.channel,
                on_progress=_on_progress,
                job_id=job_id,
                deadline=time.monotonic() + max(1, int(settings.bet_sync_job_timeout or 3600)),
            )
        except Exception as exc:
            tracker.set_status(
                job_id, 'failed', **fields,
                started_at=started_at, failed_at=_utcnow(), error=str(exc), will_retry=False,
            )
            _mark_queue_job_done(job_id, 'failed', str(exc))
            raise
        tracker.set_status(
            job_id,
            'completed',
            **fields,
            started_at=started_at,
            completed_at=_utcnow(),
            processed_records=summary['processed_records'],
            skipped_records=summary['skipped_records'],
            execution_time_seconds=summary['execution_time_seconds'],
            records_per_second=summary['performance']['records_per_second'],
        )
        _mark_queue_job_done(
            job_id, 'completed',
            processed_records=summary['processed_records'],
            skipped_records=summary['skipped_records'],
            execution_time_seconds=summary['execution_time_seconds'],
        )
        return {'skipped': False, **summary}

    @staticmethod
    def poll_and_run_next(worker_name: str = 'sync-worker') -> bool:
        tracker = JobStatusTracker()
        _reclaim_expired_jobs(tracker)
        claimed = _claim_next_job(worker_name=worker_name)
        if not claimed:
            return False
        job_id = str(claimed['job_id'])
        logger.info('[bet-sync:%s] claimed by %s (attempt %s)', job_id, worker_name, int(claimed['retries']) + 1)
        try:
            _execute_job(claimed, tracker)
        except Exception as exc:
            logger.exception('[bet-sync:%s] job bookkeeping failed', job_id)
            _mark_queue_job_done(job_id, 'failed', str(exc))
        return True

    @staticmethod
    def worker_bootstrap_cleanup() -> int:
        # Nothing can legitimately be running before this worker starts polling.
        return _reclaim_expired_jobs(older_than=timedelta(0), include_scheduler=True)
