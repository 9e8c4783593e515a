from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.core.deps import write_rate_limiter
from app.schemas.sync import (
    BackgroundSyncIn,
    BackgroundSyncOut,
    JobStatus,
    SyncBetsIn,
    SyncPreviewOut,
    SyncRunOut,
    normalize_channel,
)
from app.services.sync_service import SOURCE_API, SyncService

router = APIRouter()


def _status_url(job_id: str) -> str:
    return f'/api/v1/sync/jobs/{job_id}'


def _channel_param(channel: str | None = Query(default=None, max_length=32)) -> str | None:
    try:
        return normalize_channel(channel)
    except ValueError as exc:
        raise HTTPException(
            status_code=422,
            detail={'error_code': 'INVALID_PAYLOAD', 'message': str(exc), 'details': {'field': 'channel'}},
        )


@router.post('/bets', response_model=SyncRunOut)
def sync_today(
    channel: str | None = Depends(_channel_param),
    _rl=Depends(write_rate_limiter),
):
    today = date.today()
    return SyncService.run_sync(today, today, channel)


@router.post('/bets/date-range', response_model=SyncRunOut)
def sync_date_range(
    payload: SyncBetsIn,
    _rl=Depends(write_rate_limiter),
):
    return SyncService.run_sync(payload.start_date, payload.end_date, payload.channel)


@router.post('/bets/background', response_model=SyncRunOut | BackgroundSyncOut)
def sync_background(
    response: Response,
    payload: BackgroundSyncIn | None = None,
    _rl=Depends(write_rate_limiter),
):
    payload = payload or BackgroundSyncIn()
    sync_range = SyncService.resolve_range(payload.start_date, payload.end_date, payload.channel, days_back=0)
    result = SyncService.dispatch(
        sync_range.start_date, sync_range.end_date, sync_range.channel, actor='api', source=SOURCE_API,
    )
    if result.get('mode') == 'background':
        response.status_code = status.HTTP_202_ACCEPTED
        return {**result, 'status_check_url': _status_url(result['job_id'])}
    return result


@router.post('/bets/preview', response_model=SyncPreviewOut)
def sync_preview(payload: BackgroundSyncIn | None = None):
    payload = payload or BackgroundSyncIn()
    sync_range = SyncService.resolve_range(payload.start_date, payload.end_date, payload.channel, days_back=0)
    return SyncService.preview(sync_range.start_date, sync_range.end_date, sync_range.channel)


@router.get('/jobs/{job_id}', response_model=JobStatus)
def sync_job_status(job_id: str):
    job_status = SyncService.get_sync_status(job_id)
    if job_status is None:
        raise HTTPException(
            status_code=404,
            detail={
                'error_code': 'JOB_NOT_FOUND',
                'message': 'Sync job not found or its status has expired',
                'details': {'job_id': job_id},
            },
        )
    return job_status
