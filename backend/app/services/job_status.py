from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from pydantic import ValidationError

from app.core.config import settings
from app.core.status_store import get_status_store
from app.schemas.sync import JobStatus, ProcessingStatus, job_status_adapter

logger = logging.getLogger(__name__)

STATUS_KEY_PREFIX = 'sync_job_status'


def new_job_id() -> str:
    return f'sync_bets_{uuid.uuid4().hex[:16]}'


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def progress_percentage(processed_records: int, estimated_records: int) -> float:
    if not estimated_records or estimated_records <= 0:
        return 0.0
    return round((processed_records / estimated_records) * 100, 2)


class JobStatusTracker:
    def __init__(self, store=None, ttl_hours: int | None = None, clock: Callable[[], datetime] = _utcnow):
        self._store = store if store is not None else get_status_store()
        self.ttl_seconds = max(1, int(ttl_hours or settings.bet_sync_status_cache_hours or 24)) * 3600
        self._clock = clock

    @property
    def shared(self) -> bool:
        """True when other processes see the same statuses."""
        return bool(getattr(self._store, 'shared', False))

    @staticmethod
    def key(job_id: str) -> str:
        return f'{STATUS_KEY_PREFIX}:{job_id}'

    def _decode(self, raw: str | None) -> JobStatus | None:
        if not raw:
            return None
        try:
            return job_status_adapter.validate_json(raw)
        except ValidationError:
            logger.exception('[bet-sync] unreadable status payload discarded')
            return None

    @staticmethod
    def _encode(status: JobStatus) -> str:
        return job_status_adapter.dump_json(status).decode('utf-8')

    def get_status(self, job_id: str) -> JobStatus | None:
        """None means unknown or expired, never "failed"."""
        return self._decode(self._store.get(self.key(job_id)))

    def set_status(self, job_id: str, status: str, **fields) -> JobStatus:
        """
        Move ``job_id`` into ``status``. Fields not given are carried over from
        the previous state where the new state has them (range, estimate, counters).
        """
        now = self._clock()

        def _apply(raw: str | None) -> str:
            previous = self._decode(raw)
            payload: dict = previous.model_dump() if previous is not None else {}
            if previous is not None and previous.status != status:
                payload.pop('progress_percentage', None)
            payload.update(fields)
            payload['job_id'] = job_id
            payload['status'] = status
            payload['updated_at'] = now
            validated = job_status_adapter.validate_python(payload)
            return self._encode(validated)

        encoded = self._store.update(self.key(job_id), _apply, self.ttl_seconds)
        return job_status_adapter.validate_json(encoded)

    def update_progress(self, job_id: str, processed_records: int) -> JobStatus | None:
        now = self._clock()

        def _apply(raw: str | None) -> str | None:
            current = self._decode(raw)
            if not isinstance(current, ProcessingStatus):
                return None
            updated = current.model_copy(
                update={
                    'processed_records': int(processed_records),
                    'progress_percentage': progress_percentage(processed_records, current.estimated_records),
                    'updated_at': now,
                }
            )
            return self._encode(updated)

        encoded = self._store.update(self.key(job_id), _apply, self.ttl_seconds)
        if encoded is None:
            logger.warning('[bet-sync:%s] progress update skipped: job is not processing', job_id)
            return None
        return job_status_adapter.validate_json(encoded)
