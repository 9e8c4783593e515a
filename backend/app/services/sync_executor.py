"""
Streaming read -> transform -> batch -> upsert loop.

Read chunking bounds memory while scanning the grouped source result; batch
flushing bounds the size of each destination transaction. The two sizes are
independent. A failure aborts the run, but batches already committed stay
committed.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from app.core.config import settings
from app.services.aggregation_query import AggregationQueryBuilder, SyncRange
from app.services.batch_upserter import BatchUpserter
from app.services.record_transformer import BetRecord, transform
from app.services.sync_errors import SyncTimeoutError, TransformationError

logger = logging.getLogger(__name__)

IDLE = 'idle'
RUNNING = 'running'
COMPLETED = 'completed'
FAILED = 'failed'


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class SyncResult:
    processed_records: int
    skipped_records: int
    batches_committed: int
    chunks_read: int
    elapsed_seconds: float
    started_at: datetime
    finished_at: datetime

    @property
    def records_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return round(self.processed_records / self.elapsed_seconds, 2)


class ChunkedSyncExecutor:
    def __init__(
        self,
        query_builder: AggregationQueryBuilder,
        upserter: BatchUpserter,
        *,
        chunk_size: int | None = None,
        progress_interval: int | None = None,
        skip_invalid_records: bool | None = None,
        on_progress: Callable[[int], None] | None = None,
        now: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
        job_id: str | None = None,
    ):
        self._query = query_builder
        self._upserter = upserter
        self.chunk_size = max(1, int(chunk_size or settings.bet_sync_chunk_size or 1000))
        interval = settings.bet_sync_progress_log_interval if progress_interval is None else progress_interval
        self.progress_interval = max(0, int(interval or 0))
        self.skip_invalid_records = (
            settings.bet_sync_skip_invalid_records if skip_invalid_records is None else bool(skip_invalid_records)
        )
        self._on_progress = on_progress
        self._now = now
        self._monotonic = monotonic
        self.job_id = job_id or '-'

        self.state = IDLE
        self.processed_records = 0
        self.skipped_records = 0
        self.chunks_read = 0

    @property
    def batch_size(self) -> int:
        return self._upserter.batch_size

    def run(self, sync_range: SyncRange, deadline: float | None = None) -> SyncResult:
        if self.state != IDLE:
            raise RuntimeError(f'executor already used (state={self.state})')
        self.state = RUNNING
        started = self._monotonic()
        started_at = self._now()
        buffer: list[BetRecord] = []
        logger.info(
            '[bet-sync:%s] start %s chunk_size=%s batch_size=%s',
            self.job_id, sync_range.describe(), self.chunk_size, self.batch_size,
        )
        try:
            for chunk in self._query.iter_chunks(sync_range, self.chunk_size):
                self._check_deadline(deadline)
                processing_time = self._now()
                for row in chunk:
                    record = self._transform(row, processing_time)
                    if record is None:
                        continue
                    buffer.append(record)
                    if len(buffer) >= self.batch_size:
                        self._flush(buffer)
                        buffer = []
                self.chunks_read += 1
                logger.debug('[bet-sync:%s] chunk %s read (%s rows)', self.job_id, self.chunks_read, len(chunk))
            if buffer:
                self._check_deadline(deadline)
                self._flush(buffer)
        except Exception:
            self.state = FAILED
            logger.error(
                '[bet-sync:%s] aborted after %s records (%s batches committed)',
                self.job_id, self.processed_records, self._upserter.batches_committed,
            )
            raise
        self.state = COMPLETED
        elapsed = round(self._monotonic() - started, 2)
        return SyncResult(
            processed_records=self.processed_records,
            skipped_records=self.skipped_records,
            batches_committed=self._upserter.batches_committed,
            chunks_read=self.chunks_read,
            elapsed_seconds=elapsed,
            started_at=started_at,
            finished_at=self._now(),
        )

    def _transform(self, row, processing_time: datetime) -> BetRecord | None:
        try:
            return transform(row, processing_time)
        except TransformationError as exc:
            if not self.skip_invalid_records:
                raise
            self.skipped_records += 1
            logger.warning('[bet-sync:%s] skipped invalid group: %s', self.job_id, exc)
            return None

    def _flush(self, buffer: list[BetRecord]) -> None:
        self._upserter.upsert(buffer)
        before = self.processed_records
        self.processed_records += len(buffer)
        interval = self.progress_interval
        if interval and self.processed_records // interval > before // interval:
            logger.info('[bet-sync:%s] processed %s records', self.job_id, self.processed_records)
            if self._on_progress is not None:
                self._on_progress(self.processed_records)

    def _check_deadline(self, deadline: float | None) -> None:
        if deadline is not None and self._monotonic() > deadline:
            raise SyncTimeoutError(
                f'sync exceeded its time limit after {self.processed_records} records'
            )
