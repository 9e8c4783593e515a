from datetime import date, datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from app.core.config import settings


def normalize_channel(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = str(value).strip().upper()
    if not normalized:
        return None
    allowed = settings.allowed_channels()
    if allowed and normalized not in allowed:
        raise ValueError(f'invalid channel: {value} (allowed: {", ".join(allowed)})')
    return normalized


class SyncBetsIn(BaseModel):
    start_date: date
    end_date: date
    channel: str | None = Field(default=None, max_length=32)

    @field_validator('channel')
    @classmethod
    def validate_channel(cls, value: str | None) -> str | None:
        return normalize_channel(value)

    @model_validator(mode='after')
    def validate_range(self) -> 'SyncBetsIn':
        if self.end_date < self.start_date:
            raise ValueError('end_date must be on or after start_date')
        return self


class BackgroundSyncIn(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    channel: str | None = Field(default=None, max_length=32)

    @field_validator('channel')
    @classmethod
    def validate_channel(cls, value: str | None) -> str | None:
        return normalize_channel(value)

    @model_validator(mode='after')
    def validate_range(self) -> 'BackgroundSyncIn':
        if self.start_date is None and self.end_date is not None:
            self.start_date = self.end_date
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError('end_date must be on or after start_date')
        return self


class SyncPerformanceOut(BaseModel):
    records_per_second: float
    chunk_size: int
    batch_size: int


class SyncRunOut(BaseModel):
    mode: Literal['inline'] = 'inline'
    job_id: str | None = None
    start_date: date
    end_date: date
    channel: str | None = None
    processed_records: int
    skipped_records: int = 0
    batches_committed: int = 0
    execution_time_seconds: float
    performance: SyncPerformanceOut


class BackgroundSyncOut(BaseModel):
    mode: Literal['background'] = 'background'
    job_id: str
    estimated_records: int
    start_date: date
    end_date: date
    channel: str | None = None
    status: str = 'accepted'
    status_check_url: str | None = None


class SyncPreviewOut(BaseModel):
    start_date: date
    end_date: date
    channel: str | None = None
    estimated_records: int
    estimate_method: str = 'exact'
    capped: bool = False
    background_threshold: int
    would_run_in_background: bool


class _JobStatusBase(BaseModel):
    job_id: str
    start_date: date
    end_date: date
    channel: str | None = None
    estimated_records: int = 0
    processed_records: int = 0
    updated_at: datetime


class QueuedStatus(_JobStatusBase):
    status: Literal['queued'] = 'queued'
    queued_at: datetime
    attempt: int = 1
    last_error: str | None = None


class ProcessingStatus(_JobStatusBase):
    status: Literal['processing'] = 'processing'
    started_at: datetime
    attempt: int = 1
    progress_percentage: float = 0.0


class CompletedStatus(_JobStatusBase):
    status: Literal['completed'] = 'completed'
    started_at: datetime
    completed_at: datetime
    skipped_records: int = 0
    progress_percentage: float = 100.0
    execution_time_seconds: float
    records_per_second: float


class FailedStatus(_JobStatusBase):
    status: Literal['failed'] = 'failed'
    started_at: datetime | None = None
    failed_at: datetime
    attempt: int = 1
    will_retry: bool = False
    error: str


JobStatus = Annotated[
    Union[QueuedStatus, ProcessingStatus, CompletedStatus, FailedStatus],
    Field(discriminator='status'),
]
job_status_adapter = TypeAdapter(JobStatus)
