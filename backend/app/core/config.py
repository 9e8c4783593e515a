from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    app_name: str = 'bet-rollup-api-v1'
    app_env: str = Field(default='dev', alias='APP_ENV')
    app_port: int = Field(default=8000, alias='APP_PORT')

    database_url: str = Field(default='sqlite:///./data/bet_rollup.db', alias='DATABASE_URL')
    db_bootstrap_on_start: bool = Field(default=False, alias='DB_BOOTSTRAP_ON_START')
    db_pool_size: int = Field(default=10, alias='DB_POOL_SIZE')
    db_max_overflow: int = Field(default=20, alias='DB_MAX_OVERFLOW')
    db_pool_timeout: int = Field(default=30, alias='DB_POOL_TIMEOUT')
    db_pool_recycle: int = Field(default=1800, alias='DB_POOL_RECYCLE')

    source_database_url: str = Field(default='', alias='SOURCE_DATABASE_URL')
    mysql_host: str = Field(default='', alias='MYSQL_HOST')
    mysql_port: int = Field(default=3306, alias='MYSQL_PORT')
    mysql_user: str = Field(default='', alias='MYSQL_USER')
    mysql_password: str = Field(default='', alias='MYSQL_PASSWORD')
    mysql_database: str = Field(default='', alias='MYSQL_DATABASE')
    mysql_ssl_disabled: bool = Field(default=True, alias='MYSQL_SSL_DISABLED')
    mysql_connect_timeout: int = Field(default=20, alias='MYSQL_CONNECT_TIMEOUT')

    status_store_url: str = Field(default='', alias='STATUS_STORE_URL')

    bet_sync_chunk_size: int = Field(default=1000, alias='BET_SYNC_CHUNK_SIZE')
    bet_sync_batch_size: int = Field(default=500, alias='BET_SYNC_BATCH_SIZE')
    bet_sync_job_chunk_size: int = Field(default=2000, alias='BET_SYNC_JOB_CHUNK_SIZE')
    bet_sync_job_batch_size: int = Field(default=1000, alias='BET_SYNC_JOB_BATCH_SIZE')
    bet_sync_background_threshold: int = Field(default=10000, alias='BET_SYNC_BACKGROUND_THRESHOLD')
    bet_sync_job_timeout: int = Field(default=3600, alias='BET_SYNC_JOB_TIMEOUT')
    bet_sync_job_tries: int = Field(default=3, alias='BET_SYNC_JOB_TRIES')
    bet_sync_status_cache_hours: int = Field(default=24, alias='BET_SYNC_STATUS_CACHE_HOURS')
    bet_sync_progress_log_interval: int = Field(default=5000, alias='BET_SYNC_PROGRESS_INTERVAL')
    bet_sync_job_progress_interval: int = Field(default=10000, alias='BET_SYNC_JOB_PROGRESS_INTERVAL')
    bet_sync_skip_invalid_records: bool = Field(default=False, alias='BET_SYNC_SKIP_INVALID')
    bet_sync_allowed_channels: str = Field(default='VN,TH,MY,PH', alias='BET_SYNC_ALLOWED_CHANNELS')
    bet_sync_default_days_back: int = Field(default=1, alias='BET_SYNC_DEFAULT_DAYS')
    bet_sync_estimate_mode: str = Field(default='exact', alias='BET_SYNC_ESTIMATE_MODE')
    bet_sync_estimate_cap: int = Field(default=0, alias='BET_SYNC_ESTIMATE_CAP')
    bet_sync_events_per_group: float = Field(default=1.0, alias='BET_SYNC_EVENTS_PER_GROUP')
    bet_sync_schedule_minutes: int = Field(default=5, alias='BET_SYNC_SCHEDULE_MINUTES')
    bet_sync_slow_threshold: int = Field(default=300, alias='BET_SYNC_SLOW_THRESHOLD')
    bet_sync_cli_confirm_threshold: int = Field(default=50000, alias='BET_SYNC_CLI_CONFIRM_THRESHOLD')

    sync_worker_name: str = Field(default='sync-worker', alias='SYNC_WORKER_NAME')
    sync_worker_idle_sleep_seconds: float = Field(default=1.5, alias='SYNC_WORKER_IDLE_SLEEP_SECONDS')

    write_rate_limit: int = Field(default=30, alias='WRITE_RATE_LIMIT')
    write_rate_window_seconds: int = Field(default=60, alias='WRITE_RATE_WINDOW_SECONDS')

    cors_origins: str = Field(default='*', alias='CORS_ORIGINS')

    def resolved_source_url(self) -> str:
        if self.source_database_url.strip():
            return self.source_database_url.strip()
        user = quote_plus(self.mysql_user or '')
        password = quote_plus(self.mysql_password or '')
        return (
            f'mysql+mysqlconnector://{user}:{password}@{self.mysql_host or "localhost"}:'
            f'{int(self.mysql_port or 3306)}/{self.mysql_database or ""}'
        )

    def allowed_channels(self) -> list[str]:
        return [c.strip() for c in str(self.bet_sync_allowed_channels or '').split(',') if c.strip()]


settings = Settings()
