class BetSyncError(RuntimeError):
    error_code = 'SYNC_ERROR'


class ConnectivityError(BetSyncError):
    """Source or destination database could not be reached."""

    error_code = 'SOURCE_UNAVAILABLE'


class TransformationError(BetSyncError):
    """An aggregated source row could not be mapped to a rollup record."""

    error_code = 'TRANSFORMATION_FAILED'


class BatchCommitError(BetSyncError):
    """A batch transaction was rolled back; nothing from that batch was written."""

    error_code = 'BATCH_COMMIT_FAILED'

    def __init__(self, message: str, batch_size: int = 0):
        super().__init__(message)
        self.batch_size = batch_size


class EstimationError(BetSyncError):
    error_code = 'ESTIMATION_FAILED'


class SyncTimeoutError(BetSyncError):
    error_code = 'SYNC_TIMEOUT'


class SyncAlreadyRunningError(BetSyncError):
    error_code = 'SYNC_ALREADY_RUNNING'
