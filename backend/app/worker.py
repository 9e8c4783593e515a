import logging
import signal
import time

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.scheduler import build_scheduler
from app.services.sync_service import SyncService


logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    worker_name = settings.sync_worker_name
    idle_sleep = float(settings.sync_worker_idle_sleep_seconds)
    stop = {"flag": False}

    def _shutdown_handler(signum, _frame):  # type: ignore[no-untyped-def]
        logger.info("sync worker received signal %s, stopping...", signum)
        stop["flag"] = True

    signal.signal(signal.SIGTERM, _shutdown_handler)
    signal.signal(signal.SIGINT, _shutdown_handler)

    logger.info("sync worker started: %s", worker_name)
    try:
        reclaimed = SyncService.worker_bootstrap_cleanup()
        if reclaimed:
            logger.warning("sync worker reclaimed %s interrupted job(s)", reclaimed)
    except Exception:
        logger.exception("sync worker bootstrap cleanup failed; will retry on loop")

    scheduler = build_scheduler()
    if scheduler is not None:
        scheduler.start()
        logger.info("bet sync schedule active: every %s minute(s)", settings.bet_sync_schedule_minutes)

    while not stop["flag"]:
        try:
            ran = SyncService.poll_and_run_next(worker_name=worker_name)
        except Exception:
            logger.exception("sync worker loop error")
            ran = False
        if not ran:
            time.sleep(max(0.5, idle_sleep))

    if scheduler is not None:
        scheduler.shutdown(wait=True)
    logger.info("sync worker stopped: %s", worker_name)


if __name__ == "__main__":
    main()
