import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.request_metrics import summary as request_metrics_summary, sync_summary
from app.core.status_store import get_status_store
from app.db.session import SessionLocal, get_source_engine

router = APIRouter()
logger = logging.getLogger(__name__)

SERVICE_NAME = 'bet-rollup-api-v1'


def _check_source_ok() -> bool | None:
    """
    Round-trip to the upstream MySQL source.
    True if reachable, False if it fails, None when no source is configured.
    """
    if not settings.source_database_url.strip() and not (
        str(settings.mysql_host or '').strip() and str(settings.mysql_user or '').strip()
    ):
        return None
    try:
        with get_source_engine().connect() as conn:
            conn.execute(text('SELECT 1'))
        return True
    except Exception as exc:
        logger.warning('health: source database unreachable: %s', exc)
        return False


def _check_status_store_ok() -> bool | None:
    store = get_status_store()
    ping = getattr(store, 'ping', None)
    if ping is None:
        return None  # in-process store
    try:
        return bool(ping())
    except Exception as exc:
        logger.warning('health: status store unreachable: %s', exc)
        return False


@router.get('/health')
def health():
    """
    Returns 200 with db_ok true when the rollup database is reachable, 503 otherwise.
    mysql_ok reports the upstream source, status_store_ok the shared job status store.
    """
    db_ok = False
    db = SessionLocal()
    try:
        db.execute(text('SELECT 1'))
        db_ok = True
    except Exception as exc:
        logger.warning('health: rollup database unreachable: %s', exc)
    finally:
        db.close()
    if not db_ok:
        return JSONResponse(
            status_code=503,
            content={
                'ok': False,
                'service': SERVICE_NAME,
                'db_ok': False,
                'mysql_ok': None,
                'status_store_ok': None,
                'message': 'Database unreachable',
            },
        )
    return {
        'ok': True,
        'service': SERVICE_NAME,
        'db_ok': True,
        'mysql_ok': _check_source_ok(),  # True=ok, False=failing, None=not configured
        'status_store_ok': _check_status_store_ok(),
    }


@router.get('/health/perf')
def health_perf():
    return {
        'service': SERVICE_NAME,
        'request_latency': request_metrics_summary(),
        'sync_runs': sync_summary(),
    }
