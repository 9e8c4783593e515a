import time
import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.logging_config import configure_logging, log_request, structured_log
from app.core.prod_check import validate_production_config
from app.core.request_metrics import observe
from app.db.bootstrap import bootstrap_database
from app.db.base import Base
from app.db.session import engine
from app.services.sync_errors import BetSyncError, SyncAlreadyRunningError

configure_logging()

if settings.app_env != 'prod' and not settings.db_bootstrap_on_start:
    Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.app_name, version='1.0.0')

if settings.cors_origins and settings.cors_origins.strip() != '*':
    origins = [o.strip() for o in settings.cors_origins.split(',') if o.strip()]
else:
    origins = [
        'http://localhost:8080', 'http://localhost:5173',
        'http://127.0.0.1:8080', 'http://127.0.0.1:5173',
    ]


def _cors_error_headers(request: Request) -> dict[str, str]:
    origin = request.headers.get('origin', '').strip()
    if not origin or origin not in origins:
        return {}
    return {
        'access-control-allow-origin': origin,
        'access-control-allow-credentials': 'true',
        'vary': 'Origin',
    }


def _trace_id(request: Request) -> str:
    return getattr(request.state, 'trace_id', None) or request.headers.get('x-trace-id') or str(uuid.uuid4())


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.middleware('http')
async def trace_and_logging(request: Request, call_next):
    trace_id = request.headers.get('x-trace-id') or str(uuid.uuid4())
    request.state.trace_id = trace_id
    start = time.time()
    try:
        response = await call_next(request)
        latency = round((time.time() - start) * 1000, 2)
        observe(request.url.path, latency)
        log_request(request.url.path, request.method, trace_id, latency, response.status_code)
        response.headers['x-trace-id'] = trace_id
        response.headers['x-latency-ms'] = str(latency)
        return response
    except Exception as exc:
        latency = round((time.time() - start) * 1000, 2)
        structured_log(
            'error', 'request_failed',
            trace_id=trace_id, duration_ms=latency,
            endpoint=f'{request.method} {request.url.path}',
            error=str(exc),
        )
        body = {'error_code': 'INTERNAL_ERROR', 'message': 'Internal error', 'details': str(exc), 'trace_id': trace_id}
        headers = {'x-trace-id': trace_id, 'x-latency-ms': str(latency)}
        headers.update(_cors_error_headers(request))
        return JSONResponse(status_code=500, content=body, headers=headers)


@app.exception_handler(BetSyncError)
async def bet_sync_exception_handler(request: Request, exc: BetSyncError):
    trace_id = _trace_id(request)
    status_code = 409 if isinstance(exc, SyncAlreadyRunningError) else 500
    structured_log(
        'error' if status_code >= 500 else 'warning', 'sync_request_failed',
        trace_id=trace_id, endpoint=f'{request.method} {request.url.path}',
        error_code=exc.error_code, error=str(exc),
    )
    body = {
        'error_code': exc.error_code,
        'message': str(exc),
        'details': {'type': exc.__class__.__name__},
        'trace_id': trace_id,
    }
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    trace_id = _trace_id(request)
    if isinstance(exc.detail, dict):
        body = {
            'error_code': str(exc.detail.get('error_code') or 'HTTP_ERROR'),
            'message': str(exc.detail.get('message') or 'HTTP Error'),
            'details': exc.detail.get('details'),
            'trace_id': trace_id,
        }
    else:
        body = {'error_code': 'HTTP_ERROR', 'message': str(exc.detail), 'details': None, 'trace_id': trace_id}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, 'headers', None))


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    body = {
        'error_code': 'INVALID_PAYLOAD',
        'message': 'Invalid payload',
        'details': {'errors': jsonable_encoder(exc.errors())},
        'trace_id': _trace_id(request),
    }
    return JSONResponse(status_code=422, content=body)


app.include_router(v1_router)


@app.on_event('startup')
def _startup_checks() -> None:
    validate_production_config()
    if settings.db_bootstrap_on_start:
        bootstrap_database()
