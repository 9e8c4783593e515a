from app.core.config import settings
from app.core.rate_limit import build_rate_limit_dependency

write_rate_limiter = build_rate_limit_dependency(
    'write_ops',
    settings.write_rate_limit,
    settings.write_rate_window_seconds,
)
