"""
Startup validation for APP_ENV=prod.
Any failure raises RuntimeError and the application does not start.
"""
from app.core.config import settings

PLACEHOLDER_MARKERS = ('change_me', 'changeme')


def _is_placeholder(value: str) -> bool:
    lowered = (value or '').strip().lower()
    return not lowered or any(marker in lowered for marker in PLACEHOLDER_MARKERS)


def validate_production_config() -> None:
    """Rejects CORS *, a SQLite rollup database, and missing or default MySQL credentials in production."""
    if (getattr(settings, "app_env", "dev") or "dev").strip().lower() != "prod":
        return

    errors: list[str] = []

    if not (settings.cors_origins or "").strip():
        errors.append("CORS_ORIGINS must not be empty in production.")
    elif settings.cors_origins.strip() == "*":
        errors.append(
            "CORS_ORIGINS must not be '*' in production. "
            "Configure an explicit list of origins (e.g. https://reports.example.com)."
        )

    db_url = (settings.database_url or "").strip().lower()
    if db_url.startswith("sqlite"):
        errors.append("DATABASE_URL must point at MySQL or PostgreSQL in production, not SQLite.")
    if "change_me" in db_url:
        errors.append("DATABASE_URL must not contain a default password (change_me) in production.")

    if not settings.source_database_url.strip():
        if not (settings.mysql_host or "").strip():
            errors.append("MYSQL_HOST must be set in production.")
        if not (settings.mysql_user or "").strip():
            errors.append("MYSQL_USER must be set in production.")
        if _is_placeholder(settings.mysql_password):
            errors.append("MYSQL_PASSWORD must be set and must not be a placeholder in production.")
    elif "change_me" in settings.source_database_url.lower():
        errors.append("SOURCE_DATABASE_URL must not contain a default password (change_me) in production.")

    if errors:
        raise RuntimeError(
            "Invalid production configuration:\n  - " + "\n  - ".join(errors)
        )
