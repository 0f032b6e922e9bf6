import os
import secrets
from contextvars import ContextVar
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

DB_PATH = os.environ.get("PORTAL_DB_PATH", "portal.db")
SECRET_KEY_PATH = Path(".app_secret_key")
SESSION_TTL_SECONDS = 60 * 60 * 24 * 14
SESSION_COOKIE_NAME = "portal_session"
CSRF_COOKIE_NAME = "csrf_token"
TZ_OFFSET_COOKIE_NAME = "tz_offset"

SUPABASE_URL = os.environ.get("SUPABASE_URL", "").strip()
SUPABASE_KEY = os.environ.get("SUPABASE_KEY", "").strip()

_current_user_id:   ContextVar[int]           = ContextVar("_current_user_id", default=0)
_current_user_type: ContextVar[Optional[str]] = ContextVar("_current_user_type", default=None)
_client_now: ContextVar[Optional[datetime]] = ContextVar("_client_now", default=None)
_client_tz_offset_min: ContextVar[Optional[int]] = ContextVar("_client_tz_offset_min", default=None)

PUBLIC_PATHS = {
    "/", "/login", "/signup", "/logout", "/contact",
    "/forgot-password", "/reset-password",
}
# Reachable by both roles once logged in.
SHARED_PREFIXES = ("/notifications", "/api/notifications")
DOCTOR_PREFIXES = ("/doctor", "/api/doctor")
RESET_TOKEN_TTL_SECONDS = 3600  # 1 hour

USER_TYPES = ("patient", "doctor")
DEFAULT_SPECIALIZATION = "General Medicine"
PRESCRIPTION_VALID_DAYS = 90


def _set_client_clock(tz_offset_cookie: str):
    """Set per-request client-local clock derived from JS timezone offset cookie."""
    offset = None
    try:
        offset = int((tz_offset_cookie or "").strip())
    except ValueError:
        offset = None
    if offset is not None and -840 <= offset <= 840:
        _client_tz_offset_min.set(offset)
        _client_now.set(datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=offset))
        return
    _client_tz_offset_min.set(None)
    _client_now.set(datetime.now())


def _now_local() -> datetime:
    return _client_now.get() or datetime.now()


def _today_local() -> date:
    return _now_local().date()


def _utc_now_storage() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _from_utc_storage(ts: str) -> datetime:
    """Convert UTC storage string to request-local naive datetime."""
    dt_utc = datetime.strptime(ts, "%Y-%m-%d %H:%M:%S")
    offset = _client_tz_offset_min.get()
    if offset is not None:
        return dt_utc - timedelta(minutes=offset)
    server_tz = datetime.now().astimezone().tzinfo
    return dt_utc.replace(tzinfo=timezone.utc).astimezone(server_tz).replace(tzinfo=None)


def _load_secret_key() -> str:
    env_key = os.environ.get("APP_SECRET_KEY", "").strip()
    if env_key:
        return env_key
    if SECRET_KEY_PATH.exists():
        return SECRET_KEY_PATH.read_text(encoding="utf-8").strip()
    key = secrets.token_hex(32)
    SECRET_KEY_PATH.write_text(key, encoding="utf-8")
    return key


SECRET_KEY = _load_secret_key()
