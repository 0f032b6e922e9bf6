"""Optional remote mirror of the ``users`` table (Supabase).

The local SQLite store is always authoritative for sessions. When
``SUPABASE_URL`` and ``SUPABASE_KEY`` are configured the remote table is
consulted first at signup and login; any remote failure is logged and the
caller carries on with the local store.

Rows only cross the boundary through ``to_remote_row`` / ``from_remote_row``.
"""
import logging
import threading
from typing import Optional

from supabase import Client, create_client

import config

logger = logging.getLogger(__name__)

REMOTE_TABLE = "users"
UNIQUE_VIOLATION = "23505"

_client_lock = threading.Lock()
_client: Optional[Client] = None
_client_failed = False


class RemoteDuplicateError(Exception):
    """The remote table already holds a user with this email."""


def get_client() -> Optional[Client]:
    global _client, _client_failed
    if not (config.SUPABASE_URL and config.SUPABASE_KEY):
        return None
    with _client_lock:
        if _client is None and not _client_failed:
            try:
                _client = create_client(config.SUPABASE_URL, config.SUPABASE_KEY)
            except Exception:
                _client_failed = True
                logger.exception("Could not create Supabase client; using local store only")
        return _client


def to_remote_row(user: dict) -> dict:
    return {
        "name": user.get("name", ""),
        "email": user.get("email", ""),
        "password": user.get("password_hash", ""),
        "user_type": user.get("user_type", ""),
        "specialization": user.get("specialization") or None,
        "medical_license": user.get("medical_license") or None,
        "is_verified": bool(user.get("is_verified")),
    }


def from_remote_row(row: dict) -> dict:
    return {
        "name": row.get("name") or "",
        "email": (row.get("email") or "").strip().lower(),
        "password_hash": row.get("password") or "",
        "user_type": row.get("user_type") or row.get("userType") or "",
        "specialization": row.get("specialization") or "",
        "medical_license": row.get("medical_license") or "",
        "is_verified": 1 if row.get("is_verified") else 0,
    }


def find_user(email: str, user_type: str) -> Optional[dict]:
    """Return the remote user mapped to local fields, or None when absent or unreachable."""
    client = get_client()
    if client is None:
        return None
    try:
        resp = (
            client.table(REMOTE_TABLE)
            .select("*")
            .eq("email", email)
            .eq("user_type", user_type)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.warning("Remote user lookup failed; falling back to local store", exc_info=True)
        return None
    rows = resp.data or []
    if not rows:
        return None
    return from_remote_row(rows[0])


def insert_user(user: dict) -> bool:
    """Insert the user remotely. Returns True when stored remotely.

    Raises RemoteDuplicateError on a unique violation; every other remote
    error is logged and reported as False.
    """
    client = get_client()
    if client is None:
        return False
    try:
        client.table(REMOTE_TABLE).insert(to_remote_row(user)).execute()
    except Exception as exc:
        if str(getattr(exc, "code", "")) == UNIQUE_VIOLATION:
            raise RemoteDuplicateError(user.get("email", "")) from exc
        logger.warning("Remote user insert failed; continuing with local store", exc_info=True)
        return False
    return True


def update_password(email: str, user_type: str, password_hash: str) -> bool:
    """Push a new password hash to the remote row. Returns True when stored remotely."""
    client = get_client()
    if client is None:
        return False
    try:
        (
            client.table(REMOTE_TABLE)
            .update({"password": password_hash})
            .eq("email", email)
            .eq("user_type", user_type)
            .execute()
        )
    except Exception:
        logger.warning("Remote password update failed; local password was still changed", exc_info=True)
        return False
    return True
