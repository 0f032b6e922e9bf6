from config import _utc_now_storage

NOTIFICATION_TYPES = {
    "appointment_request",
    "appointment_accepted",
    "appointment_rejected",
    "prescription_received",
}


def create_notification(conn, user_id: int, type_: str, title: str, message: str, related_id="") -> int:
    """Insert a notification row on the caller's connection; the caller commits."""
    if type_ not in NOTIFICATION_TYPES:
        raise ValueError(f"unknown notification type: {type_}")
    cur = conn.execute(
        "INSERT INTO notifications (user_id, type, title, message, read, related_id, created_at)"
        " VALUES (?, ?, ?, ?, 0, ?, ?)",
        (user_id, type_, title, message, str(related_id or ""), _utc_now_storage()),
    )
    return cur.lastrowid


def _row_to_dict(row) -> dict:
    item = dict(row)
    item["read"] = bool(item["read"])
    return item


def list_notifications(conn, user_id: int) -> list:
    rows = conn.execute(
        "SELECT id, type, title, message, read, related_id, created_at FROM notifications"
        " WHERE user_id = ? ORDER BY id DESC",
        (user_id,),
    ).fetchall()
    return [_row_to_dict(r) for r in rows]


def unread_count(conn, user_id: int) -> int:
    return conn.execute(
        "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND read = 0", (user_id,)
    ).fetchone()[0]


def mark_read(conn, user_id: int, notification_id: int) -> bool:
    cur = conn.execute(
        "UPDATE notifications SET read = 1 WHERE id = ? AND user_id = ?",
        (notification_id, user_id),
    )
    conn.commit()
    return cur.rowcount > 0


def mark_all_read(conn, user_id: int) -> int:
    cur = conn.execute(
        "UPDATE notifications SET read = 1 WHERE user_id = ? AND read = 0", (user_id,)
    )
    conn.commit()
    return cur.rowcount
