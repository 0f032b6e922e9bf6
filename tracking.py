from datetime import datetime
from typing import Optional, Tuple

from config import _utc_now_storage

GOAL_CATEGORIES = [
    "Anxiety Management",
    "Sleep Quality",
    "Stress Reduction",
    "Social Connection",
    "Self-Care",
    "Mindfulness",
    "Physical Activity",
    "Emotional Resilience",
]
GOAL_STATUSES = ("active", "completed", "paused")
MAX_GOAL_LEN = 200
MAX_DESCRIPTION_LEN = 1000

_GOAL_COLS = "id, goal, description, target_date, progress, status, category, created_at, updated_at"


def list_goals(conn, user_id: int) -> list:
    rows = conn.execute(
        f"SELECT {_GOAL_COLS} FROM emotional_goals WHERE user_id = ? ORDER BY id",
        (user_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def get_goal(conn, user_id: int, goal_id: int) -> Optional[dict]:
    row = conn.execute(
        f"SELECT {_GOAL_COLS} FROM emotional_goals WHERE id = ? AND user_id = ?",
        (goal_id, user_id),
    ).fetchone()
    return dict(row) if row else None


def create_goal(
    conn, user_id: int, goal: str, target_date: str, category: str, description: str = ""
) -> Tuple[Optional[str], Optional[dict]]:
    goal = (goal or "").strip()
    target_date = (target_date or "").strip()
    if not goal or not target_date:
        return ("Goal and target date are required", None)
    if len(goal) > MAX_GOAL_LEN:
        return (f"Goal must be {MAX_GOAL_LEN} characters or fewer", None)
    if len((description or "").strip()) > MAX_DESCRIPTION_LEN:
        return (f"Description must be {MAX_DESCRIPTION_LEN} characters or fewer", None)
    try:
        datetime.strptime(target_date, "%Y-%m-%d")
    except ValueError:
        return ("Invalid date format", None)
    category = (category or "").strip() or GOAL_CATEGORIES[0]
    if category not in GOAL_CATEGORIES:
        return ("Unknown category", None)
    now = _utc_now_storage()
    cur = conn.execute(
        "INSERT INTO emotional_goals (user_id, goal, description, target_date, progress, status,"
        " category, created_at, updated_at) VALUES (?, ?, ?, ?, 0, 'active', ?, ?, ?)",
        (user_id, goal, (description or "").strip(), target_date, category, now, now),
    )
    conn.commit()
    return (None, get_goal(conn, user_id, cur.lastrowid))


def next_status(current: str, progress: int) -> str:
    # Reaching 100 completes the goal; lowering progress never un-completes it.
    if progress >= 100:
        return "completed"
    return current


def update_progress(conn, user_id: int, goal_id: int, progress) -> Tuple[Optional[str], Optional[dict]]:
    try:
        progress = int(progress)
    except (TypeError, ValueError):
        return ("Progress must be a whole number", None)
    if not 0 <= progress <= 100:
        return ("Progress must be between 0 and 100", None)
    goal = get_goal(conn, user_id, goal_id)
    if not goal:
        return ("Goal not found", None)
    conn.execute(
        "UPDATE emotional_goals SET progress = ?, status = ?, updated_at = ? WHERE id = ? AND user_id = ?",
        (progress, next_status(goal["status"], progress), _utc_now_storage(), goal_id, user_id),
    )
    conn.commit()
    return (None, get_goal(conn, user_id, goal_id))


def toggle_status(conn, user_id: int, goal_id: int) -> Tuple[Optional[str], Optional[dict]]:
    goal = get_goal(conn, user_id, goal_id)
    if not goal:
        return ("Goal not found", None)
    if goal["status"] == "completed":
        return ("Completed goals cannot be paused", None)
    new_status = "paused" if goal["status"] == "active" else "active"
    conn.execute(
        "UPDATE emotional_goals SET status = ?, updated_at = ? WHERE id = ? AND user_id = ?",
        (new_status, _utc_now_storage(), goal_id, user_id),
    )
    conn.commit()
    return (None, get_goal(conn, user_id, goal_id))


def delete_goal(conn, user_id: int, goal_id: int) -> bool:
    cur = conn.execute(
        "DELETE FROM emotional_goals WHERE id = ? AND user_id = ?", (goal_id, user_id)
    )
    conn.commit()
    return cur.rowcount > 0
