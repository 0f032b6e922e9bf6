import html

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, JSONResponse

import notify
import workflow
from config import _today_local
from db import get_db
from security import _current_user
from ui import PAGE_STYLE, _nav_bar, _risk_color, _status_badge

router = APIRouter()

PROGRESS_WEIGHTS = {"assessment": 40, "community": 30, "diet_plan": 30}


def _overall_progress(conn, uid: int) -> dict:
    done = {
        "assessment": conn.execute("SELECT 1 FROM assessments WHERE user_id = ? LIMIT 1", (uid,)).fetchone(),
        "community": conn.execute("SELECT 1 FROM community_posts WHERE user_id = ? LIMIT 1", (uid,)).fetchone(),
        "diet_plan": conn.execute("SELECT 1 FROM diet_plans WHERE user_id = ?", (uid,)).fetchone(),
    }
    steps = {k: v is not None for k, v in done.items()}
    return {
        "progress": sum(PROGRESS_WEIGHTS[k] for k, ok in steps.items() if ok),
        "steps": steps,
    }


def _dashboard_data(patient) -> dict:
    uid = patient["id"]
    today = _today_local().isoformat()
    with get_db() as conn:
        progress = _overall_progress(conn, uid)
        latest = conn.execute(
            "SELECT risk_score, risk_level, risk_percentage, created_at FROM assessments"
            " WHERE user_id = ? ORDER BY id DESC LIMIT 1",
            (uid,),
        ).fetchone()
        upcoming = [
            a for a in workflow.list_for_patient(conn, uid)
            if a["status"] in ("scheduled", "accepted") and a["date"] >= today
        ]
        notifications = [n for n in notify.list_notifications(conn, uid) if not n["read"]]
    return {
        "name": patient["name"],
        "progress": progress["progress"],
        "steps": progress["steps"],
        "latest_assessment": dict(latest) if latest else None,
        "upcoming_appointments": upcoming,
        "unread_notifications": notifications,
    }


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard_page():
    data = _dashboard_data(_current_user())
    latest = data["latest_assessment"]
    if latest:
        risk_html = (
            f'<span style="font-size:20px;font-weight:800;color:{_risk_color(latest["risk_level"])};">'
            f'{html.escape(latest["risk_level"])} Risk</span>'
            f' <span class="meta">score {latest["risk_score"]} &middot; {latest["risk_percentage"]}%</span>'
        )
    else:
        risk_html = '<a href="/assessment">Take your first risk assessment</a>'
    step_labels = {
        "assessment": ("Complete a risk assessment", "/assessment"),
        "community": ("Share a post with the community", "/community"),
        "diet_plan": ("Generate your diet plan", "/diet-plan"),
    }
    steps_html = "".join(
        f'<div class="meta">{"&#10003;" if ok else "&#9675;"} <a href="{step_labels[k][1]}">{step_labels[k][0]}</a></div>'
        for k, ok in data["steps"].items()
    )
    upcoming_html = "".join(
        f'<div class="row" style="padding:6px 0;border-bottom:1px solid #f0f0f0;">'
        f'<span>Dr. {html.escape(a["doctor_name"])} &middot; {html.escape(workflow._fmt_date(a["date"]))}'
        f' {html.escape(a["time"])}</span>{_status_badge(a["status"])}</div>'
        for a in data["upcoming_appointments"]
    ) or '<p class="empty">No upcoming appointments.</p>'
    notes_html = "".join(
        f'<div style="padding:6px 0;"><strong>{html.escape(n["title"])}</strong>'
        f'<div class="meta">{html.escape(n["message"])}</div></div>'
        for n in data["unread_notifications"][:5]
    ) or '<p class="empty">You are all caught up.</p>'
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Dashboard</title></head>
<body>
  {_nav_bar('dashboard')}
  <div class="container">
    <h1>Welcome back, {html.escape(data['name'])}</h1>
    <div class="card">
      <h2>Your progress &middot; {data['progress']}%</h2>
      <div class="progress"><div style="width:{data['progress']}%;"></div></div>
      <div style="margin-top:10px;">{steps_html}</div>
    </div>
    <div class="card"><h2>Latest risk result</h2>{risk_html}</div>
    <div class="card"><h2>Upcoming appointments</h2>{upcoming_html}</div>
    <div class="card"><h2>New notifications</h2>{notes_html}</div>
  </div>
</body>
</html>
"""


@router.get("/api/dashboard")
def api_dashboard():
    data = _dashboard_data(_current_user())
    return JSONResponse({"ok": True, **data})
