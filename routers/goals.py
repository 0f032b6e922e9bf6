import html

from fastapi import APIRouter, Body, Form
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

import tracking
from config import _current_user_id
from db import get_db
from ui import PAGE_STYLE, _banners, _nav_bar, _status_badge

router = APIRouter()


def _goal_card(g: dict) -> str:
    gid = g["id"]
    toggle = ""
    if g["status"] != "completed":
        toggle_label = "Pause" if g["status"] == "active" else "Resume"
        toggle = (
            f'<form method="post" action="/goals/{gid}/toggle" style="margin:0;">'
            f'<button type="submit" class="btn-small">{toggle_label}</button></form>'
        )
    description = f'<p class="card-notes">{html.escape(g["description"])}</p>' if g["description"] else ""
    return f"""
      <div class="card">
        <div class="row">
          <div>
            <div class="card-name">{html.escape(g['goal'])}</div>
            <div class="card-ts">{html.escape(g['category'])} &middot; target {html.escape(g['target_date'])}</div>
          </div>
          {_status_badge(g['status'])}
        </div>
        {description}
        <div class="progress" style="margin-top:10px;"><div style="width:{g['progress']}%;"></div></div>
        <div class="row" style="margin-top:10px;">
          <form method="post" action="/goals/{gid}/progress" style="margin:0;display:flex;gap:6px;align-items:center;">
            <input type="number" name="progress" min="0" max="100" value="{g['progress']}" style="width:90px;">
            <button type="submit" class="btn-small">Update</button>
          </form>
          <div style="display:flex;gap:6px;">
            {toggle}
            <form method="post" action="/goals/{gid}/delete" style="margin:0;">
              <button type="submit" class="btn-reject">Delete</button></form>
          </div>
        </div>
      </div>"""


@router.get("/goals", response_class=HTMLResponse)
def goals_page(error: str = "", success: str = ""):
    with get_db() as conn:
        goals = tracking.list_goals(conn, _current_user_id.get())
    category_opts = "".join(f'<option value="{c}">{c}</option>' for c in tracking.GOAL_CATEGORIES)
    cards = "".join(_goal_card(g) for g in goals) or '<p class="empty">No goals yet. Set your first one above.</p>'
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Emotional Goals</title></head>
<body>
  {_nav_bar('goals')}
  <div class="container">
    <h1>Emotional Goals</h1>
    {_banners(error, success)}
    <div class="card">
      <h2>New goal</h2>
      <form method="post" action="/goals">
        <div class="form-group"><label for="goal">Goal</label>
          <input type="text" id="goal" name="goal" required></div>
        <div class="form-group"><label for="description">Description
          <span style="color:#aaa;font-weight:400">(optional)</span></label>
          <textarea id="description" name="description" rows="2"></textarea></div>
        <div class="form-group"><label for="category">Category</label>
          <select id="category" name="category">{category_opts}</select></div>
        <div class="form-group"><label for="target_date">Target date</label>
          <input type="date" id="target_date" name="target_date" required></div>
        <button type="submit" class="btn-primary">Add Goal</button>
      </form>
    </div>
    {cards}
  </div>
</body>
</html>
"""


def _redirect(error, success: str):
    if error:
        return RedirectResponse(url="/goals?error=" + error.replace(" ", "+"), status_code=303)
    return RedirectResponse(url="/goals?success=" + success.replace(" ", "+"), status_code=303)


@router.post("/goals")
def goals_create(
    goal: str = Form(""),
    target_date: str = Form(""),
    category: str = Form(""),
    description: str = Form(""),
):
    with get_db() as conn:
        error, _ = tracking.create_goal(conn, _current_user_id.get(), goal, target_date, category, description)
    return _redirect(error, "Goal added")


@router.post("/goals/{goal_id}/progress")
def goals_progress(goal_id: int, progress: str = Form("")):
    with get_db() as conn:
        error, _ = tracking.update_progress(conn, _current_user_id.get(), goal_id, progress)
    return _redirect(error, "Progress updated")


@router.post("/goals/{goal_id}/toggle")
def goals_toggle(goal_id: int):
    with get_db() as conn:
        error, _ = tracking.toggle_status(conn, _current_user_id.get(), goal_id)
    return _redirect(error, "Goal updated")


@router.post("/goals/{goal_id}/delete")
def goals_delete(goal_id: int):
    with get_db() as conn:
        deleted = tracking.delete_goal(conn, _current_user_id.get(), goal_id)
    return _redirect("" if deleted else "Goal not found", "Goal deleted")


def _api_result(error, goal):
    if error == "Goal not found":
        return JSONResponse({"ok": False, "error": error}, status_code=404)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    return JSONResponse({"ok": True, "goal": goal})


@router.get("/api/goals")
def api_goals():
    with get_db() as conn:
        goals = tracking.list_goals(conn, _current_user_id.get())
    return JSONResponse({"ok": True, "goals": goals})


@router.post("/api/goals")
def api_goals_create(payload: dict = Body(...)):
    with get_db() as conn:
        error, goal = tracking.create_goal(
            conn,
            _current_user_id.get(),
            str(payload.get("goal", "") or ""),
            str(payload.get("target_date", "") or ""),
            str(payload.get("category", "") or ""),
            str(payload.get("description", "") or ""),
        )
    return _api_result(error, goal)


@router.post("/api/goals/{goal_id}/progress")
def api_goals_progress(goal_id: int, payload: dict = Body(...)):
    with get_db() as conn:
        error, goal = tracking.update_progress(conn, _current_user_id.get(), goal_id, payload.get("progress"))
    return _api_result(error, goal)


@router.post("/api/goals/{goal_id}/toggle")
def api_goals_toggle(goal_id: int):
    with get_db() as conn:
        error, goal = tracking.toggle_status(conn, _current_user_id.get(), goal_id)
    return _api_result(error, goal)


@router.post("/api/goals/{goal_id}/delete")
def api_goals_delete(goal_id: int):
    with get_db() as conn:
        deleted = tracking.delete_goal(conn, _current_user_id.get(), goal_id)
    if not deleted:
        return JSONResponse({"ok": False, "error": "Goal not found"}, status_code=404)
    return JSONResponse({"ok": True})
