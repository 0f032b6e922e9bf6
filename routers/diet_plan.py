import html
import json
import logging

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from config import _current_user_id, _from_utc_storage, _today_local, _utc_now_storage
from db import get_db
from diet_templates import build_weekly_plan
from ui import PAGE_STYLE, _banners, _nav_bar

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_plan(uid: int):
    with get_db() as conn:
        row = conn.execute("SELECT plan, created_at FROM diet_plans WHERE user_id = ?", (uid,)).fetchone()
    if not row:
        return None
    return {
        "days": json.loads(row["plan"]),
        "created_at": _from_utc_storage(row["created_at"]).strftime("%Y-%m-%d %H:%M:%S"),
    }


def _generate_plan(uid: int) -> dict:
    """Build a fresh week from today and replace the stored plan."""
    days = build_weekly_plan(_today_local())
    with get_db() as conn:
        conn.execute(
            "INSERT INTO diet_plans (user_id, plan, created_at) VALUES (?, ?, ?)"
            " ON CONFLICT(user_id) DO UPDATE SET plan = excluded.plan, created_at = excluded.created_at",
            (uid, json.dumps(days), _utc_now_storage()),
        )
        conn.commit()
    logger.info("Diet plan generated for user %s", uid)
    return _load_plan(uid)


def _meal_html(label: str, meal: dict) -> str:
    n = meal["nutrition"]
    ingredients = "".join(f"<li>{html.escape(i)}</li>" for i in meal["ingredients"])
    return f"""
        <div style="margin-top:10px;">
          <div class="row"><strong>{label}: {html.escape(meal['name'])}</strong>
            <span class="meta">{html.escape(meal['time'])} &middot; {meal['calories']} kcal &middot; {html.escape(meal['prep_time'])}</span></div>
          <div class="meta">Protein {n['protein']}g &middot; Carbs {n['carbs']}g &middot; Fat {n['fat']}g &middot; Fiber {n['fiber']}g</div>
          <ul style="margin:4px 0 0;padding-left:18px;font-size:14px;">{ingredients}</ul>
        </div>"""


def _day_card(day: dict) -> str:
    meals = day["meals"]
    body = (
        _meal_html("Breakfast", meals["breakfast"])
        + _meal_html("Lunch", meals["lunch"])
        + _meal_html("Dinner", meals["dinner"])
        + "".join(_meal_html("Snack", s) for s in meals["snacks"])
    )
    benefits = "".join(f"<li>{html.escape(b)}</li>" for b in day["health_benefits"])
    tips = "".join(f"<li>{html.escape(t)}</li>" for t in day["tips"])
    return f"""
      <div class="card">
        <div class="row">
          <div class="card-name">{html.escape(day['day'])}</div>
          <span class="meta">{html.escape(day['date'])} &middot; {day['total_calories']} kcal</span>
        </div>
        {body}
        <p class="card-notes"><strong>Health benefits</strong></p>
        <ul style="margin:4px 0 0;padding-left:18px;font-size:14px;">{benefits}</ul>
        <p class="card-notes"><strong>Tips</strong></p>
        <ul style="margin:4px 0 0;padding-left:18px;font-size:14px;">{tips}</ul>
      </div>"""


@router.get("/diet-plan", response_class=HTMLResponse)
def diet_plan_page(success: str = ""):
    plan = _load_plan(_current_user_id.get())
    if plan:
        content = (
            f'<p class="meta">Generated {html.escape(plan["created_at"])}</p>'
            + "".join(_day_card(d) for d in plan["days"])
        )
        button = "Regenerate Plan"
    else:
        content = '<p class="empty">You have no diet plan yet.</p>'
        button = "Generate My Plan"
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Diet Plan</title></head>
<body>
  {_nav_bar('diet')}
  <div class="container">
    <h1>Personalised Diet Plan</h1>
    <p class="meta">A week of balanced meals rich in antioxidants, fibre and omega-3 fats.</p>
    {_banners("", success)}
    <form method="post" action="/diet-plan/generate">
      <button type="submit" class="btn-primary">{button}</button>
    </form>
    {content}
  </div>
</body>
</html>
"""


@router.post("/diet-plan/generate")
def diet_plan_generate():
    _generate_plan(_current_user_id.get())
    return RedirectResponse(url="/diet-plan?success=Your+7-day+plan+is+ready", status_code=303)


@router.get("/api/diet-plan")
def api_diet_plan():
    plan = _load_plan(_current_user_id.get())
    if plan is None:
        return JSONResponse({"ok": False, "error": "No diet plan yet"}, status_code=404)
    return JSONResponse({"ok": True, "plan": plan})


@router.post("/api/diet-plan")
def api_diet_plan_generate():
    return JSONResponse({"ok": True, "plan": _generate_plan(_current_user_id.get())})
