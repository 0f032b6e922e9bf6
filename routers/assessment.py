import html
import json
from typing import List

from fastapi import APIRouter, Body, Form
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

import risk
from config import _current_user_id, _from_utc_storage, _utc_now_storage
from db import get_db
from ui import PAGE_STYLE, _banners, _nav_bar, _risk_color

router = APIRouter()

_ASSESSMENT_COLS = "id, age, gender, answers, risk_score, risk_level, risk_percentage, created_at"


def _validate_assessment(answers: dict):
    age = risk._parse_age(answers.get("age"))
    if age is None or not 1 <= age <= 120:
        return "Please enter a valid age"
    if answers.get("gender") not in risk.GENDERS:
        return "Please select a gender"
    return ""


def _known(selected, known) -> list:
    if not isinstance(selected, (list, tuple)):
        return []
    return sorted({s for s in selected if isinstance(s, str) and s in known})


def _row_to_dict(row) -> dict:
    item = dict(row)
    item["answers"] = json.loads(item["answers"] or "{}")
    item["created_at"] = _from_utc_storage(item["created_at"]).strftime("%Y-%m-%d %H:%M:%S")
    return item


def _save_assessment(uid: int, answers: dict):
    """Score and store one submission. Returns (error, stored assessment)."""
    answers = risk.normalize_answers(answers)
    error = _validate_assessment(answers)
    if error:
        return (error, None)
    result = risk.score(answers)
    stored = {
        "age": risk._parse_age(answers.get("age")),
        "gender": answers.get("gender"),
        "family_history": risk._is_true(answers.get("family_history")),
        "smoking_history": answers.get("smoking_history") or "",
        "alcohol_consumption": answers.get("alcohol_consumption") or "",
        "physical_activity": answers.get("physical_activity") or "",
        "diet": answers.get("diet") or "",
        "symptoms": _known(answers.get("symptoms"), risk.SYMPTOMS),
        "medical_history": _known(answers.get("medical_history"), risk.MEDICAL_CONDITIONS),
    }
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO assessments (user_id, age, gender, answers, risk_score, risk_level,"
            " risk_percentage, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (uid, stored["age"], stored["gender"], json.dumps(stored), result.risk_score,
             result.risk_level, result.risk_percentage, _utc_now_storage()),
        )
        conn.commit()
        row = conn.execute(
            f"SELECT {_ASSESSMENT_COLS} FROM assessments WHERE id = ?", (cur.lastrowid,)
        ).fetchone()
    return ("", _row_to_dict(row))


def _latest_assessment(uid: int):
    with get_db() as conn:
        row = conn.execute(
            f"SELECT {_ASSESSMENT_COLS} FROM assessments WHERE user_id = ? ORDER BY id DESC LIMIT 1",
            (uid,),
        ).fetchone()
    return _row_to_dict(row) if row else None


def _select(name: str, options) -> str:
    opts = "".join(f'<option value="{o}">{o.title()}</option>' for o in options)
    return f'<select id="{name}" name="{name}" required><option value="">Select...</option>{opts}</select>'


def _checks(name: str, options) -> str:
    return "".join(
        f'<label class="check"><input type="checkbox" name="{name}" value="{html.escape(o)}"> {html.escape(o)}</label>'
        for o in options
    )


@router.get("/assessment", response_class=HTMLResponse)
def assessment_page(error: str = "", success: str = ""):
    latest = _latest_assessment(_current_user_id.get())
    if latest:
        color = _risk_color(latest["risk_level"])
        result_html = f"""
    <div class="card">
      <h2>Your latest result</h2>
      <div class="row">
        <span style="font-size:22px;font-weight:800;color:{color};">{html.escape(latest['risk_level'])} Risk</span>
        <span class="meta">Score {latest['risk_score']} &middot; {latest['created_at'][:10]}</span>
      </div>
      <div class="progress" style="margin-top:10px;"><div style="width:{latest['risk_percentage']}%;background:{color};"></div></div>
      <p class="meta">Estimated risk {latest['risk_percentage']}%. This is a screening aid, not a diagnosis.
        Please discuss the result with your doctor.</p>
    </div>"""
    else:
        result_html = ""
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Risk Assessment</title></head>
<body>
  {_nav_bar('assessment')}
  <div class="container">
    <h1>Cancer Risk Assessment</h1>
    {_banners(error, success)}
    {result_html}
    <div class="card">
      <form method="post" action="/assessment">
        <div class="form-group"><label for="age">Age</label>
          <input type="number" id="age" name="age" min="1" max="120" required></div>
        <div class="form-group"><label for="gender">Gender</label>{_select("gender", risk.GENDERS)}</div>
        <div class="form-group">
          <label class="check"><input type="checkbox" name="family_history" value="true">
            A close family member has had cancer</label>
        </div>
        <div class="form-group"><label for="smoking_history">Smoking</label>
          {_select("smoking_history", risk.SMOKING_POINTS)}</div>
        <div class="form-group"><label for="alcohol_consumption">Alcohol</label>
          {_select("alcohol_consumption", risk.ALCOHOL_POINTS)}</div>
        <div class="form-group"><label for="physical_activity">Physical activity</label>
          {_select("physical_activity", risk.ACTIVITY_POINTS)}</div>
        <div class="form-group"><label for="diet">Diet</label>{_select("diet", risk.DIET_POINTS)}</div>
        <div class="form-group"><label>Symptoms you have noticed</label>{_checks("symptoms", risk.SYMPTOMS)}</div>
        <div class="form-group"><label>Medical history</label>{_checks("medical_history", risk.MEDICAL_CONDITIONS)}</div>
        <button type="submit" class="btn-primary">Calculate Risk</button>
      </form>
    </div>
  </div>
</body>
</html>
"""


@router.post("/assessment")
def assessment_submit(
    age: str = Form(""),
    gender: str = Form(""),
    family_history: str = Form(""),
    smoking_history: str = Form(""),
    alcohol_consumption: str = Form(""),
    physical_activity: str = Form(""),
    diet: str = Form(""),
    symptoms: List[str] = Form([]),
    medical_history: List[str] = Form([]),
):
    error, item = _save_assessment(_current_user_id.get(), {
        "age": age,
        "gender": gender,
        "family_history": family_history,
        "smoking_history": smoking_history,
        "alcohol_consumption": alcohol_consumption,
        "physical_activity": physical_activity,
        "diet": diet,
        "symptoms": symptoms,
        "medical_history": medical_history,
    })
    if error:
        return RedirectResponse(url="/assessment?error=" + error.replace(" ", "+"), status_code=303)
    return RedirectResponse(url="/assessment?success=Assessment+saved", status_code=303)


@router.post("/api/assessment")
def api_assessment_submit(payload: dict = Body(...)):
    error, item = _save_assessment(_current_user_id.get(), payload)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    return JSONResponse({
        "ok": True,
        "assessment": item,
        "risk_score": item["risk_score"],
        "risk_level": item["risk_level"],
        "risk_percentage": item["risk_percentage"],
    })


@router.get("/api/assessments")
def api_assessments():
    uid = _current_user_id.get()
    with get_db() as conn:
        rows = conn.execute(
            f"SELECT {_ASSESSMENT_COLS} FROM assessments WHERE user_id = ? ORDER BY id DESC",
            (uid,),
        ).fetchall()
    return JSONResponse({"ok": True, "assessments": [_row_to_dict(r) for r in rows]})
