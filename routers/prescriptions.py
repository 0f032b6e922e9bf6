import html

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, JSONResponse

import prescribing
from config import _current_user_id
from db import get_db
from ui import PAGE_STYLE, _nav_bar, _status_badge

router = APIRouter()


def _prescription_card(p: dict) -> str:
    meds = "".join(
        f"""<li><strong>{html.escape(m['name'])}</strong> {html.escape(m['dosage'])}
          <span class="meta">{html.escape(m['frequency'])}{' &middot; ' + html.escape(m['duration']) if m['duration'] else ''}</span>
          {f'<div class="meta">{html.escape(m["instructions"])}</div>' if m['instructions'] else ''}</li>"""
        for m in p["medications"]
    )
    extra = ""
    if p["instructions"]:
        extra += f'<p class="card-notes"><strong>Instructions:</strong> {html.escape(p["instructions"])}</p>'
    if p["notes"]:
        extra += f'<p class="card-notes"><strong>Notes:</strong> {html.escape(p["notes"])}</p>'
    return f"""
      <div class="card">
        <div class="row">
          <div>
            <div class="card-name">{html.escape(p['diagnosis'])}</div>
            <div class="card-ts">Dr. {html.escape(p['doctor_name'])} &middot; {html.escape(p['doctor_specialization'])}</div>
          </div>
          {_status_badge(p['status'])}
        </div>
        <ul style="margin:10px 0 0;padding-left:18px;">{meds}</ul>
        {extra}
        <p class="meta">Issued {html.escape(p['date_issued'])} &middot; valid until {html.escape(p['valid_until'])}</p>
      </div>"""


@router.get("/prescriptions", response_class=HTMLResponse)
def prescriptions_page():
    with get_db() as conn:
        prescriptions = prescribing.list_for_patient(conn, _current_user_id.get())
    cards = "".join(_prescription_card(p) for p in prescriptions)
    if not cards:
        cards = '<p class="empty">No prescriptions yet. Your doctor will issue them after an appointment.</p>'
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Prescriptions</title></head>
<body>
  {_nav_bar('prescriptions')}
  <div class="container">
    <h1>Prescriptions</h1>
    {cards}
  </div>
</body>
</html>
"""


@router.get("/api/prescriptions")
def api_prescriptions():
    with get_db() as conn:
        prescriptions = prescribing.list_for_patient(conn, _current_user_id.get())
    return JSONResponse({"ok": True, "prescriptions": prescriptions})
