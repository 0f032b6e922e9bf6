import html

from fastapi import APIRouter, Body, Form
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

import workflow
from config import _today_local
from db import get_db
from security import _current_user
from ui import PAGE_STYLE, _banners, _nav_bar, _status_badge

router = APIRouter()


def _appointment_card(a: dict) -> str:
    cancel = ""
    if a["status"] == "scheduled":
        cancel = (
            f'<form method="post" action="/appointments/{a["id"]}/cancel" style="margin:0;">'
            '<button type="submit" class="btn-reject">Cancel</button></form>'
        )
    return f"""
      <div class="card">
        <div class="row">
          <div>
            <div class="card-name">Dr. {html.escape(a['doctor_name'])}</div>
            <div class="card-ts">{html.escape(a['doctor_specialization'])}</div>
          </div>
          {_status_badge(a['status'])}
        </div>
        <p class="card-notes">{html.escape(workflow._fmt_date(a['date']))} at {html.escape(a['time'])}</p>
        <p class="card-notes">{html.escape(a['reason'])}</p>
        {cancel}
      </div>"""


@router.get("/appointments", response_class=HTMLResponse)
def appointments_page(error: str = "", success: str = ""):
    patient = _current_user()
    with get_db() as conn:
        appointments = workflow.list_for_patient(conn, patient["id"])
        doctors = workflow.list_doctors(conn)
    doctor_opts = "".join(
        f'<option value="{d["id"]}">Dr. {html.escape(d["name"])} ({html.escape(d["specialization"])})</option>'
        for d in doctors
    )
    if doctors:
        form = f"""
      <form method="post" action="/appointments">
        <div class="form-group"><label for="doctor_id">Doctor</label>
          <select id="doctor_id" name="doctor_id" required>
            <option value="">Choose a doctor...</option>{doctor_opts}
          </select></div>
        <div class="form-group"><label for="date">Date</label>
          <input type="date" id="date" name="date" min="{_today_local().isoformat()}" required></div>
        <div class="form-group"><label for="time">Time</label>
          <input type="time" id="time" name="time" required></div>
        <div class="form-group"><label for="reason">Reason for visit</label>
          <textarea id="reason" name="reason" rows="3" required></textarea></div>
        <button type="submit" class="btn-primary">Book Appointment</button>
      </form>"""
    else:
        form = '<p class="empty">No doctors are registered yet.</p>'
    cards = "".join(_appointment_card(a) for a in appointments)
    if not cards:
        cards = '<p class="empty">You have no appointments yet.</p>'
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Appointments</title></head>
<body>
  {_nav_bar('appointments')}
  <div class="container">
    <h1>Appointments</h1>
    {_banners(error, success)}
    <div class="card">
      <h2>Book an appointment</h2>
      {form}
    </div>
    <h2 style="margin-top:24px;">Your appointments</h2>
    {cards}
  </div>
</body>
</html>
"""


@router.post("/appointments")
def appointments_book(
    doctor_id: str = Form(""),
    date: str = Form(""),
    time: str = Form(""),
    reason: str = Form(""),
):
    patient = _current_user()
    with get_db() as conn:
        error, _ = workflow.book_appointment(conn, patient, doctor_id, date, time, reason)
    if error:
        return RedirectResponse(url="/appointments?error=" + error.replace(" ", "+"), status_code=303)
    return RedirectResponse(url="/appointments?success=Appointment+requested", status_code=303)


@router.post("/appointments/{appointment_id}/cancel")
def appointments_cancel(appointment_id: int):
    patient = _current_user()
    with get_db() as conn:
        error, _ = workflow.cancel_appointment(conn, patient, appointment_id)
    if error:
        return RedirectResponse(url="/appointments?error=" + error.replace(" ", "+"), status_code=303)
    return RedirectResponse(url="/appointments?success=Appointment+cancelled", status_code=303)


@router.get("/api/doctors")
def api_doctors():
    with get_db() as conn:
        doctors = workflow.list_doctors(conn)
    return JSONResponse({"ok": True, "doctors": doctors})


@router.get("/api/appointments")
def api_appointments():
    patient = _current_user()
    with get_db() as conn:
        appointments = workflow.list_for_patient(conn, patient["id"])
    return JSONResponse({"ok": True, "appointments": appointments})


@router.post("/api/appointments")
def api_appointments_book(payload: dict = Body(...)):
    patient = _current_user()
    with get_db() as conn:
        error, appointment = workflow.book_appointment(
            conn,
            patient,
            payload.get("doctor_id"),
            str(payload.get("date", "") or ""),
            str(payload.get("time", "") or ""),
            str(payload.get("reason", "") or ""),
        )
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    return JSONResponse({"ok": True, "appointment": appointment})


@router.post("/api/appointments/{appointment_id}/cancel")
def api_appointments_cancel(appointment_id: int):
    patient = _current_user()
    with get_db() as conn:
        error, appointment = workflow.cancel_appointment(conn, patient, appointment_id)
    if error == "Appointment not found":
        return JSONResponse({"ok": False, "error": error}, status_code=404)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    return JSONResponse({"ok": True, "appointment": appointment})
