import html
import json

from fastapi import APIRouter, Body, Form
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

import prescribing
import tracking
import workflow
from config import DEFAULT_SPECIALIZATION, _today_local
from db import get_db
from security import _current_user
from ui import PAGE_STYLE, _banners, _nav_bar, _risk_color, _status_badge

router = APIRouter()


def _latest_assessment(conn, patient_id: int):
    row = conn.execute(
        "SELECT age, risk_score, risk_level, risk_percentage, created_at FROM assessments"
        " WHERE user_id = ? ORDER BY id DESC LIMIT 1",
        (patient_id,),
    ).fetchone()
    return dict(row) if row else None


def _patient_summaries(conn, doctor_id: int) -> list:
    patients = []
    for p in workflow.list_patients_for_doctor(conn, doctor_id):
        p["latest_assessment"] = _latest_assessment(conn, p["id"])
        p["goals"] = tracking.list_goals(conn, p["id"])
        patients.append(p)
    return patients


def _split_appointments(appointments: list) -> dict:
    today = _today_local().isoformat()
    return {
        "pending": [a for a in appointments if a["status"] == "scheduled"],
        "accepted": [a for a in appointments if a["status"] == "accepted"],
        "today": [a for a in appointments if a["date"] == today and a["status"] != "cancelled"],
    }


def _issue(conn, doctor, patient_id: int, payload: dict):
    if payload.get("recommended"):
        template = prescribing.recommended_prescription(conn, patient_id)
        return prescribing.issue_prescription(
            conn, doctor, patient_id, template["medications"], template["diagnosis"],
            template["instructions"], template["notes"],
        )
    return prescribing.issue_prescription(
        conn,
        doctor,
        patient_id,
        payload.get("medications"),
        str(payload.get("diagnosis", "") or ""),
        str(payload.get("instructions", "") or ""),
        str(payload.get("notes", "") or ""),
    )


def _pending_card(a: dict) -> str:
    return f"""
      <div class="card">
        <div class="row">
          <div>
            <div class="card-name">{html.escape(a['patient_name'])}</div>
            <div class="card-ts">{html.escape(workflow._fmt_date(a['date']))} at {html.escape(a['time'])}</div>
          </div>
          <div style="display:flex;gap:6px;">
            <form method="post" action="/doctor/appointments/{a['id']}/accept" style="margin:0;">
              <button type="submit" class="btn-accept">Accept</button></form>
            <form method="post" action="/doctor/appointments/{a['id']}/reject" style="margin:0;">
              <button type="submit" class="btn-reject">Reject</button></form>
          </div>
        </div>
        <p class="card-notes">{html.escape(a['reason'])}</p>
      </div>"""


def _appointment_row(a: dict) -> str:
    return (
        '<div class="row" style="padding:6px 0;border-bottom:1px solid #f0f0f0;">'
        f'<span>{html.escape(a["patient_name"])} &middot; {html.escape(workflow._fmt_date(a["date"]))}'
        f' {html.escape(a["time"])}</span>{_status_badge(a["status"])}</div>'
    )


def _patient_card(p: dict) -> str:
    latest = p["latest_assessment"]
    if latest:
        assessment_html = (
            f'<span style="color:{_risk_color(latest["risk_level"])};font-weight:700;">'
            f'{html.escape(latest["risk_level"])} risk</span>'
            f' <span class="meta">age {latest["age"] if latest["age"] is not None else "?"}'
            f' &middot; assessed {html.escape(latest["created_at"][:10])}</span>'
        )
    else:
        assessment_html = '<span class="meta">No assessment yet</span>'
    goals_html = "".join(
        f'<div class="meta">{html.escape(g["goal"])} &middot; {g["progress"]}% {_status_badge(g["status"])}</div>'
        for g in p["goals"]
    ) or '<div class="meta">No emotional goals</div>'
    pid = p["id"]
    return f"""
      <div class="card">
        <div class="card-name">{html.escape(p['name'])}</div>
        <div class="card-ts">{html.escape(p['email'])}</div>
        <p class="card-notes">{assessment_html}</p>
        <div style="margin-top:8px;">{goals_html}</div>
        <details style="margin-top:12px;">
          <summary style="cursor:pointer;font-weight:600;">Write a prescription</summary>
          <form method="post" action="/doctor/patients/{pid}/prescriptions" style="margin-top:10px;">
            <input type="hidden" name="kind" value="recommended">
            <button type="submit" class="btn-small">Issue recommended preventive prescription</button>
          </form>
          <form method="post" action="/doctor/patients/{pid}/prescriptions" style="margin-top:12px;">
            <input type="hidden" name="kind" value="custom">
            <div class="form-group"><label>Diagnosis</label><input type="text" name="diagnosis" required></div>
            <div class="form-group"><label>Medication</label><input type="text" name="med_name" required></div>
            <div class="form-group"><label>Dosage</label><input type="text" name="med_dosage" required></div>
            <div class="form-group"><label>Frequency</label><input type="text" name="med_frequency"></div>
            <div class="form-group"><label>Duration</label><input type="text" name="med_duration"></div>
            <div class="form-group"><label>Medication instructions</label><input type="text" name="med_instructions"></div>
            <div class="form-group"><label>General instructions</label><textarea name="instructions" rows="2"></textarea></div>
            <div class="form-group"><label>Notes</label><textarea name="notes" rows="2"></textarea></div>
            <button type="submit" class="btn-primary">Issue Prescription</button>
          </form>
        </details>
      </div>"""


@router.get("/doctor", response_class=HTMLResponse)
def doctor_dashboard(error: str = "", success: str = ""):
    doctor = _current_user()
    with get_db() as conn:
        groups = _split_appointments(workflow.list_for_doctor(conn, doctor["id"]))
        patients = _patient_summaries(conn, doctor["id"])
    pending_html = "".join(_pending_card(a) for a in groups["pending"]) or '<p class="empty">No pending requests.</p>'
    today_html = "".join(_appointment_row(a) for a in groups["today"]) or '<p class="empty">Nothing scheduled today.</p>'
    accepted_html = "".join(_appointment_row(a) for a in groups["accepted"]) or '<p class="empty">No confirmed appointments.</p>'
    patients_html = "".join(_patient_card(p) for p in patients) or '<p class="empty">No patients yet.</p>'
    specialization = doctor["specialization"] or DEFAULT_SPECIALIZATION
    return f"""<!DOCTYPE html>
<html>
<head>{PAGE_STYLE}<title>Doctor Dashboard</title></head>
<body>
  {_nav_bar('doctor')}
  <div class="container">
    <h1>Dr. {html.escape(doctor['name'])}</h1>
    <p class="meta">{html.escape(specialization)}</p>
    {_banners(error, success)}
    <div class="card">
      <div class="row">
        <span><strong>{len(groups['pending'])}</strong> pending</span>
        <span><strong>{len(groups['accepted'])}</strong> confirmed</span>
        <span><strong>{len(groups['today'])}</strong> today</span>
        <span><strong>{len(patients)}</strong> patients</span>
      </div>
    </div>
    <h2 style="margin-top:24px;">Pending requests</h2>
    {pending_html}
    <div class="card"><h2>Today</h2>{today_html}</div>
    <div class="card"><h2>Confirmed appointments</h2>{accepted_html}</div>
    <h2 style="margin-top:24px;">Patients</h2>
    {patients_html}
  </div>
</body>
</html>
"""


@router.post("/doctor/appointments/{appointment_id}/{action}")
def doctor_respond(appointment_id: int, action: str):
    doctor = _current_user()
    with get_db() as conn:
        error, _ = workflow.respond_to_appointment(conn, doctor, appointment_id, action)
    if error:
        return RedirectResponse(url="/doctor?error=" + error.replace(" ", "+"), status_code=303)
    label = "accepted" if action == "accept" else "declined"
    return RedirectResponse(url=f"/doctor?success=Appointment+{label}", status_code=303)


@router.post("/doctor/patients/{patient_id}/prescriptions")
def doctor_prescribe(
    patient_id: int,
    kind: str = Form("custom"),
    diagnosis: str = Form(""),
    med_name: str = Form(""),
    med_dosage: str = Form(""),
    med_frequency: str = Form(""),
    med_duration: str = Form(""),
    med_instructions: str = Form(""),
    instructions: str = Form(""),
    notes: str = Form(""),
):
    doctor = _current_user()
    payload = {
        "recommended": kind == "recommended",
        "diagnosis": diagnosis,
        "medications": [{
            "name": med_name,
            "dosage": med_dosage,
            "frequency": med_frequency,
            "duration": med_duration,
            "instructions": med_instructions,
        }],
        "instructions": instructions,
        "notes": notes,
    }
    with get_db() as conn:
        error, _ = _issue(conn, doctor, patient_id, payload)
    if error:
        return RedirectResponse(url="/doctor?error=" + error.replace(" ", "+"), status_code=303)
    return RedirectResponse(url="/doctor?success=Prescription+issued", status_code=303)


@router.get("/api/doctor/appointments")
def api_doctor_appointments():
    doctor = _current_user()
    with get_db() as conn:
        appointments = workflow.list_for_doctor(conn, doctor["id"])
    groups = _split_appointments(appointments)
    return JSONResponse({
        "ok": True,
        "appointments": appointments,
        "pending": len(groups["pending"]),
        "accepted": len(groups["accepted"]),
        "today": len(groups["today"]),
    })


@router.post("/api/doctor/appointments/{appointment_id}/{action}")
def api_doctor_respond(appointment_id: int, action: str):
    doctor = _current_user()
    with get_db() as conn:
        error, appointment = workflow.respond_to_appointment(conn, doctor, appointment_id, action)
    if error == "Appointment not found":
        return JSONResponse({"ok": False, "error": error}, status_code=404)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    return JSONResponse({"ok": True, "appointment": appointment})


@router.get("/api/doctor/patients")
def api_doctor_patients():
    doctor = _current_user()
    with get_db() as conn:
        patients = _patient_summaries(conn, doctor["id"])
    return JSONResponse({"ok": True, "patients": patients})


@router.get("/api/doctor/patients/{patient_id}/prescriptions/recommended")
def api_doctor_recommended(patient_id: int):
    doctor = _current_user()
    with get_db() as conn:
        if not workflow.doctor_has_patient(conn, doctor["id"], patient_id):
            return JSONResponse({"ok": False, "error": "Patient not found"}, status_code=404)
        template = prescribing.recommended_prescription(conn, patient_id)
    return JSONResponse({"ok": True, "prescription": template})


@router.post("/api/doctor/patients/{patient_id}/prescriptions")
def api_doctor_prescribe(patient_id: int, payload: dict = Body(...)):
    doctor = _current_user()
    if isinstance(payload.get("medications"), str):
        try:
            payload["medications"] = json.loads(payload["medications"])
        except ValueError:
            return JSONResponse({"ok": False, "error": "Invalid medication entry"}, status_code=400)
    with get_db() as conn:
        error, prescription = _issue(conn, doctor, patient_id, payload)
    if error == "Patient not found":
        return JSONResponse({"ok": False, "error": error}, status_code=404)
    if error:
        return JSONResponse({"ok": False, "error": error}, status_code=400)
    return JSONResponse({"ok": True, "prescription": prescription})
