"""Appointment lifecycle shared by the patient and doctor views.

    scheduled --accept--> accepted
    scheduled --reject--> cancelled
    scheduled --cancel--> cancelled   (patient)

``completed`` is a valid stored status but no action here produces it.
Each transition commits its appointment change and its notification together.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from config import DEFAULT_SPECIALIZATION, _today_local, _utc_now_storage
from notify import create_notification

logger = logging.getLogger(__name__)

APPOINTMENT_STATUSES = ("scheduled", "accepted", "cancelled", "completed")
DOCTOR_ACTIONS = {"accept": "accepted", "reject": "cancelled"}
MAX_REASON_LEN = 1000

_APPOINTMENT_COLS = (
    "id, patient_id, doctor_id, doctor_name, doctor_specialization,"
    " date, time, reason, status, created_at, updated_at"
)


def _fmt_date(date_str: str) -> str:
    try:
        d = datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError:
        return date_str
    return f"{d:%b} {d.day}, {d.year}"


def get_appointment(conn, appointment_id: int) -> Optional[dict]:
    row = conn.execute(
        f"SELECT {_APPOINTMENT_COLS} FROM appointments WHERE id = ?", (appointment_id,)
    ).fetchone()
    return dict(row) if row else None


def list_for_patient(conn, patient_id: int) -> list:
    rows = conn.execute(
        f"SELECT {_APPOINTMENT_COLS} FROM appointments WHERE patient_id = ?"
        " ORDER BY date, time, id",
        (patient_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def list_for_doctor(conn, doctor_id: int) -> list:
    rows = conn.execute(
        "SELECT a.id, a.patient_id, a.doctor_id, a.doctor_name, a.doctor_specialization,"
        " a.date, a.time, a.reason, a.status, a.created_at, a.updated_at,"
        " u.name AS patient_name, u.email AS patient_email"
        " FROM appointments a JOIN users u ON u.id = a.patient_id"
        " WHERE a.doctor_id = ? ORDER BY a.date, a.time, a.id",
        (doctor_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def list_doctors(conn) -> list:
    rows = conn.execute(
        "SELECT id, name, email, specialization FROM users"
        " WHERE user_type = 'doctor' ORDER BY name"
    ).fetchall()
    doctors = []
    for r in rows:
        item = dict(r)
        item["specialization"] = item["specialization"] or DEFAULT_SPECIALIZATION
        doctors.append(item)
    return doctors


def _validate_booking(doctor_id, date_str: str, time_str: str, reason: str) -> Optional[str]:
    if not doctor_id or not date_str.strip() or not time_str.strip() or not reason.strip():
        return "Please fill in all fields"
    if len(reason.strip()) > MAX_REASON_LEN:
        return f"Reason must be {MAX_REASON_LEN} characters or fewer"
    try:
        appt_date = datetime.strptime(date_str.strip(), "%Y-%m-%d").date()
    except ValueError:
        return "Invalid date format"
    try:
        datetime.strptime(time_str.strip(), "%H:%M")
    except ValueError:
        return "Invalid time format"
    if appt_date < _today_local():
        return "Appointment date cannot be in the past"
    return None


def book_appointment(
    conn, patient, doctor_id, date_str: str, time_str: str, reason: str
) -> Tuple[Optional[str], Optional[dict]]:
    """Create a scheduled appointment and notify the doctor."""
    error = _validate_booking(doctor_id, date_str, time_str, reason)
    if error:
        return (error, None)
    try:
        doctor_id = int(doctor_id)
    except (TypeError, ValueError):
        return ("Selected doctor not found", None)
    doctor = conn.execute(
        "SELECT id, name, specialization FROM users WHERE id = ? AND user_type = 'doctor'",
        (doctor_id,),
    ).fetchone()
    if not doctor:
        return ("Selected doctor not found", None)
    now = _utc_now_storage()
    cur = conn.execute(
        "INSERT INTO appointments (patient_id, doctor_id, doctor_name, doctor_specialization,"
        " date, time, reason, status, created_at, updated_at)"
        " VALUES (?, ?, ?, ?, ?, ?, ?, 'scheduled', ?, ?)",
        (
            patient["id"], doctor["id"], doctor["name"],
            doctor["specialization"] or DEFAULT_SPECIALIZATION,
            date_str.strip(), time_str.strip(), reason.strip(), now, now,
        ),
    )
    appointment_id = cur.lastrowid
    create_notification(
        conn,
        doctor["id"],
        "appointment_request",
        "New Appointment Request",
        f"{patient['name']} has requested an appointment on {_fmt_date(date_str.strip())}"
        f" at {time_str.strip()}",
        appointment_id,
    )
    conn.commit()
    logger.info(
        "Appointment %s booked by patient %s with doctor %s",
        appointment_id, patient["id"], doctor["id"],
    )
    return (None, get_appointment(conn, appointment_id))


def _transition(conn, appointment_id: int, new_status: str) -> bool:
    # Conditional on the stored status so a concurrent transition wins only once.
    cur = conn.execute(
        "UPDATE appointments SET status = ?, updated_at = ? WHERE id = ? AND status = 'scheduled'",
        (new_status, _utc_now_storage(), appointment_id),
    )
    return cur.rowcount == 1


def _already(conn, appointment_id: int) -> Tuple[str, None]:
    conn.rollback()
    current = get_appointment(conn, appointment_id)
    logger.info("Appointment %s was already %s", appointment_id, current["status"])
    return (f"Appointment is already {current['status']}", None)


def respond_to_appointment(
    conn, doctor, appointment_id: int, action: str
) -> Tuple[Optional[str], Optional[dict]]:
    """Accept or reject a scheduled appointment and notify the patient."""
    new_status = DOCTOR_ACTIONS.get(action)
    if not new_status:
        return ("Unknown action", None)
    appointment = get_appointment(conn, appointment_id)
    if not appointment or appointment["doctor_id"] != doctor["id"]:
        return ("Appointment not found", None)
    if appointment["status"] != "scheduled":
        return (f"Appointment is already {appointment['status']}", None)
    if not _transition(conn, appointment_id, new_status):
        return _already(conn, appointment_id)
    if action == "accept":
        create_notification(
            conn,
            appointment["patient_id"],
            "appointment_accepted",
            "Appointment Confirmed",
            f"Dr. {doctor['name']} has confirmed your appointment on"
            f" {_fmt_date(appointment['date'])} at {appointment['time']}",
            appointment_id,
        )
    else:
        create_notification(
            conn,
            appointment["patient_id"],
            "appointment_rejected",
            "Appointment Declined",
            f"Dr. {doctor['name']} has declined your appointment request."
            " Please book a different time slot.",
            appointment_id,
        )
    conn.commit()
    logger.info("Appointment %s %s by doctor %s", appointment_id, new_status, doctor["id"])
    return (None, get_appointment(conn, appointment_id))


def cancel_appointment(conn, patient, appointment_id: int) -> Tuple[Optional[str], Optional[dict]]:
    appointment = get_appointment(conn, appointment_id)
    if not appointment or appointment["patient_id"] != patient["id"]:
        return ("Appointment not found", None)
    if appointment["status"] != "scheduled":
        return (f"Appointment is already {appointment['status']}", None)
    if not _transition(conn, appointment_id, "cancelled"):
        return _already(conn, appointment_id)
    conn.commit()
    logger.info("Appointment %s cancelled by patient %s", appointment_id, patient["id"])
    return (None, get_appointment(conn, appointment_id))


def list_patients_for_doctor(conn, doctor_id: int) -> list:
    rows = conn.execute(
        "SELECT DISTINCT u.id, u.name, u.email FROM users u"
        " JOIN appointments a ON a.patient_id = u.id"
        " WHERE a.doctor_id = ? ORDER BY u.name, u.id",
        (doctor_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def doctor_has_patient(conn, doctor_id: int, patient_id: int) -> bool:
    row = conn.execute(
        "SELECT 1 FROM appointments WHERE doctor_id = ? AND patient_id = ? LIMIT 1",
        (doctor_id, patient_id),
    ).fetchone()
    return row is not None
