import json
import logging
from datetime import date, timedelta
from typing import Optional, Tuple

from config import DEFAULT_SPECIALIZATION, PRESCRIPTION_VALID_DAYS, _today_local, _utc_now_storage
from notify import create_notification
from workflow import doctor_has_patient

logger = logging.getLogger(__name__)

MEDICATION_FIELDS = ("name", "dosage", "frequency", "duration", "instructions")
MAX_MEDICATIONS = 20
MAX_FIELD_LEN = 500

RECOMMENDED_MEDICATIONS = [
    {
        "name": "Vitamin D3",
        "dosage": "2000 IU",
        "frequency": "Once daily",
        "duration": "3 months",
        "instructions": "Take with food, preferably in the morning",
    },
    {
        "name": "Omega-3 Fish Oil",
        "dosage": "1000mg",
        "frequency": "Twice daily",
        "duration": "3 months",
        "instructions": "Take with meals to reduce stomach upset",
    },
]
RECOMMENDED_INSTRUCTIONS = (
    "Continue with healthy lifestyle. Monitor symptoms and report any changes immediately."
)
RECOMMENDED_NOTES = (
    "Based on assessment results. These supplements support immune function and overall wellness."
)


def _clean_medications(medications) -> Tuple[Optional[str], list]:
    if not isinstance(medications, list) or not medications:
        return ("At least one medication is required", [])
    if len(medications) > MAX_MEDICATIONS:
        return (f"A prescription may list at most {MAX_MEDICATIONS} medications", [])
    cleaned = []
    for med in medications:
        if not isinstance(med, dict):
            return ("Invalid medication entry", [])
        item = {f: str(med.get(f, "") or "").strip() for f in MEDICATION_FIELDS}
        if not item["name"] or not item["dosage"]:
            return ("Each medication needs a name and dosage", [])
        if any(len(v) > MAX_FIELD_LEN for v in item.values()):
            return (f"Medication fields must be {MAX_FIELD_LEN} characters or fewer", [])
        cleaned.append(item)
    return (None, cleaned)


def effective_status(stored_status: str, valid_until: str, today: date) -> str:
    if stored_status == "active" and valid_until < today.isoformat():
        return "expired"
    return stored_status


def _row_to_dict(row, today: date) -> dict:
    item = dict(row)
    item["medications"] = json.loads(item["medications"] or "[]")
    item["status"] = effective_status(item["status"], item["valid_until"], today)
    return item


def list_for_patient(conn, patient_id: int) -> list:
    today = _today_local()
    rows = conn.execute(
        "SELECT * FROM prescriptions WHERE patient_id = ? ORDER BY id DESC", (patient_id,)
    ).fetchall()
    return [_row_to_dict(r, today) for r in rows]


def latest_risk_level(conn, patient_id: int) -> Optional[str]:
    row = conn.execute(
        "SELECT risk_level FROM assessments WHERE user_id = ? ORDER BY id DESC LIMIT 1",
        (patient_id,),
    ).fetchone()
    return row["risk_level"] if row else None


def recommended_prescription(conn, patient_id: int) -> dict:
    """The preventive-care template, keyed to the patient's latest risk level."""
    level = latest_risk_level(conn, patient_id) or "Moderate"
    return {
        "medications": [dict(m) for m in RECOMMENDED_MEDICATIONS],
        "diagnosis": f"{level} Cancer Risk - Preventive Care",
        "instructions": RECOMMENDED_INSTRUCTIONS,
        "notes": RECOMMENDED_NOTES,
    }


def issue_prescription(
    conn, doctor, patient_id: int, medications, diagnosis: str, instructions: str = "", notes: str = ""
) -> Tuple[Optional[str], Optional[dict]]:
    """Store a prescription for one of the doctor's patients and notify them."""
    patient = conn.execute(
        "SELECT id, name FROM users WHERE id = ? AND user_type = 'patient'", (patient_id,)
    ).fetchone()
    if not patient or not doctor_has_patient(conn, doctor["id"], patient_id):
        return ("Patient not found", None)
    diagnosis = (diagnosis or "").strip()
    if not diagnosis:
        return ("Diagnosis is required", None)
    if len(diagnosis) > MAX_FIELD_LEN:
        return (f"Diagnosis must be {MAX_FIELD_LEN} characters or fewer", None)
    error, meds = _clean_medications(medications)
    if error:
        return (error, None)
    issued = _today_local()
    valid_until = issued + timedelta(days=PRESCRIPTION_VALID_DAYS)
    cur = conn.execute(
        "INSERT INTO prescriptions (patient_id, doctor_id, doctor_name, doctor_specialization,"
        " medications, diagnosis, instructions, notes, date_issued, valid_until, status, created_at)"
        " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'active', ?)",
        (
            patient_id, doctor["id"], doctor["name"],
            doctor["specialization"] or DEFAULT_SPECIALIZATION,
            json.dumps(meds), diagnosis, (instructions or "").strip(), (notes or "").strip(),
            issued.isoformat(), valid_until.isoformat(), _utc_now_storage(),
        ),
    )
    prescription_id = cur.lastrowid
    create_notification(
        conn,
        patient_id,
        "prescription_received",
        "New Prescription Available",
        f"Dr. {doctor['name']} has issued a new prescription for you."
        " Check your prescriptions page for details.",
        prescription_id,
    )
    conn.commit()
    logger.info("Prescription %s issued by doctor %s to patient %s", prescription_id, doctor["id"], patient_id)
    row = conn.execute("SELECT * FROM prescriptions WHERE id = ?", (prescription_id,)).fetchone()
    return (None, _row_to_dict(row, issued))
