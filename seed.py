"""
Seed script: creates the demo patient and doctor accounts.

- Safe to run repeatedly; existing accounts are left as they are.
- Books one demo appointment between them when they have none yet.

Usage:
    python3 seed.py

Demo logins (password123 for both):
    patient@test.com  (patient)
    doctor@test.com   (doctor)
"""

from datetime import date, timedelta

import workflow
from config import _utc_now_storage
from db import get_db, init_db
from security import _hash_password

PASSWORD = "password123"

DEMO_USERS = [
    {
        "name": "John Patient",
        "email": "patient@test.com",
        "user_type": "patient",
        "specialization": "",
        "medical_license": "",
        "is_verified": 0,
    },
    {
        "name": "Sarah Smith",
        "email": "doctor@test.com",
        "user_type": "doctor",
        "specialization": "Oncology",
        "medical_license": "MD12345",
        "is_verified": 1,
    },
]


def ensure_user(conn, user: dict):
    row = conn.execute("SELECT * FROM users WHERE email = ?", (user["email"],)).fetchone()
    if row:
        print(f"Found existing account: {user['email']} (id={row['id']})")
        return row
    now = _utc_now_storage()
    conn.execute(
        "INSERT INTO users (name, email, password_hash, user_type, specialization,"
        " medical_license, is_verified, created_at, updated_at)"
        " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (user["name"], user["email"], _hash_password(PASSWORD), user["user_type"],
         user["specialization"], user["medical_license"], user["is_verified"], now, now),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM users WHERE email = ?", (user["email"],)).fetchone()
    print(f"Created account: {user['email']} (id={row['id']})")
    return row


if __name__ == "__main__":
    init_db()
    with get_db() as conn:
        patient, doctor = (ensure_user(conn, u) for u in DEMO_USERS)
        if not workflow.list_for_patient(conn, patient["id"]):
            error, appt = workflow.book_appointment(
                conn,
                patient,
                doctor["id"],
                (date.today() + timedelta(days=7)).isoformat(),
                "10:00",
                "Follow-up on risk assessment results",
            )
            if error:
                print(f"Could not book demo appointment: {error}")
            else:
                print(f"Booked demo appointment id={appt['id']} for {appt['date']}")
    print("Done.")
