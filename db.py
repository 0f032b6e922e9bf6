import sqlite3
from contextlib import contextmanager

from config import DB_PATH


def init_db():
    with sqlite3.connect(DB_PATH) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                name          TEXT    NOT NULL DEFAULT '',
                email         TEXT    NOT NULL UNIQUE,
                password_hash TEXT    NOT NULL DEFAULT '',
                user_type     TEXT    NOT NULL CHECK (user_type IN ('patient', 'doctor')),
                created_at    TEXT    NOT NULL DEFAULT '',
                updated_at    TEXT    NOT NULL DEFAULT ''
            )
        """)
        # Migrate: doctor profile columns
        cols = [row[1] for row in conn.execute("PRAGMA table_info(users)")]
        if "specialization" not in cols:
            conn.execute("ALTER TABLE users ADD COLUMN specialization TEXT NOT NULL DEFAULT ''")
        if "medical_license" not in cols:
            conn.execute("ALTER TABLE users ADD COLUMN medical_license TEXT NOT NULL DEFAULT ''")
        if "is_verified" not in cols:
            conn.execute("ALTER TABLE users ADD COLUMN is_verified INTEGER NOT NULL DEFAULT 0")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS assessments (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id         INTEGER NOT NULL REFERENCES users(id),
                age             INTEGER,
                gender          TEXT    NOT NULL DEFAULT '',
                answers         TEXT    NOT NULL DEFAULT '{}',
                risk_score      INTEGER NOT NULL,
                risk_level      TEXT    NOT NULL,
                risk_percentage INTEGER NOT NULL,
                created_at      TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS appointments (
                id                    INTEGER PRIMARY KEY AUTOINCREMENT,
                patient_id            INTEGER NOT NULL REFERENCES users(id),
                doctor_id             INTEGER NOT NULL REFERENCES users(id),
                doctor_name           TEXT    NOT NULL DEFAULT '',
                doctor_specialization TEXT    NOT NULL DEFAULT '',
                date                  TEXT    NOT NULL,
                time                  TEXT    NOT NULL,
                reason                TEXT    NOT NULL DEFAULT '',
                status                TEXT    NOT NULL DEFAULT 'scheduled'
                    CHECK (status IN ('scheduled', 'accepted', 'cancelled', 'completed')),
                created_at            TEXT    NOT NULL,
                updated_at            TEXT    NOT NULL DEFAULT ''
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS notifications (
                id         INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id    INTEGER NOT NULL REFERENCES users(id),
                type       TEXT    NOT NULL,
                title      TEXT    NOT NULL,
                message    TEXT    NOT NULL DEFAULT '',
                read       INTEGER NOT NULL DEFAULT 0,
                related_id TEXT    NOT NULL DEFAULT '',
                created_at TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS emotional_goals (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id     INTEGER NOT NULL REFERENCES users(id),
                goal        TEXT    NOT NULL,
                description TEXT    NOT NULL DEFAULT '',
                target_date TEXT    NOT NULL,
                progress    INTEGER NOT NULL DEFAULT 0 CHECK (progress BETWEEN 0 AND 100),
                status      TEXT    NOT NULL DEFAULT 'active'
                    CHECK (status IN ('active', 'completed', 'paused')),
                category    TEXT    NOT NULL DEFAULT '',
                created_at  TEXT    NOT NULL,
                updated_at  TEXT    NOT NULL DEFAULT ''
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS prescriptions (
                id                    INTEGER PRIMARY KEY AUTOINCREMENT,
                patient_id            INTEGER NOT NULL REFERENCES users(id),
                doctor_id             INTEGER NOT NULL REFERENCES users(id),
                doctor_name           TEXT    NOT NULL DEFAULT '',
                doctor_specialization TEXT    NOT NULL DEFAULT '',
                medications           TEXT    NOT NULL DEFAULT '[]',
                diagnosis             TEXT    NOT NULL,
                instructions          TEXT    NOT NULL DEFAULT '',
                notes                 TEXT    NOT NULL DEFAULT '',
                date_issued           TEXT    NOT NULL,
                valid_until           TEXT    NOT NULL,
                status                TEXT    NOT NULL DEFAULT 'active'
                    CHECK (status IN ('active', 'expired', 'cancelled')),
                created_at            TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS community_posts (
                id         INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id    INTEGER NOT NULL REFERENCES users(id),
                author     TEXT    NOT NULL DEFAULT '',
                content    TEXT    NOT NULL,
                mood       TEXT    NOT NULL DEFAULT 'neutral',
                category   TEXT    NOT NULL DEFAULT 'General',
                likes      INTEGER NOT NULL DEFAULT 0,
                created_at TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS diet_plans (
                user_id    INTEGER PRIMARY KEY REFERENCES users(id),
                plan       TEXT    NOT NULL,
                created_at TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS contact_messages (
                id         INTEGER PRIMARY KEY AUTOINCREMENT,
                name       TEXT    NOT NULL,
                email      TEXT    NOT NULL,
                subject    TEXT    NOT NULL,
                message    TEXT    NOT NULL,
                user_type  TEXT    NOT NULL DEFAULT 'patient',
                created_at TEXT    NOT NULL
            )
        """)
        # Password reset tokens
        conn.execute("""
            CREATE TABLE IF NOT EXISTS password_reset_tokens (
                token      TEXT    PRIMARY KEY,
                user_id    INTEGER NOT NULL,
                expires_at INTEGER NOT NULL
            )
        """)
        # Indexes for common query patterns
        conn.execute("CREATE INDEX IF NOT EXISTS idx_assessments_user_id ON assessments(user_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_appointments_patient_id ON appointments(patient_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_appointments_doctor_id ON appointments(doctor_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_notifications_user_id ON notifications(user_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_goals_user_id ON emotional_goals(user_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_prescriptions_patient_id ON prescriptions(patient_id)")
        conn.commit()


@contextmanager
def get_db():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
