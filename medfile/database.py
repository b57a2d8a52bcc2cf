from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

import aiosqlite

from medfile.config import DATABASE_PATH, SEED_DEMO_DATA

logger = logging.getLogger(__name__)


class DatabaseAdapter:
    engine: str

    async def execute(self, query: str, params: Sequence | None = None) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_one(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_all(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def commit(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def executescript(self, script: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class SQLiteAdapter(DatabaseAdapter):
    conn: aiosqlite.Connection
    engine: str = "sqlite"

    async def execute(self, query: str, params: Sequence | None = None) -> None:
        await self.conn.execute(query, params or ())

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:
        await self.conn.executemany(query, seq_params)

    async def fetch_one(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchone()

    async def fetch_all(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchall()

    async def commit(self) -> None:
        await self.conn.commit()

    async def close(self) -> None:
        await self.conn.close()

    async def executescript(self, script: str) -> None:
        await self.conn.executescript(script)


_db: DatabaseAdapter | None = None


async def get_db() -> DatabaseAdapter:
    global _db
    if _db is None:
        conn = await aiosqlite.connect(DATABASE_PATH)
        conn.row_factory = aiosqlite.Row
        _db = SQLiteAdapter(conn)
        logger.info("Connected to SQLite database at %s", DATABASE_PATH)
    return _db


SQLITE_SCHEMA = """
    CREATE TABLE IF NOT EXISTS patients (
        id TEXT PRIMARY KEY,
        full_name TEXT NOT NULL DEFAULT '',
        cnp TEXT NOT NULL UNIQUE,
        date_of_birth TEXT DEFAULT '',
        gender TEXT DEFAULT '',
        blood_type TEXT DEFAULT '',
        allergies TEXT DEFAULT '[]'
    );

    CREATE TABLE IF NOT EXISTS doctors (
        id TEXT PRIMARY KEY,
        full_name TEXT NOT NULL DEFAULT '',
        specialty TEXT DEFAULT ''
    );

    CREATE TABLE IF NOT EXISTS consultations (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        doctor_id TEXT,
        doctor_name TEXT DEFAULT '',
        date TEXT DEFAULT '',
        diagnosis TEXT DEFAULT '',
        notes TEXT DEFAULT '',
        image_urls TEXT DEFAULT '[]',
        FOREIGN KEY (patient_id) REFERENCES patients(id)
    );

    CREATE TABLE IF NOT EXISTS medications (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        consultation_id TEXT,
        name TEXT DEFAULT '',
        dose TEXT DEFAULT '',
        frequency TEXT DEFAULT '',
        duration INTEGER DEFAULT 0,
        FOREIGN KEY (patient_id) REFERENCES patients(id)
    );

    CREATE TABLE IF NOT EXISTS vaccinations (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        name TEXT DEFAULT '',
        date TEXT DEFAULT '',
        status TEXT DEFAULT '',
        FOREIGN KEY (patient_id) REFERENCES patients(id)
    );

    CREATE TABLE IF NOT EXISTS lab_results (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        name TEXT DEFAULT '',
        date TEXT DEFAULT '',
        value TEXT DEFAULT '',
        status TEXT DEFAULT 'unknown',
        FOREIGN KEY (patient_id) REFERENCES patients(id)
    );

    CREATE TABLE IF NOT EXISTS medical_images (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        consultation_id TEXT,
        type TEXT DEFAULT '',
        notes TEXT DEFAULT '',
        date TEXT DEFAULT '',
        image_url TEXT DEFAULT '',
        FOREIGN KEY (patient_id) REFERENCES patients(id)
    );

    CREATE INDEX IF NOT EXISTS idx_consultations_patient ON consultations(patient_id);
    CREATE INDEX IF NOT EXISTS idx_consultations_doctor ON consultations(doctor_id);
    CREATE INDEX IF NOT EXISTS idx_medications_patient ON medications(patient_id);
    CREATE INDEX IF NOT EXISTS idx_medical_images_patient ON medical_images(patient_id);
"""


async def init_db() -> None:
    db = await get_db()
    await db.executescript(SQLITE_SCHEMA)
    await db.commit()

    if SEED_DEMO_DATA:
        await _seed_demo_data(db)


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None


_STORAGE = "https://firebasestorage.googleapis.com/v0/b/medfile-demo.appspot.com/o"


async def _seed_demo_data(db: DatabaseAdapter) -> None:
    """Seed a small demo clinic so the viewer has something to show."""
    existing = await db.fetch_one("SELECT COUNT(*) AS count FROM patients")
    if existing and existing["count"]:
        return

    await db.executemany(
        "INSERT INTO patients (id, full_name, cnp, date_of_birth, gender, blood_type, allergies) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        [
            ("pat-ana", "Ana Popescu", "2950715123456", "1995-07-15", "Feminin", "A+",
             json.dumps(["Penicilină", "Polen"])),
            ("pat-mihai", "Mihai Ionescu", "1800203123457", "1980-02-03", "Masculin", "0-",
             json.dumps([])),
        ],
    )
    await db.execute(
        "INSERT INTO doctors (id, full_name, specialty) VALUES (?, ?, ?)",
        ("doc-radu", "Elena Radu", "Medicină internă"),
    )
    await db.executemany(
        "INSERT INTO consultations (id, patient_id, doctor_id, doctor_name, date, diagnosis, notes, image_urls) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        [
            ("cons-1", "pat-ana", "doc-radu", "Elena Radu", "2025-03-10", "Bronșită acută",
             "Tuse productivă de 5 zile, febră 38.2.",
             json.dumps([f"{_STORAGE}/xray%2Fthorax-ana.jpg?alt=media"])),
            ("cons-2", "pat-ana", "doc-radu", "Elena Radu", "2025-06-02", "Control",
             "Evoluție favorabilă.", json.dumps([])),
            ("cons-3", "pat-mihai", "doc-radu", "Elena Radu", "2025-05-20", "Hipertensiune arterială",
             "TA 160/95.", json.dumps([])),
        ],
    )
    await db.executemany(
        "INSERT INTO medications (id, patient_id, consultation_id, name, dose, frequency, duration) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        [
            ("med-1", "pat-ana", "cons-1", "Amoxicilină", "500 mg", "3x/zi", 7),
            ("med-2", "pat-ana", "cons-1", "Paracetamol", "500 mg", "la nevoie", 5),
            ("med-3", "pat-ana", None, "Vitamina D", "1000 UI", "1x/zi", 90),
            ("med-4", "pat-mihai", "cons-3", "Amlodipină", "5 mg", "1x/zi", 30),
        ],
    )
    await db.executemany(
        "INSERT INTO vaccinations (id, patient_id, name, date, status) VALUES (?, ?, ?, ?, ?)",
        [
            ("vac-1", "pat-ana", "Gripal", "2024-10-12", "administered"),
            ("vac-2", "pat-ana", "Tetanos", "2026-01-15", "scheduled"),
        ],
    )
    await db.executemany(
        "INSERT INTO lab_results (id, patient_id, name, date, value, status) VALUES (?, ?, ?, ?, ?, ?)",
        [
            ("lab-1", "pat-ana", "Hemoglobină", "2025-03-10", "13.1 g/dL", "normal"),
            ("lab-2", "pat-ana", "Proteina C reactivă", "2025-03-10", "24 mg/L", "abnormal"),
            ("lab-3", "pat-mihai", "Potasiu", "2025-05-20", "6.4 mmol/L", "critical"),
        ],
    )
    await db.executemany(
        "INSERT INTO medical_images (id, patient_id, consultation_id, type, notes, date, image_url) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        [
            ("img-1", "pat-ana", "cons-1", "Radiografie toracică", "Infiltrat bazal drept",
             "2025-03-10", f"{_STORAGE}/dicom%2Fthorax-ana.dcm?alt=media"),
            ("img-2", "pat-ana", None, "Ecografie abdominală", "Fără modificări",
             "2024-11-04", f"{_STORAGE}/eco%2Fabdomen-ana.jpg?alt=media"),
        ],
    )
    await db.commit()
    logger.info("Seeded demo patients")
