"""Entity store adapter.

The correlation layer only talks to ``EntityStore``. ``SQLiteEntityStore``
is the adapter used by the API; tests substitute their own subclasses to
simulate slow or failing backends.
"""

import json
import logging
from typing import Any

import aiosqlite

from medfile.database import DatabaseAdapter, get_db
from medfile.models.clinical import (
    Consultation,
    LabResult,
    MedicalImage,
    Medication,
    Vaccination,
)
from medfile.models.patient import Doctor, Patient

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the backing store cannot answer a fetch."""


class EntityStore:
    async def fetch_patient_by_id(self, patient_id: str) -> Patient | None:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_patient_by_national_id(self, cnp: str) -> Patient | None:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_all_patients(self) -> list[Patient]:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_doctor_visits(self, doctor_id: str) -> list[Patient]:  # pragma: no cover - interface
        """One patient row per consultation authored by the doctor, newest first."""
        raise NotImplementedError

    async def fetch_doctor_by_id(self, doctor_id: str) -> Doctor | None:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_consultations(self, patient_id: str) -> list[Consultation]:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_medications(self, patient_id: str) -> list[Medication]:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_vaccinations(self, patient_id: str) -> list[Vaccination]:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_lab_results(self, patient_id: str) -> list[LabResult]:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_medical_images(self, patient_id: str) -> list[MedicalImage]:  # pragma: no cover - interface
        raise NotImplementedError


def _json_list(raw: str | None, column: str, row_id: str) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Failed to parse %s for %s", column, row_id)
        return []
    return [str(item) for item in value] if isinstance(value, list) else []


def _row_dict(row: Any) -> dict[str, Any]:
    # NULL columns fall back to the model defaults
    return {key: value for key, value in dict(row).items() if value is not None}


def _row_to_patient(row: Any) -> Patient:
    data = _row_dict(row)
    data["allergies"] = _json_list(data.get("allergies"), "allergies", data["id"])
    return Patient(**data)


def _row_to_consultation(row: Any) -> Consultation:
    data = _row_dict(row)
    data["image_urls"] = _json_list(data.get("image_urls"), "image_urls", data["id"])
    return Consultation(**data)


class SQLiteEntityStore(EntityStore):
    def __init__(self, db: DatabaseAdapter):
        self._db = db

    async def _fetch_all(self, query: str, params: tuple) -> list:
        try:
            return list(await self._db.fetch_all(query, params))
        except aiosqlite.Error as exc:
            raise StoreError(str(exc)) from exc

    async def _fetch_one(self, query: str, params: tuple):
        try:
            return await self._db.fetch_one(query, params)
        except aiosqlite.Error as exc:
            raise StoreError(str(exc)) from exc

    async def fetch_patient_by_id(self, patient_id: str) -> Patient | None:
        row = await self._fetch_one("SELECT * FROM patients WHERE id = ?", (patient_id,))
        return _row_to_patient(row) if row else None

    async def fetch_patient_by_national_id(self, cnp: str) -> Patient | None:
        # = on TEXT columns is exact and case-sensitive in SQLite
        row = await self._fetch_one("SELECT * FROM patients WHERE cnp = ?", (cnp,))
        return _row_to_patient(row) if row else None

    async def fetch_all_patients(self) -> list[Patient]:
        rows = await self._fetch_all("SELECT * FROM patients ORDER BY full_name ASC", ())
        return [_row_to_patient(r) for r in rows]

    async def fetch_doctor_visits(self, doctor_id: str) -> list[Patient]:
        rows = await self._fetch_all(
            "SELECT p.* FROM consultations c JOIN patients p ON p.id = c.patient_id "
            "WHERE c.doctor_id = ? ORDER BY c.date DESC, c.id DESC",
            (doctor_id,),
        )
        return [_row_to_patient(r) for r in rows]

    async def fetch_doctor_by_id(self, doctor_id: str) -> Doctor | None:
        row = await self._fetch_one("SELECT * FROM doctors WHERE id = ?", (doctor_id,))
        return Doctor(**_row_dict(row)) if row else None

    async def fetch_consultations(self, patient_id: str) -> list[Consultation]:
        rows = await self._fetch_all(
            "SELECT * FROM consultations WHERE patient_id = ? ORDER BY date DESC, id DESC",
            (patient_id,),
        )
        return [_row_to_consultation(r) for r in rows]

    async def fetch_medications(self, patient_id: str) -> list[Medication]:
        rows = await self._fetch_all(
            "SELECT * FROM medications WHERE patient_id = ? ORDER BY rowid ASC",
            (patient_id,),
        )
        return [Medication(**_row_dict(r)) for r in rows]

    async def fetch_vaccinations(self, patient_id: str) -> list[Vaccination]:
        rows = await self._fetch_all(
            "SELECT * FROM vaccinations WHERE patient_id = ? ORDER BY date DESC",
            (patient_id,),
        )
        return [Vaccination(**_row_dict(r)) for r in rows]

    async def fetch_lab_results(self, patient_id: str) -> list[LabResult]:
        rows = await self._fetch_all(
            "SELECT * FROM lab_results WHERE patient_id = ? ORDER BY date DESC",
            (patient_id,),
        )
        return [LabResult(**_row_dict(r)) for r in rows]

    async def fetch_medical_images(self, patient_id: str) -> list[MedicalImage]:
        rows = await self._fetch_all(
            "SELECT * FROM medical_images WHERE patient_id = ? ORDER BY date DESC",
            (patient_id,),
        )
        return [MedicalImage(**_row_dict(r)) for r in rows]


async def get_store() -> EntityStore:
    """FastAPI dependency returning the store bound to the shared connection."""
    return SQLiteEntityStore(await get_db())
