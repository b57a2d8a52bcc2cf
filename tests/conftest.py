import asyncio
import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# In-memory DB and no demo seeding unless a test asks for it
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["SEED_DEMO_DATA"] = "false"

from medfile.database import _seed_demo_data, close_db, init_db
from medfile.main import app
from medfile.models.clinical import (
    Consultation,
    LabResult,
    MedicalImage,
    Medication,
    Vaccination,
)
from medfile.models.patient import Doctor, Patient
from medfile.services.store import EntityStore, SQLiteEntityStore, StoreError, get_store


class FakeStore(EntityStore):
    """In-memory store; ``fail`` names fetches that raise, ``delay`` slows every fetch."""

    def __init__(
        self,
        patients: list[Patient] | None = None,
        doctors: list[Doctor] | None = None,
        consultations: list[Consultation] | None = None,
        medications: list[Medication] | None = None,
        vaccinations: list[Vaccination] | None = None,
        lab_results: list[LabResult] | None = None,
        medical_images: list[MedicalImage] | None = None,
        visits: dict[str, list[Patient]] | None = None,
        fail: set[str] | None = None,
        delay: float = 0.0,
    ):
        self.patients = patients or []
        self.doctors = doctors or []
        self.consultations = consultations or []
        self.medications = medications or []
        self.vaccinations = vaccinations or []
        self.lab_results = lab_results or []
        self.medical_images = medical_images or []
        self.visits = visits or {}
        self.fail = fail or set()
        self.delay = delay
        self.calls: list[str] = []

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if name in self.fail:
            raise StoreError(f"{name} backend unavailable")

    async def fetch_patient_by_id(self, patient_id):
        await self._enter("patient")
        return next((p for p in self.patients if p.id == patient_id), None)

    async def fetch_patient_by_national_id(self, cnp):
        await self._enter("patient")
        return next((p for p in self.patients if p.cnp == cnp), None)

    async def fetch_all_patients(self):
        await self._enter("patients")
        return list(self.patients)

    async def fetch_doctor_visits(self, doctor_id):
        await self._enter("visits")
        return list(self.visits.get(doctor_id, []))

    async def fetch_doctor_by_id(self, doctor_id):
        await self._enter("doctor")
        return next((d for d in self.doctors if d.id == doctor_id), None)

    async def fetch_consultations(self, patient_id):
        await self._enter("consultations")
        return [c for c in self.consultations if c.patient_id == patient_id]

    async def fetch_medications(self, patient_id):
        await self._enter("medications")
        return [m for m in self.medications if m.patient_id == patient_id]

    async def fetch_vaccinations(self, patient_id):
        await self._enter("vaccinations")
        return [v for v in self.vaccinations if v.patient_id == patient_id]

    async def fetch_lab_results(self, patient_id):
        await self._enter("lab_results")
        return [r for r in self.lab_results if r.patient_id == patient_id]

    async def fetch_medical_images(self, patient_id):
        await self._enter("medical_images")
        return [i for i in self.medical_images if i.patient_id == patient_id]


@pytest.fixture
def make_store():
    """Factory for FakeStore instances."""
    return FakeStore


@pytest.fixture
def ana() -> Patient:
    return Patient(
        id="pat-ana",
        full_name="Ana Popescu",
        cnp="2950715123456",
        date_of_birth="1995-07-15",
        gender="F",
        blood_type="A+",
        allergies=["Penicillin", "Pollen"],
    )


@pytest_asyncio.fixture
async def db():
    """Provide a fresh in-memory database for each test."""
    import medfile.database as db_mod

    if db_mod._db is not None:
        await db_mod._db.close()
    db_mod._db = None

    db_mod.DATABASE_PATH = ":memory:"
    db_mod.SEED_DEMO_DATA = False

    await init_db()
    database = await db_mod.get_db()
    yield database
    await close_db()


@pytest_asyncio.fixture
async def seeded_db(db):
    """Database populated with the demo clinic."""
    await _seed_demo_data(db)
    return db


@pytest.fixture
def store(seeded_db) -> SQLiteEntityStore:
    return SQLiteEntityStore(seeded_db)


@pytest_asyncio.fixture
async def async_client(db):
    """Provide an async httpx client for HTTP tests."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.pop(get_store, None)
