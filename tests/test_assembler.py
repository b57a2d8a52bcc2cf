"""Tests for profile assembly and the patient dashboard record."""

from datetime import date

import pytest

from medfile.models.clinical import (
    Consultation,
    LabResult,
    MedicalImage,
    Medication,
    Vaccination,
)
from medfile.models.patient import Doctor, Patient
from medfile.services.assembler import assemble_profile, display_name, load_patient_record
from medfile.services.store import StoreError

TODAY = date(2026, 10, 18)


class TestAssembleProfile:
    def test_field_mapping(self, ana):
        profile = assemble_profile(ana, TODAY)
        assert profile.cnp == "2950715123456"
        assert profile.name == "Ana Popescu"
        assert profile.age == 31
        assert profile.gender == "F"

    def test_last_visit_is_assembly_date(self, ana):
        assert assemble_profile(ana, TODAY).last_visit == "2026-10-18"

    def test_conditions_mirror_allergies(self, ana):
        profile = assemble_profile(ana, TODAY)
        assert profile.conditions == ["Penicillin", "Pollen"]

    def test_conditions_are_a_copy(self, ana):
        profile = assemble_profile(ana, TODAY)
        profile.conditions.append("Asthma")
        assert ana.allergies == ["Penicillin", "Pollen"]

    def test_missing_optional_fields(self):
        profile = assemble_profile(Patient(id="p1"), TODAY)
        assert profile.age == 0
        assert profile.conditions == []
        assert profile.name == ""

    def test_stable_within_a_day(self, ana):
        first = assemble_profile(ana)
        second = assemble_profile(ana)
        assert first.age == second.age
        assert first.last_visit == second.last_visit
        assert first.last_visit == date.today().isoformat()


@pytest.fixture
def full_store(make_store, ana):
    return make_store(
        patients=[ana],
        consultations=[Consultation(id="c1", patient_id="pat-ana", doctor_name="Elena Radu")],
        medications=[Medication(id="m1", patient_id="pat-ana", consultation_id="c1")],
        vaccinations=[Vaccination(id="v1", patient_id="pat-ana", name="Flu")],
        lab_results=[LabResult(id="l1", patient_id="pat-ana", name="Hb", status="normal")],
        medical_images=[MedicalImage(
            id="i1",
            patient_id="pat-ana",
            image_url="https://firebasestorage.googleapis.com/o/scan.dcm",
        )],
    )


class TestLoadPatientRecord:
    async def test_full_record(self, full_store):
        record = await load_patient_record(full_store, "pat-ana", TODAY)
        assert record is not None
        assert record.patient.id == "pat-ana"
        assert record.profile.last_visit == "2026-10-18"
        assert [m.id for m in record.medications] == ["m1"]
        assert [v.id for v in record.vaccinations] == ["v1"]
        assert [c.id for c in record.consultations] == ["c1"]
        assert [r.id for r in record.lab_results] == ["l1"]
        assert record.medical_images[0].media.origin == "proxied"
        assert all(c.status == "ok" for c in record.collections.values())
        assert record.complete

    async def test_issues_all_six_fetches(self, full_store):
        await load_patient_record(full_store, "pat-ana", TODAY)
        assert sorted(full_store.calls) == sorted([
            "patient", "medications", "vaccinations",
            "consultations", "lab_results", "medical_images",
        ])

    async def test_missing_patient(self, make_store):
        assert await load_patient_record(make_store(), "nobody", TODAY) is None

    async def test_empty_collections_are_not_failures(self, make_store, ana):
        record = await load_patient_record(make_store(patients=[ana]), "pat-ana", TODAY)
        assert record.collections["vaccinations"].status == "empty"
        assert record.complete

    async def test_failed_collection_flagged(self, full_store):
        full_store.fail = {"lab_results"}
        record = await load_patient_record(full_store, "pat-ana", TODAY)
        assert record.lab_results == []
        assert record.collections["lab_results"].status == "failed"
        assert record.collections["vaccinations"].status == "ok"
        assert not record.complete

    async def test_failed_patient_fetch_raises(self, full_store):
        full_store.fail = {"patient"}
        with pytest.raises(StoreError):
            await load_patient_record(full_store, "pat-ana", TODAY)

    async def test_hung_fetch_times_out(self, full_store, monkeypatch):
        import medfile.services.fetching as fetching_mod

        monkeypatch.setattr(fetching_mod, "FETCH_TIMEOUT_SECONDS", 0.05)
        full_store.delay = 1.0
        # the patient fetch hangs too, which surfaces as a store failure
        with pytest.raises(StoreError, match="timed out"):
            await load_patient_record(full_store, "pat-ana", TODAY)


class TestDisplayName:
    async def test_patient(self, make_store, ana):
        assert await display_name(make_store(patients=[ana]), "patient", "pat-ana") == "Ana Popescu"

    async def test_doctor_prefixed(self, make_store):
        store = make_store(doctors=[Doctor(id="d1", full_name="Elena Radu")])
        assert await display_name(store, "doctor", "d1") == "Dr. Elena Radu"

    async def test_unknown_user(self, make_store):
        assert await display_name(make_store(), "doctor", "missing") is None

    async def test_unknown_user_type(self, make_store):
        with pytest.raises(ValueError):
            await display_name(make_store(), "nurse", "x")
