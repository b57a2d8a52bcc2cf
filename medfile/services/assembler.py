"""View assembly: display-ready projections of patient records."""

import logging
from datetime import date

from medfile.models.patient import AssembledProfile, Patient
from medfile.models.views import PatientRecord
from medfile.services.age import calculate_age
from medfile.services.correlator import image_views
from medfile.services.fetching import gather_outcomes
from medfile.services.store import EntityStore, StoreError

logger = logging.getLogger(__name__)


def assemble_profile(patient: Patient, today: date | None = None) -> AssembledProfile:
    """Project a Patient into the profile shape used by the detail screen.

    ``last_visit`` is the assembly date and ``conditions`` reuses the
    allergy list; the profile screen has always been fed this way.
    """
    today = today or date.today()
    return AssembledProfile(
        cnp=patient.cnp,
        name=patient.full_name,
        age=calculate_age(patient.date_of_birth, today),
        gender=patient.gender,
        last_visit=today.isoformat(),
        conditions=list(patient.allergies or []),
    )


async def _patient_as_list(store: EntityStore, patient_id: str) -> list[Patient]:
    patient = await store.fetch_patient_by_id(patient_id)
    return [patient] if patient else []


async def load_patient_record(
    store: EntityStore,
    patient_id: str,
    today: date | None = None,
) -> PatientRecord | None:
    """Fetch a patient and all five collections, then assemble the dashboard.

    All fetches run concurrently and the record is built only once every
    one of them has resolved. Returns None when the patient does not exist.
    """
    outcomes = await gather_outcomes({
        "patient": _patient_as_list(store, patient_id),
        "medications": store.fetch_medications(patient_id),
        "vaccinations": store.fetch_vaccinations(patient_id),
        "consultations": store.fetch_consultations(patient_id),
        "lab_results": store.fetch_lab_results(patient_id),
        "medical_images": store.fetch_medical_images(patient_id),
    })

    patient_outcome = outcomes.pop("patient")
    if patient_outcome.failed:
        raise StoreError(patient_outcome.error or "patient fetch failed")
    if not patient_outcome.items:
        logger.info("Patient %s not found", patient_id)
        return None

    patient = patient_outcome.items[0]
    return PatientRecord(
        patient=patient,
        profile=assemble_profile(patient, today),
        medications=outcomes["medications"].items,
        vaccinations=outcomes["vaccinations"].items,
        consultations=outcomes["consultations"].items,
        lab_results=outcomes["lab_results"].items,
        medical_images=image_views(outcomes["medical_images"].items),
        collections={name: outcome.to_status() for name, outcome in outcomes.items()},
    )


async def display_name(store: EntityStore, user_type: str, user_id: str) -> str | None:
    """Header name for the acting user, or None when unknown."""
    if user_type == "patient":
        patient = await store.fetch_patient_by_id(user_id)
        return patient.full_name if patient else None
    if user_type == "doctor":
        doctor = await store.fetch_doctor_by_id(user_id)
        return f"Dr. {doctor.full_name}" if doctor else None
    raise ValueError(f"Unknown user type: {user_type}")
