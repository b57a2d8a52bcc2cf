"""Record correlation: in-memory joins over already-fetched collections.

Collections are fetched once per view and filtered here; nothing in this
module issues a fetch per item.
"""

import logging
from typing import Iterable, TypeVar

from medfile.models.clinical import Consultation, MedicalImage, Medication
from medfile.models.patient import Patient
from medfile.models.views import ConsultationDetail, ImageView
from medfile.services.fetching import FetchResult, gather_outcomes
from medfile.services.media import resolve_media_reference
from medfile.services.store import EntityStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def for_consultation(items: Iterable[T], consultation_id: str | None) -> list[T]:
    """Items whose consultation_id equals ``consultation_id``, in source order.

    Items without a consultation id never match, and neither does an empty
    filter value.
    """
    if not consultation_id:
        return []
    return [
        item for item in items or []
        if getattr(item, "consultation_id", None) == consultation_id
    ]


def medications_for_consultation(
    medications: Iterable[Medication], consultation_id: str | None
) -> list[Medication]:
    return for_consultation(medications, consultation_id)


def images_for_consultation(
    images: Iterable[MedicalImage], consultation_id: str | None
) -> list[MedicalImage]:
    return for_consultation(images, consultation_id)


def dedupe_patients(patients: Iterable[Patient]) -> list[Patient]:
    """Distinct patients by id, keeping the first occurrence."""
    seen: set[str] = set()
    result = []
    for patient in patients or []:
        if patient.id in seen:
            continue
        seen.add(patient.id)
        result.append(patient)
    return result


def image_views(images: Iterable[MedicalImage]) -> list[ImageView]:
    return [
        ImageView(image=image, media=resolve_media_reference(image.image_url))
        for image in images
    ]


async def recent_patients(store: EntityStore, doctor_id: str) -> list[Patient]:
    """Patients the doctor has consulted, most recent visit first."""
    visits = await store.fetch_doctor_visits(doctor_id)
    patients = dedupe_patients(visits)
    logger.info(
        "Doctor %s: %d visits across %d patients", doctor_id, len(visits), len(patients)
    )
    return patients


async def load_consultation_detail(
    store: EntityStore,
    patient_id: str,
    consultation: Consultation,
) -> ConsultationDetail:
    """Drill-down for one consultation row.

    The patient's medications and images are fetched once each and joined
    to the consultation in memory. A failed fetch leaves that collection
    empty and marks it ``failed`` in ``collections``.
    """
    outcomes = await gather_outcomes({
        "medications": store.fetch_medications(patient_id),
        "medical_images": store.fetch_medical_images(patient_id),
    })
    medications = medications_for_consultation(
        outcomes["medications"].items, consultation.id
    )
    images = images_for_consultation(outcomes["medical_images"].items, consultation.id)

    collections = {}
    for name, matched in (("medications", medications), ("medical_images", images)):
        outcome = outcomes[name]
        if outcome.failed:
            collections[name] = outcome.to_status()
        else:
            collections[name] = FetchResult.of(matched).to_status()

    return ConsultationDetail(
        consultation=consultation,
        medications=medications,
        medical_images=image_views(images),
        inline_images=[resolve_media_reference(url) for url in consultation.image_urls],
        collections=collections,
    )
