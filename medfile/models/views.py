"""View-models returned by the correlation and assembly layer."""

from typing import Literal

from pydantic import BaseModel

from medfile.models.clinical import (
    Consultation,
    LabResult,
    MedicalImage,
    Medication,
    Vaccination,
)
from medfile.models.patient import AssembledProfile, Patient


class CollectionStatus(BaseModel):
    status: Literal["ok", "empty", "failed"] = "ok"
    error: str | None = None


class MediaReference(BaseModel):
    kind: Literal["dicom", "raster"]
    url: str                            # what the renderer should load
    source_url: str
    origin: Literal["proxied", "passthrough", "unrecognized"] = "passthrough"


class ImageView(BaseModel):
    image: MedicalImage
    media: MediaReference


class PatientRecord(BaseModel):
    """Patient dashboard: the patient plus every joined collection."""
    patient: Patient
    profile: AssembledProfile
    medications: list[Medication] = []
    vaccinations: list[Vaccination] = []
    consultations: list[Consultation] = []
    lab_results: list[LabResult] = []
    medical_images: list[ImageView] = []
    collections: dict[str, CollectionStatus] = {}

    @property
    def complete(self) -> bool:
        return all(c.status != "failed" for c in self.collections.values())


class ConsultationDetail(BaseModel):
    """Drill-down for a single consultation row."""
    consultation: Consultation
    medications: list[Medication] = []
    medical_images: list[ImageView] = []
    inline_images: list[MediaReference] = []
    collections: dict[str, CollectionStatus] = {}


class PatientSearchResult(BaseModel):
    patient: Patient
    profile: AssembledProfile
