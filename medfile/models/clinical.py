from typing import Literal

from pydantic import BaseModel, field_validator

LabStatus = Literal["normal", "abnormal", "critical", "unknown"]

_LAB_STATUSES = ("normal", "abnormal", "critical")


class Consultation(BaseModel):
    id: str
    patient_id: str
    doctor_id: str = ""
    doctor_name: str = ""
    date: str = ""
    diagnosis: str = ""
    notes: str = ""
    image_urls: list[str] = []


class Medication(BaseModel):
    id: str
    patient_id: str = ""
    consultation_id: str | None = None  # None for standalone prescriptions
    name: str = ""
    dose: str = ""
    frequency: str = ""
    duration: int = 0                   # days


class Vaccination(BaseModel):
    id: str
    patient_id: str
    name: str = ""
    date: str = ""
    status: str = ""                    # administered, scheduled, ...


class LabResult(BaseModel):
    id: str
    patient_id: str
    name: str = ""
    date: str = ""
    value: str = ""
    status: LabStatus = "unknown"

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        status = str(value or "").strip().lower()
        return status if status in _LAB_STATUSES else "unknown"


class MedicalImage(BaseModel):
    id: str
    patient_id: str
    consultation_id: str | None = None
    type: str = ""                      # modality label, e.g. "X-ray"
    notes: str = ""
    date: str = ""
    image_url: str = ""
