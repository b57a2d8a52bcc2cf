import logging

from fastapi import APIRouter, Depends, HTTPException

from medfile.models.patient import Patient
from medfile.services.correlator import recent_patients
from medfile.services.fetching import fetch_within_timeout
from medfile.services.store import EntityStore, StoreError, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/doctors", tags=["doctors"])


@router.get("/{doctor_id}/patients", response_model=list[Patient])
async def get_recent_patients(doctor_id: str, store: EntityStore = Depends(get_store)):
    """Patients this doctor has consulted, one entry per patient."""
    try:
        return await fetch_within_timeout("visits", recent_patients(store, doctor_id))
    except StoreError as exc:
        logger.warning("Recent patients failed for doctor %s: %s", doctor_id, exc)
        raise HTTPException(status_code=503, detail="Patient data unavailable") from None
