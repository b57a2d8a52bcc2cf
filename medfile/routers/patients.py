import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from medfile.models.clinical import Consultation
from medfile.models.patient import AssembledProfile, Patient
from medfile.models.views import ConsultationDetail, PatientRecord, PatientSearchResult
from medfile.services.assembler import assemble_profile, load_patient_record
from medfile.services.correlator import load_consultation_detail
from medfile.services.export import export_patient_record
from medfile.services.fetching import fetch_within_timeout
from medfile.services.store import EntityStore, StoreError, get_store
from medfile.services.view_scope import ViewDismissedError, view_scopes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", tags=["patients"])

CONSULTATION_SLOT = "consultation"


async def _require_patient(store: EntityStore, patient_id: str) -> Patient:
    try:
        patient = await fetch_within_timeout("patient", store.fetch_patient_by_id(patient_id))
    except StoreError as exc:
        logger.warning("Patient lookup failed for %s: %s", patient_id, exc)
        raise HTTPException(status_code=503, detail="Patient data unavailable") from None
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@router.get("", response_model=list[Patient])
async def list_patients(store: EntityStore = Depends(get_store)):
    """List every patient, for the doctor's overview."""
    try:
        return await fetch_within_timeout("patients", store.fetch_all_patients())
    except StoreError as exc:
        logger.warning("Patient list failed: %s", exc)
        raise HTTPException(status_code=503, detail="Patient data unavailable") from None


@router.get("/search", response_model=PatientSearchResult)
async def search_patient(
    cnp: str = Query("", description="National identifier (CNP), exact match"),
    store: EntityStore = Depends(get_store),
):
    """Look up a patient by CNP."""
    if not cnp.strip():
        raise HTTPException(status_code=400, detail="Enter a CNP to search")

    try:
        patient = await fetch_within_timeout("patient", store.fetch_patient_by_national_id(cnp))
    except StoreError as exc:
        logger.warning("CNP search failed: %s", exc)
        raise HTTPException(status_code=503, detail="Patient data unavailable") from None
    if patient is None:
        raise HTTPException(status_code=404, detail="No patient found with this CNP")

    return PatientSearchResult(patient=patient, profile=assemble_profile(patient))


@router.get("/{patient_id}/profile", response_model=AssembledProfile)
async def get_profile(patient_id: str, store: EntityStore = Depends(get_store)):
    patient = await _require_patient(store, patient_id)
    return assemble_profile(patient)


@router.get("/{patient_id}/record", response_model=PatientRecord)
async def get_record(patient_id: str, store: EntityStore = Depends(get_store)):
    """Patient dashboard: demographics plus every joined collection.

    Collections that failed to load come back empty and are flagged in
    ``collections``.
    """
    try:
        record = await load_patient_record(store, patient_id)
    except StoreError as exc:
        logger.warning("Record load failed for %s: %s", patient_id, exc)
        raise HTTPException(status_code=503, detail="Patient data unavailable") from None
    if record is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return record


@router.get("/{patient_id}/consultations", response_model=list[Consultation])
async def list_consultations(patient_id: str, store: EntityStore = Depends(get_store)):
    try:
        return await fetch_within_timeout("consultations", store.fetch_consultations(patient_id))
    except StoreError as exc:
        logger.warning("Consultation list failed for %s: %s", patient_id, exc)
        raise HTTPException(status_code=503, detail="Consultations unavailable") from None


@router.get("/{patient_id}/consultations/{consultation_id}", response_model=ConsultationDetail)
async def get_consultation_detail(
    patient_id: str,
    consultation_id: str,
    viewer_id: str | None = Query(None, description="Acting user; defaults to the patient"),
    store: EntityStore = Depends(get_store),
):
    """Drill into one consultation: its prescriptions and images.

    Runs in the viewer's consultation slot, so opening another consultation
    or dismissing the dialog cancels this one.
    """
    try:
        consultations = await fetch_within_timeout(
            "consultations", store.fetch_consultations(patient_id)
        )
    except StoreError as exc:
        logger.warning("Consultation list failed for %s: %s", patient_id, exc)
        raise HTTPException(status_code=503, detail="Consultations unavailable") from None

    consultation = next((c for c in consultations if c.id == consultation_id), None)
    if consultation is None:
        raise HTTPException(status_code=404, detail="Consultation not found")

    scope = view_scopes.get(viewer_id or patient_id)
    try:
        return await scope.run(
            CONSULTATION_SLOT,
            load_consultation_detail(store, patient_id, consultation),
        )
    except ViewDismissedError:
        raise HTTPException(status_code=409, detail="Consultation view was dismissed") from None


@router.get("/{patient_id}/export")
async def export_record(patient_id: str, store: EntityStore = Depends(get_store)):
    """Download the full medical record as a PDF."""
    try:
        record = await load_patient_record(store, patient_id)
    except StoreError as exc:
        logger.warning("Record load failed for %s: %s", patient_id, exc)
        raise HTTPException(status_code=503, detail="Patient data unavailable") from None
    if record is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    if not record.complete:
        failed = sorted(name for name, c in record.collections.items() if c.status == "failed")
        raise HTTPException(
            status_code=503,
            detail=f"Cannot export an incomplete record; failed: {', '.join(failed)}",
        )

    document = await asyncio.to_thread(
        export_patient_record,
        record.patient,
        record.medications,
        record.vaccinations,
        record.consultations,
        record.lab_results,
        [view.image for view in record.medical_images],
    )
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )
