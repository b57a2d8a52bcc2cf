"""Medical record export.

``export_patient_record`` hands a fully loaded record to a document
generator exactly once. The default generator renders a PDF with
reportlab; the API layer delivers the bytes as a download.
"""

import io
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from medfile.config import EXPORT_FILENAME_PREFIX
from medfile.models.clinical import (
    Consultation,
    LabResult,
    MedicalImage,
    Medication,
    Vaccination,
)
from medfile.models.patient import Patient
from medfile.services.age import calculate_age

logger = logging.getLogger(__name__)


@dataclass
class ExportDocument:
    filename: str
    content: bytes
    media_type: str = "application/pdf"


DocumentGenerator = Callable[
    [
        Patient,
        list[Medication],
        list[Vaccination],
        list[Consultation],
        list[LabResult],
        list[MedicalImage],
    ],
    ExportDocument,
]


def export_filename(patient: Patient) -> str:
    key = re.sub(r"[^A-Za-z0-9_-]+", "_", patient.cnp or patient.id).strip("_")
    return f"{EXPORT_FILENAME_PREFIX}_{key or 'patient'}.pdf"


def _p(text, style) -> Paragraph:
    return Paragraph(escape(str(text if text is not None else "")), style)


def _section(
    story: list, title: str, header: list[str], rows: list[list], empty_text: str, styles, width: float
) -> None:
    story.append(Paragraph(title, styles["Heading2"]))
    if not rows:
        story.append(Paragraph(empty_text, styles["Italic"]))
        story.append(Spacer(1, 0.15 * inch))
        return

    cell = ParagraphStyle("ExportCell", parent=styles["Normal"], fontSize=9, leading=11)
    data = [[_p(h, cell) for h in header]] + [[_p(v, cell) for v in row] for row in rows]
    table = Table(data, colWidths=[width / len(header)] * len(header), repeatRows=1, hAlign="LEFT")
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#E8EEF4")),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#B0BEC5")),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    story.append(table)
    story.append(Spacer(1, 0.2 * inch))


def render_patient_pdf(
    patient: Patient,
    medications: list[Medication],
    vaccinations: list[Vaccination],
    consultations: list[Consultation],
    lab_results: list[LabResult],
    medical_images: list[MedicalImage],
) -> ExportDocument:
    """Render the full medical record as a PDF."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=f"Medical record - {patient.full_name}",
    )
    styles = getSampleStyleSheet()
    meta_style = ParagraphStyle("ExportMeta", parent=styles["Normal"], fontSize=10, leading=14)
    allergy_style = ParagraphStyle(
        "ExportAllergy", parent=styles["Normal"], fontSize=10, textColor=colors.HexColor("#B71C1C")
    )

    story: list = [
        Paragraph("Medical Record", styles["Title"]),
        _p(patient.full_name, styles["Heading1"]),
        _p(f"CNP: {patient.cnp}", meta_style),
        _p(f"Date of birth: {patient.date_of_birth or '-'} "
           f"(age {calculate_age(patient.date_of_birth)})", meta_style),
        _p(f"Gender: {patient.gender or '-'}", meta_style),
        _p(f"Blood type: {patient.blood_type or '-'}", meta_style),
        _p(f"Generated: {date.today().isoformat()}", meta_style),
        Spacer(1, 0.2 * inch),
        Paragraph("Allergies", styles["Heading2"]),
    ]
    if patient.allergies:
        story.extend(_p(f"!! {allergy}", allergy_style) for allergy in patient.allergies)
    else:
        story.append(Paragraph("No known allergies", styles["Italic"]))
    story.append(Spacer(1, 0.2 * inch))

    _section(
        story, "Medications", ["Name", "Dose", "Frequency", "Duration"],
        [[m.name, m.dose, m.frequency, f"{m.duration} days"] for m in medications],
        "No active medications", styles, doc.width,
    )
    _section(
        story, "Vaccinations", ["Vaccine", "Date", "Status"],
        [[v.name, v.date, v.status] for v in vaccinations],
        "No vaccination records", styles, doc.width,
    )
    _section(
        story, "Consultations", ["Date", "Diagnosis", "Doctor", "Notes"],
        [[c.date, c.diagnosis, f"Dr. {c.doctor_name}", c.notes] for c in consultations],
        "No consultations recorded", styles, doc.width,
    )
    _section(
        story, "Lab results", ["Test", "Date", "Value", "Status"],
        [[r.name, r.date, r.value, r.status] for r in lab_results],
        "No lab results", styles, doc.width,
    )
    _section(
        story, "Medical images", ["Type", "Date", "Notes"],
        [[i.type, i.date, i.notes] for i in medical_images],
        "No medical images", styles, doc.width,
    )

    doc.build(story)
    return ExportDocument(filename=export_filename(patient), content=buf.getvalue())


def export_patient_record(
    patient: Patient | None,
    medications: list[Medication],
    vaccinations: list[Vaccination],
    consultations: list[Consultation],
    lab_results: list[LabResult],
    medical_images: list[MedicalImage],
    generator: DocumentGenerator = render_patient_pdf,
) -> ExportDocument | None:
    """Invoke the document generator once for a loaded patient.

    Returns None without touching the generator when the patient is absent.
    """
    if patient is None:
        logger.info("Export skipped: no patient loaded")
        return None

    document = generator(
        patient, medications, vaccinations, consultations, lab_results, medical_images
    )
    logger.info("Exported medical record for patient %s (%d bytes)", patient.id, len(document.content))
    return document
