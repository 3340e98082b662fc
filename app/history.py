# app/history.py
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from db.entities import Appointment, Diagnosis, Treatment
from db.patient_service import PatientDataGateway

logger = logging.getLogger(__name__)

# sample documents shown above the upload area
SAMPLE_DOCUMENTS = [
    {"name": "Blood Test Results", "date": "July 16, 2024", "type": "Lab Report"},
    {"name": "Allergy Test Results", "date": "June 21, 2024", "type": "Lab Report"},
]


@dataclass
class MedicalHistory:
    appointments: List[Appointment] = field(default_factory=list)
    diagnoses: List[Diagnosis] = field(default_factory=list)
    treatments: List[Treatment] = field(default_factory=list)
    # diagnosis ids whose treatments could not be loaded
    skipped_diagnoses: List[str] = field(default_factory=list)


def load_medical_history(gateway: PatientDataGateway, patient_id: str) -> MedicalHistory:
    """
    Appointments, then diagnoses, then the treatments of each diagnosis in turn.

    A failing appointments or diagnoses read aborts the load (the exception
    propagates). A failing treatments read for one diagnosis is logged and
    that diagnosis is skipped; treatments already collected are kept.
    """
    history = MedicalHistory()
    history.appointments = gateway.get_patient_appointments(patient_id)
    logger.debug("Fetched %d appointments", len(history.appointments))

    history.diagnoses = gateway.get_patient_diagnoses(patient_id)
    logger.debug("Fetched %d diagnoses", len(history.diagnoses))

    for diagnosis in history.diagnoses:
        try:
            history.treatments.extend(gateway.get_treatment_history(diagnosis.id))
        except Exception:
            logger.exception("Error fetching treatments for diagnosis %s", diagnosis.id)
            history.skipped_diagnoses.append(diagnosis.id)

    return history


# ============================================================
# Local document list (never sent to the backend)
# ============================================================

@dataclass(frozen=True)
class PickedFile:
    """What the device file picker hands back."""
    name: str
    size: int
    mime_type: Optional[str] = None
    uri: Optional[str] = None


@dataclass(frozen=True)
class UploadedFile:
    id: str
    name: str
    size: int
    type: Optional[str]
    uri: Optional[str]
    upload_date: str


def _new_file_id() -> str:
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9):09d}"


def add_picked_files(
    files: List[UploadedFile],
    picked: Optional[Iterable[PickedFile]],
    today: Optional[date] = None,
) -> List[UploadedFile]:
    """Append picked files; picked=None is a cancelled pick and changes nothing."""
    if picked is None:
        return list(files)
    upload_date = (today or date.today()).strftime("%m/%d/%Y")
    added = [
        UploadedFile(
            id=_new_file_id(),
            name=p.name,
            size=p.size,
            type=p.mime_type,
            uri=p.uri,
            upload_date=upload_date,
        )
        for p in picked
    ]
    return list(files) + added


def remove_file(files: List[UploadedFile], file_id: str) -> List[UploadedFile]:
    return [f for f in files if f.id != file_id]


def format_file_size(size: int) -> str:
    if not size:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def save_documents(files: List[UploadedFile]) -> None:
    # no upload endpoint exists yet; the list stays on the device
    logger.info("Save requested for %d document(s); nothing is uploaded", len(files))
