# db/patient_service.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Mapping

import pandas as pd

from db.document_store import DocumentStore
from db.entities import Appointment, Diagnosis, Treatment

logger = logging.getLogger(__name__)

APPOINTMENTS = "appointments"
DIAGNOSES = "diagnoses"
TREATMENTS = "treatments"


# ============================================================
# Helpers
# ============================================================

def combine_start_time(appointment_date: Any, appointment_time: Any) -> datetime:
    """
    Build one timestamp out of the booking form's date and time fields.

    date/time objects are combined directly; strings ("2024-07-20", "09:30",
    "9:30 AM", ...) go through pandas' parser. The result is always
    timezone-aware: wall-clock input is taken as the host's local time, since
    Firestore stores naive datetimes as UTC.
    """
    if isinstance(appointment_date, datetime):
        appointment_date = appointment_date.date()
    if isinstance(appointment_date, date) and isinstance(appointment_time, time):
        start = datetime.combine(appointment_date, appointment_time)
    else:
        start = pd.to_datetime(f"{appointment_date} {appointment_time}").to_pydatetime()
    return as_local(start)


def as_local(value: datetime) -> datetime:
    """Attach the local timezone to a naive datetime; aware values pass through."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# Public API used by Streamlit
# ============================================================

class PatientDataGateway:
    """
    Appointments, diagnoses and treatments of one clinic, one query each.

    Errors from the store are logged and re-raised unchanged.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def add_appointment(self, fields: Mapping[str, Any], payment_status: str, patient_name: str) -> str:
        try:
            record: Dict[str, Any] = dict(fields)
            record.update({
                "patientName": patient_name,
                "paymentStatus": payment_status,
                "createdAt": _now(),
                "start_time": combine_start_time(fields.get("appointmentDate"), fields.get("appointmentTime")),
                "reason_for_visit": fields.get("reasonForVisit"),
                "visitType": fields.get("visitType"),
                "payment_method": fields.get("paymentMethod"),
                "payment_amount": fields.get("paymentAmount"),
                "status": fields.get("status") or "pending",
            })
            # stored as plain strings; the parsed value lives in start_time
            for key in ("appointmentDate", "appointmentTime"):
                if isinstance(record.get(key), (date, time)):
                    record[key] = record[key].isoformat()
            return self.store.add(APPOINTMENTS, record)
        except Exception:
            logger.exception("Error adding appointment")
            raise

    def get_patient_appointments(self, patient_id: str) -> List[Appointment]:
        try:
            docs = self.store.query(
                APPOINTMENTS,
                filters=[("patientId", patient_id)],
                order_by="start_time",
                descending=True,
            )
        except Exception:
            logger.exception("Error fetching appointments")
            raise
        return [Appointment.from_document(d.id, d.data) for d in docs]

    def get_scheduled_appointments(self) -> List[datetime]:
        """Start times of every appointment in the clinic (for slot checks)."""
        try:
            docs = self.store.query(APPOINTMENTS)
        except Exception:
            logger.exception("Error fetching scheduled appointments")
            raise
        return [d.data["start_time"] for d in docs if d.data.get("start_time")]

    def get_patient_diagnoses(self, patient_id: str) -> List[Diagnosis]:
        try:
            docs = self.store.query(DIAGNOSES, filters=[("patientId", patient_id)])
        except Exception:
            logger.exception("Error fetching diagnoses")
            raise
        return [Diagnosis.from_document(d.id, d.data) for d in docs]

    def get_treatment_history(self, diagnosis_id: str) -> List[Treatment]:
        try:
            docs = self.store.query(TREATMENTS, filters=[("diagnosisId", diagnosis_id)])
        except Exception:
            logger.exception("Error fetching treatments")
            raise
        return [Treatment.from_document(d.id, d.data) for d in docs]
