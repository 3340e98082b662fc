# db/entities.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

ROLES = ("patient", "doctor", "admin")
DEFAULT_ROLE = "patient"


def _rest(data: Dict[str, Any], known) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k not in known}


@dataclass
class Profile:
    id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    dob: str = ""
    gender: str = ""
    role: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Profile":
        return cls(
            id=doc_id,
            name=data.get("name", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            dob=data.get("dob", ""),
            gender=data.get("gender", ""),
            role=data.get("role"),
            created_at=data.get("createdAt"),
        )


@dataclass
class Appointment:
    id: str
    patient_id: str = ""
    patient_name: str = ""
    start_time: Optional[datetime] = None
    reason_for_visit: str = ""
    visit_type: str = ""
    payment_method: str = ""
    payment_amount: Any = None
    payment_status: str = ""
    status: str = "pending"
    created_at: Optional[datetime] = None
    # booking-form fields stored alongside (appointmentDate, appointmentTime, ...)
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN = (
        "patientId", "patientName", "start_time", "reason_for_visit", "visitType",
        "payment_method", "payment_amount", "paymentStatus", "status", "createdAt",
    )

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Appointment":
        return cls(
            id=doc_id,
            patient_id=data.get("patientId", ""),
            patient_name=data.get("patientName", ""),
            start_time=data.get("start_time"),
            reason_for_visit=data.get("reason_for_visit", ""),
            visit_type=data.get("visitType", ""),
            payment_method=data.get("payment_method", ""),
            payment_amount=data.get("payment_amount"),
            payment_status=data.get("paymentStatus", ""),
            status=data.get("status", "pending"),
            created_at=data.get("createdAt"),
            extra=_rest(data, cls._KNOWN),
        )


@dataclass
class Diagnosis:
    id: str
    patient_id: str = ""
    prescription: str = ""
    instructions: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Diagnosis":
        return cls(
            id=doc_id,
            patient_id=data.get("patientId", ""),
            prescription=data.get("prescription", ""),
            instructions=data.get("instructions", ""),
            extra=_rest(data, ("patientId", "prescription", "instructions")),
        )


@dataclass
class Treatment:
    id: str
    diagnosis_id: str = ""
    medication_name: str = ""
    diagnose_name: str = ""
    dosage: str = ""
    frequency: str = ""
    refills: Any = None
    notes: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Treatment":
        return cls(
            id=doc_id,
            diagnosis_id=data.get("diagnosisId", ""),
            medication_name=data.get("medicationName", ""),
            diagnose_name=data.get("diagnoseName", ""),
            dosage=data.get("dosage", ""),
            frequency=data.get("frequency", ""),
            refills=data.get("refills"),
            notes=data.get("notes") or None,
        )
