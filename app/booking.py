# app/booking.py
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from auth.identity import Identity
from db.patient_service import PatientDataGateway, as_local, combine_start_time

logger = logging.getLogger(__name__)

VISIT_TYPES = ["General Consultation", "Cardiology", "Pharmacy", "First Aid"]
PAYMENT_METHODS = ["cash", "card", "insurance"]


class BookingError(Exception):
    pass


class BookingForm(BaseModel):
    appointment_date: date
    appointment_time: time
    reason_for_visit: str = Field(..., min_length=3, max_length=300)
    visit_type: str
    payment_method: str
    payment_amount: float = Field(..., ge=0)


def check_slot(start: datetime, scheduled: Iterable[datetime], now: Optional[datetime] = None) -> None:
    """Raise BookingError when start is in the past or already taken."""
    # naive values are local wall-clock time; aware ones compare by instant
    start = as_local(start)
    now = as_local(now or datetime.now())
    if start <= now:
        raise BookingError("Cannot book an appointment in the past")

    for taken in scheduled:
        if as_local(taken) == start:
            raise BookingError("This time slot is already booked")


def book_appointment(
    gateway: PatientDataGateway,
    identity: Identity,
    form: BookingForm,
    now: Optional[datetime] = None,
) -> str:
    start = combine_start_time(form.appointment_date, form.appointment_time)
    check_slot(start, gateway.get_scheduled_appointments(), now=now)

    fields = {
        "patientId": identity.uid,
        "appointmentDate": form.appointment_date.isoformat(),
        "appointmentTime": form.appointment_time.strftime("%H:%M"),
        "reasonForVisit": form.reason_for_visit,
        "visitType": form.visit_type,
        "paymentMethod": form.payment_method,
        "paymentAmount": form.payment_amount,
    }
    appointment_id = gateway.add_appointment(
        fields,
        payment_status="unpaid",
        patient_name=identity.display_name or identity.email,
    )
    logger.info("Booked appointment %s for %s", appointment_id, identity.uid)
    return appointment_id
