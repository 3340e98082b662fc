"""
db/seed.py

Goal of this file:
1) create the tables (init_db)
2) insert synthetic (not real!) diagnoses, treatments and appointments for
   one patient, so the Medical History screen has something to show

How to run:
python -m db.seed <patient uid>
"""

import logging
import sys
from datetime import datetime, timedelta, timezone

from config.settings import configure_logging, get_settings
from db.document_store import DocumentStore, SqlDocumentStore
from db.patient_service import APPOINTMENTS, DIAGNOSES, TREATMENTS
from db.relational import init_db, make_engine, make_session_factory

logger = logging.getLogger(__name__)


def seed_patient(store: DocumentStore, patient_id: str, patient_name: str = "Demo Patient") -> dict:
    # if this patient already has data, do not insert again (avoid duplicates)
    existing = store.query(DIAGNOSES, filters=[("patientId", patient_id)])
    if existing:
        logger.info("Patient %s already has %d diagnoses. Skipping seed.", patient_id, len(existing))
        return {"skipped": True, "diagnoses": 0, "treatments": 0, "appointments": 0}

    report = {"skipped": False, "diagnoses": 0, "treatments": 0, "appointments": 0}

    diagnoses = [
        {
            "prescription": "Seasonal allergic rhinitis",
            "instructions": "Avoid pollen exposure, keep windows closed in the morning.",
            "treatments": [
                {"medicationName": "Cetirizine", "dosage": "10 mg", "frequency": "Once daily", "refills": 2},
            ],
        },
        {
            "prescription": "Iron deficiency anemia",
            "instructions": "Iron-rich diet; repeat blood test in 8 weeks.",
            "treatments": [
                {"medicationName": "Ferrous sulfate", "dosage": "325 mg", "frequency": "Twice daily",
                 "refills": 1, "notes": "Take with orange juice, not with tea or milk."},
                {"medicationName": "Vitamin C", "dosage": "500 mg", "frequency": "Once daily", "refills": 0},
            ],
        },
    ]

    for d in diagnoses:
        diagnosis_id = store.add(DIAGNOSES, {
            "patientId": patient_id,
            "prescription": d["prescription"],
            "instructions": d["instructions"],
        })
        report["diagnoses"] += 1
        for t in d["treatments"]:
            store.add(TREATMENTS, {"diagnosisId": diagnosis_id, "diagnoseName": d["prescription"], **t})
            report["treatments"] += 1

    today = datetime.now().astimezone().replace(hour=10, minute=0, second=0, microsecond=0)
    for days, visit_type, reason, status in [
        (-40, "General Consultation", "Fatigue and dizziness", "completed"),
        (-12, "General Consultation", "Follow-up blood test", "completed"),
        (7, "Cardiology", "Routine heart check", "pending"),
    ]:
        start = today + timedelta(days=days)
        store.add(APPOINTMENTS, {
            "patientId": patient_id,
            "patientName": patient_name,
            "appointmentDate": start.date().isoformat(),
            "appointmentTime": start.strftime("%H:%M"),
            "start_time": start,
            "createdAt": datetime.now(timezone.utc),
            "reason_for_visit": reason,
            "visitType": visit_type,
            "payment_method": "cash",
            "payment_amount": 300,
            "paymentStatus": "paid" if status == "completed" else "unpaid",
            "status": status,
        })
        report["appointments"] += 1

    logger.info("Seed completed for %s: %s", patient_id, report)
    return report


if __name__ == "__main__":
    configure_logging()
    if len(sys.argv) < 2:
        sys.exit("usage: python -m db.seed <patient uid>")

    settings = get_settings()
    engine = make_engine(settings.DATABASE_URL)

    # 1) create the tables in the DB file
    init_db(engine)

    # 2) insert the synthetic records
    seed_patient(SqlDocumentStore(make_session_factory(engine)), sys.argv[1])
