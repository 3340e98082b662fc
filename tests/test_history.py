from datetime import date, datetime

import pytest

from app.history import (
    PickedFile,
    add_picked_files,
    format_file_size,
    load_medical_history,
    remove_file,
    save_documents,
)
from db.patient_service import PatientDataGateway
from fakes import FlakyStore


@pytest.fixture
def seeded(store):
    store.add("appointments", {"patientId": "p1", "start_time": datetime(2024, 7, 1, 10), "visitType": "General"})
    store.add("appointments", {"patientId": "p1", "start_time": datetime(2024, 7, 20, 10), "visitType": "Cardiology"})
    d1 = store.add("diagnoses", {"patientId": "p1", "prescription": "Flu", "instructions": "Rest"})
    d2 = store.add("diagnoses", {"patientId": "p1", "prescription": "Anemia", "instructions": "Iron"})
    d3 = store.add("diagnoses", {"patientId": "p1", "prescription": "Allergy", "instructions": "Avoid pollen"})
    store.add("treatments", {"diagnosisId": d1, "medicationName": "Oseltamivir"})
    store.add("treatments", {"diagnosisId": d2, "medicationName": "Ferrous sulfate"})
    store.add("treatments", {"diagnosisId": d3, "medicationName": "Cetirizine"})
    return {"d1": d1, "d2": d2, "d3": d3}


class TestLoadMedicalHistory:
    def test_full_load(self, patients, seeded):
        history = load_medical_history(patients, "p1")

        assert [a.visit_type for a in history.appointments] == ["Cardiology", "General"]
        assert len(history.diagnoses) == 3
        assert sorted(t.medication_name for t in history.treatments) == [
            "Cetirizine", "Ferrous sulfate", "Oseltamivir",
        ]
        assert history.skipped_diagnoses == []

    def test_treatment_failure_for_one_diagnosis_is_skipped(self, store, seeded):
        failing = seeded["d2"]
        flaky = FlakyStore(
            store,
            lambda op, collection, detail: collection == "treatments" and ("diagnosisId", failing) in detail,
        )

        history = load_medical_history(PatientDataGateway(flaky), "p1")

        assert sorted(t.medication_name for t in history.treatments) == ["Cetirizine", "Oseltamivir"]
        assert history.skipped_diagnoses == [failing]
        assert len(history.appointments) == 2
        assert len(history.diagnoses) == 3

    @pytest.mark.parametrize("collection", ["appointments", "diagnoses"])
    def test_appointment_or_diagnosis_failure_aborts(self, store, seeded, collection):
        flaky = FlakyStore(store, lambda op, c, detail: c == collection)
        with pytest.raises(RuntimeError):
            load_medical_history(PatientDataGateway(flaky), "p1")

    def test_treatments_fetched_one_diagnosis_at_a_time(self, store, seeded):
        flaky = FlakyStore(store, lambda *args: False)
        load_medical_history(PatientDataGateway(flaky), "p1")

        treatment_calls = [c for c in flaky.calls if c[1] == "treatments"]
        assert len(treatment_calls) == 3
        assert [c[1] for c in flaky.calls[:2]] == ["appointments", "diagnoses"]


class TestUploadedFiles:
    def picked(self):
        return [
            PickedFile(name="blood.pdf", size=2048, mime_type="application/pdf", uri="file:///blood.pdf"),
            PickedFile(name="xray.png", size=1536, mime_type="image/png", uri="file:///xray.png"),
            PickedFile(name="notes.txt", size=10, mime_type="text/plain", uri="file:///notes.txt"),
        ]

    def test_add_builds_entries(self):
        files = add_picked_files([], self.picked(), today=date(2024, 7, 16))

        assert [f.name for f in files] == ["blood.pdf", "xray.png", "notes.txt"]
        assert files[0].type == "application/pdf"
        assert files[0].size == 2048
        assert files[0].upload_date == "07/16/2024"
        assert len({f.id for f in files}) == 3

    def test_cancelled_pick_changes_nothing(self):
        files = add_picked_files([], self.picked())
        assert add_picked_files(files, None) == files

    def test_remove_keeps_the_rest_untouched(self):
        files = add_picked_files([], self.picked())

        remaining = remove_file(files, files[1].id)

        assert remaining == [files[0], files[2]]
        assert len(files) == 3

    def test_remove_unknown_id(self):
        files = add_picked_files([], self.picked())
        assert remove_file(files, "missing") == files

    @pytest.mark.parametrize("size,text", [
        (0, "0 Bytes"),
        (500, "500 Bytes"),
        (1536, "1.5 KB"),
        (1048576, "1 MB"),
        (5 * 1024 ** 3, "5 GB"),
    ])
    def test_format_file_size(self, size, text):
        assert format_file_size(size) == text

    def test_save_is_a_no_op(self, caplog):
        files = add_picked_files([], self.picked())
        with caplog.at_level("INFO"):
            assert save_documents(files) is None
        assert "nothing is uploaded" in caplog.text
