"""
Tests for AssignmentService.

Covers the assignment invariant after every mutation, the one-publish-per-
mutation rule, validation before mutation, and the doctor specialization
cascade policy.
"""

import dataclasses
from datetime import date

import pytest

from conftest import RecordingSubscriber, assert_invariant
from core.errors import DuplicateIdError, NotFoundError, ValidationError
from models import Doctor, Specialization, UNDIAGNOSED
from services.assignment_service import AssignmentService

CARDIO = Specialization.CARDIOLOGY
NEURO = Specialization.NEUROLOGY


class TestAddPatient:
    def test_scenario_add_then_reassign(self, service, recorder):
        """Cardiology patient goes to D1, then moves to D2 on a neurology diagnosis."""
        a = service.add_patient(name="A", diagnosis="", required_specialization=CARDIO, admission_date="2024-01-01")
        assert a.diagnosis == UNDIAGNOSED
        assert a.assigned_doctor_id == "D1"
        assert recorder.calls == 1

        updated = service.update_patient_diagnosis(a.id, "stroke", NEURO)

        assert updated.assigned_doctor_id == "D2"
        assert updated.diagnosis == "stroke"
        assert recorder.calls == 2
        assert_invariant(service.store)

    def test_admission_date_accepts_date_objects(self, service, admitted):
        patient = service.add_patient(name="B", admission_date=admitted, required_specialization=NEURO)
        assert patient.admission_date == date(2024, 1, 1)

    def test_same_explicit_diagnosis_gives_identical_records_except_id(self, service):
        first = service.add_patient(name="Twin", diagnosis="angina", required_specialization=CARDIO, admission_date="2024-02-02")
        # D1 is the only cardiologist, so both land on the same doctor
        second = service.add_patient(name="Twin", diagnosis="angina", required_specialization=CARDIO, admission_date="2024-02-02")
        assert first.id != second.id
        assert dataclasses.replace(second, id=first.id) == first

    def test_specialization_derived_from_diagnosis(self, service):
        patient = service.add_patient(name="C", diagnosis="Ischemic stroke", admission_date="2024-03-01")
        assert patient.required_specialization is NEURO
        assert patient.assigned_doctor_id == "D2"

    def test_unassigned_when_no_doctor_matches(self, service):
        patient = service.add_patient(
            name="D", diagnosis="eczema", required_specialization=Specialization.DERMATOLOGY, admission_date="2024-01-05"
        )
        assert patient.assigned_doctor_id is None
        assert patient not in service.patients_for_doctor("D1")
        assert patient not in service.patients_for_doctor("D2")
        assert service.unassigned_patients() == [patient]

    def test_load_balancing_across_same_specialization(self, service):
        service.register_doctor(Doctor("D3", "Dr. Pulse", CARDIO))
        ids = [
            service.add_patient(name=f"P{i}", required_specialization=CARDIO, admission_date="2024-01-01").assigned_doctor_id
            for i in range(4)
        ]
        assert ids == ["D1", "D3", "D1", "D3"]
        assert_invariant(service.store)

    def test_generated_ids_are_sequential(self, service):
        first = service.add_patient(name="X", admission_date="2024-01-01")
        second = service.add_patient(name="Y", admission_date="2024-01-01")
        assert (first.id, second.id) == ("P001", "P002")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"name": "", "admission_date": "2024-01-01"},
            {"name": "   ", "admission_date": "2024-01-01"},
            {"name": "E", "admission_date": None},
            {"name": "E", "admission_date": "01/02/2024"},
            {"name": "E", "admission_date": "2024-01-01", "required_specialization": "Astrology"},
        ],
    )
    def test_invalid_input_rejected_without_side_effects(self, service, recorder, kwargs):
        with pytest.raises(ValidationError):
            service.add_patient(**kwargs)
        assert service.all_patients() == []
        assert recorder.calls == 0

    def test_duplicate_patient_id_rejected(self, service, recorder):
        service.add_patient(name="F", admission_date="2024-01-01", patient_id="P100")
        with pytest.raises(DuplicateIdError):
            service.add_patient(name="G", admission_date="2024-01-01", patient_id="P100")
        assert [p.name for p in service.all_patients()] == ["F"]
        assert recorder.calls == 1

    def test_subscriber_sees_new_patient_during_callback(self, service):
        seen = []
        sub = RecordingSubscriber(lambda: seen.append([p.name for p in service.all_patients()]))
        service.subscribe(sub)

        service.add_patient(name="Visible", required_specialization=CARDIO, admission_date="2024-01-01")

        assert sub.calls == 1
        assert seen == [["Visible"]]

    def test_every_subscriber_notified_once(self, service):
        subs = [RecordingSubscriber() for _ in range(3)]
        for sub in subs:
            service.subscribe(sub)
        service.add_patient(name="H", admission_date="2024-01-01")
        assert [s.calls for s in subs] == [1, 1, 1]


class TestUpdatePatientDiagnosis:
    def test_unknown_patient(self, service, recorder):
        with pytest.raises(NotFoundError):
            service.update_patient_diagnosis("P404", "stroke", NEURO)
        assert recorder.calls == 0

    def test_invalid_specialization_leaves_patient_untouched(self, service, recorder):
        patient = service.add_patient(name="A", required_specialization=CARDIO, admission_date="2024-01-01")
        with pytest.raises(ValidationError):
            service.update_patient_diagnosis(patient.id, "stroke", "Astrology")
        assert service.get_patient(patient.id) == patient
        assert recorder.calls == 1

    def test_same_specialization_rewrite_is_idempotent(self, service, recorder):
        patient = service.add_patient(name="A", required_specialization=CARDIO, admission_date="2024-01-01")
        updated = service.update_patient_diagnosis(patient.id, "angina", CARDIO)
        assert updated.assigned_doctor_id == patient.assigned_doctor_id
        assert recorder.calls == 2

    def test_becomes_unassigned_when_no_doctor_matches(self, service):
        patient = service.add_patient(name="A", required_specialization=CARDIO, admission_date="2024-01-01")
        updated = service.update_patient_diagnosis(patient.id, "melanoma", Specialization.ONCOLOGY)
        assert updated.assigned_doctor_id is None
        assert service.patients_for_doctor("D1") == []

    def test_empty_diagnosis_normalized_on_update(self, service):
        patient = service.add_patient(name="A", diagnosis="angina", required_specialization=CARDIO, admission_date="2024-01-01")
        updated = service.update_patient_diagnosis(patient.id, "", None)
        assert updated.diagnosis == UNDIAGNOSED
        assert updated.required_specialization is Specialization.GENERAL_MEDICINE
        assert updated.assigned_doctor_id is None

    def test_admission_date_survives_updates(self, service):
        patient = service.add_patient(name="A", required_specialization=CARDIO, admission_date="2023-12-24")
        updated = service.update_patient_diagnosis(patient.id, "stroke", NEURO)
        assert updated.admission_date == date(2023, 12, 24)


class TestDoctors:
    def test_register_publishes_once(self, service, recorder):
        service.register_doctor(Doctor("D3", "Dr. New", Specialization.ONCOLOGY))
        assert recorder.calls == 1

    def test_register_duplicate_publishes_nothing(self, service, recorder):
        with pytest.raises(DuplicateIdError):
            service.register_doctor(Doctor("D1", "Dr. Copy", NEURO))
        assert recorder.calls == 0
        assert service.get_doctor("D1").name == "Dr. Heart"

    def test_register_requires_name(self, service):
        with pytest.raises(ValidationError):
            service.register_doctor(Doctor("D3", " ", NEURO))

    def test_register_named_generates_id(self, store):
        service = AssignmentService(store)
        doctor = service.register_doctor_named("Dr. Auto", "neurology")
        assert doctor.id == "D001"
        assert doctor.specialization is NEURO

    def test_patients_for_unknown_doctor(self, service):
        with pytest.raises(NotFoundError):
            service.patients_for_doctor("D404")

    def test_reads_do_not_publish(self, service, recorder):
        service.all_patients()
        service.patients_for_doctor("D1")
        service.doctors()
        service.unassigned_patients()
        assert recorder.calls == 0


class TestDoctorSpecializationChange:
    def _fill(self, service):
        service.register_doctor(Doctor("D3", "Dr. Spare", NEURO))
        a = service.add_patient(name="A", required_specialization=CARDIO, admission_date="2024-01-01")
        b = service.add_patient(name="B", required_specialization=CARDIO, admission_date="2024-01-01")
        c = service.add_patient(name="C", required_specialization=Specialization.ONCOLOGY, admission_date="2024-01-01")
        return a, b, c

    def test_cascade_off_unassigns_former_patients(self, service, recorder):
        a, b, c = self._fill(service)
        calls = recorder.calls

        service.update_doctor_specialization("D1", Specialization.ONCOLOGY)

        assert service.get_patient(a.id).assigned_doctor_id is None
        assert service.get_patient(b.id).assigned_doctor_id is None
        # Waiting oncology patient is not picked up without cascade
        assert service.get_patient(c.id).assigned_doctor_id is None
        assert recorder.calls == calls + 1
        assert_invariant(service.store)

    def test_cascade_off_moves_former_patients_to_a_peer(self, service, recorder):
        service.register_doctor(Doctor("D3", "Dr. Pulse", CARDIO))
        a = service.add_patient(name="A", required_specialization=CARDIO, admission_date="2024-01-01")
        assert a.assigned_doctor_id == "D1"
        calls = recorder.calls

        service.update_doctor_specialization("D1", Specialization.ONCOLOGY)

        assert service.get_patient(a.id).assigned_doctor_id == "D3"
        assert recorder.calls == calls + 1
        assert_invariant(service.store)

    def test_cascade_on_reresolves(self, store, notifier):
        service = AssignmentService(store, notifier, cascade_reassign=True)
        service.register_doctor(Doctor("D1", "Dr. Heart", CARDIO))
        service.register_doctor(Doctor("D2", "Dr. Brain", NEURO))
        service.register_doctor(Doctor("D3", "Dr. Pulse", NEURO))
        a = service.add_patient(name="A", required_specialization=NEURO, admission_date="2024-01-01")
        c = service.add_patient(name="C", required_specialization=Specialization.ONCOLOGY, admission_date="2024-01-01")
        assert a.assigned_doctor_id == "D2"

        sub = RecordingSubscriber()
        service.subscribe(sub)
        service.update_doctor_specialization("D2", Specialization.ONCOLOGY)

        assert service.get_patient(a.id).assigned_doctor_id == "D3"
        assert service.get_patient(c.id).assigned_doctor_id == "D2"
        assert sub.calls == 1
        assert_invariant(store)

    def test_unknown_doctor(self, service, recorder):
        with pytest.raises(NotFoundError):
            service.update_doctor_specialization("D404", CARDIO)
        assert recorder.calls == 0


class TestRebalance:
    def test_new_doctor_picks_up_waiting_patients(self, service, recorder):
        waiting = service.add_patient(name="W", required_specialization=Specialization.ONCOLOGY, admission_date="2024-01-01")
        service.register_doctor(Doctor("D3", "Dr. Onco", Specialization.ONCOLOGY))
        calls = recorder.calls

        moved = service.rebalance()

        assert moved == [waiting.id]
        assert service.get_patient(waiting.id).assigned_doctor_id == "D3"
        assert recorder.calls == calls + 1

    def test_settled_roster_moves_nobody(self, service):
        service.add_patient(name="A", required_specialization=CARDIO, admission_date="2024-01-01")
        assert service.rebalance() == []
