"""
Assignment service.

The only entry point views and scripts use to change the roster. Every
mutating operation validates its input, applies its changes to the Store
(re-running the assignment policy where a patient's need changed) and ends
with exactly one publish(). A failed operation publishes nothing and leaves
the Store as it was.
"""

import dataclasses
import logging
import threading
from contextlib import contextmanager
from typing import Iterable, List, Optional

from core.errors import ValidationError
from core.storage import NO_DOCTOR
from core.time_utils import parse_admission_date
from models.doctor import Doctor
from models.patient import Patient, normalize_diagnosis
from models.specialization import Specialization
from services.assignment_policy import (
    DEFAULT_KEYWORDS,
    derive_specialization,
    needs_reassignment,
    resolve_assignment,
)
from services.notifier import ChangeNotifier
from services.store import Store

logger = logging.getLogger(__name__)


class AssignmentService:
    def __init__(
        self,
        store: Store,
        notifier: Optional[ChangeNotifier] = None,
        *,
        cascade_reassign: bool = False,
        keyword_map=None,
    ):
        self.store = store
        self.notifier = notifier or ChangeNotifier()
        self.cascade_reassign = cascade_reassign
        self.keyword_map = keyword_map or DEFAULT_KEYWORDS

        # One lock covers "mutate + publish" so no subscriber is told about a
        # change it cannot read yet. Reentrant: subscribers read back through us.
        self._lock = threading.RLock()

    @contextmanager
    def _mutation(self):
        with self._lock:
            snapshot = self.store.snapshot()
            try:
                yield
            except Exception:
                self.store.restore(snapshot)
                raise
            self.notifier.publish()

    # ------------------------------------------
    # Subscriptions
    # ------------------------------------------
    def subscribe(self, handle) -> None:
        with self._lock:
            self.notifier.subscribe(handle)

    def unsubscribe(self, handle) -> None:
        with self._lock:
            self.notifier.unsubscribe(handle)

    # ------------------------------------------
    # Doctors
    # ------------------------------------------
    def register_doctor(self, doctor: Doctor) -> Doctor:
        if not (doctor.id or "").strip() or doctor.id == NO_DOCTOR:
            raise ValidationError(f"Invalid doctor id {doctor.id!r}.")
        if not (doctor.name or "").strip():
            raise ValidationError("Doctor name is required.")
        doctor = dataclasses.replace(doctor, specialization=Specialization.parse(doctor.specialization))

        with self._mutation():
            stored = self.store.add_doctor(doctor)
        logger.info("Registered doctor %s (%s, %s)", stored.id, stored.name, stored.specialization)
        return stored

    def register_doctor_named(self, name: str, specialization) -> Doctor:
        """Register a doctor under the next free id (D001, D002...)."""
        with self._lock:
            doctor = Doctor(
                id=self.store.next_doctor_id(),
                name=(name or "").strip(),
                specialization=Specialization.parse(specialization),
            )
            return self.register_doctor(doctor)

    def update_doctor_specialization(self, doctor_id: str, specialization) -> Doctor:
        """Change a doctor's specialization and restore the assignment invariant.

        The doctor's former patients that no longer match are re-resolved, so
        they move to another doctor of their specialization or become
        unassigned when none exists. With cascade_reassign on, unassigned
        patients needing the new specialization are re-resolved as well and
        may land on this doctor. With it off, nobody else is touched.
        """
        new_specialization = Specialization.parse(specialization)

        with self._mutation():
            self.store.get_doctor(doctor_id)
            affected = self.store.patients_for(doctor_id)
            doctor = self.store.update_doctor(doctor_id, {"specialization": new_specialization})

            candidates = list(affected)
            if self.cascade_reassign:
                candidates += [
                    p for p in self.store.all_patients()
                    if p.assigned_doctor_id is None and p.required_specialization == new_specialization
                ]
            doctors = self.store.doctors()
            moved = self._reassign(
                p.id for p in candidates
                if needs_reassignment(self.store.get_patient(p.id), doctors)
            )

        logger.info("Doctor %s specialization set to %s", doctor_id, new_specialization)
        if moved:
            logger.info("Re-resolved %d patient(s) after the change: %s", len(moved), ", ".join(moved))
        return doctor

    # ------------------------------------------
    # Patients
    # ------------------------------------------
    def add_patient(
        self,
        name: str,
        admission_date,
        diagnosis: str = "",
        required_specialization=None,
        patient_id: Optional[str] = None,
    ) -> Patient:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Patient name is required.")
        admitted = parse_admission_date(admission_date)
        diagnosis = normalize_diagnosis(diagnosis)
        if required_specialization:
            specialization = Specialization.parse(required_specialization)
        else:
            specialization = derive_specialization(diagnosis, self.keyword_map)

        with self._mutation():
            patient = Patient(
                id=patient_id or self.store.next_patient_id(),
                name=name,
                diagnosis=diagnosis,
                required_specialization=specialization,
                admission_date=admitted,
            )
            doctor_id = resolve_assignment(patient, self.store.doctors(), self.store.all_patients())
            stored = self.store.add_patient(dataclasses.replace(patient, assigned_doctor_id=doctor_id))

        if doctor_id is None:
            logger.warning("Patient %s added unassigned: no %s doctor on the roster", stored.id, specialization)
        else:
            logger.info("Patient %s added and assigned to %s", stored.id, doctor_id)
        return stored

    def update_patient_diagnosis(
        self,
        patient_id: str,
        new_diagnosis: str,
        new_specialization=None,
    ) -> Patient:
        diagnosis = normalize_diagnosis(new_diagnosis)
        if new_specialization:
            specialization = Specialization.parse(new_specialization)
        else:
            specialization = derive_specialization(diagnosis, self.keyword_map)

        with self._mutation():
            previous = self.store.get_patient(patient_id).assigned_doctor_id
            patient = self.store.update_patient(
                patient_id,
                {"diagnosis": diagnosis, "required_specialization": specialization},
            )
            doctor_id = resolve_assignment(patient, self.store.doctors(), self.store.all_patients())
            patient = self.store.update_patient(patient_id, {"assigned_doctor_id": doctor_id})

        if doctor_id != previous:
            logger.info("Patient %s reassigned from %s to %s", patient_id, previous or "unassigned", doctor_id or "unassigned")
        return patient

    def rebalance(self) -> List[str]:
        """Re-resolve every patient whose assignment is stale; returns the ids that moved."""
        with self._mutation():
            doctors = self.store.doctors()
            stale = [p.id for p in self.store.all_patients() if needs_reassignment(p, doctors)]
            moved = self._reassign(stale)
        if moved:
            logger.info("Rebalance moved %d patient(s): %s", len(moved), ", ".join(moved))
        return moved

    def _reassign(self, patient_ids: Iterable[str]) -> List[str]:
        moved = []
        for patient_id in patient_ids:
            patient = self.store.get_patient(patient_id)
            doctor_id = resolve_assignment(patient, self.store.doctors(), self.store.all_patients())
            if doctor_id != patient.assigned_doctor_id:
                moved.append(patient_id)
            self.store.update_patient(patient_id, {"assigned_doctor_id": doctor_id})
        return moved

    # ------------------------------------------
    # Reads (never publish)
    # ------------------------------------------
    def doctors(self) -> List[Doctor]:
        with self._lock:
            return self.store.doctors()

    def get_doctor(self, doctor_id: str) -> Doctor:
        with self._lock:
            return self.store.get_doctor(doctor_id)

    def get_patient(self, patient_id: str) -> Patient:
        with self._lock:
            return self.store.get_patient(patient_id)

    def all_patients(self) -> List[Patient]:
        with self._lock:
            return self.store.all_patients()

    def patients_for_doctor(self, doctor_id: str) -> List[Patient]:
        with self._lock:
            self.store.get_doctor(doctor_id)
            return self.store.patients_for(doctor_id)

    def unassigned_patients(self) -> List[Patient]:
        with self._lock:
            return [p for p in self.store.all_patients() if p.assigned_doctor_id is None]

    def patient_counts(self):
        with self._lock:
            return self.store.patient_counts()

    # ------------------------------------------
    # Persistence (collaborator entry points)
    # ------------------------------------------
    def save(self, sink, separator: str = "|") -> None:
        with self._lock:
            self.store.save(sink, separator)
