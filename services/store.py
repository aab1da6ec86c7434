import dataclasses
import logging
import re
from collections import Counter
from typing import Callable, Dict, List, Mapping, Tuple, Union

from core.errors import DuplicateIdError, NotFoundError, PersistenceError, ValidationError
from core.storage import as_backend
from models.doctor import Doctor
from models.patient import Patient, normalize_diagnosis
from services.assignment_policy import invariant_violations

logger = logging.getLogger(__name__)

Mutation = Union[Callable, Mapping[str, object]]


def _next_code(prefix: str, existing) -> str:
    pattern = re.compile(rf"{prefix}(\d+)")
    numbers = [int(m.group(1)) for m in map(pattern.fullmatch, existing) if m]
    return f"{prefix}{max(numbers, default=0) + 1:03d}"


def _apply(record, mutation: Mutation, frozen: Tuple[str, ...]):
    try:
        if callable(mutation):
            updated = mutation(record)
        else:
            updated = dataclasses.replace(record, **dict(mutation))
    except TypeError as e:
        raise ValidationError(f"Invalid update for {record.id}: {e}") from e

    if type(updated) is not type(record):
        raise ValidationError(f"Update for {record.id} must produce a {type(record).__name__}.")
    for name in frozen:
        if getattr(updated, name) != getattr(record, name):
            raise ValidationError(f"{name} of {record.id} cannot be changed.")
    return updated


class Store:
    """Authoritative in-memory doctors and patients, in insertion order."""

    def __init__(self):
        self._doctors: Dict[str, Doctor] = {}
        self._patients: Dict[str, Patient] = {}

    # ------------------------------------------
    # Doctors
    # ------------------------------------------
    def add_doctor(self, doctor: Doctor) -> Doctor:
        if doctor.id in self._doctors:
            raise DuplicateIdError("Doctor", doctor.id)
        self._doctors[doctor.id] = doctor
        return doctor

    def update_doctor(self, doctor_id: str, mutation: Mutation) -> Doctor:
        doctor = self.get_doctor(doctor_id)
        updated = _apply(doctor, mutation, frozen=("id",))
        self._doctors[doctor_id] = updated
        return updated

    def get_doctor(self, doctor_id: str) -> Doctor:
        try:
            return self._doctors[doctor_id]
        except KeyError:
            raise NotFoundError("Doctor", doctor_id) from None

    def doctors(self) -> List[Doctor]:
        return list(self._doctors.values())

    def next_doctor_id(self) -> str:
        return _next_code("D", self._doctors)

    # ------------------------------------------
    # Patients
    # ------------------------------------------
    def add_patient(self, patient: Patient) -> Patient:
        if patient.id in self._patients:
            raise DuplicateIdError("Patient", patient.id)
        patient = dataclasses.replace(patient, diagnosis=normalize_diagnosis(patient.diagnosis))
        self._patients[patient.id] = patient
        return patient

    def update_patient(self, patient_id: str, mutation: Mutation) -> Patient:
        patient = self.get_patient(patient_id)
        updated = _apply(patient, mutation, frozen=("id", "admission_date"))
        self._patients[patient_id] = updated
        return updated

    def get_patient(self, patient_id: str) -> Patient:
        try:
            return self._patients[patient_id]
        except KeyError:
            raise NotFoundError("Patient", patient_id) from None

    def all_patients(self) -> List[Patient]:
        return list(self._patients.values())

    def patients_for(self, doctor_id: str) -> List[Patient]:
        return [p for p in self._patients.values() if p.assigned_doctor_id == doctor_id]

    def patient_counts(self) -> Dict[str, int]:
        counts = Counter(p.assigned_doctor_id for p in self._patients.values() if p.assigned_doctor_id)
        return {doctor_id: counts[doctor_id] for doctor_id in self._doctors}

    def next_patient_id(self) -> str:
        return _next_code("P", self._patients)

    # ------------------------------------------
    # Snapshots and persistence
    # ------------------------------------------
    def snapshot(self):
        return dict(self._doctors), dict(self._patients)

    def restore(self, snapshot) -> None:
        doctors, patients = snapshot
        self._doctors = dict(doctors)
        self._patients = dict(patients)

    def load(self, source, separator: str = "|") -> None:
        """Replace all in-memory state with the contents of ``source``.

        ``source`` is a storage backend or a directory of flat-text files. On
        any failure PersistenceError is raised and current state is kept.
        """
        backend = as_backend(source, separator)
        doctors, patients = backend.read()

        doctor_map: Dict[str, Doctor] = {}
        for d in doctors:
            if d.id in doctor_map:
                raise PersistenceError(f"Duplicate doctor id {d.id!r} in {backend!r}")
            doctor_map[d.id] = d

        patient_map: Dict[str, Patient] = {}
        for p in patients:
            if p.id in patient_map:
                raise PersistenceError(f"Duplicate patient id {p.id!r} in {backend!r}")
            patient_map[p.id] = dataclasses.replace(p, diagnosis=normalize_diagnosis(p.diagnosis))

        broken = invariant_violations(doctor_map, patient_map.values())
        if broken:
            raise PersistenceError(
                f"Patients linked to a missing or mismatched doctor in {backend!r}: {', '.join(broken)}"
            )

        self._doctors = doctor_map
        self._patients = patient_map
        logger.info("Loaded %d doctors and %d patients from %r", len(doctor_map), len(patient_map), backend)

    def save(self, sink, separator: str = "|") -> None:
        backend = as_backend(sink, separator)
        backend.write(self.doctors(), self.all_patients())
        logger.info("Saved %d doctors and %d patients to %r", len(self._doctors), len(self._patients), backend)
