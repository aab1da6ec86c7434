"""
Assignment policy: which doctor a patient belongs to.

Pure functions only. Callers pass the current roster and patient list; nothing
here reads or writes the Store.
"""

import re
from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from models.doctor import Doctor
from models.patient import Patient, UNDIAGNOSED
from models.specialization import Specialization

# Checked in order; the first specialization with a matching keyword wins.
DEFAULT_KEYWORDS: Dict[Specialization, Tuple[str, ...]] = {
    Specialization.ONCOLOGY: ("cancer", "tumor", "tumour", "carcinoma", "lymphoma", "leukemia", "sarcoma", "melanoma"),
    Specialization.CARDIOLOGY: ("heart", "cardiac", "arrhythmia", "angina", "myocardial", "hypertension", "atrial"),
    Specialization.NEUROLOGY: ("stroke", "seizure", "epilep", "migraine", "parkinson", "dementia", "sclerosis", "neuropathy"),
    Specialization.ORTHOPEDICS: ("fracture", "sprain", "arthritis", "osteo", "dislocation", "ligament"),
    Specialization.DERMATOLOGY: ("eczema", "psoriasis", "dermatitis", "acne", "rash"),
    Specialization.PEDIATRICS: ("neonatal", "infant", "croup", "pediatric"),
}

_DIGITS = re.compile(r"(\d+)")


def derive_specialization(
    diagnosis: Optional[str],
    keyword_map: Mapping[Specialization, Iterable[str]] = DEFAULT_KEYWORDS,
) -> Specialization:
    """Map free-text diagnosis to a specialization by keyword; GeneralMedicine otherwise."""
    text = (diagnosis or "").strip().lower()
    if not text or text == UNDIAGNOSED:
        return Specialization.GENERAL_MEDICINE
    for specialization, keywords in keyword_map.items():
        if any(k in text for k in keywords):
            return specialization
    return Specialization.GENERAL_MEDICINE


def id_sort_key(identifier: str) -> Tuple[tuple, str]:
    """Natural ordering for ids: digit runs compare as numbers."""
    parts = tuple(int(part) if part.isdigit() else part for part in _DIGITS.split(identifier))
    return parts, identifier


def current_loads(patients: Iterable[Patient], exclude: Optional[str] = None) -> Counter:
    return Counter(
        p.assigned_doctor_id
        for p in patients
        if p.assigned_doctor_id is not None and p.id != exclude
    )


def resolve_assignment(
    patient: Patient,
    doctors: Sequence[Doctor],
    patients: Iterable[Patient],
) -> Optional[str]:
    """Return the id of the doctor who should own ``patient``, or None.

    Eligible doctors share the patient's required specialization. The one with
    the fewest assigned patients wins, ties going to the lowest doctor id. The
    patient's own current assignment is not counted toward any doctor's load.
    Ids compare by their numeric parts, so D9 ranks before D10.
    """
    eligible = [d for d in doctors if d.specialization == patient.required_specialization]
    if not eligible:
        return None

    loads = current_loads(patients, exclude=patient.id)
    best = min(eligible, key=lambda d: (loads[d.id], id_sort_key(d.id)))
    return best.id


def _by_id(doctors) -> Mapping[str, Doctor]:
    if isinstance(doctors, Mapping):
        return doctors
    return {d.id: d for d in doctors}


def holds_assignment(patient: Patient, doctors) -> bool:
    """True when the patient is unassigned or linked to a matching doctor."""
    if patient.assigned_doctor_id is None:
        return True
    doctor = _by_id(doctors).get(patient.assigned_doctor_id)
    return doctor is not None and doctor.specialization == patient.required_specialization


def needs_reassignment(patient: Patient, doctors) -> bool:
    """Whether the patient's current assignment must be recomputed.

    That is the case when the linked doctor is gone or no longer matches, or
    when the patient is unassigned although an eligible doctor exists.
    """
    roster = _by_id(doctors)
    if not holds_assignment(patient, roster):
        return True
    if patient.assigned_doctor_id is None:
        return any(d.specialization == patient.required_specialization for d in roster.values())
    return False


def invariant_violations(doctors, patients: Iterable[Patient]) -> List[str]:
    roster = _by_id(doctors)
    return [p.id for p in patients if not holds_assignment(p, roster)]
