# models/patient.py

from dataclasses import dataclass
from datetime import date
from typing import Optional

from models.specialization import Specialization

UNDIAGNOSED = "undiagnosed"


def normalize_diagnosis(diagnosis: str | None) -> str:
    text = (diagnosis or "").strip()
    return text or UNDIAGNOSED


@dataclass(frozen=True)
class Patient:
    # Short human-friendly patient identifier (P001, P002...)
    id: str
    name: str
    diagnosis: str
    required_specialization: Specialization
    admission_date: date

    # Non-owning link to a doctor with the matching specialization, or None
    assigned_doctor_id: Optional[str] = None

    @property
    def is_assigned(self) -> bool:
        return self.assigned_doctor_id is not None

    def __repr__(self):
        return f"<Patient {self.id} - {self.name} -> {self.assigned_doctor_id or 'unassigned'}>"
