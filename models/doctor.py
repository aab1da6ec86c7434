# models/doctor.py

from dataclasses import dataclass

from models.specialization import Specialization


@dataclass(frozen=True)
class Doctor:
    # Short stable identifier (D001, D002...), never the display name
    id: str
    name: str
    specialization: Specialization

    def __repr__(self):
        return f"<Doctor {self.id} - {self.name} ({self.specialization})>"
