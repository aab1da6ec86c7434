# models/specialization.py

from enum import Enum

from core.errors import ValidationError


class Specialization(str, Enum):
    CARDIOLOGY = "Cardiology"
    NEUROLOGY = "Neurology"
    GENERAL_MEDICINE = "GeneralMedicine"
    ONCOLOGY = "Oncology"
    ORTHOPEDICS = "Orthopedics"
    PEDIATRICS = "Pediatrics"
    DERMATOLOGY = "Dermatology"

    @classmethod
    def parse(cls, value) -> "Specialization":
        """Accept an enum member, its value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        text = (value or "").strip().lower().replace(" ", "").replace("_", "")
        for member in cls:
            if text in {member.value.lower(), member.name.lower().replace("_", "")}:
                return member
        raise ValidationError(f"Unknown specialization: {value!r}")

    def __str__(self) -> str:
        return self.value
