from .specialization import Specialization
from .doctor import Doctor
from .patient import Patient, UNDIAGNOSED, normalize_diagnosis

__all__ = [
    "Specialization",
    "Doctor",
    "Patient",
    "UNDIAGNOSED",
    "normalize_diagnosis",
]
