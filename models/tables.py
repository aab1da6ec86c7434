# models/tables.py

from sqlalchemy import Column, Integer, String, Date
from core.database import Base


class DoctorRow(Base):
    __tablename__ = "doctors"

    # Insertion order of the in-memory roster
    position = Column(Integer, nullable=False)

    doctor_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    specialization = Column(String, nullable=False)

    def __repr__(self):
        return f"<DoctorRow {self.doctor_id} - {self.name}>"


class PatientRow(Base):
    __tablename__ = "patients"

    position = Column(Integer, nullable=False)

    patient_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    diagnosis = Column(String, nullable=False)
    required_specialization = Column(String, nullable=False)

    # Plain string rather than a ForeignKey: unassigned patients store NULL
    assigned_doctor_id = Column(String, nullable=True, index=True)
    admission_date = Column(Date, nullable=False)

    def __repr__(self):
        return f"<PatientRow {self.patient_id} - {self.name}>"
