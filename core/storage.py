"""
Storage backends for the roster.

A backend reads and writes the complete set of doctors and patients. Two
backends exist:

- TextFileBackend: a directory with ``doctors.txt`` and ``patients.txt``, one
  record per line, fields joined by a single separator character. Saving
  writes both files or neither.
- SqliteBackend: ``doctors`` and ``patients`` tables via SQLAlchemy, replaced
  inside one transaction.

Backends only translate records; validation of cross-references belongs to the
Store.
"""

import csv
import logging
import os
import pathlib
import shutil
import tempfile
from datetime import date
from typing import List, Protocol, Sequence, Tuple

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from core.database import Base, make_engine, make_session_factory, get_db_context, transaction
from core.errors import PersistenceError, RosterError
from models.doctor import Doctor
from models.patient import Patient
from models.specialization import Specialization
from models.tables import DoctorRow, PatientRow

logger = logging.getLogger(__name__)

NO_DOCTOR = "-"

DOCTOR_FIELDS = ["id", "name", "specialization"]
PATIENT_FIELDS = [
    "id",
    "name",
    "diagnosis",
    "required_specialization",
    "assigned_doctor_id",
    "admission_date",
]

Snapshot = Tuple[List[Doctor], List[Patient]]


class StorageBackend(Protocol):
    def exists(self) -> bool: ...

    def read(self) -> Snapshot: ...

    def write(self, doctors: Sequence[Doctor], patients: Sequence[Patient]) -> None: ...


# ------------------------------------------
# Record <-> row conversion
# ------------------------------------------
def doctor_to_row(doctor: Doctor) -> List[str]:
    return [doctor.id, doctor.name, doctor.specialization.value]


def patient_to_row(patient: Patient) -> List[str]:
    return [
        patient.id,
        patient.name,
        patient.diagnosis,
        patient.required_specialization.value,
        patient.assigned_doctor_id or NO_DOCTOR,
        patient.admission_date.isoformat(),
    ]


def doctor_from_row(row: Sequence[str]) -> Doctor:
    if len(row) != len(DOCTOR_FIELDS):
        raise ValueError(f"expected {len(DOCTOR_FIELDS)} fields, got {len(row)}")
    doctor_id, name, specialization = row
    return Doctor(id=doctor_id, name=name, specialization=Specialization.parse(specialization))


def patient_from_row(row: Sequence[str]) -> Patient:
    if len(row) != len(PATIENT_FIELDS):
        raise ValueError(f"expected {len(PATIENT_FIELDS)} fields, got {len(row)}")
    patient_id, name, diagnosis, specialization, doctor_id, admitted = row
    return Patient(
        id=patient_id,
        name=name,
        diagnosis=diagnosis,
        required_specialization=Specialization.parse(specialization),
        assigned_doctor_id=None if doctor_id == NO_DOCTOR else doctor_id,
        admission_date=date.fromisoformat(admitted),
    )


# ------------------------------------------
# Flat text files
# ------------------------------------------
class TextFileBackend:
    DOCTORS_FILE = "doctors.txt"
    PATIENTS_FILE = "patients.txt"

    def __init__(self, directory, separator: str = "|"):
        self.directory = pathlib.Path(directory)
        self.separator = separator

    @property
    def doctors_path(self) -> pathlib.Path:
        return self.directory / self.DOCTORS_FILE

    @property
    def patients_path(self) -> pathlib.Path:
        return self.directory / self.PATIENTS_FILE

    def exists(self) -> bool:
        return self.doctors_path.exists() or self.patients_path.exists()

    def read(self) -> Snapshot:
        if not (self.doctors_path.exists() and self.patients_path.exists()):
            raise PersistenceError(f"Roster files missing in {self.directory}: need both {self.DOCTORS_FILE} and {self.PATIENTS_FILE}.")
        doctors = self._read_file(self.doctors_path, DOCTOR_FIELDS, doctor_from_row)
        patients = self._read_file(self.patients_path, PATIENT_FIELDS, patient_from_row)
        return doctors, patients

    def _read_file(self, path: pathlib.Path, header: List[str], parse) -> list:
        records = []
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                reader = csv.reader(f, delimiter=self.separator)
                first = next(reader, None)
                if first != header:
                    raise PersistenceError(f"{path.name}: unexpected header {first!r}")
                for row in reader:
                    if not row:
                        continue
                    try:
                        records.append(parse(row))
                    except (ValueError, RosterError) as e:
                        raise PersistenceError(f"{path.name} line {reader.line_num}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Could not read {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise PersistenceError(f"{path.name} is not valid UTF-8: {e}") from e
        except csv.Error as e:
            raise PersistenceError(f"Malformed {path.name}: {e}") from e
        return records

    def write(self, doctors: Sequence[Doctor], patients: Sequence[Patient]) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not create {self.directory}: {e}") from e

        staged = []
        try:
            staged.append((self._stage(DOCTOR_FIELDS, map(doctor_to_row, doctors)), self.doctors_path))
            staged.append((self._stage(PATIENT_FIELDS, map(patient_to_row, patients)), self.patients_path))
            self._swap_in(staged)
        except OSError as e:
            raise PersistenceError(f"Could not save roster to {self.directory}: {e}") from e
        finally:
            for tmp_path, _ in staged:
                if tmp_path.exists():
                    tmp_path.unlink()

    def _stage(self, header: List[str], rows) -> pathlib.Path:
        fd, name = tempfile.mkstemp(dir=self.directory, prefix=".roster-", suffix=".tmp")
        tmp_path = pathlib.Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f, delimiter=self.separator, lineterminator="\n")
                writer.writerow(header)
                writer.writerows(rows)
                f.flush()
                os.fsync(f.fileno())
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        return tmp_path

    def _swap_in(self, staged) -> None:
        """Replace every target with its staged file, undoing earlier swaps on failure.

        Backups are removed once the save succeeds or every earlier swap has
        been undone. If undoing fails they stay next to the targets.
        """
        done = []
        backups = []
        try:
            for tmp_path, target in staged:
                backup = None
                if target.exists():
                    backup = target.with_name(target.name + ".bak")
                    shutil.copy2(target, backup)
                    backups.append(backup)
                os.replace(tmp_path, target)
                done.append((target, backup))
        except OSError:
            logger.error("Roster save to %s failed, restoring %d file(s)", self.directory, len(done))
            if not self._roll_back(done):
                logger.critical(
                    "Roster files in %s are inconsistent; previous versions kept at %s",
                    self.directory,
                    ", ".join(str(b) for b in backups),
                )
                backups = []
            raise
        finally:
            for backup in backups:
                backup.unlink(missing_ok=True)

    def _roll_back(self, done) -> bool:
        restored = True
        for target, backup in reversed(done):
            try:
                if backup is not None:
                    os.replace(backup, target)
                else:
                    target.unlink(missing_ok=True)
            except OSError:
                logger.exception("Could not restore %s", target)
                restored = False
        return restored

    def __repr__(self):
        return f"<TextFileBackend {self.directory}>"


# ------------------------------------------
# SQLite via SQLAlchemy
# ------------------------------------------
class SqliteBackend:
    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = make_engine(database_url)
        self.SessionLocal = make_session_factory(self.engine)

    def exists(self) -> bool:
        try:
            return inspect(self.engine).has_table("doctors")
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not inspect {self.database_url}: {e}") from e

    def read(self) -> Snapshot:
        try:
            with get_db_context(self.SessionLocal) as db:
                doctor_rows = db.query(DoctorRow).order_by(DoctorRow.position).all()
                patient_rows = db.query(PatientRow).order_by(PatientRow.position).all()
                doctors = [
                    Doctor(id=r.doctor_id, name=r.name, specialization=Specialization.parse(r.specialization))
                    for r in doctor_rows
                ]
                patients = [
                    Patient(
                        id=r.patient_id,
                        name=r.name,
                        diagnosis=r.diagnosis,
                        required_specialization=Specialization.parse(r.required_specialization),
                        assigned_doctor_id=r.assigned_doctor_id,
                        admission_date=r.admission_date,
                    )
                    for r in patient_rows
                ]
        except (SQLAlchemyError, ValueError, RosterError) as e:
            raise PersistenceError(f"Could not read roster from {self.database_url}: {e}") from e
        return doctors, patients

    def write(self, doctors: Sequence[Doctor], patients: Sequence[Patient]) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
            with transaction(self.SessionLocal) as db:
                db.query(PatientRow).delete()
                db.query(DoctorRow).delete()
                db.add_all(
                    DoctorRow(
                        position=i,
                        doctor_id=d.id,
                        name=d.name,
                        specialization=d.specialization.value,
                    )
                    for i, d in enumerate(doctors)
                )
                db.add_all(
                    PatientRow(
                        position=i,
                        patient_id=p.id,
                        name=p.name,
                        diagnosis=p.diagnosis,
                        required_specialization=p.required_specialization.value,
                        assigned_doctor_id=p.assigned_doctor_id,
                        admission_date=p.admission_date,
                    )
                    for i, p in enumerate(patients)
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not save roster to {self.database_url}: {e}") from e

    def __repr__(self):
        return f"<SqliteBackend {self.database_url}>"


def as_backend(source, separator: str = "|") -> StorageBackend:
    """Treat a path as a flat-text directory; pass backends through."""
    if isinstance(source, (str, os.PathLike)):
        return TextFileBackend(source, separator=separator)
    return source


def open_backend(settings) -> StorageBackend:
    if settings.backend == "sqlite":
        # SQLite creates the database file but not its directory
        try:
            settings.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not create {settings.data_dir}: {e}") from e
        return SqliteBackend(settings.database_url)
    return TextFileBackend(settings.data_dir, separator=settings.field_separator)
