from typing import List

from models.patient import Patient
from services.assignment_service import AssignmentService


class DoctorView:
    """One doctor's patient list, kept in sync through the change notifier.

    The view never caches patients: rows() always re-pulls from the service.
    on_data_changed() only records that something changed so the UI knows to
    re-render.
    """

    def __init__(self, service: AssignmentService, doctor_id: str, show_mine: bool = True):
        self.service = service
        self.doctor_id = doctor_id
        self.show_mine = show_mine
        self.revision = 0
        self.stale = False

    def open(self) -> "DoctorView":
        self.service.subscribe(self)
        return self

    def close(self) -> None:
        self.service.unsubscribe(self)

    def on_data_changed(self) -> None:
        self.revision += 1
        self.stale = True

    def toggle(self) -> bool:
        self.show_mine = not self.show_mine
        return self.show_mine

    def rows(self) -> List[Patient]:
        self.stale = False
        if self.show_mine:
            return self.service.patients_for_doctor(self.doctor_id)
        return self.service.all_patients()

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()
        return False
