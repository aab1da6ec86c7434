"""
Shared fixtures for the roster test suite.

Every test gets a fresh Store, ChangeNotifier and AssignmentService; storage
tests write under pytest's tmp_path.
"""

from datetime import date

import pytest

from models.doctor import Doctor
from models.specialization import Specialization
from services.assignment_policy import invariant_violations
from services.assignment_service import AssignmentService
from services.notifier import ChangeNotifier
from services.store import Store


class RecordingSubscriber:
    """Counts notifications and optionally runs a callback on each one."""

    def __init__(self, on_change=None):
        self.calls = 0
        self.on_change = on_change

    def on_data_changed(self):
        self.calls += 1
        if self.on_change is not None:
            self.on_change()


def assert_invariant(store):
    assert invariant_violations(store.doctors(), store.all_patients()) == []


@pytest.fixture
def store():
    return Store()


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
def service(store, notifier):
    svc = AssignmentService(store, notifier)
    svc.register_doctor(Doctor(id="D1", name="Dr. Heart", specialization=Specialization.CARDIOLOGY))
    svc.register_doctor(Doctor(id="D2", name="Dr. Brain", specialization=Specialization.NEUROLOGY))
    return svc


@pytest.fixture
def recorder(service):
    sub = RecordingSubscriber()
    service.subscribe(sub)
    return sub


@pytest.fixture
def admitted():
    return date(2024, 1, 1)
