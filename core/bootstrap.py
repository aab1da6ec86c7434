"""
Application wiring.

build_app() constructs the single Store, Notifier and AssignmentService for a
process, loads persisted data (or seeds the doctor roster on first run) and
hands them out as one AppContext. Nothing here is global; entrypoints decide
how long the context lives.
"""

import logging
import pathlib
from dataclasses import dataclass
from typing import List, Optional, Tuple

from core.config import Settings, get_settings
from core.errors import PersistenceError, ValidationError
from core.storage import StorageBackend, open_backend
from models.specialization import Specialization
from services.assignment_service import AssignmentService
from services.notifier import ChangeNotifier
from services.store import Store

logger = logging.getLogger(__name__)

DEFAULT_ROSTER: List[Tuple[str, Specialization]] = [
    ("Dr. Amelia Hart", Specialization.CARDIOLOGY),
    ("Dr. Ravi Menon", Specialization.NEUROLOGY),
    ("Dr. Sofia Lindqvist", Specialization.GENERAL_MEDICINE),
    ("Dr. Kwame Boateng", Specialization.ONCOLOGY),
    ("Dr. Elena Petrova", Specialization.ORTHOPEDICS),
]


def read_roster_file(path) -> List[Tuple[str, Specialization]]:
    """Parse a seed roster: one ``name|specialization`` per line, ``#`` comments allowed."""
    path = pathlib.Path(path)
    entries = []
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise PersistenceError(f"Could not read roster file {path}: {e}") from e

    for number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        name, sep, specialization = line.rpartition("|")
        if not sep or not name.strip():
            raise ValidationError(f"{path.name} line {number}: expected 'name|specialization'")
        entries.append((name.strip(), Specialization.parse(specialization)))
    return entries


class AutosaveSubscriber:
    """Persist the roster after every change.

    A failed save raises; the notifier logs it and keeps delivering to others.
    """

    def __init__(self, service: AssignmentService, backend: StorageBackend):
        self.service = service
        self.backend = backend

    def on_data_changed(self) -> None:
        self.service.save(self.backend)


@dataclass
class AppContext:
    settings: Settings
    store: Store
    notifier: ChangeNotifier
    service: AssignmentService
    backend: StorageBackend
    # The notifier holds subscribers weakly
    autosave: Optional[AutosaveSubscriber] = None

    def save(self) -> None:
        self.service.save(self.backend)

    def shutdown(self) -> None:
        """Clean-shutdown save; errors are logged since the process is exiting."""
        try:
            self.save()
        except PersistenceError:
            logger.exception("Roster could not be saved on shutdown; previous files kept")


def seed_roster(service: AssignmentService, settings: Settings) -> None:
    roster = read_roster_file(settings.roster_file) if settings.roster_file else DEFAULT_ROSTER
    for name, specialization in roster:
        service.register_doctor_named(name, specialization)
    logger.info("Seeded %d doctors", len(roster))


def build_app(settings: Optional[Settings] = None) -> AppContext:
    settings = settings or get_settings()
    backend = open_backend(settings)

    store = Store()
    notifier = ChangeNotifier()
    service = AssignmentService(store, notifier, cascade_reassign=settings.cascade_reassign)

    if backend.exists():
        store.load(backend)
        service.rebalance()
    else:
        logger.info("No saved roster at %r; starting fresh", backend)
        seed_roster(service, settings)
        service.save(backend)

    autosave = None
    if settings.autosave:
        autosave = AutosaveSubscriber(service, backend)
        notifier.subscribe(autosave)

    return AppContext(
        settings=settings,
        store=store,
        notifier=notifier,
        service=service,
        backend=backend,
        autosave=autosave,
    )
