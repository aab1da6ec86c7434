from .errors import (
    RosterError,
    DuplicateIdError,
    NotFoundError,
    ValidationError,
    PersistenceError,
)

__all__ = [
    "RosterError",
    "DuplicateIdError",
    "NotFoundError",
    "ValidationError",
    "PersistenceError",
]
