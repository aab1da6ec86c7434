"""Error taxonomy shared by the store, the service and the storage backends."""


class RosterError(Exception):
    """Base class for every failure surfaced to callers."""


class DuplicateIdError(RosterError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} with id {entity_id!r} already exists.")


class NotFoundError(RosterError, LookupError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} {entity_id!r} not found.")


class ValidationError(RosterError, ValueError):
    """Required input missing or malformed."""


class PersistenceError(RosterError):
    """Load or save failed; in-memory and on-disk state are left as they were."""
