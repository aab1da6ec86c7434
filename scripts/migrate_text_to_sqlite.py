# scripts/migrate_text_to_sqlite.py

import sys

from core.config import get_settings
from core.errors import PersistenceError
from core.storage import SqliteBackend, TextFileBackend
from services.store import Store


def main():
    settings = get_settings()
    source = TextFileBackend(settings.data_dir, separator=settings.field_separator)
    target = SqliteBackend(settings.database_url)

    if not source.exists():
        print(f"No text roster found in {settings.data_dir}")
        return 1

    store = Store()
    try:
        store.load(source)
        store.save(target)
    except PersistenceError as e:
        print(f"Migration failed: {e}")
        return 1

    print(f"Copied {len(store.doctors())} doctors and {len(store.all_patients())} patients to {settings.database_url}")
    print("Set ROSTER_BACKEND=sqlite to use it.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
