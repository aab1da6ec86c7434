# core/setup_db.py

from core.bootstrap import build_app
from core.config import get_settings
from core.logging_config import configure_logging


def main():
    settings = get_settings()
    configure_logging(settings.log_level)

    print(f"Initialising roster storage ({settings.backend})...")

    # Loads existing data, or seeds the doctor roster and writes it out
    app = build_app(settings)
    app.save()

    print(f"Roster ready: {len(app.service.doctors())} doctors, {len(app.service.all_patients())} patients.")


if __name__ == "__main__":
    main()
