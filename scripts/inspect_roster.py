# scripts/inspect_roster.py

from core.config import get_settings
from core.storage import open_backend
from services.assignment_policy import invariant_violations
from services.store import Store


def main():
    settings = get_settings()
    backend = open_backend(settings)
    print("Storage:", backend, "exists:", backend.exists())
    if not backend.exists():
        return

    store = Store()
    store.load(backend)

    counts = store.patient_counts()
    print("\nDoctors:")
    for d in store.doctors():
        print(f"  {d.id}  {d.name:<28} {d.specialization.value:<16} {counts[d.id]} patient(s)")

    print("\nPatients:")
    for p in store.all_patients():
        print(
            f"  {p.id}  {p.name:<24} {p.diagnosis:<20} "
            f"{p.required_specialization.value:<16} {p.assigned_doctor_id or 'unassigned':<10} {p.admission_date}"
        )

    broken = invariant_violations(store.doctors(), store.all_patients())
    print("\nAssignment invariant:", "OK" if not broken else f"violated by {', '.join(broken)}")


if __name__ == "__main__":
    main()
