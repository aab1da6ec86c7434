import streamlit as st

from core.errors import RosterError
from core.helpers import get_app, render_doctor_sidebar, assignment_label
from core.session_manager import require_doctor
from models.specialization import Specialization

DERIVE = "Derive from diagnosis"


@st.fragment(run_every=2)
def watch_for_changes(view):
    # Another session changed the roster; re-render with fresh rows
    if view.stale:
        st.rerun()


def main():
    view = require_doctor()
    render_doctor_sidebar()

    service = get_app().service
    doctor = service.get_doctor(view.doctor_id)
    doctors_by_id = {d.id: d for d in service.doctors()}

    st.title("Patient List")
    st.caption(f"{doctor.name} • {doctor.specialization}")

    view.show_mine = st.toggle("Show only my patients", value=view.show_mine)

    q = st.text_input("Search", placeholder="e.g., Jane or P003").strip().lower()

    patients = view.rows()
    if q:
        patients = [p for p in patients if q in p.name.lower() or q in p.id.lower()]

    if not patients:
        st.info("No patients assigned to you." if view.show_mine else "No patients found.")
    else:
        specializations = list(Specialization)
        for p in patients:
            with st.container():
                st.write(f"**{p.name}**  —  {p.id}")
                st.write(
                    f"Diagnosis: {p.diagnosis} • Needs: {p.required_specialization} • "
                    f"Doctor: {assignment_label(p, doctors_by_id)} • Admitted: {p.admission_date.isoformat()}"
                )

                with st.expander(f"Update diagnosis ({p.id})"):
                    with st.form(f"diagnosis_{p.id}"):
                        diagnosis = st.text_input("Diagnosis", value=p.diagnosis)
                        specialization = st.selectbox(
                            "Required specialization",
                            [DERIVE] + specializations,
                            index=specializations.index(p.required_specialization) + 1,
                            format_func=str,
                        )
                        if st.form_submit_button("Save diagnosis"):
                            chosen = None if specialization == DERIVE else specialization
                            try:
                                updated = service.update_patient_diagnosis(p.id, diagnosis, chosen)
                                st.success(f"{updated.name}: {assignment_label(updated, doctors_by_id)}")
                                st.rerun()
                            except RosterError as e:
                                st.error(str(e))
            st.markdown("---")

    watch_for_changes(view)


if __name__ == "__main__":
    main()
