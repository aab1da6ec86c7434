import streamlit as st

from core.errors import RosterError
from core.helpers import get_app, render_doctor_sidebar
from core.session_manager import require_doctor
from models.specialization import Specialization


def main():
    require_doctor()
    render_doctor_sidebar()

    app = get_app()
    service = app.service

    st.title("Doctor Roster")

    counts = service.patient_counts()
    specializations = list(Specialization)

    for doctor in service.doctors():
        col1, col2, col3 = st.columns([3, 2, 1])
        with col1:
            st.write(f"**{doctor.name}** — {doctor.id}")
            st.caption(f"{doctor.specialization} • {counts.get(doctor.id, 0)} patient(s)")
        with col2:
            choice = st.selectbox(
                "Specialization",
                specializations,
                index=specializations.index(doctor.specialization),
                format_func=str,
                key=f"spec_{doctor.id}",
                label_visibility="collapsed",
            )
        with col3:
            if st.button("Update", key=f"update_{doctor.id}", disabled=choice == doctor.specialization):
                try:
                    service.update_doctor_specialization(doctor.id, choice)
                    st.rerun()
                except RosterError as e:
                    st.error(str(e))

    unassigned = service.unassigned_patients()
    st.divider()
    st.metric("Unassigned patients", len(unassigned))
    if unassigned and st.button("Rebalance unassigned patients"):
        moved = service.rebalance()
        st.success(f"{len(moved)} patient(s) assigned.")

    st.divider()
    st.subheader("Register Doctor")
    with st.form("doctor_form"):
        name = st.text_input("Full Name", placeholder="Dr. Jane Doe")
        specialization = st.selectbox("Specialization", specializations, format_func=str)
        if st.form_submit_button("Add Doctor"):
            try:
                doctor = service.register_doctor_named(name, specialization)
                st.success(f"Doctor registered with ID {doctor.id}.")
            except RosterError as e:
                st.error(str(e))

    st.divider()
    if st.button("Save roster now"):
        try:
            app.save()
            st.success("Roster saved.")
        except RosterError as e:
            st.error(str(e))



if __name__ == "__main__":
    main()
