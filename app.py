import streamlit as st

from core.errors import RosterError
from core.helpers import get_app, doctor_label, hide_sidebar_completely
from core.session_manager import init_session_state, login, clear_session


def go_to(page_path: str):
    st.switch_page(page_path)


def main():
    st.set_page_config(
        page_title="Doctor Roster",
        page_icon="🩺",
        layout="wide",
        initial_sidebar_state="collapsed",
    )

    init_session_state()

    try:
        app = get_app()
    except RosterError as e:
        st.error(f"Could not open the roster: {e}")
        return

    service = app.service
    doctors = service.doctors()

    cols = st.columns([4, 2])
    with cols[0]:
        st.title("Doctor Roster")
    with cols[1]:
        doctor_id = st.session_state.get("doctor_id")
        if doctor_id:
            st.info(f"Working as: **{service.get_doctor(doctor_id).name}**")
            if st.button("Switch doctor"):
                clear_session()
                st.rerun()

    st.write("---")

    if st.session_state.get("doctor_id") is None:
        hide_sidebar_completely()
        st.subheader("Choose the doctor you are working as")

        if not doctors:
            st.warning("No doctors on the roster yet.")
            return

        doctor = st.selectbox("Doctor", doctors, format_func=doctor_label)
        if st.button("Open my patient list"):
            login(service, doctor)
            go_to("pages/d_patient_list.py")
        return

    st.subheader("Quick navigation")
    c1, c2, c3 = st.columns(3)
    with c1:
        if st.button("Patient List"):
            go_to("pages/d_patient_list.py")
    with c2:
        if st.button("Register Patient"):
            go_to("pages/patient_registration.py")
    with c3:
        if st.button("Doctor Roster"):
            go_to("pages/doctor_roster.py")


if __name__ == "__main__":
    main()
