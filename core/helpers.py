import atexit

import streamlit as st

from core.bootstrap import build_app
from core.config import get_settings
from core.logging_config import configure_logging


@st.cache_resource
def get_app():
    """One AppContext per Streamlit server process, saved on clean shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)
    app = build_app(settings)
    atexit.register(app.shutdown)
    return app


def doctor_label(doctor) -> str:
    return f"{doctor.name} ({doctor.specialization}) - {doctor.id}"


def assignment_label(patient, doctors_by_id) -> str:
    if patient.assigned_doctor_id is None:
        return "Unassigned"
    doctor = doctors_by_id.get(patient.assigned_doctor_id)
    return doctor.name if doctor else patient.assigned_doctor_id


# -----------------------------
# Sidebar helpers
# -----------------------------
def hide_default_sidebar_nav():
    """Hide Streamlit's default multi-page navigation for a cleaner custom menu."""
    st.markdown(
        """
        <style>
        /* Hide the auto-generated Pages section */
        [data-testid="stSidebarNav"] { display: none; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def hide_sidebar_completely():
    """Completely hide Streamlit's sidebar and the toggle control.

    Used on the doctor selection page where navigation should not be visible.
    """
    st.markdown(
        """
        <style>
        [data-testid="stSidebar"] { display: none !important; }
        [data-testid="collapsedControl"] { display: none !important; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_doctor_sidebar():
    """Render the doctor sidebar menu.

    Items:
    - Patient List
    - Register Patient
    - Doctor Roster
    - Switch Doctor
    """
    hide_default_sidebar_nav()
    with st.sidebar:
        st.markdown("### Doctor Menu")
        if st.button("Patient List", use_container_width=True):
            st.switch_page("pages/d_patient_list.py")
        if st.button("Register Patient", use_container_width=True):
            st.switch_page("pages/patient_registration.py")
        if st.button("Doctor Roster", use_container_width=True):
            st.switch_page("pages/doctor_roster.py")
        st.divider()
        if st.button("Switch Doctor", use_container_width=True):
            from core.session_manager import logout
            logout()
