import streamlit as st

from core.view_state import DoctorView


def init_session_state():
    """Ensure required session keys exist."""
    if "doctor_id" not in st.session_state:
        st.session_state.doctor_id = None
    if "doctor_view" not in st.session_state:
        st.session_state.doctor_view = None


def login(service, doctor):
    """Open this session's view for the chosen doctor and subscribe it."""
    init_session_state()
    previous = st.session_state.doctor_view
    if previous is not None:
        previous.close()
    st.session_state.doctor_id = doctor.id
    st.session_state.doctor_view = DoctorView(service, doctor.id).open()


def clear_session():
    """Unsubscribe the view and clear session without redirect."""
    view = st.session_state.get("doctor_view")
    if view is not None:
        view.close()
    st.session_state.pop("doctor_view", None)
    st.session_state.pop("doctor_id", None)


def logout():
    """Clear session and redirect to main app page."""
    clear_session()
    st.switch_page("app.py")


def require_doctor() -> DoctorView:
    """Return the session's doctor view; send sessions without one to app.py."""
    init_session_state()
    if st.session_state.doctor_view is None:
        st.warning("Please choose a doctor to access this page.")
        st.switch_page("app.py")
    return st.session_state.doctor_view
