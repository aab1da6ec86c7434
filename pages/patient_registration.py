import streamlit as st

from core.errors import RosterError
from core.helpers import get_app, render_doctor_sidebar, assignment_label
from core.session_manager import require_doctor
from core.time_utils import today
from models.specialization import Specialization

DERIVE = "Derive from diagnosis"

# Page config is set globally in app.py

require_doctor()
render_doctor_sidebar()

service = get_app().service

st.title("Register New Patient")

# Step 1: Search existing patients
st.subheader("Step 1: Check if Patient Exists")
search_name = st.text_input("Search patient name:", placeholder="Type to search...")

if search_name.strip():
    q = search_name.lower()
    matches = [p for p in service.all_patients() if q in p.name.lower()][:10]
    if matches:
        st.warning(f"Found {len(matches)} existing patient(s) with similar names:")
        for p in matches:
            st.write(f"**{p.name}** - ID: {p.id}, Diagnosis: {p.diagnosis}, Admitted: {p.admission_date.isoformat()}")
    else:
        st.success("No existing patients found. You can register as new.")

st.write("---")

# Step 2: Register
st.subheader("Step 2: Register New Patient")

with st.form("patient_form"):
    name = st.text_input("Full Name", placeholder="John Doe")
    diagnosis = st.text_input("Diagnosis (optional)", placeholder="Leave empty if undiagnosed")
    specialization = st.selectbox(
        "Required specialization",
        [DERIVE] + list(Specialization),
        format_func=str,
    )
    admission_date = st.date_input("Admission date", value=today())
    submitted = st.form_submit_button("Create New Patient")

    if submitted:
        try:
            patient = service.add_patient(
                name=name,
                admission_date=admission_date,
                diagnosis=diagnosis,
                required_specialization=None if specialization == DERIVE else specialization,
            )
            doctors_by_id = {d.id: d for d in service.doctors()}
            st.success(f"Patient created! ID: {patient.id} • Doctor: {assignment_label(patient, doctors_by_id)}")
        except RosterError as e:
            st.error(str(e))
