import streamlit as st
import pandas as pd

import atexit
import sys

from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from app.backend import Backend, build_backend
from app.booking import PAYMENT_METHODS, VISIT_TYPES, BookingError, BookingForm, book_appointment
from app.forms import (
    LoginForm,
    RegisterForm,
    errors_by_field,
    friendly_error,
    validate,
)
from app.history import (
    SAMPLE_DOCUMENTS,
    PickedFile,
    add_picked_files,
    format_file_size,
    load_medical_history,
    remove_file,
    save_documents,
)
from auth.auth_service import AuthGateway
from auth.identity import AuthError
from auth.session import SessionStore
from config.settings import configure_logging, get_settings
from db.entities import ROLES
from db.patient_service import PatientDataGateway

# --------------------
# Page config
# --------------------
st.set_page_config(
    page_title="Clinic Patient Portal",
    page_icon="🩺",
    layout="centered",
)

st.markdown(
    """
<style>
.block-container {
    max-width: 860px;
    padding-top: 2rem;
    padding-bottom: 3rem;
}
h1, h2, h3 { letter-spacing: -0.2px; }
div[data-testid="stVerticalBlock"] { gap: 0.6rem; }
</style>
""",
    unsafe_allow_html=True,
)

SERVICES = [
    ("General Consultation", "Comprehensive health checkups and consultations"),
    ("Cardiology", "Heart health and cardiovascular care"),
    ("Pharmacy", "Prescription medications and health products"),
    ("First Aid", "Emergency medical care and treatment"),
]


# --------------------
# Backend + per-session state
# --------------------
@st.cache_resource
def get_backend() -> Backend:
    configure_logging()
    backend = build_backend(get_settings())
    atexit.register(backend.close)
    return backend


backend = get_backend()

if "session_store" not in st.session_state:
    provider = backend.new_identity_provider()
    st.session_state.auth = AuthGateway(provider, backend.store)
    st.session_state.session_store = SessionStore(provider, backend.store)
    st.session_state.patients = PatientDataGateway(backend.store)
    st.session_state.screen = "login"
    st.session_state.uploaded_files = []
    st.session_state.uploader_round = 0
    st.session_state.touched = set()

auth: AuthGateway = st.session_state.auth
session: SessionStore = st.session_state.session_store
patients: PatientDataGateway = st.session_state.patients


def go(screen: str) -> None:
    st.session_state.screen = screen
    st.session_state.touched = set()
    st.session_state.pop("history", None)
    st.rerun()


def _touch(key: str) -> None:
    st.session_state.touched.add(key)


def text_field(label, field, prefix, errors, **kwargs):
    key = f"{prefix}_{field}"
    value = st.text_input(label, key=key, on_change=_touch, args=(key,), **kwargs)
    if key in st.session_state.touched and field in errors:
        st.caption(f":red[{errors[field]}]")
    return value


# =========================
# LOGIN
# =========================
def render_login():
    st.title("Sign In")

    record = {
        "email": st.session_state.get("login_email", ""),
        "password": st.session_state.get("login_password", ""),
    }
    errors = errors_by_field(validate(LoginForm, record))

    email = text_field("Your email", "email", "login", errors, placeholder="name@gmail.com")
    password = text_field("Your password", "password", "login", errors, type="password", placeholder="Password")

    message = st.session_state.get("login_message")
    if message:
        st.error(message)

    if st.button("Sign In", type="primary", disabled=bool(errors), use_container_width=True):
        st.session_state.login_message = None
        try:
            with st.spinner("Signing in..."):
                auth.sign_in(email, password)
        except AuthError as e:
            friendly = friendly_error(e.code, "login")
            st.session_state.login_message = friendly
            st.toast(friendly, icon="❌")
            st.rerun()
        else:
            st.toast("User logged in successfully", icon="✅")
            if session.loading and not session.role:
                st.session_state.login_message = "Loading..."
                st.rerun()
            elif session.role in ROLES:
                go("home")

    if st.button("Don't have an account? Sign Up"):
        go("register")


# =========================
# REGISTER
# =========================
def render_register():
    st.title("Sign Up")

    fields = ["name", "email", "password", "confirm_password", "phone", "dob", "gender"]
    record = {f: st.session_state.get(f"register_{f}") for f in fields}
    errors = errors_by_field(validate(RegisterForm, record))

    name = text_field("Name", "name", "register", errors, placeholder="Your Name")
    email = text_field("Email", "email", "register", errors, placeholder="name@gmail.com")
    password = text_field("Password", "password", "register", errors, type="password")
    text_field("Confirm Password", "confirm_password", "register", errors, type="password")
    phone = text_field("Phone", "phone", "register", errors, placeholder="01012345678")
    dob = text_field("Date of Birth", "dob", "register", errors, placeholder="DD-MM-YYYY")

    st.selectbox(
        "Gender",
        ["male", "female"],
        index=None,
        key="register_gender",
        on_change=_touch,
        args=("register_gender",),
    )
    if "register_gender" in st.session_state.touched and "gender" in errors:
        st.caption(f":red[{errors['gender']}]")

    message = st.session_state.get("register_message")
    if message:
        st.error(message)

    if st.button("Sign Up", type="primary", disabled=bool(errors), use_container_width=True):
        st.session_state.register_message = None
        form = RegisterForm.model_validate(record)
        try:
            with st.spinner("Creating your account..."):
                auth.sign_up(email, password, form.profile_fields())
        except AuthError as e:
            friendly = friendly_error(e.code, "register")
            st.session_state.register_message = friendly
            st.toast(friendly, icon="❌")
            st.rerun()
        except Exception:
            friendly = friendly_error(None, "register")
            st.session_state.register_message = friendly
            st.toast(friendly, icon="❌")
            st.rerun()
        else:
            st.toast("Registration successful!", icon="✅")
            go("login")

    if st.button("Already have an account? Sign In"):
        go("login")


# =========================
# HOME
# =========================
def render_home():
    settings = get_settings()
    st.title("Your Health, Our Priority")
    st.write(
        f"Welcome to {settings.CLINIC_NAME}, where we provide personalized healthcare. "
        "Book your appointment and take the first step towards a healthier you."
    )

    st.subheader("Our Services")
    for title, description in SERVICES:
        with st.container(border=True):
            st.markdown(f"**{title}**")
            st.caption(description)

    st.subheader("Meet Dr. Bennett")
    with st.container(border=True):
        st.markdown("**Dr. Bennett** · General Practitioner")
        st.write(
            "Dr. Bennett is a board-certified orthopedic surgeon specializing in sports medicine "
            "and joint replacement. With over 15 years of experience, Dr. Bennett is dedicated "
            "to providing compassionate care and helping patients regain their mobility and live "
            "pain-free. Welcome to our practice, where your health and well-being are our top priority."
        )

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Book Appointment", type="primary", use_container_width=True):
            go("booking")
    with col2:
        if st.button("Medical History", use_container_width=True):
            go("history")


# =========================
# BOOKING
# =========================
def render_booking():
    st.title("Book Appointment")

    with st.form("booking_form"):
        appointment_date = st.date_input("Date")
        appointment_time = st.time_input("Time", step=1800)
        visit_type = st.selectbox("Visit type", VISIT_TYPES)
        reason = st.text_area("Reason for visit")
        payment_method = st.selectbox("Payment method", PAYMENT_METHODS)
        payment_amount = st.number_input("Payment amount", min_value=0.0, value=0.0, step=50.0)
        submitted = st.form_submit_button("Book", type="primary")

    if submitted:
        try:
            form = BookingForm(
                appointment_date=appointment_date,
                appointment_time=appointment_time,
                reason_for_visit=reason,
                visit_type=visit_type,
                payment_method=payment_method,
                payment_amount=payment_amount,
            )
        except ValidationError as e:
            for err in e.errors():
                st.error(f"{err['loc'][0]}: {err['msg']}")
        else:
            try:
                with st.spinner("Booking..."):
                    book_appointment(patients, session.identity, form)
            except BookingError as e:
                st.error(str(e))
            except Exception:
                st.error("Failed to book appointment. Please try again.")
            else:
                st.success("Appointment booked. Status: pending")

    if st.button("Back to Home"):
        go("home")


# =========================
# MEDICAL HISTORY
# =========================
def render_history():
    st.title("Medical History")
    st.caption(
        "Review your complete medical history, including appointments, diagnoses, "
        "treatments, and uploaded documents."
    )

    if "history" not in st.session_state:
        with st.spinner("Loading medical history..."):
            try:
                st.session_state.history = load_medical_history(patients, session.identity.uid)
            except Exception:
                st.session_state.history = None
                st.toast("Failed to load medical history", icon="❌")

    history = st.session_state.history
    if history is None:
        st.error("Failed to load medical history")
        history_appointments, history_diagnoses, history_treatments = [], [], []
    else:
        history_appointments = history.appointments
        history_diagnoses = history.diagnoses
        history_treatments = history.treatments

    st.subheader("Appointments")
    if history_appointments:
        rows = []
        for a in history_appointments:
            rows.append({
                "Date": a.start_time.astimezone().strftime("%m/%d/%Y") if a.start_time else "Date not available",
                "Visit Type": a.visit_type,
                "Reason": a.reason_for_visit,
                "Status": a.status,
                "Payment": f"{a.payment_method} - ${a.payment_amount}",
            })
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    else:
        st.info("No appointments found")

    st.subheader("Diagnoses")
    if history_diagnoses:
        for d in history_diagnoses:
            with st.container(border=True):
                st.markdown(f"**{d.prescription}**")
                st.write(d.instructions)
    else:
        st.info("No diagnoses found")

    st.subheader("Medications")
    if history_treatments:
        for t in history_treatments:
            with st.expander(t.medication_name or "Medication"):
                st.write(f"Diagnosis: {t.diagnose_name}")
                st.write(f"Dosage: {t.dosage}")
                st.write(f"Frequency: {t.frequency}")
                st.write(f"Refills: {t.refills}")
                if t.notes:
                    st.write(f"Notes: {t.notes}")
    else:
        st.info("No medications found")

    st.subheader("Documents")
    st.dataframe(
        pd.DataFrame(SAMPLE_DOCUMENTS).rename(columns={"name": "Name", "date": "Date", "type": "Type"}),
        use_container_width=True,
        hide_index=True,
    )

    st.subheader("Upload Documents")
    st.caption("Upload medical documents, lab reports, or other health-related files.")
    picked = st.file_uploader(
        "Choose Files",
        accept_multiple_files=True,
        key=f"uploader_{st.session_state.uploader_round}",
    )
    if picked and st.button("Add selected files"):
        descriptors = [
            PickedFile(name=f.name, size=f.size, mime_type=f.type, uri=getattr(f, "file_id", None))
            for f in picked
        ]
        st.session_state.uploaded_files = add_picked_files(st.session_state.uploaded_files, descriptors)
        st.session_state.uploader_round += 1
        st.toast(f"{len(descriptors)} file(s) uploaded successfully", icon="✅")
        st.rerun()

    files = st.session_state.uploaded_files
    if files:
        st.markdown("**Recently Uploaded**")
        for f in files:
            col1, col2 = st.columns([6, 1])
            with col1:
                st.markdown(f"**{f.name}**")
                st.caption(f"{format_file_size(f.size)} • Uploaded {f.upload_date}")
            with col2:
                if st.button("✕", key=f"remove_{f.id}"):
                    st.session_state.uploaded_files = remove_file(files, f.id)
                    st.rerun()
        if st.button("Save All Documents", type="primary"):
            save_documents(files)

    if st.button("Back to Home"):
        go("home")


# =========================
# ROUTING
# =========================
if session.signed_in:
    with st.sidebar:
        st.markdown(f"Signed in as **{session.identity.display_name or session.identity.email}**")
        st.caption(f"Role: {session.role}")
        if st.button("Sign Out"):
            try:
                auth.sign_out()
            except AuthError as e:
                st.error(friendly_error(e.code, "login"))
            else:
                st.session_state.uploaded_files = []
                go("login")

screen = st.session_state.screen
if not session.signed_in and screen not in ("login", "register"):
    screen = "login"

if screen == "register":
    render_register()
elif screen == "home":
    render_home()
elif screen == "booking":
    render_booking()
elif screen == "history":
    render_history()
else:
    render_login()
