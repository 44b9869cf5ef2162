import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv
import streamlit as st

# Add the 'backend' directory to the path to allow for local imports
backend_path = Path(__file__).resolve().parent.parent / "backend"
sys.path.append(str(backend_path))

from main import run_background_check  # noqa: E402
from models import ProspectInfo, UserDetails  # noqa: E402
from services.presentation import NO_SUMMARY, build_sections, risk_badge_color, risk_label  # noqa: E402
from services.report_delivery import ReportDelivery  # noqa: E402
from utils.document_generator import download_file_name  # noqa: E402
from utils.helpers import load_app_settings  # noqa: E402

# --- Env & settings ---
load_dotenv()
SETTINGS = load_app_settings()
MAX_RETRIES = int(SETTINGS.get("max_retries", 5))

REQUIRED_FIELDS = {
    "first_name": "First Name",
    "last_name": "Last Name",
    "dob": "Date of Birth",
    "city": "City",
    "state": "State / Province",
}

# --- Session state ---
for key, default in (("report", None), ("delivery", None), ("retries", 0), ("prospect", None)):
    if key not in st.session_state:
        st.session_state[key] = default


def run_check(prospect: ProspectInfo):
    """Runs the pipeline; a new run fully replaces the previous report."""
    with st.spinner("Running background check... This can take a minute."):
        report = asyncio.run(run_background_check(prospect))
    st.session_state.report = report
    st.session_state.delivery = ReportDelivery(report)
    st.session_state.prospect = prospect


def render_badge(level: str):
    color = risk_badge_color(level)
    st.markdown(
        f"<span style='background:{color['fill']};color:{color['text']};"
        f"padding:4px 12px;border-radius:8px;font-weight:600'>{risk_label(level)}</span>",
        unsafe_allow_html=True,
    )


def render_not_found():
    st.info("We could not find any public records matching the details provided.")
    if st.session_state.retries < MAX_RETRIES:
        st.caption(f"Double-check the spelling and location, then try again ({st.session_state.retries}/{MAX_RETRIES} retries used).")
        if st.button("Retry search"):
            st.session_state.retries += 1
            run_check(st.session_state.prospect)
            st.rerun()
    else:
        st.warning(f"We still could not find a match. Please contact support at {SETTINGS.get('support_email')}.")


def render_delivery(report):
    delivery: ReportDelivery = st.session_state.delivery

    if delivery.pdf_bytes is None and delivery.state == "idle":
        delivery.generate()
    if delivery.pdf_bytes:
        st.download_button(
            "Download PDF Report",
            data=delivery.pdf_bytes,
            file_name=download_file_name(report),
            mime="application/pdf",
        )

    st.subheader("Share the report")
    if delivery.state == "generating":
        delivery.upload()
    if delivery.state == "error":
        st.error(delivery.error_message or "Report delivery failed.")
        if st.button("Retry upload"):
            delivery.retry()
            st.rerun()
        return
    if delivery.state != "uploaded":
        return

    with st.form("email_form"):
        recipient = st.text_input("Recipient Email", placeholder="e.g., jane@example.com")
        include_landlord = st.checkbox("Also send to my landlord")
        landlord_email = st.text_input("Landlord Email", placeholder="e.g., landlord@example.com")
        sent = st.form_submit_button("Send Report")

    if sent:
        recipients = [r for r in (recipient, landlord_email if include_landlord else "") if r]
        if not recipients:
            st.warning("Please enter at least one recipient email.")
            return
        prospect = report.prospect
        user = UserDetails(first_name=prospect.first_name, last_name=prospect.last_name, email=prospect.email)
        if delivery.send_email(user, recipients):
            st.success("✅ Report sent successfully!")
        else:
            st.error(f"Failed to send email. Error: {delivery.email_error}")


def render_report(report):
    person = report.person
    st.header(f"Results for {report.prospect.full_name}")
    st.caption(f"Report ID: {report.report_id}")
    render_badge(report.risk.level)

    st.subheader("Executive Summary")
    st.write(person.short_summary or NO_SUMMARY)
    if report.risk.reasons:
        with st.expander("Risk factors"):
            for reason in report.risk.reasons:
                st.markdown(f"- {reason}")

    for section in build_sections(person):
        st.subheader(section.title)
        for row in section.rows:
            if section.empty:
                st.caption(row.primary)
                continue
            line = f"**{row.primary}**"
            if row.meta:
                line += f"  \n{row.meta}"
            if row.secondary:
                line += f"  \n{row.secondary}"
            if row.link:
                line += f"  \n[{row.link}]({row.link})"
            st.markdown(line)

    render_delivery(report)


# --- Streamlit page config ---
st.set_page_config(page_title="Tenant Background Check", layout="wide")
st.title("🔎 Tenant Background Check")
st.subheader("Run a background check on a prospective tenant")

# --- Form ---
with st.form("input_form"):
    col1, col2 = st.columns(2)
    with col1:
        first_name = st.text_input("First Name *")
        other_names = st.text_input("Other Names", placeholder="Maiden name, nicknames...")
        dob = st.text_input("Date of Birth *", placeholder="YYYY-MM-DD")
        email = st.text_input("Email")
        city = st.text_input("City *")
        city2 = st.text_input("Previous City")
    with col2:
        last_name = st.text_input("Last Name *")
        phone = st.text_input("Phone")
        company = st.text_input("Current Company")
        school = st.text_input("School")
        state = st.text_input("State / Province *")
        state2 = st.text_input("Previous State / Province")
    social_media_profile = st.text_input("LinkedIn / Social Profile URL")

    submitted = st.form_submit_button("Run Background Check")

if submitted:
    values = {
        "first_name": first_name, "last_name": last_name, "other_names": other_names or None,
        "dob": dob, "email": email, "phone": phone, "city": city, "state": state,
        "city2": city2 or None, "state2": state2 or None, "company": company,
        "school": school, "social_media_profile": social_media_profile,
    }
    missing = [label for field, label in REQUIRED_FIELDS.items() if not (values[field] or "").strip()]
    if missing:
        st.warning(f"Please fill out all required fields: {', '.join(missing)}.")
    else:
        st.session_state.retries = 0
        run_check(ProspectInfo(**values))

report = st.session_state.report
if report is not None:
    if report.both_crashed:
        st.error("Both data providers are unavailable right now. Please try again later.")
    elif not report.found_result:
        render_not_found()
    else:
        render_report(report)
