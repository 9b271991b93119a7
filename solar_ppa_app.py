import streamlit as st
import boto3
import logging
from botocore.exceptions import BotoCoreError, ClientError
from solar_ppa_engine.geo_lookup import GeoLookupAdapter, NOMINATIM_USER_AGENT_HOLDER
from solar_ppa_engine.report_delivery import SENDER_EMAIL_HOLDER
from solar_ppa_engine.utils import MANDATORY_COMPLIANCE_THRESHOLD_PCT, generate_progress_bar_markdown
from solar_ppa_engine.wizard_state import WizardStateMachine
from solar_ppa_engine.ui_location_screen import display_location_screen
from solar_ppa_engine.ui_assessment_screens import (
    display_site_info_screen,
    display_solar_potential_screen,
    display_savings_screen,
    display_compliance_screen
)
from solar_ppa_engine.ui_results_screen import display_results_screen

st.set_page_config(page_title="☀️ NigeriaSolar PPA Validator", layout="wide")

# --- Logging for the whole app ---
LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s] - %(message)s'
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
app_logger = logging.getLogger('solar_ppa_app')

SCREEN_RENDERERS = {
    "location": display_location_screen,
    "site_info": display_site_info_screen,
    "solar_potential": display_solar_potential_screen,
    "savings": display_savings_screen,
    "compliance": display_compliance_screen,
    "results": display_results_screen,
}
SESSION_SERVICE_KEYS = ['wizard', 'geo_adapter', 'ses_client']


# --- Deployment settings from secrets.toml (all optional) ---
DEPLOYMENT_SETTINGS = {
    "COMPLIANCE_GATE_THRESHOLD_PCT": MANDATORY_COMPLIANCE_THRESHOLD_PCT,
    "NOMINATIM_USER_AGENT": None,
    "AWS_REGION": None,
    "REPORT_SENDER_EMAIL": None,
}
try:
    for setting_name in DEPLOYMENT_SETTINGS:
        secret_value = st.secrets.get(setting_name)
        if secret_value is not None:
            DEPLOYMENT_SETTINGS[setting_name] = secret_value
except Exception as e:
    app_logger.warning(f"secrets.toml could not be read, using defaults: {e}")
    if 'secrets_error_shown' not in st.session_state:
        st.toast("No secrets.toml found. Running with default settings; report e-mail is disabled.", icon="⚠️")
        st.session_state.secrets_error_shown = True

try:
    COMPLIANCE_GATE_THRESHOLD_PCT = float(DEPLOYMENT_SETTINGS["COMPLIANCE_GATE_THRESHOLD_PCT"])
except (TypeError, ValueError):
    app_logger.warning("COMPLIANCE_GATE_THRESHOLD_PCT is not a number, using the default.")
    COMPLIANCE_GATE_THRESHOLD_PCT = MANDATORY_COMPLIANCE_THRESHOLD_PCT

if DEPLOYMENT_SETTINGS["NOMINATIM_USER_AGENT"]:
    NOMINATIM_USER_AGENT_HOLDER["user_agent"] = DEPLOYMENT_SETTINGS["NOMINATIM_USER_AGENT"]
SENDER_EMAIL_HOLDER["address"] = DEPLOYMENT_SETTINGS["REPORT_SENDER_EMAIL"]

# --- Session State Initialization ---
if 'wizard' not in st.session_state:
    st.session_state.wizard = WizardStateMachine(compliance_threshold_pct=COMPLIANCE_GATE_THRESHOLD_PCT)
if 'geo_adapter' not in st.session_state:
    st.session_state.geo_adapter = GeoLookupAdapter()
if 'ses_client' not in st.session_state:
    st.session_state.ses_client = None


def start_over():
    """Clears the assessment and every screen's widget state, keeping the service clients."""
    for key in list(st.session_state.keys()):
        if key not in SESSION_SERVICE_KEYS:
            del st.session_state[key]
    st.session_state.wizard.reset()


def init_ses_client():
    if not DEPLOYMENT_SETTINGS["AWS_REGION"]:
        return
    try:
        st.session_state.ses_client = boto3.client(service_name='ses', region_name=DEPLOYMENT_SETTINGS["AWS_REGION"])
        logging.info("SES client initialized successfully on demand.")
    except (BotoCoreError, ClientError) as e:
        logging.critical(f"Could not initialize AWS SES client: {e}")
        st.session_state.ses_client = None
        st.error("Failed to initialize the e-mail service. Report e-mail will be unavailable.", icon="🚨")


def display_navigation(wizard):
    """Previous/Next buttons. Next stays disabled until the current step's gate opens."""
    st.markdown("---")
    nav_prev, nav_gate, nav_next = st.columns([1, 3, 1])
    with nav_prev:
        if st.button("⬅️ Previous", key="nav_prev", disabled=wizard.current == 0, width="stretch"):
            wizard.retreat()
            st.rerun()
    with nav_gate:
        gate_message = wizard.gate_message()
        if gate_message:
            st.caption(f"🔒 {gate_message}")
    with nav_next:
        if not wizard.is_terminal:
            if st.button("Next ➡️", key="nav_next", type="primary", disabled=not wizard.can_advance(),
                         width="stretch"):
                if wizard.advance():
                    st.rerun()


# ====== Main App Router for the 6-Step Assessment Wizard ======
if __name__ == "__main__":
    wizard = st.session_state.wizard

    # Persistent Sidebar
    with st.sidebar:
        st.subheader("☀️ NigeriaSolar PPA Validator")
        st.caption("Assess whether a Nigerian site is viable for a solar Power Purchase Agreement.")
        for step in wizard.steps:
            marker = "✅" if step.index < wizard.current else ("👉" if step.index == wizard.current else "▫️")
            st.write(f"{marker} {step.title}")
        st.markdown("---")
        if st.button("Start Over", icon=":material/restart_alt:", width="stretch", key="sidebar_start_over"):
            start_over()
            st.rerun()

    st.title("☀️ NigeriaSolar PPA Validator")
    st.progress(wizard.progress_pct / 100, text=f"Step {wizard.current + 1} of {len(wizard.steps)}")
    st.markdown(generate_progress_bar_markdown(wizard.steps, wizard.current), unsafe_allow_html=True)

    step = wizard.current_step()
    st.header(step.title)
    st.markdown(step.description)

    # --- Initialize SES client only when the report can actually be sent ---
    if step.key == "results" and st.session_state.ses_client is None:
        init_ses_client()

    SCREEN_RENDERERS[step.key](wizard)
    display_navigation(wizard)
