"""
This is the main entry point for the Serenity admin dashboard Streamlit application.

This script handles the following key responsibilities:
- Sets the overall page configuration and logging for the app.
- Initializes the main `DashboardService`, which owns the Firestore connection.
- Keeps one `AdminAuthService` per browser session in the session state.
- Routes the user to the sign-in page or the main app based on whether an
  authorized admin is signed in.
"""
# serenity_admin/main.py

import logging

import streamlit as st

import gui
from serenity_admin.auth import AdminAuthService
from serenity_admin.config import load_config
from serenity_admin.dashboard import DashboardService
from serenity_admin.identity import FirebaseIdentity
from serenity_admin.store import connect_firestore

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# Set the basic configuration for the Streamlit page.
st.set_page_config(
    page_title="Serenity Admin",
    layout="wide"
)


@st.cache_resource
def get_config():
    """Reads the dashboard configuration once per server process."""
    secrets = st.secrets if st.secrets.load_if_toml_exists() else {}
    return load_config(secrets)


# Service Initialization
@st.cache_resource
def get_dashboard_service(_config):
    """
    Initializes and returns the main DashboardService instance.

    This function is decorated with `@st.cache_resource` so that the Firestore
    client is created only once and shared across reruns and sessions.

    Returns:
        DashboardService: The singleton instance of the main application service.
    """
    store = connect_firestore(_config.firebase_credentials)
    return DashboardService(store, _config)


try:
    config = get_config()
    service = get_dashboard_service(config)
except (ValueError, RuntimeError) as e:
    logger.error("Dashboard failed to start: %s", e)
    st.error(f"The dashboard is not configured correctly: {e}")
    st.stop()

# Session State Management
# Each browser session gets its own identity so sign-ins never leak between admins.
if 'auth_service' not in st.session_state:
    identity = FirebaseIdentity(config.firebase_web_api_key)
    identity.on_auth_state_changed(gui.clear_cached_data)
    st.session_state.auth_service = AdminAuthService(identity, config)
auth_service = st.session_state.auth_service

# Main App Router
if auth_service.current_admin:
    gui.show_main_app(service, auth_service)
else:
    gui.show_login_form(auth_service, google_enabled=config.google_sign_in)
