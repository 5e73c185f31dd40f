"""
This module builds the dashboard's runtime configuration.

Values come from Streamlit secrets (`.streamlit/secrets.toml`) with environment
variables as a fallback. The resulting `DashboardConfig` is passed explicitly
to the services that need it, most importantly the admin allow-list used by
the authentication gate.
"""
# serenity_admin/config.py

import os

DEFAULT_MAX_WORKERS = 8
JOURNAL_FALLBACK_COLLECTION = "journals"


class DashboardConfig:
    """Settings for one running instance of the admin dashboard.

    Attributes:
        admin_emails (frozenset): Lower-cased emails allowed into the dashboard.
        firebase_credentials (str): Service-account JSON or a path to it.
        firebase_web_api_key (str): Web API key for password sign-in.
        max_workers (int): Upper bound on concurrent subcollection fetches.
        journal_fallback_collection (str): Alternate journal collection name.
        google_sign_in (bool): Whether Streamlit's `[auth.google]` provider is configured.
    """
    def __init__(self, admin_emails=(), firebase_credentials="", firebase_web_api_key="",
                 max_workers=DEFAULT_MAX_WORKERS, journal_fallback_collection=JOURNAL_FALLBACK_COLLECTION,
                 google_sign_in=False):
        self.admin_emails = frozenset(_normalize_email(e) for e in admin_emails if _normalize_email(e))
        self.firebase_credentials = firebase_credentials or ""
        self.firebase_web_api_key = firebase_web_api_key or ""
        if int(max_workers) < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = int(max_workers)
        self.journal_fallback_collection = journal_fallback_collection
        self.google_sign_in = bool(google_sign_in)

    def is_admin(self, email) -> bool:
        """Checks whether an email is on the admin allow-list (case-insensitive)."""
        if not email:
            return False
        return _normalize_email(email) in self.admin_emails


def _normalize_email(email) -> str:
    return (email or "").strip().lower()


def _split_emails(value):
    if not value:
        return []
    if isinstance(value, str):
        return [part for part in value.split(',')]
    return list(value)


def load_config(secrets=None, environ=None) -> DashboardConfig:
    """Builds a `DashboardConfig` from secrets with environment fallbacks.

    Args:
        secrets (Mapping, optional): Usually `st.secrets`. Keys: `admin_emails`,
            `firebase_credentials`, `firebase_web_api_key`, `max_workers`,
            and Streamlit's own `[auth.google]` section.
        environ (Mapping, optional): Defaults to `os.environ`.

    Returns:
        DashboardConfig: The assembled configuration.

    Raises:
        ValueError: If `max_workers` is not a positive integer.
    """
    secrets = secrets if secrets is not None else {}
    environ = environ if environ is not None else os.environ

    def _lookup(secret_key, env_key, default=None):
        value = secrets.get(secret_key) if hasattr(secrets, 'get') else None
        if value in (None, ""):
            value = environ.get(env_key, default)
        return value

    raw_workers = _lookup("max_workers", "SERENITY_MAX_WORKERS", DEFAULT_MAX_WORKERS)
    try:
        max_workers = int(raw_workers)
    except (TypeError, ValueError):
        raise ValueError(f"max_workers must be an integer, got {raw_workers!r}")

    return DashboardConfig(
        admin_emails=_split_emails(_lookup("admin_emails", "SERENITY_ADMIN_EMAILS")),
        firebase_credentials=_lookup("firebase_credentials", "FIREBASE_ADMIN_JSON", ""),
        firebase_web_api_key=_lookup("firebase_web_api_key", "FIREBASE_WEB_API_KEY", ""),
        max_workers=max_workers,
        google_sign_in=_has_google_provider(secrets),
    )


def _has_google_provider(secrets) -> bool:
    auth_section = secrets.get("auth") if hasattr(secrets, 'get') else None
    if not auth_section or not hasattr(auth_section, 'get'):
        return False
    return bool(auth_section.get("google"))
