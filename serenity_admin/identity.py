"""
This module talks to the external identity provider (Firebase Authentication).

It is responsible for:
- Email/password sign-in through the Firebase Auth REST API.
- Recording principals asserted by Streamlit's OIDC login (e.g. Google).
- Signing out.
- Notifying observers on every auth-state transition, the way the Firebase
  client SDK's `onAuthStateChanged` does.

The provider knows nothing about who is an admin; that decision belongs to
`serenity_admin.auth.AdminAuthService`.
"""
# serenity_admin/identity.py

import logging

import requests

from serenity_admin.models import AdminPrincipal

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
REQUEST_TIMEOUT_SECONDS = 10

# Firebase Auth REST error codes -> messages shown on the sign-in page.
ERROR_MESSAGES = {
    "EMAIL_NOT_FOUND": "No account exists for this email address.",
    "INVALID_PASSWORD": "Incorrect password.",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password.",
    "INVALID_EMAIL": "The email address is badly formatted.",
    "USER_DISABLED": "This account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many failed attempts. Please try again later.",
}


class SignInError(Exception):
    """Raised when the identity provider rejects a sign-in attempt."""


class FirebaseIdentity:
    """A per-session view of the signed-in principal."""

    def __init__(self, api_key, session=None):
        self.api_key = api_key
        self._http = session or requests.Session()
        self._principal = None
        self._observers = []

    @property
    def current_principal(self):
        return self._principal

    def on_auth_state_changed(self, callback):
        """Registers a callback invoked with the current principal (or None).

        The callback fires immediately with the current state and again on every
        sign-in or sign-out.

        Args:
            callback (callable): Receives an `AdminPrincipal` or None.

        Returns:
            callable: Call it to unsubscribe.
        """
        self._observers.append(callback)
        callback(self._principal)

        def unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _set_principal(self, principal):
        self._principal = principal
        for callback in list(self._observers):
            callback(principal)

    def sign_in_with_password(self, email, password) -> AdminPrincipal:
        """Signs in with email and password.

        Args:
            email (str): The account email.
            password (str): The account password.

        Returns:
            AdminPrincipal: The authenticated principal.

        Raises:
            SignInError: If the credentials are rejected or the provider is unreachable.
        """
        if not self.api_key:
            raise SignInError("Password sign-in is not configured.")
        try:
            response = self._http.post(
                SIGN_IN_URL,
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.error("Identity provider unreachable: %s", e)
            raise SignInError("Failed to sign in") from e

        if response.status_code != 200:
            raise SignInError(_error_message(response))

        payload = response.json()
        principal = AdminPrincipal(
            uid=payload.get("localId", ""),
            email=payload.get("email", email),
            display_name=payload.get("displayName") or "",
            provider="password",
        )
        self._set_principal(principal)
        return principal

    def sign_in_with_federated(self, email, display_name="", provider="google") -> AdminPrincipal:
        """Records a principal already authenticated by an OIDC provider."""
        if not email:
            raise SignInError(f"The {provider} account did not provide an email address.")
        principal = AdminPrincipal(email=email, display_name=display_name or "", provider=provider)
        self._set_principal(principal)
        return principal

    def sign_out(self):
        if self._principal is not None:
            self._set_principal(None)


def _error_message(response) -> str:
    try:
        code = response.json().get("error", {}).get("message", "")
    except ValueError:
        code = ""
    # Codes may carry a suffix, e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled..."
    code = code.split(":")[0].strip()
    return ERROR_MESSAGES.get(code, "Failed to sign in")
