"""
This module gates access to the dashboard to authorized administrators.

It defines the `AdminAuthService` class, which is responsible for:
- Signing in through the identity provider (email/password or federated).
- Checking the signed-in principal against the configured admin allow-list.
- Signing non-admins straight back out so no session is left behind.
- Logging out.

The allow-list is read from the `DashboardConfig` passed in, never from
module-level state.
"""
# serenity_admin/auth.py

import logging

from serenity_admin.identity import SignInError

logger = logging.getLogger(__name__)

DENIED = 'denied'
ACCESS_DENIED_MESSAGE = "Access denied. You are not authorized as an admin."


class AdminAuthService:
    """Manages admin sign-in for one browser session."""

    def __init__(self, identity, config):
        """Initializes the service.

        Args:
            identity: The identity provider (e.g. `FirebaseIdentity`).
            config (DashboardConfig): Supplies the admin allow-list.
        """
        self.identity = identity
        self.config = config

    @property
    def current_admin(self):
        """The signed-in principal if it is an admin, otherwise None."""
        principal = self.identity.current_principal
        if principal is not None and self.config.is_admin(principal.email):
            return principal
        return None

    def _gate(self, principal):
        if self.config.is_admin(principal.email):
            logger.info("Admin %s signed in via %s", principal.email, principal.provider)
            return principal
        logger.warning("Rejected non-admin sign-in for %s", principal.email)
        self.identity.sign_out()
        return DENIED

    def login(self, email, password):
        """Authenticates with email and password and checks admin eligibility.

        Args:
            email (str): The account email.
            password (str): The account password.

        Returns:
            AdminPrincipal or str: The principal on success, or 'denied' if the
                                   account is valid but not an admin.

        Raises:
            SignInError: If the identity provider rejects the credentials.
        """
        try:
            principal = self.identity.sign_in_with_password(email, password)
        except SignInError as e:
            logger.warning("Sign-in failed for %s: %s", email, e)
            raise
        return self._gate(principal)

    def login_federated(self, email, display_name=""):
        """Admits a principal authenticated by the federated (Google) provider.

        Returns:
            AdminPrincipal or str: The principal on success, or 'denied'.

        Raises:
            SignInError: If the provider did not supply an email address.
        """
        principal = self.identity.sign_in_with_federated(email, display_name, provider="google")
        return self._gate(principal)

    def logout(self):
        """Signs the current principal out."""
        self.identity.sign_out()
