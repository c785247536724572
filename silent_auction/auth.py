"""
Authentication gate for the admin panel.

Signs operators in with Supabase Auth (email + password), then checks the
approved_users allow-list. A signed-in identity that is not on the list
is signed out again immediately.

If the allow-list table has not been created yet, every signed-in user
is allowed; any other error while checking the list denies access.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from postgrest.exceptions import APIError
from supabase import AuthError, Client, create_client

from .config import AppConfig, SupabaseConfig, get_app_config, get_supabase_config
from .db import translate_api_error
from .errors import AccessDenied, AuthenticationFailed, ConfigurationError

logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = "You are not an approved user. Contact an administrator."


@dataclass
class SignedInUser:
    """An approved operator."""
    email: str
    user_id: str = ""


class AuthGate:
    """
    Sign-in with allow-list enforcement.

    Each sign-in uses a fresh client so one operator's session never
    leaks into another request.
    """

    def __init__(
        self,
        client_factory: Optional[Callable[[], Client]] = None,
        supabase_config: Optional[SupabaseConfig] = None,
        app_config: Optional[AppConfig] = None,
    ):
        self._supabase_config = supabase_config or get_supabase_config()
        self._app_config = app_config or get_app_config()
        self._client_factory = client_factory or self._create_client

    def _create_client(self) -> Client:
        if not self._supabase_config.is_configured:
            raise ConfigurationError("Supabase is not configured. Sign-in is unavailable.")
        return create_client(self._supabase_config.url, self._supabase_config.key)

    def is_approved(self, client: Client, email: str) -> bool:
        """Check the allow-list for an email."""
        table = self._app_config.approved_users_table
        try:
            result = client.table(table).select("email").eq("email", email).limit(1).execute()
        except APIError as e:
            if isinstance(translate_api_error(table, e), ConfigurationError):
                logger.warning(f"Allow-list table {table} is missing; allowing {email}")
                return True
            logger.warning(f"Allow-list check failed for {email}, denying: {e.message}")
            return False
        return bool(result.data)

    def sign_in(self, email: str, password: str) -> SignedInUser:
        """
        Sign in and enforce the allow-list.

        Raises:
            AuthenticationFailed: if the credentials are rejected
            AccessDenied: if the identity is not approved (session ended)
            ConfigurationError: if Supabase is not configured
        """
        email = (email or "").strip()
        if not email or not password:
            raise AuthenticationFailed("Please enter your email and password")

        client = self._client_factory()
        try:
            response = client.auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as e:
            logger.info(f"Sign-in rejected for {email}: {e}")
            raise AuthenticationFailed(str(e)) from e

        user = response.user
        if user is None or not user.email:
            raise AuthenticationFailed("Sign-in did not return a user")

        if not self.is_approved(client, user.email):
            client.auth.sign_out()
            logger.warning(f"Signed out unapproved user {user.email}")
            raise AccessDenied(ACCESS_DENIED_MESSAGE)

        logger.info(f"Signed in {user.email}")
        return SignedInUser(email=user.email, user_id=str(user.id or ""))

    def sign_up(self, email: str, password: str) -> str:
        """
        Create an account. Access still requires an allow-list entry.

        Returns:
            Message to show the operator

        Raises:
            AuthenticationFailed: if the sign-up is rejected
        """
        email = (email or "").strip()
        if not email or not password:
            raise AuthenticationFailed("Please enter your email and password")

        client = self._client_factory()
        try:
            client.auth.sign_up({"email": email, "password": password})
        except AuthError as e:
            raise AuthenticationFailed(str(e)) from e

        logger.info(f"Signed up {email}")
        return "Check your email for the confirmation link, then sign in."
