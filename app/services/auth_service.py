"""
Sign-in, sign-up, sign-out and the OAuth callback flow
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from app.core.config import settings
from app.schemas.common import ActionResponse
from app.services.session import BackendClient
from app.utils.errors import AuthError
from app.utils.responses import success_response, error_response, handle_action_error

logger = logging.getLogger(__name__)

ERROR_ROUTE = "/auth/auth-code-error"
CALLBACK_ROUTE = "/auth/callback"
DEFAULT_NEXT = "/dashboard"


def auth_error_url(origin: str, error: str, description: str) -> str:
    return f"{origin}{ERROR_ROUTE}?{urlencode({'error': error, 'description': description})}"


def callback_url() -> str:
    return f"{settings.SITE_URL.rstrip('/')}{CALLBACK_ROUTE}"


def safe_next_path(next_path: Optional[str]) -> str:
    # Only same-origin paths; "//host" would leave the site
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return DEFAULT_NEXT
    return next_path


class AuthService:
    """Auth actions returning ActionResponse envelopes"""

    @staticmethod
    def sign_in_with_email(backend: BackendClient, email: str, password: str) -> ActionResponse:
        try:
            backend.auth.sign_in_with_password(email, password)
            return success_response(None)
        except AuthError as e:
            return error_response(e.message)
        except Exception as e:
            return handle_action_error(e)

    @staticmethod
    def sign_up_with_email(backend: BackendClient, email: str, password: str) -> ActionResponse:
        try:
            backend.auth.sign_up(email, password)
            return success_response(None)
        except AuthError as e:
            return error_response(e.message)
        except Exception as e:
            return handle_action_error(e)

    @staticmethod
    def sign_in_with_google(backend: BackendClient, redirect_to: Optional[str] = None) -> ActionResponse:
        """Build the provider URL the browser should be sent to"""
        redirect_to = redirect_to or callback_url()
        try:
            return success_response(backend.auth.sign_in_with_oauth("google", redirect_to))
        except AuthError as e:
            return error_response(e.message)
        except Exception as e:
            return handle_action_error(e)

    @staticmethod
    def sign_out(backend: BackendClient) -> None:
        """Revoke the session. Failures are logged; the caller redirects regardless."""
        try:
            backend.auth.sign_out()
        except Exception as e:
            logger.error(f"Error signing out: {e}")

    @staticmethod
    def handle_oauth_callback(
        backend: BackendClient,
        origin: str,
        code: Optional[str] = None,
        error: Optional[str] = None,
        error_description: Optional[str] = None,
        next_path: Optional[str] = None
    ) -> str:
        """Decide where the browser goes after the identity provider redirects back.

        Always yields exactly one URL: the continuation path on success, the
        error page carrying (error, description) otherwise.
        """
        logger.info(f"OAuth callback received: code={bool(code)} error={error}")

        if error:
            logger.error(f"OAuth provider error: {error} {error_description}")
            return auth_error_url(origin, error, error_description or "")

        if code:
            try:
                session = backend.auth.exchange_code_for_session(code, callback_url())
            except AuthError as e:
                logger.error(f"Code exchange error: {e.message}")
                return auth_error_url(origin, "exchange_failed", e.message)
            except Exception as e:
                logger.exception("Unexpected error during code exchange")
                return auth_error_url(origin, "unexpected", str(e) or "Unknown error")

            if session is None:
                logger.error("No session created after code exchange")
                return auth_error_url(origin, "no_session", "No session was created")

            target = safe_next_path(next_path)
            logger.info(f"Authentication successful, redirecting to {target}")
            return f"{origin}{target}"

        logger.error("No authorization code provided")
        return auth_error_url(origin, "no_code", "No authorization code was provided")
