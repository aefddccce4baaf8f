"""
Google OAuth authorization-code flow
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import jwt
import requests

from app.core.config import settings
from app.utils.errors import AuthError

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class GoogleOAuthClient:
    """Builds the consent-screen URL and trades authorization codes for tokens"""

    def __init__(self, client_id: Optional[str] = None, client_secret: Optional[str] = None):
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET

    def authorize_url(self, redirect_uri: str, state: Optional[str] = None) -> str:
        if not self.client_id:
            raise AuthError("Google sign-in is not configured")
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "access_type": "offline",
            "prompt": "select_account",
        }
        if state:
            params["state"] = state
        return f"{settings.GOOGLE_AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """POST the code to Google's token endpoint and return the token response"""
        try:
            resp = requests.post(
                settings.GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.error(f"Google token endpoint unreachable: {e}")
            raise AuthError(str(e)) from e

        body = resp.json() if resp.content else {}
        if resp.status_code >= 400:
            raise AuthError(body.get("error_description") or body.get("error") or resp.reason)
        return body

    def verify_id_token(self, id_token: str) -> Dict[str, Any]:
        """Check the ID token signature against Google's published keys"""
        try:
            signing_key = jwt.PyJWKClient(settings.GOOGLE_CERTS_URL).get_signing_key_from_jwt(id_token)
            claims = jwt.decode(
                id_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.client_id,
            )
        except jwt.PyJWTError as e:
            raise AuthError(f"Invalid Google ID token: {e}") from e

        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise AuthError("Invalid Google ID token issuer")
        return claims
