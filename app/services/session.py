"""
Per-request backend handle bound to the caller's auth cookies
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional

from fastapi import Depends, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.schemas.auth import AuthSession, Principal
from app.services.auth_providers import get_auth_provider, token_expires_at
from app.utils.errors import AuthError, CookieWriteError

logger = logging.getLogger(__name__)

ACCESS_COOKIE = f"{settings.AUTH_COOKIE_PREFIX}-access"
REFRESH_COOKIE = f"{settings.AUTH_COOKIE_PREFIX}-refresh"


@dataclass
class CookieToSet:
    name: str
    value: str
    max_age: int  # 0 deletes the cookie


class CookieStore:
    """Request cookies plus the writes queued for the outgoing response.

    Writes are only allowed when `can_write_cookies` is set; callers that may
    run in a read-only context check the flag before calling set_all().
    """

    def __init__(self, cookies: Mapping[str, str], can_write_cookies: bool = False):
        self._cookies: Dict[str, str] = dict(cookies)
        self.can_write_cookies = can_write_cookies
        self.pending: List[CookieToSet] = []

    def get_all(self) -> Dict[str, str]:
        return dict(self._cookies)

    def get(self, name: str) -> Optional[str]:
        return self._cookies.get(name)

    def set_all(self, cookies_to_set: List[CookieToSet]) -> None:
        if not self.can_write_cookies:
            raise CookieWriteError("Response cookies cannot be written from this context")
        for cookie in cookies_to_set:
            self.pending.append(cookie)
            if cookie.max_age == 0:
                self._cookies.pop(cookie.name, None)
            else:
                self._cookies[cookie.name] = cookie.value

    def apply_to(self, response: Response, keep_existing: bool = False) -> Response:
        """Copy queued writes onto a response as Set-Cookie headers.

        With keep_existing, cookies the response already sets are left alone.
        """
        skip = set()
        if keep_existing:
            skip = {header.split("=", 1)[0] for header in response.headers.getlist("set-cookie")}
        for cookie in self.pending:
            if cookie.name in skip:
                continue
            if cookie.max_age == 0:
                response.delete_cookie(cookie.name, path="/")
            else:
                response.set_cookie(
                    cookie.name,
                    cookie.value,
                    max_age=cookie.max_age,
                    path="/",
                    httponly=True,
                    samesite="lax",
                    secure=settings.AUTH_COOKIE_SECURE,
                )
        return response


class AuthClient:
    """Auth calls for one caller; keeps the session cookies in sync"""

    def __init__(self, provider, cookies: Optional[CookieStore]):
        self.provider = provider
        self.cookies = cookies

    def _cookie(self, name: str) -> Optional[str]:
        return self.cookies.get(name) if self.cookies else None

    def get_user(self) -> Principal:
        access_token = self._cookie(ACCESS_COOKIE)
        if not access_token:
            raise AuthError("Auth session missing")
        return self.provider.get_user(access_token)

    def get_session(self) -> Optional[Principal]:
        """Return the current principal, refreshing the token pair when the
        access token is missing, invalid or close to expiry."""
        access_token = self._cookie(ACCESS_COOKIE)
        refresh_token = self._cookie(REFRESH_COOKIE)

        if access_token and not self._near_expiry(access_token):
            try:
                return self.provider.get_user(access_token)
            except AuthError as e:
                logger.info(f"Access token rejected, trying refresh: {e.message}")

        if not refresh_token:
            return None

        try:
            session = self.provider.refresh_session(refresh_token)
        except AuthError as e:
            logger.info(f"Session refresh failed: {e.message}")
            self._clear_session()
            return None

        self._store_session(session)
        return session.user

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        session = self.provider.sign_in_with_password(email, password)
        self._store_session(session)
        return session

    def sign_up(self, email: str, password: str) -> Optional[AuthSession]:
        session = self.provider.sign_up(email, password)
        if session is not None:
            self._store_session(session)
        return session

    def sign_out(self) -> None:
        try:
            self.provider.sign_out(self._cookie(ACCESS_COOKIE), self._cookie(REFRESH_COOKIE))
        finally:
            self._clear_session()

    def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        return self.provider.authorize_url(provider, redirect_to)

    def exchange_code_for_session(self, code: str, redirect_uri: str) -> Optional[AuthSession]:
        session = self.provider.exchange_code_for_session(code, redirect_uri)
        if session is not None:
            self._store_session(session)
        return session

    @staticmethod
    def _near_expiry(access_token: str) -> bool:
        expires_at = token_expires_at(access_token)
        if expires_at is None:
            return True
        margin = timedelta(seconds=settings.AUTH_REFRESH_MARGIN_SECONDS)
        return expires_at - datetime.now(timezone.utc) < margin

    def _store_session(self, session: AuthSession) -> None:
        if not (self.cookies and self.cookies.can_write_cookies):
            return
        # The access cookie outlives the JWT so an expired token can still be refreshed
        max_age = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600
        self.cookies.set_all([
            CookieToSet(ACCESS_COOKIE, session.access_token, max_age),
            CookieToSet(REFRESH_COOKIE, session.refresh_token, max_age),
        ])

    def _clear_session(self) -> None:
        if not (self.cookies and self.cookies.can_write_cookies):
            return
        self.cookies.set_all([
            CookieToSet(ACCESS_COOKIE, "", 0),
            CookieToSet(REFRESH_COOKIE, "", 0),
        ])


class BackendClient:
    """Backend handle scoped to one request (or one browser handoff)"""

    def __init__(self, cookies: Optional[CookieStore], db: Optional[Session]):
        self.cookies = cookies
        self.db = db
        self.auth = AuthClient(get_auth_provider(db), cookies)


def create_server_client(request: Request, db: Optional[Session], can_write_cookies: bool = False) -> BackendClient:
    """Server-side handle. Sees cookies refreshed earlier in the same request."""
    cookies = getattr(request.state, "auth_cookies", None)
    if cookies is None:
        cookies = request.cookies
    return BackendClient(CookieStore(cookies, can_write_cookies), db)


def create_browser_client() -> BackendClient:
    """Handle without cookie access, only used to start the OAuth redirect"""
    return BackendClient(None, None)


def get_backend(request: Request, db: Session = Depends(get_db)) -> BackendClient:
    return create_server_client(request, db)


def get_cookie_writing_backend(request: Request, db: Session = Depends(get_db)) -> BackendClient:
    return create_server_client(request, db, can_write_cookies=True)
