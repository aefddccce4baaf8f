"""
Session refresh middleware: keeps auth cookies fresh and guards protected routes
"""

import logging
import re

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.db import SessionLocal
from app.services.repositories import use_firestore
from app.services.session import create_server_client

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"

# Static assets and images never go through the auth check
EXCLUDED_PATH = re.compile(
    r"^/(?:static/|_next/static|_next/image|favicon\.ico)"
    r"|\.(?:svg|png|jpg|jpeg|gif|webp)$"
)

PUBLIC_PATHS = ("/", LOGIN_PATH, "/health")
PUBLIC_PREFIXES = ("/auth/",)
SAFE_METHODS = ("GET", "HEAD")


def is_matched_path(path: str) -> bool:
    return EXCLUDED_PATH.search(path) is None


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def _refresh(request: Request):
    """Validate or refresh the session; returns (principal, cookie store)"""
    if use_firestore():
        backend = create_server_client(request, None, can_write_cookies=True)
        return backend.auth.get_session(), backend.cookies

    db = SessionLocal()
    try:
        backend = create_server_client(request, db, can_write_cookies=True)
        return backend.auth.get_session(), backend.cookies
    finally:
        db.close()


class SessionRefreshMiddleware(BaseHTTPMiddleware):
    """Runs before every matched request.

    Refreshed tokens are exposed to the rest of the request through
    request.state.auth_cookies and written back as Set-Cookie headers.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not is_matched_path(path):
            return await call_next(request)

        principal, cookies = await run_in_threadpool(_refresh, request)
        request.state.auth_cookies = cookies.get_all()
        request.state.principal = principal

        if principal is None and not is_public_path(path):
            logger.info(f"Unauthenticated request to {path}, redirecting to login")
            # 303 turns a form POST into a GET of the login page
            status_code = 307 if request.method in SAFE_METHODS else 303
            response = RedirectResponse(url=LOGIN_PATH, status_code=status_code)
        else:
            response = await call_next(request)

        # Cookies written by the route itself (sign-in, sign-out) take precedence
        return cookies.apply_to(response, keep_existing=True)
