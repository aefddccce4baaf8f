"""
Auth routes - sign-in, sign-up, OAuth handoff and callback, sign-out
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.api.routes_public import templates
from app.schemas.auth import Credentials
from app.services.auth_service import AuthService, auth_error_url
from app.services.session import BackendClient, create_browser_client, get_cookie_writing_backend
from app.utils.responses import to_json_response

router = APIRouter()

# Handlers that reach the auth backend over HTTP are plain `def` so they run in
# the threadpool


def _origin(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, mode: Optional[str] = Query(None)):
    """Sign-in / sign-up page; ?mode=signup opens the sign-up form"""
    return templates.TemplateResponse(request, "login.html", {
        "title": "Sign in",
        "is_signup": mode == "signup"
    })

@router.post("/auth/signin")
def sign_in(credentials: Credentials, backend: BackendClient = Depends(get_cookie_writing_backend)):
    """Email/password sign-in; sets the session cookies on success"""
    result = AuthService.sign_in_with_email(backend, credentials.email, credentials.password)
    return backend.cookies.apply_to(to_json_response(result, error_status=401))

@router.post("/auth/signup")
def sign_up(credentials: Credentials, backend: BackendClient = Depends(get_cookie_writing_backend)):
    """Create an account with email and password"""
    result = AuthService.sign_up_with_email(backend, credentials.email, credentials.password)
    return backend.cookies.apply_to(to_json_response(result))

@router.get("/auth/google")
def sign_in_with_google(request: Request):
    """Send the browser to Google's consent screen"""
    result = AuthService.sign_in_with_google(create_browser_client())
    if not result.ok:
        return RedirectResponse(auth_error_url(_origin(request), "oauth_unavailable", result.error), status_code=303)
    return RedirectResponse(result.data, status_code=303)

@router.post("/auth/signout")
def sign_out(backend: BackendClient = Depends(get_cookie_writing_backend)):
    """Sign out and always land on the login page"""
    AuthService.sign_out(backend)
    return backend.cookies.apply_to(RedirectResponse("/login", status_code=303))

@router.get("/auth/callback")
def oauth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
    next: Optional[str] = Query(None),
    backend: BackendClient = Depends(get_cookie_writing_backend)
):
    """Identity provider redirect target"""
    target = AuthService.handle_oauth_callback(
        backend,
        origin=_origin(request),
        code=code,
        error=error,
        error_description=error_description,
        next_path=next
    )
    return backend.cookies.apply_to(RedirectResponse(target, status_code=307))

@router.get("/auth/auth-code-error", response_class=HTMLResponse)
async def auth_code_error(
    request: Request,
    error: Optional[str] = Query(None),
    description: Optional[str] = Query(None)
):
    """Show an OAuth failure exactly as reported"""
    return templates.TemplateResponse(request, "auth_code_error.html", {
        "title": "Authentication error",
        "error": error or "",
        "description": description or ""
    })
