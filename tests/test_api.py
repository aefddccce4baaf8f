"""
Tests for the HTTP surface: session middleware, auth routes and event routes
"""

import inspect
import pytest
import jwt
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse
from fastapi.testclient import TestClient

from app.core.config import settings
from app.api import routes_auth
from app.core.db import Base, engine
from app.services.session import ACCESS_COOKIE, REFRESH_COOKIE
from main import app

CREDENTIALS = {"email": "captain@example.com", "password": "secret1"}

LEAGUE = {
    "name": "5v5 League",
    "date": "2025-03-01T18:00:00Z",
    "sport_type": "Soccer",
    "venues": [{"venue_name": "Field A"}]
}

@pytest.fixture
def client():
    """Test client against a fresh database"""
    with TestClient(app) as test_client:
        yield test_client
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def signed_in(client):
    response = client.post("/auth/signup", json=CREDENTIALS)
    assert response.status_code == 200
    assert response.json()["ok"] is True
    return client

def test_health_is_public(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

def test_public_pages(client):
    assert client.get("/").status_code == 200
    assert client.get("/login").status_code == 200
    assert client.get("/static/style.css").status_code == 200

def test_protected_routes_redirect_to_login(client):
    """Anonymous requests to protected paths are sent to the login page"""
    for path in ("/dashboard", "/api/events", "/api/sport-types"):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/login"

def test_sign_up_sets_session_cookies(client):
    response = client.post("/auth/signup", json=CREDENTIALS)

    assert response.status_code == 200
    assert ACCESS_COOKIE in response.cookies
    assert REFRESH_COOKIE in response.cookies
    assert client.get("/dashboard", follow_redirects=False).status_code == 200

def test_sign_in_with_wrong_password(signed_in):
    response = signed_in.post("/auth/signin", json={**CREDENTIALS, "password": "wrong-password"})

    assert response.status_code == 401
    assert response.json() == {"ok": False, "data": None, "error": "Invalid login credentials"}

def test_credentials_are_validated(client):
    response = client.post("/auth/signin", json={"email": "not-an-email", "password": "123"})

    assert response.status_code == 422

def test_event_lifecycle(signed_in):
    """Create, read, update and delete through the JSON API"""
    created = signed_in.post("/api/events", json=LEAGUE)
    assert created.status_code == 201
    event = created.json()["data"]
    assert [v["venue_name"] for v in event["venues"]] == ["Field A"]

    fetched = signed_in.get(f"/api/events/{event['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["data"]["name"] == "5v5 League"

    updated = signed_in.patch(f"/api/events/{event['id']}", json={
        "venues": [{"venue_name": "Field B"}, {"venue_name": "Field C"}]
    })
    assert updated.status_code == 200
    assert sorted(v["venue_name"] for v in updated.json()["data"]["venues"]) == ["Field B", "Field C"]

    deleted = signed_in.delete(f"/api/events/{event['id']}")
    assert deleted.status_code == 200
    assert signed_in.get(f"/api/events/{event['id']}").status_code == 404

def test_create_event_requires_a_venue(signed_in):
    response = signed_in.post("/api/events", json={**LEAGUE, "venues": []})

    assert response.status_code == 422

def test_search_route(signed_in):
    signed_in.post("/api/events", json=LEAGUE)
    signed_in.post("/api/events", json={**LEAGUE, "name": "Hoops Night", "sport_type": "Basketball"})

    response = signed_in.get("/api/events/search", params={"q": "league", "sport_type": "Soccer"})

    assert response.status_code == 200
    assert [e["name"] for e in response.json()["data"]] == ["5v5 League"]

def test_dashboard_lists_events(signed_in):
    signed_in.post("/api/events", json=LEAGUE)

    response = signed_in.get("/dashboard")

    assert response.status_code == 200
    assert "5v5 League" in response.text
    assert "Field A" in response.text

def test_delete_form_redirects_to_dashboard(signed_in):
    event = signed_in.post("/api/events", json=LEAGUE).json()["data"]

    response = signed_in.post(f"/events/{event['id']}/delete", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"
    assert signed_in.get("/api/events").json()["data"] == []

def test_sign_out_ends_session(signed_in):
    response = signed_in.post("/auth/signout", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/login"
    assert signed_in.get("/dashboard", follow_redirects=False).status_code == 307

def test_expired_access_token_is_refreshed(client):
    """The middleware swaps an expired access token for a new pair"""
    session = client.post("/auth/signup", json=CREDENTIALS)
    refresh_token = session.cookies[REFRESH_COOKIE]
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    expired = jwt.encode(
        {"sub": "someone", "iat": past - timedelta(hours=1), "exp": past},
        settings.AUTH_SECRET_KEY,
        algorithm=settings.AUTH_ALGORITHM,
    )

    with TestClient(app) as fresh:
        fresh.cookies.set(ACCESS_COOKIE, expired)
        fresh.cookies.set(REFRESH_COOKIE, refresh_token)
        response = fresh.get("/dashboard", follow_redirects=False)

    assert response.status_code == 200
    assert ACCESS_COOKIE in response.cookies
    assert response.cookies[REFRESH_COOKIE] != refresh_token

def test_oauth_callback_error_redirect(client):
    response = client.get(
        "/auth/callback",
        params={"error": "access_denied", "error_description": "User cancelled"},
        follow_redirects=False
    )

    assert response.status_code == 307
    location = urlparse(response.headers["location"])
    assert location.path == "/auth/auth-code-error"
    assert parse_qs(location.query) == {"error": ["access_denied"], "description": ["User cancelled"]}

def test_auth_code_error_page_shows_details(client):
    response = client.get("/auth/auth-code-error", params={"error": "no_code", "description": "No authorization code was provided"})

    assert response.status_code == 200
    assert "no_code" in response.text
    assert "No authorization code was provided" in response.text

def test_google_sign_in_without_client_id(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "")

    response = client.get("/auth/google", follow_redirects=False)

    assert response.status_code == 303
    location = urlparse(response.headers["location"])
    assert location.path == "/auth/auth-code-error"
    assert parse_qs(location.query)["error"] == ["oauth_unavailable"]

def test_patch_rejects_null_required_fields(signed_in):
    """Required fields can be omitted from a patch but never cleared"""
    event = signed_in.post("/api/events", json=LEAGUE).json()["data"]

    for field in ("name", "date", "sport_type", "venues"):
        response = signed_in.patch(f"/api/events/{event['id']}", json={field: None})
        assert response.status_code == 422

    fetched = signed_in.get(f"/api/events/{event['id']}").json()["data"]
    assert fetched["name"] == "5v5 League"
    assert fetched["sport_type"] == "Soccer"
    assert [v["venue_name"] for v in fetched["venues"]] == ["Field A"]

def test_search_route_matches_wildcards_literally(signed_in):
    signed_in.post("/api/events", json=LEAGUE)
    signed_in.post("/api/events", json={**LEAGUE, "name": "Hoops Night", "sport_type": "Basketball"})

    for term in ("_", "%"):
        response = signed_in.get("/api/events/search", params={"q": term})
        assert response.json()["data"] == []

def test_anonymous_post_redirects_with_see_other(client):
    """Non-GET requests are redirected to the login page as a GET"""
    for path in ("/api/events", "/events/some-id/delete"):
        response = client.post(path, json=LEAGUE, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

def test_event_pages(signed_in):
    """Detail, create and edit pages render for a signed-in user"""
    event = signed_in.post("/api/events", json=LEAGUE).json()["data"]

    dashboard = signed_in.get("/dashboard")
    assert "/events/new" in dashboard.text
    assert f"/events/{event['id']}" in dashboard.text

    detail = signed_in.get(f"/events/{event['id']}")
    assert detail.status_code == 200
    assert "5v5 League" in detail.text
    assert "Field A" in detail.text

    assert signed_in.get("/events/new").status_code == 200

    edit = signed_in.get(f"/events/{event['id']}/edit")
    assert edit.status_code == 200
    assert "Field A" in edit.text

def test_missing_event_pages(signed_in):
    assert signed_in.get("/events/missing-id").status_code == 404
    assert signed_in.get("/events/missing-id/edit").status_code == 404

def test_auth_backend_handlers_run_in_threadpool():
    """Handlers that make outbound HTTP calls must not block the event loop"""
    for handler in (
        routes_auth.sign_in,
        routes_auth.sign_up,
        routes_auth.sign_in_with_google,
        routes_auth.sign_out,
        routes_auth.oauth_callback,
    ):
        assert not inspect.iscoroutinefunction(handler)
