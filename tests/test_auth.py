"""
Tests for the local auth provider and the cookie-bound auth client
"""

import pytest
import jwt
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.db import Base, create_db_engine
from app.models import RefreshToken, User
from app.services.auth_providers import LocalAuthProvider, token_expires_at
from app.services.session import ACCESS_COOKIE, REFRESH_COOKIE, BackendClient, CookieStore, CookieToSet
from app.utils.errors import AuthError, CookieWriteError

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_auth.db"
engine = create_db_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def provider(db_session):
    return LocalAuthProvider(db_session)

def _expired_token(user_id: str) -> str:
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    return jwt.encode(
        {"sub": user_id, "email": "coach@example.com", "iat": past - timedelta(hours=1), "exp": past},
        settings.AUTH_SECRET_KEY,
        algorithm=settings.AUTH_ALGORITHM,
    )

def test_sign_up_and_sign_in(provider, db_session):
    """Sign-up stores a hashed password; sign-in returns a verifiable session"""
    created = provider.sign_up("Coach@Example.com", "secret1")

    user = db_session.query(User).one()
    assert user.email == "coach@example.com"
    assert user.password_hash != "secret1"

    session = provider.sign_in_with_password("coach@example.com", "secret1")
    assert session.user.id == created.user.id
    assert provider.get_user(session.access_token).email == "coach@example.com"
    assert token_expires_at(session.access_token) > datetime.now(timezone.utc)

def test_sign_up_twice(provider):
    provider.sign_up("coach@example.com", "secret1")

    with pytest.raises(AuthError) as exc_info:
        provider.sign_up("coach@example.com", "another1")
    assert exc_info.value.message == "User already registered"

def test_sign_in_wrong_password(provider):
    provider.sign_up("coach@example.com", "secret1")

    with pytest.raises(AuthError) as exc_info:
        provider.sign_in_with_password("coach@example.com", "wrong-password")
    assert exc_info.value.message == "Invalid login credentials"

def test_expired_access_token_rejected(provider):
    session = provider.sign_up("coach@example.com", "secret1")

    with pytest.raises(AuthError) as exc_info:
        provider.get_user(_expired_token(session.user.id))
    assert exc_info.value.message == "Token has expired"

def test_refresh_rotates_token(provider, db_session):
    """A refresh token works exactly once"""
    session = provider.sign_up("coach@example.com", "secret1")

    refreshed = provider.refresh_session(session.refresh_token)

    assert refreshed.refresh_token != session.refresh_token
    assert db_session.get(RefreshToken, session.refresh_token).revoked is True
    with pytest.raises(AuthError):
        provider.refresh_session(session.refresh_token)

def test_sign_out_revokes_refresh_token(provider, db_session):
    session = provider.sign_up("coach@example.com", "secret1")

    provider.sign_out(session.access_token, session.refresh_token)

    assert db_session.get(RefreshToken, session.refresh_token).revoked is True

def test_cookie_store_requires_write_flag():
    """Read-only contexts cannot queue cookie writes"""
    cookies = CookieStore({ACCESS_COOKIE: "token"})

    with pytest.raises(CookieWriteError):
        cookies.set_all([CookieToSet(ACCESS_COOKIE, "new-token", 60)])
    assert cookies.get(ACCESS_COOKIE) == "token"
    assert cookies.pending == []

def test_cookie_store_tracks_writes_and_deletes():
    cookies = CookieStore({ACCESS_COOKIE: "old", REFRESH_COOKIE: "r"}, can_write_cookies=True)

    cookies.set_all([CookieToSet(ACCESS_COOKIE, "new", 60), CookieToSet(REFRESH_COOKIE, "", 0)])

    assert cookies.get_all() == {ACCESS_COOKIE: "new"}
    assert len(cookies.pending) == 2

def test_session_refreshes_expired_access_token(provider, db_session):
    """The auth client trades an expired access token for a new pair"""
    session = provider.sign_up("coach@example.com", "secret1")
    cookies = CookieStore({
        ACCESS_COOKIE: _expired_token(session.user.id),
        REFRESH_COOKIE: session.refresh_token,
    }, can_write_cookies=True)
    backend = BackendClient(cookies, db_session)

    principal = backend.auth.get_session()

    assert principal.id == session.user.id
    assert cookies.get(REFRESH_COOKIE) != session.refresh_token
    assert backend.auth.get_user().id == session.user.id

def test_session_with_spent_refresh_token_clears_cookies(provider, db_session):
    session = provider.sign_up("coach@example.com", "secret1")
    provider.refresh_session(session.refresh_token)
    cookies = CookieStore({
        ACCESS_COOKIE: _expired_token(session.user.id),
        REFRESH_COOKIE: session.refresh_token,
    }, can_write_cookies=True)

    principal = BackendClient(cookies, db_session).auth.get_session()

    assert principal is None
    assert cookies.get_all() == {}

def test_sign_out_clears_cookies(provider, db_session):
    session = provider.sign_up("coach@example.com", "secret1")
    cookies = CookieStore({
        ACCESS_COOKIE: session.access_token,
        REFRESH_COOKIE: session.refresh_token,
    }, can_write_cookies=True)

    BackendClient(cookies, db_session).auth.sign_out()

    assert cookies.get_all() == {}
    assert db_session.get(RefreshToken, session.refresh_token).revoked is True
