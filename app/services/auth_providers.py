"""
Auth backends: a local provider over SQLAlchemy and a Firebase Auth provider.

Both expose the same calls so the session layer does not care which one is
active. Failures are raised as AuthError (or BackendError for storage faults).
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import jwt
import requests
from firebase_admin import auth as firebase_auth
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models import RefreshToken, User
from app.schemas.auth import AuthSession, Principal
from app.services.firebase_client import get_firebase_app
from app.services.oauth import GoogleOAuthClient
from app.services.repositories import sql_errors, use_firestore
from app.utils.errors import AuthError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def token_expires_at(token: str) -> Optional[datetime]:
    """Read the exp claim without verifying the signature"""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


class LocalAuthProvider:
    """Users and refresh tokens in the SQL database, HS256 JWT access tokens"""

    def __init__(self, db: Optional[Session], oauth: Optional[GoogleOAuthClient] = None):
        self.db = db
        self.oauth = oauth or GoogleOAuthClient()

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        user = self.db.query(User).filter(User.email == email.lower()).first()
        if not user or not user.password_hash or not verify_password(password, user.password_hash):
            raise AuthError("Invalid login credentials")
        return self._issue_session(user)

    def sign_up(self, email: str, password: str) -> Optional[AuthSession]:
        if self.db.query(User).filter(User.email == email.lower()).first():
            raise AuthError("User already registered")
        user = User(email=email.lower(), password_hash=get_password_hash(password), provider="email")
        with sql_errors(self.db):
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        logger.info(f"Registered user {user.id}")
        return self._issue_session(user)

    def get_user(self, access_token: str) -> Principal:
        try:
            payload = jwt.decode(access_token, settings.AUTH_SECRET_KEY, algorithms=[settings.AUTH_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthError("Token has expired")
        except jwt.InvalidTokenError:
            raise AuthError("Invalid token")
        return Principal(id=payload["sub"], email=payload.get("email"))

    def refresh_session(self, refresh_token: str) -> AuthSession:
        row = self.db.get(RefreshToken, refresh_token)
        if row is None or row.revoked or _as_utc(row.expires_at) <= _utcnow():
            raise AuthError("Invalid Refresh Token")
        user = self.db.get(User, row.user_id)
        if user is None:
            raise AuthError("User not found")
        # Rotate: the old token is spent once a new pair is issued
        row.revoked = True
        return self._issue_session(user)

    def sign_out(self, access_token: Optional[str], refresh_token: Optional[str]) -> None:
        if not refresh_token:
            return
        row = self.db.get(RefreshToken, refresh_token)
        if row is not None and not row.revoked:
            row.revoked = True
            with sql_errors(self.db):
                self.db.commit()

    def authorize_url(self, provider: str, redirect_to: str) -> str:
        if provider != "google":
            raise AuthError(f"Unsupported provider: {provider}")
        return self.oauth.authorize_url(redirect_to)

    def exchange_code_for_session(self, code: str, redirect_uri: str) -> Optional[AuthSession]:
        tokens = self.oauth.exchange_code(code, redirect_uri)
        id_token = tokens.get("id_token")
        if not id_token:
            return None
        claims = self.oauth.verify_id_token(id_token)
        email = claims.get("email")
        if not email or claims.get("email_verified") is False:
            raise AuthError("Google account has no verified email")

        user = self.db.query(User).filter(User.email == email.lower()).first()
        if user is None:
            user = User(email=email.lower(), provider="google")
            with sql_errors(self.db):
                self.db.add(user)
                self.db.commit()
                self.db.refresh(user)
            logger.info(f"Registered Google user {user.id}")
        return self._issue_session(user)

    def _issue_session(self, user: User) -> AuthSession:
        now = _utcnow()
        expires_at = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        access_token = jwt.encode(
            {"sub": user.id, "email": user.email, "iat": now, "exp": expires_at},
            settings.AUTH_SECRET_KEY,
            algorithm=settings.AUTH_ALGORITHM,
        )
        refresh_token = secrets.token_urlsafe(48)
        with sql_errors(self.db):
            self.db.add(RefreshToken(
                token=refresh_token,
                user_id=user.id,
                expires_at=now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            ))
            self.db.commit()
        return AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            user=Principal(id=user.id, email=user.email),
        )


class FirebaseAuthProvider:
    """Firebase Auth through the Identity Toolkit and Secure Token REST APIs"""

    def __init__(self, oauth: Optional[GoogleOAuthClient] = None):
        self.oauth = oauth or GoogleOAuthClient()

    def _post(self, url: str, json: Optional[Dict[str, Any]] = None, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = requests.post(
                url,
                params={"key": settings.BACKEND_API_KEY},
                json=json,
                data=data,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.error(f"Auth backend unreachable: {e}")
            raise AuthError(str(e)) from e

        body = resp.json() if resp.content else {}
        if resp.status_code >= 400:
            raise AuthError(body.get("error", {}).get("message") or resp.reason)
        return body

    @staticmethod
    def _session(id_token: str, refresh_token: str, expires_in: Any, uid: str, email: Optional[str]) -> AuthSession:
        return AuthSession(
            access_token=id_token,
            refresh_token=refresh_token,
            expires_at=_utcnow() + timedelta(seconds=int(expires_in)),
            user=Principal(id=uid, email=email),
        )

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        body = self._post(
            f"{settings.BACKEND_URL}/accounts:signInWithPassword",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        return self._session(body["idToken"], body["refreshToken"], body["expiresIn"], body["localId"], body.get("email"))

    def sign_up(self, email: str, password: str) -> Optional[AuthSession]:
        body = self._post(
            f"{settings.BACKEND_URL}/accounts:signUp",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        if "idToken" not in body:
            return None
        return self._session(body["idToken"], body["refreshToken"], body["expiresIn"], body["localId"], body.get("email"))

    def get_user(self, access_token: str) -> Principal:
        try:
            claims = firebase_auth.verify_id_token(access_token, app=get_firebase_app())
        except (firebase_auth.InvalidIdTokenError, firebase_auth.CertificateFetchError, ValueError) as e:
            raise AuthError(str(e)) from e
        return Principal(id=claims["uid"], email=claims.get("email"))

    def refresh_session(self, refresh_token: str) -> AuthSession:
        body = self._post(
            settings.BACKEND_TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        claims = jwt.decode(body["id_token"], options={"verify_signature": False})
        return self._session(body["id_token"], body["refresh_token"], body["expires_in"], body["user_id"], claims.get("email"))

    def sign_out(self, access_token: Optional[str], refresh_token: Optional[str]) -> None:
        if not access_token:
            return
        principal = self.get_user(access_token)
        firebase_auth.revoke_refresh_tokens(principal.id, app=get_firebase_app())

    def authorize_url(self, provider: str, redirect_to: str) -> str:
        if provider != "google":
            raise AuthError(f"Unsupported provider: {provider}")
        return self.oauth.authorize_url(redirect_to)

    def exchange_code_for_session(self, code: str, redirect_uri: str) -> Optional[AuthSession]:
        tokens = self.oauth.exchange_code(code, redirect_uri)
        id_token = tokens.get("id_token")
        if not id_token:
            return None
        body = self._post(
            f"{settings.BACKEND_URL}/accounts:signInWithIdp",
            json={
                "postBody": urlencode({"id_token": id_token, "providerId": "google.com"}),
                "requestUri": redirect_uri,
                "returnSecureToken": True,
                "returnIdpCredential": True,
            },
        )
        if "idToken" not in body:
            return None
        return self._session(body["idToken"], body["refreshToken"], body["expiresIn"], body["localId"], body.get("email"))


def get_auth_provider(db: Optional[Session]):
    if use_firestore():
        return FirebaseAuthProvider()
    return LocalAuthProvider(db)
