"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./gamesync.db")
    USE_FIREBASE: bool = os.getenv("USE_FIREBASE", "false").lower() in ("1", "true", "yes")
    FIREBASE_CREDENTIALS_JSON: str | None = os.getenv("FIREBASE_CREDENTIALS_JSON")
    FIREBASE_CREDENTIALS_FILE: str | None = os.getenv("FIREBASE_CREDENTIALS_FILE")
    FIREBASE_CREDENTIALS_B64: str | None = os.getenv("FIREBASE_CREDENTIALS_B64")

    # Backend auth endpoints (Firebase Identity Toolkit) and public API key
    BACKEND_URL: str = os.getenv("BACKEND_URL", "https://identitytoolkit.googleapis.com/v1")
    BACKEND_TOKEN_URL: str = os.getenv("BACKEND_TOKEN_URL", "https://securetoken.googleapis.com/v1/token")
    BACKEND_API_KEY: str = os.getenv("BACKEND_API_KEY", "")
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Application
    SITE_URL: str = os.getenv("SITE_URL", "http://localhost:8000")

    # Local auth tokens
    AUTH_SECRET_KEY: str = os.getenv("AUTH_SECRET_KEY", "dev-secret-change-me")
    AUTH_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    AUTH_REFRESH_MARGIN_SECONDS: int = 60

    # Session cookies
    AUTH_COOKIE_PREFIX: str = "gamesync-auth"
    AUTH_COOKIE_SECURE: bool = os.getenv("AUTH_COOKIE_SECURE", "false").lower() in ("1", "true", "yes")

    # Google OAuth
    GOOGLE_CLIENT_ID: str = os.getenv("GOOGLE_CLIENT_ID", "")
    GOOGLE_CLIENT_SECRET: str = os.getenv("GOOGLE_CLIENT_SECRET", "")
    GOOGLE_AUTHORIZE_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
    GOOGLE_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    GOOGLE_CERTS_URL: str = "https://www.googleapis.com/oauth2/v3/certs"

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    class Config:
        env_file = ".env"

settings = Settings()
