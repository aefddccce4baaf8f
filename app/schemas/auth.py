"""
Auth-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

class Credentials(BaseModel):
    """Email/password sign-in or sign-up form"""
    email: EmailStr
    password: str = Field(min_length=6)

class Principal(BaseModel):
    """Authenticated user attached to a request"""
    id: str
    email: Optional[str] = None

class AuthSession(BaseModel):
    """Token pair issued by the backend"""
    access_token: str
    refresh_token: str
    expires_at: datetime
    user: Principal
