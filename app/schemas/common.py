"""
Common Pydantic schemas
"""

from typing import Any, Optional
from pydantic import BaseModel

class ActionResponse(BaseModel):
    """Result of a backend-facing action: either data or an error message"""
    ok: bool
    data: Optional[Any] = None
    error: Optional[str] = None

class ErrorResponse(BaseModel):
    """Error response schema"""
    ok: bool = False
    error: str
    details: Optional[Any] = None
