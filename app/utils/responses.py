"""
Standardized response utilities
"""

from typing import Any
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.schemas.common import ActionResponse, ErrorResponse
from app.utils.errors import normalize_error

def success_response(data: Any = None) -> ActionResponse:
    """Wrap a successful action result"""
    return ActionResponse(ok=True, data=data)

def error_response(message: str) -> ActionResponse:
    """Wrap a failed action result"""
    return ActionResponse(ok=False, error=message)

def handle_action_error(error: object) -> ActionResponse:
    """Normalize any failure into an error envelope"""
    return error_response(normalize_error(error))

def to_json_response(
    result: ActionResponse,
    success_status: int = 200,
    error_status: int = 400
) -> JSONResponse:
    """Render an action envelope as an HTTP response"""
    return JSONResponse(
        content=jsonable_encoder(result),
        status_code=success_status if result.ok else error_status
    )

def error_json(message: str, details: Any = None, status_code: int = 400) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(error=message, details=details)
    return JSONResponse(
        content=jsonable_encoder(response),
        status_code=status_code
    )
