"""
Error kinds raised by the backend-access layer and their user-facing messages
"""

import enum

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class ErrorKind(str, enum.Enum):
    CONFLICT = "conflict"
    MISSING_REFERENCE = "missing_reference"
    REQUIRED_FIELD = "required_field"
    DUPLICATE_VALUE = "duplicate_value"
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"
    OTHER = "other"


KIND_MESSAGES = {
    ErrorKind.CONFLICT: "This record already exists",
    ErrorKind.MISSING_REFERENCE: "Referenced record not found",
    ErrorKind.REQUIRED_FIELD: "Required field is missing",
    ErrorKind.DUPLICATE_VALUE: "This value already exists",
}

# Checked in order; postgres reports "duplicate key value violates unique
# constraint", so the duplicate-key marker has to win over the generic one.
_MESSAGE_MARKERS = [
    ("duplicate key", ErrorKind.CONFLICT),
    ("foreign key", ErrorKind.MISSING_REFERENCE),
    ("not null", ErrorKind.REQUIRED_FIELD),
    ("unique constraint", ErrorKind.DUPLICATE_VALUE),
]


class BackendError(Exception):
    """A backend call was rejected. `kind` is the classified cause."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.OTHER):
        super().__init__(message)
        self.message = message
        self.kind = kind


class AuthError(BackendError):
    """The auth backend refused a credential, token or code"""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.UNAUTHENTICATED)


class EventActionError(Exception):
    """Raised by actions that redirect on success and cannot return an envelope"""


class CookieWriteError(RuntimeError):
    """Cookie write attempted from a context that cannot set response cookies"""


def classify_message(message: str) -> ErrorKind:
    lowered = message.lower()
    for marker, kind in _MESSAGE_MARKERS:
        if marker in lowered:
            return kind
    return ErrorKind.OTHER


def backend_error_from(exc: Exception) -> BackendError:
    """Wrap a raw driver/client exception as a classified BackendError"""
    if isinstance(exc, BackendError):
        return exc
    # SQLAlchemy DBAPIError keeps the driver message on .orig
    message = str(getattr(exc, "orig", None) or exc)
    return BackendError(message, classify_message(message))


def normalize_error(error: object) -> str:
    """Turn any failure value into a message that can be shown to the user"""
    if isinstance(error, BackendError):
        return KIND_MESSAGES.get(error.kind) or error.message or GENERIC_ERROR_MESSAGE
    if isinstance(error, Exception):
        message = str(error)
        if not message:
            return GENERIC_ERROR_MESSAGE
        kind = classify_message(message)
        return KIND_MESSAGES.get(kind, message)
    return GENERIC_ERROR_MESSAGE
