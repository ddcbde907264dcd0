"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
Archive-facing failures (login token missing, transport failures, missing
chapter body) are ApiError subclasses so route handlers can let them
propagate to the shared exception handler.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"
    E_AUTH_FAILED = "E_AUTH_FAILED"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_CONTENT_NOT_FOUND = "E_CONTENT_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_CHAPTER_OUT_OF_RANGE = "E_CHAPTER_OUT_OF_RANGE"
    E_SPEECH_NOT_CONFIGURED = "E_SPEECH_NOT_CONFIGURED"

    # Conflict errors (409)
    E_NO_ACTIVE_WORK = "E_NO_ACTIVE_WORK"

    # Upstream errors (502)
    E_TOKEN_NOT_FOUND = "E_TOKEN_NOT_FOUND"
    E_NETWORK = "E_NETWORK"
    E_SPEECH_FAILED = "E_SPEECH_FAILED"

    # Never returned to clients; used as a log field when comments are skipped
    E_COMMENTS_UNAVAILABLE = "E_COMMENTS_UNAVAILABLE"

    # Server errors
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_AUTH_FAILED: 401,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_CONTENT_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_CHAPTER_OUT_OF_RANGE: 400,
    ApiErrorCode.E_SPEECH_NOT_CONFIGURED: 400,
    ApiErrorCode.E_NO_ACTIVE_WORK: 409,
    ApiErrorCode.E_TOKEN_NOT_FOUND: 502,
    ApiErrorCode.E_NETWORK: 502,
    ApiErrorCode.E_SPEECH_FAILED: 502,
    ApiErrorCode.E_COMMENTS_UNAVAILABLE: 502,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class TokenNotFoundError(ApiError):
    """The login page did not contain an anti-forgery token."""

    def __init__(self, message: str = "Login form token not found"):
        super().__init__(ApiErrorCode.E_TOKEN_NOT_FOUND, message)


class AuthFailureError(ApiError):
    """The archive rejected the supplied credentials."""

    def __init__(self, message: str = "Login failed"):
        super().__init__(ApiErrorCode.E_AUTH_FAILED, message)


class ArchiveNetworkError(ApiError):
    """A request to the archive could not be sent or completed."""

    def __init__(self, message: str = "Archive request failed"):
        super().__init__(ApiErrorCode.E_NETWORK, message)


class ContentNotFoundError(ApiError):
    """Fetched HTML did not contain a chapter body."""

    def __init__(self, message: str = "Chapter content not found"):
        super().__init__(ApiErrorCode.E_CONTENT_NOT_FOUND, message)


class SpeechError(ApiError):
    """Speech synthesis failed or is not configured."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_SPEECH_FAILED, message: str = "Speech failed"
    ):
        super().__init__(code, message)
