"""Reader API envelopes and exception handlers.

Every answer is either { "data": ... } or
{ "error": { "code": "E_...", "message": "...", "request_id": "..." } }.

Failures of the two upstreams the reader depends on (the archive and the
Gemini speech API) answer 502 and are logged with an `upstream` field so
they can be told apart from local faults.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from fanreader.errors import ApiError, ApiErrorCode
from fanreader.logging import get_logger, get_request_id

logger = get_logger(__name__)

UPSTREAM_BY_CODE: dict[ApiErrorCode, str] = {
    ApiErrorCode.E_TOKEN_NOT_FOUND: "archive",
    ApiErrorCode.E_NETWORK: "archive",
    ApiErrorCode.E_SPEECH_FAILED: "gemini",
}

# Framework-raised HTTP errors (unknown route, wrong method, body validation).
STATUS_TO_CODE: dict[int, ApiErrorCode] = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
    409: ApiErrorCode.E_NO_ACTIVE_WORK,
    422: ApiErrorCode.E_INVALID_REQUEST,
}


def success_response(data: Any) -> dict[str, Any]:
    """Wrap route output in the success envelope."""
    return {"data": data}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Create an error response envelope.

    Args:
        code: The error code enum value.
        message: Human-readable error message.
        request_id: Correlation ID; taken from the logging context when None.

    Returns:
        Dict with "error" key containing code, message, and request_id.
    """
    if request_id is None:
        request_id = get_request_id()

    error = {"code": code.value, "message": message}
    if request_id:
        error["request_id"] = request_id

    return {"error": error}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render an ApiError; upstream failures are logged with their source."""
    upstream = UPSTREAM_BY_CODE.get(exc.code)
    if upstream is not None:
        logger.warning(
            "upstream_failed", upstream=upstream, code=exc.code.value, message=exc.message
        )
    elif exc.status_code >= 500:
        logger.error("api_error", code=exc.code.value, status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message),
    )


async def http_exception_handler(request: Request, exc: Any) -> JSONResponse:
    """Render framework HTTP errors in the same envelope as ApiError."""
    code = STATUS_TO_CODE.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    message = str(exc.detail) if exc.detail else "An error occurred"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, message),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer 500 E_INTERNAL; the traceback stays in the server log."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=500,
        content=error_response(ApiErrorCode.E_INTERNAL, "Internal server error"),
    )
