"""X-Request-ID middleware and access log for the reader API.

Every response carries an X-Request-ID header. A client-supplied ID is kept
when it is a UUID (lowercased) or a short token of [A-Za-z0-9._-]; anything
else is replaced with a fresh UUID4. The ID is also bound into the logging
context, so archive fetches, navigation events and speech failures logged
while serving the request share it.

Access log:
- one `request_completed` entry per request, tagged with the matched route
  template (e.g. /speech/paragraphs/{index}) rather than the raw path
- 502 answers (archive or Gemini unreachable) are logged at warning level
- /health is not access-logged

Must be added LAST so it runs FIRST (outermost).
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from fanreader.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128
UNLOGGED_PATHS = frozenset({"/health"})

VALID_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

logger = get_logger(__name__)


def is_valid_request_id(value: str) -> bool:
    if len(value.encode("utf-8")) > MAX_REQUEST_ID_LENGTH:
        return False
    return bool(UUID_PATTERN.match(value) or VALID_REQUEST_ID_PATTERN.match(value))


def normalize_request_id(value: str) -> str:
    if UUID_PATTERN.match(value):
        return value.lower()
    return value


def resolve_request_id(incoming: str | None) -> str:
    """Keep a usable client ID, otherwise mint a UUID4."""
    if incoming and is_valid_request_id(incoming):
        return normalize_request_id(incoming)
    return str(uuid.uuid4())


def route_template(request: Request) -> str:
    """Path template of the matched route, or the raw path when nothing matched."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a request ID to the logging context and writes the access log.

    Args:
        app: The ASGI application.
        log_requests: If False, no access entries are written.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        request.state.request_id = request_id
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests and request.url.path not in UNLOGGED_PATHS:
                log = logger.warning if response.status_code == 502 else logger.info
                log(
                    "request_completed",
                    route=route_template(request),
                    status_code=response.status_code,
                    duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                )

            return response

        except Exception:
            logger.exception("request_failed", route=route_template(request))
            raise

        finally:
            clear_request_context()
