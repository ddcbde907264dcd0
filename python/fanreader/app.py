"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, request-id middleware, and routes.

Middleware Ordering:
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- This ensures every response (including errors) gets X-Request-ID

Resource Lifecycle:
- httpx.AsyncClient is created at startup and stored in app.state
- The key-value store, archive client, page acquirer, preferences,
  speech factory and reader session are built on top of it
- Speech engines are stopped and the client is closed at shutdown
"""

import json
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fanreader.api.routes import create_api_router
from fanreader.config import get_settings
from fanreader.errors import ApiError, ApiErrorCode
from fanreader.logging import configure_logging, get_logger
from fanreader.middleware.request_id import RequestIDMiddleware
from fanreader.responses import (
    api_error_handler,
    error_response,
    http_exception_handler,
    unhandled_exception_handler,
)
from fanreader.services.archive_client import ArchiveClient
from fanreader.services.browser_fallback import (
    DisabledAcquirer,
    PageAcquirerBase,
    PlaywrightAcquirer,
)
from fanreader.services.cookie_store import CookieStore
from fanreader.services.preferences import PreferencesService
from fanreader.services.reader_session import ReaderSession
from fanreader.services.speech import SpeechEngineFactory, SpeechRelay
from fanreader.storage import KeyValueStoreBase, get_store

# Configure structured logging at import time
configure_logging()

logger = get_logger(__name__)


def create_lifespan(
    store: KeyValueStoreBase | None = None,
    acquirer: PageAcquirerBase | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
):
    """Build the lifespan handler.

    Args:
        store: Key-value store to use instead of the JSON file at STORE_PATH.
        acquirer: Page acquirer to use instead of the one chosen from settings.
        http_transport: Transport for the shared httpx client (for testing).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        app.state.settings = settings

        app.state.httpx_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout_s, connect=10.0),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            transport=http_transport,
        )

        kv = store if store is not None else get_store(settings.store_path)
        cookie_store = CookieStore(kv)

        app.state.archive_client = ArchiveClient(
            app.state.httpx_client,
            cookie_store,
            base_url=settings.normalized_base_url,
            session_cookie=settings.archive_session_cookie,
            user_agent=settings.archive_user_agent,
            timeout_s=settings.http_timeout_s,
        )

        if acquirer is not None:
            page_acquirer = acquirer
        elif settings.browser_fallback_enabled:
            page_acquirer = PlaywrightAcquirer(
                cookie_store,
                base_url=settings.normalized_base_url,
                timeout_ms=settings.browser_timeout_ms,
                user_agent=settings.archive_user_agent,
            )
        else:
            page_acquirer = DisabledAcquirer()

        app.state.preferences = PreferencesService(kv)
        app.state.speech_relay = SpeechRelay()
        speech_factory = SpeechEngineFactory(
            app.state.httpx_client,
            device_backend=app.state.speech_relay,
            audio_sink=app.state.speech_relay,
            gemini_api_key=settings.gemini_api_key,
            gemini_model=settings.gemini_tts_model,
        )
        app.state.reader_session = ReaderSession(
            app.state.archive_client,
            page_acquirer,
            app.state.preferences,
            speech_factory,
        )

        logger.info(
            "reader_initialized",
            archive_base_url=settings.normalized_base_url,
            acquirer=type(page_acquirer).__name__,
            gemini_configured=bool(settings.gemini_api_key),
        )

        yield

        await app.state.reader_session.close()
        await app.state.httpx_client.aclose()
        logger.info("httpx_client_closed")

    return lifespan


def create_app(
    store: KeyValueStoreBase | None = None,
    acquirer: PageAcquirerBase | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Optional key-value store (for testing).
        acquirer: Optional page acquirer (for testing).
        http_transport: Optional httpx transport (for testing).

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json)

    app = FastAPI(
        title="Fanreader API",
        description="Backend API for reading archive works with narration",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=create_lifespan(store, acquirer, http_transport),
    )

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors (including malformed JSON)."""
        return JSONResponse(
            status_code=400,
            content=error_response(ApiErrorCode.E_INVALID_REQUEST, "Invalid request"),
        )

    @app.middleware("http")
    async def catch_json_decode_errors(request: Request, call_next):
        """Catch JSON decode errors before they reach route handlers."""
        if request.method in ("POST", "PUT", "PATCH"):
            content_type = request.headers.get("content-type", "")
            if "application/json" in content_type:
                body = await request.body()
                if body:
                    try:
                        json.loads(body)
                    except json.JSONDecodeError:
                        return JSONResponse(
                            status_code=400,
                            content=error_response(
                                ApiErrorCode.E_INVALID_REQUEST, "Malformed JSON body"
                            ),
                        )
        return await call_next(request)

    # Use router factory to avoid import-time settings loading
    app.include_router(create_api_router())

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
