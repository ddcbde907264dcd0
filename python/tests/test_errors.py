"""Tests for error handling and response envelopes.

Verifies:
- Error envelope shape is correct
- Every error code maps to correct HTTP status
- Unknown exceptions return E_INTERNAL with 500
- Malformed JSON returns E_INVALID_REQUEST
- Archive and Gemini failures are logged with their upstream
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fanreader.errors import (
    ERROR_CODE_TO_STATUS,
    ApiError,
    ApiErrorCode,
    ArchiveNetworkError,
    AuthFailureError,
    ContentNotFoundError,
    InvalidRequestError,
    NotFoundError,
    SpeechError,
    TokenNotFoundError,
)
from fanreader import responses
from fanreader.responses import (
    api_error_handler,
    error_response,
    success_response,
    unhandled_exception_handler,
)
from tests.helpers import RecordingLogger


class TestErrorResponse:
    """Tests for error response envelope format."""

    def test_error_response_has_correct_shape(self):
        """Error response contains error object with code and message."""
        response = error_response(ApiErrorCode.E_NOT_FOUND, "Resource not found")

        assert response["error"]["code"] == "E_NOT_FOUND"
        assert response["error"]["message"] == "Resource not found"

    def test_error_response_code_is_string(self):
        """Error code in response is a string, not enum."""
        response = error_response(ApiErrorCode.E_AUTH_FAILED, "Login failed")

        assert isinstance(response["error"]["code"], str)

    def test_error_response_includes_explicit_request_id(self):
        response = error_response(ApiErrorCode.E_INTERNAL, "boom", request_id="req-1")

        assert response["error"]["request_id"] == "req-1"


class TestSuccessResponse:
    """Tests for success response envelope format."""

    def test_success_response_has_data_key(self):
        response = success_response({"url": "x"})

        assert response == {"data": {"url": "x"}}

    def test_success_response_with_list(self):
        response = success_response([1, 2])

        assert response["data"] == [1, 2]


class TestErrorCodeMapping:
    """Every error code has a status."""

    def test_every_code_has_status(self):
        for code in ApiErrorCode:
            assert code in ERROR_CODE_TO_STATUS, f"{code} missing status"

    @pytest.mark.parametrize(
        ("exc", "code", "status"),
        [
            (TokenNotFoundError(), ApiErrorCode.E_TOKEN_NOT_FOUND, 502),
            (AuthFailureError(), ApiErrorCode.E_AUTH_FAILED, 401),
            (ArchiveNetworkError(), ApiErrorCode.E_NETWORK, 502),
            (ContentNotFoundError(), ApiErrorCode.E_CONTENT_NOT_FOUND, 404),
            (InvalidRequestError(), ApiErrorCode.E_INVALID_REQUEST, 400),
            (NotFoundError(), ApiErrorCode.E_NOT_FOUND, 404),
            (SpeechError(), ApiErrorCode.E_SPEECH_FAILED, 502),
            (
                SpeechError(ApiErrorCode.E_SPEECH_NOT_CONFIGURED, "no key"),
                ApiErrorCode.E_SPEECH_NOT_CONFIGURED,
                400,
            ),
        ],
    )
    def test_error_classes_carry_code_and_status(self, exc, code, status):
        assert exc.code == code
        assert exc.status_code == status

    def test_chapter_out_of_range_is_client_error(self):
        assert ERROR_CODE_TO_STATUS[ApiErrorCode.E_CHAPTER_OUT_OF_RANGE] == 400

    def test_no_active_work_is_conflict(self):
        assert ERROR_CODE_TO_STATUS[ApiErrorCode.E_NO_ACTIVE_WORK] == 409


def _app_raising(exc: Exception) -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/boom")
    async def boom():
        raise exc

    return app


class TestExceptionHandlers:
    """Exception handlers produce error envelopes."""

    def test_api_error_uses_code_status(self):
        client = TestClient(_app_raising(ContentNotFoundError()))

        response = client.get("/boom")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_CONTENT_NOT_FOUND"

    def test_unhandled_exception_returns_internal(self):
        client = TestClient(_app_raising(RuntimeError("secret detail")), raise_server_exceptions=False)

        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "E_INTERNAL"
        assert "secret detail" not in response.text

    @pytest.mark.parametrize(
        ("exc", "upstream"),
        [
            (ArchiveNetworkError(), "archive"),
            (TokenNotFoundError(), "archive"),
            (SpeechError(), "gemini"),
        ],
    )
    def test_upstream_failures_logged_with_source(self, monkeypatch, exc, upstream):
        log = RecordingLogger()
        monkeypatch.setattr(responses, "logger", log)
        client = TestClient(_app_raising(exc))

        response = client.get("/boom")

        assert response.status_code == 502
        [(level, fields)] = log.events("upstream_failed")
        assert level == "warning"
        assert fields["upstream"] == upstream
        assert fields["code"] == exc.code.value

    def test_client_errors_not_logged(self, monkeypatch):
        log = RecordingLogger()
        monkeypatch.setattr(responses, "logger", log)
        client = TestClient(_app_raising(InvalidRequestError()))

        assert client.get("/boom").status_code == 400
        assert log.entries == []


class TestAppErrorHandling:
    """Error handling wired into the real app."""

    def test_malformed_json_returns_invalid_request(self, client):
        response = client.post(
            "/reader/open",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    def test_validation_error_returns_invalid_request(self, client):
        response = client.post("/reader/open", json={"link": "x"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    def test_unknown_route_returns_not_found(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_NOT_FOUND"

    def test_wrong_method_returns_invalid_request(self, client):
        response = client.get("/reader/next")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"
