"""Tests for failure translation into `ModelScopeError`."""

import pytest
import requests

from conftest import FakeResponse
from modelscope_node.client.config import ERROR_MESSAGES
from modelscope_node.client.errors import (
    ErrorKind,
    ModelScopeError,
    error_from_exception,
    error_from_response,
    message_for_code,
    validate_model,
)


class TestStatusMapping:
    """Non-2xx responses without a machine-readable code"""

    def test_429_without_code_is_rate_limit(self):
        error = error_from_response(FakeResponse(429, None, reason="Too Many Requests"), "Task Status")

        assert error.message.startswith(ERROR_MESSAGES["RATE_LIMIT_EXCEEDED"])
        assert error.kind is ErrorKind.REMOTE
        assert error.status_code == 429

    def test_401_is_authentication(self):
        error = error_from_response(FakeResponse(401, {"message": "bad token"}), "API")

        assert error.message == ERROR_MESSAGES["INVALID_TOKEN"]
        assert error.kind is ErrorKind.AUTHENTICATION

    def test_400_includes_remote_message(self):
        error = error_from_response(FakeResponse(400, {"error": {"message": "size unsupported"}}), "API")

        assert error.message == f"{ERROR_MESSAGES['INVALID_PARAMETER']}: size unsupported"

    @pytest.mark.parametrize("status", [500, 501, 502, 503, 504, 599])
    def test_server_errors(self, status):
        error = error_from_response(FakeResponse(status, None), "API")

        assert error.message.startswith(ERROR_MESSAGES["INTERNAL_ERROR"])

    def test_unmapped_status_is_generic(self):
        error = error_from_response(FakeResponse(404, {"message": "no such task"}), "API")

        assert error.message == "API call failed (404): no such task"


class TestCodeMapping:
    """Machine-readable codes take precedence over status codes"""

    def test_code_wins_over_status(self):
        body = {"error": {"code": "QUOTA_EXCEEDED", "message": "daily limit"}}
        error = error_from_response(FakeResponse(429, body), "Image Generation")

        assert error.message == ERROR_MESSAGES["QUOTA_EXCEEDED"]
        assert error.code == "QUOTA_EXCEEDED"

    def test_invalid_token_code_is_authentication(self):
        body = {"error": {"code": "INVALID_TOKEN", "message": "expired"}}
        error = error_from_response(FakeResponse(400, body), "API")

        assert error.kind is ErrorKind.AUTHENTICATION

    def test_unknown_code_keeps_context_and_code(self):
        body = {"error": {"code": "SOMETHING_NEW", "message": "odd"}}
        error = error_from_response(FakeResponse(418, body), "Task Status")

        assert error.message == "ModelScope Task Status Error (418): odd [SOMETHING_NEW]"

    def test_message_for_unknown_code(self):
        assert message_for_code("NOPE") is None
        assert message_for_code("TASK_TIMEOUT") == ERROR_MESSAGES["TASK_TIMEOUT"]


class TestExceptionMapping:

    def test_timeout(self):
        error = error_from_exception(requests.Timeout("read timed out"), timeout_ms=30000)

        assert error.kind is ErrorKind.REQUEST_TIMEOUT
        assert "(30000ms)" in error.message

    def test_connection_error_keeps_transport_message(self):
        error = error_from_exception(requests.ConnectionError("connection refused"))

        assert error.kind is ErrorKind.NETWORK
        assert "connection refused" in error.message

    def test_existing_error_is_returned_unchanged(self):
        original = ModelScopeError("x", kind=ErrorKind.VALIDATION)

        assert error_from_exception(original) is original

    def test_other_exceptions_become_unknown(self):
        error = error_from_exception(KeyError("choices"))

        assert error.kind is ErrorKind.UNKNOWN


def test_validate_model():
    validate_model("Qwen/Qwen-Image", ["Qwen/Qwen-Image"])

    with pytest.raises(ModelScopeError) as excinfo:
        validate_model("acme/unknown", ["Qwen/Qwen-Image"])

    assert excinfo.value.kind is ErrorKind.VALIDATION
    assert "acme/unknown" in excinfo.value.message
