"""Error taxonomy and translation for ModelScope API calls.

Architectural role:
    Normalizes every failure raised by the client or the operations into a
    single `ModelScopeError` carrying a human-readable message and a `kind`.

Translation order for non-2xx responses:
    1. Machine-readable `error.code` from the response body (when mapped).
    2. HTTP status code (401, 429, 400, any 5xx).
    3. Generic "API call failed (<status>)" text.

Transport failures:
    - `requests.Timeout` -> `REQUEST_TIMEOUT` (per-call deadline exceeded).
    - `requests.ConnectionError` -> `NETWORK` with the transport message.

Determinism:
    Pure mapping functions; output depends only on the given response/exception.
"""

from enum import Enum

import requests

from modelscope_node.client.config import ERROR_MESSAGES


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""

    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    REMOTE = "remote"
    NETWORK = "network"
    REQUEST_TIMEOUT = "request_timeout"
    POLL_TIMEOUT = "poll_timeout"
    TASK_FAILED = "task_failed"
    UNKNOWN = "unknown"


class ModelScopeError(Exception):
    """Single exception type raised by the adapter.

    Attributes:
        message: Human-readable failure text.
        kind: `ErrorKind` category.
        status_code: HTTP status for remote rejections, else `None`.
        code: Remote machine-readable error code, else `None`.
    """

    def __init__(self, message, kind=ErrorKind.UNKNOWN, status_code=None, code=None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.code = code

    def __repr__(self):
        return f"ModelScopeError(kind={self.kind.value!r}, message={self.message!r})"


ERROR_CODES = (
    "INVALID_TOKEN",
    "QUOTA_EXCEEDED",
    "RATE_LIMIT_EXCEEDED",
    "MODEL_NOT_AVAILABLE",
    "TASK_TIMEOUT",
    "INVALID_PARAMETER",
    "INTERNAL_ERROR",
)


def message_for_code(code):
    """Return the fixed message for a known remote error code, else `None`."""
    if code in ERROR_CODES:
        return ERROR_MESSAGES[code]
    return None


def _parse_error_body(response):
    """Extract `(message, code)` from an error response body.

    Accepts both `{"error": {"code", "message"}}` and `{"message": ...}` shapes.
    Falls back to the reason phrase when the body is not JSON.
    """
    message = response.reason or ""
    code = None

    try:
        data = response.json()
    except ValueError:
        return message, code

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("message") or data.get("message") or message
            code = error.get("code")
        else:
            message = data.get("message") or message

    return message, code


def error_for_status(status, message):
    """Map an HTTP status code to a `ModelScopeError`."""
    if status == 401:
        return ModelScopeError(
            ERROR_MESSAGES["INVALID_TOKEN"], kind=ErrorKind.AUTHENTICATION, status_code=status
        )
    if status == 429:
        detail = message or "retry later or check the daily quota"
        return ModelScopeError(
            f"{ERROR_MESSAGES['RATE_LIMIT_EXCEEDED']}: {detail}",
            kind=ErrorKind.REMOTE,
            status_code=status,
        )
    if status == 400:
        return ModelScopeError(
            f"{ERROR_MESSAGES['INVALID_PARAMETER']}: {message}",
            kind=ErrorKind.REMOTE,
            status_code=status,
        )
    if 500 <= status < 600:
        return ModelScopeError(
            f"{ERROR_MESSAGES['INTERNAL_ERROR']}, please retry later",
            kind=ErrorKind.REMOTE,
            status_code=status,
        )
    return ModelScopeError(
        f"API call failed ({status}): {message or 'no error details'}",
        kind=ErrorKind.REMOTE,
        status_code=status,
    )


def error_from_response(response, context):
    """Translate a non-2xx `requests.Response` into a `ModelScopeError`.

    Args:
        response: Failed HTTP response.
        context: Operation label used in the message (e.g. "Image Generation").

    Returns:
        `ModelScopeError`; error-code mapping takes precedence over status mapping.
    """
    message, code = _parse_error_body(response)
    status = response.status_code

    specific = message_for_code(code)
    if specific:
        kind = ErrorKind.AUTHENTICATION if code == "INVALID_TOKEN" else ErrorKind.REMOTE
        return ModelScopeError(specific, kind=kind, status_code=status, code=code)

    if code:
        suffix = f" [{code}]"
        return ModelScopeError(
            f"ModelScope {context} Error ({status}): {message}{suffix}",
            kind=ErrorKind.REMOTE,
            status_code=status,
            code=code,
        )

    return error_for_status(status, message)


def error_from_exception(err, timeout_ms=None):
    """Normalize any exception into a `ModelScopeError`.

    Args:
        err: Exception raised while calling the API or running an operation.
        timeout_ms: Deadline in effect, reported for request timeouts.

    Returns:
        `err` itself when it is already a `ModelScopeError`, otherwise a new one.
    """
    if isinstance(err, ModelScopeError):
        return err

    if isinstance(err, requests.Timeout):
        deadline = f" ({timeout_ms}ms)" if timeout_ms else ""
        return ModelScopeError(
            f"{ERROR_MESSAGES['TASK_TIMEOUT']}{deadline}: {err}",
            kind=ErrorKind.REQUEST_TIMEOUT,
        )

    if isinstance(err, requests.ConnectionError):
        return ModelScopeError(
            f"{ERROR_MESSAGES['NETWORK_ERROR']}: {err}",
            kind=ErrorKind.NETWORK,
        )

    if isinstance(err, requests.HTTPError) and err.response is not None:
        return error_from_response(err.response, "API")

    return ModelScopeError(str(err) or err.__class__.__name__, kind=ErrorKind.UNKNOWN)


def validation_error(message):
    """Build a locally raised validation failure."""
    return ModelScopeError(message, kind=ErrorKind.VALIDATION)


def validate_model(model, supported_models):
    """Raise a validation error when `model` is not in `supported_models`."""
    if model not in supported_models:
        raise ModelScopeError(
            f"{ERROR_MESSAGES['MODEL_NOT_AVAILABLE']}: {model}",
            kind=ErrorKind.VALIDATION,
            code="MODEL_NOT_AVAILABLE",
        )
