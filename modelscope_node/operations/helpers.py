"""Shared helpers for adapter operations.

Architectural role:
    Parameter extraction, local validation and failure tracking reused by the
    chat, vision and text-to-image operations.

Validation strategy:
    Every non-blank constraint (messages, prompt, image URL, binary payload) is
    checked here before the remote API is called, even when the host already
    validated its form input.

Error handling strategy:
    `track_operation` times an operation, logs duration and outcome on failure
    and re-raises the failure normalized to `ModelScopeError`.
"""

import base64
import binascii
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field

from pydantic import ValidationError

from modelscope_node.client import ModelScopeClient
from modelscope_node.client.config import (
    ERROR_MESSAGES,
    MESSAGE_TEMPLATES,
    STRICT_MODEL_CHECK,
    SUPPORTED_MODELS,
)
from modelscope_node.client.errors import error_from_exception, validate_model, validation_error
from modelscope_node.operations.params import ChatParams, ImageParams, VisionParams

logger = logging.getLogger(__name__)


@dataclass
class OperationItem:
    """One host input item.

    Attributes:
        params: Scalar host parameters for the operation.
        binary: Binary attachments keyed by property name. Each entry holds
            `bytes` (raw) or `data` (base64) plus an optional `mime_type`.
    """

    params: dict = field(default_factory=dict)
    binary: dict = field(default_factory=dict)


@dataclass
class ImagePayload:
    """Resolved image reference for a vision request."""

    url: str
    source: str
    binary_property: str = ""
    mime_type: str = ""
    size_bytes: int = 0


# ============================================================
# Timing
# ============================================================

def elapsed_seconds(started: float) -> int:
    """Whole seconds since the monotonic timestamp `started`."""
    return round(time.monotonic() - started)


@contextmanager
def track_operation(label: str):
    """Time an operation and normalize any failure it raises.

    Yields:
        Monotonic start timestamp.

    Raises:
        ModelScopeError: Every exception escaping the block, after logging.
    """
    started = time.monotonic()
    try:
        yield started
    except Exception as err:
        error = error_from_exception(err)
        logger.error(
            "%s failed - elapsed: %ss, error: %s", label, elapsed_seconds(started), error.message
        )
        if error is err:
            raise
        raise error from err


# ============================================================
# Client
# ============================================================

def get_client(credentials) -> ModelScopeClient:
    """Build an API client from host credentials.

    Args:
        credentials: Mapping with an `accessToken` (or `access_token`) entry.
    """
    credentials = credentials or {}
    token = credentials.get("accessToken") or credentials.get("access_token") or ""
    return ModelScopeClient(token)


# ============================================================
# Parameter extraction
# ============================================================

def _parse(schema, params):
    try:
        return schema.model_validate(params or {})
    except ValidationError as err:
        raise validation_error(f"{ERROR_MESSAGES['INVALID_PARAMETER']}: {err}") from err


def extract_chat_params(params) -> ChatParams:
    return _parse(ChatParams, params)


def extract_vision_params(params) -> VisionParams:
    return _parse(VisionParams, params)


def extract_image_params(params) -> ImageParams:
    return _parse(ImageParams, params)


def extract_messages(chat_params: ChatParams) -> list[dict]:
    """Return role/content message dicts with the selected template applied.

    Non-`custom` templates prefix the first non-blank, non-system message.
    """
    template = chat_params.message_template
    if template not in MESSAGE_TEMPLATES:
        raise validation_error(
            f"{ERROR_MESSAGES['INVALID_PARAMETER']}: unknown message template {template!r}"
        )

    messages = [{"role": m.role, "content": m.content} for m in chat_params.messages]

    prefix = MESSAGE_TEMPLATES[template]
    if prefix:
        for message in messages:
            if message["role"] != "system" and message["content"].strip():
                message["content"] = f"{prefix}{message['content']}"
                break

    return messages


# ============================================================
# Validation
# ============================================================

def validate_messages(messages) -> None:
    """Require at least one message with non-blank string content."""
    if not messages or not any(
        isinstance(m.get("content"), str) and m["content"].strip() for m in messages
    ):
        raise validation_error(ERROR_MESSAGES["EMPTY_MESSAGES"])


def validate_prompt(prompt) -> None:
    if not prompt or not prompt.strip():
        raise validation_error(ERROR_MESSAGES["EMPTY_PROMPT"])


def validate_image_url(image_url) -> None:
    if not image_url or not image_url.strip():
        raise validation_error(ERROR_MESSAGES["EMPTY_IMAGE_URL"])


def check_model(model, model_type) -> None:
    """Reject models outside the bundled catalogue when strict checking is on."""
    if STRICT_MODEL_CHECK:
        validate_model(model, SUPPORTED_MODELS[model_type])


# ============================================================
# Vision input
# ============================================================

def resolve_image(vision_params: VisionParams, item: OperationItem) -> ImagePayload:
    """Resolve the vision image either from a URL or a binary attachment.

    Binary attachments become `data:<mime>;base64,<data>` URLs.

    Raises:
        ModelScopeError: Validation kind for a blank URL, missing binary data
            or `bytes` that are not raw bytes.
    """
    if vision_params.image_source != "binary":
        validate_image_url(vision_params.image_url)
        return ImagePayload(url=vision_params.image_url, source="url")

    name = vision_params.binary_property_name
    binary = (item.binary or {}).get(name)
    if not binary:
        raise validation_error(f"Binary data not found: {name}")

    mime_type = str(binary.get("mime_type") or binary.get("mimeType") or "image/png")

    if binary.get("bytes") is not None:
        raw = binary["bytes"]
        if not isinstance(raw, (bytes, bytearray)):
            raise validation_error(f"Binary bytes must be raw bytes, send base64 text as data: {name}")
        encoded = base64.b64encode(raw).decode("ascii")
        size_bytes = len(raw)
    elif binary.get("data"):
        encoded = str(binary["data"])
        try:
            size_bytes = len(base64.b64decode(encoded, validate=True))
        except (binascii.Error, ValueError) as err:
            raise validation_error(f"Binary data is not valid base64: {name}") from err
    else:
        raise validation_error(f"Binary data has no data field: {name}")

    return ImagePayload(
        url=f"data:{mime_type};base64,{encoded}",
        source="binary",
        binary_property=name,
        mime_type=mime_type,
        size_bytes=size_bytes,
    )
