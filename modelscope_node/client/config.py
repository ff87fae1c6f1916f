"""Endpoint, polling and credential configuration for the ModelScope client.

Architectural role:
    Centralizes remote endpoint settings, request timeouts, polling constants,
    supported model catalogues and user-facing error texts for
    `modelscope_node.client` and `modelscope_node.operations`.

Call flow integration:
    - `api_client.ModelScopeClient` consumes `API_BASE_URL`, header constants and
      `DEFAULT_REQUEST_TIMEOUT_MS` through `ClientConfig`.
    - `operations.poller` consumes the `POLL_*` constants.
    - `operations.helpers` consumes `SUPPORTED_MODELS` and `MESSAGE_TEMPLATES`.

Determinism:
    Deterministic for a fixed process environment and key file. Values are
    resolved at import time (plus runtime key-file reads in `load_access_token`).

Failure behavior:
    Missing key material is represented as `None`; `ClientConfig.from_token`
    turns a blank token into an authentication error before any network call.
"""

import os
from dataclasses import dataclass
from enum import Enum

from dotenv import load_dotenv

load_dotenv()


# ============================================================
# Remote API
# ============================================================

API_BASE_URL = os.getenv("MODELSCOPE_BASE_URL", "https://api-inference.modelscope.cn/v1")

AUTHORIZATION_PREFIX = "Bearer "
CONTENT_TYPE = "application/json"
ASYNC_MODE_HEADER = "X-ModelScope-Async-Mode"
TASK_TYPE_HEADER = "X-ModelScope-Task-Type"
TASK_TYPE_IMAGE_GENERATION = "image_generation"

DEFAULT_REQUEST_TIMEOUT_MS = int(os.getenv("MODELSCOPE_TIMEOUT_MS", "30000"))

# Default key file consulted when no token is passed explicitly.
DEFAULT_KEY_FILE = "config/modelscope.key"

# Operations reject models outside `SUPPORTED_MODELS` only when enabled.
STRICT_MODEL_CHECK = os.getenv("MODELSCOPE_STRICT_MODELS", "false").lower() == "true"


# ============================================================
# Polling
# ============================================================

POLL_DEFAULT_INTERVAL_MS = 5000
POLL_MAX_INTERVAL_MS = 15000
POLL_INTERVAL_MULTIPLIER = 1.3
POLL_ATTEMPTS_PER_MINUTE = 12

DEFAULT_GUIDANCE_SCALE = 7.5


# ============================================================
# Model catalogue
# ============================================================

class ModelType(str, Enum):
    """Model families exposed by the host operations."""

    LLM = "llm"
    VISION = "vision"
    IMAGE = "image"


SUPPORTED_MODELS = {
    ModelType.LLM: [
        "ZhipuAI/GLM-5",
        "MiniMax/MiniMax-M2.5",
        "moonshotai/Kimi-K2.5",
        "Qwen/Qwen3.5-397B-A17B",
        "ZhipuAI/GLM-4.7-Flash",
        "deepseek-ai/DeepSeek-V3.2",
        "deepseek-ai/DeepSeek-R1-0528",
        "XiaomiMiMo/MiMo-V2-Flash",
        "Qwen/Qwen3-235B-A22B-Instruct-2507",
        "Qwen/Qwen3-235B-A22B-Thinking-2507",
        "Qwen/Qwen3-Next-80B-A3B-Instruct",
        "Qwen/Qwen3-Coder-480B-A35B-Instruct",
        "Qwen/Qwen3-Next-80B-A3B-Thinking",
    ],
    ModelType.VISION: [
        "Qwen/Qwen3-VL-235B-A22B-Instruct",
        "Qwen/Qwen3-VL-30B-A3B-Instruct",
    ],
    ModelType.IMAGE: [
        "Qwen/Qwen-Image",
        "Qwen/Qwen-Image-2512",
        "Tongyi-MAI/Z-Image-Turbo",
    ],
}

DEFAULT_MODELS = {
    ModelType.LLM: "ZhipuAI/GLM-5",
    ModelType.VISION: "Qwen/Qwen3-VL-235B-A22B-Instruct",
    ModelType.IMAGE: "Qwen/Qwen-Image",
}

IMAGE_SIZE_OPTIONS = [
    "1024x1024",
    "1024x768",
    "768x1024",
    "1152x896",
    "896x1152",
]

# Prefix templates applied to the first non-system chat message.
MESSAGE_TEMPLATES = {
    "custom": None,
    "code": "Please generate code for the following feature: ",
    "analysis": "Please analyse the following text: ",
    "translation": "Please translate the following content into Chinese: ",
}


def get_model_type(model_id: str) -> ModelType | None:
    """Return the catalogue family of `model_id`, or `None` when unknown."""
    for model_type, models in SUPPORTED_MODELS.items():
        if model_id in models:
            return model_type
    return None


# ============================================================
# Error texts
# ============================================================

ERROR_MESSAGES = {
    "INVALID_TOKEN": "Authentication failed: API token is invalid or expired",
    "QUOTA_EXCEEDED": "Quota exhausted, upgrade the plan or wait for the daily reset",
    "RATE_LIMIT_EXCEEDED": "Request rate limit exceeded, please retry later",
    "MODEL_NOT_AVAILABLE": "Model is unavailable or does not exist",
    "TASK_TIMEOUT": "Task processing timed out",
    "INVALID_PARAMETER": "Invalid request parameter",
    "INTERNAL_ERROR": "Internal server error",
    "NETWORK_ERROR": "Network request failed",
    "EMPTY_TOKEN": "Authentication failed: no ModelScope access token configured",
    "EMPTY_MESSAGES": "At least one non-empty message is required",
    "EMPTY_PROMPT": "Prompt must not be empty",
    "EMPTY_IMAGE_URL": "Image URL must not be empty",
}


# ============================================================
# Credentials
# ============================================================

def load_access_token(path=DEFAULT_KEY_FILE):
    """Load the ModelScope access token from environment or key file.

    Resolution order:
        1. `MODELSCOPE_ACCESS_TOKEN` environment variable.
        2. Raw file contents at `path`.

    Args:
        path: Key file path or `None`.

    Returns:
        Token string or `None` when not available.
    """
    env_value = os.getenv("MODELSCOPE_ACCESS_TOKEN")
    if env_value:
        return env_value
    if not path or not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip()


@dataclass(frozen=True)
class ClientConfig:
    """Immutable per-client settings shared read-only across calls.

    Attributes:
        access_token: Bearer credential attached to every request.
        base_url: API root without trailing slash.
        timeout_ms: Default per-call deadline in milliseconds.
    """

    access_token: str
    base_url: str = API_BASE_URL
    timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS

    @classmethod
    def from_token(cls, access_token, base_url=None, timeout_ms=None) -> "ClientConfig":
        """Build a config, failing fast on a missing or blank token."""
        # Imported here to keep `errors` free to import config constants.
        from modelscope_node.client.errors import ErrorKind, ModelScopeError

        if not access_token or not str(access_token).strip():
            raise ModelScopeError(ERROR_MESSAGES["EMPTY_TOKEN"], kind=ErrorKind.AUTHENTICATION)

        return cls(
            access_token=str(access_token).strip(),
            base_url=(base_url or API_BASE_URL).rstrip("/"),
            timeout_ms=timeout_ms or DEFAULT_REQUEST_TIMEOUT_MS,
        )
