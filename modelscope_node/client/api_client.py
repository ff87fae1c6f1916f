"""HTTP transport client for the ModelScope API-Inference service.

Architectural role:
    Translates the three logical remote operations into authenticated HTTP
    calls and normalizes every failure into `ModelScopeError`.

Remote operations:
    - `chat_completion`  -> `POST {base}/chat/completions`
    - `generate_image`   -> `POST {base}/images/generations` (async mode)
    - `get_task_status`  -> `GET  {base}/tasks/{task_id}`

Construction:
    Configuration and the token check happen eagerly in `__init__`; the
    underlying `requests.Session` is created on first use.

Retry behavior:
    No retry loop is implemented. Each HTTP call is attempted once with the
    configured per-call deadline (default 30s).

Streaming:
    With `stream=True` chat completion returns a generator of decoded SSE chunk
    objects. Chunks are not merged or interpreted.

Failure handling model:
    Timeouts, transport failures and non-2xx responses raise `ModelScopeError`;
    each call logs its duration and outcome first.
"""

import json
import logging
import time

import requests

from modelscope_node.client.config import (
    ASYNC_MODE_HEADER,
    AUTHORIZATION_PREFIX,
    CONTENT_TYPE,
    TASK_TYPE_HEADER,
    TASK_TYPE_IMAGE_GENERATION,
    ClientConfig,
)
from modelscope_node.client.errors import (
    error_from_exception,
    error_from_response,
    validation_error,
)
from modelscope_node.client.types import ImageSubmission, TaskStatus

logger = logging.getLogger(__name__)


def _compact(payload: dict) -> dict:
    """Drop `None` values so optional fields are omitted from the JSON body."""
    return {key: value for key, value in payload.items() if value is not None}


class ModelScopeClient:
    """Authenticated client for chat, image submission and task status calls."""

    def __init__(self, access_token, base_url=None, timeout_ms=None, session=None):
        """Build the client configuration.

        Args:
            access_token: ModelScope bearer token; blank values fail immediately.
            base_url: Optional API root override.
            timeout_ms: Optional default per-call deadline in milliseconds.
            session: Optional pre-built `requests.Session` (used by tests).

        Raises:
            ModelScopeError: Authentication kind when the token is missing.
        """
        self.config = ClientConfig.from_token(access_token, base_url, timeout_ms)
        self._session = session

    @property
    def session(self) -> requests.Session:
        """Lazily construct the HTTP session on first request."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({
                "Authorization": f"{AUTHORIZATION_PREFIX}{self.config.access_token}",
                "Content-Type": CONTENT_TYPE,
            })
        return self._session

    # ============================================================
    # Transport
    # ============================================================

    def _request(self, method, path, context, timeout_ms=None, headers=None, payload=None, stream=False):
        """Issue one HTTP call and return the successful response.

        Raises:
            ModelScopeError: On timeout, transport failure or non-2xx status.
        """
        timeout_ms = timeout_ms or self.config.timeout_ms
        url = f"{self.config.base_url}{path}"
        started = time.monotonic()

        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                json=payload,
                timeout=timeout_ms / 1000,
                stream=stream,
            )
        except requests.RequestException as err:
            elapsed = time.monotonic() - started
            error = error_from_exception(err, timeout_ms=timeout_ms)
            logger.error("%s %s failed after %.2fs: %s", method, path, elapsed, error.message)
            raise error from err

        elapsed = time.monotonic() - started

        if not response.ok:
            error = error_from_response(response, context)
            response.close()
            logger.error(
                "%s %s returned %s after %.2fs: %s",
                method, path, response.status_code, elapsed, error.message,
            )
            raise error

        logger.debug("%s %s -> %s in %.2fs", method, path, response.status_code, elapsed)
        return response

    # ============================================================
    # Remote operations
    # ============================================================

    def chat_completion(self, model, messages, temperature=None, max_tokens=None, stream=False, timeout_ms=None):
        """Run a chat completion.

        Args:
            model: Model identifier.
            messages: Ordered role/content message dicts.
            temperature: Optional sampling temperature.
            max_tokens: Optional completion token limit.
            stream: Request an SSE stream instead of a single object.
            timeout_ms: Optional per-call deadline override.

        Returns:
            Completion object dict, or a generator of chunk dicts when streaming.
        """
        payload = _compact({
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": True if stream else None,
        })

        response = self._request(
            "POST",
            "/chat/completions",
            "Chat Completion",
            timeout_ms=timeout_ms,
            payload=payload,
            stream=stream,
        )

        if stream:
            return self._iter_stream(response, timeout_ms or self.config.timeout_ms)

        return response.json()

    def _iter_stream(self, response, timeout_ms):
        """Yield decoded chunk objects from an OpenAI-compatible SSE stream."""
        with response:
            response.encoding = "utf-8"
            try:
                for line in response.iter_lines(decode_unicode=True):
                    if not line:
                        continue
                    if line.startswith("data: "):
                        line = line[6:]
                    if line.strip() == "[DONE]":
                        break
                    try:
                        yield json.loads(line)
                    except ValueError:
                        logger.debug("Skipping undecodable stream line: %r", line)
            except requests.RequestException as err:
                error = error_from_exception(err, timeout_ms=timeout_ms)
                logger.error("Chat completion stream interrupted: %s", error.message)
                raise error from err

    def generate_image(
        self,
        model,
        prompt,
        negative_prompt=None,
        size=None,
        steps=None,
        guidance_scale=None,
        timeout_ms=None,
    ) -> ImageSubmission:
        """Submit an async text-to-image job.

        Returns:
            `ImageSubmission` carrying the remote task id.

        Raises:
            ModelScopeError: Validation kind when the service returns no task id.
        """
        payload = _compact({
            "model": model,
            "prompt": prompt,
            "negative_prompt": negative_prompt or None,
            "size": size,
            "num_inference_steps": steps,
            "guidance_scale": guidance_scale,
        })

        response = self._request(
            "POST",
            "/images/generations",
            "Image Generation",
            timeout_ms=timeout_ms,
            headers={ASYNC_MODE_HEADER: "true"},
            payload=payload,
        )

        submission = ImageSubmission.from_payload(response.json())
        if not submission.task_id:
            raise validation_error("Task submission failed: no task ID returned")

        return submission

    def get_task_status(self, task_id, timeout_ms=None) -> TaskStatus:
        """Read the current status of an image-generation task (read-only)."""
        response = self._request(
            "GET",
            f"/tasks/{task_id}",
            "Task Status",
            timeout_ms=timeout_ms,
            headers={TASK_TYPE_HEADER: TASK_TYPE_IMAGE_GENERATION},
        )
        return TaskStatus.from_payload(response.json())
