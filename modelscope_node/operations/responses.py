"""Output record builders for adapter operations.

Response formatting:
    - Chat and vision records copy the remote completion envelope and add
      `status`, `processing_time`, token counts and `completed_at`.
    - Image records describe the finished task (`task_id`, `images`,
      `attempts_used`) and echo the generation parameters.
    - Streaming chat returns a `{"stream": True, "response": ...}` marker.

Determinism considerations:
    Timestamps come from the wall clock (UTC, ISO 8601); processing times from
    the monotonic start timestamp handed in by the caller.
"""

from datetime import datetime, timezone

from modelscope_node.operations.helpers import elapsed_seconds


def utc_timestamp() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and `Z` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_processing_time(seconds) -> str:
    return f"{seconds}s"


def _completion_envelope(response: dict, started: float) -> dict:
    usage = response.get("usage") or {}

    return {
        "id": response.get("id"),
        "object": response.get("object"),
        "created": response.get("created"),
        "model": response.get("model"),
        "choices": response.get("choices") or [],
        "usage": usage,
        "status": "completed",
        "processing_time": format_processing_time(elapsed_seconds(started)),
        "input_tokens": usage.get("prompt_tokens") or 0,
        "output_tokens": usage.get("completion_tokens") or 0,
        "total_tokens": usage.get("total_tokens") or 0,
        "completed_at": utc_timestamp(),
    }


def build_chat_completion_response(response: dict, started: float) -> dict:
    """Shape a chat completion object into the host output record."""
    return _completion_envelope(response, started)


def build_vision_chat_response(response: dict, image, started: float) -> dict:
    """Shape a vision completion object, adding image provenance fields.

    Args:
        response: Remote completion object.
        image: `ImagePayload` used for the request.
        started: Monotonic start timestamp.
    """
    result = _completion_envelope(response, started)
    is_binary = image.source == "binary"
    result.update({
        "image_url": "" if is_binary else image.url,
        "image_source": image.source,
        "image_binary_property": image.binary_property if is_binary else "",
        "image_mime_type": image.mime_type if is_binary else "",
        "image_bytes": image.size_bytes if is_binary else 0,
    })
    return result


def build_image_response(task_id, task_status, image_params, started: float, attempts: int) -> dict:
    """Shape a succeeded task observation into the host output record.

    Args:
        task_id: Remote task identifier.
        task_status: Terminal `TaskStatus` observation.
        image_params: `ImageParams` the task was submitted with.
        started: Monotonic start timestamp of the operation.
        attempts: Zero-based index of the poll that observed success.
    """
    return {
        "task_id": task_id,
        "status": "completed",
        "progress": 100,
        "model": image_params.model,
        "prompt": image_params.prompt,
        "negative_prompt": image_params.negative_prompt,
        "size": image_params.size,
        "steps": image_params.steps,
        "images": list(task_status.output_images or []),
        "created_at": utc_timestamp(),
        "processing_time": format_processing_time(elapsed_seconds(started)),
        "attempts_used": attempts + 1,
    }


def build_stream_response(response) -> dict:
    """Mark a streamed completion; the chunk iterator is passed through as is."""
    return {"stream": True, "response": response}


def build_error_response(error, started: float) -> dict:
    """Per-item failure record used when the host continues on failure."""
    return {
        "error": getattr(error, "message", None) or str(error),
        "processing_time": format_processing_time(elapsed_seconds(started)),
    }
