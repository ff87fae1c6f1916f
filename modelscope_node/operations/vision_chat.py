"""`vision/visionChat` operation.

Request lifecycle:
    params -> image resolution (URL or binary data URL) -> prompt validation ->
    single user message with text + image_url parts -> client call -> record.

Input validation behavior:
    - `url` source: blank URL is rejected.
    - `binary` source: missing attachment or missing data is rejected.
    - Blank prompt is rejected in both modes.
"""

import logging

from modelscope_node.client.config import ModelType
from modelscope_node.operations.helpers import (
    check_model,
    extract_vision_params,
    resolve_image,
    track_operation,
    validate_prompt,
)
from modelscope_node.operations.responses import build_vision_chat_response

logger = logging.getLogger(__name__)


def build_vision_messages(prompt, image_url) -> list[dict]:
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image_url}},
            ],
        }
    ]


def execute_vision_chat(client, item) -> dict:
    """Ask a vision model about one image."""
    with track_operation("Vision chat") as started:
        params = extract_vision_params(item.params)
        image = resolve_image(params, item)
        validate_prompt(params.prompt)
        check_model(params.model, ModelType.VISION)

        if image.source == "binary":
            logger.info(
                "Starting vision chat - model: %s, image: binary.%s, %d bytes",
                params.model, image.binary_property, image.size_bytes,
            )
        else:
            logger.info("Starting vision chat - model: %s, image: %s...", params.model, image.url[:50])

        response = client.chat_completion(
            params.model,
            build_vision_messages(params.prompt, image.url),
            temperature=params.temperature,
            max_tokens=params.max_tokens,
        )

        result = build_vision_chat_response(response, image, started)
        logger.info(
            "Vision chat finished - elapsed: %s, tokens: %s",
            result["processing_time"], result["total_tokens"],
        )
        return result
