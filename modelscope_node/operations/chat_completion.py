"""`llm/chatCompletion` operation.

Request lifecycle:
    params -> messages (template applied) -> validation -> client call ->
    output record (or stream marker).
"""

import logging

from modelscope_node.client.config import ModelType
from modelscope_node.operations.helpers import (
    check_model,
    extract_chat_params,
    extract_messages,
    track_operation,
    validate_messages,
)
from modelscope_node.operations.responses import build_chat_completion_response, build_stream_response

logger = logging.getLogger(__name__)


def execute_chat_completion(client, item) -> dict:
    """Run one chat completion for a host item.

    Args:
        client: `ModelScopeClient` bound to the host credentials.
        item: `OperationItem` carrying chat parameters.

    Returns:
        Output record, or `{"stream": True, "response": <chunk iterator>}`.
    """
    with track_operation("Chat completion") as started:
        params = extract_chat_params(item.params)
        messages = extract_messages(params)
        validate_messages(messages)
        check_model(params.model, ModelType.LLM)

        logger.info("Starting chat completion - model: %s, messages: %d", params.model, len(messages))

        response = client.chat_completion(
            params.model,
            messages,
            temperature=params.temperature,
            max_tokens=params.max_tokens,
            stream=params.stream,
        )

        if params.stream:
            return build_stream_response(response)

        result = build_chat_completion_response(response, started)
        logger.info(
            "Chat completion finished - elapsed: %s, tokens: %s",
            result["processing_time"], result["total_tokens"],
        )
        return result
