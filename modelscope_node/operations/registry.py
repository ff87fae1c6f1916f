"""Dispatch table mapping `(resource, operation)` to operation functions.

Architectural role:
    Replaces host-driven dynamic dispatch with an explicit table. The table is
    checked against the declared operations at import time, so a missing or
    stray entry fails on startup rather than on first use.

Item processing:
    `run_items` builds one client per batch, runs items sequentially and either
    aborts on the first failure or, with `continue_on_fail`, records a
    per-item error record and continues.
"""

import logging
import time
from enum import Enum

from modelscope_node.client import ModelScopeClient
from modelscope_node.client.errors import ModelScopeError, validation_error
from modelscope_node.operations.chat_completion import execute_chat_completion
from modelscope_node.operations.helpers import OperationItem
from modelscope_node.operations.responses import build_error_response
from modelscope_node.operations.text_to_image import execute_text_to_image
from modelscope_node.operations.vision_chat import execute_vision_chat

logger = logging.getLogger(__name__)


class Resource(str, Enum):
    LLM = "llm"
    VISION = "vision"
    IMAGE = "image"


class Operation(str, Enum):
    CHAT_COMPLETION = "chatCompletion"
    VISION_CHAT = "visionChat"
    TEXT_TO_IMAGE = "textToImage"


# Operations each resource offers to the host.
DECLARED_OPERATIONS = {
    Resource.LLM: (Operation.CHAT_COMPLETION,),
    Resource.VISION: (Operation.VISION_CHAT,),
    Resource.IMAGE: (Operation.TEXT_TO_IMAGE,),
}

OPERATIONS = {
    (Resource.LLM, Operation.CHAT_COMPLETION): execute_chat_completion,
    (Resource.VISION, Operation.VISION_CHAT): execute_vision_chat,
    (Resource.IMAGE, Operation.TEXT_TO_IMAGE): execute_text_to_image,
}


def _validate_registry(operations=OPERATIONS, declared=DECLARED_OPERATIONS):
    """Raise `RuntimeError` unless `operations` covers exactly `declared`."""
    expected = {
        (resource, operation)
        for resource in Resource
        for operation in declared.get(resource, ())
    }
    missing = expected - set(operations)
    extra = set(operations) - expected

    if missing or extra:
        raise RuntimeError(
            f"Operation registry mismatch (missing={sorted(missing)}, unregistered={sorted(extra)})"
        )
    for key, handler in operations.items():
        if not callable(handler):
            raise RuntimeError(f"Operation handler for {key} is not callable")


_validate_registry()


def list_operations() -> list[dict]:
    return [
        {"resource": resource.value, "operation": operation.value}
        for resource, operation in OPERATIONS
    ]


def resolve(resource, operation):
    """Return the handler for a `(resource, operation)` pair of strings or enums.

    Raises:
        ModelScopeError: Validation kind for unknown pairs.
    """
    try:
        key = (Resource(resource), Operation(operation))
    except ValueError as err:
        raise validation_error(f"Unknown operation: {resource}/{operation}") from err

    handler = OPERATIONS.get(key)
    if handler is None:
        raise validation_error(f"Operation {operation} is not available for resource {resource}")
    return handler


def run_items(resource, operation, items, access_token=None, continue_on_fail=False, client=None) -> list[dict]:
    """Execute an operation for every host item.

    Args:
        resource: Resource name, e.g. `"image"`.
        operation: Operation name, e.g. `"textToImage"`.
        items: Iterable of `OperationItem` or plain parameter dicts.
        access_token: Credential used to build a client when `client` is absent.
        continue_on_fail: Record per-item errors instead of raising.
        client: Pre-built client (takes precedence over `access_token`).

    Returns:
        One output record per item, in input order.

    Raises:
        ModelScopeError: Unknown operation, missing credential, or the first
            item failure when `continue_on_fail` is false.
    """
    handler = resolve(resource, operation)
    client = client or ModelScopeClient(access_token)

    results = []
    for index, item in enumerate(items):
        if not isinstance(item, OperationItem):
            item = OperationItem(params=dict(item or {}))

        started = time.monotonic()
        try:
            results.append(handler(client, item))
        except ModelScopeError as err:
            if not continue_on_fail:
                raise
            logger.warning("Item %d of %s/%s failed: %s", index, resource, operation, err.message)
            results.append(build_error_response(err, started))

    return results
