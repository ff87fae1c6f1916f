"""`image/textToImage` operation.

Request lifecycle:
    params -> prompt validation -> async submission -> `TaskPoller` until a
    terminal state -> output record.

Timeout semantics:
    `timeout` (minutes) is converted into an attempt budget by the poller. A
    single slow HTTP call fails on its own per-call deadline instead.
"""

import logging
import time

from modelscope_node.client.config import DEFAULT_GUIDANCE_SCALE, ModelType
from modelscope_node.operations.helpers import (
    check_model,
    extract_image_params,
    track_operation,
    validate_prompt,
)
from modelscope_node.operations.poller import TaskPoller
from modelscope_node.operations.responses import build_image_response

logger = logging.getLogger(__name__)


def execute_text_to_image(client, item, sleep=time.sleep, clock=time.monotonic) -> dict:
    """Generate images for one prompt and wait for the task to finish.

    Args:
        client: `ModelScopeClient` bound to the host credentials.
        item: `OperationItem` carrying image parameters.
        sleep: Sleep used between polls.
        clock: Monotonic clock used for elapsed time.
    """
    with track_operation("Text-to-image") as started:
        params = extract_image_params(item.params)
        validate_prompt(params.prompt)
        check_model(params.model, ModelType.IMAGE)

        logger.info("Starting text-to-image - model: %s, prompt: %s...", params.model, params.prompt[:50])

        submission = client.generate_image(
            params.model,
            params.prompt,
            negative_prompt=params.negative_prompt,
            size=params.size,
            steps=params.steps,
            guidance_scale=DEFAULT_GUIDANCE_SCALE,
        )
        task_id = submission.task_id

        logger.info("Text-to-image task submitted - task ID: %s, timeout: %s minutes", task_id, params.timeout)

        poller = TaskPoller(client, params.timeout, sleep=sleep, clock=clock, started_at=clock())
        outcome = poller.poll(task_id)

        result = build_image_response(task_id, outcome.status, params, started, outcome.attempts)
        logger.info(
            "Image generation succeeded - task ID: %s, elapsed: %s, images: %d, polls: %d",
            task_id, result["processing_time"], len(result["images"]), result["attempts_used"],
        )
        return result
