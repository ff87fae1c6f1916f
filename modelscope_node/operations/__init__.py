"""Host-callable operations.

Module split:
    - `params`: host parameter schemas and defaults.
    - `helpers`: extraction, validation and failure tracking.
    - `poller`: async image task polling with capped exponential backoff.
    - `responses`: output record builders.
    - `chat_completion`, `vision_chat`, `text_to_image`: the operations.
    - `registry`: `(resource, operation)` dispatch table.
"""
