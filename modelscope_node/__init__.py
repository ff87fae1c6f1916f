"""ModelScope API-Inference adapter for workflow-automation hosts.

Architectural role:
    Exposes chat completion, vision chat and text-to-image generation as
    host-callable operations keyed by `(resource, operation)`.

Package split:
    - `client`: configuration, HTTP transport, typed responses and errors.
    - `operations`: parameter handling, task polling, response shaping and the
      dispatch table.
    - `api`: HTTP and CLI host adapters.
"""
