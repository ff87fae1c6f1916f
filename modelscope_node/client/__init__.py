"""ModelScope API access package.

Module split:
    - `config`: environment-driven endpoint, polling and credential settings.
    - `api_client`: HTTP transport for chat, image submission and task status.
    - `errors`: single exception type and failure translation.
    - `types`: typed views over task-related payloads.
"""

from modelscope_node.client.api_client import ModelScopeClient
from modelscope_node.client.errors import ErrorKind, ModelScopeError

__all__ = ["ModelScopeClient", "ModelScopeError", "ErrorKind"]
