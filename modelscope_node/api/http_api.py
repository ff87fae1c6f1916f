"""
HTTP host adapter for the ModelScope operations.

Architectural role:
- Plays the workflow host: receives items, resolves the credential and
  dispatches to `modelscope_node.operations.registry`.
- Exposes the supported model catalogue and the registered operations.

Endpoint responsibilities:
- `GET /v1/models`: supported models grouped by model type.
- `GET /v1/operations`: registered `(resource, operation)` pairs.
- `POST /v1/operations/{resource}/{operation}`: run an operation per item.

API request lifecycle (`POST /v1/operations/{resource}/{operation}`):
1. Parse the `OperationRequest` body (`items`, `continue_on_fail`).
2. Resolve the token from `Authorization: Bearer ...` or the environment.
3. Run every item through the dispatch table.
4. Drain streamed completions into chunk lists and return `{"items": [...]}`.

Error handling strategy:
- `ModelScopeError` maps to a JSON error body with a status chosen by kind.
- Other exceptions follow FastAPI default handling.

Side effects:
- Loads environment variables at import time via `load_dotenv()`.
- Blocks a worker thread while image tasks are polled (sync endpoint).
"""

from dotenv import load_dotenv

load_dotenv()

import logging
import time

from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from modelscope_node.client.config import AUTHORIZATION_PREFIX, SUPPORTED_MODELS, load_access_token
from modelscope_node.client.errors import ErrorKind, ModelScopeError
from modelscope_node.operations.helpers import OperationItem
from modelscope_node.operations.registry import list_operations, run_items

logger = logging.getLogger(__name__)

app = FastAPI(title="ModelScope node")

STATUS_BY_KIND = {
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.VALIDATION: 400,
    ErrorKind.REMOTE: 502,
    ErrorKind.NETWORK: 502,
    ErrorKind.TASK_FAILED: 502,
    ErrorKind.REQUEST_TIMEOUT: 504,
    ErrorKind.POLL_TIMEOUT: 504,
    ErrorKind.UNKNOWN: 500,
}


# ============================================================
# Request Schema
# ============================================================

class ItemPayload(BaseModel):
    params: dict = Field(default_factory=dict)
    binary: dict = Field(default_factory=dict)


class OperationRequest(BaseModel):
    items: list[ItemPayload] = Field(default_factory=lambda: [ItemPayload()])
    continue_on_fail: bool = False


# ============================================================
# Helpers
# ============================================================

def resolve_token(authorization: str | None) -> str | None:
    """Prefer the bearer header; fall back to configured credentials."""
    if authorization and authorization.startswith(AUTHORIZATION_PREFIX):
        return authorization[len(AUTHORIZATION_PREFIX):].strip()
    return load_access_token()


def materialize(record: dict) -> dict:
    """Replace a streamed response iterator with the list of its chunks."""
    if record.get("stream") is True:
        return {"stream": True, "response": list(record.get("response") or [])}
    return record


def error_response(err: ModelScopeError) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(err.kind, 500),
        content={
            "error": err.message,
            "kind": err.kind.value,
            "status_code": err.status_code,
            "code": err.code,
        },
    )


# ============================================================
# Catalogue
# ============================================================

@app.get("/v1/models")
def list_models():
    """
    Return supported models as OpenAI-style model metadata.

    Response formatting:
    - `object: "list"`
    - `data[]` entries with `id`, `object`, `created`, `owned_by`, `type`
    """
    created = int(time.time())

    return {
        "object": "list",
        "data": [
            {
                "id": model,
                "object": "model",
                "created": created,
                "owned_by": "modelscope",
                "type": model_type.value,
            }
            for model_type, models in SUPPORTED_MODELS.items()
            for model in models
        ],
    }


@app.get("/v1/operations")
def operations():
    return {"data": list_operations()}


# ============================================================
# Operation execution
# ============================================================

@app.post("/v1/operations/{resource}/{operation}")
def execute(
    resource: str,
    operation: str,
    body: OperationRequest,
    authorization: str | None = Header(default=None),
):
    """
    Run one operation for every submitted item.

    Error handling strategy:
    - Any `ModelScopeError` aborts the batch unless `continue_on_fail` is set,
      in which case failing items yield `{"error", "processing_time"}` records.
    """
    items = [OperationItem(params=item.params, binary=item.binary) for item in body.items]

    try:
        results = run_items(
            resource,
            operation,
            items,
            access_token=resolve_token(authorization),
            continue_on_fail=body.continue_on_fail,
        )
        records = [materialize(record) for record in results]
    except ModelScopeError as err:
        logger.error("%s/%s request failed: %s", resource, operation, err.message)
        return error_response(err)

    return {"items": records}
