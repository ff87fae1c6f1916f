"""Shared fakes for HTTP-level tests."""

import json

import pytest

from modelscope_node.client import ModelScopeClient


class FakeResponse:
    """Minimal stand-in for `requests.Response`."""

    def __init__(self, status_code=200, payload=None, lines=None, reason="OK"):
        self.status_code = status_code
        self.payload = payload
        self.lines = lines or []
        self.reason = reason
        self.encoding = None
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON body")
        return self.payload

    def iter_lines(self, decode_unicode=False):
        yield from self.lines

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


class FakeSession:
    """Queue-backed session recording every request."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.headers = {}

    def queue(self, *responses):
        self.responses.extend(responses)

    def request(self, method, url, headers=None, json=None, timeout=None, stream=False):
        self.calls.append({
            "method": method,
            "url": url,
            "headers": headers or {},
            "json": json,
            "timeout": timeout,
            "stream": stream,
        })
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass


def sse(*chunks):
    """Encode chunk dicts as SSE `data:` lines terminated by `[DONE]`."""
    lines = [f"data: {json.dumps(chunk)}" for chunk in chunks]
    return lines + ["", "data: [DONE]"]


COMPLETION = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 1700000000,
    "model": "ZhipuAI/GLM-5",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Hello!"},
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
}


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(session):
    return ModelScopeClient("ms-test-token", session=session)
