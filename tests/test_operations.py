"""Tests for the chat, vision and text-to-image operations."""

import base64
from itertools import count
from unittest import mock

import pytest

from conftest import COMPLETION, FakeResponse, sse
from modelscope_node.client.config import ERROR_MESSAGES
from modelscope_node.client.errors import ErrorKind, ModelScopeError
from modelscope_node.client.types import ImageSubmission, TaskStatus
from modelscope_node.operations import helpers
from modelscope_node.operations.chat_completion import execute_chat_completion
from modelscope_node.operations.helpers import OperationItem, validate_messages
from modelscope_node.operations.text_to_image import execute_text_to_image
from modelscope_node.operations.vision_chat import execute_vision_chat


class TestValidateMessages:

    @pytest.mark.parametrize("messages", [
        [{"role": "user", "content": "hi"}],
        [{"role": "system", "content": "  "}, {"role": "user", "content": "hi"}],
        [{"role": "assistant", "content": "\n"}, {"role": "user", "content": " x "}],
    ])
    def test_passes_with_one_non_blank_content(self, messages):
        validate_messages(messages)

    @pytest.mark.parametrize("messages", [
        [],
        [{"role": "user", "content": ""}],
        [{"role": "user", "content": "   "}, {"role": "system", "content": "\t"}],
        [{"role": "user", "content": None}],
    ])
    def test_fails_when_empty_or_blank(self, messages):
        with pytest.raises(ModelScopeError) as excinfo:
            validate_messages(messages)

        assert excinfo.value.kind is ErrorKind.VALIDATION
        assert excinfo.value.message == ERROR_MESSAGES["EMPTY_MESSAGES"]


class TestChatCompletion:

    def test_builds_record_with_token_metadata(self, client, session):
        session.queue(FakeResponse(200, COMPLETION))
        item = OperationItem(params={
            "model": "ZhipuAI/GLM-5",
            "messages": {"message": [{"role": "user", "content": "Hello"}]},
            "temperature": 0.3,
            "maxTokens": 256,
        })

        result = execute_chat_completion(client, item)

        assert session.calls[0]["json"]["max_tokens"] == 256
        assert result["status"] == "completed"
        assert result["input_tokens"] == 12
        assert result["output_tokens"] == 3
        assert result["total_tokens"] == 15
        assert result["processing_time"].endswith("s")
        assert result["completed_at"].endswith("Z")
        assert result["choices"][0]["message"]["content"] == "Hello!"

    def test_blank_messages_never_reach_the_api(self, client, session):
        item = OperationItem(params={"messages": [{"role": "user", "content": "  "}]})

        with pytest.raises(ModelScopeError) as excinfo:
            execute_chat_completion(client, item)

        assert excinfo.value.kind is ErrorKind.VALIDATION
        assert session.calls == []

    def test_stream_returns_marker(self, client, session):
        chunk = {"choices": [{"delta": {"content": "Hi"}}]}
        session.queue(FakeResponse(200, lines=sse(chunk)))
        item = OperationItem(params={"messages": [{"role": "user", "content": "Hello"}], "stream": True})

        result = execute_chat_completion(client, item)

        assert result["stream"] is True
        assert list(result["response"]) == [chunk]

    def test_template_prefixes_first_user_message(self, client, session):
        session.queue(FakeResponse(200, COMPLETION))
        item = OperationItem(params={
            "messageTemplate": "code",
            "messages": [
                {"role": "system", "content": "You are terse."},
                {"role": "user", "content": "a CSV parser"},
            ],
        })

        execute_chat_completion(client, item)

        sent = session.calls[0]["json"]["messages"]
        assert sent[0]["content"] == "You are terse."
        assert sent[1]["content"].endswith("a CSV parser")
        assert sent[1]["content"] != "a CSV parser"

    def test_unknown_template_is_rejected(self, client):
        item = OperationItem(params={
            "messageTemplate": "poetry",
            "messages": [{"role": "user", "content": "x"}],
        })

        with pytest.raises(ModelScopeError) as excinfo:
            execute_chat_completion(client, item)

        assert excinfo.value.kind is ErrorKind.VALIDATION

    def test_out_of_range_parameter_is_validation_error(self, client):
        item = OperationItem(params={"temperature": 5, "messages": [{"role": "user", "content": "x"}]})

        with pytest.raises(ModelScopeError) as excinfo:
            execute_chat_completion(client, item)

        assert excinfo.value.kind is ErrorKind.VALIDATION

    def test_strict_model_check(self, client, monkeypatch):
        monkeypatch.setattr(helpers, "STRICT_MODEL_CHECK", True)
        item = OperationItem(params={"model": "acme/llm", "messages": [{"role": "user", "content": "x"}]})

        with pytest.raises(ModelScopeError) as excinfo:
            execute_chat_completion(client, item)

        assert excinfo.value.code == "MODEL_NOT_AVAILABLE"

    def test_malformed_response_is_normalized(self, client, session):
        session.queue(FakeResponse(200, ["not", "an", "object"]))
        item = OperationItem(params={"messages": [{"role": "user", "content": "x"}]})

        with pytest.raises(ModelScopeError) as excinfo:
            execute_chat_completion(client, item)

        assert excinfo.value.kind is ErrorKind.UNKNOWN
        assert excinfo.value.__cause__ is not None


class TestVisionChat:

    def test_url_source(self, client, session):
        session.queue(FakeResponse(200, COMPLETION))
        item = OperationItem(params={
            "imageUrl": "https://example.test/cat.png",
            "prompt": "What animal is this?",
        })

        result = execute_vision_chat(client, item)

        content = session.calls[0]["json"]["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "What animal is this?"}
        assert content[1]["image_url"]["url"] == "https://example.test/cat.png"
        assert result["image_url"] == "https://example.test/cat.png"
        assert result["image_source"] == "url"
        assert result["image_bytes"] == 0

    def test_binary_source_becomes_data_url(self, client, session):
        session.queue(FakeResponse(200, COMPLETION))
        raw = b"\x89PNG\r\n\x1a\nfake"
        item = OperationItem(
            params={"imageSource": "binary", "binaryPropertyName": "photo"},
            binary={"photo": {"bytes": raw, "mime_type": "image/jpeg"}},
        )

        result = execute_vision_chat(client, item)

        url = session.calls[0]["json"]["messages"][0]["content"][1]["image_url"]["url"]
        assert url == "data:image/jpeg;base64," + base64.b64encode(raw).decode()
        assert result["image_url"] == ""
        assert result["image_binary_property"] == "photo"
        assert result["image_mime_type"] == "image/jpeg"
        assert result["image_bytes"] == len(raw)

    def test_base64_binary_data(self, client, session):
        session.queue(FakeResponse(200, COMPLETION))
        item = OperationItem(
            params={"imageSource": "binary"},
            binary={"data": {"data": base64.b64encode(b"abcd").decode()}},
        )

        result = execute_vision_chat(client, item)

        assert result["image_mime_type"] == "image/png"
        assert result["image_bytes"] == 4

    @pytest.mark.parametrize("params,binary", [
        ({"imageUrl": "   "}, {}),
        ({"imageSource": "binary"}, {}),
        ({"imageSource": "binary"}, {"data": {"mime_type": "image/png"}}),
        ({"imageSource": "binary"}, {"data": {"bytes": "aGVsbG8="}}),
        ({"imageUrl": "https://example.test/a.png", "prompt": " "}, {}),
    ])
    def test_local_validation(self, client, session, params, binary):
        with pytest.raises(ModelScopeError) as excinfo:
            execute_vision_chat(client, OperationItem(params=params, binary=binary))

        assert excinfo.value.kind is ErrorKind.VALIDATION
        assert session.calls == []


class TestTextToImage:

    @staticmethod
    def image_client(*statuses):
        client = mock.Mock()
        client.generate_image.return_value = ImageSubmission(task_id="t-fox", status="PENDING")
        client.get_task_status.side_effect = list(statuses)
        return client

    @staticmethod
    def clock():
        ticks = count()
        return lambda: float(next(ticks))

    def test_red_fox_scenario(self):
        client = self.image_client(
            TaskStatus("t-fox", "PENDING"),
            TaskStatus("t-fox", "RUNNING"),
            TaskStatus("t-fox", "SUCCEED", output_images=["http://x/1.png"]),
        )
        item = OperationItem(params={"model": "Qwen/Qwen-Image", "prompt": "a red fox"})

        result = execute_text_to_image(client, item, sleep=lambda s: None, clock=self.clock())

        assert result["status"] == "completed"
        assert result["attempts_used"] == 3
        assert result["images"] == ["http://x/1.png"]
        assert result["task_id"] == "t-fox"
        assert result["progress"] == 100
        client.generate_image.assert_called_once_with(
            "Qwen/Qwen-Image",
            "a red fox",
            negative_prompt="",
            size="1024x1024",
            steps=30,
            guidance_scale=7.5,
        )

    def test_blank_prompt_is_rejected_before_submission(self):
        client = self.image_client()

        with pytest.raises(ModelScopeError) as excinfo:
            execute_text_to_image(client, OperationItem(params={"prompt": "  "}))

        assert excinfo.value.message == ERROR_MESSAGES["EMPTY_PROMPT"]
        client.generate_image.assert_not_called()

    def test_remote_failure(self):
        client = self.image_client(TaskStatus("t-fox", "FAILED", error_message="NSFW"))

        with pytest.raises(ModelScopeError) as excinfo:
            execute_text_to_image(client, OperationItem(params={"prompt": "x"}),
                                  sleep=lambda s: None, clock=self.clock())

        assert excinfo.value.kind is ErrorKind.TASK_FAILED
        assert client.get_task_status.call_count == 1

    def test_timeout_budget_uses_minutes(self):
        client = self.image_client(*[TaskStatus("t-fox", "RUNNING")] * 12)

        with pytest.raises(ModelScopeError) as excinfo:
            execute_text_to_image(client, OperationItem(params={"prompt": "x", "timeout": 1}),
                                  sleep=lambda s: None, clock=self.clock())

        assert excinfo.value.kind is ErrorKind.POLL_TIMEOUT
        assert "t-fox" in excinfo.value.message
        assert client.get_task_status.call_count == 12
