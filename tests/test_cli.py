"""Tests for the command-line adapter."""

import json

from conftest import COMPLETION, FakeResponse, FakeSession
from modelscope_node.api import cli
from modelscope_node.client import api_client
from modelscope_node.operations.registry import Operation, Resource


def test_parse_message_roles():
    assert cli.parse_message("system:be brief") == {"role": "system", "content": "be brief"}
    assert cli.parse_message("note: plain text") == {"role": "user", "content": "note: plain text"}


def test_image_request():
    args = cli.build_parser().parse_args(["image", "a red fox", "--timeout", "2"])

    resource, operation, item = cli.build_request(args)

    assert (resource, operation) == (Resource.IMAGE, Operation.TEXT_TO_IMAGE)
    assert item.params == {"prompt": "a red fox", "timeout": 2}


def test_vision_file_request(tmp_path):
    image = tmp_path / "cat.png"
    image.write_bytes(b"png-bytes")
    args = cli.build_parser().parse_args(["vision", "--image-file", str(image)])

    _, operation, item = cli.build_request(args)

    assert operation is Operation.VISION_CHAT
    assert item.params["imageSource"] == "binary"
    assert item.binary["data"]["bytes"] == b"png-bytes"


def test_chat_prints_record(monkeypatch, capsys):
    session = FakeSession([FakeResponse(200, COMPLETION)])
    monkeypatch.setattr(api_client.requests, "Session", lambda: session)

    code = cli.main(["--token", "ms-abc", "chat", "-m", "user:Hello"])

    assert code == 0
    assert json.loads(capsys.readouterr().out)["total_tokens"] == 15


def test_missing_token_exits_with_error(monkeypatch, capsys):
    monkeypatch.setattr(cli, "load_access_token", lambda: None)

    code = cli.main(["chat", "-m", "Hello"])

    assert code == 1
    assert "access token" in capsys.readouterr().err
