"""
Command-line adapter for the ModelScope operations.

Architectural role:
- Builds one host item from command-line flags and runs it through the
  dispatch table.
- Prints the output record as JSON (streamed chats print chunk contents).

Commands:
- `chat`: `llm/chatCompletion` with repeated `--message role:content` flags.
- `vision`: `vision/visionChat` with `--image-url` or `--image-file`.
- `image`: `image/textToImage` with prompt, size, steps and timeout.

Error handling strategy:
- `ModelScopeError` prints `Error: <message>` to stderr and exits with 1.
- Keyboard interrupts exit with 130 without traceback output.

Side effects:
- Loads environment variables via `load_dotenv()`.
- Configures root logging from `LOG_LEVEL`.
"""

from dotenv import load_dotenv

load_dotenv()

import argparse
import json
import logging
import os
import sys

from modelscope_node.client.config import load_access_token
from modelscope_node.client.errors import ModelScopeError
from modelscope_node.operations.helpers import OperationItem
from modelscope_node.operations.registry import Operation, Resource, run_items


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def parse_message(raw: str) -> dict:
    """Parse `role:content`; text without a known role prefix is a user turn."""
    role, sep, content = raw.partition(":")
    if sep and role in ("system", "user", "assistant"):
        return {"role": role, "content": content}
    return {"role": "user", "content": raw}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ModelScope API-Inference operations")
    parser.add_argument("--token", default=None, help="Access token (defaults to MODELSCOPE_ACCESS_TOKEN)")
    sub = parser.add_subparsers(dest="command", required=True)

    chat = sub.add_parser("chat", help="Chat completion")
    chat.add_argument("--model", default=None)
    chat.add_argument("--message", "-m", action="append", default=[], help="role:content (repeatable)")
    chat.add_argument("--template", default="custom", help="custom | code | analysis | translation")
    chat.add_argument("--temperature", type=float, default=None)
    chat.add_argument("--max-tokens", type=int, default=None)
    chat.add_argument("--stream", action="store_true")

    vision = sub.add_parser("vision", help="Vision chat")
    vision.add_argument("--model", default=None)
    vision.add_argument("--prompt", default=None)
    source = vision.add_mutually_exclusive_group(required=True)
    source.add_argument("--image-url")
    source.add_argument("--image-file")
    vision.add_argument("--mime-type", default="image/png")
    vision.add_argument("--temperature", type=float, default=None)
    vision.add_argument("--max-tokens", type=int, default=None)

    image = sub.add_parser("image", help="Text-to-image generation")
    image.add_argument("prompt")
    image.add_argument("--model", default=None)
    image.add_argument("--negative-prompt", default=None)
    image.add_argument("--size", default=None)
    image.add_argument("--steps", type=int, default=None)
    image.add_argument("--timeout", type=int, default=None, help="Polling budget in minutes")

    return parser


def _drop_unset(params: dict) -> dict:
    return {key: value for key, value in params.items() if value is not None}


def build_request(args):
    """Translate parsed arguments into `(resource, operation, item)`."""
    if args.command == "chat":
        params = _drop_unset({
            "model": args.model,
            "messages": [parse_message(m) for m in args.message],
            "messageTemplate": args.template,
            "temperature": args.temperature,
            "maxTokens": args.max_tokens,
            "stream": args.stream,
        })
        return Resource.LLM, Operation.CHAT_COMPLETION, OperationItem(params=params)

    if args.command == "vision":
        params = _drop_unset({
            "model": args.model,
            "prompt": args.prompt,
            "temperature": args.temperature,
            "maxTokens": args.max_tokens,
        })
        binary = {}
        if args.image_file:
            with open(args.image_file, "rb") as f:
                binary["data"] = {"bytes": f.read(), "mime_type": args.mime_type}
            params.update({"imageSource": "binary", "binaryPropertyName": "data"})
        else:
            params.update({"imageSource": "url", "imageUrl": args.image_url})
        return Resource.VISION, Operation.VISION_CHAT, OperationItem(params=params, binary=binary)

    params = _drop_unset({
        "model": args.model,
        "prompt": args.prompt,
        "negativePrompt": args.negative_prompt,
        "size": args.size,
        "steps": args.steps,
        "timeout": args.timeout,
    })
    return Resource.IMAGE, Operation.TEXT_TO_IMAGE, OperationItem(params=params)


def render(record: dict) -> None:
    if record.get("stream") is True:
        for chunk in record["response"]:
            for choice in chunk.get("choices") or []:
                delta = (choice.get("delta") or {}).get("content")
                if delta:
                    print(delta, end="", flush=True)
        print()
        return
    print(json.dumps(record, ensure_ascii=False, indent=2))


def main(argv=None) -> int:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format=LOG_FORMAT)

    args = build_parser().parse_args(argv)
    resource, operation, item = build_request(args)

    try:
        [record] = run_items(resource, operation, [item], access_token=args.token or load_access_token())
        render(record)
    except ModelScopeError as err:
        print(f"Error: {err.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
