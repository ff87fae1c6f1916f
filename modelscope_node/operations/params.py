"""Host parameter schemas for the adapter operations.

Architectural role:
    Describes the scalar parameters a workflow host supplies per item, with the
    defaults and numeric ranges of the host form definitions.

Input validation behavior:
    - Type and range checks are enforced by pydantic.
    - Blank strings are accepted here on purpose; non-blank constraints on
      prompt, messages and image URL are enforced by `operations.helpers`.

Naming:
    Fields accept both the host's camelCase names (`maxTokens`, `imageUrl`)
    and snake_case names.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modelscope_node.client.config import DEFAULT_MODELS, ModelType


class HostParams(BaseModel):
    """Base schema accepting alias and field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ChatMessage(HostParams):
    role: Literal["system", "user", "assistant"] = "user"
    content: str = ""


class ChatParams(HostParams):
    """Parameters for `llm/chatCompletion`."""

    model: str = DEFAULT_MODELS[ModelType.LLM]
    messages: list[ChatMessage] = Field(default_factory=list)
    message_template: str = Field("custom", alias="messageTemplate")
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(2048, ge=1, le=8192, alias="maxTokens")
    stream: bool = False

    @field_validator("messages", mode="before")
    @classmethod
    def unwrap_message_collection(cls, value):
        # Host fixed collections arrive as {"message": [...]}.
        if isinstance(value, dict):
            return value.get("message") or []
        return value


class VisionParams(HostParams):
    """Parameters for `vision/visionChat`."""

    model: str = DEFAULT_MODELS[ModelType.VISION]
    image_source: Literal["url", "binary"] = Field("url", alias="imageSource")
    image_url: str = Field("", alias="imageUrl")
    binary_property_name: str = Field("data", alias="binaryPropertyName")
    prompt: str = "Describe the content of this image"
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(2048, ge=1, le=8192, alias="maxTokens")


class ImageParams(HostParams):
    """Parameters for `image/textToImage`."""

    model: str = DEFAULT_MODELS[ModelType.IMAGE]
    prompt: str = ""
    negative_prompt: str = Field("", alias="negativePrompt")
    size: str = "1024x1024"
    steps: int = Field(30, ge=10, le=100)
    timeout: int = Field(5, ge=1, le=10)
