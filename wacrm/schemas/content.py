"""Message content variants.

Content is a closed union discriminated by ``type``; it is validated when
a webhook is normalized and when an outbound message is requested.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    body: str


class ImageContent(BaseModel):
    type: Literal["image"] = "image"
    media_id: str
    caption: str | None = None


class DocumentContent(BaseModel):
    type: Literal["document"] = "document"
    media_id: str
    filename: str | None = None
    caption: str | None = None


class TemplateContent(BaseModel):
    type: Literal["template"] = "template"
    template_name: str = Field(..., min_length=1)
    template_params: list[str] = Field(default_factory=list)
    language_code: str = "en_US"


class UnknownContent(BaseModel):
    """Placeholder for message types this service does not interpret."""

    type: Literal["unknown"] = "unknown"
    original_type: str = ""


MessageContent = Annotated[
    TextContent | ImageContent | DocumentContent | TemplateContent | UnknownContent,
    Field(discriminator="type"),
]

# What the application may send; only text and templates are supported
OutboundContent = Annotated[
    TextContent | TemplateContent,
    Field(discriminator="type"),
]

_content_adapter: TypeAdapter = TypeAdapter(MessageContent)


def parse_content(data: dict[str, Any]) -> BaseModel:
    """Validate a stored or received content dict into its variant."""
    return _content_adapter.validate_python(data)
