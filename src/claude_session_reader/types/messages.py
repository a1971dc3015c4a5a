"""Message-level types for Claude Code JSONL records.

Two schemas describe a transcript line. ``Message`` is the strict shape a
well-formed record has. ``LenientMessage`` widens every field so that records
written by older or newer tool versions still validate, after which
``jsonl_parser.normalize_message`` turns them into a ``Message``.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, Strict, StrictBool

from claude_session_reader.utils.timestamps import now_iso

MESSAGE_TYPES = ("user", "assistant", "result", "system", "summary")
MESSAGE_ROLES = ("user", "assistant", "system")

MessageType = Literal["user", "assistant", "result", "system", "summary"]
MessageRole = Literal["user", "assistant", "system"]

# Numeric fields accept numeric strings even in the strict schema
TokenCount = Annotated[int, Strict(False)]
CoercedFloat = Annotated[float, Strict(False)]


class _StrictRecord(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore")


class TokenUsage(_StrictRecord):
    input_tokens: TokenCount | None = None
    cache_creation_input_tokens: TokenCount | None = None
    cache_read_input_tokens: TokenCount | None = None
    output_tokens: TokenCount | None = None
    service_tier: str | None = None

    @property
    def total(self) -> int:
        return ((self.input_tokens or 0) + (self.output_tokens or 0) +
                (self.cache_read_input_tokens or 0) + (self.cache_creation_input_tokens or 0))


class TextContent(_StrictRecord):
    type: Literal["text"]
    text: str


class ImageSource(_StrictRecord):
    type: Literal["base64"]
    media_type: str
    data: str


class ImageContent(_StrictRecord):
    type: Literal["image"]
    source: ImageSource


class ToolResultContent(_StrictRecord):
    type: Literal["tool_result"]
    tool_use_id: str
    content: str | list[Any]


class ToolUseContent(_StrictRecord):
    type: Literal["tool_use"]
    id: str
    name: str
    input: Any = None


ContentBlock = Annotated[
    Union[TextContent, ImageContent, ToolResultContent, ToolUseContent, str],
    Field(union_mode="left_to_right"),
]
Content = Union[str, list[ContentBlock], None]


class MessageBody(_StrictRecord):
    role: MessageRole
    content: Content
    id: str | None = None
    model: str | None = None
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: TokenUsage | None = None


class Message(_StrictRecord):
    """A transcript record that passed (or was normalized to) the strict shape."""

    type: MessageType
    message: MessageBody
    timestamp: str
    session_id: str = Field(alias="sessionId")
    uuid: str | None = None
    parent_uuid: str | None = Field(None, alias="parentUuid")
    request_id: str | None = Field(None, alias="requestId")
    user_type: str | None = Field(None, alias="userType")
    is_sidechain: bool | None = Field(None, alias="isSidechain")
    cwd: str | None = None
    version: str | None = None
    git_branch: str | None = Field(None, alias="gitBranch")
    tool_use_result: dict[str, Any] | str | list[Any] | None = Field(None, alias="toolUseResult")
    content: Content = None
    is_meta: bool | None = Field(None, alias="isMeta")
    tool_use_id: str | None = Field(None, alias="toolUseID")
    level: str | None = None
    # Legacy fields
    tokens_used: CoercedFloat | None = Field(None, alias="tokensUsed")
    cost_usd: CoercedFloat | None = Field(None, alias="costUsd")
    duration_ms: CoercedFloat | None = Field(None, alias="durationMs")
    model: str | None = None


class LenientMessageBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: str = "assistant"
    content: Any = ""
    id: str | None = None
    model: str | None = None
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: TokenUsage | None = None


class LenientMessage(BaseModel):
    """Widened record shape for schema-drifted transcript lines."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str | None = "assistant"
    message: Union[LenientMessageBody, str, list[Any], None, Any] = Field(
        default_factory=dict, union_mode="left_to_right",
    )
    timestamp: str | None = Field(default_factory=now_iso)
    session_id: str | None = Field("unknown", alias="sessionId")
    uuid: str | None = None
    parent_uuid: str | int | float | None = Field(None, alias="parentUuid")
    request_id: str | bool | None = Field(None, alias="requestId")
    user_type: str | dict[str, Any] | None = Field(None, alias="userType")
    is_sidechain: bool | str | None = Field(None, alias="isSidechain")
    cwd: str | list[Any] | None = None
    version: str | int | float | None = None
    git_branch: str | None = Field(None, alias="gitBranch")
    tool_use_result: Any = Field(None, alias="toolUseResult")
    content: Any = None
    is_meta: StrictBool | None = Field(None, alias="isMeta")
    tool_use_id: str | None = Field(None, alias="toolUseID")
    level: str | None = None
    tokens_used: float | None = Field(None, alias="tokensUsed")
    cost_usd: float | None = Field(None, alias="costUsd")
    duration_ms: float | None = Field(None, alias="durationMs")
    model: str | None = None
