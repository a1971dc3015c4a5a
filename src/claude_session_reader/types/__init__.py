"""Type definitions for the Claude session reader."""

from claude_session_reader.types.messages import (
    MESSAGE_ROLES,
    MESSAGE_TYPES,
    LenientMessage,
    LenientMessageBody,
    Message,
    MessageBody,
    TokenUsage,
)
from claude_session_reader.types.sessions import (
    CursorPage,
    CursorQuery,
    PaginationOptions,
    ProjectData,
    Session,
    SessionMetadata,
    SessionPage,
    SessionTokenUsage,
    SortBy,
    SortOrder,
)

__all__ = [
    "MESSAGE_ROLES",
    "MESSAGE_TYPES",
    "LenientMessage",
    "LenientMessageBody",
    "Message",
    "MessageBody",
    "TokenUsage",
    "CursorPage",
    "CursorQuery",
    "PaginationOptions",
    "ProjectData",
    "Session",
    "SessionMetadata",
    "SessionPage",
    "SessionTokenUsage",
    "SortBy",
    "SortOrder",
]
