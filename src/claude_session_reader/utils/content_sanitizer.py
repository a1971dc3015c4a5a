"""Flatten message content into text, and trim records for log output."""

from typing import Any

import orjson
from pydantic import BaseModel

LOG_TEXT_LIMIT = 200
LOG_ARRAY_LIMIT = 3


def stringify(value: Any) -> str:
    """Render any decoded JSON value as a string (objects as compact JSON)."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, BaseModel)):
        try:
            return orjson.dumps(value, default=_dump_model).decode()
        except TypeError:
            return str(value)
    return str(value)


def _dump_model(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def content_text(content: Any) -> str:
    """Extract display text from message content.

    String content is returned as is. For a list of blocks, text blocks and
    bare strings are joined with newlines; when a list holds no text at all it
    is rendered as JSON so the caller still has something to show.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for block in content:
            if isinstance(block, str):
                texts.append(block)
                continue
            if isinstance(block, BaseModel):
                block = block.model_dump()
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                if isinstance(text, str):
                    texts.append(text)
        if texts:
            return "\n".join(texts)
    return stringify(content)


def preview(content: Any, limit: int = 100) -> str | None:
    """First ``limit`` characters of the content's text, or None if empty."""
    text = content_text(content)
    if not text:
        return None
    return text[:limit]


def sanitize_for_logging(data: Any) -> Any:
    """Shallow copy of a raw record that is safe to put in a debug log.

    Long content strings are truncated, tool inputs are redacted and lists are
    cut to their first few items.
    """
    if not isinstance(data, dict):
        return data

    sanitized = dict(data)
    content = sanitized.get("content")
    if isinstance(content, str) and len(content) > LOG_TEXT_LIMIT:
        sanitized["content"] = content[:LOG_TEXT_LIMIT] + "...[truncated]"

    message = sanitized.get("message")
    if isinstance(message, dict):
        message = dict(message)
        inner = message.get("content")
        if isinstance(inner, str) and len(inner) > LOG_TEXT_LIMIT:
            message["content"] = inner[:LOG_TEXT_LIMIT] + "...[truncated]"
        if "input" in message:
            message["input"] = "[REDACTED]"
        sanitized["message"] = message

    for key, value in sanitized.items():
        if isinstance(value, list) and len(value) > LOG_ARRAY_LIMIT:
            sanitized[key] = value[:LOG_ARRAY_LIMIT] + ["...[truncated]"]
    return sanitized
