"""Layered parser for Claude Code session JSONL lines.

Transcript files are written by an external, versioned tool, so a line is
run through a fixed sequence of stages and the first stage that produces a
message wins:

1. strict validation against ``Message``
2. lenient validation against ``LenientMessage``, then normalization
3. field extraction from the raw object under alternate key names

A line that is not JSON at all goes to a regex salvage instead. ``parse_line``
never raises; anything that cannot be salvaged becomes ``None``.
"""

import logging
import re
from pathlib import Path
from typing import Any, Callable, Iterator

import orjson
from pydantic import ValidationError

from claude_session_reader.types.messages import (
    MESSAGE_ROLES,
    MESSAGE_TYPES,
    LenientMessage,
    LenientMessageBody,
    Message,
    MessageBody,
    TokenUsage,
)
from claude_session_reader.utils.content_sanitizer import sanitize_for_logging, stringify
from claude_session_reader.utils.timestamps import now_iso

logger = logging.getLogger(__name__)

# Max size for a single JSONL line (10MB)
MAX_LINE_SIZE = 10 * 1024 * 1024

RAW_CONTENT_LIMIT = 1000
MALFORMED_CONTENT = "[Malformed message data]"

SESSION_ID_RE = re.compile(r'"sessionId"\s*:\s*"([^"]+)"')
TIMESTAMP_RE = re.compile(r'"timestamp"\s*:\s*"([^"]+)"')
GIT_BRANCH_RE = re.compile(r'"gitBranch"\s*:\s*"([^"]+)"')
CWD_RE = re.compile(r'"cwd"\s*:\s*"([^"]+)"')

# Alternate key names tried in order when pulling fields from a raw record
FIELD_ALIASES = {
    "session_id": ("sessionId", "session_id", "id"),
    "timestamp": ("timestamp", "time", "created_at", "createdAt"),
    "cwd": ("cwd", "workingDirectory"),
    "git_branch": ("gitBranch", "git_branch", "branch"),
}


# ---------------------------------------------------------------------------
# File-level reading
# ---------------------------------------------------------------------------

def read_jsonl_file(file_path: str | Path) -> list[Message]:
    """Parse an entire JSONL file into the messages that could be recovered."""
    return list(stream_messages(file_path))


def stream_messages(file_path: str | Path) -> Iterator[Message]:
    """Stream-parse a JSONL file, yielding one Message per recoverable line.

    Lines that cannot be recovered are dropped without aborting the file.
    Lines exceeding MAX_LINE_SIZE are skipped with a warning. A missing file
    yields nothing; other I/O errors propagate.
    """
    path = Path(file_path)
    if not path.exists():
        logger.warning("Session file not found: %s", path)
        return

    line_num = 0
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line_num += 1
            if len(line) > MAX_LINE_SIZE:
                logger.warning(
                    "Line %d in %s exceeds %dMB, skipping",
                    line_num, path.name, MAX_LINE_SIZE // (1024 * 1024),
                )
                continue
            msg = parse_line(line)
            if msg is not None:
                yield msg


# ---------------------------------------------------------------------------
# Line-level parsing
# ---------------------------------------------------------------------------

def parse_line(line: str) -> Message | None:
    """Parse one JSONL line into a Message, or None if nothing is salvageable."""
    line = line.strip()
    if not line:
        return None

    try:
        data = orjson.loads(line)
    except orjson.JSONDecodeError as e:
        logger.debug(
            "Failed to parse JSONL line (%s), length=%d preview=%r",
            e, len(line), line[:100],
        )
        return salvage_from_text(line)

    return parse_record(data)


def parse_record(data: Any) -> Message | None:
    """Run a decoded JSON value through the record stages in order."""
    failures = []
    for stage in RECORD_STAGES:
        try:
            msg = stage(data)
        except ValidationError as e:
            failures.append((stage.__name__, _describe_errors(e)))
            continue
        if failures:
            logger.debug(
                "Record recovered by %s after %s: %r",
                stage.__name__, failures, sanitize_for_logging(data),
            )
        return msg
    return None


def validate_strict(data: Any) -> Message:
    return Message.model_validate(data)


def validate_lenient(data: Any) -> Message:
    return normalize_message(LenientMessage.model_validate(data))


def extract_raw_session_info(data: Any) -> Message | None:
    """Build a minimal assistant message from whatever fields a raw record has.

    sessionId defaults to ``'unknown'`` and timestamp to now. Content is taken
    from ``content``, ``message.content`` or ``text`` and truncated to
    RAW_CONTENT_LIMIT characters.
    """
    if not isinstance(data, dict):
        logger.debug("Cannot extract session info from %s record", type(data).__name__)
        return None

    try:
        session_id = extract_field_value(data, FIELD_ALIASES["session_id"]) or "unknown"
        timestamp = extract_field_value(data, FIELD_ALIASES["timestamp"]) or now_iso()

        content = ""
        message = data.get("message")
        if data.get("content"):
            content = stringify(data["content"])
        elif isinstance(message, dict) and message.get("content"):
            content = stringify(message["content"])
        elif data.get("text"):
            content = stringify(data["text"])

        return Message(
            type="assistant",
            message=MessageBody(role="assistant", content=content[:RAW_CONTENT_LIMIT]),
            timestamp=timestamp,
            session_id=session_id,
            cwd=extract_field_value(data, FIELD_ALIASES["cwd"]),
            git_branch=extract_field_value(data, FIELD_ALIASES["git_branch"]),
        )
    except (ValidationError, TypeError, ValueError) as e:
        logger.debug("Failed to extract raw session info: %s", e)
        return None


RECORD_STAGES: tuple[Callable[[Any], Message | None], ...] = (
    validate_strict,
    validate_lenient,
    extract_raw_session_info,
)


def salvage_from_text(line: str) -> Message | None:
    """Regex-extract session fields from a line that is not valid JSON."""
    session_match = SESSION_ID_RE.search(line)
    timestamp_match = TIMESTAMP_RE.search(line)
    if not session_match and not timestamp_match:
        return None

    branch_match = GIT_BRANCH_RE.search(line)
    cwd_match = CWD_RE.search(line)
    return Message(
        type="assistant",
        message=MessageBody(role="assistant", content=MALFORMED_CONTENT),
        timestamp=timestamp_match.group(1) if timestamp_match else now_iso(),
        session_id=session_match.group(1) if session_match else "unknown",
        cwd=cwd_match.group(1) if cwd_match else None,
        git_branch=branch_match.group(1) if branch_match else None,
    )


def extract_field_value(data: dict, keys: tuple[str, ...]) -> str | None:
    """Return the first non-null value under any of ``keys``, as a string."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return stringify(value)
    return None


# ---------------------------------------------------------------------------
# Normalization of lenient records
# ---------------------------------------------------------------------------

def normalize_message(lenient: LenientMessage) -> Message:
    """Coerce a lenient record into the strict Message shape.

    The result is built with ``model_construct``: content and toolUseResult
    keep whatever structure the record had, but every scalar field has the
    type the strict schema declares.
    """
    msg_type = (lenient.type or "assistant").lower()
    if msg_type not in MESSAGE_TYPES:
        msg_type = "assistant"
    default_role = "system" if msg_type == "system" else "assistant"

    body = _normalize_body(lenient, default_role)

    timestamp = lenient.timestamp if isinstance(lenient.timestamp, str) and lenient.timestamp else None
    session_id = lenient.session_id if isinstance(lenient.session_id, str) and lenient.session_id else None

    return Message.model_construct(
        type=msg_type,
        message=body,
        timestamp=timestamp or now_iso(),
        session_id=session_id or "unknown",
        uuid=to_string_or_none(lenient.uuid),
        parent_uuid=to_string_or_none(lenient.parent_uuid),
        request_id=to_string_or_none(lenient.request_id),
        user_type=to_string_or_none(lenient.user_type),
        is_sidechain=to_bool_or_none(lenient.is_sidechain),
        cwd=to_string_or_none(lenient.cwd),
        version=to_string_or_none(lenient.version),
        git_branch=to_string_or_none(lenient.git_branch),
        tool_use_result=normalize_tool_use_result(lenient.tool_use_result),
        content=lenient.content if lenient.content else None,
        is_meta=lenient.is_meta,
        tool_use_id=to_string_or_none(lenient.tool_use_id),
        level=to_string_or_none(lenient.level),
        tokens_used=lenient.tokens_used,
        cost_usd=lenient.cost_usd,
        duration_ms=lenient.duration_ms,
        model=lenient.model,
    )


def _normalize_body(lenient: LenientMessage, default_role: str) -> MessageBody:
    raw = lenient.message
    if isinstance(raw, LenientMessageBody):
        fields = raw.model_dump()
        fields["usage"] = raw.usage
    elif isinstance(raw, (str, list)):
        fields = {"role": "assistant", "content": raw}
    elif isinstance(raw, dict) and raw:
        fields = dict(raw)
        fields["usage"] = _usage_or_none(raw.get("usage"))
    elif lenient.content:
        fields = {"role": default_role, "content": lenient.content}
    else:
        fields = {}

    role = fields.get("role")
    role = role.lower() if isinstance(role, str) and role else default_role
    if role not in MESSAGE_ROLES:
        role = default_role

    content = fields.get("content")
    if content is None:
        content = lenient.content if lenient.content is not None else ""

    return MessageBody.model_construct(
        role=role,
        content=content,
        id=to_string_or_none(fields.get("id")),
        model=to_string_or_none(fields.get("model")),
        stop_reason=to_string_or_none(fields.get("stop_reason")),
        stop_sequence=to_string_or_none(fields.get("stop_sequence")),
        usage=fields.get("usage"),
    )


def _usage_or_none(value: Any) -> TokenUsage | None:
    if not isinstance(value, dict):
        return None
    try:
        return TokenUsage.model_validate(value)
    except ValidationError:
        return None


def normalize_tool_use_result(value: Any) -> dict[str, Any] | None:
    """Coerce a toolUseResult payload to a dict or None.

    String payloads are decoded as JSON first. Arrays are wrapped as
    ``{"items": ...}`` and any other non-object value as ``{"data": ...}``.
    """
    if isinstance(value, str):
        try:
            value = orjson.loads(value)
        except orjson.JSONDecodeError:
            return {"data": value}
    if value is None or isinstance(value, dict):
        return value
    if isinstance(value, list):
        return {"items": value}
    return {"data": value}


def to_string_or_none(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return stringify(value)


def to_bool_or_none(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
    return bool(value)


def _describe_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in issue['loc'])}: {issue['msg']}"
        for issue in error.errors()[:5]
    ]
