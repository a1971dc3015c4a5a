"""Assemble session views from transcript lines and parsed messages."""

import logging
import random
import string
import time

from pydantic import ValidationError

from claude_session_reader.services.jsonl_parser import (
    CWD_RE,
    GIT_BRANCH_RE,
    SESSION_ID_RE,
    TIMESTAMP_RE,
    parse_line,
)
from claude_session_reader.types.messages import Message
from claude_session_reader.types.sessions import Session, SessionMetadata, SessionTokenUsage
from claude_session_reader.utils.content_sanitizer import preview
from claude_session_reader.utils.timestamps import now_iso

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100
UNPARSEABLE_PREVIEW = "[Unable to parse message content]"
# Reported when a metadata-derived session knows a value exists but not what it is
UNKNOWN = "Unknown"


def create_session_metadata_from_lines(
    project_path: str,
    first_line: str | None,
    last_line: str | None,
    line_count: int,
    file_size: int,
) -> SessionMetadata | None:
    """Build session metadata from a file's first and last non-empty lines.

    Falls back to regex extraction (``create_minimal_metadata``) when a line
    is missing or neither line parses.
    """
    if not first_line or not last_line:
        return create_minimal_metadata(project_path, first_line or last_line, line_count, file_size)

    first = parse_line(first_line)
    last = first if line_count == 1 else parse_line(last_line)
    if first is None and last is None:
        return create_minimal_metadata(project_path, first_line, line_count, file_size)

    first = first or last
    last = last or first

    try:
        return SessionMetadata(
            session_id=first.session_id,
            project_path=project_path,
            start_time=first.timestamp,
            last_update=last.timestamp,
            message_count=line_count,
            file_size=file_size,
            has_git_branch=bool(first.git_branch or last.git_branch),
            has_cwd=bool(first.cwd or last.cwd),
            first_message_preview=preview(first.message.content, PREVIEW_LENGTH),
            last_message_preview=preview(last.message.content, PREVIEW_LENGTH),
        )
    except ValidationError as e:
        logger.debug(
            "Failed to create session metadata from lines (%s), project=%s lines=%d size=%d",
            e, project_path, line_count, file_size,
        )
        return create_minimal_metadata(project_path, first_line, line_count, file_size)


def create_minimal_metadata(
    project_path: str,
    line: str | None,
    line_count: int,
    file_size: int,
) -> SessionMetadata | None:
    """Build metadata by regex-extracting fields straight from raw line text.

    The line must at least look like JSON (contain ``{``, ``}`` and ``"``)
    and yield a sessionId or a timestamp.
    """
    if not line:
        return None

    if not ("{" in line and "}" in line and '"' in line):
        logger.debug("Line does not contain JSON structure, skipping minimal metadata: %r", line[:100])
        return None

    session_match = SESSION_ID_RE.search(line)
    timestamp_match = TIMESTAMP_RE.search(line)
    if not session_match and not timestamp_match:
        logger.debug("No extractable JSON properties found, cannot create minimal metadata")
        return None

    session_id = session_match.group(1) if session_match else fallback_session_id()
    timestamp = timestamp_match.group(1) if timestamp_match else now_iso()

    try:
        return SessionMetadata(
            session_id=session_id,
            project_path=project_path,
            start_time=timestamp,
            last_update=timestamp,
            message_count=line_count,
            file_size=file_size,
            has_git_branch=bool(GIT_BRANCH_RE.search(line)),
            has_cwd=bool(CWD_RE.search(line)),
            first_message_preview=UNPARSEABLE_PREVIEW,
            last_message_preview=UNPARSEABLE_PREVIEW if line_count == 1 else None,
        )
    except ValidationError as e:
        logger.debug("Failed to create minimal metadata for %s: %s", project_path, e)
        return None


def fallback_session_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


def create_session_from_messages(
    session_id: str,
    project_path: str,
    messages: list[Message],
) -> Session | None:
    """Build a full session view from its messages.

    Messages are expected in chronological order. Branch and cwd come from the
    most recent message that has them. Token counts are summed over every
    message's usage block; zero totals are reported as absent.
    """
    if not messages:
        return None

    first, last = messages[0], messages[-1]

    git_branch = None
    cwd = None
    for msg in reversed(messages):
        if git_branch is None and msg.git_branch:
            git_branch = msg.git_branch
        if cwd is None and msg.cwd:
            cwd = msg.cwd
        if git_branch and cwd:
            break

    input_tokens = 0
    cache_creation_tokens = 0
    cache_read_tokens = 0
    output_tokens = 0
    tokens_used = 0.0
    cost_usd = 0.0
    service_tiers: list[str] = []

    for msg in messages:
        usage = msg.message.usage if msg.message is not None else None
        if usage is not None:
            input_tokens += usage.input_tokens or 0
            cache_creation_tokens += usage.cache_creation_input_tokens or 0
            cache_read_tokens += usage.cache_read_input_tokens or 0
            output_tokens += usage.output_tokens or 0
            if usage.service_tier and usage.service_tier not in service_tiers:
                service_tiers.append(usage.service_tier)
        if msg.tokens_used:
            tokens_used += msg.tokens_used
        if msg.cost_usd:
            cost_usd += msg.cost_usd

    total_tokens = input_tokens + cache_creation_tokens + cache_read_tokens + output_tokens
    token_usage = None
    if total_tokens > 0:
        token_usage = SessionTokenUsage(
            total_input_tokens=input_tokens,
            total_cache_creation_tokens=cache_creation_tokens,
            total_cache_read_tokens=cache_read_tokens,
            total_output_tokens=output_tokens,
            total_tokens=total_tokens,
        )

    try:
        return Session(
            session_id=session_id,
            project_path=project_path,
            start_time=first.timestamp,
            last_update=last.timestamp,
            message_count=len(messages),
            git_branch=git_branch,
            cwd=cwd,
            token_usage=token_usage,
            service_tiers=service_tiers or None,
            total_tokens_used=tokens_used if tokens_used > 0 else None,
            total_cost_usd=cost_usd if cost_usd > 0 else None,
        )
    except ValidationError as e:
        logger.debug("Failed to create session %s from messages: %s", session_id, e)
        return None


def create_session_from_metadata(metadata: SessionMetadata) -> Session:
    """Lightweight session view; exact branch/cwd and token data are unknown."""
    return Session(
        session_id=metadata.session_id,
        project_path=metadata.project_path,
        start_time=metadata.start_time,
        last_update=metadata.last_update,
        message_count=metadata.message_count,
        git_branch=UNKNOWN if metadata.has_git_branch else None,
        cwd=UNKNOWN if metadata.has_cwd else None,
    )
