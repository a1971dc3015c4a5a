"""Opaque cursor tokens and sort keys for session metadata pagination."""

import base64
import binascii
import logging

import orjson
from pydantic import BaseModel, ConfigDict, ValidationError

from claude_session_reader.types.sessions import SessionMetadata, SortBy, SortOrder
from claude_session_reader.utils.timestamps import sort_key_ms

logger = logging.getLogger(__name__)


class CursorToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: int | float
    sort_by: SortBy = SortBy.LAST_UPDATE
    sort_order: SortOrder = SortOrder.DESC
    # Tie-breaker: the session id of the last item on the previous page
    session_id: str | None = None


def sort_value(metadata: SessionMetadata, sort_by: SortBy) -> float:
    """Numeric sort key: epoch ms for timestamps, otherwise the raw count/size."""
    if sort_by is SortBy.START_TIME:
        return sort_key_ms(metadata.start_time)
    if sort_by is SortBy.MESSAGE_COUNT:
        return metadata.message_count
    if sort_by is SortBy.FILE_SIZE:
        return metadata.file_size
    return sort_key_ms(metadata.last_update)


def sort_metadata(
    items: list[SessionMetadata],
    sort_by: SortBy,
    sort_order: SortOrder,
) -> list[SessionMetadata]:
    """Sort by ``sort_by``; equal values are ordered by session id in the same direction."""
    return sorted(
        items,
        key=lambda m: (sort_value(m, sort_by), m.session_id),
        reverse=sort_order is SortOrder.DESC,
    )


def encode_cursor(
    value: float,
    sort_by: SortBy,
    sort_order: SortOrder,
    session_id: str | None = None,
) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    payload = {"value": value, "sortBy": sort_by.value, "sortOrder": sort_order.value}
    if session_id is not None:
        payload["sessionId"] = session_id
    return base64.b64encode(orjson.dumps(payload)).decode("ascii")


def decode_cursor(cursor: str) -> CursorToken | None:
    """Decode a cursor token, or None if it is not one we issued."""
    try:
        raw = base64.b64decode(cursor, validate=True)
        data = orjson.loads(raw)
        return CursorToken.model_validate({
            "value": data["value"],
            "sort_by": data.get("sortBy", SortBy.LAST_UPDATE),
            "sort_order": data.get("sortOrder", SortOrder.DESC),
            "session_id": data.get("sessionId"),
        })
    except (binascii.Error, ValueError, TypeError, KeyError, AttributeError, ValidationError) as e:
        logger.debug("Invalid cursor provided, starting from beginning: %s", e)
        return None


def resume_index(
    items: list[SessionMetadata],
    cursor_value: float,
    sort_by: SortBy,
    sort_order: SortOrder,
    session_id: str | None = None,
) -> int:
    """Index of the first item strictly past the cursor in sort direction.

    ``items`` must be ordered by ``sort_metadata``. With a ``session_id`` the
    cursor position is the pair ``(cursor_value, session_id)``, so items that
    tie on the value are split by session id instead of skipped. Without one
    only the value is compared. Returns ``len(items)`` when nothing lies past
    the cursor.
    """
    descending = sort_order is SortOrder.DESC
    for index, item in enumerate(items):
        value = sort_value(item, sort_by)
        if session_id is None:
            key, cursor_key = value, cursor_value
        else:
            key, cursor_key = (value, item.session_id), (cursor_value, session_id)
        if (key < cursor_key) if descending else (key > cursor_key):
            return index
    return len(items)
