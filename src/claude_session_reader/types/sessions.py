"""Session, metadata and query types derived from transcript files."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _View(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True, alias_generator=to_camel)


class SessionMetadata(_View):
    """Cheap session summary built from a file's first and last lines."""

    session_id: str
    project_path: str
    start_time: str
    last_update: str
    message_count: int
    file_size: int
    has_git_branch: bool
    has_cwd: bool
    first_message_preview: str | None = None
    last_message_preview: str | None = None


class SessionTokenUsage(_View):
    total_input_tokens: int
    total_cache_creation_tokens: int
    total_cache_read_tokens: int
    total_output_tokens: int
    total_tokens: int


class Session(_View):
    session_id: str
    project_path: str
    start_time: str
    last_update: str
    message_count: int
    git_branch: str | None = None
    cwd: str | None = None
    token_usage: SessionTokenUsage | None = None
    service_tiers: list[str] | None = None
    # Legacy fields
    total_tokens_used: float | None = None
    total_cost_usd: float | None = None


class ProjectData(_View):
    project_path: str
    encoded_path: str
    sessions: list[Session]
    total_messages: int
    first_message_time: str | None = None
    last_message_time: str | None = None
    branches: list[str]
    working_directories: list[str]


class SortBy(str, Enum):
    LAST_UPDATE = "lastUpdate"
    START_TIME = "startTime"
    MESSAGE_COUNT = "messageCount"
    FILE_SIZE = "fileSize"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class _Query(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class PaginationOptions(_Query):
    """Offset pagination over session metadata."""

    limit: int = Field(20, ge=0)
    offset: int = Field(0, ge=0)
    sort_by: SortBy = SortBy.LAST_UPDATE
    sort_order: SortOrder = SortOrder.DESC
    search: str | None = None

    @field_validator("sort_by")
    @classmethod
    def _offset_sort_fields(cls, value: SortBy) -> SortBy:
        if value is SortBy.FILE_SIZE:
            raise ValueError("offset pagination sorts by lastUpdate, startTime or messageCount")
        return value


class CursorQuery(_Query):
    """Cursor pagination with optional search and lastUpdate date range."""

    cursor: str | None = None
    limit: int = Field(20, ge=1, le=100)
    sort_by: SortBy = SortBy.LAST_UPDATE
    sort_order: SortOrder = SortOrder.DESC
    search: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class SessionPage(_View):
    sessions: list[Session]
    total: int
    has_more: bool


class CursorPage(_View):
    sessions: list[Session]
    next_cursor: str | None = None
    has_more: bool
