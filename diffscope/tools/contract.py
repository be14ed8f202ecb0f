from datetime import datetime
from enum import StrEnum
from typing import Any

import ulid
from pydantic import BaseModel, ConfigDict, Field, field_validator

from diffscope.config import MAX_GLOB_RESULTS, MAX_GREP_RESULTS, MAX_READ_BYTES

# Caller-facing encoding names mapped to Python codecs.
SUPPORTED_ENCODINGS: dict[str, str] = {
    "utf8": "utf-8",
    "utf-8": "utf-8",
    "utf16le": "utf-16-le",
    "latin1": "latin-1",
    "ascii": "ascii",
}


class UnsupportedEncodingError(ValueError):
    error_type = "unsupported_encoding"

    def __init__(self, encoding: str):
        super().__init__(
            f"Unsupported encoding {encoding!r}; expected one of {', '.join(SUPPORTED_ENCODINGS)}"
        )
        self.encoding = encoding


def resolve_encoding(name: str) -> str:
    try:
        return SUPPORTED_ENCODINGS[name.lower()]
    except KeyError:
        raise UnsupportedEncodingError(name) from None


class ToolName(StrEnum):
    READ = "Read"
    GLOB = "Glob"
    GREP = "Grep"


class ToolStatus(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class ToolError(BaseModel):
    error_type: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ToolRequest(BaseModel):
    tool: ToolName
    params: dict[str, Any] = Field(default_factory=dict)
    request_id: str = Field(default_factory=lambda: str(ulid.ULID()))


class ToolResult(BaseModel):
    request_id: str
    tool: ToolName
    status: ToolStatus
    started_at: datetime
    ended_at: datetime
    duration_sec: float
    data: dict[str, Any] | None = None
    error: ToolError | None = None


# --- params


class _Params(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
    )


def _non_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must be a non-empty string")
    return value


class ReadParams(_Params):
    """Read a text file inside the repository."""

    path: str = Field(description="File path, absolute or relative to the repository root.")
    encoding: str = Field(default="utf8", description="Text encoding of the file.")
    max_bytes: int | None = Field(
        default=None,
        alias="maxBytes",
        gt=0,
        le=MAX_READ_BYTES,
        description="Refuse files larger than this many bytes.",
    )

    check_path = field_validator("path")(_non_blank)

    @field_validator("encoding")
    @classmethod
    def check_encoding(cls, v: str) -> str:
        resolve_encoding(v)
        return v


class GlobParams(_Params):
    """List repository files matching a glob pattern."""

    pattern: str = Field(description="Glob pattern, e.g. 'src/**/*.py'.")
    cwd: str | None = Field(
        default=None,
        description="Directory the pattern is relative to, relative to the repository root.",
    )
    max_results: int | None = Field(
        default=None,
        alias="maxResults",
        gt=0,
        le=MAX_GLOB_RESULTS,
        description="Maximum number of paths to return.",
    )

    check_pattern = field_validator("pattern")(_non_blank)


class GrepParams(_Params):
    """Search file contents with a regular expression."""

    pattern: str = Field(description="Regular expression source.")
    flags: str | None = Field(
        default=None,
        description="Regex flag characters from 'gimsu'.",
    )
    path: str | list[str] | None = Field(
        default=None,
        description="File or directory (or a list of them) to search. Defaults to the whole repository.",
    )
    max_results: int | None = Field(
        default=None,
        alias="maxResults",
        gt=0,
        le=MAX_GREP_RESULTS,
        description="Maximum number of matches to return.",
    )
    encoding: str = Field(default="utf8", description="Text encoding of searched files.")

    @field_validator("pattern")
    @classmethod
    def check_pattern(cls, v: str) -> str:
        if v == "":
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("encoding")
    @classmethod
    def check_encoding(cls, v: str) -> str:
        resolve_encoding(v)
        return v


# --- results


class ReadResult(BaseModel):
    path: str
    content: str


class GlobResult(BaseModel):
    matches: list[str]
    truncated: bool


class GrepMatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str
    line: int
    column: int
    match: str
    context: str
    offset: int
    byte_offset: int = Field(alias="byteOffset")


class GrepResult(BaseModel):
    matches: list[GrepMatch]
    truncated: bool
