import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from diffscope.config import ToolLimits
from diffscope.sandbox.exceptions import SandboxError, SizeLimitExceededError
from diffscope.tools.contract import (
    GlobParams,
    GlobResult,
    GrepParams,
    GrepResult,
    ReadParams,
    ReadResult,
    ToolError,
    ToolName,
    ToolRequest,
    ToolResult,
    ToolStatus,
    UnsupportedEncodingError,
)
from diffscope.tools.globbing import glob_files
from diffscope.tools.grep import InvalidPatternError, InvalidRegexFlagsError, grep_search
from diffscope.tools.read import read_file

logger = logging.getLogger(__name__)

_TOOL_PARAMS: dict[ToolName, type[BaseModel]] = {
    ToolName.READ: ReadParams,
    ToolName.GLOB: GlobParams,
    ToolName.GREP: GrepParams,
}


def _to_tool_error(error: Exception) -> ToolError:
    if isinstance(error, ValidationError):
        return ToolError(
            error_type="invalid_params",
            message=f"Invalid parameters: {error.error_count()} validation error(s)",
            details={
                "errors": [
                    {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                    for err in error.errors()
                ]
            },
        )
    if isinstance(error, SizeLimitExceededError):
        return ToolError(
            error_type=error.error_type,
            message=str(error),
            details={"limit": error.limit, "actual": error.actual},
        )
    if isinstance(
        error,
        (SandboxError, InvalidRegexFlagsError, InvalidPatternError, UnsupportedEncodingError),
    ):
        return ToolError(error_type=error.error_type, message=str(error), details={})
    if isinstance(error, ValueError):
        return ToolError(error_type="invalid_params", message=str(error), details={})
    if isinstance(error, OSError):
        # strerror only: the exception text would carry the absolute path
        return ToolError(
            error_type="io_error",
            message=f"{type(error).__name__}: {error.strerror or 'I/O failure'}",
            details={},
        )
    raise error


@dataclass(frozen=True)
class ToolRegistry:
    """
    Read-only repository tools bound to one sandbox root.

    Instances hold no mutable state, so one registry can serve concurrent
    callers. Typed methods raise on failure; `invoke` is the tool-calling
    entry point and reports failures inside the ToolResult instead.
    """

    root: Path
    limits: ToolLimits = field(default_factory=ToolLimits)

    def read(
        self,
        path: str,
        encoding: str = "utf8",
        max_bytes: int | None = None,
    ) -> ReadResult:
        return read_file(
            self.root,
            path,
            encoding=encoding,
            max_bytes=max_bytes or self.limits.read_max_bytes,
        )

    def glob(
        self,
        pattern: str,
        cwd: str | None = None,
        max_results: int | None = None,
    ) -> GlobResult:
        return glob_files(
            self.root,
            pattern,
            cwd=cwd,
            max_results=max_results or self.limits.glob_max_results,
        )

    def grep(
        self,
        pattern: str,
        flags: str | None = None,
        path: str | list[str] | None = None,
        max_results: int | None = None,
        encoding: str = "utf8",
    ) -> GrepResult:
        return grep_search(
            self.root,
            pattern,
            flags=flags,
            path=path,
            max_results=max_results or self.limits.grep_max_results,
            encoding=encoding,
            snippet_chars=self.limits.grep_snippet_chars,
        )

    def _dispatch(self, request: ToolRequest) -> BaseModel:
        params = _TOOL_PARAMS[request.tool].model_validate(request.params)

        if request.tool == ToolName.READ:
            return self.read(params.path, params.encoding, params.max_bytes)
        elif request.tool == ToolName.GLOB:
            return self.glob(params.pattern, params.cwd, params.max_results)
        elif request.tool == ToolName.GREP:
            return self.grep(
                params.pattern,
                flags=params.flags,
                path=params.path,
                max_results=params.max_results,
                encoding=params.encoding,
            )
        raise ValueError(f"Unknown tool: {request.tool}")

    def invoke(self, request: ToolRequest) -> ToolResult:
        """
        Validate and run one tool call.

        Parameter-contract violations and tool failures come back as
        status=error with a ToolError; nothing is retried.
        """

        started_at = datetime.now(timezone.utc)
        data: dict[str, Any] | None = None
        error: ToolError | None = None

        try:
            result = self._dispatch(request)
            data = result.model_dump(by_alias=True)
        except Exception as e:
            error = _to_tool_error(e)
            logger.debug("%s failed: %s: %s", request.tool, error.error_type, error.message)

        ended_at = datetime.now(timezone.utc)
        return ToolResult(
            request_id=request.request_id,
            tool=request.tool,
            status=ToolStatus.SUCCESS if error is None else ToolStatus.ERROR,
            started_at=started_at,
            ended_at=ended_at,
            duration_sec=(ended_at - started_at).total_seconds(),
            data=data,
            error=error,
        )

    def tool_schemas(self) -> list[dict[str, Any]]:
        """Name, description and JSON schema of each tool for an LLM runtime."""

        return [
            {
                "name": str(name),
                "description": (params.__doc__ or "").strip(),
                "input_schema": params.model_json_schema(by_alias=True),
            }
            for name, params in _TOOL_PARAMS.items()
        ]


def create_tool_registry(root: str | Path, limits: ToolLimits | None = None) -> ToolRegistry:
    resolved = Path(root).resolve()
    if not resolved.is_dir():
        raise ValueError(f"Repository root is not a directory: {root}")
    return ToolRegistry(root=resolved, limits=limits or ToolLimits())
