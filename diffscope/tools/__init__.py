from diffscope.tools.contract import (
    GlobParams,
    GlobResult,
    GrepMatch,
    GrepParams,
    GrepResult,
    ReadParams,
    ReadResult,
    ToolError,
    ToolName,
    ToolRequest,
    ToolResult,
    ToolStatus,
)
from diffscope.tools.registry import ToolRegistry, create_tool_registry

__all__ = [
    "ToolName",
    "ToolRequest",
    "ToolResult",
    "ToolStatus",
    "ToolError",
    "ReadParams",
    "GlobParams",
    "GrepParams",
    "ReadResult",
    "GlobResult",
    "GrepMatch",
    "GrepResult",
    "ToolRegistry",
    "create_tool_registry",
]
