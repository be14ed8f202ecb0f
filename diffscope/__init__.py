"""Git-aware unified diff parsing and sandboxed repository inspection."""

from diffscope.config import ToolLimits
from diffscope.parsing import ParsedDiff, normalize_git_path, parse_unified_diff
from diffscope.tools import ToolRegistry, create_tool_registry

__version__ = "0.1.0"

__all__ = [
    "ParsedDiff",
    "ToolLimits",
    "ToolRegistry",
    "create_tool_registry",
    "normalize_git_path",
    "parse_unified_diff",
]
