"""Unified diff parsing."""

from .diff_models import (
    DiffFile,
    DiffHunk,
    DiffLine,
    DiffLineKind,
    DiffSide,
    ModeChange,
    ParsedDiff,
    Rename,
    changed_paths,
)
from .exceptions import MalformedHeaderError
from .git_path import (
    HeaderPaths,
    normalize_git_path,
    split_diff_git_header_paths,
    strip_enclosing_quotes,
    unescape_git_path,
)
from .unified_diff import parse_unified_diff

__all__ = [
    "DiffFile",
    "DiffHunk",
    "DiffLine",
    "DiffLineKind",
    "DiffSide",
    "ModeChange",
    "ParsedDiff",
    "Rename",
    "changed_paths",
    "MalformedHeaderError",
    "HeaderPaths",
    "normalize_git_path",
    "split_diff_git_header_paths",
    "strip_enclosing_quotes",
    "unescape_git_path",
    "parse_unified_diff",
]
