"""Sandboxed access to a repository checkout."""

from .exceptions import (
    NotADirectoryPathError,
    NotAFileError,
    PathEscapeError,
    PathNotFoundError,
    SandboxError,
    SizeLimitExceededError,
    SymLinkError,
)
from .filesystem import (
    IGNORED_DIRECTORIES,
    ensure_no_symlinks,
    is_ignored,
    iter_files,
    resolve_within_root,
    to_root_relative,
)

__all__ = [
    "SandboxError",
    "PathEscapeError",
    "SymLinkError",
    "NotAFileError",
    "NotADirectoryPathError",
    "PathNotFoundError",
    "SizeLimitExceededError",
    "IGNORED_DIRECTORIES",
    "ensure_no_symlinks",
    "is_ignored",
    "iter_files",
    "resolve_within_root",
    "to_root_relative",
]
