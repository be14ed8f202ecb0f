import logging
import os
import posixpath
import re
from pathlib import Path

from diffscope.sandbox.exceptions import NotADirectoryPathError, PathNotFoundError
from diffscope.sandbox.filesystem import (
    ensure_no_symlinks,
    is_ignored,
    iter_files,
    resolve_within_root,
    to_root_relative,
)
from diffscope.tools.contract import GlobResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 250
_GLOB_CHARS = frozenset("*?[{")


def _translate(pattern: str) -> str:
    parts: list[str] = []
    i = 0
    n = len(pattern)

    while i < n:
        char = pattern[i]
        if char == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    # "**/" also matches zero directories
                    parts.append("(?:.*/)?")
                    i += 1
                else:
                    parts.append(".*")
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            end = pattern.find("]", i + 2)
            if end == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[i + 1:end]
                negate = body[:1] in ("!", "^")
                if negate:
                    body = body[1:]
                # "-" stays a range operator; everything else is literal
                body = "".join(m if m == "-" else re.escape(m) for m in body)
                parts.append(f"[{'^' if negate else ''}{body}]")
                i = end
        elif char == "{":
            end = pattern.find("}", i + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                options = pattern[i + 1:end].split(",")
                parts.append("(?:" + "|".join(_translate(option) for option in options) + ")")
                i = end
        else:
            parts.append(re.escape(char))
        i += 1

    return "".join(parts)


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Compile a glob into a regex matched against a whole POSIX relative path.

    Supports ``*`` and ``?`` (never crossing ``/``), ``**`` (any depth, including
    none), ``[...]`` / ``[!...]`` classes and ``{a,b}`` alternatives. Class
    members are literal apart from ``-`` ranges, as with `fnmatch`. Leading
    dots get no special treatment.
    """

    return re.compile(_translate(pattern))


def _literal_prefix(pattern: str) -> str:
    """Leading path segments that contain no glob syntax."""

    literal: list[str] = []
    for segment in pattern.split("/"):
        if any(char in _GLOB_CHARS for char in segment):
            break
        literal.append(segment)
    return "/".join(literal) or "."


def _root_relative_pattern(workspace_root: Path, cwd_relative: str, pattern: str) -> str | None:
    if os.path.isabs(pattern):
        joined = os.path.relpath(os.path.normpath(pattern), workspace_root)
        joined = Path(joined).as_posix()
    else:
        joined = posixpath.normpath(posixpath.join(cwd_relative, pattern))

    if joined == ".." or joined.startswith("../") or posixpath.isabs(joined):
        return None
    return joined


def glob_files(
    workspace_root: Path,
    pattern: str,
    cwd: str | None = None,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> GlobResult:
    """
    List files under the sandbox root matching `pattern`.

    The pattern is relative to `cwd` (default: the root); results are always
    root-relative, sorted case-insensitively. A pattern that would reach
    outside the root matches nothing. The full match set is sorted before it
    is cut to `max_results`.

    Raises:
        PathEscapeError, SymLinkError, PathNotFoundError, NotADirectoryPathError:
            for a bad `cwd`
    """

    cwd_path = resolve_within_root(workspace_root, cwd or ".")
    cwd_relative = to_root_relative(workspace_root, cwd_path)
    if not cwd_path.exists() and not cwd_path.is_symlink():
        raise PathNotFoundError(cwd_relative)
    ensure_no_symlinks(workspace_root, cwd_path)
    if not cwd_path.is_dir():
        raise NotADirectoryPathError(cwd_relative)

    normalized = _root_relative_pattern(workspace_root, cwd_relative, pattern)
    if normalized is None:
        logger.warning("Glob pattern escapes the repository root: %s", pattern)
        return GlobResult(matches=[], truncated=False)

    regex = glob_to_regex(normalized)
    base = workspace_root / _literal_prefix(normalized)
    if not base.exists():
        return GlobResult(matches=[], truncated=False)

    matches: set[str] = set()
    for file_path in iter_files(workspace_root, base):
        relative = to_root_relative(workspace_root, file_path)
        if is_ignored(relative):
            continue
        if regex.fullmatch(relative):
            matches.add(relative)

    ordered = sorted(matches, key=lambda p: (p.lower(), p))
    logger.debug("glob %s matched %d files", normalized, len(ordered))
    return GlobResult(
        matches=ordered[:max_results],
        truncated=len(ordered) > max_results,
    )
