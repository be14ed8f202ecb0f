import logging
import os
from collections.abc import Iterator
from pathlib import Path

from diffscope.sandbox.exceptions import PathEscapeError, SymLinkError

logger = logging.getLogger(__name__)

# Matched against single path segments at any depth.
IGNORED_DIRECTORIES = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        "bower_components",
        ".venv",
        "venv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        ".cache",
        ".next",
        ".turbo",
        "build",
        "dist",
        "coverage",
        "target",
    }
)


def resolve_within_root(workspace_root: Path, candidate: str) -> Path:
    """
    Resolve a caller-supplied path against the sandbox root.

    Args:
        workspace_root: Absolute sandbox root
        candidate: Relative or absolute path from the caller

    Returns:
        Normalized absolute path inside workspace_root. Symlinks are not
        followed here; see `ensure_no_symlinks`.

    Raises:
        ValueError: If candidate is empty or blank
        PathEscapeError: If the path lands outside workspace_root
    """

    if candidate is None or not candidate.strip():
        raise ValueError("Path must be a non-empty string")

    root = Path(workspace_root)
    absolute = Path(os.path.normpath(os.path.join(root, candidate)))
    relative = os.path.relpath(absolute, root)

    if relative == os.pardir or relative.startswith(os.pardir + os.sep) or os.path.isabs(relative):
        logger.warning("Path escape attempt: %s", candidate)
        raise PathEscapeError(candidate)

    return absolute


def to_root_relative(workspace_root: Path, absolute: Path) -> str:
    """POSIX-style path of `absolute` relative to the root, "." for the root itself."""

    relative = os.path.relpath(absolute, workspace_root)
    if relative == os.curdir:
        return "."
    return Path(relative).as_posix()


def ensure_no_symlinks(workspace_root: Path, path: Path) -> None:
    """Raise SymLinkError if any segment from the root down to `path` is a symlink."""

    root = Path(workspace_root)
    path_so_far = root

    for part in Path(path).relative_to(root).parts:
        path_so_far = path_so_far / part

        if path_so_far.is_symlink():
            relative = to_root_relative(root, path_so_far)
            logger.warning("Symlink blocked: %s", relative)
            raise SymLinkError(relative)


def is_ignored(relative_path: str) -> bool:
    return any(part in IGNORED_DIRECTORIES for part in Path(relative_path).parts)


def iter_files(workspace_root: Path, start: Path) -> Iterator[Path]:
    """
    Yield regular files under `start` in a deterministic depth-first order.

    Symlinks are never followed or yielded, whether they point at files or
    directories. Directories named in IGNORED_DIRECTORIES are pruned.
    """

    root = Path(workspace_root)
    start = Path(start)

    if start != root and is_ignored(to_root_relative(root, start)):
        logger.debug("Skipping ignored path: %s", to_root_relative(root, start))
        return
    try:
        ensure_no_symlinks(root, start)
    except SymLinkError:
        return
    if start.is_file():
        yield start
        return
    if not start.is_dir():
        return

    visited: set[str] = set()
    pending = [start]

    while pending:
        directory = pending.pop()
        key = os.path.abspath(directory)
        if key in visited:
            continue
        visited.add(key)

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            logger.debug("Cannot list %s: %s", to_root_relative(root, directory), e)
            continue

        subdirectories: list[Path] = []
        for entry in entries:
            if entry.is_symlink():
                logger.debug("Skipping symlink: %s", to_root_relative(root, Path(entry.path)))
                continue
            if entry.is_dir(follow_symlinks=False):
                if entry.name not in IGNORED_DIRECTORIES:
                    subdirectories.append(Path(entry.path))
            elif entry.is_file(follow_symlinks=False):
                yield Path(entry.path)

        # Reversed so the stack pops subdirectories in name order.
        pending.extend(reversed(subdirectories))
