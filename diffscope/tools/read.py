import logging
import stat
from pathlib import Path

from diffscope.sandbox.exceptions import NotAFileError, PathNotFoundError, SizeLimitExceededError
from diffscope.sandbox.filesystem import ensure_no_symlinks, resolve_within_root, to_root_relative
from diffscope.tools.contract import ReadResult, resolve_encoding

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 200_000


def read_file(
    workspace_root: Path,
    path: str,
    encoding: str = "utf8",
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> ReadResult:
    """
    Read a regular file inside the sandbox.

    The size is checked with stat() before the file is opened; at most
    `max_bytes` + 1 bytes are ever read, in case the file grows in between.
    Invalid byte sequences decode to U+FFFD.

    Raises:
        UnsupportedEncodingError: before any I/O, for an unknown encoding
        PathEscapeError, SymLinkError, PathNotFoundError, NotAFileError,
        SizeLimitExceededError
    """

    codec = resolve_encoding(encoding)
    target = resolve_within_root(workspace_root, path)
    relative = to_root_relative(workspace_root, target)

    if not target.exists() and not target.is_symlink():
        raise PathNotFoundError(relative)
    ensure_no_symlinks(workspace_root, target)

    file_stat = target.stat()
    if not stat.S_ISREG(file_stat.st_mode):
        raise NotAFileError(relative)
    if file_stat.st_size > max_bytes:
        raise SizeLimitExceededError(relative, max_bytes, file_stat.st_size)

    with target.open("rb") as f:
        data = f.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise SizeLimitExceededError(relative, max_bytes, len(data))

    logger.debug("Read %d bytes from %s", len(data), relative)
    return ReadResult(path=relative, content=data.decode(codec, errors="replace"))
