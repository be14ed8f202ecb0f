"""Unit tests for the Read tool."""

from pathlib import Path

import pytest

from diffscope.sandbox.exceptions import (
    NotAFileError,
    PathEscapeError,
    PathNotFoundError,
    SizeLimitExceededError,
    SymLinkError,
)
from diffscope.tools.contract import UnsupportedEncodingError
from diffscope.tools.read import read_file

README = "# Tooling Fixture\n\nSample repository for the read-only tools.\n"


class TestReadFile:
    """Tests for read_file."""

    def test_reads_relative_path(self, repo: Path) -> None:
        """Content, path and size are returned."""
        result = read_file(repo, "README.md")

        assert result.path == "README.md"
        assert result.content == README
        assert result.content.startswith("# Tooling Fixture")

    def test_absolute_path_inside_root_reported_relative(self, repo: Path) -> None:
        """Absolute input paths come back root-relative."""
        result = read_file(repo, str(repo / "src" / "index.ts"))
        assert result.path == "src/index.ts"

    def test_latin1_decoding(self, repo: Path) -> None:
        """UTF-8 bytes of 'café' read as latin1 give one character per byte."""
        result = read_file(repo, "src/latin1.txt", encoding="latin1")
        assert result.content == "cafÃ©\n"

    def test_invalid_bytes_are_replaced(self, repo: Path) -> None:
        """Undecodable bytes become U+FFFD."""
        (repo / "bad.txt").write_bytes(b"ok\xff\n")

        result = read_file(repo, "bad.txt")

        assert result.content == "ok�\n"

    def test_file_at_exact_limit_is_allowed(self, repo: Path) -> None:
        """A file of exactly max_bytes is read."""
        size = len(README.encode("utf-8"))
        assert read_file(repo, "README.md", max_bytes=size).content == README


class TestReadFileErrors:
    """Tests for read_file failures."""

    def test_parent_escape(self, repo: Path) -> None:
        """Paths above the root are rejected."""
        with pytest.raises(PathEscapeError):
            read_file(repo, "../outside.txt")

    def test_absolute_path_outside_root(self, repo: Path) -> None:
        """Absolute paths elsewhere are rejected."""
        with pytest.raises(PathEscapeError):
            read_file(repo, "/etc/passwd")

    def test_missing_file(self, repo: Path) -> None:
        """A missing file is reported by its relative path."""
        with pytest.raises(PathNotFoundError) as exc_info:
            read_file(repo, "src/missing.ts")

        assert exc_info.value.path == "src/missing.ts"

    def test_directory_is_not_a_file(self, repo: Path) -> None:
        """Directories cannot be read."""
        with pytest.raises(NotAFileError):
            read_file(repo, "src")

    def test_symlinked_file_rejected(self, repo: Path, make_symlink) -> None:
        """A symlinked file is rejected."""
        make_symlink(repo / "src" / "symlink-index.ts", repo / "src" / "index.ts")

        with pytest.raises(SymLinkError):
            read_file(repo, "src/symlink-index.ts")

    def test_dangling_symlink_rejected(self, repo: Path, make_symlink) -> None:
        """A broken link is still a symlink, not a missing file."""
        make_symlink(repo / "dangling.txt", repo / "nowhere.txt")

        with pytest.raises(SymLinkError):
            read_file(repo, "dangling.txt")

    def test_file_through_symlinked_directory_rejected(self, repo: Path, make_symlink) -> None:
        """A symlinked parent directory is rejected."""
        make_symlink(repo / "alias", repo / "src")

        with pytest.raises(SymLinkError):
            read_file(repo, "alias/index.ts")

    def test_size_limit(self, repo: Path) -> None:
        """Files over max_bytes are refused with both sizes."""
        with pytest.raises(SizeLimitExceededError) as exc_info:
            read_file(repo, "README.md", max_bytes=5)

        error = exc_info.value
        assert error.limit == 5
        assert error.actual == len(README.encode("utf-8"))
        assert "exceeding the maximum allowed size of 5 bytes" in str(error)

    def test_unsupported_encoding_checked_before_io(self, repo: Path) -> None:
        """The encoding is rejected even when the path does not exist."""
        with pytest.raises(UnsupportedEncodingError):
            read_file(repo, "src/missing.ts", encoding="utf32")
