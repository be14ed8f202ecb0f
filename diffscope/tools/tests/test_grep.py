"""Unit tests for the Grep tool."""

from pathlib import Path

import pytest

from diffscope.sandbox.exceptions import PathEscapeError, PathNotFoundError
from diffscope.tools import grep as grep_module
from diffscope.tools.contract import UnsupportedEncodingError
from diffscope.tools.grep import (
    ELLIPSIS,
    InvalidPatternError,
    InvalidRegexFlagsError,
    build_snippet,
    grep_search,
    needs_full_buffer,
    normalize_flags,
)

INDEX_TS = (
    'import { log } from "./utils/logger";\n'
    "export function main(message: string) {\n"
    "  console.log(message);\n"
    "}\n"
)


class TestNormalizeFlags:
    """Tests for regex flag normalization."""

    def test_g_is_always_added(self) -> None:
        """g is appended when missing."""
        assert normalize_flags(None) == "g"
        assert normalize_flags("i") == "ig"
        assert normalize_flags("gi") == "gi"

    @pytest.mark.parametrize("flags", ["z", "ii", "gx", "y"])
    def test_invalid_flags(self, flags: str) -> None:
        """Unknown or repeated flags are rejected."""
        with pytest.raises(InvalidRegexFlagsError, match="flags must be valid"):
            normalize_flags(flags)


class TestNeedsFullBuffer:
    """Tests for choosing between the scan strategies."""

    @pytest.mark.parametrize(
        "pattern, flags, expected",
        [
            ("console\\.log", "g", False),
            ("first line\nsecond", "g", True),
            ("a\\nb", "g", True),
            ("a\\r", "g", True),
            ("a.b", "sg", True),
        ],
    )
    def test_strategy_choice(self, pattern: str, flags: str, expected: bool) -> None:
        """Line-spanning patterns and the s flag need the whole file."""
        assert needs_full_buffer(pattern, flags) is expected


class TestBuildSnippet:
    """Tests for context snippets around a match."""

    def test_short_line_unchanged(self) -> None:
        """A line within budget is returned whole."""
        assert build_snippet("  console.log(x);", 2, 11, 200) == "  console.log(x);"

    def test_long_line_trimmed_on_both_sides(self) -> None:
        """A long line is centred on the match with ellipses."""
        line = "a" * 250 + "NEEDLE" + "b" * 250

        snippet = build_snippet(line, 250, 6, 50)

        assert snippet.startswith(ELLIPSIS)
        assert snippet.endswith(ELLIPSIS)
        assert "NEEDLE" in snippet
        assert len(snippet) == 50 + 2 * len(ELLIPSIS)

    def test_match_at_line_end(self) -> None:
        """A match at the end keeps only the leading ellipsis."""
        line = "x" * 300 + "NEEDLE"

        snippet = build_snippet(line, 300, 6, 50)

        assert snippet == ELLIPSIS + line[-50:]

    def test_match_at_line_start(self) -> None:
        """A match at the start keeps only the trailing ellipsis."""
        line = "NEEDLE" + "y" * 300

        snippet = build_snippet(line, 0, 6, 50)

        assert snippet == line[:50] + ELLIPSIS


class TestGrepSearch:
    """Tests for grep_search."""

    def test_finds_matches_across_files(self, repo: Path) -> None:
        """Results follow the sorted file order; node_modules is never searched."""
        result = grep_search(repo, r"console\.log")

        assert [(m.path, m.line, m.column) for m in result.matches] == [
            ("src/index.ts", 3, 3),
            ("src/utils/logger.ts", 2, 3),
        ]
        assert result.truncated is False

    def test_match_fields(self, repo: Path) -> None:
        """Match text, context and offsets are reported."""
        match = grep_search(repo, r"console\.log", path="src/index.ts").matches[0]

        assert match.match == "console.log"
        assert match.context == "  console.log(message);"
        assert match.offset == INDEX_TS.index("console.log")
        assert match.byte_offset == match.offset

    def test_multibyte_offsets(self, repo: Path) -> None:
        """offset counts characters; byte_offset counts encoded bytes."""
        match = grep_search(repo, "match", path="src/unicode.txt").matches[0]

        assert (match.line, match.column) == (2, 7)
        assert match.offset == 18
        assert match.byte_offset == 21

    def test_streaming_and_full_buffer_agree(self, repo: Path) -> None:
        """The s flag forces the full-buffer strategy without changing this pattern."""
        streamed = grep_search(repo, "w.rld|console", path="src")
        buffered = grep_search(repo, "w.rld|console", flags="s", path="src")

        assert streamed.matches == buffered.matches
        assert len(streamed.matches) == 3

    def test_multiline_pattern(self, repo: Path) -> None:
        """A literal newline in the pattern spans lines."""
        result = grep_search(repo, "first line\nsecond line", path="src/multiline.txt")

        assert len(result.matches) == 1
        match = result.matches[0]
        assert (match.line, match.column, match.offset) == (1, 1, 0)
        assert match.match == "first line\nsecond line"
        assert match.context == "first line"

    def test_escaped_newline_pattern_on_later_line(self, repo: Path) -> None:
        """Line and column come from the match start."""
        match = grep_search(repo, "line\\nthird", path="src/multiline.txt").matches[0]

        assert (match.line, match.column) == (2, 8)
        assert match.offset == len("first line\nsecond ")

    def test_crlf_line_endings(self, repo: Path) -> None:
        """CRLF files report the same positions in both strategies."""
        (repo / "crlf.txt").write_bytes(b"one\r\ntwo\r\nthree\r\n")

        streamed = grep_search(repo, "three", path="crlf.txt").matches[0]
        buffered = grep_search(repo, "three", flags="s", path="crlf.txt").matches[0]

        assert streamed == buffered
        assert (streamed.line, streamed.column, streamed.offset) == (3, 1, 10)
        assert streamed.context == "three"

    def test_case_insensitive_flag(self, repo: Path) -> None:
        """The i flag ignores case."""
        result = grep_search(repo, "CONSOLE", flags="i")
        assert len(result.matches) == 2

    def test_multiple_matches_on_one_line(self, repo: Path) -> None:
        """Every match on a line is reported."""
        (repo / "repeat.txt").write_text("ab ab ab\n")

        result = grep_search(repo, "ab", path="repeat.txt")

        assert [m.column for m in result.matches] == [1, 4, 7]

    def test_truncation(self, repo: Path) -> None:
        """Hitting the cap with matches left over sets truncated."""
        result = grep_search(repo, r"console\.log", max_results=1)

        assert len(result.matches) == 1
        assert result.matches[0].path == "src/index.ts"
        assert result.truncated is True

    def test_path_list_is_deduplicated(self, repo: Path) -> None:
        """Overlapping paths search each file once."""
        result = grep_search(
            repo, r"console\.log", path=["src/utils", "src/index.ts", "src/utils/logger.ts"]
        )

        assert [m.path for m in result.matches] == ["src/index.ts", "src/utils/logger.ts"]

    def test_latin1_encoding(self, repo: Path) -> None:
        """latin1 decodes one character per byte."""
        match = grep_search(repo, "Ã©", path="src/latin1.txt", encoding="latin1").matches[0]

        assert match.column == 4
        assert match.byte_offset == 3

    def test_binary_files_are_skipped(self, repo: Path) -> None:
        """Files with NUL bytes are not searched."""
        (repo / "blob.bin").write_bytes(b"\x00\x01console.log")

        result = grep_search(repo, r"console\.log")

        assert "blob.bin" not in [m.path for m in result.matches]

    def test_symlinks_are_skipped(self, repo: Path, make_symlink) -> None:
        """Symlinked files are not searched."""
        make_symlink(repo / "src" / "symlink-index.ts", repo / "src" / "index.ts")

        result = grep_search(repo, r"console\.log")

        assert "src/symlink-index.ts" not in [m.path for m in result.matches]

    def test_long_line_snippet(self, repo: Path) -> None:
        """Context for a long line is trimmed around the match."""
        (repo / "long.txt").write_text("x" * 500 + "needle" + "y" * 500 + "\n")

        match = grep_search(repo, "needle", path="long.txt", snippet_chars=40).matches[0]

        assert match.column == 501
        assert "needle" in match.context
        assert match.context.startswith(ELLIPSIS) and match.context.endswith(ELLIPSIS)


class TestGrepLimitsAndFailures:
    """Tests for truncation, undecodable bytes and unreadable files."""

    def test_exact_cap_is_not_truncated(self, repo: Path) -> None:
        """Reaching max_results with nothing left over is not truncation."""
        (repo / "single.txt").write_text("one needle here\n")

        result = grep_search(repo, "needle", path="single.txt", max_results=1)

        assert len(result.matches) == 1
        assert result.truncated is False

    @pytest.mark.parametrize("flags", [None, "s"])
    def test_undecodable_bytes_keep_byte_offsets(self, repo: Path, flags: str | None) -> None:
        """An invalid UTF-8 byte counts as one byte and is shown as U+FFFD."""
        (repo / "invalid.txt").write_bytes(b"\xff needle\n")

        match = grep_search(repo, "needle", flags=flags, path="invalid.txt").matches[0]

        assert (match.column, match.offset, match.byte_offset) == (3, 2, 2)
        assert match.match == "needle"
        assert match.context == "\ufffd needle"

    def test_unreadable_file_is_skipped(self, repo: Path, monkeypatch) -> None:
        """A file that disappears after the walk does not abort the search."""
        collect = grep_module.collect_candidates

        def with_vanished_file(root: Path, paths: list[str]) -> list[tuple[Path, str]]:
            return [(root / "src" / "gone.ts", "src/gone.ts"), *collect(root, paths)]

        monkeypatch.setattr(grep_module, "collect_candidates", with_vanished_file)

        result = grep_search(repo, r"console\.log")

        assert [m.path for m in result.matches] == ["src/index.ts", "src/utils/logger.ts"]


class TestStrategyAgreement:
    """Streaming and full-buffer scans report the same matches."""

    ANCHORS = b"foo\r\nbar foo\r\n  console.log(1)\r\nfoo bar\r\n"

    def _positions(self, repo: Path, pattern: str, flags: str | None) -> list[tuple[int, int, str]]:
        result = grep_search(repo, pattern, flags=flags, path="anchors.txt")
        return [(m.line, m.column, m.match) for m in result.matches]

    @pytest.mark.parametrize(
        "pattern, expected",
        [
            ("^  console", [(3, 1, "  console")]),
            ("foo$", [(1, 1, "foo"), (2, 5, "foo")]),
            ("^foo", [(1, 1, "foo"), (4, 1, "foo")]),
            ("bar$", [(4, 5, "bar")]),
        ],
    )
    def test_anchors_on_crlf_lines(self, repo: Path, pattern: str, expected: list) -> None:
        """^ and $ anchor at every line, before \\r\\n, in both strategies."""
        (repo / "anchors.txt").write_bytes(self.ANCHORS)

        for flags in (None, "m", "s", "ms"):
            assert self._positions(repo, pattern, flags) == expected

    def test_anchor_on_lf_file(self, repo: Path) -> None:
        """The full-buffer scan finds anchored matches past the first line."""
        streamed = grep_search(repo, "^  console", path="src/index.ts")
        buffered = grep_search(repo, "^  console", flags="s", path="src/index.ts")

        assert [(m.line, m.column) for m in streamed.matches] == [(3, 1)]
        assert buffered.matches == streamed.matches

    def test_multiline_match_over_crlf(self, repo: Path) -> None:
        """A \\n in the pattern matches a \\r\\n ending; match text is the original."""
        (repo / "anchors.txt").write_bytes(self.ANCHORS)

        result = grep_search(repo, "foo\nbar", path="anchors.txt")

        assert len(result.matches) == 1
        match = result.matches[0]
        assert (match.line, match.column, match.offset, match.byte_offset) == (1, 1, 0, 0)
        assert match.match == "foo\r\nbar"
        assert match.context == "foo"

    def test_carriage_return_pattern(self, repo: Path) -> None:
        """A pattern naming \\r searches the text with its line endings intact."""
        (repo / "anchors.txt").write_bytes(self.ANCHORS)

        result = grep_search(repo, "foo\\r\\nbar", path="anchors.txt")

        assert [(m.line, m.column, m.match) for m in result.matches] == [(1, 1, "foo\r\nbar")]


class TestGrepSearchErrors:
    """Tests for grep_search failures."""

    def test_invalid_flags_rejected_before_io(self, repo: Path) -> None:
        """Bad flags fail even for a missing path."""
        with pytest.raises(InvalidRegexFlagsError, match="flags must be valid"):
            grep_search(repo, "x", flags="z", path="missing")

    def test_invalid_pattern(self, repo: Path) -> None:
        """An uncompilable pattern raises InvalidPatternError."""
        with pytest.raises(InvalidPatternError):
            grep_search(repo, "(unclosed")

    def test_unsupported_encoding(self, repo: Path) -> None:
        """Unknown encodings are rejected."""
        with pytest.raises(UnsupportedEncodingError):
            grep_search(repo, "x", encoding="ebcdic")

    def test_missing_path(self, repo: Path) -> None:
        """A missing search path is reported."""
        with pytest.raises(PathNotFoundError):
            grep_search(repo, "x", path="src/missing.ts")

    def test_path_escape(self, repo: Path) -> None:
        """A search path above the root is rejected."""
        with pytest.raises(PathEscapeError):
            grep_search(repo, "x", path="../")
