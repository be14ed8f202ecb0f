"""
Regex search over files inside the sandbox.

Two scanning strategies produce identical line/column/text for patterns that
cannot cross a line boundary:

- streaming: the file is read line by line and the regex runs per line. Used
  whenever the pattern has no ``\\n``/``\\r`` and the ``s`` flag is unset.
- full buffer: the whole file is searched at once, with line endings shortened
  to ``\\n`` and ``^``/``$`` anchoring at every line as they do per line. Each
  match offset is mapped back to the original text and its line through a
  `LineIndex`. Patterns that mention ``\\r`` search the text unchanged.

Both strategies count offsets through `LineIndex`, so line and byte
boundaries have a single definition.
"""

import logging
import re
from collections.abc import Iterator
from pathlib import Path

from diffscope.sandbox.exceptions import PathNotFoundError
from diffscope.sandbox.filesystem import iter_files, resolve_within_root, to_root_relative
from diffscope.tools.contract import GrepMatch, GrepResult, resolve_encoding
from diffscope.tools.line_index import (
    LINE_END_RE,
    LineIndex,
    decode_errors,
    normalize_line_endings,
    split_line_ending,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 200
DEFAULT_SNIPPET_CHARS = 200
ELLIPSIS = "…"

ALLOWED_REGEX_FLAGS = "gimsu"
_REGEX_FLAG_BITS = {
    "g": 0,
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": 0,
}
_BINARY_SNIFF_BYTES = 8000
# surrogateescape decodes byte 0xNN to U+DCNN
_ESCAPED_BYTE_RE = re.compile("[\udc80-\udcff]")


class InvalidRegexFlagsError(ValueError):
    error_type = "invalid_regex_flags"

    def __init__(self, flags: str):
        super().__init__(
            f"Regex flags must be valid: {flags!r} (allowed: {ALLOWED_REGEX_FLAGS}, no repeats)"
        )
        self.flags = flags


class InvalidPatternError(ValueError):
    error_type = "invalid_pattern"

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid regular expression {pattern!r}: {reason}")
        self.pattern = pattern


def normalize_flags(flags: str | None) -> str:
    """
    Validate caller flags and return them with ``g`` always present.

    Matches are always collected with `re.finditer`, i.e. globally; ``g`` is
    added so the effective flags describe that.
    """

    flags = flags or ""
    if any(flag not in ALLOWED_REGEX_FLAGS for flag in flags) or len(set(flags)) != len(flags):
        raise InvalidRegexFlagsError(flags)
    if "g" not in flags:
        flags += "g"
    return flags


def compile_pattern(pattern: str, flags: str) -> re.Pattern[str]:
    bits = 0
    for flag in flags:
        bits |= _REGEX_FLAG_BITS[flag]
    try:
        return re.compile(pattern, bits)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e)) from e


def needs_full_buffer(pattern: str, flags: str) -> bool:
    """True when a match could span a line break."""

    if "s" in flags:
        return True
    return any(token in pattern for token in ("\\n", "\\r", "\n", "\r"))


def _mentions_carriage_return(pattern: str) -> bool:
    return "\\r" in pattern or "\r" in pattern


def build_snippet(line_text: str, column_index: int, match_length: int, budget: int) -> str:
    """Cut `line_text` down to `budget` characters centred on the match."""

    if len(line_text) <= budget:
        return line_text

    visible_match = min(match_length, budget)
    start = max(column_index - (budget - visible_match) // 2, 0)
    end = min(start + budget, len(line_text))
    start = max(end - budget, 0)

    snippet = line_text[start:end]
    if start > 0:
        snippet = ELLIPSIS + snippet
    if end < len(line_text):
        snippet = snippet + ELLIPSIS
    return snippet


def _looks_binary(path: Path, codec: str) -> bool:
    if codec.startswith("utf-16"):
        return False
    with path.open("rb") as f:
        return b"\x00" in f.read(_BINARY_SNIFF_BYTES)


def _visible(text: str) -> str:
    """Show escaped undecodable bytes as U+FFFD."""

    return _ESCAPED_BYTE_RE.sub("\ufffd", text)


def _scan_streaming(
    path: Path,
    relative: str,
    regex: re.Pattern[str],
    codec: str,
    snippet_chars: int,
) -> Iterator[GrepMatch]:
    index = LineIndex(codec, retain=False)

    with path.open("r", encoding=codec, errors=index.errors, newline="") as f:
        for raw_line in f:
            content, ending = split_line_ending(raw_line)
            start = index.add_line(content, ending)

            for match in regex.finditer(content):
                yield GrepMatch(
                    path=relative,
                    line=start.number,
                    column=match.start() + 1,
                    match=_visible(match.group()),
                    context=_visible(
                        build_snippet(
                            content, match.start(), match.end() - match.start(), snippet_chars
                        )
                    ),
                    offset=start.char_offset + match.start(),
                    byte_offset=start.byte_offset + index.byte_length(content[:match.start()]),
                )


def _scan_full_buffer(
    path: Path,
    relative: str,
    regex: re.Pattern[str],
    codec: str,
    snippet_chars: int,
) -> Iterator[GrepMatch]:
    text = path.read_bytes().decode(codec, errors=decode_errors(codec))
    index = LineIndex.from_text(text, codec)

    if _mentions_carriage_return(regex.pattern):
        searched = text
        to_original = int
    else:
        searched = normalize_line_endings(text)
        to_original = index.to_original

    for match in regex.finditer(searched):
        match_start = to_original(match.start())
        match_end = to_original(match.end())
        start = index.locate(match_start)
        column_index = match_start - start.char_offset

        line_end = LINE_END_RE.search(text, start.char_offset)
        line_text = text[start.char_offset:line_end.start() if line_end else len(text)]
        visible_length = min(match_end - match_start, len(line_text) - column_index)

        yield GrepMatch(
            path=relative,
            line=start.number,
            column=column_index + 1,
            match=_visible(text[match_start:match_end]),
            context=_visible(
                build_snippet(line_text, column_index, visible_length, snippet_chars)
            ),
            offset=match_start,
            byte_offset=start.byte_offset
            + index.byte_length(text[start.char_offset:match_start]),
        )


def _sort_key(relative: str) -> tuple[str, str]:
    return relative.lower(), relative


def collect_candidates(workspace_root: Path, paths: list[str]) -> list[tuple[Path, str]]:
    """Expand search paths into a sorted, de-duplicated list of (file, relative path)."""

    files: dict[str, Path] = {}
    for raw in paths:
        start = resolve_within_root(workspace_root, raw)
        if not start.exists() and not start.is_symlink():
            raise PathNotFoundError(to_root_relative(workspace_root, start))
        for file_path in iter_files(workspace_root, start):
            files.setdefault(to_root_relative(workspace_root, file_path), file_path)

    return [(files[relative], relative) for relative in sorted(files, key=_sort_key)]


def grep_search(
    workspace_root: Path,
    pattern: str,
    flags: str | None = None,
    path: str | list[str] | None = None,
    max_results: int = DEFAULT_MAX_RESULTS,
    encoding: str = "utf8",
    snippet_chars: int = DEFAULT_SNIPPET_CHARS,
) -> GrepResult:
    """
    Search files under the sandbox root for `pattern`.

    Flags, pattern and encoding are validated before any file is opened.
    Collection stops at `max_results` matches; `truncated` is set only when
    a further match was found beyond them. Files that cannot be read are
    skipped.

    `offset` counts characters of the decoded file, `byte_offset` bytes on
    disk. An undecodable byte counts as one character and one byte, and is
    shown as U+FFFD in `match` and `context`. UTF-16 files are the exception:
    there an undecodable sequence becomes one U+FFFD counted at its encoded
    width of two bytes.
    """

    effective_flags = normalize_flags(flags)
    codec = resolve_encoding(encoding)
    full_buffer = needs_full_buffer(pattern, effective_flags)
    # ^ and $ anchor at each line in both strategies
    regex = compile_pattern(pattern, effective_flags + ("m" if full_buffer else ""))

    if path is None:
        paths = ["."]
    elif isinstance(path, str):
        paths = [path]
    else:
        paths = list(path) or ["."]

    scan = _scan_full_buffer if full_buffer else _scan_streaming
    candidates = collect_candidates(workspace_root, paths)
    logger.debug(
        "grep: %d candidate files, strategy=%s",
        len(candidates),
        "full_buffer" if full_buffer else "streaming",
    )

    matches: list[GrepMatch] = []
    truncated = False

    for file_path, relative in candidates:
        try:
            if _looks_binary(file_path, codec):
                logger.debug("Skipping binary file: %s", relative)
                continue

            scanner = scan(file_path, relative, regex, codec, snippet_chars)
            try:
                for match in scanner:
                    if len(matches) >= max_results:
                        truncated = True
                        break
                    matches.append(match)
            finally:
                scanner.close()
        except OSError as e:
            logger.debug("Skipping unreadable file %s: %s", relative, e.strerror)
            continue

        if truncated:
            break

    return GrepResult(matches=matches, truncated=truncated)
