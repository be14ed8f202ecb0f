import re
from bisect import bisect_right
from collections.abc import Iterator
from typing import NamedTuple

LINE_END_RE = re.compile(r"\r\n|\r|\n")


class LineStart(NamedTuple):
    number: int  # 1-based
    char_offset: int
    byte_offset: int


def decode_errors(codec: str) -> str:
    """
    Error handler for decoding searched files.

    surrogateescape keeps one character per undecodable byte, so re-encoding
    a decoded prefix gives its exact size on disk. UTF-16 cannot escape bytes
    below 0x80 that way and falls back to U+FFFD replacement.
    """

    if codec.startswith("utf-16"):
        return "replace"
    return "surrogateescape"


def split_line_ending(raw_line: str) -> tuple[str, str]:
    if raw_line.endswith("\r\n"):
        return raw_line[:-2], "\r\n"
    if raw_line.endswith(("\n", "\r")):
        return raw_line[:-1], raw_line[-1]
    return raw_line, ""


def split_lines(text: str) -> Iterator[tuple[str, str]]:
    """
    Yield (content, ending) pairs.

    Splits on \\r\\n, \\r and \\n only, the same boundaries a file opened
    with newline="" produces, so a buffered text and a streamed file agree.
    """

    position = 0
    for match in LINE_END_RE.finditer(text):
        yield text[position:match.start()], match.group()
        position = match.end()
    if position < len(text):
        yield text[position:], ""


def normalize_line_endings(text: str) -> str:
    """Replace every line ending with a single \\n."""

    return LINE_END_RE.sub("\n", text)


class LineIndex:
    """
    Running character and byte offsets of line starts.

    With retain=True every line start is kept so `locate` can map an absolute
    character offset back to its line. With retain=False only the running
    totals are kept, which is all a line-by-line scan needs.

    Offsets are also tracked for the text with every line ending shortened
    to one \\n, so a match found in `normalize_line_endings(text)` can be
    mapped back with `to_original`.
    """

    def __init__(self, codec: str, retain: bool = True):
        self.codec = codec
        self.errors = decode_errors(codec)
        self.retain = retain
        self.char_starts: list[int] = []
        self.byte_starts: list[int] = []
        self.normalized_starts: list[int] = []
        self.line_count = 0
        self.char_total = 0
        self.byte_total = 0
        self.normalized_total = 0

    @classmethod
    def from_text(cls, text: str, codec: str) -> "LineIndex":
        index = cls(codec, retain=True)
        for content, ending in split_lines(text):
            index.add_line(content, ending)
        return index

    def byte_length(self, text: str) -> int:
        return len(text.encode(self.codec, errors=self.errors))

    def add_line(self, content: str, ending: str) -> LineStart:
        start = LineStart(self.line_count + 1, self.char_total, self.byte_total)
        if self.retain:
            self.char_starts.append(self.char_total)
            self.byte_starts.append(self.byte_total)
            self.normalized_starts.append(self.normalized_total)

        self.line_count += 1
        self.char_total += len(content) + len(ending)
        self.byte_total += self.byte_length(content) + self.byte_length(ending)
        self.normalized_total += len(content) + (1 if ending else 0)
        return start

    def locate(self, char_offset: int) -> LineStart:
        """Find the line containing `char_offset` (binary search)."""

        if not self.retain:
            raise RuntimeError("locate() needs a LineIndex built with retain=True")
        if not self.char_starts:
            return LineStart(1, 0, 0)

        position = max(bisect_right(self.char_starts, char_offset) - 1, 0)
        return LineStart(position + 1, self.char_starts[position], self.byte_starts[position])

    def to_original(self, normalized_offset: int) -> int:
        """Map an offset in the normalized text to the same spot in the original."""

        if not self.retain:
            raise RuntimeError("to_original() needs a LineIndex built with retain=True")
        if normalized_offset >= self.normalized_total:
            return self.char_total + normalized_offset - self.normalized_total
        if not self.normalized_starts:
            return normalized_offset

        position = max(bisect_right(self.normalized_starts, normalized_offset) - 1, 0)
        return self.char_starts[position] + normalized_offset - self.normalized_starts[position]
