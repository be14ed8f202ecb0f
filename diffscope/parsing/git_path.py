"""Helpers for the path tokens git writes into diff headers.

Git quotes and C-escapes unusual file names (``"a/caf\\303\\251.txt"``,
``a/docs/foo\\ ``). The functions here turn those tokens back into usable
paths and split the two-path suffix of a ``diff --git`` line.
"""

from typing import NamedTuple

DEV_NULL = "/dev/null"

# Single-character escapes git emits. Anything else after a backslash is
# either an octal byte sequence or passed through untouched.
GIT_ESCAPE_SEQUENCES: dict[str, str] = {
    '"': '"',
    "'": "'",
    " ": " ",
    "t": "\t",
    "n": "\n",
    "r": "\r",
    "\\": "\\",
}

_OCTAL_DIGITS = frozenset("01234567")
_MAX_OCTAL_WIDTH = 3


class HeaderPaths(NamedTuple):
    raw_old_path: str
    raw_new_path: str


class _EscapeLexer:
    """Single pass over an escaped path with at most three characters of lookahead."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, ahead: int = 0) -> str | None:
        index = self.pos + ahead
        if index < len(self.text):
            return self.text[index]
        return None

    def advance(self, count: int = 1) -> str:
        chunk = self.text[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def read_octal(self) -> str:
        """Consume one to three octal digits starting at the cursor."""
        width = 0
        while width < _MAX_OCTAL_WIDTH and self.peek(width) in _OCTAL_DIGITS:
            width += 1
        return self.advance(width)

    def tokens(self):
        """Yield decoded pieces of the path."""
        while not self.at_end():
            char = self.advance()
            following = self.peek()
            if char != "\\" or following is None:
                yield char
                continue

            mapped = GIT_ESCAPE_SEQUENCES.get(following)
            if mapped is not None:
                self.advance()
                yield mapped
            elif following in _OCTAL_DIGITS:
                yield chr(int(self.read_octal(), 8))
            else:
                yield char


def unescape_git_path(value: str) -> str:
    """
    Decode git's C-style escapes.

    ``\\NNN`` octal sequences decode to the code point of that byte value, so a
    multi-byte UTF-8 name comes back as one character per byte, as git wrote it.
    """

    return "".join(_EscapeLexer(value).tokens())


def strip_enclosing_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def normalize_git_path(raw_path: str) -> str:
    """Unquote, unescape and drop the ``a/`` or ``b/`` prefix of a header path."""

    unescaped = unescape_git_path(strip_enclosing_quotes(raw_path))
    if unescaped == DEV_NULL:
        return unescaped
    if unescaped.startswith(("a/", "b/")):
        return unescaped[2:]
    return unescaped


def _tokenize_header_paths(remainder: str) -> list[str]:
    tokens: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False

    for char in remainder:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            current.append(char)
            escaped = True
        elif char == '"':
            current.append(char)
            in_quotes = not in_quotes
        elif char == " " and not in_quotes:
            # Runs of spaces collapse into one separator.
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)

    if current:
        tokens.append("".join(current))
    return tokens


def split_diff_git_header_paths(remainder: str) -> HeaderPaths | None:
    """
    Split the text after ``diff --git `` into its old and new raw path tokens.

    Tokens are returned exactly as written (quotes and escapes intact). Returns
    None unless there are exactly two tokens, the first being ``/dev/null`` or
    ``a/...`` and the second ``/dev/null`` or ``b/...``.
    """

    if not remainder:
        return None

    tokens = _tokenize_header_paths(remainder)
    if len(tokens) != 2:
        return None

    raw_old_path, raw_new_path = tokens
    unquoted_old = strip_enclosing_quotes(raw_old_path)
    unquoted_new = strip_enclosing_quotes(raw_new_path)

    if not (unquoted_old == DEV_NULL or unquoted_old.startswith("a/")):
        return None
    if not (unquoted_new == DEV_NULL or unquoted_new.startswith("b/")):
        return None

    return HeaderPaths(raw_old_path=raw_old_path, raw_new_path=raw_new_path)
