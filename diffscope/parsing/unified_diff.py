import logging
import re
from dataclasses import dataclass, field, replace

from diffscope.parsing.diff_models import (
    DiffFile,
    DiffHunk,
    DiffLine,
    DiffLineKind,
    ModeChange,
    ParsedDiff,
    Rename,
)
from diffscope.parsing.exceptions import MalformedHeaderError
from diffscope.parsing.git_path import (
    DEV_NULL,
    normalize_git_path,
    split_diff_git_header_paths,
)

logger = logging.getLogger(__name__)

DIFF_GIT_PREFIX = "diff --git "
NO_NEWLINE_MARKER = "\\ No newline at end of file"
HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@ ?(.*)$")


@dataclass
class _HunkBuilder:
    header: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    section_heading: str | None
    lines: list[DiffLine] = field(default_factory=list)
    old_seen: int = 0
    new_seen: int = 0

    def expects_more(self) -> bool:
        return self.old_seen < self.old_lines or self.new_seen < self.new_lines

    def build(self) -> DiffHunk:
        return DiffHunk(
            header=self.header,
            old_start=self.old_start,
            old_lines=self.old_lines,
            new_start=self.new_start,
            new_lines=self.new_lines,
            section_heading=self.section_heading,
            lines=tuple(self.lines),
        )


@dataclass
class _FileBuilder:
    old_path: str
    new_path: str
    raw_old_path: str
    raw_new_path: str
    hunks: list[_HunkBuilder] = field(default_factory=list)
    is_binary: bool = False
    is_new_file: bool = False
    is_deleted_file: bool = False
    rename: Rename | None = None
    mode_change: ModeChange | None = None
    index: str | None = None

    def set_mode(self, old_mode: str | None = None, new_mode: str | None = None) -> None:
        current = self.mode_change or ModeChange()
        self.mode_change = ModeChange(
            old_mode=old_mode if old_mode is not None else current.old_mode,
            new_mode=new_mode if new_mode is not None else current.new_mode,
        )

    def build(self) -> DiffFile:
        return DiffFile(
            old_path=self.old_path,
            new_path=self.new_path,
            raw_old_path=self.raw_old_path,
            raw_new_path=self.raw_new_path,
            hunks=tuple(hunk.build() for hunk in self.hunks),
            is_binary=self.is_binary,
            is_new_file=self.is_new_file,
            is_deleted_file=self.is_deleted_file,
            rename=self.rename,
            mode_change=self.mode_change,
            index=self.index,
        )


def _start_file(line: str) -> _FileBuilder:
    header_paths = split_diff_git_header_paths(line[len(DIFF_GIT_PREFIX):])
    if header_paths is None:
        raise MalformedHeaderError(line)

    return _FileBuilder(
        old_path=normalize_git_path(header_paths.raw_old_path),
        new_path=normalize_git_path(header_paths.raw_new_path),
        raw_old_path=header_paths.raw_old_path,
        raw_new_path=header_paths.raw_new_path,
    )


def _apply_metadata(current_file: _FileBuilder, line: str) -> bool:
    """Apply an extended git header line to the file. Returns False if it is not one."""

    if line.startswith("index "):
        current_file.index = line[len("index "):].strip()
    elif line.startswith("new file mode "):
        current_file.is_new_file = True
        current_file.set_mode(new_mode=line[len("new file mode "):].strip())
    elif line.startswith("deleted file mode "):
        current_file.is_deleted_file = True
        current_file.set_mode(old_mode=line[len("deleted file mode "):].strip())
    elif line.startswith("old mode "):
        current_file.set_mode(old_mode=line[len("old mode "):].strip())
    elif line.startswith("new mode "):
        current_file.set_mode(new_mode=line[len("new mode "):].strip())
    elif line.startswith("rename from "):
        raw_from = line[len("rename from "):]
        from_path = normalize_git_path(raw_from)
        current_file.rename = replace(
            current_file.rename or Rename(), from_path=from_path, raw_from=raw_from
        )
        current_file.old_path = from_path
    elif line.startswith("rename to "):
        raw_to = line[len("rename to "):]
        to_path = normalize_git_path(raw_to)
        current_file.rename = replace(
            current_file.rename or Rename(), to_path=to_path, raw_to=raw_to
        )
        current_file.new_path = to_path
    else:
        return False
    return True


def _open_hunk(line: str) -> _HunkBuilder | None:
    match = HUNK_HEADER_RE.match(line)
    if match is None:
        return None

    old_start, old_length, new_start, new_length, heading = match.groups()
    heading = (heading or "").strip()
    return _HunkBuilder(
        header=line,
        old_start=int(old_start),
        old_lines=int(old_length) if old_length is not None else 1,
        new_start=int(new_start),
        new_lines=int(new_length) if new_length is not None else 1,
        section_heading=heading or None,
    )


def parse_unified_diff(diff_text: str) -> ParsedDiff:
    """
    Parse git's unified diff output into line-addressable file records.

    A malformed ``diff --git`` header drops that file section: everything up
    to the next recognizable header is skipped. Lines outside a file or hunk
    are ignored. The function does not raise on bad input.

    ``--- `` and ``+++ `` lines are treated as hunk content while the open
    hunk still expects lines by its header counts, so removing a line that
    starts with ``-- `` does not look like a new file header.
    """

    files: list[_FileBuilder] = []
    current_file: _FileBuilder | None = None
    current_hunk: _HunkBuilder | None = None
    old_line_number = 0
    new_line_number = 0
    skipped_headers = 0

    for line in diff_text.replace("\r\n", "\n").split("\n"):
        if line.startswith(DIFF_GIT_PREFIX):
            current_hunk = None
            try:
                current_file = _start_file(line)
            except MalformedHeaderError as e:
                logger.debug("Skipping file section: %s", e)
                skipped_headers += 1
                current_file = None
                continue
            files.append(current_file)
            continue

        if current_file is None:
            continue

        in_counted_hunk = current_hunk is not None and current_hunk.expects_more()

        if not in_counted_hunk:
            if _apply_metadata(current_file, line):
                continue

            if line.startswith("--- "):
                current_file.old_path = normalize_git_path(line[4:])
                if current_file.old_path == DEV_NULL:
                    current_file.is_new_file = True
                continue

            if line.startswith("+++ "):
                current_file.new_path = normalize_git_path(line[4:])
                if current_file.new_path == DEV_NULL:
                    current_file.is_deleted_file = True
                continue

            if line.startswith("Binary files "):
                current_file.is_binary = True
                current_hunk = None
                continue

        hunk = _open_hunk(line)
        if hunk is not None:
            current_hunk = hunk
            old_line_number = hunk.old_start
            new_line_number = hunk.new_start
            current_file.hunks.append(hunk)
            continue

        if current_hunk is None:
            continue

        if line == NO_NEWLINE_MARKER:
            if current_hunk.lines:
                current_hunk.lines[-1] = replace(
                    current_hunk.lines[-1], no_newline_at_end_of_file=True
                )
            continue

        marker, content = line[:1], line[1:]
        if marker == " ":
            current_hunk.lines.append(
                DiffLine(
                    kind=DiffLineKind.CONTEXT,
                    content=content,
                    old_line_number=old_line_number,
                    new_line_number=new_line_number,
                )
            )
            old_line_number += 1
            new_line_number += 1
            current_hunk.old_seen += 1
            current_hunk.new_seen += 1
        elif marker == "+":
            current_hunk.lines.append(
                DiffLine(kind=DiffLineKind.ADD, content=content, new_line_number=new_line_number)
            )
            new_line_number += 1
            current_hunk.new_seen += 1
        elif marker == "-":
            current_hunk.lines.append(
                DiffLine(kind=DiffLineKind.REMOVE, content=content, old_line_number=old_line_number)
            )
            old_line_number += 1
            current_hunk.old_seen += 1

    logger.debug(
        "Parsed %d files from unified diff (%d malformed headers skipped)",
        len(files),
        skipped_headers,
    )
    return [diff_file.build() for diff_file in files]
