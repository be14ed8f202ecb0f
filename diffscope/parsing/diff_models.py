from dataclasses import dataclass, field
from enum import StrEnum

from diffscope.parsing.git_path import DEV_NULL


class DiffLineKind(StrEnum):
    CONTEXT = "context"
    ADD = "add"
    REMOVE = "remove"


class DiffSide(StrEnum):
    """Side of a diff a line number refers to, in review-comment terms."""

    LEFT = "LEFT"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class DiffLine:
    kind: DiffLineKind
    content: str
    old_line_number: int | None = None
    new_line_number: int | None = None
    no_newline_at_end_of_file: bool = False

    def __post_init__(self) -> None:
        has_old = self.old_line_number is not None
        has_new = self.new_line_number is not None
        if self.kind == DiffLineKind.CONTEXT:
            valid = has_old and has_new
        elif self.kind == DiffLineKind.ADD:
            valid = has_new and not has_old
        elif self.kind == DiffLineKind.REMOVE:
            valid = has_old and not has_new
        else:
            raise ValueError(f"Unknown diff line kind: {self.kind!r}")
        if not valid:
            raise ValueError(
                f"{self.kind} line has old={self.old_line_number} new={self.new_line_number}"
            )


@dataclass(frozen=True)
class DiffHunk:
    header: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    section_heading: str | None = None
    lines: tuple[DiffLine, ...] = ()

    @property
    def added_lines(self) -> tuple[DiffLine, ...]:
        return tuple(line for line in self.lines if line.kind == DiffLineKind.ADD)

    @property
    def removed_lines(self) -> tuple[DiffLine, ...]:
        return tuple(line for line in self.lines if line.kind == DiffLineKind.REMOVE)


@dataclass(frozen=True)
class Rename:
    from_path: str | None = None
    to_path: str | None = None
    raw_from: str | None = None
    raw_to: str | None = None


@dataclass(frozen=True)
class ModeChange:
    old_mode: str | None = None
    new_mode: str | None = None


@dataclass(frozen=True)
class DiffFile:
    old_path: str
    new_path: str
    raw_old_path: str
    raw_new_path: str
    hunks: tuple[DiffHunk, ...] = ()
    is_binary: bool = False
    is_new_file: bool = False
    is_deleted_file: bool = False
    rename: Rename | None = None
    mode_change: ModeChange | None = None
    index: str | None = None

    @property
    def path(self) -> str:
        """The path a reviewer would refer to: the new one unless the file was deleted."""
        if self.is_deleted_file or self.new_path == DEV_NULL:
            return self.old_path
        return self.new_path

    def find_line(self, line_number: int, side: DiffSide = DiffSide.RIGHT) -> DiffLine | None:
        """
        Return the hunk line carrying ``line_number`` on the given side.

        RIGHT looks at new-side numbers (context and added lines), LEFT at
        old-side numbers (context and removed lines).
        """

        for hunk in self.hunks:
            for line in hunk.lines:
                if side == DiffSide.RIGHT and line.new_line_number == line_number:
                    return line
                if side == DiffSide.LEFT and line.old_line_number == line_number:
                    return line
        return None


ParsedDiff = list[DiffFile]


def changed_paths(parsed: ParsedDiff) -> list[str]:
    return [diff_file.path for diff_file in parsed]
