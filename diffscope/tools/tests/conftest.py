import os
from collections.abc import Callable
from pathlib import Path

import pytest

INDEX_TS = (
    'import { log } from "./utils/logger";\n'
    "export function main(message: string) {\n"
    "  console.log(message);\n"
    "}\n"
)
LOGGER_TS = "export function log(value: string) {\n  console.log(value);\n}\n"
README = "# Tooling Fixture\n\nSample repository for the read-only tools.\n"


@pytest.fixture
def make_symlink() -> Callable[[Path, Path], None]:
    """Create a symlink, skipping the test where the platform refuses."""

    def _make(link: Path, target: Path) -> None:
        try:
            os.symlink(target, link)
        except (OSError, NotImplementedError):
            pytest.skip("symlinks are not supported on this platform")

    return _make


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """Small repository tree shared by the tool tests."""
    root = tmp_path.resolve()

    (root / "README.md").write_text(README)

    src = root / "src"
    (src / "utils").mkdir(parents=True)
    (src / "nested").mkdir()
    (src / "index.ts").write_text(INDEX_TS)
    (src / "utils" / "logger.ts").write_text(LOGGER_TS)
    (src / "nested" / "keep.ts").write_text("export const keep = true;\n")
    (src / "multiline.txt").write_text("first line\nsecond line\nthird line\n")
    (src / "unicode.txt").write_bytes("héllo wörld\nnaïve match\n".encode("utf-8"))
    (src / "latin1.txt").write_bytes("café\n".encode("utf-8"))

    modules = root / "node_modules" / "pkg"
    modules.mkdir(parents=True)
    (modules / "index.ts").write_text("console.log('vendored');\n")

    return root
