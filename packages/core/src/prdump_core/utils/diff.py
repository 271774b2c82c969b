"""Patch parsing and path filtering for the diff section."""

from __future__ import annotations

import fnmatch
import re

from prdump_core.models import DiffHunk

# "@@ -12,5 +12,7 @@ def foo():"; counts are optional and default to 1.
_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


def parse_hunk_header(header: str) -> tuple[int, int, int, int]:
    """Return (old_start, old_count, new_start, new_count) for a ``@@`` line.

    A header that cannot be parsed yields all zeros rather than raising: the
    hunk text is still worth dumping even if its ranges are unreadable.
    """
    match = _HUNK_HEADER_RE.match(header)
    if not match:
        return 0, 0, 0, 0
    old_start, old_count, new_start, new_count = match.groups()
    return (
        int(old_start),
        int(old_count) if old_count is not None else 1,
        int(new_start),
        int(new_count) if new_count is not None else 1,
    )


def parse_patch(path: str, patch: str | None, status: str = "modified") -> list[DiffHunk]:
    """Split one file's patch into hunks, in the order they appear."""
    if not patch:
        return [DiffHunk(path=path, header="", status=status)]

    hunks: list[DiffHunk] = []
    current: list[str] = []

    def flush():
        if not current:
            return
        header = current[0] if current[0].startswith("@@") else ""
        old_start, old_count, new_start, new_count = parse_hunk_header(header)
        hunks.append(
            DiffHunk(
                path=path,
                header=header,
                old_start=old_start,
                old_count=old_count,
                new_start=new_start,
                new_count=new_count,
                patch="\n".join(current),
                status=status,
            )
        )

    for line in patch.splitlines():
        if line.startswith("@@") and current:
            flush()
            current = []
        current.append(line)
    flush()
    return hunks


def is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.lock", "*.min.js"
    - Directory names/prefixes: "vendor/", "dist" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False
