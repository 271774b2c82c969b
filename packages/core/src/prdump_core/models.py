"""Pull request data models.

Plain frozen dataclasses: the host client produces them, the assembler
consumes them, and nothing mutates them in between.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

GITHUB_HOST = "github.com"
# Host names that all mean github.com itself (not a GitHub Enterprise server).
GITHUB_COM_HOSTS = frozenset({GITHUB_HOST, "www.github.com", "api.github.com"})


def to_utc(value: datetime) -> datetime:
    """Normalise to an aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class PullRequestRef:
    """A resolved pointer to one pull request."""

    owner: str
    repo: str
    number: int
    host: str = GITHUB_HOST

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return f"{self.full_name}#{self.number}"


@dataclass(frozen=True)
class PullRequestMetadata:
    title: str
    author: str
    state: str  # "open" | "closed" | "merged"
    base_branch: str
    head_branch: str
    created_at: datetime
    updated_at: datetime
    labels: frozenset[str] = field(default_factory=frozenset)
    url: str = ""
    body: str = ""
    draft: bool = False


@dataclass(frozen=True)
class Comment:
    """A conversation comment, review summary or inline review comment.

    ``path`` and ``line`` are only set for inline review comments. ``state``
    carries the review verdict (e.g. "APPROVED") for review summaries.
    """

    author: str
    body: str
    created_at: datetime
    kind: str = "comment"  # "comment" | "review" | "review_comment"
    path: str | None = None
    line: int | None = None
    state: str | None = None


@dataclass(frozen=True)
class DiffHunk:
    """One ``@@`` block of a file's patch.

    A file the host sends without a patch (binary, or too large) is
    represented by a single hunk with an empty header and empty patch.
    """

    path: str
    header: str
    old_start: int = 0
    old_count: int = 0
    new_start: int = 0
    new_count: int = 0
    patch: str = ""
    status: str = "modified"


SECTION_NAMES = ("metadata", "comments", "diff")

# Body lines that could be mistaken for a delimiter get one ">" prepended
# (mbox-style), so ">==== pr-dump:" becomes ">>==== pr-dump:" and so on.
_DELIMITER_LIKE_RE = re.compile(r"^(>*==== pr-dump:)", re.MULTILINE)
_QUOTED_DELIMITER_RE = re.compile(r"^>(>*==== pr-dump:)", re.MULTILINE)


def _begin(name: str) -> str:
    return f"==== pr-dump: {name} ===="


def _end(name: str) -> str:
    return f"==== pr-dump: end {name} ===="


def _quote(body: str) -> str:
    return _DELIMITER_LIKE_RE.sub(r">\1", body)


def _unquote(body: str) -> str:
    return _QUOTED_DELIMITER_RE.sub(r"\1", body)


@dataclass(frozen=True)
class DumpDocument:
    """The assembled dump: three rendered sections behind stable delimiters.

    ``text`` is what gets written. ``parse`` splits a written document back
    into its sections, so ``DumpDocument.parse(doc.text) == doc`` for any
    section content, including content that quotes a previous dump.
    """

    metadata: str
    comments: str
    diff: str

    @property
    def text(self) -> str:
        blocks = []
        for name in SECTION_NAMES:
            blocks.append(f"{_begin(name)}\n{_quote(getattr(self, name))}\n{_end(name)}\n")
        return "\n".join(blocks)

    @classmethod
    def parse(cls, text: str) -> DumpDocument:
        if not text.endswith("\n"):
            raise ValueError("document does not end with a newline")
        lines = text[:-1].split("\n")

        sections = {}
        pos = 0
        for index, name in enumerate(SECTION_NAMES):
            if index:
                if pos >= len(lines) or lines[pos] != "":
                    raise ValueError(f"expected a blank line before the {name!r} section")
                pos += 1
            if pos >= len(lines) or lines[pos] != _begin(name):
                raise ValueError(f"missing {_begin(name)!r}")
            try:
                end = lines.index(_end(name), pos + 1)
            except ValueError:
                raise ValueError(f"missing {_end(name)!r}") from None
            sections[name] = _unquote("\n".join(lines[pos + 1 : end]))
            pos = end + 1

        if pos != len(lines):
            raise ValueError("unexpected text after the last section")
        return cls(**sections)
