"""Assemble fetched PR fragments into a single DumpDocument.

assemble() is pure: the same metadata, comments and hunks always render to
byte-identical text. Every section is always present; an empty one gets an
explicit marker so a reader never mistakes "nothing fetched" for "nothing
there".
"""

from __future__ import annotations

from datetime import datetime
from itertools import groupby

from prdump_core.models import Comment, DiffHunk, DumpDocument, PullRequestMetadata, to_utc

NO_COMMENTS = "(no comments)"
NO_DIFF = "(no diff)"
NO_DESCRIPTION = "(no description)"
NO_LABELS = "(none)"
NO_PATCH = "(no textual patch available)"


def format_timestamp(value: datetime) -> str:
    return to_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def render_metadata(metadata: PullRequestMetadata) -> str:
    labels = ", ".join(sorted(metadata.labels)) or NO_LABELS
    lines = [
        f"Title: {metadata.title}",
        f"URL: {metadata.url}",
        f"Author: {metadata.author}",
        f"State: {metadata.state}{' (draft)' if metadata.draft else ''}",
        f"Base: {metadata.base_branch}",
        f"Head: {metadata.head_branch}",
        f"Created: {format_timestamp(metadata.created_at)}",
        f"Updated: {format_timestamp(metadata.updated_at)}",
        f"Labels: {labels}",
        "",
        "Description:",
        metadata.body.strip("\n") or NO_DESCRIPTION,
    ]
    return "\n".join(lines)


def _comment_heading(comment: Comment) -> str:
    when = format_timestamp(comment.created_at)
    if comment.kind == "review_comment":
        anchor = comment.path or "?"
        if comment.line is not None:
            anchor = f"{anchor}:{comment.line}"
        return f"--- [{when}] {comment.author} on {anchor}"
    if comment.kind == "review":
        verdict = f" ({comment.state})" if comment.state else ""
        return f"--- [{when}] {comment.author} reviewed{verdict}"
    return f"--- [{when}] {comment.author} commented"


def render_comments(comments: list[Comment]) -> str:
    if not comments:
        return NO_COMMENTS
    # sorted() is stable: comments sharing a timestamp keep the host's order.
    ordered = sorted(comments, key=lambda c: to_utc(c.created_at))
    blocks = [_comment_heading(c) + "\n" + c.body.strip("\n") for c in ordered]
    return "\n\n".join(blocks)


def render_diff(hunks: list[DiffHunk]) -> str:
    if not hunks:
        return NO_DIFF
    # Stable sort by path keeps each file's hunks in host order.
    ordered = sorted(hunks, key=lambda h: h.path)
    blocks = []
    for path, file_hunks in groupby(ordered, key=lambda h: h.path):
        file_hunks = list(file_hunks)
        lines = [f"--- file: {path} ({file_hunks[0].status})"]
        for hunk in file_hunks:
            lines.append(hunk.patch if hunk.patch else NO_PATCH)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def assemble(
    metadata: PullRequestMetadata,
    comments: list[Comment],
    diff_hunks: list[DiffHunk],
) -> DumpDocument:
    """Build the dump: metadata, then comments by time, then the diff by file path."""
    return DumpDocument(
        metadata=render_metadata(metadata),
        comments=render_comments(list(comments)),
        diff=render_diff(list(diff_hunks)),
    )
