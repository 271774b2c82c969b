"""Tests for the context assembler and the DumpDocument layout."""

from datetime import datetime, timedelta, timezone

import pytest

from prdump_core.assembler import NO_COMMENTS, NO_DIFF, assemble, format_timestamp, render_metadata
from prdump_core.models import Comment, DiffHunk, DumpDocument, PullRequestMetadata

T0 = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


def make_metadata(**overrides):
    fields = dict(
        title="Add retry",
        author="alice",
        state="open",
        base_branch="main",
        head_branch="feature",
        created_at=T0,
        updated_at=T0 + timedelta(days=1, hours=1, minutes=30),
        labels=frozenset({"enhancement", "bug"}),
        url="https://github.com/octo/widgets/pull/7",
        body="Adds retries.\n",
    )
    fields.update(overrides)
    return PullRequestMetadata(**fields)


def make_hunk(path, header="@@ -1,1 +1,2 @@", body="+added"):
    return DiffHunk(path=path, header=header, old_start=1, old_count=1, new_start=1, new_count=2, patch=f"{header}\n{body}")


COMMENTS = [
    Comment(author="bob", body="Looks good overall.", created_at=T0 + timedelta(hours=2)),
    Comment(
        author="carol",
        body="Off by one?",
        created_at=T0 + timedelta(hours=1),
        kind="review_comment",
        path="src/retry.py",
        line=12,
    ),
    Comment(author="dave", body="Ship it", created_at=T0 + timedelta(hours=3), kind="review", state="APPROVED"),
]

HUNKS = [
    make_hunk("src/retry.py", "@@ -1,1 +1,2 @@", "+first"),
    make_hunk("README.md", "@@ -5,1 +5,2 @@", "+docs"),
    make_hunk("src/retry.py", "@@ -40,1 +41,2 @@", "+second"),
]


class TestRenderMetadata:
    def test_full_layout(self):
        assert render_metadata(make_metadata()) == (
            "Title: Add retry\n"
            "URL: https://github.com/octo/widgets/pull/7\n"
            "Author: alice\n"
            "State: open\n"
            "Base: main\n"
            "Head: feature\n"
            "Created: 2024-05-01T10:00:00Z\n"
            "Updated: 2024-05-02T11:30:00Z\n"
            "Labels: bug, enhancement\n"
            "\n"
            "Description:\n"
            "Adds retries."
        )

    def test_no_labels_and_no_description(self):
        text = render_metadata(make_metadata(labels=frozenset(), body=""))
        assert "Labels: (none)" in text
        assert text.endswith("Description:\n(no description)")

    def test_draft_is_flagged(self):
        assert "State: open (draft)" in render_metadata(make_metadata(draft=True))


class TestFormatTimestamp:
    def test_converts_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        assert format_timestamp(datetime(2024, 5, 1, 12, 0, tzinfo=plus_two)) == "2024-05-01T10:00:00Z"

    def test_naive_is_taken_as_utc(self):
        assert format_timestamp(datetime(2024, 5, 1, 12, 0)) == "2024-05-01T12:00:00Z"


class TestAssemble:
    def test_is_deterministic(self):
        first = assemble(make_metadata(), COMMENTS, HUNKS)
        second = assemble(make_metadata(), list(COMMENTS), list(HUNKS))
        assert first.text == second.text

    def test_sections_in_fixed_order(self):
        text = assemble(make_metadata(), COMMENTS, HUNKS).text
        assert text.index("==== pr-dump: metadata ====") < text.index("==== pr-dump: comments ====")
        assert text.index("==== pr-dump: comments ====") < text.index("==== pr-dump: diff ====")
        assert text.endswith("==== pr-dump: end diff ====\n")

    def test_comments_are_chronological(self):
        doc = assemble(make_metadata(), COMMENTS, [])
        assert doc.comments.index("carol on src/retry.py:12") < doc.comments.index("bob commented")
        assert doc.comments.index("bob commented") < doc.comments.index("dave reviewed (APPROVED)")

    def test_comment_heading_has_timestamp(self):
        doc = assemble(make_metadata(), COMMENTS[:1], [])
        assert doc.comments == "--- [2024-05-01T12:00:00Z] bob commented\nLooks good overall."

    def test_equal_timestamps_keep_input_order(self):
        same = [
            Comment(author="first", body="1", created_at=T0),
            Comment(author="second", body="2", created_at=T0),
        ]
        doc = assemble(make_metadata(), same, [])
        assert doc.comments.index("first") < doc.comments.index("second")

    def test_diff_grouped_by_path_alphabetically(self):
        doc = assemble(make_metadata(), [], HUNKS)
        assert doc.diff.index("--- file: README.md") < doc.diff.index("--- file: src/retry.py")
        # Hunks within a file keep host order.
        assert doc.diff.index("+first") < doc.diff.index("+second")
        assert doc.diff.count("--- file: src/retry.py") == 1

    def test_empty_comments_marker_with_full_diff(self):
        doc = assemble(make_metadata(), [], HUNKS)
        assert doc.comments == NO_COMMENTS
        assert "==== pr-dump: comments ====\n(no comments)\n==== pr-dump: end comments ====" in doc.text
        for hunk in HUNKS:
            assert hunk.patch in doc.diff

    def test_empty_diff_marker(self):
        doc = assemble(make_metadata(), COMMENTS, [])
        assert doc.diff == NO_DIFF
        assert "==== pr-dump: diff ====\n(no diff)\n==== pr-dump: end diff ====" in doc.text

    def test_patchless_file_is_marked(self):
        doc = assemble(make_metadata(), [], [DiffHunk(path="logo.png", header="", status="added")])
        assert doc.diff == "--- file: logo.png (added)\n(no textual patch available)"


class TestDumpDocumentParse:
    def test_round_trip_reconstructs_sections(self):
        doc = assemble(make_metadata(), COMMENTS, HUNKS)
        parsed = DumpDocument.parse(doc.text)
        assert parsed == doc
        assert parsed.metadata == render_metadata(make_metadata())

    def test_round_trip_with_empty_sections(self):
        doc = assemble(make_metadata(body=""), [], [])
        assert DumpDocument.parse(doc.text) == doc

    def test_body_quoting_a_delimiter_survives(self):
        body = "See:\n==== pr-dump: end metadata ====\nstill the body"
        doc = assemble(make_metadata(body=body), COMMENTS, HUNKS)
        assert DumpDocument.parse(doc.text).metadata.endswith("still the body")

    def test_description_quoting_metadata_comments_joint(self):
        body = "pasted:\n==== pr-dump: end metadata ====\n\n==== pr-dump: comments ====\nx"
        doc = assemble(make_metadata(body=body), COMMENTS[:1], [])
        assert DumpDocument.parse(doc.text) == doc

    def test_comment_quoting_comments_diff_joint(self):
        quoted = Comment(
            author="bob",
            body="old dump:\n==== pr-dump: end comments ====\n\n==== pr-dump: diff ====\n+fake",
            created_at=T0,
        )
        doc = assemble(make_metadata(), [quoted], HUNKS)
        parsed = DumpDocument.parse(doc.text)
        assert parsed == doc
        assert parsed.diff == doc.diff

    def test_already_quoted_lines_round_trip(self):
        body = ">==== pr-dump: diff ====\n>>==== pr-dump: end diff ====\n==== pr-dump: metadata ===="
        doc = assemble(make_metadata(body=body), [], [])
        assert DumpDocument.parse(doc.text).metadata == doc.metadata

    def test_delimiter_like_body_lines_are_quoted_in_text(self):
        body = "==== pr-dump: end metadata ===="
        text = assemble(make_metadata(body=body), [], []).text
        assert text.count("\n==== pr-dump: end metadata ====\n") == 1
        assert "\n>==== pr-dump: end metadata ====\n" in text

    def test_rejects_trailing_garbage(self):
        text = assemble(make_metadata(), [], []).text
        with pytest.raises(ValueError):
            DumpDocument.parse(text + "extra\n")

    def test_rejects_text_without_delimiters(self):
        with pytest.raises(ValueError):
            DumpDocument.parse("just some text\n")

    def test_rejects_truncated_document(self):
        text = assemble(make_metadata(), COMMENTS, HUNKS).text
        with pytest.raises(ValueError):
            DumpDocument.parse(text[: len(text) // 2])
