"""Tests for the markdown documents handed to the assistant."""

from jctx.attachments import Profile
from jctx.context import START_WORK_INSTRUCTIONS, build_unit_test_prompt, render_issue_context
from jctx.models import (
    AttachmentDecision,
    AttachmentDescriptor,
    AttachmentRecord,
    Comment,
    IssueDetail,
    IssueLink,
    Subtask,
)


def _descriptor(filename: str = "notes.txt", size: int = 2048) -> AttachmentDescriptor:
    return AttachmentDescriptor(filename=filename, mime_type="text/plain", size=size, url=f"https://x/{filename}")


def _issue(**overrides) -> IssueDetail:
    fields = {
        "key": "PROJ-12",
        "title": "Fix login",
        "status": "In Progress",
        "priority": "High",
        "issue_type": "Bug",
        "assignee": "Jane Doe",
        "reporter": "Sam Lee",
        "created": "2024-05-01",
        "updated": "2024-05-02",
        "description": "## Steps\n\nClick Login",
    }
    fields.update(overrides)
    return IssueDetail(**fields)


class TestRenderIssueContext:
    def test_header_and_metadata(self) -> None:
        text = render_issue_context(_issue(labels=["auth", "web"])).text
        assert text.startswith("# Jira Issue: PROJ-12 - Fix login\n")
        assert "- **Status:** In Progress" in text
        assert "- **Labels:** auth, web" in text
        assert "## Description\n## Steps\n\nClick Login" in text

    def test_labels_line_omitted_when_empty(self) -> None:
        assert "**Labels:**" not in render_issue_context(_issue()).text

    def test_missing_description(self) -> None:
        assert "No description provided." in render_issue_context(_issue(description="")).text

    def test_comments_are_numbered(self) -> None:
        comments = [Comment(author="Sam Lee", created="2024-05-01", body="Repro on staging")]
        text = render_issue_context(_issue(comments=comments, comment_total=3)).text
        assert "## Comments (3)" in text
        assert "### Comment 1 by Sam Lee (2024-05-01)\nRepro on staging" in text

    def test_subtasks_and_links(self) -> None:
        text = render_issue_context(
            _issue(
                subtasks=[Subtask(key="PROJ-13", title="Add test", status="Done")],
                links=[IssueLink(relation="blocks", key="PROJ-20", title="Release 1.2")],
            )
        ).text
        assert "- PROJ-13: Add test [Done]" in text
        assert "- blocks: PROJ-20 - Release 1.2" in text

    def test_unified_lists_downloaded_files(self) -> None:
        record = AttachmentRecord(
            descriptor=_descriptor(),
            decision=AttachmentDecision.DOWNLOAD_TO_DISK,
            local_path="/work/.jira-context/PROJ-12/notes.txt",
        )
        document = render_issue_context(_issue(attachments=[record]), Profile.UNIFIED)

        assert document.attachment_paths == ["/work/.jira-context/PROJ-12/notes.txt"]
        assert "- **notes.txt** (2 KB) - text/plain" in document.text
        assert "✓ Downloaded to .jira-context/PROJ-12/notes.txt" in document.text
        assert "**Attachment Files Context:**" in document.text
        assert document.text.rstrip().endswith("need to be modified.")

    def test_unified_shows_skip_note(self) -> None:
        record = AttachmentRecord(
            descriptor=_descriptor("big.log", 6 * 1024 * 1024),
            decision=AttachmentDecision.SKIP_TOO_LARGE,
            note="Too large to include (6 MB)",
        )
        document = render_issue_context(_issue(attachments=[record]))
        assert "⚠ Too large to include (6 MB)" in document.text
        assert document.attachment_paths == []
        assert "**Attachment Files Context:**" not in document.text

    def test_inline_embeds_text(self) -> None:
        record = AttachmentRecord(
            descriptor=_descriptor(), decision=AttachmentDecision.DOWNLOAD_AS_TEXT, inline_text="line one"
        )
        text = render_issue_context(_issue(attachments=[record]), Profile.INLINE).text
        assert "### notes.txt (2 KB)" in text
        assert "**Content:**\n```\nline one\n```" in text
        assert "Please analyze this codebase" in text

    def test_inline_shows_note(self) -> None:
        record = AttachmentRecord(
            descriptor=_descriptor("shot.png"),
            decision=AttachmentDecision.DOWNLOAD_AS_BINARY_NOTE,
            note="Image file available at the URL above.",
        )
        text = render_issue_context(_issue(attachments=[record]), Profile.INLINE).text
        assert "**Note:** Image file available at the URL above." in text


class TestPrompts:
    def test_start_work_instructions_defer_tests(self) -> None:
        assert "DO NOT create unit tests yet" in START_WORK_INSTRUCTIONS
        assert "jctx create-unit-tests" in START_WORK_INSTRUCTIONS

    def test_unit_test_prompt_embeds_diff(self) -> None:
        prompt = build_unit_test_prompt("PROJ-12", "diff --git a/app.py b/app.py\n+x = 1")
        assert prompt.startswith("# Unit Test Generation for PROJ-12")
        assert "```diff\ndiff --git a/app.py b/app.py\n+x = 1\n```" in prompt
