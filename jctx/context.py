"""Markdown documents handed to the chat assistant."""

from pathlib import Path

from jctx.attachments import SANDBOX_DIRNAME, Profile, size_label
from jctx.models import AttachmentRecord, ContextDocument, IssueDetail

START_WORK_INSTRUCTIONS = (
    "\n\n---\n**IMPORTANT INSTRUCTIONS:**\n"
    "1. Implement the required changes for this issue\n"
    "2. Validate your implementation by running it or its basic health check\n"
    "3. **DO NOT create unit tests yet** - unit tests will be created in a separate step after you validate the code\n"
    "4. Once you've validated the code changes, run `jctx create-unit-tests` to generate tests for your changeset\n"
    "5. The unit test generation will analyze only the files you've changed\n"
)

_UNIFIED_TASK = (
    "**Task:** Analyze this codebase and the attached files to provide guidance on implementing this "
    "Jira issue. Suggest an implementation approach and identify relevant files that need to be modified."
)
_INLINE_TASK = (
    "**Task:** Please analyze this codebase in the context of implementing this Jira issue. Provide guidance, "
    "suggest implementation approach, and identify relevant files that need to be modified."
)


def _metadata(issue: IssueDetail) -> list[str]:
    lines = [
        "## Metadata",
        f"- **Status:** {issue.status}",
        f"- **Priority:** {issue.priority}",
        f"- **Type:** {issue.issue_type}",
        f"- **Assignee:** {issue.assignee}",
        f"- **Reporter:** {issue.reporter}",
        f"- **Created:** {issue.created}",
        f"- **Updated:** {issue.updated}",
    ]
    if issue.labels:
        lines.append(f"- **Labels:** {', '.join(issue.labels)}")
    return lines


def _unified_attachment(issue: IssueDetail, record: AttachmentRecord) -> list[str]:
    att = record.descriptor
    lines = [f"- **{att.filename}** ({size_label(att.size)}) - {att.mime_type or 'unknown type'}"]
    if record.local_path:
        lines.append(f"  ✓ Downloaded to {SANDBOX_DIRNAME}/{issue.key}/{Path(record.local_path).name}")
    elif record.note:
        lines.append(f"  ⚠ {record.note}")
    return lines


def _inline_attachment(record: AttachmentRecord) -> list[str]:
    att = record.descriptor
    lines = [
        f"### {att.filename} ({size_label(att.size)})",
        f"- **Type:** {att.mime_type or 'unknown'}",
        f"- **URL:** {att.url}",
    ]
    if record.inline_text is not None:
        lines += ["", "**Content:**", "```", record.inline_text, "```"]
    elif record.note:
        lines += ["", f"**Note:** {record.note}"]
    lines.append("")
    return lines


def render_issue_context(issue: IssueDetail, profile: Profile = Profile.UNIFIED) -> ContextDocument:
    """Render the full issue as one markdown document plus its local attachment paths."""
    lines = [f"# Jira Issue: {issue.key} - {issue.title}", ""]
    lines += _metadata(issue)

    lines += ["", "## Description", issue.description or "No description provided."]

    if issue.comments:
        lines += ["", f"## Comments ({issue.comment_total})"]
        for index, comment in enumerate(issue.comments, start=1):
            lines += ["", f"### Comment {index} by {comment.author} ({comment.created})", comment.body]

    if issue.attachments:
        lines += ["", f"## Attachments ({len(issue.attachments)})"]
        if profile is Profile.UNIFIED:
            lines.append(
                f"*Note: Attachment files have been downloaded to {SANDBOX_DIRNAME}/{issue.key}/ "
                "for the assistant to reference.*"
            )
            lines.append("")
            for record in issue.attachments:
                lines += _unified_attachment(issue, record)
        else:
            lines.append("")
            for record in issue.attachments:
                lines += _inline_attachment(record)

    if issue.subtasks:
        lines += ["", f"## Subtasks ({len(issue.subtasks)})"]
        lines += [f"- {s.key}: {s.title} [{s.status}]" for s in issue.subtasks]

    if issue.links:
        lines += ["", "## Linked Issues"]
        lines += [f"- {link.relation}: {link.key} - {link.title}" for link in issue.links]

    paths = issue.attachment_paths
    if paths:
        lines += [
            "",
            "---",
            "**Attachment Files Context:**",
            "The following files from the Jira issue have been downloaded and are now in the workspace:",
        ]
        lines += [f"- {Path(p).name}" for p in paths]
        lines += ["", "Please review these files as they contain important context for this task."]

    lines += ["", "---", _UNIFIED_TASK if profile is Profile.UNIFIED else _INLINE_TASK]
    return ContextDocument(issue_key=issue.key, text="\n".join(lines), attachment_paths=paths)


def build_unit_test_prompt(issue_key: str, changeset: str) -> str:
    return f"""# Unit Test Generation for {issue_key}

## Instructions
You are reviewing the code changes for Jira issue {issue_key}. The developer has completed their implementation and validated the code.

**Your task**: Generate comprehensive unit tests ONLY for the changed code in this changeset, then run and fix any test failures.

## Requirements

### 1. Analyze the Git Diff
Identify:
- New functions/methods that need testing
- Modified functions/methods that need updated tests
- Edge cases and error conditions
- Changed file locations and paths

### 2. Follow Project Test Folder Structure **STRICTLY**
**CRITICAL**: You MUST follow the existing test folder structure:

- **Examine the project** for existing test directories (e.g., `test/`, `tests/`, `__tests__/`, `src/test/`)
- **Check for unit test subdirectory**: Look for `test/unit/`, `tests/unit/`, `__tests__/unit/` patterns
- **Mirror the source structure**: If source is at `src/services/cart.py`, test should be at `tests/unit/services/test_cart.py`
- **Use correct naming convention**: Check existing test files for naming patterns (`.test.ts`, `.spec.ts`, `_test.py`, `Test.java`)
- **Respect directory hierarchy**: Match the exact folder structure of source files
- **Check for test configuration**: Look for test config files (jest.config.js, pytest.ini, pyproject.toml) that define test paths

**Example Structures**:
- Java: `src/main/java/com/example/Service.java` → `src/test/java/com/example/ServiceTest.java`
- Python: `src/services/cart.py` → `tests/unit/services/test_cart.py`
- TypeScript/Node: `src/services/cart.ts` → `test/unit/services/cart.test.ts`

### 3. Create Quality Unit Tests
- Test all new functionality
- Cover happy path and edge cases
- Test error handling
- Follow the project's existing test patterns
- Have clear, descriptive test names
- Include necessary imports and setup/teardown

## Changeset (Git Diff)

```diff
{changeset}
```

## Action Items
1. **FIRST**: Examine the project structure to identify the test folder pattern (especially check for `test/unit/` or `tests/unit/`)
2. Review the changes above
3. Generate unit test files in the **CORRECT test directory structure** (including the `unit` subdirectory if it exists)
4. **RUN the tests** using the project's test command (npm test, pytest, mvn test, etc.)
5. **Fix any failing tests** - analyze failures and correct the test code
6. **Re-run tests** until all tests pass
7. Report the test results (number of tests, pass/fail status, file locations)

**IMPORTANT**:
- You must follow the exact test folder structure of the project (including `unit/` subdirectory)
- You must run the tests and fix any failures
- Do not just generate test code - execute and validate it!

Please generate and run the unit tests now."""
