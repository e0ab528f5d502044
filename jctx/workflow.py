"""Top-level sequences: start work on an issue, and generate unit tests for it.

Each step yields a ``StepResult``. Warnings are collected and the sequence
carries on; a fatal condition (issue fetch failed, nothing to stage) is raised
as a ``JctxError`` and stops the run.
"""

import hashlib
import logging
import os
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from jctx.attachments import Profile
from jctx.branching import make_branch_plan
from jctx.context import START_WORK_INSTRUCTIONS, build_unit_test_prompt, render_issue_context
from jctx.errors import JctxError, ValidationError
from jctx.git import GitWorkflow
from jctx.models import ContextDocument, IssueSummary, Outcome, StepResult, WorkflowReport
from jctx.providers.base import TicketProvider
from jctx.sinks import ChatSink
from jctx.store import ConfigStore

logger = logging.getLogger(__name__)

PENDING_PROMPT = "pending_prompt"
PENDING_ATTACHMENTS = "pending_attachments"
ISSUE_CACHE = "issue_cache"

Progress = Callable[[str], None]


def _noop(_: str) -> None:
    pass


def _lock_path(directory: Path) -> Path:
    digest = hashlib.sha1(str(directory).encode()).hexdigest()[:16]
    return Path(tempfile.gettempdir()) / f"jctx-{digest}.lock"


@contextmanager
def directory_lock(directory: Path) -> Iterator[None]:
    """One workflow per target directory; a second concurrent run is refused."""
    lock = _lock_path(directory)
    try:
        fd = os.open(lock, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError as exc:
        raise ValidationError(
            f"Another jctx workflow is already running in {directory}. "
            f"If that is not the case, remove {lock} and retry."
        ) from exc
    try:
        os.write(fd, str(os.getpid()).encode())
        os.close(fd)
        yield
    finally:
        lock.unlink(missing_ok=True)


def _resolve_directory(directory: Path) -> Path:
    resolved = Path(directory).expanduser().resolve()
    if not resolved.is_dir():
        raise ValidationError(f"{resolved} is not a directory")
    return resolved


class Workflow:
    def __init__(
        self,
        tracker: TicketProvider | None,
        sink: ChatSink,
        store: ConfigStore,
        progress: Progress = _noop,
    ) -> None:
        self.tracker = tracker
        self.sink = sink
        self.store = store
        self.progress = progress

    def _deliver(self, text: str, attachment_paths: list[str]) -> StepResult:
        try:
            self.sink.deliver(text, attachment_paths)
        except OSError as exc:
            logger.warning("Prompt delivery failed: %s", exc)
            self.store.set(PENDING_PROMPT, text)
            self.store.set(PENDING_ATTACHMENTS, attachment_paths)
            return StepResult.warn(f"Could not deliver the prompt ({exc}). It was saved; run jctx resume to retry.", exc)
        if attachment_paths:
            names = ", ".join(Path(p).name for p in attachment_paths)
            return StepResult.ok(f"Prompt delivered with {len(attachment_paths)} file(s): {names}")
        return StepResult.ok("Prompt delivered")

    def refresh_issue_cache(self) -> StepResult:
        try:
            issues = self.tracker.search_assigned_issues()
        except JctxError as exc:
            logger.info("Issue list refresh failed: %s", exc)
            return StepResult.warn(f"Could not refresh issue list: {exc}", exc)
        self.store.set(ISSUE_CACHE, [issue.model_dump() for issue in issues])
        return StepResult.ok(f"{len(issues)} issue(s) cached")

    def cached_issues(self) -> list[IssueSummary]:
        return [IssueSummary(**raw) for raw in self.store.get(ISSUE_CACHE, [])]

    def start_work(self, directory: Path, issue_key: str) -> WorkflowReport:
        directory = _resolve_directory(directory)
        steps: list[StepResult] = []

        with directory_lock(directory):
            self.progress("Transitioning status to In Progress...")
            steps.append(self.tracker.transition_to_in_progress(issue_key))

            self.progress("Loading issue details...")
            detail = self.tracker.fetch_issue_detail(issue_key, Profile.UNIFIED, sandbox_root=directory)

            self.progress("Setting up Git repository...")
            plan = make_branch_plan(issue_key, self.tracker.classify_issue_type(issue_key))
            for result in GitWorkflow(directory).prepare_branch(plan, self.progress):
                # a failed git init only stops the git sequence; the context still ships
                if result.outcome is Outcome.FATAL:
                    result = StepResult.warn(result.message, result.error)
                steps.append(result)

            rendered = render_issue_context(detail, Profile.UNIFIED)
            document = ContextDocument(
                issue_key=issue_key,
                text=rendered.text + START_WORK_INSTRUCTIONS,
                attachment_paths=rendered.attachment_paths,
            )

            self.progress("Handing context to the assistant...")
            steps.append(self._deliver(document.text, document.attachment_paths))

            self.progress("Refreshing issue list...")
            steps.append(self.refresh_issue_cache())

        return WorkflowReport(steps=steps, document=document)

    def create_unit_tests(self, directory: Path, issue_key: str) -> WorkflowReport:
        directory = _resolve_directory(directory)
        git = GitWorkflow(directory)

        with directory_lock(directory):
            self.progress("Staging changes...")
            git.stage_all()

            self.progress("Getting changeset...")
            changeset = git.capture_changeset()
            if not changeset.strip():
                return WorkflowReport(steps=[StepResult.warn("No changes detected. Please make code changes first.")])

            self.progress("Preparing unit test prompt...")
            document = ContextDocument(issue_key=issue_key, text=build_unit_test_prompt(issue_key, changeset))

            self.progress("Handing prompt to the assistant...")
            delivered = self._deliver(document.text, [])

        return WorkflowReport(steps=[delivered], document=document)

    def context_for(self, issue_key: str) -> ContextDocument:
        """Self-contained document: text attachments inlined, nothing written to disk."""
        detail = self.tracker.fetch_issue_detail(issue_key, Profile.INLINE)
        return render_issue_context(detail, Profile.INLINE)

    def resume_pending(self) -> StepResult | None:
        """Deliver a prompt saved by an earlier failed hand-off, if any."""
        text = self.store.get(PENDING_PROMPT)
        if not text:
            return None
        attachment_paths = list(self.store.get(PENDING_ATTACHMENTS, []))
        self.store.clear(PENDING_PROMPT)
        self.store.clear(PENDING_ATTACHMENTS)
        return self._deliver(text, attachment_paths)
