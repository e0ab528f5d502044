"""Git automation for starting work on an issue.

``GitWorkflow.prepare_branch`` walks a small state machine and is safe to
re-run: detect (init if needed) → ensure main → align on main → pull
(best-effort) → switch to or create the issue branch. Only a failed ``git
init`` stops the sequence; every later failure is a warning.
"""

import logging
import os
import subprocess
from collections.abc import Callable
from pathlib import Path

from jctx.errors import GitOperationError
from jctx.models import BranchPlan, Outcome, RepoState, StepResult

logger = logging.getLogger(__name__)

MAIN_BRANCH = "main"
REMOTE = "origin"


def _noop(_: str) -> None:
    pass


class GitWorkflow:
    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _git(self, *args: str) -> str:
        cmd = ["git", *args]
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        logger.debug("Running %s in %s", " ".join(cmd), self.directory)
        try:
            result = subprocess.run(cmd, cwd=self.directory, capture_output=True, text=True, env=env)
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise GitOperationError(f"{' '.join(cmd)} failed: {exc}", command=cmd) from exc
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise GitOperationError(f"{' '.join(cmd)} failed: {stderr or result.returncode}", command=cmd, stderr=stderr)
        return result.stdout

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def is_repository(self) -> bool:
        try:
            self._git("rev-parse", "--git-dir")
        except GitOperationError:
            return False
        return True

    def observe(self) -> RepoState:
        if not self.is_repository():
            return RepoState(is_repository=False)
        try:
            current = self._git("rev-parse", "--abbrev-ref", "HEAD").strip()
        except GitOperationError:
            # unborn branch: no commits yet
            current = self._git("symbolic-ref", "--short", "HEAD").strip()
        branches = self._git("branch", "--format=%(refname:short)").split()
        remotes = self._git("remote").split()
        return RepoState(
            is_repository=True,
            current_branch=None if current == "HEAD" else current,
            known_branches=branches,
            has_remote=REMOTE in remotes,
        )

    # ------------------------------------------------------------------
    # Branch preparation steps
    # ------------------------------------------------------------------

    def _initialize(self) -> StepResult:
        try:
            self._git("init")
            self._git("add", ".")
            self._git("commit", "--allow-empty", "-m", "Initial commit")
            self._git("branch", "-M", MAIN_BRANCH)
        except GitOperationError as exc:
            return StepResult.fatal(f"Git init failed: {exc}. Continuing without Git setup.", exc)
        return StepResult.ok("Git repository initialized with main branch")

    def _ensure_main(self, state: RepoState) -> StepResult:
        if MAIN_BRANCH in state.known_branches:
            return StepResult.ok()
        try:
            self._git("branch", MAIN_BRANCH)
        except GitOperationError as exc:
            return StepResult.warn(f"Could not create main branch: {exc}", exc)
        return StepResult.ok(f"Created main from {state.current_branch}")

    def _align(self, state: RepoState) -> StepResult:
        if state.current_branch == MAIN_BRANCH:
            return StepResult.ok()
        try:
            self._git("checkout", MAIN_BRANCH)
        except GitOperationError as exc:
            return StepResult.warn(f"Could not switch to main: {exc}", exc)
        return StepResult.ok("Switched to main")

    def _sync(self, state: RepoState) -> StepResult:
        if not state.has_remote:
            return StepResult.ok("No remote, continuing with local main")
        try:
            self._git("pull", REMOTE, MAIN_BRANCH)
        except GitOperationError as exc:
            logger.info("Pull failed, continuing with local main: %s", exc)
            return StepResult.ok("Pull failed, continuing with local main")
        return StepResult.ok("Pulled latest main")

    def _enter_branch(self, plan: BranchPlan) -> StepResult:
        try:
            self._git("checkout", plan.branch_name)
            return StepResult.ok(f"Switched to existing branch: {plan.branch_name}")
        except GitOperationError:
            pass
        try:
            self._git("checkout", "-b", plan.branch_name)
        except GitOperationError as exc:
            return StepResult.warn(f"Git setup failed: {exc}. Continuing without Git setup.", exc)
        return StepResult.ok(f"Created and switched to new branch: {plan.branch_name}")

    def prepare_branch(self, plan: BranchPlan, progress: Callable[[str], None] = _noop) -> list[StepResult]:
        results: list[StepResult] = []

        if not self.is_repository():
            progress("Initializing Git repository...")
            results.append(self._initialize())
            if results[-1].outcome is Outcome.FATAL:
                return results

        try:
            state = self.observe()
        except GitOperationError as exc:
            results.append(StepResult.warn(f"Git setup failed: {exc}. Continuing without Git setup.", exc))
            return results

        progress("Checking main branch...")
        results.append(self._ensure_main(state))

        progress("Switching to main branch...")
        results.append(self._align(state))

        progress("Pulling latest from remote...")
        results.append(self._sync(state))

        progress(f"Creating branch {plan.branch_name}...")
        results.append(self._enter_branch(plan))
        return results

    # ------------------------------------------------------------------
    # Change-set capture
    # ------------------------------------------------------------------

    def stage_all(self) -> None:
        try:
            self._git("add", ".")
        except GitOperationError as exc:
            raise GitOperationError(
                "Failed to stage changes. Make sure you have Git initialized.", command=exc.command, stderr=exc.stderr
            ) from exc

    def capture_changeset(self) -> str:
        """Staged diff, else unstaged diff, else ``""`` (nothing to test)."""
        staged = self._git("diff", "--cached")
        if staged.strip():
            return staged
        unstaged = self._git("diff")
        if unstaged.strip():
            return unstaged
        return ""
