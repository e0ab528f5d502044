"""Abstract base class for ticket providers."""

from abc import ABC, abstractmethod
from pathlib import Path

from jctx.attachments import Profile
from jctx.models import IssueDetail, IssueKind, IssueSummary, ProjectSummary, StepResult, Transition


class TicketProvider(ABC):
    @abstractmethod
    def list_projects(self) -> list[ProjectSummary]: ...

    @abstractmethod
    def search_assigned_issues(self) -> list[IssueSummary]: ...

    @abstractmethod
    def fetch_issue_detail(
        self,
        issue_key: str,
        profile: Profile = Profile.UNIFIED,
        sandbox_root: Path | None = None,
    ) -> IssueDetail: ...

    @abstractmethod
    def list_available_transitions(self, issue_key: str) -> list[Transition]: ...

    @abstractmethod
    def apply_transition(self, issue_key: str, transition_id: str) -> None: ...

    @abstractmethod
    def transition_to_in_progress(self, issue_key: str) -> StepResult: ...

    @abstractmethod
    def classify_issue_type(self, issue_key: str) -> IssueKind: ...
