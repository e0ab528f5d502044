"""Shared pydantic models: the contract between the tracker, git and workflow layers."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator, model_validator

Deployment = Literal["cloud", "datacenter"]


class TrackerCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    deployment: Deployment
    base_url: str
    # cloud
    email: str | None = None
    api_token: SecretStr | None = None
    # datacenter
    username: str | None = None
    password: SecretStr | None = None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @model_validator(mode="after")
    def _one_credential_shape(self) -> "TrackerCredentials":
        cloud = self.email is not None or self.api_token is not None
        datacenter = self.username is not None or self.password is not None
        if self.deployment == "cloud":
            if not (self.email and self.api_token) or datacenter:
                raise ValueError("cloud credentials need email and api_token only")
        elif not (self.username and self.password) or cloud:
            raise ValueError("datacenter credentials need username and password only")
        return self


class ProjectSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    name: str


class IssueSummary(BaseModel):
    """One row of the pick-list."""

    model_config = ConfigDict(frozen=True)

    key: str  # PROJ-12
    title: str
    status: str
    priority: str = "None"


class Transition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    to_status: str = ""


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True)

    author: str
    created: str
    body: str  # already rendered to markdown


class AttachmentDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    mime_type: str = ""
    size: int  # bytes
    url: str


class AttachmentDecision(str, Enum):
    DOWNLOAD_TO_DISK = "download-to-disk"
    DOWNLOAD_AS_TEXT = "download-as-text"
    DOWNLOAD_AS_BINARY_NOTE = "download-as-binary-note"
    SKIP_TOO_LARGE = "skip-too-large"
    SKIP_UNSUPPORTED = "skip-unsupported"

    @property
    def fetches(self) -> bool:
        """True when the attachment bytes are actually retrieved."""
        return self in (AttachmentDecision.DOWNLOAD_TO_DISK, AttachmentDecision.DOWNLOAD_AS_TEXT)


class AttachmentRecord(BaseModel):
    """An attachment after the policy has been applied and any download attempted."""

    model_config = ConfigDict(frozen=True)

    descriptor: AttachmentDescriptor
    decision: AttachmentDecision
    local_path: str | None = None  # absolute, unified profile only
    inline_text: str | None = None  # inline profile, text-like only
    note: str | None = None  # failure or skip explanation


class Subtask(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    status: str


class IssueLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    relation: str  # "blocks", "is blocked by", ...
    key: str
    title: str


class IssueDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    status: str
    priority: str = "None"
    issue_type: str = "Task"
    assignee: str = "Unassigned"
    reporter: str = "Unknown"
    created: str = ""
    updated: str = ""
    labels: list[str] = []
    description: str = ""
    comments: list[Comment] = []
    comment_total: int = 0
    attachments: list[AttachmentRecord] = []
    subtasks: list[Subtask] = []
    links: list[IssueLink] = []
    url: str | None = None

    @property
    def attachment_paths(self) -> list[str]:
        return [a.local_path for a in self.attachments if a.local_path]


class IssueKind(str, Enum):
    BUG = "bug"
    FEATURE = "feature"


class BranchPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue_key: str
    kind: IssueKind
    branch_name: str  # bug/proj-12


class RepoState(BaseModel):
    """Observed on every invocation; never persisted."""

    model_config = ConfigDict(frozen=True)

    is_repository: bool
    current_branch: str | None = None
    known_branches: list[str] = []
    has_remote: bool = False


class Outcome(str, Enum):
    OK = "ok"
    WARN = "warn"
    FATAL = "fatal"


class StepResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    outcome: Outcome
    message: str = ""
    error: Exception | None = None

    @classmethod
    def ok(cls, message: str = "") -> "StepResult":
        return cls(outcome=Outcome.OK, message=message)

    @classmethod
    def warn(cls, message: str, error: Exception | None = None) -> "StepResult":
        return cls(outcome=Outcome.WARN, message=message, error=error)

    @classmethod
    def fatal(cls, message: str, error: Exception | None = None) -> "StepResult":
        return cls(outcome=Outcome.FATAL, message=message, error=error)


class ContextDocument(BaseModel):
    """Final markdown payload handed to the chat sink."""

    model_config = ConfigDict(frozen=True)

    issue_key: str
    text: str
    attachment_paths: list[str] = []


class WorkflowReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    steps: list[StepResult] = []
    document: ContextDocument | None = None

    @property
    def warnings(self) -> list[str]:
        return [s.message for s in self.steps if s.outcome is Outcome.WARN]
