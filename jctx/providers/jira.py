"""Jira REST provider (Cloud API v3 and Data Center API v2)."""

import base64
import logging
from pathlib import Path
from typing import Any

import httpx

from jctx import attachments
from jctx.attachments import Profile, size_label
from jctx.branching import classify_kind
from jctx.errors import AuthOrNetworkError, JctxError, NotFoundError
from jctx.models import (
    AttachmentDecision,
    AttachmentDescriptor,
    AttachmentRecord,
    Comment,
    IssueDetail,
    IssueKind,
    IssueLink,
    IssueSummary,
    ProjectSummary,
    StepResult,
    Subtask,
    TrackerCredentials,
    Transition,
)
from jctx.providers.base import TicketProvider
from jctx.richtext import render_body

logger = logging.getLogger(__name__)

API_VERSION = {"cloud": "3", "datacenter": "2"}
AGILE_PATH = "/rest/agile/1.0"
MAX_RESULTS = 50

ASSIGNED_JQL = "assignee = currentUser() AND resolution = Unresolved ORDER BY updated DESC"
_BOARD_FIELDS = "summary,description,status,priority,assignee"
_SEARCH_FIELDS = "summary,description,status,priority"

_START_MARKERS = ("in progress", "start")
_STARTED_STATUS_MARKERS = ("in progress", "active")


def build_auth_header(credentials: TrackerCredentials) -> str:
    """HTTP Basic header: email:api_token for cloud, username:password for datacenter."""
    if credentials.deployment == "cloud":
        user = credentials.email or ""
        secret = credentials.api_token.get_secret_value() if credentials.api_token else ""
    else:
        user = credentials.username or ""
        secret = credentials.password.get_secret_value() if credentials.password else ""
    token = base64.b64encode(f"{user}:{secret}".encode()).decode("ascii")
    return f"Basic {token}"


def _name(node: Any, key: str = "name", default: str = "") -> str:
    """Read ``node[key]`` from an optional nested object like ``fields.status``."""
    if isinstance(node, dict) and node.get(key):
        return str(node[key])
    return default


def _size(raw: Any) -> int:
    try:
        return max(int(raw or 0), 0)
    except (TypeError, ValueError):
        return 0


class JiraProvider(TicketProvider):
    def __init__(self, credentials: TrackerCredentials, timeout: float = 30) -> None:
        self.base_url = credentials.base_url
        self._api = f"{credentials.base_url}/rest/api/{API_VERSION[credentials.deployment]}"
        self._timeout = timeout
        self._headers = {
            "Authorization": build_auth_header(credentials),
            "Accept": "application/json",
        }

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            return httpx.request(method, url, headers=headers, timeout=self._timeout, **kwargs)
        except httpx.TransportError as exc:
            raise AuthOrNetworkError(f"Could not reach Jira at {url}: {exc}") from exc

    def _raise_for_status(self, response: httpx.Response, what: str) -> None:
        if response.is_success:
            return
        status, reason = response.status_code, response.reason_phrase
        if status == 401:
            raise AuthOrNetworkError(
                f"{what}: Jira API returned 401. Run jctx init to update credentials for the active profile.",
                status_code=status,
                reason=reason,
            )
        if status == 404:
            raise NotFoundError(f"{what}: {status} {reason}")
        raise AuthOrNetworkError(f"{what}: {status} {reason}", status_code=status, reason=reason)

    def _get_json(self, url: str, what: str, params: dict | None = None) -> Any:
        response = self._request("GET", url, params=params or {})
        self._raise_for_status(response, what)
        try:
            return response.json()
        except ValueError as exc:
            raise AuthOrNetworkError(f"{what}: invalid JSON from Jira") from exc

    # ------------------------------------------------------------------
    # Node parsing
    # ------------------------------------------------------------------

    def _summary_from_node(self, node: dict) -> IssueSummary:
        fields = node.get("fields") or {}
        return IssueSummary(
            key=node.get("key", ""),
            title=fields.get("summary") or "",
            status=_name(fields.get("status"), default="Unknown"),
            priority=_name(fields.get("priority"), default="None"),
        )

    def _detail_from_node(self, node: dict, attachment_records: list[AttachmentRecord]) -> IssueDetail:
        fields = node.get("fields") or {}
        key = node.get("key", "")

        raw_comment = fields.get("comment") or {}
        raw_comments = raw_comment.get("comments") or []
        comments = [
            Comment(
                author=_name(c.get("author"), "displayName", "Unknown"),
                created=c.get("created") or "",
                body=render_body(c.get("body")),
            )
            for c in raw_comments
        ]

        subtasks = [
            Subtask(
                key=s.get("key", ""),
                title=(s.get("fields") or {}).get("summary") or "",
                status=_name((s.get("fields") or {}).get("status"), default="Unknown"),
            )
            for s in fields.get("subtasks") or []
        ]

        links = []
        for link in fields.get("issuelinks") or []:
            link_type = link.get("type") or {}
            if link.get("outwardIssue"):
                other, relation = link["outwardIssue"], link_type.get("outward", "relates to")
            elif link.get("inwardIssue"):
                other, relation = link["inwardIssue"], link_type.get("inward", "relates to")
            else:
                continue
            links.append(
                IssueLink(
                    relation=relation,
                    key=other.get("key", ""),
                    title=(other.get("fields") or {}).get("summary") or "",
                )
            )

        return IssueDetail(
            key=key,
            title=fields.get("summary") or "",
            status=_name(fields.get("status"), default="Unknown"),
            priority=_name(fields.get("priority"), default="None"),
            issue_type=_name(fields.get("issuetype"), default="Task"),
            assignee=_name(fields.get("assignee"), "displayName", "Unassigned"),
            reporter=_name(fields.get("reporter"), "displayName", "Unknown"),
            created=fields.get("created") or "",
            updated=fields.get("updated") or "",
            labels=[str(label) for label in fields.get("labels") or []],
            description=render_body(fields.get("description")),
            comments=comments,
            comment_total=raw_comment.get("total") or len(comments),
            attachments=attachment_records,
            subtasks=subtasks,
            links=links,
            url=f"{self.base_url}/browse/{key}",
        )

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def _download(self, url: str) -> httpx.Response:
        response = self._request("GET", url, headers={"Accept": "*/*"}, follow_redirects=True)
        if not response.is_success:
            raise AuthOrNetworkError(
                f"Attachment download failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )
        return response

    def _save_attachment(self, descriptor: AttachmentDescriptor, target_dir: Path) -> AttachmentRecord:
        decision = AttachmentDecision.DOWNLOAD_TO_DISK
        try:
            content = self._download(descriptor.url).content
            target_dir.mkdir(parents=True, exist_ok=True)
            # attachment names are stable within one issue; re-runs overwrite
            path = (target_dir / Path(descriptor.filename).name).resolve()
            path.write_bytes(content)
        except (JctxError, OSError) as exc:
            logger.warning("Could not download %s: %s", descriptor.filename, exc)
            return AttachmentRecord(
                descriptor=descriptor, decision=decision, note=f"Could not download (URL: {descriptor.url})"
            )
        return AttachmentRecord(descriptor=descriptor, decision=decision, local_path=str(path))

    def _inline_attachment(self, descriptor: AttachmentDescriptor, decision: AttachmentDecision) -> AttachmentRecord:
        match decision:
            case AttachmentDecision.DOWNLOAD_AS_TEXT:
                try:
                    text = self._download(descriptor.url).text
                except JctxError as exc:
                    logger.warning("Could not download %s: %s", descriptor.filename, exc)
                    note = "Could not download attachment content. File available at URL above."
                    return AttachmentRecord(descriptor=descriptor, decision=decision, note=note)
                return AttachmentRecord(descriptor=descriptor, decision=decision, inline_text=text)
            case AttachmentDecision.DOWNLOAD_AS_BINARY_NOTE:
                if attachments.category(descriptor) is attachments.Category.IMAGE:
                    note = "Image file available at the URL above."
                else:
                    note = "Document file available at the URL above."
            case AttachmentDecision.SKIP_TOO_LARGE:
                note = f"File too large to include in context ({size_label(descriptor.size)}). URL provided above."
            case _:
                note = f"Attachment type not included in context ({size_label(descriptor.size)}). URL provided above."
        return AttachmentRecord(descriptor=descriptor, decision=decision, note=note)

    def _materialize_attachments(
        self,
        issue_key: str,
        raw_attachments: list[dict],
        profile: Profile,
        sandbox_root: Path | None,
    ) -> list[AttachmentRecord]:
        records = []
        target_dir = sandbox_root / attachments.SANDBOX_DIRNAME / issue_key if sandbox_root else None
        # sequential on purpose: predictable load on the tracker
        for raw in raw_attachments:
            descriptor = AttachmentDescriptor(
                filename=raw.get("filename") or "attachment",
                mime_type=raw.get("mimeType") or "",
                size=_size(raw.get("size")),
                url=raw.get("content") or "",
            )
            decision = attachments.classify(descriptor, profile)
            if profile is Profile.INLINE:
                records.append(self._inline_attachment(descriptor, decision))
            elif decision is AttachmentDecision.SKIP_TOO_LARGE:
                note = f"Too large to include ({size_label(descriptor.size)})"
                records.append(AttachmentRecord(descriptor=descriptor, decision=decision, note=note))
            elif target_dir is None:
                note = "No workspace directory - attachment cannot be downloaded"
                records.append(AttachmentRecord(descriptor=descriptor, decision=decision, note=note))
            else:
                records.append(self._save_attachment(descriptor, target_dir))
        return records

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def list_projects(self) -> list[ProjectSummary]:
        nodes = self._get_json(f"{self._api}/project", what="Failed to fetch projects")
        if isinstance(nodes, dict):
            # /project/search shape on some cloud sites
            nodes = nodes.get("values") or []
        return [
            ProjectSummary(id=str(n.get("id", "")), key=n.get("key", ""), name=n.get("name", ""))
            for n in nodes
        ]

    def _search_board_issues(self) -> list[IssueSummary]:
        boards = self._get_json(f"{self.base_url}{AGILE_PATH}/board", what="Failed to list boards")
        values = boards.get("values") or []
        if not values:
            return []
        board_id = values[0]["id"]
        data = self._get_json(
            f"{self.base_url}{AGILE_PATH}/board/{board_id}/issue",
            what=f"Failed to list issues of board {board_id}",
            params={"maxResults": str(MAX_RESULTS), "fields": _BOARD_FIELDS},
        )
        issues = data.get("issues")
        if not isinstance(issues, list):
            return []
        return [self._summary_from_node(n) for n in issues]

    def search_assigned_issues(self) -> list[IssueSummary]:
        # Team-managed projects often reject ad-hoc search, so try the agile
        # board API first and only fall back to JQL when it yields nothing.
        try:
            issues = self._search_board_issues()
        except (JctxError, AttributeError, KeyError, TypeError) as exc:
            logger.info("Agile board search failed, falling back to JQL search: %s", exc)
            issues = []
        if issues:
            return issues

        response = self._request(
            "GET",
            f"{self._api}/search",
            params={"jql": ASSIGNED_JQL, "maxResults": str(MAX_RESULTS), "fields": _SEARCH_FIELDS},
        )
        if not response.is_success:
            logger.error("Jira search failed: %s %s", response.status_code, response.text)
            raise AuthOrNetworkError(
                f"Jira API returned {response.status_code}: {response.reason_phrase}. "
                "This may be a team-managed project with limited API access.",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise AuthOrNetworkError("Invalid response from Jira API") from exc
        nodes = data.get("issues") if isinstance(data, dict) else None
        if not isinstance(nodes, list):
            raise AuthOrNetworkError("Invalid response from Jira API")
        return [self._summary_from_node(n) for n in nodes]

    def fetch_issue_detail(
        self,
        issue_key: str,
        profile: Profile = Profile.UNIFIED,
        sandbox_root: Path | None = None,
    ) -> IssueDetail:
        node = self._get_json(
            f"{self._api}/issue/{issue_key}",
            what=f"Failed to fetch issue {issue_key}",
            params={"fields": "*all", "expand": "renderedFields"},
        )
        fields = node.get("fields") or {}
        records = self._materialize_attachments(
            node.get("key", issue_key), fields.get("attachment") or [], profile, sandbox_root
        )
        return self._detail_from_node(node, records)

    def list_available_transitions(self, issue_key: str) -> list[Transition]:
        data = self._get_json(
            f"{self._api}/issue/{issue_key}/transitions", what=f"Failed to get transitions for {issue_key}"
        )
        return [
            Transition(id=str(t.get("id", "")), name=t.get("name", ""), to_status=_name(t.get("to")))
            for t in data.get("transitions") or []
        ]

    def apply_transition(self, issue_key: str, transition_id: str) -> None:
        response = self._request(
            "POST",
            f"{self._api}/issue/{issue_key}/transitions",
            json={"transition": {"id": transition_id}},
        )
        if not response.is_success:
            raise AuthOrNetworkError(
                f"Failed to transition {issue_key}: {response.status_code} - {response.text}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )

    def _current_status(self, issue_key: str) -> str:
        try:
            node = self._get_json(
                f"{self._api}/issue/{issue_key}", what=f"Failed to fetch status of {issue_key}", params={"fields": "status"}
            )
        except JctxError as exc:
            logger.info("Could not read status of %s: %s", issue_key, exc)
            return ""
        return _name((node.get("fields") or {}).get("status"))

    def transition_to_in_progress(self, issue_key: str) -> StepResult:
        try:
            transitions = self.list_available_transitions(issue_key)
            target = next(
                (
                    t
                    for t in transitions
                    if any(m in t.name.lower() or m in t.to_status.lower() for m in _START_MARKERS)
                ),
                None,
            )
            if target is None:
                status = self._current_status(issue_key).lower()
                if any(m in status for m in _STARTED_STATUS_MARKERS):
                    return StepResult.ok(f"{issue_key} is already in progress")
                available = ", ".join(t.name for t in transitions) or "none"
                logger.warning("No 'In Progress' transition for %s. Available: %s", issue_key, available)
                return StepResult.warn(
                    f'Could not auto-transition {issue_key} to "In Progress". '
                    f"Available transitions: {available}"
                )
            self.apply_transition(issue_key, target.id)
        except JctxError as exc:
            logger.warning("Error transitioning %s: %s", issue_key, exc)
            return StepResult.warn(f'Could not update status to "In Progress": {exc}', exc)
        return StepResult.ok(f'{issue_key} transitioned to "In Progress"')

    def classify_issue_type(self, issue_key: str) -> IssueKind:
        try:
            node = self._get_json(
                f"{self._api}/issue/{issue_key}",
                what=f"Failed to fetch type of {issue_key}",
                params={"fields": "issuetype,labels"},
            )
            fields = node.get("fields") or {}
            return classify_kind(_name(fields.get("issuetype")), fields.get("labels") or [])
        except (JctxError, AttributeError, TypeError) as exc:
            logger.info("Could not determine issue type of %s, defaulting to feature: %s", issue_key, exc)
            return IssueKind.FEATURE
