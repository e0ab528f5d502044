"""Issue kind classification and branch naming."""

from collections.abc import Iterable

from jctx.models import BranchPlan, IssueKind

_BUG_LABEL_MARKERS = ("bug", "defect", "fix")
_BUG_TYPE_MARKERS = ("bug", "defect")


def classify_kind(issue_type: str | None, labels: Iterable[str] = ()) -> IssueKind:
    """Labels win over the issue type; anything unrecognised is a feature.

    >>> classify_kind("Story", ["bug-fix"])
    <IssueKind.BUG: 'bug'>
    """
    lowered = [label.lower() for label in labels]
    if any(marker in label for label in lowered for marker in _BUG_LABEL_MARKERS):
        return IssueKind.BUG
    type_name = (issue_type or "").lower()
    if any(marker in type_name for marker in _BUG_TYPE_MARKERS):
        return IssueKind.BUG
    return IssueKind.FEATURE


def make_branch_plan(issue_key: str, kind: IssueKind) -> BranchPlan:
    """PROJ-12 + bug → bug/proj-12"""
    return BranchPlan(issue_key=issue_key, kind=kind, branch_name=f"{kind.value}/{issue_key.lower()}")
