"""Shared test fixtures."""

import shutil

import pytest

from jctx.models import TrackerCredentials

BASE_URL = "https://acme.atlassian.net"
API = f"{BASE_URL}/rest/api/3"
AGILE = f"{BASE_URL}/rest/agile/1.0"


@pytest.fixture
def cloud_credentials() -> TrackerCredentials:
    return TrackerCredentials(
        deployment="cloud",
        base_url=BASE_URL + "/",
        email="dev@acme.io",
        api_token="tok_123",
    )


@pytest.fixture
def datacenter_credentials() -> TrackerCredentials:
    return TrackerCredentials(
        deployment="datacenter",
        base_url="https://jira.acme.internal",
        username="dev",
        password="hunter2",
    )


@pytest.fixture
def git_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Run real git with a throwaway identity and no user/system config."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", "/dev/null")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")


def adf(*blocks: dict) -> dict:
    return {"type": "doc", "version": 1, "content": list(blocks)}


def paragraph(*texts: str) -> dict:
    return {"type": "paragraph", "content": [{"type": "text", "text": t} for t in texts]}


@pytest.fixture
def issue_node() -> dict:
    """A cloud issue as returned by GET /issue/{key}?fields=*all."""
    return {
        "key": "PROJ-12",
        "fields": {
            "summary": "Fix login",
            "description": adf(
                {"type": "heading", "attrs": {"level": 2}, "content": [{"type": "text", "text": "Steps"}]},
                paragraph("Click ", "Login"),
            ),
            "status": {"name": "To Do"},
            "priority": {"name": "High"},
            "issuetype": {"name": "Bug"},
            "assignee": {"displayName": "Jane Doe"},
            "reporter": {"displayName": "Sam Lee"},
            "created": "2024-05-01T10:00:00.000+0000",
            "updated": "2024-05-02T10:00:00.000+0000",
            "labels": ["auth"],
            "comment": {
                "total": 1,
                "comments": [
                    {
                        "author": {"displayName": "Sam Lee"},
                        "created": "2024-05-01T11:00:00.000+0000",
                        "body": adf(paragraph("Repro on staging")),
                    }
                ],
            },
            "attachment": [
                {
                    "filename": "notes.txt",
                    "mimeType": "text/plain",
                    "size": 2048,
                    "content": f"{BASE_URL}/secure/attachment/1/notes.txt",
                }
            ],
            "subtasks": [{"key": "PROJ-13", "fields": {"summary": "Add test", "status": {"name": "Done"}}}],
            "issuelinks": [
                {
                    "type": {"inward": "is blocked by", "outward": "blocks"},
                    "outwardIssue": {"key": "PROJ-20", "fields": {"summary": "Release 1.2"}},
                }
            ],
        },
    }
