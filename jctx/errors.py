"""Error taxonomy shared by the tracker client, git workflow and CLI."""


class JctxError(RuntimeError):
    """Base class for every error jctx raises on purpose."""


class AuthOrNetworkError(JctxError):
    """Non-2xx response or transport failure on a tracker call."""

    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class NotFoundError(JctxError):
    """Issue or board does not exist (or is invisible to these credentials)."""


class GitOperationError(JctxError):
    def __init__(self, message: str, command: list[str] | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.command = command or []
        self.stderr = stderr


class ValidationError(JctxError):
    """Missing configuration, empty input, or a workflow already running."""


def remediation_hint(error: JctxError) -> str | None:
    """Return a user-facing hint for tracker errors we recognise."""
    if isinstance(error, AuthOrNetworkError):
        if error.status_code == 410:
            return (
                "Jira search API unavailable. This often happens with new accounts. "
                "Try creating a project and some issues first."
            )
        if error.status_code == 401:
            return "Credentials were rejected. Run jctx init to update the active profile."
    return None
