"""jctx CLI: all commands."""

import logging
from pathlib import Path
from typing import Annotated, NoReturn

import tomlkit
import typer
from rich import print as rprint
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from jctx.branching import make_branch_plan
from jctx.errors import AuthOrNetworkError, JctxError, remediation_hint
from jctx.models import Outcome, StepResult, WorkflowReport
from jctx.providers.jira import JiraProvider
from jctx.settings import CONFIG_PATH, STATE_PATH, JctxSettings, _list_profiles, get_settings
from jctx.sinks import ChatSink, ConsoleSink, FileSink
from jctx.store import ConfigStore, TomlConfigStore
from jctx.workflow import ISSUE_CACHE, Workflow

app = typer.Typer(help="jctx: turn a Jira issue into a ready-to-work branch and assistant prompt", no_args_is_help=True)

TrackerOpt = Annotated[
    str | None,
    typer.Option("--tracker", "-k", help="Profile name from ~/.config/jctx/config.toml"),
]
OutputOpt = Annotated[
    Path | None,
    typer.Option("--output", "-o", help="Write the prompt to a file instead of stdout"),
]
DirectoryArg = Annotated[
    Path,
    typer.Argument(help="Code directory to work in", file_okay=False),
]
IssueArg = Annotated[str, typer.Argument(help="Issue key (e.g. PROJ-12)")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def get_provider(tracker: str | None = None) -> JiraProvider:
    settings = get_settings(tracker=tracker)
    return JiraProvider(settings.credentials())


def get_store() -> ConfigStore:
    return TomlConfigStore(STATE_PATH)


def _sink(output: Path | None) -> ChatSink:
    return FileSink(output) if output else ConsoleSink()


def _progress(message: str) -> None:
    rprint(f"[dim]{escape(message)}[/dim]")


def _fail(exc: JctxError, prefix: str = "Error") -> NoReturn:
    rprint(f"[red]{prefix}: {escape(str(exc))}[/red]")
    hint = remediation_hint(exc)
    if hint:
        rprint(f"[yellow]Hint:[/yellow] {hint}")
    raise typer.Exit(1)


def _print_steps(steps: list[StepResult]) -> None:
    for step in steps:
        if step.outcome is Outcome.WARN:
            rprint(f"[yellow]Warning:[/yellow] {escape(step.message)}")
        elif step.message:
            rprint(f"[green]✓[/green] {escape(step.message)}")


def _print_report(report: WorkflowReport) -> None:
    _print_steps(report.steps)
    if report.warnings:
        rprint(f"[dim]Finished with {len(report.warnings)} warning(s).[/dim]")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("list-projects")
def list_projects(tracker: TrackerOpt = None) -> None:
    """List projects visible to the configured account."""
    provider = get_provider(tracker)
    try:
        projects = provider.list_projects()
    except JctxError as exc:
        _fail(exc, "Failed to fetch projects")

    table = Table(title="Projects")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("ID", style="dim")
    for project in projects:
        table.add_row(project.key, project.name, project.id)
    rprint(table)


@app.command("list-issues")
def list_issues(tracker: TrackerOpt = None) -> None:
    """List unresolved issues assigned to me."""
    provider = get_provider(tracker)
    try:
        projects = provider.list_projects()
        if not projects:
            rprint("[yellow]No Jira projects found. You need to create a project first.[/yellow]")
            rprint(f"  {provider.base_url}/jira/projects/create")
            return
        issues = provider.search_assigned_issues()
    except AuthOrNetworkError as exc:
        if exc.status_code == 410:
            rprint(f"[yellow]{remediation_hint(exc)}[/yellow]")
            rprint(f"  {provider.base_url}/jira/projects")
            raise typer.Exit(1)
        _fail(exc, "Failed to fetch Jira issues")
    except JctxError as exc:
        _fail(exc, "Failed to fetch Jira issues")

    if not issues:
        rprint(
            f"Found {len(projects)} project(s) but no issues assigned to you. Create some issues to get started."
        )
        rprint(f"  {provider.base_url}/jira/software/projects")
        return

    get_store().set(ISSUE_CACHE, [issue.model_dump() for issue in issues])

    table = Table(title="My Issues")
    table.add_column("Key", style="cyan")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Title")
    for issue in issues:
        table.add_row(issue.key, issue.status, issue.priority, issue.title)
    rprint(table)


@app.command("get-issue")
def get_issue(issue_key: IssueArg, tracker: TrackerOpt = None) -> None:
    """Show full details for an issue."""
    provider = get_provider(tracker)
    try:
        issue = provider.fetch_issue_detail(issue_key)
    except JctxError as exc:
        _fail(exc)

    table = Table(title=f"{issue.key}: {issue.title}")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Status", issue.status)
    table.add_row("Priority", issue.priority)
    table.add_row("Type", issue.issue_type)
    table.add_row("Assignee", issue.assignee)
    table.add_row("Reporter", issue.reporter)
    table.add_row("Labels", ", ".join(issue.labels) if issue.labels else "none")
    table.add_row("Comments", str(issue.comment_total))
    table.add_row("Attachments", ", ".join(a.descriptor.filename for a in issue.attachments) or "none")
    table.add_row("URL", issue.url or "none")
    table.add_row("Description", escape(issue.description) or "_No description provided._")

    rprint(table)


@app.command("context")
def context_cmd(issue_key: IssueArg, tracker: TrackerOpt = None, output: OutputOpt = None) -> None:
    """Render a self-contained markdown context (text attachments inlined)."""
    workflow = Workflow(get_provider(tracker), _sink(output), get_store())
    try:
        document = workflow.context_for(issue_key)
    except JctxError as exc:
        _fail(exc)
    try:
        workflow.sink.deliver(document.text, [])
    except OSError as exc:
        rprint(f"[red]Error: could not write context: {escape(str(exc))}[/red]")
        raise typer.Exit(1)


@app.command("branch")
def branch_cmd(issue_key: IssueArg, tracker: TrackerOpt = None) -> None:
    """Print the branch name for the issue (no trailing newline)."""
    provider = get_provider(tracker)
    plan = make_branch_plan(issue_key, provider.classify_issue_type(issue_key))
    # No trailing newline, for shell substitution: $(jctx branch PROJ-12)
    typer.echo(plan.branch_name, nl=False)


@app.command("start-work")
def start_work(directory: DirectoryArg, issue_key: IssueArg, tracker: TrackerOpt = None, output: OutputOpt = None) -> None:
    """Move the issue to In Progress, prepare its branch and emit the assistant prompt."""
    workflow = Workflow(get_provider(tracker), _sink(output), get_store(), progress=_progress)
    try:
        report = workflow.start_work(directory, issue_key)
    except JctxError as exc:
        _fail(exc)
    _print_report(report)


@app.command("create-unit-tests")
def create_unit_tests(
    directory: DirectoryArg, issue_key: IssueArg, output: OutputOpt = None
) -> None:
    """Stage all changes and emit a unit-test prompt for the changeset."""
    workflow = Workflow(None, _sink(output), get_store(), progress=_progress)
    try:
        report = workflow.create_unit_tests(directory, issue_key)
    except JctxError as exc:
        _fail(exc)
    _print_report(report)


@app.command("resume")
def resume(output: OutputOpt = None) -> None:
    """Deliver a prompt saved by an earlier failed hand-off."""
    workflow = Workflow(None, _sink(output), get_store())
    result = workflow.resume_pending()
    if result is None:
        rprint("[dim]Nothing pending.[/dim]")
        return
    _print_steps([result])


@app.command("set-default")
def set_default(
    tracker: Annotated[str, typer.Argument(help="Profile name to set as default")],
) -> None:
    """Set the default tracker profile in ~/.config/jctx/config.toml."""
    if not CONFIG_PATH.exists():
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        doc = tomlkit.document()
        doc.add("default_tracker", tracker)
        CONFIG_PATH.write_text(tomlkit.dumps(doc))
        rprint(f'[green]✓[/green] Default tracker set to "{tracker}" in {CONFIG_PATH}')
        return

    doc = tomlkit.load(CONFIG_PATH.open())
    profiles = _list_profiles(doc)
    if tracker not in profiles:
        rprint(f"[red]Profile '{tracker}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}[/red]")
        raise typer.Exit(1)

    doc["default_tracker"] = tracker
    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    rprint(f'[green]✓[/green] Default tracker set to "{tracker}" in {CONFIG_PATH}')


@app.command("config-show")
def config_show(tracker: TrackerOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    try:
        settings = get_settings(tracker=tracker)
    except (SystemExit, typer.Exit):
        return

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    def plain(val: str | None) -> str:
        return val or "[dim](not set)[/dim]"

    table = Table(title="jctx Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("deployment", settings.deployment)
    table.add_row("default_tracker", plain(settings.default_tracker))
    table.add_row("url", plain(settings.url))
    if settings.deployment == "cloud":
        table.add_row("email", plain(settings.email))
        table.add_row("api_token", mask(settings.api_token.get_secret_value() if settings.api_token else None))
    else:
        table.add_row("username", plain(settings.username))
        table.add_row("password", mask(settings.password.get_secret_value() if settings.password else None))

    rprint(table)


@app.command("init")
def init_cmd() -> None:
    """Interactive first-time setup wizard."""
    rprint("[bold]jctx Setup Wizard[/bold]")
    rprint("")

    # Step 1: deployment
    deployment = typer.prompt("Jira deployment? [cloud/datacenter]", default="cloud").strip().lower()
    if deployment not in ("cloud", "datacenter"):
        rprint("[red]Invalid deployment. Choose 'cloud' or 'datacenter'.[/red]")
        raise typer.Exit(1)

    # Step 2: profile name
    profile_name = typer.prompt("Profile name (e.g. work, client)").strip()
    if not profile_name:
        rprint("[red]Profile name cannot be empty.[/red]")
        raise typer.Exit(1)

    # Step 3: URL
    example = "https://your-domain.atlassian.net" if deployment == "cloud" else "https://jira.your-company.com"
    url = typer.prompt(f"Jira URL (e.g. {example})").strip().rstrip("/")
    if not url.startswith(("http://", "https://")):
        rprint("[red]URL must start with http:// or https://[/red]")
        raise typer.Exit(1)

    profile_config: dict = {"deployment": deployment, "url": url}

    # Step 4: credentials
    if deployment == "cloud":
        profile_config["email"] = typer.prompt("Jira email").strip()
        rprint("Create an API token at: https://id.atlassian.com/manage-profile/security/api-tokens")
        profile_config["api_token"] = typer.prompt("Paste API token", hide_input=True).strip()
    else:
        profile_config["username"] = typer.prompt("Jira username").strip()
        profile_config["password"] = typer.prompt("Jira password", hide_input=True).strip()

    # Offer to verify by listing projects
    if typer.confirm("Fetch projects to confirm the credentials work?", default=True):
        try:
            settings = JctxSettings(**profile_config)
            projects = JiraProvider(settings.credentials()).list_projects()
            rprint(f"[green]✓[/green] Connected. Found {len(projects)} project(s).")
        except (JctxError, ValueError) as exc:
            rprint(f"[yellow]Warning:[/yellow] Could not fetch projects: {escape(str(exc))}")

    # Step 5: set as default?
    set_as_default = typer.confirm(f"Set '{profile_name}' as default tracker?", default=True)

    # Step 6: write config (round-trip preserves any existing comments)
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    doc = tomlkit.load(CONFIG_PATH.open()) if CONFIG_PATH.exists() else tomlkit.document()

    doc[profile_name] = profile_config
    if set_as_default:
        doc["default_tracker"] = profile_name

    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    rprint(f"[green]✓[/green] Profile '{profile_name}' written to {CONFIG_PATH}")

    rprint("")
    config_show(tracker=profile_name)
