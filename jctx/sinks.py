"""Where a finished prompt goes."""

from abc import ABC, abstractmethod
from pathlib import Path

import typer
from rich import print as rprint
from rich.markup import escape


class ChatSink(ABC):
    @abstractmethod
    def deliver(self, text: str, attachment_paths: list[str]) -> None: ...


class ConsoleSink(ChatSink):
    """Print the prompt so it can be piped or pasted into the assistant."""

    def deliver(self, text: str, attachment_paths: list[str]) -> None:
        # raw, no rich wrapping: diffs must come out byte for byte
        typer.echo(text)
        if attachment_paths:
            rprint("")
            rprint(f"[dim]Attachments ({len(attachment_paths)}):[/dim]")
            for path in attachment_paths:
                rprint(f"[dim]  {escape(path)}[/dim]")


class FileSink(ChatSink):
    """Write the prompt to a file (TASK.md style) for an agent to pick up."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def deliver(self, text: str, attachment_paths: list[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text)
        rprint(f"[green]✓[/green] Wrote context to {self.path}")
        for path in attachment_paths:
            rprint(f"  {escape(path)}")
