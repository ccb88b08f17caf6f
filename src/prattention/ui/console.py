"""Rich-powered console output for prattention."""

from __future__ import annotations

from rich.console import Console as RichConsole
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from prattention.diffstat import FileDiff
from prattention.turns.models import PRTurn, TurnMode, current_turn


class Console:
    """Terminal output for prattention using Rich."""

    def __init__(self) -> None:
        self.console = RichConsole()

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def markdown(self, text: str) -> None:
        """Render markdown text."""
        self.console.print(Markdown(text))

    def show_owners(
        self,
        owners: dict[str, list[str]],
        high_risk: set[str] | None = None,
        groups: dict[str, list[str]] | None = None,
    ) -> None:
        """Display the owners of each path in a table."""
        high_risk = high_risk or set()
        table = Table(title="Code Owners", border_style="cyan")
        table.add_column("Path", style="bold")
        table.add_column("Owners", style="cyan")

        for path, path_owners in owners.items():
            label = f"{path} [red](high risk)[/red]" if path in high_risk else path
            table.add_row(label, ", ".join(path_owners) or "[dim](none)[/dim]")

        if groups:
            table.add_section()
            for name, members in sorted(groups.items()):
                table.add_row(f"[dim]{name}[/dim]", f"[dim]{', '.join(members)}[/dim]")

        self.console.print(table)

    def show_changes(self, file_diffs: list[FileDiff], owners: dict[str, list[str]]) -> None:
        """Display a diffstat with the owners of each file."""
        table = Table(title="Changed Files", border_style="cyan")
        table.add_column("Path", style="bold")
        table.add_column("Status")
        table.add_column("+/-", justify="right")
        table.add_column("Owners", style="cyan")

        for fd in file_diffs:
            path = f"{fd.old_path} → {fd.path}" if fd.old_path else fd.path
            path_owners = sorted(set(owners.get(fd.path, []) + owners.get(fd.old_path or "", [])))
            table.add_row(
                path,
                fd.status,
                f"[green]+{fd.added_lines}[/green] [red]-{fd.deleted_lines}[/red]",
                ", ".join(path_owners) or "[dim](none)[/dim]",
            )

        self.console.print(table)

    def show_turn(self, pr: str, turn: PRTurn) -> None:
        """Display the attention state of a PR."""
        mode = turn.mode
        color = {TurnMode.NORMAL: "green", TurnMode.PINNED: "yellow", TurnMode.FROZEN: "red"}[mode]

        lines = [
            f"[bold]Author:[/bold] {turn.author}",
            f"[bold]Mode:[/bold] [{color}]{mode.value}[/{color}]",
        ]
        if turn.frozen:
            lines.append(f"[bold]Frozen by:[/bold] {turn.frozen_by or '?'} at {turn.frozen_at or '?'}")
        lines.append(f"[bold]Current turn:[/bold] {', '.join(current_turn(turn))}")

        self.console.print(Panel("\n".join(lines), title=f"[bold]{pr}[/bold]", border_style=color))

        if turn.reviewers:
            table = Table(border_style="dim")
            table.add_column("Reviewer", style="bold")
            table.add_column("Their turn?", justify="center")
            for email, is_turn in sorted(turn.reviewers.items()):
                table.add_row(email, "[green]yes[/green]" if is_turn else "[dim]no[/dim]")
            self.console.print(table)
