# src/tfdiff/cli/formatter.py
from typing import Iterable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tfdiff.core.differ import ChangeType

# Diagnostics console; stdout is reserved for the targeting line
console = Console(stderr=True)

_STYLES = {
    ChangeType.ADDED: ("green", "+"),
    ChangeType.REMOVED: ("red", "-"),
    ChangeType.MODIFIED: ("yellow", "~"),
}


class TargetFormatter:
    """
    TargetFormatter: turns a changed-name set into the argument string handed
    to the provisioning tool, and renders the optional human-readable report.
    """

    def __init__(self, target_flag: str = "-target", noop_flag: str = "-refresh=false",
                 console: Console = console):
        self.target_flag = target_flag
        self.noop_flag = noop_flag
        self.console = console

    def render(self, names: Iterable[str]) -> str:
        """
        Empty set -> the no-op flag. Otherwise one `<flag> <name> ` pair per
        name in lexical order, each followed by a space.
        """
        ordered = sorted(set(names))
        if not ordered:
            return self.noop_flag
        return "".join(f"{self.target_flag} {name} " for name in ordered)

    def print_report(self, report):
        """Builds the change table shown with --report."""
        table = Table(title="tfdiff Change Report", show_header=True, header_style="bold magenta")
        table.add_column("Declaration", style="cyan")
        table.add_column("Change")
        table.add_column("", justify="center")

        for name in report.names():
            change = report.changes[name]
            color, icon = _STYLES[change]
            table.add_row(escape(name), f"[{color}]{change.value}[/{color}]", icon)

        if report.changes:
            self.console.print(table)
        else:
            self.console.print("[dim]No declaration changed.[/dim]")

        summary = report.summary()
        self.console.print(Panel(
            f"[bold white]Summary[/bold white]\n"
            f"Base:     {escape(report.base_label)} ({summary['base_declarations']} declarations)\n"
            f"Target:   {escape(report.target_label)} ({summary['target_declarations']} declarations)\n"
            f"Added:    [green]{summary['added']}[/green]\n"
            f"Removed:  [red]{summary['removed']}[/red]\n"
            f"Modified: [yellow]{summary['modified']}[/yellow]",
            border_style="dim",
            expand=False
        ))
