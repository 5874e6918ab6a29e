"""Operator-facing output on stderr (failures and the run summary)."""

from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .errors import ProvisionError

stderr_console = Console(stderr=True, highlight=False)


def print_failure(err: ProvisionError, console: Optional[Console] = None) -> None:
    console = console or stderr_console
    console.print(Panel(Text(str(err), style="bold red"), title=type(err).__name__, border_style="red"))
    if err.remediation:
        console.print(err.remediation, markup=False, highlight=False, soft_wrap=True)


def print_summary(state: Dict[str, Any], console: Optional[Console] = None) -> None:
    console = console or stderr_console
    exe = state.get("execution") or {}
    summary = exe.get("summary") or {}

    title = "Provisioning summary (dry run)" if summary.get("dry_run") else "Provisioning summary"
    table = Table(title=title)
    table.add_column("Step")
    table.add_column("Result")
    for step_id in summary.get("ran_steps") or []:
        table.add_row(step_id, "[green]ran[/]")
    for step_id in summary.get("skipped_steps") or []:
        table.add_row(step_id, "[yellow]skipped (completed earlier, --resume)[/]")
    console.print(table)

    for w in exe.get("warnings") or []:
        console.print(Text.assemble(("warning: ", "yellow"), str(w)))
