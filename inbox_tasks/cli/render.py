"""rich rendering of InboxView snapshots for the terminal."""

from __future__ import annotations

from datetime import datetime

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from inbox_tasks.agent.inbox import FetchReport
from inbox_tasks.processing.classifier import matched_keywords
from inbox_tasks.processing.types import PriorityLevel
from inbox_tasks.search.engine import highlight_spans
from inbox_tasks.state.store import FetchStatus, InboxView

HIGHLIGHT_STYLE = "bold black on yellow"


def highlighted(text: str, query: str, style: str = "") -> Text:
    """Return text as a rich Text with every query-token match styled.

    Built from plain strings, so brackets in subjects are never parsed as
    rich markup.
    """
    result = Text(text, style=style)
    for start, end in highlight_spans(text, query):
        result.stylize(HIGHLIGHT_STYLE, start, end)
    return result


def filter_summary(view: InboxView) -> str:
    f = view.filters
    parts = [f"query={f.query!r}" if f.query else "query=(none)"]
    parts.append(f"priority={f.priority_filter.value}")
    parts.append("completed=shown" if f.show_completed else "completed=hidden")
    return "  ".join(parts)


def render_emails(console: Console, view: InboxView) -> None:
    query = view.filters.query
    console.print(
        f"\n[bold]Emails[/bold] ({len(view.visible_emails)} of {len(view.emails)})"
    )

    reason = view.empty_reason
    if reason == "error":
        console.print(f"[red]{escape(view.error or '')}[/red]")
        return
    if reason == "no_emails":
        console.print("[yellow]No emails.[/yellow]")
        return
    if reason == "no_matches":
        console.print(f"[yellow]No emails match {escape(repr(query))}.[/yellow]")
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", max_width=18)
    table.add_column("Subject", max_width=40)
    table.add_column("From", max_width=26)
    table.add_column("Date", width=19)
    table.add_column("Snippet", max_width=60)

    for email in view.visible_emails:
        table.add_row(
            email.id,
            highlighted(email.subject, query),
            highlighted(email.sender, query),
            email.date,
            highlighted(email.snippet, query, style="dim"),
        )
    console.print(table)


def render_tasks(console: Console, view: InboxView, explain: bool = False) -> None:
    query = view.filters.query
    done = sum(1 for t in view.tasks if view.is_completed(t.id))
    console.print(
        f"\n[bold]Tasks[/bold] ({len(view.visible_tasks)} shown, "
        f"{len(view.tasks)} total, {done} done)"
    )

    if not view.tasks:
        console.print("[dim]No tasks detected.[/dim]")
        return
    if not view.visible_tasks:
        console.print("[yellow]No tasks match the current filters.[/yellow]")
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("", width=2)
    table.add_column("Priority", width=8)
    table.add_column("ID", style="dim", max_width=18)
    table.add_column("Subject", max_width=40)
    table.add_column("From", max_width=26)
    table.add_column("Date", width=19)
    if explain:
        table.add_column("Keywords", max_width=30)

    for task in view.visible_tasks:
        completed = view.is_completed(task.id)
        row: list[str | Text] = [
            "✓" if completed else "",
            Text(task.priority.label, style=task.priority.display_hint),
            task.id,
            highlighted(task.subject, query, style="strike dim" if completed else ""),
            highlighted(task.sender, query),
            task.date,
        ]
        if explain:
            row.append(", ".join(matched_keywords(task)))
        table.add_row(*row)
    console.print(table)


def render_view(console: Console, view: InboxView, explain: bool = False) -> None:
    """Print the email table, the task table and the active filters."""
    if view.status == FetchStatus.ERROR and view.emails:
        # A refresh failed but the previous emails are still shown.
        console.print(f"[red]{escape(view.error or '')}[/red]")
    render_emails(console, view)
    render_tasks(console, view, explain=explain)
    console.print(f"[dim]{escape(filter_summary(view))}[/dim]")


def render_summary(console: Console, view: InboxView, report: FetchReport) -> None:
    """One status line per refresh, used by ``watch``."""
    stamp = datetime.now().strftime("%H:%M:%S")
    if report.error:
        console.print(f"[dim]{stamp}[/dim] [red]{escape(report.error)}[/red]")
        return
    if report.stale:
        console.print(f"[dim]{stamp} refresh superseded by a newer one[/dim]")
        return
    counts = {
        level: sum(1 for t in view.tasks if t.priority.level == level)
        for level in PriorityLevel
    }
    failed = f", [yellow]{report.failed} failed[/yellow]" if report.failed else ""
    console.print(
        f"[dim]{stamp}[/dim] {len(view.emails)} email(s), {len(view.tasks)} task(s) "
        f"([bold red]{counts[PriorityLevel.HIGH]} high[/bold red], "
        f"{counts[PriorityLevel.MEDIUM]} medium, {counts[PriorityLevel.LOW]} low){failed}"
    )
