"""CLI command implementations — every state change goes through InboxStore."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import signal
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import click
from rich.console import Console
from rich.markup import escape

from inbox_tasks.agent.demo import DemoMailbox
from inbox_tasks.agent.inbox import FetchReport, InboxLoader, MailSource, sign_out
from inbox_tasks.agent.scheduler import create_refresh_scheduler
from inbox_tasks.cli.render import render_summary, render_view
from inbox_tasks.config import InboxConfig
from inbox_tasks.mcp.gmail_client import gmail_client
from inbox_tasks.processing.types import PriorityFilter
from inbox_tasks.state.store import FetchStatus, InboxStore, InboxView

logger = logging.getLogger(__name__)
console = Console(width=200)

PRIORITY_CHOICES = [p.value for p in PriorityFilter]

BROWSE_HELP = """\
  <text>          search (same as /q <text>)
  /q [text]       set or clear the search query
  /p <level>      priority filter: all, high, medium, low
  /c              toggle showing completed tasks
  /done <id>      mark / unmark a task as done
  /refresh        fetch the inbox again
  /signout        clear everything and reset filters
  /quit           leave"""


@asynccontextmanager
async def open_source(config: InboxConfig, demo: bool) -> AsyncIterator[MailSource]:
    """Yield the demo mailbox or a connected Gmail MCP client."""
    if demo:
        yield DemoMailbox()
        return
    async with gmail_client(user_email=config.user_email or None) as gmail:
        yield gmail


def _with_limit(config: InboxConfig, limit: int | None) -> InboxConfig:
    return dataclasses.replace(config, max_results=limit) if limit else config


# ── inbox-tasks show ───────────────────────────────────────────────────────────


@click.command()
@click.option("--query", "-q", default="", help="Search tokens (all must match).")
@click.option(
    "--priority",
    type=click.Choice(PRIORITY_CHOICES),
    default="all",
    show_default=True,
    help="Only show tasks of this priority.",
)
@click.option("--hide-completed", is_flag=True, help="Hide tasks marked done.")
@click.option("--done", "done_ids", multiple=True, help="Task id to mark done (repeatable).")
@click.option("--limit", type=int, default=None, help="Messages to fetch.")
@click.option("--demo", is_flag=True, help="Use built-in mock messages instead of Gmail.")
@click.option("--explain", is_flag=True, help="Show the keywords that made each task.")
@click.pass_obj
def show(
    config: InboxConfig,
    query: str,
    priority: str,
    hide_completed: bool,
    done_ids: tuple[str, ...],
    limit: int | None,
    demo: bool,
    explain: bool,
) -> None:
    """Fetch the inbox once and print emails and detected tasks."""
    store = InboxStore()
    try:
        report = asyncio.run(_fetch_once(_with_limit(config, limit), store, demo))
    except Exception as exc:  # noqa: BLE001
        logger.error("Could not open mail source: %s", exc, exc_info=True)
        console.print(f"[red]Could not connect to Gmail: {escape(str(exc))}[/red]")
        raise SystemExit(1)

    for task_id in dict.fromkeys(done_ids):
        store.toggle_completion(task_id)
    store.set_priority_filter(priority)
    store.set_show_completed(not hide_completed)
    view = store.set_query(query)

    render_view(console, view, explain=explain)
    if report.error:
        raise SystemExit(1)


async def _fetch_once(config: InboxConfig, store: InboxStore, demo: bool) -> FetchReport:
    loader = InboxLoader(config)
    async with open_source(config, demo) as source:
        return await loader.refresh(source, store)


# ── inbox-tasks browse ─────────────────────────────────────────────────────────


@click.command()
@click.option("--limit", type=int, default=None, help="Messages to fetch.")
@click.option("--demo", is_flag=True, help="Use built-in mock messages instead of Gmail.")
@click.option("--explain", is_flag=True, help="Show the keywords that made each task.")
@click.pass_obj
def browse(config: InboxConfig, limit: int | None, demo: bool, explain: bool) -> None:
    """Interactive session: search, filter and tick off tasks."""
    try:
        asyncio.run(_browse_async(_with_limit(config, limit), demo, explain))
    except click.Abort:
        console.print()
    except Exception as exc:  # noqa: BLE001
        logger.error("Browse session failed: %s", exc, exc_info=True)
        console.print(f"[red]Could not connect to Gmail: {escape(str(exc))}[/red]")
        raise SystemExit(1)


async def _browse_async(config: InboxConfig, demo: bool, explain: bool) -> None:
    store = InboxStore()
    loader = InboxLoader(config)

    def on_view(view: InboxView) -> None:
        # Skip the intermediate "loading" snapshot; the loaded one follows.
        if view.status != FetchStatus.LOADING:
            render_view(console, view, explain=explain)

    async with open_source(config, demo) as source:
        await loader.refresh(source, store)
        render_view(console, store.view, explain=explain)
        store.subscribe(on_view)
        console.print("[dim]Type /help for commands.[/dim]")

        while True:
            line = click.prompt("inbox", default="", show_default=False, prompt_suffix="> ")
            action = handle_command(store, line)
            if action == "quit":
                break
            if action == "refresh":
                await loader.refresh(source, store)


def handle_command(store: InboxStore, line: str) -> str | None:
    """Apply one browse command to the store.

    Returns ``"quit"`` or ``"refresh"`` for the caller to act on, else None.
    """
    line = line.strip()
    if not line:
        return None
    if not line.startswith("/"):
        store.set_query(line)
        return None

    command, _, arg = line.partition(" ")
    arg = arg.strip()
    if command in ("/quit", "/exit"):
        return "quit"
    if command == "/refresh":
        return "refresh"
    if command == "/help":
        console.print(BROWSE_HELP, markup=False)
    elif command == "/q":
        store.set_query(arg)
    elif command == "/p":
        try:
            store.set_priority_filter(arg or "all")
        except ValueError:
            console.print(f"[red]Unknown priority {escape(repr(arg))}; use {', '.join(PRIORITY_CHOICES)}[/red]")
    elif command == "/c":
        store.set_show_completed(not store.view.filters.show_completed)
    elif command == "/done":
        if arg in {t.id for t in store.view.tasks}:
            store.toggle_completion(arg)
        else:
            console.print(f"[yellow]No task with id {escape(repr(arg))}.[/yellow]")
    elif command == "/signout":
        sign_out(store)
    else:
        console.print(f"[yellow]Unknown command {escape(command)}. Type /help.[/yellow]")
    return None


# ── inbox-tasks watch ──────────────────────────────────────────────────────────


@click.command()
@click.option("--interval", type=int, default=None, help="Seconds between refreshes.")
@click.option("--limit", type=int, default=None, help="Messages to fetch.")
@click.option("--demo", is_flag=True, help="Use built-in mock messages instead of Gmail.")
@click.pass_obj
def watch(config: InboxConfig, interval: int | None, limit: int | None, demo: bool) -> None:
    """Refresh periodically and print a task summary after each refresh."""
    try:
        asyncio.run(_watch_async(_with_limit(config, limit), interval or config.refresh_seconds, demo))
    except KeyboardInterrupt:
        logger.info("Interrupted — goodbye")
    except Exception as exc:  # noqa: BLE001
        logger.error("Watch failed: %s", exc, exc_info=True)
        console.print(f"[red]Could not connect to Gmail: {escape(str(exc))}[/red]")
        raise SystemExit(1)


async def _watch_async(config: InboxConfig, interval: int, demo: bool) -> None:
    store = InboxStore()
    loader = InboxLoader(config)
    stop = asyncio.Event()

    async with open_source(config, demo) as source:
        report = await loader.refresh(source, store)
        render_summary(console, store.view, report)

        scheduler = create_refresh_scheduler(
            loader,
            source,
            store,
            interval,
            on_refresh=lambda r: render_summary(console, store.view, r),
        )
        scheduler.start()

        loop = asyncio.get_running_loop()
        try:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, AttributeError):
            pass

        try:
            await stop.wait()
        finally:
            scheduler.shutdown(wait=False)
