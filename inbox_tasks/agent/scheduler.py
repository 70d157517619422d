"""APScheduler setup for periodic inbox refreshes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

if TYPE_CHECKING:
    from inbox_tasks.agent.inbox import FetchReport, InboxLoader, MailSource
    from inbox_tasks.state.store import InboxStore

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "inbox-refresh"


def create_refresh_scheduler(
    loader: InboxLoader,
    source: MailSource,
    store: InboxStore,
    interval_seconds: int,
    on_refresh: Callable[[FetchReport], None] | None = None,
) -> AsyncIOScheduler:
    """Return an AsyncIOScheduler that refreshes the inbox every interval.

    ``max_instances=1`` keeps refreshes from overlapping; a tick missed while
    one is still running is coalesced into the next. The caller is responsible
    for calling scheduler.start() and scheduler.shutdown().
    """

    async def refresh() -> None:
        report = await loader.refresh(source, store)
        if on_refresh is not None:
            on_refresh(report)

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        refresh,
        "interval",
        seconds=interval_seconds,
        id=REFRESH_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Inbox refresh scheduled every %ds", interval_seconds)
    return scheduler
