"""Inbox ingestion — lists the inbox, fetches details concurrently, feeds the store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from inbox_tasks.config import InboxConfig
from inbox_tasks.mcp.types import MessageSummary, RawMessage
from inbox_tasks.processing.normalizer import normalize_batch
from inbox_tasks.state.store import InboxStore, InboxView

logger = logging.getLogger(__name__)


# ── Mail source interface ──────────────────────────────────────────────────────


@runtime_checkable
class MailSource(Protocol):
    """Interface for anything that can list and fetch inbox messages."""

    async def list_inbox(
        self, query: str = "in:inbox", max_results: int = 10
    ) -> list[MessageSummary]:
        """Return the newest message summaries, newest first."""
        ...

    async def get_message(self, message_id: str) -> RawMessage:
        """Return the detail of one message. May raise on failure."""
        ...


@dataclass(frozen=True)
class FetchReport:
    """Outcome of one refresh, for logging and CLI status lines."""

    generation: int
    listed: int
    loaded: int
    failed: int
    stale: bool = False
    error: str | None = None


# ── Loader ─────────────────────────────────────────────────────────────────────


class InboxLoader:
    """Fetches a batch of messages and hands the normalised emails to a store.

    Per-message detail fetches run concurrently (bounded by
    ``config.fetch_concurrency``). A failed fetch drops that message only;
    the batch waits for every fetch to settle before normalising.

    If a newer refresh starts while this one is in flight, this one's result
    is discarded by the store (latest-started wins).

    Usage::

        loader = InboxLoader(InboxConfig.from_env())
        report = await loader.refresh(gmail, store)
    """

    def __init__(self, config: InboxConfig | None = None) -> None:
        self._config = config or InboxConfig()

    async def refresh(self, source: MailSource, store: InboxStore) -> FetchReport:
        """Run one full fetch into ``store``. Never raises for fetch failures."""
        generation = store.begin_fetch()
        try:
            summaries = await source.list_inbox(
                query=self._config.query, max_results=self._config.max_results
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("Listing inbox failed: %s", exc, exc_info=True)
            message = f"Failed to fetch emails: {exc}"
            store.fail_fetch(message, generation)
            return FetchReport(
                generation=generation,
                listed=0,
                loaded=0,
                failed=0,
                stale=store.generation != generation,
                error=message,
            )

        details = await self.fetch_details(source, summaries)
        emails = normalize_batch(details)
        stale = store.generation != generation
        store.load_emails(emails, generation)

        report = FetchReport(
            generation=generation,
            listed=len(summaries),
            loaded=len(emails),
            failed=len(summaries) - len(emails),
            stale=stale,
        )
        logger.info(
            "Fetch %d: listed=%d loaded=%d failed=%d%s",
            generation,
            report.listed,
            report.loaded,
            report.failed,
            " (superseded)" if stale else "",
        )
        return report

    async def fetch_details(
        self, source: MailSource, summaries: list[MessageSummary]
    ) -> list[RawMessage | None]:
        """Fetch all details concurrently; failed entries come back as None.

        The result is in summary order regardless of completion order.
        """
        semaphore = asyncio.Semaphore(self._config.fetch_concurrency)

        async def fetch_one(summary: MessageSummary) -> RawMessage | None:
            async with semaphore:
                try:
                    return await source.get_message(summary.id)
                except Exception as exc:  # noqa: BLE001
                    logger.warning("Skipping message %s: %s", summary.id, exc)
                    return None

        return list(await asyncio.gather(*(fetch_one(s) for s in summaries)))


def sign_out(store: InboxStore) -> InboxView:
    """Drop all mailbox-derived state and reset the filters."""
    logger.info("Signed out — clearing inbox state")
    return store.reset()
