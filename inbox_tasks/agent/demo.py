"""Offline demo mailbox — mock messages for trying the viewer without Gmail."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from inbox_tasks.mcp.types import MessageHeader, MessageSummary, RawMessage


def _message(id: str, subject: str, sender: str, date: str, snippet: str) -> RawMessage:
    return RawMessage(
        id=id,
        headers=[
            MessageHeader("Subject", subject),
            MessageHeader("From", sender),
            MessageHeader("Date", date),
        ],
        snippet=snippet,
    )


DEMO_MESSAGES: list[RawMessage] = [
    _message(
        "1",
        "プロジェクトの進捗について",
        "yamada@example.com",
        "2024/06/12 14:30:00",
        "プロジェクトの進捗についてご報告いたします。",
    ),
    _message(
        "2",
        "会議の件",
        "tanaka@example.com",
        "2024/06/12 13:15:00",
        "明日の会議についてお知らせします。",
    ),
    _message(
        "3",
        "システムメンテナンスのお知らせ",
        "admin@example.com",
        "2024/06/12 10:00:00",
        "システムメンテナンスを実施いたします。",
    ),
    _message(
        "4",
        "至急対応",
        "Suzuki Ichiro <suzuki@example.com>",
        "Wed, 12 Jun 2024 09:45:00 +0900",
        "至急ご確認ください",
    ),
    _message(
        "5",
        "見積書の提出期限について",
        '"佐藤 花子" <sato@example.com>',
        "Tue, 11 Jun 2024 18:20:00 +0900",
        "見積書を今週金曜日までに提出してください。",
    ),
    _message(
        "6",
        "会議の件",
        "Tanaka Ken <tanaka@example.com>",
        "Tue, 11 Jun 2024 11:05:00 +0900",
        "明日の会議について確認してください",
    ),
    _message(
        "7",
        "Quarterly report",
        "Alice Smith <alice@example.com>",
        "Mon, 10 Jun 2024 16:00:00 +0000",
        "Could you review the draft by EOD?",
    ),
]


class DemoMailbox:
    """MailSource serving DEMO_MESSAGES from memory.

    ``latency`` simulates a slow provider per call; ids in ``fail_ids`` raise
    on detail fetch so the partial-batch path can be exercised.
    """

    def __init__(
        self,
        messages: Iterable[RawMessage] | None = None,
        latency: float = 0.0,
        fail_ids: Iterable[str] = (),
    ) -> None:
        self._messages = {m.id: m for m in (DEMO_MESSAGES if messages is None else messages)}
        self._latency = latency
        self._fail_ids = frozenset(fail_ids)

    async def list_inbox(
        self, query: str = "in:inbox", max_results: int = 10
    ) -> list[MessageSummary]:
        await self._sleep()
        return [MessageSummary(id=mid) for mid in list(self._messages)[:max_results]]

    async def get_message(self, message_id: str) -> RawMessage:
        await self._sleep()
        if message_id in self._fail_ids or message_id not in self._messages:
            raise LookupError(f"Message {message_id} unavailable")
        return self._messages[message_id]

    async def _sleep(self) -> None:
        if self._latency > 0:
            await asyncio.sleep(self._latency)
