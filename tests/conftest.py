"""Shared pytest fixtures."""

import pytest

from inbox_tasks.mcp.types import MessageHeader, RawMessage
from inbox_tasks.processing.types import Email


@pytest.fixture
def sample_raw_message() -> RawMessage:
    """A minimal raw message with the three consumed headers."""
    return RawMessage(
        id="msg_001",
        headers=[
            MessageHeader("Subject", "会議の件"),
            MessageHeader("From", "Yamada Taro <yamada@example.com>"),
            MessageHeader("Date", "2024/06/12 14:30:00"),
        ],
        snippet="明日の会議について確認してください",
    )


@pytest.fixture
def sample_emails() -> list[Email]:
    """A small inbox: two tasks of different priority and one plain notice."""
    return [
        Email(
            id="notice",
            subject="システムメンテナンスのお知らせ",
            sender="admin@example.com",
            date="2024/6/12 10:00:00",
            snippet="システムメンテナンスを実施いたします。",
        ),
        Email(
            id="meeting",
            subject="会議の件",
            sender="Tanaka Ken",
            date="2024/6/12 13:15:00",
            snippet="明日の会議について確認してください",
        ),
        Email(
            id="urgent",
            subject="至急対応",
            sender="Suzuki Ichiro",
            date="2024/6/12 9:45:00",
            snippet="至急ご確認ください",
        ),
    ]
