"""Email normaliser — raw provider message → canonical Email record."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime, tzinfo
from email.utils import parsedate_to_datetime

from inbox_tasks.mcp.types import MessageHeader, RawMessage
from inbox_tasks.processing.types import Email

logger = logging.getLogger(__name__)

NO_SUBJECT = "件名なし"
UNKNOWN_SENDER = "送信者不明"
UNKNOWN_DATE = "日時不明"
NO_PREVIEW = "プレビューなし"

# "Name <addr>"; the name part may be empty or quoted.
_NAME_ADDR_RE = re.compile(r"^\s*(.*?)\s*<[^<>]*>\s*$", re.DOTALL)
_QUOTES = "\"'"

# Fallback layouts tried after RFC 2822 and ISO-8601.
_DATE_FORMATS = ("%Y/%m/%d %H:%M:%S", "%Y/%m/%d %H:%M", "%Y/%m/%d")


def get_header(headers: Iterable[MessageHeader], name: str) -> str | None:
    """Case-insensitive header lookup.

    Only the first header with a matching name counts; an empty value there
    is reported as missing even when a later duplicate has one.
    """
    wanted = name.lower()
    for header in headers:
        if header.name.lower() == wanted:
            return header.value or None
    return None


def extract_display_name(raw_from: str) -> str:
    """Return the display name of a ``"Name <addr>"`` header.

    Falls back to the raw value when the header has no bracketed address or
    when the name part is empty once quotes are trimmed.
    """
    match = _NAME_ADDR_RE.match(raw_from)
    if not match:
        return raw_from
    name = match.group(1).strip().strip(_QUOTES).strip()
    return name or raw_from


def _parse_date(raw: str) -> datetime | None:
    value = raw.strip()
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def format_date(raw: str | None, tz: tzinfo | None = None) -> str:
    """Format a Date header as ``YYYY/M/D H:MM:SS`` in local time.

    Timezone-aware values are converted to ``tz`` (the local zone when
    omitted); naive values are taken as already local. Never raises.
    """
    if not raw:
        return UNKNOWN_DATE
    dt = _parse_date(raw)
    if dt is None:
        logger.debug("Unparseable Date header %r", raw)
        return UNKNOWN_DATE
    try:
        if dt.tzinfo is not None:
            dt = dt.astimezone(tz)
    except (OverflowError, ValueError):
        # Shifting a date at the edge of the datetime range leaves the range.
        logger.debug("Date header %r out of range after zone conversion", raw)
        return UNKNOWN_DATE
    return f"{dt.year}/{dt.month}/{dt.day} {dt.hour}:{dt.minute:02d}:{dt.second:02d}"


def normalize_message(message: RawMessage, tz: tzinfo | None = None) -> Email:
    """Convert one raw message into an Email. Pure; never raises on bad headers."""
    subject = get_header(message.headers, "Subject")
    raw_from = get_header(message.headers, "From")
    return Email(
        id=message.id,
        subject=subject or NO_SUBJECT,
        sender=extract_display_name(raw_from) if raw_from else UNKNOWN_SENDER,
        date=format_date(get_header(message.headers, "Date"), tz),
        snippet=message.snippet or NO_PREVIEW,
    )


def normalize_batch(
    messages: Iterable[RawMessage | None], tz: tzinfo | None = None
) -> list[Email]:
    """Normalise a fetched batch, keeping input order.

    ``None`` entries stand for failed detail fetches and are skipped. A message
    that still fails to normalise is logged and dropped rather than aborting
    the batch.
    """
    emails: list[Email] = []
    for message in messages:
        if message is None:
            continue
        try:
            emails.append(normalize_message(message, tz))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Dropping message %s: %s", message.id, exc, exc_info=True)
    return emails
