"""Task classifier — keyword heuristic that turns emails into prioritised tasks."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from inbox_tasks.processing.keywords import MEDIUM_KEYWORDS, TASK_KEYWORDS, URGENT_KEYWORDS
from inbox_tasks.processing.types import Email, PriorityLevel, Task

logger = logging.getLogger(__name__)


def task_text(email: Email) -> str:
    """Lowercased ``subject + " " + snippet`` — the text keywords are matched against."""
    return f"{email.subject} {email.snippet}".lower()


def contains_any(text: str, needles: Sequence[str]) -> bool:
    """True if any needle is a substring of text (case-insensitive)."""
    t = text.lower()
    return any(n.lower() in t for n in needles)


def is_task(email: Email) -> bool:
    return contains_any(task_text(email), TASK_KEYWORDS)


def matched_keywords(email: Email) -> list[str]:
    """Task keywords found in the email, in table order. Used for --explain."""
    text = task_text(email)
    return [k for k in TASK_KEYWORDS if k in text]


def determine_priority(text: str) -> PriorityLevel:
    """Assign a tier by keyword precedence: urgent, then deadline, else low."""
    if contains_any(text, URGENT_KEYWORDS):
        return PriorityLevel.HIGH
    if contains_any(text, MEDIUM_KEYWORDS):
        return PriorityLevel.MEDIUM
    return PriorityLevel.LOW


def classify(
    emails: Iterable[Email], *, extracted_at: datetime | None = None
) -> list[Task]:
    """Derive the task list from an email collection.

    Returns a new list sorted by priority weight, highest first. ``sorted`` is
    stable, so tasks of equal weight keep their input order.
    """
    stamp = extracted_at or datetime.now(timezone.utc)
    tasks = [
        Task.from_email(email, determine_priority(task_text(email)), stamp)
        for email in emails
        if is_task(email)
    ]
    tasks = sorted(tasks, key=lambda t: t.priority.level.weight, reverse=True)
    logger.debug("Classified %d task(s)", len(tasks))
    return tasks
