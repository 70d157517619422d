"""Types for the email-to-task pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class PriorityLevel(str, Enum):
    """Task priority tier, assigned by keyword precedence."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        return PRIORITY_WEIGHT[self]


class PriorityFilter(str, Enum):
    """Secondary task filter selectable in the UI."""

    ALL = "all"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ── Priority presentation ──────────────────────────────────────────────────────

PRIORITY_WEIGHT: dict[PriorityLevel, int] = {
    PriorityLevel.HIGH: 3,
    PriorityLevel.MEDIUM: 2,
    PriorityLevel.LOW: 1,
}

PRIORITY_LABEL: dict[PriorityLevel, str] = {
    PriorityLevel.HIGH: "高",
    PriorityLevel.MEDIUM: "中",
    PriorityLevel.LOW: "低",
}

#: rich style used by renderers for each tier.
PRIORITY_STYLE: dict[PriorityLevel, str] = {
    PriorityLevel.HIGH: "bold red",
    PriorityLevel.MEDIUM: "yellow",
    PriorityLevel.LOW: "green",
}


# ── Records ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PriorityInfo:
    level: PriorityLevel
    label: str
    display_hint: str

    @classmethod
    def for_level(cls, level: PriorityLevel) -> PriorityInfo:
        return cls(
            level=level,
            label=PRIORITY_LABEL[level],
            display_hint=PRIORITY_STYLE[level],
        )


@dataclass(frozen=True)
class Email:
    """A normalised inbox message.

    Produced by normalize_message() and consumed by:
      - classify()          (task derivation)
      - filter_by_query()   (search)
      - InboxStore          (view state)
    """

    id: str
    subject: str
    sender: str    # display name, address dropped when present
    date: str      # formatted local date-time or placeholder
    snippet: str


@dataclass(frozen=True)
class Task(Email):
    """An Email that looks like an actionable request.

    ``extracted_at`` is excluded from equality so that classifying the same
    emails twice yields equal task lists.
    """

    priority: PriorityInfo = field(
        default_factory=lambda: PriorityInfo.for_level(PriorityLevel.LOW)
    )
    extracted_at: datetime | None = field(default=None, compare=False)

    @classmethod
    def from_email(
        cls, email: Email, level: PriorityLevel, extracted_at: datetime
    ) -> Task:
        return cls(
            id=email.id,
            subject=email.subject,
            sender=email.sender,
            date=email.date,
            snippet=email.snippet,
            priority=PriorityInfo.for_level(level),
            extracted_at=extracted_at,
        )
