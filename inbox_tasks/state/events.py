"""State-change events accepted by InboxStore.apply()."""

from __future__ import annotations

from dataclasses import dataclass, field

from inbox_tasks.processing.types import Email, PriorityFilter


@dataclass(frozen=True)
class QueryChanged:
    query: str


@dataclass(frozen=True)
class PriorityFilterChanged:
    priority_filter: PriorityFilter


@dataclass(frozen=True)
class ShowCompletedChanged:
    show_completed: bool


@dataclass(frozen=True)
class CompletionToggled:
    task_id: str


@dataclass(frozen=True)
class FetchStarted:
    generation: int


@dataclass(frozen=True)
class EmailsLoaded:
    """A fetch batch settled. Replaces the whole email collection."""

    generation: int
    emails: list[Email] = field(default_factory=list)


@dataclass(frozen=True)
class FetchFailed:
    generation: int
    message: str


@dataclass(frozen=True)
class SignedOut:
    """Clears everything derived from the mailbox and resets the filters."""


Event = (
    QueryChanged
    | PriorityFilterChanged
    | ShowCompletedChanged
    | CompletionToggled
    | FetchStarted
    | EmailsLoaded
    | FetchFailed
    | SignedOut
)
