"""InboxStore — single owner of the inbox view state.

Every mutation goes through apply(event), which updates the owned state,
recomputes a complete InboxView snapshot and only then notifies subscribers.
The recompute functions below are pure and usable on their own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum

from inbox_tasks.processing.classifier import classify
from inbox_tasks.processing.types import Email, PriorityFilter, Task
from inbox_tasks.search.engine import filter_by_query
from inbox_tasks.state.events import (
    CompletionToggled,
    EmailsLoaded,
    Event,
    FetchFailed,
    FetchStarted,
    PriorityFilterChanged,
    QueryChanged,
    ShowCompletedChanged,
    SignedOut,
)

logger = logging.getLogger(__name__)


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class FilterState:
    query: str = ""
    priority_filter: PriorityFilter = PriorityFilter.ALL
    show_completed: bool = True


@dataclass(frozen=True)
class InboxView:
    """Immutable snapshot handed to renderers after each state change."""

    emails: tuple[Email, ...] = ()
    tasks: tuple[Task, ...] = ()
    visible_emails: tuple[Email, ...] = ()
    visible_tasks: tuple[Task, ...] = ()
    filters: FilterState = FilterState()
    completed: frozenset[str] = frozenset()
    status: FetchStatus = FetchStatus.IDLE
    error: str | None = None

    def is_completed(self, task_id: str) -> bool:
        return task_id in self.completed

    @property
    def empty_reason(self) -> str | None:
        """Why there is nothing to show, or None when emails are visible.

        ``"error"`` is a failed fetch; ``"no_emails"`` an empty mailbox;
        ``"no_matches"`` a query that filtered every email out.
        """
        if self.status == FetchStatus.ERROR and not self.emails:
            return "error"
        if not self.emails:
            return "no_emails"
        if not self.visible_emails:
            return "no_matches"
        return None


Listener = Callable[[InboxView], None]


# ── Pure recomputation ─────────────────────────────────────────────────────────


def secondary_filter(
    tasks: Iterable[Task],
    priority_filter: PriorityFilter,
    show_completed: bool,
    completed: frozenset[str],
) -> list[Task]:
    """Apply the priority filter and hide completed tasks when requested."""
    result = []
    for task in tasks:
        if priority_filter != PriorityFilter.ALL and task.priority.level.value != priority_filter.value:
            continue
        if not show_completed and task.id in completed:
            continue
        result.append(task)
    return result


def build_view(
    emails: Sequence[Email],
    tasks: Sequence[Task],
    filters: FilterState,
    completed: frozenset[str],
    status: FetchStatus = FetchStatus.IDLE,
    error: str | None = None,
) -> InboxView:
    visible_tasks = secondary_filter(
        filter_by_query(tasks, filters.query),
        filters.priority_filter,
        filters.show_completed,
        completed,
    )
    return InboxView(
        emails=tuple(emails),
        tasks=tuple(tasks),
        visible_emails=tuple(filter_by_query(emails, filters.query)),
        visible_tasks=tuple(visible_tasks),
        filters=filters,
        completed=completed,
        status=status,
        error=error,
    )


# ── Store ──────────────────────────────────────────────────────────────────────


class InboxStore:
    """Owns emails, tasks, the completion set, filters and fetch status.

    Usage::

        store = InboxStore()
        store.subscribe(render)
        store.load_emails(emails)
        store.set_query("会議 明日")
        store.toggle_completion("msg_1")
    """

    def __init__(
        self, classifier: Callable[[list[Email]], list[Task]] = classify
    ) -> None:
        self._classifier = classifier
        self._emails: tuple[Email, ...] = ()
        self._tasks: tuple[Task, ...] = ()
        self._filters = FilterState()
        self._completed: frozenset[str] = frozenset()
        self._status = FetchStatus.IDLE
        self._error: str | None = None
        self._generation = 0
        self._listeners: list[Listener] = []
        self._view = self._recompute()

    @property
    def view(self) -> InboxView:
        return self._view

    @property
    def generation(self) -> int:
        """Generation of the most recently started fetch."""
        return self._generation

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for new snapshots. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Mutation funnel ────────────────────────────────────────────────────────

    def apply(self, event: Event) -> InboxView:
        """Apply one event, recompute the view, notify listeners, return the view.

        Fetch results from a superseded generation are ignored and leave the
        view untouched.
        """
        if isinstance(event, QueryChanged):
            self._filters = replace(self._filters, query=event.query)
        elif isinstance(event, PriorityFilterChanged):
            self._filters = replace(self._filters, priority_filter=event.priority_filter)
        elif isinstance(event, ShowCompletedChanged):
            self._filters = replace(self._filters, show_completed=event.show_completed)
        elif isinstance(event, CompletionToggled):
            self._completed = self._completed ^ {event.task_id}
        elif isinstance(event, FetchStarted):
            if event.generation <= self._generation:
                return self._ignore_stale(event)
            self._generation = event.generation
            self._status = FetchStatus.LOADING
            self._error = None
        elif isinstance(event, EmailsLoaded):
            if event.generation != self._generation:
                return self._ignore_stale(event)
            emails = tuple(event.emails)
            tasks = tuple(self._classifier(list(emails)))
            self._emails, self._tasks = emails, tasks
            self._status = FetchStatus.LOADED
            self._error = None
        elif isinstance(event, FetchFailed):
            if event.generation != self._generation:
                return self._ignore_stale(event)
            self._status = FetchStatus.ERROR
            self._error = event.message
        elif isinstance(event, SignedOut):
            self._emails = ()
            self._tasks = ()
            self._completed = frozenset()
            self._filters = FilterState()
            self._status = FetchStatus.IDLE
            self._error = None
            # Results of fetches started before sign-out must not repopulate.
            self._generation += 1
        else:
            raise TypeError(f"Unknown event: {event!r}")

        self._view = self._recompute()
        self._notify()
        return self._view

    # ── Entry points ───────────────────────────────────────────────────────────

    def set_query(self, query: str) -> InboxView:
        return self.apply(QueryChanged(query))

    def set_priority_filter(self, value: PriorityFilter | str) -> InboxView:
        """Raises ValueError for anything but all/high/medium/low."""
        return self.apply(PriorityFilterChanged(PriorityFilter(value)))

    def set_show_completed(self, show: bool) -> InboxView:
        return self.apply(ShowCompletedChanged(bool(show)))

    def toggle_completion(self, task_id: str) -> InboxView:
        return self.apply(CompletionToggled(task_id))

    def begin_fetch(self) -> int:
        """Mark a fetch as started and return its generation token."""
        generation = self._generation + 1
        self.apply(FetchStarted(generation))
        return generation

    def load_emails(self, emails: Iterable[Email], generation: int | None = None) -> InboxView:
        gen = self._generation if generation is None else generation
        return self.apply(EmailsLoaded(gen, list(emails)))

    def fail_fetch(self, message: str, generation: int | None = None) -> InboxView:
        gen = self._generation if generation is None else generation
        return self.apply(FetchFailed(gen, message))

    def reset(self) -> InboxView:
        return self.apply(SignedOut())

    # ── Internal ───────────────────────────────────────────────────────────────

    def _recompute(self) -> InboxView:
        return build_view(
            self._emails,
            self._tasks,
            self._filters,
            self._completed,
            self._status,
            self._error,
        )

    def _ignore_stale(self, event: Event) -> InboxView:
        logger.info(
            "Ignoring %s from superseded fetch (current generation %d)",
            type(event).__name__,
            self._generation,
        )
        return self._view

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._view)
            except Exception as exc:  # noqa: BLE001
                logger.error("View listener failed: %s", exc, exc_info=True)
