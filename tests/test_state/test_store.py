"""Tests for InboxStore — event funnel, derived view and fetch generations."""

from unittest.mock import MagicMock

import pytest

from inbox_tasks.processing.types import Email, PriorityFilter, PriorityLevel
from inbox_tasks.state.events import CompletionToggled, EmailsLoaded, QueryChanged
from inbox_tasks.state.store import (
    FetchStatus,
    FilterState,
    InboxStore,
    InboxView,
    build_view,
    secondary_filter,
)


@pytest.fixture
def store(sample_emails: list[Email]) -> InboxStore:
    store = InboxStore()
    store.load_emails(sample_emails)
    return store


# ── Initial state ──────────────────────────────────────────────────────────────


class TestInitialState:
    def test_empty_view(self) -> None:
        view = InboxStore().view
        assert view.emails == ()
        assert view.tasks == ()
        assert view.visible_emails == ()
        assert view.visible_tasks == ()
        assert view.filters == FilterState()
        assert view.completed == frozenset()
        assert view.status == FetchStatus.IDLE
        assert view.error is None
        assert InboxStore().generation == 0

    def test_default_filters(self) -> None:
        filters = FilterState()
        assert filters.query == ""
        assert filters.priority_filter == PriorityFilter.ALL
        assert filters.show_completed is True


# ── Loading ────────────────────────────────────────────────────────────────────


class TestLoadEmails:
    def test_classifies_on_load(self, store: InboxStore) -> None:
        view = store.view
        assert [e.id for e in view.emails] == ["notice", "meeting", "urgent"]
        assert [t.id for t in view.tasks] == ["urgent", "meeting"]
        assert view.visible_tasks == view.tasks
        assert view.status == FetchStatus.LOADED

    def test_reload_replaces_collections(self, store: InboxStore, sample_emails: list[Email]) -> None:
        store.load_emails(sample_emails[:1])
        assert [e.id for e in store.view.emails] == ["notice"]
        assert store.view.tasks == ()

    def test_completion_survives_reload(self, store: InboxStore, sample_emails: list[Email]) -> None:
        store.toggle_completion("urgent")
        store.load_emails(sample_emails)
        assert store.view.is_completed("urgent")

    def test_injected_classifier_is_used(self, sample_emails: list[Email]) -> None:
        classifier = MagicMock(return_value=[])
        store = InboxStore(classifier=classifier)
        store.load_emails(sample_emails)
        classifier.assert_called_once_with(sample_emails)
        assert store.view.tasks == ()


# ── Filters ────────────────────────────────────────────────────────────────────


class TestFilters:
    def test_query_filters_emails_and_tasks(self, store: InboxStore) -> None:
        view = store.set_query("会議 明日")
        assert [e.id for e in view.visible_emails] == ["meeting"]
        assert [t.id for t in view.visible_tasks] == ["meeting"]
        assert len(view.emails) == 3

    def test_clearing_query_restores_everything(self, store: InboxStore) -> None:
        store.set_query("会議")
        view = store.set_query("")
        assert view.visible_emails == view.emails
        assert view.visible_tasks == view.tasks

    def test_priority_filter(self, store: InboxStore) -> None:
        view = store.set_priority_filter(PriorityFilter.HIGH)
        assert [t.id for t in view.visible_tasks] == ["urgent"]
        assert all(t.priority.level == PriorityLevel.HIGH for t in view.visible_tasks)

    def test_priority_filter_accepts_strings(self, store: InboxStore) -> None:
        view = store.set_priority_filter("low")
        assert [t.id for t in view.visible_tasks] == ["meeting"]
        assert view.filters.priority_filter == PriorityFilter.LOW

    def test_invalid_priority_filter_raises(self, store: InboxStore) -> None:
        with pytest.raises(ValueError):
            store.set_priority_filter("urgent")
        assert store.view.filters.priority_filter == PriorityFilter.ALL

    def test_priority_filter_does_not_touch_emails(self, store: InboxStore) -> None:
        view = store.set_priority_filter("medium")
        assert view.visible_tasks == ()
        assert len(view.visible_emails) == 3

    def test_hide_completed(self, store: InboxStore) -> None:
        store.toggle_completion("urgent")
        view = store.set_show_completed(False)
        assert [t.id for t in view.visible_tasks] == ["meeting"]

    def test_high_hidden_completed_leaves_nothing(self, store: InboxStore) -> None:
        store.set_priority_filter("high")
        store.set_show_completed(False)
        view = store.toggle_completion("urgent")
        assert view.visible_tasks == ()
        assert len(view.tasks) == 2


# ── Completion ─────────────────────────────────────────────────────────────────


class TestCompletion:
    def test_toggle_twice_restores(self, store: InboxStore) -> None:
        before = store.view.completed
        store.toggle_completion("meeting")
        assert store.view.is_completed("meeting")
        store.toggle_completion("meeting")
        assert store.view.completed == before

    def test_unknown_id_is_accepted(self, store: InboxStore) -> None:
        view = store.toggle_completion("nope")
        assert view.is_completed("nope")

    def test_toggle_never_reorders_tasks(self, store: InboxStore) -> None:
        order = [t.id for t in store.view.tasks]
        store.toggle_completion("urgent")
        assert [t.id for t in store.view.tasks] == order


# ── Sign-out ───────────────────────────────────────────────────────────────────


class TestReset:
    def test_reset_clears_everything(self, store: InboxStore) -> None:
        store.set_query("会議")
        store.set_priority_filter("high")
        store.toggle_completion("urgent")
        view = store.reset()
        assert view.emails == ()
        assert view.tasks == ()
        assert view.completed == frozenset()
        assert view.filters == FilterState()
        assert view.status == FetchStatus.IDLE

    def test_reset_invalidates_in_flight_fetch(self, sample_emails: list[Email]) -> None:
        store = InboxStore()
        generation = store.begin_fetch()
        store.reset()
        store.load_emails(sample_emails, generation)
        assert store.view.emails == ()


# ── Fetch lifecycle ────────────────────────────────────────────────────────────


class TestFetchLifecycle:
    def test_begin_fetch_sets_loading(self) -> None:
        store = InboxStore()
        generation = store.begin_fetch()
        assert generation == 1
        assert store.generation == 1
        assert store.view.status == FetchStatus.LOADING

    def test_latest_fetch_wins(self, sample_emails: list[Email]) -> None:
        store = InboxStore()
        first = store.begin_fetch()
        second = store.begin_fetch()
        store.load_emails(sample_emails[:1], second)
        store.load_emails(sample_emails, first)
        assert [e.id for e in store.view.emails] == ["notice"]
        assert store.view.status == FetchStatus.LOADED

    def test_stale_event_does_not_notify(self, sample_emails: list[Email]) -> None:
        store = InboxStore()
        first = store.begin_fetch()
        store.begin_fetch()
        listener = MagicMock()
        store.subscribe(listener)
        store.apply(EmailsLoaded(first, sample_emails))
        store.fail_fetch("late failure", first)
        listener.assert_not_called()

    def test_fail_fetch_keeps_previous_emails(self, store: InboxStore) -> None:
        generation = store.begin_fetch()
        view = store.fail_fetch("Failed to fetch emails: boom", generation)
        assert view.status == FetchStatus.ERROR
        assert view.error == "Failed to fetch emails: boom"
        assert len(view.emails) == 3

    def test_successful_fetch_clears_error(self, sample_emails: list[Email]) -> None:
        store = InboxStore()
        store.fail_fetch("boom", store.begin_fetch())
        store.load_emails(sample_emails, store.begin_fetch())
        assert store.view.error is None
        assert store.view.status == FetchStatus.LOADED


# ── empty_reason ───────────────────────────────────────────────────────────────


class TestEmptyReason:
    def test_no_emails(self) -> None:
        assert InboxStore().view.empty_reason == "no_emails"

    def test_error(self) -> None:
        store = InboxStore()
        store.fail_fetch("boom", store.begin_fetch())
        assert store.view.empty_reason == "error"

    def test_no_matches(self, store: InboxStore) -> None:
        assert store.set_query("zzz").empty_reason == "no_matches"

    def test_visible(self, store: InboxStore) -> None:
        assert store.view.empty_reason is None


# ── Listeners ──────────────────────────────────────────────────────────────────


class TestListeners:
    def test_listener_receives_new_view(self, store: InboxStore) -> None:
        listener = MagicMock()
        store.subscribe(listener)
        view = store.set_query("至急")
        listener.assert_called_once_with(view)

    def test_listener_sees_consistent_snapshot(self, store: InboxStore) -> None:
        seen: list[InboxView] = []
        store.subscribe(seen.append)
        store.set_query("会議")
        snapshot = seen[0]
        assert snapshot.filters.query == "会議"
        assert [e.id for e in snapshot.visible_emails] == ["meeting"]

    def test_failing_listener_does_not_block_others(self, store: InboxStore) -> None:
        bad = MagicMock(side_effect=RuntimeError("render failed"))
        good = MagicMock()
        store.subscribe(bad)
        store.subscribe(good)
        view = store.toggle_completion("urgent")
        good.assert_called_once_with(view)
        assert store.view.is_completed("urgent")

    def test_unsubscribe(self, store: InboxStore) -> None:
        listener = MagicMock()
        unsubscribe = store.subscribe(listener)
        unsubscribe()
        unsubscribe()
        store.set_query("会議")
        listener.assert_not_called()

    def test_unknown_event_raises(self, store: InboxStore) -> None:
        with pytest.raises(TypeError):
            store.apply("not an event")  # type: ignore[arg-type]

    def test_apply_accepts_event_objects(self, store: InboxStore) -> None:
        store.apply(QueryChanged("至急"))
        store.apply(CompletionToggled("urgent"))
        assert [t.id for t in store.view.visible_tasks] == ["urgent"]
        assert store.view.is_completed("urgent")


# ── Pure helpers ───────────────────────────────────────────────────────────────


class TestPureHelpers:
    def test_build_view_matches_store(self, store: InboxStore) -> None:
        view = store.view
        rebuilt = build_view(view.emails, view.tasks, view.filters, view.completed, view.status)
        assert rebuilt == view

    def test_secondary_filter_all_keeps_order(self, store: InboxStore) -> None:
        tasks = store.view.tasks
        assert secondary_filter(tasks, PriorityFilter.ALL, True, frozenset()) == list(tasks)

    def test_secondary_filter_hides_completed(self, store: InboxStore) -> None:
        tasks = store.view.tasks
        result = secondary_filter(tasks, PriorityFilter.ALL, False, frozenset({"meeting"}))
        assert [t.id for t in result] == ["urgent"]
