"""Tests for the local evaluator loops."""

import pytest
from conftest import T, FakeClock

from eventalarm.alarms.local_loop import LocalEvaluatorLoop, TaggedNotificationCenter
from eventalarm.core.errors import StorageFailure
from eventalarm.device import build_jobs, run_loop_job
from eventalarm.store.event_store import EventStore


@pytest.fixture(name="center")
def center_fixture() -> TaggedNotificationCenter:
    return TaggedNotificationCenter()


def make_loop(store, center, schedule, clock, context="foreground"):
    return LocalEvaluatorLoop(store, center, schedule, clock=clock, context=context)


class TestNotificationCenter:
    def test_same_tag_coalesces(self, center: TaggedNotificationCenter):
        payload = {"title": "Reminder", "body": "x", "tag": "alarm-1"}
        assert center.show(payload) is True
        assert center.show(payload) is False
        assert len(center.alerts) == 1
        assert len(center.displayed) == 1

    def test_dismiss_allows_new_alert(self, center: TaggedNotificationCenter):
        payload = {"title": "Reminder", "body": "x", "tag": "alarm-1"}
        center.show(payload)
        center.dismiss("alarm-1")
        assert center.show(payload) is True
        assert len(center.alerts) == 2

    def test_different_tags_alert_separately(self, center: TaggedNotificationCenter):
        center.show({"title": "Reminder", "body": "x", "tag": "alarm-1"})
        center.show({"title": "Reminder", "body": "y", "tag": "alarm-2"})
        assert len(center.alerts) == 2


class TestLocalEvaluatorLoop:
    def test_fires_once_per_occurrence(self, store: EventStore, schedule: str, center):
        """Event 42 with a 15 minute alarm fires at T-900 and never again."""
        store.set_alarm(42, 15)
        clock = FakeClock(T - 900)
        loop = make_loop(store, center, schedule, clock)

        assert loop.tick() == [42]
        assert store.get_meta(42).last_notified_at == T - 900

        clock.now = T - 895
        assert loop.tick() == []

        clock.now = T
        assert loop.tick() == []

        assert len(center.alerts) == 1
        alert = center.alerts[0]
        assert alert["tag"] == "alarm-42"
        assert alert["body"] == 'Upcoming: "Quiz 1" in 15 minutes'
        assert alert["icon"] == "https://lms.example.com/quiz.svg"

    def test_does_not_fire_before_trigger(self, store: EventStore, schedule: str, center):
        store.set_alarm(42, 15)
        loop = make_loop(store, center, schedule, FakeClock(T - 901))
        assert loop.tick() == []
        assert center.alerts == []

    def test_late_tick_inside_grace_fires(self, store: EventStore, schedule: str, center):
        store.set_alarm(42, 0)
        loop = make_loop(store, center, schedule, FakeClock(T + 300))
        assert loop.tick() == [42]
        assert center.alerts[0]["body"] == 'Event "Quiz 1" is starting now'

    def test_past_grace_is_abandoned(self, store: EventStore, schedule: str, center):
        store.set_alarm(42, 0)
        loop = make_loop(store, center, schedule, FakeClock(T + 301))
        assert loop.tick() == []
        assert store.get_meta(42).last_notified_at is None

    def test_rearm_fires_again(self, store: EventStore, schedule: str, center):
        store.set_alarm(42, 15)
        clock = FakeClock(T - 600)
        loop = make_loop(store, center, schedule, clock)
        assert loop.tick() == [42]
        assert loop.tick() == []

        store.set_alarm(42, 15)
        center.dismiss("alarm-42")

        assert loop.tick() == [42]
        assert len(center.alerts) == 2

    def test_completion_toggle_does_not_rearm(self, store: EventStore, schedule: str, center):
        store.set_alarm(42, 15)
        loop = make_loop(store, center, schedule, FakeClock(T - 600))
        loop.tick()

        store.toggle_completed(42)

        assert loop.tick() == []

    def test_personal_event_fires(self, store: EventStore, schedule: str, center):
        event = store.add_personal_event(schedule, "Dentist", T + 1800)
        store.set_alarm(event.id, 30)
        loop = make_loop(store, center, schedule, FakeClock(T))

        assert loop.tick() == [event.id]
        assert center.alerts[0]["data"] == {"eventId": event.id}

    def test_two_loops_fire_once(self, store: EventStore, schedule: str, center):
        """Foreground and background ticking at the same instant."""
        store.set_alarm(42, 15)
        clock = FakeClock(T - 900)
        foreground = make_loop(store, center, schedule, clock, "foreground")
        background = make_loop(store, center, schedule, clock, "background")

        fired = foreground.tick() + background.tick()

        assert fired == [42]
        assert len(center.alerts) == 1
        assert store.get_meta(42).last_notified_at == T - 900

    def test_two_loops_racing_coalesce_by_tag(self, store: EventStore, schedule: str, center):
        """Both loops read the meta before either marks it notified."""
        store.set_alarm(42, 15)
        clock = FakeClock(T - 900)
        foreground = make_loop(store, center, schedule, clock, "foreground")
        background = make_loop(store, center, schedule, clock, "background")

        stale_meta = store.get_meta(42)
        original_get_meta = store.get_meta
        store.get_meta = lambda event_id: stale_meta if event_id == 42 else original_get_meta(event_id)
        try:
            assert foreground.tick() == [42]
            assert background.tick() == [42]
        finally:
            store.get_meta = original_get_meta

        assert len(center.alerts) == 1
        assert store.get_meta(42).last_notified_at == T - 900

    def test_storage_failure_propagates(self, store: EventStore, schedule: str, center):
        store.set_alarm(42, 15)
        loop = make_loop(store, center, schedule, FakeClock(T - 900))

        def failing_mark(event_id, when):
            raise StorageFailure("disk full")

        store.mark_notified = failing_mark
        with pytest.raises(StorageFailure):
            loop.tick()

    def test_scheduled_job_swallows_failures(self, store: EventStore, schedule: str, center):
        loop = make_loop(store, center, schedule, FakeClock(T))

        def failing_tick():
            raise StorageFailure("disk full")

        loop.tick = failing_tick
        run_loop_job(loop)  # does not raise


class TestBuildJobs:
    def test_registers_both_loops(self, store: EventStore, schedule: str, center):
        from apscheduler.schedulers.background import BackgroundScheduler

        scheduler = BackgroundScheduler()
        loops = build_jobs(scheduler, store, schedule, center)

        assert [loop.context for loop in loops] == ["foreground", "background"]
        job_ids = {job.id for job in scheduler.get_jobs()}
        assert job_ids == {"alarm_check_foreground", "alarm_check_background"}
