import pytest

from wan_sim.core.errors import SchedulingError
from wan_sim.core.scheduler import EventScheduler


def test_equal_timestamps_run_in_schedule_order():
    scheduler = EventScheduler()
    log = []
    labels = ["a", "b", "c", "d", "e"]
    for label in labels:
        scheduler.schedule(1.0, log.append, label)

    scheduler.run(2.0)

    assert log == labels


def test_events_run_in_time_order():
    scheduler = EventScheduler()
    log = []
    scheduler.schedule(3.0, log.append, "late")
    scheduler.schedule(1.0, log.append, "early")
    scheduler.schedule(2.0, log.append, "middle")
    scheduler.schedule(1.0, log.append, "early-second")

    scheduler.run(5.0)

    assert log == ["early", "early-second", "middle", "late"]


def test_clock_reports_event_time_during_execution():
    scheduler = EventScheduler()
    seen = []
    scheduler.schedule(2.5, lambda: seen.append(scheduler.now))

    scheduler.run(10.0)

    assert seen == [2.5]
    assert scheduler.now == 10.0


def test_run_includes_events_at_stop_time_only():
    scheduler = EventScheduler()
    log = []
    scheduler.schedule(4.0, log.append, "at-stop")
    scheduler.schedule(4.5, log.append, "after-stop")

    scheduler.run(4.0)
    assert log == ["at-stop"]
    assert scheduler.now == 4.0

    scheduler.run(5.0)
    assert log == ["at-stop", "after-stop"]


def test_events_scheduled_during_run_execute_in_same_run():
    scheduler = EventScheduler()
    log = []

    def first():
        log.append("first")
        scheduler.schedule(scheduler.now, log.append, "same-time")
        scheduler.schedule(2.0, log.append, "later")

    scheduler.schedule(1.0, first)
    scheduler.schedule(1.0, log.append, "second")

    scheduler.run(3.0)

    assert log == ["first", "second", "same-time", "later"]


def test_same_target_time_from_different_points_keeps_fifo():
    scheduler = EventScheduler()
    log = []
    scheduler.schedule(0.3, log.append, "from-setup")
    scheduler.schedule(0.1, lambda: scheduler.schedule(0.3, log.append, "from-event"))
    scheduler.schedule(0.3, log.append, "from-setup-2")

    scheduler.run(1.0)

    assert log == ["from-setup", "from-setup-2", "from-event"]


def test_negative_time_is_rejected():
    scheduler = EventScheduler()
    with pytest.raises(SchedulingError):
        scheduler.schedule(-1.0, lambda: None)


def test_past_time_is_rejected():
    scheduler = EventScheduler()
    scheduler.run(5.0)
    with pytest.raises(SchedulingError):
        scheduler.schedule(4.0, lambda: None)


def test_schedule_in_is_relative_to_now():
    scheduler = EventScheduler()
    seen = []
    scheduler.run(2.0)
    scheduler.schedule_in(1.5, lambda: seen.append(scheduler.now))

    scheduler.run(10.0)

    assert seen == [3.5]
    with pytest.raises(SchedulingError):
        scheduler.schedule_in(-0.1, lambda: None)


def test_run_backwards_is_rejected():
    scheduler = EventScheduler()
    scheduler.run(3.0)
    with pytest.raises(SchedulingError):
        scheduler.run(2.0)


def test_cancelled_event_is_skipped():
    scheduler = EventScheduler()
    log = []
    scheduler.schedule(1.0, log.append, "kept")
    dropped = scheduler.schedule(1.0, log.append, "cancelled")
    scheduler.schedule(1.0, log.append, "also-kept")

    scheduler.cancel(dropped)
    scheduler.cancel(dropped)
    scheduler.run(2.0)

    assert log == ["kept", "also-kept"]
    assert scheduler.executed == 2
    assert not dropped.executed


def test_cancel_after_execution_fails():
    scheduler = EventScheduler()
    event = scheduler.schedule(1.0, lambda: None)
    scheduler.run(2.0)

    assert event.executed
    with pytest.raises(SchedulingError):
        scheduler.cancel(event)


def test_run_without_stop_time_drains_queue():
    scheduler = EventScheduler()
    log = []
    scheduler.schedule(100.0, log.append, "far")

    scheduler.run()

    assert log == ["far"]
    assert scheduler.now == 100.0


def test_action_exceptions_propagate():
    scheduler = EventScheduler()

    def boom():
        raise RuntimeError("boom")

    scheduler.schedule(1.0, boom)
    with pytest.raises(RuntimeError):
        scheduler.run(2.0)


def test_sequence_numbers_increase():
    scheduler = EventScheduler()
    events = [scheduler.schedule(1.0, lambda: None) for _ in range(3)]
    assert [e.seq for e in events] == [0, 1, 2]
