import pytest

from chronograph_app.engine import (
    ChronographKind,
    ChronographState,
    ChronographStateError,
    STOPWATCH_QUANTUM_MS,
    TIMER_QUANTUM_MS,
)
from chronograph_app.time_conversion import TimeFields


def test_initial_state_is_paused_with_clamped_base(make_engine) -> None:
    engine = make_engine(duration=90_500)
    assert not engine.running
    assert engine.state.elapsed_time == 90_500
    assert engine.state.base_duration == TimeFields(0, 1, 30, 0)
    assert engine.snapshot().fields == TimeFields(0, 1, 30, 0)


def test_base_duration_is_clamped_to_99_hours(make_engine) -> None:
    engine = make_engine(duration=120 * 3_600_000)
    assert engine.state.base_duration.hours == 99


def test_stopwatch_has_no_base_duration(make_engine) -> None:
    engine = make_engine(kind=ChronographKind.STOPWATCH, duration=1000)
    assert engine.state.base_duration is None


def test_timer_runs_to_completion(make_engine, scheduler, store, notifier) -> None:
    engine = make_engine(duration=5000)
    engine.start()
    assert scheduler.armed == [TIMER_QUANTUM_MS]
    assert store.last.state is ChronographState.ACTIVE

    scheduler.fire(4)
    assert engine.running
    assert engine.snapshot().fields == TimeFields(0, 0, 1, 0)

    scheduler.fire()
    assert not engine.running
    assert engine.state.elapsed_time <= 0
    assert notifier.messages == [("Completed!", '"Tea" is done.')]
    assert store.last.state is ChronographState.PAUSED
    assert store.last.duration == 0
    assert len(store.calls) == 2
    assert scheduler.live == {}

    scheduler.fire(3)
    assert len(notifier.messages) == 1


def test_timer_underflow_is_persisted_verbatim(make_engine, scheduler, store) -> None:
    engine = make_engine(duration=4500)
    engine.start()
    scheduler.fire(5)

    assert not engine.running
    assert engine.state.elapsed_time == -500
    assert store.last.duration == -500
    assert engine.chronograph.duration == -500
    # On screen the countdown stops at zero
    assert engine.snapshot().fields == TimeFields(0, 0, 0, 0)


def test_completion_without_notification_setting(make_engine, scheduler, store, notifier) -> None:
    engine = make_engine(duration=1000, notify_on_complete=False)
    engine.start()
    scheduler.fire()

    assert notifier.messages == []
    assert store.last.state is ChronographState.PAUSED


def test_stopwatch_counts_from_start_reference(make_engine, scheduler, clock) -> None:
    engine = make_engine(kind=ChronographKind.STOPWATCH)
    engine.start()
    assert scheduler.armed == [STOPWATCH_QUANTUM_MS]

    clock.advance(2500)
    scheduler.fire()
    assert engine.snapshot().fields == TimeFields(0, 0, 2, 50)

    snapshot = engine.reset()
    assert snapshot.fields == TimeFields(0, 0, 0, 0)
    assert not snapshot.running
    assert engine.state.start_reference is None
    assert scheduler.live == {}


def test_stopwatch_resumes_from_persisted_duration(make_engine, scheduler, clock) -> None:
    engine = make_engine(kind=ChronographKind.STOPWATCH, duration=1000)
    engine.start()
    clock.advance(500)
    scheduler.fire()
    assert engine.state.elapsed_time == 1500


def test_stopwatch_pause_saves_current_elapsed(make_engine, clock, store) -> None:
    engine = make_engine(kind=ChronographKind.STOPWATCH)
    engine.start()
    clock.advance(1234)
    engine.pause()

    assert store.last.duration == 1234
    assert store.last.state is ChronographState.PAUSED
    assert engine.snapshot().fields == TimeFields(0, 0, 1, 23)


def test_start_while_running_is_rejected(make_engine, scheduler) -> None:
    engine = make_engine(duration=10_000)
    engine.start()
    with pytest.raises(ChronographStateError):
        engine.start()
    assert len(scheduler.live) == 1


def test_pause_while_paused_is_rejected(make_engine) -> None:
    with pytest.raises(ChronographStateError):
        make_engine(duration=10_000).pause()


def test_pause_then_start_keeps_single_handle(make_engine, scheduler, store) -> None:
    engine = make_engine(duration=10_000)
    engine.start()
    engine.pause()
    engine.start()

    assert len(scheduler.live) == 1
    assert [call[2].state for call in store.calls] == [
        ChronographState.ACTIVE,
        ChronographState.PAUSED,
        ChronographState.ACTIVE,
    ]


def test_toggle_alternates(make_engine) -> None:
    engine = make_engine(duration=10_000)
    assert engine.toggle().running
    assert not engine.toggle().running


def test_empty_timer_cannot_start(make_engine, scheduler) -> None:
    engine = make_engine(duration=0)
    with pytest.raises(ChronographStateError):
        engine.start()
    assert scheduler.live == {}


def test_reset_restores_configured_timer_duration(make_engine, scheduler, store) -> None:
    engine = make_engine(duration=90_000)
    engine.start()
    scheduler.fire(50)
    assert engine.state.elapsed_time == 40_000
    assert engine.snapshot().fields == TimeFields(0, 0, 40, 0)

    snapshot = engine.reset()
    assert snapshot.fields == TimeFields(0, 1, 30, 0)
    assert engine.state.elapsed_time == 90_000
    assert not engine.running
    assert engine.chronograph.state is ChronographState.PAUSED
    # Reset itself does not save
    assert len(store.calls) == 1


def test_persist_payload_is_full_record(make_engine, store) -> None:
    engine = make_engine(duration=3000)
    engine.start()

    workspace_id, chronograph_id, update = store.calls[-1]
    assert (workspace_id, chronograph_id) == (3, 7)
    assert update.as_dict() == {
        "name": "Tea",
        "kind": "timer",
        "state": "active",
        "duration": 3000,
        "is_favourite": True,
    }


def test_persistence_failure_propagates_after_transition(make_engine, scheduler, store) -> None:
    store.error = OSError("disk full")
    engine = make_engine(duration=3000)

    with pytest.raises(OSError):
        engine.start()
    assert engine.running
    assert len(scheduler.live) == 1
    assert engine.chronograph.state is ChronographState.ACTIVE


def test_persistence_failure_on_pause_propagates(make_engine, scheduler, store) -> None:
    engine = make_engine(duration=3000)
    engine.start()
    store.error = OSError("disk full")

    with pytest.raises(OSError):
        engine.pause()
    assert not engine.running
    assert scheduler.live == {}
    assert engine.chronograph.state is ChronographState.PAUSED


def test_persistence_failure_on_completion_propagates(make_engine, scheduler, store, notifier) -> None:
    engine = make_engine(duration=1000)
    engine.start()
    store.error = OSError("disk full")

    with pytest.raises(OSError):
        scheduler.fire()
    assert not engine.running
    assert scheduler.live == {}
    assert notifier.messages == [("Completed!", '"Tea" is done.')]
    assert store.last.state is ChronographState.PAUSED


def test_edit_field_updates_base_and_remaining(make_engine, scheduler) -> None:
    engine = make_engine(duration=0)
    outcome = engine.edit_field("minutes", "5", 2)

    assert outcome.value == 5
    assert engine.state.elapsed_time == 300_000
    assert engine.state.base_duration == TimeFields(0, 5, 0, 0)

    engine.start()
    scheduler.fire(3)
    engine.pause()
    assert engine.reset().fields == TimeFields(0, 5, 0, 0)


def test_edit_field_chain_of_keys(make_engine) -> None:
    engine = make_engine(duration=0)
    engine.edit_field("hours", "1", 2)
    engine.edit_field("hours", "2", 2)
    engine.edit_field("seconds", "9", 0)

    assert engine.snapshot().fields == TimeFields(12, 0, 59, 0)
    assert engine.state.elapsed_time == 12 * 3_600_000 + 59_000


def test_edit_field_ignores_rejected_and_navigation_keys(make_engine) -> None:
    engine = make_engine(duration=65_000)
    rejected = engine.edit_field("seconds", "x", 1)
    navigation = engine.edit_field("seconds", "ArrowLeft", 1)

    assert not rejected.accepted and rejected.suppress_default
    assert navigation.accepted and not navigation.suppress_default
    assert engine.state.elapsed_time == 65_000


def test_edit_field_not_allowed_while_running_or_for_stopwatch(make_engine) -> None:
    timer = make_engine(duration=10_000)
    timer.start()
    with pytest.raises(ChronographStateError):
        timer.edit_field("seconds", "1", 2)

    stopwatch = make_engine(kind=ChronographKind.STOPWATCH)
    with pytest.raises(ChronographStateError):
        stopwatch.edit_field("seconds", "1", 2)


def test_edit_field_rejects_unknown_field(make_engine) -> None:
    with pytest.raises(ValueError):
        make_engine(duration=0).edit_field("days", "1", 2)


def test_rename_persists_current_state(make_engine, store) -> None:
    engine = make_engine(duration=10_000)
    engine.start()
    result = engine.rename("Green tea")

    assert result == "saved"
    assert store.last.name == "Green tea"
    assert store.last.state is ChronographState.ACTIVE
    assert engine.chronograph.name == "Green tea"


def test_close_disarms_and_blocks_operations(make_engine, scheduler, store) -> None:
    engine = make_engine(duration=10_000)
    engine.start()
    engine.close()
    engine.close()

    assert scheduler.live == {}
    assert engine.closed
    with pytest.raises(ChronographStateError):
        engine.start()
    calls = len(store.calls)
    engine.tick()
    assert len(store.calls) == calls
    assert engine.state.elapsed_time == 10_000


def test_on_change_receives_snapshots(make_engine, scheduler) -> None:
    seen = []
    engine = make_engine(duration=2000, on_change=seen.append)
    engine.start()
    scheduler.fire(2)

    assert [snapshot.running for snapshot in seen] == [True, True, False]
    assert seen[-1].elapsed_time == 0
