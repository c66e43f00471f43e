"""Tests for droplet_impact.schedule — triggers, task ordering, timestep clamping."""

import math
from types import SimpleNamespace

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from droplet_impact.schedule import (
    EveryInterval,
    EveryStep,
    ScheduledTask,
    Scheduler,
    clamp_timestep,
)


class TestEveryStep:
    def test_always_due(self):
        trigger = EveryStep()
        assert trigger.due(0.0)
        trigger.fired(0.0)
        assert trigger.due(0.0)
        assert trigger.next_time(0.0) is None


class TestEveryInterval:
    def test_due_at_zero(self):
        assert EveryInterval(0.1).due(0.0)

    def test_fires_once_per_multiple(self):
        trigger = EveryInterval(0.1)
        trigger.fired(0.0)
        assert not trigger.due(0.05)
        assert trigger.due(0.1)
        assert trigger.next_time(0.05) == pytest.approx(0.1)

    def test_tolerates_rounding(self):
        trigger = EveryInterval(0.1)
        trigger.fired(0.0)
        assert trigger.due(0.1 - 1e-12)

    def test_tolerance_does_not_scale_with_time(self):
        trigger = EveryInterval(1000.0)
        trigger.fired(0.0)
        assert trigger.due(1000.0 - 5e-10)
        assert not trigger.due(1000.0 - 1e-7)

    def test_overshoot_skips_passed_multiples(self):
        trigger = EveryInterval(0.1)
        trigger.fired(0.35)
        assert trigger.next_time(0.35) == pytest.approx(0.4)

    @pytest.mark.parametrize("interval", [0.0, -1.0])
    def test_rejects_non_positive_interval(self, interval):
        with pytest.raises(ValueError, match="positive"):
            EveryInterval(interval)


class TestScheduledTask:
    def test_rejects_unknown_phase(self):
        with pytest.raises(ValueError, match="Unknown phase"):
            ScheduledTask("x", EveryStep(), lambda s, v: None, phase="during")


class TestScheduler:
    def _recording_scheduler(self):
        calls = []
        scheduler = Scheduler()
        for name, trigger, phase in [
            ("a", EveryStep(), "pre"),
            ("b", EveryInterval(0.1), "post"),
            ("c", EveryStep(), "post"),
            ("d", EveryStep(), "pre"),
        ]:
            scheduler.add(name, trigger, lambda s, v, name=name: calls.append(name), phase)
        return scheduler, calls

    def test_phases_run_in_registration_order(self):
        scheduler, calls = self._recording_scheduler()
        state = SimpleNamespace(t=0.0)
        assert scheduler.run_phase("pre", state, None) == ["a", "d"]
        assert scheduler.run_phase("post", state, None) == ["b", "c"]
        assert calls == ["a", "d", "b", "c"]

    def test_time_trigger_skipped_between_multiples(self):
        scheduler, _ = self._recording_scheduler()
        scheduler.run_phase("post", SimpleNamespace(t=0.0), None)
        assert scheduler.run_phase("post", SimpleNamespace(t=0.05), None) == ["c"]
        assert scheduler.run_phase("post", SimpleNamespace(t=0.1), None) == ["b", "c"]

    def test_next_time(self):
        scheduler = Scheduler()
        scheduler.add("slow", EveryInterval(0.5), lambda s, v: None)
        scheduler.add("fast", EveryInterval(0.2), lambda s, v: None)
        scheduler.run_phase("post", SimpleNamespace(t=0.0), None)
        assert scheduler.next_time(0.0) == pytest.approx(0.2)

    def test_next_time_without_time_triggers(self):
        scheduler = Scheduler()
        scheduler.add("every", EveryStep(), lambda s, v: None)
        assert scheduler.next_time(0.0) is None

    def test_action_errors_propagate(self):
        scheduler = Scheduler()

        def fail(state, solver):
            raise OSError("disk full")

        trigger = EveryInterval(0.1)
        scheduler.add("broken", trigger, fail)
        with pytest.raises(OSError):
            scheduler.run_phase("post", SimpleNamespace(t=0.0), None)
        # Not marked as fired
        assert trigger.due(0.0)


class TestClampTimestep:
    def test_no_target(self):
        assert clamp_timestep(0.0, 0.03, None) == 0.03

    def test_shorter_than_target(self):
        assert clamp_timestep(0.0, 0.03, 0.09) == pytest.approx(0.03)

    def test_splits_remaining_into_equal_steps(self):
        # 0.1 / 0.03 -> 4 steps of 0.025, no sliver
        assert clamp_timestep(0.0, 0.03, 0.1) == pytest.approx(0.025)

    def test_lands_on_target(self):
        assert clamp_timestep(0.09, 0.03, 0.1) == pytest.approx(0.01)

    def test_target_reached(self):
        assert clamp_timestep(0.1, 0.03, 0.1) == 0.03

    def test_rejects_non_positive_dt(self):
        with pytest.raises(ValueError):
            clamp_timestep(0.0, 0.0, 0.1)

    @settings(max_examples=200)
    @given(
        t=st.floats(min_value=0.0, max_value=10.0),
        dt=st.floats(min_value=1e-6, max_value=1.0),
        gap=st.floats(min_value=1e-6, max_value=10.0),
    )
    def test_never_steps_over_target(self, t, dt, gap):
        tnext = t + gap
        remaining = tnext - t
        step = clamp_timestep(t, dt, tnext)
        assert step > 0
        assert step <= dt * (1 + 1e-8)
        n = remaining / step
        assert n == pytest.approx(round(n), abs=1e-6)
        assert math.isfinite(step)
