"""End-to-end tests for droplet_impact.run.run_sim on the minimal case."""

import io
import json
import math
import os
import re
from unittest import mock

import pytest

from conftest import write_case
from droplet_impact.kinematic import KinematicSolver
from droplet_impact.logging_setup import LOG_FILENAME
from droplet_impact.outputs import InterfaceDump
from droplet_impact.run import build_scheduler, output_directory, run_sim, step_loop
from droplet_impact.schedule import EveryStep, Scheduler
from droplet_impact.state import SimulationState
from droplet_impact.termination import TerminationController

VOLUME_RE = re.compile(r"^t = (\S+), volume = (\S+)$")


def _run(case_dir, **kwargs):
    stream = io.StringIO()
    kwargs.setdefault("console_level", None)
    state = run_sim(str(case_dir), diagnostic_stream=stream, **kwargs)
    return state, stream.getvalue().splitlines()


class TestBuildScheduler:
    def test_task_order(self, config, derived, tmp_path):
        scheduler, termination = build_scheduler(
            config, derived, str(tmp_path), io.StringIO(), callback=None
        )
        assert [(t.name, t.phase) for t in scheduler.tasks] == [
            ("refinement", "pre"),
            ("gravity", "pre"),
            ("cleanup", "post"),
            ("volume", "post"),
            ("interface", "post"),
            ("plate", "post"),
            ("snapshot", "post"),
            ("termination", "post"),
        ]
        assert termination.horizon == derived.max_time


class TestStepLoop:
    def test_pre_tasks_run_before_post_at_every_time(self):
        events = []
        solver = mock.Mock()
        solver.stable_timestep.return_value = 0.5
        scheduler = Scheduler()
        scheduler.add("adapt", EveryStep(), lambda s, _: events.append(("pre", s.t)), phase="pre")
        scheduler.add("record", EveryStep(), lambda s, _: events.append(("post", s.t)))
        termination = TerminationController(1.0, io.StringIO())
        scheduler.add("termination", EveryStep(), termination)

        state = step_loop(solver, scheduler, termination, SimulationState())

        assert state.finished
        assert events == [
            ("pre", 0.0), ("post", 0.0),
            ("pre", 0.5), ("post", 0.5),
            ("pre", 1.0), ("post", 1.0),
        ]
        assert solver.advance.call_count == 2


class TestRunSim:
    def test_reaches_horizon(self, case_dir):
        state, lines = _run(case_dir)
        assert state.finished
        assert state.t == pytest.approx(0.2)
        assert state.i == 20

    def test_diagnostic_stream(self, case_dir):
        _, lines = _run(case_dir)
        volume_lines = [VOLUME_RE.match(line) for line in lines[:-1]]
        assert all(volume_lines)
        times = [float(m.group(1)) for m in volume_lines]
        assert times == pytest.approx([0.01 * k for k in range(21)])
        assert float(volume_lines[0].group(2)) == pytest.approx(4 / 3 * math.pi, rel=0.02)
        assert lines[-1].startswith("Finished after ")
        assert sum(line.startswith("Finished after") for line in lines) == 1

    def test_output_files(self, case_dir):
        _run(case_dir)
        output_dir = case_dir / "outputs_test_case"
        names = set(os.listdir(output_dir))
        assert {f"interface_{n}.txt" for n in range(1, 6)} <= names
        assert {f"plate_output_{n}.txt" for n in range(1, 6)} <= names
        assert {f"gfs_output_{n}.gfs" for n in range(1, 4)} <= names
        assert "interface_6.txt" not in names
        assert "gfs_output_4.gfs" not in names
        assert not [name for name in names if name.endswith(".part")]
        assert {LOG_FILENAME, "run_diagnostics.csv", "run_summary.json"} <= names

    def test_output_window(self, tmp_path):
        write_case(tmp_path, start_output_time=0.05, end_output_time=0.1)
        state, _ = _run(tmp_path)
        names = os.listdir(tmp_path / "outputs_test_case")
        assert sorted(n for n in names if n.startswith("interface_")) == [
            "interface_1.txt", "interface_2.txt",
        ]
        assert state.interface_counter == 3
        assert state.snapshot_counter == 2

    def test_plate_file_times(self, case_dir):
        _run(case_dir)
        output_dir = case_dir / "outputs_test_case"
        headers = [
            (output_dir / f"plate_output_{n}.txt").read_text().splitlines()[0]
            for n in range(1, 6)
        ]
        assert headers == ["t = 0", "t = 0.05", "t = 0.1", "t = 0.15", "t = 0.2"]

    def test_first_plate_file_sampled_on_refined_wall(self, case_dir):
        _run(case_dir)
        output_dir = case_dir / "outputs_test_case"
        rows = [
            (output_dir / f"plate_output_{n}.txt").read_text().splitlines()[1:]
            for n in range(1, 6)
        ]
        # Plate band at max level 6 of a width-4 box: 32 wall cells below y = 2
        assert [len(r) for r in rows] == [32] * 5
        first_xs = {line.split(", ")[1] for line in rows[0]}
        assert first_xs == {"x = 0.03125"}

    def test_summary(self, case_dir):
        _run(case_dir)
        with open(case_dir / "outputs_test_case" / "run_summary.json") as f:
            summary = json.load(f)
        assert summary["run"]["outcome"] == "completed"
        assert summary["run"]["run_label"] == "test_case"
        assert summary["performance"]["records"] == 21

    def test_callback_events(self, case_dir):
        callback = mock.MagicMock()
        _run(case_dir, callback=callback)
        statuses = [c.args[0] for c in callback.on_status.call_args_list]
        assert statuses == ["initialising", "running", "finished"]
        metrics = {c.args[0] for c in callback.on_metric.call_args_list}
        assert {"max_time", "cell_count", "wall_time_s", "volume_drift"} <= metrics
        assert callback.on_file.call_count == 5 + 5 + 3

    def test_refinement_bounds(self, case_dir):
        solver = KinematicSolver()
        _run(case_dir, solver=solver)
        lo, hi = solver.levels
        assert lo >= 3
        assert hi <= 6
        assert solver.contact_time is not None

    def test_max_steps(self, case_dir):
        callback = mock.MagicMock()
        state, lines = _run(case_dir, callback=callback, max_steps=3)
        assert not state.finished
        assert state.i == 3
        assert not any(line.startswith("Finished") for line in lines)
        assert callback.on_status.call_args_list[-1].args[0] == "incomplete"

    def test_log_file(self, case_dir):
        _run(case_dir)
        contents = (case_dir / "outputs_test_case" / LOG_FILENAME).read_text()
        assert "run_sim started: test_case" in contents
        assert "finished run: test_case" in contents


class TestRunSimErrors:
    def test_solver_failure_reported(self, case_dir):
        class FailingSolver(KinematicSolver):
            def advance(self, dt):
                raise RuntimeError("solver diverged")

        callback = mock.MagicMock()
        with pytest.raises(RuntimeError, match="diverged"):
            _run(case_dir, callback=callback, solver=FailingSolver())
        assert callback.on_status.call_args_list[-1].args[0] == "error"
        contents = (case_dir / "outputs_test_case" / LOG_FILENAME).read_text()
        assert "solver diverged" in contents

    def test_not_a_solver(self, case_dir):
        callback = mock.MagicMock()
        with pytest.raises(TypeError, match="FlowSolver"):
            _run(case_dir, callback=callback, solver=object())
        assert callback.on_status.call_args_list[-1].args[0] == "error"

    def test_unusable_parameters(self, tmp_path):
        write_case(tmp_path, drop_vel=0.0)
        with pytest.raises(ValueError, match="drop_vel"):
            _run(tmp_path)

    def test_output_failure_is_fatal(self, case_dir):
        with mock.patch.object(InterfaceDump, "write", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                _run(case_dir)

    def test_missing_case(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            _run(tmp_path)


class TestOutputDirectory:
    def test_named_after_label(self, config):
        assert output_directory("/cases/a", config) == os.path.join(
            "/cases/a", f"outputs_{config.run_label}"
        )
