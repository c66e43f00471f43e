"""Tests for droplet_impact.cli — CLI subcommands."""

import argparse
import json
import subprocess
import sys

import pytest

from conftest import FIXTURE_DIR, write_case
from droplet_impact.cli import resolve_case_dir


def _cli(*args):
    return subprocess.run(
        [sys.executable, "-m", "droplet_impact.cli", *args],
        capture_output=True,
        text=True,
    )


class TestMainHelp:
    def test_no_args_prints_help(self):
        result = _cli()
        assert result.returncode == 1
        assert "droplet-impact" in result.stderr or "droplet-impact" in result.stdout

    def test_help_flag(self):
        result = _cli("--help")
        assert result.returncode == 0
        for cmd in ["run", "validate", "info", "analyse"]:
            assert cmd in result.stdout


class TestValidateSubcommand:
    def test_valid_case(self):
        result = _cli("validate", FIXTURE_DIR)
        assert result.returncode == 0
        assert "Valid case: minimal" in result.stdout
        assert "Levels 3..6" in result.stdout
        assert "Run horizon: 0.2" in result.stdout

    def test_missing_case_json(self, tmp_path):
        result = _cli("validate", str(tmp_path))
        assert result.returncode == 1
        assert "Invalid" in result.stderr

    def test_schema_violation(self, tmp_path):
        write_case(tmp_path, max_level="twelve")
        result = _cli("validate", str(tmp_path))
        assert result.returncode == 1
        assert "Invalid" in result.stderr

    def test_unusable_parameters(self, tmp_path):
        write_case(tmp_path, drop_vel=0.0)
        result = _cli("validate", str(tmp_path))
        assert result.returncode == 1
        assert "drop_vel" in result.stderr


class TestInfoSubcommand:
    def test_info_valid_case(self):
        result = _cli("info", FIXTURE_DIR)
        assert result.returncode == 0
        assert "Label:   minimal" in result.stdout
        assert "Impact time:          0.1" in result.stdout
        assert "Min cell size:        0.0625" in result.stdout
        assert "outputs_minimal" in result.stdout


class TestRunAndAnalyse:
    def test_run_then_analyse(self, minimal_case_copy):
        result = _cli("run", str(minimal_case_copy))
        assert result.returncode == 0, result.stderr
        assert "Finished after" in result.stderr

        output_dir = minimal_case_copy / "outputs_minimal"
        assert (output_dir / "plate_output_1.txt").exists()

        result = _cli("analyse", str(output_dir))
        assert result.returncode == 0, result.stderr
        assert "Force history" in result.stdout
        assert (output_dir / "force.csv").exists()

    def test_run_stopped_early_exits_nonzero(self, minimal_case_copy):
        result = _cli("run", str(minimal_case_copy), "--max-steps", "2")
        assert result.returncode == 1

    def test_analyse_without_plate_files(self, tmp_path):
        result = _cli("analyse", str(tmp_path), "--impact-time", "0.1")
        assert result.returncode == 1
        assert "No plate_output files" in result.stderr


class TestCaseFileArgument:
    def test_accepts_case_json_path(self, tmp_path):
        write_case(tmp_path, name="by_file")
        result = _cli("validate", str(tmp_path / "case.json"))
        assert result.returncode == 0
        assert "Valid case: by_file" in result.stdout

    def test_rejects_other_file(self, tmp_path):
        (tmp_path / "other.json").write_text(json.dumps({}))
        result = _cli("validate", str(tmp_path / "other.json"))
        assert result.returncode == 2

    def test_accepts_outputs_directory(self, tmp_path):
        write_case(tmp_path, name="from_outputs")
        outputs = tmp_path / "outputs_from_outputs"
        outputs.mkdir()
        result = _cli("info", str(outputs))
        assert result.returncode == 0, result.stderr
        assert "Label:   from_outputs" in result.stdout


class TestResolveCaseDir:
    def test_case_json_path(self, tmp_path):
        write_case(tmp_path)
        assert resolve_case_dir(str(tmp_path / "case.json")) == str(tmp_path)

    def test_relative_directory_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert resolve_case_dir(".") == str(tmp_path)

    def test_outputs_directory_resolves_to_case(self, tmp_path):
        write_case(tmp_path)
        outputs = tmp_path / "outputs_test_case"
        outputs.mkdir()
        assert resolve_case_dir(str(outputs)) == str(tmp_path)

    def test_outputs_named_case_directory_kept(self, tmp_path):
        write_case(tmp_path)
        nested = tmp_path / "outputs_sweep"
        nested.mkdir()
        write_case(nested)
        assert resolve_case_dir(str(nested)) == str(nested)

    def test_outputs_directory_without_case_above(self, tmp_path):
        outputs = tmp_path / "outputs_orphan"
        outputs.mkdir()
        assert resolve_case_dir(str(outputs)) == str(outputs)

    def test_missing_path(self, tmp_path):
        with pytest.raises(argparse.ArgumentTypeError, match="does not exist"):
            resolve_case_dir(str(tmp_path / "missing"))
