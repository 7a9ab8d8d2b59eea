import json
import re

import pytest

from lagrange_opt.cli import format_result, run_optimize
from lagrange_opt.optim import solve

SCENARIO_ARGS = ["5.0", "2.5", "20.0", "1.2", "0.8", "0.5"]


def test_success_prints_json(capsys):
    assert run_optimize(SCENARIO_ARGS) == 0
    out = capsys.readouterr().out
    payload = json.loads(out)
    assert list(payload) == ["rate", "power", "bandwidth", "latency"]
    assert payload["rate"] >= 5.0
    assert payload["power"] <= 2.5
    assert payload["bandwidth"] <= 20.0
    assert payload["latency"] > 0


def test_output_decimal_places(capsys):
    run_optimize(SCENARIO_ARGS)
    out = capsys.readouterr().out
    assert re.search(r'^  "rate": \d+\.\d{4},$', out, re.MULTILINE)
    assert re.search(r'^  "power": \d+\.\d{4},$', out, re.MULTILINE)
    assert re.search(r'^  "bandwidth": \d+\.\d{4},$', out, re.MULTILINE)
    assert re.search(r'^  "latency": \d+\.\d{6}$', out, re.MULTILINE)
    assert out.startswith("{\n") and out.endswith("}\n")


def test_format_result_details():
    text = format_result(solve(5.0, 2.5, 20.0, 1.2, 0.8, 0.5), details=True)
    payload = json.loads(text)
    assert payload["status"] == "converged"
    assert payload["iterations"] == 2
    assert payload["improvement_percent"] > 0


@pytest.mark.parametrize("argv", [[], ["5.0", "2.5"], SCENARIO_ARGS + ["1.0"]])
def test_wrong_argument_count(argv, capsys):
    assert run_optimize(argv) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "usage" in captured.err
    assert "Example" in captured.err


def test_non_numeric_argument_exits_with_one(capsys):
    assert run_optimize(["five", "2.5", "20.0", "1.2", "0.8", "0.5"]) == 1
    assert "usage" in capsys.readouterr().err


def test_help_returns_zero(capsys):
    assert run_optimize(["--help"]) == 0
    assert "EXAMPLES" in capsys.readouterr().out


@pytest.mark.parametrize("first", ["-1e-3", "-.5", "-0"])
def test_negative_numbers_are_read_as_values(first, capsys):
    assert run_optimize([first, "2.5", "20.0", "1.2", "0.8", "0.5"]) == 1
    captured = capsys.readouterr()
    assert "Invalid input constraints" in captured.err
    assert "unrecognized arguments" not in captured.err


def test_options_between_numbers(capsys):
    argv = ["5.0", "2.5", "--details", "20.0", "-mi", "3", "1.2", "0.8", "-t", "0", "0.5"]
    assert run_optimize(argv) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["iterations"] == 3
    assert payload["status"] == "max_iterations_reached"


def test_negative_option_value_is_attached(capsys):
    assert run_optimize(SCENARIO_ARGS + ["-s", "-1e-3"]) == 1
    assert "step_size" in capsys.readouterr().err


def test_double_dash_separator(capsys):
    assert run_optimize(["--details", "--"] + SCENARIO_ARGS) == 0
    assert json.loads(capsys.readouterr().out)["status"] == "converged"


def test_negative_parameter_is_rejected(capsys):
    assert run_optimize(["-1", "2.5", "20.0", "1.2", "0.8", "0.5"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Invalid input constraints" in captured.err


def test_rate_too_high_for_bandwidth_is_rejected(capsys):
    assert run_optimize(["50", "1", "1", "1", "1", "1"]) == 1
    assert "Invalid input constraints" in capsys.readouterr().err


def test_details_flag(capsys):
    assert run_optimize(SCENARIO_ARGS + ["--details"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "converged"
    assert "baseline_latency" in payload


def test_cap_reached_warns_in_verbose_mode(capsys):
    argv = SCENARIO_ARGS + ["--max-iterations", "5", "--convergence-threshold", "0"]
    argv += ["-v", "--details"]
    assert run_optimize(argv) == 0
    captured = capsys.readouterr()
    payload = json.loads(captured.out)
    assert payload["status"] == "max_iterations_reached"
    assert payload["iterations"] == 5
    assert "iteration cap" in captured.err


def test_invalid_override_is_reported(capsys):
    assert run_optimize(SCENARIO_ARGS + ["--step-size", "-1"]) == 1
    assert "step_size" in capsys.readouterr().err


def test_config_file_and_dump(tmp_path, capsys):
    path = tmp_path / "solver.yaml"
    assert run_optimize(["--dump-default-config", str(path)]) == 0
    assert path.exists()
    capsys.readouterr()

    path.write_text("max_iterations: 3\nconvergence_threshold: 0.0\n")
    assert run_optimize(SCENARIO_ARGS + ["--config", str(path), "--details"]) == 0
    assert json.loads(capsys.readouterr().out)["iterations"] == 3


def test_missing_config_file(tmp_path, capsys):
    assert run_optimize(SCENARIO_ARGS + ["--config", str(tmp_path / "nope.yaml")]) == 1
    assert "not found" in capsys.readouterr().err
