import os

import yaml
from click.testing import CliRunner

from epiode.cli import cli
from epiode.trajectory import Trajectory


def test_list_models():
    result = CliRunner().invoke(cli, ["--quiet", "models"])
    assert result.exit_code == 0, result.output
    for name in ("sir", "seir", "seirv"):
        assert f"{name}:" in result.output


def test_run_model(tmp_path):
    output = str(tmp_path / "sir.csv")
    result = CliRunner().invoke(cli, ["--quiet", "run", "sir", "--output", output])
    assert result.exit_code == 0, result.output
    assert "Peak infectious" in result.output
    assert "Final compartment sizes: S=" in result.output

    trajectory = Trajectory.from_csv(output)
    assert trajectory.names == ["S", "I", "R"]
    assert len(trajectory) == 150


def test_run_model_with_params_file(tmp_path):
    params_path = tmp_path / "params.yml"
    params_path.write_text(yaml.dump({"r0": 3.0, "time": {"end": 60}}))
    output = str(tmp_path / "seirv.csv")
    result = CliRunner().invoke(
        cli,
        [
            "--quiet",
            "run",
            "seirv",
            "--params",
            str(params_path),
            "--solver",
            "rk45",
            "--output",
            output,
        ],
    )
    assert result.exit_code == 0, result.output
    trajectory = Trajectory.from_csv(output)
    assert len(trajectory) == 60
    assert "Iv" in trajectory.names


def test_run_model_bad_params(tmp_path):
    params_path = tmp_path / "params.yml"
    params_path.write_text(yaml.dump({"r0": -3.0}))
    result = CliRunner().invoke(cli, ["--quiet", "run", "sir", "--params", str(params_path)])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_run_model_writes_log_file(tmp_path):
    log_file = str(tmp_path / "log" / "epiode.log")
    result = CliRunner().invoke(cli, ["--quiet", "--log-file", log_file, "run", "sir"])
    assert result.exit_code == 0, result.output
    with open(log_file) as f:
        assert "Running sir model" in f.read()


def test_sweep(tmp_path):
    output_dir = str(tmp_path / "sweep")
    result = CliRunner().invoke(
        cli, ["--quiet", "sweep", "sir", "r0", "1.5", "2.5", "--output-dir", output_dir]
    )
    assert result.exit_code == 0, result.output
    assert "r0=1.5: peak infectious" in result.output
    assert "r0=2.5: peak infectious" in result.output
    assert sorted(os.listdir(output_dir)) == ["sir-r0-1.5.csv", "sir-r0-2.5.csv"]


def test_run_model_zero_step_size():
    result = CliRunner().invoke(cli, ["--quiet", "run", "sir", "--step-size", "0"])
    assert result.exit_code == 1
    assert "step_size" in result.output


def test_sweep_duplicate_values():
    result = CliRunner().invoke(cli, ["--quiet", "sweep", "sir", "r0", "1.5", "1.5"])
    assert result.exit_code == 1
    assert "unique" in result.output
