"""
Runs epiode models

You can access this script from your CLI by running:

    python -m epiode --help

"""
import logging
import os

import click
from pydantic import ValidationError

from epiode.errors import IntegrationError
from epiode.models import MODELS, get_model, run_model
from epiode.params import SOLVER_TYPES, read_yaml_file
from epiode.sweep import run_sweep
from epiode.trajectory import Trajectory
from epiode.utils import set_logging_config

logger = logging.getLogger(__name__)


@click.group()
@click.option("--quiet", is_flag=True, help="Only log warnings and errors.")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file.")
def cli(quiet, log_file):
    """Epidemic ODE models CLI"""
    set_logging_config(not quiet, log_file)


@cli.command("models")
def list_models():
    """List the available models"""
    for name, module in MODELS.items():
        click.echo(f"{name}: {module.base_params['description']}")


@cli.command("run")
@click.argument("model", type=click.Choice(list(MODELS.keys())))
@click.option("--params", "params_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--solver", type=click.Choice(SOLVER_TYPES))
@click.option("--step-size", type=float)
@click.option("--output", type=click.Path(dir_okay=False), help="Write the trajectory to a CSV.")
def run(model, params_path, solver, step_size, output):
    """Run a model and summarise the results"""
    params = read_yaml_file(params_path) if params_path else {}
    solver_params = params.setdefault("solver", {})
    if solver is not None:
        solver_params["type"] = solver
    if step_size is not None:
        solver_params["step_size"] = step_size

    try:
        trajectory = run_model(model, params)
    except (IntegrationError, ValidationError) as e:
        logger.error("Model %s failed", model)
        raise click.ClickException(str(e))

    infectious = get_model(model).INFECTIOUS_COMPARTMENTS
    peak_time, peak_value = trajectory.get_peak(infectious)
    click.echo(f"Peak infectious: {peak_value:.2f} at time {peak_time:g}")
    final_state = trajectory.get_state(-1)
    final_sizes = ", ".join(f"{name}={value:.2f}" for name, value in final_state.items())
    click.echo(f"Final compartment sizes: {final_sizes}")
    if output:
        trajectory.to_csv(output)
        logger.info("Wrote %s model outputs to %s", model, output)


@cli.command("sweep")
@click.argument("model", type=click.Choice(list(MODELS.keys())))
@click.argument("param")
@click.argument("values", nargs=-1, required=True, type=float)
@click.option("--workers", type=int, default=1, help="Number of processes to run in.")
@click.option("--output-dir", type=click.Path(file_okay=False), help="Write one CSV per value here.")
def sweep(model, param, values, workers, output_dir):
    """Run a model for several values of one parameter"""
    try:
        results = run_sweep(model, param, values, max_workers=workers)
    except (IntegrationError, ValidationError) as e:
        logger.error("Sweep of %s over %s failed", model, param)
        raise click.ClickException(str(e))

    infectious = get_model(model).INFECTIOUS_COMPARTMENTS
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    for value, trajectory in results.items():
        peak_time, peak_value = trajectory.get_peak(infectious)
        click.echo(f"{param}={value:g}: peak infectious {peak_value:.2f} at time {peak_time:g}")
        if output_dir:
            _write_sweep_output(trajectory, output_dir, model, param, value)


def _write_sweep_output(
    trajectory: Trajectory, output_dir: str, model: str, param: str, value: float
):
    path = os.path.join(output_dir, f"{model}-{param}-{value:g}.csv")
    trajectory.to_csv(path)
    logger.info("Wrote %s", path)
