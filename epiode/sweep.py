"""
Run a model many times, varying one parameter.
Each run is independent, so runs can be spread over several processes.
"""
import logging
import multiprocessing as mp
import traceback
from concurrent.futures import ProcessPoolExecutor
from copy import deepcopy
from typing import Any, Callable, Dict, List, Optional, Sequence

from epiode.errors import InvalidInput
from epiode.models import run_model
from epiode.params import build_nested_update, merge_dicts
from epiode.trajectory import Trajectory

logger = logging.getLogger(__name__)


MAX_WORKERS = max(1, mp.cpu_count() - 1)


def run_sweep(
    model_name: str,
    param_name: str,
    values: Sequence[Any],
    base_update: Optional[dict] = None,
    max_workers: int = 1,
) -> Dict[Any, Trajectory]:
    """
    Run a model once for each value of a single parameter.

    Args:
        model_name: The name of the model to run.
        param_name: The parameter to vary. Nested parameters use dots, e.g. ``solver.step_size``.
        values: The values to give the parameter.
        base_update (optional): Parameters applied to every run, before the swept parameter.
        max_workers (optional): Number of processes to run in, defaults to running in this process.

    Returns:
        A map of each parameter value to its trajectory, in the order of ``values``.

    Raises:
        InvalidInput: ``values`` contains the same value more than once.

    """
    if len(set(values)) != len(values):
        raise InvalidInput(f"Sweep values for {param_name} must be unique, got {list(values)}")

    arg_list = []
    for value in values:
        params = merge_dicts(build_nested_update(param_name, value), deepcopy(base_update or {}))
        arg_list.append((model_name, params))

    logger.info("Sweeping %s over %s values for the %s model", param_name, len(values), model_name)
    results = run_parallel_tasks(run_model, arg_list, max_workers=max_workers)
    return dict(zip(values, results))


def run_parallel_tasks(func: Callable, arg_list: List[Any], max_workers: int = MAX_WORKERS) -> list:
    """
    Call ``func`` with each set of arguments, returning results in the order of ``arg_list``.
    If any task fails, every failure is logged and the first one is raised once all tasks are done.
    """
    if len(arg_list) == 1 or max_workers == 1:
        return [func(*args) for args in arg_list]

    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(func, *args) for args in arg_list]
        success_results = []
        failure_exceptions = []
        for future in futures:
            exception = future.exception()
            if exception:
                logger.info("Parallel task failed.")
                failure_exceptions.append(exception)
                continue

            success_results.append(future.result())

    logger.info("Successfully ran %s parallel tasks", len(success_results))
    for e in failure_exceptions:
        start = "\n\n===== Exception when running a parallel task =====\n"
        end = "\n================ End of error message ================\n"
        error_message = "".join(traceback.format_exception(e.__class__, e, e.__traceback__))
        logger.error(start + error_message + end)

    if failure_exceptions:
        logger.error("%s / %s parallel tasks failed", len(failure_exceptions), len(arg_list))
        raise failure_exceptions[0]

    return success_results
