"""
Tools for solving compartmental ODEs
"""
import logging
import warnings
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.integrate import ODEintWarning, odeint, solve_ivp

from epiode.errors import InvalidInput, NumericalError
from epiode.trajectory import TIME_COLUMN, Trajectory

logger = logging.getLogger(__name__)

# A model's derivative function: (time, state, parameters) -> d(state)/dt
DerivativeFunction = Callable[[float, np.ndarray, Any], np.ndarray]
# The same function with the parameters already bound: (time, state) -> d(state)/dt
OdeFunction = Callable[[float, np.ndarray], np.ndarray]
StepFunction = Callable[[OdeFunction, float, float, np.ndarray], np.ndarray]
InitialState = Union[Mapping[str, float], Sequence[float], np.ndarray]

DEFAULT_STEP_SIZE = 0.1
DEFAULT_RTOL = 1e-6
DEFAULT_ATOL = 1e-9
DEFAULT_MAX_STEPS = 100000

_ODEINT_SUCCESS = "Integration successful."


class SolverType:
    """
    Options for ODE solver used by the integrator
    """

    RUNGE_KUTTA = "rk4"
    EULER = "euler"
    ADAPTIVE = "rk45"
    ODE_INT = "odeint"
    SOLVE_IVP = "solve_ivp"


def integrate(
    derivative_func: DerivativeFunction,
    initial_state: InitialState,
    time_points: Sequence[float],
    parameters: Any = None,
    solver_type: str = SolverType.RUNGE_KUTTA,
    solver_args: Optional[dict] = None,
    names: Optional[List[str]] = None,
) -> Trajectory:
    """
    Integrate a system of ODEs, returning the state at each requested time point.

    Args:
        derivative_func: Returns the time derivative of the state, called as
            ``derivative_func(time, state, parameters)``.
        initial_state: The state at ``time_points[0]``, either as an ordered mapping of
            name to value or as a sequence of values.
        time_points: The strictly increasing times to report the state at.
        parameters (optional): Passed unchanged to every call of ``derivative_func``.
        solver_type (optional): One of the ``SolverType`` options, defaults to ``rk4``.
        solver_args (optional): Solver settings, such as ``step_size``, ``rtol`` or ``atol``.
        names (optional): State variable names, when ``initial_state`` is not a mapping.

    Returns:
        Trajectory: The state at each requested time, with the first row equal to
        ``initial_state``.

    Raises:
        InvalidInput: The time grid, initial state or derivative function is malformed.
        NumericalError: A state variable became NaN or infinite, or the solver failed.

    """
    solver_args = solver_args or {}
    times = _validate_times(time_points)
    names, values = _validate_state(initial_state, names)
    try:
        solver = _SOLVERS[solver_type]
    except KeyError:
        raise InvalidInput(f"Solver type {solver_type} is not available")

    def ode_func(time: float, state: np.ndarray) -> np.ndarray:
        return np.asarray(derivative_func(time, state, parameters), dtype=float)

    # Check the derivative function agrees with the initial state before doing any work.
    probe = ode_func(times[0], values.copy())
    if probe.shape != values.shape:
        raise InvalidInput(
            f"Derivative function returned shape {probe.shape}, expected {values.shape} "
            f"to match the initial state {names}"
        )

    logger.debug(
        "Integrating %s variables over %s time points with %s solver",
        len(names),
        len(times),
        solver_type,
    )
    try:
        outputs = solver(ode_func, values, times, solver_args)
    except NumericalError as e:
        if e.variable_index is not None:
            e.variable = names[e.variable_index]

        partial = e.outputs if e.outputs is not None else values.reshape(1, -1)
        e.trajectory = Trajectory(times[: len(partial)], partial, names, is_complete=False)
        logger.error("Integration failed: %s", e)
        raise

    return Trajectory(times, outputs, names)


def solve_with_rk4(
    ode_func: OdeFunction, values: np.ndarray, times: np.ndarray, solver_args: dict
) -> np.ndarray:
    """
    Solve ODE with a fixed step, 4th order Runge-Kutta method.
    Each interval between requested times is split into equal sub-steps no larger than ``step_size``.
    """
    return _solve_fixed_step(_rk4_step, ode_func, values, times, solver_args)


def solve_with_euler(
    ode_func: OdeFunction, values: np.ndarray, times: np.ndarray, solver_args: dict
) -> np.ndarray:
    """
    Solve ODE with a fixed step, forward Euler method.

    `WARNING: This method is too innacurate to use for real applications.`
    """
    return _solve_fixed_step(_euler_step, ode_func, values, times, solver_args)


def _rk4_step(ode_func: OdeFunction, time: float, next_time: float, values: np.ndarray):
    step_size = next_time - time
    mid_time = time + step_size / 2
    k1 = ode_func(time, values)
    k2 = ode_func(mid_time, values + step_size * k1 / 2)
    k3 = ode_func(mid_time, values + step_size * k2 / 2)
    k4 = ode_func(next_time, values + step_size * k3)
    return values + (step_size / 6) * (k1 + 2 * k2 + 2 * k3 + k4)


def _euler_step(ode_func: OdeFunction, time: float, next_time: float, values: np.ndarray):
    return values + (next_time - time) * ode_func(time, values)


def _solve_fixed_step(
    step_func: StepFunction,
    ode_func: OdeFunction,
    values: np.ndarray,
    times: np.ndarray,
    solver_args: dict,
) -> np.ndarray:
    step_size = solver_args.get("step_size", DEFAULT_STEP_SIZE)
    _check_positive("step_size", step_size)
    results_arr = np.zeros([len(times), len(values)])
    results_arr[0] = values
    for time_idx in range(len(times) - 1):
        start_time, end_time = times[time_idx], times[time_idx + 1]
        num_steps = _get_num_substeps(end_time - start_time, step_size)
        sub_step = (end_time - start_time) / num_steps
        step_values = results_arr[time_idx]
        for step_idx in range(num_steps):
            time = start_time + step_idx * sub_step
            # The last sub-step always lands exactly on the requested time.
            next_time = end_time if step_idx == num_steps - 1 else time + sub_step
            step_values = step_func(ode_func, time, next_time, step_values)
            _check_finite(step_values, time_idx + 1, times, results_arr)

        results_arr[time_idx + 1] = step_values

    return results_arr


def _get_num_substeps(time_span: float, step_size: float) -> int:
    # Rounding stops float noise from adding an extra sub-step, e.g. 0.3 / 0.1 -> 3.0000000000000004
    return max(1, int(np.ceil(round(time_span / step_size, 9))))


# Dormand-Prince 5(4) coefficients.
_DP_C = np.array([0, 1 / 5, 3 / 10, 4 / 5, 8 / 9, 1, 1])
_DP_A = [
    np.array([]),
    np.array([1 / 5]),
    np.array([3 / 40, 9 / 40]),
    np.array([44 / 45, -56 / 15, 32 / 9]),
    np.array([19372 / 6561, -25360 / 2187, 64448 / 6561, -212 / 729]),
    np.array([9017 / 3168, -355 / 33, 46732 / 5247, 49 / 176, -5103 / 18656]),
    np.array([35 / 384, 0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84]),
]
_DP_B = np.array([35 / 384, 0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84, 0])
_DP_E = np.array(
    [71 / 57600, 0, -71 / 16695, 71 / 1920, -17253 / 339200, 22 / 525, -1 / 40]
)
_SAFETY = 0.9
_MIN_FACTOR = 0.2
_MAX_FACTOR = 10.0


def solve_with_rk45(
    ode_func: OdeFunction, values: np.ndarray, times: np.ndarray, solver_args: dict
) -> np.ndarray:
    """
    Solve ODE with an adaptive Dormand-Prince 5(4) method.

    The step size is adjusted so that the estimated local error stays within
    ``atol + rtol * |y|`` for every variable. Steps are shortened to land exactly on each
    requested time, so no interpolation is needed between them.
    """
    rtol = solver_args.get("rtol", DEFAULT_RTOL)
    atol = solver_args.get("atol", DEFAULT_ATOL)
    max_steps = solver_args.get("max_steps", DEFAULT_MAX_STEPS)
    _check_positive("rtol", rtol)
    _check_positive("atol", atol)
    _check_positive("max_steps", max_steps)

    results_arr = np.zeros([len(times), len(values)])
    results_arr[0] = values
    if len(times) == 1:
        return results_arr

    time = times[0]
    step_values = results_arr[0]
    gradient = ode_func(time, step_values)
    step_size = solver_args.get("first_step")
    if step_size is None:
        step_size = _select_initial_step(ode_func, time, step_values, gradient, rtol, atol)
    else:
        _check_positive("first_step", step_size)

    for time_idx in range(len(times) - 1):
        end_time = times[time_idx + 1]
        num_steps = 0
        while time < end_time:
            if num_steps >= max_steps:
                raise NumericalError(
                    f"Adaptive solver exceeded {max_steps} steps",
                    time_idx + 1,
                    end_time,
                    outputs=results_arr[: time_idx + 1],
                )

            num_steps += 1
            next_time = time + step_size
            if next_time >= end_time - 10 * np.spacing(abs(end_time)):
                next_time = end_time

            step_size = next_time - time
            new_values, new_gradient, error = _dormand_prince_step(
                ode_func, time, next_time, step_values, gradient
            )
            scale = atol + rtol * np.maximum(np.abs(step_values), np.abs(new_values))
            error_norm = np.sqrt(np.mean((error / scale) ** 2))
            if error_norm <= 1:
                time, step_values, gradient = next_time, new_values, new_gradient
                _check_finite(step_values, time_idx + 1, times, results_arr)
                factor = _MAX_FACTOR if error_norm == 0 else _SAFETY * error_norm ** -0.2
                step_size *= min(_MAX_FACTOR, factor)
                continue

            if np.isfinite(error_norm):
                step_size *= max(_MIN_FACTOR, _SAFETY * error_norm ** -0.2)
            else:
                # Usually a blow up from too large a step, so retry with a smaller one.
                step_size *= _MIN_FACTOR

            if step_size < 10 * np.spacing(max(abs(time), 1.0)):
                _check_finite(new_values, time_idx + 1, times, results_arr)
                raise NumericalError(
                    f"Adaptive solver step size underflow at time {time}",
                    time_idx + 1,
                    end_time,
                    outputs=results_arr[: time_idx + 1],
                )

        results_arr[time_idx + 1] = step_values

    return results_arr


def _dormand_prince_step(
    ode_func: OdeFunction,
    time: float,
    next_time: float,
    values: np.ndarray,
    gradient: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Returns the 5th order solution, its gradient and the local error estimate.
    """
    step_size = next_time - time
    k = np.zeros([7, len(values)])
    k[0] = gradient
    for stage in range(1, 6):
        stage_values = values + step_size * (_DP_A[stage] @ k[:stage])
        k[stage] = ode_func(time + _DP_C[stage] * step_size, stage_values)

    new_values = values + step_size * (_DP_B @ k)
    # The final stage is evaluated at the new point and reused as the next step's first stage.
    k[6] = ode_func(next_time, new_values)
    error = step_size * (_DP_E @ k)
    return new_values, k[6], error


def _select_initial_step(
    ode_func: OdeFunction,
    time: float,
    values: np.ndarray,
    gradient: np.ndarray,
    rtol: float,
    atol: float,
) -> float:
    """
    Guess a first step size from the size of the state and its first two derivatives.
    """
    scale = atol + rtol * np.abs(values)
    d0 = np.sqrt(np.mean((values / scale) ** 2))
    d1 = np.sqrt(np.mean((gradient / scale) ** 2))
    h0 = 1e-6 if d0 < 1e-5 or d1 < 1e-5 else 0.01 * d0 / d1
    guess_values = values + h0 * gradient
    guess_gradient = ode_func(time + h0, guess_values)
    d2 = np.sqrt(np.mean(((guess_gradient - gradient) / scale) ** 2)) / h0
    if d1 <= 1e-15 and d2 <= 1e-15:
        h1 = max(1e-6, h0 * 1e-3)
    else:
        h1 = (0.01 / max(d1, d2)) ** (1 / 5)

    step_size = min(100 * h0, h1)
    if not np.isfinite(step_size) or step_size <= 0:
        step_size = 1e-6

    return step_size


def solve_with_odeint(
    ode_func: OdeFunction, values: np.ndarray, times: np.ndarray, solver_args: dict
) -> np.ndarray:
    """
    Solve ODE with SciPy's odeint solver.
    ``mxstep`` limits the number of internal steps taken for each requested time.

    https://docs.scipy.org/doc/scipy/reference/generated/scipy.integrate.odeint.html
    """
    atol = solver_args.get("atol", DEFAULT_ATOL)
    rtol = solver_args.get("rtol", DEFAULT_RTOL)
    mxstep = solver_args.get("mxstep", 0)
    if len(times) == 1:
        return values.reshape(1, -1).copy()

    with warnings.catch_warnings():
        # Failures are raised below instead.
        warnings.simplefilter("ignore", ODEintWarning)
        results_arr, info = odeint(
            ode_func,
            values,
            times,
            atol=atol,
            rtol=rtol,
            mxstep=mxstep,
            tfirst=True,
            full_output=True,
        )

    if info["message"] != _ODEINT_SUCCESS:
        # An interval is done once the solver's internal time has reached its end.
        reached = info["tcur"] >= times[1:]
        num_done = int(np.argmin(reached)) if not reached.all() else len(reached)
        time_idx = min(num_done + 1, len(times) - 1)
        raise NumericalError(
            f"odeint failed: {info['message']}",
            time_idx,
            times[time_idx],
            outputs=_get_finite_prefix(results_arr[:time_idx], values),
        )

    results_arr[0] = values
    _check_finite_rows(results_arr, times)
    return results_arr


def solve_with_ivp(
    ode_func: OdeFunction, values: np.ndarray, times: np.ndarray, solver_args: dict
) -> np.ndarray:
    """
    Solve ODE with SciPy's solve_ivp solver.
    The integration method can be chosen with the ``method`` solver argument, e.g. ``"LSODA"``
    for stiff problems.

    https://docs.scipy.org/doc/scipy/reference/generated/scipy.integrate.solve_ivp.html
    """
    atol = solver_args.get("atol", DEFAULT_ATOL)
    rtol = solver_args.get("rtol", DEFAULT_RTOL)
    method = solver_args.get("method", "RK45")
    t_span = (times[0], times[-1])
    results = solve_ivp(
        ode_func, t_span, values, method=method, t_eval=times, atol=atol, rtol=rtol
    )
    results_arr = results.y.transpose()
    if not results.success:
        num_done = len(results_arr)
        time_idx = min(num_done, len(times) - 1)
        raise NumericalError(
            f"solve_ivp failed: {results.message}",
            time_idx,
            times[time_idx],
            outputs=_get_finite_prefix(results_arr, values),
        )

    results_arr = np.array(results_arr)
    results_arr[0] = values
    _check_finite_rows(results_arr, times)
    return results_arr


def _get_finite_prefix(results_arr: np.ndarray, values: np.ndarray) -> np.ndarray:
    if len(results_arr) == 0:
        return values.reshape(1, -1)

    bad_rows = np.flatnonzero(~np.isfinite(results_arr).all(axis=1))
    num_good = bad_rows[0] if len(bad_rows) else len(results_arr)
    return np.vstack([values, results_arr[1:num_good]])


def _check_finite(values: np.ndarray, time_idx: int, times: np.ndarray, results_arr: np.ndarray):
    """
    Raise a NumericalError if any value is NaN or infinite.
    """
    bad_idxs = np.flatnonzero(~np.isfinite(values))
    if len(bad_idxs):
        raise NumericalError(
            "Non-finite value produced during integration",
            time_idx,
            times[time_idx],
            variable_index=int(bad_idxs[0]),
            outputs=results_arr[:time_idx].copy(),
        )


def _check_finite_rows(results_arr: np.ndarray, times: np.ndarray):
    for time_idx, row in enumerate(results_arr):
        _check_finite(row, time_idx, times, results_arr)


def _check_positive(name: str, value: float):
    if not value > 0:
        raise InvalidInput(f"Solver argument {name} must be positive, got {value}")


def _validate_times(time_points: Sequence[float]) -> np.ndarray:
    try:
        times = np.array(time_points, dtype=float)
    except (TypeError, ValueError):
        raise InvalidInput(f"Time points must be a sequence of numbers, got {time_points}")

    if times.ndim != 1:
        raise InvalidInput(f"Time points must be one dimensional, got shape {times.shape}")
    if len(times) == 0:
        raise InvalidInput("At least one time point is required")
    if not np.isfinite(times).all():
        raise InvalidInput("Time points must be finite")

    bad_idxs = np.flatnonzero(np.diff(times) <= 0)
    if len(bad_idxs):
        idx = bad_idxs[0] + 1
        raise InvalidInput(
            f"Time points must be strictly increasing: time {times[idx]} at index {idx} "
            f"follows {times[idx - 1]}"
        )

    return times


def _validate_state(
    initial_state: InitialState, names: Optional[List[str]]
) -> Tuple[List[str], np.ndarray]:
    if isinstance(initial_state, Mapping):
        if names is not None and list(names) != list(initial_state.keys()):
            raise InvalidInput("Names must match the keys of the initial state mapping")

        names = list(initial_state.keys())
        initial_state = list(initial_state.values())

    try:
        values = np.array(initial_state, dtype=float)
    except (TypeError, ValueError):
        raise InvalidInput(f"Initial state must be a sequence of numbers, got {initial_state}")

    if values.ndim != 1:
        raise InvalidInput(f"Initial state must be one dimensional, got shape {values.shape}")
    if len(values) == 0:
        raise InvalidInput("Initial state must not be empty")
    if not np.isfinite(values).all():
        raise InvalidInput(f"Initial state must be finite, got {values}")

    if names is None:
        names = [f"y{idx}" for idx in range(len(values))]
    else:
        names = [str(n) for n in names]

    if len(names) != len(values):
        raise InvalidInput(f"Got {len(names)} names for {len(values)} state variables")
    if len(set(names)) != len(names):
        raise InvalidInput(f"State variable names must be unique, got {names}")
    if TIME_COLUMN in names:
        raise InvalidInput(f"'{TIME_COLUMN}' is reserved and cannot name a state variable")

    return names, values


_SOLVERS = {
    SolverType.RUNGE_KUTTA: solve_with_rk4,
    SolverType.EULER: solve_with_euler,
    SolverType.ADAPTIVE: solve_with_rk45,
    SolverType.ODE_INT: solve_with_odeint,
    SolverType.SOLVE_IVP: solve_with_ivp,
}
