"""
This module contains the main disease modelling class.
"""
import logging
from typing import Any, Dict, List, Sequence

import numpy as np

from epiode.errors import InvalidInput
from epiode.solver import DerivativeFunction, SolverType, integrate
from epiode.trajectory import Trajectory

logger = logging.getLogger(__name__)


class CompartmentalModel:
    """
    A compartmental disease model.

    This model defines a set of compartments which each contain a population.
    Disease dynamics are defined by a derivative function which describes the rate of change of
    every compartment, given the current compartment sizes and the model parameters.
    The model is run over a grid of times, starting from some initial conditions to predict the future state of a disease.

    Args:
        times: The times to report compartment sizes for. The first time is the start of the run.
        compartments: The compartments to simulate, in the order used by ``derivative_func``.
        derivative_func: Called as ``derivative_func(time, state, parameters)``, returning the rate
            of change of each compartment.
        parameters (optional): Passed unchanged to ``derivative_func``.

    Attributes:
        times (np.ndarray): The times that the model will report.
        compartments (List[str]): The model's compartment names.
        initial_population (np.ndarray): The model's starting population. The indices of this
            array will match up with ``compartments``. This is zero by default and can be set with ``set_initial_population``.
        outputs (np.ndarray): The values of each compartment for each requested time. For ``C`` compartments and
            ``T`` times this will be a ``TxC`` matrix. The column indices of this array will match up with ``compartments`` and the row indices will match up with ``times``.
        trajectory (Trajectory): The same results, with compartment names attached.

    """

    def __init__(
        self,
        times: Sequence[float],
        compartments: List[str],
        derivative_func: DerivativeFunction,
        parameters: Any = None,
    ):
        if len(set(compartments)) != len(compartments):
            raise InvalidInput(f"Compartment names must be unique, got {compartments}")

        self.times = np.array(times, dtype=float)
        self.compartments = list(compartments)
        self.derivative_func = derivative_func
        self.parameters = parameters
        self.initial_population = np.zeros(len(self.compartments), dtype=float)
        # No outputs until the model has been run.
        self.outputs = None
        self.trajectory = None

    def set_initial_population(self, distribution: Dict[str, float]):
        """
        Sets the initial population of the model, which is zero by default.

        Args:
            distribution: A map of populations to be assigned to compartments.

        """
        unknown = [name for name in distribution if name not in self.compartments]
        if unknown:
            raise InvalidInput(f"Unknown compartments in initial population: {unknown}")

        for idx, name in enumerate(self.compartments):
            pop = distribution.get(name, 0)
            if pop < 0:
                raise InvalidInput(f"Population for {name} cannot be negative: {pop}")

            self.initial_population[idx] = pop

    def run(self, solver: str = SolverType.RUNGE_KUTTA, **solver_args) -> Trajectory:
        """
        Runs the model over the requested times.

        Args:
            solver (optional): The ODE solver to use, defaults to Runge-Kutta 4.
            **solver_args: Arguments passed to the solver, such as ``step_size``.

        Returns:
            Trajectory: The compartment sizes at each requested time.

        """
        logger.info("Running model with %s solver over %s times", solver, len(self.times))
        self.trajectory = integrate(
            self.derivative_func,
            self.initial_population,
            self.times,
            parameters=self.parameters,
            solver_type=solver,
            solver_args=solver_args,
            names=self.compartments,
        )
        self.outputs = self.trajectory.values
        return self.trajectory
