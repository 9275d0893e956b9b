"""
Loading, merging and validating model parameters.
"""
from copy import deepcopy
from typing import Callable, Optional, Union

import numpy as np
import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from epiode.solver import (
    DEFAULT_ATOL,
    DEFAULT_RTOL,
    DEFAULT_STEP_SIZE,
    SolverType,
)

Validator = Callable[[dict], None]
PathOrDict = Union[dict, str]

SOLVER_TYPES = [
    SolverType.RUNGE_KUTTA,
    SolverType.EULER,
    SolverType.ADAPTIVE,
    SolverType.ODE_INT,
    SolverType.SOLVE_IVP,
]


class Params:
    """
    A set of parameters that can be loaded by a model.
    Later updates are merged over earlier ones, with nested dicts merged key by key.

    Args:
        data: A path to a YAML file, or a dict of parameters.
        validator (optional): Called with the merged parameters after every update.

    """

    def __init__(self, data: PathOrDict, validator: Optional[Validator] = None):
        self._params = {}
        self._validator = validator
        self._update(data)

    def to_dict(self) -> dict:
        """
        Returns params as a dict.
        """
        return deepcopy(self._params)

    def update(self, new_params: PathOrDict):
        """
        Load some more parameters, overwriting existing where conflicts occur.
        Returns a copy of the current params
        """
        self_copy = self.copy()
        self_copy._update(new_params)
        return self_copy

    def copy(self):
        self_copy = Params({})
        self_copy._params = deepcopy(self._params)
        self_copy._validator = self._validator
        return self_copy

    def _update(self, new_params: PathOrDict):
        params = self._load_path_or_dict(new_params)
        self._params = merge_dicts(params, deepcopy(self._params))
        if self._validator:
            self._validator(self._params)

    def _load_path_or_dict(self, new_params: PathOrDict) -> dict:
        t = type(new_params)
        if t is str:
            # It's a path (hopefully), load it.
            return read_yaml_file(new_params)
        elif t is dict:
            return deepcopy(new_params)
        else:
            raise ValueError(f"Loaded parameter data must be a string or dict, got {t}")

    def __repr__(self):
        return "Params" + repr(self._params)

    def __getitem__(self, k):
        return self._params[k]


def read_yaml_file(path: str) -> dict:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def merge_dicts(src: dict, dest: dict) -> dict:
    """
    Merge src dict into dest dict.

    Args:
        src: Source dictionary
        dest: Destination dictionary
    Returns:
        The merged dictionary

    """
    for key, value in src.items():
        if isinstance(value, dict):
            # Get node or create one
            node = dest.setdefault(key, {})
            if node is None:
                dest[key] = value
            else:
                merge_dicts(value, node)
        else:
            dest[key] = value

    return dest


def build_nested_update(key: str, value) -> dict:
    """
    Returns a dict which sets a dotted key, such as ``solver.step_size``, when merged into params.
    """
    update = value
    for part in reversed(key.split(".")):
        update = {part: update}

    return update


class ParamModel(BaseModel):
    """
    Config for parameter models.
    Params should be immutable and forbid extraneous parameter specification.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)


class Time(ParamModel):
    """
    Parameters to define the model time period and reporting steps.
    """

    start: float
    end: float
    step: float = 1.0

    @model_validator(mode="after")
    def check_period(self):
        assert self.end > self.start, f"End time: {self.end} before start: {self.start}"
        assert self.step > 0, f"Time step must be positive, got {self.step}"
        num_steps = (self.end - self.start) / self.step
        assert abs(num_steps - round(num_steps)) < 1e-9, "Time step should be a factor of time period"
        return self

    def get_times(self) -> np.ndarray:
        num_steps = int(round((self.end - self.start) / self.step))
        return np.linspace(self.start, self.end, num=num_steps + 1)


class SolverConfig(ParamModel):
    """
    Choice of ODE solver and its settings.
    """

    type: str = SolverType.RUNGE_KUTTA
    step_size: float = DEFAULT_STEP_SIZE
    rtol: float = DEFAULT_RTOL
    atol: float = DEFAULT_ATOL

    @field_validator("type")
    @classmethod
    def check_type(cls, value):
        assert value in SOLVER_TYPES, f"Solver type {value} must be one of {SOLVER_TYPES}"
        return value

    @field_validator("step_size", "rtol", "atol")
    @classmethod
    def check_positive(cls, value):
        assert value > 0, f"Solver settings must be positive, got {value}"
        return value

    def get_solver_args(self) -> dict:
        if self.type in (SolverType.RUNGE_KUTTA, SolverType.EULER):
            return {"step_size": self.step_size}
        else:
            return {"rtol": self.rtol, "atol": self.atol}


class EpiParameters(ParamModel):
    """
    Parameters shared by every bundled model.
    Transmission and recovery rates are derived from the epidemiological quantities.
    """

    description: Optional[str] = None
    time: Time
    solver: SolverConfig = SolverConfig()
    population: float
    infection_seed: float
    r0: float
    infectious_period: float

    @field_validator("population", "r0", "infectious_period")
    @classmethod
    def check_positive(cls, value):
        assert value > 0, f"Value must be positive, got {value}"
        return value

    @model_validator(mode="after")
    def check_seed(self):
        msg = f"Infection seed {self.infection_seed} must be between 0 and the population {self.population}"
        assert 0 <= self.infection_seed <= self.population, msg
        return self

    @property
    def gamma(self) -> float:
        """Recovery rate"""
        return 1.0 / self.infectious_period

    @property
    def beta(self) -> float:
        """Transmission rate per infectious-susceptible pair"""
        return self.r0 * self.gamma / self.population
