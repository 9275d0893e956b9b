from pathlib import Path

import numpy as np

from epiode.model import CompartmentalModel
from epiode.params import Params

from .parameters import Parameters

COMPARTMENTS = ["S", "I", "R"]
INFECTIOUS_COMPARTMENTS = ["I"]

base_params = Params(
    str(Path(__file__).parent.resolve() / "params.yml"),
    validator=lambda params: Parameters(**params),
)


def get_derivatives(time: float, state: np.ndarray, params: Parameters) -> np.ndarray:
    susceptible, infectious, _ = state
    infection = params.beta * susceptible * infectious
    recovery = params.gamma * infectious
    return np.array([-infection, infection - recovery, recovery])


def build_model(params: dict) -> CompartmentalModel:
    """
    Returns the SIR model, ready to run.
    """
    params = Parameters(**params)
    model = CompartmentalModel(
        times=params.time.get_times(),
        compartments=COMPARTMENTS,
        derivative_func=get_derivatives,
        parameters=params,
    )
    model.set_initial_population(
        distribution={
            "S": params.population - params.infection_seed,
            "I": params.infection_seed,
        }
    )
    return model
