from pathlib import Path

import numpy as np

from epiode.model import CompartmentalModel
from epiode.params import Params

from .parameters import Parameters

COMPARTMENTS = ["S", "E", "I", "R"]
INFECTIOUS_COMPARTMENTS = ["I"]

base_params = Params(
    str(Path(__file__).parent.resolve() / "params.yml"),
    validator=lambda params: Parameters(**params),
)


def get_derivatives(time: float, state: np.ndarray, params: Parameters) -> np.ndarray:
    susceptible, exposed, infectious, _ = state
    infection = params.beta * susceptible * infectious
    progression = params.sigma * exposed
    recovery = params.gamma * infectious
    return np.array(
        [
            -infection,
            infection - progression,
            progression - recovery,
            recovery,
        ]
    )


def build_model(params: dict) -> CompartmentalModel:
    """
    Returns the SEIR model, ready to run.
    Infected people pass through a non-infectious exposed compartment before becoming infectious.
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
