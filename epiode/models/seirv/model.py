"""
SEIR model with vaccination.

Susceptible people are vaccinated at a constant rate and move into a parallel set of vaccinated
compartments (**Sv**, **Ev**, **Iv**, **Rv**). Vaccinated susceptibles are infected at a reduced
rate, scaled by ``1 - protection``. Vaccinated and unvaccinated infectious people are equally
infectious.
"""
from pathlib import Path

import numpy as np

from epiode.model import CompartmentalModel
from epiode.params import Params

from .parameters import Parameters

COMPARTMENTS = ["S", "E", "I", "R", "Sv", "Ev", "Iv", "Rv"]
INFECTIOUS_COMPARTMENTS = ["I", "Iv"]

base_params = Params(
    str(Path(__file__).parent.resolve() / "params.yml"),
    validator=lambda params: Parameters(**params),
)


def get_derivatives(time: float, state: np.ndarray, params: Parameters) -> np.ndarray:
    S, E, I, R, Sv, Ev, Iv, Rv = state
    force_of_infection = params.beta * (I + Iv)
    infection = force_of_infection * S
    vaccinated_infection = (1 - params.protection) * force_of_infection * Sv
    vaccination = params.vaccination_rate * S
    return np.array(
        [
            -infection - vaccination,
            infection - params.sigma * E,
            params.sigma * E - params.gamma * I,
            params.gamma * I,
            vaccination - vaccinated_infection,
            vaccinated_infection - params.sigma * Ev,
            params.sigma * Ev - params.gamma * Iv,
            params.gamma * Iv,
        ]
    )


def build_model(params: dict) -> CompartmentalModel:
    """
    Returns the SEIRV model, ready to run.
    Nobody is vaccinated at the start of the run.
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
