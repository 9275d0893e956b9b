"""
Compartmental models which can be run by name.
"""
import logging
from types import ModuleType
from typing import Optional

from epiode.trajectory import Trajectory

from . import seir, seirv, sir

logger = logging.getLogger(__name__)

MODELS = {
    "sir": sir,
    "seir": seir,
    "seirv": seirv,
}


def get_model(model_name: str) -> ModuleType:
    try:
        return MODELS[model_name]
    except KeyError:
        raise ValueError(f"Unknown model: {model_name}. Choose from {list(MODELS.keys())}")


def run_model(model_name: str, params: Optional[dict] = None) -> Trajectory:
    """
    Build and run a model, using its default parameters updated with ``params``.

    Args:
        model_name: One of the keys of ``MODELS``.
        params (optional): Parameters to merge over the model's defaults.

    Returns:
        Trajectory: The compartment sizes at each time in the model's time grid.

    """
    module = get_model(model_name)
    model_params = module.base_params.update(params or {}).to_dict()
    model = module.build_model(model_params)
    solver = model.parameters.solver
    logger.info("Running %s model: %s", model_name, model.parameters.description)
    return model.run(solver=solver.type, **solver.get_solver_args())
