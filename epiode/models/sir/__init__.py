from .model import COMPARTMENTS, INFECTIOUS_COMPARTMENTS, base_params, build_model, get_derivatives
from .parameters import Parameters
