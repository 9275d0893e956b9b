"""
epiode: compartmental epidemic models solved as systems of ODEs.
"""
from .errors import IntegrationError, InvalidInput, NumericalError
from .model import CompartmentalModel
from .solver import SolverType, integrate
from .trajectory import Trajectory

__version__ = "1.0.0"
