"""
Type definition for model parameters
"""
from epiode.params import EpiParameters


class Parameters(EpiParameters):
    """
    SIR model parameters.
    The transmission rate ``beta`` and recovery rate ``gamma`` are derived from
    ``r0``, ``infectious_period`` and ``population``.
    """
