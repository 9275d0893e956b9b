"""
Type definition for model parameters
"""
from pydantic import field_validator

from epiode.params import EpiParameters


class Parameters(EpiParameters):
    """
    SEIR model parameters, adding a latent period to the SIR parameters.
    """

    latent_period: float

    @field_validator("latent_period")
    @classmethod
    def check_latent_period(cls, value):
        assert value > 0, f"Latent period must be positive, got {value}"
        return value

    @property
    def sigma(self) -> float:
        """Progression rate from exposed to infectious"""
        return 1.0 / self.latent_period
