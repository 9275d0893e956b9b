"""
Type definition for model parameters
"""
from pydantic import field_validator

from epiode.models.seir.parameters import Parameters as SeirParameters


class Parameters(SeirParameters):
    """
    SEIRV model parameters.

    Args:
        vaccination_rate: Proportion of the unvaccinated susceptible population vaccinated per day.
        protection: Proportional reduction in the susceptibility of vaccinated people, where
            ``0`` is no protection and ``1`` is complete protection.

    """

    vaccination_rate: float
    protection: float

    @field_validator("vaccination_rate")
    @classmethod
    def check_vaccination_rate(cls, value):
        assert value >= 0, f"Vaccination rate cannot be negative, got {value}"
        return value

    @field_validator("protection")
    @classmethod
    def check_protection(cls, value):
        assert 0 <= value <= 1, f"Protection must be between 0 and 1, got {value}"
        return value
