# PyTest configuration file.
# See pytest fixtue docs: https://docs.pytest.org/en/latest/fixture.html
import pytest

from epiode.models import sir


@pytest.fixture
def sir_params():
    """
    The default SIR model parameters as a dict.
    """
    return sir.base_params.to_dict()


@pytest.fixture
def linear_decay():
    """
    A derivative function for exponential decay, dy/dt = -k * y, with k taken from the parameters.
    """

    def derivative_func(time, values, params):
        return -params["k"] * values

    return derivative_func
