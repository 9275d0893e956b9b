"""
Exceptions raised while building or integrating a model.
"""
from typing import Optional


class IntegrationError(Exception):
    """Base class for all errors raised by the integrator."""


class InvalidInput(IntegrationError, ValueError):
    """
    The inputs to an integration are malformed: a bad time grid, an empty or non-finite
    state vector, or a derivative function that returns the wrong number of values.
    """


class NumericalError(IntegrationError, ArithmeticError):
    """
    The integration produced a value that cannot be trusted, typically a NaN or infinite
    compartment size caused by a poorly chosen parameter.

    Args:
        message: Description of what went wrong.
        time_index: Index of the requested time point that could not be computed.
        time: The requested time point that could not be computed.
        variable_index (optional): Index of the offending state variable, if known.
        outputs (optional): The rows that were successfully computed before the failure.

    Attributes:
        variable (Optional[str]): Name of the offending state variable, set by the integrator.
        trajectory (Optional[Trajectory]): The partial, incomplete trajectory, set by the integrator.

    """

    def __init__(
        self,
        message: str,
        time_index: int,
        time: float,
        variable_index: Optional[int] = None,
        outputs=None,
    ):
        super().__init__(message)
        self.message = message
        self.time_index = time_index
        self.time = time
        self.variable_index = variable_index
        self.outputs = outputs
        self.variable = None
        self.trajectory = None

    def __str__(self) -> str:
        msg = f"{self.message} (time index {self.time_index}, time {self.time}"
        if self.variable is not None:
            msg += f", variable {self.variable}"
        elif self.variable_index is not None:
            msg += f", variable index {self.variable_index}"

        return msg + ")"
