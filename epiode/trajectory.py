"""
This module contains the result type produced by the integrator.
"""
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd

from epiode.errors import InvalidInput

TIME_COLUMN = "time"


class Trajectory:
    """
    The values of each state variable at each requested time point.

    Args:
        times: The requested time points.
        values: The state at each time point. For ``T`` times and ``C`` variables this is a
            ``TxC`` matrix whose columns match ``names`` and whose rows match ``times``.
        names: The state variable names, in state vector order.
        is_complete (optional): False when the integration failed part way through and
            ``values`` only covers the times which were computed.

    Example:
        Look up the infectious series of an SIR run::

            infectious = trajectory["I"]
            peak_time, peak_value = trajectory.get_peak(["I"])

    """

    def __init__(
        self,
        times: np.ndarray,
        values: np.ndarray,
        names: List[str],
        is_complete: bool = True,
    ):
        self.times = np.asarray(times, dtype=float)
        self.values = np.asarray(values, dtype=float).reshape(len(self.times), len(names))
        self.names = list(names)
        self.is_complete = is_complete
        self._name_lookup = {name: idx for idx, name in enumerate(self.names)}

    def __len__(self) -> int:
        return len(self.times)

    def __iter__(self) -> Iterator[Tuple[float, np.ndarray]]:
        return zip(self.times, self.values)

    def __getitem__(self, name: str) -> np.ndarray:
        """Returns the series for a single state variable."""
        return self.values[:, self._get_index(name)]

    def __repr__(self) -> str:
        status = "complete" if self.is_complete else "incomplete"
        return f"<Trajectory {self.names} x {len(self)} times, {status}>"

    def _get_index(self, name: str) -> int:
        try:
            return self._name_lookup[name]
        except KeyError:
            raise KeyError(f"Unknown state variable {name}, expected one of {self.names}")

    def get_state(self, time_idx: int) -> Dict[str, float]:
        """
        Returns the state at a given time index as a mapping of name to value.
        """
        return {name: float(v) for name, v in zip(self.names, self.values[time_idx])}

    def get_total(self, names: Optional[List[str]] = None) -> np.ndarray:
        """
        Returns the sum of the chosen state variables (all of them by default) at each time.
        """
        if names is None:
            return self.values.sum(axis=1)

        idxs = [self._get_index(n) for n in names]
        return self.values[:, idxs].sum(axis=1)

    def get_peak(self, names: List[str]) -> Tuple[float, float]:
        """
        Returns the time and value at which the sum of the chosen variables is largest.
        """
        total = self.get_total(names)
        peak_idx = int(np.argmax(total))
        return float(self.times[peak_idx]), float(total[peak_idx])

    def to_dataframe(self) -> pd.DataFrame:
        """
        Returns a dataframe with a time column followed by one column per state variable.
        """
        df = pd.DataFrame(self.values, columns=self.names)
        df.insert(0, TIME_COLUMN, self.times)
        return df

    def to_csv(self, path: str):
        """Writes the trajectory to a CSV file at full float precision."""
        self.to_dataframe().to_csv(path, index=False, float_format="%.17g")

    @classmethod
    def from_csv(cls, path: str):
        """Reads a trajectory previously written with ``to_csv``."""
        df = pd.read_csv(path, float_precision="round_trip")
        if df.columns[0] != TIME_COLUMN:
            raise InvalidInput(f"First column of {path} must be '{TIME_COLUMN}'")

        names = [str(c) for c in df.columns[1:]]
        return cls(
            times=df[TIME_COLUMN].to_numpy(dtype=float),
            values=df[names].to_numpy(dtype=float),
            names=names,
        )
