"""Solution step descriptor passed to the export pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TimeStep:
    """Time step identification.

    Attributes
    ----------
    number : int
        Step number (1-based), used in output file names.
    target_time : float
        Simulation time the step solves for; exported times derive from it.
    dt : float
        Step length.
    """

    number: int
    target_time: float
    dt: float = 0.0
