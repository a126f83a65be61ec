import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Trajectory:
    """Time-parameterised reference trajectory in the robot-local frame.

    Attributes:
        times: (N,) increasing sample times starting at zero (s).
        controls: (N, 2) desired ``[yaw rate, speed]`` per sample.
        states: (N, 4) ``[x, y, heading, speed]`` per sample.
        braking: True if this is a braking-only fallback.
    """
    times: np.ndarray
    controls: np.ndarray
    states: np.ndarray
    braking: bool = False

    def __post_init__(self):
        n = len(self.times)
        if self.controls.shape != (n, 2):
            raise ValueError(f"Expected controls of shape ({n}, 2), got {self.controls.shape}")
        if self.states.shape != (n, 4):
            raise ValueError(f"Expected states of shape ({n}, 4), got {self.states.shape}")

    def __len__(self) -> int:
        return len(self.times)

    @property
    def duration(self) -> float:
        return float(self.times[-1]) if len(self.times) else 0.0

    @property
    def path(self) -> np.ndarray:
        """(N, 2) positions."""
        return self.states[:, :2]

    @property
    def heading(self) -> np.ndarray:
        return self.states[:, 2]

    @property
    def speed(self) -> np.ndarray:
        return self.states[:, 3]

    @property
    def yaw_rate(self) -> np.ndarray:
        return self.controls[:, 0]

    def state_at(self, t: float) -> np.ndarray:
        """Linearly interpolated state at time *t* (clamped to the horizon)."""
        return np.array([np.interp(t, self.times, self.states[:, i]) for i in range(4)])
