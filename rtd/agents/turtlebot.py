import logging
from typing import List

import numpy as np

from rtd.core.frame import local_to_world
from rtd.core.trajectory import Trajectory

logger = logging.getLogger(__name__)


class TurtlebotAgent:
    """Disk-shaped unicycle robot that executes reference trajectories.

    The state is ``[x, y, heading, speed]`` in world frame.  Executing a
    trajectory follows the reference states exactly (no tracking error)
    and records every visited state.

    Args:
        footprint: Footprint radius (m).
        max_accel: Maximum acceleration / deceleration (m/s^2).
        max_yaw_rate: Maximum yaw rate (rad/s).
        initial_state: ``[x, y, heading, speed]``; zeros if None.
    """

    def __init__(self,
                 footprint: float = 0.175,
                 max_accel: float = 2.0,
                 max_yaw_rate: float = 2.0,
                 initial_state=None):
        if footprint <= 0:
            raise ValueError(f"Footprint radius must be positive, got {footprint}")
        self._footprint = float(footprint)
        self._max_accel = float(max_accel)
        self._max_yaw_rate = float(max_yaw_rate)
        self.reset(initial_state)

    def __repr__(self) -> str:
        return f"TurtlebotAgent(state={np.round(self.state, 3).tolist()})"

    def reset(self, state=None):
        """Reset to *state* and clear the history."""
        state = np.zeros(4) if state is None else np.asarray(state, dtype=float).reshape(4)
        self._times: List[float] = [0.0]
        self._states: List[np.ndarray] = [state.copy()]
        self._controls: List[np.ndarray] = [np.zeros(2)]

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> np.ndarray:
        """Current ``[x, y, heading, speed]``."""
        return self._states[-1].copy()

    @property
    def pose(self) -> np.ndarray:
        return self._states[-1][:3].copy()

    @property
    def position(self) -> np.ndarray:
        return self._states[-1][:2].copy()

    @property
    def heading(self) -> float:
        return float(self._states[-1][2])

    @property
    def speed(self) -> float:
        return float(self._states[-1][3])

    @property
    def footprint(self) -> float:
        return self._footprint

    @property
    def max_accel(self) -> float:
        return self._max_accel

    @property
    def max_yaw_rate(self) -> float:
        return self._max_yaw_rate

    @property
    def time(self) -> float:
        return self._times[-1]

    @property
    def history(self) -> np.ndarray:
        """(N, 4) every state visited so far."""
        return np.array(self._states)

    @property
    def history_times(self) -> np.ndarray:
        return np.array(self._times)

    def footprint_polygon(self, n_points: int = 32) -> np.ndarray:
        """(n_points, 2) footprint outline at the current position."""
        angles = np.linspace(0.0, 2 * np.pi, n_points, endpoint=False)
        circle = self._footprint * np.column_stack([np.cos(angles), np.sin(angles)])
        return circle + self.position

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, duration: float, times, controls, states):
        """Follow a robot-local reference trajectory for *duration* seconds.

        Args:
            duration: How long to follow the reference (s).
            times: (N,) reference times starting at zero.
            controls: (N, 2) reference ``[yaw rate, speed]``.
            states: (N, 4) robot-local reference ``[x, y, heading, speed]``.
        """
        times = np.asarray(times, dtype=float)
        controls = np.asarray(controls, dtype=float)
        states = np.asarray(states, dtype=float)
        if len(times) == 0:
            logger.warning("Asked to execute an empty trajectory")
            return

        reference = Trajectory(times=times, controls=controls, states=states)
        keep = times <= duration + 1e-9
        times, controls, states = times[keep], controls[keep], states[keep]
        if times[-1] < duration - 1e-9 < reference.duration:
            # Stop between two reference samples
            times = np.append(times, duration)
            controls = np.vstack([controls, controls[-1]])
            states = np.vstack([states, reference.state_at(duration)])

        pose = self.pose
        world_xy = local_to_world(pose, states[:, :2])
        world_heading = (states[:, 2] + pose[2] + np.pi) % (2 * np.pi) - np.pi
        world_states = np.column_stack([world_xy, world_heading, states[:, 3]])

        t_0 = self.time
        # The first reference sample is the current state
        for t, u, z in zip(times[1:], controls[1:], world_states[1:]):
            self._times.append(t_0 + t)
            self._controls.append(u)
            self._states.append(z)
        logger.debug(f"Executed {len(times)} samples over {times[-1]:.2f}s; "
                     f"now at {np.round(self.state, 3).tolist()}")
