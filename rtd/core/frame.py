"""Robot-local and FRS-normalised coordinate frames.

* **world**: fixed global frame (metres).
* **local**: robot-centric frame: origin at the robot position, x-axis
  along the robot heading (metres).
* **FRS**: the local frame divided by the FRS distance scale ``D`` and
  shifted by the FRS origin ``(x0, y0)``, i.e. the coordinates the
  reachability polynomial was computed in.
"""

import logging
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)


def _rotation(heading: float) -> np.ndarray:
    c, s = np.cos(heading), np.sin(heading)
    return np.array([[c, -s], [s, c]])


def world_to_local(pose: Sequence[float], points) -> np.ndarray:
    """Translate by -position, then rotate by -heading.

    Args:
        pose: Robot pose ``(x, y, heading)``; extra entries are ignored.
        points: (2,) point or (N, 2) array in world frame.

    Returns:
        Points in robot-local frame, same shape as the input.
    """
    points = np.asarray(points, dtype=float)
    position = np.asarray(pose[:2], dtype=float)
    # Row vectors: p @ R(h) == (R(-h) @ p.T).T
    return (points - position) @ _rotation(pose[2])


def local_to_world(pose: Sequence[float], points) -> np.ndarray:
    """Inverse of :func:`world_to_local`."""
    points = np.asarray(points, dtype=float)
    position = np.asarray(pose[:2], dtype=float)
    return points @ _rotation(pose[2]).T + position


class FrameTransform:
    """Affine map between world frame and the FRS-normalised frame.

    Args:
        pose: Robot pose ``(x, y, heading)`` defining the local frame.
        distance_scale: FRS distance scale ``D`` (local metres per FRS unit).
        initial_x: x-coordinate of the robot in FRS frame.
        initial_y: y-coordinate of the robot in FRS frame.
    """

    def __init__(self,
                 pose: Sequence[float],
                 distance_scale: float = 1.0,
                 initial_x: float = 0.0,
                 initial_y: float = 0.0):
        if distance_scale <= 0:
            raise ValueError(f"Distance scale must be positive, got {distance_scale}")
        self._pose = np.asarray(pose[:3], dtype=float)
        self._distance_scale = float(distance_scale)
        self._offset = np.array([initial_x, initial_y], dtype=float)

    @classmethod
    def for_frs(cls, pose: Sequence[float], frs) -> "FrameTransform":
        """Frame transform using the scale and origin stored in an FRS model."""
        return cls(pose, frs.distance_scale, frs.initial_x, frs.initial_y)

    @property
    def pose(self) -> np.ndarray:
        return self._pose

    @property
    def distance_scale(self) -> float:
        return self._distance_scale

    @property
    def offset(self) -> np.ndarray:
        return self._offset

    def world_to_local(self, points) -> np.ndarray:
        return world_to_local(self._pose, points)

    def local_to_world(self, points) -> np.ndarray:
        return local_to_world(self._pose, points)

    def local_to_frs(self, points) -> np.ndarray:
        return np.asarray(points, dtype=float) / self._distance_scale + self._offset

    def frs_to_local(self, points) -> np.ndarray:
        return (np.asarray(points, dtype=float) - self._offset) * self._distance_scale

    def world_to_frs(self, points) -> np.ndarray:
        return self.local_to_frs(self.world_to_local(points))

    def frs_to_world(self, points) -> np.ndarray:
        return self.local_to_world(self.frs_to_local(points))
