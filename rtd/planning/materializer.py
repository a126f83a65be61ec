"""Turning optimal parameters into executable trajectories.

The trajectory for parameters ``k`` holds the desired yaw rate and
speed until the next replanning time ``t_plan`` and then brakes to a
stop.  When no parameters are available the robot brakes straight
ahead from its current speed, which is always possible.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.integrate import cumulative_trapezoid

from rtd.core.trajectory import Trajectory
from rtd.frs.model import FRSModel

logger = logging.getLogger(__name__)


@dataclass
class MaterializerConfig:
    """Configuration for trajectory construction."""
    dt: float = 0.01             # sample period (s)
    braking_power: int = 4       # exponent of the braking speed profile


def braking_profile(times: np.ndarray, t_plan: float, t_stop: float,
                    power: int = 4) -> np.ndarray:
    """Speed scale: 1 until *t_plan*, then ``((t_stop - (t - t_plan)) / t_stop)^power``."""
    scale = np.ones_like(times, dtype=float)
    if t_stop <= 0:
        scale[times > t_plan] = 0.0
        return scale
    braking = times >= t_plan
    remaining = np.clip((t_stop - (times[braking] - t_plan)) / t_stop, 0.0, 1.0)
    scale[braking] = remaining ** power
    return scale


def _time_samples(t_total: float, dt: float) -> np.ndarray:
    times = np.arange(0.0, t_total, dt)
    if len(times) == 0 or t_total - times[-1] > 1e-9:
        times = np.append(times, t_total)
    return times


def integrate_unicycle(times: np.ndarray, yaw_rate: np.ndarray,
                       speed: np.ndarray, initial_heading: float = 0.0) -> np.ndarray:
    """Integrate unicycle kinematics from the origin.

    Returns:
        (N, 4) states ``[x, y, heading, speed]``.
    """
    heading = initial_heading + cumulative_trapezoid(yaw_rate, times, initial=0.0)
    x = cumulative_trapezoid(speed * np.cos(heading), times, initial=0.0)
    y = cumulative_trapezoid(speed * np.sin(heading), times, initial=0.0)
    return np.column_stack([x, y, heading, speed])


class TrajectoryMaterializer:
    """Builds robot-local trajectories from trajectory parameters.

    Args:
        frs: FRS model providing ``w_des``, ``v_des`` and ``t_plan``.
        max_accel: Maximum deceleration of the robot (m/s^2).
        config: Materializer configuration. If None, uses defaults.
    """

    def __init__(self, frs: FRSModel, max_accel: float,
                 config: MaterializerConfig = None):
        if max_accel <= 0:
            raise ValueError(f"Maximum acceleration must be positive, got {max_accel}")
        self._frs = frs
        self._max_accel = float(max_accel)
        self._config = config if config is not None else MaterializerConfig()

    def materialize(self, k_opt) -> Trajectory:
        """Trajectory that tracks ``(w_des(k), v_des(k))`` then brakes.

        The stop time is ``t_stop = v_des / max_accel``; the trajectory
        spans ``[0, t_plan + t_stop]``.
        """
        w_des, v_des = self._frs.desired_controls(k_opt)
        v_des = max(v_des, 0.0)
        t_plan = self._frs.t_plan
        t_stop = v_des / self._max_accel

        times = _time_samples(t_plan + t_stop, self._config.dt)
        scale = braking_profile(times, t_plan, t_stop, self._config.braking_power)
        yaw_rate = w_des * scale
        speed = v_des * scale

        states = integrate_unicycle(times, yaw_rate, speed)
        logger.debug(f"Materialised trajectory w_des={w_des:.3f}, v_des={v_des:.3f}, "
                     f"duration={times[-1]:.2f}s")
        return Trajectory(times=times,
                          controls=np.column_stack([yaw_rate, speed]),
                          states=states)

    def braking(self, v_0: float) -> Trajectory:
        """Braking-only fallback: straight ahead, decelerating at ``max_accel``.

        Speed decreases strictly from *v_0* to zero.  A stationary robot
        gets a two-sample trajectory that stays at rest.
        """
        v_0 = max(float(v_0), 0.0)
        t_stop = v_0 / self._max_accel
        if t_stop <= 0.0:
            times = np.array([0.0, self._config.dt])
        else:
            times = _time_samples(t_stop, self._config.dt)
        speed = np.maximum(v_0 - self._max_accel * times, 0.0)
        speed[-1] = 0.0
        yaw_rate = np.zeros_like(times)

        states = integrate_unicycle(times, yaw_rate, speed)
        logger.debug(f"Braking trajectory from v_0={v_0:.3f} over {times[-1]:.2f}s")
        return Trajectory(times=times,
                          controls=np.column_stack([yaw_rate, speed]),
                          states=states,
                          braking=True)
