"""Forward reachable set (FRS) model.

An FRS model bundles the reachability polynomial ``I(k, z)`` computed
offline for one bracket of initial speeds together with the scalars and
parameter mappings the online planner needs.  A state ``z`` (in FRS
frame) is reachable by the trajectory with parameters ``k`` when
``I(k, z) >= 1``.
"""

import logging
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from rtd.core.polynomial import Polynomial

logger = logging.getLogger(__name__)

# A state is inside the FRS of k when I(k, z) >= REACHABLE_LEVEL
REACHABLE_LEVEL = 1.0


@dataclass(frozen=True)
class FRSModel:
    """Immutable FRS model for one initial-speed bracket.

    Attributes:
        polynomial: Reachability polynomial over ``param_vars + state_vars``.
        param_vars: Trajectory parameter names ``(yaw-rate param, speed param)``.
        state_vars: Normalised position names ``(x, y)`` in FRS frame.
        v0_range: Bracket of initial speeds this FRS is valid for (m/s).
        v_range: Range ``(v_min, v_max)`` of desired speeds (m/s).
        delta_v: Maximum change between initial and desired speed (m/s).
        w_max: Maximum desired yaw rate (rad/s).
        distance_scale: Local metres per FRS unit.
        initial_x: Robot x-position in FRS frame.
        initial_y: Robot y-position in FRS frame.
        t_plan: Time until the next replanning step (s).
        t_f: Time horizon of the FRS (s).
        w_des: Desired yaw rate as a polynomial in the parameters.
        v_des: Desired speed as a polynomial in the parameters.
        x_des: Desired final local x-position as a polynomial in the parameters.
        y_des: Desired final local y-position as a polynomial in the parameters.
        footprint: Robot footprint radius the FRS was computed for (m).
        name: Human readable identifier.
    """
    polynomial: Polynomial
    param_vars: Tuple[str, str]
    state_vars: Tuple[str, str]
    v0_range: Tuple[float, float]
    v_range: Tuple[float, float]
    delta_v: float
    w_max: float
    distance_scale: float
    initial_x: float
    initial_y: float
    t_plan: float
    t_f: float
    w_des: Polynomial
    v_des: Polynomial
    x_des: Polynomial
    y_des: Polynomial
    footprint: float = 0.0
    name: str = field(default="frs", compare=False)

    def __post_init__(self):
        expected = tuple(self.param_vars) + tuple(self.state_vars)
        if set(self.polynomial.variables) != set(expected):
            raise ValueError(f"FRS polynomial variables {self.polynomial.variables} "
                             f"do not match {expected}")
        for label in ("w_des", "v_des", "x_des", "y_des"):
            poly = getattr(self, label)
            if poly.variables != tuple(self.param_vars):
                raise ValueError(f"{label} must be a polynomial in {self.param_vars}, "
                                 f"got {poly.variables}")
        if self.v_range[0] > self.v_range[1]:
            raise ValueError(f"Invalid speed range {self.v_range}")
        if self.v0_range[0] > self.v0_range[1]:
            raise ValueError(f"Invalid initial speed bracket {self.v0_range}")

    def __repr__(self) -> str:
        return (f"FRSModel(name={self.name!r}, v0_range={self.v0_range}, "
                f"degree={self.polynomial.degree}, n_terms={self.polynomial.n_terms})")

    @property
    def v_min(self) -> float:
        return self.v_range[0]

    @property
    def v_max(self) -> float:
        return self.v_range[1]

    def contains_initial_speed(self, v_0: float) -> bool:
        return self.v0_range[0] <= v_0 <= self.v0_range[1]

    # ------------------------------------------------------------------
    # Parameter mappings
    # ------------------------------------------------------------------

    def speed_to_parameter(self, v) -> np.ndarray:
        """Map a desired speed to the normalised speed parameter in [-1, 1]."""
        return (np.asarray(v, dtype=float) - self.v_max / 2.0) * (2.0 / self.v_max)

    def parameter_to_speed(self, k_2) -> np.ndarray:
        return np.asarray(k_2, dtype=float) * (self.v_max / 2.0) + self.v_max / 2.0

    def desired_controls(self, k) -> Tuple[float, float]:
        """Desired ``(yaw rate, speed)`` for parameters *k*."""
        k = np.asarray(k, dtype=float)
        return float(self.w_des(k)), float(self.v_des(k))

    def desired_position(self, k) -> np.ndarray:
        """Desired final position in robot-local frame for parameters *k*."""
        k = np.asarray(k, dtype=float)
        return np.array([self.x_des(k), self.y_des(k)])

    # ------------------------------------------------------------------
    # Reachable set queries
    # ------------------------------------------------------------------

    def contour_polynomial(self, k) -> Polynomial:
        """``I(k, z) - 1`` over the state variables for fixed parameters.

        The zero level set is the boundary of the set of positions (FRS
        frame) reachable by the trajectory with parameters *k*.
        """
        assignment = dict(zip(self.param_vars, np.asarray(k, dtype=float)))
        sliced = self.polynomial.substitute(assignment).reorder(self.state_vars)
        return sliced - REACHABLE_LEVEL

    def is_reachable(self, k, z_frs) -> np.ndarray:
        """Whether FRS-frame position(s) *z_frs* are reachable under *k*."""
        return np.asarray(self.contour_polynomial(k)(z_frs)) >= 0.0
