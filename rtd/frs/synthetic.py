"""Analytic stand-in FRS models for examples and tests.

The reachability polynomials built here are *not* the output of a
sum-of-squares reachability program.  They describe, for every
parameter ``k``, a disk in position space whose diameter spans the
start and the desired end point of the unicycle arc, grown by the
robot footprint.  For turn angles up to pi the arc stays inside that
disk, which is enough to exercise the online planner with the same
polynomial structure as a real FRS.
"""

import logging
from math import factorial
from typing import List, Sequence, Tuple

from rtd.core.polynomial import Polynomial
from rtd.frs.model import FRSModel

logger = logging.getLogger(__name__)

PARAM_VARS = ("k1", "k2")
STATE_VARS = ("z1", "z2")

# (v0_min, v0_max) brackets of the turtlebot FRS files
DEFAULT_BRACKETS = ((0.0, 0.5), (0.5, 1.0), (1.0, 1.5))


def desired_control_polynomials(w_max: float,
                                v_max: float,
                                param_vars: Sequence[str] = PARAM_VARS):
    """``w_des(k) = w_max * k1`` and ``v_des(k) = v_max/2 * k2 + v_max/2``."""
    k1 = Polynomial.variable(param_vars[0], param_vars)
    k2 = Polynomial.variable(param_vars[1], param_vars)
    return w_max * k1, (v_max / 2.0) * k2 + v_max / 2.0


def unicycle_endpoint_polynomials(w_max: float,
                                  v_max: float,
                                  t_f: float,
                                  order: int = 6,
                                  param_vars: Sequence[str] = PARAM_VARS
                                  ) -> Tuple[Polynomial, Polynomial]:
    """Taylor expansion of the unicycle arc end point after *t_f* seconds.

    With constant yaw rate ``w`` and speed ``v`` starting at the origin
    heading along x, the end point is
    ``x = v t sin(w t) / (w t)`` and ``y = v t (1 - cos(w t)) / (w t)``.
    Both series are truncated after *order* terms.
    """
    w_des, v_des = desired_control_polynomials(w_max, v_max, param_vars)
    theta = w_des * t_f
    distance = v_des * t_f

    x_series = Polynomial.constant(0.0, param_vars)
    y_series = Polynomial.constant(0.0, param_vars)
    for n in range(order):
        sign = (-1) ** n
        x_series = x_series + theta ** (2 * n) * (sign / factorial(2 * n + 1))
        y_series = y_series + theta ** (2 * n + 1) * (sign / factorial(2 * n + 2))
    return distance * x_series, distance * y_series


def make_synthetic_frs(v0_range: Tuple[float, float] = (0.5, 1.0),
                       v_range: Tuple[float, float] = None,
                       delta_v: float = 0.5,
                       w_max: float = 1.0,
                       t_plan: float = 0.5,
                       t_f: float = 1.0,
                       footprint: float = 0.175,
                       distance_scale: float = None,
                       initial_x: float = -0.5,
                       initial_y: float = 0.0,
                       order: int = 6,
                       name: str = None) -> FRSModel:
    """Build an :class:`FRSModel` whose reachable set is known in closed form.

    With end point ``p(k)`` and local position ``l = D (z - z0)``:
    ``I(k, z) = 1 + (rho(k)^2 - |l - p(k)/2|^2) / D^2`` with
    ``rho^2 = |p|^2 / 2 + 2 r^2``, an upper bound of ``(|p|/2 + r)^2``.

    Args:
        v0_range: Initial speed bracket.
        v_range: Desired speed range; defaults to ``v0_range`` widened by
            *delta_v* and clipped below at zero.
        delta_v: Maximum speed change per planning step.
        w_max: Maximum yaw rate.
        t_plan: Replanning period.
        t_f: Horizon used for the desired end point.
        footprint: Robot footprint radius.
        distance_scale: FRS scale; by default the maximum reach maps to
            1.5 FRS units.
        initial_x: Robot x-position in FRS frame.
        initial_y: Robot y-position in FRS frame.
        order: Number of Taylor terms for the end point.
        name: Model name.
    """
    if v_range is None:
        v_range = (max(0.0, v0_range[0] - delta_v), v0_range[1] + delta_v)
    v_max = v_range[1]
    if distance_scale is None:
        distance_scale = (v_max * t_f + footprint) / 1.5
    if name is None:
        name = f"synthetic_v0_{v0_range[0]:.1f}_to_{v0_range[1]:.1f}"

    w_des, v_des = desired_control_polynomials(w_max, v_max)
    x_des, y_des = unicycle_endpoint_polynomials(w_max, v_max, t_f, order)

    variables = PARAM_VARS + STATE_VARS
    px = x_des.reorder(variables)
    py = y_des.reorder(variables)
    lx = distance_scale * (Polynomial.variable(STATE_VARS[0], variables) - initial_x)
    ly = distance_scale * (Polynomial.variable(STATE_VARS[1], variables) - initial_y)

    rho_sq = (px ** 2 + py ** 2) * 0.5 + 2.0 * footprint ** 2
    dist_sq = (lx - 0.5 * px) ** 2 + (ly - 0.5 * py) ** 2
    polynomial = 1.0 + (rho_sq - dist_sq) / distance_scale ** 2

    logger.debug(f"Built synthetic FRS {name} with {polynomial.n_terms} terms "
                 f"of degree {polynomial.degree}")
    return FRSModel(polynomial=polynomial,
                    param_vars=PARAM_VARS,
                    state_vars=STATE_VARS,
                    v0_range=tuple(v0_range),
                    v_range=tuple(v_range),
                    delta_v=delta_v,
                    w_max=w_max,
                    distance_scale=distance_scale,
                    initial_x=initial_x,
                    initial_y=initial_y,
                    t_plan=t_plan,
                    t_f=t_f,
                    w_des=w_des,
                    v_des=v_des,
                    x_des=x_des,
                    y_des=y_des,
                    footprint=footprint,
                    name=name)


def make_synthetic_models(brackets: Sequence[Tuple[float, float]] = DEFAULT_BRACKETS,
                          **kwargs) -> List[FRSModel]:
    """One synthetic FRS per initial speed bracket."""
    return [make_synthetic_frs(v0_range=bracket, **kwargs) for bracket in brackets]
