"""Plotting of a planning cycle.

Three panels, as in the usual presentation of reachability-based
planning:

* trajectory parameter space with the parameters ruled out by the
  obstacle and the chosen ``k_opt``;
* FRS frame with the obstacle samples and the reachable set of ``k_opt``;
* world frame with the obstacle, its buffer, the samples, the goal,
  the planned trajectory and the reachable set mapped back to world.
"""

import logging
from typing import Optional

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon as MplPolygon

from rtd.core.frame import local_to_world
from rtd.core.polynomial import Polynomial
from rtd.planning.planner import PlanResult

logger = logging.getLogger(__name__)

_OBSTACLE_COLOR = (1.0, 0.7, 0.8)
_BUFFER_COLOR = (1.0, 0.5, 0.6)
_POINT_COLOR = (0.5, 0.1, 0.1)
_FRS_COLOR = (0.3, 0.8, 0.5)


def polynomial_zero_contour(polynomial: Polynomial,
                            bounds=((-1.0, 1.0), (-1.0, 1.0)),
                            resolution: int = 101) -> np.ndarray:
    """Points on the zero level set of a 2-variable polynomial.

    Returns:
        (N, 2) contour vertices; segments of separate contour pieces are
        separated by NaN rows.  Empty if the level set misses the box.
    """
    if len(polynomial.variables) != 2:
        raise ValueError(f"Expected a polynomial in 2 variables, got {polynomial.variables}")
    xs = np.linspace(bounds[0][0], bounds[0][1], resolution)
    ys = np.linspace(bounds[1][0], bounds[1][1], resolution)
    xx, yy = np.meshgrid(xs, ys)
    values = polynomial(np.column_stack([xx.ravel(), yy.ravel()])).reshape(xx.shape)

    fig = plt.figure()
    try:
        contour = plt.contour(xx, yy, values, levels=[0.0])
        segments = contour.allsegs[0]
    finally:
        plt.close(fig)
    if not segments:
        return np.zeros((0, 2))
    pieces = []
    for segment in segments:
        pieces.append(segment)
        pieces.append(np.full((1, 2), np.nan))
    return np.vstack(pieces[:-1])


def plot_parameter_space(result: PlanResult, ax: plt.Axes, resolution: int = 101):
    """Parameters ruled out by the obstacle (speed param on x, yaw-rate param on y)."""
    bounds = result.bounds
    k1 = np.linspace(min(bounds[0, 0], -1.0), max(bounds[0, 1], 1.0), resolution)
    k2 = np.linspace(-1.0, 1.0, resolution)
    kk2, kk1 = np.meshgrid(k2, k1)

    if result.constraints is not None and len(result.constraints) > 0:
        ks = np.column_stack([kk1.ravel(), kk2.ravel()])
        worst = result.constraints.values_batch(ks).min(axis=1).reshape(kk1.shape)
        margin = result.constraints.margin
        if worst.min() < margin:
            ax.contourf(kk2, kk1, worst, levels=[worst.min() - 1.0, margin],
                        colors=[_BUFFER_COLOR])

    ax.add_patch(plt.Rectangle((bounds[1, 0], bounds[0, 0]),
                               bounds[1, 1] - bounds[1, 0], bounds[0, 1] - bounds[0, 0],
                               fill=False, linestyle='--', edgecolor='k'))
    if result.success:
        ax.plot(result.k_opt[1], result.k_opt[0], '.', color=_FRS_COLOR, markersize=15)
        ax.plot(result.k_opt[1], result.k_opt[0], 'ko', markersize=6, fillstyle='none')

    ax.set_title("Traj Params")
    ax.set_xlabel("speed param")
    ax.set_ylabel("yaw rate param")
    ax.set_aspect('equal')


def plot_frs_frame(result: PlanResult, ax: plt.Axes):
    """Obstacle samples and the reachable set of ``k_opt`` in FRS frame."""
    frs = result.frs
    ax.plot(frs.initial_x, frs.initial_y, 'b+', markersize=10)
    if result.obstacle is not None and len(result.obstacle) > 0:
        points = result.obstacle.points_frs
        ax.plot(points[:, 0], points[:, 1], '.', color=_POINT_COLOR, markersize=8)
    if result.success:
        contour = polynomial_zero_contour(frs.contour_polynomial(result.k_opt))
        if len(contour):
            ax.plot(contour[:, 0], contour[:, 1], color=_FRS_COLOR, linewidth=1.5)

    ax.set_title("FRS Frame")
    ax.set_xlabel("x (scaled)")
    ax.set_ylabel("y (scaled)")
    ax.set_aspect('equal')
    ax.grid(True)


def plot_world_frame(result: PlanResult, ax: plt.Axes, goal=None, agent=None):
    """Obstacle, buffer, samples, goal, trajectory and reachable set in world frame."""
    obstacle = result.obstacle
    if obstacle is not None:
        buffered = obstacle.buffered
        polygons = getattr(buffered, 'geoms', [buffered])
        for polygon in polygons:
            if polygon.geom_type == "Polygon":
                ax.add_patch(MplPolygon(np.asarray(polygon.exterior.coords),
                                        closed=True, color=_BUFFER_COLOR))
        if len(obstacle.vertices) >= 3:
            ax.add_patch(MplPolygon(obstacle.vertices, closed=True, color=_OBSTACLE_COLOR))
        if len(obstacle) > 0:
            ax.plot(obstacle.points_world[:, 0], obstacle.points_world[:, 1], '.',
                    color=_POINT_COLOR, markersize=8)

    if goal is not None:
        ax.plot(goal[0], goal[1], 'k*', markersize=15, linewidth=2)

    pose = result.transform.pose
    path = local_to_world(pose, result.trajectory.path)
    style = 'r--' if result.trajectory.braking else 'b--'
    ax.plot(path[:, 0], path[:, 1], style, linewidth=1.5)

    if result.success:
        contour = polynomial_zero_contour(result.frs.contour_polynomial(result.k_opt))
        if len(contour):
            world = result.transform.frs_to_world(contour)
            ax.plot(world[:, 0], world[:, 1], color=_FRS_COLOR, linewidth=1.5)

    if agent is not None:
        outline = agent.footprint_polygon()
        ax.add_patch(MplPolygon(outline, closed=True, fill=False, edgecolor='k'))
        history = agent.history
        ax.plot(history[:, 0], history[:, 1], 'k-', linewidth=1.0)

    ax.set_title("World Frame")
    ax.set_xlabel("x [m]")
    ax.set_ylabel("y [m]")
    ax.set_aspect('equal')


def plot_plan_result(result: PlanResult, goal=None, agent=None,
                     fig: Optional[plt.Figure] = None) -> plt.Figure:
    """Draw the three panels for one planning cycle."""
    if fig is None:
        fig = plt.figure(figsize=(15, 5))
    fig.clf()
    axes = fig.subplots(1, 3)
    plot_parameter_space(result, axes[0])
    plot_frs_frame(result, axes[1])
    plot_world_frame(result, axes[2], goal=goal, agent=agent)
    fig.tight_layout()
    return fig
