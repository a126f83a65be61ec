"""Obstacle buffering and boundary discretisation.

The obstacle polygon is grown by a buffer ``b`` and its boundary is
sampled with spacing ``r``.  For a disk robot of radius ``R`` the
spacing from :func:`compute_point_spacing` guarantees that the robot
cannot slip between two neighbouring samples far enough to touch the
original obstacle, so keeping the robot away from the samples keeps it
away from the obstacle.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np
from shapely.geometry import MultiPoint, Polygon
from shapely.geometry.base import BaseGeometry

from rtd.core.frame import FrameTransform

logger = logging.getLogger(__name__)

# Polygons with area below this are treated as degenerate (points / segments)
_MIN_AREA = 1e-12


@dataclass
class DiscretizerConfig:
    """Configuration for obstacle discretisation."""
    buffer: float = 0.05            # obstacle buffer (m)
    point_spacing: float = None     # None: derived from footprint and buffer
    join_style: str = "mitre"       # shapely join style for the buffer
    mitre_limit: float = 2.0


@dataclass
class DiscretizedObstacle:
    """Buffered obstacle and its boundary samples."""
    vertices: np.ndarray             # (N, 2) original vertices, world frame
    buffered: BaseGeometry           # buffered geometry, world frame
    points_world: np.ndarray         # (P, 2) boundary samples, world frame
    points_frs: np.ndarray           # (P, 2) boundary samples, FRS frame
    spacing: float                   # requested spacing (m)

    def __len__(self) -> int:
        return len(self.points_world)


def compute_point_spacing(footprint: float, buffer: float) -> float:
    """Maximum boundary sample spacing for a disk robot.

    A circle of radius ``R`` through two samples ``r`` apart bulges
    ``R - sqrt(R^2 - r^2/4)`` past the chord between them.  Bounding that
    by the buffer ``b`` gives ``r = 2 R sin(acos((R - b) / R))``.

    Args:
        footprint: Robot footprint radius ``R`` (m).
        buffer: Obstacle buffer ``b`` (m); values above ``R`` are clamped.
    """
    if footprint <= 0:
        raise ValueError(f"Footprint radius must be positive, got {footprint}")
    if buffer <= 0:
        raise ValueError(f"Obstacle buffer must be positive, got {buffer}")
    if buffer > footprint:
        logger.warning(f"Buffer {buffer} is larger than footprint {footprint}; "
                       f"clamping to footprint")
        buffer = footprint
    theta = np.arccos((footprint - buffer) / footprint)
    return float(2.0 * footprint * np.sin(theta))


def obstacle_geometry(vertices) -> BaseGeometry:
    """Shapely geometry for an obstacle vertex list.

    Degenerate polygons (fewer than three distinct vertices or zero area)
    become the point or segment they collapse to.
    """
    vertices = np.asarray(vertices, dtype=float).reshape(-1, 2)
    if len(vertices) == 0:
        raise ValueError("Obstacle has no vertices")

    distinct = np.unique(vertices, axis=0)
    if len(distinct) >= 3:
        polygon = Polygon(vertices)
        if polygon.area > _MIN_AREA:
            return polygon
    return MultiPoint([tuple(v) for v in distinct]).convex_hull


def buffer_obstacle(vertices, buffer: float,
                    join_style: str = "mitre",
                    mitre_limit: float = 2.0) -> BaseGeometry:
    """Grow the obstacle outward by *buffer* along each edge normal."""
    geometry = obstacle_geometry(vertices)
    if buffer <= 0:
        return geometry
    return geometry.buffer(buffer, join_style=join_style, mitre_limit=mitre_limit)


def _polygon_rings(polygon) -> List[np.ndarray]:
    # Holes closed off by the buffer are part of the boundary too
    return ([np.asarray(polygon.exterior.coords)]
            + [np.asarray(ring.coords) for ring in polygon.interiors])


def _rings(geometry: BaseGeometry) -> List[np.ndarray]:
    """Closed boundary rings of a geometry, each (K, 2) with last == first.

    Polygons contribute their exterior and every interior ring.
    """
    if geometry.is_empty:
        return []
    if geometry.geom_type == "Polygon":
        return _polygon_rings(geometry)
    if geometry.geom_type == "MultiPolygon":
        return [ring for p in geometry.geoms for ring in _polygon_rings(p)]
    if geometry.geom_type == "Point":
        return [np.array([[geometry.x, geometry.y]] * 2)]
    if geometry.geom_type == "LineString":
        coords = np.asarray(geometry.coords)
        # Walk out and back so the ring is closed
        return [np.vstack([coords, coords[-2::-1]])]
    raise ValueError(f"Cannot discretise geometry of type {geometry.geom_type}")


def interpolate_ring(ring: np.ndarray, spacing: float) -> np.ndarray:
    """Resample a closed ring at uniform arc-length spacing.

    The number of segments is ``ceil(L / spacing)``, so the actual
    spacing never exceeds *spacing* and the last sample equals the first.

    Args:
        ring: (K, 2) closed polyline, ``ring[-1] == ring[0]``.
        spacing: Target arc-length spacing.

    Returns:
        (n + 1, 2) samples.
    """
    if spacing <= 0:
        raise ValueError(f"Point spacing must be positive, got {spacing}")
    seg_lengths = np.linalg.norm(np.diff(ring, axis=0), axis=1)
    arc_lengths = np.concatenate([[0.0], np.cumsum(seg_lengths)])
    total = arc_lengths[-1]
    if total <= 0.0:
        return np.array([ring[0], ring[0]])

    n_segments = max(1, int(np.ceil(total / spacing - 1e-9)))
    s = np.linspace(0.0, total, n_segments + 1)
    points = np.column_stack([np.interp(s, arc_lengths, ring[:, 0]),
                              np.interp(s, arc_lengths, ring[:, 1])])
    points[-1] = points[0]
    return points


def discretize_obstacle(vertices,
                        buffer: float,
                        spacing: float,
                        transform: FrameTransform,
                        join_style: str = "mitre",
                        mitre_limit: float = 2.0) -> DiscretizedObstacle:
    """Buffer an obstacle and sample its boundary in world and FRS frame.

    Every sample is kept, including those outside the region the FRS
    covers.

    Args:
        vertices: (N, 2) obstacle polygon in world frame.
        buffer: Buffer distance (m).
        spacing: Target boundary sample spacing (m).
        transform: World to FRS frame transform.
        join_style: Shapely buffer join style.
        mitre_limit: Shapely mitre limit.
    """
    vertices = np.asarray(vertices, dtype=float).reshape(-1, 2)
    buffered = buffer_obstacle(vertices, buffer, join_style, mitre_limit)
    rings = [interpolate_ring(ring, spacing) for ring in _rings(buffered)]
    points_world = np.vstack(rings) if rings else np.zeros((0, 2))
    points_frs = transform.world_to_frs(points_world) if len(points_world) else np.zeros((0, 2))

    logger.debug(f"Discretised obstacle with {len(vertices)} vertices into "
                 f"{len(points_world)} points (spacing {spacing:.4f} m)")
    return DiscretizedObstacle(vertices=vertices,
                               buffered=buffered,
                               points_world=points_world,
                               points_frs=points_frs,
                               spacing=spacing)
