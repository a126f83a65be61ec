"""Random polygon obstacles for examples and tests."""

import logging
from typing import Sequence

import numpy as np
from shapely.geometry import Polygon

logger = logging.getLogger(__name__)


def make_random_polygon(n_vertices: int,
                        center: Sequence[float] = (0.0, 0.0),
                        scale: float = 1.0,
                        rng: np.random.Generator = None) -> np.ndarray:
    """Sample a simple polygon with *n_vertices* vertices around *center*.

    Vertices are placed at sorted random angles and random radii in
    ``[0.1 * scale, 0.5 * scale]``, which always yields a simple
    (star-shaped) polygon ordered counter-clockwise.

    Args:
        n_vertices: Number of vertices (at least 3).
        center: Polygon centre in world frame.
        scale: Rough diameter of the polygon (m).
        rng: Random generator; a fresh default generator if None.

    Returns:
        (n_vertices, 2) array of vertices, not closed.
    """
    if n_vertices < 3:
        raise ValueError(f"A polygon needs at least 3 vertices, got {n_vertices}")
    if rng is None:
        rng = np.random.default_rng()

    angles = np.sort(rng.uniform(0.0, 2 * np.pi, n_vertices))
    radii = rng.uniform(0.1 * scale, 0.5 * scale, n_vertices)
    vertices = np.column_stack([radii * np.cos(angles), radii * np.sin(angles)])
    vertices += np.asarray(center, dtype=float)

    if not Polygon(vertices).is_valid:
        # Coincident angles can collapse an edge; resample
        logger.debug("Random polygon was invalid, resampling")
        return make_random_polygon(n_vertices, center, scale, rng)
    return vertices
