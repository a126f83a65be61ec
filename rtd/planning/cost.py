import logging
from typing import Tuple

import numpy as np

from rtd.frs.model import FRSModel

logger = logging.getLogger(__name__)


class GoalCost:
    """Squared distance between the desired trajectory end point and a goal.

    ``J(k) = (x_des(k) - x_g)^2 + (y_des(k) - y_g)^2`` with gradient
    ``2 (p(k) - g)^T dp/dk`` from the exact polynomial partials.

    Args:
        frs: FRS model providing ``x_des(k)`` and ``y_des(k)``.
        goal_local: Goal position in robot-local frame (m).
        weight: Scale applied to value and gradient.
    """

    def __init__(self, frs: FRSModel, goal_local, weight: float = 1.0):
        self._goal = np.asarray(goal_local, dtype=float).reshape(2)
        self._weight = float(weight)
        self._x_des = frs.x_des
        self._y_des = frs.y_des
        self._x_grad = frs.x_des.gradient()
        self._y_grad = frs.y_des.gradient()

    @property
    def goal(self) -> np.ndarray:
        return self._goal

    def end_point(self, k) -> np.ndarray:
        k = np.asarray(k, dtype=float)
        return np.array([self._x_des(k), self._y_des(k)])

    def __call__(self, k) -> Tuple[float, np.ndarray]:
        k = np.asarray(k, dtype=float)
        error = self.end_point(k) - self._goal
        jac = np.array([[d(k) for d in self._x_grad],
                        [d(k) for d in self._y_grad]])
        value = self._weight * float(error @ error)
        gradient = self._weight * 2.0 * (error @ jac)
        return value, gradient
