"""Trajectory parameter optimisation.

Solves

    minimize    J(k)
    subject to  g_i(k) >= margin   for every obstacle point i
                k_lo <= k <= k_hi

with SLSQP, using the exact gradients of the goal cost and of the
constraint polynomials.  The solver result is only accepted when SLSQP
reports success *and* the returned parameters satisfy the bounds and
every constraint; anything else becomes a failed
:class:`OptimizationResult`.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np
from scipy.optimize import minimize

from rtd.frs.model import FRSModel
from rtd.planning.constraints import ConstraintSet

logger = logging.getLogger(__name__)


@dataclass
class OptimizerConfig:
    """Configuration for the trajectory parameter optimiser."""
    # Yaw rate parameter bounds (normalised)
    k1_bounds: Tuple[float, float] = (-1.0, 1.0)

    # Required value of every constraint g_i(k)
    constraint_margin: float = 0.0

    # Optimizer settings
    max_iterations: int = 1000
    tolerance: float = 1e-6

    # Accepted constraint / bound violation of a returned solution
    feasibility_tolerance: float = 1e-6

    # Bounds narrower than this fix the variable at their midpoint
    degenerate_bound_width: float = 1e-9


@dataclass
class OptimizationResult:
    """Outcome of one optimisation.

    Either ``success=True`` with the optimal parameters in ``k_opt`` or
    ``success=False`` with ``k_opt=None`` and the reason in ``message``.
    """
    success: bool
    k_opt: Optional[np.ndarray]
    message: str
    cost: float = float('inf')
    n_iterations: int = 0
    n_evaluations: int = 0
    solve_time: float = 0.0
    min_constraint: float = float('nan')   # min_i g_i(k) at the returned point

    @classmethod
    def failure(cls, message: str, **kwargs) -> "OptimizationResult":
        return cls(success=False, k_opt=None, message=message, **kwargs)

    def __bool__(self) -> bool:
        return self.success


def parameter_bounds(frs: FRSModel,
                     v_0: float,
                     k1_bounds: Tuple[float, float] = (-1.0, 1.0)) -> np.ndarray:
    """Box bounds on ``(k1, k2)`` for initial speed *v_0*.

    The desired speed may change by at most ``delta_v`` from *v_0* and
    must lie in the FRS speed range; the resulting speed interval is
    mapped to the normalised speed parameter.  The returned interval for
    ``k2`` may be a single point, or empty (``lo > hi``).

    Returns:
        (2, 2) array ``[[k1_lo, k1_hi], [k2_lo, k2_hi]]``.
    """
    v_lo = max(v_0 - frs.delta_v, frs.v_min)
    v_hi = min(v_0 + frs.delta_v, frs.v_max)
    k2_lo, k2_hi = frs.speed_to_parameter([v_lo, v_hi])
    return np.array([[k1_bounds[0], k1_bounds[1]], [k2_lo, k2_hi]], dtype=float)


class TrajectoryOptimizer:
    """Bounded nonlinear program over the trajectory parameters.

    Args:
        config: Optimizer configuration. If None, uses defaults.
    """

    def __init__(self, config: OptimizerConfig = None):
        self._config = config if config is not None else OptimizerConfig()

    @property
    def config(self) -> OptimizerConfig:
        return self._config

    def optimize(self,
                 cost: Callable[[np.ndarray], Tuple[float, np.ndarray]],
                 constraints: ConstraintSet,
                 bounds) -> OptimizationResult:
        """Minimise *cost* subject to *constraints* within *bounds*.

        Args:
            cost: Callable returning ``(value, gradient)``.
            constraints: Obstacle constraints ``g_i(k) >= margin``.
            bounds: (n, 2) array of ``[lo, hi]`` per parameter.

        Returns:
            OptimizationResult; never raises on solver failure.
        """
        bounds = np.asarray(bounds, dtype=float).reshape(-1, 2)
        widths = bounds[:, 1] - bounds[:, 0]
        if np.any(widths < -self._config.degenerate_bound_width):
            empty = np.flatnonzero(widths < -self._config.degenerate_bound_width)
            message = f"Empty parameter bounds for parameter(s) {empty.tolist()}: {bounds.tolist()}"
            logger.warning(message)
            return OptimizationResult.failure(message)

        fixed = widths <= self._config.degenerate_bound_width
        free = ~fixed
        initial_guess = bounds.mean(axis=1)
        if np.any(fixed):
            logger.debug(f"Fixing parameter(s) {np.flatnonzero(fixed).tolist()} "
                         f"at {initial_guess[fixed].tolist()}")

        def expand(x):
            k = initial_guess.copy()
            k[free] = x
            return k

        start = time.time()
        if not np.any(free):
            k = initial_guess
            value, _ = cost(k)
            return self._accept(k, value, constraints, bounds,
                                "All parameters fixed by bounds", 0, 1, time.time() - start)

        def objective(x):
            value, gradient = cost(expand(x))
            return value, np.asarray(gradient, dtype=float)[free]

        scipy_constraints = []
        if len(constraints) > 0:
            scipy_constraints.append({
                'type': 'ineq',
                'fun': lambda x: constraints.slack(expand(x)),
                'jac': lambda x: constraints.jacobian(expand(x))[:, free],
            })

        try:
            result = minimize(
                objective, initial_guess[free],
                jac=True,
                method='SLSQP',
                bounds=[tuple(b) for b in bounds[free]],
                constraints=scipy_constraints,
                options={
                    'maxiter': self._config.max_iterations,
                    'ftol': self._config.tolerance,
                }
            )
        except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
            message = f"Solver raised {type(e).__name__}: {e}"
            logger.warning(message)
            return OptimizationResult.failure(message, solve_time=time.time() - start)

        solve_time = time.time() - start
        if not result.success:
            message = f"Optimization failed (status {result.status}): {result.message}"
            logger.warning(message)
            return OptimizationResult.failure(message,
                                              n_iterations=int(getattr(result, 'nit', 0)),
                                              n_evaluations=int(getattr(result, 'nfev', 0)),
                                              solve_time=solve_time)

        k = expand(result.x)
        return self._accept(k, float(result.fun), constraints, bounds,
                            f"Optimization converged in {result.nit} iterations",
                            int(result.nit), int(result.nfev), solve_time)

    def _accept(self, k, value, constraints: ConstraintSet, bounds,
                message: str, n_iterations: int, n_evaluations: int,
                solve_time: float) -> OptimizationResult:
        """Check a candidate against bounds and constraints before accepting it."""
        tol = self._config.feasibility_tolerance
        if not np.all(np.isfinite(k)):
            return OptimizationResult.failure("Solver returned non-finite parameters")
        if np.any(k < bounds[:, 0] - tol) or np.any(k > bounds[:, 1] + tol):
            message = f"Solution {k.tolist()} violates bounds {bounds.tolist()}"
            logger.warning(message)
            return OptimizationResult.failure(message, n_iterations=n_iterations,
                                              n_evaluations=n_evaluations,
                                              solve_time=solve_time)
        k = np.clip(k, bounds[:, 0], bounds[:, 1])

        min_constraint = float(np.min(constraints.values(k))) if len(constraints) else float('inf')
        if not constraints.is_satisfied(k, tol):
            message = (f"Solution {k.tolist()} violates obstacle constraints "
                       f"(min g = {min_constraint:.3e}, margin = {constraints.margin})")
            logger.warning(message)
            return OptimizationResult.failure(message, n_iterations=n_iterations,
                                              n_evaluations=n_evaluations,
                                              solve_time=solve_time,
                                              min_constraint=min_constraint)

        logger.debug(f"{message}; k_opt={k.tolist()}, cost={value:.4f}")
        return OptimizationResult(success=True,
                                  k_opt=k,
                                  message=message,
                                  cost=value,
                                  n_iterations=n_iterations,
                                  n_evaluations=n_evaluations,
                                  solve_time=solve_time,
                                  min_constraint=min_constraint)


def optimize_parameters(cost, constraints: ConstraintSet, bounds,
                        config: OptimizerConfig = None) -> OptimizationResult:
    """Convenience wrapper around :class:`TrajectoryOptimizer`."""
    return TrajectoryOptimizer(config).optimize(cost, constraints, bounds)
