"""Obstacle constraints from the FRS polynomial.

For each obstacle sample ``z_i`` (FRS frame) the planner requires

    g_i(k) = 1 - I(k, z_i) >= margin

where ``I`` is the reachability polynomial.  ``g_i(k) < 0`` means the
trajectory with parameters ``k`` may reach ``z_i``; the constraint is
violated.

Substituting many points into ``I`` is the hot path, so the polynomial
is first decomposed by state-variable exponent: ``I(k, z) = sum_g
z^{a_g} * sum_m C[g, m] k^{b_m}``.  Evaluating ``P`` points is then a
single ``(P, G) @ (G, M)`` product, and all constraints share the same
parameter monomials ``k^{b_m}``.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from rtd.core.polynomial import Polynomial
from rtd.frs.model import FRSModel, REACHABLE_LEVEL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FRSPolynomialStructure:
    """FRS polynomial grouped by state-variable exponent.

    Attributes:
        param_vars: Parameter variable names (columns of ``param_exponents``).
        state_vars: State variable names (columns of ``state_exponents``).
        state_exponents: (G, n_z) unique state exponent rows.
        param_exponents: (M, n_k) unique parameter exponent rows.
        coefficients: (G, M) coefficient of ``z^a_g k^b_m``.
    """
    param_vars: Tuple[str, ...]
    state_vars: Tuple[str, ...]
    state_exponents: np.ndarray
    param_exponents: np.ndarray
    coefficients: np.ndarray


def decompose(polynomial: Polynomial,
              state_vars: Sequence[str],
              param_vars: Sequence[str]) -> FRSPolynomialStructure:
    """Group the monomials of *polynomial* by their state exponents."""
    variables = tuple(param_vars) + tuple(state_vars)
    polynomial = polynomial.reorder(variables)
    n_k = len(param_vars)
    param_part = polynomial.exponents[:, :n_k]
    state_part = polynomial.exponents[:, n_k:]

    state_exponents, state_idx = np.unique(state_part, axis=0, return_inverse=True)
    param_exponents, param_idx = np.unique(param_part, axis=0, return_inverse=True)
    coefficients = np.zeros((len(state_exponents), len(param_exponents)))
    np.add.at(coefficients, (state_idx.reshape(-1), param_idx.reshape(-1)),
              polynomial.coefficients)

    logger.debug(f"Decomposed polynomial with {polynomial.n_terms} terms into "
                 f"{len(state_exponents)} state groups x {len(param_exponents)} "
                 f"parameter monomials")
    return FRSPolynomialStructure(param_vars=tuple(param_vars),
                                  state_vars=tuple(state_vars),
                                  state_exponents=state_exponents.reshape(-1, len(state_vars)),
                                  param_exponents=param_exponents.reshape(-1, n_k),
                                  coefficients=coefficients)


def decompose_frs(frs: FRSModel) -> FRSPolynomialStructure:
    return decompose(frs.polynomial, frs.state_vars, frs.param_vars)


@dataclass(frozen=True)
class ConstraintPolynomial:
    """One obstacle constraint ``g(k) >= margin`` and its exact gradient."""
    polynomial: Polynomial
    gradient: Tuple[Polynomial, ...]


class ConstraintSet:
    """Constraint polynomials ``g_i(k) = 1 - I(k, z_i)``, one per obstacle point.

    All constraints share the parameter exponent matrix, so values and
    Jacobians for every point are computed with one matrix product each.

    Args:
        param_vars: Parameter variable names.
        exponents: (M, n_k) shared parameter exponent rows.
        coefficients: (P, M) coefficients; row ``i`` belongs to point ``i``.
        points: (P, n_z) FRS-frame points the constraints were built from.
        margin: Required safety margin; feasible means ``g_i(k) >= margin``.
    """

    def __init__(self,
                 param_vars: Sequence[str],
                 exponents: np.ndarray,
                 coefficients: np.ndarray,
                 points: np.ndarray = None,
                 margin: float = 0.0):
        self._param_vars = tuple(param_vars)
        n_k = len(self._param_vars)
        self._exponents = np.asarray(exponents, dtype=int).reshape(-1, n_k)
        self._coefficients = np.asarray(coefficients, dtype=float).reshape(-1, len(self._exponents))
        self._points = points
        self._margin = float(margin)

        # Gradient of each monomial: d/dk_j k^b = b_j * k^(b - e_j)
        self._grad_exponents = []
        self._grad_scales = []
        for j in range(n_k):
            exps = self._exponents.copy()
            exps[:, j] = np.maximum(exps[:, j] - 1, 0)
            self._grad_exponents.append(exps)
            self._grad_scales.append(self._exponents[:, j].astype(float))

    def __len__(self) -> int:
        return len(self._coefficients)

    def __getitem__(self, i: int) -> ConstraintPolynomial:
        poly = self.polynomial(i)
        return ConstraintPolynomial(poly, tuple(constraint_gradient(poly)))

    def __iter__(self):
        return (self[i] for i in range(len(self)))

    def __repr__(self) -> str:
        return f"ConstraintSet(n_constraints={len(self)}, n_monomials={len(self._exponents)})"

    @property
    def param_vars(self) -> Tuple[str, ...]:
        return self._param_vars

    @property
    def points(self) -> np.ndarray:
        return self._points

    @property
    def margin(self) -> float:
        return self._margin

    @property
    def coefficients(self) -> np.ndarray:
        return self._coefficients

    @property
    def exponents(self) -> np.ndarray:
        return self._exponents

    def polynomial(self, i: int) -> Polynomial:
        """Constraint polynomial ``g_i`` over the parameters."""
        return Polynomial(self._param_vars, self._exponents, self._coefficients[i])

    def polynomials(self) -> List[Polynomial]:
        return [self.polynomial(i) for i in range(len(self))]

    def gradients(self) -> List[List[Polynomial]]:
        return [constraint_gradient(p) for p in self.polynomials()]

    # ------------------------------------------------------------------
    # Numeric evaluation
    # ------------------------------------------------------------------

    def _monomials(self, k, exponents: np.ndarray) -> np.ndarray:
        k = np.asarray(k, dtype=float)
        return np.prod(k[None, :] ** exponents, axis=1)

    def values(self, k) -> np.ndarray:
        """(P,) constraint values ``g_i(k)``."""
        if len(self) == 0:
            return np.zeros(0)
        return self._coefficients @ self._monomials(k, self._exponents)

    def values_batch(self, ks) -> np.ndarray:
        """(N, P) constraint values for N parameter vectors."""
        ks = np.atleast_2d(np.asarray(ks, dtype=float))
        monomials = np.prod(ks[:, None, :] ** self._exponents[None, :, :], axis=2)
        return monomials @ self._coefficients.T

    def jacobian(self, k) -> np.ndarray:
        """(P, n_k) exact Jacobian of :meth:`values`."""
        if len(self) == 0:
            return np.zeros((0, len(self._param_vars)))
        columns = [self._coefficients @ (scale * self._monomials(k, exps))
                   for exps, scale in zip(self._grad_exponents, self._grad_scales)]
        return np.column_stack(columns)

    def slack(self, k) -> np.ndarray:
        """``g_i(k) - margin``; non-negative entries are satisfied."""
        return self.values(k) - self._margin

    def is_satisfied(self, k, tolerance: float = 0.0) -> bool:
        return len(self) == 0 or bool(np.min(self.slack(k)) >= -tolerance)


def evaluate_on_points(structure: FRSPolynomialStructure,
                       points,
                       margin: float = 0.0) -> ConstraintSet:
    """Substitute FRS-frame points into the decomposed polynomial.

    Args:
        structure: Output of :func:`decompose`.
        points: (P, n_z) obstacle points in FRS frame; order is preserved.
        margin: Safety margin stored on the returned set.

    Returns:
        ConstraintSet with ``g_i(k) = 1 - I(k, z_i)``.
    """
    points = np.asarray(points, dtype=float).reshape(-1, len(structure.state_vars))
    state_monomials = np.prod(points[:, None, :] ** structure.state_exponents[None, :, :],
                              axis=2)
    frs_coefficients = state_monomials @ structure.coefficients      # (P, M)

    exponents = structure.param_exponents
    coefficients = -frs_coefficients
    constant = np.all(exponents == 0, axis=1)
    if np.any(constant):
        coefficients[:, np.argmax(constant)] += REACHABLE_LEVEL
    else:
        exponents = np.vstack([exponents, np.zeros((1, exponents.shape[1]), dtype=int)])
        coefficients = np.hstack([coefficients,
                                  np.full((len(points), 1), REACHABLE_LEVEL)])

    n_degenerate = int(np.sum(~np.any(coefficients, axis=1)))
    if n_degenerate:
        logger.debug(f"{n_degenerate} constraint polynomials are identically zero")
    return ConstraintSet(structure.param_vars, exponents, coefficients,
                         points=points, margin=margin)


def constraint_gradient(polynomial: Polynomial) -> List[Polynomial]:
    """Exact partial derivatives of a constraint polynomial."""
    return polynomial.gradient()


def build_constraints(frs: FRSModel,
                      points_frs,
                      margin: float = 0.0,
                      structure: FRSPolynomialStructure = None) -> ConstraintSet:
    """Decompose (unless *structure* is given) and evaluate on *points_frs*."""
    if structure is None:
        structure = decompose_frs(frs)
    return evaluate_on_points(structure, points_frs, margin=margin)
