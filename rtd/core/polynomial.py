"""Sparse multivariate polynomials.

A :class:`Polynomial` is an explicit list of monomials: an ``(M, n)``
integer exponent matrix and an ``(M,)`` coefficient vector over ``n``
named variables.  Evaluation, substitution and differentiation are all
plain numpy array operations, which keeps the cost of evaluating
reachability polynomials on many obstacle points predictable.
"""

import logging
from typing import Dict, List, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

Number = Union[int, float]


class Polynomial:
    """Polynomial with real coefficients over an ordered set of variables.

    Args:
        variables: Ordered variable names.
        exponents: (M, n) non-negative integer exponent matrix, one row per
            monomial, one column per variable.
        coefficients: (M,) real coefficients.
        simplify: If True, merge duplicate exponent rows and drop zero
            coefficients.
    """

    def __init__(self,
                 variables: Sequence[str],
                 exponents=None,
                 coefficients=None,
                 simplify: bool = True):
        self._variables = tuple(variables)
        if len(set(self._variables)) != len(self._variables):
            raise ValueError(f"Duplicate variable names in {self._variables}")
        n = len(self._variables)

        if exponents is None:
            exponents = np.zeros((0, n), dtype=int)
        if coefficients is None:
            coefficients = np.zeros(0)

        coefficients = np.asarray(coefficients, dtype=float).reshape(-1)
        if n == 0:
            # Constant polynomial; reshape(-1, 0) is ambiguous
            exponents = np.zeros((len(np.asarray(exponents)), 0), dtype=int)
        else:
            exponents = np.asarray(exponents, dtype=int).reshape(-1, n)
        if len(exponents) != len(coefficients):
            raise ValueError(f"Got {len(exponents)} exponent rows but "
                             f"{len(coefficients)} coefficients")
        if np.any(exponents < 0):
            raise ValueError("Exponents must be non-negative")

        if simplify:
            exponents, coefficients = _merge_terms(exponents, coefficients)
        self._exponents = exponents
        self._coefficients = coefficients

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def constant(cls, value: Number, variables: Sequence[str]) -> "Polynomial":
        return cls(variables, np.zeros((1, len(variables)), dtype=int), [value])

    @classmethod
    def variable(cls, name: str, variables: Sequence[str]) -> "Polynomial":
        """The polynomial equal to the single variable *name*."""
        variables = tuple(variables)
        exponent = np.zeros((1, len(variables)), dtype=int)
        exponent[0, variables.index(name)] = 1
        return cls(variables, exponent, [1.0])

    @classmethod
    def from_dict(cls, data: Dict) -> "Polynomial":
        """Build from ``{"variables": [...], "exponents": [[...]], "coefficients": [...]}``."""
        try:
            return cls(data["variables"], data["exponents"], data["coefficients"])
        except KeyError as e:
            raise ValueError(f"Polynomial dict is missing key {e}") from e

    def to_dict(self) -> Dict:
        return {"variables": list(self._variables),
                "exponents": self._exponents.tolist(),
                "coefficients": self._coefficients.tolist()}

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def variables(self) -> tuple:
        return self._variables

    @property
    def exponents(self) -> np.ndarray:
        return self._exponents

    @property
    def coefficients(self) -> np.ndarray:
        return self._coefficients

    @property
    def n_terms(self) -> int:
        return len(self._coefficients)

    @property
    def degree(self) -> int:
        """Total degree; zero for the zero polynomial."""
        if self.n_terms == 0:
            return 0
        return int(self._exponents.sum(axis=1).max())

    def is_zero(self) -> bool:
        return self.n_terms == 0 or not np.any(self._coefficients)

    def __repr__(self) -> str:
        return (f"Polynomial(variables={self._variables}, "
                f"n_terms={self.n_terms}, degree={self.degree})")

    def __str__(self) -> str:
        if self.is_zero():
            return "0"
        terms = []
        for coef, row in zip(self._coefficients, self._exponents):
            factors = [f"{v}^{p}" if p > 1 else v
                       for v, p in zip(self._variables, row) if p > 0]
            terms.append("*".join([f"{coef:g}"] + factors))
        return " + ".join(terms)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def monomials(self, points) -> np.ndarray:
        """Evaluate every monomial at each point.

        Args:
            points: (n,) or (P, n) array of variable values, ordered as
                :attr:`variables`.

        Returns:
            (M,) or (P, M) array of monomial values.
        """
        points = np.asarray(points, dtype=float)
        single = points.ndim == 1
        points = np.atleast_2d(points)
        if points.shape[1] != len(self._variables):
            raise ValueError(f"Expected {len(self._variables)} values per point, "
                             f"got {points.shape[1]}")
        values = np.prod(points[:, None, :] ** self._exponents[None, :, :], axis=2)
        return values[0] if single else values

    def evaluate(self, points) -> Union[float, np.ndarray]:
        """Evaluate the polynomial at one point (n,) or a batch (P, n)."""
        values = self.monomials(points) @ self._coefficients
        if np.ndim(values) == 0:
            return float(values)
        return values

    def __call__(self, points):
        return self.evaluate(points)

    def substitute(self, assignment: Dict[str, Number]) -> "Polynomial":
        """Fix some variables to numeric values.

        Returns:
            Polynomial over the remaining variables (in their original order).
        """
        unknown = set(assignment) - set(self._variables)
        if unknown:
            raise ValueError(f"Cannot substitute unknown variables {sorted(unknown)}")

        fixed = [i for i, v in enumerate(self._variables) if v in assignment]
        free = [i for i, v in enumerate(self._variables) if v not in assignment]
        values = np.array([assignment[self._variables[i]] for i in fixed], dtype=float)

        factor = np.prod(values[None, :] ** self._exponents[:, fixed], axis=1)
        return Polynomial([self._variables[i] for i in free],
                          self._exponents[:, free],
                          self._coefficients * factor)

    # ------------------------------------------------------------------
    # Differentiation
    # ------------------------------------------------------------------

    def derivative(self, variable: str) -> "Polynomial":
        """Exact partial derivative with respect to *variable*."""
        j = self._variables.index(variable)
        powers = self._exponents[:, j]
        keep = powers > 0
        exponents = self._exponents[keep].copy()
        exponents[:, j] -= 1
        return Polynomial(self._variables, exponents,
                          self._coefficients[keep] * powers[keep])

    def gradient(self, variables: Sequence[str] = None) -> List["Polynomial"]:
        """Partial derivatives w.r.t. *variables* (default: all of them)."""
        if variables is None:
            variables = self._variables
        return [self.derivative(v) for v in variables]

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def _coerce(self, other) -> "Polynomial":
        if isinstance(other, Polynomial):
            if other.variables != self._variables:
                raise ValueError(f"Variable mismatch: {self._variables} vs {other.variables}")
            return other
        if np.isscalar(other):
            return Polynomial.constant(float(other), self._variables)
        return NotImplemented

    def __add__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return Polynomial(self._variables,
                          np.vstack([self._exponents, other.exponents]),
                          np.concatenate([self._coefficients, other.coefficients]))

    __radd__ = __add__

    def __neg__(self):
        return Polynomial(self._variables, self._exponents, -self._coefficients,
                          simplify=False)

    def __sub__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return self + (-other)

    def __rsub__(self, other):
        return (-self) + other

    def __mul__(self, other):
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        exponents = (self._exponents[:, None, :] + other.exponents[None, :, :])
        coefficients = np.outer(self._coefficients, other.coefficients)
        return Polynomial(self._variables,
                          exponents.reshape(-1, len(self._variables)),
                          coefficients.reshape(-1))

    __rmul__ = __mul__

    def __truediv__(self, other):
        if not np.isscalar(other):
            return NotImplemented
        return self * (1.0 / float(other))

    def __pow__(self, power: int):
        if not isinstance(power, (int, np.integer)) or power < 0:
            raise ValueError("Only non-negative integer powers are supported")
        result = Polynomial.constant(1.0, self._variables)
        base = self
        while power:
            if power & 1:
                result = result * base
            base = base * base
            power >>= 1
        return result

    def reorder(self, variables: Sequence[str]) -> "Polynomial":
        """Re-express over *variables*, which must contain all used variables."""
        variables = tuple(variables)
        exponents = np.zeros((self.n_terms, len(variables)), dtype=int)
        for j, v in enumerate(self._variables):
            used = np.any(self._exponents[:, j] > 0)
            if v not in variables:
                if used:
                    raise ValueError(f"Variable {v} is used but missing from {variables}")
                continue
            exponents[:, variables.index(v)] = self._exponents[:, j]
        return Polynomial(variables, exponents, self._coefficients)

    def allclose(self, other: "Polynomial", atol: float = 1e-9) -> bool:
        """Whether two polynomials over the same variables agree term-wise."""
        difference = self - other
        return bool(np.all(np.abs(difference.coefficients) <= atol))


def _merge_terms(exponents: np.ndarray, coefficients: np.ndarray):
    """Sum coefficients of identical exponent rows and drop zero terms.

    Rows come out in lexicographic exponent order, so equal polynomials
    always have identical representations.
    """
    n = exponents.shape[1]
    if len(coefficients) == 0:
        return np.zeros((0, n), dtype=int), np.zeros(0)
    if n == 0:
        total = float(np.sum(coefficients))
        if total == 0.0:
            return np.zeros((0, 0), dtype=int), np.zeros(0)
        return np.zeros((1, 0), dtype=int), np.array([total])
    unique, inverse = np.unique(exponents, axis=0, return_inverse=True)
    merged = np.zeros(len(unique))
    np.add.at(merged, inverse.reshape(-1), coefficients)
    keep = merged != 0.0
    return unique[keep], merged[keep]
