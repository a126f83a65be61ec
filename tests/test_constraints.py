import numpy as np
import pytest

from rtd.core.polynomial import Polynomial
from rtd.frs.model import REACHABLE_LEVEL
from rtd.planning.constraints import (ConstraintSet, build_constraints, decompose,
                                      decompose_frs, evaluate_on_points)

VARS = ("k1", "k2", "z1", "z2")


def var(name):
    return Polynomial.variable(name, VARS)


def disk_frs_polynomial():
    """I(k, z) = 2 - z1^2 - z2^2: the unit disk is reachable for every k."""
    return 2.0 - var("z1") ** 2 - var("z2") ** 2


def finite_difference(f, k, h=1e-6):
    k = np.asarray(k, dtype=float)
    columns = []
    for j in range(len(k)):
        step = np.zeros_like(k)
        step[j] = h
        columns.append((np.asarray(f(k + step)) - np.asarray(f(k - step))) / (2 * h))
    return np.stack(columns, axis=-1)


class TestDecompose:
    def test_structure_shapes(self):
        poly = var("k1") * var("z1") ** 2 + 3.0 * var("k2") * var("z1") ** 2 + var("z2") + 1.0
        structure = decompose(poly, ("z1", "z2"), ("k1", "k2"))
        assert structure.state_exponents.shape[1] == 2
        assert structure.param_exponents.shape[1] == 2
        # z-exponent groups: z1^2, z2, 1
        assert len(structure.state_exponents) == 3
        assert structure.coefficients.shape == (3, len(structure.param_exponents))
        assert structure.coefficients.sum() == pytest.approx(1.0 + 3.0 + 1.0 + 1.0)

    def test_matches_direct_substitution(self, frs, rng):
        structure = decompose_frs(frs)
        points = rng.uniform(-1.0, 1.0, (25, 2))
        constraints = evaluate_on_points(structure, points)
        assert len(constraints) == len(points)
        for i, z in enumerate(points):
            direct = REACHABLE_LEVEL - frs.polynomial.substitute({"z1": z[0], "z2": z[1]})
            for k in rng.uniform(-1.0, 1.0, (5, 2)):
                assert constraints.values(k)[i] == pytest.approx(direct(k), abs=1e-9)
                assert constraints.polynomial(i)(k) == pytest.approx(direct(k), abs=1e-9)

    def test_order_is_preserved(self, frs, rng):
        structure = decompose_frs(frs)
        points = rng.uniform(-1.0, 1.0, (10, 2))
        forward = evaluate_on_points(structure, points)
        backward = evaluate_on_points(structure, points[::-1])
        k = np.array([0.2, -0.3])
        np.testing.assert_allclose(forward.values(k), backward.values(k)[::-1])
        np.testing.assert_allclose(forward.points, points)


class TestSignConvention:
    def test_outside_points_are_satisfied_inside_points_violated(self, rng):
        structure = decompose(disk_frs_polynomial(), ("z1", "z2"), ("k1", "k2"))
        outside = np.array([[1.5, 0.0], [0.0, -2.0], [1.2, 1.2]])
        inside = np.array([[0.0, 0.0], [0.5, 0.5], [-0.9, 0.0]])
        outside_set = evaluate_on_points(structure, outside, margin=0.1)
        inside_set = evaluate_on_points(structure, inside, margin=0.1)
        for k in rng.uniform(-1.0, 1.0, (20, 2)):
            assert np.all(outside_set.values(k) >= outside_set.margin)
            assert np.all(inside_set.values(k) < inside_set.margin)
            assert outside_set.is_satisfied(k)
            assert not inside_set.is_satisfied(k)

    def test_synthetic_frs_robot_position_is_always_reachable(self, frs, rng):
        constraints = build_constraints(frs, [[frs.initial_x, frs.initial_y]])
        for k in rng.uniform(-1.0, 1.0, (20, 2)):
            assert constraints.values(k)[0] < 0.0

    def test_synthetic_frs_far_point_is_never_reachable(self, frs, rng):
        constraints = build_constraints(frs, [[frs.initial_x - 3.0, 0.0]])
        for k in rng.uniform(-1.0, 1.0, (20, 2)):
            assert constraints.values(k)[0] > 0.0

    def test_slack_includes_margin(self):
        structure = decompose(disk_frs_polynomial(), ("z1", "z2"), ("k1", "k2"))
        constraints = evaluate_on_points(structure, [[2.0, 0.0]], margin=0.5)
        # g = z1^2 + z2^2 - 1 = 3
        assert constraints.values([0.0, 0.0])[0] == pytest.approx(3.0)
        assert constraints.slack([0.0, 0.0])[0] == pytest.approx(2.5)


class TestGradients:
    def test_jacobian_matches_finite_differences(self, frs, rng):
        points = rng.uniform(-1.0, 1.0, (15, 2))
        constraints = build_constraints(frs, points)
        for k in rng.uniform(-0.9, 0.9, (10, 2)):
            np.testing.assert_allclose(constraints.jacobian(k),
                                       finite_difference(constraints.values, k),
                                       rtol=1e-5, atol=1e-6)

    def test_gradient_polynomials_match_jacobian(self, frs, rng):
        points = rng.uniform(-1.0, 1.0, (4, 2))
        constraints = build_constraints(frs, points)
        k = np.array([0.3, -0.4])
        jacobian = constraints.jacobian(k)
        for i, pair in enumerate(constraints):
            assert [g(k) for g in pair.gradient] == pytest.approx(jacobian[i].tolist(), abs=1e-9)
            assert pair.polynomial(k) == pytest.approx(constraints.values(k)[i])

    def test_values_batch(self, frs, rng):
        constraints = build_constraints(frs, rng.uniform(-1.0, 1.0, (6, 2)))
        ks = rng.uniform(-1.0, 1.0, (7, 2))
        batch = constraints.values_batch(ks)
        assert batch.shape == (7, 6)
        for row, k in zip(batch, ks):
            np.testing.assert_allclose(row, constraints.values(k))


class TestDegenerateConstraints:
    def test_identically_zero_constraint(self):
        # I == 1 everywhere, so g = 1 - I == 0
        poly = Polynomial.constant(1.0, VARS)
        constraints = evaluate_on_points(decompose(poly, ("z1", "z2"), ("k1", "k2")),
                                         [[0.1, 0.2], [0.3, 0.4]])
        assert len(constraints) == 2
        assert constraints.polynomial(0).is_zero()
        np.testing.assert_allclose(constraints.values([0.5, 0.5]), 0.0)
        np.testing.assert_allclose(constraints.jacobian([0.5, 0.5]), 0.0)
        assert constraints.is_satisfied([0.5, 0.5])

    def test_no_points(self, frs):
        constraints = build_constraints(frs, np.zeros((0, 2)))
        assert len(constraints) == 0
        assert constraints.values([0.0, 0.0]).shape == (0,)
        assert constraints.jacobian([0.0, 0.0]).shape == (0, 2)
        assert constraints.is_satisfied([0.0, 0.0])

    def test_direct_construction(self):
        constraints = ConstraintSet(("k1", "k2"), [[0, 0], [2, 0]], [[-1.0, -1.0]])
        assert constraints.values([2.0, 0.0])[0] == pytest.approx(-5.0)
        np.testing.assert_allclose(constraints.jacobian([2.0, 0.0]), [[-4.0, 0.0]])
