import numpy as np
import pytest

from rtd.planning.cost import GoalCost


class TestGoalCost:
    def test_straight_end_point(self, frs):
        cost = GoalCost(frs, [0.0, 0.0])
        # k1 = 0 is zero yaw rate, k2 = 1 is the maximum speed
        np.testing.assert_allclose(cost.end_point([0.0, 1.0]), [frs.v_max * frs.t_f, 0.0],
                                   atol=1e-12)
        np.testing.assert_allclose(cost.end_point([0.0, -1.0]), [0.0, 0.0], atol=1e-12)

    def test_end_point_matches_arc(self, frs):
        cost = GoalCost(frs, [0.0, 0.0])
        w, v = frs.desired_controls([0.8, 0.2])
        expected = [v / w * np.sin(w * frs.t_f), v / w * (1 - np.cos(w * frs.t_f))]
        np.testing.assert_allclose(cost.end_point([0.8, 0.2]), expected, atol=1e-6)

    def test_value_is_squared_distance(self, frs):
        goal = np.array([1.0, 0.5])
        cost = GoalCost(frs, goal, weight=2.0)
        k = np.array([0.3, 0.1])
        value, _ = cost(k)
        assert value == pytest.approx(2.0 * np.sum((cost.end_point(k) - goal) ** 2))

    def test_gradient_matches_finite_differences(self, frs, rng):
        cost = GoalCost(frs, [0.75, 0.5])
        h = 1e-6
        for k in rng.uniform(-1.0, 1.0, (10, 2)):
            _, gradient = cost(k)
            numeric = [(cost(k + h * e)[0] - cost(k - h * e)[0]) / (2 * h) for e in np.eye(2)]
            np.testing.assert_allclose(gradient, numeric, rtol=1e-5, atol=1e-7)

    def test_goal_on_reachable_end_point_has_zero_cost(self, frs):
        k = np.array([-0.4, 0.6])
        cost = GoalCost(frs, frs.desired_position(k))
        value, gradient = cost(k)
        assert value == pytest.approx(0.0, abs=1e-12)
        np.testing.assert_allclose(gradient, 0.0, atol=1e-9)
