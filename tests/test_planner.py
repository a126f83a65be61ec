import numpy as np
import pytest

import rtd as rt
from rtd.planning.planner import PlannerConfig, RTDPlanner

from conftest import pocket_obstacle, unit_square


class TestPlannerConfig:
    def test_defaults(self):
        config = PlannerConfig()
        assert config.discretizer.buffer == pytest.approx(0.05)
        assert config.optimizer.k1_bounds == (-1.0, 1.0)
        assert config.materializer.braking_power == 4

    def test_from_dict(self):
        config = PlannerConfig.from_dict({
            "discretizer": {"buffer": 0.1},
            "optimizer": {"k1_bounds": [-0.5, 0.5], "max_iterations": 50},
        })
        assert config.discretizer.buffer == pytest.approx(0.1)
        assert config.optimizer.k1_bounds == (-0.5, 0.5)
        assert config.optimizer.max_iterations == 50
        assert config.materializer.dt == pytest.approx(0.01)

    def test_to_dict_round_trip(self):
        config = PlannerConfig.from_dict({"materializer": {"dt": 0.02}})
        again = PlannerConfig.from_dict(config.to_dict())
        assert again == config

    @pytest.mark.parametrize("data", [{"solver": {}}, {"optimizer": {"step_size": 1.0}}])
    def test_unknown_entries(self, data):
        with pytest.raises(ValueError):
            PlannerConfig.from_dict(data)


class TestPlanning:
    def test_no_obstacle_in_the_way(self, library, agent):
        planner = RTDPlanner(library)
        goal = np.array([1.0, 0.0])
        obstacle = np.tile([[-2.0, 3.0]], (4, 1))
        result = planner.plan(agent, obstacle, goal)

        assert result.frs.v0_range == (0.5, 1.0)
        assert result.success
        assert not result.trajectory.braking
        # The fastest reachable speed is v_0 + delta_v = 1 m/s, so k2 = 1/3
        assert result.k_opt[0] == pytest.approx(0.0, abs=1e-4)
        assert result.k_opt[1] == pytest.approx(1.0 / 3.0, abs=1e-4)
        np.testing.assert_allclose(result.frs.desired_position(result.k_opt), goal, atol=1e-3)
        assert result.constraints.is_satisfied(result.k_opt, 1e-6)

    def test_without_obstacle(self, library, agent):
        result = RTDPlanner(library).plan(agent, None, [1.0, 0.5])
        assert result.success
        assert result.obstacle is None
        assert len(result.constraints) == 0
        assert result.k_opt[0] > 0.0

    def test_obstacle_ahead(self, library, agent):
        planner = RTDPlanner(library)
        result = planner.plan(agent, unit_square((0.6, 0.0), side=0.2), [1.0, 0.0])

        assert len(result.obstacle) > 0
        if result.success:
            assert result.constraints.is_satisfied(result.k_opt, 1e-6)
            contour = result.frs.contour_polynomial(result.k_opt)
            assert np.all(contour(result.obstacle.points_frs) <= 1e-6)
            assert not result.trajectory.braking
        else:
            assert result.k_opt is None
            assert result.trajectory.braking
            assert result.trajectory.speed[0] == pytest.approx(agent.speed)

    def test_robot_inside_closed_pocket(self, library, agent):
        # The narrow door is closed off by the buffer, leaving a hole around the robot
        result = RTDPlanner(library).plan(agent, pocket_obstacle(), [3.0, 0.0])

        points = result.obstacle.points_world
        hole_points = result.obstacle.points_frs[np.max(np.abs(points), axis=1) < 0.4]
        assert len(hole_points) > 0
        if result.success:
            contour = result.frs.contour_polynomial(result.k_opt)
            assert np.all(contour(hole_points) <= 1e-6)
            assert np.all(contour(result.obstacle.points_frs) <= 1e-6)
        else:
            assert result.trajectory.braking

    def test_obstacle_on_robot_forces_braking(self, library, agent):
        result = RTDPlanner(library).plan(agent, unit_square((0.0, 0.0), side=0.1), [1.0, 0.0])
        assert not result.success
        assert result.trajectory.braking
        assert result.trajectory.speed[-1] == 0.0

    def test_single_point_speed_bounds(self, agent):
        library = rt.FRSLibrary(rt.make_synthetic_models(delta_v=0.0, v_range=(0.0, 1.5)))
        agent.reset([0.0, 0.0, 0.0, 1.5])
        result = RTDPlanner(library).plan(agent, None, [1.0, 0.5])

        assert result.frs.v0_range == (1.0, 1.5)
        assert result.bounds[1, 0] == pytest.approx(result.bounds[1, 1])
        assert result.success
        assert result.k_opt[1] == pytest.approx(1.0)

    def test_empty_speed_bounds_brake(self, agent):
        frs = rt.make_synthetic_frs(v0_range=(1.0, 1.5), v_range=(0.0, 1.0), delta_v=0.2)
        agent.reset([0.0, 0.0, 0.0, 1.5])
        result = RTDPlanner(frs).plan(agent, None, [1.0, 0.0])

        assert not result.success
        assert result.bounds[1, 0] > result.bounds[1, 1]
        assert result.trajectory.braking
        assert result.trajectory.speed[0] == pytest.approx(1.5)

    def test_uncovered_speed_raises(self, library, agent):
        agent.reset([0.0, 0.0, 0.0, 2.0])
        with pytest.raises(rt.FRSConfigurationError):
            RTDPlanner(library).plan(agent, None, [1.0, 0.0])

    def test_goal_in_rotated_frame(self, library):
        agent = rt.TurtlebotAgent(initial_state=[1.0, 1.0, np.pi / 2, 0.5])
        result = RTDPlanner(library).plan(agent, None, [1.0, 2.0])
        np.testing.assert_allclose(result.goal_local, [1.0, 0.0], atol=1e-12)
        assert result.k_opt[0] == pytest.approx(0.0, abs=1e-4)

    def test_structure_is_cached(self, library, agent):
        planner = RTDPlanner(library)
        frs = library.select(agent.speed)
        assert planner.structure(frs) is planner.structure(frs)

    def test_point_spacing_override(self, library):
        config = PlannerConfig.from_dict({"discretizer": {"point_spacing": 0.02}})
        assert RTDPlanner(library, config).point_spacing(0.175) == pytest.approx(0.02)
        assert RTDPlanner(library).point_spacing(0.175) == pytest.approx(
            rt.compute_point_spacing(0.175, 0.05))


class TestStep:
    def test_step_moves_agent(self, library, agent):
        planner = RTDPlanner(library)
        result = planner.step(agent, None, [1.0, 0.0])
        assert result.success
        assert agent.position[0] > 0.0
        assert agent.time == pytest.approx(result.trajectory.duration)
        assert agent.speed == pytest.approx(0.0)

    def test_braking_step_stops_agent(self, library, agent):
        planner = RTDPlanner(library)
        planner.step(agent, unit_square((0.0, 0.0), side=0.1), [1.0, 0.0])
        assert agent.speed == pytest.approx(0.0)
        assert agent.heading == pytest.approx(0.0)
        assert 0.0 < agent.position[0] < 0.5
