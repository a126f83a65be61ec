import numpy as np
import pytest

from rtd.agents import TurtlebotAgent
from rtd.core.trajectory import Trajectory


def straight_reference(length=1.0, speed=1.0, n=11):
    times = np.linspace(0.0, length / speed, n)
    x = speed * times
    states = np.column_stack([x, np.zeros(n), np.zeros(n), np.full(n, speed)])
    controls = np.column_stack([np.zeros(n), np.full(n, speed)])
    return times, controls, states


class TestTurtlebotAgent:
    def test_initial_state(self, agent):
        np.testing.assert_allclose(agent.state, [0.0, 0.0, 0.0, 0.5])
        assert agent.speed == pytest.approx(0.5)
        assert agent.time == 0.0
        assert len(agent.history) == 1

    def test_execute_in_world_frame(self):
        agent = TurtlebotAgent(initial_state=[1.0, 1.0, np.pi / 2, 1.0])
        agent.execute(1.0, *straight_reference())
        np.testing.assert_allclose(agent.position, [1.0, 2.0], atol=1e-12)
        assert agent.heading == pytest.approx(np.pi / 2)
        assert agent.time == pytest.approx(1.0)
        assert len(agent.history) == 11

    def test_execute_stops_after_duration(self, agent):
        agent.execute(0.5, *straight_reference())
        np.testing.assert_allclose(agent.position, [0.5, 0.0], atol=1e-12)
        assert agent.time == pytest.approx(0.5)

    def test_execute_stops_between_samples(self, agent):
        agent.execute(0.55, *straight_reference())
        np.testing.assert_allclose(agent.position, [0.55, 0.0], atol=1e-12)
        assert agent.time == pytest.approx(0.55)
        assert len(agent.history) == 7

    def test_reference_interpolation(self):
        reference = Trajectory(*straight_reference(speed=2.0))
        np.testing.assert_allclose(reference.state_at(0.125), [0.25, 0.0, 0.0, 2.0])
        np.testing.assert_allclose(reference.state_at(5.0), reference.states[-1])

    def test_consecutive_executions_accumulate(self, agent):
        agent.execute(1.0, *straight_reference())
        agent.execute(1.0, *straight_reference())
        np.testing.assert_allclose(agent.position, [2.0, 0.0], atol=1e-12)
        assert np.all(np.diff(agent.history_times) > 0.0)

    def test_reset(self, agent):
        agent.execute(1.0, *straight_reference())
        agent.reset([2.0, 0.0, 0.0, 0.0])
        np.testing.assert_allclose(agent.position, [2.0, 0.0])
        assert len(agent.history) == 1

    def test_footprint_polygon(self, agent):
        outline = agent.footprint_polygon(16)
        assert outline.shape == (16, 2)
        np.testing.assert_allclose(np.linalg.norm(outline - agent.position, axis=1),
                                   agent.footprint)

    def test_invalid_footprint(self):
        with pytest.raises(ValueError):
            TurtlebotAgent(footprint=0.0)
