import numpy as np
import pytest

import rtd as rt


@pytest.fixture(scope="session")
def frs():
    return rt.make_synthetic_frs(v0_range=(0.5, 1.0))


@pytest.fixture(scope="session")
def library():
    return rt.FRSLibrary(rt.make_synthetic_models())


@pytest.fixture
def agent():
    return rt.TurtlebotAgent(footprint=0.175, max_accel=2.0,
                             initial_state=[0.0, 0.0, 0.0, 0.5])


@pytest.fixture
def rng():
    return np.random.default_rng(0)


def unit_square(center=(0.0, 0.0), side=1.0):
    c = np.asarray(center, dtype=float)
    h = side / 2.0
    return c + np.array([[-h, -h], [h, -h], [h, h], [-h, h]])


def pocket_obstacle(door=0.06):
    """1 m square room with 0.1 m walls around the origin and a door facing +x."""
    h = door / 2.0
    return np.array([[-0.5, -0.5], [0.5, -0.5], [0.5, -h], [0.4, -h], [0.4, -0.4],
                     [-0.4, -0.4], [-0.4, 0.4], [0.4, 0.4], [0.4, h], [0.5, h],
                     [0.5, 0.5], [-0.5, 0.5]])
