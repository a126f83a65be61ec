from rtd.core.polynomial import Polynomial
from rtd.core.frame import FrameTransform, world_to_local, local_to_world
from rtd.core.trajectory import Trajectory
from rtd.core.obstacle import make_random_polygon
