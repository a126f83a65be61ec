"""One reachability-based planning cycle.

Orchestrates frame transform, obstacle discretisation, constraint
generation, goal cost, parameter optimisation and trajectory
construction.  Optimisation failure never propagates: the cycle then
returns the braking fallback.
"""

import logging
import time
from dataclasses import dataclass, field, asdict
from typing import Dict, Optional, Union

import numpy as np

from rtd.core.frame import FrameTransform
from rtd.core.trajectory import Trajectory
from rtd.frs.library import FRSLibrary
from rtd.frs.model import FRSModel
from rtd.planning.constraints import (ConstraintSet, FRSPolynomialStructure,
                                      decompose_frs, evaluate_on_points)
from rtd.planning.cost import GoalCost
from rtd.planning.discretization import (DiscretizedObstacle, DiscretizerConfig,
                                         compute_point_spacing, discretize_obstacle)
from rtd.planning.materializer import MaterializerConfig, TrajectoryMaterializer
from rtd.planning.optimizer import (OptimizationResult, OptimizerConfig,
                                    TrajectoryOptimizer, parameter_bounds)

logger = logging.getLogger(__name__)


@dataclass
class PlannerConfig:
    """Configuration of a planning cycle."""
    discretizer: DiscretizerConfig = field(default_factory=DiscretizerConfig)
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    materializer: MaterializerConfig = field(default_factory=MaterializerConfig)

    @classmethod
    def from_dict(cls, config: Dict) -> "PlannerConfig":
        """Build from a nested dict such as a parsed JSON config.

        Unknown sections or keys raise ``ValueError``.
        """
        sections = {"discretizer": DiscretizerConfig,
                    "optimizer": OptimizerConfig,
                    "materializer": MaterializerConfig}
        unknown = set(config) - set(sections)
        if unknown:
            raise ValueError(f"Unknown planner config sections {sorted(unknown)}")
        kwargs = {}
        for name, section_cls in sections.items():
            try:
                kwargs[name] = section_cls(**config.get(name, {}))
            except TypeError as e:
                raise ValueError(f"Invalid {name} config: {e}") from e
        if "k1_bounds" in config.get("optimizer", {}):
            kwargs["optimizer"].k1_bounds = tuple(kwargs["optimizer"].k1_bounds)
        return cls(**kwargs)

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class PlanResult:
    """Outcome of one planning cycle.

    ``trajectory`` is always set: the optimised trajectory on success,
    the braking fallback otherwise (``trajectory.braking`` is True).
    """
    optimization: OptimizationResult
    trajectory: Trajectory
    frs: FRSModel
    transform: FrameTransform
    goal_local: np.ndarray
    obstacle: Optional[DiscretizedObstacle]
    constraints: Optional[ConstraintSet]
    bounds: np.ndarray
    planning_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.optimization.success

    @property
    def k_opt(self) -> Optional[np.ndarray]:
        return self.optimization.k_opt


class RTDPlanner:
    """Single-step planner using precomputed forward reachable sets.

    Args:
        frs: A single FRS model or a library to pick from by initial speed.
        config: Planner configuration. If None, uses defaults.
    """

    def __init__(self, frs: Union[FRSModel, FRSLibrary], config: PlannerConfig = None):
        self._library = frs if isinstance(frs, FRSLibrary) else FRSLibrary([frs])
        self._config = config if config is not None else PlannerConfig()
        self._optimizer = TrajectoryOptimizer(self._config.optimizer)
        # Decomposed FRS polynomials, keyed by model identity
        self._structures: Dict[int, FRSPolynomialStructure] = {}

    @property
    def config(self) -> PlannerConfig:
        return self._config

    @property
    def library(self) -> FRSLibrary:
        return self._library

    def structure(self, frs: FRSModel) -> FRSPolynomialStructure:
        key = id(frs)
        if key not in self._structures:
            self._structures[key] = decompose_frs(frs)
        return self._structures[key]

    def point_spacing(self, footprint: float) -> float:
        spacing = self._config.discretizer.point_spacing
        if spacing is None:
            spacing = compute_point_spacing(footprint, self._config.discretizer.buffer)
        return spacing

    def plan(self, agent, obstacle, goal) -> PlanResult:
        """Run one planning cycle.

        Args:
            agent: Robot exposing ``pose``, ``speed``, ``footprint`` and
                ``max_accel``.
            obstacle: (N, 2) obstacle polygon vertices in world frame, or
                None for no obstacle.
            goal: Goal position in world frame.

        Returns:
            PlanResult with either the optimised or the braking trajectory.

        Raises:
            FRSConfigurationError: if no FRS covers the agent's speed.
            ValueError: for malformed obstacles or footprint.
        """
        start = time.time()
        v_0 = float(agent.speed)
        frs = self._library.select(v_0)
        transform = FrameTransform.for_frs(agent.pose, frs)

        # Cost
        goal_local = transform.world_to_local(np.asarray(goal, dtype=float))
        cost = GoalCost(frs, goal_local)

        # Constraints
        config = self._config
        discretized = None
        constraints = evaluate_on_points(self.structure(frs), np.zeros((0, 2)),
                                         margin=config.optimizer.constraint_margin)
        if obstacle is not None:
            discretized = discretize_obstacle(obstacle,
                                              config.discretizer.buffer,
                                              self.point_spacing(agent.footprint),
                                              transform,
                                              join_style=config.discretizer.join_style,
                                              mitre_limit=config.discretizer.mitre_limit)
            constraints = evaluate_on_points(self.structure(frs), discretized.points_frs,
                                             margin=config.optimizer.constraint_margin)

        # Optimisation
        bounds = parameter_bounds(frs, v_0, config.optimizer.k1_bounds)
        result = self._optimizer.optimize(cost, constraints, bounds)

        # Trajectory
        materializer = TrajectoryMaterializer(frs, agent.max_accel, config.materializer)
        if result.success:
            trajectory = materializer.materialize(result.k_opt)
            logger.info(f"Found trajectory with k_opt={np.round(result.k_opt, 4).tolist()} "
                        f"using {frs.name} and {len(constraints)} constraints")
        else:
            trajectory = materializer.braking(v_0)
            logger.info(f"No safe trajectory found ({result.message}); braking")

        return PlanResult(optimization=result,
                          trajectory=trajectory,
                          frs=frs,
                          transform=transform,
                          goal_local=goal_local,
                          obstacle=discretized,
                          constraints=constraints,
                          bounds=bounds,
                          planning_time=time.time() - start)

    def step(self, agent, obstacle, goal) -> PlanResult:
        """Plan once and execute the resulting trajectory on *agent*."""
        result = self.plan(agent, obstacle, goal)
        trajectory = result.trajectory
        agent.execute(trajectory.duration, trajectory.times,
                      trajectory.controls, trajectory.states)
        return result
