from rtd.planning.discretization import (DiscretizerConfig, DiscretizedObstacle,
                                         compute_point_spacing, buffer_obstacle,
                                         interpolate_ring, discretize_obstacle)
from rtd.planning.constraints import (FRSPolynomialStructure, ConstraintSet,
                                      ConstraintPolynomial, decompose, decompose_frs,
                                      evaluate_on_points, constraint_gradient,
                                      build_constraints)
from rtd.planning.cost import GoalCost
from rtd.planning.optimizer import (OptimizerConfig, OptimizationResult, TrajectoryOptimizer,
                                    parameter_bounds, optimize_parameters)
from rtd.planning.materializer import (MaterializerConfig, TrajectoryMaterializer,
                                       braking_profile, integrate_unicycle)
from rtd.planning.planner import PlannerConfig, PlanResult, RTDPlanner
