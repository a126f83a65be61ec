"""
Single-step trajectory optimisation around a random polygon obstacle.

Creates constraints on the trajectory parameters from a random obstacle,
optimises the parameters to reach a goal, moves the robot along the
resulting trajectory (or brakes if none is found) and plots the result.

Usage:
    python scripts/trajectory_optimization.py
    python scripts/trajectory_optimization.py --v0 1.2 --goal 1.0 -0.3 --seed 4
    python scripts/trajectory_optimization.py --frs-dir data/frs --no-plot
"""

import argparse
import json
import logging
import os
import sys

import numpy as np

import rtd as rt

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = os.path.join(os.path.dirname(__file__), "configs", "trajectory_optimization.json")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reachability-based trajectory optimisation example")
    parser.add_argument("--config", "-c", type=str, default=DEFAULT_CONFIG,
                        help="Path to a JSON example config")
    parser.add_argument("--frs-dir", type=str, default=None,
                        help="Directory of .json/.mat FRS files; synthetic FRS if omitted")
    parser.add_argument("--v0", type=float, default=None,
                        help="Initial speed (m/s); overrides the config")
    parser.add_argument("--goal", type=float, nargs=2, default=None,
                        help="Goal x y in world frame; overrides the config")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the random obstacle")
    parser.add_argument("--save", type=str, default=None,
                        help="Save the figure to this path instead of showing it")
    parser.add_argument("--no-plot", action="store_true",
                        help="Skip plotting")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")
    return parser.parse_args()


def load_config(path: str) -> dict:
    try:
        with open(path, "r") as f:
            return json.load(f)
    except FileNotFoundError as e:
        logger.exception(msg=f"No configuration file was found at {path}", exc_info=e)
        raise e


def main():
    args = parse_args()
    rt.setup_logging(level=logging.DEBUG if args.debug else logging.INFO)
    config = load_config(args.config)

    agent_config = config.get("agent", {})
    v_0 = args.v0 if args.v0 is not None else agent_config.get("initial_speed", 0.5)
    goal = np.array(args.goal if args.goal is not None else config.get("goal", [0.75, 0.5]))

    if args.frs_dir is not None:
        library = rt.FRSLibrary.from_directory(args.frs_dir)
    else:
        logger.info("No FRS directory given; using synthetic FRS models")
        library = rt.FRSLibrary(rt.make_synthetic_models(
            footprint=agent_config.get("footprint", 0.175)))
    logger.info(f"Loaded {library}")

    agent = rt.TurtlebotAgent(footprint=agent_config.get("footprint", 0.175),
                              max_accel=agent_config.get("max_accel", 2.0),
                              initial_state=[0.0, 0.0, 0.0, v_0])

    obstacle_config = config.get("obstacle", {})
    rng = np.random.default_rng(args.seed)
    obstacle = rt.make_random_polygon(obstacle_config.get("n_vertices", 5),
                                      obstacle_config.get("center", [1.0, 0.0]),
                                      obstacle_config.get("scale", 1.0),
                                      rng=rng)

    planner = rt.RTDPlanner(library, rt.PlannerConfig.from_dict(config.get("planner", {})))
    try:
        result = planner.step(agent, obstacle, goal)
    except rt.FRSConfigurationError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Planning took {result.planning_time:.3f}s: {result.optimization.message}")
    if result.success:
        w_des, v_des = result.frs.desired_controls(result.k_opt)
        logger.info(f"w_des={w_des:.3f} rad/s, v_des={v_des:.3f} m/s")
    logger.info(f"Agent is now at {np.round(agent.state, 3).tolist()}")

    if not args.no_plot:
        import matplotlib.pyplot as plt
        from rtd.plotting import plot_plan_result

        fig = plot_plan_result(result, goal=goal, agent=agent)
        if args.save:
            fig.savefig(args.save)
            logger.info(f"Saved figure to {args.save}")
        else:
            plt.show()
    return 0


if __name__ == '__main__':
    sys.exit(main())
