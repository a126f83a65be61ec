"""Loading FRS models and selecting them by initial speed."""

import json
import logging
import os
from typing import Dict, Iterable, List

import numpy as np
from scipy.io import loadmat

from rtd.core.polynomial import Polynomial
from rtd.frs.model import FRSModel
from rtd.frs.synthetic import (PARAM_VARS, STATE_VARS, desired_control_polynomials,
                               unicycle_endpoint_polynomials)

logger = logging.getLogger(__name__)

FRS_EXTENSIONS = (".json", ".mat")


class FRSConfigurationError(ValueError):
    """No usable FRS for the requested configuration."""


class FRSLibrary:
    """A set of FRS models covering brackets of initial speed.

    Args:
        models: FRS models; brackets may overlap, in which case the
            fastest one containing the initial speed wins.
    """

    def __init__(self, models: Iterable[FRSModel]):
        self._models = sorted(models, key=lambda m: (m.v0_range[1], m.v0_range[0]),
                              reverse=True)
        if not self._models:
            raise FRSConfigurationError("FRS library is empty")

    def __len__(self) -> int:
        return len(self._models)

    def __iter__(self):
        return iter(self._models)

    def __repr__(self) -> str:
        brackets = ", ".join(f"{m.v0_range[0]:.2f}-{m.v0_range[1]:.2f}" for m in self._models)
        return f"FRSLibrary([{brackets}])"

    @property
    def models(self) -> List[FRSModel]:
        return list(self._models)

    @property
    def speed_range(self):
        """Overall ``(min, max)`` initial speed covered."""
        return (min(m.v0_range[0] for m in self._models),
                max(m.v0_range[1] for m in self._models))

    @classmethod
    def from_directory(cls, path: str) -> "FRSLibrary":
        """Load every ``.json`` / ``.mat`` FRS file in *path*."""
        if not os.path.isdir(path):
            raise FileNotFoundError(f"FRS directory {path} does not exist.")
        files = sorted(f for f in os.listdir(path) if f.endswith(FRS_EXTENSIONS))
        if not files:
            raise FRSConfigurationError(f"No FRS files found in {path}")
        return cls(load_frs(os.path.join(path, f)) for f in files)

    def select(self, v_0: float) -> FRSModel:
        """Fastest FRS whose initial speed bracket contains *v_0*.

        Raises:
            FRSConfigurationError: if no bracket contains *v_0*.
        """
        for model in self._models:
            if model.contains_initial_speed(v_0):
                logger.debug(f"Selected FRS {model.name} for v_0={v_0:.3f}")
                return model
        lo, hi = self.speed_range
        raise FRSConfigurationError(
            f"Initial speed {v_0} m/s is not covered by any FRS; "
            f"pick an initial speed between {lo} and {hi} m/s")


# ----------------------------------------------------------------------
# Serialisation
# ----------------------------------------------------------------------

def load_frs(path: str) -> FRSModel:
    """Load an FRS model from a JSON or MATLAB ``.mat`` file."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"FRS file {path} does not exist.")
    ext = os.path.splitext(path)[1].lower()
    name = os.path.splitext(os.path.basename(path))[0]
    if ext == ".json":
        with open(path, "r") as f:
            data = json.load(f)
        data.setdefault("name", name)
        return frs_from_dict(data)
    elif ext == ".mat":
        return _frs_from_mat(path, name)
    raise FRSConfigurationError(f"Unsupported FRS file type {ext} for {path}")


def save_frs(frs: FRSModel, path: str):
    """Write an FRS model as JSON."""
    with open(path, "w") as f:
        json.dump(frs_to_dict(frs), f, indent=2)
    logger.info(f"Saved FRS {frs.name} to {path}")


def frs_to_dict(frs: FRSModel) -> Dict:
    return {
        "name": frs.name,
        "param_vars": list(frs.param_vars),
        "state_vars": list(frs.state_vars),
        "polynomial": frs.polynomial.to_dict(),
        "v0_range": list(frs.v0_range),
        "v_range": list(frs.v_range),
        "delta_v": frs.delta_v,
        "w_max": frs.w_max,
        "distance_scale": frs.distance_scale,
        "initial_x": frs.initial_x,
        "initial_y": frs.initial_y,
        "t_plan": frs.t_plan,
        "t_f": frs.t_f,
        "footprint": frs.footprint,
        "w_des": frs.w_des.to_dict(),
        "v_des": frs.v_des.to_dict(),
        "x_des": frs.x_des.to_dict(),
        "y_des": frs.y_des.to_dict(),
    }


def frs_from_dict(data: Dict) -> FRSModel:
    """Build an FRS model from its dict form.

    The desired-control and desired-position polynomials are optional;
    missing ones are rebuilt from ``w_max``, ``v_range`` and ``t_f``.
    """
    try:
        param_vars = tuple(data.get("param_vars", PARAM_VARS))
        state_vars = tuple(data.get("state_vars", STATE_VARS))
        polynomial = Polynomial.from_dict(data["polynomial"])
        v_range = tuple(float(v) for v in data["v_range"])
        w_max = float(data["w_max"])
        t_f = float(data["t_f"])
        polys = _mappings(data, w_max, v_range[1], t_f, param_vars)
        return FRSModel(polynomial=polynomial,
                        param_vars=param_vars,
                        state_vars=state_vars,
                        v0_range=tuple(float(v) for v in data["v0_range"]),
                        v_range=v_range,
                        delta_v=float(data["delta_v"]),
                        w_max=w_max,
                        distance_scale=float(data["distance_scale"]),
                        initial_x=float(data["initial_x"]),
                        initial_y=float(data["initial_y"]),
                        t_plan=float(data["t_plan"]),
                        t_f=t_f,
                        footprint=float(data.get("footprint", 0.0)),
                        name=data.get("name", "frs"),
                        **polys)
    except KeyError as e:
        raise FRSConfigurationError(f"FRS data is missing field {e}") from e
    except ValueError as e:
        raise FRSConfigurationError(f"Invalid FRS data: {e}") from e


def _mappings(data: Dict, w_max: float, v_max: float, t_f: float, param_vars) -> Dict:
    w_des, v_des = desired_control_polynomials(w_max, v_max, param_vars)
    x_des, y_des = unicycle_endpoint_polynomials(w_max, v_max, t_f, param_vars=param_vars)
    defaults = {"w_des": w_des, "v_des": v_des, "x_des": x_des, "y_des": y_des}
    return {key: Polynomial.from_dict(data[key]) if key in data else default
            for key, default in defaults.items()}


def _frs_from_mat(path: str, name: str) -> FRSModel:
    """Read a ``.mat`` file storing the FRS polynomial as numeric arrays.

    Expected fields: ``FRS_polynomial_pow`` (M x 4, columns ordered
    ``k1 k2 z1 z2``), ``FRS_polynomial_coef`` (M), and the scalar fields
    used by :func:`frs_from_dict`.
    """
    raw = loadmat(path, squeeze_me=True)
    try:
        exponents = np.atleast_2d(raw["FRS_polynomial_pow"]).astype(int)
        coefficients = np.atleast_1d(raw["FRS_polynomial_coef"]).astype(float)
    except KeyError as e:
        raise FRSConfigurationError(f"FRS file {path} is missing field {e}") from e

    data = {"name": name,
            "polynomial": {"variables": list(PARAM_VARS + STATE_VARS),
                           "exponents": exponents,
                           "coefficients": coefficients}}
    for key in ("v0_range", "v_range"):
        if key in raw:
            data[key] = np.atleast_1d(raw[key]).astype(float).tolist()
    for key in ("delta_v", "w_max", "distance_scale", "initial_x", "initial_y",
                "t_plan", "t_f", "footprint"):
        if key in raw:
            data[key] = float(raw[key])
    return frs_from_dict(data)
