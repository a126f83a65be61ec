import numpy as np
import pytest
from scipy.io import savemat

from rtd.frs import (FRSConfigurationError, FRSLibrary, frs_from_dict, frs_to_dict,
                     load_frs, make_synthetic_frs, make_synthetic_models, save_frs)


class TestFRSModel:
    def test_speed_parameter_mapping(self, frs):
        assert frs.speed_to_parameter(0.0) == pytest.approx(-1.0)
        assert frs.speed_to_parameter(frs.v_max) == pytest.approx(1.0)
        assert frs.parameter_to_speed(frs.speed_to_parameter(0.6)) == pytest.approx(0.6)

    def test_desired_controls(self, frs):
        w, v = frs.desired_controls([0.5, 1.0])
        assert w == pytest.approx(0.5 * frs.w_max)
        assert v == pytest.approx(frs.v_max)

    def test_reachability(self, frs):
        k = np.array([0.0, 0.5])
        start = [frs.initial_x, frs.initial_y]
        end = np.asarray(start) + frs.desired_position(k) / frs.distance_scale
        far = [frs.initial_x - 3.0, 0.0]
        assert frs.is_reachable(k, start)
        assert frs.is_reachable(k, end)
        assert not frs.is_reachable(k, far)

    def test_contour_polynomial_is_over_state(self, frs):
        contour = frs.contour_polynomial([0.1, 0.2])
        assert contour.variables == frs.state_vars

    def test_invalid_speed_range(self):
        with pytest.raises(ValueError):
            make_synthetic_frs(v0_range=(1.0, 0.5))


class TestFRSLibrary:
    def test_select_bracket(self, library):
        assert library.select(0.25).v0_range == (0.0, 0.5)
        assert library.select(0.75).v0_range == (0.5, 1.0)
        assert library.select(1.5).v0_range == (1.0, 1.5)

    def test_boundary_picks_faster_bracket(self, library):
        assert library.select(0.5).v0_range == (0.5, 1.0)
        assert library.select(1.0).v0_range == (1.0, 1.5)

    @pytest.mark.parametrize("v_0", [2.0, -0.1])
    def test_uncovered_speed_raises(self, library, v_0):
        with pytest.raises(FRSConfigurationError):
            library.select(v_0)

    def test_speed_range(self, library):
        assert library.speed_range == (0.0, 1.5)
        assert len(library) == 3

    def test_empty_library(self):
        with pytest.raises(FRSConfigurationError):
            FRSLibrary([])


class TestSerialisation:
    def test_json_round_trip(self, frs, tmp_path):
        path = str(tmp_path / "frs.json")
        save_frs(frs, path)
        loaded = load_frs(path)
        assert loaded.name == frs.name
        assert loaded.v0_range == frs.v0_range
        assert loaded.distance_scale == pytest.approx(frs.distance_scale)
        assert loaded.polynomial.allclose(frs.polynomial)
        assert loaded.x_des.allclose(frs.x_des)

    def test_missing_mappings_are_rebuilt(self, frs):
        data = frs_to_dict(frs)
        for key in ("w_des", "v_des", "x_des", "y_des"):
            del data[key]
        loaded = frs_from_dict(data)
        assert loaded.v_des.allclose(frs.v_des)
        assert loaded.y_des.allclose(frs.y_des)

    def test_missing_field(self, frs):
        data = frs_to_dict(frs)
        del data["t_plan"]
        with pytest.raises(FRSConfigurationError):
            frs_from_dict(data)

    def test_from_directory(self, tmp_path):
        for model in make_synthetic_models():
            save_frs(model, str(tmp_path / f"{model.name}.json"))
        (tmp_path / "notes.txt").write_text("ignored")
        library = FRSLibrary.from_directory(str(tmp_path))
        assert len(library) == 3
        assert library.select(0.2).v0_range == (0.0, 0.5)

    def test_from_empty_directory(self, tmp_path):
        with pytest.raises(FRSConfigurationError):
            FRSLibrary.from_directory(str(tmp_path))
        with pytest.raises(FileNotFoundError):
            FRSLibrary.from_directory(str(tmp_path / "missing"))

    def test_mat_file(self, frs, tmp_path):
        path = str(tmp_path / "turtlebot_FRS.mat")
        savemat(path, {
            "FRS_polynomial_pow": frs.polynomial.exponents.astype(float),
            "FRS_polynomial_coef": frs.polynomial.coefficients,
            "v0_range": np.array(frs.v0_range),
            "v_range": np.array(frs.v_range),
            "delta_v": frs.delta_v,
            "w_max": frs.w_max,
            "distance_scale": frs.distance_scale,
            "initial_x": frs.initial_x,
            "initial_y": frs.initial_y,
            "t_plan": frs.t_plan,
            "t_f": frs.t_f,
            "footprint": frs.footprint,
        })
        loaded = load_frs(path)
        assert loaded.name == "turtlebot_FRS"
        assert loaded.polynomial.allclose(frs.polynomial)
        assert loaded.v0_range == frs.v0_range
        assert loaded.desired_controls([0.2, 0.4]) == pytest.approx(frs.desired_controls([0.2, 0.4]))

    def test_mat_file_missing_polynomial(self, tmp_path):
        path = str(tmp_path / "broken.mat")
        savemat(path, {"t_f": 1.0})
        with pytest.raises(FRSConfigurationError):
            load_frs(path)

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "frs.yaml"
        path.write_text("")
        with pytest.raises(FRSConfigurationError):
            load_frs(str(path))
