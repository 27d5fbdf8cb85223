import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_array_almost_equal
from scipy.spatial.transform import Rotation

from imureg.ingest import to_marker_table
from imureg.registration import build_frame, frames_from_markers, orientations_from_markers
from imureg.utils.exceptions import MissingPointError
from imureg.utils.rotations import rotation_from_wxyz
from imureg.utils.transforms import RigidTransform
from tests.conftest import IMU_POINTS


def _points_in_ground(frame: RigidTransform, with_diagonal=True):
    points = {k: frame.apply(v) for k, v in IMU_POINTS.items()}
    if not with_diagonal:
        points.pop("D")
    return points


@pytest.fixture()
def imu_in_ground():
    return RigidTransform(Rotation.from_euler("xyz", [35, -20, 160], degrees=True), [0.4, -0.3, 1.1])


class TestBuildFrame:
    def test_axes_follow_markers(self, imu_in_ground):
        points = _points_in_ground(imu_in_ground)

        frame = build_frame(points["O"], points["X"], points["Y"], points["D"])

        assert frame.rotation.approx_equal(imu_in_ground.rotation, atol=1e-8)

    def test_frame_is_right_handed(self):
        frame = build_frame(np.array([0, 0, 0.0]), np.array([0, 2.0, 0]), np.array([3.0, 0, 0]))
        matrix = frame.rotation.as_matrix()

        assert np.isclose(np.linalg.det(matrix), 1)
        assert_array_almost_equal(matrix[:, 2], [0, 0, -1])

    def test_y_is_made_orthogonal(self):
        frame = build_frame(np.array([0, 0, 0.0]), np.array([1.0, 0, 0]), np.array([1.0, 1.0, 0]))

        assert_array_almost_equal(frame.rotation.as_matrix(), np.eye(3))

    def test_origin_is_centroid_of_valid_points(self, imu_in_ground):
        points = _points_in_ground(imu_in_ground)

        with_d = build_frame(points["O"], points["X"], points["Y"], points["D"])
        without_d = build_frame(points["O"], points["X"], points["Y"], None)
        nan_d = build_frame(points["O"], points["X"], points["Y"], np.full(3, np.nan))

        assert_array_almost_equal(with_d.translation, imu_in_ground.apply([0.025, 0.025, 0]))
        assert_array_almost_equal(without_d.translation, imu_in_ground.apply([0.05 / 3, 0.05 / 3, 0]))
        assert_array_almost_equal(nan_d.translation, without_d.translation)

    @pytest.mark.parametrize("missing", ("o", "x", "y"))
    @pytest.mark.parametrize("value", (None, np.array([np.nan, 0, 0])))
    def test_missing_required_point(self, missing, value):
        points = {"o": np.array([0, 0, 0.0]), "x": np.array([1.0, 0, 0]), "y": np.array([0, 1.0, 0])}
        points[missing] = value

        with pytest.raises(MissingPointError) as e:
            build_frame(**points)

        assert missing.upper() in str(e.value)

    @pytest.mark.parametrize(
        "o, x, y",
        (
            ([0, 0, 0], [1, 0, 0], [2, 0, 0]),
            ([0, 0, 0], [1, 0, 0], [-1, 0, 0]),
            ([0, 0, 0], [0, 0, 0], [0, 1, 0]),
            ([1, 1, 1], [1, 2, 1], [1, 1, 1]),
        ),
    )
    def test_degenerate_points(self, o, x, y):
        with pytest.raises(MissingPointError):
            build_frame(np.array(o, dtype=float), np.array(x, dtype=float), np.array(y, dtype=float))


def _marker_table(frames, n_samples=3, drop=()):
    data = {}
    for base, frame in frames.items():
        for point, position in _points_in_ground(frame).items():
            label = f"{base}_IMU_{point}"
            if label not in drop:
                data[label] = np.tile(position, (n_samples, 1))
    data["LASI"] = np.zeros((n_samples, 3))
    return to_marker_table(data, time=np.arange(n_samples) * 0.01)


class TestFramesFromMarkers:
    def test_all_frames_found(self, imu_in_ground):
        other = RigidTransform(Rotation.from_euler("z", 45, degrees=True), [1.0, 0, 0])
        data = _marker_table({"pelvis": imu_in_ground, "femur_r": other})

        frames, missing = frames_from_markers(data)

        assert list(frames) == ["pelvis", "femur_r"]
        assert missing == {}
        assert frames["femur_r"].rotation.approx_equal(other.rotation, atol=1e-8)

    def test_missing_marker_column(self, imu_in_ground):
        data = _marker_table({"pelvis": imu_in_ground, "femur_r": imu_in_ground}, drop=("femur_r_IMU_Y",))

        frames, missing = frames_from_markers(data)

        assert list(frames) == ["pelvis"]
        assert list(missing) == ["femur_r"]

    def test_occluded_marker_at_sample(self, imu_in_ground):
        data = _marker_table({"pelvis": imu_in_ground})
        data.loc[data.index[1], ("pelvis_IMU_X", "x")] = np.nan

        assert "pelvis" in frames_from_markers(data, sample=0)[0]
        assert "pelvis" in frames_from_markers(data, sample=1)[1]


class TestOrientationsFromMarkers:
    def test_orientations(self, imu_in_ground):
        data = _marker_table({"pelvis": imu_in_ground})
        data.loc[data.index[1], ("pelvis_IMU_O", "z")] = np.nan

        orientations = orientations_from_markers(data)

        assert list(orientations.columns.unique(level=0)) == ["pelvis_IMU"]
        assert orientations.index.equals(data.index)
        assert orientations["pelvis_IMU"].iloc[1].isna().all()
        valid = orientations["pelvis_IMU"].iloc[[0, 2]].to_numpy()
        assert rotation_from_wxyz(valid).approx_equal(imu_in_ground.rotation, atol=1e-8).all()

    def test_no_imu_markers(self):
        data = to_marker_table({"LASI": np.zeros((2, 3)), "pelvis_IMU_O": np.zeros((2, 3))})

        with pytest.raises(ValueError):
            orientations_from_markers(data)
