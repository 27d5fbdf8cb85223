import random
from typing import Any, Dict

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_array_equal
from pandas._testing import assert_frame_equal, assert_series_equal
from scipy.spatial.transform import Rotation
from tpcp import BaseTpcpObject

from imureg.ingest import to_marker_table, to_orientation_table
from imureg.model import BodyModel
from imureg.utils.transforms import RigidTransform

#: The IMU markers in the frame of the IMU (plate)
IMU_POINTS = {
    "O": np.array([0.0, 0.0, 0.0]),
    "X": np.array([0.05, 0.0, 0.0]),
    "Y": np.array([0.0, 0.05, 0.0]),
    "D": np.array([0.05, 0.05, 0.0]),
}

#: The true offset of each IMU in its segment frame
TRUE_OFFSETS = {
    "pelvis": RigidTransform(Rotation.from_euler("xyz", [90, 0, 180], degrees=True), [-0.1, 0.0, 0.05]),
    "femur_r": RigidTransform(Rotation.from_euler("xyz", [0, 90, 0], degrees=True), [0.06, -0.15, 0.0]),
    "femur_l": RigidTransform(Rotation.from_euler("xyz", [10, 80, -5], degrees=True), [0.06, -0.15, 0.0]),
}

#: The pose of each segment in ground during the calibration trial
TRUE_POSE = {
    "pelvis": RigidTransform(Rotation.from_euler("z", 30, degrees=True), [0.2, 0.1, 0.95]),
    "femur_r": RigidTransform(Rotation.from_euler("zx", [30, 5], degrees=True), [0.25, 0.02, 0.9]),
    "femur_l": RigidTransform(Rotation.from_euler("zx", [30, -5], degrees=True), [0.15, 0.18, 0.9]),
}

_ANATOMICAL_MARKERS = {
    "pelvis": {"RASI": [0.1, -0.12, 0.0], "LASI": [0.1, 0.12, 0.0], "SACR": [-0.1, 0.0, 0.02]},
    "femur_r": {"RTHI": [0.05, -0.05, -0.2], "RKNE": [0.0, -0.05, -0.4], "RKNM": [0.0, 0.05, -0.4]},
    "femur_l": {"LTHI": [0.05, 0.05, -0.2], "LKNE": [0.0, 0.05, -0.4], "LKNM": [0.0, -0.05, -0.4]},
}


@pytest.fixture(autouse=True)
def reset_random_seed():
    np.random.seed(10)
    random.seed(10)


def imu_marker_locations(offset: RigidTransform) -> Dict[str, np.ndarray]:
    """The location of the IMU markers in the segment frame."""
    return {point: offset.apply(location) for point, location in IMU_POINTS.items()}


def create_model() -> BodyModel:
    model = BodyModel("subject01")
    model.add_segment("pelvis")
    model.add_segment("femur_r", parent="pelvis")
    model.add_segment("femur_l", parent="pelvis")
    for segment, markers in _ANATOMICAL_MARKERS.items():
        for name, location in markers.items():
            model.add_marker(name, segment, location)
        for point, location in imu_marker_locations(TRUE_OFFSETS[segment]).items():
            model.add_marker(f"{segment}_IMU_{point}", segment, location)
    return model


def create_marker_data(model: BodyModel, pose: Dict[str, RigidTransform] = None, n_samples: int = 5) -> pd.DataFrame:
    """Static marker data of all model markers placed according to the pose."""
    pose = pose or TRUE_POSE
    data = {m.name: np.tile(pose[m.segment].apply(m.location), (n_samples, 1)) for m in model.markers}
    return to_marker_table(data, time=np.arange(n_samples) * 0.01)


def create_orientation_data(rotations: Dict[str, Rotation], n_samples: int = 5) -> pd.DataFrame:
    """Static orientation data, one rotation per sensor."""
    data = {name: Rotation.from_quat(np.tile(rot.as_quat(), (n_samples, 1))) for name, rot in rotations.items()}
    return to_orientation_table(data, time=np.arange(n_samples) * 0.01)


@pytest.fixture()
def body_model() -> BodyModel:
    return create_model()


@pytest.fixture()
def marker_data(body_model) -> pd.DataFrame:
    return create_marker_data(body_model)


@pytest.fixture()
def orientation_data() -> pd.DataFrame:
    rotations = {
        "pelvis_imu": Rotation.from_euler("zy", [40, 20], degrees=True),
        "femur_r_imu": Rotation.from_euler("zx", [-70, 15], degrees=True),
        "femur_l_imu": Rotation.from_euler("xyz", [5, -10, 120], degrees=True),
    }
    return create_orientation_data(rotations)


def _get_params_without_nested_class(instance: BaseTpcpObject) -> Dict[str, Any]:
    return {k: v for k, v in instance.get_params().items() if not hasattr(v, "get_params")}


def compare_algo_objects(a, b):
    parameters = _get_params_without_nested_class(a)
    b_parameters = _get_params_without_nested_class(b)

    assert set(parameters.keys()) == set(b_parameters.keys())

    for p, value in parameters.items():
        json_val = b_parameters[p]
        compare_val(value, json_val, p)


def compare_val(value, json_val, name):
    if isinstance(value, BaseTpcpObject):
        compare_algo_objects(value, json_val)
    elif isinstance(value, np.ndarray):
        assert_array_equal(value, json_val)
    elif isinstance(value, (tuple, list)):
        assert len(value) == len(json_val)
        for i, (v, j) in enumerate(zip(value, json_val)):
            compare_val(v, j, f"{name}_{i}")
    elif isinstance(value, dict):
        assert set(value.keys()) == set(json_val.keys()), name
        for k, v in value.items():
            compare_val(v, json_val[k], f"{name}_{k}")
    elif isinstance(value, RigidTransform):
        assert value.is_close(json_val, atol=1e-10), name
    elif isinstance(value, Rotation):
        assert value.approx_equal(json_val, atol=1e-12)
    elif isinstance(value, pd.DataFrame):
        assert_frame_equal(value, json_val, check_dtype=False)
    elif isinstance(value, pd.Series):
        assert_series_equal(value, json_val)
    else:
        assert value == json_val, name


def mask_entry(data: pd.DataFrame, name, rows=None) -> None:
    """Set all axes of one sensor or marker to NaN, at the given row positions or everywhere."""
    columns = [(name, axis) for axis in data[name].columns]
    index = data.index if rows is None else data.index[rows]
    data.loc[index, columns] = np.nan
