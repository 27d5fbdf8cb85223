"""Form IMU frames from markers placed on the sensor (or the plate it is mounted on)."""
from typing import Dict, Hashable, Optional, Tuple

import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation

from imureg.utils.consts import ORI_COLS, POS_COLS, REQUIRED_IMU_MARKER_POINTS
from imureg.utils.datatype_helper import (
    MarkerTable,
    OrientationTable,
    group_imu_markers,
    is_marker_table,
)
from imureg.utils.exceptions import MissingPointError
from imureg.utils.rotations import rotation_as_wxyz
from imureg.utils.transforms import RigidTransform
from imureg.utils.vector_math import is_almost_parallel_or_antiparallel, normalize, orthogonalize


def _is_valid_point(p) -> bool:
    return p is not None and np.shape(p) == (3,) and bool(np.all(np.isfinite(p)))


def build_frame(
    o: Optional[np.ndarray], x: Optional[np.ndarray], y: Optional[np.ndarray], d: Optional[np.ndarray] = None
) -> RigidTransform:
    """Build a right-handed frame from three (or four) points.

    The x-axis points from `o` to `x`.
    The y-axis points towards `y`, but is made orthogonal to the x-axis.
    The z-axis completes the right-handed frame.
    The origin of the frame is placed at the centroid of all valid points, including the optional diagonal point `d`.
    Invalid points (None or containing NaN) are not used for the centroid.

    Parameters
    ----------
    o : vector with shape (3,)
        The origin point
    x : vector with shape (3,)
        A point along the x-axis
    y : vector with shape (3,)
        A point in the direction of the y-axis
    d : vector with shape (3,), optional
        The diagonal point opposite to the origin.
        It only refines the origin of the frame.

    Returns
    -------
    frame
        The transform of the frame in the coordinate system of the points

    Raises
    ------
    MissingPointError
        If `o`, `x`, or `y` are missing or invalid, or if they do not span a plane.

    Examples
    --------
    >>> frame = build_frame(np.array([0, 0, 0.0]), np.array([1.0, 0, 0]), np.array([0, 1.0, 0]))
    >>> frame.rotation.as_matrix().round(decimals=3)
    array([[1., 0., 0.],
           [0., 1., 0.],
           [0., 0., 1.]])
    >>> frame.translation.round(decimals=3)
    array([0.333, 0.333, 0.   ])

    """
    points = {"O": o, "X": x, "Y": y}
    missing = [name for name, p in points.items() if not _is_valid_point(p)]
    if missing:
        raise MissingPointError(f"The point(s) {missing} required to form a frame are missing or invalid.")
    o, x, y = (np.asarray(p, dtype=float) for p in (o, x, y))

    to_x = x - o
    to_y = y - o
    if not to_x.any() or not to_y.any() or is_almost_parallel_or_antiparallel(to_x, to_y):
        raise MissingPointError("The points O, X, and Y do not span a plane and can not form a frame.")

    axis_1 = normalize(to_x)
    axis_2 = orthogonalize(to_y, axis_1)
    axis_3 = np.cross(axis_1, axis_2)

    valid_points = [o, x, y]
    if _is_valid_point(d):
        valid_points.append(np.asarray(d, dtype=float))
    origin = np.mean(valid_points, axis=0)

    return RigidTransform(Rotation.from_matrix(np.column_stack([axis_1, axis_2, axis_3])), origin)


def _get_point(row: pd.Series, label: Optional[str]) -> Optional[np.ndarray]:
    if label is None:
        return None
    return row[label][POS_COLS].to_numpy(dtype=float)


def frames_from_markers(
    marker_data: MarkerTable, sample: int = 0
) -> Tuple[Dict[str, RigidTransform], Dict[str, str]]:
    """Form the frame of every marked IMU at one sample of a marker table.

    IMUs are identified by markers following the `<base>_IMU_<O|X|Y|D>` naming convention.
    All other markers are ignored.

    Parameters
    ----------
    marker_data
        A valid marker table
    sample
        The (integer) position of the sample in the marker table

    Returns
    -------
    frames
        The frame of each IMU base name that could be formed
    missing
        The reason why a frame could not be formed for each remaining base name

    """
    is_marker_table(marker_data, raise_exception=True)
    row = marker_data.iloc[sample]
    frames: Dict[str, RigidTransform] = {}
    missing: Dict[str, str] = {}
    for base, labels in group_imu_markers(marker_data.columns.unique(level=0)).items():
        try:
            frames[base] = build_frame(*(_get_point(row, labels.get(p)) for p in ("O", "X", "Y", "D")))
        except MissingPointError as e:
            missing[base] = str(e)
    return frames, missing


def orientations_from_markers(marker_data: MarkerTable) -> OrientationTable:
    """Convert the marker-defined frames of all IMUs over a whole trial into an orientation table.

    The resulting sensors are named `<base>_IMU`.
    Samples at which a frame can not be formed are NaN.

    Parameters
    ----------
    marker_data
        A valid marker table

    """
    is_marker_table(marker_data, raise_exception=True)
    groups = {
        base: labels
        for base, labels in group_imu_markers(marker_data.columns.unique(level=0)).items()
        if all(p in labels for p in REQUIRED_IMU_MARKER_POINTS)
    }
    if not groups:
        raise ValueError("The marker data does not contain any IMU with O, X, and Y markers.")

    sensors: Dict[Hashable, pd.DataFrame] = {}
    for base, labels in groups.items():
        quats = np.full((len(marker_data), 4), np.nan)
        for i, (_, row) in enumerate(marker_data.iterrows()):
            try:
                frame = build_frame(*(_get_point(row, labels.get(p)) for p in ("O", "X", "Y", "D")))
            except MissingPointError:
                continue
            quats[i] = rotation_as_wxyz(frame.rotation)
        sensors[f"{base}_IMU"] = pd.DataFrame(quats, index=marker_data.index, columns=ORI_COLS)
    return pd.concat(sensors, axis=1)
