"""A couple of helper functions that ease the use of the typical data-objects used in imureg.

Orientation tables and marker tables are both `pd.DataFrame` objects with a time index and MultiIndex columns.
The first column level is the name of the sensor (or marker), the second level the axis names
(:obj:`~imureg.utils.consts.ORI_COLS` or :obj:`~imureg.utils.consts.POS_COLS`).
"""
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation

from imureg.utils.consts import (
    IMU_MARKER_INFIX,
    IMU_MARKER_POINTS,
    ORI_COLS,
    POS_COLS,
    TIME_INDEX,
)
from imureg.utils.exceptions import ValidationError
from imureg.utils.rotations import rotation_as_wxyz, rotation_from_wxyz

OrientationTable = pd.DataFrame
MarkerTable = pd.DataFrame
SingleSensorOrientations = pd.DataFrame


def _assert_is_dtype(obj, dtype: type) -> None:
    if not isinstance(obj, dtype):
        raise ValidationError(f"The dataobject is expected to be one of ({dtype},). But it is a {type(obj)}")


def _assert_has_two_column_levels(df: pd.DataFrame) -> None:
    if not isinstance(df.columns, pd.MultiIndex) or df.columns.nlevels != 2:
        raise ValidationError(
            "The dataframe is expected to have a MultiIndex with 2 levels as columns (name, axis). "
            f"It has {df.columns.nlevels} level(s)."
        )


def _assert_has_axes(df: pd.DataFrame, axes: Sequence[str]) -> None:
    for name in df.columns.unique(level=0):
        actual = list(df[name].columns)
        if sorted(actual) != sorted(axes):
            raise ValidationError(f"The entry '{name}' is expected to have exactly the columns {axes}, but has {actual}.")


def _assert_monotonic_time_index(df: pd.DataFrame) -> None:
    if not df.index.is_unique:
        raise ValidationError("The time index contains duplicated timestamps.")
    if not df.index.is_monotonic_increasing:
        raise ValidationError("The time index is expected to be sorted in ascending order.")


def _check_table(data, axes: Sequence[str], raise_exception: bool) -> bool:
    try:
        _assert_is_dtype(data, pd.DataFrame)
        _assert_has_two_column_levels(data)
        if len(data.columns.unique(level=0)) == 0:
            raise ValidationError("The provided table does not contain any data/contains no entries.")
        _assert_has_axes(data, axes)
        _assert_monotonic_time_index(data)
    except ValidationError as e:
        if raise_exception is True:
            raise ValidationError(
                "The passed object does not seem to be a valid table. "
                f"For details see the error message above. Got {type(data)}"
            ) from e
        return False
    return True


def is_orientation_table(data: OrientationTable, raise_exception: bool = False) -> bool:
    """Check if an object is a valid orientation table.

    A valid orientation table:

    - is a `pd.DataFrame` with a sorted, unique (time) index
    - has MultiIndex columns with two levels, where the first level is the sensor name
    - has exactly the columns `["q_w", "q_x", "q_y", "q_z"]` for each sensor

    Parameters
    ----------
    data
        The object that should be tested
    raise_exception
        If True an exception is raised if the object does not pass the validation.
        If False, the function will return simply True or False.

    See Also
    --------
    imureg.utils.datatype_helper.is_marker_table: The same check for marker tables

    """
    return _check_table(data, ORI_COLS, raise_exception)


def is_marker_table(data: MarkerTable, raise_exception: bool = False) -> bool:
    """Check if an object is a valid marker table.

    A valid marker table has the same structure as an orientation table, but the columns `["x", "y", "z"]` for each
    marker.
    Missing marker positions are expected to be NaN.

    Parameters
    ----------
    data
        The object that should be tested
    raise_exception
        If True an exception is raised if the object does not pass the validation.
        If False, the function will return simply True or False.

    """
    return _check_table(data, POS_COLS, raise_exception)


def get_sensor_names(data: OrientationTable) -> List[Hashable]:
    """Get the names of all sensors (or markers) in a table, in column order."""
    return list(data.columns.unique(level=0))


def get_rotations(data: OrientationTable, sensor: Hashable, sample: Optional[int] = None) -> Rotation:
    """Get the orientations of one sensor as a single :class:`~scipy.spatial.transform.Rotation` object.

    If `sample` is given, only the orientation at this (positional) sample is returned.
    A ValueError is raised, if this orientation is not available (NaN).
    """
    quats = data[sensor][ORI_COLS]
    if sample is None:
        return rotation_from_wxyz(quats.to_numpy())
    quat = quats.iloc[sample].to_numpy(dtype=float)
    if not np.all(np.isfinite(quat)):
        raise ValueError(f"The orientation of '{sensor}' at sample {sample} is not available.")
    return rotation_from_wxyz(quat)


def rotations_to_frame(rotations: Rotation, index: pd.Index) -> SingleSensorOrientations:
    """Convert rotations into a single sensor orientation frame with the `ORI_COLS` columns."""
    quats = np.atleast_2d(rotation_as_wxyz(rotations))
    return pd.DataFrame(quats, columns=ORI_COLS, index=index)


def split_imu_marker_label(label: str) -> Optional[Tuple[str, str]]:
    """Split a marker label following the `<base>_IMU_<point>` convention into base and point.

    Returns None for labels that do not follow the convention.

    Examples
    --------
    >>> split_imu_marker_label("femur_r_IMU_O")
    ('femur_r', 'O')
    >>> split_imu_marker_label("LASI") is None
    True

    """
    if not isinstance(label, str):
        return None
    base, infix, point = label.rpartition(IMU_MARKER_INFIX)
    if not infix or not base or point not in IMU_MARKER_POINTS:
        return None
    return base, point


def group_imu_markers(labels: Sequence[Hashable]) -> Dict[str, Dict[str, str]]:
    """Group all IMU marker labels by their base name.

    Labels that do not follow the `<base>_IMU_<point>` convention are ignored.
    The order of the bases follows the first appearance of each base in `labels`.

    Examples
    --------
    >>> group_imu_markers(["pelvis_IMU_O", "LASI", "pelvis_IMU_X"])
    {'pelvis': {'O': 'pelvis_IMU_O', 'X': 'pelvis_IMU_X'}}

    """
    bases: Dict[str, Dict[str, str]] = {}
    for label in labels:
        split = split_imu_marker_label(label)
        if split is None:
            continue
        base, point = split
        bases.setdefault(base, {})[point] = label
    return bases
