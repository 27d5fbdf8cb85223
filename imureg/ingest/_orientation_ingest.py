"""Bring orientation and marker time series from any reader into the common table format."""
import warnings
from typing import Dict, Hashable, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation
from typing_extensions import Literal

from imureg.utils.consts import HEADING_CORRECTED_ATTR, ORI_COLS, POS_COLS, QUAT_NORM_TOLERANCE, TIME_INDEX
from imureg.utils.datatype_helper import MarkerTable, OrientationTable, get_sensor_names
from imureg.utils.exceptions import QuaternionNormWarning, ValidationError
from imureg.utils.rotations import rotation_as_wxyz, rotation_from_wxyz

SensorInput = Union[np.ndarray, pd.DataFrame, Rotation]


def normalize_quaternions(
    quats: np.ndarray, tolerance: float = QUAT_NORM_TOLERANCE, name: Optional[Hashable] = None
) -> np.ndarray:
    """Scale quaternions to unit norm.

    Rows containing NaN are kept as NaN.
    A :class:`~imureg.utils.exceptions.QuaternionNormWarning` is emitted if any norm deviates from 1 by more than
    `tolerance`.

    Raises
    ------
    ValidationError
        If any quaternion has (almost) zero norm

    """
    quats = np.array(quats, dtype=float)
    norms = np.linalg.norm(quats, axis=1)
    valid = np.isfinite(norms)
    if np.any(norms[valid] < 1e-12):
        raise ValidationError(f"The orientations of '{name}' contain quaternions with zero norm.")
    max_deviation = np.max(np.abs(norms[valid] - 1), initial=0.0)
    if max_deviation > tolerance:
        warnings.warn(
            f"The quaternion norms of '{name}' deviate up to {max_deviation:.4f} from 1. They are renormalized.",
            QuaternionNormWarning,
        )
    quats[valid] = quats[valid] / norms[valid, None]
    return quats


def _sensor_to_array(name: Hashable, values: SensorInput, quat_order: str) -> np.ndarray:
    if isinstance(values, Rotation):
        return np.atleast_2d(rotation_as_wxyz(values))
    if isinstance(values, pd.DataFrame):
        if set(ORI_COLS).issubset(values.columns):
            return values[ORI_COLS].to_numpy(dtype=float)
        values = values.to_numpy(dtype=float)
    values = np.atleast_2d(np.asarray(values, dtype=float))
    if values.ndim != 2 or values.shape[1] != 4:
        raise ValidationError(f"The orientations of '{name}' are expected to have the shape (n, 4), not {values.shape}.")
    if quat_order == "xyzw":
        values = np.roll(values, 1, axis=1)
    return values


def _get_time_index(data: Dict[Hashable, SensorInput], n_samples: int, time: Optional[Sequence[float]]) -> pd.Index:
    if time is not None:
        if len(time) != n_samples:
            raise ValidationError(f"The time vector has {len(time)} entries, but the data has {n_samples} samples.")
        index = pd.Index(np.asarray(time))
    else:
        frames = {k: v for k, v in data.items() if isinstance(v, pd.DataFrame)}
        if not frames:
            index = pd.RangeIndex(n_samples)
        else:
            first_name, first = next(iter(frames.items()))
            for name, frame in frames.items():
                if not frame.index.equals(first.index):
                    raise ValidationError(
                        f"The index of '{name}' does not match the index of '{first_name}'. "
                        "All dataframe inputs need the same time index, or an explicit `time` must be passed."
                    )
            index = first.index.copy()
    index.name = TIME_INDEX
    return index


def _sort_by_time(table: pd.DataFrame) -> pd.DataFrame:
    if not table.index.is_unique:
        raise ValidationError("The time index contains duplicated timestamps.")
    if not table.index.is_monotonic_increasing:
        table = table.sort_index(kind="stable")
    return table


def to_orientation_table(
    data: Union[Dict[Hashable, SensorInput], OrientationTable],
    time: Optional[Sequence[float]] = None,
    quat_order: Literal["wxyz", "xyzw"] = "wxyz",
    sensor_to_ground: Optional[Rotation] = None,
) -> OrientationTable:
    """Convert the orientations of multiple sensors into an orientation table.

    All sensors share one time index.
    Quaternions are renormalized to unit norm and the table is sorted by time.

    Parameters
    ----------
    data
        Either a dictionary with the sensor names as keys and the orientations of each sensor as values, or an existing
        orientation table (MultiIndex columns).
        Orientations can be provided as array with shape (n, 4), as dataframe with the columns `ORI_COLS` (or any four
        columns in `quat_order`), or as :class:`~scipy.spatial.transform.Rotation` object.
    time
        The time of each sample.
        If None, the shared index of the dataframes in `data` is used, or a simple sample counter if no dataframe was
        provided.
    quat_order
        The order of the quaternion components in array inputs.
        Scipy rotations and dataframes with named columns are always interpreted correctly.
    sensor_to_ground
        An optional fixed rotation from the common sensor-world frame into the ground frame of the model.
        It is left-multiplied onto all orientations (e.g. a -90 deg rotation around x to convert a z-up sensor world
        into a y-up model ground).

    Returns
    -------
    orientation_table
        A new orientation table tagged as not heading corrected (unless the input table was already tagged)

    """
    if quat_order not in ("wxyz", "xyzw"):
        raise ValueError('`quat_order` must be one of ["wxyz", "xyzw"]')
    attrs = {HEADING_CORRECTED_ATTR: False}
    if isinstance(data, pd.DataFrame):
        if not isinstance(data.columns, pd.MultiIndex) or data.columns.nlevels != 2:
            raise ValidationError("A dataframe input is expected to have MultiIndex columns (sensor, axis).")
        attrs = {**attrs, **data.attrs}
        data = {sensor: data[sensor] for sensor in get_sensor_names(data)}
    if len(data) == 0:
        raise ValidationError("The provided data does not contain any sensors.")

    arrays = {name: _sensor_to_array(name, values, quat_order) for name, values in data.items()}
    lengths = {name: len(a) for name, a in arrays.items()}
    if len(set(lengths.values())) != 1:
        raise ValidationError(f"All sensors need to have the same number of samples. Got {lengths}.")
    index = _get_time_index(data, next(iter(lengths.values())), time)

    sensors = {}
    for name, quats in arrays.items():
        quats = normalize_quaternions(quats, name=name)
        if sensor_to_ground is not None:
            valid = np.all(np.isfinite(quats), axis=1)
            if valid.any():
                quats[valid] = np.atleast_2d(rotation_as_wxyz(sensor_to_ground * rotation_from_wxyz(quats[valid])))
        sensors[name] = pd.DataFrame(quats, index=index, columns=ORI_COLS)

    table = _sort_by_time(pd.concat(sensors, axis=1))
    table.index.name = TIME_INDEX
    table.attrs = attrs
    return table


def to_marker_table(
    data: Dict[Hashable, Union[np.ndarray, pd.DataFrame]], time: Optional[Sequence[float]] = None
) -> MarkerTable:
    """Convert the trajectories of multiple markers into a marker table.

    Parameters
    ----------
    data
        A dictionary with the marker names as keys and the positions as array with shape (n, 3) or dataframe with the
        columns `POS_COLS`.
        Missing positions should be NaN.
    time
        The time of each sample.
        If None, the shared index of the dataframes in `data` is used, or a simple sample counter if no dataframe was
        provided.

    """
    if len(data) == 0:
        raise ValidationError("The provided data does not contain any markers.")
    arrays = {}
    for name, values in data.items():
        if isinstance(values, pd.DataFrame) and set(POS_COLS).issubset(values.columns):
            values = values[POS_COLS]
        values = np.atleast_2d(np.asarray(values, dtype=float))
        if values.ndim != 2 or values.shape[1] != 3:
            raise ValidationError(f"The positions of '{name}' are expected to have the shape (n, 3), not {values.shape}.")
        arrays[name] = values
    lengths = {name: len(a) for name, a in arrays.items()}
    if len(set(lengths.values())) != 1:
        raise ValidationError(f"All markers need to have the same number of samples. Got {lengths}.")
    index = _get_time_index(data, next(iter(lengths.values())), time)

    table = pd.concat({name: pd.DataFrame(a, index=index, columns=POS_COLS) for name, a in arrays.items()}, axis=1)
    table = _sort_by_time(table)
    table.index.name = TIME_INDEX
    return table
