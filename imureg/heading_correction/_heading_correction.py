"""Remove the heading offset shared by all sensors of a rigid sensor harness."""
from typing import Optional, Sequence, TypeVar

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from numpy.linalg import norm
from scipy.spatial.transform import Rotation

from imureg.base import BaseHeadingCorrection
from imureg.utils.consts import (
    BASE_SENSOR_ATTR,
    GROUND_HEADING,
    GROUND_VERTICAL,
    HEADING_AXIS_ATTR,
    HEADING_CORRECTED_ATTR,
    ORI_COLS,
    SENSOR_AXES,
)
from imureg.utils.datatype_helper import (
    OrientationTable,
    SingleSensorOrientations,
    get_rotations,
    get_sensor_names,
    is_orientation_table,
    rotations_to_frame,
)
from imureg.utils.exceptions import DegenerateHeadingAxisError
from imureg.utils.rotations import find_heading_rotation, rotation_from_wxyz
from imureg.utils.vector_math import normalize, project_onto_plane

Self = TypeVar("Self", bound="HeadingCorrection")


def find_heading_correction(
    data: OrientationTable,
    base_sensor: str,
    heading_axis: str = "z",
    reference_sample_index: int = 0,
    target_heading_direction: Sequence[float] = GROUND_HEADING,
    vertical_axis: Sequence[float] = GROUND_VERTICAL,
    min_horizontal_norm: float = 0.05,
) -> Rotation:
    """Find the rotation around the vertical axis that aligns the heading axis of the base sensor with the target.

    The heading axis of the base sensor is expressed in the ground frame using the orientation of the sensor at the
    reference sample.
    Its projection onto the horizontal plane is then rotated onto the (horizontal) target heading direction.

    Parameters
    ----------
    data
        A valid orientation table
    base_sensor
        The name of the sensor whose axis defines the heading
    heading_axis
        The local axis of the base sensor ("x", "y", or "z") that points forward
    reference_sample_index
        The (integer) position of the sample at which the heading is determined
    target_heading_direction
        The direction in ground the heading axis should point to after the correction
    vertical_axis
        The vertical axis of the ground frame
    min_horizontal_norm
        The minimal length of the horizontal projection of the (unit) heading axis.
        If the axis is closer to vertical, no heading can be determined.

    Raises
    ------
    DegenerateHeadingAxisError
        If the heading axis is (nearly) vertical at the reference sample

    """
    if base_sensor not in get_sensor_names(data):
        raise ValueError(f"The base sensor '{base_sensor}' is not part of the orientation data.")
    axis_name = str(heading_axis).lower()
    if axis_name not in SENSOR_AXES:
        raise ValueError(f"Invalid heading axis '{heading_axis}'! Axis must be one of {list(SENSOR_AXES.keys())}")
    if not 0 <= reference_sample_index < len(data):
        raise ValueError(
            f"The reference sample index ({reference_sample_index}) is out of range for data with {len(data)} samples."
        )
    base_orientation = get_rotations(data, base_sensor, sample=reference_sample_index)

    vertical_axis = normalize(vertical_axis)
    if norm(project_onto_plane(normalize(target_heading_direction), vertical_axis)) < min_horizontal_norm:
        raise ValueError("The target heading direction must not be (nearly) vertical.")

    heading_in_ground = base_orientation.apply(SENSOR_AXES[axis_name])
    horizontal_norm = norm(project_onto_plane(heading_in_ground, vertical_axis))
    if horizontal_norm < min_horizontal_norm:
        angle_to_vertical = np.rad2deg(np.arcsin(np.clip(horizontal_norm, 0, 1)))
        raise DegenerateHeadingAxisError(
            f"The {axis_name}-axis of '{base_sensor}' is only {angle_to_vertical:.2f} deg away from vertical at sample "
            f"{reference_sample_index} and does not define a heading."
        )
    return find_heading_rotation(heading_in_ground, np.asarray(target_heading_direction, dtype=float), vertical_axis)


def _rotate_sensor(data: SingleSensorOrientations, rotation: Rotation) -> SingleSensorOrientations:
    """Left-multiply a rotation onto all (valid) orientations of a single sensor."""
    quats = data[ORI_COLS].to_numpy(dtype=float)
    valid = np.all(np.isfinite(quats), axis=1)
    if not valid.any():
        return pd.DataFrame(np.nan, index=data.index, columns=ORI_COLS)
    rotated = rotations_to_frame(rotation * rotation_from_wxyz(quats[valid]), data.index[valid])
    return rotated.reindex(data.index)


def apply_heading_correction(data: OrientationTable, rotation: Rotation, n_jobs: Optional[int] = 1) -> OrientationTable:
    """Apply one rotation to every sample of every sensor.

    The rotation is left-multiplied, i.e. it rotates the shared world frame of all sensors.
    Sensors are processed independently and can be processed in parallel using `n_jobs`.

    Returns
    -------
    corrected_data
        A new orientation table. The input is not modified.

    """
    sensors = get_sensor_names(data)
    rotated = Parallel(n_jobs=n_jobs)(delayed(_rotate_sensor)(data[sensor], rotation) for sensor in sensors)
    corrected = pd.concat(dict(zip(sensors, rotated)), axis=1).reindex(columns=data.columns)
    corrected.attrs = dict(data.attrs)
    return corrected


class HeadingCorrection(BaseHeadingCorrection):
    """Rotate the orientations of all sensors of a rigid harness, so that the base sensor points forward.

    Sensors report their orientation relative to a sensor-world frame, whose heading is arbitrary.
    If all sensors share this world frame (e.g. a single rigid harness or a common magnetic reference), a single
    rotation around the vertical axis aligns all of them with the heading of the model ground.
    This rotation is chosen so that the horizontal projection of the `heading_axis` of the `base_sensor` at the
    reference sample points into the `target_heading_direction`.

    If no base sensor is specified, the correction is skipped and the output is tagged as uncorrected.

    Parameters
    ----------
    base_sensor
        The name of the sensor that defines the heading.
        If None, no correction is performed.
    heading_axis
        The local axis of the base sensor ("x", "y", or "z") that points forward
    reference_sample_index
        The (integer) position of the sample at which the heading is determined
    target_heading_direction
        The direction in ground the heading axis should point to after the correction
    vertical_axis
        The vertical axis of the ground frame.
        The correction is a pure rotation around this axis.
    min_horizontal_norm
        The minimal length of the horizontal projection of the (unit) heading axis.
        The default of 0.05 rejects axes that are closer than ~2.9 deg to vertical.
    n_jobs
        The number of jobs used to apply the correction to the individual sensors.
        Passed to :class:`joblib.Parallel`.

    Attributes
    ----------
    corrected_data_
        A copy of the input data with the correction applied.
        Its `attrs` contain the keys "heading_corrected", and, if a correction was applied, "base_sensor" and
        "heading_axis".
    rotation_
        The :class:`~scipy.spatial.transform.Rotation` applied to all orientations or None, if no correction was
        performed
    correction_applied_
        True if a correction was applied

    Other Parameters
    ----------------
    data
        The orientation table passed to the `correct` method.
        It is not modified.

    Examples
    --------
    >>> correction = HeadingCorrection(base_sensor="pelvis_imu", heading_axis="z")
    >>> correction = correction.correct(orientations)
    >>> correction.corrected_data_.attrs["heading_corrected"]
    True

    Notes
    -----
    The correction assumes that all sensors share one sensor-world frame.
    It does not correct individual heading errors of single sensors.

    """

    base_sensor: Optional[str]
    heading_axis: str
    reference_sample_index: int
    target_heading_direction: Sequence[float]
    vertical_axis: Sequence[float]
    min_horizontal_norm: float
    n_jobs: Optional[int]

    data: OrientationTable

    rotation_: Optional[Rotation]
    correction_applied_: bool

    def __init__(
        self,
        base_sensor: Optional[str] = None,
        heading_axis: str = "z",
        reference_sample_index: int = 0,
        target_heading_direction: Sequence[float] = GROUND_HEADING,
        vertical_axis: Sequence[float] = GROUND_VERTICAL,
        min_horizontal_norm: float = 0.05,
        n_jobs: Optional[int] = 1,
    ):
        self.base_sensor = base_sensor
        self.heading_axis = heading_axis
        self.reference_sample_index = reference_sample_index
        self.target_heading_direction = target_heading_direction
        self.vertical_axis = vertical_axis
        self.min_horizontal_norm = min_horizontal_norm
        self.n_jobs = n_jobs
        super().__init__()

    def correct(self: Self, data: OrientationTable) -> Self:
        """Correct the heading of all sensors in the data."""
        self.data = data
        is_orientation_table(data, raise_exception=True)

        if self.base_sensor is None:
            corrected = data.copy()
            corrected.attrs = {
                k: v for k, v in data.attrs.items() if k not in (BASE_SENSOR_ATTR, HEADING_AXIS_ATTR)
            }
            corrected.attrs[HEADING_CORRECTED_ATTR] = False
            self.corrected_data_ = corrected
            self.rotation_ = None
            self.correction_applied_ = False
            return self

        rotation = find_heading_correction(
            data,
            self.base_sensor,
            heading_axis=self.heading_axis,
            reference_sample_index=self.reference_sample_index,
            target_heading_direction=self.target_heading_direction,
            vertical_axis=self.vertical_axis,
            min_horizontal_norm=self.min_horizontal_norm,
        )
        corrected = apply_heading_correction(data, rotation, n_jobs=self.n_jobs)
        corrected.attrs[HEADING_CORRECTED_ATTR] = True
        corrected.attrs[BASE_SENSOR_ATTR] = self.base_sensor
        corrected.attrs[HEADING_AXIS_ATTR] = str(self.heading_axis).lower()

        self.corrected_data_ = corrected
        self.rotation_ = rotation
        self.correction_applied_ = True
        return self
