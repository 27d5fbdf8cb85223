"""Register IMUs onto a body model in a known calibration pose using only their orientations."""
from typing import Dict, List, Optional, TypeVar

import pandas as pd

from imureg.base import BaseHeadingCorrection, BasePoseSolver, BaseRegistration
from imureg.model._body_model import BodyModel
from imureg.model._pose_solvers import ModelDefaultPoseSolver
from imureg.registration._calibration_result import CalibrationResult
from imureg.registration._pose_registration import _issues_to_frame, _report_issue
from imureg.utils.datatype_helper import OrientationTable, get_rotations, get_sensor_names, is_orientation_table
from imureg.utils.exceptions import MissingPointWarning, PoseAssemblyFailedError, UnknownSensorLabelWarning
from imureg.utils.transforms import RigidTransform

Self = TypeVar("Self", bound="OrientationRegistration")


class OrientationRegistration(BaseRegistration):
    """Register IMUs onto the segments of a model assuming the subject stands in the calibration pose of the model.

    Each sensor in the orientation data is matched to the model segment named like the sensor without
    `sensor_suffix` (e.g. "femur_r_imu" -> "femur_r").
    The rotational offset of each sensor is `inv(R_segment_in_ground) * R_sensor_in_ground` at the reference sample.
    The position of the sensors on the segments is unknown, hence the offsets are pure rotations.

    As the orientations are reported relative to the sensor-world frame, its heading needs to agree with the heading of
    the model ground.
    Pass a configured :class:`~imureg.heading_correction.HeadingCorrection` to correct the data before the registration.

    Parameters
    ----------
    reference_sample_index
        The (integer) position of the sample in the orientation data used for the registration
    heading_correction
        An optional heading correction applied to the orientation data before the registration.
        Its `reference_sample_index` is independent of the one of the registration.
    sensor_suffix
        The suffix that separates the segment name from the sensor name
    pose_solver
        The solver that provides the pose of the model at the reference sample.
        If None, the default pose of the model is used (:class:`~imureg.model.ModelDefaultPoseSolver`).

    Attributes
    ----------
    calibration_
        The :class:`~imureg.registration.CalibrationResult` with the offset of each registered sensor
    corrected_data_
        The orientation data after the (optional) heading correction, that was used for the registration
    reference_pose_
        The transform of each segment in ground at the reference sample
    reference_time_
        The time of the reference sample
    issues_
        A dataframe with one row per skipped sensor and the columns "sensor", "segment", "issue", and "message"

    Other Parameters
    ----------------
    model
        The body model passed to the `register` method
    data
        The orientation data passed to the `register` method

    """

    reference_sample_index: int
    heading_correction: Optional[BaseHeadingCorrection]
    sensor_suffix: str
    pose_solver: Optional[BasePoseSolver]

    model: BodyModel
    data: OrientationTable

    calibration_: CalibrationResult
    corrected_data_: OrientationTable
    reference_pose_: Dict[str, RigidTransform]
    reference_time_: float
    issues_: pd.DataFrame

    def __init__(
        self,
        reference_sample_index: int = 0,
        heading_correction: Optional[BaseHeadingCorrection] = None,
        sensor_suffix: str = "_imu",
        pose_solver: Optional[BasePoseSolver] = None,
    ):
        self.reference_sample_index = reference_sample_index
        self.heading_correction = heading_correction
        self.sensor_suffix = sensor_suffix
        self.pose_solver = pose_solver
        super().__init__()

    def register(self: Self, model: BodyModel, data: OrientationTable) -> Self:
        """Register all sensors of the orientation data onto the model."""
        self.model = model
        self.data = data

        is_orientation_table(data, raise_exception=True)
        if not 0 <= self.reference_sample_index < len(data):
            raise ValueError(
                f"The reference sample index ({self.reference_sample_index}) is out of range for data with "
                f"{len(data)} samples."
            )
        corrected = data
        if self.heading_correction is not None:
            corrected = self.heading_correction.clone().correct(data).corrected_data_
        reference_time = corrected.index[self.reference_sample_index]

        issues: List[Dict] = []
        sensor_segments = {}
        for sensor in get_sensor_names(corrected):
            segment = self._segment_name(sensor)
            if segment is None or not model.has_segment(segment):
                _report_issue(
                    issues,
                    sensor,
                    None,
                    "unknown_sensor_label",
                    f"The sensor '{sensor}' does not match any segment of the model {model.name} and is ignored.",
                    UnknownSensorLabelWarning,
                )
                continue
            sensor_segments[sensor] = segment

        pose_solver = self.pose_solver if self.pose_solver is not None else ModelDefaultPoseSolver()
        pose = pose_solver.clone().solve(model, None, reference_time).pose_
        unsolved = sorted(set(sensor_segments.values()) - set(pose))
        if unsolved:
            raise PoseAssemblyFailedError(
                f"The pose solver did not provide a pose for the sensor-bearing segment(s) {unsolved}."
            )

        calibration = CalibrationResult(reference_time=reference_time, reference_pose=pose)
        for sensor, segment in sensor_segments.items():
            try:
                orientation = get_rotations(corrected, sensor, sample=self.reference_sample_index)
            except ValueError:
                _report_issue(
                    issues,
                    sensor,
                    segment,
                    "missing_point",
                    f"The orientation of '{sensor}' is not available at the reference sample. The sensor is skipped.",
                    MissingPointWarning,
                )
                continue
            offset = RigidTransform(pose[segment].rotation.inv() * orientation)
            calibration.add(segment, sensor, offset)

        self.calibration_ = calibration
        self.corrected_data_ = corrected
        self.reference_pose_ = pose
        self.reference_time_ = reference_time
        self.issues_ = _issues_to_frame(issues)
        return self

    def _segment_name(self, sensor) -> Optional[str]:
        sensor = str(sensor)
        if not self.sensor_suffix:
            return sensor
        if not sensor.endswith(self.sensor_suffix) or len(sensor) == len(self.sensor_suffix):
            return None
        return sensor[: -len(self.sensor_suffix)]
