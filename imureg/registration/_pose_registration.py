"""Register IMUs onto a body model using markers placed on the sensors."""
import warnings
from typing import Dict, List, Optional, TypeVar

import pandas as pd

from imureg.base import BasePoseSolver, BaseRegistration
from imureg.model._body_model import BodyModel
from imureg.model._pose_solvers import SegmentMarkerPoseSolver
from imureg.registration._calibration_result import CalibrationResult
from imureg.registration._frame_builder import frames_from_markers
from imureg.utils.datatype_helper import MarkerTable, is_marker_table, split_imu_marker_label
from imureg.utils.exceptions import (
    DuplicateSensorOnSegmentWarning,
    MissingPointWarning,
    PoseAssemblyFailedError,
    UnknownSensorLabelWarning,
)
from imureg.utils.transforms import RigidTransform

Self = TypeVar("Self", bound="PoseRegistration")

ISSUE_COLS = ["sensor", "segment", "issue", "message"]


def _report_issue(issues: List[Dict], sensor, segment: Optional[str], issue: str, message: str, category) -> None:
    warnings.warn(message, category)
    issues.append({"sensor": sensor, "segment": segment, "issue": issue, "message": message})


def _issues_to_frame(issues: List[Dict]) -> pd.DataFrame:
    return pd.DataFrame(issues, columns=ISSUE_COLS)


def find_sensor_segments(model: BodyModel) -> Dict[str, str]:
    """Find the segment every marked IMU of the model is attached to.

    IMUs are identified by model markers following the `<base>_IMU_<O|X|Y|D>` convention.
    The segment of the first marker of each base defines the host segment.
    The order of the result follows the order of the model markers.
    """
    segments: Dict[str, str] = {}
    for marker in model.markers:
        split = split_imu_marker_label(marker.name)
        if split is None:
            continue
        segments.setdefault(split[0], marker.segment)
    return segments


class PoseRegistration(BaseRegistration):
    """Register IMUs onto the segments of a model using markers placed on each IMU.

    Each IMU (or the plate it is mounted on) carries the markers `<base>_IMU_O`, `<base>_IMU_X`, `<base>_IMU_Y`, and
    optionally `<base>_IMU_D`.
    At the reference sample, the pose of the model is solved from the marker data and the frame of each IMU is formed
    from its markers (see :func:`~imureg.registration.build_frame`).
    The offset of each IMU relative to its segment is then `inv(segment_in_ground) * imu_in_ground`.

    The segment of an IMU is the segment its markers are attached to in the model.
    A segment can only carry one IMU.
    If multiple IMUs resolve to the same segment, the first one (in the order of the model markers) is kept.

    Problems with individual IMUs are not fatal: IMUs with missing markers, duplicated IMUs, and IMUs that the model
    does not know about are skipped with a warning and recorded in `issues_`.
    If the pose of the model can not be solved, the registration fails as a whole with a
    :class:`~imureg.utils.exceptions.PoseAssemblyFailedError` and no results are stored.

    Parameters
    ----------
    reference_sample_index
        The (integer) position of the sample in the marker data used for the registration.
        The subject is expected to stand in the calibration pose at this sample.
    pose_solver
        The solver used to find the pose of the model segments at the reference sample.
        If None, a :class:`~imureg.model.SegmentMarkerPoseSolver` with default parameters is used.

    Attributes
    ----------
    calibration_
        The :class:`~imureg.registration.CalibrationResult` with the offset of each registered IMU
    sensor_frames_
        The frame of each IMU in ground at the reference sample, as formed from its markers
    reference_pose_
        The transform of each segment in ground at the reference sample
    reference_time_
        The time of the reference sample
    issues_
        A dataframe with one row per skipped IMU and the columns "sensor", "segment", "issue", and "message"

    Other Parameters
    ----------------
    model
        The body model passed to the `register` method
    data
        The marker data passed to the `register` method

    Examples
    --------
    >>> registration = PoseRegistration(reference_sample_index=0)
    >>> registration = registration.register(model, marker_data)
    >>> registration.calibration_["pelvis"]
    RigidTransform(quat=[...], translation=[...])

    See Also
    --------
    imureg.registration.OrientationRegistration: Register IMUs based on their orientation only

    """

    reference_sample_index: int
    pose_solver: Optional[BasePoseSolver]

    model: BodyModel
    data: MarkerTable

    calibration_: CalibrationResult
    sensor_frames_: Dict[str, RigidTransform]
    reference_pose_: Dict[str, RigidTransform]
    reference_time_: float
    issues_: pd.DataFrame

    def __init__(self, reference_sample_index: int = 0, pose_solver: Optional[BasePoseSolver] = None):
        self.reference_sample_index = reference_sample_index
        self.pose_solver = pose_solver
        super().__init__()

    def register(self: Self, model: BodyModel, data: MarkerTable) -> Self:
        """Register all marked IMUs onto the model."""
        self.model = model
        self.data = data

        is_marker_table(data, raise_exception=True)
        if not 0 <= self.reference_sample_index < len(data):
            raise ValueError(
                f"The reference sample index ({self.reference_sample_index}) is out of range for data with "
                f"{len(data)} samples."
            )
        reference_time = data.index[self.reference_sample_index]

        issues: List[Dict] = []
        sensor_segments = find_sensor_segments(model)
        frames, missing = frames_from_markers(data, self.reference_sample_index)
        for base in [*frames, *missing]:
            if base not in sensor_segments:
                _report_issue(
                    issues,
                    base,
                    None,
                    "unknown_sensor_label",
                    f"The IMU '{base}' has no markers in the model {model.name} and is ignored.",
                    UnknownSensorLabelWarning,
                )

        pose_solver = self.pose_solver if self.pose_solver is not None else SegmentMarkerPoseSolver()
        pose = pose_solver.clone().solve(model, data, reference_time).pose_
        unsolved = sorted({sensor_segments[b] for b in frames if b in sensor_segments} - set(pose))
        if unsolved:
            raise PoseAssemblyFailedError(
                f"The pose solver did not provide a pose for the sensor-bearing segment(s) {unsolved} at time "
                f"{reference_time}."
            )

        calibration = CalibrationResult(reference_time=reference_time, reference_pose=pose)
        for base, segment in sensor_segments.items():
            if base not in frames:
                reason = missing.get(base, "No markers of this IMU are part of the marker data.")
                _report_issue(
                    issues,
                    base,
                    segment,
                    "missing_point",
                    f"The IMU '{base}' on segment '{segment}' is skipped: {reason}",
                    MissingPointWarning,
                )
                continue
            offset = pose[segment].inv() * frames[base]
            if not calibration.add(segment, base, offset):
                _report_issue(
                    issues,
                    base,
                    segment,
                    "duplicate_sensor_on_segment",
                    f"The IMU '{base}' is skipped, because segment '{segment}' already carries the IMU "
                    f"'{calibration.sensor_on(segment)}'. Only one IMU per segment is supported.",
                    DuplicateSensorOnSegmentWarning,
                )

        self.calibration_ = calibration
        self.sensor_frames_ = {b: f for b, f in frames.items() if b in sensor_segments}
        self.reference_pose_ = pose
        self.reference_time_ = reference_time
        self.issues_ = _issues_to_frame(issues)
        return self
