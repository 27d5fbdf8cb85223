"""Solvers that provide the pose of all model segments at one instant."""
from typing import Dict, Optional, TypeVar

import numpy as np
from scipy.spatial.transform import Rotation

from imureg.base import BasePoseSolver
from imureg.model._body_model import BodyModel
from imureg.utils.consts import POS_COLS
from imureg.utils.datatype_helper import MarkerTable, is_marker_table
from imureg.utils.exceptions import PoseAssemblyFailedError
from imureg.utils.transforms import RigidTransform

Self = TypeVar("Self", bound="BasePoseSolver")


def fit_rigid_transform(local_points: np.ndarray, measured_points: np.ndarray) -> RigidTransform:
    """Find the rigid transform that maps points from a local frame onto measured points in least squares sense.

    This is the Kabsch algorithm as implemented by :meth:`scipy.spatial.transform.Rotation.align_vectors` applied to
    the centered point clouds.

    Parameters
    ----------
    local_points : array with shape (n, 3)
        The point locations in the local frame
    measured_points : array with shape (n, 3)
        The same points measured in the target frame

    """
    local_center = local_points.mean(axis=0)
    measured_center = measured_points.mean(axis=0)
    rotation, *_ = Rotation.align_vectors(measured_points - measured_center, local_points - local_center)
    return RigidTransform(rotation, measured_center - rotation.apply(local_center))


class SegmentMarkerPoseSolver(BasePoseSolver):
    """Solve the pose of each segment independently from the markers attached to it.

    Every segment with at least `min_markers` visible, not collinear markers is fitted with a least squares rigid
    transform between the model marker locations and the measured marker positions.
    Joint constraints between the segments are not considered.
    Segments without enough markers are not part of the result.

    Parameters
    ----------
    min_markers
        The minimal number of visible markers required to solve the pose of a segment
    max_rms_error_m
        The maximal allowed root mean square distance between fitted and measured marker positions in m.
        If the fit of any segment is worse, the pose assembly is considered failed.

    Attributes
    ----------
    pose_
        The transform of every solved segment in ground
    rms_error_
        The remaining root mean square marker error of every solved segment

    Other Parameters
    ----------------
    model
        The model passed to the `solve` method
    marker_data
        The marker data passed to the `solve` method
    time
        The time passed to the `solve` method

    """

    min_markers: int
    max_rms_error_m: float

    model: BodyModel
    marker_data: MarkerTable
    time: float

    rms_error_: Dict[str, float]

    def __init__(self, min_markers: int = 3, max_rms_error_m: float = 0.01):
        self.min_markers = min_markers
        self.max_rms_error_m = max_rms_error_m
        super().__init__()

    def solve(self: Self, model: BodyModel, marker_data: MarkerTable, time: float) -> Self:
        """Solve the pose of all segments at the given time."""
        self.model = model
        self.marker_data = marker_data
        self.time = time

        if self.min_markers < 3:
            raise ValueError("At least 3 markers are required to solve the pose of a segment.")
        is_marker_table(marker_data, raise_exception=True)
        if time not in marker_data.index:
            raise PoseAssemblyFailedError(f"The marker data has no sample at time {time}.")
        row = marker_data.loc[time]

        pose = {}
        rms_error = {}
        for segment in model.segments:
            local = []
            measured = []
            for marker in model.get_markers_on(segment):
                if marker.name not in row.index.get_level_values(0):
                    continue
                position = row[marker.name][POS_COLS].to_numpy(dtype=float)
                if not np.all(np.isfinite(position)):
                    continue
                local.append(marker.location)
                measured.append(position)
            if len(local) < self.min_markers:
                continue
            local = np.array(local)
            measured = np.array(measured)
            if np.linalg.matrix_rank(local - local.mean(axis=0), tol=1e-6) < 2:
                continue
            transform = fit_rigid_transform(local, measured)
            error = np.sqrt(np.mean(np.sum((transform.apply(local) - measured) ** 2, axis=1)))
            if error > self.max_rms_error_m:
                raise PoseAssemblyFailedError(
                    f"The pose of segment '{segment}' could not be solved at time {time}. "
                    f"The marker fit error ({error:.4f} m) exceeds the limit of {self.max_rms_error_m} m."
                )
            pose[segment] = transform
            rms_error[segment] = float(error)

        if not pose:
            raise PoseAssemblyFailedError(
                f"No segment of the model {model.name} has enough visible markers at time {time} to solve its pose."
            )
        self.pose_ = pose
        self.rms_error_ = rms_error
        return self


class FixedPoseSolver(BasePoseSolver):
    """Provide segment poses that were solved outside of imureg (e.g. by a full inverse kinematics solver).

    Parameters
    ----------
    poses
        The transform of each segment in ground at the reference instant

    Attributes
    ----------
    pose_
        The transform of each segment in ground

    Other Parameters
    ----------------
    model
        The model passed to the `solve` method
    marker_data
        The marker data passed to the `solve` method (unused)
    time
        The time passed to the `solve` method (unused)

    """

    poses: Optional[Dict[str, RigidTransform]]

    model: BodyModel
    marker_data: Optional[MarkerTable]
    time: Optional[float]

    def __init__(self, poses: Optional[Dict[str, RigidTransform]] = None):
        self.poses = poses
        super().__init__()

    def solve(self: Self, model: BodyModel, marker_data: Optional[MarkerTable] = None, time: Optional[float] = None) -> Self:
        """Return the fixed poses after checking them against the model."""
        self.model = model
        self.marker_data = marker_data
        self.time = time

        if not self.poses:
            raise PoseAssemblyFailedError("No externally solved poses were provided.")
        unknown = [s for s in self.poses if not model.has_segment(s)]
        if unknown:
            raise PoseAssemblyFailedError(f"The provided poses contain segments unknown to the model: {unknown}")
        self.pose_ = dict(self.poses)
        return self


class ModelDefaultPoseSolver(BasePoseSolver):
    """Use the default pose of the model, assuming the model was already placed in the calibration pose.

    Attributes
    ----------
    pose_
        The default transform of each segment in ground

    Other Parameters
    ----------------
    model
        The model passed to the `solve` method
    marker_data
        The marker data passed to the `solve` method (unused)
    time
        The time passed to the `solve` method (unused)

    """

    model: BodyModel
    marker_data: Optional[MarkerTable]
    time: Optional[float]

    def solve(self: Self, model: BodyModel, marker_data: Optional[MarkerTable] = None, time: Optional[float] = None) -> Self:
        """Return the default pose of the model."""
        self.model = model
        self.marker_data = marker_data
        self.time = time

        if not model.default_pose:
            raise PoseAssemblyFailedError(f"The model {model.name} does not define a default pose.")
        self.pose_ = dict(model.default_pose)
        return self
