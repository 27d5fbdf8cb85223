"""Register IMUs onto the segments of a body model."""
from imureg.registration._calibration_result import CalibrationResult
from imureg.registration._frame_builder import build_frame, frames_from_markers, orientations_from_markers
from imureg.registration._orientation_registration import OrientationRegistration
from imureg.registration._pose_registration import PoseRegistration, find_sensor_segments

__all__ = [
    "CalibrationResult",
    "build_frame",
    "frames_from_markers",
    "orientations_from_markers",
    "PoseRegistration",
    "OrientationRegistration",
    "find_sensor_segments",
]
