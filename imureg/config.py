"""Run level settings of a calibration."""
from typing import Optional

from imureg.base import BasePoseSolver, _BaseSerializable
from imureg.heading_correction import HeadingCorrection
from imureg.registration import PoseRegistration
from imureg.utils.consts import SENSOR_AXES


class CalibrationConfig(_BaseSerializable):
    """Settings shared by all steps of one calibration run.

    The config can be exported and imported as json using `to_json` and `from_json`.

    Parameters
    ----------
    reference_sample_index
        The (integer) position of the sample at which the subject stands in the calibration pose.
        It is used for the registration and the heading correction.
    base_sensor
        The name of the sensor whose heading axis defines the forward direction.
        If None, no heading correction is performed.
    heading_axis
        The local axis ("x", "y", or "z") of the base sensor that points forward

    Examples
    --------
    >>> config = CalibrationConfig(base_sensor="pelvis_imu", heading_axis="x")
    >>> CalibrationConfig.from_json(config.to_json()).base_sensor
    'pelvis_imu'

    """

    reference_sample_index: int
    base_sensor: Optional[str]
    heading_axis: str

    def __init__(self, reference_sample_index: int = 0, base_sensor: Optional[str] = None, heading_axis: str = "z"):
        self.reference_sample_index = reference_sample_index
        self.base_sensor = base_sensor
        self.heading_axis = heading_axis

    def validate(self) -> "CalibrationConfig":
        """Check all settings and return the config itself."""
        if isinstance(self.reference_sample_index, bool) or not isinstance(self.reference_sample_index, int):
            raise ValueError(f"`reference_sample_index` must be an integer, not {self.reference_sample_index!r}.")
        if self.reference_sample_index < 0:
            raise ValueError("`reference_sample_index` must be >= 0.")
        if self.base_sensor is not None and not isinstance(self.base_sensor, str):
            raise ValueError(f"`base_sensor` must be None or a sensor name, not {self.base_sensor!r}.")
        if str(self.heading_axis).lower() not in SENSOR_AXES:
            raise ValueError(f"Invalid heading axis '{self.heading_axis}'! Axis must be one of {list(SENSOR_AXES)}")
        return self

    def create_heading_correction(self) -> HeadingCorrection:
        self.validate()
        return HeadingCorrection(
            base_sensor=self.base_sensor,
            heading_axis=str(self.heading_axis).lower(),
            reference_sample_index=self.reference_sample_index,
        )

    def create_pose_registration(self, pose_solver: Optional[BasePoseSolver] = None) -> PoseRegistration:
        self.validate()
        return PoseRegistration(reference_sample_index=self.reference_sample_index, pose_solver=pose_solver)
