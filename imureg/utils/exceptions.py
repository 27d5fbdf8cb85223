"""A set of custom exceptions and warnings."""
from typing import Optional


class ValidationError(Exception):
    """An error indicating that data-object does not comply with the guidelines."""


class CalibrationError(Exception):
    """Base class for all errors raised while registering sensors or correcting their heading."""


class MissingPointError(CalibrationError):
    """A point required to form an IMU frame is missing or invalid.

    This error is not fatal for a registration run.
    The affected sensor is skipped and all other sensors are processed.
    """

    def __init__(self, message: str, sensor: Optional[str] = None) -> None:
        self.sensor = sensor
        super().__init__(message)


class PoseAssemblyFailedError(CalibrationError):
    """The pose of the model at the reference instant could not be solved."""


class DegenerateHeadingAxisError(CalibrationError):
    """The heading axis of the base sensor is (nearly) vertical and does not define a heading."""


class UnknownSegmentError(CalibrationError):
    """An offset frame should be attached to a segment the model does not have."""


class InvalidSessionTransitionError(CalibrationError):
    """A calibration session step was called before the steps it depends on."""


class CalibrationStageError(CalibrationError):
    """A fatal error that stopped one stage of a calibration session.

    Parameters
    ----------
    stage
        The name of the stage that failed
    cause
        The original error

    """

    def __init__(self, stage: str, cause: Exception) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__()

    def __str__(self) -> str:
        """Return a string representation of the error."""
        return f"Calibration stage '{self.stage}' failed with {type(self.cause).__name__}: {self.cause}"


class MissingPointWarning(UserWarning):
    """An IMU frame could not be formed and the sensor was skipped."""


class DuplicateSensorOnSegmentWarning(UserWarning):
    """A second sensor targets a segment that already has a registered sensor."""


class UnknownSensorLabelWarning(UserWarning):
    """A sensor label could not be matched to the model and was ignored."""


class QuaternionNormWarning(UserWarning):
    """Quaternions deviated noticeably from unit norm and were renormalized."""
