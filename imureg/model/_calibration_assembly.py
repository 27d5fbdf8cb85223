"""Attach registered sensor frames to a body model."""
import warnings
from typing import Dict, Optional, TypeVar

from imureg.base import BaseAlgorithm
from imureg.model._body_model import BodyModel
from imureg.registration._calibration_result import CalibrationResult
from imureg.utils.exceptions import UnknownSegmentError

Self = TypeVar("Self", bound="CalibrationAssembly")


class CalibrationAssembly(BaseAlgorithm):
    """Create a calibrated copy of a body model with one offset frame per registered sensor.

    The offsets of a :class:`~imureg.registration.CalibrationResult` are only valid relative to the pose the
    registration was performed in.
    Therefore, the default pose of the calibrated model is pinned to this reference pose, before the offset frames are
    attached.
    All frames are connected in a single step after they were staged, so that no partially calibrated model is ever
    produced.
    If any segment of the calibration is unknown to the model, the assembly is aborted before the model is touched.

    Parameters
    ----------
    frame_suffix
        Suffix appended to the lowercase sensor name to name the offset frame (e.g. "pelvis" -> "pelvis_imu").
        Sensor names that already end with the suffix are used as they are.
    model_name_suffix
        If provided, the calibrated model is renamed to `<model name>_<model_name_suffix>`.

    Attributes
    ----------
    calibrated_model_
        A calibrated copy of the input model or None, if the calibration did not contain any sensors.
    frame_names_
        The name of the offset frame created for each segment

    Other Parameters
    ----------------
    model
        The model passed to the `assemble` method.
        It is not modified.
    calibration
        The calibration passed to the `assemble` method

    Examples
    --------
    >>> registration = PoseRegistration().register(model, marker_data)
    >>> assembly = CalibrationAssembly(model_name_suffix="calibrated").assemble(model, registration.calibration_)
    >>> assembly.calibrated_model_.offset_frames["pelvis_imu"]
    OffsetFrame(name='pelvis_imu', segment='pelvis', transform=...)

    """

    _action_methods = ("assemble",)

    frame_suffix: str
    model_name_suffix: Optional[str]

    model: BodyModel
    calibration: CalibrationResult

    calibrated_model_: Optional[BodyModel]
    frame_names_: Dict[str, str]

    def __init__(self, frame_suffix: str = "_imu", model_name_suffix: Optional[str] = None):
        self.frame_suffix = frame_suffix
        self.model_name_suffix = model_name_suffix
        super().__init__()

    def assemble(self: Self, model: BodyModel, calibration: CalibrationResult) -> Self:
        """Attach the offset frames of the calibration to a copy of the model."""
        self.model = model
        self.calibration = calibration

        if len(calibration) == 0:
            warnings.warn("The calibration does not contain any registered sensors. No calibrated model is created.")
            self.calibrated_model_ = None
            self.frame_names_ = {}
            return self

        unknown = [s for s in [*calibration, *calibration.reference_pose] if not model.has_segment(s)]
        if unknown:
            raise UnknownSegmentError(
                f"The calibration references segment(s) {sorted(set(unknown))} that do not exist in the model "
                f"{model.name}. No offset frames were attached."
            )

        calibrated = model.copy()
        calibrated.set_default_pose(calibration.reference_pose)
        frame_names = {}
        for segment, offset in calibration.items():
            frame_name = self._frame_name(calibration.sensor_on(segment))
            calibrated.add_offset_frame(frame_name, segment, offset)
            frame_names[segment] = frame_name
        calibrated.finalize_connections()

        if self.model_name_suffix:
            calibrated.name = f"{calibrated.name}_{self.model_name_suffix}"

        self.calibrated_model_ = calibrated
        self.frame_names_ = frame_names
        return self

    def _frame_name(self, sensor: str) -> str:
        name = str(sensor).lower()
        if self.frame_suffix and name.endswith(self.frame_suffix):
            return name
        return name + self.frame_suffix
