"""A calibration session that runs all calibration steps in the required order."""
from enum import Enum
from typing import Dict, Hashable, Optional, Union

from imureg.base import BasePoseSolver
from imureg.config import CalibrationConfig
from imureg.ingest import to_orientation_table
from imureg.model import BodyModel, CalibrationAssembly, FixedPoseSolver, SegmentMarkerPoseSolver
from imureg.registration import CalibrationResult
from imureg.utils.consts import HEADING_CORRECTED_ATTR
from imureg.utils.datatype_helper import MarkerTable, OrientationTable, is_marker_table
from imureg.utils.exceptions import (
    CalibrationError,
    CalibrationStageError,
    InvalidSessionTransitionError,
    ValidationError,
)
from imureg.utils.transforms import RigidTransform

_STAGE_ERRORS = (CalibrationError, ValidationError, ValueError)


class SessionState(str, Enum):
    """The states of a calibration session."""

    IDLE = "idle"
    DATA_INGESTED = "data_ingested"
    POSE_ASSEMBLED = "pose_assembled"
    FRAMES_REGISTERED = "frames_registered"
    HEADING_CORRECTED = "heading_corrected"
    FINALIZED = "finalized"


class CalibrationSession:
    """Run the steps of a calibration in the required order and keep their intermediate results.

    The session moves through the states
    `IDLE -> DATA_INGESTED -> POSE_ASSEMBLED -> FRAMES_REGISTERED -> [HEADING_CORRECTED] -> FINALIZED`.
    The heading correction is optional and independent of the registration.
    It only requires ingested orientation data and can be performed before or after the frames were registered.
    A failed heading correction does not affect the registration results.

    Calling a step before the steps it depends on raises an
    :class:`~imureg.utils.exceptions.InvalidSessionTransitionError`.
    Fatal errors of a step are raised as :class:`~imureg.utils.exceptions.CalibrationStageError` naming the stage.
    The state of the session is only advanced if a step succeeded.

    Parameters
    ----------
    model
        The body model that should be calibrated.
        It is never modified, the calibrated model is a copy.
    config
        The settings of the calibration run

    Examples
    --------
    >>> session = CalibrationSession(model, CalibrationConfig(base_sensor="pelvis_imu"))
    >>> session.ingest(marker_data=markers, orientation_data=orientations)
    >>> session.assemble_pose()
    >>> session.register_frames()
    >>> session.correct_heading()
    >>> calibrated_model = session.finalize()

    """

    state: SessionState
    marker_data: Optional[MarkerTable]
    orientation_data: Optional[OrientationTable]
    reference_pose: Optional[Dict[str, RigidTransform]]
    calibration: Optional[CalibrationResult]
    corrected_data: Optional[OrientationTable]
    calibrated_model: Optional[BodyModel]

    def __init__(self, model: BodyModel, config: Optional[CalibrationConfig] = None):
        self.model = model
        self.config = (config if config is not None else CalibrationConfig()).validate()
        self.state = SessionState.IDLE
        self.heading_corrected = False
        self.marker_data = None
        self.orientation_data = None
        self.reference_pose = None
        self.calibration = None
        self.corrected_data = None
        self.calibrated_model = None

    def _assert_state(self, step: str, *allowed: SessionState) -> None:
        if self.state not in allowed:
            raise InvalidSessionTransitionError(
                f"`{step}` can not be called in state '{self.state.value}'. "
                f"Allowed states are {[s.value for s in allowed]}."
            )

    def ingest(
        self,
        marker_data: Optional[MarkerTable] = None,
        orientation_data: Optional[Union[OrientationTable, Dict[Hashable, object]]] = None,
    ) -> None:
        """Provide the marker data of the calibration pose and/or the orientation data of the sensors."""
        self._assert_state("ingest", SessionState.IDLE, SessionState.DATA_INGESTED)
        if marker_data is None and orientation_data is None:
            raise ValueError("At least one of `marker_data` or `orientation_data` must be provided.")
        try:
            if marker_data is not None:
                is_marker_table(marker_data, raise_exception=True)
            orientations = to_orientation_table(orientation_data) if orientation_data is not None else None
        except _STAGE_ERRORS as e:
            raise CalibrationStageError("ingest", e) from e
        if marker_data is not None:
            self.marker_data = marker_data
        if orientations is not None:
            self.orientation_data = orientations
        self.state = SessionState.DATA_INGESTED

    def assemble_pose(self, pose_solver: Optional[BasePoseSolver] = None) -> Dict[str, RigidTransform]:
        """Solve the pose of the model at the reference sample of the marker data."""
        self._assert_state("assemble_pose", SessionState.DATA_INGESTED)
        if self.marker_data is None:
            raise InvalidSessionTransitionError("The pose can only be assembled after marker data was ingested.")
        solver = pose_solver if pose_solver is not None else SegmentMarkerPoseSolver()
        try:
            if self.config.reference_sample_index >= len(self.marker_data):
                raise ValueError(
                    f"The reference sample index ({self.config.reference_sample_index}) is out of range for marker "
                    f"data with {len(self.marker_data)} samples."
                )
            time = self.marker_data.index[self.config.reference_sample_index]
            pose = solver.clone().solve(self.model, self.marker_data, time).pose_
        except _STAGE_ERRORS as e:
            raise CalibrationStageError("pose_assembly", e) from e
        self.reference_pose = pose
        self.state = SessionState.POSE_ASSEMBLED
        return pose

    def register_frames(self) -> CalibrationResult:
        """Register all marked IMUs onto the model using the assembled pose."""
        self._assert_state("register_frames", SessionState.POSE_ASSEMBLED)
        registration = self.config.create_pose_registration(pose_solver=FixedPoseSolver(self.reference_pose))
        try:
            calibration = registration.register(self.model, self.marker_data).calibration_
        except _STAGE_ERRORS as e:
            raise CalibrationStageError("registration", e) from e
        self.calibration = calibration
        self.state = SessionState.FRAMES_REGISTERED
        return calibration

    def correct_heading(self) -> OrientationTable:
        """Correct the heading of the ingested orientation data.

        Without a base sensor in the config, the returned data is an uncorrected copy tagged accordingly.
        """
        if self.state in (SessionState.IDLE, SessionState.FINALIZED) or self.orientation_data is None:
            raise InvalidSessionTransitionError(
                f"`correct_heading` requires ingested orientation data and can not be called in state "
                f"'{self.state.value}'."
            )
        try:
            corrected = self.config.create_heading_correction().correct(self.orientation_data).corrected_data_
        except _STAGE_ERRORS as e:
            raise CalibrationStageError("heading_correction", e) from e
        self.corrected_data = corrected
        self.heading_corrected = bool(corrected.attrs.get(HEADING_CORRECTED_ATTR, False))
        if self.state == SessionState.FRAMES_REGISTERED:
            self.state = SessionState.HEADING_CORRECTED
        return corrected

    def finalize(self, frame_suffix: str = "_imu", model_name_suffix: Optional[str] = None) -> Optional[BodyModel]:
        """Create the calibrated model from the registered frames.

        Returns None if no sensor could be registered.
        """
        self._assert_state("finalize", SessionState.FRAMES_REGISTERED, SessionState.HEADING_CORRECTED)
        assembly = CalibrationAssembly(frame_suffix=frame_suffix, model_name_suffix=model_name_suffix)
        try:
            calibrated = assembly.assemble(self.model, self.calibration).calibrated_model_
        except _STAGE_ERRORS as e:
            raise CalibrationStageError("assembly", e) from e
        self.calibrated_model = calibrated
        self.state = SessionState.FINALIZED
        return calibrated
