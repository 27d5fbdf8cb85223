"""A minimal body model, solvers for its pose, and the assembly of calibrated models."""
from imureg.model._body_model import GROUND, BodyModel, Marker, OffsetFrame, Segment
from imureg.model._calibration_assembly import CalibrationAssembly
from imureg.model._pose_solvers import (
    FixedPoseSolver,
    ModelDefaultPoseSolver,
    SegmentMarkerPoseSolver,
    fit_rigid_transform,
)

__all__ = [
    "GROUND",
    "BodyModel",
    "Segment",
    "Marker",
    "OffsetFrame",
    "CalibrationAssembly",
    "SegmentMarkerPoseSolver",
    "FixedPoseSolver",
    "ModelDefaultPoseSolver",
    "fit_rigid_transform",
]
