"""A minimal body model that holds everything needed to register sensors onto its segments."""
import copy
from typing import Dict, List, Mapping, Optional

import numpy as np

from imureg.utils.exceptions import UnknownSegmentError
from imureg.utils.transforms import RigidTransform

#: Name of the implicit ground frame every root segment is attached to
GROUND = "ground"


class Segment:
    """A rigid body segment of the model.

    The parent is referenced by name only. Segments never own each other.
    """

    __slots__ = ("name", "parent")

    def __init__(self, name: str, parent: str = GROUND):
        self.name = name
        self.parent = parent

    def __repr__(self) -> str:
        """Return a string representation of the segment."""
        return f"Segment(name={self.name!r}, parent={self.parent!r})"


class Marker:
    """A marker fixed to a segment at a location given in the segment frame."""

    __slots__ = ("name", "segment", "location")

    def __init__(self, name: str, segment: str, location):
        self.name = name
        self.segment = segment
        self.location = np.array(location, dtype=float)

    def __repr__(self) -> str:
        """Return a string representation of the marker."""
        return f"Marker(name={self.name!r}, segment={self.segment!r}, location={self.location.tolist()})"


class OffsetFrame:
    """A named frame with a fixed transform relative to its segment."""

    __slots__ = ("name", "segment", "transform")

    def __init__(self, name: str, segment: str, transform: RigidTransform):
        self.name = name
        self.segment = segment
        self.transform = transform

    def __repr__(self) -> str:
        """Return a string representation of the frame."""
        return f"OffsetFrame(name={self.name!r}, segment={self.segment!r}, transform={self.transform!r})"


class BodyModel:
    """A body model as table of named segments with markers, offset frames, and a default pose.

    The model does not know about joints or coordinates.
    Its pose is described directly by the transform of each segment in ground.
    The default pose (the "home" pose) is the pose that offset frames were registered in.

    Offset frames are attached in two steps:
    :meth:`add_offset_frame` only stages a frame and :meth:`finalize_connections` validates and connects all staged
    frames at once.
    Staged frames are not visible through :attr:`offset_frames` before that.

    Parameters
    ----------
    name
        The name of the model

    Examples
    --------
    >>> model = BodyModel("subject01")
    >>> model.add_segment("pelvis")
    >>> model.add_segment("femur_r", parent="pelvis")
    >>> model.add_marker("RASI", "pelvis", [0.02, -0.1, 0.1])
    >>> model.segments
    ['pelvis', 'femur_r']

    """

    name: str
    default_pose: Dict[str, RigidTransform]

    def __init__(self, name: str = "model"):
        self.name = name
        self.default_pose = {}
        self._segments: Dict[str, Segment] = {}
        self._markers: Dict[str, Marker] = {}
        self._offset_frames: Dict[str, OffsetFrame] = {}
        self._staged_frames: List[OffsetFrame] = []

    @property
    def segments(self) -> List[str]:
        """Names of all segments in the order they were added."""
        return list(self._segments.keys())

    @property
    def markers(self) -> List[Marker]:
        """All markers in the order they were added."""
        return list(self._markers.values())

    @property
    def offset_frames(self) -> Dict[str, OffsetFrame]:
        """All connected offset frames by name."""
        return dict(self._offset_frames)

    @property
    def connections_finalized(self) -> bool:
        """True if no offset frames are waiting to be connected."""
        return len(self._staged_frames) == 0

    def has_segment(self, name: str) -> bool:
        return name in self._segments

    def get_segment(self, name: str) -> Segment:
        self._assert_has_segment(name)
        return self._segments[name]

    def get_marker(self, name: str) -> Marker:
        return self._markers[name]

    def get_markers_on(self, segment: str) -> List[Marker]:
        """Get all markers attached to one segment."""
        return [m for m in self._markers.values() if m.segment == segment]

    def add_segment(self, name: str, parent: str = GROUND) -> None:
        """Add a new segment.

        The parent must be either ground or a segment that was added before.
        """
        if name == GROUND or name in self._segments:
            raise ValueError(f"A segment with the name '{name}' already exists.")
        if parent != GROUND:
            self._assert_has_segment(parent)
        self._segments[name] = Segment(name, parent)

    def add_marker(self, name: str, segment: str, location) -> None:
        """Fix a marker to a segment at a location given in the segment frame."""
        self._assert_has_segment(segment)
        if name in self._markers:
            raise ValueError(f"A marker with the name '{name}' already exists.")
        marker = Marker(name, segment, location)
        if marker.location.shape != (3,):
            raise ValueError(f"The location of marker '{name}' must have the shape (3,).")
        self._markers[name] = marker

    def add_offset_frame(self, name: str, segment: str, transform: RigidTransform) -> None:
        """Stage an offset frame for the given segment.

        The frame only becomes part of the model after :meth:`finalize_connections` was called.
        """
        self._assert_has_segment(segment)
        self._staged_frames.append(OffsetFrame(name, segment, transform))

    def finalize_connections(self) -> None:
        """Validate and connect all staged offset frames.

        Either all staged frames are connected or none of them is.
        """
        names = [f.name for f in self._staged_frames]
        duplicated = sorted({n for n in names if names.count(n) > 1 or n in self._offset_frames})
        if duplicated:
            raise ValueError(f"The offset frame name(s) {duplicated} are not unique within the model.")
        for frame in self._staged_frames:
            self._assert_has_segment(frame.segment)
        for frame in self._staged_frames:
            self._offset_frames[frame.name] = frame
        self._staged_frames = []

    def set_default_pose(self, pose: Mapping[str, RigidTransform]) -> None:
        """Update the default pose with the transforms of the provided segments in ground.

        Segments not contained in `pose` keep their previous default transform.
        """
        unknown = [s for s in pose if s not in self._segments]
        if unknown:
            raise UnknownSegmentError(f"The model {self.name} has no segment(s) {unknown}.")
        self.default_pose = {**self.default_pose, **pose}

    def get_transform_in_ground(self, segment: str) -> RigidTransform:
        """Get the transform of a segment in ground in the default pose."""
        if segment == GROUND:
            return RigidTransform.identity()
        self._assert_has_segment(segment)
        try:
            return self.default_pose[segment]
        except KeyError as e:
            raise ValueError(f"The default pose of the model {self.name} does not define segment '{segment}'.") from e

    def get_frame_in_ground(self, frame_name: str) -> RigidTransform:
        """Get the transform of a connected offset frame in ground in the default pose."""
        frame = self._offset_frames[frame_name]
        return self.get_transform_in_ground(frame.segment) * frame.transform

    def copy(self) -> "BodyModel":
        """Create an independent deep copy of the model."""
        return copy.deepcopy(self)

    def _assert_has_segment(self, name: str) -> None:
        if name not in self._segments:
            raise UnknownSegmentError(f"The model {self.name} has no segment '{name}'.")

    def __repr__(self) -> str:
        """Return a string representation of the model."""
        return (
            f"BodyModel(name={self.name!r}, segments={len(self._segments)}, markers={len(self._markers)}, "
            f"offset_frames={len(self._offset_frames)})"
        )
