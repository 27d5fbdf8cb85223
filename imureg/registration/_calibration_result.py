"""The result of a sensor registration."""
from typing import Dict, Iterator, Optional, Tuple

import pandas as pd

from imureg.utils.consts import ORI_COLS, POS_COLS
from imureg.utils.rotations import rotation_as_wxyz
from imureg.utils.transforms import RigidTransform


class CalibrationResult:
    """Offsets of registered sensors relative to the segments they are attached to.

    The result maps segment names to the transform of the sensor frame in the segment frame.
    A segment can only hold a single sensor: the first sensor added for a segment is kept and later ones are
    rejected by :meth:`add`.

    Parameters
    ----------
    reference_time
        The time of the sample the registration was performed at
    reference_pose
        The transform of every segment in ground at the reference time.
        The offsets are only valid relative to this pose.

    """

    reference_time: Optional[float]
    reference_pose: Dict[str, RigidTransform]

    def __init__(self, reference_time: Optional[float] = None, reference_pose: Optional[Dict[str, RigidTransform]] = None):
        self.reference_time = reference_time
        self.reference_pose = dict(reference_pose or {})
        self._offsets: Dict[str, RigidTransform] = {}
        self._sensors: Dict[str, str] = {}

    def add(self, segment: str, sensor: str, offset: RigidTransform) -> bool:
        """Add the offset of a sensor on a segment.

        Returns False and keeps the existing entry if the segment already has a sensor.
        """
        if segment in self._offsets:
            return False
        self._offsets[segment] = offset
        self._sensors[segment] = sensor
        return True

    def sensor_on(self, segment: str) -> str:
        """Get the name of the sensor registered on a segment."""
        return self._sensors[segment]

    @property
    def offsets(self) -> Dict[str, RigidTransform]:
        return dict(self._offsets)

    @property
    def sensors(self) -> Dict[str, str]:
        return dict(self._sensors)

    def items(self) -> Iterator[Tuple[str, RigidTransform]]:
        return iter(self._offsets.items())

    def to_frame(self) -> pd.DataFrame:
        """Summarize all offsets in a dataframe with one row per segment."""
        rows = {
            segment: [self._sensors[segment], *rotation_as_wxyz(offset.rotation), *offset.translation]
            for segment, offset in self._offsets.items()
        }
        df = pd.DataFrame.from_dict(rows, orient="index", columns=["sensor", *ORI_COLS, *POS_COLS])
        df.index.name = "segment"
        return df

    def __getitem__(self, segment: str) -> RigidTransform:
        return self._offsets[segment]

    def __contains__(self, segment: object) -> bool:
        return segment in self._offsets

    def __iter__(self) -> Iterator[str]:
        return iter(self._offsets)

    def __len__(self) -> int:
        return len(self._offsets)

    def __repr__(self) -> str:
        """Return a string representation of the result."""
        return f"CalibrationResult(reference_time={self.reference_time}, sensors={self._sensors})"
