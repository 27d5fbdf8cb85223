"""Common constants used in the library."""

import numpy as np

#: The names of the quaternion columns of an orientation table (scalar first)
ORI_COLS = ["q_w", "q_x", "q_y", "q_z"]
#: The names of the position columns of a marker table
POS_COLS = ["x", "y", "z"]
#: The name of the index of orientation and marker tables
TIME_INDEX = "time"

#: Infix that marks markers placed on an IMU (or the plate it is mounted on)
IMU_MARKER_INFIX = "_IMU_"
#: The points that define an IMU frame: origin, x-direction, y-direction and diagonal
IMU_MARKER_POINTS = ("O", "X", "Y", "D")
#: The points that must be present to form an IMU frame
REQUIRED_IMU_MARKER_POINTS = ("O", "X", "Y")

#: The local sensor axes that can be used as heading axis
SENSOR_AXES = {
    "x": np.array([1.0, 0.0, 0.0]),
    "y": np.array([0.0, 1.0, 0.0]),
    "z": np.array([0.0, 0.0, 1.0]),
}

#: The default vertical axis of the ground frame
GROUND_VERTICAL = (0.0, 0.0, 1.0)
#: The default forward (heading) direction of the ground frame
GROUND_HEADING = (1.0, 0.0, 0.0)

#: Maximal deviation of a quaternion norm from 1 that is silently renormalized
QUAT_NORM_TOLERANCE = 1e-3

#: Keys of the orientation table metadata stored in `DataFrame.attrs`
HEADING_CORRECTED_ATTR = "heading_corrected"
BASE_SENSOR_ATTR = "base_sensor"
HEADING_AXIS_ATTR = "heading_axis"
