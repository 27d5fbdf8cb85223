"""A set of util functions that ease handling rotations.

All util functions use :class:`scipy.spatial.transform.Rotation` to represent rotations.
Quaternions that are exchanged with orientation tables are scalar first ([w, x, y, z]), while scipy expects them
scalar last.
The `*_wxyz` helpers convert between both conventions.
"""
from typing import Union

import numpy as np
from scipy.spatial.transform import Rotation

from imureg.utils.vector_math import normalize, project_onto_plane


def rotation_from_angle(axis: np.ndarray, angle: Union[float, np.ndarray]) -> Rotation:
    """Create a rotation based on a rotation axis and a angle.

    Parameters
    ----------
    axis : array with shape (3,) or (n, 3)
        normalized rotation axis ([x, y ,z]) or array of rotation axis
    angle : float or array with shape (n,)
        rotation angle or array of angeles in rad

    Returns
    -------
    rotation(s) : Rotation object with len n

    Examples
    --------
    Single rotation: 180 deg rotation around the x-axis

    >>> rot = rotation_from_angle(np.array([1, 0, 0]), np.deg2rad(180))
    >>> rot.as_quat().round(decimals=3)
    array([1., 0., 0., 0.])

    """
    angle = np.atleast_2d(angle)
    axis = np.atleast_2d(axis)
    return Rotation.from_rotvec(np.squeeze(axis * angle.T))


def rotation_from_wxyz(quaternions: np.ndarray) -> Rotation:
    """Create rotations from scalar first quaternions.

    scipy normalizes the quaternions on creation.
    Rows containing NaN are not allowed and need to be handled by the caller.
    """
    quaternions = np.asarray(quaternions, dtype=float)
    return Rotation.from_quat(np.roll(quaternions, -1, axis=-1))


def rotation_as_wxyz(rotation: Rotation) -> np.ndarray:
    """Export rotations as scalar first quaternions."""
    return np.roll(rotation.as_quat(), 1, axis=-1)


def find_signed_3d_angle(v1: np.ndarray, v2: np.ndarray, rotation_axis: np.ndarray) -> Union[float, np.ndarray]:
    """Find the signed angle (in rad) between two 3D vectors.

    Signed means that the angle varies between -180 and 180 deg (or rather -pi and pi)
    This implementation uses acrtan2 to calculate the angle.

    Parameters
    ----------
    v1
        2D or 3D vector or series of vectors
    v2
        2D or 3D vector or series of vectors
    rotation_axis
        Axis the rotation is performed around. The direction of this axis also indicates the sign of the angle

    Examples
    --------
    >>> np.rad2deg(find_signed_3d_angle(np.array([1.0, 0, 0]), np.array([0, 1.0, 0]), np.array([0, 0, 1.0])))
    90.0

    """
    v1 = normalize(v1)
    v2 = normalize(v2)

    single = False
    if v1.ndim == 1:
        single = True

    v1 = np.atleast_2d(v1)
    v2 = np.broadcast_to(v2, v1.shape)
    # If on of the vectors is a 2D vector instead of a 3D vector, add a 0 as z-value
    if v1.shape[-1] == 2:
        v1 = np.pad(v1, ((0, 0), (0, 1)), mode="constant", constant_values=0)
    if v2.shape[-1] == 2:
        v2 = np.pad(v2, ((0, 0), (0, 1)), mode="constant", constant_values=0)

    rotation_axis = normalize(rotation_axis)

    angle = np.arctan2(np.sum(np.cross(v1, v2) * rotation_axis, axis=-1), np.sum(v1 * v2, axis=-1))
    if single:
        return angle[0]
    return angle


def find_heading_rotation(direction: np.ndarray, target_direction: np.ndarray, vertical_axis: np.ndarray) -> Rotation:
    """Find the rotation around the vertical axis that turns the heading of `direction` onto `target_direction`.

    Both directions are projected onto the horizontal plane before the angle between them is calculated.
    Only the rotation component around `vertical_axis` is returned, the inclination of `direction` is not changed.

    Parameters
    ----------
    direction : vector with shape (3,)
        The direction whose heading should be corrected
    target_direction : vector with shape (3,)
        The direction that defines the desired heading
    vertical_axis : vector with shape (3,)
        The vertical axis of the ground frame

    Examples
    --------
    >>> rot = find_heading_rotation(np.array([0, 1.0, 0.5]), np.array([1.0, 0, 0]), np.array([0, 0, 1.0]))
    >>> rot.apply([0, 1.0, 0.5]).round(decimals=3)
    array([1. , 0. , 0.5])

    """
    vertical_axis = normalize(vertical_axis)
    horizontal = project_onto_plane(direction, vertical_axis)
    horizontal_target = project_onto_plane(target_direction, vertical_axis)
    angle = find_signed_3d_angle(horizontal, horizontal_target, vertical_axis)
    return rotation_from_angle(vertical_axis, angle)
