"""A rigid body transformation built on top of :class:`scipy.spatial.transform.Rotation`."""
from typing import Optional

import numpy as np
from scipy.spatial.transform import Rotation


class RigidTransform:
    """A rigid body transformation: a rotation followed by a translation.

    A transform `X_AB` maps coordinates expressed in frame `B` into frame `A` (`p_A = R p_B + t`).
    Transforms are composed with `*` in the same order as scipy rotations: `(a * b).apply(p)` equals
    `a.apply(b.apply(p))`.

    Parameters
    ----------
    rotation
        A single rotation. Identity if None.
    translation
        The translation vector with shape (3,). Zero if None.

    Examples
    --------
    >>> body_in_ground = RigidTransform(Rotation.from_euler("z", 90, degrees=True), [1.0, 0, 0])
    >>> body_in_ground.apply([1.0, 0, 0]).round(decimals=3)
    array([1., 1., 0.])
    >>> (body_in_ground.inv() * body_in_ground).is_close(RigidTransform.identity())
    True

    """

    __slots__ = ("rotation", "translation")

    rotation: Rotation
    translation: np.ndarray

    def __init__(self, rotation: Optional[Rotation] = None, translation: Optional[np.ndarray] = None):
        if rotation is None:
            rotation = Rotation.identity()
        if not rotation.single:
            raise ValueError("A RigidTransform can only hold a single rotation.")
        if translation is None:
            translation = np.zeros(3)
        translation = np.array(translation, dtype=float)
        if translation.shape != (3,):
            raise ValueError(f"The translation must have the shape (3,), not {translation.shape}.")
        self.rotation = rotation
        self.translation = translation

    @classmethod
    def identity(cls) -> "RigidTransform":
        """Create a transform that does not change anything."""
        return cls()

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "RigidTransform":
        """Create a transform from a homogeneous (4, 4) matrix."""
        matrix = np.asarray(matrix, dtype=float)
        if matrix.shape != (4, 4):
            raise ValueError(f"A homogeneous transformation matrix must have the shape (4, 4), not {matrix.shape}.")
        if not np.allclose(matrix[3], [0, 0, 0, 1]):
            raise ValueError("The last row of a homogeneous transformation matrix must be [0, 0, 0, 1].")
        return cls(Rotation.from_matrix(matrix[:3, :3]), matrix[:3, 3])

    def as_matrix(self) -> np.ndarray:
        """Export the transform as homogeneous (4, 4) matrix."""
        matrix = np.eye(4)
        matrix[:3, :3] = self.rotation.as_matrix()
        matrix[:3, 3] = self.translation
        return matrix

    def inv(self) -> "RigidTransform":
        """Invert the transform.

        The inverse has the transposed rotation and the translation `-R^T t`.
        """
        inv_rotation = self.rotation.inv()
        return RigidTransform(inv_rotation, -inv_rotation.apply(self.translation))

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Transform a single point with shape (3,) or multiple points with shape (n, 3)."""
        return self.rotation.apply(points) + self.translation

    def is_close(self, other: "RigidTransform", atol: float = 1e-8) -> bool:
        """Check if two transforms are equal within an absolute tolerance.

        The rotational difference is compared by its angle in rad, the translations element wise.
        """
        angle = (self.rotation.inv() * other.rotation).magnitude()
        return bool(angle <= atol and np.allclose(self.translation, other.translation, rtol=0, atol=atol))

    def __mul__(self, other: "RigidTransform") -> "RigidTransform":
        """Compose two transforms, `other` is applied first."""
        if not isinstance(other, RigidTransform):
            return NotImplemented
        return RigidTransform(self.rotation * other.rotation, self.rotation.apply(other.translation) + self.translation)

    def __repr__(self) -> str:
        """Return a string representation of the transform."""
        return f"RigidTransform(quat={self.rotation.as_quat().round(6).tolist()}, translation={self.translation.tolist()})"
