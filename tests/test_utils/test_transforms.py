import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal
from scipy.spatial.transform import Rotation

from imureg.utils.transforms import RigidTransform


@pytest.fixture()
def transform():
    return RigidTransform(Rotation.from_euler("xyz", [20, -35, 110], degrees=True), [0.3, -1.2, 0.5])


class TestRigidTransform:
    def test_default_is_identity(self):
        identity = RigidTransform()

        assert_array_almost_equal(identity.as_matrix(), np.eye(4))
        assert identity.is_close(RigidTransform.identity())

    def test_apply(self):
        t = RigidTransform(Rotation.from_euler("z", 90, degrees=True), [1.0, 0, 0])

        assert_array_almost_equal(t.apply([1.0, 0, 0]), [1, 1, 0])
        assert_array_almost_equal(t.apply([[1.0, 0, 0], [0, 0, 1.0]]), [[1, 1, 0], [1, 0, 1]])

    def test_inverse(self, transform):
        point = np.array([0.1, 0.2, 0.3])

        assert_array_almost_equal(transform.inv().apply(transform.apply(point)), point)
        assert (transform * transform.inv()).is_close(RigidTransform.identity())

    def test_composition_order(self, transform):
        other = RigidTransform(Rotation.from_euler("y", 45, degrees=True), [0, 0, 2.0])
        point = np.array([1.0, -1.0, 0.5])

        assert_array_almost_equal((transform * other).apply(point), transform.apply(other.apply(point)))

    def test_matrix_roundtrip(self, transform):
        matrix = transform.as_matrix()

        assert_array_almost_equal(matrix[3], [0, 0, 0, 1])
        assert RigidTransform.from_matrix(matrix).is_close(transform)

    def test_invalid_matrix(self):
        with pytest.raises(ValueError):
            RigidTransform.from_matrix(np.eye(3))
        matrix = np.eye(4)
        matrix[3, 0] = 1
        with pytest.raises(ValueError):
            RigidTransform.from_matrix(matrix)

    def test_multiple_rotations_raise(self):
        with pytest.raises(ValueError):
            RigidTransform(Rotation.from_euler("z", [[10], [20]], degrees=True))

    def test_invalid_translation_raises(self):
        with pytest.raises(ValueError):
            RigidTransform(translation=[1.0, 2.0])

    def test_is_close_tolerance(self, transform):
        shifted = RigidTransform(transform.rotation, transform.translation + 1e-6)
        turned = RigidTransform(Rotation.from_euler("x", 1e-5) * transform.rotation, transform.translation)

        assert not transform.is_close(shifted)
        assert transform.is_close(shifted, atol=1e-5)
        assert not transform.is_close(turned)
        assert transform.is_close(turned, atol=1e-4)
