import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal, assert_array_equal

from imureg.utils.vector_math import (
    is_almost_parallel_or_antiparallel,
    normalize,
    orthogonalize,
    project_onto_plane,
    row_wise_dot,
)


class TestRowWiseDot:
    def test_single(self):
        assert row_wise_dot(np.array([1, 2, 3]), np.array([1, 0, 1]), squeeze=True) == 4

    def test_multiple(self):
        v1 = np.array([[1, 0, 0], [0, 2, 0]])
        v2 = np.array([[1, 0, 0], [0, 3, 0]])

        assert_array_equal(row_wise_dot(v1, v2), [1, 6])


class TestIsAlmostParallelOrAntiparallel:
    @pytest.mark.parametrize(
        "v1, v2, result",
        (
            ([0, 0, 1], [0, 0, 1], True),
            ([0, 0, 1], [0, 0, -3], True),
            ([0, 0, 1], [0, 1, 0], False),
            ([1, 1, 0], [2, 2, 0], True),
            ([1, 1, 0], [1, 1.1, 0], False),
        ),
    )
    def test_single_vectors(self, v1, v2, result):
        out = is_almost_parallel_or_antiparallel(np.array(v1), np.array(v2))

        assert isinstance(out, bool)
        assert out is result

    def test_multiple_vectors(self):
        v1 = np.array([[0, 0, 1], [0, 1, 0]])
        v2 = np.array([[0, 0, -1], [1, 0, 0]])

        assert_array_equal(is_almost_parallel_or_antiparallel(v1, v2), [True, False])


class TestNormalize:
    def test_single(self):
        assert_array_almost_equal(normalize(np.array([0, 3.0, 4.0])), [0, 0.6, 0.8])

    def test_multiple(self):
        assert_array_almost_equal(normalize(np.array([[0, 0, 2.0], [2.0, 0, 0]])), [[0, 0, 1], [1, 0, 0]])

    def test_zero_vector_raises(self):
        with pytest.raises(ValueError):
            normalize(np.zeros(3))


class TestProjectOntoPlane:
    def test_single(self):
        assert_array_almost_equal(project_onto_plane(np.array([1.0, 2, 3]), np.array([0, 0, 5.0])), [1, 2, 0])

    def test_multiple(self):
        v = np.array([[1.0, 2, 3], [0, 0, 1]])

        assert_array_almost_equal(project_onto_plane(v, np.array([0, 0, 1.0])), [[1, 2, 0], [0, 0, 0]])

    def test_tilted_plane(self):
        normal = np.array([1.0, 1.0, 0])
        out = project_onto_plane(np.array([1.0, 0, 0]), normal)

        assert_array_almost_equal(out, [0.5, -0.5, 0])
        assert np.isclose(np.dot(out, normal), 0)


class TestOrthogonalize:
    def test_result_is_orthogonal_unit_vector(self):
        reference = np.array([1.0, 2.0, -1.0])
        out = orthogonalize(np.array([0.5, 1.0, 1.0]), reference)

        assert np.isclose(np.linalg.norm(out), 1)
        assert np.isclose(np.dot(out, reference), 0)

    def test_parallel_raises(self):
        with pytest.raises(ValueError):
            orthogonalize(np.array([2.0, 0, 0]), np.array([-1.0, 0, 0]))
