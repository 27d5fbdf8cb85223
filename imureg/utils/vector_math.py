"""A set of helper functions to handle common vector operations.

Wherever possible, these functions are designed to handle multiple vectors at the same time to perform efficient
computations.
"""
from typing import Union

import numpy as np
from numpy.linalg import norm


def row_wise_dot(v1, v2, squeeze=False):
    """Calculate row wise dot product of two vectors."""
    v1, v2 = np.atleast_2d(v1, v2)
    out = np.sum(v1 * v2, axis=-1)
    if squeeze:
        return np.squeeze(out)
    return out


def is_almost_parallel_or_antiparallel(
    v1: np.ndarray, v2: np.ndarray, rtol: float = 1.0e-5, atol: float = 1.0e-8
) -> Union[bool, np.ndarray]:
    """Check if two vectors are either parallel or antiparallel.

    Parameters
    ----------
    v1 : vector with shape (3,) or array of vectors
        axis ([x, y ,z]) or array of axis
    v2 : vector with shape (3,) or array of vectors
        axis ([x, y ,z]) or array of axis
    rtol : float
        The relative tolerance parameter
    atol : float
        The absolute tolerance parameter

    Returns
    -------
    bool or array of bool values with len n

    Examples
    --------
    >>> is_almost_parallel_or_antiparallel(np.array([0, 0, 1]), np.array([0, 0, -2]))
    True
    >>> is_almost_parallel_or_antiparallel(np.array([0, 0, 1]), np.array([0, 1, 0]))
    False

    """
    out = np.isclose(np.abs(row_wise_dot(normalize(v1), normalize(v2))), 1, rtol=rtol, atol=atol)
    if np.ndim(v1) == 1 and np.ndim(v2) == 1:
        return bool(out[0])
    return out


def normalize(v: np.ndarray) -> np.ndarray:
    """Simply normalize a vector.

    If a 2D array is provided, each row is considered a vector, which is normalized independently.

    Parameters
    ----------
    v : array with shape (3,) or (n, 3)
         vector or array of vectors

    Returns
    -------
    normalized vector or  array of normalized vectors

    Examples
    --------
    >>> normalize(np.array([0, 0, 2]))
    array([0., 0., 1.])

    """
    v = np.asarray(v, dtype=float)
    if not v.any():
        raise ValueError("one element at least should have value other than 0")
    ax = 0 if v.ndim == 1 else 1
    return (v.T / norm(v, axis=ax)).T


def project_onto_plane(v: np.ndarray, plane_normal: np.ndarray) -> np.ndarray:
    """Remove the component along `plane_normal` from one or multiple vectors.

    The result is not normalized.

    Examples
    --------
    >>> project_onto_plane(np.array([1.0, 2.0, 3.0]), np.array([0, 0, 1.0]))
    array([1., 2., 0.])

    """
    plane_normal = normalize(plane_normal)
    v = np.asarray(v, dtype=float)
    along_normal = row_wise_dot(v, plane_normal)
    out = np.atleast_2d(v) - along_normal[:, None] * plane_normal
    if v.ndim == 1:
        return out[0]
    return out


def orthogonalize(v: np.ndarray, reference: np.ndarray) -> np.ndarray:
    """Make `v` orthogonal to `reference` using a single Gram-Schmidt step and normalize the result.

    Raises a ValueError if `v` is parallel to `reference`, as no orthogonal direction remains.

    Examples
    --------
    >>> orthogonalize(np.array([1.0, 1.0, 0]), np.array([1.0, 0, 0]))
    array([0., 1., 0.])

    """
    if is_almost_parallel_or_antiparallel(v, reference):
        raise ValueError("v must not be parallel to the reference vector")
    return normalize(project_onto_plane(v, reference))
