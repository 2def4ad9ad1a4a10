"""geometry.py - Homogeneous Affine Transforms"""
from __future__ import annotations

import numpy.typing as npt

import numpy as np

import scipy.spatial.transform as sptl

from iec_frames.utilities import sequence_to_index

__all__ = ['AffineTransform', 'homogeneous', 'rotation_matrix']

# %% Helpers
def homogeneous(rotation: npt.ArrayLike | None = None,
                translation: npt.ArrayLike | None = None) -> np.ndarray:
    """Assemble a 4x4 homogeneous matrix from a linear part and a translation

    :param rotation: 3x3 linear part, defaults to identity
    :type rotation: numpy.typing.ArrayLike | None, optional

    :param translation: Translation vector, defaults to zero
    :type translation: numpy.typing.ArrayLike | None, optional

    :return: Homogeneous matrix
    :rtype: numpy.ndarray
    """
    out = np.eye(4)
    if rotation is not None:
        out[:3,:3] = rotation
    if translation is not None:
        out[:3,3] = translation
    return out

def rotation_matrix(sequence: str, angles: npt.ArrayLike, degrees: bool = True) -> np.ndarray:
    """Intrinsic rotation matrix about cardinal axes (right-hand rule)

    An intrinsic sequence 'XY' equals :math:`R_x R_y`, i.e. the same matrix
    obtained by rotating about X and then about the rotated Y axis.

    :param sequence: Axis sequence, e.g. 'Z' or 'XYZ'
    :type sequence: str

    :param angles: One angle per axis in the sequence
    :type angles: numpy.typing.ArrayLike

    :param degrees: Unit of rotation angles, defaults to True
    :type degrees: bool, optional

    :return: 3x3 rotation matrix
    :rtype: numpy.ndarray
    """
    sequence_to_index(sequence)
    angles = np.atleast_1d(np.asarray(angles, dtype=np.double))
    if angles.shape != (len(sequence),):
        raise ValueError(f"Expected {len(sequence)} angle(s) for sequence '{sequence}'")

    # single axis sequences take a scalar, otherwise scipy builds a rotation stack
    angles = angles if len(sequence) > 1 else angles[0]
    return sptl.Rotation.from_euler(sequence.upper(), angles, degrees).as_matrix()

# %% Transform
class AffineTransform():
    """Mutable 4x4 affine transform built up from elementary operations.

    In pre-multiply mode (default) every new operation is concatenated on the
    right (:math:`M \\leftarrow M A`), so successive calls act in the frame
    produced by the preceding ones. In post-multiply mode new operations are
    concatenated on the left (:math:`M \\leftarrow A M`), so the resulting
    matrix applies them in call order.

    :param matrix: Initial matrix, defaults to identity
    :type matrix: numpy.typing.ArrayLike | None, optional

    :param name: Transform name, defaults to ''
    :type name: str, optional

    :param post_multiply: Concatenation mode flag, defaults to False
    :type post_multiply: bool, optional
    """
    def __init__(self, matrix: npt.ArrayLike | None = None,
                 name: str = '', post_multiply: bool = False):
        """Initialize AffineTransform"""
        self.name = name
        self.post_multiply = post_multiply
        self.matrix = np.eye(4) if matrix is None else matrix

    def __str__(self) -> str:
        return f"AffineTransform('{self.name}', {np.array2string(self._matrix, precision=6)})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def matrix(self) -> np.ndarray:
        """Returns a copy of the current matrix

        :return: 4x4 matrix
        :rtype: numpy.ndarray
        """
        return self._matrix.copy()

    @matrix.setter
    def matrix(self, value: npt.ArrayLike):
        """Sets matrix from 4x4 array with double datatype

        :param value: Homogeneous matrix
        :type value: numpy.typing.ArrayLike

        :raises ValueError: If the array is not 4x4
        """
        value = np.array(value, dtype=np.double)
        if value.shape != (4,4):
            raise ValueError(f"Affine matrix must be 4x4, got {value.shape}")
        self._matrix = value

    # Operations
    def identity(self) -> AffineTransform:
        """Resets the transform to identity"""
        self._matrix = np.eye(4)
        return self

    def concatenate(self, matrix: npt.ArrayLike | AffineTransform) -> AffineTransform:
        """Concatenates a 4x4 matrix according to the multiplication mode

        :param matrix: Matrix or transform to concatenate
        :type matrix: numpy.typing.ArrayLike | AffineTransform

        :return: Self for chaining
        :rtype: AffineTransform
        """
        if isinstance(matrix, AffineTransform):
            matrix = matrix._matrix
        matrix = np.asarray(matrix, dtype=np.double)

        if self.post_multiply:
            self._matrix = matrix @ self._matrix
        else:
            self._matrix = self._matrix @ matrix
        return self

    def translate(self, x: float, y: float, z: float) -> AffineTransform:
        """Concatenates a translation"""
        return self.concatenate(homogeneous(translation=(x, y, z)))

    def rotate(self, sequence: str, angles: npt.ArrayLike) -> AffineTransform:
        """Concatenates an intrinsic rotation given in degrees

        :param sequence: Axis sequence, e.g. 'Z' or 'XYZ'
        :type sequence: str

        :param angles: Rotation angles in degrees
        :type angles: numpy.typing.ArrayLike

        :return: Self for chaining
        :rtype: AffineTransform
        """
        return self.concatenate(homogeneous(rotation_matrix(sequence, angles)))

    def rotate_x(self, angle: float) -> AffineTransform:
        return self.rotate('X', angle)

    def rotate_y(self, angle: float) -> AffineTransform:
        return self.rotate('Y', angle)

    def rotate_z(self, angle: float) -> AffineTransform:
        return self.rotate('Z', angle)

    def inverse(self) -> np.ndarray:
        """Inverse matrix (the transform itself is not modified)

        :return: 4x4 inverse matrix
        :rtype: numpy.ndarray
        """
        return np.linalg.inv(self._matrix)

    def apply(self, point: npt.ArrayLike) -> np.ndarray:
        """Applies the transform to point(s) of shape :math:`(3,)` or :math:`(n,3)`

        :param point: Point position vector(s)
        :type point: numpy.typing.ArrayLike

        :return: Transformed point(s)
        :rtype: numpy.ndarray
        """
        point = np.asarray(point, dtype=np.double)
        return point @ self._matrix[:3,:3].T + self._matrix[:3,3]

    def is_identity(self, atol: float = 0.0) -> bool:
        """Checks whether the matrix equals identity within tolerance"""
        return bool(np.allclose(self._matrix, np.eye(4), rtol=0.0, atol=atol))
