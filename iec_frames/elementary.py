"""elementary.py - Elementary Transforms of the IEC Frame Hierarchy

One :class:`AffineTransform` is kept per declared (child, parent) pair. It
maps coordinates given in the child frame into the parent frame. The
parametrized update operations reset their transform to identity and then
build it up in pre-multiply mode, so translations and rotations act in the
order they are listed (IEC 61217:2011 sections 3.4 - 3.11).
"""
from __future__ import annotations

import numpy.typing as npt

import logging
import typing as typ

import numpy as np

from iec_frames.errors import MissingTransformError, NotUpdatableError
from iec_frames.frames import CoordinateFrame, FrameCatalog
from iec_frames.geometry import AffineTransform, homogeneous

__all__ = ['DICOM_TO_PATIENT_MATRIX', 'ElementaryTransformStore']

logger = logging.getLogger(__name__)

F = CoordinateFrame

# DICOM patient (LPS) to IEC patient (LSA): -90 degrees about X
DICOM_TO_PATIENT_MATRIX = np.array([[1, 0, 0, 0],
                                    [0, 0, 1, 0],
                                    [0,-1, 0, 0],
                                    [0, 0, 0, 1]], dtype=np.double)

class ElementaryTransformStore():
    """Elementary transforms of a frame catalog, looked up by transform name

    :param catalog: Frame catalog declaring the transforms, defaults to
        :meth:`FrameCatalog.iec61217`
    :type catalog: FrameCatalog | None, optional
    """
    # (child, parent) -> update method name
    updaters: dict[tuple[CoordinateFrame, CoordinateFrame], str] = {
        (F.Gantry, F.FixedReference):
            'update_gantry_to_fixed_reference',
        (F.Collimator, F.Gantry):
            'update_collimator_to_gantry',
        (F.WedgeFilter, F.Collimator):
            'update_wedge_filter_to_collimator',
        (F.PatientSupportRotation, F.FixedReference):
            'update_patient_support_rotation_to_fixed_reference',
        (F.TableTopEccentricRotation, F.PatientSupportRotation):
            'update_table_top_eccentric_rotation_to_patient_support_rotation',
        (F.TableTop, F.TableTopEccentricRotation):
            'update_table_top_to_table_top_eccentric_rotation',
        (F.Patient, F.TableTop):
            'update_patient_to_table_top',
        (F.PatientImageRegularGrid, F.DICOM):
            'update_patient_image_regular_grid_to_dicom'}

    def __init__(self, catalog: FrameCatalog | None = None):
        """Initialize ElementaryTransformStore"""
        self.catalog = FrameCatalog.iec61217() if catalog is None else catalog

        self._transforms: dict[str, AffineTransform] = {}
        self._revision: dict[str, int] = {}
        for child, parent in self.catalog.declared_transforms():
            name = self.catalog.transform_name_between(child, parent)
            self._transforms[name] = AffineTransform(name=name)
            self._revision[name] = 0

        # transforms that are not identity by default
        if (F.DICOM, F.Patient) in self:
            self._transform(F.DICOM, F.Patient).matrix = DICOM_TO_PATIENT_MATRIX

    def __contains__(self, pair: tuple[typ.Hashable, typ.Hashable]) -> bool:
        try:
            return self.catalog.transform_name_between(*pair) in self._transforms
        except KeyError:
            return False

    def __iter__(self) -> typ.Iterator[tuple[str, np.ndarray]]:
        """Yields (name, matrix copy) pairs in declaration order"""
        for name, transform in self._transforms.items():
            yield name, transform.matrix

    def __len__(self) -> int:
        return len(self._transforms)

    # Lookup
    def _transform(self, child: typ.Hashable, parent: typ.Hashable) -> AffineTransform:
        name = self.catalog.transform_name_between(child, parent)
        try:
            return self._transforms[name]
        except KeyError:
            raise MissingTransformError(f"Elementary transform not found: {name}") from None

    def lookup(self, child: typ.Hashable, parent: typ.Hashable) -> np.ndarray:
        """Matrix of the elementary transform from child to parent frame

        :param child: Child frame
        :type child: typing.Hashable

        :param parent: Parent frame
        :type parent: typing.Hashable

        :raises MissingTransformError: If no transform is stored for the pair

        :return: 4x4 matrix copy
        :rtype: numpy.ndarray
        """
        return self._transform(child, parent).matrix

    def revision(self, child: typ.Hashable, parent: typ.Hashable) -> int:
        """Number of updates applied to an elementary transform"""
        self._transform(child, parent)
        return self._revision[self.catalog.transform_name_between(child, parent)]

    def _reset(self, child: typ.Hashable, parent: typ.Hashable) -> AffineTransform:
        """Resets a transform to identity and marks it modified"""
        transform = self._transform(child, parent)
        self._revision[transform.name] += 1
        return transform.identity()

    # Generic update
    def update_edge(self, child: typ.Hashable, parent: typ.Hashable, *args, **kwargs):
        """Dispatch to the update operation of an elementary transform

        :param child: Child frame
        :type child: typing.Hashable

        :param parent: Parent frame
        :type parent: typing.Hashable

        :raises MissingTransformError: If no transform is stored for the pair
        :raises NotUpdatableError: If the transform is a construction time constant
        """
        self._transform(child, parent)
        try:
            method = self.updaters[(child, parent)]
        except KeyError:
            name = self.catalog.transform_name_between(child, parent)
            raise NotUpdatableError(f"Elementary transform {name} is constant") from None

        getattr(self, method)(*args, **kwargs)

    def set_matrix(self, child: typ.Hashable, parent: typ.Hashable, matrix: npt.ArrayLike):
        """Overwrites an elementary transform with a 4x4 matrix. Intended for
        catalogs extended beyond the IEC frames, whose transforms have no
        dedicated update operation."""
        self._reset(child, parent).matrix = matrix

    # IEC 61217 update operations
    def update_gantry_to_fixed_reference(self, gantry_angle: float, gantry_pitch: float = 0.0):
        """Gantry rotation about the Y-axis after gantry pitch about the X-axis

        Gantry pitch is not part of IEC 61217 but a DICOM addition.

        :param gantry_angle: Counter clockwise gantry rotation in degrees
        :type gantry_angle: float

        :param gantry_pitch: Counter clockwise gantry pitch in degrees, defaults to 0
        :type gantry_pitch: float, optional
        """
        transform = self._reset(F.Gantry, F.FixedReference)
        transform.rotate_x(gantry_pitch)
        transform.rotate_y(gantry_angle)
        logger.debug("Gantry angle %g deg, pitch %g deg", gantry_angle, gantry_pitch)

    def update_collimator_to_gantry(self, collimator_angle: float, bz: float = 0.0):
        """Collimator rotation about the Z-axis, origin displaced by `bz` along Z

        :param collimator_angle: Counter clockwise collimator rotation in degrees
        :type collimator_angle: float

        :param bz: Displacement along the gantry Z-axis, defaults to 0
        :type bz: float, optional
        """
        transform = self._reset(F.Collimator, F.Gantry)
        transform.translate(0, 0, bz)
        transform.rotate_z(collimator_angle)
        logger.debug("Collimator angle %g deg, bz %g", collimator_angle, bz)

    def update_wedge_filter_to_collimator(self, wedge_angle: float, wz: float = 0.0):
        """Wedge filter rotation about the Z-axis, origin displaced by `wz` along Z"""
        transform = self._reset(F.WedgeFilter, F.Collimator)
        transform.translate(0, 0, wz)
        transform.rotate_z(wedge_angle)
        logger.debug("Wedge filter angle %g deg, wz %g", wedge_angle, wz)

    def update_patient_support_rotation_to_fixed_reference(self, patient_support_angle: float):
        """Patient support rotation about the Z-axis"""
        transform = self._reset(F.PatientSupportRotation, F.FixedReference)
        transform.rotate_z(patient_support_angle)
        logger.debug("Patient support angle %g deg", patient_support_angle)

    def update_table_top_eccentric_rotation_to_patient_support_rotation(
            self, eccentric_angle: float, ey: float = 0.0):
        """Eccentric rotation about the Z-axis after displacing the origin by
        `ey` along the Y-axis

        :param eccentric_angle: Counter clockwise eccentric rotation in degrees
        :type eccentric_angle: float

        :param ey: Displacement along the patient support Y-axis, defaults to 0
        :type ey: float, optional
        """
        transform = self._reset(F.TableTopEccentricRotation, F.PatientSupportRotation)
        transform.translate(0, ey, 0)
        transform.rotate_z(eccentric_angle)
        logger.debug("Table top eccentric angle %g deg, ey %g", eccentric_angle, ey)

    def update_table_top_to_table_top_eccentric_rotation(
            self, tx: float, ty: float, tz: float,
            pitch: float = 0.0, roll: float = 0.0):
        """Table top displacement followed by pitch about the X-axis and roll
        about the Y-axis

        :param tx: Displacement along X
        :type tx: float

        :param ty: Displacement along Y
        :type ty: float

        :param tz: Displacement along Z
        :type tz: float

        :param pitch: Counter clockwise table top pitch in degrees, defaults to 0
        :type pitch: float, optional

        :param roll: Counter clockwise table top roll in degrees, defaults to 0
        :type roll: float, optional
        """
        transform = self._reset(F.TableTop, F.TableTopEccentricRotation)
        transform.translate(tx, ty, tz)
        transform.rotate('XY', [pitch, roll])
        logger.debug("Table top (%g, %g, %g), pitch %g deg, roll %g deg",
                     tx, ty, tz, pitch, roll)

    def update_patient_to_table_top(self, px: float, py: float, pz: float,
                                    psi: float = 0.0, phi: float = 0.0, theta: float = 0.0):
        """Patient displacement followed by rotations about X (psi), Y (phi)
        and Z (theta) in that order

        :param px: Displacement along X
        :type px: float

        :param py: Displacement along Y
        :type py: float

        :param pz: Displacement along Z
        :type pz: float

        :param psi: Rotation about X in degrees, defaults to 0
        :type psi: float, optional

        :param phi: Rotation about Y in degrees, defaults to 0
        :type phi: float, optional

        :param theta: Rotation about Z in degrees, defaults to 0
        :type theta: float, optional
        """
        transform = self._reset(F.Patient, F.TableTop)
        transform.translate(px, py, pz)
        transform.rotate('XYZ', [psi, phi, theta])
        logger.debug("Patient (%g, %g, %g), psi %g deg, phi %g deg, theta %g deg",
                     px, py, pz, psi, phi, theta)

    def update_patient_image_regular_grid_to_dicom(
            self, column_spacing: float, row_spacing: float, slice_distance: float,
            sx: float, sy: float, sz: float,
            row_cosines: npt.ArrayLike = (1, 0, 0),
            column_cosines: npt.ArrayLike = (0, 1, 0)):
        """Image grid placement in the DICOM (LPS) patient frame, built from
        the image orientation direction cosines. The slice direction is the
        cross product of the row and column direction cosines.

        See https://nipy.org/nibabel/dicom/dicom_orientation.html

        :param column_spacing: Distance between pixel columns
        :type column_spacing: float

        :param row_spacing: Distance between pixel rows
        :type row_spacing: float

        :param slice_distance: Distance between consecutive slices
        :type slice_distance: float

        :param sx: X position of the first voxel
        :type sx: float

        :param sy: Y position of the first voxel
        :type sy: float

        :param sz: Z position of the first voxel
        :type sz: float

        :param row_cosines: Row direction cosines, defaults to (1, 0, 0)
        :type row_cosines: numpy.typing.ArrayLike, optional

        :param column_cosines: Column direction cosines, defaults to (0, 1, 0)
        :type column_cosines: numpy.typing.ArrayLike, optional
        """
        row = np.asarray(row_cosines, dtype=np.double)
        column = np.asarray(column_cosines, dtype=np.double)
        if row.shape != (3,) or column.shape != (3,):
            raise ValueError("Direction cosines must have three components")

        linear = np.column_stack((row * column_spacing,
                                  column * row_spacing,
                                  np.cross(row, column) * slice_distance))

        transform = self._reset(F.PatientImageRegularGrid, F.DICOM)
        transform.concatenate(homogeneous(linear, (sx, sy, sz)))
        logger.debug("Image grid spacing (%g, %g, %g), origin (%g, %g, %g)",
                     column_spacing, row_spacing, slice_distance, sx, sy, sz)

    def describe(self) -> str:
        """Text dump of all elementary transforms"""
        lines = ["Elementary transforms:"]
        for name, matrix in self:
            text = np.array2string(matrix, precision=6, suppress_small=True)
            lines.append(f"{name}:")
            lines.extend("  " + row for row in text.splitlines())
        return '\n'.join(lines)
