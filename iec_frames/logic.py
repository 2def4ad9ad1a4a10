"""logic.py - IEC Transform Logic

Entry point for transforms between the IEC 61217 coordinate frames. An
:class:`IECTransformLogic` owns its frame catalog, elementary transforms and
composition cache; independent device models use independent instances.

Instances are not synchronized. Updates and queries on a shared instance
must be serialized by the caller.
"""
from __future__ import annotations

import numpy.typing as npt

import logging
import typing as typ

import numpy as np

from iec_frames.compositor import TransformCompositor
from iec_frames.config import MachineState
from iec_frames.elementary import ElementaryTransformStore
from iec_frames.errors import IECFrameError
from iec_frames.frames import FrameCatalog

__all__ = ['IECTransformLogic']

logger = logging.getLogger(__name__)

class IECTransformLogic():
    """Transforms between the coordinate frames of a radiotherapy delivery device

    :param catalog: Frame catalog, defaults to :meth:`FrameCatalog.iec61217`
    :type catalog: FrameCatalog | None, optional

    :param cache: Cache composed transforms, defaults to True
    :type cache: bool, optional
    """
    def __init__(self, catalog: FrameCatalog | None = None, cache: bool = True):
        """Initialize IECTransformLogic"""
        self.catalog = FrameCatalog.iec61217() if catalog is None else catalog
        self.store = ElementaryTransformStore(self.catalog)
        self.compositor = TransformCompositor(self.catalog, self.store, cache)

    # Queries
    def transform_between(self, from_frame: typ.Hashable, to_frame: typ.Hashable,
                          beam_mode: bool = False) -> np.ndarray:
        """Matrix mapping coordinates in `from_frame` into `to_frame`

        :param from_frame: Source frame
        :type from_frame: typing.Hashable

        :param to_frame: Target frame
        :type to_frame: typing.Hashable

        :param beam_mode: Do not invert the elementary transforms from the root
            down to `to_frame`, as required by legacy beam model consumers,
            defaults to False
        :type beam_mode: bool, optional

        :raises UnreachableFrameError: If either frame is not connected to the root
        :raises MissingTransformError: If an elementary transform on the route is not stored

        :return: 4x4 matrix
        :rtype: numpy.ndarray
        """
        return self.compositor.compose(from_frame, to_frame, beam_mode)

    def get_transform_between(self, from_frame: typ.Hashable, to_frame: typ.Hashable,
                              beam_mode: bool = False) -> tuple[np.ndarray | None, bool]:
        """Success flag variant of :meth:`transform_between`

        :return: (matrix, True) on success, (None, False) on failure
        :rtype: tuple[numpy.ndarray | None, bool]
        """
        try:
            return self.transform_between(from_frame, to_frame, beam_mode), True
        except IECFrameError as err:
            logger.error("Failed to get transform %s: %s", self._describe_pair(from_frame, to_frame), err)
            return None, False

    def elementary_transform_between(self, from_frame: typ.Hashable,
                                     to_frame: typ.Hashable) -> np.ndarray | None:
        """Stored elementary transform matrix, None if the pair has none"""
        try:
            return self.store.lookup(from_frame, to_frame)
        except KeyError as err:
            logger.error("%s", err)
            return None

    def transform_name_between(self, from_frame: typ.Hashable, to_frame: typ.Hashable) -> str:
        """Lookup key of the transform between two frames, e.g. 'CollimatorToGantry'"""
        return self.catalog.transform_name_between(from_frame, to_frame)

    def declared_transforms(self) -> list[tuple[typ.Hashable, typ.Hashable]]:
        """Declared elementary transforms as (child, parent) pairs"""
        return self.catalog.declared_transforms()

    def path_to_root(self, frame: typ.Hashable) -> list:
        return self.catalog.path_to_root(frame)

    def path_from_root(self, frame: typ.Hashable) -> list:
        return self.catalog.path_from_root(frame)

    def _describe_pair(self, from_frame: typ.Hashable, to_frame: typ.Hashable) -> str:
        try:
            return self.transform_name_between(from_frame, to_frame)
        except KeyError:
            return f"{from_frame!r} -> {to_frame!r}"

    # Updates
    def update_edge(self, child: typ.Hashable, parent: typ.Hashable, *args, **kwargs):
        """Update an elementary transform from its joint parameters, see
        :meth:`ElementaryTransformStore.update_edge`"""
        self.store.update_edge(child, parent, *args, **kwargs)

    def update_gantry_to_fixed_reference(self, gantry_angle: float, gantry_pitch: float = 0.0):
        self.store.update_gantry_to_fixed_reference(gantry_angle, gantry_pitch)

    def update_collimator_to_gantry(self, collimator_angle: float, bz: float = 0.0):
        self.store.update_collimator_to_gantry(collimator_angle, bz)

    def update_wedge_filter_to_collimator(self, wedge_angle: float, wz: float = 0.0):
        self.store.update_wedge_filter_to_collimator(wedge_angle, wz)

    def update_patient_support_rotation_to_fixed_reference(self, patient_support_angle: float):
        self.store.update_patient_support_rotation_to_fixed_reference(patient_support_angle)

    def update_table_top_eccentric_rotation_to_patient_support_rotation(
            self, eccentric_angle: float, ey: float = 0.0):
        self.store.update_table_top_eccentric_rotation_to_patient_support_rotation(
            eccentric_angle, ey)

    def update_table_top_to_table_top_eccentric_rotation(
            self, tx: float, ty: float, tz: float, pitch: float = 0.0, roll: float = 0.0):
        self.store.update_table_top_to_table_top_eccentric_rotation(tx, ty, tz, pitch, roll)

    def update_patient_to_table_top(self, px: float, py: float, pz: float,
                                    psi: float = 0.0, phi: float = 0.0, theta: float = 0.0):
        self.store.update_patient_to_table_top(px, py, pz, psi, phi, theta)

    def update_patient_image_regular_grid_to_dicom(
            self, column_spacing: float, row_spacing: float, slice_distance: float,
            sx: float, sy: float, sz: float,
            row_cosines: npt.ArrayLike = (1, 0, 0),
            column_cosines: npt.ArrayLike = (0, 1, 0)):
        self.store.update_patient_image_regular_grid_to_dicom(
            column_spacing, row_spacing, slice_distance, sx, sy, sz,
            row_cosines, column_cosines)

    def apply_state(self, state: MachineState):
        """Push every parameter group of a machine state into the elementary transforms

        :param state: Machine state, e.g. loaded by :meth:`MachineState.from_yaml`
        :type state: MachineState
        """
        self.update_gantry_to_fixed_reference(state.gantry.angle, state.gantry.pitch)
        self.update_collimator_to_gantry(state.collimator.angle, state.collimator.bz)
        self.update_wedge_filter_to_collimator(state.wedge_filter.angle, state.wedge_filter.wz)
        self.update_patient_support_rotation_to_fixed_reference(state.patient_support.angle)
        self.update_table_top_eccentric_rotation_to_patient_support_rotation(
            state.table_top_eccentric.angle, state.table_top_eccentric.ey)

        t = state.table_top
        self.update_table_top_to_table_top_eccentric_rotation(t.tx, t.ty, t.tz, t.pitch, t.roll)

        p = state.patient
        self.update_patient_to_table_top(p.px, p.py, p.pz, p.psi, p.phi, p.theta)

        g = state.image_grid
        if g is not None:
            self.update_patient_image_regular_grid_to_dicom(
                g.column_spacing, g.row_spacing, g.slice_distance, *g.origin,
                g.row_cosines, g.column_cosines)

        logger.debug("Applied machine state %s", state)

    def describe(self) -> str:
        """Text dump of the elementary transforms"""
        return self.store.describe()
