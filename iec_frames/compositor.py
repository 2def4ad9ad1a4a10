"""compositor.py - Net Transforms Between Arbitrary Frames"""
from __future__ import annotations

import logging
import typing as typ
from dataclasses import dataclass

import numpy as np

from iec_frames.elementary import ElementaryTransformStore
from iec_frames.frames import FrameCatalog
from iec_frames.geometry import AffineTransform

__all__ = ['CachedTransform', 'TransformCompositor']

logger = logging.getLogger(__name__)

@dataclass
class CachedTransform:
    """Composed matrix and the revisions of the elementary transforms it used

    :param matrix: Net transform matrix
    :type matrix: numpy.ndarray

    :param revisions: (child, parent) -> revision at composition time
    :type revisions: dict
    """
    matrix: np.ndarray
    revisions: dict[tuple[typ.Hashable, typ.Hashable], int]

class TransformCompositor():
    """Composes elementary transforms along the route source -> root -> target

    :param catalog: Frame catalog used for path resolution
    :type catalog: FrameCatalog

    :param store: Elementary transform store
    :type store: ElementaryTransformStore

    :param cache: Keep composed transforms until an elementary transform they
        depend on is updated, defaults to True
    :type cache: bool, optional
    """
    def __init__(self, catalog: FrameCatalog, store: ElementaryTransformStore,
                 cache: bool = True):
        """Initialize TransformCompositor"""
        self.catalog = catalog
        self.store = store
        self.cache_enabled = cache
        self._cache: dict[tuple[typ.Hashable, typ.Hashable, bool], CachedTransform] = {}

    def compose(self, from_frame: typ.Hashable, to_frame: typ.Hashable,
                beam_mode: bool = False) -> np.ndarray:
        """Net transform mapping coordinates in `from_frame` into `to_frame`

        Elementary transforms from the source up to the root are concatenated
        as stored (child to parent). Transforms from the root down to the
        target are inverted first, unless `beam_mode` is set.

        :param from_frame: Source frame
        :type from_frame: typing.Hashable

        :param to_frame: Target frame
        :type to_frame: typing.Hashable

        :param beam_mode: Skip inversion on the root to target leg, defaults to False
        :type beam_mode: bool, optional

        :raises UnreachableFrameError: If either frame is not connected to the root
        :raises MissingTransformError: If an elementary transform on the route is not stored

        :return: 4x4 matrix
        :rtype: numpy.ndarray
        """
        key = (from_frame, to_frame, bool(beam_mode))
        if self.cache_enabled and key in self._cache:
            entry = self._cache[key]
            if all(self.store.revision(*edge) == rev for edge, rev in entry.revisions.items()):
                logger.debug("Cache hit %s", self.catalog.transform_name_between(from_frame, to_frame))
                return entry.matrix.copy()

        output = AffineTransform(post_multiply=True)
        revisions = {}
        for child, parent, orientation in self.catalog.route(from_frame, to_frame):
            matrix = self.store.lookup(child, parent)
            if orientation == 'reverse' and not beam_mode:
                matrix = np.linalg.inv(matrix)

            output.concatenate(matrix)
            revisions[(child, parent)] = self.store.revision(child, parent)

        if self.cache_enabled:
            self._cache[key] = CachedTransform(output.matrix, revisions)
            logger.debug("Cache store %s", self.catalog.transform_name_between(from_frame, to_frame))

        return output.matrix

    def clear_cache(self):
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)
