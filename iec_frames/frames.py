"""frames.py - IEC 61217 Coordinate Frames and Frame Hierarchy

Coordinate frames of an external beam radiotherapy delivery device as
described by IEC 61217, completed by the frames needed to place DICOM
patient images (LPS patient, image regular grid) and the RAS frame used for
visualization::

                   ("f") FixedReference
                     |
        -----------------------------------
        |                                 |
      ("g") Gantry              ("s") PatientSupportRotation
        |                                 |
        |-- ("b") Collimator              |-- PatientSupport
        |     |                           |
        |   ("w") WedgeFilter           ("e") TableTopEccentricRotation
        |                                 |
        |-- LeftImagingPanel            ("t") TableTop
        |-- RightImagingPanel             |
        |-- FlatPanel                   ("p") Patient (LSA)
                                          |
                                  ----------------
                                  |              |
                             DICOM (LPS)        RAS
                                  |
                       PatientImageRegularGrid

FixedReference -> RAS is declared in addition to the tree. It is an
auxiliary edge: it owns an elementary transform but path resolution never
walks it.
"""
from __future__ import annotations

import enum
import logging
import typing as typ

import networkx as nx

from iec_frames.errors import UnreachableFrameError
from iec_frames.utilities import ordered_unique

__all__ = ['CoordinateFrame', 'IEC_FRAME_NAMES', 'IEC_HIERARCHY',
           'IEC_AUXILIARY_EDGES', 'IEC_TRANSFORMS', 'FrameCatalog']

logger = logging.getLogger(__name__)

Pair = tuple[typ.Hashable, typ.Hashable]

# %% Frame Identifiers
class CoordinateFrame(enum.IntEnum):
    """Coordinate frame identifiers"""
    RAS = 0
    FixedReference = 1
    Gantry = 2
    Collimator = 3
    LeftImagingPanel = 4
    RightImagingPanel = 5
    PatientSupportRotation = 6
    PatientSupport = 7
    TableTopEccentricRotation = 8
    TableTop = 9
    FlatPanel = 10
    WedgeFilter = 11
    Patient = 12
    DICOM = 13
    PatientImageRegularGrid = 14

    @classmethod
    def parse(cls, value: str | int | CoordinateFrame) -> CoordinateFrame:
        """Look up a frame by identifier, enum name or display name (case insensitive)

        :param value: Frame identifier or name
        :type value: str | int | CoordinateFrame

        :raises UnreachableFrameError: If no frame matches

        :return: Frame identifier
        :rtype: CoordinateFrame
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError as err:
                raise UnreachableFrameError(f"Unknown coordinate frame {value}") from err

        key = str(value).strip().lower()
        for frame in cls:
            if key in (frame.name.lower(), IEC_FRAME_NAMES[frame].lower()):
                return frame
        raise UnreachableFrameError(f"Unknown coordinate frame '{value}'")

F = CoordinateFrame

IEC_FRAME_NAMES: dict[CoordinateFrame, str] = {
    F.RAS:                       'Ras',
    F.FixedReference:            'FixedReference',
    F.Gantry:                    'Gantry',
    F.Collimator:                'Collimator',
    F.LeftImagingPanel:          'LeftImagingPanel',
    F.RightImagingPanel:         'RightImagingPanel',
    F.PatientSupportRotation:    'PatientSupportRotation',
    F.PatientSupport:            'PatientSupport',
    F.TableTopEccentricRotation: 'TableTopEccentricRotation',
    F.TableTop:                  'TableTop',
    F.FlatPanel:                 'FlatPanel',
    F.WedgeFilter:               'WedgeFilter',
    F.Patient:                   'Patient',
    F.DICOM:                     'DICOM',
    F.PatientImageRegularGrid:   'PatientImageRegularGrid'}

# key - parent, value - children
IEC_HIERARCHY: dict[CoordinateFrame, tuple[CoordinateFrame, ...]] = {
    F.FixedReference:            (F.Gantry, F.PatientSupportRotation),
    F.Gantry:                    (F.Collimator, F.LeftImagingPanel,
                                  F.RightImagingPanel, F.FlatPanel),
    F.Collimator:                (F.WedgeFilter,),
    F.PatientSupportRotation:    (F.PatientSupport, F.TableTopEccentricRotation),
    F.TableTopEccentricRotation: (F.TableTop,),
    F.TableTop:                  (F.Patient,),
    F.Patient:                   (F.DICOM, F.RAS),
    F.DICOM:                     (F.PatientImageRegularGrid,)}

# (from, to) pairs with a stored transform that are not part of the tree
IEC_AUXILIARY_EDGES: tuple[Pair, ...] = ((F.FixedReference, F.RAS),)

# declared elementary transforms as (child, parent) pairs
IEC_TRANSFORMS: tuple[Pair, ...] = (
    (F.FixedReference, F.RAS),
    (F.Gantry, F.FixedReference),
    (F.Collimator, F.Gantry),
    (F.WedgeFilter, F.Collimator),
    (F.LeftImagingPanel, F.Gantry),
    (F.RightImagingPanel, F.Gantry),
    (F.PatientSupportRotation, F.FixedReference),
    (F.PatientSupport, F.PatientSupportRotation),
    (F.TableTopEccentricRotation, F.PatientSupportRotation),
    (F.TableTop, F.TableTopEccentricRotation),
    (F.Patient, F.TableTop),
    (F.DICOM, F.Patient),
    (F.PatientImageRegularGrid, F.DICOM),
    (F.RAS, F.Patient),
    (F.FlatPanel, F.Gantry))

del F

# %% Frame Catalog
class FrameCatalog(nx.DiGraph):
    """Coordinate frame hierarchy as a directed graph with parent -> child edges.

    Nodes carry a ``name`` attribute. The single node without predecessors is
    the root. Path resolution looks up parents through the graph's
    predecessor adjacency, so each hop is a dictionary lookup.

    An empty catalog is created by default, as for any :code:`networkx` graph;
    use :meth:`iec61217` or :meth:`from_hierarchy` to build a populated one.
    """
    def __init__(self, incoming_graph_data = None, **attr):
        """Initialize FrameCatalog"""
        super().__init__(incoming_graph_data, **attr)
        self.graph.setdefault('auxiliary_edges', [])
        self.graph.setdefault('transforms', None)

    @classmethod
    def from_hierarchy(cls,
                       hierarchy: typ.Mapping[typ.Hashable, typ.Iterable[typ.Hashable]],
                       names: typ.Mapping[typ.Hashable, str],
                       auxiliary_edges: typ.Iterable[Pair] = (),
                       transforms: typ.Iterable[Pair] | None = None) -> FrameCatalog:
        """Build a catalog from a parent -> children mapping

        :param hierarchy: Children of each parent frame, in declaration order
        :type hierarchy: typing.Mapping

        :param names: Display name of every frame
        :type names: typing.Mapping[typing.Hashable, str]

        :param auxiliary_edges: (from, to) pairs owning a transform outside the tree, defaults to ()
        :type auxiliary_edges: typing.Iterable[tuple], optional

        :param transforms: Declared (child, parent) transform order, defaults to
            auxiliary edges followed by the tree edges
        :type transforms: typing.Iterable[tuple] | None, optional

        :return: Frame catalog
        :rtype: FrameCatalog
        """
        catalog = cls()
        for frame, name in names.items():
            catalog.add_node(frame, name=name)

        for parent, children in hierarchy.items():
            for child in children:
                catalog.add_edge(parent, child)

        catalog.graph['auxiliary_edges'] = list(auxiliary_edges)
        if transforms is not None:
            catalog.graph['transforms'] = list(transforms)

        for problem in catalog.validate():
            logger.warning("Malformed frame catalog: %s", problem)

        return catalog

    @classmethod
    def iec61217(cls) -> FrameCatalog:
        """IEC 61217 frame catalog with DICOM, image grid and RAS frames"""
        return cls.from_hierarchy(IEC_HIERARCHY, IEC_FRAME_NAMES,
                                  IEC_AUXILIARY_EDGES, IEC_TRANSFORMS)

    # Catalog queries
    def name_of(self, frame: typ.Hashable) -> str:
        """Display name of a frame

        :raises UnreachableFrameError: If the frame is not declared
        """
        if frame not in self:
            raise UnreachableFrameError(f"Frame {frame!r} is not declared")
        return self.nodes[frame].get('name', str(frame))

    def children(self, parent: typ.Hashable) -> tuple:
        """Children of a frame in declaration order"""
        if parent not in self:
            raise UnreachableFrameError(f"Frame {parent!r} is not declared")
        return tuple(self.successors(parent))

    def parent_of(self, frame: typ.Hashable) -> typ.Hashable | None:
        """Parent of a frame, :code:`None` for a frame without parent

        :raises UnreachableFrameError: If the frame is not declared
        """
        if frame not in self:
            raise UnreachableFrameError(f"Frame {frame!r} is not declared")
        return next(iter(self._pred[frame]), None)

    @property
    def root(self) -> typ.Hashable | None:
        """Single frame without parent, :code:`None` if the catalog has no unique root"""
        roots = [n for n, d in self.in_degree() if d == 0]
        return roots[0] if len(roots) == 1 else None

    @property
    def auxiliary_edges(self) -> list[Pair]:
        return list(self.graph['auxiliary_edges'])

    def declared_transforms(self) -> list[Pair]:
        """Declared elementary transforms as (child, parent) pairs

        :return: Transform pairs, auxiliary edges included
        :rtype: list[tuple]
        """
        if self.graph['transforms'] is not None:
            return list(self.graph['transforms'])
        return list(ordered_unique(self.auxiliary_edges + [(c, p) for p, c in self.edges]))

    def transform_name_between(self, from_frame: typ.Hashable, to_frame: typ.Hashable) -> str:
        """Lookup key of the transform between two frames, e.g. 'CollimatorToGantry'"""
        return f"{self.name_of(from_frame)}To{self.name_of(to_frame)}"

    def validate(self) -> list[str]:
        """Reports hierarchy problems, an empty list for a well formed tree

        :return: Problem descriptions
        :rtype: list[str]
        """
        if len(self) == 0 or nx.is_arborescence(self):
            return []

        problems = []
        roots = [n for n, d in self.in_degree() if d == 0]
        if len(roots) != 1:
            problems.append(f"expected a single root frame, found {len(roots)}")

        for frame, degree in self.in_degree():
            if degree > 1:
                problems.append(f"frame {self.name_of(frame)} has {degree} parents")

        for cycle in nx.simple_cycles(self):
            problems.append("cycle " + ' -> '.join(self.name_of(f) for f in cycle))

        return problems

    # Path resolution
    def path_to_root(self, frame: typ.Hashable) -> list:
        """Frames from a frame up to the root (both inclusive)

        :param frame: Starting frame
        :type frame: typing.Hashable

        :raises UnreachableFrameError: If the frame is not connected to the root

        :return: Frame sequence ending at the root
        :rtype: list
        """
        root = self.root
        if root is None:
            raise UnreachableFrameError("Frame catalog has no unique root")

        path = [frame]
        parent = self.parent_of(frame)
        while path[-1] != root:
            if parent is None or len(path) > len(self):
                raise UnreachableFrameError(
                    f"Frame {self.name_of(frame)} is not connected to root {self.name_of(root)}")
            path.append(parent)
            parent = self.parent_of(parent)

        logger.debug("Path to root: %s", ' -> '.join(self.name_of(f) for f in path))
        return path

    def path_from_root(self, frame: typ.Hashable) -> list:
        """Frames from the root down to a frame (both inclusive)"""
        return self.path_to_root(frame)[::-1]

    def route(self, source: typ.Hashable, target: typ.Hashable) -> list[tuple[typ.Hashable, typ.Hashable, str]]:
        """Generates the elementary transform sequence between two frames

        The route always passes through the root: up from the source, then
        down to the target.

        :param source: Source frame
        :type source: typing.Hashable

        :param target: Target frame
        :type target: typing.Hashable

        :raises UnreachableFrameError: If either frame is not connected to the root

        :return: Elementary transforms as tuples (child, parent, orientation),
            where orientation is 'forward' (child to parent) or 'reverse'
        :rtype: list[tuple]
        """
        up, down = self.path_to_root(source), self.path_from_root(target)

        path = []
        for child, parent in zip(up[:-1], up[1:]):
            if child != parent:
                path.append((child, parent, 'forward'))
        for parent, child in zip(down[:-1], down[1:]):
            if child != parent:
                path.append((child, parent, 'reverse'))

        return path
