"""config.py - Machine State Configuration

Loads the joint parameters of every mechanical stage from a YAML file. Each
parameter group maps onto one elementary transform update.

Example YAML structure::

    gantry:
      angle: 90.0
      pitch: 0.0
    collimator:
      angle: 15.0
      bz: 0.0
    wedge_filter:
      angle: 0.0
      wz: 0.0
    patient_support:
      angle: 0.0
    table_top_eccentric:
      angle: 0.0
      ey: 0.0
    table_top:
      tx: 0.0
      ty: 0.0
      tz: -150.0
      pitch: 0.0
      roll: 0.0
    patient:
      px: 0.0
      py: 0.0
      pz: 0.0
      psi: 0.0
      phi: 0.0
      theta: 0.0
    image_grid:
      column_spacing: 1.0
      row_spacing: 1.0
      slice_distance: 2.5
      origin: [-250.0, -250.0, -100.0]
      row_cosines: [1.0, 0.0, 0.0]
      column_cosines: [0.0, 1.0, 0.0]

Every group is optional; missing groups and keys keep their defaults, which
leave the corresponding transform at identity.
"""
from __future__ import annotations

import logging
import numbers
import typing as typ

from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from iec_frames.errors import ConfigurationError

__all__ = ['GantryState', 'CollimatorState', 'WedgeFilterState', 'PatientSupportState',
           'TableTopEccentricState', 'TableTopState', 'PatientState', 'ImageGridState',
           'MachineState']

logger = logging.getLogger(__name__)

@dataclass
class GantryState:
    """Gantry rotation about Y and pitch about X, in degrees"""
    angle: float = 0.0
    pitch: float = 0.0

@dataclass
class CollimatorState:
    """Collimator rotation about Z in degrees and axial offset"""
    angle: float = 0.0
    bz: float = 0.0

@dataclass
class WedgeFilterState:
    angle: float = 0.0
    wz: float = 0.0

@dataclass
class PatientSupportState:
    angle: float = 0.0

@dataclass
class TableTopEccentricState:
    """Table top eccentric rotation about Z in degrees and lateral offset"""
    angle: float = 0.0
    ey: float = 0.0

@dataclass
class TableTopState:
    """Table top displacement, pitch about X and roll about Y"""
    tx: float = 0.0
    ty: float = 0.0
    tz: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0

@dataclass
class PatientState:
    """Patient displacement and rotations about X (psi), Y (phi) and Z (theta)"""
    px: float = 0.0
    py: float = 0.0
    pz: float = 0.0
    psi: float = 0.0
    phi: float = 0.0
    theta: float = 0.0

@dataclass
class ImageGridState:
    """Placement of the patient image regular grid in the DICOM (LPS) frame

    :param column_spacing: Distance between pixel columns
    :type column_spacing: float

    :param row_spacing: Distance between pixel rows
    :type row_spacing: float

    :param slice_distance: Distance between consecutive slices
    :type slice_distance: float

    :param origin: Position of the first voxel
    :type origin: tuple[float, float, float]

    :param row_cosines: Row direction cosines, first triplet of Image Orientation
    :type row_cosines: tuple[float, float, float]

    :param column_cosines: Column direction cosines, second triplet of Image Orientation
    :type column_cosines: tuple[float, float, float]
    """
    column_spacing: float = 1.0
    row_spacing: float = 1.0
    slice_distance: float = 1.0
    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)
    row_cosines: tuple[float, float, float] = (1.0, 0.0, 0.0)
    column_cosines: tuple[float, float, float] = (0.0, 1.0, 0.0)

def _is_number(value: typ.Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)

def _parse_group(cls: type, data: dict[str, typ.Any] | None, group: str):
    """Builds a parameter group dataclass. Triplet fields (tuple defaults)
    take three numbers, every other field takes a single number."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigurationError(f"'{group}' must be a mapping, got {type(data).__name__}")

    triplets = {f.name: isinstance(f.default, tuple) for f in fields(cls)}
    unknown = set(data) - set(triplets)
    if unknown:
        raise ConfigurationError(f"Unknown key(s) in '{group}': {', '.join(sorted(unknown))}")

    values = {}
    for key, value in data.items():
        if triplets[key]:
            if (not isinstance(value, (list, tuple)) or len(value) != 3
                    or not all(_is_number(v) for v in value)):
                raise ConfigurationError(f"'{group}.{key}' must be three numbers, got {value!r}")
            values[key] = tuple(float(v) for v in value)
        elif _is_number(value):
            values[key] = float(value)
        else:
            raise ConfigurationError(f"'{group}.{key}' must be a number, got {value!r}")

    return cls(**values)

# group name -> parameter group dataclass
PARAMETER_GROUPS: dict[str, type] = {
    'gantry': GantryState,
    'collimator': CollimatorState,
    'wedge_filter': WedgeFilterState,
    'patient_support': PatientSupportState,
    'table_top_eccentric': TableTopEccentricState,
    'table_top': TableTopState,
    'patient': PatientState,
    'image_grid': ImageGridState}

@dataclass
class MachineState:
    """Joint parameters of every mechanical stage of the delivery device.
    An `image_grid` of None leaves the grid transform untouched."""
    gantry: GantryState = field(default_factory=GantryState)
    collimator: CollimatorState = field(default_factory=CollimatorState)
    wedge_filter: WedgeFilterState = field(default_factory=WedgeFilterState)
    patient_support: PatientSupportState = field(default_factory=PatientSupportState)
    table_top_eccentric: TableTopEccentricState = field(default_factory=TableTopEccentricState)
    table_top: TableTopState = field(default_factory=TableTopState)
    patient: PatientState = field(default_factory=PatientState)
    image_grid: ImageGridState | None = None

    @classmethod
    def from_dict(cls, data: dict[str, typ.Any] | None) -> MachineState:
        """Builds a machine state from a (YAML loaded) dictionary

        :param data: Parameter groups keyed by group name
        :type data: dict[str, typing.Any] | None

        :raises ConfigurationError: On unknown groups or keys, or values of the wrong shape

        :return: Machine state with defaults for every missing group
        :rtype: MachineState
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError("Machine state must be a mapping of parameter groups")

        unknown = set(data) - set(PARAMETER_GROUPS)
        if unknown:
            raise ConfigurationError(f"Unknown parameter group(s): {', '.join(sorted(unknown))}")

        state = cls()
        for group, group_cls in PARAMETER_GROUPS.items():
            if group == 'image_grid' and data.get(group) is None:
                continue
            setattr(state, group, _parse_group(group_cls, data.get(group), group))

        return state

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> MachineState:
        """Loads a machine state from a YAML file

        :param config_path: Path to the YAML file
        :type config_path: str | pathlib.Path

        :raises FileNotFoundError: If the file does not exist
        :raises ConfigurationError: If the content is malformed

        :return: Machine state with loaded parameters
        :rtype: MachineState
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Machine state file not found: {config_path}")

        with open(path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as err:
                raise ConfigurationError(f"Invalid YAML in {config_path}: {err}") from err

        logger.info("Loading machine state from %s", config_path)
        return cls.from_dict(data)
