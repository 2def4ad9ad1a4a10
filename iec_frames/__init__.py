"""iec_frames - Transforms between IEC 61217 radiotherapy coordinate frames"""
from iec_frames.errors import (IECFrameError, UnreachableFrameError, MissingTransformError,
                               NotUpdatableError, IndexOutOfRangeError, ConfigurationError)
from iec_frames.frames import CoordinateFrame, FrameCatalog
from iec_frames.geometry import AffineTransform
from iec_frames.elementary import ElementaryTransformStore
from iec_frames.compositor import TransformCompositor
from iec_frames.config import MachineState
from iec_frames.logic import IECTransformLogic
from iec_frames.indexing import (to_linear_index, from_linear_index,
                                 to_linear_indices, from_linear_indices)

__version__ = '0.1.0'
