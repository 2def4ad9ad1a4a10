"""errors.py - Exception Hierarchy"""

__all__ = ['IECFrameError', 'UnreachableFrameError', 'MissingTransformError',
           'NotUpdatableError', 'IndexOutOfRangeError', 'ConfigurationError']

class IECFrameError(Exception):
    """Base class for all frame graph errors"""

class UnreachableFrameError(IECFrameError, KeyError):
    """Frame is not connected to the root through declared edges"""
    def __str__(self) -> str:
        return Exception.__str__(self)

class MissingTransformError(IECFrameError, KeyError):
    """No elementary transform is stored for the requested frame pair"""
    def __str__(self) -> str:
        return Exception.__str__(self)

class NotUpdatableError(IECFrameError, ValueError):
    """Elementary transform is a construction time constant"""

class IndexOutOfRangeError(IECFrameError, IndexError):
    """Grid index or linear index exceeds the declared extents"""

class ConfigurationError(IECFrameError, ValueError):
    """Machine state configuration is malformed"""
