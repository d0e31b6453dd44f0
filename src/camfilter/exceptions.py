"""
Error types raised by the calibration store, codec and solver.
"""

from pathlib import Path
from typing import Optional, Union


class CalibrationError(Exception):
    """Base class for all calibration errors."""


class StorageUnavailable(CalibrationError):
    """The backing calibration/preferences file cannot be opened, read or written."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class MalformedCalibrationData(CalibrationError):
    """A persisted calibration record is truncated or structurally invalid."""

    def __init__(self, message: str, offset: Optional[int] = None):
        super().__init__(message)
        self.offset = offset


class CalibrationSolveFailed(CalibrationError):
    """The external calibration solver could not produce intrinsic parameters."""
