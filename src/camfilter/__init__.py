"""
Camera Filter Calibration
=========================

Lens calibration storage and real-time filter selection for a camera
preview with shader-based colour filters and radial undistortion.

Main components:
- intrinsics: Immutable camera intrinsic + radial distortion model
- codec: Binary calibration record encode/decode and file persistence
- render: Single-precision projection of the model for the undistort shader
- filters: Filter list, uniform contracts and per-frame uniform assembly
- store: Atomically published calibration snapshot and filter choice
- preferences: Persisted filter index and adjustment seek bars
- solver: Chessboard calibration delegated to OpenCV
"""

__version__ = "0.1.0"

from .config import Config
from .exceptions import (
    CalibrationError,
    CalibrationSolveFailed,
    MalformedCalibrationData,
    StorageUnavailable,
)
from .intrinsics import IntrinsicModel, default_intrinsics, MAX_RADIAL_COEFFS
from .codec import encode, decode, save_intrinsics, load_intrinsics, load_or_default, load_with_fallback
from .render import RenderCalibration, derive
from .filters import (
    FilterMode,
    FilterSelection,
    FilterAdjustments,
    Uniform,
    select,
    build_uniforms,
)
from .preferences import Preferences
from .store import CalibrationStore, CalibrationSnapshot
from .solver import CalibrationSolver, ChessboardSolver, ChessboardTarget

__all__ = [
    "Config",
    "CalibrationError",
    "CalibrationSolveFailed",
    "MalformedCalibrationData",
    "StorageUnavailable",
    "IntrinsicModel",
    "default_intrinsics",
    "MAX_RADIAL_COEFFS",
    "encode",
    "decode",
    "save_intrinsics",
    "load_intrinsics",
    "load_or_default",
    "load_with_fallback",
    "RenderCalibration",
    "derive",
    "FilterMode",
    "FilterSelection",
    "FilterAdjustments",
    "Uniform",
    "select",
    "build_uniforms",
    "Preferences",
    "CalibrationStore",
    "CalibrationSnapshot",
    "CalibrationSolver",
    "ChessboardSolver",
    "ChessboardTarget",
    "__version__",
]
