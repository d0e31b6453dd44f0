"""
Binary persistence of camera intrinsic parameters.

The record layout is fixed and carries no header or version byte. All
multi-byte fields are big-endian:

    offset  size  field
    0       4     height          int32
    4       4     width           int32
    8       8     fx              float64
    16      8     fy              float64
    24      8     skew            float64
    32      8     cx              float64
    40      8     cy              float64
    48      4     radial count N  int32
    52      8*N   radial[i]       float64
    52+8N   1     flip_y          bool (0 = false)

Doubles are stored as doubles, so decode(encode(m)) == m exactly.
"""

import logging
import os
import struct
import tempfile
from pathlib import Path
from typing import Optional, Tuple, Union

from .exceptions import MalformedCalibrationData, StorageUnavailable
from .intrinsics import MAX_RADIAL_COEFFS, IntrinsicModel, default_intrinsics

logger = logging.getLogger(__name__)

_HEADER = struct.Struct(">ii5d")
_COUNT = struct.Struct(">i")
_DOUBLE = struct.Struct(">d")
_BOOL = struct.Struct(">?")

PathLike = Union[str, Path]


def encode(model: IntrinsicModel) -> bytes:
    """
    Serialize intrinsic parameters to the persisted byte layout.

    Args:
        model: Intrinsic parameters to encode

    Returns:
        Encoded record
    """
    parts = [
        _HEADER.pack(
            model.height,
            model.width,
            model.fx,
            model.fy,
            model.skew,
            model.cx,
            model.cy,
        ),
        _COUNT.pack(len(model.radial)),
    ]
    parts.extend(_DOUBLE.pack(k) for k in model.radial)
    parts.append(_BOOL.pack(model.flip_y))
    return b"".join(parts)


class _Reader:
    """Sequential reader that fails on short reads instead of padding."""

    def __init__(self, data: bytes):
        self.data = memoryview(data)
        self.offset = 0

    def read(self, fmt: struct.Struct, name: str) -> tuple:
        end = self.offset + fmt.size
        if end > len(self.data):
            raise MalformedCalibrationData(
                f"Calibration record truncated while reading {name} "
                f"(need {fmt.size} bytes at offset {self.offset}, "
                f"{len(self.data) - self.offset} left)",
                offset=self.offset,
            )
        values = fmt.unpack_from(self.data, self.offset)
        self.offset = end
        return values


def decode(data: bytes) -> IntrinsicModel:
    """
    Deserialize intrinsic parameters from the persisted byte layout.

    Args:
        data: Encoded record

    Returns:
        Decoded IntrinsicModel

    Raises:
        MalformedCalibrationData: if the record is truncated, declares an
            invalid radial count or image size, holds non-finite values
            or has trailing bytes
    """
    reader = _Reader(data)
    height, width, fx, fy, skew, cx, cy = reader.read(_HEADER, "header")

    if width <= 0 or height <= 0:
        raise MalformedCalibrationData(
            f"Invalid image size {width}x{height} in calibration record", offset=0
        )

    count_offset = reader.offset
    (count,) = reader.read(_COUNT, "radial count")
    if count < 0 or count > MAX_RADIAL_COEFFS:
        raise MalformedCalibrationData(
            f"Radial coefficient count {count} outside 0..{MAX_RADIAL_COEFFS}",
            offset=count_offset,
        )

    radial = [reader.read(_DOUBLE, f"radial[{i}]")[0] for i in range(count)]
    (flip_y,) = reader.read(_BOOL, "flip_y")

    if reader.offset != len(data):
        raise MalformedCalibrationData(
            f"{len(data) - reader.offset} unexpected trailing bytes after calibration record",
            offset=reader.offset,
        )

    try:
        return IntrinsicModel(
            width=width,
            height=height,
            fx=fx,
            fy=fy,
            skew=skew,
            cx=cx,
            cy=cy,
            radial=tuple(radial),
            flip_y=flip_y,
        )
    except ValueError as e:
        raise MalformedCalibrationData(f"Invalid calibration values: {e}", offset=0) from e


def save_intrinsics(path: PathLike, model: IntrinsicModel) -> None:
    """
    Write intrinsic parameters to a file.

    The record is written to a temporary file next to ``path`` and moved into
    place, so readers see either the old or the new record.

    Raises:
        StorageUnavailable: if the file cannot be created or written
    """
    path = Path(path)
    payload = encode(model)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise StorageUnavailable(f"Could not write calibration file {path}: {e}", path) from e

    logger.debug(f"Saved calibration ({len(payload)} bytes) to {path}")


def load_intrinsics(path: PathLike) -> Optional[IntrinsicModel]:
    """
    Read intrinsic parameters from a file.

    Returns:
        The stored model, or None if the file does not exist

    Raises:
        StorageUnavailable: if the file exists but cannot be read
        MalformedCalibrationData: if the stored record is corrupt
    """
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise StorageUnavailable(f"Could not read calibration file {path}: {e}", path) from e
    return decode(data)


def load_with_fallback(path: PathLike) -> Tuple[IntrinsicModel, bool]:
    """
    Read intrinsic parameters, substituting the default model on failure.

    A missing file, a corrupt record or an unreadable file all yield
    ``default_intrinsics()``, each with its own log message.

    Returns:
        Tuple of (model, is_default)
    """
    try:
        model = load_intrinsics(path)
    except MalformedCalibrationData as e:
        logger.warning(f"Discarding corrupt calibration record in {path}: {e}")
        return default_intrinsics(), True
    except StorageUnavailable as e:
        logger.error(f"{e}; using default calibration")
        return default_intrinsics(), True

    if model is None:
        logger.warning(f"Storage file not found: {path}")
        return default_intrinsics(), True
    return model, False


def load_or_default(path: PathLike) -> IntrinsicModel:
    """Stored intrinsic parameters, or the default model if none can be read."""
    model, _ = load_with_fallback(path)
    return model
