"""
Camera intrinsic parameters.

IntrinsicModel holds the values produced by a planar-target calibration:
image size, focal lengths, skew, principal point, radial distortion
coefficients and the Y-flip flag. Instances are immutable; a new
calibration replaces the whole model.
"""

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Sequence, Tuple

import numpy as np

# Upper bound on the number of radial coefficients a model may carry.
MAX_RADIAL_COEFFS = 16

_INT32_MAX = 2**31 - 1


@dataclass(frozen=True)
class IntrinsicModel:
    """Camera intrinsic and radial distortion parameters."""

    # Calibration reference image size
    width: int
    height: int

    # Focal length
    fx: float  # pixels
    fy: float  # pixels

    skew: float = 0.0

    # Principal point
    cx: float = 0.0  # pixels
    cy: float = 0.0  # pixels

    # Radial distortion coefficients (k1, k2, ...)
    radial: Tuple[float, ...] = field(default_factory=tuple)

    # Invert the vertical axis for left-handed sensor coordinates
    flip_y: bool = False

    def __post_init__(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or int(value) != value:
                raise ValueError(f"{name} must be an integer, got {value!r}")
            value = int(value)
            if value <= 0 or value > _INT32_MAX:
                raise ValueError(f"{name} must be in 1..{_INT32_MAX}, got {value}")
            object.__setattr__(self, name, value)

        for name in ("fx", "fy", "skew", "cx", "cy"):
            value = float(getattr(self, name))
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}")
            object.__setattr__(self, name, value)

        radial = tuple(float(k) for k in np.asarray(self.radial, dtype=np.float64).ravel())
        if not all(math.isfinite(k) for k in radial):
            raise ValueError(f"Radial coefficients must be finite, got {radial}")
        if len(radial) > MAX_RADIAL_COEFFS:
            raise ValueError(
                f"At most {MAX_RADIAL_COEFFS} radial coefficients are supported, "
                f"got {len(radial)}"
            )
        object.__setattr__(self, "radial", radial)
        object.__setattr__(self, "flip_y", bool(self.flip_y))

    @property
    def camera_matrix(self) -> np.ndarray:
        """Get 3x3 camera matrix."""
        return np.array([
            [self.fx, self.skew, self.cx],
            [0, self.fy, self.cy],
            [0, 0, 1]
        ], dtype=np.float64)

    @property
    def radial_array(self) -> np.ndarray:
        """Radial coefficients as a float64 array."""
        return np.array(self.radial, dtype=np.float64)

    @property
    def fov_horizontal(self) -> float:
        """Horizontal field of view in radians."""
        return 2 * np.arctan(self.width / (2 * self.fx))

    @property
    def fov_vertical(self) -> float:
        """Vertical field of view in radians."""
        return 2 * np.arctan(self.height / (2 * self.fy))

    def replace(self, **changes) -> "IntrinsicModel":
        """Return a new, validated model with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = dataclasses.asdict(self)
        data["radial"] = list(self.radial)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IntrinsicModel":
        """Create from dictionary."""
        return cls(
            width=data["width"],
            height=data["height"],
            fx=data["fx"],
            fy=data["fy"],
            skew=data.get("skew", 0.0),
            cx=data.get("cx", 0.0),
            cy=data.get("cy", 0.0),
            radial=data.get("radial", ()),
            flip_y=data.get("flip_y", False),
        )


def default_intrinsics() -> IntrinsicModel:
    """
    Model used when no calibration has been stored yet.

    Returns:
        1280x1920 model with unit-less placeholder focal length, centre at the
        origin and two zero radial coefficients.
    """
    return IntrinsicModel(
        width=1280,
        height=1920,
        fx=25.0,
        fy=25.0,
        skew=0.0,
        cx=0.0,
        cy=0.0,
        radial=(0.0, 0.0),
        flip_y=False,
    )


def radial_from_sequence(values: Sequence[float], count: int) -> Tuple[float, ...]:
    """Take the first ``count`` coefficients, zero-padding short sequences."""
    values = list(np.asarray(values, dtype=np.float64).ravel()[:count])
    values.extend([0.0] * (count - len(values)))
    return tuple(float(v) for v in values)
