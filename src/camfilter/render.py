"""
GPU-ready projection of camera intrinsics.

The undistort filter runs in a fragment shader that only accepts single
precision values, so the intrinsic model is narrowed to float32 once per
model change. Texture-space scaling of the coefficients is left to the
shader, which receives the image size alongside them.
"""

from dataclasses import dataclass
from typing import Dict, Tuple, Union

import numpy as np

from .intrinsics import IntrinsicModel

UniformValue = Union[np.float32, np.ndarray]


@dataclass(frozen=True)
class RenderCalibration:
    """Single-precision calibration values bound by the undistort filter."""

    im_width: np.float32
    im_height: np.float32
    radial_tex: Tuple[np.float32, ...]
    center_tex: Tuple[np.float32, np.float32]
    skew: np.float32

    def uniforms(self) -> Dict[str, UniformValue]:
        """
        Undistort uniform values keyed by shader uniform name.

        Vector values are fresh contiguous float32 arrays, so callers may hand
        them straight to a uniform upload without affecting this snapshot.
        """
        return {
            "imWidth": self.im_width,
            "imHeight": self.im_height,
            "radial": np.array(self.radial_tex, dtype=np.float32),
            "center": np.array(self.center_tex, dtype=np.float32),
        }


def derive(model: IntrinsicModel) -> RenderCalibration:
    """
    Narrow an intrinsic model to its render-ready form.

    Each double is rounded to the nearest float32 (IEEE-754 round half to
    even), so the same model always yields bit-identical output.

    Args:
        model: Intrinsic parameters

    Returns:
        RenderCalibration for the model
    """
    return RenderCalibration(
        im_width=np.float32(model.width),
        im_height=np.float32(model.height),
        radial_tex=tuple(np.float32(k) for k in model.radial),
        center_tex=(np.float32(model.cx), np.float32(model.cy)),
        skew=np.float32(model.skew),
    )
