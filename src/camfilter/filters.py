"""
Filter selection and uniform contracts.

Each preview filter is one fragment shader. The selector maps the index
chosen in the filter list to a FilterMode and the set of uniforms the
renderer must bind for it. Selection never fails: unknown indices and an
undistort request without calibration fall back to the default filter, so
every frame has something to draw.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, FrozenSet, Optional, Tuple

import numpy as np

from .render import RenderCalibration


class FilterMode(IntEnum):
    """Preview filters, in filter list order."""

    DEFAULT = 0
    BLACK_AND_WHITE = 1
    ANSEL = 2
    SEPIA = 3
    RETRO = 4
    GEORGIA = 5
    SAHARA = 6
    POLAROID = 7
    CARTOON = 8
    EDGES = 9
    UNDISTORT = 10


class Uniform(str, Enum):
    """Uniform names as declared in the filter shaders."""

    BRIGHTNESS = "uBrightness"
    CONTRAST = "uContrast"
    SATURATION = "uSaturation"
    CORNER_RADIUS = "uCornerRadius"
    ASPECT_RATIO = "uAspectRatio"
    ASPECT_RATIO_PREVIEW = "uAspectRatioPreview"
    PIXEL_SIZE = "uPixelSize"
    IM_WIDTH = "imWidth"
    IM_HEIGHT = "imHeight"
    RADIAL_TEX = "radial"
    CENTER_TEX = "center"


BASE_UNIFORMS: FrozenSet[Uniform] = frozenset({
    Uniform.BRIGHTNESS,
    Uniform.CONTRAST,
    Uniform.SATURATION,
    Uniform.CORNER_RADIUS,
    Uniform.ASPECT_RATIO,
    Uniform.ASPECT_RATIO_PREVIEW,
})

PIXEL_SIZE_UNIFORMS: FrozenSet[Uniform] = frozenset({Uniform.PIXEL_SIZE})

CALIBRATION_UNIFORMS: FrozenSet[Uniform] = frozenset({
    Uniform.IM_WIDTH,
    Uniform.IM_HEIGHT,
    Uniform.RADIAL_TEX,
    Uniform.CENTER_TEX,
})

UNIFORM_CONTRACTS: Dict[FilterMode, FrozenSet[Uniform]] = {
    mode: BASE_UNIFORMS for mode in FilterMode
}
UNIFORM_CONTRACTS[FilterMode.CARTOON] = BASE_UNIFORMS | PIXEL_SIZE_UNIFORMS
UNIFORM_CONTRACTS[FilterMode.EDGES] = BASE_UNIFORMS | PIXEL_SIZE_UNIFORMS
UNIFORM_CONTRACTS[FilterMode.UNDISTORT] = BASE_UNIFORMS | CALIBRATION_UNIFORMS


@dataclass(frozen=True)
class FilterSelection:
    """A filter mode together with the uniforms it needs."""

    mode: FilterMode
    required_uniforms: FrozenSet[Uniform]

    @classmethod
    def for_mode(cls, mode: FilterMode) -> "FilterSelection":
        return cls(mode=mode, required_uniforms=UNIFORM_CONTRACTS[mode])

    @property
    def needs_calibration(self) -> bool:
        return bool(self.required_uniforms & CALIBRATION_UNIFORMS)

    @property
    def needs_pixel_size(self) -> bool:
        return Uniform.PIXEL_SIZE in self.required_uniforms


_SELECTIONS: Dict[FilterMode, FilterSelection] = {
    mode: FilterSelection.for_mode(mode) for mode in FilterMode
}


def select(index, has_calibration: bool) -> FilterSelection:
    """
    Pick the filter to render for a filter list index.

    Args:
        index: Index chosen in the filter list
        has_calibration: Whether a calibration snapshot is available

    Returns:
        The matching selection; DEFAULT for indices outside the list and for
        UNDISTORT when no calibration is available
    """
    try:
        mode = FilterMode(index)
    except (ValueError, TypeError):
        return _SELECTIONS[FilterMode.DEFAULT]

    if mode is FilterMode.UNDISTORT and not has_calibration:
        return _SELECTIONS[FilterMode.DEFAULT]
    return _SELECTIONS[mode]


@dataclass(frozen=True)
class FilterAdjustments:
    """Colour adjustments shared by every filter."""

    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.3
    corner_radius: float = 0.3

    @classmethod
    def from_progress(
        cls,
        brightness: int = 5,
        contrast: int = 5,
        saturation: int = 8,
        corner_radius: int = 3,
    ) -> "FilterAdjustments":
        """
        Convert seek bar positions (0..10) into shader values.

        Brightness, contrast and saturation are centred on position 5 and map
        to -0.5..0.5; the corner radius maps to 0..1.
        """
        return cls(
            brightness=(brightness - 5) / 10,
            contrast=(contrast - 5) / 10,
            saturation=(saturation - 5) / 10,
            corner_radius=corner_radius / 10,
        )


def _check_size(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Size must be positive, got {width}x{height}")


def aspect_ratio(width: int, height: int) -> np.ndarray:
    """Aspect ratio scale of a surface, relative to its shorter side."""
    _check_size(width, height)
    short = min(width, height)
    return np.array([short / width, short / height], dtype=np.float32)


def pixel_size(width: int, height: int) -> np.ndarray:
    """Size of one pixel in texture coordinates."""
    _check_size(width, height)
    return np.array([1.0 / width, 1.0 / height], dtype=np.float32)


def build_uniforms(
    selection: FilterSelection,
    adjustments: FilterAdjustments,
    view_size: Tuple[int, int],
    preview_size: Tuple[int, int],
    calibration: Optional[RenderCalibration] = None,
) -> Dict[str, object]:
    """
    Assemble the uniform values for one frame.

    Args:
        selection: Selected filter
        adjustments: Colour adjustments
        view_size: (width, height) of the output surface
        preview_size: (width, height) of the camera preview frames
        calibration: Current calibration snapshot, required for UNDISTORT

    Returns:
        Mapping of shader uniform name to value, containing exactly the
        uniforms in the selection's contract
    """
    values = {
        Uniform.BRIGHTNESS: np.float32(adjustments.brightness),
        Uniform.CONTRAST: np.float32(adjustments.contrast),
        Uniform.SATURATION: np.float32(adjustments.saturation),
        Uniform.CORNER_RADIUS: np.float32(adjustments.corner_radius),
        Uniform.ASPECT_RATIO: aspect_ratio(*view_size),
        Uniform.ASPECT_RATIO_PREVIEW: aspect_ratio(*preview_size),
    }

    if selection.needs_pixel_size:
        values[Uniform.PIXEL_SIZE] = pixel_size(*view_size)

    if selection.needs_calibration:
        if calibration is None:
            raise ValueError(f"{selection.mode.name} requires calibration uniforms")
        calib = calibration.uniforms()
        for uniform in CALIBRATION_UNIFORMS:
            values[uniform] = calib[uniform.value]

    return {u.value: values[u] for u in selection.required_uniforms}
