"""Shared fixtures for the camfilter tests."""

from typing import List, Tuple

import cv2
import numpy as np
import pytest

from camfilter.intrinsics import IntrinsicModel
from camfilter.solver import ChessboardTarget


@pytest.fixture
def model() -> IntrinsicModel:
    return IntrinsicModel(
        width=1280,
        height=720,
        fx=1041.2345678901234,
        fy=1039.8765432109876,
        skew=0.0012345,
        cx=639.5123456789,
        cy=359.4987654321,
        radial=(-0.281234567891, 0.0912345678912),
        flip_y=False,
    )


@pytest.fixture
def calibration_path(tmp_path):
    return tmp_path / "camera_calibr.dat"


@pytest.fixture
def preferences_path(tmp_path):
    return tmp_path / "preferences.yaml"


TRUE_K = np.array([
    [500.0, 0, 320.0],
    [0, 500.0, 240.0],
    [0, 0, 1]
])

IMAGE_SIZE = (640, 480)


def render_chessboard(
    target: ChessboardTarget,
    rvec: Tuple[float, float, float],
    tvec: Tuple[float, float, float],
    camera_matrix: np.ndarray = TRUE_K,
    image_size: Tuple[int, int] = IMAGE_SIZE,
) -> np.ndarray:
    """Render a perspective view of a chessboard on a white background."""
    width, height = image_size
    image = np.full((height, width), 255, np.uint8)
    s = target.square_size
    rvec = np.array(rvec, dtype=np.float64)
    tvec = np.array(tvec, dtype=np.float64)

    # Squares span x in [(i-1)s, is], so the first inner corner is the origin
    for i in range(target.columns):
        for j in range(target.rows):
            if (i + j) % 2:
                continue
            quad = np.array([
                [(i - 1) * s, (j - 1) * s, 0],
                [i * s, (j - 1) * s, 0],
                [i * s, j * s, 0],
                [(i - 1) * s, j * s, 0],
            ], dtype=np.float64)
            projected, _ = cv2.projectPoints(quad, rvec, tvec, camera_matrix, None)
            poly = np.round(projected.reshape(-1, 2) * 16).astype(np.int32)
            cv2.fillConvexPoly(image, poly, 0, lineType=cv2.LINE_AA, shift=4)

    return image


def chessboard_views(target: ChessboardTarget) -> List[np.ndarray]:
    """Several tilted views of the target, all fully inside the image."""
    cx = (target.columns - 2) / 2 * target.square_size
    cy = (target.rows - 2) / 2 * target.square_size
    poses = [
        ((0.0, 0.0, 0.0), (-cx, -cy, 600.0)),
        ((0.35, 0.0, 0.0), (-cx, -cy, 620.0)),
        ((-0.35, 0.0, 0.0), (-cx, -cy, 620.0)),
        ((0.0, 0.35, 0.0), (-cx, -cy, 640.0)),
        ((0.0, -0.35, 0.0), (-cx, -cy, 640.0)),
        ((0.25, 0.25, 0.1), (-cx, -cy, 650.0)),
        ((-0.25, 0.2, -0.1), (-cx + 20, -cy, 650.0)),
    ]
    return [render_chessboard(target, rvec, tvec) for rvec, tvec in poses]
